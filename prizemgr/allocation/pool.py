"""Build the ordered candidate pool of one category."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from .criteria import CriteriaSet
from .eligibility import EligibilityResult, evaluate_eligibility
from .rules import AllocationRules
from .snapshot import CategorySnapshot, CompetitorSnapshot
from .tracker import ExclusivityTracker


@dataclass
class Candidate:
    competitor: CompetitorSnapshot
    result: EligibilityResult


@dataclass
class CategoryPool:
    """Eligibility summary of one category at one point of a run.

    Attributes
    ----------
    before_count : int
        Competitors passing the criteria, ignoring exclusivity.
    after_count : int
        Of those, competitors not blocked by earlier claims.
    candidates : list[Candidate]
        Unblocked eligible competitors in award order.
    blocked : list[Candidate]
        Eligible competitors removed by exclusivity, in award order.
    fail_histogram : Counter
        Fail code counts over ineligible competitors.
    """

    before_count: int = 0
    after_count: int = 0
    candidates: list[Candidate] = field(default_factory=list)
    blocked: list[Candidate] = field(default_factory=list)
    fail_histogram: Counter = field(default_factory=Counter)

    def first(self) -> Optional[Candidate]:
        return self.candidates[0] if self.candidates else None


def _rating_key(competitor: CompetitorSnapshot) -> tuple[int, int]:
    # rated before unrated, higher rating first
    if competitor.rating is None:
        return (1, 0)
    return (0, -competitor.rating)


def compare_by_rank(competitor: CompetitorSnapshot, strategy: str = "rating_then_name") -> tuple:
    """Sort key for ordinary categories.

    Rank ascending; for ``rating_then_name`` equal ranks fall back to rating
    descending (unrated last) and then name. Id is the final tie-break so
    the order is total.
    """

    if strategy == "rank_only":
        return (competitor.rank, competitor.id)
    return (
        competitor.rank,
        _rating_key(competitor),
        (competitor.name or "").lower(),
        competitor.id,
    )


def youngest_sort_key(competitor: CompetitorSnapshot) -> tuple:
    """Sort key for youngest-competitor categories: latest birth date first."""

    dob_ordinal = competitor.dob.toordinal() if competitor.dob is not None else 0
    return (
        -dob_ordinal,
        competitor.rank,
        _rating_key(competitor),
        (competitor.name or "").lower(),
        competitor.id,
    )


def effective_criteria(category: CategorySnapshot) -> CriteriaSet:
    """Category criteria with the gender filter forced for youngest categories."""

    if category.category_type == "youngest_female":
        return category.criteria.with_gender("F")
    if category.category_type == "youngest_male":
        return category.criteria.with_gender("M")
    return category.criteria


def evaluate_for_category(
    category: CategorySnapshot,
    competitor: CompetitorSnapshot,
    rules: AllocationRules,
    on_date: date,
) -> EligibilityResult:
    """Evaluate ``competitor`` against ``category`` including category-type rules."""

    result = evaluate_eligibility(competitor, effective_criteria(category), rules, on_date)
    if category.is_youngest and competitor.dob is None:
        fails = tuple(sorted(set(result.fail_codes) | {"dob_missing"}))
        warns = tuple(code for code in result.warn_codes if code != "dob_missing_allowed")
        return EligibilityResult(
            eligible=False,
            fail_codes=fails,
            pass_codes=result.pass_codes,
            warn_codes=warns,
        )
    return result


def build_pool(
    category: CategorySnapshot,
    competitors: Iterable[CompetitorSnapshot],
    tracker: ExclusivityTracker,
    rules: AllocationRules,
    on_date: date,
) -> CategoryPool:
    """Evaluate every competitor for ``category`` and order the survivors.

    Parameters
    ----------
    category : CategorySnapshot
        Category to build the pool for.
    competitors : Iterable[CompetitorSnapshot]
        All competitors of the tournament.
    tracker : ExclusivityTracker
        Claims made so far in the current run.
    rules : AllocationRules
        Resolved tournament rules.
    on_date : date
        Reference date for age checks.

    Returns
    -------
    CategoryPool
        Counts before and after exclusivity, the ordered candidates and a
        histogram of fail codes over the ineligible competitors.
    """

    pool = CategoryPool()
    eligible: list[Candidate] = []
    for competitor in competitors:
        result = evaluate_for_category(category, competitor, rules, on_date)
        if result.eligible:
            eligible.append(Candidate(competitor, result))
        else:
            pool.fail_histogram.update(result.fail_codes)

    if category.is_youngest:
        eligible.sort(key=lambda candidate: youngest_sort_key(candidate.competitor))
    else:
        eligible.sort(
            key=lambda candidate: compare_by_rank(candidate.competitor, rules.tie_break_strategy)
        )

    for candidate in eligible:
        if tracker.is_claimed(candidate.competitor.id, is_main=category.is_main):
            pool.blocked.append(candidate)
        else:
            pool.candidates.append(candidate)

    pool.before_count = len(eligible)
    pool.after_count = len(pool.candidates)
    return pool


__all__ = [
    "Candidate",
    "CategoryPool",
    "build_pool",
    "compare_by_rank",
    "effective_criteria",
    "evaluate_for_category",
    "youngest_sort_key",
]
