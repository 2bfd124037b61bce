"""Per-competitor eligibility checks against a category's criteria."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .criteria import CriteriaSet
from .rules import AllocationRules
from .snapshot import CompetitorSnapshot

logger = logging.getLogger(__name__)

# criteria attribute, competitor attribute, fail code
_ALLOW_LISTS = (
    ("allowed_disabilities", "disability", "disability_excluded"),
    ("allowed_states", "state", "state_excluded"),
    ("allowed_cities", "city", "city_excluded"),
    ("allowed_clubs", "club", "club_excluded"),
    ("allowed_groups", "group_label", "group_excluded"),
    ("allowed_types", "type_label", "type_excluded"),
)


@dataclass(frozen=True)
class EligibilityResult:
    """Outcome of evaluating one competitor against one criteria set.

    Attributes
    ----------
    eligible : bool
        ``True`` when no check failed.
    fail_codes : tuple[str, ...]
        Sorted, de-duplicated codes of the failed checks.
    pass_codes : tuple[str, ...]
        Codes of the checks that passed, in evaluation order.
    warn_codes : tuple[str, ...]
        Passed with caveats, e.g. an imputed date of birth.
    """

    eligible: bool
    fail_codes: tuple[str, ...] = ()
    pass_codes: tuple[str, ...] = ()
    warn_codes: tuple[str, ...] = ()


def age_on(dob: date, on_date: date) -> int:
    """Whole years elapsed between ``dob`` and ``on_date``."""

    years = on_date.year - dob.year
    if (on_date.month, on_date.day) < (dob.month, dob.day):
        years -= 1
    return years


def _check_gender(
    competitor: CompetitorSnapshot, criteria: CriteriaSet, fails: list, passes: list
) -> None:
    wanted = criteria.gender
    if wanted is None:
        passes.append("gender_open")
        return
    gender = competitor.gender
    if wanted == "M_OR_UNKNOWN":
        if gender == "F":
            fails.append("gender_mismatch")
        else:
            passes.append("gender_ok")
        return
    if gender is None:
        fails.append("gender_missing")
    elif gender != wanted:
        fails.append("gender_mismatch")
    else:
        passes.append("gender_ok")


def _check_age(
    competitor: CompetitorSnapshot,
    criteria: CriteriaSet,
    rules: AllocationRules,
    on_date: date,
    fails: list,
    passes: list,
    warns: list,
) -> None:
    if not criteria.has_age_bounds or not rules.strict_age:
        return
    if competitor.dob is None:
        if rules.allow_missing_dob_for_age:
            warns.append("dob_missing_allowed")
        else:
            fails.append("dob_missing")
        return

    if competitor.dob_imputed:
        warns.append("dob_imputed")

    age = age_on(competitor.dob, on_date)
    failed = False
    if criteria.max_age is not None:
        if rules.max_age_inclusive:
            too_old = age > criteria.max_age
        else:
            too_old = age >= criteria.max_age
        if too_old:
            fails.append("age_above_max")
            failed = True
    if criteria.min_age is not None and age < criteria.min_age:
        fails.append("age_below_min")
        failed = True
    if not failed:
        passes.append("age_ok")


def _check_rating(
    competitor: CompetitorSnapshot,
    criteria: CriteriaSet,
    rules: AllocationRules,
    fails: list,
    passes: list,
) -> None:
    if criteria.unrated_only:
        if competitor.is_rated:
            fails.append("rated_excluded")
        else:
            passes.append("unrated_only_ok")
        return

    if not criteria.has_rating_bounds:
        return

    if not competitor.is_rated:
        if rules.allow_unrated_in_rating:
            passes.append("rating_unrated_allowed")
        else:
            fails.append("unrated_excluded")
        return

    rating = competitor.rating
    failed = False
    if criteria.min_rating is not None and rating < criteria.min_rating:
        fails.append("rating_below_min")
        failed = True
    if criteria.max_rating is not None and rating > criteria.max_rating:
        fails.append("rating_above_max")
        failed = True
    if not failed:
        passes.append("rating_ok")


def _check_allow_lists(
    competitor: CompetitorSnapshot, criteria: CriteriaSet, fails: list, passes: list
) -> None:
    for criteria_attr, competitor_attr, fail_code in _ALLOW_LISTS:
        allowed = getattr(criteria, criteria_attr)
        if not allowed:
            continue
        value: Optional[str] = getattr(competitor, competitor_attr)
        if value is not None and value.strip().lower() in allowed:
            passes.append(fail_code.replace("_excluded", "_ok"))
        else:
            fails.append(fail_code)


def evaluate_eligibility(
    competitor: CompetitorSnapshot,
    criteria: CriteriaSet,
    rules: AllocationRules,
    on_date: date,
) -> EligibilityResult:
    """Run every criteria check for ``competitor``.

    Checks are independent: each contributes its own fail code, so a
    competitor failing several axes reports all of them. Missing or
    malformed competitor data never raises; it produces a fail (or warn)
    code instead.

    Parameters
    ----------
    competitor : CompetitorSnapshot
        Competitor under evaluation.
    criteria : CriteriaSet
        Constraints of the category.
    rules : AllocationRules
        Tournament switches (``strict_age``, ``allow_unrated_in_rating``...).
    on_date : date
        Reference date for age computations.

    Returns
    -------
    EligibilityResult
        ``eligible`` is ``True`` when ``fail_codes`` is empty.
    """

    fails: list[str] = []
    passes: list[str] = []
    warns: list[str] = []

    _check_gender(competitor, criteria, fails, passes)
    _check_age(competitor, criteria, rules, on_date, fails, passes, warns)
    _check_rating(competitor, criteria, rules, fails, passes)
    _check_allow_lists(competitor, criteria, fails, passes)

    result = EligibilityResult(
        eligible=not fails,
        fail_codes=tuple(sorted(set(fails))),
        pass_codes=tuple(dict.fromkeys(passes)),
        warn_codes=tuple(dict.fromkeys(warns)),
    )
    if rules.verbose_logs:
        logger.debug(
            "competitor=%s eligible=%s fail=%s pass=%s warn=%s",
            competitor.id,
            result.eligible,
            ",".join(result.fail_codes) or "-",
            ",".join(result.pass_codes) or "-",
            ",".join(result.warn_codes) or "-",
        )
    return result


__all__ = ["EligibilityResult", "age_on", "evaluate_eligibility"]
