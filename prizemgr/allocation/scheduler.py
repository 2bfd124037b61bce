"""Deterministic assignment of competitors to prizes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from .diagnosis import ReasonCode, diagnose, reason_label, summarize_failures
from .errors import DoubleClaimError
from .pool import CategoryPool, build_pool
from .rules import AllocationRules
from .snapshot import CategorySnapshot, CompetitorSnapshot, PrizeSnapshot
from .tracker import ExclusivityTracker

logger = logging.getLogger(__name__)

OverrideInput = Union[Mapping[int, Optional[int]], Iterable[tuple[int, Optional[int]]]]


@dataclass(frozen=True)
class Decision:
    """A (prize, competitor) award with the codes explaining it."""

    prize_id: int
    competitor_id: int
    reason_codes: tuple[str, ...] = ()
    is_manual: bool = False

    @classmethod
    def coerce(cls, value: Union["Decision", Mapping[str, Any]]) -> "Decision":
        """Accept a :class:`Decision` or a mapping with the same keys."""

        if isinstance(value, Decision):
            return value
        try:
            prize_id = int(value["prize_id"])
            competitor_id = int(value["competitor_id"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Malformed decision: {value!r}") from exc
        return cls(
            prize_id=prize_id,
            competitor_id=competitor_id,
            reason_codes=tuple(value.get("reason_codes") or ()),
            is_manual=bool(value.get("is_manual", False)),
        )

    def to_json(self) -> dict:
        return {
            "prize_id": self.prize_id,
            "competitor_id": self.competitor_id,
            "reason_codes": list(self.reason_codes),
            "is_manual": self.is_manual,
        }


@dataclass
class CoverageEntry:
    """Outcome of one active prize in a scheduling run.

    ``reason_code`` is ``None`` for filled prizes. ``blocked_by`` lists the
    prizes whose winners emptied this prize's pool, when that happened.
    """

    category_id: int
    category_name: str
    is_main: bool
    prize_id: int
    place: int
    prize_label: str
    prize_type: str
    amount: Optional[float]
    before_count: int
    after_count: int
    winner_id: Optional[int] = None
    winner_rank: Optional[int] = None
    winner_rating: Optional[int] = None
    winner_name: Optional[str] = None
    is_manual: bool = False
    reason_code: Optional[ReasonCode] = None
    reason_label: Optional[str] = None
    diagnosis: str = ""
    fail_codes: tuple[str, ...] = ()
    fail_histogram: dict[str, int] = field(default_factory=dict)
    blocked_by: tuple[int, ...] = ()

    @property
    def is_filled(self) -> bool:
        return self.winner_id is not None

    def to_json(self) -> dict:
        return {
            "category_id": self.category_id,
            "category_name": self.category_name,
            "is_main": self.is_main,
            "prize_id": self.prize_id,
            "place": self.place,
            "prize_label": self.prize_label,
            "prize_type": self.prize_type,
            "amount": self.amount,
            "winner_id": self.winner_id,
            "winner_rank": self.winner_rank,
            "winner_rating": self.winner_rating,
            "winner_name": self.winner_name,
            "is_manual": self.is_manual,
            "before_count": self.before_count,
            "after_count": self.after_count,
            "reason_code": self.reason_code.value if self.reason_code else None,
            "reason_label": self.reason_label,
            "diagnosis": self.diagnosis,
            "fail_codes": list(self.fail_codes),
            "blocked_by": list(self.blocked_by),
        }


@dataclass
class ScheduleResult:
    decisions: list[Decision] = field(default_factory=list)
    coverage: list[CoverageEntry] = field(default_factory=list)

    @property
    def unfilled(self) -> list[CoverageEntry]:
        return [entry for entry in self.coverage if not entry.is_filled]

    def decision_for(self, prize_id: int) -> Optional[Decision]:
        for decision in self.decisions:
            if decision.prize_id == prize_id:
                return decision
        return None

    def winners(self) -> dict[int, int]:
        """Mapping of prize id to awarded competitor id."""

        return {decision.prize_id: decision.competitor_id for decision in self.decisions}


def order_categories(
    categories: Iterable[CategorySnapshot], rules: AllocationRules
) -> list[CategorySnapshot]:
    """Active categories in scheduling order.

    Categories sort by the position of their kind in
    ``rules.category_priority_order``, then ``order_idx``, then id.
    """

    priority = {kind: index for index, kind in enumerate(rules.category_priority_order)}
    fallback = len(priority)
    active = [category for category in categories if category.is_active]
    return sorted(
        active,
        key=lambda category: (
            priority.get(category.kind, fallback),
            category.order_idx,
            category.id,
        ),
    )


def normalize_overrides(overrides: Optional[OverrideInput]) -> dict[int, int]:
    if not overrides:
        return {}
    pairs = overrides.items() if isinstance(overrides, Mapping) else overrides
    normalized: dict[int, int] = {}
    for prize_id, competitor_id in pairs:
        if competitor_id is None:
            continue
        normalized[int(prize_id)] = int(competitor_id)
    return normalized


def _base_entry(category: CategorySnapshot, prize: PrizeSnapshot, pool: CategoryPool) -> CoverageEntry:
    return CoverageEntry(
        category_id=category.id,
        category_name=category.name,
        is_main=category.is_main,
        prize_id=prize.id,
        place=prize.place,
        prize_label=category.prize_label(prize),
        prize_type=prize.prize_type,
        amount=prize.cash_amount,
        before_count=pool.before_count,
        after_count=pool.after_count,
        fail_codes=tuple(sorted(pool.fail_histogram)),
        fail_histogram=dict(sorted(pool.fail_histogram.items())),
    )


def _set_winner(entry: CoverageEntry, competitor: CompetitorSnapshot, is_manual: bool) -> None:
    entry.winner_id = competitor.id
    entry.winner_rank = competitor.rank
    entry.winner_rating = competitor.rating
    entry.winner_name = competitor.name
    entry.is_manual = is_manual


def _set_unfilled(entry: CoverageEntry, reason: ReasonCode) -> None:
    entry.reason_code = reason
    entry.reason_label = reason_label(reason)
    entry.diagnosis = summarize_failures(entry.fail_histogram)


def schedule(
    categories: Sequence[CategorySnapshot],
    competitors: Sequence[CompetitorSnapshot],
    rules: AllocationRules,
    on_date: date,
    overrides: Optional[OverrideInput] = (),
) -> ScheduleResult:
    """Assign winners to every active prize.

    Parameters
    ----------
    categories : Sequence[CategorySnapshot]
        Categories with their prizes. Inactive categories and prizes are
        skipped entirely.
    competitors : Sequence[CompetitorSnapshot]
        Competitors of the tournament.
    rules : AllocationRules
        Resolved rules; ``multi_prize_policy`` selects the tracker policy.
    on_date : date
        Reference date for age checks.
    overrides : mapping or iterable of (prize_id, competitor_id), optional
        Manual awards applied before automatic assignment. Their competitors
        are claimed first and their prizes are not auto-assigned.

    Returns
    -------
    ScheduleResult
        Decisions for filled prizes and one coverage entry per active prize,
        both in scheduling order.

    Raises
    ------
    ValueError
        If an override references an unknown or inactive prize, or an
        unknown competitor.

    Notes
    -----
    The run is pure over its inputs: the same snapshot always produces the
    same decisions and coverage.
    """

    ordered = order_categories(categories, rules)
    competitor_list = list(competitors)
    by_id = {competitor.id: competitor for competitor in competitor_list}
    prize_count = sum(len(category.active_prizes()) for category in ordered)
    logger.info(
        "Allocation run start players=%d categories=%d prizes=%d policy=%s",
        len(competitor_list),
        len(ordered),
        prize_count,
        rules.multi_prize_policy,
    )

    manual = normalize_overrides(overrides)
    prize_category: dict[int, CategorySnapshot] = {}
    for category in ordered:
        for prize in category.active_prizes():
            prize_category[prize.id] = category
    for prize_id, competitor_id in manual.items():
        if prize_id not in prize_category:
            raise ValueError(f"Override references unknown or inactive prize {prize_id}")
        if competitor_id not in by_id:
            raise ValueError(f"Override references unknown competitor {competitor_id}")

    tracker = ExclusivityTracker(rules.multi_prize_policy)
    claimed_by: dict[int, int] = {}
    for prize_id, competitor_id in manual.items():
        is_main = prize_category[prize_id].is_main
        # duplicate manual awards are reported as conflicts, not rejected here
        if not tracker.is_claimed(competitor_id, is_main=is_main):
            tracker.claim(competitor_id, is_main=is_main)
        claimed_by.setdefault(competitor_id, prize_id)

    result = ScheduleResult()
    for category in ordered:
        selector = "youngest" if category.is_youngest else "rank"
        for prize in category.active_prizes():
            pool = build_pool(category, competitor_list, tracker, rules, on_date)
            entry = _base_entry(category, prize, pool)

            if prize.id in manual:
                competitor = by_id[manual[prize.id]]
                _set_winner(entry, competitor, is_manual=True)
                result.decisions.append(
                    Decision(prize.id, competitor.id, ("manual_override",), is_manual=True)
                )
                result.coverage.append(entry)
                continue

            winner = pool.first()
            if winner is None:
                reason = diagnose(pool.before_count, pool.after_count, pool.fail_histogram)
                _set_unfilled(entry, reason)
                if reason is ReasonCode.BLOCKED_BY_ONE_PRIZE_POLICY:
                    entry.blocked_by = tuple(
                        sorted(
                            {
                                claimed_by[candidate.competitor.id]
                                for candidate in pool.blocked
                                if candidate.competitor.id in claimed_by
                            }
                        )
                    )
                logger.debug(
                    "Unfilled prize=%s category=%s reason=%s before=%d after=%d",
                    prize.id,
                    category.id,
                    reason.value,
                    pool.before_count,
                    pool.after_count,
                )
                result.coverage.append(entry)
                continue

            competitor = winner.competitor
            try:
                tracker.claim(competitor.id, is_main=category.is_main)
            except DoubleClaimError:
                logger.exception(
                    "Exclusivity defect prize=%s competitor=%s", prize.id, competitor.id
                )
                _set_unfilled(entry, ReasonCode.INTERNAL_ERROR)
                result.coverage.append(entry)
                continue

            claimed_by.setdefault(competitor.id, prize.id)
            reason_codes = ("auto", selector, "brochure_order") + winner.result.pass_codes
            result.decisions.append(Decision(prize.id, competitor.id, reason_codes))
            _set_winner(entry, competitor, is_manual=False)
            logger.debug(
                "Winner prize=%s category=%s competitor=%s rank=%s",
                prize.id,
                category.id,
                competitor.id,
                competitor.rank,
            )
            result.coverage.append(entry)

    for entry in result.coverage:
        if entry.reason_code is ReasonCode.INTERNAL_ERROR:
            logger.error(
                "Internal allocation error prize=%s category=%s before=%d after=%d",
                entry.prize_id,
                entry.category_id,
                entry.before_count,
                entry.after_count,
            )

    unfilled = result.unfilled
    if unfilled:
        logger.warning(
            "Allocation run left %d of %d prizes unfilled", len(unfilled), len(result.coverage)
        )
    return result


__all__ = [
    "CoverageEntry",
    "Decision",
    "ScheduleResult",
    "normalize_overrides",
    "order_categories",
    "schedule",
]
