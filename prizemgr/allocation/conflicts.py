"""Detection and bookkeeping of override inconsistencies and prize priority ties."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from .pool import evaluate_for_category
from .rules import AllocationRules
from .scheduler import OverrideInput, normalize_overrides, order_categories, schedule
from .snapshot import CategorySnapshot, CompetitorSnapshot
from ..models import Conflict, Tournament

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConflictDraft:
    """An unsaved conflict together with its suggested resolution.

    ``suggested_competitor_id`` may be ``None``: the engine would leave
    ``suggested_prize_id`` unfilled.
    """

    type: str
    impacted_competitors: tuple[int, ...]
    impacted_prizes: tuple[int, ...]
    reasons: tuple[str, ...] = ()
    suggested_prize_id: Optional[int] = None
    suggested_competitor_id: Optional[int] = None


def _surplus_prizes(
    prize_ids: Sequence[int], category_of: dict[int, CategorySnapshot], policy: str
) -> list[int]:
    """Prizes held beyond what ``policy`` allows, in scheduling order."""

    if policy == "unlimited":
        return []
    if policy == "single":
        return list(prize_ids[1:])
    kept: set[bool] = set()
    surplus = []
    for prize_id in prize_ids:
        is_main = category_of[prize_id].is_main
        if is_main in kept:
            surplus.append(prize_id)
        else:
            kept.add(is_main)
    return surplus


def detect_override_conflicts(
    overrides: OverrideInput,
    categories: Sequence[CategorySnapshot],
    competitors: Sequence[CompetitorSnapshot],
    rules: AllocationRules,
    on_date: date,
) -> list[ConflictDraft]:
    """Find manual awards the engine would never produce on its own.

    Two kinds are reported:

    * ``ineligible_award``: the competitor fails the prize's category
      criteria. The suggestion is the engine's pick for that prize.
    * ``duplicate_award``: one competitor holds more prizes than
      ``rules.multi_prize_policy`` allows. The earliest prizes in scheduling
      order are kept and one draft is emitted per surplus prize, suggesting
      the engine's pick for it.

    Suggestions are computed by rescheduling with the offending overrides
    removed, so the remaining manual awards are honoured. All surplus
    prizes of a competitor are dropped together so their suggestions never
    name the same replacement twice.
    """

    manual = normalize_overrides(overrides)
    if not manual:
        return []

    ordered = order_categories(categories, rules)
    by_id = {competitor.id: competitor for competitor in competitors}
    prize_order: list[tuple[int, CategorySnapshot]] = [
        (prize.id, category) for category in ordered for prize in category.active_prizes()
    ]
    category_of = dict(prize_order)
    unknown = sorted(set(manual) - set(category_of))
    if unknown:
        raise ValueError(f"Override references unknown or inactive prizes {unknown}")

    def suggest(*prize_ids: int) -> dict[int, Optional[int]]:
        remaining = {pid: cid for pid, cid in manual.items() if pid not in prize_ids}
        result = schedule(categories, competitors, rules, on_date, overrides=remaining)
        winners = result.winners()
        return {prize_id: winners.get(prize_id) for prize_id in prize_ids}

    drafts: list[ConflictDraft] = []
    awarded: dict[int, list[int]] = defaultdict(list)

    for prize_id, category in prize_order:
        if prize_id not in manual:
            continue
        competitor_id = manual[prize_id]
        competitor = by_id.get(competitor_id)
        if competitor is None:
            raise ValueError(f"Override references unknown competitor {competitor_id}")
        awarded[competitor_id].append(prize_id)

        result = evaluate_for_category(category, competitor, rules, on_date)
        if not result.eligible:
            drafts.append(
                ConflictDraft(
                    type="ineligible_award",
                    impacted_competitors=(competitor_id,),
                    impacted_prizes=(prize_id,),
                    reasons=result.fail_codes,
                    suggested_prize_id=prize_id,
                    suggested_competitor_id=suggest(prize_id)[prize_id],
                )
            )

    for competitor_id, prize_ids in awarded.items():
        surplus = _surplus_prizes(prize_ids, category_of, rules.multi_prize_policy)
        if not surplus:
            continue
        suggestions = suggest(*surplus)
        for prize_id in surplus:
            drafts.append(
                ConflictDraft(
                    type="duplicate_award",
                    impacted_competitors=(competitor_id,),
                    impacted_prizes=tuple(prize_ids),
                    reasons=("duplicate_award", f"policy_{rules.multi_prize_policy}"),
                    suggested_prize_id=prize_id,
                    suggested_competitor_id=suggestions[prize_id],
                )
            )

    if drafts:
        logger.info("Detected %d override conflicts", len(drafts))
    return drafts


def detect_priority_ties(
    categories: Sequence[CategorySnapshot],
    competitors: Sequence[CompetitorSnapshot],
    rules: AllocationRules,
    on_date: date,
) -> list[ConflictDraft]:
    """Find competitors eligible for prizes the schedule cannot order.

    Two prizes tie when their categories share a kind and ``order_idx`` and
    the prizes share a place. The scheduler then falls back to category id,
    which organizers never chose, so each tied group is reported as a
    ``tie`` draft with reason ``identical_prize_priority`` and no suggestion.
    """

    priority = {kind: index for index, kind in enumerate(rules.category_priority_order)}
    fallback = len(priority)
    prize_order = [
        (category, prize)
        for category in order_categories(categories, rules)
        for prize in category.active_prizes()
    ]

    drafts: list[ConflictDraft] = []
    for competitor in competitors:
        groups: dict[tuple[int, int, int], list[int]] = defaultdict(list)
        eligible: dict[int, bool] = {}
        for category, prize in prize_order:
            if category.id not in eligible:
                result = evaluate_for_category(category, competitor, rules, on_date)
                eligible[category.id] = result.eligible
            if not eligible[category.id]:
                continue
            key = (priority.get(category.kind, fallback), category.order_idx, prize.place)
            groups[key].append(prize.id)
        for key in sorted(groups):
            if len(groups[key]) < 2:
                continue
            drafts.append(
                ConflictDraft(
                    type="tie",
                    impacted_competitors=(competitor.id,),
                    impacted_prizes=tuple(groups[key]),
                    reasons=("identical_prize_priority",),
                )
            )

    if drafts:
        logger.info("Detected %d prize priority ties", len(drafts))
    return drafts


class ConflictRegistry:
    """Persist and resolve :class:`~prizemgr.models.Conflict` rows.

    Conflicts only move from ``"open"`` to ``"resolved"``.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def open(self, tournament: Tournament, drafts: Iterable[ConflictDraft]) -> list[Conflict]:
        """Store ``drafts`` as open conflicts of ``tournament``."""

        if tournament.id is None:
            raise ValueError("Tournament must be persisted before recording conflicts")

        conflicts = []
        for draft in drafts:
            conflict = Conflict(
                tournament_id=tournament.id,
                type=draft.type,
                impacted_competitors=list(draft.impacted_competitors),
                impacted_prizes=list(draft.impacted_prizes),
                reasons=list(draft.reasons),
                status="open",
                suggested_prize_id=draft.suggested_prize_id,
                suggested_competitor_id=draft.suggested_competitor_id,
            )
            self._session.add(conflict)
            conflicts.append(conflict)
        self._session.flush()
        return conflicts

    def open_conflicts(self, tournament_id: int) -> list[Conflict]:
        return Conflict.open_for_tournament(self._session, tournament_id)

    def resolve(self, conflict: Conflict) -> Conflict:
        """Mark ``conflict`` resolved.

        Raises
        ------
        ValueError
            If the conflict is already resolved.
        """

        if not conflict.is_open:
            raise ValueError(f"Conflict {conflict.id} is already resolved")
        conflict.status = "resolved"
        conflict.resolved_at = datetime.now(timezone.utc)
        self._session.flush()
        return conflict

    def resolve_all(self, tournament_id: int) -> int:
        """Resolve every open conflict of a tournament; return how many."""

        conflicts = self.open_conflicts(tournament_id)
        now = datetime.now(timezone.utc)
        for conflict in conflicts:
            conflict.status = "resolved"
            conflict.resolved_at = now
        self._session.flush()
        return len(conflicts)


__all__ = [
    "ConflictDraft",
    "ConflictRegistry",
    "detect_override_conflicts",
    "detect_priority_ties",
]
