"""Audit comparison between the automatic preview and the committed allocation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Protocol

from .scheduler import CoverageEntry


class RcaStatus(str, Enum):
    MATCH = "MATCH"
    OVERRIDDEN = "OVERRIDDEN"
    NO_ELIGIBLE_WINNER = "NO_ELIGIBLE_WINNER"


class _FinalDecision(Protocol):
    prize_id: int
    competitor_id: int
    reason_codes: Any
    is_manual: bool


@dataclass(frozen=True)
class RcaRow:
    """One prize of the audit export."""

    tournament_id: int
    tournament_slug: Optional[str]
    category_id: int
    category_name: str
    prize_id: int
    prize_label: str
    place: int
    prize_type: str
    amount: Optional[float]
    auto_winner_id: Optional[int]
    auto_winner_name: Optional[str]
    final_winner_id: Optional[int]
    final_winner_name: Optional[str]
    status: RcaStatus
    auto_reason_code: Optional[str] = None
    auto_reason_label: Optional[str] = None
    before_count: int = 0
    after_count: int = 0
    is_manual: bool = False
    override_reason: Optional[str] = None

    def to_json(self) -> dict:
        return {
            "tournament_id": self.tournament_id,
            "tournament_slug": self.tournament_slug,
            "category_id": self.category_id,
            "category_name": self.category_name,
            "prize_id": self.prize_id,
            "prize_label": self.prize_label,
            "place": self.place,
            "prize_type": self.prize_type,
            "amount": self.amount,
            "auto_winner_id": self.auto_winner_id,
            "auto_winner_name": self.auto_winner_name,
            "final_winner_id": self.final_winner_id,
            "final_winner_name": self.final_winner_name,
            "status": self.status.value,
            "auto_reason_code": self.auto_reason_code,
            "auto_reason_label": self.auto_reason_label,
            "before_count": self.before_count,
            "after_count": self.after_count,
            "is_manual": self.is_manual,
            "override_reason": self.override_reason,
        }


def classify(auto_winner_id: Optional[int], final_winner_id: Optional[int]) -> RcaStatus:
    """``MATCH`` when equal (both empty included), else by whether final is empty."""

    if auto_winner_id == final_winner_id:
        return RcaStatus.MATCH
    if final_winner_id is None:
        return RcaStatus.NO_ELIGIBLE_WINNER
    return RcaStatus.OVERRIDDEN


def _override_reason(decision: Optional[_FinalDecision]) -> Optional[str]:
    if decision is None or not decision.is_manual:
        return None
    codes = [
        str(code)
        for code in (decision.reason_codes or ())
        if "override" in str(code).lower() or "manual" in str(code).lower()
    ]
    return ", ".join(codes) or None


def build_rca_rows(
    coverage: Iterable[CoverageEntry],
    final_decisions: Iterable[_FinalDecision],
    competitors: Iterable[Any],
    tournament: Any,
) -> list[RcaRow]:
    """Compare each prize's automatic winner with its committed winner.

    Parameters
    ----------
    coverage : Iterable[CoverageEntry]
        Coverage of an automatic (override-free) run.
    final_decisions : Iterable
        Committed :class:`~prizemgr.models.Allocation` rows or
        :class:`~prizemgr.allocation.scheduler.Decision` objects.
    competitors : Iterable
        Objects with ``id`` and ``name``; used for display names.
    tournament : Tournament
        Tournament the rows belong to.

    Returns
    -------
    list[RcaRow]
        One row per coverage entry, in coverage order. Nothing is written.
    """

    names = {competitor.id: competitor.name for competitor in competitors}
    finals = {decision.prize_id: decision for decision in final_decisions}

    rows = []
    for entry in coverage:
        final = finals.get(entry.prize_id)
        final_id = final.competitor_id if final is not None else None
        rows.append(
            RcaRow(
                tournament_id=tournament.id,
                tournament_slug=getattr(tournament, "slug", None),
                category_id=entry.category_id,
                category_name=entry.category_name,
                prize_id=entry.prize_id,
                prize_label=entry.prize_label,
                place=entry.place,
                prize_type=entry.prize_type,
                amount=entry.amount,
                auto_winner_id=entry.winner_id,
                auto_winner_name=names.get(entry.winner_id) if entry.winner_id is not None else None,
                final_winner_id=final_id,
                final_winner_name=names.get(final_id) if final_id is not None else None,
                status=classify(entry.winner_id, final_id),
                auto_reason_code=entry.reason_code.value if entry.reason_code else None,
                auto_reason_label=entry.reason_label,
                before_count=entry.before_count,
                after_count=entry.after_count,
                is_manual=bool(final.is_manual) if final is not None else False,
                override_reason=_override_reason(final),
            )
        )
    return rows


__all__ = ["RcaRow", "RcaStatus", "build_rca_rows", "classify"]
