"""Session-bound entry point that snapshots a tournament and previews its allocation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from .conflicts import ConflictDraft, detect_priority_ties
from .rules import AllocationRules
from .scheduler import CoverageEntry, Decision, OverrideInput, ScheduleResult, schedule
from .snapshot import CategorySnapshot, CompetitorSnapshot
from ..models import Category, Competitor, Tournament

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TournamentSnapshot:
    """Everything a scheduling run reads, captured at one point in time."""

    tournament_id: int
    on_date: date
    rules: AllocationRules
    categories: tuple[CategorySnapshot, ...]
    competitors: tuple[CompetitorSnapshot, ...]

    def category_for_prize(self, prize_id: int) -> Optional[CategorySnapshot]:
        for category in self.categories:
            for prize in category.prizes:
                if prize.id == prize_id:
                    return category
        return None

    def competitor(self, competitor_id: int) -> Optional[CompetitorSnapshot]:
        for competitor in self.competitors:
            if competitor.id == competitor_id:
                return competitor
        return None


@dataclass
class AllocationPreview:
    """Result of a preview run.

    Attributes
    ----------
    snapshot : TournamentSnapshot
        Inputs the run was computed from.
    result : ScheduleResult
        Decisions and coverage produced by the scheduler.
    ties : list[ConflictDraft]
        Competitors eligible for prizes with identical scheduling priority.
    """

    snapshot: TournamentSnapshot
    result: ScheduleResult
    ties: list[ConflictDraft] = field(default_factory=list)

    @property
    def tournament_id(self) -> int:
        return self.snapshot.tournament_id

    @property
    def rules(self) -> AllocationRules:
        return self.snapshot.rules

    @property
    def decisions(self) -> list[Decision]:
        return self.result.decisions

    @property
    def coverage(self) -> list[CoverageEntry]:
        return self.result.coverage

    @property
    def unfilled(self) -> list[CoverageEntry]:
        return self.result.unfilled

    def winners(self) -> dict[int, int]:
        return self.result.winners()


class AllocationEngine:
    """Load tournament state through a session and run the scheduler over it.

    The engine never writes; committing is handled by
    :func:`prizemgr.allocation.commit.commit_allocation`.
    """

    def __init__(self, session: Session) -> None:
        """Create an allocation engine bound to a SQLAlchemy session.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session used for lookups.
        """

        self._session = session

    def snapshot(
        self,
        tournament: Tournament,
        rules_override: Optional[Mapping[str, Any]] = None,
    ) -> TournamentSnapshot:
        """Capture the categories, competitors and rules of ``tournament``."""

        if tournament.id is None:
            raise ValueError("Tournament must be persisted before allocation")

        rules = AllocationRules.resolve(tournament.rule_config, rules_override)
        categories = Category.for_tournament(self._session, tournament.id)
        competitors = Competitor.for_tournament(self._session, tournament.id)
        return TournamentSnapshot(
            tournament_id=tournament.id,
            on_date=tournament.reference_date(),
            rules=rules,
            categories=tuple(CategorySnapshot.from_model(category) for category in categories),
            competitors=tuple(CompetitorSnapshot.from_model(competitor) for competitor in competitors),
        )

    def preview(
        self,
        tournament: Tournament,
        overrides: Optional[OverrideInput] = None,
        rules_override: Optional[Mapping[str, Any]] = None,
    ) -> AllocationPreview:
        """Compute the allocation ``tournament`` would get right now.

        Parameters
        ----------
        tournament : Tournament
            Persisted tournament to allocate.
        overrides : mapping of prize id to competitor id, optional
            Manual awards applied before automatic assignment.
        rules_override : Optional[Mapping[str, Any]]
            Per-call rule switches layered over the stored configuration.

        Returns
        -------
        AllocationPreview
            Snapshot, scheduling result and priority ties. Nothing is
            persisted.
        """

        snapshot = self.snapshot(tournament, rules_override)
        logger.debug("Previewing allocation for tournament %s", snapshot.tournament_id)
        result = schedule(
            snapshot.categories,
            snapshot.competitors,
            snapshot.rules,
            snapshot.on_date,
            overrides=overrides or (),
        )
        ties = detect_priority_ties(
            snapshot.categories, snapshot.competitors, snapshot.rules, snapshot.on_date
        )
        return AllocationPreview(snapshot=snapshot, result=result, ties=ties)


__all__ = ["AllocationEngine", "AllocationPreview", "TournamentSnapshot"]
