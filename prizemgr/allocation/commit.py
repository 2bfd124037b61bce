"""Persist final allocations as immutable, numbered versions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import AuthorizationError, VersionConflictError
from .scheduler import Decision
from ..models import (
    Allocation,
    AllocationVersion,
    Category,
    Competitor,
    Conflict,
    Organizer,
    Prize,
    Tournament,
)

logger = logging.getLogger(__name__)

DecisionInput = Union[Decision, Mapping[str, Any]]


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a successful commit.

    Attributes
    ----------
    version : int
        Version number allocated to this commit.
    count : int
        Number of allocation rows written.
    token_id : int
        Primary key of the :class:`AllocationVersion` row claimed.
    """

    version: int
    count: int
    token_id: Optional[int] = None


@dataclass
class LatestAllocations:
    version: Optional[int] = None
    rows: list[Allocation] = field(default_factory=list)

    def winners(self) -> dict[int, int]:
        return {row.prize_id: row.competitor_id for row in self.rows}


def ensure_can_finalize(tournament: Tournament, actor: Organizer) -> None:
    """Raise :class:`AuthorizationError` unless ``actor`` owns ``tournament`` or is master."""

    if actor is None or actor.id is None:
        raise AuthorizationError("An authenticated organizer is required to finalize")
    if actor.is_master:
        return
    if tournament.owner_id != actor.id:
        raise AuthorizationError(
            f"Organizer {actor.id} does not own tournament {tournament.id}"
        )


def _tournament_prize_ids(session: Session, tournament_id: int) -> set[int]:
    stmt = (
        select(Prize.id)
        .join(Category, Prize.category_id == Category.id)
        .where(Category.tournament_id == tournament_id)
    )
    return set(session.scalars(stmt))


def _tournament_competitor_ids(session: Session, tournament_id: int) -> set[int]:
    stmt = select(Competitor.id).where(Competitor.tournament_id == tournament_id)
    return set(session.scalars(stmt))


def validate_decisions(
    session: Session, tournament: Tournament, decisions: Iterable[DecisionInput]
) -> list[Decision]:
    """Normalize ``decisions`` and check they all belong to ``tournament``.

    Raises
    ------
    ValueError
        If the list is empty, references prizes or competitors of another
        tournament, or awards the same prize twice.
    """

    normalized = [Decision.coerce(decision) for decision in decisions or ()]
    if not normalized:
        raise ValueError("Cannot finalize an empty allocation")

    prize_ids = _tournament_prize_ids(session, tournament.id)
    competitor_ids = _tournament_competitor_ids(session, tournament.id)

    seen: set[int] = set()
    for decision in normalized:
        if decision.prize_id not in prize_ids:
            raise ValueError(
                f"Prize {decision.prize_id} does not belong to tournament {tournament.id}"
            )
        if decision.competitor_id not in competitor_ids:
            raise ValueError(
                f"Competitor {decision.competitor_id} does not belong to tournament {tournament.id}"
            )
        if decision.prize_id in seen:
            raise ValueError(f"Prize {decision.prize_id} is awarded more than once")
        seen.add(decision.prize_id)
    return normalized


def commit_allocation(
    session: Session,
    tournament: Tournament,
    decisions: Iterable[DecisionInput],
    actor: Organizer,
) -> CommitResult:
    """Persist ``decisions`` as the next allocation version of ``tournament``.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session. The caller owns the outer transaction.
    tournament : Tournament
        Persisted tournament being finalized.
    decisions : Iterable[Decision | Mapping]
        Awarded (prize, competitor) pairs. Unfilled prizes are simply absent.
    actor : Organizer
        Organizer performing the commit; must own the tournament or be master.

    Returns
    -------
    CommitResult
        The allocated version and the number of rows written.

    Raises
    ------
    ValueError
        If the decisions are empty or reference foreign or duplicate ids.
    AuthorizationError
        If ``actor`` may not finalize the tournament.
    VersionConflictError
        If another commit claimed the same version first.

    Notes
    -----
    Validation runs before any write. The writes happen inside a SAVEPOINT,
    so a failure leaves no partial version behind.
    """

    if tournament.id is None:
        raise ValueError("Tournament must be persisted before finalizing")
    decisions = list(decisions or ())
    if not decisions:
        raise ValueError("Cannot finalize an empty allocation")
    ensure_can_finalize(tournament, actor)
    normalized = validate_decisions(session, tournament, decisions)

    version = (AllocationVersion.latest_version(session, tournament.id) or 0) + 1
    logger.info(
        "Committing allocation tournament=%s version=%d decisions=%d actor=%s",
        tournament.id,
        version,
        len(normalized),
        actor.id,
    )

    now = datetime.now(timezone.utc)
    try:
        with session.begin_nested():
            token = AllocationVersion(
                tournament_id=tournament.id,
                version=version,
                committed_by=actor.id,
                committed_at=now,
            )
            session.add(token)
            session.flush()

            for decision in normalized:
                reason_codes = list(decision.reason_codes)
                if decision.is_manual and not reason_codes:
                    reason_codes = ["manual_override"]
                session.add(
                    Allocation(
                        tournament_id=tournament.id,
                        version_id=token.id,
                        version=version,
                        prize_id=decision.prize_id,
                        competitor_id=decision.competitor_id,
                        reason_codes=reason_codes,
                        is_manual=decision.is_manual,
                        decided_by=actor.id,
                        decided_at=now,
                    )
                )

            tournament.status = "finalized"
            tournament.updated_at = now

            for conflict in Conflict.open_for_tournament(session, tournament.id):
                conflict.status = "resolved"
                conflict.resolved_at = now

            session.flush()
    except IntegrityError as exc:
        logger.warning(
            "Version conflict tournament=%s version=%d", tournament.id, version
        )
        raise VersionConflictError(tournament.id, version) from exc

    logger.info(
        "Committed allocation tournament=%s version=%d rows=%d",
        tournament.id,
        version,
        len(normalized),
    )
    return CommitResult(version=version, count=len(normalized), token_id=token.id)


def latest_allocations(session: Session, tournament_id: int) -> LatestAllocations:
    """Return the rows of the highest committed version, if any."""

    version = AllocationVersion.latest_version(session, tournament_id)
    if version is None:
        return LatestAllocations()
    return LatestAllocations(
        version=version, rows=Allocation.for_version(session, tournament_id, version)
    )


__all__ = [
    "CommitResult",
    "LatestAllocations",
    "commit_allocation",
    "ensure_can_finalize",
    "latest_allocations",
    "validate_decisions",
]
