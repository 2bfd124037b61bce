"""Inconsistencies introduced by manual edits to an allocation preview."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import Base
from .id_type import ID_TYPE

CONFLICT_TYPES = ("duplicate_award", "ineligible_award", "tie")


class Conflict(Base):
    """A manual-edit inconsistency awaiting an organizer decision.

    Status only moves from ``"open"`` to ``"resolved"``.
    """

    __tablename__ = "conflicts"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    tournament_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False
    )
    """Tournament the conflict belongs to."""

    type: Mapped[str] = mapped_column(String(30), nullable=False)
    """One of :data:`CONFLICT_TYPES`."""

    impacted_competitors: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    """Competitor ids involved in the conflict."""

    impacted_prizes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    """Prize ids involved in the conflict."""

    reasons: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    """Machine readable reason codes."""

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open")
    """``"open"`` or ``"resolved"``."""

    suggested_prize_id: Mapped[Optional[int]] = mapped_column(ID_TYPE, nullable=True)
    """Prize the suggested resolution applies to, if any."""

    suggested_competitor_id: Mapped[Optional[int]] = mapped_column(ID_TYPE, nullable=True)
    """Competitor the engine would award ``suggested_prize_id`` to, if any."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint("status IN ('open','resolved')", name="status_enum"),
        CheckConstraint(
            "type IN ('duplicate_award','ineligible_award','tie')", name="type_enum"
        ),
        Index("ix_conflicts_tournament_status", "tournament_id", "status"),
    )

    @property
    def is_open(self) -> bool:
        return self.status == "open"

    @property
    def suggested(self) -> Optional[tuple[int, Optional[int]]]:
        """``(prize_id, competitor_id)`` of the suggested resolution, if any."""

        if self.suggested_prize_id is None:
            return None
        return self.suggested_prize_id, self.suggested_competitor_id

    @classmethod
    def open_for_tournament(cls, session: Session, tournament_id: int) -> list["Conflict"]:
        """Return open conflicts of a tournament ordered by creation."""

        stmt = (
            select(cls)
            .where(cls.tournament_id == tournament_id, cls.status == "open")
            .order_by(cls.id.asc())
        )
        return list(session.scalars(stmt))

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<Conflict(id={self.id}, tournament_id={self.tournament_id}, "
            f"type='{self.type}', status='{self.status}')>"
        )
