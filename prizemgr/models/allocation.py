"""Append-only storage for committed prize allocations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from .id_type import ID_TYPE

if TYPE_CHECKING:
    from .category import Prize
    from .competitor import Competitor


class AllocationVersion(Base):
    """Commit token for one finalized allocation of a tournament.

    The unique ``(tournament_id, version)`` pair serializes concurrent
    commits: the second writer to claim a version fails on insert instead of
    silently sharing it.
    """

    __tablename__ = "allocation_versions"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    tournament_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False
    )
    """Tournament being finalized."""

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    """Monotonic per-tournament version number, starting at 1."""

    committed_by: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("organizers.id", ondelete="RESTRICT"), nullable=False
    )
    """Organizer who finalized this version."""

    committed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Timestamp of the commit."""

    allocations: Mapped[list["Allocation"]] = relationship(back_populates="version_row")

    __table_args__ = (
        UniqueConstraint("tournament_id", "version", name="uq_allocation_version"),
    )

    @classmethod
    def latest_version(cls, session: Session, tournament_id: int) -> Optional[int]:
        """Return the highest committed version for a tournament, if any."""

        return session.scalar(
            select(func.max(cls.version)).where(cls.tournament_id == tournament_id)
        )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<AllocationVersion(tournament_id={self.tournament_id}, "
            f"version={self.version}, committed_by={self.committed_by})>"
        )


class Allocation(Base):
    """Immutable (prize, competitor) decision belonging to one version."""

    __tablename__ = "allocations"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    tournament_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False
    )
    version_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("allocation_versions.id", ondelete="CASCADE"), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    prize_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("prizes.id", ondelete="RESTRICT"), nullable=False
    )
    competitor_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("competitors.id", ondelete="RESTRICT"), nullable=False
    )
    reason_codes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_manual: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    decided_by: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("organizers.id", ondelete="RESTRICT"), nullable=False
    )
    decided_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    version_row: Mapped["AllocationVersion"] = relationship(back_populates="allocations")
    prize: Mapped["Prize"] = relationship("Prize")
    competitor: Mapped["Competitor"] = relationship("Competitor")

    __table_args__ = (
        UniqueConstraint(
            "tournament_id", "version", "prize_id", name="uq_allocation_version_prize"
        ),
        Index("ix_allocations_tournament_version", "tournament_id", "version"),
    )

    @classmethod
    def for_version(
        cls, session: Session, tournament_id: int, version: int
    ) -> list["Allocation"]:
        """Return the decisions of one version ordered by insertion."""

        stmt = (
            select(cls)
            .where(cls.tournament_id == tournament_id, cls.version == version)
            .order_by(cls.id.asc())
        )
        return list(session.scalars(stmt))

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<Allocation(tournament_id={self.tournament_id}, version={self.version}, "
            f"prize_id={self.prize_id}, competitor_id={self.competitor_id}, "
            f"is_manual={self.is_manual})>"
        )
