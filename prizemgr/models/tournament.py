"""Tournament and per-tournament allocation rule configuration."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from .id_type import ID_TYPE

if TYPE_CHECKING:
    from .category import Category
    from .competitor import Competitor
    from .organizer import Organizer


class Tournament(Base):
    """A tournament whose prizes are allocated by the engine."""

    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    slug: Mapped[str] = mapped_column(String(100), nullable=False)
    """URL friendly identifier, also used in export file names."""

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    """Display title."""

    owner_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("organizers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    """Organizer who owns the tournament and may finalize its allocation."""

    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    """Reference date for age calculations; today is used when missing."""

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    """``"draft"`` until the first successful finalize, then ``"finalized"``."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    owner: Mapped["Organizer"] = relationship("Organizer")
    categories: Mapped[list["Category"]] = relationship(
        back_populates="tournament",
        cascade="all, delete-orphan",
        order_by="Category.order_idx",
    )
    competitors: Mapped[list["Competitor"]] = relationship(
        back_populates="tournament",
        cascade="all, delete-orphan",
        order_by="Competitor.rank",
    )
    rule_config: Mapped[Optional["RuleConfig"]] = relationship(
        back_populates="tournament",
        cascade="all, delete-orphan",
        uselist=False,
    )

    __table_args__ = (
        UniqueConstraint("slug", name="tournaments_slug_key"),
        CheckConstraint("status IN ('draft','finalized')", name="status_enum"),
    )

    def __init__(
        self,
        *,
        slug: str,
        title: str,
        owner: Optional["Organizer"] = None,
        owner_id: Optional[int] = None,
        start_date: Optional[date] = None,
        status: str = "draft",
    ) -> None:
        self.slug = slug
        self.title = title
        if owner is not None:
            self.owner = owner
        if owner_id is not None:
            self.owner_id = owner_id
        self.start_date = start_date
        self.status = status

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<Tournament(id={self.id}, slug='{self.slug}', status='{self.status}')>"

    @classmethod
    def get_by_slug(cls, session: Session, slug: str) -> Optional["Tournament"]:
        """Return the tournament matching ``slug`` if it exists."""

        return session.scalar(select(cls).where(cls.slug == slug))

    def reference_date(self) -> date:
        """Date used to compute competitor ages."""

        return self.start_date or datetime.now(timezone.utc).date()


class RuleConfig(Base):
    """Stored allocation switches for a tournament.

    Columns left ``NULL`` fall back to the defaults in
    :class:`prizemgr.allocation.rules.AllocationRules`.
    """

    __tablename__ = "rule_configs"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    tournament_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False
    )
    strict_age: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    allow_unrated_in_rating: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    allow_missing_dob_for_age: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    max_age_inclusive: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    category_priority_order: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    tie_break_strategy: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    multi_prize_policy: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    verbose_logs: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    tournament: Mapped["Tournament"] = relationship(back_populates="rule_config")

    __table_args__ = (
        UniqueConstraint("tournament_id", name="rule_configs_tournament_id_key"),
        CheckConstraint(
            "multi_prize_policy IS NULL OR multi_prize_policy IN "
            "('single','main_plus_one_side','unlimited')",
            name="multi_prize_policy_enum",
        ),
    )

    def as_dict(self) -> dict:
        """Return the explicitly configured (non-``NULL``) switches."""

        values = {
            "strict_age": self.strict_age,
            "allow_unrated_in_rating": self.allow_unrated_in_rating,
            "allow_missing_dob_for_age": self.allow_missing_dob_for_age,
            "max_age_inclusive": self.max_age_inclusive,
            "category_priority_order": self.category_priority_order,
            "tie_break_strategy": self.tie_break_strategy,
            "multi_prize_policy": self.multi_prize_policy,
            "verbose_logs": self.verbose_logs,
        }
        return {key: value for key, value in values.items() if value is not None}
