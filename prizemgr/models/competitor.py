"""Imported, ranked tournament participants."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Optional, Union

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship, validates

from .base import Base
from .id_type import ID_TYPE
from .utils import normalize_gender, normalize_label, parse_dob

if TYPE_CHECKING:
    from .tournament import Tournament


class Competitor(Base):
    """A ranked participant, produced by the import/deduplication step.

    The allocation engine only reads these rows. Optional attributes are
    frequently missing in imported files; the engine reports missing values
    as fail codes rather than rejecting the row.
    """

    def __init__(
        self,
        *,
        rank: int,
        name: str,
        tournament: Optional["Tournament"] = None,
        tournament_id: Optional[int] = None,
        rating: Optional[int] = None,
        dob: Union[None, str, int, date, datetime] = None,
        gender: Optional[str] = None,
        state: Optional[str] = None,
        city: Optional[str] = None,
        club: Optional[str] = None,
        disability: Optional[str] = None,
        group_label: Optional[str] = None,
        type_label: Optional[str] = None,
    ) -> None:
        """Create a competitor row.

        Parameters
        ----------
        rank : int
            Final standing; lower is better.
        name : str
            Display name.
        rating : int, optional
            Rating; ``None`` (or ``0``) means unrated.
        dob : str | int | date, optional
            Date of birth. Year-only values are stored as January 1st and
            flagged with :attr:`dob_imputed`. The raw value is kept in
            :attr:`dob_raw`.
        gender : str, optional
            Free-form gender label, normalized to ``"M"``, ``"F"`` or ``"Other"``.
        """

        if tournament is not None:
            self.tournament = tournament
        if tournament_id is not None:
            self.tournament_id = tournament_id
        self.rank = rank
        self.name = name
        self.rating = rating
        self.set_dob(dob)
        self.gender = gender
        self.state = state
        self.city = city
        self.club = club
        self.disability = disability
        self.group_label = group_label
        self.type_label = type_label

    __tablename__ = "competitors"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    tournament_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False
    )
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    dob: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    dob_raw: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    dob_imputed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    gender: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    club: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    disability: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    group_label: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    type_label: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    tournament: Mapped["Tournament"] = relationship(back_populates="competitors")

    __table_args__ = (Index("ix_competitors_tournament_rank", "tournament_id", "rank"),)

    @validates("gender")
    def _normalize_gender(self, _key: str, value: Optional[str]) -> Optional[str]:
        return normalize_gender(value)

    @validates("state", "city", "club", "disability", "group_label", "type_label")
    def _normalize_labels(self, _key: str, value: Optional[str]) -> Optional[str]:
        return normalize_label(value)

    @validates("rating")
    def _normalize_rating(self, _key: str, value: Optional[int]) -> Optional[int]:
        if value is None:
            return None
        rating = int(value)
        return rating if rating > 0 else None

    def set_dob(self, value: Union[None, str, int, date, datetime]) -> None:
        """Store ``value`` as the date of birth, keeping the raw text."""

        parsed, imputed = parse_dob(value)
        self.dob = parsed
        self.dob_imputed = imputed
        if value is None or isinstance(value, (date, datetime)):
            self.dob_raw = None if value is None else parsed.isoformat() if parsed else None
        else:
            self.dob_raw = str(value).strip()[:32] or None

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<Competitor(id={self.id}, tournament_id={self.tournament_id}, "
            f"rank={self.rank}, rating={self.rating})>"
        )

    @classmethod
    def for_tournament(cls, session: Session, tournament_id: int) -> list["Competitor"]:
        """Return all competitors of a tournament ordered by rank then id."""

        stmt = (
            select(cls)
            .where(cls.tournament_id == tournament_id)
            .order_by(cls.rank.asc(), cls.id.asc())
        )
        return list(session.scalars(stmt))
