"""Prize categories and the ranked prizes they contain."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    Float,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from .id_type import ID_TYPE

if TYPE_CHECKING:
    from .tournament import Tournament

CATEGORY_TYPES = ("criteria", "youngest_female", "youngest_male")


class Category(Base):
    """A named group of prizes sharing one eligibility criteria document."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    tournament_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    """Owning tournament."""

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    """Display name, e.g. ``"Below 1800"``."""

    is_main: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    """Whether this is the open/main prize list."""

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    """Inactive categories contribute no prizes to scheduling."""

    order_idx: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Brochure order; lower values are scheduled first among peers."""

    category_type: Mapped[str] = mapped_column(String(30), nullable=False, default="criteria")
    """``"criteria"`` or one of the youngest-by-birth-date selections."""

    criteria_json: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    """Eligibility criteria document; parsed into a ``CriteriaSet`` before use."""

    tournament: Mapped["Tournament"] = relationship(back_populates="categories")
    prizes: Mapped[list["Prize"]] = relationship(
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="Prize.place",
    )

    __table_args__ = (
        CheckConstraint(
            "category_type IN ('criteria','youngest_female','youngest_male')",
            name="category_type_enum",
        ),
    )

    def __init__(
        self,
        *,
        name: str,
        tournament: Optional["Tournament"] = None,
        tournament_id: Optional[int] = None,
        is_main: bool = False,
        is_active: bool = True,
        order_idx: int = 0,
        category_type: str = "criteria",
        criteria_json: Optional[dict[str, Any]] = None,
        prizes: Optional[list["Prize"]] = None,
    ) -> None:
        if category_type not in CATEGORY_TYPES:
            raise ValueError(f"Unknown category_type '{category_type}'")
        if tournament is not None:
            self.tournament = tournament
        if tournament_id is not None:
            self.tournament_id = tournament_id
        self.name = name
        self.is_main = is_main
        self.is_active = is_active
        self.order_idx = order_idx
        self.category_type = category_type
        self.criteria_json = criteria_json
        if prizes is not None:
            self.prizes = prizes

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<Category(id={self.id}, name='{self.name}', is_main={self.is_main}, "
            f"order_idx={self.order_idx}, category_type='{self.category_type}')>"
        )

    @classmethod
    def for_tournament(cls, session: Session, tournament_id: int) -> list["Category"]:
        """Return all categories of a tournament in brochure order."""

        stmt = (
            select(cls)
            .where(cls.tournament_id == tournament_id)
            .order_by(cls.order_idx.asc(), cls.id.asc())
        )
        return list(session.scalars(stmt))


class Prize(Base):
    """A single ranked award within a category."""

    __tablename__ = "prizes"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    category_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    place: Mapped[int] = mapped_column(Integer, nullable=False)
    cash_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    has_trophy: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_medal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    category: Mapped["Category"] = relationship(back_populates="prizes")

    __table_args__ = (
        UniqueConstraint("category_id", "place", name="uq_prize_category_place"),
        CheckConstraint("place > 0", name="place_positive"),
    )

    def __init__(
        self,
        *,
        place: int,
        category: Optional["Category"] = None,
        category_id: Optional[int] = None,
        cash_amount: Optional[float] = None,
        has_trophy: bool = False,
        has_medal: bool = False,
        is_active: bool = True,
    ) -> None:
        if category is not None:
            self.category = category
        if category_id is not None:
            self.category_id = category_id
        self.place = place
        self.cash_amount = cash_amount
        self.has_trophy = has_trophy
        self.has_medal = has_medal
        self.is_active = is_active

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<Prize(id={self.id}, category_id={self.category_id}, place={self.place}, "
            f"cash_amount={self.cash_amount})>"
        )
