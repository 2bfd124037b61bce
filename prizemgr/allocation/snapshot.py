"""Immutable snapshots of the rows an allocation run reads.

Scheduling runs over these value objects rather than ORM instances so that a
run is pure: nothing it does can lazy-load, flush or mutate database state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Optional

from .criteria import CriteriaSet
from ..models.utils import normalize_gender, normalize_label

if TYPE_CHECKING:
    from ..models import Category, Competitor, Prize

YOUNGEST_CATEGORY_TYPES = ("youngest_female", "youngest_male")


def ordinal(place: int) -> str:
    """Return ``1st``, ``2nd``, ``3rd``, ``4th``..."""

    if 10 <= place % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(place % 10, "th")
    return f"{place}{suffix}"


@dataclass(frozen=True)
class CompetitorSnapshot:
    """Read-only view of a competitor.

    ``gender`` and the free-text labels are normalized on construction; a
    rating of ``0`` or less is stored as unrated (``None``).
    """

    id: int
    rank: int
    name: str = ""
    rating: Optional[int] = None
    dob: Optional[date] = None
    dob_imputed: bool = False
    gender: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    club: Optional[str] = None
    disability: Optional[str] = None
    group_label: Optional[str] = None
    type_label: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "gender", normalize_gender(self.gender))
        if self.rating is not None and self.rating <= 0:
            object.__setattr__(self, "rating", None)
        for attr in ("state", "city", "club", "disability", "group_label", "type_label"):
            object.__setattr__(self, attr, normalize_label(getattr(self, attr)))

    @property
    def is_rated(self) -> bool:
        return self.rating is not None

    @classmethod
    def from_model(cls, competitor: "Competitor") -> "CompetitorSnapshot":
        if competitor.id is None:
            raise ValueError("Competitor must be persisted before allocation")
        return cls(
            id=competitor.id,
            rank=competitor.rank,
            name=competitor.name,
            rating=competitor.rating,
            dob=competitor.dob,
            dob_imputed=bool(competitor.dob_imputed),
            gender=competitor.gender,
            state=competitor.state,
            city=competitor.city,
            club=competitor.club,
            disability=competitor.disability,
            group_label=competitor.group_label,
            type_label=competitor.type_label,
        )


@dataclass(frozen=True)
class PrizeSnapshot:
    id: int
    place: int
    cash_amount: Optional[float] = None
    has_trophy: bool = False
    has_medal: bool = False
    is_active: bool = True

    @property
    def prize_type(self) -> str:
        if (self.cash_amount or 0) > 0:
            return "cash"
        if self.has_trophy:
            return "trophy"
        if self.has_medal:
            return "medal"
        return "other"

    @classmethod
    def from_model(cls, prize: "Prize") -> "PrizeSnapshot":
        if prize.id is None:
            raise ValueError("Prize must be persisted before allocation")
        return cls(
            id=prize.id,
            place=prize.place,
            cash_amount=float(prize.cash_amount) if prize.cash_amount is not None else None,
            has_trophy=bool(prize.has_trophy),
            has_medal=bool(prize.has_medal),
            is_active=prize.is_active is not False,
        )


@dataclass(frozen=True)
class CategorySnapshot:
    """Read-only view of a category together with its prizes."""

    id: int
    name: str
    is_main: bool = False
    is_active: bool = True
    order_idx: int = 0
    category_type: str = "criteria"
    criteria: CriteriaSet = field(default_factory=CriteriaSet)
    prizes: tuple[PrizeSnapshot, ...] = ()

    @property
    def kind(self) -> str:
        """``"main"`` or ``"others"``, as used by the priority order rule."""

        return "main" if self.is_main else "others"

    @property
    def is_youngest(self) -> bool:
        return self.category_type in YOUNGEST_CATEGORY_TYPES

    def active_prizes(self) -> list[PrizeSnapshot]:
        """Active prizes ordered by place, then id."""

        prizes = [prize for prize in self.prizes if prize.is_active]
        return sorted(prizes, key=lambda prize: (prize.place, prize.id))

    def prize_label(self, prize: PrizeSnapshot) -> str:
        return f"{ordinal(prize.place)} {self.name}"

    @classmethod
    def from_model(cls, category: "Category") -> "CategorySnapshot":
        if category.id is None:
            raise ValueError("Category must be persisted before allocation")
        return cls(
            id=category.id,
            name=category.name,
            is_main=bool(category.is_main),
            is_active=category.is_active is not False,
            order_idx=category.order_idx or 0,
            category_type=category.category_type or "criteria",
            criteria=CriteriaSet.from_json(category.criteria_json),
            prizes=tuple(PrizeSnapshot.from_model(prize) for prize in category.prizes),
        )


__all__ = [
    "CategorySnapshot",
    "CompetitorSnapshot",
    "PrizeSnapshot",
    "YOUNGEST_CATEGORY_TYPES",
    "ordinal",
]
