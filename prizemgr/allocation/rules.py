"""Allocation rule switches and how they are resolved for a run."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import TYPE_CHECKING, Any, Mapping, Optional

from dotenv import load_dotenv

from ..db.utils import env_flag

if TYPE_CHECKING:
    from ..models import RuleConfig

logger = logging.getLogger(__name__)

load_dotenv()

MULTI_PRIZE_POLICIES = ("single", "main_plus_one_side", "unlimited")
TIE_BREAK_STRATEGIES = ("rating_then_name", "rank_only")
CATEGORY_KINDS = ("main", "others")

_BOOL_FIELDS = {
    "strict_age",
    "allow_unrated_in_rating",
    "allow_missing_dob_for_age",
    "max_age_inclusive",
    "verbose_logs",
}


def _coerce_bool(value: Any, fallback: bool) -> bool:
    if value is None:
        return fallback
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return env_flag(value)
    return bool(value)


def verbose_logs_from_env() -> bool:
    """Default for ``verbose_logs`` taken from ``ALLOC_VERBOSE_LOGS``."""

    return env_flag(os.getenv("ALLOC_VERBOSE_LOGS"))


@dataclass(frozen=True)
class AllocationRules:
    """Tournament-level switches that shape eligibility and scheduling.

    Attributes
    ----------
    strict_age : bool
        Apply age bounds at all. When ``False`` age criteria are ignored.
    allow_unrated_in_rating : bool
        Let unrated competitors into categories with rating bounds.
    allow_missing_dob_for_age : bool
        Let competitors without a date of birth into age-bounded categories.
    max_age_inclusive : bool
        Whether ``max_age`` itself is still eligible.
    category_priority_order : tuple[str, ...]
        Order in which ``"main"`` and ``"others"`` categories are scheduled.
    tie_break_strategy : str
        ``"rating_then_name"`` or ``"rank_only"`` for equal ranks.
    multi_prize_policy : str
        ``"single"`` (one prize per competitor), ``"main_plus_one_side"`` or
        ``"unlimited"``.
    verbose_logs : bool
        Log every eligibility check at debug level.
    """

    strict_age: bool = True
    allow_unrated_in_rating: bool = False
    allow_missing_dob_for_age: bool = False
    max_age_inclusive: bool = True
    category_priority_order: tuple[str, ...] = ("main", "others")
    tie_break_strategy: str = "rating_then_name"
    multi_prize_policy: str = "single"
    verbose_logs: bool = field(default_factory=verbose_logs_from_env)

    def __post_init__(self) -> None:
        if self.multi_prize_policy not in MULTI_PRIZE_POLICIES:
            raise ValueError(f"Unknown multi_prize_policy '{self.multi_prize_policy}'")
        if self.tie_break_strategy not in TIE_BREAK_STRATEGIES:
            raise ValueError(f"Unknown tie_break_strategy '{self.tie_break_strategy}'")
        unknown = [kind for kind in self.category_priority_order if kind not in CATEGORY_KINDS]
        if unknown:
            raise ValueError(f"Unknown category kinds in priority order: {unknown}")

    def merged(self, overrides: Optional[Mapping[str, Any]]) -> "AllocationRules":
        """Return a copy with ``overrides`` applied.

        Unknown keys are ignored; boolean switches accept the usual string
        spellings (``"yes"``, ``"0"``...).
        """

        if not overrides:
            return self

        known = {f.name for f in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in known:
                logger.debug("Ignoring unknown allocation rule '%s'", key)
                continue
            if value is None:
                continue
            if key in _BOOL_FIELDS:
                changes[key] = _coerce_bool(value, getattr(self, key))
            elif key == "category_priority_order":
                changes[key] = tuple(str(kind).lower() for kind in value)
            else:
                changes[key] = value
        return replace(self, **changes)

    @classmethod
    def resolve(
        cls,
        stored: Optional["RuleConfig"] = None,
        override: Optional[Mapping[str, Any]] = None,
    ) -> "AllocationRules":
        """Defaults, then the stored tournament config, then a per-call override."""

        rules = cls()
        if stored is not None:
            rules = rules.merged(stored.as_dict())
        return rules.merged(override)


__all__ = [
    "AllocationRules",
    "CATEGORY_KINDS",
    "MULTI_PRIZE_POLICIES",
    "TIE_BREAK_STRATEGIES",
    "verbose_logs_from_env",
]
