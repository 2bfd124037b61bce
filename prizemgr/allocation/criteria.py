"""Parsing of category criteria documents into typed criteria sets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

GENDER_FILTERS = ("F", "M", "M_OR_UNKNOWN")

# criteria_json key -> CriteriaSet attribute
_LIST_FIELDS = {
    "allowed_disabilities": "allowed_disabilities",
    "allowed_states": "allowed_states",
    "allowed_cities": "allowed_cities",
    "allowed_clubs": "allowed_clubs",
    "allowed_groups": "allowed_groups",
    "allowed_types": "allowed_types",
}
_INT_FIELDS = ("min_age", "max_age", "min_rating", "max_rating")
_KNOWN_KEYS = set(_LIST_FIELDS) | set(_INT_FIELDS) | {"gender", "unrated_only"}


@dataclass(frozen=True)
class CriteriaSet:
    """Eligibility constraints of one category.

    Every field is optional; an absent field (``None`` or an empty tuple)
    leaves that axis unconstrained. Allow-list entries are stored trimmed and
    lower-cased so comparisons are case-insensitive.
    """

    gender: Optional[str] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    min_rating: Optional[int] = None
    max_rating: Optional[int] = None
    unrated_only: bool = False
    allowed_disabilities: tuple[str, ...] = ()
    allowed_states: tuple[str, ...] = ()
    allowed_cities: tuple[str, ...] = ()
    allowed_clubs: tuple[str, ...] = ()
    allowed_groups: tuple[str, ...] = ()
    allowed_types: tuple[str, ...] = ()

    @property
    def has_age_bounds(self) -> bool:
        return self.min_age is not None or self.max_age is not None

    @property
    def has_rating_bounds(self) -> bool:
        return self.min_rating is not None or self.max_rating is not None

    @classmethod
    def from_json(cls, document: Optional[Mapping[str, Any]]) -> "CriteriaSet":
        """Build a criteria set from a stored ``criteria_json`` document.

        Unrecognized keys and unusable values are dropped here so they never
        reach the evaluator. ``gender`` values of ``"OPEN"``/``"ANY"`` or blank
        mean no gender filter.
        """

        if not document:
            return cls()

        unknown = sorted(set(document) - _KNOWN_KEYS)
        if unknown:
            logger.debug("Ignoring unknown criteria keys: %s", ", ".join(unknown))

        values: dict[str, Any] = {}

        gender = _parse_gender(document.get("gender"))
        if gender is not None:
            values["gender"] = gender

        for key in _INT_FIELDS:
            number = _parse_int(key, document.get(key))
            if number is not None:
                values[key] = number

        values["unrated_only"] = _parse_bool(document.get("unrated_only"))

        for key, attr in _LIST_FIELDS.items():
            values[attr] = _parse_list(document.get(key))

        return cls(**values)

    def with_gender(self, gender: str) -> "CriteriaSet":
        """Return a copy forcing the gender filter to ``gender``."""

        return replace(self, gender=gender)


def _parse_gender(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().upper()
    if text in ("", "OPEN", "ANY", "ALL"):
        return None
    if text in ("GIRLS", "FEMALE", "W"):
        text = "F"
    if text in GENDER_FILTERS:
        return text
    logger.debug("Ignoring unsupported gender filter %r", value)
    return None


def _parse_int(key: str, value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        logger.debug("Ignoring boolean value for criteria '%s'", key)
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        # NaN raises ValueError, infinities and huge exponents OverflowError
        logger.debug("Ignoring non-numeric criteria '%s'=%r", key, value)
        return None


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(value)


def _parse_list(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
    else:
        return ()
    normalized = []
    for item in items:
        if item is None:
            continue
        text = str(item).strip().lower()
        if text and text not in normalized:
            normalized.append(text)
    return tuple(normalized)


__all__ = ["CriteriaSet", "GENDER_FILTERS"]
