"""Normalization helpers shared by the models and the allocation snapshot."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional, Union

_YEAR_ONLY = re.compile(r"^\d{4}$")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")
_DMY_DATE = re.compile(r"^(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4})$")

_MALE = {"m", "male", "boy", "boys", "man", "men"}
_FEMALE = {"f", "female", "girl", "girls", "woman", "women", "w"}
_OTHER = {"o", "other", "x", "nb", "non-binary"}


def normalize_gender(value: Optional[str]) -> Optional[str]:
    """Map free-form gender labels onto ``"M"``, ``"F"`` or ``"Other"``.

    Unknown or blank values return ``None`` so the evaluator can report them
    as missing instead of guessing.
    """

    if value is None:
        return None
    text = str(value).strip().lower()
    if not text:
        return None
    if text in _MALE:
        return "M"
    if text in _FEMALE:
        return "F"
    if text in _OTHER:
        return "Other"
    return None


def parse_dob(value: Union[None, str, int, date, datetime]) -> tuple[Optional[date], bool]:
    """Parse an imported date of birth.

    Returns
    -------
    tuple[Optional[date], bool]
        The parsed date (or ``None`` when unusable) and whether it was
        imputed from a year-only value. Year-only values normalize to
        January 1st.
    """

    if value is None:
        return None, False
    if isinstance(value, datetime):
        return value.date(), False
    if isinstance(value, date):
        return value, False
    if isinstance(value, int):
        value = str(value)

    text = str(value).strip()
    if not text:
        return None, False

    if _YEAR_ONLY.match(text):
        year = int(text)
        if year < 1900:
            return None, False
        return date(year, 1, 1), True

    match = _ISO_DATE.match(text)
    if match:
        return _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3))), False

    match = _DMY_DATE.match(text)
    if match:
        return _safe_date(int(match.group(3)), int(match.group(2)), int(match.group(1))), False

    return None, False


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def normalize_label(value: Optional[str]) -> Optional[str]:
    """Trim a free-text label, collapsing blanks to ``None``."""

    if value is None:
        return None
    text = str(value).strip()
    return text or None
