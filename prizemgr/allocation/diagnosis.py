"""Reason codes explaining why a prize went unfilled."""

from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import Mapping, Optional, Union


class ReasonCode(str, Enum):
    """Why a prize went unfilled; filled prizes carry no reason code."""

    BLOCKED_BY_ONE_PRIZE_POLICY = "BLOCKED_BY_ONE_PRIZE_POLICY"
    TOO_STRICT_CRITERIA_RATING = "TOO_STRICT_CRITERIA_RATING"
    TOO_STRICT_CRITERIA_AGE = "TOO_STRICT_CRITERIA_AGE"
    TOO_STRICT_CRITERIA_GENDER = "TOO_STRICT_CRITERIA_GENDER"
    TOO_STRICT_CRITERIA_LOCATION = "TOO_STRICT_CRITERIA_LOCATION"
    TOO_STRICT_CRITERIA_TYPE_OR_GROUP = "TOO_STRICT_CRITERIA_TYPE_OR_GROUP"
    NO_ELIGIBLE_PLAYERS = "NO_ELIGIBLE_PLAYERS"
    INTERNAL_ERROR = "INTERNAL_ERROR"


REASON_LABELS: dict[ReasonCode, str] = {
    ReasonCode.NO_ELIGIBLE_PLAYERS: "No eligible winner (no players match criteria)",
    ReasonCode.BLOCKED_BY_ONE_PRIZE_POLICY: "No eligible winner (blocked by one-prize policy)",
    ReasonCode.TOO_STRICT_CRITERIA_RATING: "No eligible winner (rating criteria)",
    ReasonCode.TOO_STRICT_CRITERIA_AGE: "No eligible winner (age criteria)",
    ReasonCode.TOO_STRICT_CRITERIA_GENDER: "No eligible winner (gender criteria)",
    ReasonCode.TOO_STRICT_CRITERIA_LOCATION: "No eligible winner (location criteria)",
    ReasonCode.TOO_STRICT_CRITERIA_TYPE_OR_GROUP: "No eligible winner (type/group criteria)",
    ReasonCode.INTERNAL_ERROR: "Internal error",
}

FAIL_CODE_LABELS: dict[str, str] = {
    "gender_missing": "Gender missing",
    "gender_mismatch": "Gender mismatch",
    "gender_ok": "Gender matches",
    "gender_open": "Open to all genders",
    "dob_missing": "DOB missing",
    "dob_missing_allowed": "DOB missing (allowed)",
    "dob_imputed": "DOB year only",
    "age_above_max": "Above age limit",
    "age_below_min": "Below age limit",
    "age_ok": "Age within limits",
    "unrated_excluded": "Unrated not allowed",
    "rated_excluded": "Rated players not allowed",
    "rating_below_min": "Rating below minimum",
    "rating_above_max": "Rating above maximum",
    "rating_ok": "Rating within limits",
    "rating_unrated_allowed": "Unrated allowed",
    "unrated_only_ok": "Unrated",
    "disability_excluded": "Disability not eligible",
    "state_excluded": "State not eligible",
    "city_excluded": "City not eligible",
    "club_excluded": "Club not eligible",
    "group_excluded": "Group not eligible",
    "type_excluded": "Type not eligible",
    "disability_ok": "Disability eligible",
    "state_ok": "State eligible",
    "city_ok": "City eligible",
    "club_ok": "Club eligible",
    "group_ok": "Group eligible",
    "type_ok": "Type eligible",
    "auto": "Automatic allocation",
    "rank": "Best rank",
    "youngest": "Youngest eligible",
    "brochure_order": "Brochure order",
    "manual_override": "Manual override",
    "suggested_resolution": "Suggested resolution",
}

# axis, fail code prefixes; checked in this order
_AXES = (
    (ReasonCode.TOO_STRICT_CRITERIA_RATING, ("rating_", "unrated_", "rated_")),
    (ReasonCode.TOO_STRICT_CRITERIA_AGE, ("age_", "dob_")),
    (ReasonCode.TOO_STRICT_CRITERIA_GENDER, ("gender_",)),
    (ReasonCode.TOO_STRICT_CRITERIA_LOCATION, ("state_", "city_", "club_")),
    (ReasonCode.TOO_STRICT_CRITERIA_TYPE_OR_GROUP, ("type_", "group_")),
)


def diagnose(
    before_count: int,
    after_count: int,
    fail_histogram: Optional[Mapping[str, int]] = None,
) -> ReasonCode:
    """Explain an unfilled prize from its pool counts.

    Parameters
    ----------
    before_count : int
        Eligible competitors ignoring exclusivity.
    after_count : int
        Eligible competitors still unclaimed.
    fail_histogram : Optional[Mapping[str, int]]
        Fail code counts over ineligible competitors.

    Returns
    -------
    ReasonCode
        ``BLOCKED_BY_ONE_PRIZE_POLICY`` when exclusivity emptied the pool,
        the first criteria axis with failures when nobody was eligible, and
        ``INTERNAL_ERROR`` when candidates existed but nothing was awarded.
    """

    if before_count > 0 and after_count == 0:
        return ReasonCode.BLOCKED_BY_ONE_PRIZE_POLICY
    if before_count == 0:
        histogram = {code: count for code, count in (fail_histogram or {}).items() if count > 0}
        for reason, prefixes in _AXES:
            if any(code.startswith(prefixes) for code in histogram):
                return reason
        return ReasonCode.NO_ELIGIBLE_PLAYERS
    return ReasonCode.INTERNAL_ERROR


def reason_label(code: Union[ReasonCode, str]) -> str:
    try:
        return REASON_LABELS[ReasonCode(code)]
    except ValueError:
        return fail_code_label(str(code))


def fail_code_label(code: str) -> str:
    """Human label for a fail/pass code; unknown codes are title-cased."""

    if code in FAIL_CODE_LABELS:
        return FAIL_CODE_LABELS[code]
    return code.replace("_", " ").strip().title()


def summarize_failures(histogram: Optional[Mapping[str, int]]) -> str:
    """Render a histogram as ``"3× Rating below minimum, 1× DOB missing"``."""

    if not histogram:
        return ""
    counts = Counter({code: count for code, count in histogram.items() if count > 0})
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return ", ".join(f"{count}× {fail_code_label(code)}" for code, count in ordered)


__all__ = [
    "FAIL_CODE_LABELS",
    "REASON_LABELS",
    "ReasonCode",
    "diagnose",
    "fail_code_label",
    "reason_label",
    "summarize_failures",
]
