"""Organizer-facing debug summary of a preview run."""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Iterable

from .diagnosis import ReasonCode
from .scheduler import CoverageEntry


@dataclass
class CategoryDebugSummary:
    category_id: int
    category_name: str
    is_main: bool
    prize_count: int = 0
    filled: int = 0
    unfilled: int = 0
    reason_codes: Counter = field(default_factory=Counter)


@dataclass
class AllocationDebugReport:
    """Per-category fill counts plus entries that indicate a defect.

    Attributes
    ----------
    categories : list[CategoryDebugSummary]
        One summary per scheduled category, in scheduling order.
    suspicious : list[CoverageEntry]
        ``INTERNAL_ERROR`` entries and policy blocks with nobody eligible.
    """

    tournament_id: int
    rules: dict
    categories: list[CategoryDebugSummary] = field(default_factory=list)
    suspicious: list[CoverageEntry] = field(default_factory=list)

    @property
    def total_prizes(self) -> int:
        return sum(summary.prize_count for summary in self.categories)

    @property
    def total_filled(self) -> int:
        return sum(summary.filled for summary in self.categories)

    def to_json(self) -> dict:
        return {
            "tournament_id": self.tournament_id,
            "rules": self.rules,
            "total_prizes": self.total_prizes,
            "total_filled": self.total_filled,
            "categories": [
                {
                    "category_id": summary.category_id,
                    "category_name": summary.category_name,
                    "is_main": summary.is_main,
                    "prize_count": summary.prize_count,
                    "filled": summary.filled,
                    "unfilled": summary.unfilled,
                    "reason_codes": dict(summary.reason_codes),
                }
                for summary in self.categories
            ],
            "suspicious": [entry.to_json() for entry in self.suspicious],
        }


def is_suspicious(entry: CoverageEntry) -> bool:
    if entry.reason_code is ReasonCode.INTERNAL_ERROR:
        return True
    return (
        entry.reason_code is ReasonCode.BLOCKED_BY_ONE_PRIZE_POLICY and entry.before_count == 0
    )


def build_report(tournament_id: int, rules, coverage: Iterable[CoverageEntry]) -> AllocationDebugReport:
    report = AllocationDebugReport(tournament_id=tournament_id, rules=asdict(rules))
    summaries: dict[int, CategoryDebugSummary] = {}
    for entry in coverage:
        summary = summaries.get(entry.category_id)
        if summary is None:
            summary = CategoryDebugSummary(entry.category_id, entry.category_name, entry.is_main)
            summaries[entry.category_id] = summary
            report.categories.append(summary)
        summary.prize_count += 1
        if entry.is_filled:
            summary.filled += 1
        else:
            summary.unfilled += 1
            summary.reason_codes[entry.reason_code.value] += 1
        if is_suspicious(entry):
            report.suspicious.append(entry)
    return report


__all__ = ["AllocationDebugReport", "CategoryDebugSummary", "build_report", "is_suspicious"]
