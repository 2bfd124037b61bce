"""Eligibility evaluation, prize scheduling, diagnosis and versioned commits."""

from .commit import CommitResult, LatestAllocations, commit_allocation, latest_allocations
from .conflicts import (
    ConflictDraft,
    ConflictRegistry,
    detect_override_conflicts,
    detect_priority_ties,
)
from .criteria import CriteriaSet
from .diagnosis import (
    FAIL_CODE_LABELS,
    REASON_LABELS,
    ReasonCode,
    diagnose,
    fail_code_label,
    reason_label,
    summarize_failures,
)
from .eligibility import EligibilityResult, evaluate_eligibility
from .engine import AllocationEngine, AllocationPreview, TournamentSnapshot
from .errors import AuthorizationError, DoubleClaimError, VersionConflictError
from .pool import CategoryPool, build_pool
from .rca import RcaRow, RcaStatus, build_rca_rows
from .report import AllocationDebugReport, CategoryDebugSummary, build_report
from .rules import AllocationRules
from .scheduler import CoverageEntry, Decision, ScheduleResult, schedule
from .snapshot import CategorySnapshot, CompetitorSnapshot, PrizeSnapshot
from .tracker import ExclusivityTracker

__all__ = [
    "AllocationDebugReport",
    "AllocationEngine",
    "AllocationPreview",
    "AllocationRules",
    "AuthorizationError",
    "CategoryDebugSummary",
    "CategoryPool",
    "CategorySnapshot",
    "CommitResult",
    "CompetitorSnapshot",
    "ConflictDraft",
    "ConflictRegistry",
    "CoverageEntry",
    "CriteriaSet",
    "Decision",
    "DoubleClaimError",
    "EligibilityResult",
    "ExclusivityTracker",
    "FAIL_CODE_LABELS",
    "LatestAllocations",
    "PrizeSnapshot",
    "REASON_LABELS",
    "RcaRow",
    "RcaStatus",
    "ReasonCode",
    "ScheduleResult",
    "TournamentSnapshot",
    "VersionConflictError",
    "build_pool",
    "build_rca_rows",
    "build_report",
    "commit_allocation",
    "detect_override_conflicts",
    "detect_priority_ties",
    "diagnose",
    "evaluate_eligibility",
    "fail_code_label",
    "latest_allocations",
    "reason_label",
    "schedule",
    "summarize_failures",
]
