from typing import Any, Iterable, Mapping, Optional, Union

from sqlalchemy.orm import Session

from .allocation.commit import (
    CommitResult,
    DecisionInput,
    LatestAllocations,
    commit_allocation,
    latest_allocations,
)
from .allocation.conflicts import ConflictRegistry, detect_override_conflicts
from .allocation.engine import AllocationEngine, AllocationPreview
from .allocation.rca import RcaRow, build_rca_rows
from .allocation.report import AllocationDebugReport, build_report
from .allocation.scheduler import Decision, OverrideInput
from .models import Conflict, Organizer, Tournament


def preview_allocation(
    session: Session,
    tournament: Tournament,
    overrides: Optional[OverrideInput] = None,
    rules_override: Optional[Mapping[str, Any]] = None,
) -> AllocationPreview:
    """Compute the current automatic allocation of ``tournament``.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    tournament : Tournament
        Persisted tournament.
    overrides : mapping of prize id to competitor id, optional
        Manual awards applied before automatic assignment.
    rules_override : Optional[Mapping[str, Any]]
        Rule switches applied on top of the stored configuration for this
        call only.

    Returns
    -------
    AllocationPreview
        Decisions and per-prize coverage. Nothing is written.
    """

    return AllocationEngine(session).preview(
        tournament, overrides=overrides, rules_override=rules_override
    )


def finalize_allocation(
    session: Session,
    tournament: Tournament,
    decisions: Union[AllocationPreview, Iterable[DecisionInput]],
    actor: Organizer,
) -> CommitResult:
    """Persist ``decisions`` as the next allocation version.

    ``decisions`` may be a preview, in which case its decisions are
    committed as shown. The caller commits or rolls back the outer
    transaction; see :func:`prizemgr.allocation.commit.commit_allocation` for
    the validation rules and raised errors.
    """

    if isinstance(decisions, AllocationPreview):
        decisions = decisions.decisions
    return commit_allocation(session, tournament, decisions, actor)


def get_latest_allocations(session: Session, tournament_id: int) -> LatestAllocations:
    """Return the highest committed version and its rows."""

    return latest_allocations(session, tournament_id)


def record_manual_overrides(
    session: Session,
    tournament: Tournament,
    overrides: OverrideInput,
) -> tuple[AllocationPreview, list[Conflict]]:
    """Apply manual awards to the preview and open conflicts for inconsistencies.

    The workflow performs three coordinated tasks:

    1. Recompute the preview with ``overrides`` applied first.
    2. Detect duplicate or ineligible manual awards against the same
       snapshot and store each one as an open :class:`Conflict` carrying the
       engine's suggested resolution.
    3. Store the preview's prize priority ties as ``tie`` conflicts, unless
       the same tie is already open.

    Returns
    -------
    tuple[AllocationPreview, list[Conflict]]
        The adjusted preview and the conflicts opened by this call.
    """

    preview = AllocationEngine(session).preview(tournament, overrides=overrides)
    snapshot = preview.snapshot
    drafts = detect_override_conflicts(
        overrides,
        snapshot.categories,
        snapshot.competitors,
        snapshot.rules,
        snapshot.on_date,
    )
    registry = ConflictRegistry(session)
    open_ties = {
        (tuple(conflict.impacted_competitors), tuple(conflict.impacted_prizes))
        for conflict in registry.open_conflicts(tournament.id)
        if conflict.type == "tie"
    }
    drafts.extend(
        draft
        for draft in preview.ties
        if (draft.impacted_competitors, draft.impacted_prizes) not in open_ties
    )
    conflicts = registry.open(tournament, drafts)
    return preview, conflicts


def accept_suggested_resolution(session: Session, conflict: Conflict) -> Optional[Decision]:
    """Resolve ``conflict`` by taking the engine's suggestion.

    Returns
    -------
    Optional[Decision]
        The decision to use for the suggested prize, or ``None`` when the
        suggestion is to leave that prize unfilled.

    Raises
    ------
    ValueError
        If the conflict is already resolved.
    """

    ConflictRegistry(session).resolve(conflict)
    if conflict.suggested_prize_id is None or conflict.suggested_competitor_id is None:
        return None
    return Decision(
        prize_id=conflict.suggested_prize_id,
        competitor_id=conflict.suggested_competitor_id,
        reason_codes=("suggested_resolution",),
        is_manual=True,
    )


def export_rca(
    session: Session,
    tournament: Tournament,
    preview: Optional[AllocationPreview] = None,
) -> list[RcaRow]:
    """Compare the automatic allocation with the latest committed version.

    When ``preview`` is omitted an override-free preview is computed. If no
    version was committed yet every filled prize reports
    ``NO_ELIGIBLE_WINNER``. Nothing is written.
    """

    if preview is None:
        preview = preview_allocation(session, tournament)
    latest = latest_allocations(session, tournament.id)
    return build_rca_rows(
        preview.coverage,
        latest.rows,
        preview.snapshot.competitors,
        tournament,
    )


def build_debug_report(preview: AllocationPreview) -> AllocationDebugReport:
    """Summarize ``preview`` per category and flag entries that indicate a defect."""

    return build_report(preview.tournament_id, preview.rules, preview.coverage)
