"""Exceptions raised by the allocation subsystem.

Competitor data problems are never raised; they surface as fail codes. The
types below cover structural problems that must abort an operation.
"""

from __future__ import annotations


class AuthorizationError(PermissionError):
    """The acting organizer may not modify the tournament."""


class VersionConflictError(RuntimeError):
    """Another commit claimed the same allocation version first.

    The caller should reload the latest version and retry; the engine never
    retries on its own.
    """

    retryable = True

    def __init__(self, tournament_id: int, version: int) -> None:
        self.tournament_id = tournament_id
        self.version = version
        super().__init__(
            f"Allocation version {version} of tournament {tournament_id} was "
            "committed concurrently; reload the latest version and retry"
        )


class DoubleClaimError(RuntimeError):
    """A competitor was claimed twice under a policy that forbids it."""

    def __init__(self, competitor_id: int, policy: str) -> None:
        self.competitor_id = competitor_id
        self.policy = policy
        super().__init__(
            f"Competitor {competitor_id} is already claimed under the "
            f"'{policy}' prize policy"
        )


__all__ = ["AuthorizationError", "DoubleClaimError", "VersionConflictError"]
