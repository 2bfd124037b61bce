"""Run-scoped bookkeeping of which competitors already hold a prize."""

from __future__ import annotations

from .errors import DoubleClaimError
from .rules import MULTI_PRIZE_POLICIES


class ExclusivityTracker:
    """Track prize claims for a single scheduling run.

    A tracker is created per run and discarded afterwards; it is never shared
    between runs.

    Parameters
    ----------
    policy : str, default: "single"
        ``"single"`` allows one prize per competitor. ``"main_plus_one_side"``
        allows at most one main-category prize plus one other prize.
        ``"unlimited"`` never blocks.
    """

    def __init__(self, policy: str = "single") -> None:
        if policy not in MULTI_PRIZE_POLICIES:
            raise ValueError(f"Unknown multi_prize_policy '{policy}'")
        self.policy = policy
        self._main: set[int] = set()
        self._side: set[int] = set()

    def is_claimed(self, competitor_id: int, is_main: bool = False) -> bool:
        """Whether ``competitor_id`` is blocked for a prize of the given kind."""

        if self.policy == "unlimited":
            return False
        if self.policy == "single":
            return competitor_id in self._main or competitor_id in self._side
        if is_main:
            return competitor_id in self._main
        return competitor_id in self._side

    def claim(self, competitor_id: int, is_main: bool = False) -> None:
        """Record that ``competitor_id`` won a prize.

        Raises
        ------
        DoubleClaimError
            If the competitor is already blocked for this kind of prize.
        """

        if self.is_claimed(competitor_id, is_main=is_main):
            raise DoubleClaimError(competitor_id, self.policy)
        if is_main:
            self._main.add(competitor_id)
        else:
            self._side.add(competitor_id)

    def claimed_ids(self) -> frozenset[int]:
        return frozenset(self._main | self._side)

    def __contains__(self, competitor_id: int) -> bool:
        return competitor_id in self._main or competitor_id in self._side

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<ExclusivityTracker policy={self.policy} claimed={len(self.claimed_ids())}>"


__all__ = ["ExclusivityTracker"]
