from __future__ import annotations

import unittest
from types import SimpleNamespace

from prizemgr.allocation.diagnosis import ReasonCode
from prizemgr.allocation.rca import RcaStatus, build_rca_rows, classify
from prizemgr.allocation.scheduler import CoverageEntry, Decision


def _entry(prize_id: int, winner_id=None, reason=None) -> CoverageEntry:
    return CoverageEntry(
        category_id=1,
        category_name="Open",
        is_main=True,
        prize_id=prize_id,
        place=prize_id,
        prize_label=f"Prize {prize_id}",
        prize_type="cash",
        amount=100.0,
        before_count=0 if winner_id is None else 1,
        after_count=0 if winner_id is None else 1,
        winner_id=winner_id,
        reason_code=reason,
    )


class ClassifyTests(unittest.TestCase):
    def test_statuses(self) -> None:
        self.assertIs(classify(1, 1), RcaStatus.MATCH)
        self.assertIs(classify(None, None), RcaStatus.MATCH)
        self.assertIs(classify(1, 2), RcaStatus.OVERRIDDEN)
        self.assertIs(classify(None, 2), RcaStatus.OVERRIDDEN)
        self.assertIs(classify(1, None), RcaStatus.NO_ELIGIBLE_WINNER)


class BuildRcaRowsTests(unittest.TestCase):
    def test_rows_follow_coverage_order(self) -> None:
        tournament = SimpleNamespace(id=7, slug="city-rapid")
        competitors = [SimpleNamespace(id=10, name="A"), SimpleNamespace(id=11, name="B")]
        coverage = [
            _entry(1, winner_id=10),
            _entry(2, winner_id=11),
            _entry(3, reason=ReasonCode.NO_ELIGIBLE_PLAYERS),
        ]
        final = [
            Decision(1, 11, ("manual_override", "auto"), is_manual=True),
            Decision(3, 10, ("auto",)),
        ]

        rows = build_rca_rows(coverage, final, competitors, tournament)

        self.assertEqual([row.prize_id for row in rows], [1, 2, 3])
        self.assertEqual(
            [row.status for row in rows],
            [RcaStatus.OVERRIDDEN, RcaStatus.NO_ELIGIBLE_WINNER, RcaStatus.OVERRIDDEN],
        )
        self.assertEqual(rows[0].override_reason, "manual_override")
        self.assertEqual(rows[0].auto_winner_name, "A")
        self.assertEqual(rows[0].final_winner_name, "B")
        self.assertIsNone(rows[2].override_reason)
        self.assertEqual(rows[2].auto_reason_code, "NO_ELIGIBLE_PLAYERS")
        self.assertEqual(rows[1].to_json()["tournament_slug"], "city-rapid")


if __name__ == "__main__":
    unittest.main()
