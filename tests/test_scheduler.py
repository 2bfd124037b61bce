from __future__ import annotations

import unittest
from collections import Counter
from datetime import date

from prizemgr.allocation.criteria import CriteriaSet
from prizemgr.allocation.diagnosis import ReasonCode
from prizemgr.allocation.rules import AllocationRules
from prizemgr.allocation.scheduler import order_categories, schedule
from prizemgr.allocation.snapshot import CategorySnapshot, CompetitorSnapshot, PrizeSnapshot

ON_DATE = date(2024, 6, 1)


def _rules(**overrides) -> AllocationRules:
    return AllocationRules(verbose_logs=False).merged(overrides)


def _prizes(first_id: int, count: int) -> tuple[PrizeSnapshot, ...]:
    return tuple(
        PrizeSnapshot(id=first_id + place - 1, place=place, cash_amount=1000.0 / place)
        for place in range(1, count + 1)
    )


class SchedulerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.competitors = [
            CompetitorSnapshot(id=1, rank=1, name="Anand", rating=2400, gender="M", dob=date(1970, 1, 1)),
            CompetitorSnapshot(id=2, rank=2, name="Bhakti", rating=2200, gender="F", dob=date(2000, 1, 1)),
            CompetitorSnapshot(id=3, rank=3, name="Chitra", rating=1700, gender="F", dob=date(2012, 3, 1)),
            CompetitorSnapshot(id=4, rank=4, name="Dev", rating=None, gender="M", dob=date(2013, 5, 1)),
            CompetitorSnapshot(id=5, rank=5, name="Esha", rating=1500, gender=None, dob=None),
            CompetitorSnapshot(id=6, rank=6, name="Farid", rating=1650, gender="M", dob=date(2011, 8, 1)),
        ]
        self.categories = [
            CategorySnapshot(id=1, name="Open", is_main=True, order_idx=0, prizes=_prizes(100, 3)),
            CategorySnapshot(
                id=2,
                name="Below 1800",
                order_idx=1,
                criteria=CriteriaSet(max_rating=1800),
                prizes=_prizes(200, 2),
            ),
            CategorySnapshot(
                id=3,
                name="Best Female",
                order_idx=2,
                criteria=CriteriaSet(gender="F"),
                prizes=_prizes(300, 1),
            ),
            CategorySnapshot(
                id=4,
                name="Under 14",
                order_idx=3,
                criteria=CriteriaSet(max_age=14),
                prizes=_prizes(400, 2),
            ),
            CategorySnapshot(
                id=5,
                name="Inactive",
                order_idx=4,
                is_active=False,
                prizes=_prizes(500, 1),
            ),
        ]

    def test_exclusivity_and_order(self) -> None:
        result = schedule(self.categories, self.competitors, _rules(), ON_DATE)
        winners = result.winners()
        self.assertEqual(winners[100], 1)
        self.assertEqual(winners[101], 2)
        self.assertEqual(winners[102], 3)
        self.assertEqual(winners[200], 5)
        self.assertEqual(winners[201], 6)
        self.assertNotIn(300, winners)
        self.assertEqual(winners[400], 4)

        competitor_ids = [decision.competitor_id for decision in result.decisions]
        self.assertEqual(len(competitor_ids), len(set(competitor_ids)))

    def test_coverage_for_every_active_prize_only(self) -> None:
        result = schedule(self.categories, self.competitors, _rules(), ON_DATE)
        prize_ids = [entry.prize_id for entry in result.coverage]
        self.assertEqual(prize_ids, [100, 101, 102, 200, 201, 300, 400, 401])
        self.assertNotIn(500, prize_ids)

    def test_unfilled_prizes_are_diagnosed(self) -> None:
        result = schedule(self.categories, self.competitors, _rules(), ON_DATE)
        by_prize = {entry.prize_id: entry for entry in result.coverage}

        best_female = by_prize[300]
        self.assertEqual((best_female.before_count, best_female.after_count), (2, 0))
        self.assertIs(best_female.reason_code, ReasonCode.BLOCKED_BY_ONE_PRIZE_POLICY)
        self.assertEqual(best_female.blocked_by, (101, 102))

        second_u14 = by_prize[401]
        self.assertIs(second_u14.reason_code, ReasonCode.BLOCKED_BY_ONE_PRIZE_POLICY)
        self.assertEqual({entry.prize_id for entry in result.unfilled}, {300, 401})

    def test_winner_reason_codes(self) -> None:
        result = schedule(self.categories, self.competitors, _rules(), ON_DATE)
        decision = result.decision_for(200)
        self.assertEqual(decision.reason_codes[:3], ("auto", "rank", "brochure_order"))
        self.assertIn("rating_ok", decision.reason_codes)
        self.assertFalse(decision.is_manual)

    def test_determinism(self) -> None:
        first = schedule(self.categories, self.competitors, _rules(), ON_DATE)
        second = schedule(
            list(reversed(self.categories)),
            list(reversed(self.competitors)),
            _rules(),
            ON_DATE,
        )
        self.assertEqual(first.decisions, second.decisions)
        self.assertEqual(
            [entry.to_json() for entry in first.coverage],
            [entry.to_json() for entry in second.coverage],
        )

    def test_one_prize_policy_diagnosis(self) -> None:
        competitors = [CompetitorSnapshot(id=i, rank=i, rating=1500) for i in (1, 2, 3)]
        categories = [
            CategorySnapshot(
                id=1,
                name="Main",
                is_main=True,
                prizes=(
                    PrizeSnapshot(id=11, place=1, cash_amount=500.0),
                    PrizeSnapshot(id=12, place=2, cash_amount=300.0),
                    PrizeSnapshot(id=13, place=3, cash_amount=100.0),
                ),
            ),
            CategorySnapshot(
                id=2,
                name="Category",
                order_idx=1,
                criteria=CriteriaSet(max_rating=1600),
                prizes=(PrizeSnapshot(id=21, place=1, has_trophy=True),),
            ),
        ]
        result = schedule(categories, competitors, _rules(), ON_DATE)
        entry = result.coverage[-1]
        self.assertEqual(entry.prize_id, 21)
        self.assertEqual((entry.before_count, entry.after_count), (3, 0))
        self.assertIs(entry.reason_code, ReasonCode.BLOCKED_BY_ONE_PRIZE_POLICY)
        self.assertEqual(
            entry.reason_label, "No eligible winner (blocked by one-prize policy)"
        )
        self.assertEqual(entry.prize_type, "trophy")

    def test_too_strict_rating(self) -> None:
        competitors = [CompetitorSnapshot(id=i, rank=i, rating=1000 + i) for i in (1, 2)]
        categories = [
            CategorySnapshot(
                id=1,
                name="Elite",
                criteria=CriteriaSet(min_rating=2000),
                prizes=(PrizeSnapshot(id=1, place=1, has_medal=True),),
            )
        ]
        with self.assertLogs("prizemgr.allocation.scheduler", level="WARNING"):
            result = schedule(categories, competitors, _rules(), ON_DATE)
        entry = result.coverage[0]
        self.assertIs(entry.reason_code, ReasonCode.TOO_STRICT_CRITERIA_RATING)
        self.assertEqual(entry.fail_codes, ("rating_below_min",))
        self.assertEqual(entry.diagnosis, "2× Rating below minimum")

    def test_youngest_female_winner(self) -> None:
        competitors = [
            CompetitorSnapshot(id=1, rank=5, gender="F", dob=date(1995, 1, 1)),
            CompetitorSnapshot(id=2, rank=2, gender="F", dob=date(1995, 1, 1)),
            CompetitorSnapshot(id=3, rank=9, gender="F", dob=date(1998, 6, 1)),
        ]
        categories = [
            CategorySnapshot(
                id=1,
                name="Youngest Girl",
                category_type="youngest_female",
                prizes=(PrizeSnapshot(id=1, place=1, has_trophy=True),),
            )
        ]
        result = schedule(categories, competitors, _rules(), ON_DATE)
        self.assertEqual(result.winners(), {1: 3})
        self.assertEqual(result.decisions[0].reason_codes[:3], ("auto", "youngest", "brochure_order"))

    def test_main_plus_one_side_policy(self) -> None:
        result = schedule(
            self.categories, self.competitors, _rules(multi_prize_policy="main_plus_one_side"), ON_DATE
        )
        winners = result.winners()
        self.assertEqual(winners[200], 3)
        self.assertEqual(winners[300], 2)
        counts = Counter(decision.competitor_id for decision in result.decisions)
        self.assertLessEqual(max(counts.values()), 2)

    def test_unlimited_policy(self) -> None:
        result = schedule(
            self.categories, self.competitors, _rules(multi_prize_policy="unlimited"), ON_DATE
        )
        winners = result.winners()
        self.assertEqual(winners[100], 1)
        self.assertEqual(winners[101], 2)
        self.assertEqual(winners[300], 2)
        self.assertEqual(winners[200], 3)

    def test_priority_order_puts_others_first(self) -> None:
        ordered = order_categories(self.categories, _rules(category_priority_order=["others", "main"]))
        self.assertEqual([category.id for category in ordered], [2, 3, 4, 1])

    def test_manual_override_applied_first(self) -> None:
        result = schedule(self.categories, self.competitors, _rules(), ON_DATE, overrides={200: 1})
        winners = result.winners()
        self.assertEqual(winners[200], 1)
        self.assertEqual(winners[100], 2)
        manual = result.decision_for(200)
        self.assertTrue(manual.is_manual)
        self.assertEqual(manual.reason_codes, ("manual_override",))

    def test_override_of_unknown_prize_rejected(self) -> None:
        with self.assertRaises(ValueError):
            schedule(self.categories, self.competitors, _rules(), ON_DATE, overrides={999: 1})
        with self.assertRaises(ValueError):
            schedule(self.categories, self.competitors, _rules(), ON_DATE, overrides={500: 1})


if __name__ == "__main__":
    unittest.main()
