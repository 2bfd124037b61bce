from __future__ import annotations

import unittest
from datetime import date

from prizemgr.allocation.criteria import CriteriaSet
from prizemgr.allocation.errors import DoubleClaimError
from prizemgr.allocation.pool import build_pool, compare_by_rank, effective_criteria
from prizemgr.allocation.rules import AllocationRules
from prizemgr.allocation.snapshot import CategorySnapshot, CompetitorSnapshot, PrizeSnapshot
from prizemgr.allocation.tracker import ExclusivityTracker

ON_DATE = date(2024, 6, 1)
RULES = AllocationRules(verbose_logs=False)


def _category(**kwargs) -> CategorySnapshot:
    kwargs.setdefault("id", 1)
    kwargs.setdefault("name", "Category")
    kwargs.setdefault("prizes", (PrizeSnapshot(id=10, place=1, cash_amount=100.0),))
    return CategorySnapshot(**kwargs)


class ExclusivityTrackerTests(unittest.TestCase):
    def test_single_policy_blocks_second_claim(self) -> None:
        tracker = ExclusivityTracker()
        tracker.claim(1, is_main=True)
        self.assertTrue(tracker.is_claimed(1))
        self.assertTrue(tracker.is_claimed(1, is_main=True))
        with self.assertRaises(DoubleClaimError):
            tracker.claim(1)
        self.assertEqual(tracker.claimed_ids(), frozenset({1}))

    def test_main_plus_one_side_policy(self) -> None:
        tracker = ExclusivityTracker("main_plus_one_side")
        tracker.claim(1, is_main=True)
        self.assertFalse(tracker.is_claimed(1, is_main=False))
        tracker.claim(1, is_main=False)
        self.assertTrue(tracker.is_claimed(1, is_main=False))
        with self.assertRaises(DoubleClaimError):
            tracker.claim(1, is_main=True)

    def test_unlimited_policy_never_blocks(self) -> None:
        tracker = ExclusivityTracker("unlimited")
        tracker.claim(1)
        tracker.claim(1)
        self.assertFalse(tracker.is_claimed(1))
        self.assertIn(1, tracker)

    def test_unknown_policy_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ExclusivityTracker("two_each")


class PoolBuilderTests(unittest.TestCase):
    def test_below_1800_counts_and_histogram(self) -> None:
        category = _category(name="Below-1800", criteria=CriteriaSet(max_rating=1800))
        competitors = [
            CompetitorSnapshot(id=1, rank=1, rating=1750),
            CompetitorSnapshot(id=2, rank=2),
            CompetitorSnapshot(id=3, rank=3, rating=1900),
        ]
        pool = build_pool(category, competitors, ExclusivityTracker(), RULES, ON_DATE)
        self.assertEqual(pool.before_count, 1)
        self.assertEqual(pool.after_count, 1)
        self.assertEqual(pool.first().competitor.id, 1)
        self.assertEqual(dict(pool.fail_histogram), {"unrated_excluded": 1, "rating_above_max": 1})

    def test_youngest_female_orders_by_birth_date(self) -> None:
        category = _category(name="Youngest Girl", category_type="youngest_female")
        competitors = [
            CompetitorSnapshot(id=1, rank=5, gender="F", dob=date(1995, 1, 1)),
            CompetitorSnapshot(id=2, rank=2, gender="F", dob=date(1995, 1, 1)),
            CompetitorSnapshot(id=3, rank=9, gender="F", dob=date(1998, 6, 1)),
            CompetitorSnapshot(id=4, rank=1, gender="M", dob=date(2005, 1, 1)),
            CompetitorSnapshot(id=5, rank=3, gender="F"),
        ]
        pool = build_pool(category, competitors, ExclusivityTracker(), RULES, ON_DATE)
        self.assertEqual([c.competitor.id for c in pool.candidates], [3, 2, 1])
        self.assertEqual(pool.fail_histogram["gender_mismatch"], 1)
        self.assertEqual(pool.fail_histogram["dob_missing"], 1)

    def test_youngest_male_forces_male_filter(self) -> None:
        category = _category(
            name="Youngest Boy",
            category_type="youngest_male",
            criteria=CriteriaSet(gender="F"),
        )
        self.assertEqual(effective_criteria(category).gender, "M")

        competitors = [
            CompetitorSnapshot(id=1, rank=5, gender="M", dob=date(2010, 1, 1)),
            CompetitorSnapshot(id=2, rank=2, gender="M", dob=date(2010, 1, 1)),
            CompetitorSnapshot(id=3, rank=9, gender="M", dob=date(2008, 6, 1)),
            CompetitorSnapshot(id=4, rank=1, gender="F", dob=date(2015, 1, 1)),
            CompetitorSnapshot(id=5, rank=3, dob=date(2016, 1, 1)),
        ]
        pool = build_pool(category, competitors, ExclusivityTracker(), RULES, ON_DATE)
        self.assertEqual([c.competitor.id for c in pool.candidates], [2, 1, 3])
        self.assertEqual(pool.first().competitor.id, 2)
        self.assertEqual(pool.fail_histogram["gender_mismatch"], 1)
        self.assertEqual(pool.fail_histogram["gender_missing"], 1)

    def test_rank_ties_fall_back_to_rating_then_name(self) -> None:
        competitors = [
            CompetitorSnapshot(id=1, rank=4, name="Zed", rating=None),
            CompetitorSnapshot(id=2, rank=4, name="Amy", rating=1500),
            CompetitorSnapshot(id=3, rank=4, name="Bob", rating=1500),
            CompetitorSnapshot(id=4, rank=4, name="Cal", rating=1600),
        ]
        ordered = sorted(competitors, key=compare_by_rank)
        self.assertEqual([c.id for c in ordered], [4, 2, 3, 1])
        rank_only = sorted(competitors, key=lambda c: compare_by_rank(c, "rank_only"))
        self.assertEqual([c.id for c in rank_only], [1, 2, 3, 4])

    def test_after_count_excludes_claimed(self) -> None:
        category = _category()
        competitors = [CompetitorSnapshot(id=i, rank=i) for i in (1, 2, 3)]
        tracker = ExclusivityTracker()
        tracker.claim(1, is_main=True)
        pool = build_pool(category, competitors, tracker, RULES, ON_DATE)
        self.assertEqual((pool.before_count, pool.after_count), (3, 2))
        self.assertEqual([c.competitor.id for c in pool.blocked], [1])


if __name__ == "__main__":
    unittest.main()
