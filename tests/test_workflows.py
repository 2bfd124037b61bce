from __future__ import annotations

import unittest
from datetime import date
from unittest.mock import patch

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from prizemgr.allocation.diagnosis import ReasonCode
from prizemgr.allocation.errors import AuthorizationError, VersionConflictError
from prizemgr.allocation.rca import RcaStatus
from prizemgr.allocation.scheduler import Decision
from prizemgr.models import (
    Allocation,
    AllocationVersion,
    Base,
    Category,
    Competitor,
    Conflict,
    Organizer,
    Prize,
    RuleConfig,
    Tournament,
)
from prizemgr.workflows import (
    accept_suggested_resolution,
    build_debug_report,
    export_rca,
    finalize_allocation,
    get_latest_allocations,
    preview_allocation,
    record_manual_overrides,
)


class _DatabaseTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self) -> None:
        self.engine.dispose()

    def _seed(self, session, slug: str = "kerala-open"):
        owner = Organizer(email=f"Owner@{slug}.example", name="Owner")
        session.add(owner)
        session.flush()

        tournament = Tournament(
            slug=slug, title="Kerala Open", owner=owner, start_date=date(2024, 6, 1)
        )
        session.add(tournament)
        session.flush()

        competitors = {
            "c1": Competitor(tournament=tournament, rank=1, name="Anand", rating=2300, gender="M"),
            "c2": Competitor(tournament=tournament, rank=2, name="Bhakti", rating=1750, gender="F"),
            "c3": Competitor(tournament=tournament, rank=3, name="Chitra", rating=0, gender="girl"),
            "c4": Competitor(tournament=tournament, rank=4, name="Dev", rating=1600, gender="M"),
        }
        session.add_all(competitors.values())

        open_category = Category(tournament=tournament, name="Open", is_main=True, order_idx=0)
        below = Category(
            tournament=tournament,
            name="Below 1800",
            order_idx=1,
            criteria_json={"max_rating": 1800},
        )
        female = Category(
            tournament=tournament,
            name="Best Female",
            order_idx=2,
            criteria_json={"gender": "F"},
        )
        session.add_all([open_category, below, female])
        session.flush()

        prizes = {
            "open1": Prize(category=open_category, place=1, cash_amount=5000),
            "open2": Prize(category=open_category, place=2, cash_amount=3000),
            "below1": Prize(category=below, place=1, has_trophy=True),
            "female1": Prize(category=female, place=1, has_medal=True),
        }
        session.add_all(prizes.values())
        session.flush()
        return owner, tournament, competitors, prizes

    @staticmethod
    def _count(session, model) -> int:
        return session.scalar(select(func.count()).select_from(model))


class PreviewWorkflowTests(_DatabaseTestCase):
    def test_preview_assigns_every_prize(self) -> None:
        with self.Session.begin() as session:
            _, tournament, c, p = self._seed(session)
            preview = preview_allocation(session, tournament)

            self.assertEqual(
                preview.winners(),
                {
                    p["open1"].id: c["c1"].id,
                    p["open2"].id: c["c2"].id,
                    p["below1"].id: c["c4"].id,
                    p["female1"].id: c["c3"].id,
                },
            )
            self.assertEqual(len(preview.coverage), 4)
            self.assertEqual(preview.unfilled, [])
            self.assertEqual(self._count(session, Allocation), 0)

    def test_rules_override_and_stored_config(self) -> None:
        with self.Session.begin() as session:
            _, tournament, c, p = self._seed(session)

            preview = preview_allocation(
                session, tournament, rules_override={"allow_unrated_in_rating": "yes"}
            )
            winners = preview.winners()
            self.assertEqual(winners[p["below1"].id], c["c3"].id)
            self.assertNotIn(p["female1"].id, winners)
            entry = next(e for e in preview.coverage if e.prize_id == p["female1"].id)
            self.assertIs(entry.reason_code, ReasonCode.BLOCKED_BY_ONE_PRIZE_POLICY)

            session.add(RuleConfig(tournament=tournament, multi_prize_policy="unlimited"))
            session.flush()
            session.refresh(tournament)
            winners = preview_allocation(session, tournament).winners()
            self.assertEqual(winners[p["female1"].id], c["c2"].id)
            self.assertEqual(winners[p["below1"].id], c["c2"].id)

    def test_debug_report(self) -> None:
        with self.Session.begin() as session:
            _, tournament, _, _ = self._seed(session)
            preview = preview_allocation(
                session, tournament, rules_override={"allow_unrated_in_rating": True}
            )
            report = build_debug_report(preview)

            self.assertEqual(report.total_prizes, 4)
            self.assertEqual(report.total_filled, 3)
            female = report.categories[-1]
            self.assertEqual((female.filled, female.unfilled), (0, 1))
            self.assertEqual(female.reason_codes["BLOCKED_BY_ONE_PRIZE_POLICY"], 1)
            self.assertEqual(report.suspicious, [])
            self.assertEqual(report.to_json()["total_filled"], 3)


class FinalizeWorkflowTests(_DatabaseTestCase):
    def test_successive_commits_increment_version(self) -> None:
        with self.Session.begin() as session:
            owner, tournament, c, p = self._seed(session)
            preview = preview_allocation(session, tournament)

            first = finalize_allocation(session, tournament, preview, owner)
            self.assertEqual((first.version, first.count), (1, 4))
            self.assertEqual(tournament.status, "finalized")

            second_decisions = [
                {"prize_id": p["open1"].id, "competitor_id": c["c2"].id, "is_manual": True},
                Decision(p["open2"].id, c["c1"].id, ("manual_override",), is_manual=True),
            ]
            second = finalize_allocation(session, tournament, second_decisions, owner)
            self.assertEqual((second.version, second.count), (2, 2))

            latest = get_latest_allocations(session, tournament.id)
            self.assertEqual(latest.version, 2)
            self.assertEqual(
                latest.winners(), {p["open1"].id: c["c2"].id, p["open2"].id: c["c1"].id}
            )
            self.assertEqual(latest.rows[0].reason_codes, ["manual_override"])
            self.assertEqual(self._count(session, Allocation), 6)

    def test_identical_commits_still_get_distinct_versions(self) -> None:
        with self.Session.begin() as session:
            owner, tournament, c, p = self._seed(session)
            decisions = [Decision(p["open1"].id, c["c1"].id, ("auto",))]
            versions = [
                finalize_allocation(session, tournament, decisions, owner).version
                for _ in range(2)
            ]
            self.assertEqual(versions, [1, 2])

    def test_no_versions_yet(self) -> None:
        with self.Session.begin() as session:
            _, tournament, _, _ = self._seed(session)
            latest = get_latest_allocations(session, tournament.id)
            self.assertIsNone(latest.version)
            self.assertEqual(latest.rows, [])

    def test_validation_happens_before_any_write(self) -> None:
        with self.Session.begin() as session:
            owner, tournament, c, p = self._seed(session)
            other_owner, other, oc, op = self._seed(session, slug="delhi-open")
            stranger = Organizer(email="stranger@example.com")
            session.add(stranger)
            session.flush()
            good = [Decision(p["open1"].id, c["c1"].id)]

            with self.assertRaises(ValueError):
                finalize_allocation(session, tournament, [], owner)
            with self.assertRaises(AuthorizationError):
                finalize_allocation(session, tournament, good, stranger)
            with self.assertRaises(AuthorizationError):
                finalize_allocation(session, tournament, good, other_owner)
            with self.assertRaises(ValueError):
                finalize_allocation(
                    session, tournament, [Decision(op["open1"].id, c["c1"].id)], owner
                )
            with self.assertRaises(ValueError):
                finalize_allocation(
                    session, tournament, [Decision(p["open1"].id, oc["c1"].id)], owner
                )
            with self.assertRaises(ValueError):
                finalize_allocation(
                    session,
                    tournament,
                    [Decision(p["open1"].id, c["c1"].id), Decision(p["open1"].id, c["c2"].id)],
                    owner,
                )

            self.assertEqual(self._count(session, AllocationVersion), 0)
            self.assertEqual(self._count(session, Allocation), 0)
            self.assertEqual(tournament.status, "draft")

    def test_master_may_finalize_any_tournament(self) -> None:
        with self.Session.begin() as session:
            _, tournament, c, p = self._seed(session)
            master = Organizer(email="master@example.com", role="master")
            session.add(master)
            session.flush()
            result = finalize_allocation(
                session, tournament, [Decision(p["open1"].id, c["c1"].id)], master
            )
            self.assertEqual(result.version, 1)
            self.assertEqual(get_latest_allocations(session, tournament.id).rows[0].decided_by, master.id)

    def test_version_collision_is_retryable_and_leaves_nothing_behind(self) -> None:
        with self.Session.begin() as session:
            owner, tournament, c, p = self._seed(session)
            decisions = [Decision(p["open1"].id, c["c1"].id)]
            finalize_allocation(session, tournament, decisions, owner)

            with patch.object(AllocationVersion, "latest_version", return_value=0):
                with self.assertRaises(VersionConflictError) as ctx:
                    finalize_allocation(
                        session, tournament, [Decision(p["open2"].id, c["c2"].id)], owner
                    )
            self.assertTrue(ctx.exception.retryable)
            self.assertEqual(ctx.exception.version, 1)

            self.assertEqual(self._count(session, AllocationVersion), 1)
            self.assertEqual(self._count(session, Allocation), 1)

            retry = finalize_allocation(
                session, tournament, [Decision(p["open2"].id, c["c2"].id)], owner
            )
            self.assertEqual(retry.version, 2)


class ConflictWorkflowTests(_DatabaseTestCase):
    def test_ineligible_override_opens_conflict(self) -> None:
        with self.Session.begin() as session:
            _, tournament, c, p = self._seed(session)
            preview, conflicts = record_manual_overrides(
                session, tournament, {p["below1"].id: c["c1"].id}
            )

            winners = preview.winners()
            self.assertEqual(winners[p["below1"].id], c["c1"].id)
            self.assertEqual(winners[p["open1"].id], c["c2"].id)

            self.assertEqual(len(conflicts), 1)
            conflict = conflicts[0]
            self.assertEqual(conflict.type, "ineligible_award")
            self.assertEqual(conflict.reasons, ["rating_above_max"])
            self.assertEqual(conflict.impacted_competitors, [c["c1"].id])
            self.assertEqual(conflict.suggested, (p["below1"].id, c["c4"].id))
            self.assertTrue(conflict.is_open)

    def test_duplicate_override_keeps_first_prize(self) -> None:
        with self.Session.begin() as session:
            _, tournament, c, p = self._seed(session)
            _, conflicts = record_manual_overrides(
                session,
                tournament,
                {p["female1"].id: c["c2"].id, p["open2"].id: c["c2"].id},
            )

            self.assertEqual(len(conflicts), 1)
            conflict = conflicts[0]
            self.assertEqual(conflict.type, "duplicate_award")
            self.assertEqual(conflict.impacted_prizes, [p["open2"].id, p["female1"].id])
            self.assertEqual(conflict.suggested_prize_id, p["female1"].id)
            self.assertEqual(conflict.suggested_competitor_id, c["c3"].id)

    def test_accept_suggestion_resolves_once(self) -> None:
        with self.Session.begin() as session:
            _, tournament, c, p = self._seed(session)
            _, conflicts = record_manual_overrides(
                session, tournament, {p["below1"].id: c["c1"].id}
            )
            decision = accept_suggested_resolution(session, conflicts[0])

            self.assertEqual(decision.prize_id, p["below1"].id)
            self.assertEqual(decision.competitor_id, c["c4"].id)
            self.assertEqual(decision.reason_codes, ("suggested_resolution",))
            self.assertEqual(conflicts[0].status, "resolved")
            self.assertIsNotNone(conflicts[0].resolved_at)
            with self.assertRaises(ValueError):
                accept_suggested_resolution(session, conflicts[0])

    def test_priority_tie_is_opened_once(self) -> None:
        with self.Session.begin() as session:
            _, tournament, c, p = self._seed(session)
            p["female1"].category.order_idx = p["below1"].category.order_idx
            session.flush()

            preview = preview_allocation(session, tournament)
            self.assertEqual(len(preview.ties), 1)
            self.assertEqual(preview.ties[0].impacted_competitors, (c["c2"].id,))

            _, conflicts = record_manual_overrides(session, tournament, {})
            self.assertEqual([conflict.type for conflict in conflicts], ["tie"])
            tie = conflicts[0]
            self.assertEqual(tie.impacted_prizes, [p["below1"].id, p["female1"].id])
            self.assertEqual(tie.reasons, ["identical_prize_priority"])
            self.assertIsNone(tie.suggested_prize_id)

            _, again = record_manual_overrides(session, tournament, {})
            self.assertEqual(again, [])
            self.assertEqual(len(Conflict.open_for_tournament(session, tournament.id)), 1)

    def test_finalize_resolves_open_conflicts(self) -> None:
        with self.Session.begin() as session:
            owner, tournament, c, p = self._seed(session)
            preview, conflicts = record_manual_overrides(
                session, tournament, {p["below1"].id: c["c1"].id}
            )
            self.assertEqual(len(Conflict.open_for_tournament(session, tournament.id)), 1)

            finalize_allocation(session, tournament, preview, owner)

            self.assertEqual(Conflict.open_for_tournament(session, tournament.id), [])
            self.assertEqual(conflicts[0].status, "resolved")


class RcaWorkflowTests(_DatabaseTestCase):
    def test_rca_classifies_each_prize(self) -> None:
        with self.Session.begin() as session:
            owner, tournament, c, p = self._seed(session)
            final = [
                Decision(p["open1"].id, c["c1"].id, ("auto",)),
                Decision(p["open2"].id, c["c2"].id, ("auto",)),
                Decision(p["below1"].id, c["c3"].id, ("manual_override",), is_manual=True),
            ]
            finalize_allocation(session, tournament, final, owner)

            rows = {row.prize_id: row for row in export_rca(session, tournament)}

            self.assertEqual(rows[p["open1"].id].status, RcaStatus.MATCH)
            self.assertEqual(rows[p["open2"].id].status, RcaStatus.MATCH)

            overridden = rows[p["below1"].id]
            self.assertEqual(overridden.status, RcaStatus.OVERRIDDEN)
            self.assertEqual(overridden.auto_winner_id, c["c4"].id)
            self.assertEqual(overridden.final_winner_name, "Chitra")
            self.assertEqual(overridden.override_reason, "manual_override")

            dropped = rows[p["female1"].id]
            self.assertEqual(dropped.status, RcaStatus.NO_ELIGIBLE_WINNER)
            self.assertEqual(dropped.auto_winner_id, c["c3"].id)
            self.assertIsNone(dropped.final_winner_id)
            self.assertEqual(dropped.to_json()["status"], "NO_ELIGIBLE_WINNER")

            self.assertEqual(self._count(session, AllocationVersion), 1)


if __name__ == "__main__":
    unittest.main()
