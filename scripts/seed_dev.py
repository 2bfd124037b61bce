from datetime import date

from prizemgr.db.engine import get_sessionmaker, make_engine
from prizemgr.models import (
    Base,
    Category,
    Competitor,
    Organizer,
    Prize,
    RuleConfig,
    Tournament,
)
from prizemgr.workflows import build_debug_report, preview_allocation

# rank, name, rating, dob, gender, state
PLAYERS = [
    (1, "Arjun Menon", 2310, "1988-04-12", "M", "Kerala"),
    (2, "Divya Nair", 2105, "1999-11-02", "F", "Kerala"),
    (3, "Karthik Rao", 1985, "2006", "M", "Karnataka"),
    (4, "Lakshmi Iyer", 1790, "2011-07-19", "F", "Tamil Nadu"),
    (5, "Rahul Das", None, "2013-01-30", "M", "Kerala"),
    (6, "Sneha Pillai", 1640, "2012-09-14", "F", "Kerala"),
    (7, "Vivek Kumar", 1555, None, None, None),
    (8, "Anjali Thomas", None, "2014", "F", "Kerala"),
    (9, "Manoj Varghese", 1720, "1960-03-03", "M", "Kerala"),
    (10, "Priya Joseph", 1480, "2015-05-21", "girl", "Goa"),
]


def main() -> None:
    """Reset the development database and load a demo tournament."""
    engine = make_engine()

    # SQLite cannot drop tables with foreign keys in arbitrary order while
    # enforcement is on.
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=conn)
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    with Session.begin() as session:
        owner = Organizer(email="arbiter@example.com", name="Chief Arbiter")
        master = Organizer(email="master@example.com", name="Federation", role="master")
        session.add_all([owner, master])
        session.flush()

        tournament = Tournament(
            slug="kerala-open-2024",
            title="Kerala Open Rapid 2024",
            owner=owner,
            start_date=date(2024, 6, 1),
        )
        session.add(tournament)
        session.add(RuleConfig(tournament=tournament, allow_missing_dob_for_age=False))
        session.flush()

        for rank, name, rating, dob, gender, state in PLAYERS:
            session.add(
                Competitor(
                    tournament=tournament,
                    rank=rank,
                    name=name,
                    rating=rating,
                    dob=dob,
                    gender=gender,
                    state=state,
                )
            )

        main_category = Category(
            tournament=tournament,
            name="Open",
            is_main=True,
            order_idx=0,
            prizes=[
                Prize(place=1, cash_amount=25000, has_trophy=True),
                Prize(place=2, cash_amount=15000, has_trophy=True),
                Prize(place=3, cash_amount=10000, has_trophy=True),
            ],
        )
        below_1800 = Category(
            tournament=tournament,
            name="Below 1800",
            order_idx=1,
            criteria_json={"max_rating": 1800},
            prizes=[Prize(place=1, cash_amount=3000), Prize(place=2, cash_amount=2000)],
        )
        under_13 = Category(
            tournament=tournament,
            name="Under 13",
            order_idx=2,
            criteria_json={"max_age": 13},
            prizes=[Prize(place=1, has_trophy=True), Prize(place=2, has_medal=True)],
        )
        best_kerala = Category(
            tournament=tournament,
            name="Best Kerala Player",
            order_idx=3,
            criteria_json={"allowed_states": ["Kerala"]},
            prizes=[Prize(place=1, cash_amount=2000)],
        )
        veterans = Category(
            tournament=tournament,
            name="Veterans 60+",
            order_idx=4,
            criteria_json={"min_age": 60},
            prizes=[Prize(place=1, has_trophy=True)],
        )
        youngest_girl = Category(
            tournament=tournament,
            name="Youngest Girl",
            order_idx=5,
            category_type="youngest_female",
            prizes=[Prize(place=1, has_trophy=True)],
        )
        session.add_all(
            [main_category, below_1800, under_13, best_kerala, veterans, youngest_girl]
        )
        session.flush()

        preview = preview_allocation(session, tournament)
        report = build_debug_report(preview)

    print(f"Seeded tournament '{tournament.slug}' with {len(PLAYERS)} players.")
    print(f"Preview fills {report.total_filled} of {report.total_prizes} prizes.")
    for entry in preview.coverage:
        winner = entry.winner_name or f"unfilled ({entry.reason_label})"
        print(f"  {entry.prize_label:<28} {winner}")


if __name__ == "__main__":
    main()
