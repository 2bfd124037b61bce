from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import func, inspect, select, table

from prizemgr.db.engine import make_engine

ALLOCATION_TABLES = (
    "organizers",
    "tournaments",
    "rule_configs",
    "competitors",
    "categories",
    "prizes",
    "allocation_versions",
    "allocations",
    "conflicts",
)


def upgrade_db(target_revision: str = "head") -> None:
    """Migrate the configured database to ``target_revision``."""
    project_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def report_tables() -> list[str]:
    """Print row counts of the allocation tables; return any that are missing."""
    engine = make_engine()
    existing = set(inspect(engine).get_table_names())
    missing = [name for name in ALLOCATION_TABLES if name not in existing]
    with engine.connect() as conn:
        for name in ALLOCATION_TABLES:
            if name in existing:
                count = conn.scalar(select(func.count()).select_from(table(name)))
                print(f"{name:<22} {count} rows")
    for name in missing:
        print(f"{name:<22} MISSING")
    return missing


def main() -> int:
    upgrade_db()
    return 1 if report_tables() else 0


if __name__ == "__main__":
    raise SystemExit(main())
