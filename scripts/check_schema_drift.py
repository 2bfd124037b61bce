from __future__ import annotations

import sys

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext

from prizemgr.db.engine import make_engine
from prizemgr.models import Base


def _describe(ops, depth: int = 0) -> list[str]:
    lines = []
    for op in ops:
        lines.append(f"{'  ' * depth}- {op}")
        nested = getattr(op, "ops", None)
        if nested:
            lines.extend(_describe(nested, depth + 1))
    return lines


def main() -> int:
    """Compare the live database with the prizemgr models.

    Exit codes: 0 in sync, 1 drift found, 2 the check itself failed.
    """
    engine = make_engine()
    target = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            context = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "compare_server_default": True,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            upgrade_ops = ag_api.produce_migrations(context, Base.metadata).upgrade_ops
    except Exception as exc:
        print(f"[drift] {target}: check failed: {exc}", file=sys.stderr)
        return 2

    if upgrade_ops is None:
        print(f"[drift] {target}: check failed: no upgrade ops produced", file=sys.stderr)
        return 2
    if upgrade_ops.is_empty():
        print(f"[drift] {target}: allocation schema matches the models")
        return 0

    print(f"[drift] {target}: allocation schema differs from the models")
    print("\n".join(_describe(upgrade_ops.ops or [])))
    print("Generate a revision with: alembic revision --autogenerate -m '<message>'")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
