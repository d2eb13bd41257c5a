from __future__ import annotations

import sys

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext

from prizeledger.db.engine import make_engine
from prizeledger.db.schema import describe_ledger_state
from prizeledger.models import Base


def _print_ops(ops, indent: int = 0) -> None:
    prefix = "  " * indent
    for op in ops:
        print(f"{prefix}- {op}")
        sub_ops = getattr(op, "ops", None)
        if sub_ops:
            _print_ops(sub_ops, indent + 1)


def main() -> int:
    """Compare the live schema with the models; exit 1 on drift, 2 on error."""
    engine = make_engine()
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            context = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            upgrade_ops = ag_api.produce_migrations(context, Base.metadata).upgrade_ops
            if upgrade_ops is None:
                print(f"Schema drift check: ERROR for {url_display}: missing upgrade ops.")
                return 2
            if not upgrade_ops.is_empty():
                print(f"Schema drift check: FAILED for {url_display}. Differences detected:")
                _print_ops(upgrade_ops.ops or [])
                return 1

            print(describe_ledger_state(connection))
    except Exception as exc:
        print(f"Schema drift check: ERROR for {url_display}: {exc}", file=sys.stderr)
        return 2
    print(f"Schema drift check: OK (no differences) for {url_display}.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
