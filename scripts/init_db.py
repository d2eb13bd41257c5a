from __future__ import annotations

import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

from prizeledger.db.engine import make_engine
from prizeledger.db.schema import describe_ledger_state, missing_tables


def upgrade_db(target_revision: str = "head") -> None:
    """Apply Alembic migrations up to the requested revision."""
    project_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def main() -> int:
    """Migrate to head, then verify the ledger tables; exit 1 if any is missing."""
    upgrade_db()
    engine = make_engine()
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        missing = missing_tables(engine)
        if missing:
            print(
                f"Ledger schema: INCOMPLETE for {url_display}, missing {', '.join(missing)}",
                file=sys.stderr,
            )
            return 1
        print(f"Ledger schema: OK for {url_display}")
        print(describe_ledger_state(engine))
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
