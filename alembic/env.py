from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from dotenv import load_dotenv
from sqlalchemy.engine import Connection

# Ensure project root is on path and load environment variables
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))
load_dotenv(ROOT_DIR / ".env")

from prizeledger.db.engine import DEFAULT_SQLITE_URL, make_engine  # noqa: E402
from prizeledger.db.utils import resolve_sqlite_url  # noqa: E402
from prizeledger.models import Base  # noqa: E402 - import populates metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

env_url = os.getenv("DB_URL")
DATABASE_URL = resolve_sqlite_url(env_url, ROOT_DIR) if env_url else DEFAULT_SQLITE_URL

# Percent signs need to be escaped due to ConfigParser interpolation rules.
config.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))


def _configure(connection: Connection | None = None) -> None:
    options = dict(target_metadata=target_metadata, compare_type=True)
    if connection is None:
        context.configure(
            url=DATABASE_URL,
            literal_binds=True,
            dialect_opts={"paramstyle": "named"},
            **options,
        )
    else:
        context.configure(
            connection=connection,
            # SQLite cannot ALTER constraints in place.
            render_as_batch=connection.engine.dialect.name == "sqlite",
            **options,
        )


if context.is_offline_mode():
    _configure()
    with context.begin_transaction():
        context.run_migrations()
else:
    with make_engine(database_url=DATABASE_URL).connect() as connection:
        _configure(connection)
        with context.begin_transaction():
            context.run_migrations()
