"""Checks run against a migrated ledger database."""

from __future__ import annotations

from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session

from ..errors import LedgerNotInitialized
from ..models import Base, LedgerState


def missing_tables(bind: Engine | Connection) -> list[str]:
    """Return the model tables absent from the database, sorted by name."""
    existing = set(inspect(bind).get_table_names())
    return sorted(name for name in Base.metadata.tables if name not in existing)


def describe_ledger_state(bind: Engine | Connection) -> str:
    """Summarize the ledger state row, or say that it is not initialized yet."""
    with Session(bind=bind) as session:
        try:
            state = LedgerState.load(session)
        except LedgerNotInitialized:
            return "Ledger state: not initialized (run scripts/seed_dev.py)."
        return (
            f"Ledger state: unit price {state.unit_price}, "
            f"{state.total_tickets_sold} tickets sold, float {state.token_float}"
        )


__all__ = ["describe_ledger_state", "missing_tables"]
