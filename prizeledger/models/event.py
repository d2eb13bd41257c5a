from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, DateTime, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from ..records import LedgerNotification
from .base import Base
from .types import ID_TYPE

# Payload keys holding token or currency amounts.
_INT_FIELDS = frozenset(
    {"amount", "token_float", "old_price", "new_price", "unit_price"}
)


class LedgerEvent(Base):
    """Append-only log of notifications emitted by mutating operations."""

    __tablename__ = "ledger_events"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, index=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # Amounts are stored as strings; JSON numbers lose precision past 2**53.
    payload: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_record(self) -> LedgerNotification:
        payload = {}
        for key, value in (self.payload or {}).items():
            if isinstance(value, str) and key in _INT_FIELDS:
                payload[key] = int(value)
            else:
                payload[key] = value
        return LedgerNotification(name=self.name, payload=payload, timestamp=self.timestamp)

    @classmethod
    def record(
        cls,
        session: Session,
        name: str,
        payload: dict[str, Any],
        *,
        timestamp: int,
    ) -> "LedgerEvent":
        stored = {
            key: str(value) if key in _INT_FIELDS and value is not None else value
            for key, value in payload.items()
        }
        event = cls(name=name, payload=stored, timestamp=timestamp)
        session.add(event)
        return event

    @classmethod
    def since(cls, session: Session, last_id: int = 0) -> list["LedgerEvent"]:
        return list(
            session.scalars(
                select(cls).where(cls.id > last_id).order_by(cls.id.asc())
            ).all()
        )


__all__ = ["LedgerEvent"]
