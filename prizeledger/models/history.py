"""Append-only draw history."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column

from ..errors import IndexOutOfRange
from ..records import DrawHistoryEntry
from .base import Base
from .types import ID_TYPE, Uint256


class DrawRecord(Base):
    """Immutable record of one drawn ticket, written exactly once per ticket."""

    __tablename__ = "draw_history"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Surrogate primary key."""

    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    """Chronological position in the history (0-based)."""

    player: Mapped[str] = mapped_column(String(255), nullable=False)
    """Identity that bought the ticket."""

    payout_amount: Mapped[int] = mapped_column(Uint256, nullable=False)
    """Tokens paid for the ticket, ``0`` when nothing was won."""

    prize_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Index of the winning prize, or ``None`` for a losing draw."""

    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    """Ledger clock (unix seconds) at which the draw happened."""

    roll: Mapped[int] = mapped_column(Integer, nullable=False)
    """Value in ``[0, DRAW_SCALE)`` used to walk the prize table."""

    seed_digest: Mapped[str] = mapped_column(String(64), nullable=False)
    """Hex SHA-256 digest the roll was derived from; chains into the next draw."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("sequence", name="uq_draw_history_sequence"),
        Index("ix_draw_history_player", "player"),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<DrawRecord(sequence={self.sequence}, player={self.player}, "
            f"prize_index={self.prize_index}, payout_amount={self.payout_amount})>"
        )

    def to_record(self) -> DrawHistoryEntry:
        return DrawHistoryEntry(
            player=self.player,
            payout_amount=self.payout_amount,
            prize_index=self.prize_index,
            timestamp=self.timestamp,
            roll=self.roll,
            seed_digest=self.seed_digest,
        )

    @classmethod
    def count(cls, session: Session) -> int:
        return session.scalar(select(func.count(cls.id))) or 0

    @classmethod
    def latest(cls, session: Session) -> Optional["DrawRecord"]:
        return session.scalars(
            select(cls).order_by(cls.sequence.desc()).limit(1)
        ).first()

    @classmethod
    def get_by_index(cls, session: Session, index: int) -> "DrawRecord":
        """Return the history entry at ``index`` or raise :class:`IndexOutOfRange`."""
        record: Optional[DrawRecord] = None
        if index >= 0:
            record = session.scalar(select(cls).where(cls.sequence == index))
        if record is None:
            raise IndexOutOfRange("history", index, cls.count(session))
        return record

    @classmethod
    def append(
        cls,
        session: Session,
        *,
        player: str,
        payout_amount: int,
        prize_index: Optional[int],
        timestamp: int,
        roll: int,
        seed_digest: str,
    ) -> "DrawRecord":
        record = cls(
            sequence=cls.count(session),
            player=player,
            payout_amount=payout_amount,
            prize_index=prize_index,
            timestamp=timestamp,
            roll=roll,
            seed_digest=seed_digest,
        )
        session.add(record)
        session.flush()
        return record


__all__ = ["DrawRecord"]
