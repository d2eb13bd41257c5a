from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, DateTime, String, UniqueConstraint, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from ..records import PlayerStatsRecord
from .base import Base
from .types import ID_TYPE, Uint256


class PlayerStats(Base):
    """Per-participant counters, created lazily on the first purchase."""

    __tablename__ = "player_stats"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    player: Mapped[str] = mapped_column(String(255), nullable=False)
    tickets_bought: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_winnings: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (UniqueConstraint("player", name="uq_player_stats_player"),)

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<PlayerStats(player={self.player}, tickets_bought={self.tickets_bought}, "
            f"total_winnings={self.total_winnings})>"
        )

    def to_record(self) -> PlayerStatsRecord:
        return PlayerStatsRecord(
            tickets_bought=self.tickets_bought,
            total_winnings=self.total_winnings,
        )

    def record_ticket(self, payout_amount: int) -> None:
        self.tickets_bought += 1
        self.total_winnings += payout_amount

    @classmethod
    def get_by_player(cls, session: Session, player: str) -> Optional["PlayerStats"]:
        return session.scalar(select(cls).where(cls.player == player))

    @classmethod
    def get_or_create(cls, session: Session, player: str) -> "PlayerStats":
        stats = cls.get_by_player(session, player)
        if stats is None:
            stats = cls(player=player, tickets_bought=0, total_winnings=0)
            session.add(stats)
            session.flush()
        return stats


__all__ = ["PlayerStats"]
