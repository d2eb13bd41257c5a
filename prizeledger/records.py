"""Immutable value objects returned by the ledger's read operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class PrizeRecord:
    """Snapshot of one prize table entry.

    Attributes
    ----------
    payout_amount : int
        Token amount paid when this prize is drawn.
    weight : int
        Share of the 10000-unit draw scale.
    active : bool
        Inactive prizes are skipped by the draw walk.
    """

    payout_amount: int
    weight: int
    active: bool = True


@dataclass(frozen=True)
class PlayerStatsRecord:
    """Lifetime counters for a single participant."""

    tickets_bought: int = 0
    total_winnings: int = 0


@dataclass(frozen=True)
class DrawHistoryEntry:
    """One drawn ticket as stored in the history log.

    Attributes
    ----------
    player : str
        Identity that bought the ticket.
    payout_amount : int
        Tokens paid for the ticket; ``0`` for a losing draw.
    prize_index : Optional[int]
        Index of the winning prize, ``None`` for a losing draw.
    timestamp : int
        Ledger clock value (seconds) at which the draw happened.
    roll : int
        Value in ``[0, DRAW_SCALE)`` the prize table was walked with.
    seed_digest : str
        Hex SHA-256 digest the roll was reduced from.
    """

    player: str
    payout_amount: int
    prize_index: Optional[int]
    timestamp: int
    roll: int
    seed_digest: str

    @property
    def won(self) -> bool:
        return self.prize_index is not None


@dataclass(frozen=True)
class LedgerNotification:
    """Observable event emitted after a mutating call commits."""

    name: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    timestamp: int = 0


__all__ = [
    "PrizeRecord",
    "PlayerStatsRecord",
    "DrawHistoryEntry",
    "LedgerNotification",
]
