"""Ticketed prize-draw ledger."""

from .constants import DRAW_SCALE
from .errors import (
    IndexOutOfRange,
    InsufficientFloat,
    InsufficientPrizePool,
    InvalidAmount,
    InvalidPrice,
    InvalidPrize,
    InvalidTicketCount,
    LedgerError,
    LedgerNotInitialized,
    PaymentMismatch,
    TokenTransferError,
    Unauthorized,
)
from .records import (
    DrawHistoryEntry,
    LedgerNotification,
    PlayerStatsRecord,
    PrizeRecord,
)
from .service import PrizeLedger

__all__ = [
    "DRAW_SCALE",
    "DrawHistoryEntry",
    "IndexOutOfRange",
    "InvalidAmount",
    "InsufficientFloat",
    "InsufficientPrizePool",
    "InvalidPrice",
    "InvalidPrize",
    "InvalidTicketCount",
    "LedgerError",
    "LedgerNotInitialized",
    "LedgerNotification",
    "PaymentMismatch",
    "PlayerStatsRecord",
    "PrizeLedger",
    "PrizeRecord",
    "TokenTransferError",
    "Unauthorized",
]
