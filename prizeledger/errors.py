"""Exceptions raised by the prize ledger.

Every error is a synchronous rejection of the call that triggered it. The
surrounding transaction is rolled back, so a raised :class:`LedgerError`
always leaves the ledger exactly as it was before the call.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all ledger rejections."""


class Unauthorized(LedgerError, PermissionError):
    """A non-admin identity invoked an admin-gated operation."""

    def __init__(self, caller: str, operation: str) -> None:
        super().__init__(f"{caller!r} is not allowed to call {operation}")
        self.caller = caller
        self.operation = operation


class InvalidTicketCount(LedgerError, ValueError):
    """Zero tickets were requested."""


class PaymentMismatch(LedgerError, ValueError):
    """The paid amount differs from ``unit_price * ticket_count``."""

    def __init__(self, expected: int, paid: int) -> None:
        super().__init__(f"Incorrect payment amount: expected {expected}, got {paid}")
        self.expected = expected
        self.paid = paid


class InsufficientPrizePool(LedgerError):
    """The token float is below the solvency floor required to start a batch."""

    def __init__(self, token_float: int, floor: int) -> None:
        super().__init__(
            f"Insufficient prize pool: float {token_float} is below floor {floor}"
        )
        self.token_float = token_float
        self.floor = floor


class InsufficientFloat(LedgerError):
    """A single settlement would drive the token float negative."""

    def __init__(self, token_float: int, payout: int) -> None:
        super().__init__(
            f"Insufficient float: cannot pay {payout} from float {token_float}"
        )
        self.token_float = token_float
        self.payout = payout


class IndexOutOfRange(LedgerError, IndexError):
    """A prize or history index is outside ``[0, count)``."""

    def __init__(self, kind: str, index: int, count: int) -> None:
        super().__init__(f"Invalid {kind} index {index} (count is {count})")
        self.kind = kind
        self.index = index
        self.count = count


class InvalidPrice(LedgerError, ValueError):
    """The unit price must be strictly positive."""


class InvalidPrize(LedgerError, ValueError):
    """A prize record carries a weight above the draw scale or a negative amount."""


class InvalidAmount(LedgerError, ValueError):
    """A deposit amount must be strictly positive."""


class TokenTransferError(LedgerError):
    """The token collaborator rejected or failed a transfer."""


class LedgerNotInitialized(LedgerError):
    """No ledger state row exists yet; call ``initialize_ledger`` first."""


__all__ = [
    "LedgerError",
    "Unauthorized",
    "InvalidTicketCount",
    "PaymentMismatch",
    "InsufficientPrizePool",
    "InsufficientFloat",
    "IndexOutOfRange",
    "InvalidPrice",
    "InvalidPrize",
    "InvalidAmount",
    "TokenTransferError",
    "LedgerNotInitialized",
]
