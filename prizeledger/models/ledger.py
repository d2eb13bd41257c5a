"""Dual-currency accounting state of the ledger."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Integer, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from ..constants import LEDGER_STATE_ID
from ..errors import (
    InsufficientFloat,
    InsufficientPrizePool,
    InvalidPrice,
    InvalidTicketCount,
    LedgerNotInitialized,
    PaymentMismatch,
)
from .base import Base
from .types import Uint256


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class LedgerState(Base):
    """Singleton row holding the ledger's balances and counters.

    Two balances are tracked independently: ``revenue_balance`` in the
    payment currency, which only grows on purchase and is drained to zero by
    an admin withdrawal, and ``token_float`` in the prize token, which grows on
    admin deposits and shrinks on payouts. ``token_float`` is checked before
    each debit so it never goes negative.
    """

    __tablename__ = "ledger_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=LEDGER_STATE_ID)
    unit_price: Mapped[int] = mapped_column(Uint256, nullable=False)
    total_tickets_sold: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    revenue_balance: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    token_float: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    draw_nonce: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    """Per-ticket counter mixed into the draw entropy; never reused."""

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

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<LedgerState(unit_price={self.unit_price}, "
            f"total_tickets_sold={self.total_tickets_sold}, "
            f"revenue_balance={self.revenue_balance}, token_float={self.token_float})>"
        )

    @classmethod
    def load(cls, session: Session, *, for_update: bool = False) -> "LedgerState":
        """Return the ledger state row.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        for_update : bool, default: False
            Lock the row (``SELECT ... FOR UPDATE``) on backends that support it.

        Raises
        ------
        LedgerNotInitialized
            If :func:`prizeledger.workflows.initialize_ledger` has not run yet.
        """
        stmt = select(cls).where(cls.id == LEDGER_STATE_ID)
        if for_update:
            stmt = stmt.with_for_update()
        state: Optional[LedgerState] = session.scalar(stmt)
        if state is None:
            raise LedgerNotInitialized("Ledger state has not been initialized")
        return state

    def expected_payment(self, ticket_count: int) -> int:
        return self.unit_price * ticket_count

    def record_purchase(self, ticket_count: int, paid_amount: int) -> None:
        """Validate a purchase and book it.

        Raises
        ------
        InvalidTicketCount
            If ``ticket_count`` is zero (or negative).
        PaymentMismatch
            If ``paid_amount`` is not exactly ``unit_price * ticket_count``.
        """
        self.validate_purchase(ticket_count, paid_amount)
        self.total_tickets_sold += ticket_count
        self.revenue_balance += paid_amount

    def validate_purchase(self, ticket_count: int, paid_amount: int) -> None:
        if not _is_int(ticket_count):
            raise InvalidTicketCount(f"Ticket count must be an integer, got {ticket_count!r}")
        if ticket_count <= 0:
            raise InvalidTicketCount("Must buy at least 1 ticket")
        expected = self.expected_payment(ticket_count)
        if not _is_int(paid_amount) or paid_amount != expected:
            raise PaymentMismatch(expected, paid_amount)

    def ensure_solvent(self, floor: int) -> None:
        """Raise :class:`InsufficientPrizePool` when the float is below ``floor``."""
        if self.token_float < floor:
            raise InsufficientPrizePool(self.token_float, floor)

    def try_settle(self, payout_amount: int) -> None:
        """Debit ``payout_amount`` from the float.

        The caller is responsible for instructing the token transfer; the
        debit happens first so a concurrent reader never sees a float that
        still includes tokens already promised to a player.
        """
        if payout_amount > self.token_float:
            raise InsufficientFloat(self.token_float, payout_amount)
        self.token_float -= payout_amount

    def credit_float(self, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        self.token_float += amount

    def drain_revenue(self) -> int:
        """Zero the revenue balance and return what it held."""
        amount = self.revenue_balance
        self.revenue_balance = 0
        return amount

    def change_unit_price(self, new_price: int) -> int:
        """Set a new unit price and return the previous one."""
        if new_price <= 0:
            raise InvalidPrice("Price must be greater than 0")
        old_price = self.unit_price
        self.unit_price = new_price
        return old_price

    def take_nonce(self) -> int:
        """Return the current draw nonce and advance it."""
        nonce = self.draw_nonce
        self.draw_nonce += 1
        return nonce


__all__ = ["LedgerState"]
