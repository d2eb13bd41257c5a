"""Serialized facade over the ledger workflows."""

from __future__ import annotations

import logging
import os
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from dotenv import load_dotenv
from sqlalchemy.orm import Session, sessionmaker

from . import workflows
from .identity import normalize_identity
from .prize_draw.engine import DrawOutcome
from .records import (
    DrawHistoryEntry,
    LedgerNotification,
    PlayerStatsRecord,
    PrizeRecord,
)
from .token.base import TokenLedger

logger = logging.getLogger(__name__)

Observer = Callable[[LedgerNotification], None]


def _unix_now() -> int:
    return int(time.time())


class PrizeLedger:
    """Ticketed prize-draw ledger.

    All operations share one re-entrant lock, so a purchase cycle (validation,
    every per-ticket draw and settlement, the winnings transfer and the
    commit) can never interleave with another call, and reads always see a
    committed snapshot. Each mutating call runs in its own transaction;
    observers are notified only after that transaction commits, once the lock
    has been released.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        token: TokenLedger,
        *,
        admin_identity: Optional[str] = None,
        ledger_identity: Optional[str] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        """Create a ledger bound to a database and a token collaborator.

        Parameters
        ----------
        session_factory : sessionmaker
            Factory producing sessions on the ledger database.
        token : TokenLedger
            Prize token collaborator acting as ``ledger_identity``.
        admin_identity : Optional[str], default: None
            Identity allowed to call admin operations. Falls back to the
            ``LEDGER_ADMIN_IDENTITY`` environment variable.
        ledger_identity : Optional[str], default: None
            The ledger's own account on the token ledger. Falls back to the
            ``LEDGER_IDENTITY`` environment variable.
        clock : Optional[Callable[[], int]], default: None
            Returns the current unix time in seconds; used for draw entropy
            and record timestamps.

        Raises
        ------
        ValueError
            If an identity is neither passed nor configured.
        """
        load_dotenv()
        admin_identity = admin_identity or os.getenv("LEDGER_ADMIN_IDENTITY")
        if not admin_identity:
            raise ValueError("Environment variable 'LEDGER_ADMIN_IDENTITY' is not set")
        ledger_identity = ledger_identity or os.getenv("LEDGER_IDENTITY")
        if not ledger_identity:
            raise ValueError("Environment variable 'LEDGER_IDENTITY' is not set")

        self._Session = session_factory
        self.token = token
        self.admin_identity = normalize_identity(admin_identity)
        self.ledger_identity = normalize_identity(ledger_identity)
        self._clock = clock or _unix_now
        self._lock = threading.RLock()
        self._observers: list[Observer] = []

    # -------- observers --------
    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register ``observer`` for notifications; return an unsubscribe callable."""
        with self._lock:
            self._observers.append(observer)

        def _unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return _unsubscribe

    def _notify(self, notifications: list[LedgerNotification]) -> None:
        # Runs without the ledger lock held; observers may call back into the ledger.
        with self._lock:
            observers = list(self._observers)
        for notification in notifications:
            for observer in observers:
                try:
                    observer(notification)
                except Exception:
                    # The call already committed; a broken observer must not mask that.
                    logger.exception(f"Observer failed on {notification.name!r}")

    # -------- transaction scopes --------
    @contextmanager
    def _write(self) -> Iterator[Session]:
        with self._lock:
            with self._Session() as session:
                try:
                    with session.begin():
                        yield session
                except Exception:
                    workflows.pop_notifications(session)
                    raise
                notifications = workflows.pop_notifications(session)
        self._notify(notifications)

    @contextmanager
    def _read(self) -> Iterator[Session]:
        with self._lock:
            with self._Session() as session:
                yield session

    # -------- mutating operations --------
    def initialize(self, unit_price: int, prizes=()) -> None:
        with self._write() as session:
            workflows.initialize_ledger(
                session, unit_price, prizes=prizes, timestamp=self._clock()
            )

    def buy_tickets(self, caller: str, count: int, paid_amount: int) -> workflows.PurchaseResult:
        with self._write() as session:
            return workflows.buy_tickets(
                session,
                self.token,
                caller,
                count,
                paid_amount,
                timestamp=self._clock(),
            )

    def add_prize(self, caller: str, payout_amount: int, weight: int) -> int:
        with self._write() as session:
            return workflows.add_prize(
                session,
                caller,
                self.admin_identity,
                payout_amount,
                weight,
                timestamp=self._clock(),
            )

    def update_prize(
        self, caller: str, index: int, payout_amount: int, weight: int, active: bool
    ) -> None:
        with self._write() as session:
            workflows.update_prize(
                session,
                caller,
                self.admin_identity,
                index,
                payout_amount,
                weight,
                active,
                timestamp=self._clock(),
            )

    def deposit_tokens(self, caller: str, amount: int) -> int:
        with self._write() as session:
            return workflows.deposit_tokens(
                session,
                self.token,
                caller,
                self.admin_identity,
                amount,
                ledger_identity=self.ledger_identity,
                timestamp=self._clock(),
            )

    def reconcile_token_float(self, caller: str) -> int:
        with self._write() as session:
            return workflows.reconcile_token_float(
                session,
                self.token,
                caller,
                self.admin_identity,
                ledger_identity=self.ledger_identity,
                timestamp=self._clock(),
            )

    def withdraw_revenue(self, caller: str) -> int:
        with self._write() as session:
            return workflows.withdraw_revenue(
                session, caller, self.admin_identity, timestamp=self._clock()
            )

    def set_unit_price(self, caller: str, new_price: int) -> int:
        with self._write() as session:
            return workflows.set_unit_price(
                session, caller, self.admin_identity, new_price, timestamp=self._clock()
            )

    # -------- read operations --------
    def simulate_draw(self, player: str) -> DrawOutcome:
        with self._read() as session:
            return workflows.simulate_draw(session, player, timestamp=self._clock())

    def get_prize_count(self) -> int:
        with self._read() as session:
            return workflows.get_prize_count(session)

    def get_prize(self, index: int) -> PrizeRecord:
        with self._read() as session:
            return workflows.get_prize(session, index)

    def get_prize_table(self) -> list[PrizeRecord]:
        with self._read() as session:
            return workflows.get_prize_table(session)

    def get_player_stats(self, player: str) -> PlayerStatsRecord:
        with self._read() as session:
            return workflows.get_player_stats(session, player)

    def get_history_count(self) -> int:
        with self._read() as session:
            return workflows.get_history_count(session)

    def get_history(self, index: int) -> DrawHistoryEntry:
        with self._read() as session:
            return workflows.get_history(session, index)

    def get_player_history(self, player: str, *, limit: Optional[int] = None):
        with self._read() as session:
            return workflows.get_player_history(session, player, limit=limit)

    def get_events(self, last_id: int = 0) -> list[LedgerNotification]:
        with self._read() as session:
            return workflows.get_events(session, last_id)

    def get_token_float(self) -> int:
        with self._read() as session:
            return workflows.get_token_float(session)

    def get_revenue_balance(self) -> int:
        with self._read() as session:
            return workflows.get_revenue_balance(session)

    def get_unit_price(self) -> int:
        with self._read() as session:
            return workflows.get_unit_price(session)

    def get_total_tickets_sold(self) -> int:
        with self._read() as session:
            return workflows.get_total_tickets_sold(session)

    def get_token_balance(self) -> int:
        """Return the ledger identity's balance on the external token ledger."""
        return self.token.balance_of(self.ledger_identity)


__all__ = ["PrizeLedger", "Observer"]
