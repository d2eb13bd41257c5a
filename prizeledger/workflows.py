import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from .constants import LEDGER_STATE_ID
from .errors import InvalidAmount, InvalidPrice, TokenTransferError, Unauthorized
from .identity import normalize_identity
from .models import DrawRecord, LedgerEvent, LedgerState, PlayerStats, Prize
from .prize_draw.engine import DrawOutcome, PrizeDrawEngine
from .records import (
    DrawHistoryEntry,
    LedgerNotification,
    PlayerStatsRecord,
    PrizeRecord,
)
from .token.base import TokenLedger

logger = logging.getLogger(__name__)

# (payout in whole tokens, weight) of the reference deployment.
DEFAULT_PRIZE_TABLE: tuple[tuple[int, int], ...] = (
    (100, 1000),
    (500, 300),
    (1000, 100),
    (5000, 10),
    (10000, 1),
)

# Key under ``Session.info`` collecting notifications emitted in a transaction.
NOTIFICATIONS_KEY = "prizeledger.notifications"


@dataclass(frozen=True)
class PurchaseResult:
    """Outcome of one ``buy_tickets`` call.

    Attributes
    ----------
    player : str
        Normalized purchaser identity.
    ticket_count : int
        Number of tickets bought and drawn.
    paid_amount : int
        Payment booked into the revenue balance.
    outcomes : tuple[DrawOutcome, ...]
        One outcome per ticket, in draw order.
    """

    player: str
    ticket_count: int
    paid_amount: int
    outcomes: tuple[DrawOutcome, ...]

    @property
    def total_payout(self) -> int:
        return sum(outcome.payout_amount for outcome in self.outcomes)

    @property
    def winning_outcomes(self) -> list[DrawOutcome]:
        return [outcome for outcome in self.outcomes if outcome.won]


def default_prize_table(decimals: int = 18) -> list[tuple[int, int]]:
    """Return :data:`DEFAULT_PRIZE_TABLE` scaled to token base units."""
    scale = 10**decimals
    return [(payout * scale, weight) for payout, weight in DEFAULT_PRIZE_TABLE]


def require_admin(caller: str, admin_identity: str, operation: str) -> None:
    """Raise :class:`Unauthorized` unless ``caller`` holds the admin capability."""
    if normalize_identity(caller) != normalize_identity(admin_identity):
        logger.warning(f"Rejected {operation} from non-admin {caller!r}")
        raise Unauthorized(caller, operation)


def emit(session: Session, name: str, payload: dict[str, Any], *, timestamp: int) -> None:
    """Persist a :class:`LedgerEvent` and queue it for post-commit delivery."""
    event = LedgerEvent.record(session, name, payload, timestamp=timestamp)
    session.info.setdefault(NOTIFICATIONS_KEY, []).append(
        LedgerNotification(name=event.name, payload=dict(payload), timestamp=timestamp)
    )


def pop_notifications(session: Session) -> list[LedgerNotification]:
    return session.info.pop(NOTIFICATIONS_KEY, [])


def _transfer_winnings(token: TokenLedger, player: str, amount: int) -> None:
    try:
        succeeded = token.transfer(player, amount)
    except Exception as exc:
        logger.error(f"Token transfer of {amount} to {player!r} failed: {exc}")
        raise TokenTransferError(f"Token transfer to {player!r} failed: {exc}") from exc
    if not succeeded:
        logger.error(f"Token ledger refused transfer of {amount} to {player!r}")
        raise TokenTransferError(f"Token ledger refused transfer to {player!r}")


def initialize_ledger(
    session: Session,
    unit_price: int,
    *,
    prizes: Iterable[tuple[int, int]] = (),
    timestamp: int,
) -> LedgerState:
    """Create the ledger state row and seed the prize table.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    unit_price : int
        Price of one ticket in the payment currency.
    prizes : Iterable[tuple[int, int]], default: ()
        ``(payout_amount, weight)`` pairs appended in order.
    timestamp : int
        Ledger clock value used for the emitted events.

    Raises
    ------
    InvalidPrice
        If ``unit_price`` is zero.
    ValueError
        If the ledger has already been initialized.
    """
    if session.get(LedgerState, LEDGER_STATE_ID) is not None:
        raise ValueError("Ledger state already initialized")
    if unit_price <= 0:
        raise InvalidPrice("Price must be greater than 0")

    state = LedgerState(
        unit_price=unit_price,
        total_tickets_sold=0,
        revenue_balance=0,
        token_float=0,
        draw_nonce=0,
    )
    session.add(state)
    session.flush()

    for payout_amount, weight in prizes:
        prize = Prize.append(session, payout_amount, weight)
        emit(
            session,
            "prize_added",
            {"index": prize.index, "amount": payout_amount, "weight": weight},
            timestamp=timestamp,
        )
    logger.info(f"Ledger initialized with unit price {unit_price}")
    return state


def buy_tickets(
    session: Session,
    token: TokenLedger,
    player: str,
    ticket_count: int,
    paid_amount: int,
    *,
    timestamp: int,
) -> PurchaseResult:
    """Buy ``ticket_count`` tickets and draw each one immediately.

    The call runs through these stages:

    1. Validate the ticket count and the exact aggregate payment.
    2. Check the token float covers the largest payout a draw can owe.
    3. Book the purchase (tickets sold, revenue).
    4. For each ticket: draw, debit the float, append a :class:`DrawRecord`,
       update the player's :class:`PlayerStats` and emit ``prize_won`` on a win.
    5. Pay the summed winnings to ``player`` with a single token transfer.

    Every stage runs inside the caller's transaction; any raised error leaves
    the transaction to be rolled back by the caller, so either the whole call
    commits or nothing does.

    Raises
    ------
    InvalidTicketCount, PaymentMismatch
        If validation fails.
    InsufficientPrizePool
        If the float is below the solvency floor.
    InsufficientFloat
        If a ticket's payout exceeds the remaining float.
    TokenTransferError
        If the winnings transfer fails.
    """
    player = normalize_identity(player)
    state = LedgerState.load(session, for_update=True)
    state.validate_purchase(ticket_count, paid_amount)

    engine = PrizeDrawEngine(session)
    state.ensure_solvent(engine.solvency_floor())

    state.record_purchase(ticket_count, paid_amount)
    emit(
        session,
        "tickets_purchased",
        {"player": player, "amount": paid_amount, "count": ticket_count},
        timestamp=timestamp,
    )

    stats = PlayerStats.get_or_create(session, player)
    outcomes: list[DrawOutcome] = []
    for _ in range(ticket_count):
        outcome = engine.draw(player, timestamp=timestamp, nonce=state.take_nonce())
        state.try_settle(outcome.payout_amount)
        DrawRecord.append(
            session,
            player=player,
            payout_amount=outcome.payout_amount,
            prize_index=outcome.prize_index,
            timestamp=timestamp,
            roll=outcome.roll,
            seed_digest=outcome.seed_digest,
        )
        stats.record_ticket(outcome.payout_amount)
        if outcome.won:
            emit(
                session,
                "prize_won",
                {
                    "player": player,
                    "prize_index": outcome.prize_index,
                    "amount": outcome.payout_amount,
                },
                timestamp=timestamp,
            )
        outcomes.append(outcome)

    result = PurchaseResult(
        player=player,
        ticket_count=ticket_count,
        paid_amount=paid_amount,
        outcomes=tuple(outcomes),
    )
    if result.total_payout > 0:
        _transfer_winnings(token, player, result.total_payout)
        emit(
            session,
            "prize_pool_updated",
            {"token_float": state.token_float},
            timestamp=timestamp,
        )
    session.flush()

    logger.info(
        f"{player!r} bought {ticket_count} ticket(s), "
        f"{len(result.winning_outcomes)} won, total payout {result.total_payout}"
    )
    return result


def simulate_draw(session: Session, player: str, *, timestamp: int) -> DrawOutcome:
    """Preview the outcome the next ticket would get; mutates nothing."""
    player = normalize_identity(player)
    state = LedgerState.load(session)
    engine = PrizeDrawEngine(session)
    return engine.draw(player, timestamp=timestamp, nonce=state.draw_nonce)


def add_prize(
    session: Session,
    caller: str,
    admin_identity: str,
    payout_amount: int,
    weight: int,
    *,
    timestamp: int,
) -> int:
    """Append an active prize and return its index."""
    require_admin(caller, admin_identity, "add_prize")
    LedgerState.load(session, for_update=True)
    prize = Prize.append(session, payout_amount, weight)
    emit(
        session,
        "prize_added",
        {"index": prize.index, "amount": payout_amount, "weight": weight},
        timestamp=timestamp,
    )
    logger.info(f"Prize {prize.index} added: payout {payout_amount}, weight {weight}")
    return prize.index


def update_prize(
    session: Session,
    caller: str,
    admin_identity: str,
    index: int,
    payout_amount: int,
    weight: int,
    active: bool,
    *,
    timestamp: int,
) -> None:
    """Replace the prize at ``index`` in place.

    Raises
    ------
    Unauthorized
        If ``caller`` is not the admin.
    IndexOutOfRange
        If ``index`` is not below the prize count.
    """
    require_admin(caller, admin_identity, "update_prize")
    LedgerState.load(session, for_update=True)
    prize = Prize.get_by_index(session, index)
    prize.replace(payout_amount, weight, active)
    session.flush()
    emit(
        session,
        "prize_updated",
        {
            "index": index,
            "amount": payout_amount,
            "weight": weight,
            "active": active,
        },
        timestamp=timestamp,
    )
    logger.info(
        f"Prize {index} updated: payout {payout_amount}, weight {weight}, active {active}"
    )


def deposit_tokens(
    session: Session,
    token: TokenLedger,
    caller: str,
    admin_identity: str,
    amount: int,
    *,
    ledger_identity: str,
    timestamp: int,
) -> int:
    """Pull ``amount`` tokens from the admin into the float; return the new float.

    The admin must have approved the ledger identity for at least ``amount``
    on the token ledger beforehand.
    """
    require_admin(caller, admin_identity, "deposit_tokens")
    if amount <= 0:
        raise InvalidAmount("Amount must be greater than 0")
    state = LedgerState.load(session, for_update=True)
    state.credit_float(amount)
    try:
        succeeded = token.transfer_from(caller, ledger_identity, amount)
    except Exception as exc:
        logger.error(f"Token deposit of {amount} from {caller!r} failed: {exc}")
        raise TokenTransferError(f"Token deposit from {caller!r} failed: {exc}") from exc
    if not succeeded:
        raise TokenTransferError(f"Token ledger refused deposit from {caller!r}")
    emit(session, "prize_pool_updated", {"token_float": state.token_float}, timestamp=timestamp)
    session.flush()
    logger.info(f"Deposited {amount} tokens, float is now {state.token_float}")
    return state.token_float


def reconcile_token_float(
    session: Session,
    token: TokenLedger,
    caller: str,
    admin_identity: str,
    *,
    ledger_identity: str,
    timestamp: int,
) -> int:
    """Align the float with the ledger identity's balance on the token ledger.

    Tokens sent to the ledger identity directly, outside ``deposit_tokens``,
    only become available for payouts after a reconciliation.
    """
    require_admin(caller, admin_identity, "reconcile_token_float")
    state = LedgerState.load(session, for_update=True)
    balance = token.balance_of(ledger_identity)
    if balance != state.token_float:
        logger.info(f"Reconciling float from {state.token_float} to {balance}")
        state.token_float = balance
        emit(session, "prize_pool_updated", {"token_float": balance}, timestamp=timestamp)
        session.flush()
    return state.token_float


def withdraw_revenue(
    session: Session,
    caller: str,
    admin_identity: str,
    *,
    timestamp: int,
) -> int:
    """Zero the revenue balance and return the amount owed to the admin.

    Moving the payment currency itself is left to the hosting environment.
    """
    require_admin(caller, admin_identity, "withdraw_revenue")
    state = LedgerState.load(session, for_update=True)
    amount = state.drain_revenue()
    session.flush()
    emit(
        session,
        "revenue_withdrawn",
        {"to": normalize_identity(caller), "amount": amount},
        timestamp=timestamp,
    )
    logger.info(f"Revenue of {amount} withdrawn by admin")
    return amount


def set_unit_price(
    session: Session,
    caller: str,
    admin_identity: str,
    new_price: int,
    *,
    timestamp: int,
) -> int:
    """Change the ticket price and return the previous one."""
    require_admin(caller, admin_identity, "set_unit_price")
    state = LedgerState.load(session, for_update=True)
    old_price = state.change_unit_price(new_price)
    session.flush()
    emit(
        session,
        "ticket_price_updated",
        {"old_price": old_price, "new_price": new_price},
        timestamp=timestamp,
    )
    logger.info(f"Ticket price changed from {old_price} to {new_price}")
    return old_price


# -------- read helpers --------
def get_prize_count(session: Session) -> int:
    return Prize.count(session)


def get_prize(session: Session, index: int) -> PrizeRecord:
    return Prize.get_by_index(session, index).to_record()


def get_prize_table(session: Session) -> list[PrizeRecord]:
    return Prize.table_snapshot(session)


def get_player_stats(session: Session, player: str) -> PlayerStatsRecord:
    stats = PlayerStats.get_by_player(session, normalize_identity(player))
    return stats.to_record() if stats is not None else PlayerStatsRecord()


def get_history_count(session: Session) -> int:
    return DrawRecord.count(session)


def get_history(session: Session, index: int) -> DrawHistoryEntry:
    return DrawRecord.get_by_index(session, index).to_record()


def get_player_history(
    session: Session, player: str, *, limit: Optional[int] = None
) -> Sequence[DrawHistoryEntry]:
    """Return ``player``'s draws, oldest first, optionally capped at ``limit``."""
    if limit is not None and limit < 0:
        raise ValueError("limit must be non-negative when provided")
    stmt = (
        select(DrawRecord)
        .where(DrawRecord.player == normalize_identity(player))
        .order_by(DrawRecord.sequence.asc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return [record.to_record() for record in session.scalars(stmt).all()]


def get_events(session: Session, last_id: int = 0) -> list[LedgerNotification]:
    return [event.to_record() for event in LedgerEvent.since(session, last_id)]


def get_token_float(session: Session) -> int:
    return LedgerState.load(session).token_float


def get_revenue_balance(session: Session) -> int:
    return LedgerState.load(session).revenue_balance


def get_unit_price(session: Session) -> int:
    return LedgerState.load(session).unit_price


def get_total_tickets_sold(session: Session) -> int:
    return LedgerState.load(session).total_tickets_sold
