import unittest
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from prizeledger.constants import GENESIS_CONTEXT_HASH
from prizeledger.errors import (
    IndexOutOfRange,
    InsufficientFloat,
    InsufficientPrizePool,
    InvalidAmount,
    InvalidPrice,
    InvalidTicketCount,
    LedgerNotInitialized,
    PaymentMismatch,
    TokenTransferError,
    Unauthorized,
)
from prizeledger.models import Base
from prizeledger.prize_draw import DrawContext, draw
from prizeledger.records import PlayerStatsRecord, PrizeRecord
from prizeledger.workflows import (
    DEFAULT_PRIZE_TABLE,
    add_prize,
    buy_tickets,
    default_prize_table,
    deposit_tokens,
    get_events,
    get_history,
    get_history_count,
    get_player_history,
    get_player_stats,
    get_prize,
    get_prize_count,
    get_revenue_balance,
    get_token_float,
    get_total_tickets_sold,
    get_unit_price,
    initialize_ledger,
    reconcile_token_float,
    set_unit_price,
    simulate_draw,
    update_prize,
    withdraw_revenue,
)

ADMIN = "0xAdmin"
LEDGER = "0xLedger"
PRICE = 10
TS = 1_700_000_000


class DummyToken:
    """In-memory stand-in for the token ledger, acting as ``LEDGER``."""

    def __init__(self, balances: Optional[dict] = None):
        self.balances: dict[str, int] = dict(balances or {})
        self.allowances: dict[tuple[str, str], int] = {}
        self.transfers: list[tuple[str, str, int]] = []
        self.refuse = False
        self.error: Optional[Exception] = None

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def _move(self, sender: str, to: str, amount: int) -> bool:
        if self.error is not None:
            raise self.error
        if self.refuse or self.balances.get(sender, 0) < amount:
            return False
        self.balances[sender] = self.balances.get(sender, 0) - amount
        self.balances[to] = self.balances.get(to, 0) + amount
        self.transfers.append((sender, to, amount))
        return True

    def transfer(self, to: str, amount: int) -> bool:
        return self._move(LEDGER, to, amount)

    def transfer_from(self, sender: str, to: str, amount: int) -> bool:
        if self.allowances.get((sender, LEDGER), 0) < amount:
            return False
        if not self._move(sender, to, amount):
            return False
        self.allowances[(sender, LEDGER)] -= amount
        return True

    def approve(self, spender: str, amount: int) -> bool:
        self.allowances[(ADMIN, spender)] = amount
        return True


class WorkflowTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )
        self.token = DummyToken({ADMIN: 10**6})

    def tearDown(self):
        self.engine.dispose()

    def _initialize(self, prizes=(), float_amount: int = 0) -> None:
        with self.Session.begin() as session:
            initialize_ledger(session, PRICE, prizes=prizes, timestamp=TS)
        if float_amount:
            self._deposit(float_amount)

    def _deposit(self, amount: int) -> int:
        self.token.approve(LEDGER, amount)
        with self.Session.begin() as session:
            return deposit_tokens(
                session,
                self.token,
                ADMIN,
                ADMIN,
                amount,
                ledger_identity=LEDGER,
                timestamp=TS,
            )

    def _buy(self, player: str, count: int, paid: Optional[int] = None, ts: int = TS):
        with self.Session.begin() as session:
            return buy_tickets(
                session,
                self.token,
                player,
                count,
                PRICE * count if paid is None else paid,
                timestamp=ts,
            )

    def _snapshot(self) -> tuple:
        with self.Session() as session:
            return (
                get_total_tickets_sold(session),
                get_revenue_balance(session),
                get_token_float(session),
                get_history_count(session),
            )


class InitializeLedgerTests(WorkflowTestCase):
    def test_default_prize_table(self):
        self._initialize(prizes=default_prize_table())
        with self.Session() as session:
            self.assertEqual(get_prize_count(session), 5)
            self.assertEqual(
                get_prize(session, 0),
                PrizeRecord(payout_amount=100 * 10**18, weight=1000, active=True),
            )
            self.assertEqual(
                get_prize(session, 4),
                PrizeRecord(payout_amount=10000 * 10**18, weight=1, active=True),
            )
            self.assertEqual(get_unit_price(session), PRICE)
            added = [event for event in get_events(session) if event.name == "prize_added"]
            self.assertEqual(len(added), len(DEFAULT_PRIZE_TABLE))
            self.assertEqual(
                added[4].payload, {"index": 4, "amount": 10000 * 10**18, "weight": 1}
            )

    def test_zero_price_and_double_initialization_rejected(self):
        with self.Session.begin() as session:
            with self.assertRaises(InvalidPrice):
                initialize_ledger(session, 0, timestamp=TS)
        self._initialize()
        with self.Session.begin() as session:
            with self.assertRaises(ValueError):
                initialize_ledger(session, PRICE, timestamp=TS)

    def test_operations_require_initialization(self):
        with self.assertRaises(LedgerNotInitialized):
            self._buy("alice", 1)


class BuyTicketsTests(WorkflowTestCase):
    def test_zero_tickets_rejected(self):
        self._initialize(prizes=[(100, 1000)], float_amount=1000)
        before = self._snapshot()
        with self.assertRaises(InvalidTicketCount):
            self._buy("alice", 0, paid=0)
        self.assertEqual(self._snapshot(), before)

    def test_half_price_rejected(self):
        self._initialize(prizes=[(100, 1000)], float_amount=1000)
        before = self._snapshot()
        with self.assertRaises(PaymentMismatch):
            self._buy("alice", 1, paid=PRICE // 2)
        with self.assertRaises(PaymentMismatch):
            self._buy("alice", 2, paid=PRICE * 3)
        self.assertEqual(self._snapshot(), before)

    def test_non_integer_count_or_payment_rejected(self):
        self._initialize(prizes=[(100, 1000)], float_amount=1000)
        before = self._snapshot()
        with self.assertRaises(PaymentMismatch):
            self._buy("alice", 1, paid=float(PRICE))
        with self.assertRaises(PaymentMismatch):
            self._buy("alice", 1, paid=True)
        with self.assertRaises(InvalidTicketCount):
            self._buy("alice", True, paid=PRICE)
        with self.assertRaises(InvalidTicketCount):
            self._buy("alice", 1.0, paid=PRICE)
        self.assertEqual(self._snapshot(), before)

    def test_insufficient_prize_pool_blocks_purchase(self):
        self._initialize(prizes=default_prize_table(decimals=0), float_amount=50)
        before = self._snapshot()
        with self.assertRaises(InsufficientPrizePool) as ctx:
            self._buy("alice", 1)
        self.assertEqual(ctx.exception.floor, 10000)
        self.assertEqual(self._snapshot(), before)
        with self.Session() as session:
            self.assertEqual(get_player_stats(session, "alice"), PlayerStatsRecord())

    def test_single_prize_pays_all_or_nothing(self):
        self._initialize(prizes=[(100, 1000)], float_amount=100)
        for ticket in range(25):
            with self.Session() as session:
                float_before = get_token_float(session)
            if float_before == 0:
                float_before = self._deposit(100)
            self.assertEqual(float_before, 100)

            result = self._buy(f"player-{ticket}", 1)
            with self.Session() as session:
                float_after = get_token_float(session)
            self.assertIn(
                (result.total_payout, float_after), [(100, 0), (0, 100)]
            )
            self.assertEqual(float_after, float_before - result.total_payout)

    def test_counters_and_history_track_purchases(self):
        self._initialize(prizes=default_prize_table(decimals=0), float_amount=500_000)
        self._buy("alice", 3)
        self._buy("bob", 2)
        self._buy("alice", 4)

        with self.Session() as session:
            self.assertEqual(get_total_tickets_sold(session), 9)
            self.assertEqual(get_revenue_balance(session), 9 * PRICE)
            self.assertEqual(get_history_count(session), 9)
            self.assertEqual(get_player_stats(session, "alice").tickets_bought, 7)
            self.assertEqual(get_player_stats(session, "bob").tickets_bought, 2)
            self.assertEqual(get_player_stats(session, "carol"), PlayerStatsRecord())

            alice_history = get_player_history(session, "alice")
            self.assertEqual(len(alice_history), 7)
            self.assertEqual(
                get_player_stats(session, "alice").total_winnings,
                sum(entry.payout_amount for entry in alice_history),
            )
            self.assertEqual(len(get_player_history(session, "alice", limit=2)), 2)
            with self.assertRaises(IndexOutOfRange):
                get_history(session, 9)

    def test_draws_follow_the_entropy_chain(self):
        table = default_prize_table(decimals=0)
        self._initialize(prizes=table, float_amount=500_000)
        result = self._buy("alice", 3)

        prizes = [PrizeRecord(payout_amount=p, weight=w) for p, w in table]
        context_hash = GENESIS_CONTEXT_HASH
        with self.Session() as session:
            for nonce in range(3):
                expected = draw(DrawContext(context_hash, TS, "alice", nonce), prizes)
                entry = get_history(session, nonce)
                self.assertEqual(entry.seed_digest, expected.seed_digest)
                self.assertEqual(entry.roll, expected.roll)
                self.assertEqual(entry.prize_index, expected.prize_index)
                self.assertEqual(entry.payout_amount, expected.payout_amount)
                self.assertEqual(entry.timestamp, TS)
                self.assertEqual(entry.player, "alice")
                self.assertEqual(result.outcomes[nonce], expected)
                context_hash = expected.seed_digest

    def test_winnings_are_paid_in_one_transfer(self):
        self._initialize(prizes=[(100, 10000)], float_amount=1000)
        transfers_before = len(self.token.transfers)
        result = self._buy("alice", 3)

        self.assertEqual(result.total_payout, 300)
        self.assertEqual(len(result.winning_outcomes), 3)
        self.assertEqual(self.token.transfers[transfers_before:], [(LEDGER, "alice", 300)])
        self.assertEqual(self.token.balance_of("alice"), 300)
        with self.Session() as session:
            self.assertEqual(get_token_float(session), 700)
            self.assertEqual(get_player_stats(session, "alice").total_winnings, 300)
            names = [event.name for event in get_events(session)]
        self.assertEqual(names.count("prize_won"), 3)
        self.assertEqual(names.count("tickets_purchased"), 1)

    def test_float_exhausted_mid_batch_rolls_back_everything(self):
        self._initialize(prizes=[(100, 10000)], float_amount=250)
        before = self._snapshot()
        transfers_before = len(self.token.transfers)

        with self.assertRaises(InsufficientFloat):
            self._buy("alice", 3)

        self.assertEqual(self._snapshot(), before)
        self.assertEqual(len(self.token.transfers), transfers_before)
        with self.Session() as session:
            self.assertEqual(get_player_stats(session, "alice"), PlayerStatsRecord())

    def test_failed_transfer_rolls_back_purchase(self):
        self._initialize(prizes=[(100, 10000)], float_amount=1000)
        before = self._snapshot()

        self.token.refuse = True
        with self.assertRaises(TokenTransferError):
            self._buy("alice", 1)
        self.assertEqual(self._snapshot(), before)

        self.token.refuse = False
        self.token.error = RuntimeError("connection reset")
        with self.assertRaises(TokenTransferError):
            self._buy("alice", 1)
        self.assertEqual(self._snapshot(), before)

    def test_losing_purchase_makes_no_transfer(self):
        self._initialize(prizes=[(100, 0)], float_amount=100)
        transfers_before = len(self.token.transfers)
        result = self._buy("alice", 2)
        self.assertEqual(result.total_payout, 0)
        self.assertEqual(len(self.token.transfers), transfers_before)
        with self.Session() as session:
            self.assertEqual(get_history_count(session), 2)
            self.assertIsNone(get_history(session, 0).prize_index)

    def test_simulate_draw_predicts_next_ticket_without_mutation(self):
        self._initialize(prizes=default_prize_table(decimals=0), float_amount=500_000)
        self._buy("alice", 2)
        before = self._snapshot()

        with self.Session() as session:
            preview = simulate_draw(session, "bob", timestamp=TS + 5)
        self.assertEqual(self._snapshot(), before)

        result = self._buy("bob", 1, ts=TS + 5)
        self.assertEqual(result.outcomes[0], preview)


class AdminWorkflowTests(WorkflowTestCase):
    def test_add_and_update_prize(self):
        self._initialize(prizes=[(100, 1000)])
        with self.Session.begin() as session:
            index = add_prize(session, ADMIN, ADMIN, 2000, 25, timestamp=TS)
            self.assertEqual(index, 1)
            update_prize(session, ADMIN, ADMIN, 0, 150, 800, False, timestamp=TS)

        with self.Session() as session:
            self.assertEqual(get_prize_count(session), 2)
            self.assertEqual(get_prize(session, 1), PrizeRecord(2000, 25, True))
            self.assertEqual(get_prize(session, 0), PrizeRecord(150, 800, False))

    def test_update_prize_out_of_range(self):
        self._initialize(prizes=[(100, 1000)])
        with self.Session.begin() as session:
            with self.assertRaises(IndexOutOfRange):
                update_prize(session, ADMIN, ADMIN, 1, 1, 1, True, timestamp=TS)

    def test_non_admin_rejected(self):
        self._initialize(prizes=[(100, 1000)])
        with self.Session.begin() as session:
            with self.assertRaises(Unauthorized):
                add_prize(session, "0xMallory", ADMIN, 1, 1, timestamp=TS)
            with self.assertRaises(Unauthorized):
                update_prize(session, "0xMallory", ADMIN, 0, 1, 1, True, timestamp=TS)
            with self.assertRaises(Unauthorized):
                set_unit_price(session, "0xMallory", ADMIN, 20, timestamp=TS)
            with self.assertRaises(Unauthorized):
                withdraw_revenue(session, "0xMallory", ADMIN, timestamp=TS)
            with self.assertRaises(Unauthorized):
                deposit_tokens(
                    session,
                    self.token,
                    "0xMallory",
                    ADMIN,
                    10,
                    ledger_identity=LEDGER,
                    timestamp=TS,
                )
            self.assertEqual(get_prize(session, 0), PrizeRecord(100, 1000, True))
            self.assertEqual(get_unit_price(session), PRICE)

    def test_deposit_pulls_from_admin(self):
        self._initialize()
        self.assertEqual(self._deposit(5000), 5000)
        self.assertEqual(self.token.balance_of(LEDGER), 5000)
        self.assertEqual(self.token.balance_of(ADMIN), 10**6 - 5000)

    def test_deposit_rejects_non_positive_amount(self):
        self._initialize()
        self.token.approve(LEDGER, 100)
        for amount in (0, -5):
            with self.assertRaises(InvalidAmount):
                with self.Session.begin() as session:
                    deposit_tokens(
                        session,
                        self.token,
                        ADMIN,
                        ADMIN,
                        amount,
                        ledger_identity=LEDGER,
                        timestamp=TS,
                    )
        with self.Session() as session:
            self.assertEqual(get_token_float(session), 0)
        self.assertEqual(self.token.transfers, [])

    def test_deposit_without_allowance_rolls_back(self):
        self._initialize()
        with self.assertRaises(TokenTransferError):
            with self.Session.begin() as session:
                deposit_tokens(
                    session, self.token, ADMIN, ADMIN, 10, ledger_identity=LEDGER, timestamp=TS
                )
        with self.Session() as session:
            self.assertEqual(get_token_float(session), 0)

    def test_withdraw_revenue_zeroes_balance(self):
        self._initialize(prizes=[(100, 1000)], float_amount=1000)
        self._buy("alice", 5)
        with self.Session.begin() as session:
            self.assertEqual(withdraw_revenue(session, ADMIN, ADMIN, timestamp=TS), 5 * PRICE)
        with self.Session() as session:
            self.assertEqual(get_revenue_balance(session), 0)
            self.assertEqual(get_total_tickets_sold(session), 5)

    def test_set_unit_price(self):
        self._initialize()
        with self.Session.begin() as session:
            with self.assertRaises(InvalidPrice):
                set_unit_price(session, ADMIN, ADMIN, 0, timestamp=TS)
            self.assertEqual(set_unit_price(session, ADMIN, ADMIN, 20, timestamp=TS), PRICE)
        with self.Session() as session:
            self.assertEqual(get_unit_price(session), 20)

    def test_reconcile_picks_up_direct_transfers(self):
        self._initialize()
        self.token.balances[LEDGER] = 777
        with self.Session.begin() as session:
            self.assertEqual(
                reconcile_token_float(
                    session, self.token, ADMIN, ADMIN, ledger_identity=LEDGER, timestamp=TS
                ),
                777,
            )
        with self.Session() as session:
            self.assertEqual(get_token_float(session), 777)


if __name__ == "__main__":
    unittest.main()
