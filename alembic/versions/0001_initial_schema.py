"""initial prize ledger schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Amounts are zero-padded decimal strings (see prizeledger.models.types.Uint256).
AMOUNT = sa.String(length=78)
ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "ledger_state",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("unit_price", AMOUNT, nullable=False),
        sa.Column("total_tickets_sold", sa.BigInteger(), nullable=False),
        sa.Column("revenue_balance", AMOUNT, nullable=False),
        sa.Column("token_float", AMOUNT, nullable=False),
        sa.Column("draw_nonce", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_ledger_state"),
    )
    op.create_table(
        "prizes",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("prize_index", sa.Integer(), nullable=False),
        sa.Column("payout_amount", AMOUNT, nullable=False),
        sa.Column("weight", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "weight >= 0 AND weight <= 10000", name="ck_prizes_weight_range"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_prizes"),
        sa.UniqueConstraint("prize_index", name="uq_prizes_prize_index"),
    )
    op.create_table(
        "player_stats",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("player", sa.String(length=255), nullable=False),
        sa.Column("tickets_bought", sa.BigInteger(), nullable=False),
        sa.Column("total_winnings", AMOUNT, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_player_stats"),
        sa.UniqueConstraint("player", name="uq_player_stats_player"),
    )
    op.create_table(
        "draw_history",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("sequence", sa.BigInteger(), nullable=False),
        sa.Column("player", sa.String(length=255), nullable=False),
        sa.Column("payout_amount", AMOUNT, nullable=False),
        sa.Column("prize_index", sa.Integer(), nullable=True),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("roll", sa.Integer(), nullable=False),
        sa.Column("seed_digest", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_draw_history"),
        sa.UniqueConstraint("sequence", name="uq_draw_history_sequence"),
    )
    op.create_index("ix_draw_history_player", "draw_history", ["player"])
    op.create_table(
        "ledger_events",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_ledger_events"),
    )
    op.create_index("ix_ledger_events_id", "ledger_events", ["id"])
    op.create_index("ix_ledger_events_name", "ledger_events", ["name"])


def downgrade() -> None:
    op.drop_index("ix_ledger_events_name", table_name="ledger_events")
    op.drop_index("ix_ledger_events_id", table_name="ledger_events")
    op.drop_table("ledger_events")
    op.drop_index("ix_draw_history_player", table_name="draw_history")
    op.drop_table("draw_history")
    op.drop_table("player_stats")
    op.drop_table("prizes")
    op.drop_table("ledger_state")
