"""Constants shared by the prize table, the draw engine and the workflows."""

# Probability scale: a weight of 10000 is a certain win.
DRAW_SCALE = 10000

# Singleton primary key of the ledger state row.
LEDGER_STATE_ID = 1

# Context hash used before the first draw has been recorded.
GENESIS_CONTEXT_HASH = "00" * 32

__all__ = ["DRAW_SCALE", "LEDGER_STATE_ID", "GENESIS_CONTEXT_HASH"]
