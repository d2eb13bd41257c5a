"""Utilities for the prize draw subsystem."""

from .entropy import DrawContext, derive_roll, derive_seed, pack_context, roll_from_digest
from .engine import (
    DrawOutcome,
    PrizeDrawEngine,
    draw,
    evaluate_roll,
    select_prize,
    solvency_floor,
)

__all__ = [
    "DrawContext",
    "DrawOutcome",
    "PrizeDrawEngine",
    "derive_roll",
    "derive_seed",
    "draw",
    "evaluate_roll",
    "pack_context",
    "roll_from_digest",
    "select_prize",
    "solvency_floor",
]
