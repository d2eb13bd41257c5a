"""Derivation of the per-ticket draw roll.

The roll mixes the previous draw's digest, the ledger clock, the purchaser
and a per-ticket nonce through SHA-256. Anyone who can see those inputs can
predict the roll before buying, so this source is only suitable where the
draw is not required to be cryptographically fair.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from ..constants import DRAW_SCALE
from ..identity import normalize_identity

_WORD_BYTES = 32


@dataclass(frozen=True)
class DrawContext:
    """Inputs hashed into a single draw.

    Attributes
    ----------
    context_hash : str
        Hex digest of the preceding draw (or the genesis hash).
    timestamp : int
        Ledger clock value in unix seconds.
    player : str
        Purchaser identity.
    nonce : int
        Per-ticket counter; strictly increasing across the ledger's lifetime.
    """

    context_hash: str
    timestamp: int
    player: str
    nonce: int


def _word(value: int) -> bytes:
    if value < 0:
        raise ValueError("packed integers must be non-negative")
    return value.to_bytes(_WORD_BYTES, "big")


def pack_context(context: DrawContext) -> bytes:
    """Serialize ``context`` as ``hash || timestamp || player || nonce``.

    The hash is the raw 32-byte digest, integers are 32-byte big-endian words
    and the player is its UTF-8 encoding.
    """
    try:
        previous = bytes.fromhex(context.context_hash)
    except ValueError as exc:
        raise ValueError("context_hash must be a hex string") from exc
    if len(previous) != _WORD_BYTES:
        raise ValueError("context_hash must encode exactly 32 bytes")
    player = normalize_identity(context.player)
    return (
        previous
        + _word(context.timestamp)
        + player.encode("utf-8")
        + _word(context.nonce)
    )


def derive_seed(context: DrawContext) -> str:
    """Return the hex SHA-256 digest of the packed context."""
    return hashlib.sha256(pack_context(context)).hexdigest()


def roll_from_digest(seed_digest: str) -> int:
    """Reduce a hex digest to a roll in ``[0, DRAW_SCALE)``."""
    return int(seed_digest, 16) % DRAW_SCALE


def derive_roll(context: DrawContext) -> tuple[int, str]:
    """Return ``(roll, seed_digest)`` for ``context``."""
    seed_digest = derive_seed(context)
    return roll_from_digest(seed_digest), seed_digest


__all__ = [
    "DrawContext",
    "derive_roll",
    "derive_seed",
    "pack_context",
    "roll_from_digest",
]
