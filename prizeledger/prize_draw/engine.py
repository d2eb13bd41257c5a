"""Weighted prize selection against the prize table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from ..constants import DRAW_SCALE, GENESIS_CONTEXT_HASH
from ..models import DrawRecord, Prize
from ..records import PrizeRecord
from .entropy import DrawContext, derive_roll


@dataclass(frozen=True)
class DrawOutcome:
    """Value object describing a single draw.

    Attributes
    ----------
    prize_index : Optional[int]
        Index of the winning prize; ``None`` when the roll fell into the
        "no win" mass.
    payout_amount : int
        Tokens owed to the player; ``0`` for a losing draw.
    roll : int
        The roll in ``[0, DRAW_SCALE)`` that was evaluated.
    seed_digest : str
        Hex digest the roll was derived from.
    """

    prize_index: Optional[int]
    payout_amount: int
    roll: int
    seed_digest: str

    @property
    def won(self) -> bool:
        return self.prize_index is not None


def select_prize(roll: int, prizes: Sequence[PrizeRecord]) -> Optional[int]:
    """Return the index of the prize whose cumulative range covers ``roll``.

    Active prizes are walked in index order, accumulating their weights. The
    first prize for which ``roll`` is below the running total wins. When the
    walk ends without covering ``roll`` the draw is a loss and ``None`` is
    returned.

    Tables whose active weights sum above :data:`DRAW_SCALE` are accepted:
    earlier prizes keep their full range and later ones are only reachable
    for the part of their range that starts below the scale.

    Raises
    ------
    ValueError
        If ``roll`` is outside ``[0, DRAW_SCALE)``.
    """
    if roll < 0 or roll >= DRAW_SCALE:
        raise ValueError(f"roll must be within [0, {DRAW_SCALE}), got {roll}")

    cumulative = 0
    for index, prize in enumerate(prizes):
        if not prize.active:
            continue
        cumulative += prize.weight
        if roll < cumulative:
            return index
    return None


def evaluate_roll(roll: int, seed_digest: str, prizes: Sequence[PrizeRecord]) -> DrawOutcome:
    index = select_prize(roll, prizes)
    payout = prizes[index].payout_amount if index is not None else 0
    return DrawOutcome(
        prize_index=index,
        payout_amount=payout,
        roll=roll,
        seed_digest=seed_digest,
    )


def draw(context: DrawContext, prizes: Sequence[PrizeRecord]) -> DrawOutcome:
    """Derive the roll for ``context`` and evaluate it against ``prizes``.

    This is a pure function: the same context and table always produce the
    same outcome.
    """
    roll, seed_digest = derive_roll(context)
    return evaluate_roll(roll, seed_digest, prizes)


def solvency_floor(prizes: Sequence[PrizeRecord]) -> int:
    """Return the largest payout a single draw against ``prizes`` can owe.

    Only active prizes with a non-zero weight can be drawn, so only they
    contribute. An empty or fully inactive table has a floor of ``0``.
    """
    return max(
        (prize.payout_amount for prize in prizes if prize.active and prize.weight > 0),
        default=0,
    )


class PrizeDrawEngine:
    """Engine binding the pure draw to the ledger's persisted history."""

    def __init__(self, session: Session, prizes: Optional[Sequence[PrizeRecord]] = None) -> None:
        """Create a draw engine bound to a SQLAlchemy session.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session used to read the prize table and the
            latest history entry.
        prizes : Optional[Sequence[PrizeRecord]], default: None
            Prize table snapshot to draw against. When omitted, the table is
            loaded from ``session`` once and reused for every draw of this
            engine.
        """

        self._session = session
        self._prizes = list(prizes) if prizes is not None else None

    @property
    def prizes(self) -> list[PrizeRecord]:
        if self._prizes is None:
            self._prizes = Prize.table_snapshot(self._session)
        return self._prizes

    def context_hash(self) -> str:
        """Return the digest of the latest recorded draw, or the genesis hash."""
        latest = DrawRecord.latest(self._session)
        return latest.seed_digest if latest is not None else GENESIS_CONTEXT_HASH

    def draw(self, player: str, *, timestamp: int, nonce: int) -> DrawOutcome:
        """Run one draw for ``player`` against the engine's table snapshot.

        The context hash chains to the most recent :class:`DrawRecord`
        visible in the session, so callers must flush each ticket's record
        before drawing the next one.
        """
        context = DrawContext(
            context_hash=self.context_hash(),
            timestamp=timestamp,
            player=player,
            nonce=nonce,
        )
        return draw(context, self.prizes)

    def solvency_floor(self) -> int:
        return solvency_floor(self.prizes)


__all__ = [
    "DrawOutcome",
    "PrizeDrawEngine",
    "draw",
    "evaluate_roll",
    "select_prize",
    "solvency_floor",
]
