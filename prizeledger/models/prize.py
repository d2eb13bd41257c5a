"""Prize table model."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column

from ..constants import DRAW_SCALE
from ..errors import IndexOutOfRange, InvalidPrize
from ..records import PrizeRecord
from .base import Base
from .types import ID_TYPE, Uint256


def _validate_prize_fields(payout_amount: int, weight: int) -> None:
    if payout_amount < 0:
        raise InvalidPrize("payout_amount must be non-negative")
    if weight < 0 or weight > DRAW_SCALE:
        raise InvalidPrize(f"weight must be within [0, {DRAW_SCALE}], got {weight}")


class Prize(Base):
    """A single entry of the ordered prize table.

    Prizes are appended at the next free index and never removed; an admin
    deactivates a prize instead. The position in the table is the draw
    priority order.
    """

    __tablename__ = "prizes"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Surrogate primary key."""

    index: Mapped[int] = mapped_column("prize_index", Integer, nullable=False)
    """Position in the prize table (0-based, insertion order)."""

    payout_amount: Mapped[int] = mapped_column(Uint256, nullable=False)
    """Token amount paid when this prize is drawn."""

    weight: Mapped[int] = mapped_column(Integer, nullable=False)
    """Share of the 10000-unit draw scale."""

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    """Inactive prizes are skipped by the draw walk."""

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

    __table_args__ = (
        UniqueConstraint("prize_index", name="uq_prizes_prize_index"),
        CheckConstraint(
            f"weight >= 0 AND weight <= {DRAW_SCALE}", name="weight_range"
        ),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<Prize(index={self.index}, payout_amount={self.payout_amount}, "
            f"weight={self.weight}, active={self.active})>"
        )

    def to_record(self) -> PrizeRecord:
        return PrizeRecord(
            payout_amount=self.payout_amount,
            weight=self.weight,
            active=self.active,
        )

    def replace(self, payout_amount: int, weight: int, active: bool) -> None:
        """Overwrite every mutable field of the prize in place."""
        _validate_prize_fields(payout_amount, weight)
        self.payout_amount = payout_amount
        self.weight = weight
        self.active = active

    @classmethod
    def count(cls, session: Session) -> int:
        return session.scalar(select(func.count(cls.id))) or 0

    @classmethod
    def append(cls, session: Session, payout_amount: int, weight: int) -> "Prize":
        """Add a new active prize at the next index.

        The total weight of the table is deliberately not checked here: the
        draw walk tolerates tables whose active weights exceed or fall short of
        :data:`DRAW_SCALE`.

        Raises
        ------
        InvalidPrize
            If ``payout_amount`` is negative or ``weight`` is outside
            ``[0, DRAW_SCALE]``.
        """
        _validate_prize_fields(payout_amount, weight)
        prize = cls(
            index=cls.count(session),
            payout_amount=payout_amount,
            weight=weight,
            active=True,
        )
        session.add(prize)
        session.flush()
        return prize

    @classmethod
    def get_by_index(cls, session: Session, index: int) -> "Prize":
        """Return the prize at ``index`` or raise :class:`IndexOutOfRange`."""
        prize: Optional[Prize] = None
        if index >= 0:
            prize = session.scalar(select(cls).where(cls.index == index))
        if prize is None:
            raise IndexOutOfRange("prize", index, cls.count(session))
        return prize

    @classmethod
    def table_snapshot(cls, session: Session) -> list[PrizeRecord]:
        """Return the whole table, ordered by index, as value objects."""
        prizes = session.scalars(select(cls).order_by(cls.index.asc())).all()
        return [prize.to_record() for prize in prizes]


__all__ = ["Prize"]
