from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .prize import Prize  # noqa: F401
from .player import PlayerStats  # noqa: F401
from .history import DrawRecord  # noqa: F401
from .ledger import LedgerState  # noqa: F401
from .event import LedgerEvent  # noqa: F401

__all__ = [
    "Base",
    "Prize",
    "PlayerStats",
    "DrawRecord",
    "LedgerState",
    "LedgerEvent",
]
