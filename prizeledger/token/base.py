from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenLedger(Protocol):
    """Transferable-balance asset the prize ledger pays winnings from.

    Implementations act on behalf of the ledger's own account: ``transfer``
    moves tokens out of it, ``transfer_from`` pulls tokens that ``sender``
    previously approved for it.
    """

    def balance_of(self, account: str) -> int:
        ...

    def transfer(self, to: str, amount: int) -> bool:
        ...

    def transfer_from(self, sender: str, to: str, amount: int) -> bool:
        ...

    def approve(self, spender: str, amount: int) -> bool:
        ...
