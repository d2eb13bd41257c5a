"""Prize token collaborator seam."""

from .base import TokenLedger

__all__ = ["TokenLedger"]
