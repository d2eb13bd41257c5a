"""Helpers for handling participant and admin identities."""

from __future__ import annotations


def normalize_identity(identity: str) -> str:
    """Trim surrounding whitespace from an identity and validate it.

    Parameters
    ----------
    identity : str
        Raw identity supplied by a caller (an account address or user key).

    Raises
    ------
    TypeError
        If ``identity`` is not a string.
    ValueError
        If ``identity`` is ``None`` or empty after trimming.
    """

    if identity is None:
        raise ValueError("identity must not be None")
    if not isinstance(identity, str):
        raise TypeError("identity must be a string")
    normalized = identity.strip()
    if not normalized:
        raise ValueError("identity must not be empty")
    return normalized


__all__ = ["normalize_identity"]
