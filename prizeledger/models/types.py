from typing import Optional

from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.types import TypeDecorator

# Use BigInteger by default, with a SQLite-safe Integer variant for autoincrement PKs.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")

# 2**256 - 1 has 78 decimal digits.
UINT256_DIGITS = 78
UINT256_MAX = 2**256 - 1


class Uint256(TypeDecorator):
    """Unsigned integer up to 2**256 - 1, stored as a zero-padded decimal string.

    Token amounts with 18 decimals overflow 64-bit integer columns and SQLite
    stores ``NUMERIC`` as floating point, so amounts are kept as text. The
    padding keeps lexical and numeric ordering identical.
    """

    impl = String(UINT256_DIGITS)
    cache_ok = True

    def process_bind_param(self, value: Optional[int], dialect) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Uint256 columns accept int values, got {type(value).__name__}")
        if value < 0 or value > UINT256_MAX:
            raise ValueError(f"{value} is outside the uint256 range")
        return str(value).zfill(UINT256_DIGITS)

    def process_result_value(self, value: Optional[str], dialect) -> Optional[int]:
        if value is None:
            return None
        return int(value)
