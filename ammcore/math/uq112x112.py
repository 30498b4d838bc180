"""UQ112x112 fixed-point helpers for the price accumulators.

A UQ112x112 number is an unsigned integer scaled by 2**112. Dividing a reserve
encoded this way by another reserve gives the price with 112 fractional bits.
"""

from __future__ import annotations

from ammcore.safe_int import S

Q112 = 2**112


def encode(y: int) -> int:
    """Encode a 112-bit integer as UQ112x112."""
    return (S(y) * Q112).value


def uqdiv(x: int, y: int) -> int:
    """Divide a UQ112x112 by an integer, returning UQ112x112.

    Raises:
        DivisionByZero: If y is zero
    """
    return (S(x) // S(y)).value


__all__ = ["Q112", "encode", "uqdiv"]
