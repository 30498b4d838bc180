"""Constant-product pricing math.

Pure integer functions shared by the pair ledger and the router:

    amount_out = (in * 997 * R_out) / (R_in * 1000 + in * 997)
    amount_in  = (R_in * out * 1000) / ((R_out - out) * 997) + 1

Degenerate inputs return 0 instead of raising; callers reject zero results
before acting on them.
"""

from __future__ import annotations

from ammcore.constants import (
    FEE_DENOMINATOR,
    FEE_NUMERATOR,
    MINIMUM_SHARES,
    PROTOCOL_FEE_DIVISOR,
)
from ammcore.safe_int import S

__all__ = [
    "isqrt",
    "get_amount_out",
    "get_amount_in",
    "quote",
    "shares_for_deposit",
    "amounts_for_withdrawal",
    "protocol_fee_shares",
]


def isqrt(n: int) -> int:
    """Floor of the square root of n (Newton's method).

    Starts from x0 = n and iterates x = (x + n // x) // 2 until the next
    iterate is no smaller than the current one. Starting above the root, the
    iterates decrease monotonically and stop exactly at floor(sqrt(n)).

    Raises:
        ValueError: If n is negative
    """
    if n < 0:
        raise ValueError(f"isqrt of negative number: {n}")
    if n == 0:
        return 0
    x = n
    while True:
        y = (x + n // x) // 2
        if y >= x:
            return x
        x = y


def get_amount_out(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_numerator: int = FEE_NUMERATOR,
    fee_denominator: int = FEE_DENOMINATOR,
) -> int:
    """Output for an exact input, after the swap fee.

    Args:
        amount_in: Input asset amount
        reserve_in: Reserve of the input asset
        reserve_out: Reserve of the output asset
        fee_numerator: Traded fraction numerator (default 997)
        fee_denominator: Fee base (default 1000)

    Returns:
        Floored output amount, or 0 for non-positive input or reserves
    """
    if amount_in <= 0:
        return 0
    if reserve_in <= 0 or reserve_out <= 0:
        return 0

    amount_in_with_fee = S(amount_in) * S(fee_numerator)
    numerator = amount_in_with_fee * S(reserve_out)
    denominator = S(reserve_in) * S(fee_denominator) + amount_in_with_fee

    return (numerator // denominator).value


def get_amount_in(
    amount_out: int,
    reserve_in: int,
    reserve_out: int,
    fee_numerator: int = FEE_NUMERATOR,
    fee_denominator: int = FEE_DENOMINATOR,
) -> int:
    """Input required for an exact output, rounded up.

    The +1 after floor division makes the pool at least as well off as exact
    real-number arithmetic would.

    Returns:
        Required input, or 0 when amount_out >= reserve_out or any argument
        is non-positive
    """
    if amount_out <= 0:
        return 0
    if reserve_in <= 0 or reserve_out <= 0:
        return 0
    if amount_out >= reserve_out:
        return 0

    numerator = S(reserve_in) * S(amount_out) * S(fee_denominator)
    denominator = (S(reserve_out) - S(amount_out)) * S(fee_numerator)

    return ((numerator // denominator) + S(1)).value


def quote(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """Amount of B with the same value as amount_a at the current reserve ratio.

    Returns:
        amount_a * reserve_b // reserve_a, or 0 on degenerate input
    """
    if amount_a <= 0 or reserve_a <= 0 or reserve_b <= 0:
        return 0
    return (S(amount_a) * S(reserve_b) // S(reserve_a)).value


def shares_for_deposit(
    amount0: int,
    amount1: int,
    reserve0: int,
    reserve1: int,
    total_shares: int,
    minimum_shares: int = MINIMUM_SHARES,
) -> int:
    """Shares minted for a deposit of (amount0, amount1).

    Empty pool: isqrt(amount0 * amount1) - minimum_shares.
    Seeded pool: the smaller of the two proportional shares, so an unbalanced
    deposit earns strictly less than a balanced one.

    Returns:
        Shares to mint; 0 when the result would be zero or negative
    """
    if amount0 < 0 or amount1 < 0:
        return 0

    if total_shares == 0:
        root = isqrt((S(amount0) * S(amount1)).value)
        remaining = S(root).checked_sub(minimum_shares)
        return remaining.value if remaining is not None else 0

    if reserve0 <= 0 or reserve1 <= 0:
        return 0

    share0 = S(amount0) * S(total_shares) // S(reserve0)
    share1 = S(amount1) * S(total_shares) // S(reserve1)
    return share0.min(share1).value


def amounts_for_withdrawal(
    shares: int,
    total_shares: int,
    reserve0: int,
    reserve1: int,
) -> tuple[int, int]:
    """Proportional, floored redemption of `shares` out of `total_shares`."""
    if shares <= 0 or total_shares <= 0:
        return 0, 0
    amount0 = S(shares) * S(reserve0) // S(total_shares)
    amount1 = S(shares) * S(reserve1) // S(total_shares)
    return amount0.value, amount1.value


def protocol_fee_shares(
    total_shares: int,
    k: int,
    k_last: int,
    divisor: int = PROTOCOL_FEE_DIVISOR,
) -> int:
    """Shares owed to the protocol for growth of sqrt(k) since the last event.

    shares = T * (sqrt(k) - sqrt(k_last)) / (divisor * sqrt(k) + sqrt(k_last))

    With divisor 5 this dilutes existing holders by 1/6 of the growth.

    Returns:
        Shares to mint to the fee recipient (0 when k has not grown)
    """
    if k_last == 0 or total_shares == 0:
        return 0
    root_k = isqrt(k)
    root_k_last = isqrt(k_last)
    if root_k <= root_k_last:
        return 0
    numerator = S(total_shares) * (S(root_k) - S(root_k_last))
    denominator = S(root_k) * S(divisor) + S(root_k_last)
    return (numerator // denominator).value
