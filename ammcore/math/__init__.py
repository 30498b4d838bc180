"""Integer math for the AMM engine."""

from ammcore.math.pricing import (
    amounts_for_withdrawal,
    get_amount_in,
    get_amount_out,
    isqrt,
    protocol_fee_shares,
    quote,
    shares_for_deposit,
)

__all__ = [
    "isqrt",
    "get_amount_out",
    "get_amount_in",
    "quote",
    "shares_for_deposit",
    "amounts_for_withdrawal",
    "protocol_fee_shares",
]
