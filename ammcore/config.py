"""Engine configuration."""

import os
from dataclasses import dataclass

from ammcore.constants import (
    FEE_DENOMINATOR,
    FEE_NUMERATOR,
    MINIMUM_SHARES,
    PROTOCOL_FEE_DIVISOR,
    RESERVE_BITS,
)


@dataclass(frozen=True)
class AmmConfig:
    """Pricing and share parameters.

    The defaults are the protocol values; every pair and router in a host
    shares one instance. Overrides exist for simulation and testing only.

    Attributes:
        fee_numerator: Fraction of the input that trades (default: 997)
        fee_denominator: Fee base (default: 1000)
        minimum_shares: Shares locked forever on first deposit (default: 1000)
        protocol_fee_divisor: Protocol takes 1/(divisor+1) of sqrt(k) growth (default: 5)
        reserve_bits: Storage width of each reserve (default: 112)
    """

    fee_numerator: int = FEE_NUMERATOR
    fee_denominator: int = FEE_DENOMINATOR
    minimum_shares: int = MINIMUM_SHARES
    protocol_fee_divisor: int = PROTOCOL_FEE_DIVISOR
    reserve_bits: int = RESERVE_BITS

    def __post_init__(self) -> None:
        if not 0 < self.fee_numerator <= self.fee_denominator:
            raise ValueError(
                f"fee_numerator must be in (0, {self.fee_denominator}]: {self.fee_numerator}"
            )
        if self.minimum_shares < 0:
            raise ValueError(f"minimum_shares cannot be negative: {self.minimum_shares}")
        if self.protocol_fee_divisor <= 0:
            raise ValueError(
                f"protocol_fee_divisor must be positive: {self.protocol_fee_divisor}"
            )
        if self.reserve_bits <= 0:
            raise ValueError(f"reserve_bits must be positive: {self.reserve_bits}")

    @property
    def fee_complement(self) -> int:
        """Fee part of the base (3 for a 997/1000 fee)."""
        return self.fee_denominator - self.fee_numerator

    @classmethod
    def from_env(cls) -> "AmmConfig":
        """Build a config from AMM_* environment variables.

        - AMM_FEE_NUMERATOR (default: 997)
        - AMM_FEE_DENOMINATOR (default: 1000)
        - AMM_MINIMUM_SHARES (default: 1000)
        - AMM_PROTOCOL_FEE_DIVISOR (default: 5)
        - AMM_RESERVE_BITS (default: 112)
        """
        return cls(
            fee_numerator=int(os.environ.get("AMM_FEE_NUMERATOR", str(FEE_NUMERATOR))),
            fee_denominator=int(os.environ.get("AMM_FEE_DENOMINATOR", str(FEE_DENOMINATOR))),
            minimum_shares=int(os.environ.get("AMM_MINIMUM_SHARES", str(MINIMUM_SHARES))),
            protocol_fee_divisor=int(
                os.environ.get("AMM_PROTOCOL_FEE_DIVISOR", str(PROTOCOL_FEE_DIVISOR))
            ),
            reserve_bits=int(os.environ.get("AMM_RESERVE_BITS", str(RESERVE_BITS))),
        )


# Default configuration instance
DEFAULT_CONFIG = AmmConfig()
