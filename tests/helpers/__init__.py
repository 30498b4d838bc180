"""Test helpers module for shared test utilities.

- constants: Asset and account addresses, common amounts
- factories: Engine, funding, and seeded-pair factory functions
"""

from tests.helpers.constants import (
    ALICE,
    BOB,
    CAROL,
    DAI,
    E18,
    FAR_DEADLINE,
    FEE_ADMIN,
    FEE_SINK,
    FLASH_BORROWER,
    START_TIME,
    USDC,
    WBTC,
    WETH,
)
from tests.helpers.factories import fund, make_engine, seed_pair

__all__ = [
    # Constants
    "WETH",
    "DAI",
    "USDC",
    "WBTC",
    "ALICE",
    "BOB",
    "CAROL",
    "FEE_ADMIN",
    "FEE_SINK",
    "FLASH_BORROWER",
    "E18",
    "START_TIME",
    "FAR_DEADLINE",
    # Factories
    "make_engine",
    "seed_pair",
    "fund",
]
