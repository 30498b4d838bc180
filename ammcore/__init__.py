"""Constant-product AMM engine - Python Implementation."""

from ammcore.config import DEFAULT_CONFIG, AmmConfig
from ammcore.host import Host, ManualClock, SystemClock
from ammcore.ledger import InMemoryLedger
from ammcore.pair import Pair
from ammcore.registry import PairRegistry, compute_pair_address
from ammcore.router import AddLiquidityResult, RemoveLiquidityResult, Router

__version__ = "0.1.0"
__all__ = [
    "AmmConfig",
    "DEFAULT_CONFIG",
    "Host",
    "ManualClock",
    "SystemClock",
    "InMemoryLedger",
    "Pair",
    "PairRegistry",
    "compute_pair_address",
    "Router",
    "AddLiquidityResult",
    "RemoveLiquidityResult",
    "__version__",
]
