"""Engine constants.

The pricing and share parameters are fixed protocol values; AmmConfig
(ammcore.config) carries them for callers that want to inspect or override.
"""

from eth_utils import keccak

from ammcore.models.types import NULL_ADDRESS

# Swap fee: 0.3% of the input, applied as 997/1000
FEE_NUMERATOR = 997
FEE_DENOMINATOR = 1000

# Shares permanently locked to the null address on the first deposit
MINIMUM_SHARES = 1000

# Protocol fee mints 1/(PROTOCOL_FEE_DIVISOR + 1) of growth in sqrt(k)
PROTOCOL_FEE_DIVISOR = 5

# Reserves are stored in 112 bits so UQ112x112 prices stay bounded
RESERVE_BITS = 112

# Timestamps are kept modulo 2**32; elapsed time is computed with wraparound
TIMESTAMP_MODULUS = 2**32

# Holder of MINIMUM_SHARES; nobody can sign for it
LOCKED_SHARES_HOLDER = NULL_ADDRESS

# Liquidity share token metadata
SHARE_TOKEN_NAME = "AMM LP Token"
SHARE_TOKEN_SYMBOL = "AMM-LP"
SHARE_TOKEN_DECIMALS = 18

# Hash of the pair "creation code", part of the deterministic pair address
PAIR_INIT_CODE_HASH = keccak(text="ammcore.pair.Pair:v1")

# Default identities for the singleton registry and router
DEFAULT_REGISTRY_ADDRESS = "0x5c69bee701ef814a2b6a3edd4b1652cb9cc5aa6f"
DEFAULT_ROUTER_ADDRESS = "0x7a250d5630b4cf539739df2c5dacb4c659f2488d"

# Ledger key of the native coin; routers reach it through a WrappedNative asset
NATIVE_ASSET = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"

__all__ = [
    "FEE_NUMERATOR",
    "FEE_DENOMINATOR",
    "MINIMUM_SHARES",
    "PROTOCOL_FEE_DIVISOR",
    "RESERVE_BITS",
    "TIMESTAMP_MODULUS",
    "LOCKED_SHARES_HOLDER",
    "NULL_ADDRESS",
    "NATIVE_ASSET",
    "SHARE_TOKEN_NAME",
    "SHARE_TOKEN_SYMBOL",
    "SHARE_TOKEN_DECIMALS",
    "PAIR_INIT_CODE_HASH",
    "DEFAULT_REGISTRY_ADDRESS",
    "DEFAULT_ROUTER_ADDRESS",
]
