"""Pydantic models for observations and stored state."""

from ammcore.models.events import (
    Approval,
    Burn,
    Event,
    FeeAuthorityChanged,
    FeeRecipientChanged,
    Mint,
    PairCreated,
    Swap,
    Sync,
    Transfer,
)
from ammcore.models.state import PairState, RegistryState
from ammcore.models.types import (
    NULL_ADDRESS,
    Address,
    Amount,
    is_null_address,
    is_valid_address,
    normalize_address,
    sort_assets,
)

__all__ = [
    # Events
    "Event",
    "Mint",
    "Burn",
    "Swap",
    "Sync",
    "Transfer",
    "Approval",
    "PairCreated",
    "FeeRecipientChanged",
    "FeeAuthorityChanged",
    # State
    "PairState",
    "RegistryState",
    # Types
    "Address",
    "Amount",
    "NULL_ADDRESS",
    "normalize_address",
    "is_valid_address",
    "is_null_address",
    "sort_assets",
]
