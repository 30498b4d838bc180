"""Read-only snapshots of persisted ledger state.

These mirror the stored layout: one record per pair and one for the registry.
They are what a display or persistence layer reads; the engine never mutates
through them.
"""

from pydantic import BaseModel, ConfigDict, Field

from ammcore.models.types import Address, Amount


class PairState(BaseModel):
    """Stored fields of one pair."""

    model_config = ConfigDict(frozen=True)

    address: Address
    asset0: Address
    asset1: Address
    reserve0: Amount
    reserve1: Amount
    total_supply: Amount
    k_last: Amount
    price0_cumulative_last: Amount
    price1_cumulative_last: Amount
    block_timestamp_last: int = Field(ge=0, lt=2**32)


class RegistryState(BaseModel):
    """Stored fields of the registry."""

    model_config = ConfigDict(frozen=True)

    address: Address
    fee_recipient: Address | None = None
    fee_authority: Address
    all_pairs: list[Address] = Field(default_factory=list)


__all__ = ["PairState", "RegistryState"]
