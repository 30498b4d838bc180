"""Observation records emitted by pairs and the registry.

Each mutating operation appends one or more of these to the host EventLog.
They are the ledger's public record of what happened, in order, and are
rolled back together with the state of a failed transaction.
"""

from pydantic import BaseModel, ConfigDict, Field

from ammcore.models.types import Address, Amount


class Event(BaseModel):
    """Base observation: who emitted it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    emitter: Address

    @property
    def name(self) -> str:
        return type(self).__name__


# --- Pair ---


class Mint(Event):
    """Liquidity added."""

    sender: Address
    amount0: Amount
    amount1: Amount


class Burn(Event):
    """Liquidity removed and paid out to `to`."""

    sender: Address
    amount0: Amount
    amount1: Amount
    to: Address


class Swap(Event):
    """Assets exchanged through the pair."""

    sender: Address
    amount0_in: Amount = Field(alias="amount0In")
    amount1_in: Amount = Field(alias="amount1In")
    amount0_out: Amount = Field(alias="amount0Out")
    amount1_out: Amount = Field(alias="amount1Out")
    to: Address


class Sync(Event):
    """Reserves updated."""

    reserve0: Amount
    reserve1: Amount


# --- Liquidity share token ---


class Transfer(Event):
    """Shares moved. Mints come from, and burns go to, the null address."""

    from_: Address = Field(alias="from")
    to: Address
    value: Amount


class Approval(Event):
    """Share allowance set."""

    owner: Address
    spender: Address
    value: Amount


# --- Registry ---


class PairCreated(Event):
    """A new pair was registered. `index` is the new total pair count."""

    asset0: Address
    asset1: Address
    pair: Address
    index: int = Field(ge=1)


class FeeRecipientChanged(Event):
    """Protocol fee destination changed (None disables the fee)."""

    fee_recipient: Address | None


class FeeAuthorityChanged(Event):
    """Fee configuration authority handed over."""

    fee_authority: Address


__all__ = [
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
]
