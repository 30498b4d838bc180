"""Asset transfer collaborator and the balance probe pairs read it through.

Pairs never trust declared input amounts. They ask the asset ledger what
they hold and treat the surplus over their recorded reserves as the input.
LedgerProbe is that step, kept separate from the pair's own fields.

The native coin is an ordinary ledger asset keyed by NATIVE_ASSET. Pairs
never hold it directly; WrappedNative converts it one-to-one into an asset
they can.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Protocol, runtime_checkable

import structlog

from ammcore.constants import NATIVE_ASSET
from ammcore.errors import InsufficientAllowance, InsufficientBalance
from ammcore.journal import Journal
from ammcore.models.types import normalize_address
from ammcore.safe_int import S

logger = structlog.get_logger()


@runtime_checkable
class AssetLedger(Protocol):
    """A fungible-asset ledger keyed by (asset, account)."""

    def balance_of(self, asset: str, account: str) -> int:
        """Balance of `account` in `asset`."""
        ...

    def transfer(self, asset: str, sender: str, to: str, amount: int) -> None:
        """Move `amount` of `asset` from `sender` to `to`.

        Raises:
            InsufficientBalance: If sender holds less than amount
        """
        ...

    def transfer_from(
        self, asset: str, spender: str, owner: str, to: str, amount: int
    ) -> None:
        """Move `amount` from `owner` to `to` against `spender`'s allowance.

        Raises:
            InsufficientAllowance: If the allowance is below amount
            InsufficientBalance: If owner holds less than amount
        """
        ...

    def approve(self, asset: str, owner: str, spender: str, amount: int) -> None:
        """Set `spender`'s allowance over `owner`'s `asset`."""
        ...


@runtime_checkable
class JournaledLedger(AssetLedger, Protocol):
    """An AssetLedger whose writes can be undone by a host transaction."""

    def bind_journal(self, journal: Journal) -> None:
        """Route every later write through `journal`."""
        ...


@runtime_checkable
class SupplyLedger(AssetLedger, Protocol):
    """An AssetLedger that can create and destroy units of an asset."""

    def mint(self, asset: str, to: str, amount: int) -> None: ...

    def burn(self, asset: str, holder: str, amount: int) -> None: ...


class InMemoryLedger:
    """Dictionary-backed AssetLedger.

    Unlimited allowances (2**256 - 1) are not decremented, matching the
    common token convention.
    """

    UNLIMITED = 2**256 - 1

    def __init__(self) -> None:
        self._balances: defaultdict[str, dict[str, int]] = defaultdict(dict)
        self._allowances: dict[tuple[str, str, str], int] = {}
        self._supplies: dict[str, int] = {}
        self._journal = Journal()
        self._bound = False

    def bind_journal(self, journal: Journal) -> None:
        """Attach the owning host's journal. A ledger belongs to one host.

        Raises:
            ValueError: If already bound to a different journal
        """
        if self._bound and journal is not self._journal:
            raise ValueError("Ledger is already bound to another host")
        self._journal = journal
        self._bound = True

    def balance_of(self, asset: str, account: str) -> int:
        asset = normalize_address(asset)
        return self._balances[asset].get(normalize_address(account), 0)

    def total_supply(self, asset: str) -> int:
        return self._supplies.get(normalize_address(asset), 0)

    def allowance(self, asset: str, owner: str, spender: str) -> int:
        key = (normalize_address(asset), normalize_address(owner), normalize_address(spender))
        return self._allowances.get(key, 0)

    def mint(self, asset: str, to: str, amount: int) -> None:
        """Create `amount` of `asset` out of thin air (seeding and wrapping)."""
        asset = normalize_address(asset)
        to = normalize_address(to)
        if amount < 0:
            raise ValueError(f"Mint amount cannot be negative: {amount}")
        balances = self._balances[asset]
        self._journal.set_item(balances, to, (S(balances.get(to, 0)) + S(amount)).value)
        self._journal.set_item(
            self._supplies, asset, (S(self._supplies.get(asset, 0)) + S(amount)).value
        )
        logger.debug("asset_minted", asset=asset[-8:], to=to[-8:], amount=amount)

    def burn(self, asset: str, holder: str, amount: int) -> None:
        """Destroy `amount` of `holder`'s `asset`.

        Raises:
            InsufficientBalance: If holder holds less than amount
        """
        asset = normalize_address(asset)
        holder = normalize_address(holder)
        if amount < 0:
            raise ValueError(f"Burn amount cannot be negative: {amount}")
        balances = self._balances[asset]
        remaining = S(balances.get(holder, 0)).checked_sub(amount)
        if remaining is None:
            raise InsufficientBalance(
                f"{holder} holds {balances.get(holder, 0)} of {asset}, burning {amount}"
            )
        self._journal.set_item(balances, holder, remaining.value)
        self._journal.set_item(
            self._supplies, asset, (S(self._supplies.get(asset, 0)) - S(amount)).value
        )

    def transfer(self, asset: str, sender: str, to: str, amount: int) -> None:
        asset = normalize_address(asset)
        sender = normalize_address(sender)
        to = normalize_address(to)
        if amount < 0:
            raise ValueError(f"Transfer amount cannot be negative: {amount}")

        balances = self._balances[asset]
        remaining = S(balances.get(sender, 0)).checked_sub(amount)
        if remaining is None:
            raise InsufficientBalance(
                f"{sender} holds {balances.get(sender, 0)} of {asset}, needs {amount}"
            )
        self._journal.set_item(balances, sender, remaining.value)
        self._journal.set_item(balances, to, (S(balances.get(to, 0)) + S(amount)).value)

    def transfer_from(
        self, asset: str, spender: str, owner: str, to: str, amount: int
    ) -> None:
        key = (normalize_address(asset), normalize_address(owner), normalize_address(spender))
        allowed = self._allowances.get(key, 0)
        if allowed != self.UNLIMITED:
            remaining = S(allowed).checked_sub(amount)
            if remaining is None:
                raise InsufficientAllowance(
                    f"{spender} may spend {allowed} of {owner}'s {asset}, needs {amount}"
                )
            self._journal.set_item(self._allowances, key, remaining.value)
        self.transfer(asset, owner, to, amount)

    def approve(self, asset: str, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Allowance cannot be negative: {amount}")
        key = (normalize_address(asset), normalize_address(owner), normalize_address(spender))
        self._journal.set_item(self._allowances, key, amount)


class WrappedNative:
    """One-to-one wrapper of the native coin as a pair-compatible asset.

    Every wrapped unit in circulation is backed by one native unit held at
    the wrapper's own address.

    Args:
        ledger: Ledger holding both the native coin and the wrapped asset
        address: The wrapped asset's address
    """

    def __init__(self, ledger: AssetLedger, address: str) -> None:
        if not isinstance(ledger, SupplyLedger):
            raise TypeError(
                f"{type(ledger).__name__} cannot mint or burn, so it cannot wrap the native coin"
            )
        self.ledger: SupplyLedger = ledger
        self.address = normalize_address(address, validate=True)

    def deposit(self, account: str, amount: int) -> None:
        """Lock `amount` of `account`'s native coin and credit it the wrapped asset."""
        self.ledger.transfer(NATIVE_ASSET, account, self.address, amount)
        self.ledger.mint(self.address, account, amount)

    def withdraw(self, account: str, amount: int) -> None:
        """Burn `amount` of `account`'s wrapped asset and release the native coin."""
        self.ledger.burn(self.address, account, amount)
        self.ledger.transfer(NATIVE_ASSET, self.address, account, amount)


class LedgerProbe:
    """Reads a pair's actual holdings of its two assets.

    Args:
        ledger: The asset ledger
        holder: The pair address whose holdings are probed
        asset0: First asset (canonical order)
        asset1: Second asset (canonical order)
    """

    def __init__(self, ledger: AssetLedger, holder: str, asset0: str, asset1: str) -> None:
        self.ledger = ledger
        self.holder = normalize_address(holder)
        self.asset0 = normalize_address(asset0)
        self.asset1 = normalize_address(asset1)

    def balances(self) -> tuple[int, int]:
        """Current (balance0, balance1) held by the pair."""
        return (
            self.ledger.balance_of(self.asset0, self.holder),
            self.ledger.balance_of(self.asset1, self.holder),
        )

    def surplus(self, reserve0: int, reserve1: int) -> tuple[int, int]:
        """Holdings above the recorded reserves, floored at zero.

        This is the inferred deposit of a mint, and what skim pays out.
        """
        balance0, balance1 = self.balances()
        return max(0, balance0 - reserve0), max(0, balance1 - reserve1)


__all__ = [
    "AssetLedger",
    "JournaledLedger",
    "SupplyLedger",
    "InMemoryLedger",
    "WrappedNative",
    "LedgerProbe",
]
