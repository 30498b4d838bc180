"""Fungible liquidity-share token.

Pair inherits from ShareToken: the pair's own address is the share token, and
burning works by sending shares to the pair before calling burn().
"""

from __future__ import annotations

from ammcore.constants import SHARE_TOKEN_DECIMALS, SHARE_TOKEN_NAME, SHARE_TOKEN_SYMBOL
from ammcore.errors import InsufficientAllowance, InsufficientBalance
from ammcore.host import Host, transactional
from ammcore.models.events import Approval, Transfer
from ammcore.models.types import NULL_ADDRESS, normalize_address
from ammcore.safe_int import S


class ShareToken:
    """Balances and allowances of liquidity shares.

    Args:
        host: Execution host (event log, transactions)
        address: The token's own identity
    """

    name = SHARE_TOKEN_NAME
    symbol = SHARE_TOKEN_SYMBOL
    decimals = SHARE_TOKEN_DECIMALS

    UNLIMITED = 2**256 - 1

    def __init__(self, host: Host, address: str) -> None:
        self.host = host
        self.address = normalize_address(address)
        self.total_supply = 0
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}

    def balance_of(self, account: str) -> int:
        return self._balances.get(normalize_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    # --- Public mutators ---

    @transactional
    def approve(self, spender: str, value: int, *, sender: str) -> bool:
        owner = normalize_address(sender)
        spender = normalize_address(spender)
        if value < 0:
            raise ValueError(f"Allowance cannot be negative: {value}")
        self.host.journal.set_item(self._allowances, (owner, spender), value)
        self.host.events.emit(
            Approval(emitter=self.address, owner=owner, spender=spender, value=value)
        )
        return True

    @transactional
    def transfer(self, to: str, value: int, *, sender: str) -> bool:
        self._move(normalize_address(sender), normalize_address(to), value)
        return True

    @transactional
    def transfer_from(self, owner: str, to: str, value: int, *, sender: str) -> bool:
        owner = normalize_address(owner)
        key = (owner, normalize_address(sender))
        allowed = self._allowances.get(key, 0)
        if allowed != self.UNLIMITED:
            remaining = S(allowed).checked_sub(value)
            if remaining is None:
                raise InsufficientAllowance(
                    f"{sender} may spend {allowed} shares of {owner}, needs {value}"
                )
            self.host.journal.set_item(self._allowances, key, remaining.value)
        self._move(owner, normalize_address(to), value)
        return True

    # --- Supply changes (pair internal) ---

    def _mint(self, to: str, value: int) -> None:
        to = normalize_address(to)
        journal = self.host.journal
        journal.set_attr(self, "total_supply", (S(self.total_supply) + S(value)).value)
        journal.set_item(self._balances, to, (S(self._balances.get(to, 0)) + S(value)).value)
        self.host.events.emit(
            Transfer(emitter=self.address, from_=NULL_ADDRESS, to=to, value=value)
        )

    def _burn(self, holder: str, value: int) -> None:
        holder = normalize_address(holder)
        remaining = S(self._balances.get(holder, 0)).checked_sub(value)
        if remaining is None:
            raise InsufficientBalance(f"{holder} holds fewer than {value} shares")
        journal = self.host.journal
        journal.set_item(self._balances, holder, remaining.value)
        journal.set_attr(self, "total_supply", (S(self.total_supply) - S(value)).value)
        self.host.events.emit(
            Transfer(emitter=self.address, from_=holder, to=NULL_ADDRESS, value=value)
        )

    def _move(self, sender: str, to: str, value: int) -> None:
        if value < 0:
            raise ValueError(f"Transfer amount cannot be negative: {value}")
        remaining = S(self._balances.get(sender, 0)).checked_sub(value)
        if remaining is None:
            raise InsufficientBalance(
                f"{sender} holds {self._balances.get(sender, 0)} shares, needs {value}"
            )
        journal = self.host.journal
        journal.set_item(self._balances, sender, remaining.value)
        journal.set_item(self._balances, to, (S(self._balances.get(to, 0)) + S(value)).value)
        self.host.events.emit(Transfer(emitter=self.address, from_=sender, to=to, value=value))


__all__ = ["ShareToken"]
