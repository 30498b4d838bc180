"""Per-pair ledger: reserves, liquidity shares, protocol fee, price oracle.

All mutation goes through mint, burn, swap, sync and skim. Inputs are never
passed as arguments; the pair infers them as the surplus of its actual asset
holdings over its recorded reserves (see LedgerProbe). Every mutator runs in
a host transaction, which is what makes the optimistic payout in swap safe.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog

from ammcore.constants import LOCKED_SHARES_HOLDER, TIMESTAMP_MODULUS
from ammcore.errors import (
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutputAmount,
    InvalidCallee,
    InvalidInvariant,
    InvalidRecipient,
    Locked,
    ReserveOverflow,
)
from ammcore.host import Host, transactional
from ammcore.ledger import LedgerProbe
from ammcore.math import uq112x112
from ammcore.math.pricing import amounts_for_withdrawal, protocol_fee_shares, shares_for_deposit
from ammcore.models.events import Burn, Mint, Swap, Sync
from ammcore.models.state import PairState
from ammcore.models.types import address_bytes, is_null_address, normalize_address
from ammcore.safe_int import S, UintOverflow
from ammcore.shares import ShareToken

if TYPE_CHECKING:
    from ammcore.registry import PairRegistry

logger = structlog.get_logger()


class Pair(ShareToken):
    """Constant-product pool for one unordered asset pair.

    Pairs are created by PairRegistry.create_pair; do not construct them
    directly in application code.

    Args:
        host: Execution host shared with the registry
        registry: Registry that created the pair (source of the fee recipient)
        address: Deterministic pair address
        asset0: Lower asset in canonical order
        asset1: Higher asset in canonical order
    """

    def __init__(
        self,
        host: Host,
        registry: PairRegistry,
        address: str,
        asset0: str,
        asset1: str,
    ) -> None:
        super().__init__(host, address)
        asset0 = normalize_address(asset0)
        asset1 = normalize_address(asset1)
        if address_bytes(asset0) >= address_bytes(asset1):
            raise ValueError(f"Assets not in canonical order: {asset0} >= {asset1}")

        self.registry = registry
        self.asset0 = asset0
        self.asset1 = asset1
        self.reserve0 = 0
        self.reserve1 = 0
        self.block_timestamp_last = 0
        self.price0_cumulative_last = 0
        self.price1_cumulative_last = 0
        # reserve0 * reserve1 as of the last liquidity event (only while fee is on)
        self.k_last = 0

        self._probe = LedgerProbe(host.ledger, self.address, asset0, asset1)
        # Raw clock reading of the last update; the clock never appears to run backwards
        self._observed_at = 0
        self._unlocked = True

    def __repr__(self) -> str:
        return (
            f"Pair({self.address}, asset0={self.asset0}, asset1={self.asset1}, "
            f"reserves=({self.reserve0}, {self.reserve1}), total_supply={self.total_supply})"
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def get_reserves(self) -> tuple[int, int, int]:
        """(reserve0, reserve1, block_timestamp_last)."""
        return self.reserve0, self.reserve1, self.block_timestamp_last

    def state(self) -> PairState:
        return PairState(
            address=self.address,
            asset0=self.asset0,
            asset1=self.asset1,
            reserve0=self.reserve0,
            reserve1=self.reserve1,
            total_supply=self.total_supply,
            k_last=self.k_last,
            price0_cumulative_last=self.price0_cumulative_last,
            price1_cumulative_last=self.price1_cumulative_last,
            block_timestamp_last=self.block_timestamp_last,
        )

    def other_asset(self, asset: str) -> str:
        asset = normalize_address(asset)
        if asset == self.asset0:
            return self.asset1
        if asset == self.asset1:
            return self.asset0
        raise ValueError(f"Asset {asset} not in pair {self.address}")

    # =========================================================================
    # Mutators
    # =========================================================================

    @transactional
    def mint(self, to: str, *, sender: str) -> int:
        """Mint shares to `to` for assets already transferred to the pair.

        Returns:
            Shares minted to `to`

        Raises:
            InvalidRecipient: If `to` is the null address
            InsufficientLiquidityMinted: If the deposit earns no shares
        """
        with self._guard():
            to = normalize_address(to)
            if is_null_address(to):
                raise InvalidRecipient("Cannot mint shares to the null address")

            reserve0, reserve1 = self.reserve0, self.reserve1
            balance0, balance1 = self._probe.balances()
            amount0 = (S(balance0) - S(reserve0)).value
            amount1 = (S(balance1) - S(reserve1)).value

            fee_on = self._mint_fee(reserve0, reserve1)
            # Read after _mint_fee: the protocol's shares dilute this deposit
            total_supply = self.total_supply
            minimum_shares = self.host.config.minimum_shares
            liquidity = shares_for_deposit(
                amount0, amount1, reserve0, reserve1, total_supply, minimum_shares
            )
            if liquidity <= 0:
                raise InsufficientLiquidityMinted(
                    f"Deposit of ({amount0}, {amount1}) mints no shares"
                )
            if total_supply == 0:
                self._mint(LOCKED_SHARES_HOLDER, minimum_shares)
            self._mint(to, liquidity)

            self._update(balance0, balance1, reserve0, reserve1)
            if fee_on:
                self._set_k_last((S(self.reserve0) * S(self.reserve1)).value)

            sender = normalize_address(sender)
            self.host.events.emit(
                Mint(emitter=self.address, sender=sender, amount0=amount0, amount1=amount1)
            )
            logger.debug(
                "pair_minted",
                pair=self.address[-8:],
                to=to[-8:],
                amount0=amount0,
                amount1=amount1,
                shares=liquidity,
            )
            return liquidity

    @transactional
    def burn(self, to: str, *, sender: str) -> tuple[int, int]:
        """Redeem the shares held by the pair itself and pay the assets to `to`.

        Returns:
            (amount0, amount1) paid out

        Raises:
            InvalidRecipient: If `to` is the pair, one of its assets, or null
            InsufficientLiquidityBurned: If either payout would be zero
        """
        with self._guard():
            to = self._checked_recipient(to, allow_self=False)

            reserve0, reserve1 = self.reserve0, self.reserve1
            liquidity = self.balance_of(self.address)

            fee_on = self._mint_fee(reserve0, reserve1)
            total_supply = self.total_supply
            amount0, amount1 = amounts_for_withdrawal(liquidity, total_supply, reserve0, reserve1)
            if amount0 == 0 or amount1 == 0:
                raise InsufficientLiquidityBurned(
                    f"Burning {liquidity} of {total_supply} shares returns ({amount0}, {amount1})"
                )

            self._burn(self.address, liquidity)
            ledger = self.host.ledger
            ledger.transfer(self.asset0, self.address, to, amount0)
            ledger.transfer(self.asset1, self.address, to, amount1)

            balance0, balance1 = self._probe.balances()
            self._update(balance0, balance1, reserve0, reserve1)
            if fee_on:
                self._set_k_last((S(self.reserve0) * S(self.reserve1)).value)

            sender = normalize_address(sender)
            self.host.events.emit(
                Burn(
                    emitter=self.address,
                    sender=sender,
                    amount0=amount0,
                    amount1=amount1,
                    to=to,
                )
            )
            logger.debug(
                "pair_burned",
                pair=self.address[-8:],
                to=to[-8:],
                shares=liquidity,
                amount0=amount0,
                amount1=amount1,
            )
            return amount0, amount1

    @transactional
    def swap(
        self,
        amount0_out: int,
        amount1_out: int,
        to: str,
        data: bytes = b"",
        *,
        sender: str,
    ) -> tuple[int, int]:
        """Pay out the requested amounts, then verify the input covers them.

        The input is whatever the pair holds above (reserve - amount_out) once
        the payout (and the flash callback, when `data` is non-empty) is done.

        Returns:
            (amount0_in, amount1_in) inferred from balances

        Raises:
            InsufficientOutputAmount: If both outputs are zero
            InsufficientLiquidity: If an output meets or exceeds its reserve
            InvalidRecipient: If `to` is one of the assets or null
            InvalidCallee: If `data` is given and `to` has no flash callback
            InsufficientInputAmount: If nothing was paid in
            InvalidInvariant: If fee-adjusted balances shrink the product
        """
        with self._guard():
            if amount0_out < 0 or amount1_out < 0:
                raise ValueError(f"Negative swap output: ({amount0_out}, {amount1_out})")
            if amount0_out == 0 and amount1_out == 0:
                raise InsufficientOutputAmount("Swap must request a non-zero output")

            reserve0, reserve1 = self.reserve0, self.reserve1
            if amount0_out >= reserve0 or amount1_out >= reserve1:
                raise InsufficientLiquidity(
                    f"Output ({amount0_out}, {amount1_out}) exceeds reserves ({reserve0}, {reserve1})"
                )

            to = self._checked_recipient(to, allow_self=True)
            sender = normalize_address(sender)

            # Optimistic payout; the host transaction undoes it if checks fail
            ledger = self.host.ledger
            if amount0_out > 0:
                ledger.transfer(self.asset0, self.address, to, amount0_out)
            if amount1_out > 0:
                ledger.transfer(self.asset1, self.address, to, amount1_out)

            if data:
                callee = self.host.callee_for(to)
                if callee is None:
                    raise InvalidCallee(f"No flash swap callback registered for {to}")
                callee.flash_swap_call(sender, amount0_out, amount1_out, data)

            balance0, balance1 = self._probe.balances()
            amount0_in = max(0, balance0 - (reserve0 - amount0_out))
            amount1_in = max(0, balance1 - (reserve1 - amount1_out))
            if amount0_in == 0 and amount1_in == 0:
                raise InsufficientInputAmount("Swap received no input")

            config = self.host.config
            base = config.fee_denominator
            adjusted0 = S(balance0) * S(base) - S(amount0_in) * S(config.fee_complement)
            adjusted1 = S(balance1) * S(base) - S(amount1_in) * S(config.fee_complement)
            if adjusted0 * adjusted1 < S(reserve0) * S(reserve1) * S(base * base):
                raise InvalidInvariant(
                    f"Fee-adjusted product fell below reserves ({reserve0}, {reserve1})"
                )

            self._update(balance0, balance1, reserve0, reserve1)
            self.host.events.emit(
                Swap(
                    emitter=self.address,
                    sender=sender,
                    amount0_in=amount0_in,
                    amount1_in=amount1_in,
                    amount0_out=amount0_out,
                    amount1_out=amount1_out,
                    to=to,
                )
            )
            logger.debug(
                "swap_executed",
                pair=self.address[-8:],
                to=to[-8:],
                amount0_in=amount0_in,
                amount1_in=amount1_in,
                amount0_out=amount0_out,
                amount1_out=amount1_out,
                flash=bool(data),
            )
            return amount0_in, amount1_in

    @transactional
    def skim(self, to: str) -> tuple[int, int]:
        """Send holdings above the recorded reserves to `to`.

        Returns:
            (amount0, amount1) skimmed
        """
        with self._guard():
            to = self._checked_recipient(to, allow_self=True)
            excess0, excess1 = self._probe.surplus(self.reserve0, self.reserve1)
            ledger = self.host.ledger
            if excess0 > 0:
                ledger.transfer(self.asset0, self.address, to, excess0)
            if excess1 > 0:
                ledger.transfer(self.asset1, self.address, to, excess1)
            logger.debug(
                "pair_skimmed", pair=self.address[-8:], to=to[-8:], amount0=excess0, amount1=excess1
            )
            return excess0, excess1

    @transactional
    def sync(self) -> None:
        """Overwrite the reserves with the actual holdings."""
        with self._guard():
            balance0, balance1 = self._probe.balances()
            self._update(balance0, balance1, self.reserve0, self.reserve1)

    # =========================================================================
    # Internals
    # =========================================================================

    @contextmanager
    def _guard(self) -> Iterator[None]:
        """Reject re-entry into this pair (e.g. from a flash callback)."""
        if not self._unlocked:
            raise Locked(f"Pair {self.address} is locked")
        self._unlocked = False
        try:
            yield
        finally:
            self._unlocked = True

    def _checked_recipient(self, to: str, *, allow_self: bool) -> str:
        to = normalize_address(to)
        if is_null_address(to) or to in (self.asset0, self.asset1):
            raise InvalidRecipient(f"Invalid recipient {to}")
        if not allow_self and to == self.address:
            raise InvalidRecipient(f"Pair {to} cannot pay itself")
        return to

    def _update(self, balance0: int, balance1: int, reserve0: int, reserve1: int) -> None:
        """Accumulate prices on the old reserves, then store the new ones."""
        bits = self.host.config.reserve_bits
        try:
            S(balance0).to_uint(bits)
            S(balance1).to_uint(bits)
        except UintOverflow as exc:
            raise ReserveOverflow(f"Balances ({balance0}, {balance1}) exceed uint{bits}") from exc

        now = self.host.now()
        if now < self._observed_at:
            # Clock stepped back: no time has passed until it catches up
            now = self._observed_at
        block_timestamp = now % TIMESTAMP_MODULUS
        time_elapsed = (block_timestamp - self.block_timestamp_last) % TIMESTAMP_MODULUS

        journal = self.host.journal
        if time_elapsed > 0 and reserve0 != 0 and reserve1 != 0:
            price0 = uq112x112.uqdiv(uq112x112.encode(reserve1), reserve0)
            price1 = uq112x112.uqdiv(uq112x112.encode(reserve0), reserve1)
            journal.set_attr(
                self, "price0_cumulative_last", self.price0_cumulative_last + price0 * time_elapsed
            )
            journal.set_attr(
                self, "price1_cumulative_last", self.price1_cumulative_last + price1 * time_elapsed
            )

        journal.set_attr(self, "reserve0", balance0)
        journal.set_attr(self, "reserve1", balance1)
        journal.set_attr(self, "block_timestamp_last", block_timestamp)
        journal.set_attr(self, "_observed_at", now)
        self.host.events.emit(Sync(emitter=self.address, reserve0=balance0, reserve1=balance1))

    def _mint_fee(self, reserve0: int, reserve1: int) -> bool:
        """Mint the protocol's cut of sqrt(k) growth; report whether the fee is on."""
        fee_to = self.registry.fee_recipient
        fee_on = fee_to is not None
        if fee_on:
            if self.k_last != 0:
                liquidity = protocol_fee_shares(
                    self.total_supply,
                    (S(reserve0) * S(reserve1)).value,
                    self.k_last,
                    self.host.config.protocol_fee_divisor,
                )
                if liquidity > 0:
                    self._mint(fee_to, liquidity)
                    logger.debug(
                        "protocol_fee_minted",
                        pair=self.address[-8:],
                        fee_to=fee_to[-8:],
                        shares=liquidity,
                    )
        elif self.k_last != 0:
            self._set_k_last(0)
        return fee_on

    def _set_k_last(self, k_last: int) -> None:
        self.host.journal.set_attr(self, "k_last", k_last)


__all__ = ["Pair"]
