"""Router: quoting and slippage/deadline-safe liquidity and swap orchestration.

The router holds no state of its own. It resolves pairs through the registry,
prices with the pricing math, moves the caller's assets into pairs (against
ledger allowances granted to the router) and calls the pair mutators. Every
mutating call takes a deadline and runs in a single host transaction, so a
failed multi-hop swap leaves every pair untouched.

Native coin enters and leaves through the wrapped-native asset the router is
built with: it is wrapped on the way into a pair and unwrapped on the way out.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from ammcore.constants import DEFAULT_ROUTER_ADDRESS, NATIVE_ASSET
from ammcore.errors import (
    ExcessiveInputAmount,
    Expired,
    InsufficientAAmount,
    InsufficientAmount,
    InsufficientBAmount,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientOutputAmount,
    InvalidPath,
    InvalidRecipient,
    NativeNotSupported,
    PairNotFound,
)
from ammcore.host import transactional
from ammcore.ledger import WrappedNative
from ammcore.math import pricing
from ammcore.models.types import is_null_address, normalize_address
from ammcore.pair import Pair
from ammcore.registry import PairRegistry

logger = structlog.get_logger()


@dataclass
class AddLiquidityResult:
    """Realized amounts of an add_liquidity call."""

    amount_a: int
    amount_b: int
    shares: int
    pair_address: str


@dataclass
class RemoveLiquidityResult:
    """Realized amounts of a remove_liquidity call."""

    amount_a: int
    amount_b: int


class Router:
    """User-facing entry point for liquidity and swaps.

    Args:
        registry: Registry used to resolve and create pairs
        address: The router's identity; callers approve it on the asset ledger
                 (and on pair share tokens for remove_liquidity)
        wrapped_native: Address of the asset that wraps the native coin. The
                 native-coin entry points raise NativeNotSupported without it.
    """

    def __init__(
        self,
        registry: PairRegistry,
        address: str = DEFAULT_ROUTER_ADDRESS,
        wrapped_native: str | None = None,
    ) -> None:
        self.registry = registry
        self.host = registry.host
        self.address = normalize_address(address, validate=True)
        self._wrapped: WrappedNative | None = None
        if wrapped_native is not None:
            self._wrapped = WrappedNative(self.host.ledger, wrapped_native)

    # =========================================================================
    # Quoting
    # =========================================================================

    def quote(self, amount_a: int, reserve_a: int, reserve_b: int) -> int:
        """Amount of B equal in value to amount_a at the given reserves.

        Raises:
            InsufficientAmount: If amount_a is zero
            InsufficientLiquidity: If either reserve is zero
        """
        if amount_a <= 0:
            raise InsufficientAmount("Quote amount must be positive")
        if reserve_a <= 0 or reserve_b <= 0:
            raise InsufficientLiquidity("Cannot quote against empty reserves")
        return pricing.quote(amount_a, reserve_a, reserve_b)

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        """Checked wrapper around pricing.get_amount_out.

        Raises:
            InsufficientInputAmount: If amount_in is zero
            InsufficientLiquidity: If either reserve is zero
        """
        if amount_in <= 0:
            raise InsufficientInputAmount("Input amount must be positive")
        if reserve_in <= 0 or reserve_out <= 0:
            raise InsufficientLiquidity("Cannot price against empty reserves")
        config = self.host.config
        return pricing.get_amount_out(
            amount_in, reserve_in, reserve_out, config.fee_numerator, config.fee_denominator
        )

    def get_amount_in(self, amount_out: int, reserve_in: int, reserve_out: int) -> int:
        """Checked wrapper around pricing.get_amount_in.

        Raises:
            InsufficientOutputAmount: If amount_out is zero
            InsufficientLiquidity: If a reserve is zero or amount_out >= reserve_out
        """
        if amount_out <= 0:
            raise InsufficientOutputAmount("Output amount must be positive")
        if reserve_in <= 0 or reserve_out <= 0:
            raise InsufficientLiquidity("Cannot price against empty reserves")
        if amount_out >= reserve_out:
            raise InsufficientLiquidity(
                f"Output {amount_out} meets or exceeds reserve {reserve_out}"
            )
        config = self.host.config
        return pricing.get_amount_in(
            amount_out, reserve_in, reserve_out, config.fee_numerator, config.fee_denominator
        )

    def get_reserves(self, asset_a: str, asset_b: str) -> tuple[int, int]:
        """Reserves of the (asset_a, asset_b) pair, ordered as the arguments.

        Raises:
            PairNotFound: If no pair exists
        """
        pair = self._pair_for(asset_a, asset_b)
        if normalize_address(asset_a) == pair.asset0:
            return pair.reserve0, pair.reserve1
        return pair.reserve1, pair.reserve0

    def get_amounts_out(self, amount_in: int, path: list[str]) -> list[int]:
        """Amounts realized at each hop for an exact input.

        Returns:
            amounts[0] == amount_in, amounts[-1] is the final output

        Raises:
            InvalidPath: If path has fewer than two assets
        """
        path = self._checked_path(path)
        amounts = [amount_in]
        for i in range(len(path) - 1):
            reserve_in, reserve_out = self.get_reserves(path[i], path[i + 1])
            amounts.append(self.get_amount_out(amounts[i], reserve_in, reserve_out))
        return amounts

    def get_amounts_in(self, amount_out: int, path: list[str]) -> list[int]:
        """Inputs required at each hop for an exact output (walks the path backwards).

        Returns:
            amounts[-1] == amount_out, amounts[0] is the required input

        Raises:
            InvalidPath: If path has fewer than two assets
        """
        path = self._checked_path(path)
        amounts = [0] * len(path)
        amounts[-1] = amount_out
        for i in range(len(path) - 1, 0, -1):
            reserve_in, reserve_out = self.get_reserves(path[i - 1], path[i])
            amounts[i - 1] = self.get_amount_in(amounts[i], reserve_in, reserve_out)
        return amounts

    # =========================================================================
    # Liquidity
    # =========================================================================

    @transactional
    def add_liquidity(
        self,
        asset_a: str,
        asset_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> AddLiquidityResult:
        """Deposit a balanced amount of both assets, creating the pair if needed.

        Raises:
            Expired: If the deadline has passed
            InsufficientAAmount: If the A amount used falls below amount_a_min
            InsufficientBAmount: If the B amount used falls below amount_b_min
        """
        self._ensure(deadline)
        to = self._checked_recipient(to)
        sender = normalize_address(sender)

        pair = self._pair_or_create(asset_a, asset_b)

        amount_a, amount_b = self._optimal_deposit(
            asset_a,
            asset_b,
            amount_a_desired,
            amount_b_desired,
            amount_a_min,
            amount_b_min,
        )

        ledger = self.host.ledger
        ledger.transfer_from(asset_a, self.address, sender, pair.address, amount_a)
        ledger.transfer_from(asset_b, self.address, sender, pair.address, amount_b)
        shares = pair.mint(to, sender=self.address)

        logger.info(
            "liquidity_added",
            pair=pair.address[-8:],
            amount_a=amount_a,
            amount_b=amount_b,
            shares=shares,
        )
        return AddLiquidityResult(
            amount_a=amount_a, amount_b=amount_b, shares=shares, pair_address=pair.address
        )

    @transactional
    def remove_liquidity(
        self,
        asset_a: str,
        asset_b: str,
        shares: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> RemoveLiquidityResult:
        """Redeem `shares` (pulled from sender via share allowance) for both assets.

        Raises:
            Expired: If the deadline has passed
            PairNotFound: If no pair exists for the assets
            InsufficientAAmount: If the A payout falls below amount_a_min
            InsufficientBAmount: If the B payout falls below amount_b_min
        """
        self._ensure(deadline)
        to = self._checked_recipient(to)
        pair = self._pair_for(asset_a, asset_b)

        pair.transfer_from(sender, pair.address, shares, sender=self.address)
        amount0, amount1 = pair.burn(to, sender=self.address)
        if normalize_address(asset_a) == pair.asset0:
            amount_a, amount_b = amount0, amount1
        else:
            amount_a, amount_b = amount1, amount0

        if amount_a < amount_a_min:
            raise InsufficientAAmount(f"Received {amount_a} of A, minimum {amount_a_min}")
        if amount_b < amount_b_min:
            raise InsufficientBAmount(f"Received {amount_b} of B, minimum {amount_b_min}")

        logger.info(
            "liquidity_removed",
            pair=pair.address[-8:],
            shares=shares,
            amount_a=amount_a,
            amount_b=amount_b,
        )
        return RemoveLiquidityResult(amount_a=amount_a, amount_b=amount_b)

    # =========================================================================
    # Swaps
    # =========================================================================

    @transactional
    def swap_exact_tokens_for_tokens(
        self,
        amount_in: int,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """Sell exactly amount_in of path[0] for at least amount_out_min of path[-1].

        Returns:
            Amounts realized at each hop

        Raises:
            Expired: If the deadline has passed
            InvalidPath: If path has fewer than two assets
            InsufficientOutputAmount: If the final output is below amount_out_min
        """
        self._ensure(deadline)
        to = self._checked_recipient(to)
        path = self._checked_path(path)

        amounts = self.get_amounts_out(amount_in, path)
        if amounts[-1] < amount_out_min:
            raise InsufficientOutputAmount(
                f"Output {amounts[-1]} below minimum {amount_out_min}"
            )
        self._pay_first_hop(path, amounts[0], sender)
        self._swap(amounts, path, to)

        logger.info(
            "swap_exact_in",
            path=[p[-8:] for p in path],
            amount_in=amounts[0],
            amount_out=amounts[-1],
        )
        return amounts

    @transactional
    def swap_tokens_for_exact_tokens(
        self,
        amount_out: int,
        amount_in_max: int,
        path: list[str],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """Buy exactly amount_out of path[-1] for at most amount_in_max of path[0].

        Returns:
            Amounts realized at each hop

        Raises:
            Expired: If the deadline has passed
            InvalidPath: If path has fewer than two assets
            ExcessiveInputAmount: If the required input exceeds amount_in_max
        """
        self._ensure(deadline)
        to = self._checked_recipient(to)
        path = self._checked_path(path)

        amounts = self.get_amounts_in(amount_out, path)
        if amounts[0] > amount_in_max:
            raise ExcessiveInputAmount(f"Input {amounts[0]} above maximum {amount_in_max}")
        self._pay_first_hop(path, amounts[0], sender)
        self._swap(amounts, path, to)

        logger.info(
            "swap_exact_out",
            path=[p[-8:] for p in path],
            amount_in=amounts[0],
            amount_out=amounts[-1],
        )
        return amounts

    # =========================================================================
    # Native coin
    # =========================================================================

    @property
    def weth(self) -> str:
        """Address of the wrapped native asset.

        Raises:
            NativeNotSupported: If the router was built without one
        """
        return self._native().address

    @transactional
    def add_liquidity_eth(
        self,
        asset: str,
        amount_token_desired: int,
        amount_token_min: int,
        amount_native_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
        value: int,
    ) -> AddLiquidityResult:
        """Deposit `asset` against native coin, wrapping the native side.

        `value` is the native coin sent with the call. Whatever the optimal
        deposit does not use is refunded to the sender.

        Returns:
            AddLiquidityResult with amount_a for `asset` and amount_b for native

        Raises:
            NativeNotSupported: If the router has no wrapped native asset
            Expired: If the deadline has passed
            InsufficientAAmount: If the token amount used falls below amount_token_min
            InsufficientBAmount: If the native amount used falls below amount_native_min
        """
        wrapped = self._native()
        self._ensure(deadline)
        to = self._checked_recipient(to)
        sender = normalize_address(sender)

        pair = self._pair_or_create(asset, wrapped.address)
        amount_token, amount_native = self._optimal_deposit(
            asset,
            wrapped.address,
            amount_token_desired,
            value,
            amount_token_min,
            amount_native_min,
        )

        ledger = self.host.ledger
        ledger.transfer(NATIVE_ASSET, sender, self.address, value)
        ledger.transfer_from(asset, self.address, sender, pair.address, amount_token)
        wrapped.deposit(self.address, amount_native)
        ledger.transfer(wrapped.address, self.address, pair.address, amount_native)
        shares = pair.mint(to, sender=self.address)

        refund = value - amount_native
        if refund > 0:
            ledger.transfer(NATIVE_ASSET, self.address, sender, refund)

        logger.info(
            "liquidity_added_native",
            pair=pair.address[-8:],
            amount_token=amount_token,
            amount_native=amount_native,
            refund=refund,
            shares=shares,
        )
        return AddLiquidityResult(
            amount_a=amount_token,
            amount_b=amount_native,
            shares=shares,
            pair_address=pair.address,
        )

    @transactional
    def remove_liquidity_eth(
        self,
        asset: str,
        shares: int,
        amount_token_min: int,
        amount_native_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> RemoveLiquidityResult:
        """Redeem shares of the asset/wrapped-native pair, paying native coin out.

        Returns:
            RemoveLiquidityResult with amount_a for `asset` and amount_b for native

        Raises:
            NativeNotSupported: If the router has no wrapped native asset
            Expired: If the deadline has passed
            PairNotFound: If no pair exists for the asset
            InsufficientAAmount: If the token payout falls below amount_token_min
            InsufficientBAmount: If the native payout falls below amount_native_min
        """
        wrapped = self._native()
        to = self._checked_recipient(to)
        result = self.remove_liquidity(
            asset,
            wrapped.address,
            shares,
            amount_token_min,
            amount_native_min,
            self.address,
            deadline,
            sender=sender,
        )

        ledger = self.host.ledger
        ledger.transfer(asset, self.address, to, result.amount_a)
        wrapped.withdraw(self.address, result.amount_b)
        ledger.transfer(NATIVE_ASSET, self.address, to, result.amount_b)
        return result

    @transactional
    def swap_exact_eth_for_tokens(
        self,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
        *,
        sender: str,
        value: int,
    ) -> list[int]:
        """Sell exactly `value` native coin for at least amount_out_min of path[-1].

        Raises:
            NativeNotSupported: If the router has no wrapped native asset
            Expired: If the deadline has passed
            InvalidPath: If path is too short or does not start with the wrapped asset
            InsufficientOutputAmount: If the final output is below amount_out_min
        """
        wrapped = self._native()
        self._ensure(deadline)
        to = self._checked_recipient(to)
        path = self._checked_path(path)
        if path[0] != wrapped.address:
            raise InvalidPath(f"Path must start with {wrapped.address}, got {path[0]}")

        amounts = self.get_amounts_out(value, path)
        if amounts[-1] < amount_out_min:
            raise InsufficientOutputAmount(
                f"Output {amounts[-1]} below minimum {amount_out_min}"
            )

        ledger = self.host.ledger
        ledger.transfer(NATIVE_ASSET, normalize_address(sender), self.address, value)
        wrapped.deposit(self.address, amounts[0])
        first = self._pair_for(path[0], path[1])
        ledger.transfer(wrapped.address, self.address, first.address, amounts[0])
        self._swap(amounts, path, to)

        logger.info(
            "swap_exact_native_in",
            path=[p[-8:] for p in path],
            amount_in=amounts[0],
            amount_out=amounts[-1],
        )
        return amounts

    @transactional
    def swap_exact_tokens_for_eth(
        self,
        amount_in: int,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """Sell exactly amount_in of path[0] for at least amount_out_min native coin.

        Raises:
            NativeNotSupported: If the router has no wrapped native asset
            Expired: If the deadline has passed
            InvalidPath: If path is too short or does not end with the wrapped asset
            InsufficientOutputAmount: If the native output is below amount_out_min
        """
        wrapped = self._native()
        self._ensure(deadline)
        to = self._checked_recipient(to)
        path = self._checked_path(path)
        if path[-1] != wrapped.address:
            raise InvalidPath(f"Path must end with {wrapped.address}, got {path[-1]}")

        amounts = self.get_amounts_out(amount_in, path)
        if amounts[-1] < amount_out_min:
            raise InsufficientOutputAmount(
                f"Output {amounts[-1]} below minimum {amount_out_min}"
            )
        self._pay_first_hop(path, amounts[0], sender)
        self._swap(amounts, path, self.address)

        wrapped.withdraw(self.address, amounts[-1])
        self.host.ledger.transfer(NATIVE_ASSET, self.address, to, amounts[-1])

        logger.info(
            "swap_exact_native_out",
            path=[p[-8:] for p in path],
            amount_in=amounts[0],
            amount_out=amounts[-1],
        )
        return amounts

    # =========================================================================
    # Internals
    # =========================================================================

    def _ensure(self, deadline: int) -> None:
        now = self.host.now()
        if now > deadline:
            raise Expired(f"Deadline {deadline} passed (now {now})")

    def _checked_recipient(self, to: str) -> str:
        if is_null_address(to):
            raise InvalidRecipient("Recipient cannot be the null address")
        return normalize_address(to)

    def _checked_path(self, path: list[str]) -> list[str]:
        if len(path) < 2:
            raise InvalidPath(f"Path needs at least two assets, got {len(path)}")
        return [normalize_address(asset) for asset in path]

    def _pair_for(self, asset_a: str, asset_b: str) -> Pair:
        pair = self.registry.pair(asset_a, asset_b)
        if pair is None:
            raise PairNotFound(f"No pair for {asset_a}/{asset_b}")
        return pair

    def _pair_or_create(self, asset_a: str, asset_b: str) -> Pair:
        if self.registry.get_pair(asset_a, asset_b) is None:
            self.registry.create_pair(asset_a, asset_b)
        return self._pair_for(asset_a, asset_b)

    def _native(self) -> WrappedNative:
        if self._wrapped is None:
            raise NativeNotSupported("Router was built without a wrapped native asset")
        return self._wrapped

    def _optimal_deposit(
        self,
        asset_a: str,
        asset_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
    ) -> tuple[int, int]:
        reserve_a, reserve_b = self.get_reserves(asset_a, asset_b)
        if reserve_a == 0 and reserve_b == 0:
            amount_a, amount_b = amount_a_desired, amount_b_desired
        else:
            amount_b_optimal = self.quote(amount_a_desired, reserve_a, reserve_b)
            if amount_b_optimal <= amount_b_desired:
                amount_a, amount_b = amount_a_desired, amount_b_optimal
            else:
                amount_a_optimal = self.quote(amount_b_desired, reserve_b, reserve_a)
                amount_a, amount_b = amount_a_optimal, amount_b_desired

        if amount_a < amount_a_min:
            raise InsufficientAAmount(f"Deposit of {amount_a} A below minimum {amount_a_min}")
        if amount_b < amount_b_min:
            raise InsufficientBAmount(f"Deposit of {amount_b} B below minimum {amount_b_min}")
        return amount_a, amount_b

    def _pay_first_hop(self, path: list[str], amount: int, sender: str) -> None:
        first = self._pair_for(path[0], path[1])
        self.host.ledger.transfer_from(
            path[0], self.address, normalize_address(sender), first.address, amount
        )

    def _swap(self, amounts: list[int], path: list[str], to: str) -> None:
        """Run each hop, sending its output straight into the next pair."""
        for i in range(len(path) - 1):
            asset_in, asset_out = path[i], path[i + 1]
            pair = self._pair_for(asset_in, asset_out)
            amount_out = amounts[i + 1]
            if asset_in == pair.asset0:
                amount0_out, amount1_out = 0, amount_out
            else:
                amount0_out, amount1_out = amount_out, 0
            if i < len(path) - 2:
                recipient = self._pair_for(asset_out, path[i + 2]).address
            else:
                recipient = to
            pair.swap(amount0_out, amount1_out, recipient, sender=self.address)


__all__ = ["Router", "AddLiquidityResult", "RemoveLiquidityResult"]
