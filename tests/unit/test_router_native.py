"""Tests for the Router's native-coin entry points."""

import pytest

from ammcore.constants import NATIVE_ASSET
from ammcore.errors import (
    Expired,
    InsufficientBAmount,
    InsufficientOutputAmount,
    InvalidPath,
    NativeNotSupported,
)
from ammcore.host import Host
from ammcore.ledger import InMemoryLedger
from ammcore.math.pricing import get_amount_out
from ammcore.pair import Pair
from ammcore.registry import PairRegistry
from ammcore.router import Router
from tests.helpers import ALICE, BOB, CAROL, DAI, E18, FAR_DEADLINE, START_TIME, USDC, WETH, fund

FIRST_SHARES = 200 * E18 - 1000  # sqrt(100e18 * 400e18) minus the locked minimum


@pytest.fixture
def native_funded(host: Host, router: Router, ledger: InMemoryLedger) -> None:
    """ALICE and BOB hold 1000e18 native coin and 1,000,000 DAI/USDC approved to the router."""
    for account in (ALICE, BOB):
        fund(host, account, [DAI, USDC], 1_000_000 * E18, router.address)
        ledger.mint(NATIVE_ASSET, account, 1000 * E18)


@pytest.fixture
def native_pair(router: Router, registry: PairRegistry, native_funded: None) -> Pair:
    """DAI/WETH pair seeded by ALICE with 100e18 DAI and 400e18 native coin."""
    router.add_liquidity_eth(
        DAI, 100 * E18, 0, 0, ALICE, FAR_DEADLINE, sender=ALICE, value=400 * E18
    )
    pair = registry.pair(DAI, WETH)
    assert pair is not None
    return pair


def assert_fully_backed(ledger: InMemoryLedger) -> None:
    assert ledger.total_supply(WETH) == ledger.balance_of(NATIVE_ASSET, WETH)


def assert_router_holds_nothing(ledger: InMemoryLedger, router: Router) -> None:
    for asset in (NATIVE_ASSET, WETH, DAI):
        assert ledger.balance_of(asset, router.address) == 0


class TestNativeConfiguration:
    """Tests for the wrapped-native setting."""

    def test_weth(self, router: Router):
        assert router.weth == WETH

    def test_router_without_wrapped_native(self, registry: PairRegistry, native_funded: None):
        plain = Router(registry)
        with pytest.raises(NativeNotSupported):
            plain.weth
        with pytest.raises(NativeNotSupported):
            plain.add_liquidity_eth(
                DAI, E18, 0, 0, ALICE, FAR_DEADLINE, sender=ALICE, value=E18
            )
        with pytest.raises(NativeNotSupported):
            plain.swap_exact_tokens_for_eth(E18, 0, [DAI, WETH], ALICE, FAR_DEADLINE, sender=ALICE)


class TestAddLiquidityNative:
    """Tests for add_liquidity_eth."""

    def test_first_deposit_creates_wrapped_pair(
        self, router: Router, registry: PairRegistry, ledger: InMemoryLedger, native_funded: None
    ):
        result = router.add_liquidity_eth(
            DAI, 100 * E18, 0, 0, ALICE, FAR_DEADLINE, sender=ALICE, value=400 * E18
        )

        assert registry.get_pair(DAI, WETH) == result.pair_address
        assert (result.amount_a, result.amount_b) == (100 * E18, 400 * E18)
        assert result.shares == FIRST_SHARES
        assert ledger.balance_of(NATIVE_ASSET, ALICE) == 600 * E18
        assert ledger.balance_of(WETH, result.pair_address) == 400 * E18
        assert_fully_backed(ledger)
        assert_router_holds_nothing(ledger, router)

    def test_unused_native_is_refunded(
        self, router: Router, ledger: InMemoryLedger, native_pair: Pair
    ):
        # 50 DAI at a 1:4 price needs 200 of the 400 sent
        result = router.add_liquidity_eth(
            DAI, 50 * E18, 0, 0, ALICE, FAR_DEADLINE, sender=ALICE, value=400 * E18
        )

        assert result.amount_b == 200 * E18
        assert ledger.balance_of(NATIVE_ASSET, ALICE) == 400 * E18
        assert native_pair.get_reserves()[:2] == (150 * E18, 600 * E18)
        assert_router_holds_nothing(ledger, router)

    def test_native_minimum_not_met(
        self, router: Router, ledger: InMemoryLedger, native_pair: Pair
    ):
        with pytest.raises(InsufficientBAmount):
            router.add_liquidity_eth(
                DAI,
                50 * E18,
                0,
                201 * E18,
                ALICE,
                FAR_DEADLINE,
                sender=ALICE,
                value=400 * E18,
            )
        assert ledger.balance_of(NATIVE_ASSET, ALICE) == 600 * E18

    def test_expired(self, router: Router, native_funded: None):
        with pytest.raises(Expired):
            router.add_liquidity_eth(
                DAI, E18, 0, 0, ALICE, START_TIME - 1, sender=ALICE, value=E18
            )


class TestRemoveLiquidityNative:
    """Tests for remove_liquidity_eth."""

    def test_pays_token_and_native(
        self, router: Router, ledger: InMemoryLedger, native_pair: Pair
    ):
        native_pair.approve(router.address, FIRST_SHARES, sender=ALICE)
        dai_before = ledger.balance_of(DAI, BOB)
        native_before = ledger.balance_of(NATIVE_ASSET, BOB)

        result = router.remove_liquidity_eth(
            DAI, FIRST_SHARES, 0, 0, BOB, FAR_DEADLINE, sender=ALICE
        )

        assert (result.amount_a, result.amount_b) == (100 * E18 - 500, 400 * E18 - 2000)
        assert ledger.balance_of(DAI, BOB) - dai_before == result.amount_a
        assert ledger.balance_of(NATIVE_ASSET, BOB) - native_before == result.amount_b
        # Only the locked minimum's share of WETH remains, still backed
        assert ledger.total_supply(WETH) == 2000
        assert_fully_backed(ledger)
        assert_router_holds_nothing(ledger, router)

    def test_native_minimum_not_met(
        self, router: Router, ledger: InMemoryLedger, native_pair: Pair
    ):
        native_pair.approve(router.address, FIRST_SHARES, sender=ALICE)
        with pytest.raises(InsufficientBAmount):
            router.remove_liquidity_eth(
                DAI, FIRST_SHARES, 0, 400 * E18, BOB, FAR_DEADLINE, sender=ALICE
            )
        assert native_pair.balance_of(ALICE) == FIRST_SHARES
        assert ledger.total_supply(WETH) == 400 * E18

    def test_expired(self, router: Router, native_pair: Pair):
        native_pair.approve(router.address, FIRST_SHARES, sender=ALICE)
        with pytest.raises(Expired):
            router.remove_liquidity_eth(
                DAI, FIRST_SHARES, 0, 0, BOB, START_TIME - 1, sender=ALICE
            )


class TestSwapNative:
    """Tests for swaps that start or end in native coin."""

    def test_exact_native_for_tokens(
        self, router: Router, ledger: InMemoryLedger, native_pair: Pair
    ):
        expected = get_amount_out(4 * E18, 400 * E18, 100 * E18)
        dai_before = ledger.balance_of(DAI, BOB)

        amounts = router.swap_exact_eth_for_tokens(
            0, [WETH, DAI], BOB, FAR_DEADLINE, sender=BOB, value=4 * E18
        )

        assert amounts == [4 * E18, expected]
        assert ledger.balance_of(DAI, BOB) - dai_before == expected
        assert ledger.balance_of(NATIVE_ASSET, BOB) == 996 * E18
        assert_fully_backed(ledger)
        assert_router_holds_nothing(ledger, router)

    @pytest.mark.parametrize("path", [[DAI, WETH], [DAI, USDC]])
    def test_native_in_requires_wrapped_first(self, router: Router, native_pair: Pair, path):
        with pytest.raises(InvalidPath):
            router.swap_exact_eth_for_tokens(0, path, BOB, FAR_DEADLINE, sender=BOB, value=E18)

    def test_native_in_slippage(
        self, router: Router, ledger: InMemoryLedger, native_pair: Pair
    ):
        expected = get_amount_out(4 * E18, 400 * E18, 100 * E18)
        with pytest.raises(InsufficientOutputAmount):
            router.swap_exact_eth_for_tokens(
                expected + 1, [WETH, DAI], BOB, FAR_DEADLINE, sender=BOB, value=4 * E18
            )
        assert ledger.balance_of(NATIVE_ASSET, BOB) == 1000 * E18
        assert native_pair.get_reserves()[:2] == (100 * E18, 400 * E18)

    def test_exact_tokens_for_native(
        self, router: Router, ledger: InMemoryLedger, native_pair: Pair
    ):
        expected = get_amount_out(E18, 100 * E18, 400 * E18)

        amounts = router.swap_exact_tokens_for_eth(
            E18, 0, [DAI, WETH], CAROL, FAR_DEADLINE, sender=BOB
        )

        assert amounts == [E18, expected]
        assert ledger.balance_of(NATIVE_ASSET, CAROL) == expected
        assert ledger.balance_of(WETH, native_pair.address) == 400 * E18 - expected
        assert_fully_backed(ledger)
        assert_router_holds_nothing(ledger, router)

    def test_native_out_requires_wrapped_last(self, router: Router, native_pair: Pair):
        with pytest.raises(InvalidPath):
            router.swap_exact_tokens_for_eth(E18, 0, [WETH, DAI], BOB, FAR_DEADLINE, sender=BOB)

    def test_native_out_slippage(
        self, router: Router, ledger: InMemoryLedger, native_pair: Pair
    ):
        expected = get_amount_out(E18, 100 * E18, 400 * E18)
        dai_before = ledger.balance_of(DAI, BOB)
        with pytest.raises(InsufficientOutputAmount):
            router.swap_exact_tokens_for_eth(
                E18, expected + 1, [DAI, WETH], BOB, FAR_DEADLINE, sender=BOB
            )
        assert ledger.balance_of(DAI, BOB) == dai_before
        assert ledger.balance_of(NATIVE_ASSET, BOB) == 1000 * E18
