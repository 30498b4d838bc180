"""Protocol fee accrual and flash swaps composed with the router."""

import pytest

from ammcore.errors import InsufficientOutputAmount
from ammcore.host import Host
from ammcore.ledger import InMemoryLedger
from ammcore.math.pricing import get_amount_in, protocol_fee_shares
from ammcore.pair import Pair
from ammcore.registry import PairRegistry
from ammcore.router import Router
from tests.helpers import (
    ALICE,
    BOB,
    CAROL,
    DAI,
    E18,
    FAR_DEADLINE,
    FEE_ADMIN,
    FEE_SINK,
    FLASH_BORROWER,
    USDC,
    WETH,
    fund,
    make_engine,
)


@pytest.fixture
def market() -> tuple[Host, PairRegistry, Router]:
    host, registry, router = make_engine()
    for account in (ALICE, BOB, CAROL):
        fund(host, account, [DAI, WETH, USDC], 10_000_000 * E18, router.address)
    return host, registry, router


def _pair(registry: PairRegistry, asset_a: str, asset_b: str) -> Pair:
    pair = registry.pair(asset_a, asset_b)
    assert pair is not None
    return pair


class TestProtocolFee:
    """Protocol fee shares minted on liquidity events."""

    def test_fee_accrues_after_trading(self, market: tuple[Host, PairRegistry, Router]):
        _, registry, router = market
        registry.set_fee_recipient(FEE_SINK, sender=FEE_ADMIN)
        router.add_liquidity(
            DAI, WETH, 1000 * E18, 1000 * E18, 0, 0, ALICE, FAR_DEADLINE, sender=ALICE
        )
        pair = _pair(registry, DAI, WETH)
        assert pair.k_last == (1000 * E18) ** 2

        router.swap_exact_tokens_for_tokens(
            10 * E18, 0, [DAI, WETH], BOB, FAR_DEADLINE, sender=BOB
        )
        expected = protocol_fee_shares(
            pair.total_supply, pair.reserve0 * pair.reserve1, pair.k_last
        )
        assert expected > 0

        router.add_liquidity(DAI, WETH, E18, E18, 0, 0, CAROL, FAR_DEADLINE, sender=CAROL)

        assert pair.balance_of(FEE_SINK) == expected
        assert pair.k_last == pair.reserve0 * pair.reserve1

    def test_no_fee_without_trading(self, market: tuple[Host, PairRegistry, Router]):
        _, registry, router = market
        registry.set_fee_recipient(FEE_SINK, sender=FEE_ADMIN)
        router.add_liquidity(
            DAI, WETH, 1000 * E18, 1000 * E18, 0, 0, ALICE, FAR_DEADLINE, sender=ALICE
        )
        router.add_liquidity(DAI, WETH, E18, E18, 0, 0, CAROL, FAR_DEADLINE, sender=CAROL)

        assert _pair(registry, DAI, WETH).balance_of(FEE_SINK) == 0

    def test_fee_off_by_default(self, market: tuple[Host, PairRegistry, Router]):
        _, registry, router = market
        router.add_liquidity(
            DAI, WETH, 1000 * E18, 1000 * E18, 0, 0, ALICE, FAR_DEADLINE, sender=ALICE
        )
        router.swap_exact_tokens_for_tokens(
            10 * E18, 0, [DAI, WETH], BOB, FAR_DEADLINE, sender=BOB
        )
        router.add_liquidity(DAI, WETH, E18, E18, 0, 0, CAROL, FAR_DEADLINE, sender=CAROL)

        pair = _pair(registry, DAI, WETH)
        assert pair.k_last == 0
        assert pair.balance_of(FEE_SINK) == 0

    def test_turning_fee_off_clears_k_last(self, market: tuple[Host, PairRegistry, Router]):
        _, registry, router = market
        registry.set_fee_recipient(FEE_SINK, sender=FEE_ADMIN)
        router.add_liquidity(
            DAI, WETH, 1000 * E18, 1000 * E18, 0, 0, ALICE, FAR_DEADLINE, sender=ALICE
        )
        pair = _pair(registry, DAI, WETH)
        assert pair.k_last != 0

        registry.set_fee_recipient(None, sender=FEE_ADMIN)
        router.swap_exact_tokens_for_tokens(
            10 * E18, 0, [DAI, WETH], BOB, FAR_DEADLINE, sender=BOB
        )
        router.add_liquidity(DAI, WETH, E18, E18, 0, 0, CAROL, FAR_DEADLINE, sender=CAROL)

        assert pair.k_last == 0
        assert pair.balance_of(FEE_SINK) == 0

    def test_fee_shares_are_redeemable(self, market: tuple[Host, PairRegistry, Router]):
        host, registry, router = market
        registry.set_fee_recipient(FEE_SINK, sender=FEE_ADMIN)
        router.add_liquidity(
            DAI, WETH, 1000 * E18, 1000 * E18, 0, 0, ALICE, FAR_DEADLINE, sender=ALICE
        )
        for _ in range(5):
            router.swap_exact_tokens_for_tokens(
                50 * E18, 0, [DAI, WETH], BOB, FAR_DEADLINE, sender=BOB
            )
            router.swap_exact_tokens_for_tokens(
                50 * E18, 0, [WETH, DAI], BOB, FAR_DEADLINE, sender=BOB
            )
        router.add_liquidity(DAI, WETH, E18, E18, 0, 0, CAROL, FAR_DEADLINE, sender=CAROL)
        pair = _pair(registry, DAI, WETH)
        fee_shares = pair.balance_of(FEE_SINK)
        assert fee_shares > 0

        pair.transfer(pair.address, fee_shares, sender=FEE_SINK)
        amount0, amount1 = pair.burn(FEE_SINK, sender=FEE_SINK)

        assert host.ledger.balance_of(DAI, FEE_SINK) == amount0 > 0
        assert host.ledger.balance_of(WETH, FEE_SINK) == amount1 > 0


class TriangleArbitrageur:
    """Borrows WETH from the DAI/WETH pair, sells it via WETH -> USDC -> DAI, repays in DAI."""

    def __init__(self, host: Host, router: Router, pair: Pair, address: str) -> None:
        self.host = host
        self.router = router
        self.pair = pair
        self.address = address
        self.profit = 0

    def flash_swap_call(
        self, sender: str, amount0_out: int, amount1_out: int, data: bytes
    ) -> None:
        borrowed = amount1_out
        # Reserves are still the pre-swap values while the callback runs
        owed = get_amount_in(borrowed, self.pair.reserve0, self.pair.reserve1)
        amounts = self.router.swap_exact_tokens_for_tokens(
            borrowed, owed, [WETH, USDC, DAI], self.address, FAR_DEADLINE, sender=self.address
        )
        self.host.ledger.transfer(DAI, self.address, self.pair.address, owed)
        self.profit = amounts[-1] - owed


class TestFlashArbitrage:
    """Flash swap whose callback trades through other pairs."""

    @pytest.fixture
    def triangle(self, market: tuple[Host, PairRegistry, Router]):
        def _build(usdc_per_weth: int) -> tuple[Host, PairRegistry, Router, Pair]:
            host, registry, router = market
            router.add_liquidity(
                DAI, WETH, 2_000_000 * E18, 1000 * E18, 0, 0, ALICE, FAR_DEADLINE, sender=ALICE
            )
            router.add_liquidity(
                WETH,
                USDC,
                1000 * E18,
                usdc_per_weth * 1000 * E18,
                0,
                0,
                ALICE,
                FAR_DEADLINE,
                sender=ALICE,
            )
            router.add_liquidity(
                USDC, DAI, 5_000_000 * E18, 5_000_000 * E18, 0, 0, ALICE, FAR_DEADLINE, sender=ALICE
            )
            host.ledger.approve(WETH, FLASH_BORROWER, router.address, InMemoryLedger.UNLIMITED)
            return host, registry, router, _pair(registry, DAI, WETH)

        return _build

    def test_profitable_loop(self, triangle):
        host, registry, router, pair = triangle(2500)
        arbitrageur = TriangleArbitrageur(host, router, pair, FLASH_BORROWER)
        host.register_callee(FLASH_BORROWER, arbitrageur)
        reserves_before = pair.get_reserves()[:2]

        pair.swap(0, E18, FLASH_BORROWER, b"arb", sender=FLASH_BORROWER)

        assert arbitrageur.profit > 0
        assert host.ledger.balance_of(DAI, FLASH_BORROWER) == arbitrageur.profit
        assert host.ledger.balance_of(WETH, FLASH_BORROWER) == 0
        assert pair.reserve1 == reserves_before[1] - E18
        assert pair.reserve0 * pair.reserve1 >= reserves_before[0] * reserves_before[1]

    def test_unprofitable_loop_rolls_back_everything(self, triangle):
        host, registry, router, pair = triangle(2000)
        host.register_callee(
            FLASH_BORROWER, TriangleArbitrageur(host, router, pair, FLASH_BORROWER)
        )
        weth_usdc = _pair(registry, WETH, USDC)
        before = (pair.get_reserves(), weth_usdc.get_reserves(), len(host.events))

        with pytest.raises(InsufficientOutputAmount):
            pair.swap(0, E18, FLASH_BORROWER, b"arb", sender=FLASH_BORROWER)

        assert (pair.get_reserves(), weth_usdc.get_reserves(), len(host.events)) == before
        assert host.ledger.balance_of(WETH, FLASH_BORROWER) == 0
