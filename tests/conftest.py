"""Pytest configuration and fixtures."""

from collections.abc import Callable

import pytest

from ammcore.host import Host, ManualClock
from ammcore.ledger import InMemoryLedger
from ammcore.pair import Pair
from ammcore.registry import PairRegistry
from ammcore.router import Router
from tests.helpers import (
    ALICE,
    BOB,
    DAI,
    E18,
    USDC,
    WBTC,
    WETH,
    fund,
    make_engine,
    seed_pair,
)

# =============================================================================
# Engine fixtures
# =============================================================================


@pytest.fixture
def engine() -> tuple[Host, PairRegistry, Router]:
    """Fresh host, registry and router sharing one in-memory ledger."""
    return make_engine()


@pytest.fixture
def host(engine: tuple[Host, PairRegistry, Router]) -> Host:
    return engine[0]


@pytest.fixture
def registry(engine: tuple[Host, PairRegistry, Router]) -> PairRegistry:
    return engine[1]


@pytest.fixture
def router(engine: tuple[Host, PairRegistry, Router]) -> Router:
    return engine[2]


@pytest.fixture
def ledger(host: Host) -> InMemoryLedger:
    assert isinstance(host.ledger, InMemoryLedger)
    return host.ledger


@pytest.fixture
def clock(host: Host) -> ManualClock:
    assert isinstance(host.clock, ManualClock)
    return host.clock


# =============================================================================
# Funded accounts and seeded pairs
# =============================================================================


@pytest.fixture
def funded(host: Host, router: Router) -> None:
    """ALICE and BOB each hold 1,000,000 of every test asset, approved to the router."""
    for account in (ALICE, BOB):
        fund(host, account, [WETH, DAI, USDC, WBTC], 1_000_000 * E18, router.address)


@pytest.fixture
def pair(registry: PairRegistry) -> Pair:
    """An empty DAI/WETH pair."""
    registry.create_pair(DAI, WETH)
    created = registry.pair(DAI, WETH)
    assert created is not None
    return created


@pytest.fixture
def seeded_pair(registry: PairRegistry) -> Pair:
    """DAI/WETH pair with 1000e18 of each asset, shares held by ALICE."""
    return seed_pair(registry, DAI, WETH, 1000 * E18, 1000 * E18)


@pytest.fixture
def pay_into(ledger: InMemoryLedger) -> Callable[[Pair, str, int], None]:
    """Send fresh asset units straight to a pair (no ledger sender involved)."""

    def _pay(pair: Pair, asset: str, amount: int) -> None:
        ledger.mint(asset, pair.address, amount)

    return _pay


# =============================================================================
# Mock flash callees
# =============================================================================


class RepayingCallee:
    """Flash callee that repays a fixed amount of one asset to the pair.

    Usage:
        # Repay the borrowed amount plus the fee
        callee = RepayingCallee(host, pair, asset=pair.asset1, amount=borrowed * 1000 // 997 + 1)
    """

    def __init__(self, host: Host, pair: Pair, asset: str, amount: int, holder: str) -> None:
        self.host = host
        self.pair = pair
        self.asset = asset
        self.amount = amount
        self.holder = holder
        self.calls: list[tuple[str, int, int, bytes]] = []  # Track calls for assertions

    def flash_swap_call(
        self, sender: str, amount0_out: int, amount1_out: int, data: bytes
    ) -> None:
        self.calls.append((sender, amount0_out, amount1_out, data))
        self.host.ledger.transfer(self.asset, self.holder, self.pair.address, self.amount)


class ReenteringCallee:
    """Flash callee that tries to call back into the pair it borrows from."""

    def __init__(self, pair: Pair, holder: str) -> None:
        self.pair = pair
        self.holder = holder

    def flash_swap_call(
        self, sender: str, amount0_out: int, amount1_out: int, data: bytes
    ) -> None:
        self.pair.sync()
