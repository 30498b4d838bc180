"""Execution host: clock, observation log, flash callees, and transactions.

The pair's optimistic swap (pay out first, verify afterwards) is only sound
inside an all-or-nothing boundary. Host.transaction() is that boundary. Every
write made by the asset ledger, the event log, the registry and the pairs goes
through the host's Journal, and a failed body replays the undo records it
produced. Boundaries nest, so a flash callee that catches a failed inner call
sees only that call undone.

A ledger that cannot join the journal is refused: without it a failed swap
would keep its payout.

Operations are serialized through one re-entrant lock per host.
"""

from __future__ import annotations

import functools
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

import structlog

from ammcore.config import DEFAULT_CONFIG, AmmConfig
from ammcore.journal import Journal
from ammcore.ledger import InMemoryLedger, JournaledLedger
from ammcore.models.types import normalize_address

if TYPE_CHECKING:
    from ammcore.models.events import Event

logger = structlog.get_logger()

E = TypeVar("E", bound="Event")
F = TypeVar("F", bound=Callable[..., Any])


# =============================================================================
# Collaborator protocols
# =============================================================================


@runtime_checkable
class Clock(Protocol):
    """Source of the current time in whole seconds."""

    def now(self) -> int: ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Clock that only moves when told to (simulations and tests)."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError(f"Cannot move the clock backwards: {seconds}")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        self._now = timestamp


@runtime_checkable
class FlashCallee(Protocol):
    """Contract-like recipient of a flash swap.

    Called after the optimistic payout and before the invariant check. It may
    pay the input back (in either asset) as a side effect.
    """

    def flash_swap_call(
        self, sender: str, amount0_out: int, amount1_out: int, data: bytes
    ) -> None: ...


# =============================================================================
# Event log
# =============================================================================


class EventLog:
    """Append-only, transaction-aware record of observations."""

    def __init__(self, journal: Journal | None = None) -> None:
        self._events: list[Event] = []
        self._journal = journal if journal is not None else Journal()

    def emit(self, event: Event) -> None:
        self._journal.append(self._events, event)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __getitem__(self, index: int) -> Event:
        return self._events[index]

    def since(self, index: int) -> list[Event]:
        """Events appended after position `index`."""
        return self._events[index:]

    def of_type(self, event_type: type[E], *, emitter: str | None = None) -> list[E]:
        """All events of a given class, optionally from one emitter."""
        wanted = normalize_address(emitter) if emitter is not None else None
        return [
            e
            for e in self._events
            if isinstance(e, event_type) and (wanted is None or e.emitter == wanted)
        ]


# =============================================================================
# Host
# =============================================================================


class Host:
    """Everything a registry, its pairs, and a router share.

    Args:
        ledger: Asset ledger. Defaults to a fresh InMemoryLedger.
        clock: Time source. Defaults to SystemClock.
        config: Pricing and share parameters. Defaults to DEFAULT_CONFIG.

    Raises:
        TypeError: If the ledger cannot record its writes in the host journal
    """

    def __init__(
        self,
        ledger: JournaledLedger | None = None,
        clock: Clock | None = None,
        config: AmmConfig | None = None,
    ) -> None:
        if ledger is None:
            ledger = InMemoryLedger()
        elif not isinstance(ledger, JournaledLedger):
            raise TypeError(
                f"{type(ledger).__name__} has no bind_journal(); "
                "failed operations could not undo its transfers"
            )
        self.journal = Journal()
        ledger.bind_journal(self.journal)
        self.ledger: JournaledLedger = ledger
        self.clock: Clock = clock if clock is not None else SystemClock()
        self.config = config if config is not None else DEFAULT_CONFIG
        self.events = EventLog(self.journal)
        self._callees: dict[str, FlashCallee] = {}
        self._lock = threading.RLock()

    def now(self) -> int:
        return self.clock.now()

    @property
    def in_transaction(self) -> bool:
        return self.journal.active

    def register_callee(self, address: str, callee: FlashCallee) -> None:
        """Attach flash-swap callback code to an address."""
        self._callees[normalize_address(address)] = callee

    def callee_for(self, address: str) -> FlashCallee | None:
        return self._callees.get(normalize_address(address))

    @contextmanager
    def transaction(self, label: str = "transaction") -> Iterator[None]:
        """All-or-nothing boundary around one operation.

        On any exception every write made inside the body is undone and the
        exception propagates unchanged.
        """
        with self._lock:
            mark = self.journal.begin()
            try:
                yield
            except Exception as exc:
                undone = self.journal.rollback(mark)
                logger.debug(
                    "transaction_rolled_back",
                    label=label,
                    error=type(exc).__name__,
                    depth=self.journal.depth,
                    writes_undone=undone,
                )
                raise
            finally:
                self.journal.end()


def transactional(method: F) -> F:
    """Run a method of an object with a `host` attribute inside host.transaction()."""

    @functools.wraps(method)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        with self.host.transaction(method.__qualname__):
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


__all__ = [
    "Clock",
    "SystemClock",
    "ManualClock",
    "FlashCallee",
    "EventLog",
    "Host",
    "transactional",
]
