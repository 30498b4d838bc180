"""Undo journal behind host transactions.

Stateful objects write through the journal instead of assigning directly.
Inside a transaction each write records how to put the old value back;
rolling back replays those records newest first down to a mark taken when
the transaction began. The cost of a transaction is proportional to what it
writes, not to how much state the engine holds.

Outside any transaction writes are applied without recording anything.
"""

from __future__ import annotations

from collections.abc import Callable, MutableMapping, MutableSequence
from typing import Any

_MISSING = object()


class Journal:
    """Stack of undo records with nestable marks."""

    def __init__(self) -> None:
        self._undo: list[Callable[[], None]] = []
        self._depth = 0

    def __len__(self) -> int:
        return len(self._undo)

    @property
    def active(self) -> bool:
        return self._depth > 0

    @property
    def depth(self) -> int:
        return self._depth

    # =========================================================================
    # Recording
    # =========================================================================

    def record(self, undo: Callable[[], None]) -> None:
        """Remember how to reverse a write that has just been made."""
        if self._depth:
            self._undo.append(undo)

    def set_item(self, mapping: MutableMapping[Any, Any], key: Any, value: Any) -> None:
        """mapping[key] = value, reversibly."""
        if self._depth:
            old = mapping.get(key, _MISSING)
            if old is _MISSING:
                self._undo.append(lambda: mapping.pop(key, None))
            else:
                self._undo.append(lambda: mapping.__setitem__(key, old))
        mapping[key] = value

    def set_attr(self, obj: object, name: str, value: Any) -> None:
        """setattr(obj, name, value), reversibly."""
        if self._depth:
            old = getattr(obj, name)
            self._undo.append(lambda: setattr(obj, name, old))
        setattr(obj, name, value)

    def append(self, items: MutableSequence[Any], value: Any) -> None:
        """items.append(value), reversibly."""
        items.append(value)
        if self._depth:
            self._undo.append(items.pop)

    # =========================================================================
    # Boundaries
    # =========================================================================

    def begin(self) -> int:
        """Open a nested boundary and return its mark."""
        self._depth += 1
        return len(self._undo)

    def rollback(self, mark: int) -> int:
        """Undo every write recorded since `mark`; return how many were undone."""
        undone = 0
        while len(self._undo) > mark:
            self._undo.pop()()
            undone += 1
        return undone

    def end(self) -> None:
        """Close the innermost boundary. Closing the outermost one commits."""
        self._depth -= 1
        if self._depth == 0:
            self._undo.clear()


__all__ = ["Journal"]
