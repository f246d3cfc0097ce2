"""Per-key state storage shared by all rate limiting engines.

Each caller key maps to a ``StateCell``: the algorithm-specific state plus a
lock that guards it. Creation of a cell is atomic (two threads racing on a new
key end up with the same cell), and after that every read-modify-write on the
state happens under that key's own lock. Unrelated keys never contend on the
same lock while deciding.

Notes:
- State is created lazily and never evicted for the lifetime of the store.
- Per-process only.
"""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterator, TypeVar

S = TypeVar("S")


@dataclass
class StateCell(Generic[S]):
    """Algorithm state for one key together with its critical section."""

    state: S
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class KeyedStateStore(Generic[S]):
    """Concurrent mapping from caller key to a lockable state cell."""

    def __init__(self) -> None:
        self._cells: dict[str, StateCell[S]] = {}
        # Guards insertion only; never held while a decision is computed.
        self._create_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, key: object) -> bool:
        return key in self._cells

    def get_or_create(self, key: str, factory: Callable[[], S]) -> StateCell[S]:
        """Return the cell for ``key``, creating it with ``factory`` if absent.

        Args:
            key: Caller identity.
            factory: Builds the initial state. Called at most once per key.

        Returns:
            The single cell associated with ``key``.
        """
        cell = self._cells.get(key)
        if cell is not None:
            return cell

        with self._create_lock:
            cell = self._cells.get(key)
            if cell is None:
                cell = StateCell(state=factory())
                self._cells[key] = cell
            return cell

    @contextmanager
    def locked(self, key: str, factory: Callable[[], S]) -> Iterator[S]:
        """Yield the state for ``key`` while holding that key's lock."""
        cell = self.get_or_create(key, factory)
        with cell.lock:
            yield cell.state

    def snapshot(self, key: str) -> S | None:
        """Return a deep copy of the state for ``key`` or None if unknown.

        Intended for tests and diagnostics; admission never goes through here.
        """
        cell = self._cells.get(key)
        if cell is None:
            return None
        with cell.lock:
            return copy.deepcopy(cell.state)

    def keys(self) -> list[str]:
        """Return the keys seen so far."""
        with self._create_lock:
            return list(self._cells)
