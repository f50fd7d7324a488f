"""Storage for the wake callbacks of tasks waiting on a fence."""

from __future__ import annotations

import enum
from collections.abc import Callable

Waker = Callable[[], object]


class WaiterState(enum.Enum):
    """Whether a waiter has claimed a slot in its fence's queue."""

    UNINITIALIZED = enum.auto()
    WAITING = enum.auto()


class WakerQueue:
    """A slot array of wake callbacks with a fill position.

    Slots before the position hold wakers; slots at or after it are empty.
    A fixed queue never changes its number of slots. A growable queue can
    gain slots through :meth:`push` and :meth:`fill`.
    """

    __slots__ = ("_slots", "_pos", "_growable")

    def __init__(self, capacity: int = 0, growable: bool = False) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must not be negative, got {capacity}")
        self._slots: list[Waker | None] = [None] * capacity
        self._pos = 0
        self._growable = growable

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(capacity={self.capacity()}, "
            f"usage={self._pos}, growable={self._growable})"
        )

    @property
    def growable(self) -> bool:
        """Whether the queue can gain slots."""
        return self._growable

    def capacity(self) -> int:
        """Number of slots in the queue."""
        return len(self._slots)

    def usage(self) -> int:
        """Number of slots holding a waker."""
        return self._pos

    def try_insert(self, waker: Waker) -> int | None:
        """Store ``waker`` in the next free slot.

        Returns the slot's position, or ``None`` when every slot is taken.
        """
        if self._pos >= len(self._slots):
            return None
        pos = self._pos
        self._slots[pos] = waker
        self._pos += 1
        return pos

    def push(self, waker: Waker) -> int:
        """Store ``waker``, adding a slot if none is free.

        Returns the slot's position. Only growable queues accept this.
        """
        self._require_growable("push")
        pos = self.try_insert(waker)
        if pos is None:
            pos = self._pos
            self._slots.append(waker)
            self._pos += 1
        return pos

    def replace(self, pos: int, waker: Waker) -> None:
        """Swap the waker held in slot ``pos`` for ``waker``."""
        if not 0 <= pos < self._pos:
            raise IndexError(f"slot {pos} holds no waker (usage is {self._pos})")
        self._slots[pos] = waker

    def reserve(self, additional: int) -> None:
        """Prepare for ``additional`` more pushes.

        Lists grow on demand, so this only checks that growth is allowed;
        it does not change :meth:`capacity`.
        """
        self._require_growable("reserve")
        if additional < 0:
            raise ValueError(f"additional must not be negative, got {additional}")

    def fill(self, additional: int) -> None:
        """Add ``additional`` empty slots."""
        self._require_growable("fill")
        if additional < 0:
            raise ValueError(f"additional must not be negative, got {additional}")
        self._slots.extend([None] * additional)

    def drain(self) -> list[Waker]:
        """Remove and return every stored waker, in slot order.

        The slots stay in place, empty, and the queue fills from the start
        again.
        """
        taken = self._slots[: self._pos]
        for pos in range(self._pos):
            self._slots[pos] = None
        self._pos = 0
        return [waker for waker in taken if waker is not None]

    def _require_growable(self, operation: str) -> None:
        if not self._growable:
            raise TypeError(f"{operation} needs a growable queue")