"""An asynchronous cell that is written once and read by many tasks."""

from __future__ import annotations

import inspect
import threading
from collections.abc import Awaitable, Generator
from typing import Any, Generic, TypeVar

from asyncfence.fence import Fence, FenceWaiter
from asyncfence.queue import Waker

T = TypeVar("T")

_UNSET: Any = object()


class AlreadySetError(Exception):
    """Raised when a :class:`OnceLock` has already been claimed.

    ``value`` is the value that was not stored. ``existing`` is the value
    the lock holds, or ``None`` while another initializer is still running.
    """

    def __init__(self, value: Any, existing: Any = None) -> None:
        super().__init__("the lock has already been set or is being set")
        self.value = value
        self.existing = existing


class _State:
    """One generation of a lock: its fence, its value and its holder flag."""

    __slots__ = ("fence", "value", "_holder", "_holder_lock")

    def __init__(self, fence: Fence) -> None:
        self.fence = fence
        self.value: Any = _UNSET
        self._holder = False
        self._holder_lock = threading.Lock()

    def claim(self) -> bool:
        """Claim the right to initialize; return whether it was taken before."""
        with self._holder_lock:
            prior = self._holder
            self._holder = True
            return prior

    def unclaim(self) -> None:
        with self._holder_lock:
            self._holder = False

    def store(self, value: Any) -> None:
        self.value = value
        self.fence.release()


class OnceLock(Generic[T]):
    """A value that is set once and can be awaited until it is.

    Tasks either initialize the value through :meth:`get_or_init` or wait
    for another task to do so. Nothing here blocks. A waiter does not take
    over initialization when an initializer is abandoned; it keeps waiting
    for the next one.

    ``capacity`` and ``growable`` size the fence that waiters queue on.
    """

    __slots__ = ("_capacity", "_growable", "_state")

    def __init__(self, capacity: int = 0, growable: bool = False) -> None:
        self._capacity = capacity
        self._growable = growable
        self._state = self._fresh_state()

    def _fresh_state(self) -> _State:
        return _State(Fence(self._capacity, self._growable))

    def __repr__(self) -> str:
        shown = repr(self._state.value) if self.is_set() else "<unset>"
        return f"{type(self).__name__}({shown})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OnceLock):
            return NotImplemented
        if self.is_set() != other.is_set():
            return False
        return not self.is_set() or self.get() == other.get()

    __hash__ = None  # type: ignore[assignment]

    def is_set(self) -> bool:
        """Whether the value has been initialized."""
        return self._state.fence.finished()

    def get(self) -> T | None:
        """Return the value, or ``None`` if it is not initialized yet."""
        state = self._state
        if state.fence.finished():
            return state.value
        return None

    def set(self, value: T) -> None:
        """Store ``value`` right away.

        Raises :class:`AlreadySetError` if the lock is set or being set.
        """
        state = self._state
        if state.claim():
            raise AlreadySetError(value, self.get())
        state.store(value)

    def try_insert(self, value: T) -> T:
        """Store ``value`` right away and return it.

        Raises :class:`AlreadySetError`, carrying the value already held,
        if the lock is set or being set.
        """
        state = self._state
        if state.claim():
            raise AlreadySetError(value, self.get())
        state.store(value)
        return value

    def into_inner(self) -> T | None:
        """Return the value if initialized, leaving the lock empty."""
        return self.take()

    def take(self) -> T | None:
        """Return the value if initialized and reset the lock to unset.

        Returns ``None`` and changes nothing if the value is not set.
        """
        state = self._state
        if not state.fence.finished():
            return None
        self._state = self._fresh_state()
        return state.value

    def get_or_init(self, awaitable: Awaitable[T]) -> OnceLockSet[T] | OnceLockWait[T]:
        """Return an awaitable for the value.

        If nobody is initializing the lock, the result is a
        :class:`OnceLockSet` that stores what ``awaitable`` produces.
        Otherwise it is a :class:`OnceLockWait` and ``awaitable`` is
        discarded.
        """
        state = self._state
        if state.claim():
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return OnceLockWait(state)
        return OnceLockSet(state, awaitable)

    def wait(self) -> OnceLockWait[T]:
        """Return an awaitable that finishes with the value once it is set.

        If the value is never set, it never finishes.
        """
        return OnceLockWait(self._state)


class OnceLockWait(Generic[T]):
    """Waits for a :class:`OnceLock` to be initialized and yields the value."""

    __slots__ = ("_state", "_waiter")

    def __init__(self, state: _State) -> None:
        self._state = state
        self._waiter: FenceWaiter = state.fence.wait()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(ready={self._state.fence.finished()})"

    def poll(self, wake: Waker) -> bool:
        """Check once whether the value is set, registering ``wake`` if not.

        Returns ``True`` once the value is available.
        """
        return self._waiter.poll(wake)

    def __await__(self) -> Generator[Any, None, T]:
        yield from self._waiter.__await__()
        return self._state.value


class OnceLockSet(Generic[T]):
    """Initializes a :class:`OnceLock` with an awaitable and yields the value.

    If it is cancelled, or the awaitable fails, before the value is stored,
    a later call may claim initialization again. Tasks already waiting keep
    waiting.
    """

    __slots__ = ("_state", "_awaitable", "_active", "_started", "_done")

    def __init__(self, state: _State, awaitable: Awaitable[T]) -> None:
        self._state = state
        self._awaitable = awaitable
        self._active = True
        self._started = False
        self._done = False

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(active={self._active}, done={self._done})"
        )

    def cancel(self) -> None:
        """Give up initializing so that another initializer can be created."""
        if not self._active:
            return
        self._active = False
        if not self._started and inspect.iscoroutine(self._awaitable):
            self._awaitable.close()
        if not self._state.fence.finished():
            self._state.unclaim()

    def __del__(self) -> None:
        if getattr(self, "_active", False) and not getattr(self, "_done", True):
            self.cancel()

    def __await__(self) -> Generator[Any, None, T]:
        if self._started:
            raise RuntimeError("this initializer has already been awaited")
        if not self._active:
            raise RuntimeError("this initializer was cancelled")
        self._started = True
        try:
            value = yield from self._awaitable.__await__()
        except BaseException:
            self.cancel()
            raise
        self._state.store(value)
        self._done = True
        self._active = False
        return value