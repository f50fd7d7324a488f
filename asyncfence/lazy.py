"""A value computed asynchronously on first use and shared afterwards."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from asyncfence.once import OnceLock, OnceLockSet, OnceLockWait

T = TypeVar("T")


class LazyLock(Generic[T]):
    """A lazily initialized value.

    ``init`` is called to produce an awaitable for the value. The first
    :meth:`get` to claim initialization awaits it; every other call waits
    for that value. Nothing here blocks.
    """

    __slots__ = ("_lock", "_init")

    def __init__(self, init: Callable[[], Awaitable[T]], capacity: int = 1) -> None:
        self._lock: OnceLock[T] = OnceLock(capacity)
        self._init = init

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._lock!r})"

    def get(self) -> OnceLockSet[T] | OnceLockWait[T]:
        """Return an awaitable that resolves to the initialized value."""
        return self._lock.get_or_init(self._init())