"""Asynchronous fences: waiters block until the fence is released once."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Generator
from typing import Any

from asyncfence.queue import WaiterState, Waker, WakerQueue


class Fence:
    """A one-shot barrier for asynchronous tasks.

    :meth:`wait` creates waiters that finish once :meth:`release` has been
    called. Each waiting task stores a wake callback in a slot of the
    fence's queue. Waiters beyond the queue's capacity still finish, but
    they keep rescheduling themselves instead of sleeping until woken.

    A fence made with ``growable=True`` can gain slots, either ahead of
    time through :meth:`fill_storage` or on demand through waiters from
    :meth:`wait_extending`.
    """

    __slots__ = ("_queue", "_lock", "_finished", "__weakref__")

    def __init__(self, capacity: int = 0, growable: bool = False) -> None:
        self._queue = WakerQueue(capacity, growable)
        self._lock = threading.Lock()
        self._finished = False

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(capacity={self.capacity()}, "
            f"usage={self.usage()}, finished={self._finished})"
        )

    def finished(self) -> bool:
        """Whether the fence has been released."""
        return self._finished

    def capacity(self) -> int:
        """Number of waker slots in the queue."""
        with self._lock:
            return self._queue.capacity()

    def usage(self) -> int:
        """Number of slots claimed by waiters.

        More waiters may exist than this if they have not claimed a slot.
        """
        with self._lock:
            return self._queue.usage()

    def release(self) -> None:
        """Release the fence and wake every waiter queued so far.

        A released fence stays released; releasing again does nothing new.
        """
        self._finished = True
        with self._lock:
            wakers = self._queue.drain()
        for wake in wakers:
            wake()

    def wait(self) -> FenceWaiter:
        """Return a waiter that finishes when the fence is released."""
        return FenceWaiter(self)

    def wait_extending(self) -> FenceWaiterExtending:
        """Return a waiter that adds a queue slot when none is free.

        Only a growable fence supports this.
        """
        if not self._queue.growable:
            raise TypeError("wait_extending needs a growable fence")
        return FenceWaiterExtending(self)

    def reserve_storage(self, additional: int) -> None:
        """Prepare the queue for ``additional`` more slots."""
        with self._lock:
            self._queue.reserve(additional)

    def fill_storage(self, additional: int) -> None:
        """Add ``additional`` empty slots to the queue.

        Plain waiters from :meth:`wait` can then claim them.
        """
        with self._lock:
            self._queue.fill(additional)


def _make_wake(loop: asyncio.AbstractEventLoop, future: asyncio.Future[None]) -> Waker:
    def resolve() -> None:
        if not future.done():
            future.set_result(None)

    def wake() -> None:
        if not loop.is_closed():
            loop.call_soon_threadsafe(resolve)

    return wake


class FenceWaiter:
    """Waits for a :class:`Fence` to be released.

    Await it directly, or drive it by hand with :meth:`poll`.
    """

    __slots__ = ("_source", "_queue_pos")

    def __init__(self, source: Fence) -> None:
        self._source = source
        self._queue_pos: int | None = None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(state={self.state.name}, "
            f"queue_pos={self._queue_pos})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FenceWaiter):
            return NotImplemented
        return self._source is other._source and self._queue_pos == other._queue_pos

    def __hash__(self) -> int:
        return hash((id(self._source), self._queue_pos))

    @property
    def source(self) -> Fence:
        """The fence this waiter belongs to."""
        return self._source

    @property
    def state(self) -> WaiterState:
        """Whether this waiter has claimed a queue slot."""
        if self._queue_pos is None:
            return WaiterState.UNINITIALIZED
        return WaiterState.WAITING

    @property
    def queue_pos(self) -> int | None:
        """The claimed slot's position, or ``None`` before one is claimed."""
        return self._queue_pos

    def _claim(self, queue: WakerQueue, wake: Waker) -> int | None:
        return queue.try_insert(wake)

    def poll(self, wake: Waker) -> bool:
        """Check the fence once, registering ``wake`` to be called later.

        Returns ``True`` once the fence is released. Otherwise ``wake`` is
        stored, or called straight away when it cannot be stored, and
        ``False`` is returned.
        """
        fence = self._source
        if fence._finished:
            return True

        # A busy lock means a release or another insertion is under way;
        # rescheduling is cheaper than spinning.
        if not fence._lock.acquire(blocking=False):
            wake()
            return False

        wake_now = False
        try:
            if self._queue_pos is None:
                # The release may have happened before the lock was taken.
                if fence._finished:
                    return True
                pos = self._claim(fence._queue, wake)
                if pos is None:
                    wake_now = True
                else:
                    self._queue_pos = pos
            else:
                fence._queue.replace(self._queue_pos, wake)
        finally:
            fence._lock.release()

        if wake_now:
            wake()
        return False

    def copy(self) -> FenceWaiter:
        """Return a new waiter on the same fence, without a claimed slot."""
        return type(self)(self._source)

    __copy__ = copy

    def __await__(self) -> Generator[Any, None, None]:
        loop = asyncio.get_running_loop()
        while True:
            future: asyncio.Future[None] = loop.create_future()
            if self.poll(_make_wake(loop, future)):
                return
            yield from future.__await__()


class FenceWaiterExtending(FenceWaiter):
    """A :class:`FenceWaiter` that adds a queue slot when none is free."""

    __slots__ = ()

    def _claim(self, queue: WakerQueue, wake: Waker) -> int | None:
        return queue.push(wake)

    def poll(self, wake: Waker) -> bool:
        """Check the fence once, growing its queue to store ``wake``.

        Returns ``True`` once the fence is released.
        """
        return super().poll(wake)

    def copy(self) -> FenceWaiterExtending:
        """Return a new extending waiter on the same fence, without a slot."""
        return FenceWaiterExtending(self._source)

    __copy__ = copy