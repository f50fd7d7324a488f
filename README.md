# asyncfence

Small asyncio synchronization primitives, with no dependencies outside the
standard library:

- `asyncfence.fence.Fence`: tasks wait on it until it is released. A release is permanent.
- `asyncfence.once.OnceLock`: a value that is set once. Each task either sets it or waits for it.
- `asyncfence.lazy.LazyLock`: a value produced on first use by an async initializer.
- `asyncfence.queue.WakerQueue`: the slot storage for wake callbacks that a fence uses.

## Installation

```
pip install asyncfence
```

## Fence

```python
import asyncio
from asyncfence.fence import Fence

async def _wait(fence):
    await fence.wait()

async def main():
    fence = Fence(capacity=3, growable=False)
    waiters = [asyncio.create_task(_wait(fence)) for _ in range(3)]
    await asyncio.sleep(0)
    fence.release()          # every waiter finishes
    await asyncio.gather(*waiters)

asyncio.run(main())
```

A waiter that has to wait stores a wake callback in one of the fence's queue
slots. `capacity()` gives the number of slots. `usage()` gives the number that
are taken. When a fixed-capacity fence runs out of slots, extra waiters still
finish. They do not sleep until woken. They reschedule themselves on every
check until the fence is released.

A fence made with `growable=True` can gain slots:

- `wait_extending()` returns a `FenceWaiterExtending`. This waiter adds a slot
  when none is free. Calling it on a fixed fence raises `TypeError`.
- `fill_storage(n)` adds `n` empty slots ahead of time. Plain `wait()` waiters
  can then use them.
- `reserve_storage(n)` only checks that growth is allowed. It does not change
  `capacity()`.

`release()` marks the fence finished and calls every stored wake callback.
Calling it again does nothing new. `finished()` reports whether the fence has
been released.

You can also drive a waiter by hand with `poll(wake)`. It returns `True` once
the fence is released. Otherwise it stores `wake`, or calls it at once if it
cannot be stored, and returns `False`. Two more members show a waiter's
progress. `state` is a `WaiterState`, either `UNINITIALIZED` or `WAITING`.
`queue_pos` is the slot the waiter claimed. `copy()` gives a fresh waiter on
the same fence.

## OnceLock

```python
from asyncfence.once import OnceLock, AlreadySetError

lock = OnceLock(capacity=2, growable=False)
lock.set(True)
lock.get()                   # True
try:
    lock.set(False)
except AlreadySetError as err:
    err.value                # False, the value that was not stored
    err.existing             # True
```

- `get()` returns the value, or `None` if the lock is not set. `is_set()`
  reports whether it is set.
- `set(value)` stores a value. `try_insert(value)` stores a value and returns
  it. Both raise `AlreadySetError` if the lock is already set or is being set.
- `get_or_init(awaitable)` returns one of two awaitables:
  - An `OnceLockSet`, if nobody else is initializing. It awaits `awaitable`
    and stores the result.
  - An `OnceLockWait`, otherwise. It resolves to the value once the value is
    stored. In this case an unawaited coroutine passed in is closed.
- If an initializer is cancelled with `cancel()`, or its awaitable raises,
  before it stores a value, the next `get_or_init` call initializes instead.
  Existing waiters keep waiting.
- `wait()` only waits. If the value is never set, it never finishes.
- `take()` and `into_inner()` both return the value and reset the lock to
  unset. They return `None` if the lock is not set.

## LazyLock

```python
from asyncfence.lazy import LazyLock

async def load():
    return 42

config = LazyLock(load, capacity=1)

async def use():
    return await config.get()
```

Each `get()` calls `load()`. Only the caller that claims initialization awaits
the result of that call. Every other caller waits for that caller's value,
and its own coroutine is closed unawaited.

## What it does not do

Every wait is asynchronous. No call blocks a thread until a fence is
released. A `Fence` cannot be reset. To use a `OnceLock` again, reset it with
`take()`.

## Running the tests

```
pip install -e .[test]
pytest
```