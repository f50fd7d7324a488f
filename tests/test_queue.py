import pytest

from asyncfence.queue import WakerQueue

FENCE_LEN = 3


def _wakers(count):
    calls = []

    def make(i):
        return lambda: calls.append(i)

    return [make(i) for i in range(count)], calls


def _insert_all(insert, count):
    """Insert ``count`` fresh wakers with ``insert``; return wakers, calls, results."""
    wakers, calls = _wakers(count)
    return wakers, calls, [insert(w) for w in wakers]


def _assert_sizes(queue, capacity, usage):
    assert (queue.capacity(), queue.usage()) == (capacity, usage)


@pytest.fixture
def fixed():
    return WakerQueue(FENCE_LEN)


@pytest.fixture
def growable():
    return WakerQueue(growable=True)


def test_new_queue_is_empty(fixed):
    _assert_sizes(fixed, FENCE_LEN, 0)
    assert fixed.drain() == []


def test_default_queue_has_no_slots():
    queue = WakerQueue()
    assert queue.capacity() == 0
    assert queue.growable is False


def test_negative_capacity_rejected():
    with pytest.raises(ValueError):
        WakerQueue(-1)


def test_try_insert_positions_in_order(fixed):
    _, _, positions = _insert_all(fixed.try_insert, FENCE_LEN)
    assert positions == list(range(FENCE_LEN))
    _assert_sizes(fixed, FENCE_LEN, FENCE_LEN)


def test_excess_insert_returns_none(fixed):
    _, _, results = _insert_all(fixed.try_insert, FENCE_LEN * 10)
    assert results[FENCE_LEN:] == [None] * (FENCE_LEN * 9)
    assert fixed.usage() == FENCE_LEN


def test_drain_returns_wakers_and_resets(fixed):
    wakers, calls, _ = _insert_all(fixed.try_insert, FENCE_LEN)
    drained = fixed.drain()
    assert drained == wakers
    for w in drained:
        w()
    assert calls == list(range(FENCE_LEN))
    _assert_sizes(fixed, FENCE_LEN, 0)
    assert fixed.drain() == []


def test_slots_reusable_after_drain(fixed):
    wakers, _, _ = _insert_all(fixed.try_insert, FENCE_LEN)
    fixed.drain()
    assert fixed.try_insert(wakers[0]) == 0


def test_replace_swaps_waker(fixed):
    wakers, _ = _wakers(2)
    pos = fixed.try_insert(wakers[0])
    fixed.replace(pos, wakers[1])
    assert fixed.drain() == [wakers[1]]


def test_replace_unclaimed_slot_raises(fixed):
    with pytest.raises(IndexError):
        fixed.replace(0, lambda: None)


def test_push_extends_growable_queue(growable):
    wakers, _, positions = _insert_all(growable.push, FENCE_LEN)
    assert positions == list(range(FENCE_LEN))
    _assert_sizes(growable, FENCE_LEN, FENCE_LEN)
    assert growable.drain() == wakers


def test_push_uses_filled_slots_first(growable):
    growable.fill(FENCE_LEN)
    _, _, positions = _insert_all(growable.push, FENCE_LEN + 1)
    assert positions == list(range(FENCE_LEN + 1))
    assert growable.capacity() == FENCE_LEN + 1


def test_fill_adds_empty_slots(growable):
    assert growable.try_insert(lambda: None) is None
    growable.fill(FENCE_LEN)
    _assert_sizes(growable, FENCE_LEN, 0)
    _, _, positions = _insert_all(growable.try_insert, FENCE_LEN)
    assert positions == list(range(FENCE_LEN))


@pytest.mark.parametrize(
    "operation",
    [
        lambda q: q.push(lambda: None),
        lambda q: q.fill(1),
        lambda q: q.reserve(1),
    ],
    ids=["push", "fill", "reserve"],
)
def test_growing_operations_need_growable(fixed, operation):
    with pytest.raises(TypeError):
        operation(fixed)
    _assert_sizes(fixed, FENCE_LEN, 0)
    assert fixed.drain() == []


def test_reserve_keeps_capacity(growable):
    growable.reserve(FENCE_LEN)
    assert growable.capacity() == 0
    with pytest.raises(ValueError):
        growable.reserve(-1)