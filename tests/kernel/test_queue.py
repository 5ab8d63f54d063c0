import pytest

from ndnping.kernel import EventQueue


def test_push_pop_single():
    queue = EventQueue()
    ev_id = queue.push(1, 'tick')

    assert len(queue) == 1
    assert (1, ev_id, 'tick') == queue.pop()
    assert len(queue) == 0


def test_pop_in_time_order():
    queue = EventQueue()
    queue.push(1, 'tick-1')     # 0
    queue.push(3, 'tick-3')     # 1
    queue.push(2, 'data-2')     # 2
    queue.push(4, 'timeout-4')  # 3
    queue.push(6, 'tick-6')     # 4

    res = [queue.pop() for _ in range(5)]

    assert [item[2] for item in res] == [
        'tick-1', 'data-2', 'tick-3', 'timeout-4', 'tick-6'
    ]


def test_same_moment_keeps_push_order():
    queue = EventQueue()
    queue.push(1, 'first')
    queue.push(1, 'second')
    queue.push(1, 'third')

    assert [queue.pop()[2] for _ in range(3)] == ['first', 'second', 'third']


def test_cancel():
    queue = EventQueue()
    queue.push(1, 'tick')       # 0
    queue.push(3, 'data')       # 1
    queue.push(2, 'timeout')    # 2
    queue.push(4, 'tick')       # 3
    queue.push(6, 'timeout')    # 4

    assert queue.cancel(2)
    assert queue.cancel(4)

    assert (1, 0, 'tick') == queue.pop()
    assert (3, 1, 'data') == queue.pop()
    assert (4, 3, 'tick') == queue.pop()

    assert queue.empty
    with pytest.raises(KeyError):
        queue.pop()


def test_cancel_not_existing():
    queue = EventQueue()
    queue.push(1, 'tick')       # 0
    queue.push(3, 'data')       # 1
    queue.push(2, 'timeout')    # 2

    assert queue.cancel(0)
    assert not queue.cancel(0)
    assert not queue.cancel(1000)
    assert not queue.cancel(None)

    assert (2, 2, 'timeout') == queue.pop()
    assert (3, 1, 'data') == queue.pop()


def test_len():
    queue = EventQueue()
    for moment in (1, 3, 2, 4, 6):
        queue.push(moment, 'event')
    queue.cancel(0)
    queue.cancel(1)

    assert len(queue) == 3

    queue.cancel(3)
    assert len(queue) == 2


def test_clear():
    queue = EventQueue()
    for moment in (1, 3, 2):
        queue.push(moment, 'event')
    queue.clear()

    assert len(queue) == 0
    assert queue.empty
    assert queue.peek_time() is None


def test_peek_time_skips_cancelled():
    queue = EventQueue()
    first = queue.push(1, 'tick')
    queue.push(5, 'timeout')

    assert queue.peek_time() == 1
    queue.cancel(first)
    assert queue.peek_time() == 5
    assert len(queue) == 1
