import pytest

from taskweave.futures import CounterFuture, RemoteFuture, SelfReferential, SimpleFuture
from taskweave.runtime import PENDING, Runtime


class FakeWaker:
    def __init__(self):
        self.calls = 0

    def wake(self):
        self.calls += 1


def test_counter_future_pends_then_returns_count():
    future = CounterFuture(interval=0)
    waker = FakeWaker()
    assert future.poll(waker) is PENDING
    assert future.poll(waker) is PENDING
    result = future.poll(waker)
    assert result == future.count
    assert result == 3
    assert waker.calls == 2


def test_counter_future_prints_each_poll(capsys):
    future = CounterFuture(interval=0)
    waker = FakeWaker()
    future.poll(waker)
    future.poll(waker)
    assert capsys.readouterr().out.splitlines() == [
        "polling with result: 1",
        "polling with result: 2",
    ]


def test_simple_future_wakes_until_ready():
    future = SimpleFuture()
    waker = FakeWaker()
    outcomes = [future.poll(waker) for _ in range(4)]
    assert outcomes[:3] == [PENDING, PENDING, PENDING]
    assert outcomes[3] == future.count
    assert waker.calls == future.count


def test_counter_future_on_runtime():
    with Runtime(1, 1) as runtime:
        task = runtime.spawn(CounterFuture(interval=0))
        assert task.result(timeout=5) == 3


def test_self_referential_show(capsys):
    holder = SelfReferential("first")
    moved = holder
    assert moved.show() == "first"
    assert capsys.readouterr().out == "first\n"


def test_remote_future_pending_until_triggered():
    future = RemoteFuture()
    waker = FakeWaker()
    assert future.poll(waker) is PENDING
    assert waker.calls == 0
    future.trigger(b"Hello from the outside")
    assert waker.calls == 1
    assert future.poll(waker) == "Hello from the outside"


def test_remote_future_data_is_taken_once():
    future = RemoteFuture()
    waker = FakeWaker()
    future.trigger(b"payload")
    assert future.poll(waker) == "payload"
    assert future.poll(waker) is PENDING


def test_remote_future_rejects_invalid_utf8():
    future = RemoteFuture()
    future.trigger(b"\xff\xfe")
    with pytest.raises(UnicodeDecodeError):
        future.poll(FakeWaker())


def test_remote_future_on_runtime():
    with Runtime(1, 1) as runtime:
        future = RemoteFuture()
        task = runtime.spawn(future)
        future.trigger(b"Hello from the outside")
        assert task.result(timeout=5) == "Hello from the outside"