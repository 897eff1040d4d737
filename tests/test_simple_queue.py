import threading

import pytest

from taskweave.runtime import PENDING
from taskweave.simple_queue import SingleQueueExecutor


class _WakingFuture:
    def __init__(self, polls):
        self.polls = polls
        self.count = 0

    def poll(self, waker):
        self.count += 1
        if self.count < self.polls:
            waker.wake()
            return PENDING
        return self.count


class _BarrierFuture:
    def __init__(self, barrier):
        self.barrier = barrier

    def poll(self, waker):
        return self.barrier.wait()


@pytest.fixture
def executor():
    ex = SingleQueueExecutor(3)
    yield ex
    ex.shutdown()


def test_coroutine_value_is_returned(executor):
    async def value():
        return 7

    assert executor.spawn(value()).result(timeout=5) == 7


def test_pollable_future_is_polled_until_ready(executor):
    assert executor.spawn(_WakingFuture(5)).result(timeout=5) == 5


def test_failure_is_raised_and_worker_survives():
    with SingleQueueExecutor(1) as ex:
        async def boom():
            raise ValueError("bad")

        async def fine():
            return "ok"

        failing = ex.spawn(boom())
        with pytest.raises(ValueError, match="bad"):
            failing.result(timeout=5)
        assert ex.spawn(fine()).result(timeout=5) == "ok"


def test_workers_run_concurrently(executor):
    barrier = threading.Barrier(3, timeout=5)
    tasks = [executor.spawn(_BarrierFuture(barrier)) for _ in range(3)]
    indices = sorted(task.result(timeout=5) for task in tasks)
    assert indices == [0, 1, 2]


def test_queue_len_counts_waiting_runs():
    ex = SingleQueueExecutor(0)
    try:
        async def nothing():
            return None

        ex.spawn(nothing())
        ex.spawn(nothing())
        assert ex.queue_len() == 2
    finally:
        ex.shutdown()


def test_spawn_reports_queue_count(capsys):
    ex = SingleQueueExecutor(0)
    try:
        async def nothing():
            return None

        ex.spawn(nothing())
        assert "Here is the queue count: 1" in capsys.readouterr().out
    finally:
        ex.shutdown()


def test_single_worker_announces_runs(capsys):
    with SingleQueueExecutor(1) as ex:
        async def nothing():
            return 1

        assert ex.spawn(nothing()).result(timeout=5) == 1
    assert "runnable accepted" in capsys.readouterr().out


def test_spawn_after_shutdown_raises():
    ex = SingleQueueExecutor(1)
    ex.shutdown()

    async def nothing():
        return None

    coro = nothing()
    with pytest.raises(RuntimeError):
        ex.spawn(coro)
    coro.close()


def test_negative_worker_count_is_rejected():
    with pytest.raises(ValueError):
        SingleQueueExecutor(-1)


def test_non_future_is_rejected(executor):
    with pytest.raises(TypeError):
        executor.spawn(42)