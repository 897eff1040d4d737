import threading

import pytest

from taskweave.runtime import (
    PENDING,
    BackgroundProcess,
    FutureType,
    Runtime,
    join,
    spawn_task,
    try_join,
)


class Countdown:
    def __init__(self, polls):
        self.polls = polls
        self.seen = 0
        self.threads = set()

    def poll(self, waker):
        self.seen += 1
        self.threads.add(threading.current_thread().name)
        if self.seen < self.polls:
            waker.wake()
            return PENDING
        return self.seen


class NeverWakes:
    def poll(self, waker):
        return PENDING


class RecordingWaker:
    def __init__(self):
        self.calls = 0

    def wake(self):
        self.calls += 1


async def give(value):
    return value


async def fail():
    raise ValueError("boom")


@pytest.fixture
def runtime():
    rt = Runtime(high_num=2, low_num=1).run()
    yield rt
    rt.shutdown()


def test_poll_future_runs_until_ready(runtime):
    future = Countdown(3)
    task = runtime.spawn(future, FutureType.HIGH)
    assert task.result(timeout=5) == 3
    assert task.done()


def test_coroutine_result(runtime):
    assert runtime.spawn(give("hello")).result(timeout=5) == "hello"


def test_spawn_task_uses_running_runtime(runtime):
    task = spawn_task(Countdown(2))
    assert task.result(timeout=5) == 2
    assert task.order is FutureType.LOW


def test_join_keeps_order(runtime):
    tasks = [spawn_task(give(i), FutureType.HIGH if i % 2 else FutureType.LOW) for i in range(6)]
    assert join(*tasks) == list(range(6))


def test_join_propagates_error(runtime):
    with pytest.raises(ValueError):
        join(spawn_task(give(1)), spawn_task(fail()))


def test_try_join_captures_error(runtime):
    results = try_join(spawn_task(give(7)), spawn_task(fail()))
    assert results[0] == 7
    assert isinstance(results[1], ValueError)


def test_result_timeout(runtime):
    task = runtime.spawn(NeverWakes())
    with pytest.raises(TimeoutError):
        task.result(timeout=0.2)
    assert not task.done()


def test_detached_task_has_no_result(runtime):
    task = runtime.spawn(give(1))
    task.detach()
    with pytest.raises(RuntimeError):
        task.result(timeout=1)


def test_low_worker_steals_high_task():
    rt = Runtime(high_num=0, low_num=1).run()
    try:
        future = Countdown(2)
        assert rt.spawn(future, FutureType.HIGH).result(timeout=5) == 2
        assert all(name.startswith("taskweave-low") for name in future.threads)
    finally:
        rt.shutdown()


def test_builder_returns_same_runtime():
    rt = Runtime()
    assert rt.with_high_num(4).with_low_num(2) is rt
    assert (rt.high_num, rt.low_num) == (4, 2)


def test_default_low_num():
    assert Runtime().low_num == 1


def test_negative_worker_count_rejected():
    with pytest.raises(ValueError):
        Runtime().with_high_num(-1)
    with pytest.raises(ValueError):
        Runtime(low_num=-3)


def test_spawn_rejects_non_future(runtime):
    with pytest.raises(TypeError):
        runtime.spawn(42)


def test_spawn_after_shutdown_fails():
    rt = Runtime(high_num=1, low_num=1).run()
    rt.shutdown()
    with pytest.raises(RuntimeError):
        rt.spawn(give(1))


def test_spawn_task_without_runtime_fails():
    rt = Runtime(high_num=1, low_num=1).run()
    rt.shutdown()
    with pytest.raises(RuntimeError):
        spawn_task(give(1))


def test_context_manager_runs_and_stops():
    with Runtime(high_num=1, low_num=1) as rt:
        assert spawn_task(give("x")).result(timeout=5) == "x"
    with pytest.raises(RuntimeError):
        rt.spawn(give(1))


def test_background_process_poll_stays_pending(capsys):
    waker = RecordingWaker()
    process = BackgroundProcess(interval=0)
    assert process.poll(waker) is PENDING
    assert waker.calls == 1
    assert process.fired == 1
    assert "background process firing" in capsys.readouterr().out


def test_background_process_keeps_firing(runtime):
    process = BackgroundProcess(interval=0.01)
    task = runtime.spawn(process)
    task.detach()
    with pytest.raises(RuntimeError):
        task.result(timeout=0.3)
    deadline = threading.Event()
    deadline.wait(0.3)
    assert process.fired > 1
    assert not task.done()