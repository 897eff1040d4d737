"""A small prioritised task runtime built on worker threads.

Futures are either objects with a ``poll(waker)`` method, which return
``PENDING`` until they have a value, or coroutine objects, which are stepped
with ``send(None)``. Tasks go on a high- or a low-priority queue. Workers of
each pool take from their own queue first and steal from the other one when
it is empty.
"""

from __future__ import annotations

import argparse
import enum
import os
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")

_IDLE_SLEEP = 0.1


class _Pending:
    """Marker returned by ``poll`` while a future has no value yet."""

    _instance: _Pending | None = None

    def __new__(cls) -> _Pending:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "PENDING"


PENDING = _Pending()


class FutureType(enum.Enum):
    """Priority of a spawned task."""

    HIGH = "high"
    LOW = "low"


class _State(enum.Enum):
    IDLE = enum.auto()
    SCHEDULED = enum.auto()
    RUNNING = enum.auto()
    RUNNING_WOKEN = enum.auto()
    DONE = enum.auto()


class Waker:
    """Handle a future uses to ask for another poll."""

    def __init__(self, task: Task[Any]) -> None:
        self._task = task

    def wake(self) -> None:
        """Reschedule the task this waker belongs to."""
        self._task._wake()


def _is_coroutine(future: Any) -> bool:
    return hasattr(future, "send") and hasattr(future, "throw") and not hasattr(future, "poll")


class Task(Generic[T]):
    """A spawned future and the handle to its outcome."""

    def __init__(self, future: Any, order: FutureType, runtime: Runtime) -> None:
        if not (_is_coroutine(future) or callable(getattr(future, "poll", None))):
            raise TypeError(f"{future!r} is neither a coroutine nor a pollable future")
        self._future = future
        self._order = order
        self._runtime = runtime
        self._waker = Waker(self)
        self._lock = threading.Lock()
        self._state = _State.IDLE
        self._finished = threading.Event()
        self._value: Any = None
        self._error: BaseException | None = None
        self._detached = False

    @property
    def order(self) -> FutureType:
        return self._order

    def result(self, timeout: float | None = None) -> T:
        """Block until the task finishes and return its value or raise its error."""
        if self._detached:
            raise RuntimeError("task has been detached")
        if not self._finished.wait(timeout):
            raise TimeoutError("task did not finish in time")
        if self._error is not None:
            raise self._error
        return self._value

    def done(self) -> bool:
        """Whether the task has finished."""
        return self._finished.is_set()

    def detach(self) -> None:
        """Let the task run on without anyone waiting for it."""
        self._detached = True

    def _wake(self) -> None:
        with self._lock:
            if self._state is _State.IDLE:
                self._state = _State.SCHEDULED
                schedule = True
            else:
                if self._state is _State.RUNNING:
                    self._state = _State.RUNNING_WOKEN
                schedule = False
        if schedule:
            self._runtime._enqueue(self)

    def _step(self) -> Any:
        if _is_coroutine(self._future):
            try:
                self._future.send(None)
            except StopIteration as stop:
                return stop.value
            self._waker.wake()
            return PENDING
        return self._future.poll(self._waker)

    def _run(self) -> None:
        with self._lock:
            if self._state is not _State.SCHEDULED:
                return
            self._state = _State.RUNNING
        try:
            outcome = self._step()
        except Exception as exc:  # a failing future must not take the worker down
            self._finish(None, exc)
            return
        if outcome is PENDING:
            with self._lock:
                reschedule = self._state is _State.RUNNING_WOKEN
                self._state = _State.SCHEDULED if reschedule else _State.IDLE
            if reschedule:
                self._runtime._enqueue(self)
        else:
            self._finish(outcome, None)

    def _finish(self, value: Any, error: BaseException | None) -> None:
        with self._lock:
            self._state = _State.DONE
            self._value = value
            self._error = error
        self._finished.set()


class Runtime:
    """Two worker pools fed by a high- and a low-priority queue."""

    def __init__(self, high_num: int | None = None, low_num: int = 1) -> None:
        if high_num is None:
            high_num = max((os.cpu_count() or 1) - 2, 0)
        self.high_num = _check_count(high_num)
        self.low_num = _check_count(low_num)
        self._queues: dict[FutureType, queue.SimpleQueue[Task[Any]]] = {
            FutureType.HIGH: queue.SimpleQueue(),
            FutureType.LOW: queue.SimpleQueue(),
        }
        self._threads: list[threading.Thread] = []
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._started = False

    def with_high_num(self, num: int) -> Runtime:
        """Set the number of high-priority workers."""
        self.high_num = _check_count(num)
        return self

    def with_low_num(self, num: int) -> Runtime:
        """Set the number of low-priority workers."""
        self.low_num = _check_count(num)
        return self

    def run(self) -> Runtime:
        """Start the workers and make this the runtime ``spawn_task`` uses."""
        global _current
        self._start()
        with _current_lock:
            _current = self
        join(
            self.spawn(_ready(FutureType.HIGH), FutureType.HIGH),
            self.spawn(_ready(FutureType.LOW), FutureType.LOW),
        )
        return self

    def spawn(self, future: Any, order: FutureType = FutureType.LOW) -> Task[Any]:
        """Schedule a future on the queue for ``order`` and return its task."""
        self._start()
        task: Task[Any] = Task(future, FutureType(order), self)
        task._wake()
        return task

    def shutdown(self) -> None:
        """Stop the workers and wait for them to exit."""
        global _current
        self._stop.set()
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join()
        with _current_lock:
            if _current is self:
                _current = None

    def __enter__(self) -> Runtime:
        return self.run()

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def _start(self) -> None:
        with self._lock:
            if self._stop.is_set():
                raise RuntimeError("runtime has been shut down")
            if self._started:
                return
            self._started = True
            pools = (
                (self.high_num, (FutureType.HIGH, FutureType.LOW)),
                (self.low_num, (FutureType.LOW, FutureType.HIGH)),
            )
            for count, preference in pools:
                for index in range(count):
                    thread = threading.Thread(
                        target=self._work,
                        args=(preference,),
                        name=f"taskweave-{preference[0].value}-{index}",
                        daemon=True,
                    )
                    self._threads.append(thread)
                    thread.start()

    def _enqueue(self, task: Task[Any]) -> None:
        self._queues[task.order].put(task)

    def _work(self, preference: tuple[FutureType, FutureType]) -> None:
        while not self._stop.is_set():
            task = self._take(preference)
            if task is None:
                self._stop.wait(_IDLE_SLEEP)
            else:
                task._run()

    def _take(self, preference: tuple[FutureType, FutureType]) -> Task[Any] | None:
        for order in preference:
            try:
                return self._queues[order].get_nowait()
            except queue.Empty:
                continue
        return None


def _check_count(num: int) -> int:
    if not isinstance(num, int) or num < 0:
        raise ValueError(f"worker count must be a non-negative integer, got {num!r}")
    return num


async def _ready(value: T) -> T:
    """A coroutine that finishes at once with ``value``."""
    return value


_current: Runtime | None = None
_current_lock = threading.Lock()


def spawn_task(future: Any, order: FutureType = FutureType.LOW) -> Task[Any]:
    """Spawn a future on the running runtime; low priority by default."""
    with _current_lock:
        runtime = _current
    if runtime is None:
        raise RuntimeError("no runtime is running; call Runtime.run() first")
    return runtime.spawn(future, order)


def join(*args: Task[Any]) -> list[Any]:
    """Wait for each task in turn and return their values in order."""
    return [task.result() for task in args]


def try_join(*args: Task[Any]) -> list[Any]:
    """Like ``join``, but a failed task yields its exception instead of raising."""
    results: list[Any] = []
    for task in args:
        try:
            results.append(task.result())
        except Exception as exc:
            results.append(exc)
    return results


@dataclass
class BackgroundProcess:
    """A future that never finishes and fires once per poll."""

    interval: float = 1.0
    fired: int = field(default=0, compare=False)

    def poll(self, waker: Waker) -> Any:
        print("background process firing")
        self.fired += 1
        time.sleep(self.interval)
        waker.wake()
        return PENDING


@dataclass
class _CounterFuture:
    count: int = 0

    def poll(self, waker: Waker) -> Any:
        self.count += 1
        print(f"polling with result: {self.count}")
        time.sleep(1)
        if self.count < 3:
            waker.wake()
            return PENDING
        return self.count


async def _async_fn() -> None:
    time.sleep(1)
    print("async fn")


async def _twice() -> None:
    await _async_fn()
    await _async_fn()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run demo tasks on a prioritised runtime.")
    parser.add_argument("--high", type=int, default=4, help="high-priority workers")
    parser.add_argument("--low", type=int, default=2, help="low-priority workers")
    args = parser.parse_args(argv)

    runtime = Runtime().with_low_num(args.low).with_high_num(args.high)
    runtime.run()
    try:
        spawn_task(BackgroundProcess()).detach()
        t_one = spawn_task(_CounterFuture(), FutureType.HIGH)
        t_two = spawn_task(_CounterFuture())
        t_three = spawn_task(_async_fn())
        t_four = spawn_task(_twice(), FutureType.HIGH)
        outcome = join(t_one, t_two)
        join(t_four, t_three)
        print(f"outcome: {outcome}")
    finally:
        runtime.shutdown()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())