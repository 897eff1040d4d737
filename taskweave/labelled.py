"""An executor that routes futures by the priority label they carry."""

from __future__ import annotations

import argparse
import queue
import threading
import time
from typing import Any

from taskweave.runtime import PENDING, FutureType, Task, Waker

_IDLE_SLEEP = 0.1


class OrderedCounterFuture:
    """Counts its polls, finishing with the count on the third one."""

    def __init__(self, order: FutureType) -> None:
        self.order = FutureType(order)
        self.count = 0
        self.interval = 1.0

    def poll(self, waker: Waker) -> Any:
        self.count += 1
        print(f"polling with result: {self.count}")
        time.sleep(self.interval)
        if self.count < 3:
            waker.wake()
            return PENDING
        return self.count


def _check_count(num: int) -> int:
    if not isinstance(num, int) or num < 0:
        raise ValueError(f"worker count must be a non-negative integer, got {num!r}")
    return num


class LabelledExecutor:
    """High and low queues, each with its own workers.

    A spawned future must carry an ``order`` attribute naming its queue.
    With ``stealing`` on, an idle worker takes from the other queue.
    """

    def __init__(self, high_workers: int = 2, low_workers: int = 1, stealing: bool = False) -> None:
        self.high_workers = _check_count(high_workers)
        self.low_workers = _check_count(low_workers)
        self.stealing = bool(stealing)
        self._queues: dict[FutureType, queue.Queue[Task[Any]]] = {
            FutureType.HIGH: queue.Queue(),
            FutureType.LOW: queue.Queue(),
        }
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []
        pools = (
            (self.high_workers, FutureType.HIGH, FutureType.LOW),
            (self.low_workers, FutureType.LOW, FutureType.HIGH),
        )
        for count, own, other in pools:
            for index in range(count):
                thread = threading.Thread(
                    target=self._work,
                    args=(own, other),
                    name=f"taskweave-{own.value}-{index}",
                    daemon=True,
                )
                self._threads.append(thread)
                thread.start()

    def spawn(self, future: Any) -> Task[Any]:
        """Schedule a labelled future on the queue its ``order`` names."""
        if self._stop.is_set():
            raise RuntimeError("executor has been shut down")
        order = getattr(future, "order", None)
        if not isinstance(order, FutureType):
            raise TypeError(f"{future!r} carries no FutureType order label")
        task: Task[Any] = Task(future, order, self)
        task._wake()
        return task

    def shutdown(self) -> None:
        """Stop the workers and wait for them to exit."""
        self._stop.set()
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join()

    def __enter__(self) -> LabelledExecutor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def _enqueue(self, task: Task[Any]) -> None:
        self._queues[task.order].put(task)

    def _work(self, own: FutureType, other: FutureType) -> None:
        while not self._stop.is_set():
            task = self._take(own, other)
            if task is not None:
                task._run()

    def _take(self, own: FutureType, other: FutureType) -> Task[Any] | None:
        if not self.stealing:
            try:
                return self._queues[own].get(timeout=_IDLE_SLEEP)
            except queue.Empty:
                return None
        for order in (own, other):
            try:
                return self._queues[order].get_nowait()
            except queue.Empty:
                continue
        self._stop.wait(_IDLE_SLEEP)
        return None


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run labelled counter futures.")
    parser.add_argument("--high", type=int, default=2, help="high-priority workers")
    parser.add_argument("--low", type=int, default=1, help="low-priority workers")
    parser.add_argument("--stealing", action="store_true", help="let idle workers steal")
    args = parser.parse_args(argv)

    with LabelledExecutor(args.high, args.low, args.stealing) as executor:
        t_one = executor.spawn(OrderedCounterFuture(FutureType.HIGH))
        t_two = executor.spawn(OrderedCounterFuture(FutureType.LOW))
        print(f"outcome: {[t_one.result(), t_two.result()]}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())