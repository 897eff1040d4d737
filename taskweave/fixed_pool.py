"""An executor with a fixed number of workers on each of two priority queues.

Tasks are spawned with a priority chosen at the call site and default to
low priority. Every worker takes from its own queue first and steals from
the other queue when its own is empty.
"""

from __future__ import annotations

import argparse
import queue
import threading
import time
from typing import Any

from taskweave.runtime import PENDING, FutureType, Task, Waker
from taskweave.runtime import join as _join
from taskweave.runtime import try_join as _try_join

_IDLE_SLEEP = 0.1


class FixedPoolExecutor:
    """Two queues, high and low, each drained by ``workers_per_queue`` threads."""

    def __init__(self, workers_per_queue: int = 2) -> None:
        if not isinstance(workers_per_queue, int) or workers_per_queue < 0:
            raise ValueError(
                f"worker count must be a non-negative integer, got {workers_per_queue!r}"
            )
        self.workers_per_queue = workers_per_queue
        self._queues: dict[FutureType, queue.SimpleQueue[Task[Any]]] = {
            FutureType.HIGH: queue.SimpleQueue(),
            FutureType.LOW: queue.SimpleQueue(),
        }
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []
        preferences = (
            (FutureType.HIGH, FutureType.LOW),
            (FutureType.LOW, FutureType.HIGH),
        )
        for preference in preferences:
            for index in range(workers_per_queue):
                thread = threading.Thread(
                    target=self._work,
                    args=(preference,),
                    name=f"taskweave-pool-{preference[0].value}-{index}",
                    daemon=True,
                )
                self._threads.append(thread)
                thread.start()

    def spawn(self, future: Any, order: FutureType = FutureType.LOW) -> Task[Any]:
        """Schedule a future on the queue for ``order`` and return its task."""
        if self._stop.is_set():
            raise RuntimeError("executor has been shut down")
        task: Task[Any] = Task(future, FutureType(order), self)
        task._wake()
        return task

    def join(self, *args: Task[Any]) -> list[Any]:
        """Wait for each task in turn and return their values in order."""
        return _join(*args)

    def try_join(self, *args: Task[Any]) -> list[Any]:
        """Like ``join``, but a failed task yields its exception instead of raising."""
        return _try_join(*args)

    def shutdown(self) -> None:
        """Stop the workers and wait for them to exit."""
        self._stop.set()
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join()

    def __enter__(self) -> FixedPoolExecutor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

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


class _CounterFuture:
    def __init__(self) -> None:
        self.count = 0

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
    parser = argparse.ArgumentParser(description="Run demo tasks on a fixed worker pool.")
    parser.add_argument("--workers", type=int, default=2, help="workers per queue")
    args = parser.parse_args(argv)

    with FixedPoolExecutor(args.workers) as executor:
        t_one = executor.spawn(_CounterFuture(), FutureType.HIGH)
        t_two = executor.spawn(_CounterFuture())
        t_three = executor.spawn(_async_fn())
        t_four = executor.spawn(_twice(), FutureType.HIGH)
        outcome = executor.join(t_one, t_two)
        executor.join(t_four, t_three)
        print(f"outcome: {outcome}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())