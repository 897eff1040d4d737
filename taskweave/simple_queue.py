"""An executor with a single shared queue drained by a fixed set of workers."""

from __future__ import annotations

import argparse
import queue
import threading
import time
from typing import Any

from taskweave.runtime import PENDING, FutureType, Task, Waker

_STOP = object()


class SingleQueueExecutor:
    """Runs spawned futures on ``workers`` threads that share one queue."""

    def __init__(self, workers: int = 1) -> None:
        if not isinstance(workers, int) or workers < 0:
            raise ValueError(f"worker count must be a non-negative integer, got {workers!r}")
        self.workers = workers
        self._queue: queue.Queue[Any] = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._threads = [
            threading.Thread(target=self._work, name=f"taskweave-queue-{index}", daemon=True)
            for index in range(workers)
        ]
        for thread in self._threads:
            thread.start()

    def spawn(self, future: Any) -> Task[Any]:
        """Schedule a future and return the task that will hold its outcome."""
        with self._lock:
            if self._closed:
                raise RuntimeError("executor has been shut down")
        task: Task[Any] = Task(future, FutureType.LOW, self)
        task._wake()
        print(f"Here is the queue count: {self.queue_len()}")
        return task

    def queue_len(self) -> int:
        """Number of scheduled runs waiting for a worker."""
        return self._queue.qsize()

    def shutdown(self) -> None:
        """Let the workers finish what is queued, then stop them."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for _ in self._threads:
            self._queue.put(_STOP)
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join()

    def __enter__(self) -> SingleQueueExecutor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def _enqueue(self, task: Task[Any]) -> None:
        self._queue.put(task)

    def _work(self) -> None:
        announce = self.workers == 1
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            if announce:
                print("runnable accepted")
            item._run()


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


async def _four_times() -> None:
    for _ in range(4):
        await _async_fn()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run demo tasks on a single shared queue.")
    parser.add_argument("--workers", type=int, default=1, help="number of worker threads")
    args = parser.parse_args(argv)

    with SingleQueueExecutor(args.workers) as executor:
        t_one = executor.spawn(_CounterFuture())
        t_two = executor.spawn(_CounterFuture())
        t_three = executor.spawn(_four_times())
        time.sleep(5)
        print("before the block")
        for task in (t_one, t_two, t_three):
            task.result()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())