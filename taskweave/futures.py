"""Hand-written futures: a poll counter, a remotely woken future and a pinned value."""

from __future__ import annotations

import argparse
import threading
import time
from dataclasses import dataclass
from typing import Any

from taskweave.runtime import PENDING, Runtime, Waker, join


@dataclass
class CounterFuture:
    """Counts its polls and finishes with the count on the third one."""

    count: int = 0
    interval: float = 1.0

    def poll(self, waker: Waker) -> Any:
        self.count += 1
        print(f"polling with result: {self.count}")
        time.sleep(self.interval)
        if self.count < 3:
            waker.wake()
            return PENDING
        return self.count


@dataclass
class SimpleFuture:
    """Asks to be polled again until it has counted to three."""

    count: int = 0

    def poll(self, waker: Waker) -> Any:
        if self.count < 3:
            self.count += 1
            waker.wake()
            return PENDING
        return self.count


class SelfReferential:
    """Holds a string that stays reachable however the holder is moved."""

    def __init__(self, data: str) -> None:
        self.data = data

    def show(self) -> str:
        """Print the held string and return it."""
        print(self.data)
        return self.data


class RemoteFuture:
    """A future that stays pending until someone hands it data."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: bytes | None = None
        self._waker: Waker | None = None

    def poll(self, waker: Waker) -> Any:
        print("Polling the future")
        with self._lock:
            if self._data is not None:
                data, self._data = self._data, None
                return data.decode("utf-8")
            self._waker = waker
            return PENDING

    def trigger(self, data: bytes) -> None:
        """Store ``data`` and wake the task waiting on this future, if any."""
        with self._lock:
            self._data = bytes(data)
            waker, self._waker = self._waker, None
        if waker is not None:
            waker.wake()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run hand-written futures.")
    parser.add_argument("--interval", type=float, default=1.0, help="sleep per counter poll")
    parser.add_argument("--delay", type=float, default=3.0, help="wait before triggering")
    args = parser.parse_args(argv)

    SelfReferential("first").show()
    with Runtime(2, 2) as runtime:
        one = runtime.spawn(CounterFuture(interval=args.interval))
        two = runtime.spawn(CounterFuture(interval=args.interval))
        print(f"counters finished with: {join(one, two)}")

        remote = RemoteFuture()
        handle = runtime.spawn(remote)
        time.sleep(args.delay)
        print("spawning trigger task")
        remote.trigger(b"Hello from the outside")
        print(f"Task completed with outcome: {handle.result()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())