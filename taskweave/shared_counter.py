"""Two futures sharing one counter behind a lock."""

from __future__ import annotations

import argparse
import asyncio
import enum
import threading
import time
from dataclasses import dataclass, field
from typing import Any

from taskweave.runtime import PENDING, Runtime, Waker, join


class CounterType(enum.Enum):
    """Which way a future moves the shared counter."""

    INCREMENT = "Increment"
    DECREMENT = "Decrement"


@dataclass
class SharedData:
    """A counter and the lock that guards it."""

    counter: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def increment(self) -> None:
        self.counter += 1

    def decrement(self) -> None:
        self.counter -= 1


def _apply(data: SharedData, counter_type: CounterType) -> None:
    if counter_type is CounterType.INCREMENT:
        data.increment()
        print(f"after increment: {data.counter}")
    else:
        data.decrement()
        print(f"after decrement: {data.counter}")


@dataclass
class LockingCounterFuture:
    """Moves the shared counter once per poll, finishing after three moves.

    If the lock is taken the poll gives up and asks to be polled again.
    """

    counter_type: CounterType
    data: SharedData
    count: int = 0
    interval: float = 1.0

    def poll(self, waker: Waker) -> Any:
        time.sleep(self.interval)
        if not self.data.lock.acquire(blocking=False):
            print(f"error for {self.counter_type.value}: lock is held elsewhere")
            waker.wake()
            return PENDING
        try:
            _apply(self.data, self.counter_type)
        finally:
            self.data.lock.release()
        self.count += 1
        if self.count < 3:
            waker.wake()
            return PENDING
        return self.count


async def count(n: int, data: SharedData, counter_type: CounterType) -> int:
    """Move the counter ``n`` times, yielding while the lock is busy."""
    for _ in range(n):
        while not data.lock.acquire(blocking=False):
            await asyncio.sleep(0)
        try:
            _apply(data, counter_type)
        finally:
            data.lock.release()
        time.sleep(1)
    return n


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Share a counter between two futures.")
    parser.add_argument("--interval", type=float, default=1.0, help="sleep per poll")
    args = parser.parse_args(argv)

    shared = SharedData()
    with Runtime(2, 2) as runtime:
        one = runtime.spawn(LockingCounterFuture(CounterType.INCREMENT, shared, interval=args.interval))
        two = runtime.spawn(LockingCounterFuture(CounterType.DECREMENT, shared, interval=args.interval))
        join(one, two)
    print(f"final counter: {shared.counter}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())