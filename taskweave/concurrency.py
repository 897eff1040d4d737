"""Threads, a condition variable, sequential tasks and helper processes."""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
import threading
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, TextIO


def fibonacci(n: int) -> int:
    """The ``n``-th Fibonacci number, counting from fibonacci(0) == 0."""
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    previous, current = 0, 1
    for _ in range(n):
        previous, current = current, previous + current
    return previous


def run_fib_threads(n: int, count: int = 4) -> list[int]:
    """Compute fibonacci(n) on ``count`` threads and return their results in order."""
    if count < 0:
        raise ValueError(f"thread count must be non-negative, got {count}")

    def work(index: int) -> int:
        result = fibonacci(n)
        print(f"Thread {index} result: {result}")
        return result

    with ThreadPoolExecutor(max_workers=max(count, 1)) as pool:
        return list(pool.map(work, range(count)))


@dataclass
class _Shared:
    value: Any = None
    version: int = 0
    stop: bool = False


def condvar_demo(
    values: Iterable[Any] = (False, True, False, True), interval: float = 4.0
) -> list[Any]:
    """Hand ``values`` to a listening thread through a condition variable.

    Returns the values the listener received, in order.
    """
    condition = threading.Condition()
    shared = _Shared()
    received: list[Any] = []

    def listen() -> None:
        seen = 0
        with condition:
            while True:
                condition.wait_for(lambda: shared.version != seen or shared.stop)
                if shared.version != seen:
                    seen = shared.version
                    received.append(shared.value)
                    print(f"Received value: {shared.value}")
                elif shared.stop:
                    return

    listener = threading.Thread(target=listen, daemon=True)
    listener.start()
    for value in values:
        print(f"Updating value to {value}...")
        with condition:
            shared.value = value
            shared.version += 1
            condition.notify()
        time.sleep(interval)
    with condition:
        shared.stop = True
        print("STOP has been updated")
        condition.notify()
    listener.join()
    return received


def run_tasks(count: int = 10, delay: float = 1.0) -> float:
    """Run ``count`` blocking tasks one after another; return the seconds taken."""
    start = time.monotonic()
    for _ in range(count):
        print("Running task...")
        time.sleep(delay)
    elapsed = time.monotonic() - start
    print(f"The whole program took: {elapsed:.3f}s")
    return elapsed


def echo_lines(stream: TextIO, out: TextIO) -> int:
    """Write each line of ``stream`` to ``out`` as a receipt; return how many."""
    received = 0
    for line in stream:
        out.write(f"Received: {line.removesuffix(chr(10)).removesuffix(chr(13))}\n")
        received += 1
    return received


def _task_range(start: int, delay: float) -> None:
    for number in range(start, start + 5):
        time.sleep(delay)
        print(f"Task {number} completed in process: {os.getpid()}", flush=True)


def _run_processes(delay: float) -> None:
    start = time.monotonic()
    children = [
        subprocess.Popen(
            [sys.executable, "-m", "taskweave.concurrency", "task", str(first), "--delay", str(delay)]
        )
        for first in (1, 6)
    ]
    for child in children:
        child.wait()
    print("Both processes have completed.")
    print(f"The whole program took: {time.monotonic() - start:.3f}s")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Threads, condition variables and processes.")
    commands = parser.add_subparsers(dest="command", required=True)

    fib = commands.add_parser("fib", help="compute Fibonacci numbers on threads")
    fib.add_argument("--n", type=int, default=4000)
    fib.add_argument("--threads", type=int, default=4)

    condvar = commands.add_parser("condvar", help="pass values through a condition variable")
    condvar.add_argument("--interval", type=float, default=4.0)

    tasks = commands.add_parser("tasks", help="run blocking tasks in sequence")
    tasks.add_argument("--count", type=int, default=10)
    tasks.add_argument("--delay", type=float, default=1.0)

    processes = commands.add_parser("processes", help="run tasks in two child processes")
    processes.add_argument("--delay", type=float, default=1.0)

    task = commands.add_parser("task", help="run five tasks from a starting number")
    task.add_argument("start", type=int)
    task.add_argument("--delay", type=float, default=1.0)

    commands.add_parser("echo", help="echo lines from standard input")

    args = parser.parse_args(argv)
    if args.command == "fib":
        start = time.monotonic()
        run_fib_threads(args.n, args.threads)
        print(f"fibonacci({args.n}) in {time.monotonic() - start:.3f}s")
    elif args.command == "condvar":
        condvar_demo(interval=args.interval)
    elif args.command == "tasks":
        run_tasks(args.count, args.delay)
    elif args.command == "processes":
        _run_processes(args.delay)
    elif args.command == "task":
        _task_range(args.start, args.delay)
    else:
        print(f"process ID: {os.getpid()}", flush=True)
        echo_lines(sys.stdin, sys.stdout)
        print("Failed to read from stdin", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())