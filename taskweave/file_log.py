"""Append log lines to shared files from many tasks at once."""

from __future__ import annotations

import argparse
import os
import threading
from dataclasses import dataclass, field
from typing import Any, TextIO

from taskweave.runtime import PENDING, Runtime, Task, Waker, join, spawn_task


@dataclass
class _FileHandle:
    file: TextIO
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def close(self) -> None:
        with self.lock:
            self.file.close()

    def __enter__(self) -> _FileHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def get_handle(path: str | os.PathLike[str]) -> _FileHandle:
    """Open ``path`` for appending, creating it if needed, behind a lock."""
    return _FileHandle(open(os.fspath(path), "a", encoding="utf-8"))


@dataclass
class AsyncWriteFuture:
    """Writes one line to a shared file once it can take the file's lock."""

    handle: _FileHandle
    entry: str

    def poll(self, waker: Waker) -> Any:
        if not self.handle.lock.acquire(blocking=False):
            print(f"error for {self.entry} : file is locked")
            waker.wake()
            return PENDING
        try:
            try:
                self.handle.file.write(f"{self.entry}\n")
                self.handle.file.flush()
                print(f"written for: {self.entry}")
            except OSError as exc:
                print(exc)
        finally:
            self.handle.lock.release()
        return True


def write_log(handle: _FileHandle, line: str) -> Task[Any]:
    """Spawn a task on the running runtime that appends ``line``."""
    return spawn_task(AsyncWriteFuture(handle, line))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Write login and logout logs concurrently.")
    parser.add_argument("--dir", default=".", help="directory for the log files")
    args = parser.parse_args(argv)

    names = ["one", "two", "three", "four", "five", "six"]
    with Runtime(2, 2), get_handle(os.path.join(args.dir, "login.txt")) as login, get_handle(
        os.path.join(args.dir, "logout.txt")
    ) as logout:
        tasks = []
        for name in names:
            tasks.append(write_log(login, name))
            tasks.append(write_log(logout, name))
        join(*tasks)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())