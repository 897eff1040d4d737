"""A listening socket polled as a future, and a blocking message channel."""

from __future__ import annotations

import argparse
import selectors
import socket
import sys
import threading
from collections import deque
from typing import Any, Generic, TypeVar

from taskweave.runtime import PENDING, Runtime, Waker, spawn_task

T = TypeVar("T")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 13265
MESSAGE = "that's so dingo!\n"

_CHUNK = 1024


def _read_available(conn: socket.socket, timeout: float) -> bytes:
    """Read from ``conn`` until the peer finishes or nothing arrives in ``timeout``."""
    conn.settimeout(timeout)
    chunks: list[bytes] = []
    while True:
        try:
            chunk = conn.recv(_CHUNK)
        except (BlockingIOError, TimeoutError):
            break
        except OSError as exc:
            print(f"Error reading from stream: {exc}", file=sys.stderr)
            break
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


class ServerFuture:
    """Waits for a connection on ``listener`` and finishes with what it sent.

    Each poll waits briefly for an incoming connection. A connection that
    sends nothing is dropped and the future stays pending.
    """

    poll_timeout = 0.2

    def __init__(self, listener: socket.socket) -> None:
        listener.setblocking(False)
        self.listener = listener
        self._selector = selectors.DefaultSelector()
        self._selector.register(listener, selectors.EVENT_READ)

    def poll(self, waker: Waker) -> Any:
        for key, events in self._selector.select(self.poll_timeout):
            if key.fileobj is not self.listener or not events & selectors.EVENT_READ:
                continue
            try:
                conn, _ = self.listener.accept()
            except BlockingIOError:
                break
            with conn:
                data = _read_available(conn, self.poll_timeout)
            if data:
                return data.decode("utf-8", errors="replace")
            break
        waker.wake()
        return PENDING

    def close(self) -> None:
        """Stop watching the listener; the listener itself stays open."""
        self._selector.close()


class Channel(Generic[T]):
    """An unbounded FIFO whose ``receive`` blocks until a message arrives."""

    def __init__(self) -> None:
        self._queue: deque[T] = deque()
        self._ready = threading.Condition()

    def send(self, message: T) -> None:
        with self._ready:
            self._queue.append(message)
            self._ready.notify()

    def receive(self) -> T:
        with self._ready:
            self._ready.wait_for(lambda: bool(self._queue))
            return self._queue.popleft()

    def __len__(self) -> int:
        with self._ready:
            return len(self._queue)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Receive a message on a polled socket.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--message", default=MESSAGE)
    args = parser.parse_args(argv)

    runtime = Runtime().with_low_num(2).with_high_num(4)
    runtime.run()
    try:
        with socket.create_server((args.host, args.port)) as listener:
            server = ServerFuture(listener)
            try:
                task = spawn_task(server)
                address = listener.getsockname()[:2]
                with socket.create_connection(address) as client:
                    client.sendall(args.message.encode("utf-8"))
                    outcome = task.result()
            finally:
                server.close()
    finally:
        runtime.shutdown()
    print(f"outcome: {outcome}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())