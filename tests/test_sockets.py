import socket
import threading
import time

import pytest

from taskweave.runtime import PENDING, Runtime
from taskweave.sockets import MESSAGE, Channel, ServerFuture, main


class CountingWaker:
    def __init__(self):
        self.wakes = 0

    def wake(self):
        self.wakes += 1


@pytest.fixture
def listener():
    sock = socket.create_server(("127.0.0.1", 0))
    yield sock
    sock.close()


def _send_and_close(address, payload):
    with socket.create_connection(address) as client:
        client.sendall(payload)


def _poll_until_ready(future, attempts=50):
    waker = CountingWaker()
    for _ in range(attempts):
        outcome = future.poll(waker)
        if outcome is not PENDING:
            return outcome
    raise AssertionError("server future never finished")


def test_poll_without_connection_is_pending_and_wakes(listener):
    future = ServerFuture(listener)
    waker = CountingWaker()
    try:
        assert future.poll(waker) is PENDING
        assert waker.wakes == 1
    finally:
        future.close()


def test_poll_returns_sent_message(listener):
    future = ServerFuture(listener)
    try:
        _send_and_close(listener.getsockname()[:2], MESSAGE.encode("utf-8"))
        assert _poll_until_ready(future) == MESSAGE
    finally:
        future.close()


def test_invalid_utf8_is_replaced(listener):
    future = ServerFuture(listener)
    try:
        _send_and_close(listener.getsockname()[:2], b"ab\xff")
        assert _poll_until_ready(future) == "ab\ufffd"
    finally:
        future.close()


def test_server_future_runs_on_runtime(listener):
    future = ServerFuture(listener)
    with Runtime(1, 1) as runtime:
        task = runtime.spawn(future)
        _send_and_close(listener.getsockname()[:2], MESSAGE.encode("utf-8"))
        assert task.result(timeout=10) == MESSAGE
    future.close()


def test_channel_is_fifo():
    channel = Channel()
    for item in ("a", "b", "c"):
        channel.send(item)
    assert len(channel) == 3
    assert [channel.receive() for _ in range(3)] == ["a", "b", "c"]
    assert len(channel) == 0


def test_channel_receive_blocks_until_send():
    channel = Channel()
    delay = 0.2

    def send_later():
        time.sleep(delay)
        channel.send(42)

    sender = threading.Thread(target=send_later)
    start = time.monotonic()
    sender.start()
    value = channel.receive()
    elapsed = time.monotonic() - start
    sender.join(timeout=5)
    assert value == 42
    assert elapsed >= delay * 0.9
    assert len(channel) == 0


def test_main_prints_outcome(capsys):
    assert main(["--port", "0"]) == 0
    assert "outcome: that's so dingo!" in capsys.readouterr().out