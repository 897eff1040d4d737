"""A small HTTP/1.1 client over plain or TLS sockets, run as runtime tasks."""

from __future__ import annotations

import argparse
import http.client
import io
import socket
import ssl
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from taskweave.runtime import Runtime, spawn_task

_DEFAULT_PORTS = {"http": 80, "https": 443}


class _StreamReader(io.RawIOBase):
    """Raw binary reader over a ``CustomStream``."""

    def __init__(self, stream: CustomStream) -> None:
        super().__init__()
        self._stream = stream

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        view = memoryview(buffer).cast("B")
        data = self._stream.read(len(view))
        view[: len(data)] = data
        return len(data)


class CustomStream:
    """A connected stream, either plain TCP or TLS on top of TCP."""

    def __init__(self, sock: socket.socket, tls: bool = False) -> None:
        self._sock = sock
        self.tls = tls

    def read(self, size: int = 65536) -> bytes:
        """Read up to ``size`` bytes; ``b""`` means the peer has finished."""
        return self._sock.recv(size)

    def write(self, data: bytes) -> int:
        """Send some of ``data`` and return how many bytes went out."""
        return self._sock.send(data)

    def write_all(self, data: bytes) -> None:
        """Send every byte of ``data``."""
        view = memoryview(data)
        while view:
            view = view[self.write(view) :]

    def flush(self) -> None:
        """Sockets write straight through; only check the stream is still open."""
        if self._sock.fileno() == -1:
            raise ValueError("flush on a closed stream")

    def shutdown(self) -> None:
        """Close the writing half; a TLS stream is closed entirely."""
        if self.tls:
            self._sock.close()
        else:
            self._sock.shutdown(socket.SHUT_WR)

    def makefile(self, mode: str = "rb") -> io.BufferedReader:
        """A buffered binary reader over this stream."""
        if mode not in ("r", "rb"):
            raise ValueError(f"only reading is supported, got mode {mode!r}")
        return io.BufferedReader(_StreamReader(self))

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> CustomStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class CustomConnector:
    """Opens a stream to the host a URI names, with TLS for https."""

    def __init__(self, context: ssl.SSLContext | None = None) -> None:
        self._context = context

    def connect(self, uri: str) -> CustomStream:
        parts = urlsplit(uri)
        host = parts.hostname
        if not host:
            raise ValueError("cannot parse host")
        scheme = parts.scheme or None
        if scheme not in _DEFAULT_PORTS:
            raise ValueError(f"unsupported scheme: {scheme!r}")
        port = parts.port or _DEFAULT_PORTS[scheme]
        addresses = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        if not addresses:
            raise ConnectionError("cannot resolve address")
        family, kind, proto, _, address = addresses[0]
        sock = socket.socket(family, kind, proto)
        try:
            sock.connect(address)
            if scheme == "https":
                context = self._context or ssl.create_default_context()
                sock = context.wrap_socket(sock, server_hostname=host)
                return CustomStream(sock, tls=True)
        except BaseException:
            sock.close()
            raise
        return CustomStream(sock)


@dataclass
class HttpResponse:
    """Status, headers and body of a finished request."""

    status: int
    reason: str
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""

    def header(self, name: str) -> str | None:
        """The first header called ``name``, ignoring case."""
        wanted = name.lower()
        return next((value for key, value in self.headers if key.lower() == wanted), None)

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding)


def _host_header(host: str, port: int | None) -> str:
    shown = f"[{host}]" if ":" in host else host
    return shown if port is None else f"{shown}:{port}"


def fetch(url: str) -> HttpResponse:
    """Send a GET request for ``url`` and return the whole response."""
    parts = urlsplit(url)
    target = parts.path or "/"
    if parts.query:
        target = f"{target}?{parts.query}"
    with CustomConnector().connect(url) as stream:
        request = (
            f"GET {target} HTTP/1.1\r\n"
            f"Host: {_host_header(parts.hostname or '', parts.port)}\r\n"
            "User-Agent: taskweave\r\n"
            "Accept: */*\r\n"
            "Connection: close\r\n"
            "\r\n"
        )
        stream.write_all(request.encode("ascii"))
        stream.flush()
        response = http.client.HTTPResponse(stream, method="GET")
        try:
            response.begin()
            body = response.read()
        finally:
            response.close()
        return HttpResponse(
            status=response.status,
            reason=response.reason,
            headers=list(response.getheaders()),
            body=body,
        )


async def _fetch_task(url: str) -> HttpResponse:
    return fetch(url)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Fetch a page on the task runtime.")
    parser.add_argument("url", nargs="?", default="http://example.com/")
    parser.add_argument("--high", type=int, default=4, help="high-priority workers")
    parser.add_argument("--low", type=int, default=2, help="low-priority workers")
    args = parser.parse_args(argv)

    runtime = Runtime().with_low_num(args.low).with_high_num(args.high)
    runtime.run()
    try:
        response = spawn_task(_fetch_task(args.url)).result()
    finally:
        runtime.shutdown()
    print(response.text())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())