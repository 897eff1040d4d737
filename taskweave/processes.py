"""Run child programs and fetch pages, one process or request at a time or together."""

from __future__ import annotations

import argparse
import asyncio
import subprocess
import sys
import tempfile
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from taskweave.http_client import fetch

DEFAULT_URL = "http://example.com/"

CHILD_PROCESS_CODE = """\
import os
import time

while True:
    print("This is the child process speaking!", flush=True)
    time.sleep(4)
    print(f"Child process ID: {os.getpid()}", flush=True)
"""


class ChildScriptError(RuntimeError):
    """The child script could not be compiled."""


class HttpStatusError(Exception):
    """A request finished with a status outside 2xx."""

    def __init__(self, status: int, reason: str = "") -> None:
        super().__init__(f"Failed to get a valid response. Status: {status} {reason}".rstrip())
        self.status = status
        self.reason = reason


def run_child_script(source: str = CHILD_PROCESS_CODE, timeout: float | None = None) -> int:
    """Check and run ``source`` as a child program; return its exit status.

    The child shares this process's standard output. If ``timeout`` passes
    first the child is killed and ``subprocess.TimeoutExpired`` is raised.
    """
    with tempfile.TemporaryDirectory() as directory:
        path = Path(directory) / "child_process_code.py"
        path.write_text(source, encoding="utf-8")
        check = subprocess.run(
            [sys.executable, "-m", "py_compile", str(path)],
            capture_output=True,
            text=True,
        )
        if check.returncode != 0:
            raise ChildScriptError(f"Error during compilation:\n{check.stderr}")
        child = subprocess.Popen([sys.executable, str(path)])
        print(f"Child process spawned with PID: {child.pid}", flush=True)
        try:
            status = child.wait(timeout)
        except subprocess.TimeoutExpired:
            child.kill()
            child.wait()
            raise
        print(f"Child process terminated with status: {status}")
        return status


@dataclass
class ConnectionResult:
    """Outcome of one child process: its exit code and output, or why it failed."""

    exit_code: int | None = None
    output: str = ""
    error: OSError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _run_connection(command: list[str]) -> ConnectionResult:
    try:
        process = await asyncio.create_subprocess_exec(
            *command, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
        )
        stdout, _ = await process.communicate()
    except OSError as exc:
        print(f"Failed to run process: {exc}", file=sys.stderr)
        return ConnectionResult(error=exc)
    output = stdout.decode("utf-8", errors="replace")
    print(f"Process completed with output: {output}")
    code = process.returncode
    return ConnectionResult(exit_code=code if code is not None and code >= 0 else -1, output=output)


def spawn_connections(command: Sequence[str], count: int = 4) -> list[ConnectionResult]:
    """Run ``command`` ``count`` times at once; return the results in spawn order."""
    if count < 0:
        raise ValueError(f"process count must be non-negative, got {count}")
    args = list(command)
    if not args:
        raise ValueError("command must not be empty")

    async def run_all() -> list[ConnectionResult]:
        return list(await asyncio.gather(*(_run_connection(args) for _ in range(count))))

    return asyncio.run(run_all())


def fetch_text(url: str) -> str:
    """GET ``url`` and return its body; raise ``HttpStatusError`` unless 2xx."""
    response = fetch(url)
    if 200 <= response.status < 300:
        return response.text()
    raise HttpStatusError(response.status, response.reason)


def _run_once(command: list[str]) -> int:
    output = subprocess.run(command, capture_output=True)
    if output.returncode == 0:
        print(f"Output: {output.stdout.decode('utf-8', errors='replace')}")
    else:
        print(f"Error: {output.stderr.decode('utf-8', errors='replace')}", file=sys.stderr)
    return output.returncode


def _time_requests(url: str, count: int) -> None:
    start = time.monotonic()
    for _ in range(count):
        fetch(url)
    print(f"Request took {int((time.monotonic() - start) * 1000)} ms")

    start = time.monotonic()
    with ThreadPoolExecutor(max_workers=max(count, 1)) as pool:
        list(pool.map(fetch, [url] * count))
    print(f"Request took {int((time.monotonic() - start) * 1000)} ms")


async def _calculate_last_login() -> None:
    await asyncio.sleep(1)
    print("Logged in 2 days ago")


async def _fetch_with_login(url: str) -> None:
    start = time.monotonic()
    posts, _ = await asyncio.gather(asyncio.to_thread(fetch, url), _calculate_last_login())
    print(f"Fetched {posts}")
    print(f"Time taken: {time.monotonic() - start:.3f}s")


def _command(raw: list[str]) -> list[str]:
    if raw and raw[0] == "--":
        raw = raw[1:]
    return raw or [sys.executable, "-m", "taskweave.processes", "connection"]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Child processes and HTTP requests.")
    commands = parser.add_subparsers(dest="command_name", required=True)

    child = commands.add_parser("child", help="check and run a child script")
    child.add_argument("--timeout", type=float, default=None)

    connection = commands.add_parser("connection", help="fetch one page and print it")
    connection.add_argument("url", nargs="?", default=DEFAULT_URL)

    spawner = commands.add_parser("spawner", help="run a command several times at once")
    spawner.add_argument("--count", type=int, default=4)
    spawner.add_argument("command", nargs=argparse.REMAINDER)

    server = commands.add_parser("server", help="run a command once and show its output")
    server.add_argument("command", nargs=argparse.REMAINDER)

    requests = commands.add_parser("requests", help="time sequential and concurrent requests")
    requests.add_argument("url", nargs="?", default=DEFAULT_URL)
    requests.add_argument("--count", type=int, default=4)

    login = commands.add_parser("login", help="fetch a page while doing other work")
    login.add_argument("url", nargs="?", default=DEFAULT_URL)

    args = parser.parse_args(argv)
    if args.command_name == "child":
        run_child_script(timeout=args.timeout)
    elif args.command_name == "connection":
        try:
            print(fetch_text(args.url))
        except HttpStatusError as exc:
            print(exc)
    elif args.command_name == "spawner":
        results = spawn_connections(_command(args.command), args.count)
        for number, result in enumerate(results, start=1):
            if result.ok:
                print(f"Process {number} exited with code {result.exit_code}")
            else:
                print(f"Process {number} failed: {result.error}", file=sys.stderr)
    elif args.command_name == "server":
        return 0 if _run_once(_command(args.command)) == 0 else 1
    elif args.command_name == "requests":
        _time_requests(args.url, args.count)
    else:
        asyncio.run(_fetch_with_login(args.url))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())