"""Breakfast steps that mix awaiting with blocking work, and a timed-out task."""

from __future__ import annotations

import argparse
import asyncio
import time


async def prep_coffee_mug(scale: float = 1.0) -> None:
    await asyncio.sleep(0.1 * scale)
    print("Pouring milk...")
    time.sleep(3 * scale)
    print("Milk poured.")
    print("Putting instant coffee...")
    time.sleep(3 * scale)
    print("Instant coffee put.")


async def make_coffee(scale: float = 1.0) -> None:
    print("boiling kettle...")
    await asyncio.sleep(10 * scale)
    print("kettle boiled.")
    print("pouring boiled water...")
    time.sleep(3 * scale)
    print("boiled water poured.")


async def make_toast(scale: float = 1.0) -> None:
    print("putting bread in toaster...")
    await asyncio.sleep(10 * scale)
    print("bread toasted.")
    print("buttering toasted bread...")
    time.sleep(5 * scale)
    print("toasted bread buttered.")


async def slow_task(scale: float = 1.0) -> str:
    await asyncio.sleep(10 * scale)
    return "Slow Task Completed"


async def run_with_timeout(seconds: float = 3.0, scale: float = 1.0) -> str | None:
    """Run ``slow_task`` with a deadline; return its value, or None on timeout."""
    try:
        value = await asyncio.wait_for(slow_task(scale), seconds)
    except asyncio.TimeoutError:
        print("Task timed out")
        return None
    print(f"Task completed successfully: {value}")
    return value


async def _all_steps(scale: float) -> None:
    await asyncio.gather(prep_coffee_mug(scale), make_coffee(scale), make_toast(scale))


async def _one_after_another(scale: float) -> None:
    await prep_coffee_mug(scale)
    await make_coffee(scale)
    await make_toast(scale)


async def _breakfast(scale: float) -> None:
    start = time.monotonic()
    await _all_steps(scale)
    print(f"It took: {int(time.monotonic() - start)} seconds")
    await asyncio.create_task(_one_after_another(scale))
    await asyncio.create_task(_all_steps(scale))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Make breakfast concurrently.")
    parser.add_argument("demo", nargs="?", choices=["breakfast", "timeout"], default="breakfast")
    parser.add_argument("--scale", type=float, default=1.0, help="multiplier for every delay")
    parser.add_argument("--timeout", type=float, default=3.0, help="deadline for the slow task")
    args = parser.parse_args(argv)

    if args.demo == "timeout":
        asyncio.run(run_with_timeout(args.timeout, args.scale))
    else:
        asyncio.run(_breakfast(args.scale))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())