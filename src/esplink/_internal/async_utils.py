"""Asyncio utilities shared by the CLI commands."""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run *coro* to completion from synchronous (Click) code.

    When called from inside an already-running loop, the coroutine is run
    on a fresh loop in a worker thread instead.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        import concurrent.futures

        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    return asyncio.run(coro)


async def wait_for_interrupt(
    stop_event: asyncio.Event | None = None,
    *,
    timeout: float | None = None,
) -> None:
    """Block until cancelled (Ctrl+C), *stop_event* is set, or *timeout* expires."""
    event = stop_event or asyncio.Event()
    try:
        await asyncio.wait_for(event.wait(), timeout=timeout)
    except (TimeoutError, asyncio.CancelledError):
        pass
