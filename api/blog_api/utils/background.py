"""Fire-and-forget coroutines that must not delay the response."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)

# Strong references so pending tasks are not garbage-collected mid-flight
_pending: set[asyncio.Task] = set()


def fire_and_forget(coro: Coroutine[Any, Any, Any], description: str) -> asyncio.Task:
    """
    Schedule ``coro`` on the running loop without awaiting it.

    Failures are logged and otherwise ignored.
    """
    task = asyncio.get_running_loop().create_task(coro)
    _pending.add(task)

    def _done(t: asyncio.Task) -> None:
        _pending.discard(t)
        if t.cancelled():
            return
        exc = t.exception()
        if exc is not None:
            logger.warning(f"Background task failed ({description}): {exc}")

    task.add_done_callback(_done)
    return task


def pending_count() -> int:
    return len(_pending)


async def drain(timeout: float = 5.0) -> None:
    """Wait for outstanding background tasks, used at shutdown."""
    if not _pending:
        return
    _, still_pending = await asyncio.wait(set(_pending), timeout=timeout)
    for task in still_pending:
        task.cancel()
