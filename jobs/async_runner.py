"""
Bridge from synchronous dramatiq actors to the async services.

Worker threads each own one event loop for their whole life. asyncpg
connections are bound to the loop that opened them, so a task must never
see a loop from another thread.
"""

import asyncio
import threading
from collections.abc import Coroutine
from typing import Any, TypeVar

from loguru import logger

T = TypeVar("T")

_thread_local = threading.local()


def _thread_loop() -> asyncio.AbstractEventLoop:
    loop = getattr(_thread_local, "loop", None)
    if loop is not None and not loop.is_closed():
        return loop

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    _thread_local.loop = loop
    logger.debug(
        f"Event loop opened for worker thread {threading.current_thread().name}"
    )
    return loop


def run_async(coro: Coroutine[Any, Any, T], task_name: str | None = None) -> T:
    """
    Run a task coroutine to completion on this thread's loop.

    Args:
        coro: Task body
        task_name: Name used in failure logs (coroutine name when omitted)

    Returns:
        Coroutine result

    Raises:
        Whatever the coroutine raises; dramatiq decides about retries
    """
    name = task_name or getattr(coro, "__qualname__", "task")
    try:
        return _thread_loop().run_until_complete(coro)
    except Exception as e:
        logger.bind(task=name).error(f"Task {name} failed: {e}")
        raise
