"""Async utilities for running blocking wiki/registry I/O from the event loop."""

import asyncio
import logging
import threading
from typing import Any, Callable, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    The coordination loop uses this for the full sync pass, which is made
    of sequential blocking HTTP calls.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def run_to_completion(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Like ``run_sync`` but shielded: cancelling the caller does not abandon
    the work, which always finishes before the cancellation is re-raised.
    """
    task = asyncio.ensure_future(run_sync(func, *args, **kwargs))
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        logger.info("Cancellation requested; waiting for in-flight work")
        await task
        raise


def start_daemon(
    target: Callable[..., Any], *args: Any, name: str
) -> threading.Thread:
    """Start *target* on a daemon thread and return the thread."""
    thread = threading.Thread(
        target=target, args=args, name=name, daemon=True
    )
    thread.start()
    return thread
