"""Debounced coordination of change notifications and full sync passes.

Two units run concurrently:

- the change stream consumer, on its own daemon thread, pushing
  notifications into a bounded ``asyncio.Queue``;
- the coordination loop, on the event loop, which waits for whichever
  comes first: a notification, the pending deadline, or shutdown.

A notification (re)arms a single pending deadline ``window`` seconds in the
future, so a burst of notifications coalesces into one pass that runs
``window`` seconds after the last of them.  The deadline is also armed at
startup, so the first pass runs even on a silent stream.  A pass always
runs to completion, even when shutdown is requested while it is running.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from ..core.async_utils import run_to_completion, start_daemon
from ..registry.models import ChangeNotification
from ..registry.stream import ChangeStreamConsumer
from .models import SyncReport

logger = logging.getLogger(__name__)


class PendingDeadline:
    """Single-slot debounce deadline.

    Arming replaces any earlier deadline, it never adds a second one.
    """

    def __init__(self, window: float) -> None:
        self.window = window
        self._deadline: float | None = None

    @property
    def armed(self) -> bool:
        return self._deadline is not None

    def arm(self, now: float) -> None:
        self._deadline = now + self.window

    def remaining(self, now: float) -> float | None:
        """Seconds until the deadline, ``0`` once due, ``None`` when unarmed."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - now)

    def due(self, now: float) -> bool:
        return self._deadline is not None and now >= self._deadline

    def clear(self) -> None:
        self._deadline = None


class Orchestrator:
    """Run ``sync_pass`` whenever the debounce deadline expires.

    Args:
        sync_pass: Blocking callable running one full pass.
        consumer: Change stream consumer; ``None`` runs passes only at
            startup (useful in tests and for offline dry runs).
        window: Debounce window in seconds.
        queue_size: Capacity of the notification queue.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        sync_pass: Callable[[], SyncReport],
        consumer: ChangeStreamConsumer | None = None,
        window: float = 30.0,
        queue_size: int = 64,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.sync_pass = sync_pass
        self.consumer = consumer
        self.clock = clock
        self.deadline = PendingDeadline(window)
        self.passes = 0
        self.last_report: SyncReport | None = None
        self._queue: asyncio.Queue[ChangeNotification] = asyncio.Queue(
            maxsize=queue_size
        )
        self._shutdown = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None

    # ------------------------------------------------------------------
    # Notification intake
    # ------------------------------------------------------------------

    def _enqueue(self, notification: ChangeNotification) -> None:
        try:
            self._queue.put_nowait(notification)
        except asyncio.QueueFull:
            # A pass is already pending; the notification adds nothing.
            logger.warning(
                "Notification queue full; dropping %s for %s",
                notification.event,
                notification.package,
            )

    def notify(self, notification: ChangeNotification) -> None:
        """Hand a notification over from any thread."""
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._enqueue, notification)

    def request_shutdown(self) -> None:
        """Stop the coordination loop and the stream consumer."""
        logger.info("Shutdown requested")
        if self.consumer is not None:
            self.consumer.stop()
        self._shutdown.set()

    # ------------------------------------------------------------------
    # Coordination loop
    # ------------------------------------------------------------------

    async def _next_event(self, timeout: float | None) -> ChangeNotification | None:
        get = asyncio.ensure_future(self._queue.get())
        stop = asyncio.ensure_future(self._shutdown.wait())
        try:
            done, _ = await asyncio.wait(
                {get, stop}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (get, stop):
                if not task.done():
                    task.cancel()
        if get in done:
            return get.result()
        return None

    async def _run_pass(self) -> None:
        self.passes += 1
        logger.info("Debounce window elapsed; running sync pass #%d", self.passes)
        try:
            report = await run_to_completion(self.sync_pass)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Sync pass failed: %s", exc, exc_info=True)
            return
        self.last_report = report
        if report.aborted:
            logger.warning(report.summary())
        else:
            logger.info(report.summary())

    async def run(self) -> None:
        """Run until ``request_shutdown()`` is called."""
        self._loop = asyncio.get_running_loop()

        if self.consumer is not None:
            start_daemon(self.consumer.run, self.notify, name="change-stream")

        self.deadline.arm(self.clock())
        logger.info(
            "Coordinator started; first pass in %.1fs", self.deadline.window
        )
        try:
            while not self._shutdown.is_set():
                if self.deadline.due(self.clock()):
                    self.deadline.clear()
                    await self._run_pass()
                    continue

                notification = await self._next_event(
                    self.deadline.remaining(self.clock())
                )
                if notification is not None:
                    logger.info(
                        "Received %s for %s; pass scheduled in %.1fs",
                        notification.event,
                        notification.package,
                        self.deadline.window,
                    )
                    self.deadline.arm(self.clock())
        finally:
            if self.consumer is not None:
                self.consumer.stop()
            logger.info("Coordinator stopped after %d passes", self.passes)
