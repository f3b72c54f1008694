"""Consumer for the registry's server-sent change stream.

The registry pushes ``package.added`` / ``package.updated`` /
``package.removed`` events over a long-lived ``text/event-stream``
response.  The consumer remembers the last event id it saw and sends it
back as ``Last-Event-ID`` when reconnecting, so the server can skip
history that was already delivered.  Resumption is best-effort: a
notification may arrive twice after a reconnect, which is harmless
because notifications only schedule a full reconciliation pass.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

import requests

from .. import USER_AGENT
from ..errors import TransportError
from .models import PACKAGE_EVENTS, ChangeNotification

logger = logging.getLogger(__name__)

Emit = Callable[[ChangeNotification], None]

_LINE_END = re.compile(r"\r\n|\r|\n")


@dataclass
class ServerSentEvent:
    event: str = "message"
    data: str = ""
    id: str | None = None


def iter_stream_lines(chunks: Iterable[str]) -> Iterator[str]:
    """Split decoded stream chunks into lines.

    ``\\r\\n``, ``\\r`` and ``\\n`` each end one line, including a ``\\r\\n``
    pair that arrives split across two chunks.
    """
    partial: list[str] = []
    skip_lf = False
    for chunk in chunks:
        if not chunk:
            continue
        if skip_lf and chunk.startswith("\n"):
            chunk = chunk[1:]
        start = 0
        for match in _LINE_END.finditer(chunk):
            partial.append(chunk[start : match.start()])
            yield "".join(partial)
            partial = []
            start = match.end()
        partial.append(chunk[start:])
        skip_lf = chunk.endswith("\r")
    tail = "".join(partial)
    if tail:
        yield tail


def iter_sse_events(lines: Iterable[str]) -> Iterator[ServerSentEvent]:
    """Group raw stream lines into events.

    Handles ``event:``, multi-line ``data:``, ``id:`` and ``:`` comment
    lines; an event is dispatched on the blank line that ends it.  An
    unterminated event at end of stream is dropped.
    """
    event = ""
    data_lines: list[str] = []
    event_id: str | None = None
    for line in lines:
        if line == "":
            if data_lines or event_id is not None:
                yield ServerSentEvent(
                    event=event or "message",
                    data="\n".join(data_lines),
                    id=event_id,
                )
            event, data_lines, event_id = "", [], None
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event = value
        elif field == "data":
            data_lines.append(value)
        elif field == "id" and "\0" not in value:
            event_id = value


class ChangeStreamConsumer:
    """Reads the change stream and reports package notifications.

    Meant to run on its own thread via ``run()``; ``stop()`` may be called
    from any thread and interrupts a blocking read.

    Args:
        stream_url: Full URL of the SSE endpoint.
        session: Optional ``requests.Session``.
        initial_backoff: First reconnect delay after a failure (seconds).
        max_backoff: Upper bound for the reconnect delay.
        reconnect_pause: Delay before reconnecting after a clean end.
        timeout: ``(connect, read)`` timeout for the stream request.
    """

    def __init__(
        self,
        stream_url: str,
        session: requests.Session | None = None,
        initial_backoff: float = 1.0,
        max_backoff: float = 30.0,
        reconnect_pause: float = 1.0,
        timeout: tuple[float, float] = (10, 300),
    ) -> None:
        self.stream_url = stream_url
        self.session = session or requests.Session()
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.reconnect_pause = reconnect_pause
        self.timeout = timeout
        self.last_event_id: str | None = None
        self._stopping = threading.Event()
        self._response: requests.Response | None = None

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    def stop(self) -> None:
        self._stopping.set()
        response = self._response
        if response is not None:
            response.close()

    # ------------------------------------------------------------------
    # One connection
    # ------------------------------------------------------------------

    def listen(self, emit: Emit) -> None:
        """Consume one connection until the server closes it.

        Raises:
            TransportError: Connection failed or broke mid-stream.
        """
        headers = {
            "Accept": "text/event-stream",
            "Cache-Control": "no-cache",
            "User-Agent": USER_AGENT,
        }
        if self.last_event_id:
            headers["Last-Event-ID"] = self.last_event_id

        try:
            with self.session.get(
                self.stream_url,
                headers=headers,
                stream=True,
                timeout=self.timeout,
            ) as response:
                response.raise_for_status()
                response.encoding = "utf-8"
                self._response = response
                logger.info("Connected to change stream %s", self.stream_url)
                # chunk_size=1 hands each event over as soon as it arrives
                chunks = response.iter_content(chunk_size=1, decode_unicode=True)
                lines = iter_stream_lines(chunks)
                for event in iter_sse_events(lines):
                    if self.stopping:
                        return
                    self.handle_event(event, emit)
        except requests.RequestException as exc:
            if self.stopping:
                return
            raise TransportError(f"change stream: {exc}") from exc
        finally:
            self._response = None

    def handle_event(self, event: ServerSentEvent, emit: Emit) -> None:
        payload = None
        if event.data:
            try:
                payload = json.loads(event.data)
            except ValueError:
                logger.warning(
                    "Ignoring %s event with invalid JSON payload", event.event
                )

        if event.id:
            self.last_event_id = event.id
        elif isinstance(payload, dict) and payload.get("id"):
            self.last_event_id = str(payload["id"])

        if not isinstance(payload, dict):
            return
        if event.event not in PACKAGE_EVENTS:
            logger.debug("Ignoring unhandled stream event %s", event.event)
            return

        identifier = payload.get("identifier")
        name = identifier.get("name") if isinstance(identifier, dict) else None
        if not name:
            logger.warning("Ignoring %s event without package name", event.event)
            return
        emit(
            ChangeNotification(
                event=event.event, package=name, event_id=self.last_event_id
            )
        )

    # ------------------------------------------------------------------
    # Reconnect loop
    # ------------------------------------------------------------------

    def run(self, emit: Emit) -> None:
        """Reconnect forever until ``stop()`` is called.

        Failures back off exponentially from ``initial_backoff`` up to
        ``max_backoff``; a clean end of stream resets the backoff and
        reconnects after ``reconnect_pause``.
        """
        backoff = self.initial_backoff
        while not self.stopping:
            try:
                self.listen(emit)
            except Exception as exc:
                if self.stopping:
                    break
                logger.error(
                    "Change stream error: %s (reconnecting in %.0fs)",
                    exc,
                    backoff,
                )
                self._stopping.wait(backoff)
                backoff = min(backoff * 2, self.max_backoff)
                continue
            backoff = self.initial_backoff
            self._stopping.wait(self.reconnect_pause)
        logger.info("Change stream consumer stopped")
