"""Cached wiki API tokens.

The wiki hands out a ``login`` token (needed to submit credentials) and a
``csrf`` token (needed for every write).  Both are fetched lazily and kept
until invalidated; a successful login clears the cache so tokens bound to
the previous session are never reused.
"""

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)

LOGIN = "login"
CSRF = "csrf"


class TokenManager:
    """Thread-safe token cache with a single in-flight fetch per kind.

    Args:
        fetch: Callable performing the network round-trip for a token kind.
    """

    def __init__(self, fetch: Callable[[str], str]) -> None:
        self._fetch = fetch
        self._tokens: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, kind: str) -> str:
        # Fast path: plain dict reads are atomic, no lock needed.
        token = self._tokens.get(kind)
        if token is not None:
            return token
        with self._lock:
            token = self._tokens.get(kind)
            if token is not None:
                return token
            logger.debug("Fetching %s token", kind)
            token = self._fetch(kind)
            self._tokens[kind] = token
            return token

    def invalidate(self, kind: str) -> None:
        with self._lock:
            self._tokens.pop(kind, None)

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()

    def __contains__(self, kind: str) -> bool:
        return kind in self._tokens
