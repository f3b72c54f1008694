"""Content gateway shared by the live and offline wiki backends.

The gateway adds the behaviour both backends must share: existence
checks, idempotent edits with a readable summary, and running counts of
writes and deletions that ``SyncEngine`` reports per pass.
"""

from __future__ import annotations

import logging
from typing import Protocol

import requests

from ..config import Config
from ..errors import NotFoundError
from .client import MediaWikiClient
from .offline import OfflineWikiStore

logger = logging.getLogger(__name__)


class WikiBackend(Protocol):
    def read(self, title: str) -> str: ...

    def write(self, title: str, text: str, summary: str, bot: bool) -> None: ...

    def remove(self, title: str, reason: str = "") -> None: ...

    def list_titles(self, prefix: str) -> list[str]: ...

    def close(self) -> None: ...


def edit_summary(current: str | None, text: str) -> str:
    """Describe an edit: ``Set: `X``` for new or empty pages, else ``old => new``."""
    previous = (current or "").strip()
    if not previous:
        return f"Set: `{text}`"
    return f"`{previous}` => `{text}`"


class WikiGateway:
    """Page read/write/delete/list on top of a ``WikiBackend``."""

    def __init__(self, backend: WikiBackend) -> None:
        self.backend = backend
        self.edits = 0
        self.deletes = 0

    @property
    def offline(self) -> bool:
        return isinstance(self.backend, OfflineWikiStore)

    def get_content(self, title: str) -> str:
        """Raises ``NotFoundError`` when the page does not exist."""
        return self.backend.read(title)

    def exists(self, title: str) -> bool:
        try:
            self.backend.read(title)
        except NotFoundError:
            return False
        return True

    def edit_page(self, title: str, text: str, bot: bool = True) -> bool:
        """Write *text* to *title* unless the trimmed content is unchanged.

        Returns:
            True if a write was performed, False for a no-op.
        """
        try:
            current: str | None = self.backend.read(title)
        except NotFoundError:
            current = None

        if current is not None and current.strip() == text.strip():
            logger.debug("Unchanged, skipping write: %s", title)
            return False

        self.backend.write(title, text, edit_summary(current, text), bot)
        self.edits += 1
        return True

    def delete_page(self, title: str, reason: str = "") -> None:
        self.backend.remove(title, reason)
        self.deletes += 1

    def list_pages(self, prefix: str) -> list[str]:
        return self.backend.list_titles(prefix)

    def close(self) -> None:
        self.backend.close()


def create_gateway(
    config: Config, session: requests.Session | None = None
) -> WikiGateway:
    """Build the gateway selected by *config*.

    Without complete credentials the offline file store is used.  Otherwise
    a live client is created and logged in immediately, so bad credentials
    fail at startup.

    Raises:
        LoginError: The wiki rejected the credentials.
        WikiSyncError: The wiki could not be reached during login.
    """
    if config.offline:
        return WikiGateway(OfflineWikiStore(config.offline_dir))

    client = MediaWikiClient(config, session=session)
    client.login()
    return WikiGateway(client)
