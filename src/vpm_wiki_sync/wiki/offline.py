"""File-backed stand-in for the wiki, used when no credentials are configured.

Every page is one file in ``output_dir``.  Titles are flattened into safe
filenames, which loses information (``/`` and ``:`` both become ``_``), so a
small JSON index maps each filename back to the title that produced it.
That index is what makes ``list_titles`` possible: a page file copied into
the directory by hand has no index entry, so it is not listed (a warning
names such files).
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import threading
from pathlib import Path

from ..errors import NotFoundError

logger = logging.getLogger(__name__)

PAGE_SUFFIX = ".md"
INDEX_NAME = ".titles.json"

_UNSAFE_CHARS = re.compile(r'[\x00-\x1f<>:"/\\|?*]')
_UNDERSCORE_RUNS = re.compile(r"_{2,}")


def sanitize_filename(title: str) -> str:
    """Convert a page title into a flat, filesystem-safe filename.

    Control characters and ``<>:"/\\|?*`` become ``_``, runs of underscores
    collapse to one, leading/trailing spaces and underscores are trimmed,
    and an empty result becomes ``page``.  The ``.md`` extension is added.
    """
    name = _UNSAFE_CHARS.sub("_", title.strip())
    name = _UNDERSCORE_RUNS.sub("_", name).strip(" _")
    return (name or "page") + PAGE_SUFFIX


class OfflineWikiStore:
    """Directory of page files with the same operations as the live client.

    Args:
        output_dir: Directory holding the page files (created on first write).
    """

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir or "./wiki-output")
        self._lock = threading.Lock()
        logger.info(
            "Offline mode enabled: writing wiki pages to %s", self.output_dir
        )

    def page_path(self, title: str) -> Path:
        return self.output_dir / sanitize_filename(title)

    # ------------------------------------------------------------------
    # Title index
    # ------------------------------------------------------------------

    def _index_path(self) -> Path:
        return self.output_dir / INDEX_NAME

    def _load_index(self) -> dict[str, str]:
        path = self._index_path()
        if not path.exists():
            return {}
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)

    def _save_index(self, index: dict[str, str]) -> None:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.output_dir), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(index, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, self._index_path())
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Page operations
    # ------------------------------------------------------------------

    def read(self, title: str) -> str:
        try:
            return self.page_path(title).read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NotFoundError(title) from None

    def write(self, title: str, text: str, summary: str, bot: bool) -> None:
        path = self.page_path(title)
        with self._lock:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
            index = self._load_index()
            if index.get(path.name) != title:
                index[path.name] = title
                self._save_index(index)
        logger.info(
            "Offline write succeeded: %s -> %s (bot=%s, summary=%s)",
            title,
            path,
            bot,
            summary,
        )

    def remove(self, title: str, reason: str = "") -> None:
        path = self.page_path(title)
        with self._lock:
            path.unlink(missing_ok=True)
            index = self._load_index()
            if index.pop(path.name, None) is not None:
                self._save_index(index)
        logger.info(
            "Offline delete succeeded: %s -> %s (reason=%s)",
            title,
            path,
            reason.strip(),
        )

    def list_titles(self, prefix: str) -> list[str]:
        """Titles of existing page files that start with *prefix*.

        Only indexed files are listed; unindexed ``.md`` files are logged.
        """
        with self._lock:
            index = self._load_index()
        unindexed = sorted(
            path.name
            for path in self.output_dir.glob("*" + PAGE_SUFFIX)
            if path.name not in index
        )
        if unindexed:
            logger.warning(
                "Not listing %d page file(s) missing from %s: %s",
                len(unindexed),
                self._index_path(),
                ", ".join(unindexed),
            )
        return sorted(
            title
            for name, title in index.items()
            if title.startswith(prefix) and (self.output_dir / name).exists()
        )

    def close(self) -> None:
        pass
