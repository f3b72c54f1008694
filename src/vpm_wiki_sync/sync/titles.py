"""Parsing of managed page titles and the per-pass wiki scan.

Managed titles look like ``<prefix><package>/<segment>[/<subpage>]``::

    Template:VPM/Foo/Latest_version              -> latest_version
    Template:VPM/Foo/Latest_stable_version/License -> latest_stable_version_subpage
    Template:VPM/Foo/2.1.0                        -> version
    Template:VPM/Foo/2.1.0/Author_1               -> version_subpage
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..wiki.gateway import WikiGateway

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "Template:VPM/"


class PageKind(str, Enum):
    LATEST_VERSION = "latest_version"
    LATEST_VERSION_SUBPAGE = "latest_version_subpage"
    LATEST_STABLE_VERSION = "latest_stable_version"
    LATEST_STABLE_VERSION_SUBPAGE = "latest_stable_version_subpage"
    LATEST_UNSTABLE_VERSION = "latest_unstable_version"
    LATEST_UNSTABLE_VERSION_SUBPAGE = "latest_unstable_version_subpage"
    VERSION = "version"
    VERSION_SUBPAGE = "version_subpage"


# Normalized segment -> (main kind, subpage kind)
_LATEST_SEGMENTS = {
    "latest version": (
        PageKind.LATEST_VERSION,
        PageKind.LATEST_VERSION_SUBPAGE,
    ),
    "latest stable version": (
        PageKind.LATEST_STABLE_VERSION,
        PageKind.LATEST_STABLE_VERSION_SUBPAGE,
    ),
    "latest unstable version": (
        PageKind.LATEST_UNSTABLE_VERSION,
        PageKind.LATEST_UNSTABLE_VERSION_SUBPAGE,
    ),
}


class ParsedTitle(NamedTuple):
    package: str
    kind: PageKind | None
    tag: str


UNMANAGED = ParsedTitle("", None, "")


def parse_page_title(title: str, prefix: str = DEFAULT_PREFIX) -> ParsedTitle:
    """Classify a page title.

    For ``latest_*`` main pages the tag is empty; for their subpages it is
    the subpage name.  For version pages the tag is the version segment.
    Titles outside *prefix* or without a segment after the package name
    return ``UNMANAGED``.
    """
    if not title.startswith(prefix):
        return UNMANAGED
    parts = title.removeprefix(prefix).split("/")
    if len(parts) < 2 or not parts[0]:
        return UNMANAGED

    package, segment = parts[0], parts[1]
    is_subpage = len(parts) > 2
    kinds = _LATEST_SEGMENTS.get(segment.replace("_", " ").strip().lower())
    if kinds is not None:
        main_kind, sub_kind = kinds
        if is_subpage:
            return ParsedTitle(package, sub_kind, parts[2])
        return ParsedTitle(package, main_kind, "")
    if is_subpage:
        return ParsedTitle(package, PageKind.VERSION_SUBPAGE, segment)
    return ParsedTitle(package, PageKind.VERSION, segment)


@dataclass
class WikiScan:
    """Result of one walk over the managed pages."""

    pages: dict[str, list[str]] = field(default_factory=dict)
    known_tags: dict[str, list[str]] = field(default_factory=dict)


def index_titles(titles: list[str], prefix: str = DEFAULT_PREFIX) -> WikiScan:
    """Build a ``WikiScan`` from a page listing."""
    scan = WikiScan()
    for title in titles:
        parsed = parse_page_title(title, prefix)
        if not parsed.package:
            continue
        scan.pages.setdefault(parsed.package, []).append(title)
        if parsed.kind is PageKind.VERSION and parsed.tag.strip():
            tags = scan.known_tags.setdefault(parsed.package, [])
            if parsed.tag not in tags:
                tags.append(parsed.tag)
    return scan


def scan_pages(gateway: WikiGateway, prefix: str = DEFAULT_PREFIX) -> WikiScan:
    """List every page under *prefix* once and index it."""
    titles = gateway.list_pages(prefix)
    scan = index_titles(titles, prefix)
    logger.info(
        "Scanned %d managed pages across %d packages",
        len(titles),
        len(scan.pages),
    )
    return scan
