"""Pydantic models for registry payloads.

- ``Package``: one (name, version) record from the package list.
- ``ChangeNotification``: one package event from the change stream.

All models are frozen; unknown wire fields are ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

MAX_AUTHORS = 4

PACKAGE_EVENTS = frozenset(
    {"package.added", "package.updated", "package.removed"}
)


class PackageAuthor(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str | None = None


class Package(BaseModel):
    """Snapshot of one package version as published by the registry.

    Several ``Package`` records share a ``name``; together they form that
    package's version set.
    """

    model_config = ConfigDict(
        frozen=True, extra="ignore", populate_by_name=True
    )

    name: str
    version: str
    display_name: str | None = Field(default=None, alias="displayName")
    description: str | None = None
    license: str | None = None
    urls: list[str] | None = None
    author: PackageAuthor | None = None

    @property
    def listing_url(self) -> str:
        """First non-blank entry of ``urls``, or ``""``."""
        for url in self.urls or []:
            if url.strip():
                return url
        return ""

    @property
    def authors(self) -> list[str]:
        """Comma separated author names, trimmed and capped at four.

        Blank names keep their position so ``Author_N`` numbering follows
        the source list.
        """
        raw = self.author.name if self.author else None
        if not raw or not raw.strip():
            return []
        return [part.strip() for part in raw.split(",")][:MAX_AUTHORS]


class ChangeNotification(BaseModel):
    """A registry change event; only ever used as a trigger for a full pass."""

    model_config = ConfigDict(frozen=True)

    event: str
    package: str
    event_id: str | None = None
