"""Gated page updates for one package.

Main pages (``Latest_version``, ``Latest_stable_version``,
``Latest_unstable_version`` and specific version pages) are created by
editors, never by this module: when a main page is absent its update is a
successful no-op.  Once a main page exists its content is kept equal to
the resolved version and the metadata subpages beneath it are reconciled:

- ``Description``, ``DisplayName``, ``License``, ``VPM`` (listing URL)
- ``Author_1`` .. ``Author_4``; slots no longer backed by an author are
  deleted, which is the only deletion the engine performs.

Every write goes through ``WikiGateway.edit_page`` and is therefore a no-op
when the trimmed content is already current.  A wiki error on one page
becomes a ``FAILED`` result for that page; its siblings are still processed.
"""

from __future__ import annotations

import logging

from ..errors import InvalidVersionError, NotFoundError, WikiSyncError
from ..registry.models import MAX_AUTHORS, Package
from ..wiki.gateway import WikiGateway
from .models import PageAction, PageResult
from .titles import DEFAULT_PREFIX
from .versions import parse_strict_version

logger = logging.getLogger(__name__)

LATEST_VERSION = "Latest_version"
LATEST_STABLE_VERSION = "Latest_stable_version"
LATEST_UNSTABLE_VERSION = "Latest_unstable_version"

AUTHOR_REMOVED_REASON = "Author removed from package"


def escape_wiki(text: str) -> str:
    """Escape characters that would break template or table markup."""
    return text.replace("|", "{{!}}").replace("=", "{{=}}")


class GatedUpdater:
    """Reconcile the pages of one package at a time.

    Args:
        gateway: Wiki gateway used for every read and write.
        prefix: Managed title prefix (``Template:VPM/``).
    """

    def __init__(self, gateway: WikiGateway, prefix: str = DEFAULT_PREFIX) -> None:
        self.gateway = gateway
        self.prefix = prefix

    def title(self, package: str, *segments: str) -> str:
        return self.prefix + "/".join((package, *segments))

    # ------------------------------------------------------------------
    # Single page helpers
    # ------------------------------------------------------------------

    def _write(self, title: str, text: str) -> PageResult:
        try:
            changed = self.gateway.edit_page(title, text, bot=True)
        except WikiSyncError as exc:
            logger.error("Failed to update %s: %s", title, exc)
            return PageResult(title=title, action=PageAction.FAILED, error=str(exc))
        return PageResult(
            title=title,
            action=PageAction.UPDATED if changed else PageAction.UNCHANGED,
        )

    def _delete_if_present(self, title: str, reason: str) -> PageResult | None:
        try:
            if not self.gateway.exists(title):
                return None
            self.gateway.delete_page(title, reason)
        except WikiSyncError as exc:
            logger.error("Failed to delete %s: %s", title, exc)
            return PageResult(title=title, action=PageAction.FAILED, error=str(exc))
        logger.info("Deleted stale page %s", title)
        return PageResult(title=title, action=PageAction.DELETED, error=reason)

    # ------------------------------------------------------------------
    # Subpages
    # ------------------------------------------------------------------

    def update_version_subpages(
        self, package: str, version_path: str, version: Package
    ) -> list[PageResult]:
        """Reconcile the metadata subpages under ``<package>/<version_path>``."""
        results = [
            self._write(
                self.title(package, version_path, "Description"),
                escape_wiki(version.description or ""),
            ),
            self._write(
                self.title(package, version_path, "DisplayName"),
                escape_wiki(version.display_name or ""),
            ),
            self._write(
                self.title(package, version_path, "License"),
                escape_wiki(version.license or ""),
            ),
            self._write(
                self.title(package, version_path, "VPM"),
                escape_wiki(version.listing_url),
            ),
        ]

        authors = version.authors
        for slot, author in enumerate(authors, start=1):
            if author:
                results.append(
                    self._write(
                        self.title(package, version_path, f"Author_{slot}"),
                        escape_wiki(author),
                    )
                )
        for slot in range(len(authors) + 1, MAX_AUTHORS + 1):
            deleted = self._delete_if_present(
                self.title(package, version_path, f"Author_{slot}"),
                AUTHOR_REMOVED_REASON,
            )
            if deleted is not None:
                results.append(deleted)
        return results

    # ------------------------------------------------------------------
    # Latest_* pages
    # ------------------------------------------------------------------

    def _update_latest(self, version_path: str, version: Package) -> list[PageResult]:
        title = self.title(version.name, version_path)
        # Gate: only pages an editor already created are maintained.
        try:
            present = self.gateway.exists(title)
        except WikiSyncError as exc:
            logger.error("Failed to check %s: %s", title, exc)
            return [PageResult(title=title, action=PageAction.FAILED, error=str(exc))]
        if not present:
            logger.debug("Gated: %s does not exist", title)
            return []
        main = self._write(title, escape_wiki(version.version))
        if main.action is PageAction.FAILED:
            return [main]
        return [main, *self.update_version_subpages(version.name, version_path, version)]

    def update_latest_version_pages(self, version: Package) -> list[PageResult]:
        return self._update_latest(LATEST_VERSION, version)

    def update_latest_stable_version_pages(self, version: Package) -> list[PageResult]:
        return self._update_latest(LATEST_STABLE_VERSION, version)

    def update_latest_unstable_version_pages(self, version: Package) -> list[PageResult]:
        return self._update_latest(LATEST_UNSTABLE_VERSION, version)

    # ------------------------------------------------------------------
    # Specific version pages
    # ------------------------------------------------------------------

    def process_specific_version_page(
        self, package: str, tag: str, known: dict[str, Package]
    ) -> list[PageResult]:
        """Reconcile the subpages of an existing ``<package>/<tag>`` page.

        The version is read from the page content rather than the title, so
        editors may name version pages freely.

        Args:
            package: Package name.
            tag: Version segment of the page title.
            known: Registry records of this package keyed by version string.
        """
        title = self.title(package, tag)
        try:
            content = self.gateway.get_content(title)
        except NotFoundError:
            return []
        except WikiSyncError as exc:
            logger.error("Failed to read %s: %s", title, exc)
            return [PageResult(title=title, action=PageAction.FAILED, error=str(exc))]
        try:
            version = parse_strict_version(content)
        except InvalidVersionError:
            logger.warning(
                "Non-semver version content on page %s: %r",
                title,
                content.strip(),
            )
            return [
                PageResult(
                    title=title,
                    action=PageAction.SKIPPED,
                    error="content is not a semantic version",
                )
            ]

        record = known.get(str(version))
        if record is None:
            logger.info(
                "Version %s from %s not found in registry for %s",
                version,
                title,
                package,
            )
            return [
                PageResult(
                    title=title,
                    action=PageAction.SKIPPED,
                    error=f"version {version} unknown to registry",
                )
            ]
        return self.update_version_subpages(package, tag, record)
