"""Full reconciliation pass from the registry onto the wiki.

The ``SyncEngine`` runs one pass end to end:

1. Lists every package version the registry knows.
2. Groups the records by package and resolves latest / stable / unstable.
3. Walks the managed wiki pages once.
4. For every package named by either side, updates the existing
   ``Latest_*`` pages and every existing version page.
5. Rewrites the version summary page.

Error handling is per package: one failure does not abort the pass.  A
pass whose registry listing or wiki scan fails is aborted as a whole and
reported as such; nothing is written in that case.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..registry.client import RegistryClient
from ..registry.models import Package
from ..wiki.gateway import WikiGateway
from .models import PageAction, PageResult, SyncReport
from .summary import render_summary_table
from .titles import DEFAULT_PREFIX, scan_pages
from .updater import GatedUpdater
from .versions import VersionTrio, group_by_name, known_versions, resolve_all

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_PAGE = "Template:VPM/Version summary"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncEngine:
    """Run full sync passes against one registry and one wiki.

    Args:
        registry: Registry API client.
        gateway: Wiki gateway (live or offline).
        prefix: Managed title prefix.
        summary_page: Title of the version summary page.
    """

    def __init__(
        self,
        registry: RegistryClient,
        gateway: WikiGateway,
        prefix: str = DEFAULT_PREFIX,
        summary_page: str = DEFAULT_SUMMARY_PAGE,
    ) -> None:
        self.registry = registry
        self.gateway = gateway
        self.prefix = prefix
        self.summary_page = summary_page
        self.updater = GatedUpdater(gateway, prefix)

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(self) -> SyncReport:
        """Execute one full pass and return its report."""
        started_at = _now()
        edits_before = self.gateway.edits
        deletes_before = self.gateway.deletes
        logger.info("Starting full sync pass")

        try:
            packages = self.registry.list_packages()
        except Exception as exc:
            logger.error("Failed to list registry packages: %s", exc)
            return self._aborted(started_at, f"registry listing failed: {exc}")

        by_name = group_by_name(packages)
        trios = resolve_all(by_name)

        try:
            scan = scan_pages(self.gateway, self.prefix)
        except Exception as exc:
            logger.error("Failed to scan wiki pages: %s", exc)
            return self._aborted(started_at, f"wiki scan failed: {exc}")

        names = sorted(set(by_name) | set(scan.pages), key=str.lower)
        results: list[PageResult] = []
        for name in names:
            try:
                results.extend(
                    self._sync_package(
                        name,
                        trios.get(name, VersionTrio()),
                        by_name.get(name, []),
                        scan.known_tags.get(name, []),
                    )
                )
            except Exception as exc:
                logger.error("Error syncing package %s: %s", name, exc)
                results.append(
                    PageResult(
                        title=self.prefix + name,
                        action=PageAction.FAILED,
                        error=str(exc),
                    )
                )

        results.append(self._write_summary(scan.known_tags, by_name))

        report = SyncReport(
            started_at=started_at,
            completed_at=_now(),
            packages=len(names),
            results=results,
            edits=self.gateway.edits - edits_before,
            deletes=self.gateway.deletes - deletes_before,
        )
        logger.info(
            "Sync pass complete: %d updated, %d unchanged, %d deleted, "
            "%d skipped, %d errors (%d wiki edits, %d wiki deletes)",
            len(report.updated),
            len(report.unchanged),
            len(report.deleted),
            len(report.skipped),
            len(report.errors),
            report.edits,
            report.deletes,
        )
        return report

    # ------------------------------------------------------------------
    # Per-package reconciliation
    # ------------------------------------------------------------------

    def _sync_package(
        self,
        name: str,
        trio: VersionTrio,
        versions: list[Package],
        wiki_tags: list[str],
    ) -> list[PageResult]:
        results: list[PageResult] = []
        if trio.latest is not None:
            results.extend(self.updater.update_latest_version_pages(trio.latest))
        if trio.stable is not None:
            results.extend(
                self.updater.update_latest_stable_version_pages(trio.stable)
            )
        if trio.unstable is not None:
            results.extend(
                self.updater.update_latest_unstable_version_pages(trio.unstable)
            )

        known = known_versions(versions)
        for tag in wiki_tags:
            results.extend(
                self.updater.process_specific_version_page(name, tag, known)
            )
        return results

    def _write_summary(self, known_tags, by_name) -> PageResult:
        text = render_summary_table(known_tags, by_name, self.prefix)
        try:
            changed = self.gateway.edit_page(self.summary_page, text, bot=True)
        except Exception as exc:
            logger.error("Failed to write %s: %s", self.summary_page, exc)
            return PageResult(
                title=self.summary_page, action=PageAction.FAILED, error=str(exc)
            )
        return PageResult(
            title=self.summary_page,
            action=PageAction.UPDATED if changed else PageAction.UNCHANGED,
        )

    def _aborted(self, started_at: str, reason: str) -> SyncReport:
        return SyncReport(
            started_at=started_at,
            completed_at=_now(),
            aborted=True,
            abort_reason=reason,
        )
