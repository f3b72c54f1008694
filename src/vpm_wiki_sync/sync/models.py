"""Pydantic models describing the outcome of a sync pass.

- ``PageAction``: what happened to one page.
- ``PageResult``: outcome for one page.
- ``SyncReport``: aggregate results for a full pass.

All models are frozen (immutable).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class PageAction(str, Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    DELETED = "deleted"
    SKIPPED = "skipped"
    FAILED = "failed"


class PageResult(BaseModel):
    """Outcome for one page.

    Attributes:
        title: Wiki page title.
        action: What the engine did.
        error: Error or skip reason, if any.
    """

    title: str
    action: PageAction
    error: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for one full sync pass.

    Attributes:
        started_at: ISO 8601 timestamp when the pass started.
        completed_at: ISO 8601 timestamp when the pass ended.
        packages: Number of package names reconciled.
        results: Per page outcomes.
        edits: Page writes the wiki gateway issued during the pass.
        deletes: Page deletions the wiki gateway issued during the pass.
        aborted: True when the pass stopped before reconciling anything.
        abort_reason: Why the pass was aborted.
    """

    started_at: str
    completed_at: str | None = None
    packages: int = 0
    results: list[PageResult] = []
    edits: int = 0
    deletes: int = 0
    aborted: bool = False
    abort_reason: str | None = None

    model_config = {"frozen": True}

    def _with(self, action: PageAction) -> list[PageResult]:
        return [r for r in self.results if r.action == action]

    @property
    def updated(self) -> list[PageResult]:
        return self._with(PageAction.UPDATED)

    @property
    def unchanged(self) -> list[PageResult]:
        return self._with(PageAction.UNCHANGED)

    @property
    def deleted(self) -> list[PageResult]:
        return self._with(PageAction.DELETED)

    @property
    def skipped(self) -> list[PageResult]:
        return self._with(PageAction.SKIPPED)

    @property
    def errors(self) -> list[PageResult]:
        return self._with(PageAction.FAILED)

    def summary(self) -> str:
        """One line per counter, suitable for logs and ``--once`` output."""
        if self.aborted:
            return f"Sync pass aborted: {self.abort_reason}"
        lines = [
            f"Sync pass over {self.packages} packages",
            f"  Updated:   {len(self.updated)}",
            f"  Unchanged: {len(self.unchanged)}",
            f"  Deleted:   {len(self.deleted)}",
            f"  Skipped:   {len(self.skipped)}",
            f"  Errors:    {len(self.errors)}",
            f"  Wiki calls: {self.edits} edits, {self.deletes} deletes",
        ]
        for result in self.errors:
            lines.append(f"    {result.title}: {result.error}")
        return "\n".join(lines)
