"""Registry to wiki reconciliation.

Every pass is a full reconciliation: change notifications only decide
*when* a pass runs, never *what* it touches.  Pages are only maintained
once an editor has created them; the engine never creates a main page.

Modules:

- ``versions``     -- semantic version parsing and latest/stable/unstable
  resolution.
- ``titles``       -- managed title parsing and the per-pass wiki scan.
- ``updater``      -- ``GatedUpdater``: main page and subpage updates.
- ``summary``      -- the version summary wikitable.
- ``engine``       -- ``SyncEngine``: one full pass.
- ``orchestrator`` -- ``Orchestrator``: debounced scheduling of passes.
- ``models``       -- ``PageAction``, ``PageResult``, ``SyncReport``.

Usage example
-------------
::

    from vpm_wiki_sync.registry import RegistryClient
    from vpm_wiki_sync.sync import SyncEngine
    from vpm_wiki_sync.wiki import OfflineWikiStore, WikiGateway

    engine = SyncEngine(
        registry=RegistryClient("https://vpmm.dev"),
        gateway=WikiGateway(OfflineWikiStore("./wiki-output")),
    )
    report = engine.run()
    print(report.summary())
"""

from .engine import SyncEngine
from .models import PageAction, PageResult, SyncReport
from .orchestrator import Orchestrator, PendingDeadline
from .summary import build_summaries, render_summary_table
from .titles import PageKind, ParsedTitle, WikiScan, parse_page_title, scan_pages
from .updater import GatedUpdater, escape_wiki
from .versions import (
    VersionTrio,
    parse_strict_version,
    parse_version,
    resolve_trio,
)

__all__ = [
    "GatedUpdater",
    "Orchestrator",
    "PageAction",
    "PageKind",
    "PageResult",
    "ParsedTitle",
    "PendingDeadline",
    "SyncEngine",
    "SyncReport",
    "VersionTrio",
    "WikiScan",
    "build_summaries",
    "escape_wiki",
    "parse_page_title",
    "parse_strict_version",
    "parse_version",
    "render_summary_table",
    "resolve_trio",
    "scan_pages",
]
