"""Version summary table rendered onto a single wiki page."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field

from ..registry.models import Package
from .titles import DEFAULT_PREFIX
from .updater import escape_wiki
from .versions import parse_version, resolve_trio


@dataclass
class PackageSummary:
    name: str
    display_name: str
    latest: Package | None = None
    stable: Package | None = None
    unstable: Package | None = None
    wiki_versions: list[str] = field(default_factory=list)


def _compare_versions(left: str, right: str) -> int:
    a, b = parse_version(left), parse_version(right)
    if a is None or b is None:
        return (left > right) - (left < right)
    return a.compare(b)


def build_summaries(
    known_tags: dict[str, list[str]],
    by_name: dict[str, list[Package]],
) -> list[PackageSummary]:
    """One summary per package named by the registry or the wiki.

    Rows are ordered case-insensitively by name.  Wiki version tags are
    kept only when the registry knows that exact version string, and are
    ordered by semantic version (lexically when a tag does not parse).
    """
    names = sorted(set(by_name) | set(known_tags), key=str.lower)
    summaries = []
    for name in names:
        versions = by_name.get(name, [])
        display = name
        if versions and (versions[0].display_name or "").strip():
            display = versions[0].display_name
        trio = resolve_trio(versions)

        registry_versions = {v.version for v in versions}
        wiki_versions = sorted(
            (tag for tag in known_tags.get(name, []) if tag in registry_versions),
            key=functools.cmp_to_key(_compare_versions),
        )
        summaries.append(
            PackageSummary(
                name=name,
                display_name=display,
                latest=trio.latest,
                stable=trio.stable,
                unstable=trio.unstable,
                wiki_versions=wiki_versions,
            )
        )
    return summaries


def render_summary_table(
    known_tags: dict[str, list[str]],
    by_name: dict[str, list[Package]],
    prefix: str = DEFAULT_PREFIX,
) -> str:
    """Render the sortable wikitable listing every package's versions."""
    out = [
        '{| class="wikitable sortable"\n',
        "|-\n",
        "! Name\n",
        "! Display Name\n",
        "! Latest Version(s)\n",
    ]
    for summary in build_summaries(known_tags, by_name):
        name = escape_wiki(summary.name)
        out.append("|-\n")
        out.append(f"| {name}\n")
        out.append(f"| {escape_wiki(summary.display_name)}\n")
        out.append('| style="white-space: nowrap;" | \n')
        for label, record in (
            ("Latest version", summary.latest),
            ("Latest stable version", summary.stable),
            ("Latest unstable version", summary.unstable),
        ):
            if record is None:
                continue
            version = escape_wiki(record.version)
            out.append("\n")
            out.append(
                f"* [[{prefix}{name}/{label}|{label}]] "
                f"([[{prefix}{name}/{version}|{version}]])\n"
            )
        for tag in summary.wiki_versions:
            tag = escape_wiki(tag)
            out.append("\n")
            out.append(f"* [[{prefix}{name}/{tag}|{tag}]]\n")
    out.append("|}\n")
    return "".join(out)
