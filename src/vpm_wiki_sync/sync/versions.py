"""Latest / stable / unstable selection from an unordered version set.

"Stable" means no prerelease component (``1.2.0``), "unstable" means one
is present (``1.2.0-beta.1``).  Ordering always follows semantic-version
precedence, never the order the registry returned the records in.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

import semver

from ..errors import InvalidVersionError
from ..registry.models import Package

logger = logging.getLogger(__name__)


def parse_version(text: str) -> semver.Version | None:
    """Leniently parse *text*; ``None`` when it is not a usable version.

    Accepts a leading ``v`` and missing minor/patch parts (``v1.2``).
    """
    candidate = text.strip()
    if candidate[:1] in ("v", "V"):
        candidate = candidate[1:]
    try:
        return semver.Version.parse(candidate, optional_minor_and_patch=True)
    except (ValueError, TypeError):
        return None


def parse_strict_version(text: str) -> semver.Version:
    """Parse ``MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]`` exactly.

    Raises:
        InvalidVersionError: If *text* (after trimming) is not strict semver.
    """
    try:
        return semver.Version.parse(text.strip())
    except (ValueError, TypeError):
        raise InvalidVersionError(f"not a semantic version: {text.strip()!r}") from None


@dataclass(frozen=True)
class VersionTrio:
    latest: Package | None = None
    stable: Package | None = None
    unstable: Package | None = None


def resolve_trio(packages: Iterable[Package]) -> VersionTrio:
    """Pick the highest overall, stable and unstable version of one package.

    Records whose version does not parse are ignored.
    """
    best: dict[str, tuple[semver.Version, Package]] = {}

    def offer(slot: str, version: semver.Version, package: Package) -> None:
        current = best.get(slot)
        if current is None or version > current[0]:
            best[slot] = (version, package)

    for package in packages:
        version = parse_version(package.version)
        if version is None:
            logger.debug(
                "Ignoring unparsable version %r of %s",
                package.version,
                package.name,
            )
            continue
        offer("latest", version, package)
        offer("unstable" if version.prerelease else "stable", version, package)

    return VersionTrio(
        **{slot: package for slot, (_, package) in best.items()}
    )


def group_by_name(packages: Iterable[Package]) -> dict[str, list[Package]]:
    """Group package records into version sets keyed by package name."""
    result: dict[str, list[Package]] = defaultdict(list)
    for package in packages:
        result[package.name].append(package)
    return dict(result)


def resolve_all(by_name: dict[str, list[Package]]) -> dict[str, VersionTrio]:
    return {name: resolve_trio(versions) for name, versions in by_name.items()}


def known_versions(packages: Iterable[Package]) -> dict[str, Package]:
    """Map normalized version strings to records, for lookups by page content.

    Both the registry's literal string and its normalized form are keys, so
    ``v1.2.0`` on the registry matches ``1.2.0`` on a wiki page.
    """
    known: dict[str, Package] = {}
    for package in packages:
        known[package.version] = package
        version = parse_version(package.version)
        if version is not None:
            known.setdefault(str(version), package)
    return known
