"""Tests for semantic version parsing and latest/stable/unstable resolution."""

import pytest

from vpm_wiki_sync.errors import InvalidVersionError
from vpm_wiki_sync.sync.versions import (
    group_by_name,
    known_versions,
    parse_strict_version,
    parse_version,
    resolve_all,
    resolve_trio,
)


def _versions(trio):
    return tuple(
        p.version if p is not None else None
        for p in (trio.latest, trio.stable, trio.unstable)
    )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def test_parse_version_accepts_v_prefix_and_short_forms():
    assert str(parse_version("v1.2.3")) == "1.2.3"
    assert str(parse_version(" 1.2 ")) == "1.2.0"
    assert str(parse_version("2")) == "2.0.0"


def test_parse_version_returns_none_for_garbage():
    assert parse_version("latest") is None
    assert parse_version("") is None


def test_parse_strict_version_trims_whitespace():
    assert str(parse_strict_version("  1.0.0-rc.1\n")) == "1.0.0-rc.1"


@pytest.mark.parametrize("text", ["1.0", "v1.0.0", "one", "", "1.0.0 beta"])
def test_parse_strict_version_rejects_non_semver(text):
    with pytest.raises(InvalidVersionError):
        parse_strict_version(text)


def test_invalid_version_error_is_value_error():
    with pytest.raises(ValueError):
        parse_strict_version("nope")


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def test_resolve_prerelease_is_latest_when_highest(make_package):
    """{1.0.0, 1.1.0, 2.0.0-beta.1}: the beta is latest and unstable."""
    packages = [
        make_package(version="1.0.0"),
        make_package(version="2.0.0-beta.1"),
        make_package(version="1.1.0"),
    ]
    assert _versions(resolve_trio(packages)) == (
        "2.0.0-beta.1",
        "1.1.0",
        "2.0.0-beta.1",
    )


def test_resolve_release_outranks_its_candidate(make_package):
    """{1.0.0, 1.0.0-rc.1}: the release wins latest and stable."""
    packages = [make_package(version="1.0.0-rc.1"), make_package(version="1.0.0")]
    assert _versions(resolve_trio(packages)) == ("1.0.0", "1.0.0", "1.0.0-rc.1")


def test_resolve_ignores_input_order(make_package):
    versions = ["0.9.0", "1.10.0", "1.2.0", "1.9.9"]
    forward = resolve_trio([make_package(version=v) for v in versions])
    backward = resolve_trio([make_package(version=v) for v in reversed(versions)])
    assert _versions(forward) == _versions(backward) == ("1.10.0", "1.10.0", None)


def test_resolve_skips_unparsable_versions(make_package):
    trio = resolve_trio(
        [make_package(version="banana"), make_package(version="0.1.0")]
    )
    assert _versions(trio) == ("0.1.0", "0.1.0", None)


def test_resolve_empty_set():
    assert _versions(resolve_trio([])) == (None, None, None)


def test_resolve_only_prereleases(make_package):
    trio = resolve_trio(
        [make_package(version="1.0.0-alpha"), make_package(version="1.0.0-beta")]
    )
    assert _versions(trio) == ("1.0.0-beta", None, "1.0.0-beta")


def test_group_and_resolve_all(make_package):
    packages = [
        make_package(name="a", version="1.0.0"),
        make_package(name="b", version="0.1.0-pre"),
        make_package(name="a", version="1.1.0"),
    ]
    by_name = group_by_name(packages)
    assert sorted(by_name) == ["a", "b"]
    assert [p.version for p in by_name["a"]] == ["1.0.0", "1.1.0"]

    trios = resolve_all(by_name)
    assert trios["a"].latest.version == "1.1.0"
    assert trios["b"].stable is None
    assert trios["b"].unstable.version == "0.1.0-pre"


def test_known_versions_indexes_normalized_form(make_package):
    tagged = make_package(version="v1.2.0")
    known = known_versions([tagged, make_package(version="garbage")])
    assert known["v1.2.0"] is tagged
    assert known["1.2.0"] is tagged
    assert "garbage" in known
