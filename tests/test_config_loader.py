"""Tests for vpm_wiki_sync.config_loader: YAML discovery, includes and merging."""

import textwrap

import pytest
import yaml

from vpm_wiki_sync.config_loader import (
    _interpolate_recursive,
    _load_yaml_with_includes,
    discover_config_files,
    interpolate_env_vars,
    load_hierarchical_config,
)

# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestInterpolateEnvVars:
    """Tests for ${VAR} and ${VAR:-default} substitution."""

    def test_set_variable_substituted(self, monkeypatch):
        monkeypatch.setenv("WIKI_HOST", "wiki.local")
        assert interpolate_env_vars("https://${WIKI_HOST}/api.php") == (
            "https://wiki.local/api.php"
        )

    def test_unset_variable_becomes_empty(self, monkeypatch):
        monkeypatch.delenv("VPM_SYNC_TEST_UNSET", raising=False)
        assert interpolate_env_vars("${VPM_SYNC_TEST_UNSET}") == ""

    def test_default_used_when_unset_or_empty(self, monkeypatch):
        monkeypatch.delenv("VPM_SYNC_TEST_UNSET", raising=False)
        monkeypatch.setenv("VPM_SYNC_TEST_EMPTY", "")
        assert interpolate_env_vars("${VPM_SYNC_TEST_UNSET:-30}") == "30"
        assert interpolate_env_vars("${VPM_SYNC_TEST_EMPTY:-fallback}") == "fallback"

    def test_set_variable_beats_default(self, monkeypatch):
        monkeypatch.setenv("SYNC_WINDOW", "5")
        assert interpolate_env_vars("${SYNC_WINDOW:-30}") == "5"

    def test_recursive_over_dicts_and_lists(self, monkeypatch):
        monkeypatch.setenv("BOT_PASSWORD", "s3cret")
        data = {
            "wiki": {"password": "${BOT_PASSWORD}", "retries": 2},
            "tags": ["${BOT_PASSWORD}", 7, True],
        }
        assert _interpolate_recursive(data) == {
            "wiki": {"password": "s3cret", "retries": 2},
            "tags": ["s3cret", 7, True],
        }

    def test_unclosed_reference_left_alone(self):
        assert interpolate_env_vars("${REGISTRY") == "${REGISTRY"


# -------------------------------------------------------------------------
# YAML !include support
# -------------------------------------------------------------------------


class TestIncludeDirective:
    """Tests for !include handling in ConfigLoader."""

    def test_include_resolves_relative_to_file(self, tmp_path):
        (tmp_path / "wiki.yml").write_text("username: SyncBot\n")
        main = tmp_path / "config.yml"
        main.write_text("wiki: !include wiki.yml\n")

        assert _load_yaml_with_includes(main) == {"wiki": {"username": "SyncBot"}}

    def test_missing_include_raises(self, tmp_path):
        main = tmp_path / "config.yml"
        main.write_text("wiki: !include missing.yml\n")

        with pytest.raises(FileNotFoundError, match="missing.yml"):
            _load_yaml_with_includes(main)

    def test_include_cycle_raises(self, tmp_path):
        (tmp_path / "a.yml").write_text("x: !include b.yml\n")
        (tmp_path / "b.yml").write_text("y: !include a.yml\n")

        with pytest.raises(ValueError, match="Circular include"):
            _load_yaml_with_includes(tmp_path / "a.yml")

    def test_includes_nest(self, tmp_path):
        (tmp_path / "c.yml").write_text("val: deep\n")
        (tmp_path / "b.yml").write_text("inner: !include c.yml\n")
        (tmp_path / "a.yml").write_text("outer: !include b.yml\n")

        assert _load_yaml_with_includes(tmp_path / "a.yml") == {
            "outer": {"inner": {"val": "deep"}}
        }

    def test_plain_safe_load_rejects_include_tag(self):
        with pytest.raises(yaml.constructor.ConstructorError):
            yaml.safe_load("wiki: !include wiki.yml\n")


# -------------------------------------------------------------------------
# Discovery
# -------------------------------------------------------------------------


class TestDiscoverConfigFiles:
    """Tests for discover_config_files() search order."""

    def test_env_var_takes_highest_precedence(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        explicit = tmp_path / "custom.yml"
        explicit.write_text("sync: {}\n")
        project = tmp_path / ".wiki_sync" / "config.yml"
        project.parent.mkdir()
        project.write_text("sync: {}\n")
        monkeypatch.setenv("WIKI_SYNC_CONFIG", str(explicit))

        assert discover_config_files() == [explicit.resolve(), project]

    def test_project_yml_before_yaml_before_global(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        home = tmp_path / "home"
        monkeypatch.setenv("HOME", str(home))

        yml = tmp_path / ".wiki_sync" / "config.yml"
        yaml_file = tmp_path / ".wiki_sync" / "config.yaml"
        global_file = home / ".config" / "wiki_sync" / "config.yml"
        for path in (yml, yaml_file, global_file):
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("{}\n")

        assert discover_config_files() == [yml, yaml_file, global_file]

    def test_nonexistent_candidates_skipped(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("WIKI_SYNC_CONFIG", str(tmp_path / "absent.yml"))
        assert discover_config_files() == []


# -------------------------------------------------------------------------
# Merge
# -------------------------------------------------------------------------


class TestLoadHierarchicalConfig:
    """Tests for load_hierarchical_config() merge and interpolation."""

    def test_zero_config_returns_empty_dict(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_hierarchical_config() == {}

    def test_project_overrides_global_at_section_level(
        self, tmp_path, monkeypatch
    ):
        monkeypatch.chdir(tmp_path)
        home = tmp_path / "home"
        monkeypatch.setenv("HOME", str(home))

        global_file = home / ".config" / "wiki_sync" / "config.yml"
        global_file.parent.mkdir(parents=True)
        global_file.write_text(
            textwrap.dedent("""\
            wiki:
              url: https://global.example.com/api.php
              username: GlobalBot
            sync:
              debounce_seconds: 60
            """)
        )
        project = tmp_path / ".wiki_sync" / "config.yml"
        project.parent.mkdir()
        project.write_text(
            textwrap.dedent("""\
            wiki:
              url: https://project.example.com/api.php
            """)
        )

        result = load_hierarchical_config()

        # Sections are replaced whole, not deep-merged.
        assert result["wiki"] == {"url": "https://project.example.com/api.php"}
        assert result["sync"]["debounce_seconds"] == 60

    def test_env_var_interpolation_after_merge(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("BOT_PASSWORD", "s3cret")
        project = tmp_path / ".wiki_sync" / "config.yml"
        project.parent.mkdir()
        project.write_text('wiki:\n  password: "${BOT_PASSWORD}"\n')

        assert load_hierarchical_config()["wiki"]["password"] == "s3cret"

    def test_list_root_ignored(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        bad = tmp_path / "bad.yml"
        bad.write_text("- item1\n- item2\n")
        monkeypatch.setenv("WIKI_SYNC_CONFIG", str(bad))

        assert load_hierarchical_config() == {}

    def test_invalid_yaml_raises(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        bad = tmp_path / "bad.yml"
        bad.write_text("wiki: [unclosed\n")
        monkeypatch.setenv("WIKI_SYNC_CONFIG", str(bad))

        with pytest.raises(ValueError, match="Cannot load config file"):
            load_hierarchical_config()
