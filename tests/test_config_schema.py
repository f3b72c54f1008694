"""Tests for the YAML config schema, build_config() and to_fallbacks()."""

import pytest
from pydantic import ValidationError

from vpm_wiki_sync.config import load_config
from vpm_wiki_sync.config_schema import (
    LoggingConfig,
    RegistryConfig,
    SyncConfig,
    UnifiedConfig,
    WikiConfig,
    build_config,
    to_fallbacks,
)

# ---------------------------------------------------------------------------
# UnifiedConfig tests
# ---------------------------------------------------------------------------


class TestUnifiedConfig:
    """Tests for the top-level UnifiedConfig model."""

    def test_defaults(self):
        config = UnifiedConfig()
        assert config.registry.url is None
        assert config.registry.packages_path == "/packages"
        assert config.wiki.username is None
        assert config.sync.debounce_seconds == 30.0
        assert config.logging.level == "INFO"
        assert config.logging.format == "text"

    def test_unknown_sections_ignored(self):
        config = UnifiedConfig(
            **{"registry": {"url": "https://vpmm.dev"}, "future": {"key": 1}}
        )
        assert config.registry.url == "https://vpmm.dev"
        assert not hasattr(config, "future")

    def test_frozen_model_prevents_mutation(self):
        config = UnifiedConfig()
        with pytest.raises(ValidationError):
            config.wiki = WikiConfig(url="https://changed.example.com")


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class TestSectionModels:
    @pytest.mark.parametrize("window", [0.0, 0.05, 3600.5])
    def test_debounce_out_of_range_rejected(self, window):
        with pytest.raises(ValidationError):
            SyncConfig(debounce_seconds=window)

    def test_debounce_bounds_accepted(self):
        assert SyncConfig(debounce_seconds=0.1).debounce_seconds == 0.1
        assert SyncConfig(debounce_seconds=3600).debounce_seconds == 3600

    def test_request_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            RegistryConfig(request_timeout=0)

    @pytest.mark.parametrize("fmt", ["text", "json"])
    def test_log_format_accepted(self, fmt):
        assert LoggingConfig(format=fmt).format == fmt

    def test_log_format_rejects_unknown(self):
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")

    def test_wiki_section_frozen(self):
        wiki = WikiConfig(username="SyncBot")
        with pytest.raises(ValidationError):
            wiki.username = "Other"


# ---------------------------------------------------------------------------
# build_config()
# ---------------------------------------------------------------------------


class TestBuildConfig:
    def test_empty_dict_gives_defaults(self):
        assert build_config({}) == UnifiedConfig()

    def test_nested_sections(self):
        unified = build_config(
            {
                "registry": {"url": "https://registry.example.com"},
                "wiki": {
                    "url": "https://wiki.example.com/api.php",
                    "username": "SyncBot",
                    "password": "secret",
                    "page_prefix": "Template:Pkg/",
                },
                "sync": {"debounce_seconds": 10},
                "logging": {"level": "DEBUG", "file": "/tmp/sync.log"},
            }
        )
        assert unified.registry.url == "https://registry.example.com"
        assert unified.wiki.page_prefix == "Template:Pkg/"
        assert unified.sync.debounce_seconds == 10.0
        assert unified.logging.file == "/tmp/sync.log"

    def test_invalid_section_raises(self):
        with pytest.raises(ValidationError):
            build_config({"sync": {"debounce_seconds": "later"}})


# ---------------------------------------------------------------------------
# to_fallbacks()
# ---------------------------------------------------------------------------


class TestToFallbacks:
    def test_unset_values_omitted(self):
        flat = to_fallbacks(UnifiedConfig())
        assert "registry_url" not in flat
        assert "username" not in flat
        assert "page_prefix" not in flat
        assert flat["packages_path"] == "/packages"
        assert flat["debounce_seconds"] == 30.0

    def test_flattens_sections(self):
        unified = UnifiedConfig(
            registry=RegistryConfig(
                url="https://registry.example.com", request_timeout=5
            ),
            wiki=WikiConfig(
                url="https://wiki.example.com/api.php",
                username="SyncBot",
                password="secret",
                auth_header="X-Gateway-Key",
                auth_value="k",
                offline_dir="/tmp/out",
                summary_page="Template:Pkg/Summary",
            ),
            sync=SyncConfig(debounce_seconds=12, debug=True),
        )
        flat = to_fallbacks(unified)
        assert flat == {
            "registry_url": "https://registry.example.com",
            "packages_path": "/packages",
            "request_timeout": 5.0,
            "wiki_url": "https://wiki.example.com/api.php",
            "username": "SyncBot",
            "password": "secret",
            "auth_header": "X-Gateway-Key",
            "auth_value": "k",
            "offline_dir": "/tmp/out",
            "summary_page": "Template:Pkg/Summary",
            "debounce_seconds": 12.0,
            "debug": True,
        }

    def test_feeds_load_config(self):
        unified = build_config(
            {
                "wiki": {
                    "url": "https://wiki.example.com/api.php",
                    "username": "SyncBot",
                    "password": "secret",
                },
                "sync": {"debounce_seconds": 7},
            }
        )
        config = load_config(yaml_fallbacks=to_fallbacks(unified))
        assert not config.offline
        assert config.wiki_url == "https://wiki.example.com/api.php"
        assert config.debounce_seconds == 7.0
