"""Pydantic schema for the YAML configuration file.

The file has one section per concern::

    registry:
      url: https://vpmm.dev
      packages_path: /packages
    wiki:
      url: https://wiki.example.com/api.php
      username: SyncBot
      password: ${VRCWIKI_PASSWORD}
    sync:
      debounce_seconds: 30
    logging:
      level: INFO

Usage:
    from vpm_wiki_sync.config_schema import build_config, to_fallbacks

    unified = build_config(load_hierarchical_config())
    config = load_config(yaml_fallbacks=to_fallbacks(unified))
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RegistryConfig(BaseModel):
    """Package registry connection settings."""

    url: str | None = Field(default=None, description="Registry base URL")
    packages_path: str = Field(
        default="/packages",
        description="Path of the package list endpoint below the base URL",
    )
    request_timeout: float = Field(default=60.0, gt=0)

    model_config = {"frozen": True}


class WikiConfig(BaseModel):
    """Wiki connection settings.

    Leaving ``username`` or ``password`` unset selects offline mode.
    """

    url: str | None = Field(default=None, description="api.php endpoint")
    username: str | None = None
    password: str | None = None
    auth_header: str | None = Field(
        default=None, description="Extra header name for a fronting gateway"
    )
    auth_value: str | None = None
    offline_dir: str | None = None
    page_prefix: str | None = None
    summary_page: str | None = None

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Scheduling settings."""

    debounce_seconds: float = Field(default=30.0, ge=0.1, le=3600)
    debug: bool = False

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: "text" or "json".
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: str = Field(default="text", pattern="^(text|json)$")

    model_config = {"frozen": True}


class UnifiedConfig(BaseModel):
    """Top-level configuration; ``UnifiedConfig()`` is always valid."""

    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    wiki: WikiConfig = Field(default_factory=WikiConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from ``load_hierarchical_config()`` output.

    Missing sections get defaults.
    """
    if not raw_data:
        return UnifiedConfig()
    return UnifiedConfig(**raw_data)


def to_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten a ``UnifiedConfig`` into the ``yaml_fallbacks`` dict accepted
    by ``config.load_config()``.

    Only values that were actually set are included, so env vars and
    built-in defaults still apply for the rest.
    """
    flat: dict[str, Any] = {
        "registry_url": unified.registry.url,
        "packages_path": unified.registry.packages_path,
        "request_timeout": unified.registry.request_timeout,
        "wiki_url": unified.wiki.url,
        "username": unified.wiki.username,
        "password": unified.wiki.password,
        "auth_header": unified.wiki.auth_header,
        "auth_value": unified.wiki.auth_value,
        "offline_dir": unified.wiki.offline_dir,
        "page_prefix": unified.wiki.page_prefix,
        "summary_page": unified.wiki.summary_page,
        "debounce_seconds": unified.sync.debounce_seconds,
        "debug": unified.sync.debug,
    }
    return {k: v for k, v in flat.items() if v is not None}
