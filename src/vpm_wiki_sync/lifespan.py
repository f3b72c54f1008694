"""Lifespan management for sync service startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import requests
from dotenv import load_dotenv

from .config import load_config
from .config_loader import discover_config_files, load_hierarchical_config
from .config_schema import UnifiedConfig, build_config, to_fallbacks
from .core.async_utils import run_sync
from .logger import setup_logging
from .registry import ChangeStreamConsumer, RegistryClient
from .sync.engine import SyncEngine
from .wiki import create_gateway

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def service_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Bring the sync service up, yield its components, and tear them down.

    Startup reads ``.env`` first so that both plain env lookups and
    ``${VAR}`` references inside YAML files can see its values.  YAML
    settings act as fallbacks underneath CLI overrides and environment
    variables.  In live mode the wiki login happens here, so bad
    credentials stop the service before any stream connection is made.

    Shutdown stops the change stream consumer, then closes the wiki
    gateway and both HTTP sessions.

    Args:
        config_overrides: Optional dict with config values from CLI
            (registry_url, wiki_url, username, password, offline_dir,
            debounce_seconds, debug, log_file, log_format)

    Yields:
        Dict with 'config', 'gateway', 'registry', 'consumer' and 'engine'

    Raises:
        RuntimeError: If configuration is invalid or the wiki login fails.
    """
    logger.info("Wiki sync service starting...")
    _stderr_print("VPM wiki sync starting...")
    overrides = config_overrides or {}

    try:
        load_dotenv()

        unified = UnifiedConfig()
        sources = []
        config_files = discover_config_files()
        if config_files:
            unified = build_config(load_hierarchical_config())
            sources.append(f"config file: {config_files[0]}")

        config = load_config(
            registry_url=overrides.get("registry_url"),
            wiki_url=overrides.get("wiki_url"),
            username=overrides.get("username"),
            password=overrides.get("password"),
            offline_dir=overrides.get("offline_dir"),
            debounce_seconds=overrides.get("debounce_seconds"),
            debug=overrides.get("debug", False),
            yaml_fallbacks=to_fallbacks(unified),
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        raise RuntimeError(f"Configuration error: {e}") from e

    # The config file may carry logging settings; CLI flags still win.
    setup_logging(
        debug=config.debug,
        log_file=overrides.get("log_file") or unified.logging.file,
        log_format=overrides.get("log_format") or unified.logging.format,
        level=unified.logging.level,
    )

    logger.info("Registry: %s", config.registry_url)
    _stderr_print(f"  Registry: {config.registry_url}")
    if config.offline:
        logger.info("Offline mode: writing pages to %s", config.offline_dir)
        _stderr_print(f"  Offline mode, pages written to {config.offline_dir}")
    else:
        logger.info("Wiki API: %s (user %s)", config.wiki_url, config.username)
        _stderr_print(f"  Wiki API: {config.wiki_url}")

    try:
        gateway = await run_sync(create_gateway, config)
    except Exception as e:
        logger.error("Failed to connect to wiki: %s", e)
        _stderr_print("ERROR: Wiki login failed.")
        _stderr_print(f"  {e}")
        _stderr_print("  Check VRCWIKI_API_URL, VRCWIKI_USERNAME, VRCWIKI_PASSWORD.")
        raise RuntimeError(
            f"Wiki login failed: {e}. Check VRCWIKI_API_URL, "
            "VRCWIKI_USERNAME, VRCWIKI_PASSWORD."
        ) from e

    registry_session = requests.Session()
    stream_session = requests.Session()
    registry = RegistryClient(
        config.registry_url,
        session=registry_session,
        packages_path=config.packages_path,
        timeout=config.request_timeout,
    )
    consumer = ChangeStreamConsumer(config.stream_url, session=stream_session)
    engine = SyncEngine(
        registry,
        gateway,
        prefix=config.page_prefix,
        summary_page=config.summary_page,
    )
    _stderr_print("Service ready.")

    try:
        yield {
            "config": config,
            "gateway": gateway,
            "registry": registry,
            "consumer": consumer,
            "engine": engine,
        }
    finally:
        logger.info("Wiki sync service shutting down")
        consumer.stop()
        gateway.close()
        registry_session.close()
        stream_session.close()
        _stderr_print("VPM wiki sync shut down.")
