"""Command line entry point for the wiki sync service."""

import argparse
import asyncio
import logging
import signal
import sys

from . import __version__
from .core.async_utils import run_sync
from .lifespan import service_lifespan
from .logger import setup_logging
from .sync.orchestrator import Orchestrator

logger = logging.getLogger(__name__)


async def main(config_overrides: dict | None = None, once: bool = False) -> int:
    """Run the service until interrupted, or a single pass with *once*.

    Args:
        config_overrides: Optional dict with config values from the CLI.
        once: Run one full pass, print its report and return.

    Returns:
        Process exit code.
    """
    overrides = config_overrides or {}

    # Early logging for startup messages; reconfigured once the config
    # file has been read.
    setup_logging(
        debug=overrides.get("debug", False),
        log_file=overrides.get("log_file"),
        log_format=overrides.get("log_format") or "text",
    )

    async with service_lifespan(config_overrides=overrides) as ctx:
        engine = ctx["engine"]
        if once:
            report = await run_sync(engine.run)
            print(report.summary())
            return 1 if report.aborted else 0

        config = ctx["config"]
        orchestrator = Orchestrator(
            engine.run,
            consumer=ctx["consumer"],
            window=config.debounce_seconds,
        )
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, orchestrator.request_shutdown)
            except NotImplementedError:
                # Windows event loops; KeyboardInterrupt still applies.
                pass
        await orchestrator.run()
    return 0


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = argparse.ArgumentParser(
        description="VPM wiki sync - keep wiki template pages in sync with the VPM package registry",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .wiki_sync/config.yml)
  vpm-wiki-sync

  # Offline dry run: pages are written to ./wiki-output
  vpm-wiki-sync --once

  # Live wiki
  vpm-wiki-sync --wiki-url https://wiki.example.com/api.php --username SyncBot

  # Shorter debounce window and JSON logs
  vpm-wiki-sync --debounce 5 --log-format json

Without wiki credentials the service runs in offline mode and writes one
file per page into the offline directory.
        """,
    )

    parser.add_argument(
        "--registry-url",
        help="Override registry base URL (takes precedence over VPMM_API_BASE_URL env var and config files)",
    )
    parser.add_argument(
        "--wiki-url",
        help="Override wiki api.php URL (takes precedence over VRCWIKI_API_URL env var and config files)",
    )
    parser.add_argument(
        "--username",
        help="Override wiki username (takes precedence over VRCWIKI_USERNAME env var and config files)",
    )
    parser.add_argument(
        "--password",
        help="Override wiki password (takes precedence over VRCWIKI_PASSWORD env var and config files)"
        " (visible in process list -- prefer VRCWIKI_PASSWORD env var for security)",
    )
    parser.add_argument(
        "--offline-dir",
        help="Directory for page files in offline mode (default: ./wiki-output)",
    )
    parser.add_argument(
        "--debounce",
        type=float,
        help="Debounce window in seconds between the last change and a sync pass (default: 30)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single full sync pass, print its report and exit",
    )
    parser.add_argument(
        "--log-file",
        help="Also append log records to this file",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log output format (default: text)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"vpm-wiki-sync version {__version__}",
    )

    args = parser.parse_args()

    # Build config overrides dict from CLI args
    config_overrides = {}
    if args.registry_url:
        config_overrides["registry_url"] = args.registry_url
    if args.wiki_url:
        config_overrides["wiki_url"] = args.wiki_url
    if args.username:
        config_overrides["username"] = args.username
    if args.password:
        config_overrides["password"] = args.password
    if args.offline_dir:
        config_overrides["offline_dir"] = args.offline_dir
    if args.debounce is not None:
        config_overrides["debounce_seconds"] = args.debounce
    if args.debug:
        config_overrides["debug"] = True
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    if args.log_format:
        config_overrides["log_format"] = args.log_format

    if config_overrides:
        override_keys = [
            k for k in config_overrides.keys() if k != "password"
        ]
        print(
            f"Config overrides from CLI: {', '.join(override_keys)}",
            file=sys.stderr,
        )

    try:
        exit_code = asyncio.run(
            main(config_overrides=config_overrides, once=args.once)
        )
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
