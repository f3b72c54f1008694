"""Helpers shared by the CLI and the coordination loop."""

from .async_utils import run_sync, run_to_completion, start_daemon

__all__ = ["run_sync", "run_to_completion", "start_daemon"]
