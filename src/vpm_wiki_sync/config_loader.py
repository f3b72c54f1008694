"""
YAML configuration discovery and loading for vpm_wiki_sync.

Config files are found by convention, may pull in other files with
``!include``, and may reference environment variables as ``${VAR}`` or
``${VAR:-default}``.  Several files are merged with "most specific wins"
semantics at the level of top-level sections.

Usage:
    from vpm_wiki_sync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "WIKI_SYNC_CONFIG"
PROJECT_CONFIG_DIR = ".wiki_sync"
PROJECT_CONFIG_NAMES = ("config.yml", "config.yaml")
USER_CONFIG_PATH = Path(".config") / "wiki_sync" / "config.yml"

_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+?)(?::-(?P<default>.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Substitute ``${VAR}`` / ``${VAR:-default}`` references in *value*.

    An unset or empty variable falls back to its default, or to ``""`` when
    no default is given.
    """
    return _ENV_REF.sub(
        lambda m: os.environ.get(m["name"]) or m["default"] or "", value
    )


def _interpolate_recursive(obj: Any) -> Any:
    """Apply :func:`interpolate_env_vars` to every string inside *obj*."""
    if isinstance(obj, dict):
        return {key: _interpolate_recursive(val) for key, val in obj.items()}
    if isinstance(obj, list):
        return list(map(_interpolate_recursive, obj))
    return interpolate_env_vars(obj) if isinstance(obj, str) else obj


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader with an ``!include`` tag.

    ``chain`` holds the files currently being loaded, innermost last, and
    is used both to resolve relative includes and to detect cycles.  The
    global ``yaml.SafeLoader`` is left untouched.
    """

    def __init__(self, stream, chain: tuple[Path, ...] = ()) -> None:
        super().__init__(stream)
        self.chain = chain

    def include(self, node: yaml.ScalarNode) -> Any:
        target = Path(self.construct_scalar(node)).expanduser()
        if not target.is_absolute():
            target = self.chain[-1].parent / target
        target = target.resolve()

        if target in self.chain:
            cycle = " -> ".join(str(p) for p in (*self.chain, target))
            raise ValueError(f"Circular include detected: {cycle}")
        if not target.is_file():
            raise FileNotFoundError(
                f"Include file not found: {target} "
                f"(referenced from {self.chain[-1]})"
            )
        return _load_yaml_with_includes(target, _chain=self.chain)


ConfigLoader.add_constructor("!include", ConfigLoader.include)


def _load_yaml_with_includes(
    path: Path, *, _chain: tuple[Path, ...] = ()
) -> Any:
    """Parse one YAML file, following ``!include`` tags relative to it."""
    path = path.resolve()
    with path.open(encoding="utf-8") as fh:
        loader = ConfigLoader(fh, chain=(*_chain, path))
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


def _candidate_paths() -> list[Path]:
    candidates: list[Path] = []
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())
    project_dir = Path.cwd() / PROJECT_CONFIG_DIR
    candidates.extend(project_dir / name for name in PROJECT_CONFIG_NAMES)
    candidates.append(Path.home() / USER_CONFIG_PATH)
    return candidates


def discover_config_files() -> list[Path]:
    """Return existing config files, most specific first.

    Search order:
        1. ``WIKI_SYNC_CONFIG`` env var (explicit single path)
        2. ``.wiki_sync/config.yml`` in CWD
        3. ``.wiki_sync/config.yaml`` in CWD
        4. ``~/.config/wiki_sync/config.yml``
    """
    return [path for path in _candidate_paths() if path.is_file()]


def _read_config_file(path: Path) -> dict[str, Any]:
    logger.debug("Reading config file %s", path)
    try:
        data = _load_yaml_with_includes(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ValueError(f"Cannot load config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(
            "Ignoring config file %s: top level is a %s, not a mapping",
            path,
            type(data).__name__,
        )
        return {}
    return data


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge all discovered config files.

    A top-level section from a more specific file replaces the same section
    from a less specific one.  Env var interpolation runs after the merge.

    Returns an empty dict when no config file exists.

    Raises:
        ValueError: A config file or one of its includes cannot be parsed.
    """
    merged: dict[str, Any] = {}
    for path in reversed(discover_config_files()):
        merged.update(_read_config_file(path))

    if not merged:
        logger.debug("No config files found, using defaults")
    return _interpolate_recursive(merged)
