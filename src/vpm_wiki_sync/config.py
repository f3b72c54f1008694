"""Runtime configuration for the wiki sync service.

Reads registry and wiki connection settings from CLI args, environment
variables, .env files, and YAML config file fallbacks.

A value is taken from the first source that sets it:
    CLI args, environment (including .env), YAML config, built-in default

Environment variables:
    VPMM_API_BASE_URL: Registry base URL (optional, default: https://vpmm.dev)
    VRCWIKI_API_URL: Wiki api.php endpoint (required unless offline)
    VRCWIKI_USERNAME: Wiki bot username (optional, offline mode when unset)
    VRCWIKI_PASSWORD: Wiki bot password (optional, offline mode when unset)
    VRCWIKI_AUTHORIZATION_HEADER: Extra gateway auth header name (optional)
    VRCWIKI_AUTHORIZATION_VALUE: Extra gateway auth header value (optional)
    WIKI_SYNC_OFFLINE_DIR: Page directory for offline mode (default: ./wiki-output)
    WIKI_SYNC_DEBOUNCE_SECONDS: Debounce window in seconds (default: 30)
    WIKI_SYNC_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://vpmm.dev"
DEFAULT_OFFLINE_DIR = "./wiki-output"
DEFAULT_PAGE_PREFIX = "Template:VPM/"
DEFAULT_SUMMARY_PAGE = "Template:VPM/Version summary"


@dataclass
class Config:
    registry_url: str = DEFAULT_REGISTRY_URL
    wiki_url: str = ""
    username: str = ""
    password: str = ""
    auth_header: str = ""
    auth_value: str = ""
    offline_dir: str = DEFAULT_OFFLINE_DIR
    packages_path: str = "/packages"
    page_prefix: str = DEFAULT_PAGE_PREFIX
    summary_page: str = DEFAULT_SUMMARY_PAGE
    debounce_seconds: float = 30.0
    request_timeout: float = 60.0
    debug: bool = False

    @property
    def offline(self) -> bool:
        """Offline mode is used whenever credentials are incomplete."""
        return not (self.username and self.password)

    @property
    def stream_url(self) -> str:
        return f"{self.registry_url.rstrip('/')}/sse"


def _validate_url(label: str, value: str) -> str:
    value = value.strip()
    if not value.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid {label} '{value}': must start with http:// or https://"
        )
    if not urlparse(value).hostname:
        raise ValueError(
            f"Invalid {label} '{value}': URL must include a hostname"
        )
    return value


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If a URL is malformed, a live configuration has no wiki
            URL, or the debounce window is out of range.
    """
    config.registry_url = _validate_url(
        "registry URL", config.registry_url
    ).removesuffix("/")

    if bool(config.username) != bool(config.password):
        logger.warning(
            "Only one of VRCWIKI_USERNAME / VRCWIKI_PASSWORD is set; "
            "running in offline mode"
        )

    if not config.offline:
        if not config.wiki_url:
            raise ValueError(
                "Wiki API URL not found. Set VRCWIKI_API_URL environment "
                "variable, pass --wiki-url, or add 'url' to the wiki section "
                "of config.yml."
            )
        config.wiki_url = _validate_url("wiki API URL", config.wiki_url)

    if not (0.1 <= config.debounce_seconds <= 3600):
        raise ValueError(
            f"Invalid debounce window {config.debounce_seconds}: "
            "must be between 0.1 and 3600 seconds"
        )

    if not config.page_prefix.endswith("/"):
        config.page_prefix += "/"


def load_config(
    registry_url: str | None = None,
    wiki_url: str | None = None,
    username: str | None = None,
    password: str | None = None,
    offline_dir: str | None = None,
    debounce_seconds: float | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Build a validated ``Config`` from CLI values, env vars and YAML.

    Each field uses the CLI argument when given, then the env var, then
    *yaml_fallbacks*, then the built-in default.  ``.env`` values are only
    seen if ``load_dotenv()`` ran first.

    Args:
        registry_url: Override registry base URL.
        wiki_url: Override wiki API endpoint.
        username: Override wiki username.
        password: Override wiki password.
        offline_dir: Override offline page directory.
        debounce_seconds: Override debounce window.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict produced by
            ``config_schema.to_fallbacks()``. Used when CLI arg and env var
            are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a value is malformed after checking all sources.
    """
    fb = yaml_fallbacks or {}

    def pick(cli: str | None, env_key: str, fb_key: str, default: str) -> str:
        value = cli or os.getenv(env_key) or fb.get(fb_key) or default
        return str(value).strip()

    final_debounce: float
    if debounce_seconds is not None:
        final_debounce = float(debounce_seconds)
    else:
        raw = os.getenv("WIKI_SYNC_DEBOUNCE_SECONDS")
        if raw is not None:
            try:
                final_debounce = float(raw)
            except ValueError:
                raise ValueError(
                    f"Invalid WIKI_SYNC_DEBOUNCE_SECONDS '{raw}': must be a number"
                ) from None
        else:
            final_debounce = float(fb.get("debounce_seconds", 30.0))

    if debug:
        final_debug = True
    else:
        env_debug = os.getenv("WIKI_SYNC_DEBUG")
        if env_debug is not None:
            final_debug = env_debug.lower() in ("true", "1", "yes", "on")
        else:
            final_debug = bool(fb.get("debug", False))

    config = Config(
        registry_url=pick(
            registry_url, "VPMM_API_BASE_URL", "registry_url", DEFAULT_REGISTRY_URL
        ),
        wiki_url=pick(wiki_url, "VRCWIKI_API_URL", "wiki_url", ""),
        username=pick(username, "VRCWIKI_USERNAME", "username", ""),
        password=pick(password, "VRCWIKI_PASSWORD", "password", ""),
        auth_header=pick(
            None, "VRCWIKI_AUTHORIZATION_HEADER", "auth_header", ""
        ),
        auth_value=pick(None, "VRCWIKI_AUTHORIZATION_VALUE", "auth_value", ""),
        offline_dir=pick(
            offline_dir, "WIKI_SYNC_OFFLINE_DIR", "offline_dir", DEFAULT_OFFLINE_DIR
        ),
        packages_path=str(fb.get("packages_path") or "/packages"),
        page_prefix=str(fb.get("page_prefix") or DEFAULT_PAGE_PREFIX),
        summary_page=str(fb.get("summary_page") or DEFAULT_SUMMARY_PAGE),
        debounce_seconds=final_debounce,
        request_timeout=float(fb.get("request_timeout", 60.0)),
        debug=final_debug,
    )

    validate_config(config)

    return config
