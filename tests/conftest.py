"""Shared pytest fixtures for vpm-wiki-sync tests."""

from unittest.mock import MagicMock

import pytest

from vpm_wiki_sync.config import Config
from vpm_wiki_sync.errors import NotFoundError
from vpm_wiki_sync.registry.models import Package
from vpm_wiki_sync.wiki.gateway import WikiGateway


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live MediaWiki instance",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live MediaWiki instance"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="live wiki tests run only with --run-live")
    for item in items:
        if item.get_closest_marker("live"):
            item.add_marker(skip_live)


class FakeWikiBackend:
    """In-memory ``WikiBackend`` recording every call."""

    def __init__(self, pages=None):
        self.pages: dict[str, str] = dict(pages or {})
        self.writes: list[tuple[str, str, str, bool]] = []
        self.removes: list[tuple[str, str]] = []
        self.closed = False

    def read(self, title):
        if title not in self.pages:
            raise NotFoundError(title)
        return self.pages[title]

    def write(self, title, text, summary, bot):
        self.pages[title] = text
        self.writes.append((title, text, summary, bot))

    def remove(self, title, reason=""):
        self.pages.pop(title, None)
        self.removes.append((title, reason))

    def list_titles(self, prefix):
        return sorted(t for t in self.pages if t.startswith(prefix))

    def close(self):
        self.closed = True


class FakeRegistry:
    """``RegistryClient`` replacement returning a fixed package list."""

    def __init__(self, packages=None, error=None):
        self.packages = list(packages or [])
        self.error = error
        self.calls = 0

    def list_packages(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.packages)


@pytest.fixture(autouse=True)
def _isolate_env(request, monkeypatch, tmp_path):
    """Keep the developer's environment and config files out of tests."""
    if request.node.get_closest_marker("live"):
        return
    for key in (
        "VPMM_API_BASE_URL",
        "VRCWIKI_API_URL",
        "VRCWIKI_USERNAME",
        "VRCWIKI_PASSWORD",
        "VRCWIKI_AUTHORIZATION_HEADER",
        "VRCWIKI_AUTHORIZATION_VALUE",
        "WIKI_SYNC_OFFLINE_DIR",
        "WIKI_SYNC_DEBOUNCE_SECONDS",
        "WIKI_SYNC_DEBUG",
        "WIKI_SYNC_CONFIG",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def mock_config():
    """Create a live Config instance for testing."""
    return Config(
        registry_url="https://registry.example.com",
        wiki_url="https://wiki.example.com/api.php",
        username="SyncBot",
        password="secret",
    )


@pytest.fixture
def offline_config(tmp_path):
    """Create an offline Config writing into a temporary directory."""
    return Config(
        registry_url="https://registry.example.com",
        offline_dir=str(tmp_path / "wiki-output"),
    )


@pytest.fixture
def mock_session():
    """A MagicMock standing in for ``requests.Session``."""
    return MagicMock()


@pytest.fixture
def fake_backend():
    return FakeWikiBackend()


@pytest.fixture
def gateway(fake_backend):
    return WikiGateway(fake_backend)


@pytest.fixture
def make_package():
    """Factory fixture building ``Package`` records from wire-shaped dicts."""

    def _make(name="com.example.foo", version="1.0.0", **fields):
        data = {
            "name": name,
            "version": version,
            "displayName": "Foo",
            "description": "A foo package",
            "license": "MIT",
            "urls": ["https://vpm.example.com/index.json"],
            "author": {"name": "Alice"},
        }
        data.update(fields)
        return Package.model_validate(data)

    return _make


@pytest.fixture
def make_registry():
    """Factory fixture building a ``FakeRegistry``."""
    return FakeRegistry
