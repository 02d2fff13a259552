"""
Shared pytest fixtures for bizframe tests.

This module provides:
- An application tree under ``tmp_path`` with settings pointing at it
- In-memory and counting session backends
- A recording database connector that hands out fake connections
- A ``make_registry`` factory wired to all of the above

Usage:
    def test_something(make_registry, catalog):
        catalog.register("service.Thing", lambda registry: object())
        registry = make_registry()
        ...
"""

import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure bizframe package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bizframe.core.configuration import Configuration
from bizframe.core.factory import ObjectCatalog
from bizframe.core.registry import ServiceRegistry
from bizframe.core.session import InMemorySessionBackend
from bizframe.core.settings import BizFrameSettings


# =============================================================================
# Fakes
# =============================================================================


class FakeConnection:
    """Stands in for a SQLAlchemy connection."""

    def __init__(self, url: Any, connect_args: dict[str, Any]):
        self.url = url
        self.connect_args = connect_args
        self.statements: list[str] = []
        self.closed = False

    def exec_driver_sql(self, sql: str) -> None:
        self.statements.append(sql)

    def close(self) -> None:
        self.closed = True


class RecordingConnector:
    """Connector that records each call and returns a new FakeConnection."""

    def __init__(self):
        self.calls: list[tuple[Any, dict[str, Any]]] = []
        self.connections: list[FakeConnection] = []

    def __call__(self, url: Any, connect_args: dict[str, Any]) -> FakeConnection:
        self.calls.append((url, connect_args))
        conn = FakeConnection(url, connect_args)
        self.connections.append(conn)
        return conn


class CountingBackend(InMemorySessionBackend):
    """In-memory session backend that counts writes."""

    def __init__(self):
        super().__init__()
        self.saves = 0

    def save(self, session_id: str, payload: bytes) -> None:
        self.saves += 1
        super().save(session_id, payload)


# =============================================================================
# Application tree & settings
# =============================================================================


DATABASES = {
    "database": {
        "Default": {
            "Driver": "PDO_MYSQL",
            "Server": "db.internal",
            "Port": 3306,
            "DBName": "shop",
            "User": "shop",
            "Password": "secret",
            "Charset": "utf8",
            "Options": "connect_timeout=5",
        },
        "Reporting": {
            "Driver": "pdo_sqlite",
            "DBName": "reports.db",
        },
    }
}


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """Empty application root."""
    root = tmp_path / "app"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def settings(app_dir: Path) -> BizFrameSettings:
    """Settings rooted at ``app_dir`` with in-memory sessions."""
    return BizFrameSettings(app_dir=app_dir, session_backend="memory", _env_file=None)


@pytest.fixture
def write_file():
    """Write ``text`` to ``path``, creating parent directories."""

    def _write(path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def configuration() -> Configuration:
    return Configuration(DATABASES)


# =============================================================================
# Sessions, connections, registry
# =============================================================================


@pytest.fixture
def backend() -> CountingBackend:
    return CountingBackend()


@pytest.fixture
def connector() -> RecordingConnector:
    return RecordingConnector()


@pytest.fixture
def catalog() -> ObjectCatalog:
    """Empty object catalog; tests register what they need."""
    return ObjectCatalog()


@pytest.fixture
def make_registry(settings, catalog, backend, connector, configuration, monkeypatch):
    """Factory for registries sharing one backend, catalog and connector.

    The configuration subsystem is served from :data:`DATABASES` instead of
    a file on disk.
    """
    monkeypatch.setattr(Configuration, "from_file", classmethod(lambda cls, path: configuration))

    def _make(session_id: str = "sess-1", **overrides: Any) -> ServiceRegistry:
        kwargs = {
            "settings": settings,
            "catalog": catalog,
            "session_backend": backend,
            "connector": connector,
        }
        kwargs.update(overrides)
        return ServiceRegistry(session_id, **kwargs)

    return _make
