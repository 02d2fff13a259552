"""Database connection manager — one live connection per logical database.

Application code asks for a connection by logical name (``"Default"`` when
omitted). The first request for a name resolves its configured parameters,
picks the driver strategy, opens the connection and runs the driver's
post-connect hook; every later request in the same registry returns the
same handle.

Resolution steps for a name:

1. cached handle → return it
2. ``Configuration.database_info(name)``
3. base parameters ``host, username, password, dbname, port, charset``
   merged with the ``options`` string (``"a=1;b=2;a=3"`` → ``a=3, b=2``)
4. parameters whose value is ``None`` or ``""`` are dropped
5. ``DriverStrategy.shape_params`` (buffered MySQL forces
   ``driver_options["buffered"] = True``)
6. connect through the connector
7. ``DriverStrategy.post_connect`` (buffered MySQL: ``SET NAMES``)
8. cache and return

Usage
-----
::

    manager = DatabaseConnectionManager(Configuration.from_file("config.toml"))
    conn = manager.connection()            # "Default"
    assert manager.connection("Default") is conn
    manager.quote_identifier("orders")     # "`orders`" for PDO_MYSQL
    manager.close_all()

Connections are never shared across requests and nothing is retried.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.pool import NullPool

from bizframe.core.configuration import Configuration
from bizframe.core.drivers import DriverStrategy, get_driver
from bizframe.core.errors import ConfigurationError, ConnectionError
from bizframe.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DATABASE = "Default"

Connector = Callable[[URL, dict[str, Any]], Any]


def sqlalchemy_connector(url: URL, connect_args: dict[str, Any]) -> Any:
    """Open a SQLAlchemy connection without pooling.

    The registry owns the connection for exactly one request, so a pool
    would only keep sockets alive after teardown.
    """
    engine = create_engine(url, connect_args=connect_args, poolclass=NullPool)
    return engine.connect()


def parse_options(options: str | None) -> dict[str, str]:
    """Parse a ``;``-separated ``key=value`` options string.

    Later keys win. A segment without ``=`` yields an empty value, which
    the emptiness filter then drops.

    >>> parse_options("a=1;b=2;a=3")
    {'a': '3', 'b': '2'}
    """
    parsed: dict[str, str] = {}
    if not options:
        return parsed
    for segment in options.split(";"):
        if not segment.strip():
            continue
        key, _, value = segment.partition("=")
        parsed[key.strip()] = value.strip()
    return parsed


@dataclass
class ResolvedDatabase:
    """Driver strategy plus the shaped parameter set for one database."""

    name: str
    driver: DriverStrategy
    params: dict[str, Any] = field(default_factory=dict)


class DatabaseConnectionManager:
    """Per-request cache of open database handles keyed by logical name.

    Args:
        configuration: Source of ``DatabaseInfo`` records.
        connector: ``(url, connect_args) -> handle``; defaults to
            :func:`sqlalchemy_connector`.
    """

    def __init__(
        self,
        configuration: Configuration,
        *,
        connector: Connector | None = None,
    ):
        self._configuration = configuration
        self._connector = connector or sqlalchemy_connector
        self._handles: dict[str, Any] = {}
        self._resolved: dict[str, ResolvedDatabase] = {}

    def resolve(self, name: str | None = None) -> ResolvedDatabase:
        """Resolve (once) the driver and parameters for a database name."""
        name = name or DEFAULT_DATABASE
        if name in self._resolved:
            return self._resolved[name]

        info = self._configuration.database_info(name)
        driver = get_driver(info.driver)

        params: dict[str, Any] = {
            "host": info.server,
            "username": info.user,
            "password": info.password,
            "dbname": info.dbname,
            "port": info.port,
            "charset": info.charset,
        }
        params.update(parse_options(info.options))
        params = {key: value for key, value in params.items() if value not in (None, "")}

        resolved = ResolvedDatabase(name=name, driver=driver, params=driver.shape_params(params))
        self._resolved[name] = resolved
        return resolved

    def connection(self, name: str | None = None) -> Any:
        """Return the open handle for ``name``, connecting on first use."""
        name = name or DEFAULT_DATABASE
        if name in self._handles:
            return self._handles[name]

        resolved = self.resolve(name)
        driver = resolved.driver
        try:
            handle = self._connector(driver.url(resolved.params), driver.connect_args(resolved.params))
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.error("db_connect_failed", database=name, driver=driver.name, error=str(exc))
            raise ConnectionError(name, f"Cannot connect to database '{name}': {exc}", cause=exc) from exc

        try:
            driver.post_connect(handle, resolved.params)
        except ConfigurationError:
            handle.close()
            raise
        except Exception as exc:
            handle.close()
            raise ConnectionError(name, f"Post-connect setup failed for '{name}': {exc}", cause=exc) from exc

        self._handles[name] = handle
        logger.debug("db_connected", database=name, driver=driver.name)
        return handle

    def quote_identifier(self, identifier: str, name: str | None = None) -> str:
        """Quote a table or column name the way the database's driver expects."""
        return self.resolve(name).driver.quote_identifier(identifier)

    def open_names(self) -> list[str]:
        return list(self._handles)

    def close_all(self) -> None:
        """Close every handle opened during this request."""
        handles, self._handles = self._handles, {}
        for name, handle in handles.items():
            close = getattr(handle, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception as exc:
                logger.warning("db_close_failed", database=name, error=str(exc))


__all__ = [
    "DEFAULT_DATABASE",
    "Connector",
    "sqlalchemy_connector",
    "parse_options",
    "ResolvedDatabase",
    "DatabaseConnectionManager",
]
