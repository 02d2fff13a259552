"""Driver strategies for the database connection manager.

A configured database names a driver tag (``PDO_MYSQL``, ``sqlite``,
``pgsql`` ...). The tag selects a :class:`DriverStrategy` that knows how to
turn the resolved parameter set into a SQLAlchemy URL, which driver options
to force, what to run right after connecting, and how to quote identifiers.

Manifesto:
    Driver quirks belong in one place. The connection manager must not
    branch on driver names.

    - **One interface:** ``shape_params`` / ``url`` / ``post_connect`` /
      ``quote_identifier``
    - **Registry-driven:** Tags map to strategies; applications can
      register their own
    - **Case-insensitive tags:** ``PDO_MYSQL`` and ``pdo_mysql`` are the same

Architecture::

    DatabaseInfo.driver ──► get_driver(tag) ──► DriverStrategy
                                                    │
              ┌─────────────────────┬───────────────┼──────────────────┐
              ▼                     ▼               ▼                  ▼
        shape_params()            url()       post_connect()   quote_identifier()
        buffered=True       mysql+mysqlconnector  SET NAMES 'x'    `table`

Examples:
    >>> d = get_driver("PDO_MYSQL")
    >>> d.quote_identifier(" `orders` ")
    '`orders`'
    >>> get_driver("sqlite").quote_identifier("orders")
    'orders'

Tags:
    database, driver, strategy, registry, sqlalchemy, bizframe

Doc-Types:
    - API Reference
    - Database Portability Guide
"""

from __future__ import annotations

import re
from typing import Any

from sqlalchemy.engine import URL

from bizframe.core.errors import ConfigurationError

#: Parameters that map onto URL components rather than query arguments.
_URL_PARAMS = ("host", "username", "password", "dbname", "port")

_CHARSET_RE = re.compile(r"^[A-Za-z0-9_]+$")


class DriverStrategy:
    """Base driver behaviour: parameters pass through, identifiers unchanged."""

    name = "default"

    def __init__(self, drivername: str):
        self.drivername = drivername

    def shape_params(self, params: dict[str, Any]) -> dict[str, Any]:
        """Adjust the resolved parameter set before connecting."""
        return dict(params)

    def url(self, params: dict[str, Any]) -> URL:
        """Build the SQLAlchemy URL for a shaped parameter set."""
        port = params.get("port")
        if port is not None:
            try:
                port = int(port)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"Invalid port: {port!r}", cause=exc) from exc

        query = {
            key: str(value)
            for key, value in params.items()
            if key not in _URL_PARAMS and key != "driver_options"
        }
        return URL.create(
            self.drivername,
            username=params.get("username"),
            password=params.get("password"),
            host=params.get("host"),
            port=port,
            database=params.get("dbname"),
            query=query,
        )

    def connect_args(self, params: dict[str, Any]) -> dict[str, Any]:
        """Keyword arguments handed straight to the DBAPI ``connect()``."""
        return dict(params.get("driver_options") or {})

    def post_connect(self, handle: Any, params: dict[str, Any]) -> None:
        """Hook run once on a freshly opened handle."""

    def quote_identifier(self, identifier: str) -> str:
        return identifier

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r}, {self.drivername!r})"


class MySQLBufferedDriver(DriverStrategy):
    """Buffered MySQL: forced buffered cursors, ``SET NAMES``, backtick quoting."""

    name = "pdo_mysql"

    def __init__(self, drivername: str = "mysql+mysqlconnector"):
        super().__init__(drivername)

    def shape_params(self, params: dict[str, Any]) -> dict[str, Any]:
        shaped = dict(params)
        driver_options = dict(shaped.get("driver_options") or {})
        driver_options["buffered"] = True
        shaped["driver_options"] = driver_options
        return shaped

    def post_connect(self, handle: Any, params: dict[str, Any]) -> None:
        charset = params.get("charset")
        if not charset:
            return
        if not _CHARSET_RE.match(str(charset)):
            raise ConfigurationError(f"Invalid charset: {charset!r}")
        handle.exec_driver_sql(f"SET NAMES '{charset}'")

    def quote_identifier(self, identifier: str) -> str:
        return "`" + identifier.strip().strip("`") + "`"


class SQLiteDriver(DriverStrategy):
    """SQLite: only the database file name is meaningful."""

    name = "sqlite"

    def __init__(self, drivername: str = "sqlite"):
        super().__init__(drivername)

    def shape_params(self, params: dict[str, Any]) -> dict[str, Any]:
        return {
            key: value
            for key, value in params.items()
            if key not in ("host", "username", "password", "port", "charset")
        }


class PostgreSQLDriver(DriverStrategy):
    """PostgreSQL via psycopg: ``charset`` becomes libpq's ``client_encoding``."""

    name = "pgsql"

    def __init__(self, drivername: str = "postgresql+psycopg"):
        super().__init__(drivername)

    def shape_params(self, params: dict[str, Any]) -> dict[str, Any]:
        shaped = dict(params)
        charset = shaped.pop("charset", None)
        if charset and "client_encoding" not in shaped:
            shaped["client_encoding"] = charset
        return shaped


class DriverRegistry:
    """
    Registry of driver strategies keyed by lower-cased driver tag.

    Pre-registered tags:
    - ``pdo_mysql`` — :class:`MySQLBufferedDriver`
    - ``mysql`` — plain MySQL (no forced options, identifiers unchanged)
    - ``pdo_sqlite`` / ``sqlite`` — :class:`SQLiteDriver`
    - ``pdo_pgsql`` / ``pgsql`` / ``postgresql`` — :class:`PostgreSQLDriver`
    """

    def __init__(self):
        self._drivers: dict[str, DriverStrategy] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        self._drivers["pdo_mysql"] = MySQLBufferedDriver()
        self._drivers["mysql"] = DriverStrategy("mysql+mysqlconnector")
        self._drivers["pdo_sqlite"] = SQLiteDriver()
        self._drivers["sqlite"] = self._drivers["pdo_sqlite"]
        postgres = PostgreSQLDriver()
        self._drivers["pdo_pgsql"] = postgres
        self._drivers["pgsql"] = postgres
        self._drivers["postgresql"] = postgres

    def register(self, tag: str, driver: DriverStrategy) -> None:
        self._drivers[tag.lower()] = driver

    def get(self, tag: str | None) -> DriverStrategy:
        if not tag:
            raise ConfigurationError("No database driver configured")
        try:
            return self._drivers[tag.strip().lower()]
        except KeyError:
            raise ConfigurationError(f"Unknown database driver: {tag}") from None

    def list_drivers(self) -> list[str]:
        return sorted(self._drivers)


# Global registry
driver_registry = DriverRegistry()


def get_driver(tag: str | None) -> DriverStrategy:
    """Look up the strategy for a configured driver tag."""
    return driver_registry.get(tag)


def register_driver(tag: str, driver: DriverStrategy) -> None:
    """Register (or replace) the strategy for a driver tag."""
    driver_registry.register(tag, driver)


__all__ = [
    "DriverStrategy",
    "MySQLBufferedDriver",
    "SQLiteDriver",
    "PostgreSQLDriver",
    "DriverRegistry",
    "driver_registry",
    "get_driver",
    "register_driver",
]
