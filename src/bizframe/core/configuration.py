"""
Application configuration — database definitions and free-form sections.

The configuration file is TOML. Each logical database is one table under
``[database]``; key names are case-insensitive so files written with the
historical capitalised keys (``Server``, ``DBName``) load unchanged::

    [database.Default]
    driver   = "PDO_MYSQL"
    server   = "db.internal"
    port     = 3306
    dbname   = "shop"
    user     = "shop"
    password = "secret"
    charset  = "utf8"
    options  = "connect_timeout=5;ssl_disabled=true"

    [database.Reporting]
    driver = "sqlite"
    dbname = "reports.db"

Parsing happens once, when the registry builds the configuration subsystem.
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bizframe.core.errors import ConfigurationError
from bizframe.core.logging import get_logger

logger = get_logger(__name__)

_DATABASE_KEYS = {
    "driver": "driver",
    "server": "server",
    "host": "server",
    "user": "user",
    "username": "user",
    "password": "password",
    "dbname": "dbname",
    "database": "dbname",
    "port": "port",
    "charset": "charset",
    "options": "options",
}


@dataclass(frozen=True)
class DatabaseInfo:
    """Connection parameters for one logical database, as configured."""

    name: str
    driver: str
    server: str = ""
    user: str = ""
    password: str = ""
    dbname: str = ""
    port: int | str | None = None
    charset: str = ""
    options: str = ""

    @classmethod
    def from_mapping(cls, name: str, raw: Mapping[str, Any]) -> DatabaseInfo:
        values: dict[str, Any] = {}
        for key, value in raw.items():
            field_name = _DATABASE_KEYS.get(str(key).lower())
            if field_name is None:
                logger.warning("database_key_ignored", database=name, key=key)
                continue
            values[field_name] = value

        driver = str(values.pop("driver", "") or "").strip()
        if not driver:
            raise ConfigurationError(
                f"Database '{name}' has no driver configured"
            ).with_context(database=name)

        for key in ("server", "user", "password", "dbname", "charset", "options"):
            if key in values:
                values[key] = "" if values[key] is None else str(values[key])
        return cls(name=name, driver=driver, **values)


class Configuration:
    """Parsed application configuration.

    Args:
        data: Already-parsed configuration mapping (see :meth:`from_file`).
        source: Where the mapping came from, for error messages.
    """

    def __init__(self, data: Mapping[str, Any] | None = None, *, source: Path | None = None):
        self._data: dict[str, Any] = dict(data or {})
        self._source = source
        self._databases: dict[str, DatabaseInfo] = {}

    @classmethod
    def from_file(cls, path: Path | str) -> Configuration:
        """Load a TOML configuration file.

        A missing file yields an empty configuration; every database lookup
        then fails with :class:`ConfigurationError`.
        """
        path = Path(path)
        if not path.is_file():
            logger.warning("config_file_missing", path=str(path))
            return cls({}, source=path)
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as exc:
            raise ConfigurationError(
                f"Malformed configuration file {path}: {exc}", cause=exc
            ) from exc
        logger.debug("config_loaded", path=str(path))
        return cls(data, source=path)

    @property
    def source(self) -> Path | None:
        return self._source

    def database_names(self) -> list[str]:
        """Logical database names declared in the configuration."""
        return sorted(self._database_section())

    def database_info(self, name: str) -> DatabaseInfo:
        """Return the :class:`DatabaseInfo` for a logical database name."""
        if name in self._databases:
            return self._databases[name]

        raw = self._database_section().get(name)
        if not isinstance(raw, Mapping):
            raise ConfigurationError(
                f"Database '{name}' is not defined in {self._source or 'configuration'}"
            ).with_context(database=name)

        info = DatabaseInfo.from_mapping(name, raw)
        self._databases[name] = info
        return info

    def get(self, section: str, key: str | None = None, default: Any = None) -> Any:
        """Return a whole section, or one key from it."""
        value = self._data.get(section)
        if key is None:
            return default if value is None else value
        if not isinstance(value, Mapping):
            return default
        return value.get(key, default)

    def _database_section(self) -> Mapping[str, Any]:
        section = self._data.get("database", {})
        if not isinstance(section, Mapping):
            raise ConfigurationError("The [database] section must be a table")
        return section


__all__ = [
    "DatabaseInfo",
    "Configuration",
]
