"""
Tests for bizframe.core.connections module.

Covers:
- Options string parsing
- One handle per logical name; default name
- Parameter resolution (emptiness filter, options merge, driver shaping)
- Failure wrapping and teardown
- A real SQLite connection through SQLAlchemy
"""

import pytest

from bizframe.core.configuration import Configuration
from bizframe.core.connections import (
    DEFAULT_DATABASE,
    DatabaseConnectionManager,
    parse_options,
)
from bizframe.core.errors import ConfigurationError, ConnectionError


class TestParseOptions:
    def test_later_keys_win(self):
        assert parse_options("a=1;b=2;a=3") == {"a": "3", "b": "2"}

    @pytest.mark.parametrize("raw", ["", None, ";;"])
    def test_empty(self, raw):
        assert parse_options(raw) == {}

    def test_missing_equals(self):
        assert parse_options("flag") == {"flag": ""}

    def test_whitespace_and_equals_in_value(self):
        assert parse_options(" a = 1 ; dsn=x=y ") == {"a": "1", "dsn": "x=y"}


class TestConnectionIdentity:
    def test_same_name_same_handle(self, configuration, connector):
        manager = DatabaseConnectionManager(configuration, connector=connector)

        first = manager.connection("Default")
        second = manager.connection("Default")

        assert first is second
        assert len(connector.calls) == 1

    def test_none_means_default(self, configuration, connector):
        manager = DatabaseConnectionManager(configuration, connector=connector)
        assert manager.connection() is manager.connection(DEFAULT_DATABASE)

    def test_distinct_names_distinct_handles(self, configuration, connector):
        manager = DatabaseConnectionManager(configuration, connector=connector)

        assert manager.connection("Default") is not manager.connection("Reporting")
        assert sorted(manager.open_names()) == ["Default", "Reporting"]


class TestResolution:
    def test_buffered_mysql(self, configuration, connector):
        manager = DatabaseConnectionManager(configuration, connector=connector)
        conn = manager.connection("Default")

        url, connect_args = connector.calls[0]
        assert connect_args == {"buffered": True}
        assert url.drivername == "mysql+mysqlconnector"
        assert url.username == "shop"
        assert url.query["connect_timeout"] == "5"
        assert conn.statements == ["SET NAMES 'utf8'"]

    def test_empty_values_dropped(self, connector):
        config = Configuration(
            {"database": {"Default": {"driver": "pdo_mysql", "server": "db", "password": "", "charset": ""}}}
        )
        manager = DatabaseConnectionManager(config, connector=connector)
        conn = manager.connection()

        resolved = manager.resolve()
        assert "password" not in resolved.params
        assert "charset" not in resolved.params
        assert "port" not in resolved.params
        assert conn.statements == []

    def test_options_override_base_params(self, connector):
        config = Configuration(
            {"database": {"Default": {"driver": "PDO_MYSQL", "charset": "utf8", "options": "charset=latin1"}}}
        )
        manager = DatabaseConnectionManager(config, connector=connector)
        conn = manager.connection()

        assert conn.statements == ["SET NAMES 'latin1'"]

    def test_resolution_cached(self, configuration, connector):
        manager = DatabaseConnectionManager(configuration, connector=connector)
        assert manager.resolve("Default") is manager.resolve("Default")

    def test_sqlite_params(self, configuration, connector):
        manager = DatabaseConnectionManager(configuration, connector=connector)
        manager.connection("Reporting")

        url, connect_args = connector.calls[0]
        assert url.drivername == "sqlite"
        assert url.database == "reports.db"
        assert connect_args == {}


class TestFailures:
    def test_unknown_database(self, configuration, connector):
        manager = DatabaseConnectionManager(configuration, connector=connector)
        with pytest.raises(ConfigurationError):
            manager.connection("Archive")
        assert connector.calls == []

    def test_unknown_driver(self, connector):
        config = Configuration({"database": {"Default": {"driver": "ODBC_MAGIC"}}})
        manager = DatabaseConnectionManager(config, connector=connector)
        with pytest.raises(ConfigurationError, match="Unknown database driver"):
            manager.connection()

    def test_connector_failure_wrapped(self, configuration):
        cause = OSError("connection refused")

        def failing(url, connect_args):
            raise cause

        manager = DatabaseConnectionManager(configuration, connector=failing)
        with pytest.raises(ConnectionError) as exc_info:
            manager.connection("Default")

        assert exc_info.value.database == "Default"
        assert exc_info.value.__cause__ is cause
        assert manager.open_names() == []

    def test_post_connect_failure_closes_handle(self, connector):
        config = Configuration({"database": {"Default": {"driver": "PDO_MYSQL", "charset": "bad'charset"}}})
        manager = DatabaseConnectionManager(config, connector=connector)

        with pytest.raises(ConfigurationError):
            manager.connection()
        assert connector.connections[0].closed
        assert manager.open_names() == []


class TestQuotingAndTeardown:
    def test_quote_identifier_per_database(self, configuration, connector):
        manager = DatabaseConnectionManager(configuration, connector=connector)

        assert manager.quote_identifier(" `orders` ") == "`orders`"
        assert manager.quote_identifier("orders", "Reporting") == "orders"
        assert connector.calls == []

    def test_close_all(self, configuration, connector):
        manager = DatabaseConnectionManager(configuration, connector=connector)
        first = manager.connection("Default")
        reporting = manager.connection("Reporting")

        manager.close_all()

        assert first.closed and reporting.closed
        assert manager.open_names() == []
        assert manager.connection("Default") is not first


class TestSQLAlchemyConnector:
    def test_real_sqlite_connection(self, tmp_path):
        config = Configuration({"database": {"Local": {"driver": "pdo_sqlite", "dbname": str(tmp_path / "local.db")}}})
        manager = DatabaseConnectionManager(config)

        conn = manager.connection("Local")
        try:
            assert conn.exec_driver_sql("SELECT 1").scalar() == 1
            assert manager.connection("Local") is conn
        finally:
            manager.close_all()
        assert conn.closed
