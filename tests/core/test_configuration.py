"""
Tests for bizframe.core.configuration module.

Covers:
- Loading database tables from TOML (case-insensitive keys)
- Failure modes: unknown database, missing driver, malformed file
- Generic section access
"""

import pytest

from bizframe.core.configuration import Configuration, DatabaseInfo
from bizframe.core.errors import ConfigurationError

CONFIG_TOML = """
[app]
title = "Shop"

[database.Default]
Driver   = "PDO_MYSQL"
Server   = "db.internal"
Port     = 3306
DBName   = "shop"
User     = "shop"
Password = "secret"
Charset  = "utf8"
Options  = "connect_timeout=5"

[database.Reporting]
driver = "sqlite"
dbname = "reports.db"
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(CONFIG_TOML, encoding="utf-8")
    return path


class TestFromFile:
    def test_database_info(self, config_file):
        config = Configuration.from_file(config_file)
        info = config.database_info("Default")

        assert info == DatabaseInfo(
            name="Default",
            driver="PDO_MYSQL",
            server="db.internal",
            user="shop",
            password="secret",
            dbname="shop",
            port=3306,
            charset="utf8",
            options="connect_timeout=5",
        )
        assert config.source == config_file

    def test_database_names_sorted(self, config_file):
        assert Configuration.from_file(config_file).database_names() == ["Default", "Reporting"]

    def test_lowercase_keys(self, config_file):
        info = Configuration.from_file(config_file).database_info("Reporting")
        assert info.driver == "sqlite"
        assert info.dbname == "reports.db"
        assert info.server == ""

    def test_info_is_cached(self, config_file):
        config = Configuration.from_file(config_file)
        assert config.database_info("Default") is config.database_info("Default")

    def test_missing_file_is_empty(self, tmp_path):
        config = Configuration.from_file(tmp_path / "absent.toml")
        assert config.database_names() == []
        with pytest.raises(ConfigurationError):
            config.database_info("Default")

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[database.Default\ndriver=", encoding="utf-8")
        with pytest.raises(ConfigurationError) as exc_info:
            Configuration.from_file(path)
        assert exc_info.value.cause is not None


class TestDatabaseInfo:
    def test_unknown_database(self):
        config = Configuration({"database": {}})
        with pytest.raises(ConfigurationError) as exc_info:
            config.database_info("Archive")
        assert exc_info.value.context.database == "Archive"

    def test_missing_driver(self):
        config = Configuration({"database": {"Default": {"server": "db"}}})
        with pytest.raises(ConfigurationError, match="no driver"):
            config.database_info("Default")

    def test_unknown_keys_ignored(self):
        info = DatabaseInfo.from_mapping("X", {"driver": "sqlite", "colour": "blue"})
        assert info.driver == "sqlite"

    def test_aliases(self):
        info = DatabaseInfo.from_mapping("X", {"driver": "pgsql", "host": "h", "username": "u", "database": "d"})
        assert (info.server, info.user, info.dbname) == ("h", "u", "d")

    def test_database_section_must_be_table(self):
        with pytest.raises(ConfigurationError):
            Configuration({"database": "nope"}).database_names()


class TestGet:
    def test_section_and_key(self, config_file):
        config = Configuration.from_file(config_file)
        assert config.get("app", "title") == "Shop"
        assert config.get("app") == {"title": "Shop"}
        assert config.get("app", "missing", "dflt") == "dflt"
        assert config.get("nothing", default={}) == {}
