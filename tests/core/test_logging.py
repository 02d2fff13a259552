"""
Tests for bizframe.core.logging module.

Covers:
- Priority ordinal → level mapping (aliases and unknown ordinals)
- LogService structlog forwarding and file override
- Scoped logging context
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import structlog

from bizframe.core.logging import LogContext, LogPriority, LogService, priority_level


class TestPriorities:
    def test_aliases_share_ordinals(self):
        assert LogPriority.ALERT is LogPriority.EMERG
        assert LogPriority.CRIT is LogPriority.EMERG
        assert LogPriority.INFO is LogPriority.NOTICE
        assert LogPriority.DEBUG is LogPriority.NOTICE
        assert int(LogPriority.EMERG) == 1
        assert int(LogPriority.ERR) == 4
        assert int(LogPriority.WARNING) == 5
        assert int(LogPriority.DEBUG) == 6

    @pytest.mark.parametrize(
        "priority,level",
        [
            (LogPriority.EMERG, "critical"),
            (LogPriority.ERR, "error"),
            (LogPriority.WARNING, "warning"),
            (LogPriority.DEBUG, "info"),
            (0, "critical"),
            (2, "critical"),
            (3, "critical"),
            (7, "info"),
        ],
    )
    def test_priority_level(self, priority, level):
        assert priority_level(priority) == level


class TestLogService:
    def test_log_forwards_to_structlog_level(self, tmp_path):
        service = LogService(tmp_path)
        service._logger = MagicMock()

        service.log(LogPriority.ERR, "Orders", "insert failed")

        service._logger.error.assert_called_once_with("insert failed", subject="Orders", priority=4)

    def test_log_error_without_file_writes_nothing(self, tmp_path):
        service = LogService(tmp_path / "log")
        service._logger = MagicMock()

        service.log_error(LogPriority.WARNING, "Orders", "slow query")

        service._logger.warning.assert_called_once()
        assert not (tmp_path / "log").exists()

    def test_log_error_appends_to_file(self, tmp_path):
        service = LogService(tmp_path / "log")
        service._logger = MagicMock()

        service.log_error(LogPriority.ERR, "Orders", "first", file_name="orders.log")
        service.log_error(LogPriority.EMERG, "Orders", "second", file_name="orders.log")

        lines = (tmp_path / "log" / "orders.log").read_text().splitlines()
        assert len(lines) == 2
        assert lines[0].endswith("[ERROR] Orders: first")
        assert lines[1].endswith("[CRITICAL] Orders: second")

    def test_log_error_file_stays_in_log_dir(self, tmp_path):
        service = LogService(tmp_path / "log")
        service._logger = MagicMock()

        service.log_error(LogPriority.ERR, "x", "y", file_name="../../escape.log")

        assert (tmp_path / "log" / "escape.log").is_file()
        assert not (tmp_path / "escape.log").exists()


class TestLogContext:
    def test_binds_and_unbinds(self):
        with LogContext(session_id="abc123"):
            assert structlog.contextvars.get_contextvars()["session_id"] == "abc123"
        assert "session_id" not in structlog.contextvars.get_contextvars()
