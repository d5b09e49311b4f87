"""Tests for logging configuration."""

import logging

import pytest

from closing_report.utils.logging_config import LogContext, get_logger, setup_logging


class TestGetLogger:
    """Tests for get_logger."""

    def test_nested_under_package(self) -> None:
        assert get_logger("closing_report.cli").name == "closing_report.cli"
        assert get_logger("scripts").name == "closing_report.scripts"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_reconfigure_replaces_handlers(self, tmp_path) -> None:
        log_file = tmp_path / "report.log"
        setup_logging("DEBUG", log_file=str(log_file), console_output=True)
        logger = setup_logging("INFO", log_file=str(log_file), console_output=True)

        assert logger.level == logging.INFO
        assert len(logger.handlers) == 2

        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()


class TestLogContext:
    """Tests for LogContext."""

    def test_masks_reporter(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_logger("tests")
        caplog.set_level(logging.DEBUG, logger="closing_report")

        with LogContext(logger, "report generation", project="Film", reporter="Ayşe Demir"):
            pass

        assert "project=Film" in caplog.text
        assert "reporter=***" in caplog.text
        assert "Ayşe" not in caplog.text
        assert "Completed report generation" in caplog.text

    def test_logs_and_propagates_errors(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_logger("tests")
        caplog.set_level(logging.DEBUG, logger="closing_report")

        with pytest.raises(RuntimeError):
            with LogContext(logger, "report generation"):
                raise RuntimeError("boom")

        assert "Error in report generation: RuntimeError: boom" in caplog.text
