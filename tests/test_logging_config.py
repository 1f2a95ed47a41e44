"""Comprehensive tests for logging_config module. """

import json
import logging
import os
import sys
from unittest.mock import Mock, patch

import pytest

from mempool_sniper.utils.logging_config import (
    HAVE_COLORLOG,
    JsonFormatter,
    get_logger,
    reset_logging,
    setup_logging,
)


def make_record(msg="Test message", level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestJsonFormatter:
    """Test JsonFormatter class. """

    def test_basic_formatting(self):
        parsed = json.loads(JsonFormatter().format(make_record()))

        assert parsed["level"] == "INFO"
        assert parsed["name"] == "test"
        assert parsed["message"] == "Test message"
        assert "timestamp" in parsed

    def test_formatting_with_exception(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        record = make_record("Error occurred", logging.ERROR, exc_info)
        parsed = json.loads(JsonFormatter().format(record))

        assert "ValueError" in parsed["exception"]

    def test_formatting_with_extra_data(self):
        record = make_record()
        record.extra_data = {"tx_hash": "0xab", "net_profit": 123}

        parsed = json.loads(JsonFormatter().format(record))

        assert parsed["tx_hash"] == "0xab"
        assert parsed["net_profit"] == 123


class TestSetupLogging:
    """Test setup_logging function. """

    def teardown_method(self):
        reset_logging()

    def test_setup_logging_default(self):
        setup_logging(force_setup=True)

        logger = logging.getLogger("mempool_sniper")
        assert logger.level == logging.INFO
        assert len(logger.handlers) > 0

    def test_setup_logging_debug_mode(self):
        with patch(
            "mempool_sniper.config.loaders.get_loaded_settings",
            return_value=Mock(debug=True),
        ):
            setup_logging(force_setup=True)

        assert logging.getLogger("mempool_sniper").level == logging.DEBUG

    def test_level_from_loaded_settings(self):
        with patch(
            "mempool_sniper.config.loaders.get_loaded_settings",
            return_value=Mock(debug=False, log_level="ERROR", log_format="console"),
        ):
            setup_logging(force_setup=True)

        assert logging.getLogger("mempool_sniper").level == logging.ERROR

    def test_env_level_overrides_settings(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        with patch(
            "mempool_sniper.config.loaders.get_loaded_settings",
            return_value=Mock(debug=False, log_level="ERROR", log_format="console"),
        ):
            setup_logging(force_setup=True)

        assert logging.getLogger("mempool_sniper").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "CHATTY")
        setup_logging(force_setup=True)

        assert logging.getLogger("mempool_sniper").level == logging.INFO

    def test_setup_logging_json_format(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        setup_logging(force_setup=True)

        handler = logging.getLogger("mempool_sniper").handlers[0]
        assert isinstance(handler.formatter, JsonFormatter)

    def test_setup_logging_colorlog(self, monkeypatch):
        if not HAVE_COLORLOG:
            pytest.skip("colorlog not available")

        import colorlog

        monkeypatch.setenv("LOG_FORMAT", "console")
        setup_logging(force_setup=True)

        handler = logging.getLogger("mempool_sniper").handlers[0]
        assert isinstance(handler.formatter, colorlog.ColoredFormatter)

    def test_setup_logging_without_colorlog(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "console")
        with patch("mempool_sniper.utils.logging_config.HAVE_COLORLOG", False):
            setup_logging(force_setup=True)

        handler = logging.getLogger("mempool_sniper").handlers[0]
        assert type(handler.formatter) is logging.Formatter

    def test_file_handler_error_is_not_fatal(self, monkeypatch):
        monkeypatch.delenv("PYTEST_CURRENT_TEST", raising=False)
        with patch(
            "mempool_sniper.utils.logging_config.get_base_dir",
            side_effect=OSError("read-only"),
        ):
            setup_logging(force_setup=True)

        assert len(logging.getLogger("mempool_sniper").handlers) == 1

    def test_file_handler_written_under_base_dir(self, monkeypatch, tmp_path):
        monkeypatch.delenv("PYTEST_CURRENT_TEST", raising=False)
        with patch(
            "mempool_sniper.utils.logging_config.get_base_dir", return_value=tmp_path
        ):
            setup_logging(force_setup=True)

        assert (tmp_path / "logs").is_dir()
        assert len(logging.getLogger("mempool_sniper").handlers) == 2

    def test_setup_logging_clears_existing_handlers(self):
        logger = logging.getLogger("mempool_sniper")
        logger.addHandler(logging.StreamHandler())
        logger.addHandler(logging.StreamHandler())

        setup_logging(force_setup=True)

        assert len(logger.handlers) == 1

    def test_setup_logging_idempotent(self):
        setup_logging(force_setup=True)
        logger = logging.getLogger("mempool_sniper")
        handler_count = len(logger.handlers)

        setup_logging()

        assert len(logger.handlers) == handler_count


class TestGetLogger:
    """Test get_logger function. """

    def teardown_method(self):
        reset_logging()

    def test_get_logger_returns_child_logger(self):
        logger = get_logger("test_module")
        assert logger.name == "mempool_sniper.test_module"

    def test_package_names_are_not_prefixed_twice(self):
        logger = get_logger("mempool_sniper.engines.swap_decoder")
        assert logger.name == "mempool_sniper.engines.swap_decoder"

    def test_get_logger_initializes_logging(self):
        reset_logging()
        get_logger("test")
        assert len(logging.getLogger("mempool_sniper").handlers) > 0

    def test_get_logger_caches(self):
        assert get_logger("module1") is get_logger("module1")
        assert get_logger("module1") is not get_logger("module2")


class TestResetLogging:
    def test_reset_logging_drops_handlers(self):
        setup_logging(force_setup=True)
        reset_logging()
        assert logging.getLogger("mempool_sniper").handlers == []
