#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

"""
Mempool Sniper – Logging Configuration
======================================
Console (optionally colored) or JSON output plus a rotating log file.
License: MIT
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Dict

from .path_helpers import get_base_dir

try:
    import colorlog

    HAVE_COLORLOG = True
except ImportError:
    colorlog = None
    HAVE_COLORLOG = False

ROOT_LOGGER_NAME = "mempool_sniper"
LOG_FILE_NAME = "mempool_sniper.log"

_loggers: Dict[str, logging.Logger] = {}
_is_configured = False

_CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_COLOR_FORMAT = (
    "%(log_color)s%(asctime)s [%(levelname)s]%(reset)s %(name)s: %(message)s"
)


class JsonFormatter(logging.Formatter):
    """Renders each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = getattr(record, "extra_data", None)
        if isinstance(extra, dict):
            payload.update(extra)

        return json.dumps(payload, default=str)


def _current_settings():
    try:
        from mempool_sniper.config.loaders import get_loaded_settings

        return get_loaded_settings()
    except Exception:
        return None


def _resolve_level() -> int:
    current = _current_settings()
    if getattr(current, "debug", False) is True:
        return logging.DEBUG

    level_name = os.getenv("LOG_LEVEL") or getattr(current, "log_level", None) or "INFO"
    if not isinstance(level_name, str):
        return logging.INFO
    return getattr(logging, level_name.upper(), logging.INFO)


def _build_console_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter()
    if HAVE_COLORLOG:
        return colorlog.ColoredFormatter(
            _COLOR_FORMAT,
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
    return logging.Formatter(_CONSOLE_FORMAT)


def setup_logging(force_setup: bool = False) -> None:
    """Configures the package root logger once, or again when forced."""
    global _is_configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _is_configured and not force_setup:
        return

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    level = _resolve_level()
    log_format = (
        os.getenv("LOG_FORMAT")
        or getattr(_current_settings(), "log_format", None)
        or "console"
    ).lower()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(_build_console_formatter(log_format))
    root.addHandler(console_handler)

    if "PYTEST_CURRENT_TEST" not in os.environ:
        try:
            log_dir = get_base_dir() / "logs"
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_dir / LOG_FILE_NAME, maxBytes=10 * 1024 * 1024, backupCount=5
            )
            file_handler.setFormatter(JsonFormatter())
            root.addHandler(file_handler)
        except Exception as e:
            root.warning(f"File logging disabled: {e}")

    root.setLevel(level)
    root.propagate = True
    _loggers[ROOT_LOGGER_NAME] = root
    _is_configured = True


def get_logger(name: str) -> logging.Logger:
    """Returns a child of the package logger, configuring logging on first use."""
    if not _is_configured:
        setup_logging()

    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        full_name = name
    else:
        full_name = f"{ROOT_LOGGER_NAME}.{name}"

    if full_name not in _loggers:
        _loggers[full_name] = logging.getLogger(full_name)
    return _loggers[full_name]


def reset_logging() -> None:
    """Drops all handlers and cached loggers. Used by tests."""
    global _is_configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    _loggers.clear()
    root.setLevel(logging.NOTSET)
    _is_configured = False
