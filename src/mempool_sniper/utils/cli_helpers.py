#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import functools
from typing import Any, Callable, Dict, Iterable

import typer
from rich.console import Console
from rich.markup import escape

from mempool_sniper.utils.custom_exceptions import MempoolSniperError
from mempool_sniper.utils.logging_config import get_logger

logger = get_logger(__name__)
console = Console()

SENSITIVE_MARKERS = ("token", "webhook", "secret", "password", "key")
REDACTED = "***REDACTED***"


def success_message(message: str) -> None:
    console.print(f"[bold green]✓[/] {message}")


def info_message(message: str) -> None:
    console.print(f"[cyan]ℹ[/] {message}")


def error_message(message: str) -> None:
    console.print(f"[bold red]✗[/] {escape(message)}")


def handle_cli_errors(exit_code: int = 1) -> Callable:
    """Turns package errors into a red message and a non-zero exit.

    Known errors exit with ``exit_code``; anything unexpected exits with 2
    after logging the traceback.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except typer.Exit:
                raise
            except MempoolSniperError as e:
                error_message(str(e))
                raise typer.Exit(code=exit_code)
            except Exception as e:
                logger.exception(f"Unexpected error in {func.__name__}")
                error_message(f"Unexpected error: {e}")
                raise typer.Exit(code=2)

        return wrapper

    return decorator


def redact_config(
    config: Dict[str, Any],
    show_sensitive: bool = False,
    markers: Iterable[str] = SENSITIVE_MARKERS,
) -> Dict[str, Any]:
    """Masks values whose key looks like a credential, recursing into nested dicts."""
    if show_sensitive:
        return config
    markers = tuple(markers)
    redacted: Dict[str, Any] = {}
    for key, value in config.items():
        if isinstance(value, dict):
            redacted[key] = redact_config(value, markers=markers)
        elif value and any(m in key.lower() for m in markers):
            redacted[key] = REDACTED
        else:
            redacted[key] = value
    return redacted
