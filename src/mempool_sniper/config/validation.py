#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from ..utils.custom_exceptions import ConfigurationError, ValidationError
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


class ConfigValidator:
    """Validates configuration settings for Mempool Sniper."""

    VALID_CHAIN_IDS = {
        1: "Ethereum Mainnet",
        137: "Polygon",
        42161: "Arbitrum One",
        10: "Optimism",
        56: "BSC",
        43114: "Avalanche",
        8453: "Base",
        250: "Fantom",
        # Test networks
        11155111: "Sepolia",
        17000: "Holesky",
        31337: "Local (anvil/hardhat)",
        1337: "Local (geth dev)",
    }

    # Endpoints copied from provider docs without a real key.
    PLACEHOLDER_PATTERN = re.compile(r"YOUR_[A-Z_]*(KEY|ID)", re.IGNORECASE)

    VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    VALID_LOG_FORMATS = {"console", "json"}

    @classmethod
    def validate_websocket_url(cls, url: str) -> str:
        if not url or not isinstance(url, str):
            raise ValidationError(
                "WebSocket URL cannot be empty", field="websocket_url"
            )

        if not (url.startswith("ws://") or url.startswith("wss://")):
            raise ValidationError(
                "WebSocket URL must start with ws:// or wss://",
                field="websocket_url",
                value=url,
                expected_type="ws(s) URL",
            )

        if cls.PLACEHOLDER_PATTERN.search(url):
            raise ValidationError(
                "WebSocket URL still contains a placeholder project id",
                field="websocket_url",
                value=url,
            )

        if url.startswith("ws://") and "127.0.0.1" not in url and "localhost" not in url:
            logger.warning(f"Unencrypted WebSocket endpoint in use: {url}")

        return url

    @classmethod
    def validate_chain_id(cls, chain_id: int) -> int:
        if chain_id not in cls.VALID_CHAIN_IDS:
            raise ValidationError(
                f"Unsupported chain ID: {chain_id}. "
                f"Supported chains: {list(cls.VALID_CHAIN_IDS.keys())}",
                field="chain_id",
                value=chain_id,
            )
        return chain_id

    @classmethod
    def validate_positive(cls, field: str, value: Any) -> Any:
        if value is None or value <= 0:
            raise ValidationError(
                f"{field} must be greater than 0",
                field=field,
                value=value,
                expected_type="positive number",
            )
        return value

    @classmethod
    def validate_backoff(
        cls, initial: float, multiplier: float, maximum: float
    ) -> None:
        cls.validate_positive("backoff_initial", initial)
        if multiplier < 1:
            raise ValidationError(
                "backoff_multiplier must be at least 1",
                field="backoff_multiplier",
                value=multiplier,
            )
        if maximum < initial:
            raise ValidationError(
                "backoff_max must not be lower than backoff_initial",
                field="backoff_max",
                value=maximum,
            )

    @classmethod
    def validate_profit_bps(cls, profit_bps: int) -> int:
        if not 0 <= profit_bps <= 10_000:
            raise ValidationError(
                "profit_bps must be between 0 and 10000",
                field="profit_bps",
                value=profit_bps,
            )
        return profit_bps

    @classmethod
    def validate_logging(cls, log_level: str, log_format: str) -> None:
        if log_level.upper() not in cls.VALID_LOG_LEVELS:
            raise ValidationError(
                f"Invalid log level: {log_level}",
                field="log_level",
                value=log_level,
                expected_type=", ".join(sorted(cls.VALID_LOG_LEVELS)),
            )
        if log_format.lower() not in cls.VALID_LOG_FORMATS:
            raise ValidationError(
                f"Invalid log format: {log_format}",
                field="log_format",
                value=log_format,
            )

    @classmethod
    def validate_registry_path(cls, path: str) -> str:
        if not Path(path).is_file():
            raise ConfigurationError(
                "Method registry file not found", key="method_registry_path", value=path
            )
        return path


def validate_complete_config(settings: Any) -> None:
    """Runs every check against a loaded settings object."""
    ConfigValidator.validate_websocket_url(settings.websocket_url)
    ConfigValidator.validate_chain_id(settings.chain_id)

    for field in (
        "min_profit_wei",
        "max_gas_price_wei",
        "fallback_gas_price_wei",
        "decode_workers",
        "estimate_workers",
        "tx_queue_size",
        "decoded_queue_size",
        "result_queue_size",
        "max_inflight_fetches",
        "fetch_attempts",
        "fetch_retry_delay",
        "seen_hash_ttl",
        "seen_hash_cache_size",
        "stats_log_interval",
    ):
        ConfigValidator.validate_positive(field, getattr(settings, field))

    ConfigValidator.validate_backoff(
        settings.backoff_initial, settings.backoff_multiplier, settings.backoff_max
    )
    ConfigValidator.validate_profit_bps(settings.profit_bps)
    ConfigValidator.validate_logging(settings.log_level, settings.log_format)

    if settings.method_registry_path:
        ConfigValidator.validate_registry_path(settings.method_registry_path)

    logger.debug("Configuration validated.")
