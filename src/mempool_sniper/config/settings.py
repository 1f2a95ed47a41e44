#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GWEI = 10**9


class NotificationSettings(BaseModel):
    """Alert channels used by the result sink."""

    channels: List[str] = Field(default_factory=list)
    min_level: str = "INFO"
    slack_webhook_url: Optional[str] = None
    discord_webhook_url: Optional[str] = None
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None

    @field_validator("channels", mode="before")
    @classmethod
    def _split_channels(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


class GlobalSettings(BaseSettings):
    """Every tunable of the pipeline. Loaded once at startup."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )

    # Node
    websocket_url: str = "ws://127.0.0.1:8546"
    chain_id: int = 1

    # Profitability
    min_profit_wei: int = 10**15
    max_gas_price_wei: int = 50 * GWEI
    fallback_gas_price_wei: int = 30 * GWEI
    profit_bps: int = 100

    # Worker pools and queues
    decode_workers: int = 5
    estimate_workers: int = 3
    tx_queue_size: int = 100
    decoded_queue_size: int = 100
    result_queue_size: int = 100
    max_inflight_fetches: int = 500

    # Fetch retries
    fetch_attempts: int = 3
    fetch_retry_delay: float = 0.1

    # Reconnect backoff
    backoff_initial: float = 1.0
    backoff_multiplier: float = 2.0
    backoff_max: float = 30.0

    # Duplicate suppression
    seen_hash_ttl: float = 300.0
    seen_hash_cache_size: int = 50_000

    stats_log_interval: float = 60.0
    method_registry_path: Optional[str] = None

    # Logging
    debug: bool = False
    log_level: str = "INFO"
    log_format: str = "console"

    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
