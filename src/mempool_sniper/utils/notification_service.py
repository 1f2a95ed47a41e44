#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from mempool_sniper.config.loaders import get_settings
from mempool_sniper.config.settings import NotificationSettings
from mempool_sniper.core.models import ProfitEstimate
from mempool_sniper.utils.logging_config import get_logger

logger = get_logger(__name__)

LEVELS = {"DEBUG": 0, "INFO": 1, "WARNING": 2, "ERROR": 3, "CRITICAL": 4}
SUPPORTED_CHANNELS = ("slack", "discord", "telegram")


def _coerce_notification_settings(raw: Any) -> NotificationSettings:
    if raw is None:
        return NotificationSettings()
    if isinstance(raw, NotificationSettings):
        return raw
    if isinstance(raw, dict):
        return NotificationSettings(**raw)
    attribs = {key: getattr(raw, key, None) for key in NotificationSettings.model_fields}
    return NotificationSettings(**{k: v for k, v in attribs.items() if v is not None})


class NotificationService:
    """Pushes opportunity alerts to Slack, Discord and Telegram webhooks."""

    def __init__(self, settings: Optional[Any] = None):
        self._session: Optional[aiohttp.ClientSession] = None
        self._config: Optional[NotificationSettings] = None
        self._channels: List[str] = []
        self._min_level = LEVELS["INFO"]
        if settings is not None:
            self._apply(_coerce_notification_settings(settings))

    @property
    def config(self) -> NotificationSettings:
        if self._config is None:
            self._load_configuration()
        return self._config

    @property
    def channels(self) -> List[str]:
        if self._config is None:
            self._load_configuration()
        return list(self._channels)

    def _apply(self, config: NotificationSettings) -> None:
        self._config = config
        self._channels = [
            ch.strip().lower()
            for ch in config.channels
            if ch.strip().lower() in SUPPORTED_CHANNELS
        ]
        self._min_level = self.level_to_int(config.min_level)
        if self._channels:
            logger.info(f"Notifications enabled on: {', '.join(self._channels)}")

    def _load_configuration(self) -> None:
        try:
            raw = getattr(get_settings(), "notifications", None)
            self._apply(_coerce_notification_settings(raw))
        except Exception as exc:
            logger.debug(f"Notification configuration unavailable: {exc}")
            self._apply(NotificationSettings())

    @staticmethod
    def level_to_int(level: str) -> int:
        return LEVELS.get(str(level).upper(), LEVELS["INFO"])

    def should_send(self, level: str) -> bool:
        if not self.channels:
            return False
        return self.level_to_int(level) >= self._min_level

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=10)
            )
        return self._session

    async def send_alert(
        self,
        title: str,
        message: str,
        level: str = "INFO",
        details: Optional[Dict[str, Any]] = None,
    ) -> int:
        """
        Sends an alert to every configured channel at or above ``min_level``.

        Delivery failures are logged, never raised.

        Returns:
            The number of channels the alert was dispatched to.
        """
        if not self.should_send(level):
            return 0

        config = self.config
        senders = []
        for channel in self._channels:
            if channel == "slack" and config.slack_webhook_url:
                senders.append(self._send_slack(title, message, level, details))
            elif channel == "discord" and config.discord_webhook_url:
                senders.append(self._send_discord(title, message, level, details))
            elif (
                channel == "telegram"
                and config.telegram_bot_token
                and config.telegram_chat_id
            ):
                senders.append(self._send_telegram(title, message, level, details))
            else:
                logger.debug(f"Channel {channel} is enabled but not configured")

        if senders:
            await asyncio.gather(*senders, return_exceptions=True)
        return len(senders)

    async def notify_opportunity(self, estimate: ProfitEstimate) -> int:
        return await self.send_alert(
            title="Profitable swap detected",
            message=(
                f"{estimate.method} on {estimate.target_contract}: "
                f"net {estimate.net_profit_eth} ETH ({estimate.risk_level.value} risk)"
            ),
            level="INFO",
            details=estimate.to_dict(),
        )

    def _format_details(self, details: Optional[Dict[str, Any]]) -> str:
        if not details:
            return ""
        return "\n".join(
            f"*{key.replace('_', ' ').title()}:* `{value}`"
            for key, value in details.items()
        )

    async def _post(self, channel: str, url: str, payload: Dict[str, Any]) -> None:
        try:
            session = await self._get_session()
            async with session.post(url, json=payload) as response:
                if not response.ok:
                    logger.error(
                        f"{channel} notification failed: "
                        f"{response.status} {await response.text()}"
                    )
        except Exception as e:
            logger.error(f"Error sending {channel} notification: {e}", exc_info=True)

    async def _send_slack(self, title, message, level, details) -> None:
        text = f"*{level.upper()}: {title}*\n{message}"
        if details:
            text += "\n" + self._format_details(details)
        await self._post("Slack", self.config.slack_webhook_url, {"text": text})

    async def _send_discord(self, title, message, level, details) -> None:
        fields = [
            {"name": key.replace("_", " ").title(), "value": f"`{value}`", "inline": True}
            for key, value in (details or {}).items()
        ]
        payload = {
            "embeds": [
                {
                    "title": f"[{level.upper()}] {title}",
                    "description": message,
                    "color": 3066993 if level.upper() == "INFO" else 13632027,
                    "fields": fields,
                }
            ]
        }
        await self._post("Discord", self.config.discord_webhook_url, payload)

    async def _send_telegram(self, title, message, level, details) -> None:
        url = f"https://api.telegram.org/bot{self.config.telegram_bot_token}/sendMessage"
        payload = {
            "chat_id": self.config.telegram_chat_id,
            "text": f"*{level.upper()}: {title}*\n\n{message}\n\n{self._format_details(details)}",
            "parse_mode": "Markdown",
        }
        await self._post("Telegram", url, payload)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("NotificationService session closed.")
        self._session = None
