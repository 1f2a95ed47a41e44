#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional

from mempool_sniper.core.models import ProfitEstimate
from mempool_sniper.core.worker_pool import WorkerPool
from mempool_sniper.monitoring.pipeline_stats import PipelineStats
from mempool_sniper.utils.error_handling import safe_call
from mempool_sniper.utils.logging_config import get_logger
from mempool_sniper.utils.notification_service import NotificationService

logger = get_logger(__name__)

OpportunityHandler = Callable[[ProfitEstimate], Awaitable[None]]


class ResultSink(WorkerPool):
    """
    Final stage: applies the profit threshold and the gas-price ceiling,
    then surfaces what passes to the registered handlers and the notifier.

    Runs a single consumer so each estimate is delivered at most once.
    """

    def __init__(
        self,
        input_queue: asyncio.Queue,
        stats: PipelineStats,
        min_profit_wei: int,
        max_gas_price_wei: int,
        notifier: Optional[NotificationService] = None,
        handlers: Optional[List[OpportunityHandler]] = None,
    ):
        super().__init__("sink", input_queue, 1)
        self._stats = stats
        self.min_profit_wei = min_profit_wei
        self.max_gas_price_wei = max_gas_price_wei
        self._notifier = notifier
        self._handlers: List[OpportunityHandler] = list(handlers or [])

    def add_handler(self, handler: OpportunityHandler) -> None:
        self._handlers.append(handler)

    def is_opportunity(self, estimate: ProfitEstimate) -> bool:
        return (
            estimate.net_profit >= self.min_profit_wei
            and estimate.gas_price <= self.max_gas_price_wei
        )

    async def handle(self, estimate: ProfitEstimate) -> None:
        if not self.is_opportunity(estimate):
            logger.debug(
                f"Below threshold: tx {estimate.tx_hash[:10]}... "
                f"net={estimate.net_profit} gas_price={estimate.gas_price}"
            )
            return None

        self._stats.increment("opportunities")
        logger.info(
            f"[OPPORTUNITY] {estimate.method} on {estimate.target_contract} "
            f"tx {estimate.tx_hash}: net {estimate.net_profit_eth} ETH, "
            f"success {estimate.success_rate:.0%}, risk {estimate.risk_level.value}"
        )

        for handler in self._handlers:
            await safe_call(handler, estimate, component_name="sink-handler")
        if self._notifier is not None:
            await safe_call(
                self._notifier.notify_opportunity, estimate, component_name="notifier"
            )
        return None
