#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

"""
Mempool Sniper – Profit Estimator
=================================
Estimation stage: prices the gas of a follow-up swap and scores each decoded
event with a pluggable profit model.
License: MIT
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, NamedTuple, Optional

from mempool_sniper.core.models import DecodedEvent, ProfitEstimate, RiskLevel
from mempool_sniper.core.worker_pool import WorkerPool
from mempool_sniper.monitoring.pipeline_stats import PipelineStats
from mempool_sniper.utils.custom_exceptions import EstimationError
from mempool_sniper.utils.logging_config import get_logger

logger = get_logger(__name__)

GWEI = 10**9
BASE_TX_GAS = 21_000
SWAP_GAS_SURCHARGE = 50_000
SWAP_GAS_UNITS = BASE_TX_GAS + SWAP_GAS_SURCHARGE
DEFAULT_FALLBACK_GAS_PRICE = 30 * GWEI


class ProfitAssessment(NamedTuple):
    gross_profit: int
    success_rate: float
    risk_level: RiskLevel


ProfitModel = Callable[[DecodedEvent, int], ProfitAssessment]


def assess_risk(success_rate: float) -> RiskLevel:
    if success_rate >= 0.9:
        return RiskLevel.LOW
    if success_rate >= 0.7:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


class PercentageProfitModel:
    """
    Flat-percentage heuristic.

    Gross profit is ``profit_bps`` basis points of the swap value. The
    success rate starts at 0.8 and is discounted for large swaps (more
    competition) and for congested gas prices.
    """

    def __init__(
        self,
        profit_bps: int = 100,
        base_success_rate: float = 0.8,
        large_value_threshold: int = 10**18,
        large_value_factor: float = 0.7,
        high_gas_threshold: int = 100 * GWEI,
        high_gas_factor: float = 0.9,
    ):
        self.profit_bps = profit_bps
        self.base_success_rate = base_success_rate
        self.large_value_threshold = large_value_threshold
        self.large_value_factor = large_value_factor
        self.high_gas_threshold = high_gas_threshold
        self.high_gas_factor = high_gas_factor

    def __call__(self, event: DecodedEvent, gas_cost: int) -> ProfitAssessment:
        value = event.transaction.value
        gross = value * self.profit_bps // 10_000

        rate = self.base_success_rate
        if value > self.large_value_threshold:
            rate *= self.large_value_factor
        if event.transaction.gas_price > self.high_gas_threshold:
            rate *= self.high_gas_factor
        rate = min(max(rate, 0.0), 1.0)

        return ProfitAssessment(gross, rate, assess_risk(rate))


class ProfitEstimator(WorkerPool):
    """Worker pool turning DecodedEvents into ProfitEstimates."""

    def __init__(
        self,
        input_queue: asyncio.Queue,
        output_queue: asyncio.Queue,
        stats: PipelineStats,
        model: Optional[ProfitModel] = None,
        workers: int = 3,
        fallback_gas_price_wei: int = DEFAULT_FALLBACK_GAS_PRICE,
    ):
        super().__init__("estimator", input_queue, workers, output_queue)
        self._stats = stats
        self._model: ProfitModel = model or PercentageProfitModel()
        self._fallback_gas_price = fallback_gas_price_wei

    def effective_gas_price(self, event: DecodedEvent) -> int:
        gas_price = event.transaction.gas_price
        return gas_price if gas_price > 0 else self._fallback_gas_price

    def estimate_gas_cost(self, event: DecodedEvent) -> int:
        return SWAP_GAS_UNITS * self.effective_gas_price(event)

    def estimate(self, event: DecodedEvent) -> ProfitEstimate:
        """
        Scores one decoded swap.

        Raises:
            EstimationError: If the profit model fails or returns an invalid
                assessment.
        """
        started = time.perf_counter()
        self._stats.increment("simulated")

        gas_price = self.effective_gas_price(event)
        gas_cost = SWAP_GAS_UNITS * gas_price
        try:
            gross, success_rate, risk = self._model(event, gas_cost)
            estimate = ProfitEstimate(
                tx_hash=event.tx_hash,
                target_contract=event.target_contract,
                method=event.method,
                gross_profit=int(gross),
                gas_cost=gas_cost,
                net_profit=max(0, int(gross) - gas_cost),
                success_rate=success_rate,
                risk_level=RiskLevel(risk),
                estimation_ms=(time.perf_counter() - started) * 1000,
                gas_price=gas_price,
            )
        except Exception as e:
            raise EstimationError(
                f"Profit model failed: {e}",
                tx_hash=event.tx_hash,
                method=event.method,
                cause=e,
            ) from e

        if estimate.is_profitable:
            self._stats.increment("profitable")
        logger.debug(
            f"Estimated {event.method} tx {event.tx_hash[:10]}...: "
            f"gross={estimate.gross_profit} gas={gas_cost} net={estimate.net_profit} "
            f"success={estimate.success_rate:.2f} risk={estimate.risk_level.value}"
        )
        return estimate

    def handle(self, item: DecodedEvent) -> ProfitEstimate:
        return self.estimate(item)

    def on_error(self, item: DecodedEvent, error: Exception) -> None:
        self._stats.increment("failed")

    def on_output_full(self, result: ProfitEstimate) -> None:
        self._stats.increment("dropped")
        logger.warning(f"Result queue full, dropping estimate: {result.tx_hash[:10]}...")
