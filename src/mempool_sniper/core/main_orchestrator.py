#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

"""
Mempool Sniper – Main Orchestrator
==================================
Wires the pipeline stages together from settings and owns their lifecycle.
License: MIT
"""

from __future__ import annotations

import asyncio
import signal
from typing import Any, Dict, Optional

from mempool_sniper.config.loaders import get_settings
from mempool_sniper.config.settings import GlobalSettings
from mempool_sniper.core.method_registry import MethodRegistry
from mempool_sniper.engines.profit_estimator import (
    PercentageProfitModel,
    ProfitEstimator,
    ProfitModel,
)
from mempool_sniper.engines.result_sink import ResultSink
from mempool_sniper.engines.swap_decoder import SwapDecoder
from mempool_sniper.integrations.web3_feed import UpstreamFeed, create_feed
from mempool_sniper.monitoring.event_source import EventSource, FeedFactory
from mempool_sniper.monitoring.pipeline_stats import PipelineStats
from mempool_sniper.monitoring.txpool_fetcher import TransactionFetcher
from mempool_sniper.utils.custom_exceptions import AlreadyRunningError
from mempool_sniper.utils.error_recovery import BackoffPolicy
from mempool_sniper.utils.logging_config import get_logger
from mempool_sniper.utils.notification_service import NotificationService

logger = get_logger(__name__)


class MainOrchestrator:
    """Builds the queues and stages, starts them downstream-first and stops them upstream-first."""

    def __init__(
        self,
        settings: Optional[GlobalSettings] = None,
        feed_factory: Optional[FeedFactory] = None,
        registry: Optional[MethodRegistry] = None,
        profit_model: Optional[ProfitModel] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        self._settings = settings or get_settings()
        s = self._settings

        self._shutdown_event = asyncio.Event()
        self._is_running = False
        self._stats_task: Optional[asyncio.Task] = None

        self._stats = PipelineStats()
        self._registry = registry or self._load_registry()
        self._notification_service = notification_service or NotificationService(
            s.notifications
        )

        self.tx_queue: asyncio.Queue = asyncio.Queue(maxsize=s.tx_queue_size)
        self.decoded_queue: asyncio.Queue = asyncio.Queue(maxsize=s.decoded_queue_size)
        self.result_queue: asyncio.Queue = asyncio.Queue(maxsize=s.result_queue_size)

        self._fetcher = TransactionFetcher(
            self.tx_queue,
            self._stats,
            attempts=s.fetch_attempts,
            retry_delay=s.fetch_retry_delay,
            chain_id=s.chain_id,
        )
        self._event_source = EventSource(
            feed_factory or self._default_feed_factory,
            self._fetcher,
            self._stats,
            backoff=BackoffPolicy(
                initial=s.backoff_initial,
                multiplier=s.backoff_multiplier,
                maximum=s.backoff_max,
            ),
            endpoint=s.websocket_url,
            max_inflight_fetches=s.max_inflight_fetches,
            seen_hash_ttl=s.seen_hash_ttl,
            seen_hash_cache_size=s.seen_hash_cache_size,
        )
        self._decoder = SwapDecoder(
            self.tx_queue,
            self.decoded_queue,
            self._stats,
            self._registry,
            workers=s.decode_workers,
        )
        self._estimator = ProfitEstimator(
            self.decoded_queue,
            self.result_queue,
            self._stats,
            model=profit_model or PercentageProfitModel(profit_bps=s.profit_bps),
            workers=s.estimate_workers,
            fallback_gas_price_wei=s.fallback_gas_price_wei,
        )
        self._sink = ResultSink(
            self.result_queue,
            self._stats,
            min_profit_wei=s.min_profit_wei,
            max_gas_price_wei=s.max_gas_price_wei,
            notifier=self._notification_service,
        )

    @property
    def stats(self) -> PipelineStats:
        return self._stats

    @property
    def event_source(self) -> EventSource:
        return self._event_source

    @property
    def sink(self) -> ResultSink:
        return self._sink

    @property
    def is_running(self) -> bool:
        return self._is_running

    def _load_registry(self) -> MethodRegistry:
        path = self._settings.method_registry_path
        return MethodRegistry.from_file(path) if path else MethodRegistry.default()

    async def _default_feed_factory(self) -> UpstreamFeed:
        return await create_feed(self._settings.websocket_url, self._settings.chain_id)

    async def start(self) -> None:
        if self._is_running:
            raise AlreadyRunningError(component="orchestrator")
        self._is_running = True

        logger.info(
            f"Starting pipeline: {self._settings.decode_workers} decoders, "
            f"{self._settings.estimate_workers} estimators, "
            f"registry v{self._registry.version}"
        )
        await self._sink.start()
        await self._estimator.start()
        await self._decoder.start()
        await self._event_source.start()

    async def stop(self) -> None:
        if not self._is_running:
            return
        self._is_running = False

        logger.info("Stopping pipeline...")
        await self._event_source.stop()
        await self._decoder.stop()
        await self._estimator.stop()
        await self._sink.stop()
        await self._notification_service.close()

        self._stats.log_summary()
        logger.info("Pipeline stopped.")

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    async def run(self) -> None:
        """Runs until SIGINT/SIGTERM or ``request_shutdown()``."""
        self._install_signal_handlers()
        await self.start()
        self._stats_task = asyncio.create_task(self._stats_report_loop())
        try:
            await self._shutdown_event.wait()
            logger.info("Shutdown requested.")
        finally:
            self._stats_task.cancel()
            await asyncio.gather(self._stats_task, return_exceptions=True)
            self._stats_task = None
            await self.stop()
            self._remove_signal_handlers()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or outside the main thread.
                logger.debug(f"Could not install handler for {sig.name}")

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass

    async def _stats_report_loop(self) -> None:
        while True:
            await asyncio.sleep(self._settings.stats_log_interval)
            self._stats.log_summary()
            source = self._event_source.get_stats()
            logger.info(
                f"Event source - phase: {source['phase']}, forwarded tx: {source['tx_count']}, "
                f"TPS: {source['tps']:.2f}, reconnects: {source['reconnects']}"
            )

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_running": self._is_running,
            "event_source": self._event_source.get_stats(),
            "pipeline": self._stats.get_stats(),
            "queues": {
                "tx": self.tx_queue.qsize(),
                "decoded": self.decoded_queue.qsize(),
                "result": self.result_queue.qsize(),
            },
        }
