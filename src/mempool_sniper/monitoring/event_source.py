#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

"""
Mempool Sniper – Event Source
=============================
Keeps a live pending-transaction subscription open against one node,
reconnecting with exponential backoff, and fans each new hash out to the
transaction fetcher.
License: MIT
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Mapping, Optional, Set, Tuple

from cachetools import TTLCache

from mempool_sniper.integrations.web3_feed import UpstreamFeed
from mempool_sniper.monitoring.pipeline_stats import PipelineStats
from mempool_sniper.monitoring.txpool_fetcher import TransactionFetcher, to_hex_hash
from mempool_sniper.utils.custom_exceptions import AlreadyRunningError, SubscriptionError
from mempool_sniper.utils.error_recovery import BackoffPolicy
from mempool_sniper.utils.logging_config import get_logger

logger = get_logger(__name__)

FeedFactory = Callable[[], Awaitable[UpstreamFeed]]

STATS_LOG_EVERY = 100


class ConnectionPhase(str, Enum):
    STOPPED = "stopped"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    DEGRADED = "degraded"


@dataclass
class SubscriptionState:
    """Mutable connection bookkeeping. Only touched under the source lock."""

    endpoint: str = ""
    is_running: bool = False
    phase: ConnectionPhase = ConnectionPhase.STOPPED
    # Transactions handed to the decode queue.
    tx_count: int = 0
    start_time: float = 0.0
    retry_count: int = 0
    reconnects: int = 0
    last_block_number: Optional[int] = None


class EventSource:
    """
    Subscription supervisor for new heads and pending transaction hashes.

    A single supervisor task owns the connection. Any stream error moves the
    source to ``degraded``: the feed is closed and released, the backoff
    delay is slept, and a fresh connection is requested from the factory.
    Retries never give up; only ``stop()`` ends the loop.
    """

    def __init__(
        self,
        feed_factory: FeedFactory,
        fetcher: TransactionFetcher,
        stats: PipelineStats,
        backoff: Optional[BackoffPolicy] = None,
        endpoint: str = "",
        max_inflight_fetches: int = 500,
        seen_hash_ttl: float = 300.0,
        seen_hash_cache_size: int = 50_000,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._feed_factory = feed_factory
        self._fetcher = fetcher
        self._stats = stats
        self._backoff = backoff or BackoffPolicy()
        self._max_inflight = max_inflight_fetches
        self._sleep = sleep

        self._lock = threading.Lock()
        self._state = SubscriptionState(endpoint=endpoint)
        self._feed: Optional[UpstreamFeed] = None
        self._seen: TTLCache = TTLCache(maxsize=seen_hash_cache_size, ttl=seen_hash_ttl)
        self._inflight: Set[asyncio.Task] = set()
        self._supervisor: Optional[asyncio.Task] = None
        self._subscribed = asyncio.Event()

    @property
    def phase(self) -> ConnectionPhase:
        with self._lock:
            return self._state.phase

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._state.is_running

    async def start(self) -> None:
        with self._lock:
            if self._state.is_running:
                raise AlreadyRunningError(component="event_source")
            self._state.is_running = True
            self._state.start_time = time.time()
            self._state.tx_count = 0
            self._backoff.reset()
            self._supervisor = asyncio.create_task(self._supervise())

        logger.info(f"Event source started for {self._state.endpoint or 'upstream feed'}")

    async def wait_subscribed(self, timeout: Optional[float] = None) -> bool:
        """Waits until both subscriptions are live. False on timeout."""
        try:
            await asyncio.wait_for(self._subscribed.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def stop(self) -> None:
        with self._lock:
            if not self._state.is_running and self._supervisor is None:
                return
            self._state.is_running = False
            supervisor, self._supervisor = self._supervisor, None

        if supervisor is not None:
            supervisor.cancel()
            await asyncio.gather(supervisor, return_exceptions=True)

        while True:
            with self._lock:
                inflight = [task for task in self._inflight if not task.done()]
            if not inflight:
                break
            for task in inflight:
                task.cancel()
            await asyncio.gather(*inflight, return_exceptions=True)

        await self._release_feed()
        self._subscribed.clear()
        self._set_phase(ConnectionPhase.STOPPED)

        final = self.get_stats()
        logger.info(
            f"Event source stopped. Forwarded tx: {final['tx_count']}, "
            f"duration: {final['duration']:.1f}s, TPS: {final['tps']:.2f}"
        )

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            state = SubscriptionState(**vars(self._state))
            inflight = len(self._inflight)
            current_backoff = self._backoff.current

        duration = time.time() - state.start_time if state.start_time else 0.0
        return {
            "is_running": state.is_running,
            "phase": state.phase.value,
            "tx_count": state.tx_count,
            "duration": duration,
            "tps": state.tx_count / duration if duration > 0 else 0.0,
            "endpoint": state.endpoint,
            "current_backoff": current_backoff,
            "retry_count": state.retry_count,
            "reconnects": state.reconnects,
            "last_block_number": state.last_block_number,
            "inflight_fetches": inflight,
        }

    # supervisor

    async def _supervise(self) -> None:
        connected_once = False

        while self.is_running:
            self._set_phase(ConnectionPhase.CONNECTING)
            try:
                feed = await self._feed_factory()
                await self._install_feed(feed)
                heads, pending = await self._open_subscriptions(feed)

                self._backoff.reset()
                with self._lock:
                    self._state.phase = ConnectionPhase.SUBSCRIBED
                    if connected_once:
                        self._state.reconnects += 1
                connected_once = True
                self._subscribed.set()
                logger.info(f"Subscribed to new heads and pending transactions: {feed.endpoint}")

                await self._consume(heads, pending)
                raise SubscriptionError(
                    "Subscription streams ended", endpoint=feed.endpoint
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._subscribed.clear()
                delay = self._backoff.next_delay()
                with self._lock:
                    self._state.phase = ConnectionPhase.DEGRADED
                    self._state.retry_count += 1
                logger.warning(f"Subscription error: {e}. Reconnecting in {delay:.1f}s")
                await self._release_feed()
                await self._sleep(delay)

    async def _open_subscriptions(
        self, feed: UpstreamFeed
    ) -> Tuple[AsyncIterator[Mapping[str, Any]], AsyncIterator[str]]:
        results = await asyncio.gather(
            feed.subscribe_heads(), feed.subscribe_pending(), return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        heads, pending = results
        return heads, pending

    async def _consume(self, heads: AsyncIterator[Mapping[str, Any]], pending: AsyncIterator[str]) -> None:
        tasks = [
            asyncio.create_task(self._consume_heads(heads)),
            asyncio.create_task(self._consume_pending(pending)),
        ]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()

    async def _consume_heads(self, heads: AsyncIterator[Mapping[str, Any]]) -> None:
        async for header in heads:
            number = header.get("number") if isinstance(header, Mapping) else None
            try:
                if isinstance(number, str):
                    number = int(number, 16)
                elif number is not None:
                    number = int(number)
            except (ValueError, TypeError):
                self._stats.increment("malformed")
                logger.debug(f"Skipping head with malformed block number: {number!r}")
                continue
            with self._lock:
                if number is not None:
                    self._state.last_block_number = number
            logger.debug(f"New block: {number}")

    async def _consume_pending(self, pending: AsyncIterator[str]) -> None:
        async for tx_hash in pending:
            self._on_pending_hash(to_hex_hash(tx_hash))

    def _on_pending_hash(self, tx_hash: str) -> None:
        with self._lock:
            if not self._state.is_running:
                return
            duplicate = tx_hash in self._seen
            saturated = not duplicate and len(self._inflight) >= self._max_inflight
            if not duplicate and not saturated:
                self._seen[tx_hash] = True

        self._stats.increment("received")
        received = self._stats.get("received")
        if received % STATS_LOG_EVERY == 0:
            stats = self.get_stats()
            logger.info(
                f"Pending tx stats - received: {received}, forwarded: {stats['tx_count']}, "
                f"TPS: {stats['tps']:.2f}, in-flight fetches: {stats['inflight_fetches']}"
            )

        if duplicate:
            self._stats.increment("duplicates")
            return
        if saturated:
            self._stats.increment("fetch_saturated")
            logger.debug(f"Fetch fan-out saturated, skipping {tx_hash[:10]}...")
            return

        task = asyncio.create_task(self._fetcher.process(tx_hash, self._lookup))
        with self._lock:
            self._inflight.add(task)
        task.add_done_callback(self._on_fetch_done)

    def _on_fetch_done(self, task: asyncio.Task) -> None:
        with self._lock:
            self._inflight.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Transaction fetch task failed: {error}")
            return
        if task.result():
            with self._lock:
                self._state.tx_count += 1

    async def _lookup(self, tx_hash: str) -> Tuple[Mapping[str, Any], bool]:
        with self._lock:
            feed = self._feed
        if feed is None:
            raise SubscriptionError("No active upstream feed", endpoint=self._state.endpoint)
        return await feed.get_transaction(tx_hash)

    # feed handle

    async def _install_feed(self, feed: UpstreamFeed) -> None:
        await self._release_feed()
        with self._lock:
            self._feed = feed
            if feed.endpoint:
                self._state.endpoint = feed.endpoint

    async def _release_feed(self) -> None:
        with self._lock:
            feed, self._feed = self._feed, None
        if feed is None:
            return
        try:
            await feed.close()
        except Exception as e:
            logger.warning(f"Error closing upstream feed: {e}")

    def _set_phase(self, phase: ConnectionPhase) -> None:
        with self._lock:
            self._state.phase = phase
