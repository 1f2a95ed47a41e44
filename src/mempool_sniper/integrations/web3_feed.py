#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Mapping, Optional, Tuple

from web3 import AsyncWeb3, WebSocketProvider
from web3.middleware import ExtraDataToPOAMiddleware

from mempool_sniper.utils.custom_exceptions import ConnectionError, SubscriptionError
from mempool_sniper.utils.logging_config import get_logger

logger = get_logger(__name__)

# Chains whose block headers carry extra PoA data.
POA_CHAINS = {56, 97, 137, 80001}

_CLOSED = object()


class UpstreamFeed(ABC):
    """The node as the pipeline sees it: two live streams and a lookup call."""

    endpoint: str = ""

    @abstractmethod
    async def subscribe_heads(self) -> AsyncIterator[Mapping[str, Any]]:
        """Opens the new-block-header subscription and returns its stream."""

    @abstractmethod
    async def subscribe_pending(self) -> AsyncIterator[str]:
        """Opens the pending-transaction-hash subscription and returns its stream."""

    @abstractmethod
    async def get_transaction(self, tx_hash: str) -> Tuple[Mapping[str, Any], bool]:
        """
        Looks a transaction up by hash.

        Returns:
            The transaction mapping and whether it is still pending.

        Raises:
            web3.exceptions.TransactionNotFound: If the node does not know it.
        """

    @abstractmethod
    async def close(self) -> None:
        """Releases the connection. Safe to call more than once."""


class Web3PendingFeed(UpstreamFeed):
    """UpstreamFeed over a single AsyncWeb3 WebSocket connection.

    Both subscriptions share one socket; a reader task demultiplexes
    ``process_subscriptions()`` into one queue per subscription id. When the
    socket drops, every open stream raises ``SubscriptionError``.
    """

    def __init__(self, web3: AsyncWeb3, endpoint: str, stream_buffer: int = 1000):
        self._web3 = web3
        self.endpoint = endpoint
        self._stream_buffer = stream_buffer
        self._queues: Dict[str, asyncio.Queue] = {}
        self._reader_task: Optional[asyncio.Task] = None
        self._error: Optional[BaseException] = None
        self._closed = False

    @classmethod
    async def connect(
        cls,
        endpoint: str,
        chain_id: Optional[int] = None,
        timeout: float = 10.0,
    ) -> "Web3PendingFeed":
        """
        Opens a WebSocket connection to ``endpoint``.

        Raises:
            ConnectionError: If the socket cannot be opened within ``timeout``.
        """
        try:
            # Reconnect backoff belongs to the event source, not the provider.
            provider = WebSocketProvider(endpoint, max_connection_retries=1)
            web3 = AsyncWeb3(provider)
            if chain_id in POA_CHAINS:
                web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
                logger.debug(f"PoA middleware added for chain {chain_id}")
            await asyncio.wait_for(provider.connect(), timeout=timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise ConnectionError(
                "Failed to open WebSocket connection",
                endpoint=endpoint,
                chain_id=chain_id,
                cause=e,
            ) from e

        logger.debug(f"WebSocket connection established: {endpoint}")
        return cls(web3, endpoint)

    async def subscribe_heads(self) -> AsyncIterator[Mapping[str, Any]]:
        return await self._subscribe("newHeads")

    async def subscribe_pending(self) -> AsyncIterator[str]:
        return await self._subscribe("newPendingTransactions")

    async def get_transaction(self, tx_hash: str) -> Tuple[Mapping[str, Any], bool]:
        tx = await self._web3.eth.get_transaction(tx_hash)
        return tx, tx.get("blockNumber") is None

    async def _subscribe(self, kind: str) -> AsyncIterator[Any]:
        if self._closed:
            raise SubscriptionError(
                "Feed is closed", subscription=kind, endpoint=self.endpoint
            )
        try:
            subscription_id = await self._web3.eth.subscribe(kind)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise SubscriptionError(
                f"eth_subscribe({kind}) failed",
                subscription=kind,
                endpoint=self.endpoint,
                cause=e,
            ) from e

        queue: asyncio.Queue = asyncio.Queue(maxsize=self._stream_buffer)
        self._queues[str(subscription_id)] = queue
        if self._reader_task is None:
            self._reader_task = asyncio.create_task(self._read_subscriptions())

        logger.info(f"Subscribed to {kind} ({subscription_id})")
        return self._stream(queue, kind)

    async def _stream(self, queue: asyncio.Queue, kind: str) -> AsyncIterator[Any]:
        while True:
            item = await queue.get()
            if item is _CLOSED:
                raise self._error or SubscriptionError(
                    "Subscription closed", subscription=kind, endpoint=self.endpoint
                )
            yield item

    async def _read_subscriptions(self) -> None:
        error: BaseException
        try:
            async for response in self._web3.socket.process_subscriptions():
                queue = self._queues.get(str(response.get("subscription")))
                if queue is None:
                    continue
                try:
                    queue.put_nowait(response.get("result"))
                except asyncio.QueueFull:
                    logger.debug("Subscription buffer full, dropping notification")
            error = SubscriptionError(
                "Subscription stream ended", endpoint=self.endpoint
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = SubscriptionError(
                "WebSocket connection lost", endpoint=self.endpoint, cause=e
            )

        logger.warning(f"{error.message}: {self.endpoint}")
        self._fail_streams(error)

    def _fail_streams(self, error: BaseException) -> None:
        self._error = error
        for queue in self._queues.values():
            while True:
                try:
                    queue.put_nowait(_CLOSED)
                    break
                except asyncio.QueueFull:
                    queue.get_nowait()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._reader_task is not None:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None

        self._fail_streams(
            SubscriptionError("Feed closed", endpoint=self.endpoint)
        )
        try:
            await self._web3.provider.disconnect()
        except Exception as e:
            logger.warning(f"Error closing WebSocket connection {self.endpoint}: {e}")
        logger.debug(f"Closed WebSocket connection {self.endpoint}")


async def create_feed(endpoint: str, chain_id: Optional[int] = None) -> UpstreamFeed:
    """Default feed factory used by the event source."""
    return await Web3PendingFeed.connect(endpoint, chain_id=chain_id)
