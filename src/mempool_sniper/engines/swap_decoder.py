#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

"""
Mempool Sniper – Swap Decoder
=============================
Filter/decode stage: keeps only router swap calls and turns them into
DecodedEvent records for the estimation stage.
License: MIT
"""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Tuple

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from mempool_sniper.core.method_registry import MethodRegistry
from mempool_sniper.core.models import DecodedEvent, SwapDirection, TransactionRecord
from mempool_sniper.core.worker_pool import WorkerPool
from mempool_sniper.monitoring.pipeline_stats import PipelineStats
from mempool_sniper.utils.logging_config import get_logger

logger = get_logger(__name__)

SWAP_DIRECTIONS: Dict[str, SwapDirection] = {
    "swapExactETHForTokens": SwapDirection.BUY,
    "swapExactTokensForETH": SwapDirection.SELL,
    "swapExactTokensForTokens": SwapDirection.SWAP,
}

# Argument layout of each router call and the position of its token path.
_SWAP_ARGUMENTS: Dict[str, Tuple[List[str], int]] = {
    "swapExactETHForTokens": (["uint256", "address[]", "address", "uint256"], 1),
    "swapExactTokensForETH": (
        ["uint256", "uint256", "address[]", "address", "uint256"],
        2,
    ),
    "swapExactTokensForTokens": (
        ["uint256", "uint256", "address[]", "address", "uint256"],
        2,
    ),
}


def decode_swap_path(method: str, payload: bytes) -> Optional[List[str]]:
    """Token path from router calldata, or None if it cannot be decoded."""
    layout = _SWAP_ARGUMENTS.get(method)
    if layout is None or len(payload) <= 4:
        return None
    types, path_index = layout
    try:
        arguments = abi_decode(types, payload[4:])
    except (DecodingError, ValueError, TypeError, OverflowError) as e:
        logger.debug(f"Could not decode {method} arguments: {e}")
        return None
    path = [Web3.to_checksum_address(address) for address in arguments[path_index]]
    return path or None


class SwapDecoder(WorkerPool):
    """Worker pool classifying pending transactions as DEX swaps."""

    def __init__(
        self,
        input_queue: asyncio.Queue,
        output_queue: asyncio.Queue,
        stats: PipelineStats,
        registry: MethodRegistry,
        workers: int = 5,
    ):
        super().__init__("decoder", input_queue, workers, output_queue)
        self._stats = stats
        self._registry = registry

    def filter_transaction(self, record: TransactionRecord) -> bool:
        """True if the record is a call of a registered swap method on a known router."""
        if record.recipient is None:
            return False
        if not self._registry.is_supported_contract(record.recipient):
            return False
        if len(record.payload) < 4:
            return False
        return self._registry.is_swap_method(record.payload[:4])

    def decode(self, record: TransactionRecord) -> Optional[DecodedEvent]:
        self._stats.increment("processed")

        if not self.filter_transaction(record):
            self._stats.increment("filtered")
            return None

        selector = bytes(record.payload[:4])
        method = self._registry.method_name(selector)
        direction = SWAP_DIRECTIONS.get(method, SwapDirection.SWAP)
        path = decode_swap_path(method, record.payload) or []
        native = self._registry.native_token

        token_in: Optional[str] = path[0] if path else None
        token_out: Optional[str] = path[-1] if path else None
        if direction is SwapDirection.BUY:
            token_in = native
        elif direction is SwapDirection.SELL:
            token_out = native

        event = DecodedEvent(
            transaction=record,
            method=method,
            selector=selector,
            target_contract=record.recipient,
            direction=direction,
            token_in=token_in,
            token_out=token_out,
            # TODO: decode amountIn for the token-input methods; the tx value is 0 there.
            amount_in=record.value,
            dex_name=self._registry.dex_name(record.recipient),
        )
        self._stats.increment("decoded")
        logger.debug(
            f"Decoded {method} on {event.dex_name or record.recipient} "
            f"({direction.value}) tx {record.tx_hash[:10]}..."
        )
        return event

    def handle(self, item: TransactionRecord) -> Optional[DecodedEvent]:
        return self.decode(item)

    def on_output_full(self, result: DecodedEvent) -> None:
        self._stats.increment("decode_dropped")
        logger.warning(
            f"Decoded event queue full, dropping event: {result.tx_hash[:10]}..."
        )
