#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Mapping, Optional, Tuple

from eth_account import Account
from web3 import Web3
from web3.exceptions import TransactionNotFound

from mempool_sniper.core.models import TransactionRecord
from mempool_sniper.monitoring.pipeline_stats import PipelineStats
from mempool_sniper.utils.logging_config import get_logger

logger = get_logger(__name__)

TransactionLookup = Callable[[str], Awaitable[Tuple[Mapping[str, Any], bool]]]


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, str):
        return int(value, 16) if value.lower().startswith("0x") else int(value)
    return int(value)


def to_hex_hash(value: Any) -> str:
    """Normalizes a tx hash given as bytes/HexBytes or a hex string."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value).lower()
    return text if text.startswith("0x") else "0x" + text


def normalize_payload(value: Any) -> bytes:
    """Calldata as bytes. Hex strings may omit 0x; bad hex yields b''."""
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = str(value)
    if text[:2].lower() == "0x":
        text = text[2:]
    try:
        return bytes.fromhex(text)
    except ValueError:
        logger.debug(f"Discarding non-hex payload ({len(text)} chars)")
        return b""


def _checksum_or_raw(address: Any) -> Optional[str]:
    if not address:
        return None
    if isinstance(address, (bytes, bytearray)):
        address = "0x" + bytes(address).hex()
    try:
        return Web3.to_checksum_address(address)
    except (ValueError, TypeError):
        return str(address).lower()


def transaction_chain_id(tx: Mapping[str, Any]) -> Optional[int]:
    """Chain id from a typed tx field, or from an EIP-155 legacy ``v``."""
    if tx.get("chainId") is not None:
        return _to_int(tx["chainId"])
    v = tx.get("v")
    if v is None:
        return None
    v = _to_int(v)
    if v >= 35:
        return (v - 35) // 2
    return None


def recover_sender(
    tx: Mapping[str, Any], expected_chain_id: Optional[int] = None
) -> Optional[str]:
    """
    Recovers the sender of a signed transaction.

    The signer must belong to ``expected_chain_id`` when one is given. The
    raw signed bytes are preferred when the node returns them; otherwise the
    node-reported ``from`` is used. Returns None if neither works.
    """
    tx_chain = transaction_chain_id(tx)
    if (
        expected_chain_id is not None
        and tx_chain is not None
        and tx_chain != expected_chain_id
    ):
        logger.debug(
            f"Signer chain mismatch: tx chain {tx_chain}, expected {expected_chain_id}"
        )
        return None

    raw = tx.get("raw")
    if raw:
        try:
            return Account.recover_transaction(raw)
        except Exception as e:
            logger.debug(f"Signature recovery from raw tx failed: {e}")

    reported = tx.get("from")
    if reported:
        try:
            return Web3.to_checksum_address(reported)
        except (ValueError, TypeError):
            logger.debug(f"Node reported an invalid sender: {reported!r}")
    return None


def normalize_transaction(
    tx: Mapping[str, Any],
    chain_id: Optional[int] = None,
    observed_at: Optional[float] = None,
) -> TransactionRecord:
    """
    Builds a TransactionRecord from a node lookup result.

    Raises:
        KeyError: If the lookup result has no hash.
        ValueError: If a numeric field cannot be parsed.
    """
    tx_chain = transaction_chain_id(tx)
    gas_price = tx.get("gasPrice") or tx.get("maxFeePerGas") or 0
    payload = tx.get("input") if tx.get("input") is not None else tx.get("data")

    return TransactionRecord(
        tx_hash=to_hex_hash(tx["hash"]),
        sender=recover_sender(tx, chain_id),
        recipient=_checksum_or_raw(tx.get("to")),
        value=_to_int(tx.get("value")),
        gas_price=_to_int(gas_price),
        gas_limit=_to_int(tx.get("gas")),
        payload=normalize_payload(payload),
        nonce=_to_int(tx.get("nonce")),
        chain_id=tx_chain if tx_chain is not None else chain_id,
        observed_at=observed_at if observed_at is not None else time.time(),
    )


class TransactionFetcher:
    """
    Resolves pending transaction hashes and forwards normalized records.

    Lookups are retried a bounded number of times with a linearly growing
    pause, since a hash may be evicted from the node's pool before we get to
    it. Records go to the decode queue without ever blocking: a full queue
    drops the record.
    """

    def __init__(
        self,
        output_queue: asyncio.Queue,
        stats: PipelineStats,
        attempts: int = 3,
        retry_delay: float = 0.1,
        chain_id: Optional[int] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._output = output_queue
        self._stats = stats
        self._attempts = attempts
        self._retry_delay = retry_delay
        self._chain_id = chain_id
        self._sleep = sleep

    async def process(self, tx_hash: str, lookup: TransactionLookup) -> bool:
        """Fetches one hash and forwards it. Returns True if it was queued."""
        record = await self.fetch(tx_hash, lookup)
        if record is None:
            return False
        return self.forward(record)

    async def fetch(
        self, tx_hash: str, lookup: TransactionLookup
    ) -> Optional[TransactionRecord]:
        last_error: Optional[BaseException] = None

        for attempt in range(self._attempts):
            try:
                tx, is_pending = await lookup(tx_hash)
            except asyncio.CancelledError:
                raise
            except TransactionNotFound as e:
                last_error = e
                await self._sleep((attempt + 1) * self._retry_delay)
                continue
            except Exception as e:
                last_error = e
                logger.debug(f"Lookup of {tx_hash[:10]}... failed: {e}")
                await self._sleep((attempt + 1) * self._retry_delay)
                continue

            if not is_pending:
                self._stats.increment("stale")
                logger.debug(f"Transaction {tx_hash[:10]}... already mined, skipping")
                return None

            try:
                return normalize_transaction(tx, chain_id=self._chain_id)
            except (KeyError, ValueError, TypeError) as e:
                self._stats.increment("malformed")
                logger.warning(f"Malformed transaction {tx_hash[:10]}...: {e}")
                return None

        self._stats.increment("not_found")
        logger.debug(
            f"Could not fetch transaction {tx_hash[:10]}... after "
            f"{self._attempts} attempts: {last_error}"
        )
        return None

    def forward(self, record: TransactionRecord) -> bool:
        try:
            self._output.put_nowait(record)
        except asyncio.QueueFull:
            self._stats.increment("ingest_dropped")
            logger.warning(
                f"Transaction queue full, dropping transaction: {record.tx_hash[:10]}..."
            )
            return False

        logger.debug(
            f"[PENDING] queued {record.tx_hash[:10]}... "
            f"(from: {record.sender or 'unknown'}, "
            f"to: {record.recipient or 'contract creation'}, value: {record.value} wei)"
        )
        return True
