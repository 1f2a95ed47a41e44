#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

"""
Mempool Sniper – Pipeline Records
=================================
Immutable values handed from stage to stage through the pipeline queues.
License: MIT
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

WEI_PER_ETH = Decimal(10**18)


class SwapDirection(str, Enum):
    BUY = "buy"
    SELL = "sell"
    SWAP = "swap"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class TransactionRecord:
    """A pending transaction resolved from the node and normalized."""

    tx_hash: str
    sender: Optional[str]
    recipient: Optional[str]
    value: int
    gas_price: int
    gas_limit: int
    payload: bytes = b""
    nonce: int = 0
    chain_id: Optional[int] = None
    observed_at: float = 0.0

    @property
    def is_contract_creation(self) -> bool:
        return self.recipient is None

    @property
    def selector(self) -> Optional[bytes]:
        return self.payload[:4] if len(self.payload) >= 4 else None


@dataclass(frozen=True)
class DecodedEvent:
    """A transaction classified as a DEX router swap call."""

    transaction: TransactionRecord
    method: str
    selector: bytes
    target_contract: str
    direction: SwapDirection
    is_swap: bool = True
    token_in: Optional[str] = None
    token_out: Optional[str] = None
    amount_in: int = 0
    dex_name: Optional[str] = None

    def __post_init__(self):
        if not self.is_swap:
            raise ValueError("DecodedEvent must describe a swap call")
        if len(self.selector) != 4:
            raise ValueError(f"selector must be 4 bytes, got {len(self.selector)}")

    @property
    def tx_hash(self) -> str:
        return self.transaction.tx_hash


@dataclass(frozen=True)
class ProfitEstimate:
    """Score of a decoded swap. Values are in wei."""

    tx_hash: str
    target_contract: str
    method: str
    gross_profit: int
    gas_cost: int
    net_profit: int
    success_rate: float
    risk_level: RiskLevel
    estimation_ms: float = 0.0
    gas_price: int = 0

    def __post_init__(self):
        expected = max(0, self.gross_profit - self.gas_cost)
        if self.net_profit != expected:
            raise ValueError(
                f"net_profit {self.net_profit} != max(0, gross - gas) = {expected}"
            )
        if not 0.0 <= self.success_rate <= 1.0:
            raise ValueError(f"success_rate out of range: {self.success_rate}")

    @property
    def is_profitable(self) -> bool:
        return self.net_profit > 0

    @property
    def net_profit_eth(self) -> Decimal:
        return Decimal(self.net_profit) / WEI_PER_ETH

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "target_contract": self.target_contract,
            "method": self.method,
            "gross_profit_wei": self.gross_profit,
            "gas_cost_wei": self.gas_cost,
            "net_profit_wei": self.net_profit,
            "net_profit_eth": str(self.net_profit_eth),
            "success_rate": round(self.success_rate, 4),
            "risk_level": self.risk_level.value,
            "gas_price_wei": self.gas_price,
            "estimation_ms": round(self.estimation_ms, 3),
        }
