#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from mempool_sniper.utils.logging_config import get_logger

logger = get_logger(__name__)

COUNTER_NAMES = (
    # ingestion
    "received",
    "duplicates",
    "fetch_saturated",
    "not_found",
    "stale",
    "malformed",
    "ingest_dropped",
    # filter/decode
    "processed",
    "filtered",
    "decoded",
    "decode_dropped",
    # estimation
    "simulated",
    "profitable",
    "failed",
    "dropped",
    # sink
    "opportunities",
)


def _ratio(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator else 0.0


@dataclass(frozen=True)
class StatsSnapshot:
    """A consistent copy of every counter taken under the registry lock."""

    counters: Mapping[str, int]
    taken_at: float
    uptime_seconds: float

    def __getitem__(self, name: str) -> int:
        return self.counters[name]

    @property
    def decode_success_rate(self) -> float:
        return _ratio(self.counters["decoded"], self.counters["processed"])

    @property
    def profitability_rate(self) -> float:
        return _ratio(self.counters["profitable"], self.counters["simulated"])

    @property
    def estimation_success_rate(self) -> float:
        simulated = self.counters["simulated"]
        return _ratio(simulated - self.counters["failed"], simulated)

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.counters)
        data.update(
            decode_success_rate=self.decode_success_rate,
            profitability_rate=self.profitability_rate,
            estimation_success_rate=self.estimation_success_rate,
            uptime_seconds=self.uptime_seconds,
        )
        return data


class PipelineStats:
    """Lock-protected counters shared by every pipeline stage."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {name: 0 for name in COUNTER_NAMES}
        self._started_at = time.time()

    def increment(self, name: str, amount: int = 1) -> None:
        if name not in self._counters:
            raise KeyError(f"Unknown pipeline counter: {name}")
        with self._lock:
            self._counters[name] += amount

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters[name]

    def snapshot(self) -> StatsSnapshot:
        now = time.time()
        with self._lock:
            counters = dict(self._counters)
        return StatsSnapshot(
            counters=counters, taken_at=now, uptime_seconds=now - self._started_at
        )

    def get_stats(self) -> Dict[str, Any]:
        return self.snapshot().as_dict()

    def reset(self) -> None:
        with self._lock:
            for name in self._counters:
                self._counters[name] = 0
            self._started_at = time.time()

    def log_summary(self) -> None:
        snap = self.snapshot()
        logger.info(
            "Pipeline stats - received: %d, processed: %d, filtered: %d, decoded: %d, "
            "simulated: %d, profitable: %d, failed: %d, dropped: %d, "
            "decode rate: %.1f%%, profitability: %.1f%%",
            snap["received"],
            snap["processed"],
            snap["filtered"],
            snap["decoded"],
            snap["simulated"],
            snap["profitable"],
            snap["failed"],
            snap["dropped"],
            snap.decode_success_rate * 100,
            snap.profitability_rate * 100,
        )
