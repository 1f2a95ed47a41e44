#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import random
from typing import Optional

from .logging_config import get_logger

logger = get_logger(__name__)


class BackoffPolicy:
    """Exponential backoff with a cap and reset-on-success.

    ``next_delay()`` returns the delay to sleep after a failure and advances
    the policy; ``reset()`` is called once a retry succeeds.
    """

    def __init__(
        self,
        initial: float = 1.0,
        multiplier: float = 2.0,
        maximum: float = 30.0,
        jitter: bool = False,
        rng: Optional[random.Random] = None,
    ):
        if initial <= 0:
            raise ValueError("initial delay must be positive")
        if multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if maximum < initial:
            raise ValueError("maximum delay must be >= initial delay")

        self.initial = initial
        self.multiplier = multiplier
        self.maximum = maximum
        self.jitter = jitter
        self._rng = rng or random.Random()
        self._current = initial
        self._attempts = 0

    @property
    def current(self) -> float:
        """The delay the next failure will wait."""
        return self._current

    @property
    def attempts(self) -> int:
        """Failures seen since the last reset."""
        return self._attempts

    def next_delay(self) -> float:
        delay = self._current
        self._attempts += 1
        self._current = min(self._current * self.multiplier, self.maximum)

        if self.jitter:
            # Keep the jittered value under the cap.
            delay = min(delay * self._rng.uniform(0.75, 1.25), self.maximum)
        return delay

    def reset(self) -> None:
        if self._attempts:
            logger.debug(
                f"Backoff reset after {self._attempts} failed attempt(s)"
            )
        self._current = self.initial
        self._attempts = 0

    def __repr__(self) -> str:
        return (
            f"BackoffPolicy(initial={self.initial}, multiplier={self.multiplier}, "
            f"maximum={self.maximum}, current={self._current})"
        )
