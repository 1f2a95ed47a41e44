#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from mempool_sniper.utils.custom_exceptions import AlreadyRunningError
from mempool_sniper.utils.error_handling import safe_call
from mempool_sniper.utils.logging_config import get_logger

logger = get_logger(__name__)


class WorkerPool(ABC):
    """
    N identical workers draining one shared input queue.

    Each worker takes an item, runs ``handle()`` through ``safe_call`` so no
    exception escapes the stage, and hands a non-None result to the output
    queue without blocking. Subclasses decide what a full output queue means
    by overriding ``on_output_full()``.
    """

    def __init__(
        self,
        name: str,
        input_queue: asyncio.Queue,
        workers: int,
        output_queue: Optional[asyncio.Queue] = None,
    ):
        if workers < 1:
            raise ValueError(f"{name} needs at least one worker")
        self.name = name
        self._input = input_queue
        self._output = output_queue
        self._worker_count = workers
        self._tasks: List[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    @property
    def worker_count(self) -> int:
        return self._worker_count

    async def start(self) -> None:
        if self._tasks:
            raise AlreadyRunningError(component=self.name)
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"{self.name}-{i}")
            for i in range(self._worker_count)
        ]
        logger.info(f"Started {self._worker_count} {self.name} workers")

    async def stop(self) -> None:
        if not self._tasks:
            return
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Stopped {self.name} workers")

    async def _worker(self, index: int) -> None:
        logger.debug(f"{self.name} worker {index} started")
        while True:
            item = await self._input.get()
            try:
                result = await safe_call(
                    self.handle,
                    item,
                    component_name=f"{self.name}-{index}",
                    on_error=lambda e, item=item: self.on_error(item, e),
                )
                if result is not None:
                    self.forward(result)
            finally:
                self._input.task_done()

    def forward(self, result: Any) -> bool:
        if self._output is None:
            return True
        try:
            self._output.put_nowait(result)
        except asyncio.QueueFull:
            self.on_output_full(result)
            return False
        return True

    @abstractmethod
    def handle(self, item: Any) -> Any:
        """Processes one item. May be sync or async; None means nothing to forward."""

    def on_error(self, item: Any, error: Exception) -> None:
        pass

    def on_output_full(self, result: Any) -> None:
        logger.warning(f"{self.name} output queue full, dropping result")
