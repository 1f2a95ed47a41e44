#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

"""
Mempool Sniper – Error Handling Utilities
=========================================
Keeps stage-internal failures inside the stage: log, count, fall back.
License: MIT
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Optional

from .logging_config import get_logger

logger = get_logger(__name__)


async def safe_call(
    func: Callable,
    *args,
    component_name: str = "unknown",
    fallback: Any = None,
    log_errors: bool = True,
    on_error: Optional[Callable[[Exception], None]] = None,
    **kwargs,
) -> Any:
    """Safely call a sync or async function, returning ``fallback`` on error.

    ``on_error`` is invoked with the exception before the fallback is
    returned; stages use it to bump a failure counter. Cancellation is never
    swallowed.
    """
    try:
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result
    except Exception as e:
        if log_errors:
            logger.error(f"[{component_name}] Error in safe_call: {e}", exc_info=True)
        if on_error is not None:
            try:
                on_error(e)
            except Exception as hook_error:
                logger.error(f"[{component_name}] Error hook failed: {hook_error}")
        return fallback
