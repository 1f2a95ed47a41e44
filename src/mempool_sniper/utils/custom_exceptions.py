#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

"""
Mempool Sniper – Custom Exceptions
==================================
Exception hierarchy shared by the pipeline, config layer and CLI.
License: MIT
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class MempoolSniperError(Exception):
    """Base class for all errors raised by Mempool Sniper."""

    default_message = "Mempool Sniper error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message or self.default_message
        self.details: Dict[str, Any] = dict(details or {})
        self.cause = cause
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "details": self.details,
            "cause": repr(self.cause) if self.cause else None,
        }


class ConfigurationError(MempoolSniperError):
    """Raised when settings cannot be loaded or are invalid."""

    default_message = "Configuration error"

    def __init__(
        self,
        message: Optional[str] = None,
        key: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        merged = dict(details or {})
        if key is not None:
            merged["key"] = key
        if value is not None:
            merged["value"] = value
        super().__init__(message, details=merged, cause=cause)


class ValidationError(MempoolSniperError):
    """Raised when a single value fails validation."""

    default_message = "Validation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        value: Any = None,
        expected_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        merged = dict(details or {})
        if field is not None:
            merged["field"] = field
        if value is not None:
            merged["value"] = value
        if expected_type is not None:
            merged["expected_type"] = expected_type
        super().__init__(message, details=merged, cause=cause)


class ConnectionError(MempoolSniperError):
    """Transient network failure talking to the node."""

    default_message = "Connection failed"

    def __init__(
        self,
        message: Optional[str] = None,
        endpoint: Optional[str] = None,
        chain_id: Optional[int] = None,
        retry_count: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        merged = dict(details or {})
        if endpoint is not None:
            merged["endpoint"] = endpoint
        if chain_id is not None:
            merged["chain_id"] = chain_id
        if retry_count is not None:
            merged["retry_count"] = retry_count
        super().__init__(message, details=merged, cause=cause)


class SubscriptionError(ConnectionError):
    """A live subscription reported an error or its stream closed."""

    default_message = "Subscription failed"

    def __init__(
        self,
        message: Optional[str] = None,
        subscription: Optional[str] = None,
        endpoint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        merged = dict(details or {})
        if subscription is not None:
            merged["subscription"] = subscription
        super().__init__(message, endpoint=endpoint, details=merged, cause=cause)


class AlreadyRunningError(MempoolSniperError):
    """Raised when start() is called on a component that is already running."""

    default_message = "Component is already running"

    def __init__(
        self,
        message: Optional[str] = None,
        component: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged = dict(details or {})
        if component is not None:
            merged["component"] = component
        super().__init__(message, details=merged)


class EstimationError(MempoolSniperError):
    """Raised by a profit model that cannot score an event."""

    default_message = "Profit estimation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        tx_hash: Optional[str] = None,
        method: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        merged = dict(details or {})
        if tx_hash is not None:
            merged["tx_hash"] = tx_hash
        if method is not None:
            merged["method"] = method
        super().__init__(message, details=merged, cause=cause)
