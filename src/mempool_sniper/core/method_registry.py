#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional, Union

from web3 import Web3

from mempool_sniper.utils.custom_exceptions import ConfigurationError
from mempool_sniper.utils.logging_config import get_logger
from mempool_sniper.utils.path_helpers import get_resource_path

logger = get_logger(__name__)

DEFAULT_REGISTRY_FILE = "method_registry.json"


def _selector_from_hex(value: str) -> bytes:
    raw = value[2:] if value.lower().startswith("0x") else value
    selector = bytes.fromhex(raw)
    if len(selector) != 4:
        raise ValueError(f"selector {value!r} is not 4 bytes")
    return selector


class MethodRegistry:
    """
    Known DEX routers and the swap selectors they expose.

    The table is a static, versioned asset. Router addresses are stored in
    checksum form; selectors are the 4-byte big-endian function ids.
    """

    def __init__(
        self,
        routers: Dict[str, str],
        swap_methods: Dict[str, bytes],
        native_token: str = "0x0000000000000000000000000000000000000000",
        version: str = "unversioned",
    ):
        self.version = version
        self.native_token = native_token
        self._routers: Dict[str, str] = {
            Web3.to_checksum_address(address): label
            for address, label in routers.items()
        }
        self._selectors: Dict[bytes, str] = {}
        for name, selector in swap_methods.items():
            if len(selector) != 4:
                raise ValueError(f"selector for {name} is not 4 bytes")
            self._selectors[bytes(selector)] = name

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "MethodRegistry":
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            registry = cls(
                routers=data["routers"],
                swap_methods={
                    name: _selector_from_hex(selector)
                    for name, selector in data["swap_methods"].items()
                },
                native_token=data.get(
                    "native_token", "0x0000000000000000000000000000000000000000"
                ),
                version=str(data.get("version", "unversioned")),
            )
        except (OSError, KeyError, ValueError, TypeError) as e:
            raise ConfigurationError(
                f"Could not load method registry from {path}",
                key="method_registry_path",
                value=str(path),
                cause=e,
            ) from e

        logger.debug(
            f"Loaded method registry v{registry.version}: "
            f"{len(registry.routers)} routers, {len(registry.swap_methods)} swap methods"
        )
        return registry

    @classmethod
    def default(cls) -> "MethodRegistry":
        return cls.from_file(get_resource_path(DEFAULT_REGISTRY_FILE))

    @property
    def routers(self) -> Dict[str, str]:
        return dict(self._routers)

    @property
    def swap_methods(self) -> Dict[str, bytes]:
        return {name: selector for selector, name in self._selectors.items()}

    def _normalize(self, address: Optional[str]) -> Optional[str]:
        if not address:
            return None
        try:
            return Web3.to_checksum_address(address)
        except (ValueError, TypeError):
            return None

    def is_supported_contract(self, address: Optional[str]) -> bool:
        normalized = self._normalize(address)
        return normalized is not None and normalized in self._routers

    def dex_name(self, address: Optional[str]) -> Optional[str]:
        normalized = self._normalize(address)
        return self._routers.get(normalized) if normalized else None

    def is_swap_method(self, selector: bytes) -> bool:
        return len(selector) >= 4 and bytes(selector[:4]) in self._selectors

    def method_name(self, selector: bytes) -> str:
        if len(selector) < 4:
            return "unknown"
        return self._selectors.get(bytes(selector[:4]), "unknown")
