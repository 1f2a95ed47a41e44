#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import os
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from mempool_sniper.config.settings import GlobalSettings
from mempool_sniper.config.validation import validate_complete_config
from mempool_sniper.utils.custom_exceptions import (
    ConfigurationError,
    ValidationError,
)

_settings: Optional[GlobalSettings] = None


def load_settings(env_file: Optional[str] = None) -> GlobalSettings:
    """
    Loads settings from the environment and a .env file, then validates them.

    The .env path defaults to ``$DOTENV_PATH`` and then ``.env`` in the
    working directory. The loaded settings replace the cached instance.

    Raises:
        ConfigurationError: If the values cannot be parsed or fail validation.
    """
    global _settings

    env_path = env_file or os.getenv("DOTENV_PATH") or ".env"
    try:
        loaded = GlobalSettings(_env_file=env_path)
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration in environment or {env_path}",
            details={"errors": e.errors(include_url=False)},
            cause=e,
        ) from e

    try:
        validate_complete_config(loaded)
    except ValidationError as e:
        raise ConfigurationError(
            e.message, key=e.details.get("field"), details=e.details, cause=e
        ) from e

    _settings = loaded
    return loaded


def get_settings() -> GlobalSettings:
    """Returns the cached settings, loading them on first use."""
    if _settings is None:
        return load_settings()
    return _settings


def get_loaded_settings() -> Optional[GlobalSettings]:
    """Returns the cached settings without triggering a load."""
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
