#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

from pathlib import Path

_PACKAGE_DIR = Path(__file__).resolve().parent.parent


def get_base_dir() -> Path:
    """Directory logs are written under: the current working directory."""
    return Path.cwd()


def get_resource_path(*parts: str) -> Path:
    """Returns the path of a file shipped in the package's resources folder."""
    return _PACKAGE_DIR.joinpath("resources", *parts)
