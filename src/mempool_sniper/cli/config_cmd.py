#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from mempool_sniper.config.loaders import get_settings, load_settings
from mempool_sniper.core.method_registry import MethodRegistry
from mempool_sniper.utils.cli_helpers import (
    handle_cli_errors,
    redact_config,
    success_message,
)

app = typer.Typer(help="Commands to inspect and validate configuration.")
console = Console()


@app.command(name="show")
@handle_cli_errors()
def show_config(
    show_keys: bool = typer.Option(
        False, "--show-keys", "-s", help="Show webhook URLs and bot tokens."
    )
):
    """
    Displays the loaded configuration, redacting credentials by default.
    """
    config_dict = get_settings().model_dump(mode="json")
    json_str = json.dumps(redact_config(config_dict, show_sensitive=show_keys), indent=2)
    console.print(Syntax(json_str, "json", theme="monokai", line_numbers=True))


@app.command(name="validate")
@handle_cli_errors()
def validate_config():
    """
    Validates the environment and .env configuration by loading it.
    """
    console.print("Validating configuration...")
    load_settings()
    success_message("Configuration is valid!")


@app.command(name="registry")
@handle_cli_errors()
def show_registry():
    """
    Lists the DEX routers and swap selectors the decoder recognizes.
    """
    path = get_settings().method_registry_path
    registry = MethodRegistry.from_file(path) if path else MethodRegistry.default()

    routers = Table(title=f"Routers (registry v{registry.version})")
    routers.add_column("Address", style="cyan")
    routers.add_column("DEX", style="green")
    for address, label in registry.routers.items():
        routers.add_row(address, label)

    methods = Table(title="Swap methods")
    methods.add_column("Selector", style="cyan")
    methods.add_column("Method", style="green")
    for name, selector in registry.swap_methods.items():
        methods.add_row("0x" + selector.hex(), name)

    console.print(routers)
    console.print(methods)
