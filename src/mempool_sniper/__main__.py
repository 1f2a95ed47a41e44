#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import sys

import typer

from mempool_sniper import __version__
from mempool_sniper.cli import config_cmd, run_cmd

app = typer.Typer(
    name="mempool-sniper",
    help="Mempool Sniper: watches pending EVM transactions for profitable DEX swaps.",
    no_args_is_help=True,
)

app.add_typer(run_cmd.app, name="run")
app.add_typer(config_cmd.app, name="config")


def show_version() -> None:
    typer.echo(f"Mempool Sniper Version: {__version__}")


@app.command(name="version")
def version():
    """Shows the installed version."""
    show_version()


def cli() -> None:
    try:
        app()
    except Exception as e:
        typer.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
