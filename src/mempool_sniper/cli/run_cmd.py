#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

from __future__ import annotations

import asyncio

import typer

from mempool_sniper.config.loaders import load_settings
from mempool_sniper.core.main_orchestrator import MainOrchestrator
from mempool_sniper.utils.cli_helpers import handle_cli_errors, info_message
from mempool_sniper.utils.logging_config import get_logger, setup_logging

app = typer.Typer(help="Commands to run the mempool pipeline.")
logger = get_logger(__name__)


@app.command(name="start")
@handle_cli_errors()
def start_bot():
    """
    Connects to the configured node and watches the mempool until interrupted.
    """
    settings = load_settings()
    setup_logging(force_setup=True)

    info_message(f"Watching pending transactions on {settings.websocket_url}")
    orchestrator = MainOrchestrator(settings)
    try:
        asyncio.run(orchestrator.run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
