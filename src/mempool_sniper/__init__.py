#!/usr/bin/env python3
# MIT License
# Copyright (c) 2026 John Hauger Mitander

__version__ = "0.3.0"
__author__ = "john0n1"
__email__ = "john@on1.no"
__license__ = "MIT"
__description__ = "Mempool Sniper watches pending EVM transactions, picks out DEX swap calls and scores each one for profitability."
