"""Shared fixtures for the pipeline tests."""

import pytest

from mempool_sniper.config.loaders import reset_settings
from mempool_sniper.core.method_registry import MethodRegistry
from mempool_sniper.core.models import TransactionRecord
from mempool_sniper.monitoring.pipeline_stats import PipelineStats

UNISWAP_V2_ROUTER = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"
SUSHISWAP_ROUTER = "0xd9e1cE17f2641f24aE83637ab66a2cca9C378B9F"
SWAP_EXACT_ETH_FOR_TOKENS = bytes.fromhex("7ff36ab5")
SWAP_EXACT_TOKENS_FOR_ETH = bytes.fromhex("18cbaf05")
SWAP_EXACT_TOKENS_FOR_TOKENS = bytes.fromhex("38ed1739")
GWEI = 10**9


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keeps a developer's .env and exported variables out of the tests."""
    monkeypatch.setenv("DOTENV_PATH", str(tmp_path / "missing.env"))
    for name in ("WEBSOCKET_URL", "CHAIN_ID", "LOG_LEVEL", "LOG_FORMAT", "DEBUG"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def stats():
    return PipelineStats()


@pytest.fixture
def registry():
    return MethodRegistry.default()


@pytest.fixture
def make_record():
    def _make(**overrides):
        fields = {
            "tx_hash": "0x" + "ab" * 32,
            "sender": "0x" + "11" * 20,
            "recipient": UNISWAP_V2_ROUTER,
            "value": 10**18,
            "gas_price": 20 * GWEI,
            "gas_limit": 250_000,
            "payload": SWAP_EXACT_ETH_FOR_TOKENS + b"\x00" * 32,
            "nonce": 7,
            "chain_id": 1,
        }
        fields.update(overrides)
        return TransactionRecord(**fields)

    return _make
