"""Intent-focused tests for MainOrchestrator wiring and lifecycle."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from conftest import GWEI, UNISWAP_V2_ROUTER
from mempool_sniper.config.settings import GlobalSettings
from mempool_sniper.core.main_orchestrator import MainOrchestrator
from mempool_sniper.integrations.web3_feed import UpstreamFeed
from mempool_sniper.utils.custom_exceptions import AlreadyRunningError


class ScriptedFeed(UpstreamFeed):
    def __init__(self, txs):
        self.endpoint = "ws://scripted"
        self.txs = txs
        self.closed = asyncio.Event()
        self.close_calls = 0

    async def _stream(self, items):
        for item in items:
            yield item
        await self.closed.wait()

    async def subscribe_heads(self):
        return self._stream([])

    async def subscribe_pending(self):
        return self._stream(list(self.txs))

    async def get_transaction(self, tx_hash):
        return self.txs[tx_hash], True

    async def close(self):
        self.close_calls += 1
        self.closed.set()


def tx(n, **overrides):
    data = {
        "hash": f"0x{n:064x}",
        "from": "0x" + "11" * 20,
        "to": UNISWAP_V2_ROUTER,
        "value": 10**18,
        "gasPrice": 20 * GWEI,
        "gas": 200_000,
        "input": "0x7ff36ab5" + "00" * 32,
        "nonce": n,
    }
    data.update(overrides)
    return data


def settings(**overrides):
    fields = dict(decode_workers=2, estimate_workers=2, stats_log_interval=0.01)
    fields.update(overrides)
    return GlobalSettings(_env_file=None, **fields)


def silent_notifier():
    return SimpleNamespace(notify_opportunity=AsyncMock(return_value=0), close=AsyncMock())


async def wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.mark.asyncio
async def test_pipeline_surfaces_only_profitable_router_swaps():
    txs = {
        item["hash"]: item
        for item in (
            tx(1),
            tx(2, to="0x" + "99" * 20),
            tx(3, to=None),
            tx(4, input="0xa9059cbb" + "00" * 64),
            tx(5, value=10**14),
        )
    }
    feed = ScriptedFeed(txs)
    notifier = silent_notifier()

    async def factory():
        return feed

    orch = MainOrchestrator(settings(), feed_factory=factory, notification_service=notifier)
    surfaced = []

    async def collect(estimate):
        surfaced.append(estimate)

    orch.sink.add_handler(collect)

    await orch.start()
    try:
        await wait_until(lambda: orch.stats.get("simulated") == 2 and orch.result_queue.empty())
        await wait_until(lambda: len(surfaced) == 1)
    finally:
        await orch.stop()

    snap = orch.stats.snapshot()
    assert snap["received"] == 5
    assert snap["processed"] == 5
    assert snap["filtered"] == 3
    assert snap["decoded"] == 2
    assert snap["opportunities"] == 1
    assert surfaced[0].tx_hash == f"0x{1:064x}"
    assert surfaced[0].gross_profit == 10_000_000_000_000_000
    notifier.notify_opportunity.assert_awaited_once()
    notifier.close.assert_awaited_once()
    assert feed.close_calls == 1


@pytest.mark.asyncio
async def test_start_twice_raises_and_stop_is_idempotent():
    async def factory():
        return ScriptedFeed({})

    orch = MainOrchestrator(settings(), feed_factory=factory, notification_service=silent_notifier())
    await orch.start()
    try:
        with pytest.raises(AlreadyRunningError):
            await orch.start()
        assert orch.is_running
    finally:
        await orch.stop()
    await orch.stop()
    assert not orch.is_running
    assert orch.get_status()["event_source"]["phase"] == "stopped"


@pytest.mark.asyncio
async def test_run_returns_after_shutdown_request():
    async def factory():
        return ScriptedFeed({})

    orch = MainOrchestrator(settings(), feed_factory=factory, notification_service=silent_notifier())
    orch.stop = AsyncMock(wraps=orch.stop)

    async def request_later():
        await orch.event_source.wait_subscribed(timeout=1)
        await asyncio.sleep(0.05)
        orch.request_shutdown()

    asyncio.create_task(request_later())
    await asyncio.wait_for(orch.run(), timeout=2)

    orch.stop.assert_awaited_once()
    assert not orch.is_running


@pytest.mark.asyncio
async def test_get_status_shape():
    orch = MainOrchestrator(settings(), feed_factory=AsyncMock(), notification_service=silent_notifier())
    status = orch.get_status()

    assert status["is_running"] is False
    assert status["queues"] == {"tx": 0, "decoded": 0, "result": 0}
    assert status["pipeline"]["received"] == 0
    assert status["event_source"]["endpoint"] == "ws://127.0.0.1:8546"


def test_custom_registry_path_is_loaded(tmp_path):
    path = tmp_path / "registry.json"
    path.write_text(
        '{"version": "custom", "routers": {}, "swap_methods": {"swapIt": "0x12345678"}}'
    )
    orch = MainOrchestrator(
        settings(method_registry_path=str(path)),
        feed_factory=AsyncMock(),
        notification_service=silent_notifier(),
    )
    assert orch._registry.version == "custom"
