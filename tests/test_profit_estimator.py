"""Tests for the estimation stage and its default profit model."""

import asyncio

import pytest

from conftest import GWEI, SWAP_EXACT_ETH_FOR_TOKENS, UNISWAP_V2_ROUTER
from mempool_sniper.core.models import (
    DecodedEvent,
    ProfitEstimate,
    RiskLevel,
    SwapDirection,
)
from mempool_sniper.engines.profit_estimator import (
    SWAP_GAS_UNITS,
    PercentageProfitModel,
    ProfitAssessment,
    ProfitEstimator,
    assess_risk,
)


@pytest.fixture
def make_event(make_record):
    def _make(**record_overrides):
        record = make_record(**record_overrides)
        return DecodedEvent(
            transaction=record,
            method="swapExactETHForTokens",
            selector=SWAP_EXACT_ETH_FOR_TOKENS,
            target_contract=UNISWAP_V2_ROUTER,
            direction=SwapDirection.BUY,
            amount_in=record.value,
        )

    return _make


@pytest.fixture
def estimator(stats):
    return ProfitEstimator(asyncio.Queue(), asyncio.Queue(), stats)


def test_one_eth_buy_yields_one_percent_gross(estimator, stats, make_event):
    event = make_event(value=10**18, gas_price=20 * GWEI)

    estimate = estimator.estimate(event)

    assert estimate.gross_profit == 10_000_000_000_000_000
    assert estimate.gas_cost == SWAP_GAS_UNITS * 20 * GWEI
    assert estimate.net_profit == estimate.gross_profit - estimate.gas_cost
    assert estimate.success_rate == pytest.approx(0.8)
    assert estimate.risk_level is RiskLevel.MEDIUM
    assert estimate.method == "swapExactETHForTokens"
    assert stats.get("simulated") == 1
    assert stats.get("profitable") == 1


def test_net_profit_is_floored_at_zero(estimator, stats, make_event):
    estimate = estimator.estimate(make_event(value=10**15, gas_price=200 * GWEI))

    assert estimate.gross_profit < estimate.gas_cost
    assert estimate.net_profit == 0
    assert not estimate.is_profitable
    assert stats.get("profitable") == 0


def test_zero_gas_price_uses_fallback(estimator, make_event):
    estimate = estimator.estimate(make_event(gas_price=0))

    assert estimate.gas_price == 30 * GWEI
    assert estimate.gas_cost == 71_000 * 30 * GWEI


@pytest.mark.parametrize(
    "value, gas_price, expected_rate",
    [
        (10**18, 20 * GWEI, 0.8),
        (2 * 10**18, 20 * GWEI, 0.8 * 0.7),
        (10**18, 150 * GWEI, 0.8 * 0.9),
        (2 * 10**18, 150 * GWEI, 0.8 * 0.7 * 0.9),
    ],
)
def test_success_rate_discounts(make_event, value, gas_price, expected_rate):
    model = PercentageProfitModel()
    assessment = model(make_event(value=value, gas_price=gas_price), 0)
    assert assessment.success_rate == pytest.approx(expected_rate)


@pytest.mark.parametrize(
    "rate, level",
    [(0.95, RiskLevel.LOW), (0.9, RiskLevel.LOW), (0.8, RiskLevel.MEDIUM), (0.7, RiskLevel.MEDIUM), (0.5, RiskLevel.HIGH)],
)
def test_assess_risk(rate, level):
    assert assess_risk(rate) is level


def test_custom_model_is_used(stats, make_event):
    seen = []

    def model(event, gas_cost):
        seen.append(gas_cost)
        return ProfitAssessment(gas_cost + 5, 0.95, RiskLevel.LOW)

    estimator = ProfitEstimator(asyncio.Queue(), asyncio.Queue(), stats, model=model)
    estimate = estimator.estimate(make_event())

    assert estimate.net_profit == 5
    assert estimate.risk_level is RiskLevel.LOW
    assert seen == [estimate.gas_cost]


def test_profit_estimate_rejects_inconsistent_net():
    with pytest.raises(ValueError):
        ProfitEstimate(
            tx_hash="0x01",
            target_contract=UNISWAP_V2_ROUTER,
            method="swapExactETHForTokens",
            gross_profit=100,
            gas_cost=10,
            net_profit=100,
            success_rate=0.8,
            risk_level=RiskLevel.MEDIUM,
        )


def test_to_dict_has_eth_amount(estimator, make_event):
    data = estimator.estimate(make_event(value=10**18, gas_price=20 * GWEI)).to_dict()
    assert data["net_profit_eth"] == "0.00858"
    assert data["risk_level"] == "medium"


@pytest.mark.asyncio
async def test_failing_model_counts_failed(stats, make_event):
    def broken(event, gas_cost):
        raise ZeroDivisionError("boom")

    decoded_queue = asyncio.Queue()
    result_queue = asyncio.Queue()
    estimator = ProfitEstimator(decoded_queue, result_queue, stats, model=broken, workers=1)

    await estimator.start()
    try:
        decoded_queue.put_nowait(make_event())
        await asyncio.wait_for(decoded_queue.join(), timeout=1)
    finally:
        await estimator.stop()

    assert stats.get("simulated") == 1
    assert stats.get("failed") == 1
    assert result_queue.empty()


@pytest.mark.asyncio
async def test_full_result_queue_drops_without_blocking(stats, make_event):
    decoded_queue = asyncio.Queue()
    result_queue = asyncio.Queue(maxsize=1)
    result_queue.put_nowait("occupied")
    estimator = ProfitEstimator(decoded_queue, result_queue, stats, workers=1)

    await estimator.start()
    try:
        decoded_queue.put_nowait(make_event())
        await asyncio.wait_for(decoded_queue.join(), timeout=1)
    finally:
        await estimator.stop()

    assert stats.get("dropped") == 1
    assert stats.get("failed") == 0
    assert result_queue.qsize() == 1
