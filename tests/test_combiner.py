"""Tests for the weighted signal combiner."""

import itertools

import pandas as pd
import pytest

from intraday_backtest.core.signal import SIGNAL_KEYS, Recommendation, SignalInputs, SignalResult
from intraday_backtest.signals import SIGNAL_REGISTRY, evaluate_signals
from intraday_backtest.signals.combiner import classify, combine_signals, evaluate_symbol
from intraday_backtest.utils.config import StrategyWeights


@pytest.fixture
def results() -> dict[str, SignalResult]:
    return {
        "momentum": SignalResult("Intraday Momentum", 0.4, 0.65, "up"),
        "mean_reversion": SignalResult("VWAP Reversion", -0.2, 0.5, "above vwap"),
        "sentiment": SignalResult("Gap Fade", 0.35, 0.4, "gap down"),
        "technical": SignalResult("RSI + Volume", 0.65, 0.7, "oversold"),
    }


def test_combined_score_is_weighted_sum(results):
    weights = StrategyWeights().as_dict()
    signal = combine_signals("AAA", results, weights)
    expected = 0.4 * 0.08 + -0.2 * 0.41 + 0.35 * 0.15 + 0.65 * 0.36
    assert signal.combined_score == pytest.approx(expected)
    assert signal.recommendation is Recommendation.BUY
    assert list(signal.components) == list(SIGNAL_KEYS)


def test_combined_score_independent_of_evaluation_order(results):
    weights = StrategyWeights().as_dict()
    baseline = combine_signals("AAA", results, weights).combined_score
    for order in itertools.permutations(results):
        permuted = {key: results[key] for key in order}
        assert combine_signals("AAA", permuted, weights).combined_score == baseline


def test_missing_component_counts_as_zero(results):
    weights = {"momentum": 1.0, "mean_reversion": 0.0, "sentiment": 0.0, "technical": 0.0}
    del results["technical"]
    signal = combine_signals("AAA", results, weights)
    assert signal.combined_score == pytest.approx(0.4)
    assert "technical" not in signal.components


def test_components_are_read_only(results):
    signal = combine_signals("AAA", results, StrategyWeights().as_dict())
    with pytest.raises(TypeError):
        signal.components["momentum"] = SignalResult("x", 1.0, 1.0)


@pytest.mark.parametrize(
    "score, expected",
    [
        (0.51, Recommendation.STRONG_BUY),
        (0.5, Recommendation.BUY),
        (0.16, Recommendation.BUY),
        (0.15, Recommendation.HOLD),
        (0.0, Recommendation.HOLD),
        (-0.15, Recommendation.HOLD),
        (-0.16, Recommendation.SELL),
        (-0.5, Recommendation.SELL),
        (-0.51, Recommendation.STRONG_SELL),
    ],
)
def test_classify_thresholds(score, expected):
    assert classify(score) is expected


def test_evaluate_symbol_runs_registered_signals(make_bars):
    bars = make_bars("2024-03-04", [100.0] * 30)
    inputs = SignalInputs(
        symbol="AAA",
        current_date="2024-03-04",
        recent_bars=bars,
        session_bars=bars,
        daily_bars=pd.DataFrame(columns=["date", "close"]),
    )
    signal = evaluate_symbol(inputs, StrategyWeights().as_dict())
    assert signal.symbol == "AAA"
    assert set(signal.components) == set(SIGNAL_KEYS)
    # flat prices: only the RSI bucket fires (no losses → RSI 100)
    assert signal.combined_score == pytest.approx(-0.65 * 0.36)


def test_evaluate_signals_requires_all_keys(monkeypatch, make_bars):
    monkeypatch.delitem(SIGNAL_REGISTRY, "momentum")
    bars = make_bars("2024-03-04", [100.0] * 30)
    inputs = SignalInputs("AAA", "2024-03-04", bars, bars, bars)
    with pytest.raises(ValueError, match="momentum"):
        evaluate_signals(inputs)
