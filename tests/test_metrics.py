"""Tests for backtest metrics."""

import math

import pytest

from intraday_backtest.backtest.metrics import (
    DailyReturn,
    calculate_metrics,
    max_drawdown,
    sharpe_ratio,
)


def _series(returns, initial=10_000.0):
    out = []
    value = initial
    for i, r in enumerate(returns):
        value *= 1 + r
        out.append(DailyReturn(date=f"2024-03-{i + 1:02d}", daily_return=r, value=value))
    return out


def test_all_zero_returns():
    result = calculate_metrics(_series([0.0] * 30), 10_000)
    assert result.total_return == 0
    assert result.sharpe == 0
    assert result.max_drawdown == 0
    assert result.final_value == 10_000
    assert result.win_rate == 0


def test_no_returns_uses_initial_capital():
    result = calculate_metrics([], 10_000)
    assert result.final_value == 10_000
    assert result.total_return == 0
    assert result.sharpe == 0
    assert result.max_drawdown == 0


def test_total_return_from_final_value():
    result = calculate_metrics(_series([0.01, 0.02]), 10_000, final_value=10_500)
    assert result.total_return == pytest.approx(5.0)
    assert result.final_value == 10_500


def test_drawdown_compounds_from_initial_capital():
    # 11000 → 5500 → 6600: peak 11000, trough 5500
    assert max_drawdown([0.1, -0.5, 0.2], 10_000) == pytest.approx(50.0)
    # first-day loss measured against the initial capital
    assert max_drawdown([-0.1], 10_000) == pytest.approx(10.0)
    assert max_drawdown([0.01, 0.02, 0.03], 10_000) == 0.0


def test_sharpe_population_std():
    returns = [0.01, -0.005, 0.02, 0.0]
    rf = 0.05 / 252
    excess = [r - rf for r in returns]
    mean = sum(excess) / len(excess)
    std = math.sqrt(sum((e - mean) ** 2 for e in excess) / len(excess))
    assert sharpe_ratio(returns) == pytest.approx(mean * math.sqrt(252) / std)


def test_sharpe_constant_returns_is_zero():
    assert sharpe_ratio([0.001] * 10) == 0.0
    assert sharpe_ratio([]) == 0.0


def test_win_rate():
    result = calculate_metrics(_series([0.0]), 10_000, win_trades=3, loss_trades=1, total_trades=9)
    assert result.win_rate == pytest.approx(75.0)
    assert result.total_trades == 9


def test_summary_and_to_dict():
    result = calculate_metrics(_series([0.01, -0.02]), 10_000, total_tx_costs=1.5)
    text = result.summary()
    assert "총 수익률" in text
    assert "샤프 비율" in text
    data = result.to_dict()
    assert data["total_tx_costs"] == 1.5
    assert len(data["daily_returns"]) == 2
    assert data["daily_returns"][0]["date"] == "2024-03-01"
