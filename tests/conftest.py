"""Shared test fixtures."""

from datetime import date

import numpy as np
import pandas as pd
import pytest

from intraday_backtest.core.signal import CombinedSignal, Recommendation
from intraday_backtest.data.bar_store import BarStore
from intraday_backtest.data.sample_data import aggregate_daily, generate_sample_universe
from intraday_backtest.signals.combiner import classify
from intraday_backtest.utils.config import BacktestConfig


def _bars_for_day(day: str, closes, volume=1000.0, spread=0.0, first_open=None) -> pd.DataFrame:
    closes = np.asarray(closes, dtype=float)
    n = len(closes)
    times = pd.Timestamp(f"{day} 09:30") + pd.to_timedelta(np.arange(n) * 5, unit="min")
    opens = np.concatenate(([closes[0] if first_open is None else first_open], closes[:-1]))
    volumes = np.array(np.broadcast_to(np.asarray(volume, dtype=float), (n,)))
    return pd.DataFrame({
        "timestamp": [t.isoformat() for t in times],
        "date": day,
        "open": opens,
        "high": np.maximum(opens, closes) + spread,
        "low": np.minimum(opens, closes) - spread,
        "close": closes,
        "volume": volumes,
    })


@pytest.fixture
def make_bars():
    """Factory: closes for one session → intraday bar DataFrame (5-minute bars from 09:30)."""
    return _bars_for_day


@pytest.fixture
def make_signal():
    """Factory: symbol + score → CombinedSignal with the matching recommendation."""
    def _make(symbol: str, score: float) -> CombinedSignal:
        return CombinedSignal(symbol=symbol, combined_score=score, recommendation=classify(score))
    return _make


@pytest.fixture
def config() -> BacktestConfig:
    return BacktestConfig()


@pytest.fixture
def trading_days() -> list[str]:
    """32 consecutive business days."""
    return [d.strftime("%Y-%m-%d") for d in pd.bdate_range("2024-02-01", periods=32)]


@pytest.fixture
def flat_store(trading_days) -> BarStore:
    """One symbol at a constant price of 100, 78 bars per session."""
    intraday = pd.concat(
        [_bars_for_day(day, [100.0] * 78) for day in trading_days],
        ignore_index=True,
    )
    return BarStore.from_frames({"FLAT": intraday}, {"FLAT": aggregate_daily(intraday)})


@pytest.fixture
def drop_store() -> BarStore:
    """Price flat at 100 on day one, 95 on day two."""
    day1 = _bars_for_day("2024-03-04", [100.0] * 78)
    day2 = _bars_for_day("2024-03-05", [95.0] * 78)
    intraday = pd.concat([day1, day2], ignore_index=True)
    return BarStore.from_frames({"DROP": intraday}, {"DROP": aggregate_daily(intraday)})


@pytest.fixture
def sample_store() -> BarStore:
    """Random-walk bars for four symbols over eight sessions."""
    intraday, daily = generate_sample_universe(
        ["AAA", "BBB", "CCC", "DDD"], days=8, end_date=date(2024, 3, 29)
    )
    return BarStore.from_frames(intraday, daily)


@pytest.fixture
def strong_buy_evaluator():
    """Signal evaluator forcing combined score 0.8 for every symbol."""
    def _evaluate(inputs):
        return CombinedSignal(
            symbol=inputs.symbol,
            combined_score=0.8,
            recommendation=Recommendation.STRONG_BUY,
        )
    return _evaluate
