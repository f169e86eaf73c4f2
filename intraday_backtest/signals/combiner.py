"""
시그널 결합기.

[ 역할 ]
    4개 SignalResult를 설정 가중치로 가중합하여 CombinedSignal 생성.
        combined_score = Σ score × weight   (SIGNAL_KEYS 순서로 합산)

    추천 등급 (고정 임계값, 설정 불가)
        > 0.5   → STRONG_BUY
        > 0.15  → BUY
        < -0.5  → STRONG_SELL
        < -0.15 → SELL
        그 외   → HOLD

[ 호출하는 곳 ]
    - backtest/engine.py::IntradayBacktestEngine._compute_signals()
"""

from typing import Mapping

from intraday_backtest.core.signal import (
    SIGNAL_KEYS,
    CombinedSignal,
    Recommendation,
    SignalInputs,
    SignalResult,
)
from intraday_backtest.signals import evaluate_signals

STRONG_THRESHOLD = 0.5
THRESHOLD = 0.15


def classify(score: float) -> Recommendation:
    """결합 점수 → 추천 등급."""
    if score > STRONG_THRESHOLD:
        return Recommendation.STRONG_BUY
    if score > THRESHOLD:
        return Recommendation.BUY
    if score < -STRONG_THRESHOLD:
        return Recommendation.STRONG_SELL
    if score < -THRESHOLD:
        return Recommendation.SELL
    return Recommendation.HOLD


def combine_signals(
    symbol: str,
    results: Mapping[str, SignalResult],
    weights: Mapping[str, float],
) -> CombinedSignal:
    """SignalResult 맵 + 가중치 → CombinedSignal. 결과가 없는 키는 0점으로 본다."""
    combined = 0.0
    for key in SIGNAL_KEYS:
        result = results.get(key)
        if result is not None:
            combined += result.score * weights.get(key, 0.0)

    return CombinedSignal(
        symbol=symbol,
        combined_score=combined,
        recommendation=classify(combined),
        components={k: results[k] for k in SIGNAL_KEYS if k in results},
    )


def evaluate_symbol(inputs: SignalInputs, weights: Mapping[str, float]) -> CombinedSignal:
    """등록된 4개 시그널 평가 후 결합."""
    return combine_signals(inputs.symbol, evaluate_signals(inputs), weights)
