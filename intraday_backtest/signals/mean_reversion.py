"""
VWAP 회귀 (Mean Reversion) 시그널.

[ 로직 ]
    당일 세션 봉으로 VWAP과 대표가격 표준편차를 구하고,
    현재가의 z-score = (현재가 - VWAP) / 표준편차 를 점수로 변환.
    VWAP 위 → 하락 회귀 기대(매도, 음수), VWAP 아래 → 상승 회귀 기대(매수, 양수).

        z < -2   → +0.8      z > 2   → -0.8
        z < -1.5 → +0.6      z > 1.5 → -0.6
        z < -1   → +0.4      z > 1   → -0.4
        z < -0.5 → +0.2      z > 0.5 → -0.2
        그 외    →  0

    신뢰도 = min(0.8, 0.3 + 세션 봉 수 / 78 * 0.5)

[ 예외 처리 ]
    세션 봉 6개 미만 / 거래량 0 → 중립 (신뢰도 0)
    표준편차 0 → 점수 0, 신뢰도 0.3
"""

import pandas as pd

from intraday_backtest.core.signal import SignalInputs, SignalResult
from intraday_backtest.signals import register
from intraday_backtest.signals.indicators import vwap_stats

NAME = "VWAP Reversion"
MIN_SESSION_BARS = 6
SESSION_BARS = 78

Z_BUCKETS = ((2.0, 0.8), (1.5, 0.6), (1.0, 0.4), (0.5, 0.2))


def vwap_reversion_signal(session_bars: pd.DataFrame) -> SignalResult:
    """당일 세션 봉으로 VWAP 회귀 시그널 계산."""
    if session_bars is None or len(session_bars) < MIN_SESSION_BARS:
        return SignalResult.neutral(NAME, f"데이터 부족 (세션 봉 {MIN_SESSION_BARS}개 필요)")

    stats = vwap_stats(session_bars)
    if stats is None:
        return SignalResult.neutral(NAME, "거래량 없음")
    vwap, std = stats
    if std == 0:
        return SignalResult.neutral(NAME, "가격 변동 없음", confidence=0.3)

    price = float(session_bars["close"].iloc[-1])
    z = (price - vwap) / std

    score = 0.0
    for threshold, value in Z_BUCKETS:
        if z < -threshold:
            score = value
            break
        if z > threshold:
            score = -value
            break

    confidence = min(0.8, 0.3 + len(session_bars) / SESSION_BARS * 0.5)
    return SignalResult(
        name=NAME,
        score=score,
        confidence=confidence,
        reason=f"z={z:.2f} (가격 {price:.2f}, VWAP {vwap:.2f})",
    )


@register("mean_reversion")
def evaluate(inputs: SignalInputs) -> SignalResult:
    return vwap_reversion_signal(inputs.session_bars)
