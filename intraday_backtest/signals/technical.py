"""
RSI + 거래량 (Technical) 시그널.

[ 로직 ]
    1. RSI(7) 구간 점수
           < 20 → +0.5    > 80 → -0.5
           < 30 → +0.3    > 70 → -0.3
           < 40 → +0.15   > 60 → -0.15
           40 ~ 60 → 0
    2. RSI(7)과 RSI(14)가 같은 방향이면 ×1.3
           과매도: RSI(7) < 40 and RSI(14) < 45
           과매수: RSI(7) > 60 and RSI(14) > 55
    3. 거래량 비율 = 최근 6봉 평균 / 최근 최대 40봉 평균
           > 2.5       → 최근 6봉 가격 변화 방향으로 ±0.25
           1.5 ~ 2.5   → ±0.1
    최종 점수 [-1, 1] 제한, 신뢰도 0.7.

[ 예외 처리 ]
    봉 20개 미만 → 중립 (신뢰도 0)
"""

import numpy as np
import pandas as pd

from intraday_backtest.core.signal import SignalInputs, SignalResult
from intraday_backtest.signals import register
from intraday_backtest.signals.indicators import clamp, relative_strength_index

NAME = "RSI + Volume"
MIN_BARS = 20
CONFIDENCE = 0.7

RSI_BUCKETS = ((20, 80, 0.5), (30, 70, 0.3), (40, 60, 0.15))
AGREEMENT_MULTIPLIER = 1.3
RECENT_VOLUME_BARS = 6
AVERAGE_VOLUME_BARS = 40


def _rsi_score(rsi: float) -> float:
    for oversold, overbought, value in RSI_BUCKETS:
        if rsi < oversold:
            return value
        if rsi > overbought:
            return -value
    return 0.0


def rsi_volume_signal(bars: pd.DataFrame) -> SignalResult:
    """최근 봉(최대 50개)으로 RSI + 거래량 시그널 계산."""
    if bars is None or len(bars) < MIN_BARS:
        return SignalResult.neutral(NAME, f"데이터 부족 (최소 {MIN_BARS}봉 필요)")

    closes = bars["close"].to_numpy(dtype=float)
    volumes = bars["volume"].to_numpy(dtype=float)

    rsi7 = relative_strength_index(closes, 7)
    rsi14 = relative_strength_index(closes, 14)
    score = _rsi_score(rsi7)
    reasons = [f"RSI7 {rsi7:.0f}", f"RSI14 {rsi14:.0f}"]

    if (rsi7 < 40 and rsi14 < 45) or (rsi7 > 60 and rsi14 > 55):
        score *= AGREEMENT_MULTIPLIER
        reasons.append("RSI 방향 일치")

    avg_volume = volumes[-AVERAGE_VOLUME_BARS:].mean()
    if avg_volume > 0:
        recent = closes[-RECENT_VOLUME_BARS:]
        volume_ratio = volumes[-RECENT_VOLUME_BARS:].mean() / avg_volume
        direction = np.sign(recent[-1] - recent[0])
        if volume_ratio > 2.5:
            score += 0.25 * direction
            reasons.append(f"거래량 급증 x{volume_ratio:.1f}")
        elif volume_ratio > 1.5:
            score += 0.1 * direction
            reasons.append(f"거래량 증가 x{volume_ratio:.1f}")

    return SignalResult(
        name=NAME,
        score=clamp(float(score)),
        confidence=CONFIDENCE,
        reason=", ".join(reasons),
    )


@register("technical")
def evaluate(inputs: SignalInputs) -> SignalResult:
    return rsi_volume_signal(inputs.recent_bars)
