"""
ATR 정규화 장중 모멘텀 시그널.

[ 로직 ]
    최근 최대 14봉 ATR을 구하고, 6/12/24봉 전(5분봉 기준 30분/1시간/2시간) 대비
    가격 변화를 ATR로 나눈 값 m을 구간 점수로 변환해 합산.

        |m| > 3 → ±0.4
        |m| > 2 → ±0.25
        |m| > 1 → ±0.1
        그 외   → 0

    히스토리가 부족한 lookback은 건너뛴다. 합계는 [-1, 1]로 제한, 신뢰도 0.65.

[ 예외 처리 ]
    봉 12개 미만 → 중립 (신뢰도 0)
    ATR 0 → 중립 (신뢰도 0.3)
"""

import pandas as pd

from intraday_backtest.core.signal import SignalInputs, SignalResult
from intraday_backtest.signals import register
from intraday_backtest.signals.indicators import average_true_range, clamp

NAME = "Intraday Momentum"
MIN_BARS = 12
ATR_PERIOD = 14
LOOKBACKS = (6, 12, 24)
MOVE_BUCKETS = ((3.0, 0.4), (2.0, 0.25), (1.0, 0.1))
CONFIDENCE = 0.65


def _bucket(move: float) -> float:
    for threshold, value in MOVE_BUCKETS:
        if abs(move) > threshold:
            return value if move > 0 else -value
    return 0.0


def atr_momentum_signal(bars: pd.DataFrame) -> SignalResult:
    """최근 봉(최대 50개)으로 ATR 정규화 모멘텀 시그널 계산."""
    if bars is None or len(bars) < MIN_BARS:
        return SignalResult.neutral(NAME, f"데이터 부족 (최소 {MIN_BARS}봉 필요)")

    atr = average_true_range(bars, ATR_PERIOD)
    if not atr:
        return SignalResult.neutral(NAME, "ATR 0", confidence=0.3)

    closes = bars["close"].to_numpy(dtype=float)
    price = closes[-1]

    score = 0.0
    reasons = []
    for lookback in LOOKBACKS:
        if len(closes) <= lookback:
            continue
        move = (price - closes[-1 - lookback]) / atr
        score += _bucket(move)
        reasons.append(f"{lookback}봉: {move:+.2f}ATR")

    return SignalResult(
        name=NAME,
        score=clamp(score),
        confidence=CONFIDENCE,
        reason=", ".join(reasons),
    )


@register("momentum")
def evaluate(inputs: SignalInputs) -> SignalResult:
    return atr_momentum_signal(inputs.recent_bars)
