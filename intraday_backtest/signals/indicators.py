"""
기술적 지표 계산 유틸리티.

[ 역할 ]
    시그널 생성기들이 공유하는 순수 함수 모음.
    입력은 봉 DataFrame 또는 numpy 배열, 0으로 나누는 경우는 모두 정의된 값으로 처리.
"""

import numpy as np
import pandas as pd


def clamp(value: float, low: float = -1.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def typical_price(bars: pd.DataFrame) -> np.ndarray:
    """(고가 + 저가 + 종가) / 3."""
    return (bars["high"].to_numpy(dtype=float) + bars["low"].to_numpy(dtype=float)
            + bars["close"].to_numpy(dtype=float)) / 3


def vwap_stats(bars: pd.DataFrame) -> tuple[float, float] | None:
    """거래량 가중 평균가(VWAP)와 VWAP 기준 대표가격의 모표준편차.

    Returns:
        (vwap, std), 누적 거래량이 0이면 None
    """
    tp = typical_price(bars)
    volume = bars["volume"].to_numpy(dtype=float)
    cum_volume = volume.sum()
    if cum_volume == 0:
        return None
    vwap = float((tp * volume).sum() / cum_volume)
    std = float(np.sqrt(np.mean((tp - vwap) ** 2)))
    return vwap, std


def average_true_range(bars: pd.DataFrame, period: int = 14) -> float | None:
    """최근 최대 period개 봉의 평균 True Range.

    TR = max(고가-저가, |고가-전봉종가|, |저가-전봉종가|)
    봉이 2개 미만이면 None.
    """
    if len(bars) < 2:
        return None
    high = bars["high"].to_numpy(dtype=float)
    low = bars["low"].to_numpy(dtype=float)
    close = bars["close"].to_numpy(dtype=float)

    prev_close = close[:-1]
    tr = np.maximum.reduce([
        high[1:] - low[1:],
        np.abs(high[1:] - prev_close),
        np.abs(low[1:] - prev_close),
    ])
    return float(tr[-period:].mean())


def relative_strength_index(closes: np.ndarray, period: int = 14) -> float:
    """RSI. 최근 period개 가격 변화의 평균 상승폭/평균 하락폭으로 계산.

    가격이 period + 1개 미만이면 50, 평균 하락폭이 0이면 100.
    """
    closes = np.asarray(closes, dtype=float)
    if len(closes) < period + 1:
        return 50.0
    changes = np.diff(closes)[-period:]
    avg_gain = changes[changes > 0].sum() / period
    avg_loss = -changes[changes < 0].sum() / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return float(100 - 100 / (1 + rs))
