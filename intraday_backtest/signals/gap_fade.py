"""
갭 페이드 (Gap Fade) 시그널. 결합 가중치의 sentiment 자리에 사용.

[ 로직 ]
    전일 종가: 일봉 중 시뮬레이션 날짜 이전의 마지막 봉 (없으면 끝에서 두 번째 일봉)
    당일 시가: 세션 첫 봉의 시가 (세션 봉은 모두 시뮬레이션 날짜의 봉)
    갭(%) = (시가 - 전일 종가) / 전일 종가 * 100

    갭 크기 구간 점수 (상승 갭 → 음수, 하락 갭 → 양수)
        |갭| > 3   → 0.7
        |갭| > 2   → 0.5
        |갭| > 1   → 0.35
        |갭| > 0.5 → 0.2
        그 외      → 0.1
    × 시간 감쇠 = max(0.2, 1 - 세션 봉 수 / 78)
    × 갭 메움 할인: 메움률 > 80% → 0.3, > 50% → 0.6

    신뢰도 = max(0.2, 0.6 × 시간 감쇠)

[ 예외 처리 ]
    일봉 2개 미만 / 장중 봉 6개 미만 → 중립 (신뢰도 0)
    전일 종가 0 → 중립 (신뢰도 0)
    |갭| < 0.1% → 갭 없음 (중립, 신뢰도 0.2)
"""

import pandas as pd

from intraday_backtest.core.signal import SignalInputs, SignalResult
from intraday_backtest.signals import register

NAME = "Gap Fade"
MIN_DAILY_BARS = 2
MIN_INTRADAY_BARS = 6
SESSION_BARS = 78
MIN_GAP_PERCENT = 0.1
DECAY_FLOOR = 0.2

GAP_BUCKETS = ((3.0, 0.7), (2.0, 0.5), (1.0, 0.35), (0.5, 0.2))
SMALL_GAP_SCORE = 0.1
FILL_DISCOUNTS = ((80.0, 0.3), (50.0, 0.6))


def previous_close(daily_bars: pd.DataFrame, current_date: str) -> float:
    """current_date 이전 마지막 일봉 종가. 없으면 끝에서 두 번째 일봉 종가."""
    prior = daily_bars[daily_bars["date"] < current_date]
    if not prior.empty:
        return float(prior["close"].iloc[-1])
    return float(daily_bars["close"].iloc[-2])


def session_open(session_bars: pd.DataFrame) -> float:
    """세션 첫 봉 시가."""
    return float(session_bars["open"].iloc[0])


def _gap_score(gap_percent: float) -> float:
    magnitude = abs(gap_percent)
    value = SMALL_GAP_SCORE
    for threshold, bucket in GAP_BUCKETS:
        if magnitude > threshold:
            value = bucket
            break
    # 상승 갭은 하락 회귀(매도), 하락 갭은 상승 회귀(매수) 기대
    return -value if gap_percent > 0 else value


def gap_fade_signal(
    session_bars: pd.DataFrame,
    daily_bars: pd.DataFrame,
    current_date: str,
) -> SignalResult:
    """당일 세션 봉 + 일봉으로 갭 페이드 시그널 계산.

    Args:
        session_bars: 당일 세션 장중 봉 (시간순)
        daily_bars: 해당 종목 일봉 전체
        current_date: 시뮬레이션 날짜 (YYYY-MM-DD)
    """
    if daily_bars is None or len(daily_bars) < MIN_DAILY_BARS:
        return SignalResult.neutral(NAME, f"데이터 부족 (일봉 {MIN_DAILY_BARS}개 필요)")
    if session_bars is None or len(session_bars) < MIN_INTRADAY_BARS:
        return SignalResult.neutral(NAME, f"데이터 부족 (장중 봉 {MIN_INTRADAY_BARS}개 필요)")

    prev_close = previous_close(daily_bars, current_date)
    if prev_close <= 0:
        return SignalResult.neutral(NAME, "전일 종가 없음")

    open_price = session_open(session_bars)
    price = float(session_bars["close"].iloc[-1])
    gap_percent = (open_price - prev_close) / prev_close * 100

    if abs(gap_percent) < MIN_GAP_PERCENT:
        return SignalResult.neutral(NAME, f"갭 없음 ({gap_percent:+.2f}%)", confidence=0.2)

    # 갭 메움률: 시가에서 전일 종가 방향으로 되돌아온 비율
    fill_percent = (open_price - price) / (open_price - prev_close) * 100
    time_decay = max(DECAY_FLOOR, 1 - len(session_bars) / SESSION_BARS)

    score = _gap_score(gap_percent) * time_decay
    for threshold, discount in FILL_DISCOUNTS:
        if fill_percent > threshold:
            score *= discount
            break

    return SignalResult(
        name=NAME,
        score=score,
        confidence=max(0.2, 0.6 * time_decay),
        reason=f"갭 {gap_percent:+.2f}%, 메움 {fill_percent:.0f}%, 감쇠 {time_decay:.2f}",
    )


@register("sentiment")
def evaluate(inputs: SignalInputs) -> SignalResult:
    return gap_fade_signal(inputs.session_bars, inputs.daily_bars, inputs.current_date)
