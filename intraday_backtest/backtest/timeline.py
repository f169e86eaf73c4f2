"""
거래 타임라인 구성.

[ 역할 ]
    모든 종목의 장중 봉 timestamp를 합집합(중복 제거) → 정렬 → 거래일별로 묶어
    시뮬레이션의 전역 동기화 지점을 만든다.
    timestamp는 ISO-8601 문자열이므로 문자열 정렬 = 시간 정렬.

[ 백테스트 구간 ]
    타임라인의 마지막 N 거래일. 그 중 timestamp가 6개 미만인 날은 건너뛴다
    (건너뛴 날도 N일 구간에는 포함된다).

[ 호출하는 곳 ]
    - backtest/engine.py::IntradayBacktestEngine.run_backtest()
"""

from typing import Iterable

import pandas as pd

MIN_BARS_PER_DAY = 6


def build_timeline(intraday: Iterable[pd.DataFrame]) -> dict[str, list[str]]:
    """장중 봉 DataFrame들 → {거래일: [timestamp, ...]} (거래일/시각 오름차순)."""
    timestamps: set[str] = set()
    for df in intraday:
        if df is None or df.empty:
            continue
        timestamps.update(df["timestamp"].astype(str))

    timeline: dict[str, list[str]] = {}
    for ts in sorted(timestamps):
        day = ts.split("T")[0]
        timeline.setdefault(day, []).append(ts)
    return timeline


def select_backtest_days(
    timeline: dict[str, list[str]],
    n_days: int,
    min_bars: int = MIN_BARS_PER_DAY,
) -> list[str]:
    """마지막 n_days 거래일 중 timestamp가 min_bars개 이상인 날."""
    if n_days <= 0:
        return []
    days = list(timeline.keys())[-n_days:]
    return [day for day in days if len(timeline[day]) >= min_bars]
