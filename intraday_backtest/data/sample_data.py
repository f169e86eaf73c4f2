"""
백테스트용 샘플 봉 데이터 생성.

[ 역할 ]
    외부 데이터 없이 엔진을 돌려볼 수 있도록 5분봉 랜덤워크를 생성.
    장 시작 시 전일 종가 대비 갭을 주어 갭 페이드 시그널도 동작하게 함.

[ 호출하는 곳 ]
    - run_backtest.py --source sample
    - tests/conftest.py
"""

import zlib
from datetime import date

import numpy as np
import pandas as pd

BARS_PER_SESSION = 78  # 09:30 ~ 15:55, 5분 간격


def generate_intraday_bars(
    symbol: str,
    days: int,
    end_date: date | None = None,
    bars_per_day: int = BARS_PER_SESSION,
    start_price: float = 100.0,
    volatility: float = 0.002,
    gap_volatility: float = 0.01,
    seed: int | None = None,
) -> pd.DataFrame:
    """영업일 기준 days일치 5분봉 생성.

    Args:
        symbol: 종목 코드 (seed 미지정 시 심볼로 seed 결정)
        days: 생성할 거래일 수
        end_date: 마지막 거래일 (기본: 오늘 이전 영업일)
        volatility: 봉 단위 수익률 표준편차
        gap_volatility: 장 시작 갭 표준편차

    Returns:
        DataFrame with columns: [timestamp, open, high, low, close, volume]
    """
    rng = np.random.default_rng(seed if seed is not None else zlib.crc32(symbol.encode()))
    end = pd.Timestamp(end_date) if end_date else pd.Timestamp.today().normalize() - pd.offsets.BDay(1)
    sessions = pd.bdate_range(end=end, periods=days)

    rows = []
    price = start_price
    for session in sessions:
        price *= 1 + rng.normal(0, gap_volatility)
        times = session + pd.Timedelta(hours=9, minutes=30) + pd.to_timedelta(np.arange(bars_per_day) * 5, unit="min")
        returns = rng.normal(0, volatility, bars_per_day)
        # 장 초반/후반 거래량이 많은 U자형
        shape = 1 + 1.5 * np.abs(np.linspace(-1, 1, bars_per_day)) ** 2
        volumes = rng.lognormal(9, 0.5, bars_per_day) * shape

        for ts, ret, volume in zip(times, returns, volumes):
            open_price = price
            close = price * (1 + ret)
            high = max(open_price, close) * (1 + abs(rng.normal(0, volatility / 2)))
            low = min(open_price, close) * (1 - abs(rng.normal(0, volatility / 2)))
            rows.append({
                "timestamp": ts.isoformat(),
                "open": round(open_price, 4),
                "high": round(high, 4),
                "low": round(low, 4),
                "close": round(close, 4),
                "volume": int(volume),
            })
            price = close

    return pd.DataFrame(rows)


def aggregate_daily(intraday: pd.DataFrame) -> pd.DataFrame:
    """장중 봉을 일봉으로 집계."""
    df = intraday.copy()
    df["date"] = df["timestamp"].astype(str).str.split("T").str[0]
    daily = df.groupby("date", sort=True).agg(
        open=("open", "first"),
        high=("high", "max"),
        low=("low", "min"),
        close=("close", "last"),
        volume=("volume", "sum"),
    )
    return daily.reset_index()


def generate_sample_universe(
    symbols: list[str],
    days: int,
    end_date: date | None = None,
    bars_per_day: int = BARS_PER_SESSION,
) -> tuple[dict[str, pd.DataFrame], dict[str, pd.DataFrame]]:
    """여러 종목의 (장중 봉, 일봉) 딕셔너리 생성."""
    intraday: dict[str, pd.DataFrame] = {}
    daily: dict[str, pd.DataFrame] = {}
    for i, symbol in enumerate(symbols):
        df = generate_intraday_bars(
            symbol,
            days=days,
            end_date=end_date,
            bars_per_day=bars_per_day,
            start_price=50.0 + 25.0 * (i % 8),
        )
        intraday[symbol] = df
        daily[symbol] = aggregate_daily(df)
    return intraday, daily
