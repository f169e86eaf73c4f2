"""
메모리 기반 봉 저장소 (Bar Store).

[ 역할 ]
    core/data_provider.py::DataProvider 구현체.
    종목별 장중 봉 / 일봉 DataFrame을 정규화하여 보관하고 읽기 전용으로 제공.

[ 정규화 규칙 (normalize_bars) ]
    - timestamp 또는 date 컬럼 허용 (문자열 / datetime 모두)
    - timestamp를 ISO-8601 문자열로 변환, date = 'T' 앞부분
    - open / close / volume 결측 행 제거
    - timestamp 오름차순 정렬, 중복 timestamp는 마지막 행 유지

[ 호출하는 곳 ]
    - run_backtest.py에서 샘플 데이터 / CSV로 BarStore 구성
    - backtest/engine.py가 DataProvider 인터페이스로 조회
"""

import logging
from pathlib import Path

import pandas as pd

from intraday_backtest.core.data_provider import BAR_COLUMNS, DataProvider

logger = logging.getLogger("intraday_backtest.data")

# 수집 단계에서 제외되어야 하는 외환/선물 심볼 접미사
EXCLUDED_SUFFIXES = ("=X", "=F")


def _to_iso(value) -> str:
    """datetime / date / 문자열을 ISO-8601 문자열로. 'YYYY-MM-DD HH:MM' 형식은 'T'로 연결."""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value).strip().replace(" ", "T", 1)


def normalize_bars(df: pd.DataFrame, daily: bool = False) -> pd.DataFrame:
    """봉 DataFrame을 [timestamp, date, open, high, low, close, volume] 형식으로 정규화."""
    if df is None or df.empty:
        return pd.DataFrame(columns=BAR_COLUMNS)

    df = df.copy()
    if "timestamp" not in df.columns:
        if "date" not in df.columns:
            raise ValueError("봉 데이터에 timestamp 또는 date 컬럼이 필요합니다.")
        df["timestamp"] = df["date"]

    df["timestamp"] = df["timestamp"].map(_to_iso)
    if daily:
        df["timestamp"] = df["timestamp"].str.split("T").str[0]
    df["date"] = df["timestamp"].str.split("T").str[0]

    missing = [c for c in ("open", "high", "low", "close", "volume") if c not in df.columns]
    if missing:
        raise ValueError(f"봉 데이터에 필수 컬럼 누락: {missing}")

    df = df.dropna(subset=["open", "close", "volume"])
    # high/low 결측은 시가/종가로 보정
    df["high"] = df["high"].fillna(df[["open", "close"]].max(axis=1))
    df["low"] = df["low"].fillna(df[["open", "close"]].min(axis=1))
    for col in ("open", "high", "low", "close", "volume"):
        df[col] = df[col].astype(float)

    df = df.sort_values("timestamp", kind="stable")
    df = df.drop_duplicates(subset="timestamp", keep="last")
    return df[BAR_COLUMNS].reset_index(drop=True)


class BarStore(DataProvider):
    """메모리 기반 봉 저장소.

    사용법:
        store = BarStore()
        store.load_intraday("AAPL", intraday_df)
        store.load_daily("AAPL", daily_df)
        engine.run_backtest(store)
    """

    def __init__(self):
        self._intraday: dict[str, pd.DataFrame] = {}  # symbol → 장중 봉
        self._daily: dict[str, pd.DataFrame] = {}     # symbol → 일봉

    @classmethod
    def from_frames(
        cls,
        intraday: dict[str, pd.DataFrame],
        daily: dict[str, pd.DataFrame] | None = None,
    ) -> "BarStore":
        """{symbol: DataFrame} 딕셔너리에서 생성."""
        store = cls()
        for symbol, df in intraday.items():
            store.load_intraday(symbol, df)
        for symbol, df in (daily or {}).items():
            store.load_daily(symbol, df)
        return store

    @classmethod
    def from_csv_dir(cls, path: str | Path, symbols: list[str]) -> "BarStore":
        """{SYMBOL}_intraday.csv / {SYMBOL}_daily.csv 파일에서 로드."""
        path = Path(path)
        store = cls()
        for symbol in symbols:
            intraday_path = path / f"{symbol}_intraday.csv"
            if not intraday_path.exists():
                logger.warning(f"[SKIP] {symbol}: {intraday_path} 없음")
                continue
            store.load_intraday(symbol, pd.read_csv(intraday_path))

            daily_path = path / f"{symbol}_daily.csv"
            if daily_path.exists():
                store.load_daily(symbol, pd.read_csv(daily_path))
            else:
                logger.warning(f"{symbol}: 일봉 파일 없음 ({daily_path}), 갭 시그널은 중립 처리")
        return store

    def load_intraday(self, symbol: str, df: pd.DataFrame) -> None:
        """장중 봉 로드. 외환/선물 심볼은 제외."""
        if symbol.endswith(EXCLUDED_SUFFIXES):
            logger.warning(f"[SKIP] {symbol}: 외환/선물 심볼은 지원하지 않음")
            return
        self._intraday[symbol] = normalize_bars(df)

    def load_daily(self, symbol: str, df: pd.DataFrame) -> None:
        """일봉 로드."""
        self._daily[symbol] = normalize_bars(df, daily=True)

    def get_intraday_bars(self, symbol: str) -> pd.DataFrame:
        if symbol not in self._intraday:
            return pd.DataFrame(columns=BAR_COLUMNS)
        return self._intraday[symbol]

    def get_daily_bars(self, symbol: str) -> pd.DataFrame:
        if symbol not in self._daily:
            return pd.DataFrame(columns=BAR_COLUMNS)
        return self._daily[symbol]

    def get_symbols(self) -> list[str]:
        """장중 데이터가 로드된 종목 목록."""
        return list(self._intraday.keys())
