"""
봉(Bar) 데이터 제공 추상 클래스 정의.

[ 역할 ]
    종목별 5분봉(장중) / 일봉 OHLCV 데이터를 제공하는 인터페이스.
    데이터 소스(메모리, CSV, 외부 API 등)에 독립적으로 엔진에 데이터 공급.

[ 구현체 ]
    - data/bar_store.py::BarStore  (메모리 기반, 백테스트용)

[ DataFrame 형식 ]
    한 행이 봉 하나 (OHLCV).
    장중: [timestamp, date, open, high, low, close, volume]
          timestamp는 ISO-8601 문자열 → 문자열 정렬 = 시간 정렬
          date는 timestamp의 'T' 앞부분 (YYYY-MM-DD)
    일봉: 같은 컬럼, timestamp == date

[ 호출하는 곳 ]
    - backtest/engine.py::IntradayBacktestEngine.run_backtest()
"""

from abc import ABC, abstractmethod

import pandas as pd

BAR_COLUMNS = ["timestamp", "date", "open", "high", "low", "close", "volume"]


class DataProvider(ABC):
    """봉 데이터 제공 추상 클래스.

    모든 데이터 제공자 구현체는 이 클래스를 상속받아 아래 메서드를 구현해야 한다.
    """

    @abstractmethod
    def get_intraday_bars(self, symbol: str) -> pd.DataFrame:
        """장중(고정 간격) 봉 조회. 없으면 빈 DataFrame."""
        ...

    @abstractmethod
    def get_daily_bars(self, symbol: str) -> pd.DataFrame:
        """일봉 조회. 갭 기준가(전일 종가) 계산에 사용. 없으면 빈 DataFrame."""
        ...

    @abstractmethod
    def get_symbols(self) -> list[str]:
        """조회 가능한 종목 목록 (입력 순서 유지)."""
        ...
