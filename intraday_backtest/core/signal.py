"""
시그널 타입 정의.

[ 역할 ]
    시그널 생성기의 출력(SignalResult)과 결합 결과(CombinedSignal),
    추천 등급(Recommendation)을 정의.

[ 데이터 흐름 ]
    signals/*.py (생성기 4종) → SignalResult
    signals/combiner.py      → 4개 SignalResult + 가중치 → CombinedSignal
    backtest/rules.py        → CombinedSignal을 보고 매도/교체/매수 판단

[ 수명 ]
    SignalResult / CombinedSignal은 의사결정 시점마다 새로 계산되며
    수정되지 않는다 (frozen). 시점 간 캐싱하지 않는다.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

import pandas as pd

# 결합기에서 가중치와 매칭되는 시그널 키 (평가 순서 고정)
SIGNAL_KEYS = ("momentum", "mean_reversion", "sentiment", "technical")


@dataclass(frozen=True)
class SignalInputs:
    """의사결정 시점 하나에서 종목 하나의 시그널 입력.

    backtest/engine.py가 구성하여 signals/의 생성기들에 전달.
    """
    symbol: str
    current_date: str            # 시뮬레이션 날짜 (YYYY-MM-DD)
    recent_bars: pd.DataFrame    # 현재 시점까지 최근 봉 (최대 50개) → momentum / technical
    session_bars: pd.DataFrame   # 당일 세션 봉 (현재 시점까지) → mean_reversion / sentiment
    daily_bars: pd.DataFrame     # 일봉 전체 → sentiment(갭 기준가)

    @property
    def price(self) -> float:
        return float(self.recent_bars["close"].iloc[-1])


class Recommendation(Enum):
    """결합 점수로 분류한 추천 등급."""
    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"


@dataclass(frozen=True)
class SignalResult:
    """시그널 생성기 하나의 출력."""
    name: str
    score: float        # -1 ~ 1 (양수: 매수, 음수: 매도)
    confidence: float   # 0 ~ 1
    reason: str = ""

    @classmethod
    def neutral(cls, name: str, reason: str, confidence: float = 0.0) -> "SignalResult":
        """데이터 부족 등으로 판단 불가 시 반환하는 중립 시그널."""
        return cls(name=name, score=0.0, confidence=confidence, reason=reason)


@dataclass(frozen=True)
class CombinedSignal:
    """종목 하나에 대한 결합 시그널."""
    symbol: str
    combined_score: float              # 가중합 (범위 제한 없음)
    recommendation: Recommendation
    components: Mapping[str, SignalResult] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "components", MappingProxyType(dict(self.components)))

    @property
    def reason(self) -> str:
        """구성 시그널 사유를 한 줄로."""
        parts = [f"{r.name}: {r.reason}" for r in self.components.values() if r.reason]
        return f"{self.recommendation.value} ({self.combined_score:+.3f}) " + "; ".join(parts)
