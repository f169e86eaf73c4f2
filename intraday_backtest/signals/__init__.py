"""
시그널 생성기 모듈.

[ 시그널 등록 방식 ]
    @register("키") 데코레이터를 붙이면 SIGNAL_REGISTRY에 자동 등록.
    키는 결합 가중치 이름과 같다: momentum / mean_reversion / sentiment / technical.
    등록 함수는 SignalInputs 하나를 받아 SignalResult를 반환한다.

[ 구현체 ]
    momentum.py        → "momentum"        (ATR 정규화 모멘텀, 최근 봉)
    mean_reversion.py  → "mean_reversion"  (VWAP 회귀, 당일 세션)
    gap_fade.py        → "sentiment"       (갭 페이드, 당일 세션 + 일봉)
    technical.py       → "technical"       (RSI + 거래량, 최근 봉)

[ 호출하는 곳 ]
    - signals/combiner.py::evaluate_symbol()이 evaluate_signals()로 4개 결과를 모아 결합
"""

from importlib import import_module
from pathlib import Path
from typing import Callable

from intraday_backtest.core.signal import SIGNAL_KEYS, SignalInputs, SignalResult

SignalFunction = Callable[[SignalInputs], SignalResult]

# 시그널 키 → 평가 함수 매핑
SIGNAL_REGISTRY: dict[str, SignalFunction] = {}


def register(key: str):
    """평가 함수를 SIGNAL_REGISTRY에 등록하는 데코레이터."""
    def decorator(func: SignalFunction) -> SignalFunction:
        SIGNAL_REGISTRY[key] = func
        return func
    return decorator


def evaluate_signals(inputs: SignalInputs) -> dict[str, SignalResult]:
    """등록된 모든 시그널 평가. 결과는 SIGNAL_KEYS 순서.

    Raises:
        ValueError: 등록되지 않은 시그널 키가 있을 때
    """
    missing = [k for k in SIGNAL_KEYS if k not in SIGNAL_REGISTRY]
    if missing:
        raise ValueError(f"등록되지 않은 시그널: {missing}")
    return {key: SIGNAL_REGISTRY[key](inputs) for key in SIGNAL_KEYS}


def list_signals() -> list[str]:
    """등록된 시그널 키 목록."""
    return sorted(SIGNAL_REGISTRY.keys())


def _auto_discover():
    """이 디렉토리의 모든 시그널 모듈을 임포트하여 @register가 실행되게 한다."""
    signals_dir = Path(__file__).parent
    for py_file in sorted(signals_dir.glob("*.py")):
        if py_file.name.startswith("_"):
            continue
        import_module(f"intraday_backtest.signals.{py_file.stem}")


# 모듈 로드 시 자동 탐색
_auto_discover()
