"""
설정 관리 모듈.

[ 역할 ]
    config.yaml (또는 .json) 파일을 파싱하여 Config 객체로 변환.
    백테스트 파라미터, 실행 설정, 로깅 설정 등을 통합 관리.

[ 설정 파일 구조 (config.yaml) ]
    backtest:         → BacktestConfig (자금/포지션/임계값/가중치, 실행 중 불변)
      weights:        → StrategyWeights
    run:              → RunConfig (기간/종목/병렬 워커 수/스윕 변형)
    log_level:        → "INFO" / "DEBUG"
    log_dir:          → 로그 디렉토리 경로

[ 호출하는 곳 ]
    - run_backtest.py에서 Config.from_yaml()로 로드
    - 엔진 생성 시 config.backtest를 그대로 전달 (엔진이 validate() 호출)
"""

import json
import logging
import math
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("intraday_backtest.config")


@dataclass(frozen=True)
class StrategyWeights:
    """시그널 결합 가중치. 합이 1이 되도록 설정하는 것이 원칙."""
    momentum: float = 0.08
    mean_reversion: float = 0.41
    sentiment: float = 0.15
    technical: float = 0.36

    def as_dict(self) -> dict[str, float]:
        return asdict(self)

    @property
    def total(self) -> float:
        return sum(self.as_dict().values())


@dataclass(frozen=True)
class BacktestConfig:
    """백테스트 설정. config.yaml의 backtest 섹션에 대응."""
    initial_capital: float = 10_000
    max_position_size: float = 0.07     # 종목당 최대 비중 (총자산 대비)
    max_positions: int = 15             # 최대 보유 종목 수
    min_trade_value: float = 15         # 최소 거래 금액
    target_cash_ratio: float = 0.05     # 남겨둘 현금 비중
    buy_threshold: float = 0.15         # 매수 후보 결합 점수 하한
    weak_signal_sell: float = 0.02      # 결합 점수가 이보다 낮으면 전량 매도
    stop_loss: float = -2.0             # 손절 (%), 음수
    profit_take: float = 2.0            # 부분 익절 (%)
    transaction_cost_bps: float = 0.0   # 편도 거래비용 (bp)
    weights: StrategyWeights = field(default_factory=StrategyWeights)

    def validate(self) -> None:
        """구조적으로 잘못된 값 검사.

        Raises:
            ValueError: 잘못된 설정값
        """
        errors = []
        if not self.initial_capital > 0:
            errors.append(f"initial_capital > 0 이어야 함 ({self.initial_capital})")
        if not isinstance(self.max_positions, int) or self.max_positions < 1:
            errors.append(f"max_positions >= 1 인 정수여야 함 ({self.max_positions})")
        if not 0 < self.max_position_size <= 1:
            errors.append(f"max_position_size는 (0, 1] 범위여야 함 ({self.max_position_size})")
        if self.min_trade_value < 0:
            errors.append(f"min_trade_value >= 0 이어야 함 ({self.min_trade_value})")
        if not 0 <= self.target_cash_ratio < 1:
            errors.append(f"target_cash_ratio는 [0, 1) 범위여야 함 ({self.target_cash_ratio})")
        if self.stop_loss > 0:
            errors.append(f"stop_loss는 0 이하(%)여야 함 ({self.stop_loss})")
        if self.profit_take < 0:
            errors.append(f"profit_take >= 0 이어야 함 ({self.profit_take})")
        if self.transaction_cost_bps < 0:
            errors.append(f"transaction_cost_bps >= 0 이어야 함 ({self.transaction_cost_bps})")
        for name, weight in self.weights.as_dict().items():
            if not math.isfinite(weight) or weight < 0:
                errors.append(f"weights.{name}는 0 이상의 유한값이어야 함 ({weight})")

        if errors:
            raise ValueError("잘못된 백테스트 설정: " + "; ".join(errors))

        if abs(self.weights.total - 1.0) > 1e-6:
            logger.warning(f"시그널 가중치 합이 1이 아님: {self.weights.total:.4f}")

    def with_overrides(self, **overrides: Any) -> "BacktestConfig":
        """일부 필드를 바꾼 새 설정 반환 (CLI 파라미터 오버라이드용).

        weights.xxx 형태 키는 가중치 필드로 적용. weights 자체는 교체할 수 없다.

        Raises:
            ValueError: 알 수 없는 키
        """
        weight_overrides = {
            k.split(".", 1)[1]: v for k, v in overrides.items() if k.startswith("weights.")
        }
        plain = {k: v for k, v in overrides.items() if not k.startswith("weights.")}
        unknown = [k for k in plain if k == "weights" or k not in _field_names(BacktestConfig)]
        unknown += [f"weights.{k}" for k in weight_overrides if k not in _field_names(StrategyWeights)]
        if unknown:
            raise ValueError(f"알 수 없는 설정 키: {unknown}")
        weights = replace(self.weights, **weight_overrides) if weight_overrides else self.weights
        return replace(self, weights=weights, **plain)


@dataclass
class RunConfig:
    """실행 설정. config.yaml의 run 섹션에 대응."""
    backtest_days: int = 30
    symbols: list[str] = field(default_factory=list)
    signal_workers: int = 1            # 시그널 계산 병렬 워커 수 (1이면 순차)
    sample_symbols: int = 10           # 샘플 데이터 종목 수 (symbols 미지정 시)
    data_dir: str = "data"             # CSV 데이터 디렉토리
    sweep: list[dict[str, Any]] = field(default_factory=list)  # --sweep 설정 변형 (BacktestConfig 오버라이드)


def _field_names(cls) -> set[str]:
    return {f.name for f in fields(cls)}


def _pick(cls, data: dict[str, Any]) -> dict[str, Any]:
    """dataclass 필드에 해당하는 키만 추출."""
    names = _field_names(cls)
    return {k: v for k, v in (data or {}).items() if k in names}


@dataclass
class Config:
    """전체 설정. from_yaml() 또는 from_json()으로 파일에서 로드."""
    backtest: BacktestConfig = field(default_factory=BacktestConfig)
    run: RunConfig = field(default_factory=RunConfig)
    log_level: str = "INFO"
    log_dir: str = "logs"

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """YAML 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls._from_dict(data or {})

    @classmethod
    def from_json(cls, path: str | Path) -> "Config":
        """JSON 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """딕셔너리에서 Config 생성. 알 수 없는 키는 무시."""
        backtest_data = dict(data.get("backtest") or {})
        weights_data = backtest_data.pop("weights", None) or {}

        weights = StrategyWeights(**_pick(StrategyWeights, weights_data))
        backtest = BacktestConfig(weights=weights, **_pick(BacktestConfig, backtest_data))
        run = RunConfig(**_pick(RunConfig, data.get("run") or {}))

        return cls(
            backtest=backtest,
            run=run,
            log_level=data.get("log_level", "INFO"),
            log_dir=data.get("log_dir", "logs"),
        )

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환."""
        return asdict(self)

    def save_yaml(self, path: str | Path) -> None:
        """YAML 파일로 저장."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, allow_unicode=True, default_flow_style=False)
