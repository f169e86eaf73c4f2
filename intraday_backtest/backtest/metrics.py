"""
백테스트 성과 지표 계산 모듈.

[ 역할 ]
    일별 수익률(DailyReturn) 시계열과 거래 집계를 받아 성과 지표를 계산.
    calculate_metrics() 함수가 핵심.

[ 계산하는 지표 ]
    - 총 수익률 (%)        (최종 자산 - 초기 자금) / 초기 자금 × 100
    - 샤프 비율            mean(초과수익) × √252 / std(초과수익), 무위험 일수익률 0.05/252
                           모분산 사용, 분산 0이면 0
    - MDD (%)              초기 자금에서 일별 수익률을 복리로 누적하며 고점 대비 최대 하락
    - 승률 (%)             win / (win + loss) × 100, 분류된 거래가 없으면 0

[ 호출하는 곳 ]
    - backtest/engine.py::IntradayBacktestEngine.run_backtest() 완료 시 호출
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Sequence

import numpy as np

from intraday_backtest.data.portfolio import TradeRecord

TRADING_DAYS_PER_YEAR = 252
RISK_FREE_RATE = 0.05


@dataclass(frozen=True)
class DailyReturn:
    """하루 마감 시점의 수익률 기록."""
    date: str
    daily_return: float   # 전일 마감 대비 (비율)
    value: float          # 당일 마감 총 자산


@dataclass
class BacktestResult:
    """백테스트 결과. summary()로 포맷된 리포트 출력 가능."""
    total_return: float = 0.0      # 총 수익률 (%)
    sharpe: float = 0.0            # 샤프 비율
    max_drawdown: float = 0.0      # 최대 낙폭 MDD (%)
    final_value: float = 0.0       # 최종 총 자산
    total_trades: int = 0          # 매수 + 매도 + 교체매도 횟수
    win_rate: float = 0.0          # 승률 (%)
    win_trades: int = 0            # 수익 매도 수
    loss_trades: int = 0           # 손실 매도 수
    daily_returns: list[DailyReturn] = field(default_factory=list)
    total_tx_costs: float = 0.0
    trades: list[TradeRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리 변환."""
        return asdict(self)

    def summary(self) -> str:
        """성과 요약 문자열."""
        lines = [
            "=" * 50,
            "장중 백테스트 성과 리포트",
            "=" * 50,
            f"최종 자산:       {self.final_value:>12,.2f}",
            f"총 수익률:       {self.total_return:>12.2f}%",
            f"샤프 비율:       {self.sharpe:>12.2f}",
            f"최대 낙폭(MDD):  {self.max_drawdown:>12.2f}%",
            "-" * 50,
            f"총 거래 횟수:    {self.total_trades:>12d}",
            f"승률:            {self.win_rate:>12.2f}%",
            f"수익 거래:       {self.win_trades:>12d}",
            f"손실 거래:       {self.loss_trades:>12d}",
            f"거래 비용:       {self.total_tx_costs:>12,.2f}",
            f"거래일 수:       {len(self.daily_returns):>12d}",
            "=" * 50,
        ]
        return "\n".join(lines)


def sharpe_ratio(returns: Sequence[float], risk_free_rate: float = RISK_FREE_RATE) -> float:
    """연환산 샤프 비율. 수익률이 없거나 분산이 0이면 0."""
    if len(returns) == 0:
        return 0.0
    excess = np.asarray(returns, dtype=float) - risk_free_rate / TRADING_DAYS_PER_YEAR
    # 모든 값이 같으면 평균 계산 오차로 생기는 극소 분산도 0으로 본다
    if np.ptp(excess) == 0:
        return 0.0
    variance = np.var(excess)
    if variance <= 0:
        return 0.0
    return float(np.mean(excess) * np.sqrt(TRADING_DAYS_PER_YEAR) / np.sqrt(variance))


def max_drawdown(returns: Sequence[float], initial_capital: float) -> float:
    """일별 수익률을 initial_capital에서 복리 누적했을 때의 최대 낙폭 (%)."""
    if len(returns) == 0 or initial_capital <= 0:
        return 0.0
    values = initial_capital * np.cumprod(1 + np.asarray(returns, dtype=float))
    peaks = np.maximum.accumulate(np.concatenate(([initial_capital], values)))[1:]
    drawdowns = (peaks - values) / peaks
    return float(max(drawdowns.max(), 0.0) * 100)


def calculate_metrics(
    daily_returns: list[DailyReturn],
    initial_capital: float,
    final_value: float | None = None,
    win_trades: int = 0,
    loss_trades: int = 0,
    total_trades: int = 0,
    total_tx_costs: float = 0.0,
) -> BacktestResult:
    """성과 지표 계산. engine.py에서 백테스트 완료 후 호출됨.

    Args:
        daily_returns: 일별 수익률 기록 (시간순)
        initial_capital: 초기 자금
        final_value: 최종 총 자산. None이면 마지막 일별 자산 (없으면 초기 자금)
        win_trades / loss_trades: 매도 손익 부호로 분류된 거래 수
        total_trades: 전체 거래 수 (매수 포함)
        total_tx_costs: 누적 거래 비용
    """
    if final_value is None:
        final_value = daily_returns[-1].value if daily_returns else initial_capital

    returns = [d.daily_return for d in daily_returns]
    classified = win_trades + loss_trades

    return BacktestResult(
        total_return=(final_value - initial_capital) / initial_capital * 100 if initial_capital else 0.0,
        sharpe=sharpe_ratio(returns),
        max_drawdown=max_drawdown(returns, initial_capital),
        final_value=final_value,
        total_trades=total_trades,
        win_rate=win_trades / classified * 100 if classified else 0.0,
        win_trades=win_trades,
        loss_trades=loss_trades,
        daily_returns=list(daily_returns),
        total_tx_costs=total_tx_costs,
    )
