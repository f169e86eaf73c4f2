"""
장중 백테스팅 엔진 모듈.

[ 역할 ]
    과거 장중 봉을 시간순으로 재생하며 시그널 → 매도/교체/매수를 시뮬레이션하고
    성과를 측정. 시스템의 핵심 실행 루프를 담당.

[ 실행 흐름 ]
    run_backtest() 호출 시:
        1. 모든 종목의 timestamp 합집합 → 거래일별 타임라인 (timeline.py)
        2. 마지막 N 거래일 중 봉이 6개 이상인 날만 시뮬레이션
        3. 각 거래일의 6번째 봉부터 6봉마다 의사결정 시점
           a. _compute_signals(): 종목별 시그널 계산 (병렬 가능, 모두 끝날 때까지 대기)
           b. _apply_trades():    평가 → 매도 → 교체 → 매수 → 총 자산 재계산
        4. 일 마감 시 DailyReturn 기록
        5. metrics.calculate_metrics()로 성과 지표 계산

[ 종목 자격 (의사결정 시점마다) ]
    - 현재 시점까지 봉 12개 이상
    - 당일 세션 봉 3개 이상
    - 자격이 없는 종목은 이번 시점에 시그널 없음 (보유 중이면 no_signal 규칙으로 청산)

[ 동시성 ]
    시그널 계산만 ThreadPoolExecutor로 병렬화할 수 있다.
    Portfolio는 _apply_trades()에서만, 이 엔진의 실행 스레드에서만 수정된다.

[ 의존성 ]
    - signals/combiner.py::evaluate_symbol (기본 시그널 평가기)
    - backtest/rules.py (매도/교체/매수 결정 테이블)
    - data/portfolio.py::Portfolio (포지션/거래기록 관리)
    - backtest/metrics.py::calculate_metrics() (성과 계산)

[ 파라미터 스윕 ]
    run_sweep(): 한 번 로드한 데이터로 설정 변형마다 독립된 엔진을 만들어 실행.

[ 호출하는 곳 ]
    - run_backtest.py (진입점)에서 생성 및 실행, --sweep 시 run_sweep()
"""

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Iterable, Mapping

import numpy as np
import pandas as pd

from intraday_backtest.backtest.metrics import BacktestResult, DailyReturn, calculate_metrics
from intraday_backtest.backtest.rules import (
    allocate_capital,
    evaluate_sell_rules,
    find_buy_worthy,
    select_buy_candidates,
    select_rotation_candidates,
    should_rotate,
)
from intraday_backtest.backtest.timeline import build_timeline, select_backtest_days
from intraday_backtest.core.data_provider import DataProvider
from intraday_backtest.core.signal import CombinedSignal, SignalInputs
from intraday_backtest.data.portfolio import Portfolio, TradeRecord
from intraday_backtest.signals.combiner import evaluate_symbol
from intraday_backtest.utils.config import BacktestConfig

logger = logging.getLogger("intraday_backtest.backtest")

DECISION_INTERVAL_BARS = 6   # 5분봉 기준 30분마다
MIN_HISTORY_BARS = 12
MIN_SESSION_BARS = 3
RECENT_WINDOW_BARS = 50      # momentum / technical 입력 봉 수 상한

SignalEvaluator = Callable[[SignalInputs], CombinedSignal]


@dataclass(frozen=True)
class SymbolSnapshot:
    """의사결정 시점 하나의 종목 시그널과 가격."""
    signal: CombinedSignal
    price: float


class _SymbolSeries:
    """종목 하나의 봉 데이터 + 시점별 슬라이싱용 정렬 배열."""

    def __init__(self, symbol: str, bars: pd.DataFrame, daily: pd.DataFrame):
        self.symbol = symbol
        self.bars = bars
        self.daily = daily
        self.timestamps = bars["timestamp"].to_numpy(dtype=str)
        self.dates = bars["date"].to_numpy(dtype=str)

    def inputs_at(self, current_date: str, current_ts: str) -> SignalInputs | None:
        """current_ts까지의 봉으로 시그널 입력 구성. 자격 미달이면 None."""
        end = int(np.searchsorted(self.timestamps, current_ts, side="right"))
        if end < MIN_HISTORY_BARS:
            return None
        session_start = int(np.searchsorted(self.dates, current_date, side="left"))
        if end - session_start < MIN_SESSION_BARS:
            return None

        return SignalInputs(
            symbol=self.symbol,
            current_date=current_date,
            recent_bars=self.bars.iloc[max(0, end - RECENT_WINDOW_BARS):end],
            session_bars=self.bars.iloc[session_start:end],
            daily_bars=self.daily,
        )


class IntradayBacktestEngine:
    """장중 백테스팅 엔진. run_backtest()로 시뮬레이션 실행.

    Args:
        config: 백테스트 설정 (생성 시 validate())
        signal_evaluator: SignalInputs → CombinedSignal. None이면 등록된 4개 시그널 가중합
        signal_workers: 시그널 계산 스레드 수 (1이면 순차)

    Raises:
        ValueError: 잘못된 설정
    """

    def __init__(
        self,
        config: BacktestConfig,
        signal_evaluator: SignalEvaluator | None = None,
        signal_workers: int = 1,
    ):
        config.validate()
        if signal_workers < 1:
            raise ValueError(f"signal_workers >= 1 이어야 함 ({signal_workers})")

        self.config = config
        self.signal_evaluator = signal_evaluator or partial(evaluate_symbol, weights=config.weights.as_dict())
        self.signal_workers = signal_workers

        # 백테스트 실행 후 채워지는 결과
        self.portfolio: Portfolio | None = None        # 최종 포트폴리오 상태
        self.daily_returns: list[DailyReturn] = []     # 일별 수익률
        self.result: BacktestResult | None = None      # 최종 성과 지표
        self.total_trades = 0
        self.win_trades = 0
        self.loss_trades = 0

    def run_backtest(
        self,
        store: DataProvider,
        symbols: Iterable[str] | None = None,
        backtest_days: int = 30,
    ) -> BacktestResult:
        """백테스트 실행.

        Args:
            store: 장중 봉 / 일봉 제공자
            symbols: 대상 종목. None이면 store.get_symbols()
            backtest_days: 타임라인 끝에서부터의 거래일 수

        Returns:
            BacktestResult: 성과 지표 + 일별 수익률 + 거래 내역

        Raises:
            ValueError: 종목/봉 데이터가 없거나 시뮬레이션할 거래일이 없을 때
        """
        symbols = list(symbols) if symbols is not None else store.get_symbols()
        if not symbols:
            raise ValueError("백테스트 대상 종목이 없습니다.")

        series: dict[str, _SymbolSeries] = {}
        for symbol in symbols:
            bars = store.get_intraday_bars(symbol)
            if bars.empty:
                logger.warning(f"[SKIP] {symbol}: 장중 봉 데이터 없음")
                continue
            series[symbol] = _SymbolSeries(symbol, bars, store.get_daily_bars(symbol))

        if not series:
            raise ValueError("장중 봉 데이터가 있는 종목이 없습니다.")

        timeline = build_timeline(s.bars for s in series.values())
        trading_days = select_backtest_days(timeline, backtest_days)
        if not trading_days:
            raise ValueError(f"시뮬레이션 가능한 거래일이 없습니다. (최근 {backtest_days}일)")

        self.portfolio = Portfolio(self.config.initial_capital, self.config.transaction_cost_bps)
        self.daily_returns = []
        self.total_trades = self.win_trades = self.loss_trades = 0

        logger.info(
            f"백테스트 시작: {trading_days[0]} ~ {trading_days[-1]} "
            f"({len(trading_days)}일, {len(series)}종목, 초기 자금 {self.config.initial_capital:,.0f})"
        )

        executor = ThreadPoolExecutor(max_workers=self.signal_workers) if self.signal_workers > 1 else None
        try:
            prev_value = self.config.initial_capital
            for current_date in trading_days:
                day_timestamps = timeline[current_date]
                for idx in range(DECISION_INTERVAL_BARS, len(day_timestamps), DECISION_INTERVAL_BARS):
                    current_ts = day_timestamps[idx]
                    snapshots = self._compute_signals(series.values(), current_date, current_ts, executor)
                    self._apply_trades(snapshots, current_ts)

                value = self.portfolio.total_value
                daily_return = (value - prev_value) / prev_value if prev_value > 0 else 0.0
                self.daily_returns.append(DailyReturn(date=current_date, daily_return=daily_return, value=value))
                prev_value = value

                logger.debug(
                    f"[{current_date}] 총 자산 {value:,.2f} ({daily_return * 100:+.2f}%) "
                    f"| 보유 {self.portfolio.position_count}종목 | 누적 거래 {self.total_trades}"
                )
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        self.result = calculate_metrics(
            daily_returns=self.daily_returns,
            initial_capital=self.config.initial_capital,
            final_value=self.portfolio.total_value,
            win_trades=self.win_trades,
            loss_trades=self.loss_trades,
            total_trades=self.total_trades,
            total_tx_costs=self.portfolio.total_tx_costs,
        )
        self.result.trades = list(self.portfolio.trade_history)

        logger.info(
            f"백테스트 완료. 총 수익률: {self.result.total_return:.2f}%, "
            f"거래 {self.result.total_trades}회, 최종 자산 {self.result.final_value:,.2f}"
        )
        return self.result

    def _compute_signals(
        self,
        series: Iterable[_SymbolSeries],
        current_date: str,
        current_ts: str,
        executor: Executor | None = None,
    ) -> dict[str, SymbolSnapshot]:
        """자격 있는 모든 종목의 시그널 계산. 반환 시점에 모든 계산이 끝나 있다."""
        inputs = [x for x in (s.inputs_at(current_date, current_ts) for s in series) if x is not None]
        if executor is None:
            signals = [self.signal_evaluator(i) for i in inputs]
        else:
            signals = list(executor.map(self.signal_evaluator, inputs))

        return {
            i.symbol: SymbolSnapshot(signal=signal, price=i.price)
            for i, signal in zip(inputs, signals)
        }

    def _apply_trades(self, snapshots: dict[str, SymbolSnapshot], current_ts: str) -> None:
        """의사결정 시점 하나의 거래 단계: 평가 → 매도 → 교체 → 매수 → 총 자산 재계산."""
        portfolio = self.portfolio
        config = self.config
        signals = {symbol: snap.signal for symbol, snap in snapshots.items()}

        portfolio.mark_to_market({symbol: snap.price for symbol, snap in snapshots.items()})
        portfolio.recalculate_total_value()

        # ─── 매도 ────────────────────────────────────────────────────────
        for symbol in list(portfolio.holdings):
            holding = portfolio.holdings[symbol]
            snapshot = snapshots.get(symbol)
            decision = evaluate_sell_rules(holding, snapshot.signal if snapshot else None, config)
            if decision is None:
                continue
            price = snapshot.price if snapshot else holding.current_price
            trade = portfolio.execute_sell(symbol, decision.sell_percent, price, current_ts, decision.reason)
            if trade is not None:
                self.total_trades += 1
                if trade.profit > 0:
                    self.win_trades += 1
                else:
                    self.loss_trades += 1
                self._log_trade(trade)

        portfolio.recalculate_total_value()

        # ─── 교체 ────────────────────────────────────────────────────────
        buy_worthy = find_buy_worthy(signals, portfolio.holdings, config)
        available = portfolio.available_cash(config.target_cash_ratio)
        if should_rotate(len(buy_worthy), available, portfolio.position_count, config):
            for holding, signal in select_rotation_candidates(list(portfolio.holdings.values()), signals, config):
                trade = portfolio.execute_sell(
                    holding.symbol,
                    1.0,
                    snapshots[holding.symbol].price,
                    current_ts,
                    reason=f"교체 매도 (점수 {signal.combined_score:+.3f})",
                    kind="rotation",
                )
                if trade is not None:
                    self.total_trades += 1
                    self._log_trade(trade)
            portfolio.recalculate_total_value()

        # ─── 매수 ────────────────────────────────────────────────────────
        open_slots = config.max_positions - portfolio.position_count
        candidates = select_buy_candidates(signals, portfolio.holdings, config, open_slots)
        if candidates:
            allocations = allocate_capital(
                candidates,
                available_cash=portfolio.available_cash(config.target_cash_ratio),
                max_position=portfolio.total_value * config.max_position_size,
                min_trade_value=config.min_trade_value,
            )
            for alloc in allocations:
                symbol = alloc.signal.symbol
                trade = portfolio.execute_buy(
                    symbol, alloc.amount, snapshots[symbol].price, current_ts, alloc.signal.reason
                )
                if trade is not None:
                    self.total_trades += 1
                    self._log_trade(trade)

        portfolio.recalculate_total_value()

    def _log_trade(self, trade: TradeRecord) -> None:
        label = {"buy": "매수", "sell": "매도", "rotation": "교체매도"}.get(trade.kind, trade.kind)
        profit = f", 손익 {trade.profit:+,.2f}" if trade.side == "sell" else ""
        logger.debug(
            f"[{trade.timestamp}] {label}: {trade.symbol} {trade.shares:.4f}주 "
            f"@ {trade.price:,.2f}{profit} ({trade.reason})"
        )

    def generate_report(self) -> dict[str, Any]:
        """백테스트 리포트 생성."""
        if self.result is None or self.portfolio is None:
            return {"error": "백테스트를 먼저 실행하세요."}

        metrics = self.result.to_dict()
        metrics.pop("trades")
        return {
            "metrics": metrics,
            "portfolio_summary": self.portfolio.get_summary(),
            "trade_count": len(self.portfolio.trade_history),
            "trades": [
                {
                    "timestamp": t.timestamp,
                    "symbol": t.symbol,
                    "side": t.side,
                    "kind": t.kind,
                    "shares": t.shares,
                    "price": t.price,
                    "profit": t.profit,
                    "reason": t.reason,
                }
                for t in self.portfolio.trade_history
            ],
        }


# ─── 파라미터 스윕 ──────────────────────────────────────────────────────────

def sweep_label(overrides: Mapping[str, Any]) -> str:
    """오버라이드 딕셔너리 → 'key=value, ...' 라벨. 비어 있으면 '기본 설정'."""
    if not overrides:
        return "기본 설정"
    return ", ".join(f"{k}={v}" for k, v in overrides.items())


def run_sweep(
    store: DataProvider,
    base_config: BacktestConfig,
    variants: Iterable[Mapping[str, Any]],
    symbols: Iterable[str] | None = None,
    backtest_days: int = 30,
    signal_workers: int = 1,
    signal_evaluator: SignalEvaluator | None = None,
) -> dict[str, BacktestResult]:
    """같은 데이터로 설정 변형마다 백테스트를 한 번씩 실행.

    변형은 base_config.with_overrides(**variant)로 적용된다. 모든 변형의 설정과
    엔진을 먼저 만들어 검증하므로, 잘못된 변형이 있으면 어떤 실행도 시작하지 않는다.

    Args:
        store: 모든 실행이 공유하는 봉 데이터 (읽기 전용)
        base_config: 변형의 기준 설정
        variants: BacktestConfig 필드 오버라이드 목록 (가중치는 weights.xxx)

    Returns:
        {라벨: BacktestResult}, variants 순서

    Raises:
        ValueError: 알 수 없는 키 / 잘못된 설정값 / 시뮬레이션 불가 데이터
    """
    symbols = list(symbols) if symbols is not None else None
    engines: dict[str, IntradayBacktestEngine] = {}
    for overrides in variants:
        config = base_config.with_overrides(**overrides)
        engines[sweep_label(overrides)] = IntradayBacktestEngine(
            config, signal_evaluator=signal_evaluator, signal_workers=signal_workers
        )

    results: dict[str, BacktestResult] = {}
    for i, (label, engine) in enumerate(engines.items(), start=1):
        logger.info(f"스윕 {i}/{len(engines)}: {label}")
        results[label] = engine.run_backtest(store, symbols=symbols, backtest_days=backtest_days)
    return results
