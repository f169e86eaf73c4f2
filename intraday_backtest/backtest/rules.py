"""
매도 / 교체 / 매수 의사결정 테이블.

[ 역할 ]
    엔진의 거래 단계에서 "무엇을 얼마나" 사고팔지 결정하는 순수 함수 모음.
    포트폴리오를 직접 수정하지 않으며, 엔진이 결과를 받아 실행한다.

[ 매도 규칙 (SELL_RULES, 위에서부터 첫 번째로 맞는 규칙 적용) ]
    no_signal    이번 시점 시그널 없음          → 100%
    strong_sell  STRONG_SELL                    → 100%
    stop_loss    평가손익률 <= stop_loss         → 100%
    weak_signal  결합 점수 < weak_signal_sell    → 100%
    profit_take  평가손익률 >= profit_take       → 50%
    sell         SELL                           → 75%

[ 교체 (rotation) ]
    매수 후보(결합 점수 > buy_threshold, 미보유)가 있고
    가용 현금 < min_trade_value 이거나 보유 종목 수 >= max_positions 이면
    시그널이 있는 보유 종목을 점수 오름차순으로 최대 3개 전량 매도.
    점수가 buy_threshold 이상인 종목을 만나면 중단.

[ 매수 배분 (allocate_capital) ]
    1. 후보별 |점수| 비율로 가용 현금 배분, 종목당 max_position으로 상한
    2. 상한에 걸려 남은 금액을 상한 미달 후보에 점수 비율로 1회 재배분 (다시 상한 적용)
    3. 합계가 가용 현금을 넘으면 전체를 같은 비율로 축소
    4. min_trade_value 미만 배분은 버림

[ 호출하는 곳 ]
    - backtest/engine.py::IntradayBacktestEngine._apply_trades()
"""

from dataclasses import dataclass
from typing import Callable, Collection, Iterable, Mapping

from intraday_backtest.core.signal import CombinedSignal, Recommendation
from intraday_backtest.data.portfolio import Holding
from intraday_backtest.utils.config import BacktestConfig

MAX_ROTATIONS = 3


# ─── 매도 규칙 ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SellContext:
    """매도 규칙 판단 입력."""
    holding: Holding
    signal: CombinedSignal | None
    config: BacktestConfig


@dataclass(frozen=True)
class SellRule:
    """predicate가 참이면 보유 수량의 sell_percent만큼 매도."""
    name: str
    sell_percent: float
    predicate: Callable[[SellContext], bool]
    describe: Callable[[SellContext], str]


@dataclass(frozen=True)
class SellDecision:
    rule: str
    sell_percent: float
    reason: str


SELL_RULES: tuple[SellRule, ...] = (
    SellRule(
        name="no_signal",
        sell_percent=1.0,
        predicate=lambda c: c.signal is None,
        describe=lambda c: "시그널 없음 - 청산",
    ),
    SellRule(
        name="strong_sell",
        sell_percent=1.0,
        predicate=lambda c: c.signal.recommendation is Recommendation.STRONG_SELL,
        describe=lambda c: f"STRONG_SELL: 점수 {c.signal.combined_score:.2f}",
    ),
    SellRule(
        name="stop_loss",
        sell_percent=1.0,
        predicate=lambda c: c.holding.gain_loss_percent <= c.config.stop_loss,
        describe=lambda c: f"손절 {c.holding.gain_loss_percent:.1f}%",
    ),
    SellRule(
        name="weak_signal",
        sell_percent=1.0,
        predicate=lambda c: c.signal.combined_score < c.config.weak_signal_sell,
        describe=lambda c: f"약한 시그널 ({c.signal.combined_score:.3f})",
    ),
    SellRule(
        name="profit_take",
        sell_percent=0.5,
        predicate=lambda c: c.holding.gain_loss_percent >= c.config.profit_take,
        describe=lambda c: f"부분 익절 {c.holding.gain_loss_percent:.1f}%",
    ),
    SellRule(
        name="sell",
        sell_percent=0.75,
        predicate=lambda c: c.signal.recommendation is Recommendation.SELL,
        describe=lambda c: f"SELL: 점수 {c.signal.combined_score:.2f}",
    ),
)


def evaluate_sell_rules(
    holding: Holding,
    signal: CombinedSignal | None,
    config: BacktestConfig,
    rules: Iterable[SellRule] = SELL_RULES,
) -> SellDecision | None:
    """첫 번째로 맞는 매도 규칙의 결정. 맞는 규칙이 없으면 None (보유 유지)."""
    ctx = SellContext(holding=holding, signal=signal, config=config)
    for rule in rules:
        if rule.predicate(ctx):
            return SellDecision(rule=rule.name, sell_percent=rule.sell_percent, reason=rule.describe(ctx))
    return None


# ─── 교체 ────────────────────────────────────────────────────────────────────

def find_buy_worthy(
    signals: Mapping[str, CombinedSignal],
    held: Collection[str],
    config: BacktestConfig,
) -> list[CombinedSignal]:
    """결합 점수 > buy_threshold 이고 미보유인 종목 (입력 순서)."""
    return [
        s for symbol, s in signals.items()
        if s.combined_score > config.buy_threshold and symbol not in held
    ]


def should_rotate(
    buy_worthy_count: int,
    available_cash: float,
    position_count: int,
    config: BacktestConfig,
) -> bool:
    """매수할 종목이 있는데 현금이나 자리가 없으면 교체."""
    if buy_worthy_count == 0:
        return False
    return available_cash < config.min_trade_value or position_count >= config.max_positions


def select_rotation_candidates(
    holdings: Iterable[Holding],
    signals: Mapping[str, CombinedSignal],
    config: BacktestConfig,
    max_rotations: int = MAX_ROTATIONS,
) -> list[tuple[Holding, CombinedSignal]]:
    """교체 매도할 보유 종목 (점수 낮은 순, 최대 max_rotations개)."""
    ranked = sorted(
        ((h, signals[h.symbol]) for h in holdings if h.symbol in signals),
        key=lambda pair: pair[1].combined_score,
    )
    selected = []
    for holding, signal in ranked:
        if len(selected) >= max_rotations:
            break
        # 보유 종목 자체가 매수 후보 수준이면 교체하지 않음
        if signal.combined_score >= config.buy_threshold:
            break
        selected.append((holding, signal))
    return selected


# ─── 매수 ────────────────────────────────────────────────────────────────────

@dataclass
class Allocation:
    signal: CombinedSignal
    amount: float


def select_buy_candidates(
    signals: Mapping[str, CombinedSignal],
    held: Collection[str],
    config: BacktestConfig,
    open_slots: int,
) -> list[CombinedSignal]:
    """매수 후보: 점수 내림차순, 빈 자리 수만큼."""
    if open_slots <= 0:
        return []
    candidates = sorted(find_buy_worthy(signals, held, config), key=lambda s: s.combined_score, reverse=True)
    return candidates[:open_slots]


def allocate_capital(
    candidates: list[CombinedSignal],
    available_cash: float,
    max_position: float,
    min_trade_value: float,
) -> list[Allocation]:
    """후보별 매수 금액 배분. 반환 합계 <= available_cash.

    재배분은 한 번만 수행하므로 상한에 다시 걸린 금액은 투자되지 않고 남을 수 있다.
    """
    if not candidates or available_cash <= 0 or max_position <= 0:
        return []

    strengths = [abs(s.combined_score) for s in candidates]
    total_strength = sum(strengths)
    if total_strength == 0:
        strengths = [1.0] * len(candidates)
        total_strength = float(len(candidates))

    allocations = [
        Allocation(signal=s, amount=min(available_cash * strength / total_strength, max_position))
        for s, strength in zip(candidates, strengths)
    ]

    # 상한으로 남은 금액을 상한 미달 후보에 재배분 (1회)
    capped_total = sum(a.amount for a in allocations)
    if capped_total < available_cash:
        excess = available_cash - capped_total
        uncapped = [(a, st) for a, st in zip(allocations, strengths) if a.amount < max_position]
        uncapped_strength = sum(st for _, st in uncapped)
        if uncapped_strength > 0:
            for alloc, strength in uncapped:
                bonus = excess * strength / uncapped_strength
                alloc.amount = min(alloc.amount + bonus, max_position)

    # 부동소수 누적 오차로 가용 현금을 넘으면 일괄 축소
    total_allocated = sum(a.amount for a in allocations)
    if total_allocated > available_cash:
        scale = available_cash / total_allocated
        for alloc in allocations:
            alloc.amount *= scale

    return [a for a in allocations if a.amount >= min_trade_value]
