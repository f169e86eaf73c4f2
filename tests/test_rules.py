"""Tests for the sell / rotation / buy decision tables."""

import numpy as np
import pytest

from intraday_backtest.backtest.rules import (
    SELL_RULES,
    allocate_capital,
    evaluate_sell_rules,
    find_buy_worthy,
    select_buy_candidates,
    select_rotation_candidates,
    should_rotate,
)
from intraday_backtest.data.portfolio import Holding
from intraday_backtest.utils.config import BacktestConfig


def _holding(symbol="AAA", cost=100.0, price=100.0, shares=10.0) -> Holding:
    holding = Holding(symbol, shares=shares, avg_cost=cost)
    holding.mark(price)
    return holding


# ─── sell rules ─────────────────────────────────────────────────────────────

def test_sell_rule_order():
    assert [r.name for r in SELL_RULES] == [
        "no_signal", "strong_sell", "stop_loss", "weak_signal", "profit_take", "sell",
    ]
    assert [r.sell_percent for r in SELL_RULES] == [1.0, 1.0, 1.0, 1.0, 0.5, 0.75]


def test_missing_signal_liquidates(config):
    decision = evaluate_sell_rules(_holding(), None, config)
    assert decision.rule == "no_signal"
    assert decision.sell_percent == 1.0


def test_strong_sell_wins_over_stop_loss(config, make_signal):
    decision = evaluate_sell_rules(_holding(price=90.0), make_signal("AAA", -0.7), config)
    assert decision.rule == "strong_sell"


def test_stop_loss_ignores_bullish_signal(config, make_signal):
    decision = evaluate_sell_rules(_holding(price=95.0), make_signal("AAA", 0.8), config)
    assert decision.rule == "stop_loss"
    assert decision.sell_percent == 1.0
    assert "-5.0%" in decision.reason


def test_weak_signal_liquidates(config, make_signal):
    decision = evaluate_sell_rules(_holding(), make_signal("AAA", 0.01), config)
    assert decision.rule == "weak_signal"
    assert decision.sell_percent == 1.0


def test_profit_take_sells_half(config, make_signal):
    decision = evaluate_sell_rules(_holding(price=103.0), make_signal("AAA", 0.1), config)
    assert decision.rule == "profit_take"
    assert decision.sell_percent == 0.5


def test_sell_recommendation_sells_three_quarters(make_signal):
    # with the default weak-signal floor a SELL score is always caught earlier
    config = BacktestConfig(weak_signal_sell=-0.5)
    decision = evaluate_sell_rules(_holding(), make_signal("AAA", -0.3), config)
    assert decision.rule == "sell"
    assert decision.sell_percent == 0.75


def test_neutral_holding_is_kept(config, make_signal):
    assert evaluate_sell_rules(_holding(price=101.0), make_signal("AAA", 0.1), config) is None


# ─── rotation ───────────────────────────────────────────────────────────────

def test_find_buy_worthy_excludes_held(config, make_signal):
    signals = {s: make_signal(s, score) for s, score in [("AAA", 0.3), ("BBB", 0.2), ("CCC", 0.1)]}
    worthy = find_buy_worthy(signals, {"AAA"}, config)
    assert [s.symbol for s in worthy] == ["BBB"]


@pytest.mark.parametrize(
    "count, cash, positions, expected",
    [
        (0, 0.0, 15, False),     # nothing to buy
        (1, 1_000.0, 3, False),  # room and cash available
        (1, 10.0, 3, True),      # cash below min trade value
        (1, 1_000.0, 15, True),  # all slots used
    ],
)
def test_should_rotate(config, count, cash, positions, expected):
    assert should_rotate(count, cash, positions, config) is expected


def test_rotation_candidates_lowest_scores_first(config, make_signal):
    scores = {"AAA": -0.1, "BBB": 0.05, "CCC": 0.3, "DDD": 0.0, "EEE": -0.05}
    holdings = [_holding(s) for s in scores] + [_holding("NOSIG")]
    signals = {s: make_signal(s, score) for s, score in scores.items()}

    selected = select_rotation_candidates(holdings, signals, config)
    assert [h.symbol for h, _ in selected] == ["AAA", "EEE", "DDD"]

    # stops at the first holding scoring at or above the buy threshold
    selected = select_rotation_candidates(holdings, signals, config, max_rotations=10)
    assert [h.symbol for h, _ in selected] == ["AAA", "EEE", "DDD", "BBB"]


# ─── buy selection / allocation ─────────────────────────────────────────────

def test_buy_candidates_ranked_and_truncated(config, make_signal):
    signals = {s: make_signal(s, score) for s, score in
               [("AAA", 0.2), ("BBB", 0.6), ("CCC", 0.4), ("DDD", 0.9), ("EEE", 0.1)]}
    picked = select_buy_candidates(signals, {"DDD"}, config, open_slots=2)
    assert [s.symbol for s in picked] == ["BBB", "CCC"]
    assert select_buy_candidates(signals, set(), config, open_slots=0) == []


def test_single_candidate_capped_at_max_position(make_signal):
    allocations = allocate_capital([make_signal("AAA", 0.8)], 9_500.0, 700.0, 15.0)
    assert len(allocations) == 1
    assert allocations[0].amount == pytest.approx(700.0)


def test_allocation_proportional_to_strength(make_signal):
    candidates = [make_signal("AAA", 0.6), make_signal("BBB", 0.2)]
    allocations = allocate_capital(candidates, 1_000.0, 10_000.0, 15.0)
    assert [a.amount for a in allocations] == pytest.approx([750.0, 250.0])


def test_redistribution_is_single_pass(make_signal):
    # after redistributing the capped excess once, BBB hits the cap again
    # and the remainder stays uninvested (no iterative water-filling)
    candidates = [make_signal("AAA", 0.5), make_signal("BBB", 0.4), make_signal("CCC", 0.1)]
    allocations = allocate_capital(candidates, 1_000.0, 420.0, 15.0)
    amounts = [a.amount for a in allocations]
    assert amounts == pytest.approx([420.0, 420.0, 116.0])
    assert sum(amounts) == pytest.approx(956.0)


def test_allocations_below_min_trade_value_dropped(make_signal):
    candidates = [make_signal("AAA", 0.9), make_signal("BBB", 0.01)]
    allocations = allocate_capital(candidates, 100.0, 1_000.0, 15.0)
    assert [a.signal.symbol for a in allocations] == ["AAA"]


def test_no_cash_no_allocations(make_signal):
    assert allocate_capital([make_signal("AAA", 0.8)], 0.0, 700.0, 15.0) == []
    assert allocate_capital([], 1_000.0, 700.0, 15.0) == []


def test_total_allocation_never_exceeds_available_cash(make_signal):
    rng = np.random.default_rng(11)
    for _ in range(200):
        n = int(rng.integers(1, 15))
        candidates = [make_signal(f"S{i}", float(rng.uniform(0.16, 1.0))) for i in range(n)]
        available = float(rng.uniform(0, 20_000))
        max_position = float(rng.uniform(1, 5_000))
        allocations = allocate_capital(candidates, available, max_position, 15.0)
        assert sum(a.amount for a in allocations) <= available + 1e-9
        assert all(a.amount <= max_position + 1e-9 for a in allocations)
