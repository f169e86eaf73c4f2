"""
포트폴리오 관리 모듈.

[ 역할 ]
    현금, 보유 종목(Holding), 거래 기록(TradeRecord)을 통합 관리.
    시뮬레이션 전체에서 단 하나의 Portfolio 인스턴스만 존재하며,
    엔진이 매수/매도/평가를 순차적으로 반영한다.

[ 주요 클래스 ]
    Holding     - 개별 종목의 수량(소수 허용)/평균단가/평가금액/평가손익
    TradeRecord - 개별 거래 내역 (매수/매도/교체매도, 실현손익 포함)
    Portfolio   - 전체 포트폴리오 (현금 + 보유종목 + 거래내역)

[ 불변 조건 ]
    - 종목당 Holding은 최대 1개 (holdings dict의 key = symbol)
    - shares >= 0, 전량 매도 시 Holding 자체를 제거 (0주 Holding 없음)
    - recalculate_total_value() 후 total_value == cash + Σ market_value

[ 호출하는 곳 ]
    - backtest/engine.py::IntradayBacktestEngine 에서 상태 갱신
    - backtest/rules.py 가 holdings를 읽어 매도/교체 판단
"""

from dataclasses import dataclass
from typing import Any

# 부분 매도 수량 반올림 자릿수
SHARE_DECIMALS = 4


@dataclass
class Holding:
    """개별 종목 보유 현황."""
    symbol: str
    shares: float = 0.0             # 보유 수량 (소수 허용)
    avg_cost: float = 0.0           # 평균 매수가 (매수 시마다 가중평균 갱신)
    current_price: float = 0.0      # 마지막 평가 가격
    market_value: float = 0.0       # shares * current_price
    gain_loss: float = 0.0          # 평가손익 금액
    gain_loss_percent: float = 0.0  # 평가손익률 (%)

    def mark(self, price: float) -> None:
        """현재가로 평가금액/평가손익 갱신."""
        self.current_price = price
        self.market_value = self.shares * price
        self.gain_loss = (price - self.avg_cost) * self.shares
        self.gain_loss_percent = (price - self.avg_cost) / self.avg_cost * 100 if self.avg_cost > 0 else 0.0

    def add(self, shares: float, price: float) -> None:
        """추가 매수. 평균단가 가중평균 재계산."""
        total_cost = self.avg_cost * self.shares + price * shares
        self.shares += shares
        self.avg_cost = total_cost / self.shares if self.shares > 0 else 0.0
        self.mark(price)

    def reduce(self, shares: float) -> None:
        """부분 매도. 평균단가는 유지."""
        self.shares = max(0.0, self.shares - shares)
        self.market_value = self.shares * self.current_price
        self.gain_loss = (self.current_price - self.avg_cost) * self.shares


@dataclass
class TradeRecord:
    """개별 거래 기록. 리포트/로그용."""
    timestamp: str
    symbol: str
    side: str            # "buy" or "sell"
    kind: str            # "buy" / "sell" / "rotation"
    shares: float
    price: float
    total: float         # shares * price
    tx_cost: float = 0.0
    profit: float = 0.0  # 실현 손익 (매도 시에만)
    reason: str = ""


class Portfolio:
    """포트폴리오 관리 클래스.

    IntradayBacktestEngine이 소유하며, 한 스레드에서만 순차적으로 갱신된다.
    """

    def __init__(self, initial_cash: float, transaction_cost_bps: float = 0.0):
        self.initial_cash = initial_cash
        self.cash = initial_cash                    # 가용 현금
        self.holdings: dict[str, Holding] = {}      # symbol → Holding
        self.total_value = initial_cash             # cash + Σ market_value
        self.transaction_cost_bps = transaction_cost_bps
        self.total_tx_costs = 0.0
        self.trade_history: list[TradeRecord] = []  # 전체 거래 내역

    @property
    def holdings_value(self) -> float:
        return sum(h.market_value for h in self.holdings.values())

    @property
    def position_count(self) -> int:
        return len(self.holdings)

    def recalculate_total_value(self) -> float:
        """총 자산 재계산 (현금 + 보유종목 평가금액)."""
        self.total_value = self.cash + self.holdings_value
        return self.total_value

    def available_cash(self, target_cash_ratio: float) -> float:
        """목표 현금 비중을 남기고 쓸 수 있는 현금."""
        return max(0.0, self.cash - self.total_value * target_cash_ratio)

    def mark_to_market(self, prices: dict[str, float]) -> None:
        """보유 종목을 현재가로 평가. 가격이 없는 종목은 이전 평가 유지."""
        for symbol, holding in self.holdings.items():
            price = prices.get(symbol)
            if price:
                holding.mark(price)

    def _tx_cost(self, notional: float) -> float:
        return notional * self.transaction_cost_bps / 10_000

    def execute_buy(
        self,
        symbol: str,
        allocation: float,
        price: float,
        timestamp: str = "",
        reason: str = "",
    ) -> TradeRecord | None:
        """allocation 금액만큼 매수. 거래비용 포함 총 지출 == allocation.

        Returns:
            TradeRecord, 가격/금액이 0 이하면 None
        """
        if price <= 0 or allocation <= 0:
            return None

        cost_rate = self.transaction_cost_bps / 10_000
        shares = allocation / (price * (1 + cost_rate))
        total = shares * price
        tx_cost = self._tx_cost(total)

        self.cash -= total + tx_cost
        self.total_tx_costs += tx_cost

        if symbol in self.holdings:
            self.holdings[symbol].add(shares, price)
        else:
            holding = Holding(symbol=symbol, shares=shares, avg_cost=price)
            holding.mark(price)
            self.holdings[symbol] = holding

        trade = TradeRecord(
            timestamp=timestamp,
            symbol=symbol,
            side="buy",
            kind="buy",
            shares=shares,
            price=price,
            total=total,
            tx_cost=tx_cost,
            reason=reason,
        )
        self.trade_history.append(trade)
        return trade

    def execute_sell(
        self,
        symbol: str,
        sell_percent: float,
        price: float,
        timestamp: str = "",
        reason: str = "",
        kind: str = "sell",
    ) -> TradeRecord | None:
        """보유 수량의 sell_percent(0~1)만큼 매도.

        sell_percent >= 1 이거나 매도 수량이 보유 수량 이상이면 Holding 제거.
        부분 매도 수량은 소수 4자리 반올림 (0이 되면 전량).

        Returns:
            TradeRecord (profit = (price - avg_cost) * shares), 미보유면 None
        """
        holding = self.holdings.get(symbol)
        if holding is None or sell_percent <= 0:
            return None

        if sell_percent >= 1:
            shares = holding.shares
        else:
            shares = round(holding.shares * sell_percent, SHARE_DECIMALS) or holding.shares
            shares = min(shares, holding.shares)

        total = shares * price
        tx_cost = self._tx_cost(total)
        profit = (price - holding.avg_cost) * shares

        self.cash += total - tx_cost
        self.total_tx_costs += tx_cost

        if shares >= holding.shares:
            del self.holdings[symbol]
        else:
            holding.current_price = price
            holding.reduce(shares)

        trade = TradeRecord(
            timestamp=timestamp,
            symbol=symbol,
            side="sell",
            kind=kind,
            shares=shares,
            price=price,
            total=total,
            tx_cost=tx_cost,
            profit=profit,
            reason=reason,
        )
        self.trade_history.append(trade)
        return trade

    def get_summary(self) -> dict[str, Any]:
        """포트폴리오 요약."""
        return {
            "initial_cash": self.initial_cash,
            "current_cash": self.cash,
            "holdings_value": self.holdings_value,
            "total_value": self.total_value,
            "total_profit": self.total_value - self.initial_cash,
            "num_holdings": self.position_count,
            "num_trades": len(self.trade_history),
            "total_tx_costs": self.total_tx_costs,
        }
