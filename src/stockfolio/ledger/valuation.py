"""Read-only valuation of ledger holdings.

Nothing here mutates a holding. A zero cost basis reports 0% instead of
dividing by zero, so an empty portfolio always values to all zeros.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from .model import Holding


@dataclass(frozen=True)
class HoldingValuation:
    symbol: str
    quantity: int
    avg_buy_price: float
    current_price: float
    market_value: float
    cost: float
    unrealized: float
    pl_pct: float


@dataclass(frozen=True)
class PortfolioSummary:
    total_cost: float
    market_value: float
    unrealized: float
    return_pct: float
    holdings: int


def pct_change(value: float, cost: float) -> float:
    if cost == 0.0:
        return 0.0
    return (value - cost) / cost * 100.0


def value_holding(h: Holding) -> HoldingValuation:
    mv = h.current_price * h.quantity
    cost = h.avg_buy_price * h.quantity
    return HoldingValuation(
        symbol=h.symbol,
        quantity=h.quantity,
        avg_buy_price=h.avg_buy_price,
        current_price=h.current_price,
        market_value=mv,
        cost=cost,
        unrealized=mv - cost,
        pl_pct=pct_change(mv, cost),
    )


def value_holdings(holdings: Iterable[Holding]) -> List[HoldingValuation]:
    return [value_holding(h) for h in holdings]


def summarize(holdings: Iterable[Holding]) -> PortfolioSummary:
    """Aggregate cost basis, market value and unrealized P/L over `holdings`."""
    total_cost = 0.0
    market_value = 0.0
    count = 0
    for h in holdings:
        total_cost += h.avg_buy_price * h.quantity
        market_value += h.current_price * h.quantity
        count += 1
    return PortfolioSummary(
        total_cost=total_cost,
        market_value=market_value,
        unrealized=market_value - total_cost,
        return_pct=pct_change(market_value, total_cost),
        holdings=count,
    )
