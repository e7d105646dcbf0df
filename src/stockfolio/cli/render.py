from __future__ import annotations

from typing import Iterable, List

from ..ledger.model import Holding
from ..ledger.valuation import PortfolioSummary, value_holdings

EMPTY_MESSAGE = "Portfolio is empty."


def holdings_table(holdings: Iterable[Holding]) -> str:
    rows = value_holdings(holdings)
    if not rows:
        return EMPTY_MESSAGE
    lines: List[str] = [
        f"{'Symbol':<10} {'Qty':<6} {'Buy':<10} {'Cur':<10} {'Mkt Value':<12} {'P/L%':<8}"
    ]
    for v in rows:
        lines.append(
            f"{v.symbol:<10} {v.quantity:<6d} {v.avg_buy_price:<10.2f} {v.current_price:<10.2f} "
            f"{v.market_value:<12.2f} {v.pl_pct:<7.2f}%"
        )
    return "\n".join(lines)


def summary_report(s: PortfolioSummary) -> str:
    return "\n".join([
        f"Total cost basis : {s.total_cost:.2f}",
        f"Market value     : {s.market_value:.2f}",
        f"Unrealized P/L   : {s.unrealized:.2f}",
        f"Portfolio return : {s.return_pct:.2f}%",
    ])
