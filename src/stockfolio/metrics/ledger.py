from __future__ import annotations

from typing import Optional
import os
from prometheus_client import Counter, Gauge, REGISTRY

_trades_total: Optional[Counter] = None
_trades_rejected_total: Optional[Counter] = None
_reprices_total: Optional[Counter] = None
_storage_records_total: Optional[Counter] = None
_storage_skipped_lines_total: Optional[Counter] = None
_storage_errors_total: Optional[Counter] = None
_events_total: Optional[Counter] = None
_holdings_gauge: Optional[Gauge] = None
_portfolio_value_gauge: Optional[Gauge] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def set(self, *args, **kwargs):
        return None


def _disabled() -> bool:
    return os.getenv("DISABLE_PROMETHEUS", "0") == "1"


def _registered(name: str):
    # Collector already registered (module imported twice under different names)
    try:
        coll = getattr(REGISTRY, "_names_to_collectors", {}).get(name)
        if coll is not None:
            return coll
    except Exception:
        pass
    return _NoOp()


def _safe_counter(name: str, doc: str, labelnames):
    if _disabled():
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        return _registered(name)


def _safe_gauge(name: str, doc: str, labelnames=()):
    if _disabled():
        return _NoOp()
    try:
        return Gauge(name, doc, labelnames)
    except ValueError:
        return _registered(name)


def get_trades_total():
    """Counter: accepted buy/sell transactions, labeled by side."""
    global _trades_total
    if _trades_total is None:
        _trades_total = _safe_counter("stockfolio_trades_total", "Trades applied to the ledger", ["side"])
    return _trades_total


def get_trades_rejected_total():
    """Counter: rejected ledger operations, labeled by operation and error reason."""
    global _trades_rejected_total
    if _trades_rejected_total is None:
        _trades_rejected_total = _safe_counter(
            "stockfolio_trades_rejected_total", "Ledger operations rejected", ["operation", "reason"]
        )
    return _trades_rejected_total


def get_reprices_total():
    global _reprices_total
    if _reprices_total is None:
        _reprices_total = _safe_counter("stockfolio_reprices_total", "Current prices updated", ["mode"])
    return _reprices_total


def get_storage_records_total():
    global _storage_records_total
    if _storage_records_total is None:
        _storage_records_total = _safe_counter(
            "stockfolio_storage_records_total", "Records written or read", ["op"]
        )
    return _storage_records_total


def get_storage_skipped_lines_total():
    global _storage_skipped_lines_total
    if _storage_skipped_lines_total is None:
        _storage_skipped_lines_total = _safe_counter(
            "stockfolio_storage_skipped_lines_total", "Lines skipped while loading", ["reason"]
        )
    return _storage_skipped_lines_total


def get_storage_errors_total():
    global _storage_errors_total
    if _storage_errors_total is None:
        _storage_errors_total = _safe_counter(
            "stockfolio_storage_errors_total", "Storage open/read/write failures", ["op"]
        )
    return _storage_errors_total


def get_events_total():
    global _events_total
    if _events_total is None:
        _events_total = _safe_counter("stockfolio_events_total", "Ledger events published", ["type"])
    return _events_total


def get_holdings_gauge():
    """Gauge: number of holdings currently in the ledger."""
    global _holdings_gauge
    if _holdings_gauge is None:
        _holdings_gauge = _safe_gauge("stockfolio_holdings", "Holdings in the ledger")
    return _holdings_gauge


def get_portfolio_value_gauge():
    """Gauge: portfolio totals, labeled kind=cost|market|unrealized."""
    global _portfolio_value_gauge
    if _portfolio_value_gauge is None:
        _portfolio_value_gauge = _safe_gauge(
            "stockfolio_portfolio_value", "Portfolio valuation totals", ["kind"]
        )
    return _portfolio_value_gauge


def set_holdings_count(count: int) -> None:
    try:
        get_holdings_gauge().set(int(count))  # type: ignore[attr-defined]
    except Exception:
        pass


def set_portfolio_gauges(total_cost: float, market_value: float, unrealized: float) -> None:
    """Publish the aggregate valuation to the portfolio value gauge."""
    g = get_portfolio_value_gauge()
    for kind, val in (("cost", total_cost), ("market", market_value), ("unrealized", unrealized)):
        try:
            g.labels(kind=kind).set(float(val))  # type: ignore[attr-defined]
        except Exception:
            continue
