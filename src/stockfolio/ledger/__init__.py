"""Ledger package.

Public API:
- Ledger: ordered holdings with buy/sell/reprice and their invariants.
- Holding, RepriceResult: data model.
- LedgerError and subclasses: failure outcomes of every operation.
- summarize / value_holding: read-only valuation.
"""

from .errors import (  # re-export
    CapacityExceeded,
    InsufficientQuantity,
    InvalidInput,
    IOFailure,
    LedgerError,
    NotFound,
)
from .ledger import Ledger, make_ledger, normalize_symbol
from .model import Holding, RepriceResult, REPRICE_ALL
from .valuation import HoldingValuation, PortfolioSummary, summarize, value_holding, value_holdings
