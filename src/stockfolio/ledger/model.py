from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

MAX_HOLDINGS_DEFAULT = 100
SYMBOL_MAX_LEN_DEFAULT = 15
REPRICE_ALL = "ALL"
# C int range of the flat-file format; keeps every quantity exactly representable as a float
MAX_QUANTITY = 2**31 - 1


@dataclass
class Holding:
    symbol: str
    quantity: int
    avg_buy_price: float
    current_price: float

    def as_tuple(self):
        return (self.symbol, self.quantity, self.avg_buy_price, self.current_price)


@dataclass
class RepriceResult:
    """Outcome of a bulk reprice.

    Attributes:
        applied: symbols whose current price changed
        skipped: symbols the price source declined (no value supplied)
        invalid: symbols whose supplied price was rejected
    """

    applied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    invalid: List[str] = field(default_factory=list)

    @property
    def applied_count(self) -> int:
        return len(self.applied)
