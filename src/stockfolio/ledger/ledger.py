from __future__ import annotations

import functools
import logging
import math
from dataclasses import replace
from typing import Callable, Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

from .errors import CapacityExceeded, InsufficientQuantity, InvalidInput, LedgerError, NotFound
from .model import Holding, RepriceResult, MAX_HOLDINGS_DEFAULT, MAX_QUANTITY, REPRICE_ALL, SYMBOL_MAX_LEN_DEFAULT
from ..events.bus import now_ms, publish as publish_event
from ..events.schema import (
    HoldingClosed,
    HoldingIncreased,
    HoldingOpened,
    HoldingReduced,
    OperationRejected,
    PriceUpdated,
)
from ..metrics.ledger import (
    get_reprices_total,
    get_trades_rejected_total,
    get_trades_total,
    set_holdings_count,
)

logger = logging.getLogger(__name__)

PriceSource = Callable[[Holding], Optional[float]]


def normalize_symbol(raw: str, max_len: int = SYMBOL_MAX_LEN_DEFAULT) -> str:
    """Return the upper-cased symbol, or raise InvalidInput.

    Surrounding whitespace is dropped; embedded whitespace is rejected since
    the storage format is space-delimited.
    """
    if not isinstance(raw, str):
        raise InvalidInput("Symbol must be text")
    sym = raw.strip()
    if not sym:
        raise InvalidInput("No symbol entered")
    if any(ch.isspace() for ch in sym):
        raise InvalidInput(f"Symbol {sym!r} must not contain spaces")
    if len(sym) > max_len:
        raise InvalidInput(f"Symbol {sym!r} longer than {max_len} characters")
    return sym.upper()


def check_quantity(qty) -> int:
    if isinstance(qty, bool) or not isinstance(qty, int):
        raise InvalidInput(f"Quantity must be a whole number, got {qty!r}")
    if qty <= 0:
        raise InvalidInput("Quantity must be > 0")
    if qty > MAX_QUANTITY:
        raise InvalidInput(f"Quantity must be <= {MAX_QUANTITY}")
    return qty


def check_price(price, allow_zero: bool = False) -> float:
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        raise InvalidInput(f"Price must be a number, got {price!r}")
    px = float(price)
    if not math.isfinite(px):
        raise InvalidInput("Price must be finite")
    if allow_zero and px < 0.0:
        raise InvalidInput("Price must be >= 0")
    if not allow_zero and px <= 0.0:
        raise InvalidInput("Price must be > 0")
    return px


def _recorded(operation: str):
    """Count and publish a rejection for any LedgerError, then re-raise it."""
    def wrap(fn):
        @functools.wraps(fn)
        def inner(self, symbol, *args, **kwargs):
            try:
                return fn(self, symbol, *args, **kwargs)
            except LedgerError as e:
                self._rejected(operation, e, symbol)
                raise
        return inner
    return wrap


class Ledger:
    """Ordered holdings keyed by upper-case symbol.

    Holdings keep insertion order; closing one leaves the relative order of
    the rest untouched. Every stored holding has quantity > 0 and the number
    of holdings never exceeds `max_holdings` (None = unbounded).
    """

    def __init__(
        self,
        max_holdings: Optional[int] = MAX_HOLDINGS_DEFAULT,
        symbol_max_len: int = SYMBOL_MAX_LEN_DEFAULT,
    ):
        if max_holdings is not None and max_holdings < 1:
            raise ValueError("max_holdings must be >= 1 or None")
        self.max_holdings = max_holdings
        self.symbol_max_len = int(symbol_max_len)
        self.holdings: Dict[str, Holding] = {}

    # ---- read side ----

    def __len__(self) -> int:
        return len(self.holdings)

    def __iter__(self) -> Iterator[Holding]:
        return iter(self.all())

    def __contains__(self, symbol) -> bool:
        return self.find(symbol) is not None

    @property
    def is_full(self) -> bool:
        return self.max_holdings is not None and len(self.holdings) >= self.max_holdings

    def normalize(self, symbol: str) -> str:
        return normalize_symbol(symbol, self.symbol_max_len)

    def find(self, symbol: str) -> Optional[Holding]:
        """Case-insensitive lookup; returns a snapshot or None."""
        try:
            sym = self.normalize(symbol)
        except InvalidInput:
            return None
        h = self.holdings.get(sym)
        return replace(h) if h is not None else None

    def all(self) -> Tuple[Holding, ...]:
        """Snapshot of every holding in ledger order."""
        return tuple(replace(h) for h in self.holdings.values())

    # ---- mutations ----

    @_recorded("buy")
    def buy(self, symbol: str, qty: int, price: float) -> Holding:
        """Add `qty` shares at `price`, merging into an existing holding.

        An existing holding's average buy price becomes the quantity-weighted
        mean of the old position and the new lot. In both cases the
        transaction price becomes the current price.
        """
        sym = self.normalize(symbol)
        qty = check_quantity(qty)
        px = check_price(price)

        h = self.holdings.get(sym)
        if h is None:
            if self.is_full:
                raise CapacityExceeded(self.max_holdings)  # type: ignore[arg-type]
            h = Holding(symbol=sym, quantity=qty, avg_buy_price=px, current_price=px)
            self.holdings[sym] = h
            publish_event(HoldingOpened(ts=now_ms(), symbol=sym, qty=qty, price=px))
        else:
            new_qty = h.quantity + qty
            if new_qty > MAX_QUANTITY:
                raise InvalidInput(f"Holding {sym} would exceed {MAX_QUANTITY} shares")
            new_avg = (h.quantity * h.avg_buy_price + qty * px) / new_qty
            if not math.isfinite(new_avg):
                raise InvalidInput(f"Average buy price of {sym} out of range")
            h.avg_buy_price = new_avg
            h.quantity = new_qty
            h.current_price = px
            publish_event(
                HoldingIncreased(
                    ts=now_ms(), symbol=sym, qty=qty, price=px,
                    new_qty=new_qty, avg_buy_price=h.avg_buy_price,
                )
            )
        get_trades_total().labels("buy").inc()
        set_holdings_count(len(self.holdings))
        return replace(h)

    @_recorded("sell")
    def sell(self, symbol: str, qty: int, price: float) -> Holding:
        """Remove `qty` shares at `price` (zero allowed).

        Returns the holding as it stands after the sale. A returned quantity
        of 0 means the holding was closed and is no longer in the ledger.
        The average buy price is never changed by a sale.
        """
        sym = self.normalize(symbol)
        h = self.holdings.get(sym)
        if h is None:
            raise NotFound(sym)
        qty = check_quantity(qty)
        px = check_price(price, allow_zero=True)
        if qty > h.quantity:
            raise InsufficientQuantity(sym, qty, h.quantity)

        remaining = h.quantity - qty
        if remaining == 0:
            del self.holdings[sym]
            publish_event(
                HoldingClosed(ts=now_ms(), symbol=sym, qty=qty, price=px, avg_buy_price=h.avg_buy_price)
            )
            result = replace(h, quantity=0, current_price=px)
        else:
            h.quantity = remaining
            h.current_price = px
            publish_event(HoldingReduced(ts=now_ms(), symbol=sym, qty=qty, price=px, remaining_qty=remaining))
            result = replace(h)
        get_trades_total().labels("sell").inc()
        set_holdings_count(len(self.holdings))
        return result

    @_recorded("reprice")
    def set_current_price(self, symbol: str, price: float) -> Holding:
        sym = self.normalize(symbol)
        h = self.holdings.get(sym)
        if h is None:
            raise NotFound(sym)
        px = check_price(price)
        self._set_price(h, px)
        get_reprices_total().labels("single").inc()
        return replace(h)

    def reprice_all(self, price_for: PriceSource) -> RepriceResult:
        """Offer every holding, in ledger order, to `price_for`.

        `price_for(holding)` returns the new price or None to leave the holding
        alone. A rejected price (or InvalidInput raised by the source) skips
        only that holding. Any other exception stops the batch; prices already
        applied are kept.
        """
        result = RepriceResult()
        for sym in list(self.holdings):
            h = self.holdings.get(sym)
            if h is None:
                continue
            try:
                raw = price_for(replace(h))
                if raw is None:
                    result.skipped.append(sym)
                    continue
                px = check_price(raw)
            except InvalidInput as e:
                logger.warning(f"Invalid price for {sym}, skipping: {e}")
                self._rejected("reprice", e, sym)
                result.invalid.append(sym)
                continue
            self._set_price(h, px)
            result.applied.append(sym)
            get_reprices_total().labels("bulk").inc()
        return result

    def reprice(
        self,
        target: str,
        price: Union[float, PriceSource, Mapping[str, Optional[float]]],
    ) -> Union[Holding, RepriceResult]:
        """Reprice one symbol, or every holding when `target` is ALL.

        In ALL mode `price` is a callable (see `reprice_all`) or a mapping of
        symbol -> price; symbols absent from the mapping are skipped.
        """
        if isinstance(target, str) and target.strip().upper() == REPRICE_ALL:
            if isinstance(price, Mapping):
                prices = {str(k).strip().upper(): v for k, v in price.items()}
                return self.reprice_all(lambda h: prices.get(h.symbol))
            if not callable(price):
                raise InvalidInput("Bulk reprice needs a price per holding")
            return self.reprice_all(price)
        return self.set_current_price(target, price)  # type: ignore[arg-type]

    def clear(self) -> None:
        self.holdings.clear()
        set_holdings_count(0)

    def replace_all(self, holdings: Iterable[Holding]) -> int:
        """Swap the whole ledger contents for `holdings` (already validated records).

        Raises InvalidInput on duplicate symbols or CapacityExceeded when the
        records do not fit; the ledger is unchanged in either case.
        """
        staged: Dict[str, Holding] = {}
        for h in holdings:
            if h.symbol in staged:
                raise InvalidInput(f"Duplicate symbol {h.symbol}")
            staged[h.symbol] = replace(h)
        if self.max_holdings is not None and len(staged) > self.max_holdings:
            raise CapacityExceeded(self.max_holdings)
        self.holdings = staged
        set_holdings_count(len(staged))
        return len(staged)

    # ---- internals ----

    def _set_price(self, h: Holding, px: float) -> None:
        old = h.current_price
        h.current_price = px
        publish_event(PriceUpdated(ts=now_ms(), symbol=h.symbol, old_price=old, new_price=px))

    def _rejected(self, operation: str, err: LedgerError, symbol) -> None:
        try:
            get_trades_rejected_total().labels(operation, err.reason).inc()
        except Exception:
            pass
        sym = symbol.strip().upper() if isinstance(symbol, str) else None
        publish_event(
            OperationRejected(ts=now_ms(), symbol=sym or None, operation=operation, reason=err.reason, detail=str(err))
        )


def make_ledger(holdings: Iterable[Holding] = (), **kwargs) -> Ledger:
    led = Ledger(**kwargs)
    led.replace_all(holdings)
    return led
