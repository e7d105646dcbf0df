"""
Flat-file persistence for the ledger.

Format: one holding per line, `SYMBOL QTY BUY_PRICE CUR_PRICE`, single
spaces, prices written with 10 significant digits. No header.

- Save overwrites the file from scratch, in ledger order.
- Load replaces the in-memory ledger. Lines that do not parse are skipped
  and counted; lines past the ledger capacity are skipped with a warning.
  A missing file is not an error and leaves the ledger as it is.
"""
from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import List

from ..events.bus import now_ms, publish as publish_event
from ..events.schema import PortfolioLoaded, PortfolioSaved
from ..ledger.errors import InvalidInput, IOFailure
from ..ledger.ledger import Ledger, normalize_symbol
from ..ledger.model import Holding, MAX_QUANTITY, SYMBOL_MAX_LEN_DEFAULT
from ..metrics.ledger import (
    get_storage_errors_total,
    get_storage_records_total,
    get_storage_skipped_lines_total,
)

logger = logging.getLogger(__name__)

DEFAULT_PORTFOLIO_FILE = "portfolio.txt"
PRICE_FORMAT = ".10g"


@dataclass
class SaveResult:
    path: str
    written: int


@dataclass
class LoadResult:
    path: str
    found: bool
    loaded: int = 0
    skipped: int = 0
    capacity_skipped: int = 0


def format_record(h: Holding) -> str:
    return f"{h.symbol} {h.quantity} {format(h.avg_buy_price, PRICE_FORMAT)} {format(h.current_price, PRICE_FORMAT)}\n"


def _number(field: str, text: str) -> float:
    try:
        val = float(text)
    except ValueError:
        raise InvalidInput(f"{field} {text!r} is not a number")
    if "_" in text or not math.isfinite(val):
        raise InvalidInput(f"{field} {text!r} is not a finite decimal")
    return val


def parse_record(line: str, symbol_max_len: int = SYMBOL_MAX_LEN_DEFAULT) -> Holding:
    """Parse one stored line into a Holding or raise InvalidInput."""
    fields = line.split()
    if len(fields) != 4:
        raise InvalidInput(f"Expected 4 fields, got {len(fields)}")
    sym_txt, qty_txt, buy_txt, cur_txt = fields
    sym = normalize_symbol(sym_txt, symbol_max_len)
    try:
        qty = int(qty_txt)
    except ValueError:
        raise InvalidInput(f"Quantity {qty_txt!r} is not an integer")
    if "_" in qty_txt or qty <= 0 or qty > MAX_QUANTITY:
        raise InvalidInput(f"Quantity {qty_txt!r} must be an integer in 1..{MAX_QUANTITY}")
    buy = _number("Buy price", buy_txt)
    cur = _number("Current price", cur_txt)
    if buy <= 0.0:
        raise InvalidInput(f"Buy price {buy_txt!r} must be > 0")
    if cur < 0.0:
        raise InvalidInput(f"Current price {cur_txt!r} must be >= 0")
    return Holding(symbol=sym, quantity=qty, avg_buy_price=buy, current_price=cur)


def save_ledger(ledger: Ledger, path: str = DEFAULT_PORTFOLIO_FILE) -> SaveResult:
    """Write every holding to `path`, replacing its previous contents.

    Raises IOFailure if the file cannot be opened or written.
    """
    holdings = ledger.all()
    try:
        with open(path, "w", encoding="utf-8") as f:
            for h in holdings:
                f.write(format_record(h))
    except OSError as e:
        get_storage_errors_total().labels("save").inc()
        logger.error(f"Failed to save portfolio to {path}: {e}")
        raise IOFailure("save", path, e) from e
    get_storage_records_total().labels("save").inc(len(holdings))
    publish_event(PortfolioSaved(ts=now_ms(), path=str(path), written=len(holdings)))
    logger.info(f"Saved {len(holdings)} holdings to {path}")
    return SaveResult(path=str(path), written=len(holdings))


def load_ledger(ledger: Ledger, path: str = DEFAULT_PORTFOLIO_FILE) -> LoadResult:
    """Replace the ledger contents with the holdings stored in `path`.

    The whole file is read before the ledger is touched, so an unreadable
    file (IOFailure) leaves the ledger unchanged.
    """
    if not os.path.exists(path):
        logger.info(f"No saved portfolio found ({path})")
        result = LoadResult(path=str(path), found=False)
        _publish_loaded(result)
        return result
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except (OSError, UnicodeDecodeError) as e:
        get_storage_errors_total().labels("load").inc()
        logger.error(f"Failed to read portfolio from {path}: {e}")
        raise IOFailure("load", path, e) from e

    result = LoadResult(path=str(path), found=True)
    staged: List[Holding] = []
    seen = set()
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            h = parse_record(line, ledger.symbol_max_len)
            if h.symbol in seen:
                raise InvalidInput(f"Duplicate symbol {h.symbol}")
        except InvalidInput as e:
            result.skipped += 1
            get_storage_skipped_lines_total().labels("malformed").inc()
            logger.warning(f"{path}:{lineno}: skipping malformed line: {e}")
            continue
        if ledger.max_holdings is not None and len(staged) >= ledger.max_holdings:
            result.capacity_skipped += 1
            get_storage_skipped_lines_total().labels("capacity").inc()
            logger.warning(f"{path}:{lineno}: reached max holdings ({ledger.max_holdings}), skipping {h.symbol}")
            continue
        seen.add(h.symbol)
        staged.append(h)

    result.loaded = ledger.replace_all(staged)
    get_storage_records_total().labels("load").inc(result.loaded)
    _publish_loaded(result)
    logger.info(f"Loaded {result.loaded} holdings from {path}")
    return result


def _publish_loaded(result: LoadResult) -> None:
    publish_event(
        PortfolioLoaded(
            ts=now_ms(),
            path=result.path,
            found=result.found,
            loaded=result.loaded,
            skipped=result.skipped,
            capacity_skipped=result.capacity_skipped,
        )
    )

