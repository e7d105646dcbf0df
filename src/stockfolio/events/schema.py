from __future__ import annotations

from typing import Literal, Optional
from pydantic import BaseModel


# ---- Base + envelope ----

class BaseEvent(BaseModel):
    event_type: str
    ts: int
    symbol: Optional[str] = None


class EventEnvelope(BaseModel):
    schema_version: str = "v1"
    sequence: int = 0
    event: BaseEvent


# ---- Ledger mutations ----

class HoldingOpened(BaseEvent):
    event_type: Literal["holding_opened"] = "holding_opened"
    qty: int
    price: float


class HoldingIncreased(BaseEvent):
    event_type: Literal["holding_increased"] = "holding_increased"
    qty: int
    price: float
    new_qty: int
    avg_buy_price: float


class HoldingReduced(BaseEvent):
    event_type: Literal["holding_reduced"] = "holding_reduced"
    qty: int
    price: float
    remaining_qty: int


class HoldingClosed(BaseEvent):
    event_type: Literal["holding_closed"] = "holding_closed"
    qty: int
    price: float
    avg_buy_price: float


class PriceUpdated(BaseEvent):
    event_type: Literal["price_updated"] = "price_updated"
    old_price: float
    new_price: float


class OperationRejected(BaseEvent):
    event_type: Literal["operation_rejected"] = "operation_rejected"
    operation: str
    reason: str
    detail: str = ""


# ---- Storage ----

class PortfolioSaved(BaseEvent):
    event_type: Literal["portfolio_saved"] = "portfolio_saved"
    path: str
    written: int


class PortfolioLoaded(BaseEvent):
    event_type: Literal["portfolio_loaded"] = "portfolio_loaded"
    path: str
    found: bool
    loaded: int
    skipped: int = 0
    capacity_skipped: int = 0
