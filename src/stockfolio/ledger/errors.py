"""Ledger error taxonomy.

Every core operation validates before it mutates, so catching any
`LedgerError` leaves the ledger exactly as it was before the call.
"""

from __future__ import annotations


class LedgerError(Exception):
    reason = "ledger_error"


class InvalidInput(LedgerError, ValueError):
    """Malformed or out-of-range value (non-numeric, non-positive, bad symbol)."""
    reason = "invalid_input"


class NotFound(LedgerError):
    reason = "not_found"

    def __init__(self, symbol: str):
        super().__init__(f"Symbol {symbol} not found")
        self.symbol = symbol


class InsufficientQuantity(LedgerError):
    reason = "insufficient_quantity"

    def __init__(self, symbol: str, requested: int, held: int):
        super().__init__(f"Cannot sell {requested} {symbol}: only {held} held")
        self.symbol = symbol
        self.requested = requested
        self.held = held


class CapacityExceeded(LedgerError):
    reason = "capacity_exceeded"

    def __init__(self, capacity: int):
        super().__init__(f"Portfolio full ({capacity} holdings)")
        self.capacity = capacity


class IOFailure(LedgerError):
    """Persisted storage could not be opened, read or written."""
    reason = "io_failure"

    def __init__(self, op: str, path: str, cause: Exception):
        super().__init__(f"Failed to {op} {path}: {cause}")
        self.op = op
        self.path = path
