"""Strict text-to-number parsing for menu input.

The whole string (minus surrounding whitespace) must be a number: "12x"
is rejected rather than read as 12, and so are underscores, NaN and
infinities. Every failure raises InvalidInput.
"""
from __future__ import annotations

import math
import re
from typing import Optional

from ..ledger.errors import InvalidInput

_INT_RE = re.compile(r"[+-]?\d+")
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def is_blank(text: Optional[str]) -> bool:
    return text is None or not text.strip()


def parse_int(text: str, what: str = "quantity") -> int:
    s = (text or "").strip()
    if not _INT_RE.fullmatch(s):
        raise InvalidInput(f"Invalid {what}: {text!r}")
    return int(s)


def parse_decimal(text: str, what: str = "price") -> float:
    s = (text or "").strip()
    if not _DECIMAL_RE.fullmatch(s):
        raise InvalidInput(f"Invalid {what}: {text!r}")
    val = float(s)
    if not math.isfinite(val):
        raise InvalidInput(f"Invalid {what}: {text!r} is out of range")
    return val
