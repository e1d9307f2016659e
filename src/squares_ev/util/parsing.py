"""Shared parsing helpers for tolerant cell and odds coercion."""

from __future__ import annotations

import math
import re
from typing import Any

_WHITESPACE_RE = re.compile(r"\s+")
_MINUS_SIGNS = ("\u2212", "\u2013", "\u2012")


def collapse_whitespace(value: Any) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    if value is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value)).strip()


def maybe_digit(value: Any) -> int | None:
    """Parse a single board digit (0-9), returning None when invalid."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 0 <= value <= 9 else None
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if not raw:
        return None
    try:
        parsed = float(raw)
    except ValueError:
        return None
    if not math.isfinite(parsed) or not parsed.is_integer():
        return None
    digit = int(parsed)
    if digit < 0 or digit > 9:
        return None
    return digit


def to_price(value: Any) -> int | None:
    """Parse American-odds integer price from sportsbook-style input."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value)
    if isinstance(value, str):
        raw = value.strip().replace(",", "")
        for sign in _MINUS_SIGNS:
            raw = raw.replace(sign, "-")
        if raw.startswith("+"):
            raw = raw[1:]
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            pass
        try:
            parsed = float(raw)
        except ValueError:
            return None
        if not math.isfinite(parsed):
            return None
        return int(parsed)
    return None
