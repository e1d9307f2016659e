"""Odds conversion helpers for squares markets."""

from __future__ import annotations

import math

from squares_ev.errors import InvalidOdds


def implied_probability(price: int) -> float:
    """Convert American odds to a raw (vig-inclusive) implied probability."""
    if not math.isfinite(price):
        raise InvalidOdds(f"American odds must be finite, got {price!r}")
    if price == 0:
        raise InvalidOdds("American odds cannot be 0")
    if price > 0:
        return 100.0 / (price + 100.0)
    value = -price
    return value / (value + 100.0)
