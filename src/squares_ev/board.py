"""Value objects shared by the board extractor and the EV aggregator."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

GRID_SIZE = 10
DIGITS: tuple[int, ...] = tuple(range(GRID_SIZE))
DEFAULT_HOME_LABEL = "Home Team"
DEFAULT_AWAY_LABEL = "Away Team"

DigitPermutation = tuple[int, ...]
OwnershipGrid = tuple[tuple[str, ...], ...]
# Indexed [away_digit][home_digit] by digit value.
OddsMatrix = Sequence[Sequence[Any]]
Surface = tuple[tuple[float, ...], ...]


def default_digits() -> DigitPermutation:
    return DIGITS


def is_digit_permutation(values: Iterable[Any]) -> bool:
    """Return True when values hold each digit 0-9 exactly once."""
    try:
        items = list(values)
    except TypeError:
        return False
    if len(items) != GRID_SIZE:
        return False
    for item in items:
        if isinstance(item, bool) or not isinstance(item, int):
            return False
    return set(items) == set(DIGITS)


def _grid_to_lists(grid: Sequence[Sequence[Any]]) -> list[list[Any]]:
    return [list(row) for row in grid]


@dataclass(frozen=True)
class Board:
    """Parsed squares board.

    `ownership[row][col]` is keyed by permutation order: row follows
    `away_digits`, column follows `home_digits`. The `*_axis_defaulted` flags
    are set when an axis fell back to natural 0-9 order instead of coming
    from the pasted labels.
    """

    home_label: str
    away_label: str
    home_digits: DigitPermutation
    away_digits: DigitPermutation
    ownership: OwnershipGrid
    home_axis_defaulted: bool = False
    away_axis_defaulted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "home_label": self.home_label,
            "away_label": self.away_label,
            "home_digits": list(self.home_digits),
            "away_digits": list(self.away_digits),
            "ownership": _grid_to_lists(self.ownership),
            "home_axis_defaulted": self.home_axis_defaulted,
            "away_axis_defaulted": self.away_axis_defaulted,
        }


@dataclass(frozen=True)
class ParticipantRollup:
    name: str
    square_count: int
    total_ev: float
    ev_per_square: float
    best_square_ev: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "square_count": self.square_count,
            "total_ev": self.total_ev,
            "ev_per_square": self.ev_per_square,
            "best_square_ev": self.best_square_ev,
        }


@dataclass(frozen=True)
class RankedCell:
    name: str
    home_digit: int
    away_digit: int
    ev: float
    probability: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "home_digit": self.home_digit,
            "away_digit": self.away_digit,
            "ev": self.ev,
            "probability": self.probability,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """EV report derived from one board and two odds markets.

    `ev_surface` and `probability_surface` are indexed [away_digit][home_digit];
    `board_ev` is indexed by board position like `Board.ownership`.
    """

    total_pool: float
    sum_ev: float
    ev_surface: Surface
    probability_surface: Surface
    board_ev: Surface
    rollups: tuple[ParticipantRollup, ...]
    ranked_cells: tuple[RankedCell, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_pool": self.total_pool,
            "sum_ev": self.sum_ev,
            "ev_surface": _grid_to_lists(self.ev_surface),
            "probability_surface": _grid_to_lists(self.probability_surface),
            "board_ev": _grid_to_lists(self.board_ev),
            "rollups": [rollup.to_dict() for rollup in self.rollups],
            "ranked_cells": [cell.to_dict() for cell in self.ranked_cells],
        }
