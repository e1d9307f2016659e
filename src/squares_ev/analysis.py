"""Blend two squares markets into a normalized probability and EV report."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from squares_ev.board import (
    DIGITS,
    GRID_SIZE,
    AnalysisResult,
    Board,
    OddsMatrix,
    ParticipantRollup,
    RankedCell,
    Surface,
    is_digit_permutation,
)
from squares_ev.errors import (
    DegenerateProbabilityMass,
    IncompleteOddsCoverage,
    MalformedBoardShape,
    MalformedDigitAxis,
)
from squares_ev.odds_math import implied_probability


def odds_at(matrix: OddsMatrix, away_digit: int, home_digit: int) -> int | None:
    """Return the quotation for one digit pair, or None when missing or not finite."""
    try:
        value = matrix[away_digit][home_digit]
    except (IndexError, KeyError, TypeError):
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return None


def missing_combinations(matrix: OddsMatrix) -> list[tuple[int, int]]:
    """List (away, home) digit pairs without a usable quotation."""
    return [
        (away, home)
        for away in DIGITS
        for home in DIGITS
        if odds_at(matrix, away, home) is None
    ]


def require_full_coverage(matrix: OddsMatrix, *, market: str) -> tuple[tuple[int, ...], ...]:
    """Return the matrix as an int grid, raising when any digit pair is missing."""
    missing = missing_combinations(matrix)
    if missing:
        raise IncompleteOddsCoverage(market, missing)
    return tuple(
        tuple(odds_at(matrix, away, home) or 0 for home in DIGITS) for away in DIGITS
    )


def _validate_board(board: Board) -> None:
    if not is_digit_permutation(board.home_digits):
        raise MalformedDigitAxis("home digits must contain each digit 0-9 exactly once")
    if not is_digit_permutation(board.away_digits):
        raise MalformedDigitAxis("away digits must contain each digit 0-9 exactly once")
    try:
        shape_ok = len(board.ownership) == GRID_SIZE and all(
            len(row) == GRID_SIZE for row in board.ownership
        )
    except TypeError:
        shape_ok = False
    if not shape_ok:
        raise MalformedBoardShape("board ownership grid must be 10x10")


@dataclass
class _RollupAccumulator:
    square_count: int = 0
    total_ev: float = 0.0
    best_square_ev: float = field(default=-math.inf)

    def add(self, ev: float) -> None:
        self.square_count += 1
        self.total_ev += ev
        self.best_square_ev = max(self.best_square_ev, ev)


def compute_analysis(
    board: Board,
    market_a: OddsMatrix,
    market_b: OddsMatrix,
    *,
    price_per_square: float,
    weight_a: float,
    weight_b: float,
    market_names: tuple[str, str] = ("market_a", "market_b"),
) -> AnalysisResult:
    """Compute per-cell, per-participant and ranked EV for a board.

    Each market's raw implied probabilities are blended with the caller's
    weights and normalized over all 100 digit pairs, so the weights need not
    sum to one. The pool is `price_per_square * 100`.
    """
    _validate_board(board)
    odds_a = require_full_coverage(market_a, market=market_names[0])
    odds_b = require_full_coverage(market_b, market=market_names[1])

    combined = [
        [
            weight_a * implied_probability(odds_a[away][home])
            + weight_b * implied_probability(odds_b[away][home])
            for home in DIGITS
        ]
        for away in DIGITS
    ]
    total_mass = math.fsum(value for row in combined for value in row)
    if not total_mass > 0:
        raise DegenerateProbabilityMass(
            f"unable to normalize probabilities from odds (total mass {total_mass})"
        )

    total_pool = price_per_square * GRID_SIZE * GRID_SIZE
    probability_surface: Surface = tuple(
        tuple(value / total_mass for value in row) for row in combined
    )
    ev_surface: Surface = tuple(
        tuple(probability * total_pool for probability in row) for row in probability_surface
    )

    board_ev: Surface = tuple(
        tuple(ev_surface[away][home] for home in board.home_digits) for away in board.away_digits
    )

    accumulators: dict[str, _RollupAccumulator] = {}
    cells: list[RankedCell] = []
    for row_index, away in enumerate(board.away_digits):
        for col_index, home in enumerate(board.home_digits):
            name = str(board.ownership[row_index][col_index]).strip()
            if not name:
                continue
            ev = ev_surface[away][home]
            accumulators.setdefault(name, _RollupAccumulator()).add(ev)
            cells.append(
                RankedCell(
                    name=name,
                    home_digit=home,
                    away_digit=away,
                    ev=ev,
                    probability=probability_surface[away][home],
                )
            )

    rollups = [
        ParticipantRollup(
            name=name,
            square_count=acc.square_count,
            total_ev=acc.total_ev,
            ev_per_square=acc.total_ev / acc.square_count,
            best_square_ev=acc.best_square_ev,
        )
        for name, acc in accumulators.items()
    ]
    rollups.sort(key=lambda rollup: rollup.total_ev, reverse=True)
    cells.sort(key=lambda cell: cell.ev, reverse=True)

    return AnalysisResult(
        total_pool=total_pool,
        sum_ev=math.fsum(ev for row in board_ev for ev in row),
        ev_surface=ev_surface,
        probability_surface=probability_surface,
        board_ev=board_ev,
        rollups=tuple(rollups),
        ranked_cells=tuple(cells),
    )

