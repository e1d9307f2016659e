"""Compose board extraction and EV aggregation into one analysis call."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from squares_ev.analysis import compute_analysis
from squares_ev.board import AnalysisResult, Board, OddsMatrix, ParticipantRollup, RankedCell
from squares_ev.grid_extract import extract_board
from squares_ev.name_normalize import NameRule


def resolve_board(
    *,
    raw_text: str | None = None,
    board: Board | None = None,
    name_rules: Iterable[NameRule] = (),
) -> Board:
    """Return the caller's board, or extract one from pasted text."""
    if (raw_text is None) == (board is None):
        raise ValueError("provide exactly one of raw_text or board")
    if board is not None:
        return board
    return extract_board(raw_text or "", name_rules=name_rules)


def build_report(
    *,
    market_a: OddsMatrix,
    market_b: OddsMatrix,
    price_per_square: float,
    weight_a: float,
    weight_b: float,
    raw_text: str | None = None,
    board: Board | None = None,
    name_rules: Iterable[NameRule] = (),
    market_names: tuple[str, str] = ("market_a", "market_b"),
) -> AnalysisResult:
    """Run the full pipeline for pasted text or an already-parsed board."""
    resolved = resolve_board(raw_text=raw_text, board=board, name_rules=name_rules)
    return compute_analysis(
        resolved,
        market_a,
        market_b,
        price_per_square=price_per_square,
        weight_a=weight_a,
        weight_b=weight_b,
        market_names=market_names,
    )


def top_rollups(result: AnalysisResult, n: int) -> list[ParticipantRollup]:
    return list(result.rollups[: max(0, n)])


def top_cells(result: AnalysisResult, n: int) -> list[RankedCell]:
    return list(result.ranked_cells[: max(0, n)])


def report_summary(result: AnalysisResult, *, top_n: int) -> dict[str, Any]:
    """Headline numbers plus the leading participants and squares."""
    return {
        "total_pool": result.total_pool,
        "sum_ev": result.sum_ev,
        "participants": len(result.rollups),
        "occupied_squares": len(result.ranked_cells),
        "leaders": [rollup.to_dict() for rollup in top_rollups(result, top_n)],
        "top_cells": [cell.to_dict() for cell in top_cells(result, top_n)],
    }
