"""Markdown render helpers for CLI analysis output."""

from __future__ import annotations

from squares_ev.board import AnalysisResult, Board
from squares_ev.report import top_cells


def _money(value: float) -> str:
    return f"${value:,.2f}"


def _pct(value: float) -> str:
    return f"{value * 100:.2f}%"


def render_analysis_markdown(board: Board, result: AnalysisResult, *, top_n: int = 10) -> str:
    lines: list[str] = []
    lines.append(f"# Squares EV: {board.away_label} (rows) vs {board.home_label} (columns)")
    lines.append("")
    lines.append(f"- total_pool: `{_money(result.total_pool)}`")
    lines.append(f"- sum_ev: `{_money(result.sum_ev)}`")
    lines.append(f"- participants: `{len(result.rollups)}`")
    lines.append(f"- occupied_squares: `{len(result.ranked_cells)}`")
    lines.append(f"- home_digits: `{' '.join(str(d) for d in board.home_digits)}`")
    lines.append(f"- away_digits: `{' '.join(str(d) for d in board.away_digits)}`")
    if board.home_axis_defaulted or board.away_axis_defaulted:
        lines.append(
            "- axis_fallback: `home={} away={}`".format(
                str(board.home_axis_defaulted).lower(), str(board.away_axis_defaulted).lower()
            )
        )
    lines.append("")

    rollups = result.rollups
    if rollups:
        lines.append("## Leaderboard")
        lines.append("")
        lines.append("| Rank | Name | Squares | Total EV | EV / Square | Best Square |")
        lines.append("| --- | --- | --- | --- | --- | --- |")
        for rank, rollup in enumerate(rollups, start=1):
            lines.append(
                "| {} | {} | {} | {} | {} | {} |".format(
                    rank,
                    rollup.name,
                    rollup.square_count,
                    _money(rollup.total_ev),
                    _money(rollup.ev_per_square),
                    _money(rollup.best_square_ev),
                )
            )
        lines.append("")

    cells = top_cells(result, top_n)
    if cells:
        lines.append(f"## Top {len(cells)} Squares")
        lines.append("")
        lines.append("| Name | Away | Home | Probability | EV |")
        lines.append("| --- | --- | --- | --- | --- |")
        for cell in cells:
            lines.append(
                "| {} | {} | {} | {} | {} |".format(
                    cell.name,
                    cell.away_digit,
                    cell.home_digit,
                    _pct(cell.probability),
                    _money(cell.ev),
                )
            )
        lines.append("")
    return "\n".join(lines)
