"""CLI entrypoint for squares-ev."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from squares_ev.board import DEFAULT_AWAY_LABEL, DEFAULT_HOME_LABEL, DIGITS, Board
from squares_ev.cli_markdown import render_analysis_markdown
from squares_ev.grid_extract import extract_board
from squares_ev.odds_client import (
    ANY_QUARTER_MARKET,
    FINAL_RESULT_MARKET,
    DraftKingsSquaresClient,
    OddsClientError,
    SquaresOdds,
)
from squares_ev.report import build_report, report_summary
from squares_ev.runtime_config import (
    current_runtime_config,
    load_runtime_config,
    set_current_runtime_config,
)
from squares_ev.settings import Settings
from squares_ev.util.parsing import to_price


class CLIError(RuntimeError):
    """User-facing CLI error."""


def _read_text(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"input file not found: {path}")
    return path.read_text(encoding="utf-8")


def _odds_grid(raw: Any, *, key: str) -> list[list[int | None]]:
    if not isinstance(raw, list):
        raise CLIError(f"odds file field '{key}' must be a 10x10 array")
    grid: list[list[int | None]] = []
    for away in DIGITS:
        row = raw[away] if away < len(raw) and isinstance(raw[away], list) else []
        grid.append([to_price(row[home]) if home < len(row) else None for home in DIGITS])
    return grid


def load_odds_file(source: str) -> tuple[list[list[int | None]], list[list[int | None]]]:
    """Load `(final_result, any_quarter)` grids from a JSON odds file."""
    try:
        payload = json.loads(_read_text(source))
    except json.JSONDecodeError as exc:
        raise CLIError(f"invalid odds JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise CLIError("odds file root must be an object")
    for key in ("final_result", "any_quarter"):
        if key not in payload:
            raise CLIError(f"odds file missing field '{key}'")
    return (
        _odds_grid(payload["final_result"], key="final_result"),
        _odds_grid(payload["any_quarter"], key="any_quarter"),
    )


def _reconcile_labels(board: Board, odds: SquaresOdds) -> Board:
    """Fill default board labels from the live event's team names."""
    home_label = board.home_label
    away_label = board.away_label
    if home_label == DEFAULT_HOME_LABEL:
        home_label = odds.home_team
    if away_label == DEFAULT_AWAY_LABEL:
        away_label = odds.away_team
    return replace(board, home_label=home_label, away_label=away_label)


def _fetch_live_odds(settings: Settings) -> SquaresOdds:
    with DraftKingsSquaresClient(settings) as client:
        return client.fetch_squares_odds()


def _cmd_parse(args: argparse.Namespace) -> int:
    runtime = current_runtime_config()
    board = extract_board(_read_text(args.board), name_rules=runtime.name_rules)
    print(json.dumps(board.to_dict(), sort_keys=True, indent=2))
    return 0


def _cmd_odds(args: argparse.Namespace) -> int:
    odds = _fetch_live_odds(Settings.from_runtime())
    print(json.dumps(odds.to_dict(), sort_keys=True, indent=2))
    return 0


def _cmd_analyze(args: argparse.Namespace) -> int:
    runtime = current_runtime_config()
    settings = Settings.from_runtime()
    if bool(args.odds) == bool(args.live):
        raise CLIError("provide exactly one of --odds FILE or --live")

    board = extract_board(_read_text(args.board), name_rules=runtime.name_rules)
    if args.live:
        odds = _fetch_live_odds(settings)
        board = _reconcile_labels(board, odds)
        final_result, any_quarter = odds.final_result_odds, odds.any_quarter_odds
    else:
        final_result, any_quarter = load_odds_file(args.odds)

    price = settings.price_per_square if args.price is None else args.price
    weight_final = (
        settings.final_result_weight if args.weight_final is None else args.weight_final
    )
    weight_any_quarter = (
        settings.any_quarter_weight if args.weight_any_quarter is None else args.weight_any_quarter
    )
    top_n = settings.top_n if args.top_n is None else args.top_n
    if price < 0 or weight_final < 0 or weight_any_quarter < 0:
        raise CLIError("price and weights must be non-negative")

    result = build_report(
        board=board,
        market_a=final_result,
        market_b=any_quarter,
        price_per_square=price,
        weight_a=weight_final,
        weight_b=weight_any_quarter,
        market_names=(FINAL_RESULT_MARKET, ANY_QUARTER_MARKET),
    )

    if args.format == "markdown":
        print(render_analysis_markdown(board, result, top_n=top_n))
        return 0
    output = {
        "board": board.to_dict(),
        "analysis": result.to_dict(),
        "summary": report_summary(result, top_n=top_n),
        "config": {
            "price_per_square": price,
            "final_result_weight": weight_final,
            "any_quarter_weight": weight_any_quarter,
        },
    }
    print(json.dumps(output, sort_keys=True, indent=2))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="squares-ev")
    parser.add_argument(
        "--config",
        default="",
        help="Path to runtime config TOML (default: config/runtime.toml).",
    )
    subparsers = parser.add_subparsers(dest="command")

    parse = subparsers.add_parser("parse", help="Extract a board from pasted text.")
    parse.add_argument("--board", required=True, help="Pasted board text file, or - for stdin.")
    parse.set_defaults(func=_cmd_parse)

    odds = subparsers.add_parser("odds", help="Fetch live squares odds.")
    odds.set_defaults(func=_cmd_odds)

    analyze = subparsers.add_parser("analyze", help="Compute EV for a pasted board.")
    analyze.add_argument("--board", required=True, help="Pasted board text file, or - for stdin.")
    analyze.add_argument(
        "--odds", default="", help="JSON file with final_result and any_quarter grids."
    )
    analyze.add_argument("--live", action="store_true", help="Fetch live odds instead.")
    analyze.add_argument("--price", type=float, default=None, help="Price per square.")
    analyze.add_argument("--weight-final", type=float, default=None)
    analyze.add_argument("--weight-any-quarter", type=float, default=None)
    analyze.add_argument("--top-n", type=int, default=None)
    analyze.add_argument("--format", choices=("json", "markdown"), default="json")
    analyze.set_defaults(func=_cmd_analyze)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0
    try:
        if args.config:
            set_current_runtime_config(load_runtime_config(Path(args.config)))
        return int(func(args))
    except (CLIError, OddsClientError, FileNotFoundError, ValueError, RuntimeError) as exc:
        print(str(exc), file=sys.stderr)
        return 2
    finally:
        if args.config:
            set_current_runtime_config(None)


if __name__ == "__main__":
    raise SystemExit(main())
