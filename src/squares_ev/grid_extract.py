"""Recover a 10x10 squares board from loosely formatted pasted text.

Input is whatever a user copies out of a spreadsheet or chat: Excel TSV,
comma/semicolon CSV with quoted fields, rows that wrapped across soft line
breaks, or the whole block wrapped in quotes or a code fence. Extraction runs
in stages: unwrap, tokenize into rows of cells, find the digit header row,
collect the ownership block, then guess team labels.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

from squares_ev.board import (
    DEFAULT_AWAY_LABEL,
    DEFAULT_HOME_LABEL,
    GRID_SIZE,
    Board,
    DigitPermutation,
    default_digits,
    is_digit_permutation,
)
from squares_ev.errors import IncompleteOwnershipGrid, UnderfilledPastedInput
from squares_ev.name_normalize import NameRule, normalize_owner_name
from squares_ev.util.parsing import collapse_whitespace, maybe_digit

WRAPPERS: tuple[tuple[str, str], ...] = (
    ("```", "```"),
    ("“", "”"),
    ('"', '"'),
    ("'", "'"),
    ("`", "`"),
    ("(", ")"),
)

_LEADING_BLANK_LINES_RE = re.compile(r"^\s*\n")
_TRAILING_BLANK_LINES_RE = re.compile(r"\n\s*$")
_TRAILING_SPACES_RE = re.compile(r"[^\S\t]+$")

Row = list[str]


def _is_quote_wrapper(trimmed: str) -> bool:
    # Straight double quotes double as CSV field quoting: `"a, b",x ... y,"c"`
    # starts and ends with a quote but is not wrapped. A real wrapper leaves an
    # odd quote count on both the first and the last line.
    lines = trimmed.split("\n")
    if len(lines) == 1:
        return '"' not in trimmed[1:-1]
    return lines[0].count('"') % 2 == 1 and lines[-1].count('"') % 2 == 1


def unwrap_text_block(text: str) -> str:
    """Strip one matched wrapper around the whole block, else trim blank edge lines.

    Without a wrapper, leading spaces and tabs on the first data line are kept:
    a blank top-left header cell is what keeps pasted TSV columns aligned.
    """
    trimmed = text.strip()
    for start, end in WRAPPERS:
        if not (trimmed.startswith(start) and trimmed.endswith(end)):
            continue
        if len(trimmed) <= len(start) + len(end):
            continue
        if start == '"' and not _is_quote_wrapper(trimmed):
            continue
        return trimmed[len(start) : len(trimmed) - len(end)].strip()
    without_leading = _LEADING_BLANK_LINES_RE.sub("", text, count=1)
    return _TRAILING_BLANK_LINES_RE.sub("", without_leading, count=1)


def split_delimited_line(line: str, delimiter: str = ",") -> Row:
    """Split one line on `delimiter`, honouring double-quoted fields."""
    cells: Row = []
    current: list[str] = []
    in_quotes = False
    index = 0
    while index < len(line):
        char = line[index]
        if char == '"':
            if in_quotes and line[index + 1 : index + 2] == '"':
                current.append('"')
                index += 2
                continue
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            cells.append("".join(current))
            current = []
        else:
            current.append(char)
        index += 1
    cells.append("".join(current))
    return cells


def modal_width(rows: Iterable[Row]) -> int:
    """Most common row width; ties favour the wider width."""
    counts = Counter(len(row) for row in rows)
    if not counts:
        return 1
    return max(counts.items(), key=lambda item: (item[1], item[0]))[0]


class RowAssembler:
    """Re-join delimited rows that wrapped across soft line breaks.

    Rows matching `width` pass straight through. Other rows are ragged and go
    into a pending buffer; consecutive short rows concatenate until the buffer
    reaches `width`, at which point `width` cells are emitted and any overflow
    stays pending.
    """

    def __init__(self, width: int) -> None:
        self.width = max(1, width)
        self._pending: Row | None = None

    @property
    def pending(self) -> Row | None:
        return None if self._pending is None else list(self._pending)

    def feed(self, row: Row) -> list[Row]:
        emitted: list[Row] = []
        if len(row) == self.width:
            if self._pending is not None:
                emitted.append(self._pending)
                self._pending = None
            emitted.append(list(row))
            return emitted

        if self._pending is None:
            self._pending = list(row)
        elif len(self._pending) < self.width and len(row) < self.width:
            self._pending = self._pending + list(row)
        else:
            emitted.append(self._pending)
            self._pending = list(row)

        while self._pending is not None and len(self._pending) >= self.width:
            emitted.append(self._pending[: self.width])
            self._pending = self._pending[self.width :] or None
        return emitted

    def finish(self) -> list[Row]:
        pending = self._pending
        self._pending = None
        if pending is not None and any(pending):
            return [pending]
        return []


def _is_blank_row(row: Row) -> bool:
    return not any(row)


def _clean_text(text: str) -> str:
    return (
        unwrap_text_block(text)
        .replace("\u00a0", " ")
        .replace("\uff0c", ",")
        .replace("\r", "")
        .replace("```", "")
    )


def pick_delimiter(lines: list[str]) -> str | None:
    """Choose tab, comma or semicolon for a block of lines, or None for free text."""
    if any("\t" in line for line in lines):
        return "\t"
    comma_lines = sum(1 for line in lines if "," in line)
    semicolon_lines = sum(1 for line in lines if ";" in line)
    if comma_lines == 0 and semicolon_lines == 0:
        return None
    return "," if comma_lines >= semicolon_lines else ";"


def tokenize_rows(text: str) -> list[Row]:
    """Split pasted text into non-blank rows of whitespace-collapsed cells."""
    # Trailing tabs are kept so unclaimed cells at the row end stay in place.
    lines = [_TRAILING_SPACES_RE.sub("", line) for line in _clean_text(text).split("\n")]
    lines = [line for line in lines if line.strip()]

    delimiter = pick_delimiter(lines)
    if delimiter is None:
        rows = [[collapse_whitespace(line)] for line in lines]
        return [row for row in rows if not _is_blank_row(row)]

    if delimiter == "\t":
        rows = [[collapse_whitespace(cell) for cell in line.split("\t")] for line in lines]
        return [row for row in rows if not _is_blank_row(row)]

    parsed = [
        [collapse_whitespace(cell) for cell in split_delimited_line(line, delimiter)]
        for line in lines
    ]
    parsed = [row for row in parsed if not _is_blank_row(row)]

    assembler = RowAssembler(modal_width(parsed))
    merged: list[Row] = []
    for row in parsed:
        merged.extend(assembler.feed(row))
    merged.extend(assembler.finish())
    return [row for row in merged if not _is_blank_row(row)]


@dataclass(frozen=True)
class HeaderMatch:
    row_index: int
    start_col: int
    digits: DigitPermutation


def find_digit_window(cells: Row) -> tuple[int, DigitPermutation] | None:
    """Find the left-most run of 10 cells forming a permutation of 0-9."""
    for start in range(len(cells) - GRID_SIZE + 1):
        candidate = [maybe_digit(cell) for cell in cells[start : start + GRID_SIZE]]
        if any(digit is None for digit in candidate):
            continue
        if is_digit_permutation(candidate):
            return start, tuple(digit for digit in candidate if digit is not None)
    return None


def find_header(rows: list[Row]) -> HeaderMatch | None:
    for row_index, row in enumerate(rows):
        found = find_digit_window(row)
        if found is not None:
            start_col, digits = found
            return HeaderMatch(row_index=row_index, start_col=start_col, digits=digits)
    return None


@dataclass(frozen=True)
class _OwnershipBlock:
    source_rows: tuple[int, ...]
    names: tuple[tuple[str, ...], ...]
    away_digits: DigitPermutation
    away_axis_defaulted: bool


def _collect_ownership(
    rows: list[Row], *, first_row: int, start_col: int, name_rules: tuple[NameRule, ...]
) -> _OwnershipBlock:
    source_rows: list[int] = []
    names: list[tuple[str, ...]] = []
    raw_away: list[int | None] = []

    for row_index in range(first_row, len(rows)):
        row = rows[row_index]
        if len(row) < start_col + GRID_SIZE:
            continue
        owner_slice = row[start_col : start_col + GRID_SIZE]
        if _is_blank_row(owner_slice):
            continue
        source_rows.append(row_index)
        names.append(tuple(normalize_owner_name(cell, name_rules) for cell in owner_slice))
        raw_away.append(maybe_digit(row[start_col - 1]) if start_col > 0 else None)
        if len(names) == GRID_SIZE:
            break

    if len(names) != GRID_SIZE:
        raise IncompleteOwnershipGrid(
            f"could not parse a full 10x10 owner grid from pasted text "
            f"(found {len(names)} usable rows)"
        )

    away_digits = tuple(index if digit is None else digit for index, digit in enumerate(raw_away))
    defaulted = any(digit is None for digit in raw_away)
    if not is_digit_permutation(away_digits):
        away_digits = default_digits()
        defaulted = True
    return _OwnershipBlock(
        source_rows=tuple(source_rows),
        names=tuple(names),
        away_digits=away_digits,
        away_axis_defaulted=defaulted,
    )


def _label_candidate(row: Row, col: int) -> str:
    if col < 0 or col >= len(row):
        return ""
    candidate = row[col]
    if not candidate or maybe_digit(candidate) is not None:
        return ""
    return candidate


def extract_board(raw_text: str, *, name_rules: Iterable[NameRule] = ()) -> Board:
    """Parse pasted pool text into a Board.

    Raises `UnderfilledPastedInput` when fewer than 10 non-blank rows exist
    and `IncompleteOwnershipGrid` when a full 10x10 block cannot be found.
    Axis and label guesses degrade to defaults instead of failing.
    """
    rules = tuple(name_rules)
    rows = tokenize_rows(raw_text)
    if len(rows) < GRID_SIZE:
        raise UnderfilledPastedInput(
            f"expected at least 10 rows from pasted data, got {len(rows)}"
        )

    header = find_header(rows)
    start_col = header.start_col if header else 0
    first_owner_row = header.row_index + 1 if header else 0
    block = _collect_ownership(
        rows, first_row=first_owner_row, start_col=start_col, name_rules=rules
    )

    home_label = ""
    if header is not None and header.row_index > 0:
        home_label = _label_candidate(rows[header.row_index - 1], start_col)
    away_label = ""
    if start_col > 1:
        away_label = _label_candidate(rows[block.source_rows[0]], start_col - 2)

    return Board(
        home_label=home_label or DEFAULT_HOME_LABEL,
        away_label=away_label or DEFAULT_AWAY_LABEL,
        home_digits=header.digits if header else default_digits(),
        away_digits=block.away_digits,
        ownership=block.names,
        home_axis_defaulted=header is None,
        away_axis_defaulted=block.away_axis_defaulted,
    )
