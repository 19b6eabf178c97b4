"""Coordinate helpers shared by the parser and the engine."""

from __future__ import annotations

# Single-letter columns only: a..z
MAX_COLS = 26
MAX_ROWS = 1000

_A = ord("a")


def col_to_index(col_spec: str) -> int:
    """'a' -> 0, 'z' -> 25. Case-insensitive."""
    if len(col_spec) != 1 or not col_spec.isalpha():
        raise ValueError(f"Bad column spec: {col_spec!r}")
    return ord(col_spec.lower()) - _A


def index_to_col(index: int) -> str:
    """0 -> 'a', 25 -> 'z'."""
    if not 0 <= index < MAX_COLS:
        raise ValueError(f"Column index {index} outside [0, {MAX_COLS})")
    return chr(_A + index)


def row_to_index(row_spec: str) -> int:
    """'1' -> 0."""
    return int(row_spec) - 1


def index_to_row(index: int) -> str:
    """0 -> '1'."""
    if not 0 <= index < MAX_ROWS:
        raise ValueError(f"Row index {index} outside [0, {MAX_ROWS})")
    return str(index + 1)


def in_bounds(col: int, row: int) -> bool:
    return 0 <= col < MAX_COLS and 0 <= row < MAX_ROWS


def normalize_cell_id(cell_id: str) -> str:
    """Canonical cell id: trimmed, lowercase, no ``$`` markers."""
    return cell_id.strip().lower().replace("$", "")
