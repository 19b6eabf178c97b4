"""Cell references with absolute/relative coordinates."""

from __future__ import annotations

import re
from dataclasses import dataclass

from cellsheet._utils import (
    MAX_COLS,
    MAX_ROWS,
    col_to_index,
    in_bounds,
    index_to_col,
    index_to_row,
    normalize_cell_id,
    row_to_index,
)
from cellsheet.calc._errors import FormulaSyntaxError

# $a$1, $a1, a$1, a1 -- no internal whitespace
_CELL_REF_RE = re.compile(r"^(\$?)([a-z])(\$?)(\d+)$", re.IGNORECASE | re.ASCII)


@dataclass(frozen=True)
class Coord:
    """One axis of a cell reference.

    For a relative coordinate ``index`` is an offset from the base cell;
    for an absolute one it is the 0-based position itself.
    """

    index: int
    is_abs: bool = False

    def position(self, base_index: int) -> int:
        return self.index if self.is_abs else base_index + self.index


@dataclass(frozen=True)
class CellRef:
    """A ``(col, row)`` pair of coordinates.

    A base cell is itself a ``CellRef`` with relative coordinates taken
    relative to ``a1``, so its indexes are the cell's 0-based position.
    """

    col: Coord
    row: Coord

    @classmethod
    def parse(cls, ref: str, base: CellRef | None = None) -> CellRef:
        """Parse *ref* relative to *base* (default ``a1``).

        Raises FormulaSyntaxError on malformed text or an off-grid position.
        """
        base = base if base is not None else CELL_A1
        m = _CELL_REF_RE.match(ref.strip())
        if not m:
            raise FormulaSyntaxError(f"bad cell ref {ref!r}")
        abs_col, col_spec, abs_row, row_spec = m.groups()
        col_pos = col_to_index(col_spec)
        row_pos = row_to_index(row_spec)
        if not in_bounds(col_pos, row_pos):
            raise FormulaSyntaxError(
                f"cell ref {ref!r} outside {MAX_COLS} columns x {MAX_ROWS} rows"
            )
        col = Coord(col_pos if abs_col else col_pos - base.col.index, bool(abs_col))
        row = Coord(row_pos if abs_row else row_pos - base.row.index, bool(abs_row))
        return cls(col, row)

    @classmethod
    def from_cell_id(cls, cell_id: str) -> CellRef:
        """Base cell for a cell id; any ``$`` markers are ignored."""
        return cls.parse(normalize_cell_id(cell_id))

    def to_text(self, base: CellRef | None = None) -> str:
        """Render relative to *base*, keeping ``$`` on absolute coordinates."""
        base = base if base is not None else CELL_A1
        col_pos = self.col.position(base.col.index)
        row_pos = self.row.position(base.row.index)
        if not in_bounds(col_pos, row_pos):
            raise FormulaSyntaxError(
                f"reference shifted off the grid (col {col_pos}, row {row_pos})"
            )
        col = ("$" if self.col.is_abs else "") + index_to_col(col_pos)
        row = ("$" if self.row.is_abs else "") + index_to_row(row_pos)
        return col + row

    def cell_id(self, base: CellRef | None = None) -> str:
        """Normalized id of the cell this reference points at from *base*."""
        return normalize_cell_id(self.to_text(base))


CELL_A1 = CellRef(Coord(0), Coord(0))
