"""SpreadsheetEngine protocol and result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from cellsheet.calc._errors import FormulaError

Updates = dict[str, float]


@dataclass(frozen=True)
class CellQuery:
    """A cell's cached value and normalized formula text."""

    value: float = 0.0
    expr: str = ""


@dataclass(frozen=True)
class EvalResult:
    """Outcome of a mutating operation.

    On success ``updates`` maps every recomputed cell id to its new value.
    On failure ``error`` is set, ``updates`` is empty and the spreadsheet
    is unchanged.
    """

    updates: Updates = field(default_factory=dict)
    error: FormulaError | None = None

    @classmethod
    def success(cls, updates: Updates) -> EvalResult:
        return cls(updates=updates)

    @classmethod
    def failure(cls, error: FormulaError) -> EvalResult:
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def code(self) -> str | None:
        return self.error.code if self.error is not None else None

    def unwrap(self) -> Updates:
        """Return ``updates``, or raise the error of a failed result."""
        if self.error is not None:
            raise self.error
        return self.updates


@runtime_checkable
class SpreadsheetEngine(Protocol):
    """Operations a host (shell, API, loader) drives a spreadsheet with."""

    name: str

    def eval(self, cell_id: str, expr: str) -> EvalResult:
        """Set *cell_id* to *expr* and recompute everything depending on it."""
        ...

    def query(self, cell_id: str) -> CellQuery:
        ...

    def remove(self, cell_id: str) -> EvalResult:
        ...

    def copy(self, dest_cell_id: str, src_cell_id: str) -> EvalResult:
        """Copy the formula at *src_cell_id*, shifting relative references."""
        ...

    def clear(self) -> None:
        ...

    def dump(self) -> list[tuple[str, str]]:
        """Non-empty ``(cell_id, expr)`` pairs in depth-then-id order."""
        ...

    def load(self, pairs: list[tuple[str, str]]) -> EvalResult:
        """Replay *pairs* through ``eval`` in order."""
        ...
