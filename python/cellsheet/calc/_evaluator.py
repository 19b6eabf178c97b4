"""Spreadsheet: formula engine over a live dependency graph.

Every mutation validates before it touches state: the new formula is
parsed, then checked for cycles against the existing graph, and only then
committed, evaluated and cascaded to its transitive dependents.  A rejected
formula therefore needs no rollback.

Usage::

    ss = Spreadsheet("demo")
    ss.eval("a1", "22")
    ss.eval("a2", "a1 * b1")
    ss.eval("b1", "3").updates      # {'b1': 3.0, 'a2': 66.0}
    ss.eval("a1", "a2 + 1").code    # 'CIRCULAR_REF'
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from cellsheet._utils import normalize_cell_id
from cellsheet.calc._cellref import CellRef
from cellsheet.calc._errors import CircularReferenceError, FormulaError
from cellsheet.calc._functions import BUILTINS
from cellsheet.calc._graph import CellInfo, DependencyGraph
from cellsheet.calc._parser import AppAst, AstVisitor, NumAst, RefAst, all_references, parse_formula
from cellsheet.calc._protocol import CellQuery, EvalResult, Updates

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


class _CellEvaluator(AstVisitor):
    """Computes a formula's value from the cached values it references.

    Resolving a reference links the base cell as a dependent of the target,
    creating the target (value 0) if it does not exist yet.
    """

    def __init__(self, graph: DependencyGraph, cell_id: str) -> None:
        self._graph = graph
        self._cell_id = cell_id
        self._base = CellRef.from_cell_id(cell_id)

    def visit_num(self, ast: NumAst) -> float:
        return ast.value

    def visit_ref(self, ast: RefAst) -> float:
        target = self._graph.link(self._cell_id, ast.ref.cell_id(self._base))
        return target.value

    def visit_app(self, ast: AppAst) -> float:
        func = BUILTINS.get(ast.fn)
        if func is None:
            raise ValueError(f"Unknown function {ast.fn!r} in formula for {self._cell_id}")
        return func([self.visit(kid) for kid in ast.kids])


class Spreadsheet:
    """A named spreadsheet owning all of its cells.

    Not thread-safe: hosts must serialize mutating calls per instance.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._graph = DependencyGraph()

    @classmethod
    def from_dump(cls, name: str, pairs: Iterable[tuple[str, str]]) -> Spreadsheet:
        """Build a spreadsheet by replaying ``(cell_id, expr)`` pairs.

        Raises the first FormulaError encountered.
        """
        ss = cls(name)
        ss.load(pairs).unwrap()
        return ss

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def eval(self, cell_id: str, expr: str) -> EvalResult:
        """Set *cell_id* to formula *expr*; return all updated values."""
        try:
            updates = self._eval(cell_id, expr)
        except FormulaError as e:
            logger.debug("Rejected %r for %s: %s", expr, cell_id, e)
            return EvalResult.failure(e)
        return EvalResult.success(updates)

    def query(self, cell_id: str) -> CellQuery:
        """Cached value and formula of *cell_id*; ``(0, '')`` if empty."""
        cell = self._graph.lookup(normalize_cell_id(cell_id))
        if cell is None:
            return CellQuery()
        return CellQuery(value=cell.value, expr=cell.expr)

    def remove(self, cell_id: str) -> EvalResult:
        """Delete *cell_id* and recompute its former dependents."""
        try:
            updates = self._remove(normalize_cell_id(cell_id))
        except FormulaError as e:
            logger.debug("Cannot remove %s: %s", cell_id, e)
            return EvalResult.failure(e)
        return EvalResult.success(updates)

    def copy(self, dest_cell_id: str, src_cell_id: str) -> EvalResult:
        """Copy the formula in *src_cell_id* to *dest_cell_id*.

        Relative references shift by the offset between the two cells;
        absolute references are kept.  Copying an empty cell removes the
        destination.
        """
        dest_id = normalize_cell_id(dest_cell_id)
        src = self._graph.lookup(normalize_cell_id(src_cell_id))
        if src is None or not src.expr or src.ast is None:
            return self.remove(dest_id)
        try:
            expr = src.ast.to_text(CellRef.from_cell_id(dest_id))
        except FormulaError as e:
            logger.debug("Cannot copy %s to %s: %s", src.id, dest_id, e)
            return EvalResult.failure(e)
        return self.eval(dest_id, expr)

    def clear(self) -> None:
        """Discard every cell. No undo."""
        self._graph.clear()

    def dump(self) -> list[tuple[str, str]]:
        """Non-empty cells as ``(cell_id, expr)``, by depth then cell id."""
        return [
            (cell_id, self._graph.cells[cell_id].expr)
            for cell_id in self._graph.topological_order()
            if self._graph.cells[cell_id].expr
        ]

    def load(self, pairs: Iterable[tuple[str, str]]) -> EvalResult:
        """Replay *pairs* through ``eval`` in order, stopping at the first error.

        Existing cells are kept; call ``clear()`` first for a full reload.
        """
        updates: Updates = {}
        for cell_id, expr in pairs:
            result = self.eval(cell_id, expr)
            if not result.ok:
                return result
            updates.update(result.updates)
        return EvalResult.success(updates)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def cell_ids(self) -> list[str]:
        """Ids of every known cell, including referenced empty ones."""
        return sorted(self._graph.cells)

    def __contains__(self, cell_id: str) -> bool:
        return normalize_cell_id(cell_id) in self._graph

    def __len__(self) -> int:
        return len(self._graph)

    def __repr__(self) -> str:
        return f"<Spreadsheet {self.name!r} cells={len(self._graph)}>"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _eval(self, cell_id: str, expr: str) -> Updates:
        base = CellRef.from_cell_id(cell_id)
        cell_id = base.cell_id()
        ast = parse_formula(expr, base)

        offender = self._graph.find_cycle(cell_id, all_references(ast, base))
        if offender is not None:
            logger.debug("Circular reference: %s -> %s", cell_id, offender)
            raise CircularReferenceError(offender)

        cell = self._graph.get_cell(cell_id)
        if cell.ast is not None:
            self._graph.unlink(cell_id, all_references(cell.ast, base))
        cell.ast = ast
        cell.expr = _WHITESPACE_RE.sub("", expr)
        return self._cascade(cell)

    def _remove(self, cell_id: str) -> Updates:
        cell = self._graph.discard(cell_id)
        if cell is None:
            return {}
        if cell.ast is not None:
            self._graph.unlink(cell_id, all_references(cell.ast, CellRef.from_cell_id(cell_id)))
        updates: Updates = {}
        for dep_id in sorted(cell.dependents):
            dep = self._graph.lookup(dep_id)
            if dep is None:
                continue
            updates.update(self._eval(dep_id, dep.expr))
        return updates

    def _cascade(self, cell: CellInfo) -> Updates:
        """Recompute *cell*, then every transitive dependent in depth order."""
        updates: Updates = {cell.id: self._recompute(cell)}
        for dep_id in self._graph.affected_cells(cell.id):
            updates[dep_id] = self._recompute(self._graph.cells[dep_id])
        return updates

    def _recompute(self, cell: CellInfo) -> float:
        if cell.ast is None:
            cell.value = 0.0
        else:
            cell.value = _CellEvaluator(self._graph, cell.id).visit(cell.ast)
        return cell.value


def make_spreadsheet(name: str) -> Spreadsheet:
    """Factory for an empty spreadsheet."""
    return Spreadsheet(name)
