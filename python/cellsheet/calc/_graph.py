"""Cell store and dependency graph with depth-based topological ordering."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cellsheet.calc._parser import Ast

logger = logging.getLogger(__name__)


@dataclass
class CellInfo:
    """Everything the engine knows about one cell.

    ``dependents`` holds the ids of cells whose formulas directly reference
    this one: the reverse edges of the reference graph.
    """

    id: str
    value: float = 0.0
    expr: str = ""
    ast: Ast | None = None
    dependents: set[str] = field(default_factory=set)


class DependencyGraph:
    """Owns every CellInfo, keyed by normalized cell id.

    Edges are stored only as ``dependents`` sets of ids into this table,
    so deleting a cell never leaves a dangling object reference.
    """

    __slots__ = ("cells",)

    def __init__(self) -> None:
        self.cells: dict[str, CellInfo] = {}

    def __contains__(self, cell_id: str) -> bool:
        return cell_id in self.cells

    def __len__(self) -> int:
        return len(self.cells)

    def get_cell(self, cell_id: str) -> CellInfo:
        """Return the cell for *cell_id*, creating an empty one if needed."""
        cell = self.cells.get(cell_id)
        if cell is None:
            cell = self.cells[cell_id] = CellInfo(cell_id)
        return cell

    def lookup(self, cell_id: str) -> CellInfo | None:
        return self.cells.get(cell_id)

    def discard(self, cell_id: str) -> CellInfo | None:
        """Delete *cell_id* from the table and return what it held."""
        return self.cells.pop(cell_id, None)

    def clear(self) -> None:
        self.cells.clear()

    def link(self, cell_id: str, prereq_id: str) -> CellInfo:
        """Record that *cell_id* references *prereq_id*; return the prereq."""
        prereq = self.get_cell(prereq_id)
        prereq.dependents.add(cell_id)
        return prereq

    def unlink(self, cell_id: str, prereqs: Iterable[str]) -> None:
        """Drop *cell_id* from the dependents of every cell in *prereqs*."""
        for prereq_id in prereqs:
            prereq = self.cells.get(prereq_id)
            if prereq is not None:
                prereq.dependents.discard(cell_id)

    def find_cycle(self, cell_id: str, prereqs: Iterable[str]) -> str | None:
        """Check whether giving *cell_id* these *prereqs* would close a cycle.

        Walks forward from *cell_id* through the existing dependents edges.
        Returns the first visited cell that is also a prereq, or None.
        Does not modify the graph.
        """
        targets = set(prereqs)
        stack = [cell_id]
        visited: set[str] = set()
        while stack:
            current = stack.pop()
            if current in targets:
                return current
            if current in visited:
                continue
            visited.add(current)
            cell = self.cells.get(current)
            if cell is not None:
                stack.extend(cell.dependents)
        return None

    def prerequisites(self) -> dict[str, set[str]]:
        """Map every known cell to the cells its formula directly references."""
        prereqs: dict[str, set[str]] = {cell_id: set() for cell_id in self.cells}
        for cell in self.cells.values():
            for dep in cell.dependents:
                if dep in prereqs:
                    prereqs[dep].add(cell.id)
        return prereqs

    def depths(self, cell_ids: Iterable[str] | None = None) -> dict[str, int]:
        """Depth of each cell: 0 with no prereqs, else 1 + max prereq depth.

        Kahn's algorithm over the subgraph induced by *cell_ids* (default:
        all cells).  Raises ValueError if that subgraph has a cycle.
        """
        nodes = set(self.cells) if cell_ids is None else set(cell_ids)
        in_degree: dict[str, int] = {}
        for cell_id, prereqs in self.prerequisites().items():
            if cell_id in nodes:
                in_degree[cell_id] = len(prereqs & nodes)
        for cell_id in nodes - in_degree.keys():
            in_degree[cell_id] = 0

        depth: dict[str, int] = {}
        queue: deque[str] = deque()
        for cell_id, degree in in_degree.items():
            if degree == 0:
                depth[cell_id] = 0
                queue.append(cell_id)

        while queue:
            cell_id = queue.popleft()
            cell = self.cells.get(cell_id)
            if cell is None:
                continue
            for dep in cell.dependents:
                if dep not in nodes:
                    continue
                depth[dep] = max(depth.get(dep, 0), depth[cell_id] + 1)
                in_degree[dep] -= 1
                if in_degree[dep] == 0:
                    queue.append(dep)

        missing = sorted(c for c, d in in_degree.items() if d > 0)
        if missing:
            raise ValueError(f"Circular reference detected involving: {missing}")
        return depth

    def topological_order(self, cell_ids: Iterable[str] | None = None) -> list[str]:
        """Cells sorted by (depth, id)."""
        depth = self.depths(cell_ids)
        return sorted(depth, key=lambda c: (depth[c], c))

    def affected_cells(self, cell_id: str) -> list[str]:
        """Transitive dependents of *cell_id*, in evaluation order.

        BFS on the dependents edges, then topological order over the
        affected cells.  *cell_id* itself is not included.
        """
        affected: set[str] = set()
        queue: deque[str] = deque([cell_id])
        visited: set[str] = {cell_id}

        while queue:
            current = queue.popleft()
            cell = self.cells.get(current)
            if cell is None:
                continue
            for dep in cell.dependents:
                if dep not in visited:
                    visited.add(dep)
                    queue.append(dep)
                    affected.add(dep)

        if affected:
            logger.debug("Cascade from %s reaches %d cell(s)", cell_id, len(affected))
        return self.topological_order(affected)
