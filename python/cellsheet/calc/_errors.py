"""User-facing formula errors.

Only two kinds exist.  ``SYNTAX`` covers anything that stops formula text
(or a cell id) from becoming an AST; ``CIRCULAR_REF`` is raised when a
formula would close a cycle in the reference graph.
"""

from __future__ import annotations


class FormulaError(Exception):
    """Base for all formula errors. ``code`` identifies the error kind."""

    code: str = "ERROR"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}" if self.message else self.code


class FormulaSyntaxError(FormulaError):
    code = "SYNTAX"


class CircularReferenceError(FormulaError):
    code = "CIRCULAR_REF"

    def __init__(self, cell_id: str, message: str = "") -> None:
        super().__init__(message or f"circular ref involving {cell_id}")
        self.cell_id = cell_id
