"""cellsheet.calc - Formula parser and evaluation engine."""

from cellsheet.calc._cellref import CELL_A1, CellRef, Coord
from cellsheet.calc._errors import CircularReferenceError, FormulaError, FormulaSyntaxError
from cellsheet.calc._evaluator import Spreadsheet, make_spreadsheet
from cellsheet.calc._graph import CellInfo, DependencyGraph
from cellsheet.calc._parser import (
    AppAst,
    Ast,
    AstVisitor,
    FormulaParser,
    NumAst,
    RefAst,
    Token,
    all_references,
    parse_formula,
    scan,
)
from cellsheet.calc._protocol import CellQuery, EvalResult, SpreadsheetEngine

__all__ = [
    "AppAst",
    "Ast",
    "AstVisitor",
    "CELL_A1",
    "CellInfo",
    "CellQuery",
    "CellRef",
    "CircularReferenceError",
    "Coord",
    "DependencyGraph",
    "EvalResult",
    "FormulaError",
    "FormulaParser",
    "FormulaSyntaxError",
    "NumAst",
    "RefAst",
    "Spreadsheet",
    "SpreadsheetEngine",
    "Token",
    "all_references",
    "make_spreadsheet",
    "parse_formula",
    "scan",
]
