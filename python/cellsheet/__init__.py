"""cellsheet - a small spreadsheet formula engine.

Usage::

    from cellsheet import Spreadsheet

    ss = Spreadsheet("budget")
    ss.eval("a1", "22")
    ss.eval("a2", "a1 * b1")
    result = ss.eval("b1", "3")
    print(result.updates)          # {'b1': 3.0, 'a2': 66.0}
    print(ss.dump())               # [('a1', '22'), ('b1', '3'), ('a2', 'a1*b1')]
"""

from cellsheet.calc import (
    CellQuery,
    CircularReferenceError,
    EvalResult,
    FormulaError,
    FormulaSyntaxError,
    Spreadsheet,
    make_spreadsheet,
    parse_formula,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CellQuery",
    "CircularReferenceError",
    "EvalResult",
    "FormulaError",
    "FormulaSyntaxError",
    "Spreadsheet",
    "make_spreadsheet",
    "parse_formula",
]
