"""Formula scanner, AST and recursive descent parser.

A formula is parsed relative to the base cell it is entered into, so
relative references are stored as offsets from that cell.  Rendering the
AST with a different base cell is how a formula is copied::

    ast = parse_formula("(c2 + d2)*$e$2", "f2")
    ast.to_text(CellRef.from_cell_id("h4"))   # '(e4+f4)*$e$2'

Grammar::

    expr   := term (('+'|'-') term)*
    term   := factor (('*'|'/') factor)*
    factor := NUMBER | '-' factor | FN '(' expr (',' expr)* ')'
            | cellRef | '(' expr ')'
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Union

from cellsheet.calc._cellref import CellRef
from cellsheet.calc._errors import FormulaSyntaxError
from cellsheet.calc._functions import FUNCTION_NAMES, MAX_PREC, OPERATORS, UNARY_PREC

# ---------------------------------------------------------------------------
# Abstract syntax tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NumAst:
    value: float

    def prec(self) -> int:
        return MAX_PREC

    def to_text(self, base: CellRef | None = None) -> str:
        return _TextRenderer(base).visit(self)


@dataclass(frozen=True)
class RefAst:
    ref: CellRef

    def prec(self) -> int:
        return MAX_PREC

    def to_text(self, base: CellRef | None = None) -> str:
        return _TextRenderer(base).visit(self)


@dataclass(frozen=True)
class AppAst:
    """Application of ``fn`` (an operator or ``min``/``max``) to ``kids``."""

    fn: str
    kids: tuple[Ast, ...]

    def prec(self) -> int:
        if self.fn in FUNCTION_NAMES:
            return MAX_PREC
        if len(self.kids) == 1:
            return UNARY_PREC
        return OPERATORS[self.fn].prec

    def to_text(self, base: CellRef | None = None) -> str:
        return _TextRenderer(base).visit(self)


Ast = Union[NumAst, RefAst, AppAst]


class AstVisitor:
    """Dispatches on the AST variant to ``visit_num``/``visit_ref``/``visit_app``.

    Text rendering, reference collection and evaluation are all visitors.
    """

    def visit(self, ast: Ast) -> Any:
        if isinstance(ast, NumAst):
            return self.visit_num(ast)
        if isinstance(ast, RefAst):
            return self.visit_ref(ast)
        if isinstance(ast, AppAst):
            return self.visit_app(ast)
        raise TypeError(f"Unknown AST node {ast!r}")

    def visit_num(self, ast: NumAst) -> Any:
        raise NotImplementedError

    def visit_ref(self, ast: RefAst) -> Any:
        raise NotImplementedError

    def visit_app(self, ast: AppAst) -> Any:
        for kid in ast.kids:
            self.visit(kid)


def format_number(value: float) -> str:
    """Shortest text for a number: ``22.0`` renders as ``22``.

    An overflowed literal renders as ``1e999`` so that it scans back to inf.
    """
    if math.isinf(value):
        return "1e999" if value > 0 else "-1e999"
    if math.isfinite(value) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


class _TextRenderer(AstVisitor):
    """Minimally parenthesized formula text relative to a base cell."""

    def __init__(self, base: CellRef | None) -> None:
        self.base = base

    def visit_num(self, ast: NumAst) -> str:
        return format_number(ast.value)

    def visit_ref(self, ast: RefAst) -> str:
        return ast.ref.to_text(self.base)

    def visit_app(self, ast: AppAst) -> str:
        if ast.fn in FUNCTION_NAMES:
            return f"{ast.fn}({', '.join(self.visit(k) for k in ast.kids)})"
        if len(ast.kids) == 1:
            if ast.fn != "-":
                raise ValueError(f"'{ast.fn}' cannot be unary")
            return "-" + self._wrap(ast.kids[0], ast.kids[0].prec() < UNARY_PREC)
        if len(ast.kids) != 2:
            raise ValueError(f"Cannot render {ast.fn!r} with {len(ast.kids)} operands")
        info = OPERATORS[ast.fn]
        left, right = ast.kids
        return (
            self._wrap(left, left.prec() < info.prec)
            + ast.fn
            + self._wrap(right, right.prec() <= info.prec)
        )

    def _wrap(self, ast: Ast, paren: bool) -> str:
        text = self.visit(ast)
        return f"({text})" if paren else text


class _ReferenceCollector(AstVisitor):
    def __init__(self, base: CellRef | None) -> None:
        self.base = base
        self.cell_ids: list[str] = []
        self._seen: set[str] = set()

    def visit_num(self, ast: NumAst) -> None:
        return None

    def visit_ref(self, ast: RefAst) -> None:
        cell_id = ast.ref.cell_id(self.base)
        if cell_id not in self._seen:
            self._seen.add(cell_id)
            self.cell_ids.append(cell_id)


def all_references(ast: Ast, base: CellRef | None = None) -> list[str]:
    """Ids of every cell *ast* references from *base*, in first-seen order."""
    collector = _ReferenceCollector(base)
    collector.visit(ast)
    return collector.cell_ids


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?(?:[eE][-+]?\d+)?", re.ASCII)
_WORD_RE = re.compile(r"[\w$]+", re.ASCII)
_PUNCT = frozenset("+-*/(),")


@dataclass(frozen=True)
class Token:
    kind: str  # 'num', 'fn', 'ref', 'EOF' or the punctuation character
    lexeme: str
    value: float | CellRef | None = None


def scan(text: str, base: CellRef | None = None) -> list[Token]:
    """Tokenize *text* eagerly, ending with an ``EOF`` token.

    Cell references are parsed relative to *base* as they are scanned.
    """
    tokens: list[Token] = []
    pos = 0
    length = len(text)
    while True:
        while pos < length and text[pos].isspace():
            pos += 1
        if pos >= length:
            break
        num = _NUMBER_RE.match(text, pos)
        word = None if num else _WORD_RE.match(text, pos)
        if num:
            lexeme = num.group()
            tok = Token("num", lexeme, float(lexeme))
        elif word:
            lexeme = word.group()
            if lexeme.lower() in FUNCTION_NAMES:
                tok = Token("fn", lexeme.lower())
            else:
                tok = Token("ref", lexeme, CellRef.parse(lexeme, base))
        elif text[pos] in _PUNCT:
            lexeme = text[pos]
            tok = Token(lexeme, lexeme)
        else:
            raise FormulaSyntaxError(f"unexpected character {text[pos]!r} at offset {pos}")
        tokens.append(tok)
        pos += len(lexeme)
    tokens.append(Token("EOF", "<EOF>"))
    return tokens


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

MAX_DEPTH = 100


def ast_depth(ast: Ast) -> int:
    """Height of *ast*, counted without recursion."""
    height = 0
    stack: list[tuple[Ast, int]] = [(ast, 1)]
    while stack:
        node, level = stack.pop()
        height = max(height, level)
        if isinstance(node, AppAst):
            stack.extend((kid, level + 1) for kid in node.kids)
    return height


class FormulaParser:
    """Single-pass recursive descent parser with one token of lookahead.

    Parentheses, unary minus and function calls may nest at most
    ``MAX_DEPTH`` levels, and so may the resulting AST.
    """

    def __init__(self, tokens: list[Token]) -> None:
        if not tokens:
            raise ValueError("no tokens: expected at least EOF")
        self._tokens = tokens
        self._tok = tokens[0]
        self._index = 1
        self._nesting = 0

    def parse(self) -> Ast:
        ast = self._expr()
        if not self._peek("EOF"):
            raise FormulaSyntaxError(f"unexpected token '{self._tok.lexeme}': expected EOF")
        if ast_depth(ast) > MAX_DEPTH:
            raise FormulaSyntaxError(f"formula nested too deeply (limit {MAX_DEPTH})")
        return ast

    def _next(self) -> None:
        if self._index >= len(self._tokens):
            raise ValueError(f"read past EOF at token {self._index}")
        self._tok = self._tokens[self._index]
        self._index += 1

    def _peek(self, kind: str) -> bool:
        return self._tok.kind == kind

    def _consume(self, kind: str) -> Token:
        tok = self._tok
        if not self._peek(kind):
            raise FormulaSyntaxError(f"unexpected token '{tok.lexeme}': expected '{kind}'")
        if kind != "EOF":
            self._next()
        return tok

    def _expr(self) -> Ast:
        left = self._term()
        while self._peek("+") or self._peek("-"):
            op = self._tok.kind
            self._next()
            left = AppAst(op, (left, self._term()))
        return left

    def _term(self) -> Ast:
        left = self._factor()
        while self._peek("*") or self._peek("/"):
            op = self._tok.kind
            self._next()
            left = AppAst(op, (left, self._factor()))
        return left

    def _factor(self) -> Ast:
        if self._peek("ref"):
            ref = self._tok.value
            self._next()
            return RefAst(ref)  # type: ignore[arg-type]
        if self._peek("num"):
            tok = self._consume("num")
            return NumAst(tok.value)  # type: ignore[arg-type]
        self._nesting += 1
        if self._nesting > MAX_DEPTH:
            raise FormulaSyntaxError(f"formula nested too deeply (limit {MAX_DEPTH})")
        try:
            return self._nested()
        finally:
            self._nesting -= 1

    def _nested(self) -> Ast:
        if self._peek("("):
            self._next()
            ast = self._expr()
            self._consume(")")
            return ast
        if self._peek("-"):
            self._next()
            return AppAst("-", (self._factor(),))
        if self._peek("fn"):
            fn = self._tok.lexeme
            self._next()
            self._consume("(")
            args = [self._expr()]
            while self._peek(","):
                self._next()
                args.append(self._expr())
            self._consume(")")
            return AppAst(fn, tuple(args))
        tok = self._tok
        raise FormulaSyntaxError(f"unexpected token '{tok.lexeme}': expected a value")


def parse_formula(text: str, base: CellRef | str | None = None) -> Ast:
    """Parse formula *text* entered into *base* (a CellRef or cell id).

    Raises FormulaSyntaxError if *text* or *base* is malformed.
    """
    if isinstance(base, str):
        base = CellRef.from_cell_id(base)
    return FormulaParser(scan(text, base)).parse()
