"""Operator table and builtin implementations for formula evaluation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable

# ---------------------------------------------------------------------------
# Operator table: binary precedence used by the parser and by
# AST text rendering.  Leaves and function calls bind tightest.
# ---------------------------------------------------------------------------

MAX_PREC = 100
UNARY_PREC = 30

@dataclass(frozen=True)
class OpInfo:
    fn: str
    prec: int

OPERATORS: dict[str, OpInfo] = {
    "+": OpInfo("+", 10),
    "-": OpInfo("-", 10),
    "*": OpInfo("*", 20),
    "/": OpInfo("/", 20),
}

FUNCTION_NAMES: frozenset[str] = frozenset({"max", "min"})


# ---------------------------------------------------------------------------
# Builtin implementations.  Each takes a list of evaluated argument values.
# Float semantics are IEEE 754 throughout: no exception on a zero divisor.
# ---------------------------------------------------------------------------

def _builtin_add(args: list[float]) -> float:
    a, b = args
    return a + b

def _builtin_sub(args: list[float]) -> float:
    if len(args) == 1:
        return -args[0]
    a, b = args
    return a - b

def _builtin_mul(args: list[float]) -> float:
    a, b = args
    return a * b

def _builtin_div(args: list[float]) -> float:
    a, b = args
    if b == 0:
        # Python raises where IEEE gives +/-inf or nan
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b

def _builtin_min(args: list[float]) -> float:
    if any(math.isnan(v) for v in args):
        return math.nan
    return min(args)

def _builtin_max(args: list[float]) -> float:
    if any(math.isnan(v) for v in args):
        return math.nan
    return max(args)

BUILTINS: dict[str, Callable[[list[float]], float]] = {
    "+": _builtin_add,
    "-": _builtin_sub,
    "*": _builtin_mul,
    "/": _builtin_div,
    "min": _builtin_min,
    "max": _builtin_max,
}
