"""Tests for the cellsheet.calc formula scanner."""

from __future__ import annotations

import pytest

from cellsheet.calc._cellref import CELL_A1, CellRef, Coord
from cellsheet.calc._errors import FormulaSyntaxError
from cellsheet.calc._parser import scan

CELL_E9 = CellRef.parse("e9")


class TestNumbers:
    @pytest.mark.parametrize(
        ("text", "lexeme", "value"),
        [
            (" 123 ", "123", 123),
            (" 1.23 ", "1.23", 1.23),
            (" 1.23e2 ", "1.23e2", 123),
            (" 123e-2 ", "123e-2", 1.23),
            ("4E+1", "4E+1", 40),
        ],
    )
    def test_number(self, text: str, lexeme: str, value: float) -> None:
        tokens = scan(text, CELL_A1)
        assert len(tokens) == 2
        assert tokens[0].kind == "num"
        assert tokens[0].lexeme == lexeme
        assert tokens[0].value == pytest.approx(value)
        assert tokens[1].kind == "EOF"


class TestRefs:
    def test_rel_rel(self) -> None:
        tokens = scan(" b4 ", CELL_A1)
        assert [t.kind for t in tokens] == ["ref", "EOF"]
        assert tokens[0].value == CellRef(Coord(1, False), Coord(3, False))

    def test_rel_rel_from_base(self) -> None:
        tokens = scan(" C5 ", CELL_E9)
        assert tokens[0].lexeme == "C5"
        assert tokens[0].value == CellRef(Coord(-2, False), Coord(-4, False))

    def test_abs_abs_from_base(self) -> None:
        tokens = scan(" $c$5 ", CELL_E9)
        assert tokens[0].value == CellRef(Coord(2, True), Coord(4, True))

    def test_bad_ref(self) -> None:
        with pytest.raises(FormulaSyntaxError):
            scan("123e-2 + $$a2", CELL_A1)

    def test_unknown_word(self) -> None:
        with pytest.raises(FormulaSyntaxError):
            scan("sum(a1)", CELL_A1)


class TestSequences:
    def test_multiple_tokens(self) -> None:
        tokens = scan("123e-2 + ( $A2 * e11 )", CELL_E9)
        assert [t.kind for t in tokens] == ["num", "+", "(", "ref", "*", "ref", ")", "EOF"]
        assert tokens[0].value == pytest.approx(1.23)
        assert tokens[3].value == CellRef(Coord(0, True), Coord(-7, False))
        assert tokens[5].value == CellRef(Coord(0, False), Coord(2, False))

    def test_functions(self) -> None:
        tokens = scan("max(1, MIN(2,3))")
        assert [t.kind for t in tokens] == [
            "fn", "(", "num", ",", "fn", "(", "num", ",", "num", ")", ")", "EOF",
        ]
        assert tokens[4].lexeme == "min"

    def test_empty_input(self) -> None:
        assert [t.kind for t in scan("   ")] == ["EOF"]

    def test_unexpected_character(self) -> None:
        with pytest.raises(FormulaSyntaxError, match="unexpected character"):
            scan("1 % 2")


class TestNonAscii:
    # dotted capital I, kelvin sign, long s, arabic-indic digit one
    @pytest.mark.parametrize("text", ["İ1 + 1", "K1", "ſ2", "a١"])
    def test_lookalike_letters_and_digits_rejected(self, text: str) -> None:
        with pytest.raises(FormulaSyntaxError):
            scan(text, CELL_A1)
