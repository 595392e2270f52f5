"""Tests for infix rendering."""

import pytest

from symcore import (
    Add, Divide, Multiply, Power, Subtract, Symbol, Wild, WildConstraint, Number,
    format_expr, parse,
)

x, y, z = Symbol("x"), Symbol("y"), Symbol("z")


class TestCanonicalRendering:
    """Tests for rendering canonical forms."""

    @pytest.mark.parametrize("text,expected", [
        ("y + x", "x + y"),
        ("1 + x", "x + 1"),
        ("5 + 2 * x", "2 * x + 5"),
        ("x - y", "x - y"),
        ("x - 3", "x - 3"),
        ("5 - x", "-x + 5"),
        ("x - 2 * y", "x - 2 * y"),
        ("x - (y + z)", "x - (y + z)"),
        ("-z", "-z"),
        ("-x * y", "-x * y"),
        ("-(x + 1)", "-(x + 1)"),
        ("x / y", "x / y"),
        ("1 / x", "1 / x"),
        ("x / y ** 2", "x / y ** 2"),
        ("x / (y * z)", "x / (y * z)"),
        ("x / y / z", "x / y / z"),
        ("1 / (x * y)", "1 / (x * y)"),
        ("2 * x * y / z", "2 * x * y / z"),
        ("2 * (x + 1)", "2 * (x + 1)"),
        ("(x + 1) ** 2", "(x + 1) ** 2"),
        ("x ** y ** z", "x ** y ** z"),
        ("(x ** y) ** z", "x ** (y * z)"),
        ("(-2) ** x", "(-2) ** x"),
        ("x = 5", "x = 5"),
        ("sin(x) + log(x, 2)", "log(x, 2) + sin(x)"),
        ("Vector(0, 0)", "Vector(0, 0)"),
        ("Derivative(x ** 2, x)", "Derivative(x ** 2, x)"),
    ])
    def test_render(self, text, expected):
        """Canonical trees render minimally parenthesized."""
        assert format_expr(parse(text)) == expected

    @pytest.mark.parametrize("text", [
        "x - 2 * y", "x / (y * z)", "x / y / z", "(-2) ** x", "-(x + 1)", "x ** y ** z", "5 - x",
    ])
    def test_reparses(self, text):
        """Rendered text parses back to an equal expression."""
        expr = parse(text)
        assert parse(format_expr(expr)) == expr

    def test_reciprocal_factors_stay_separate(self):
        """Each reciprocal factor renders as its own division."""
        expr = Multiply(x, Power(y, -1), Power(z, -1))
        assert format_expr(expr) == "x / y / z"
        assert parse(format_expr(expr)) == expr
        assert parse(format_expr(expr)) != parse("x / (y * z)")

    def test_numbers(self):
        """Numbers use the shared numeric text."""
        assert format_expr(Number("2.50")) == "2.5"
        assert format_expr(Number(5.0)) == "5"
        assert format_expr(Number(-12)) == "-12"

    def test_division_by_zero(self):
        """A literal zero divisor stays a division."""
        assert format_expr(parse("x / 0")) == "x / 0"

    def test_str_uses_formatter(self):
        """str() of an expression is its canonical rendering."""
        assert str(parse("y + x")) == "x + y"


class TestRawRendering:
    """Tests for rendering trees as written."""

    def test_keeps_identities(self):
        """Nothing is simplified away."""
        assert format_expr(Add(x, 0), canonical=False) == "x + 0"

    def test_subtract_and_divide(self):
        """Subtract and Divide nodes render directly."""
        assert format_expr(Subtract(x, Add(y, z)), canonical=False) == "x - (y + z)"
        assert format_expr(Divide(x, Add(y, z)), canonical=False) == "x / (y + z)"

    def test_negative_exponent(self):
        """Negative exponents are not turned into division."""
        assert format_expr(Power(x, -1), canonical=False) == "x ** -1"

    def test_wildcards(self):
        """Wildcards render with their constraint."""
        assert format_expr(Wild("x"), canonical=False) == "?x"
        assert format_expr(Wild("n", WildConstraint.CONSTANT), canonical=False) == "?n:const"
