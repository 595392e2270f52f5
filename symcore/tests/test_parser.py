"""Tests for the infix parser."""

import pytest

from symcore import (
    Add, Multiply, Subtract, Divide, Power, Equality, Function, Derivative,
    Integral, Grad, Vector, Matrix, Number, Symbol, Wild, WildConstraint,
    parse, ParseError,
)
from symcore.parser import Parser, tokenize, NUMBER, NAME, WILD, OP, END

a, b, c = Symbol("a"), Symbol("b"), Symbol("c")
x, y = Symbol("x"), Symbol("y")


def parsed(text, expected):
    return parse(text).same_structure(expected)


class TestTokenize:
    """Tests for the tokenizer."""

    def test_kinds(self):
        """Tokens carry kind, text and position."""
        tokens = tokenize("2.5 * ?x ** y")
        assert [t.kind for t in tokens] == [NUMBER, OP, WILD, OP, NAME, END]
        assert tokens[2].text == "?x"
        assert tokens[4].position == 12

    def test_bad_character(self):
        """Unknown characters report their position."""
        with pytest.raises(ParseError) as info:
            tokenize("x $ y")
        assert info.value.position == 2


class TestPrecedence:
    """Tests for operator precedence and associativity."""

    def test_product_binds_tighter(self):
        """* binds tighter than +."""
        assert parsed("1 + 2 * a", Add(Number(1), Multiply(Number(2), a)))

    def test_power_right_associative(self):
        """** groups to the right."""
        assert parsed("a ** b ** c", Power(a, Power(b, c)))

    def test_power_binds_tighter_than_minus(self):
        """-a ** 2 negates the power."""
        assert parsed("-a ** 2", Multiply(Number(-1), Power(a, Number(2))))

    def test_parentheses(self):
        """Parentheses override precedence."""
        assert parsed("(a + b) * c", Multiply(Add(a, b), c))

    def test_subtract_left_associative(self):
        """a - b - c is (a - b) - c."""
        assert parsed("a - b - c", Subtract(Subtract(a, b), c))

    def test_divide_left_associative(self):
        """a / b / c is (a / b) / c."""
        assert parsed("a / b / c", Divide(Divide(a, b), c))

    def test_mixed_sum(self):
        """Additions after a subtraction wrap it."""
        assert parsed("a - b + c", Add(Subtract(a, b), c))

    def test_equation(self):
        """= has the lowest precedence."""
        expected = Equality(Add(Multiply(Number(2), x), Number(5)), Number(15))
        assert parsed("2 * x + 5 = 15", expected)


class TestFlattening:
    """Tests for n-ary chains."""

    def test_sum_chain(self):
        """a + b + c is one Add."""
        assert parsed("a + b + c", Add(a, b, c))

    def test_product_chain(self):
        """a * b * c is one Multiply."""
        assert parsed("a * b * c", Multiply(a, b, c))

    def test_no_canonicalization(self):
        """The parser keeps the tree as written."""
        assert parsed("x + 0", Add(x, Number(0)))


class TestUnary:
    """Tests for unary operators."""

    def test_negative_literal(self):
        """A minus sign on a number gives a negative number."""
        assert parsed("-3", Number(-3))

    def test_negative_exponent(self):
        """Negative exponents are literals."""
        assert parsed("x ** -1", Power(x, Number(-1)))

    def test_negated_symbol(self):
        """-x is -1 * x."""
        assert parsed("-x", Multiply(Number(-1), x))

    def test_unary_plus(self):
        """Unary plus is dropped."""
        assert parsed("+x", x)

    def test_double_negation(self):
        """--3 is 3."""
        assert parsed("--3", Number(3))


class TestAtoms:
    """Tests for numbers, wildcards and calls."""

    def test_decimal_number(self):
        """Decimal literals keep their value."""
        assert parse("2.5") == Number("2.5")

    def test_wildcards(self):
        """Wildcards with and without constraints."""
        assert parsed("?x", Wild("x"))
        assert parse("?n:const").constraint is WildConstraint.CONSTANT
        assert parse("?s:scalar").constraint is WildConstraint.SCALAR

    def test_unknown_constraint(self):
        """Unknown wildcard constraints are rejected."""
        with pytest.raises(ParseError):
            parse("?x:bogus")

    def test_function_calls(self):
        """Unknown names become functions."""
        assert parsed("sin(x)", Function("sin", x))
        assert parsed("log(x, 2)", Function("log", x, Number(2)))
        assert parsed("f()", Function("f"))

    def test_constructors(self):
        """Known names build their operation."""
        assert parsed("Vector(1, x)", Vector(Number(1), x))
        assert parsed("vector(1, x)", Vector(Number(1), x))
        assert parsed("Derivative(x ** 2, x)", Derivative(Power(x, Number(2)), x))
        assert parsed("Integral(x, x)", Integral(x, x))
        assert parsed("Grad(5, Vector(x, y))", Grad(Number(5), Vector(x, y)))
        assert isinstance(parse("Matrix(Vector(1, 2), Vector(3, 4))"), Matrix)

    def test_constructor_arity(self):
        """Wrong argument counts are parse errors at the name."""
        with pytest.raises(ParseError) as info:
            parse("1 + Derivative(x)")
        assert info.value.position == 4

    def test_matrix_rows(self):
        """Matrix rows must be vectors."""
        with pytest.raises(ParseError):
            parse("Matrix(1, 2)")


class TestErrors:
    """Tests for malformed input."""

    @pytest.mark.parametrize("text", ["", "   ", "x +", "(x", "x)", "a = b = c", "2 x", "f(x,)", "*x"])
    def test_malformed(self, text):
        """Malformed input raises ParseError."""
        with pytest.raises(ParseError):
            parse(text)

    def test_message_has_position(self):
        """The message names what was found and where."""
        with pytest.raises(ParseError, match=r"Unexpected '\)' \(at position 1\)"):
            parse("x)")

    def test_end_of_input(self):
        """Running out of input is reported."""
        with pytest.raises(ParseError, match="end of input"):
            parse("x +")

    def test_parse_error_is_value_error(self):
        """ParseError can be caught as ValueError."""
        with pytest.raises(ValueError):
            parse("(")

    def test_not_a_string(self):
        """parse only accepts text."""
        with pytest.raises(TypeError):
            parse(42)

    def test_depth_limit(self):
        """Deep nesting is rejected."""
        with pytest.raises(ParseError, match="nested deeper"):
            parse("(" * 300 + "x" + ")" * 300)

    @pytest.mark.parametrize("levels", [101, 170, 250])
    def test_default_depth_limit_is_reachable(self, levels):
        """Nesting past the default limit is a ParseError, not a RecursionError."""
        with pytest.raises(ParseError, match="nested deeper"):
            parse("(" * levels + "x" + ")" * levels)

    def test_default_depth_limit_allows_nesting(self):
        """Nesting up to the default limit parses."""
        assert parse("(" * 99 + "x" + ")" * 99).same_structure(x)

    def test_recursion_becomes_parse_error(self):
        """Running out of stack is reported as a ParseError."""
        with pytest.raises(ParseError, match="too deeply"):
            Parser("(" * 5000 + "x" + ")" * 5000, max_depth=10 ** 6).parse()

    def test_custom_depth_limit(self):
        """The limit can be set per parser."""
        assert Parser("((x))", max_depth=2).parse().same_structure(x)
        with pytest.raises(ParseError):
            Parser("(((x)))", max_depth=2).parse()
