"""Tests for the expression model and canonicalization."""

from decimal import Decimal

import pytest

from symcore import (
    Add, Multiply, Subtract, Divide, Power, Equality, Function, Derivative,
    Number, Symbol, Wild, Vector, Matrix, canonicalize, contains_symbol, symbols,
    ExpressionError,
)
from symcore.expr import sort_key, is_number, wild_names

x, y, z = Symbol("x"), Symbol("y"), Symbol("z")


SAMPLES = [
    Add(x, Add(y, 3), 2),
    Multiply(Add(x, 1), Multiply(y, 2), 3),
    Subtract(Divide(x, y), Power(z, 2)),
    Power(Power(x, 2), Add(y, 1)),
    Equality(Add(Multiply(2, x), 5), 15),
    Function("sin", Add(x, 0)),
    Derivative(Multiply(x, 1), x),
    Vector(Add(x, 0), Multiply(y, 1)),
    Divide(x, 0),
]


class TestCanonicalProperties:
    """Tests for the laws canonicalization must obey."""

    @pytest.mark.parametrize("expr", SAMPLES)
    def test_idempotent(self, expr):
        """Canonicalizing twice changes nothing."""
        once = canonicalize(expr)
        assert canonicalize(once).same_structure(once)

    def test_canonical_form_is_cached(self):
        """A canonical node canonicalizes to itself."""
        once = canonicalize(Add(y, x))
        assert canonicalize(once) is once
        assert once.is_canonical()

    @pytest.mark.parametrize("kind", [Add, Multiply])
    def test_commutative(self, kind):
        """Operand order does not matter for Add and Multiply."""
        a = kind(x, Function("sin", y), 3)
        b = kind(3, Function("sin", y), x)
        assert canonicalize(a).same_structure(canonicalize(b))

    def test_equality_uses_canonical_form(self):
        """== and hash compare canonical forms."""
        assert Add(y, x) == Add(x, y)
        assert hash(Add(y, x)) == hash(Add(x, y))
        assert Multiply(y, 0) == Number(0)
        assert Add(x, 1) != Add(x, 2)

    def test_same_structure_is_raw(self):
        """same_structure compares trees as written."""
        assert not Add(x, y).same_structure(Add(y, x))
        assert Add(x, y).same_structure(Add(x, y))


class TestAddMultiply:
    """Tests for n-ary canonicalization."""

    def test_flatten(self):
        """Nested sums flatten into one."""
        result = canonicalize(Add(Add(x, y), z))
        assert isinstance(result, Add)
        assert len(result.operands) == 3

    def test_fold_literal_leading(self):
        """Numbers fold and the literal leads."""
        result = canonicalize(Add(2, x, 3))
        assert result.same_structure(Add(Number(5), x))

    def test_add_zero(self):
        """Adding zero is dropped."""
        assert canonicalize(Add(x, 0)).same_structure(x)

    def test_multiply_one(self):
        """Multiplying by one is dropped."""
        assert canonicalize(Multiply(x, 1)).same_structure(x)

    def test_multiply_zero(self):
        """A zero factor collapses the product."""
        assert is_number(canonicalize(Multiply(y, Add(x, 1), 0)), 0)

    def test_sorted(self):
        """Operands sort into the total order."""
        result = canonicalize(Add(Power(x, 2), y, x, 1))
        assert result.same_structure(Add(Number(1), x, y, Power(x, 2)))

    def test_like_terms_not_collected(self):
        """Collecting terms is left to the rules."""
        result = canonicalize(Add(x, x))
        assert result.same_structure(Add(x, x))

    def test_all_literals(self):
        """A sum of numbers is a number."""
        assert canonicalize(Add(1, 2, Multiply(3, 4))).same_structure(Number(15))


class TestBinaryOperations:
    """Tests for Subtract, Divide and Power canonical forms."""

    def test_subtract(self):
        """a - b becomes a + (-1 * b)."""
        result = canonicalize(Subtract(x, y))
        assert result.same_structure(Add(x, Multiply(Number(-1), y)))

    def test_subtract_numbers(self):
        """Numeric subtraction folds."""
        assert canonicalize(Subtract(7, 3)).same_structure(Number(4))

    def test_divide(self):
        """a / b becomes a * b^-1."""
        result = canonicalize(Divide(x, y))
        assert result.same_structure(Multiply(x, Power(y, Number(-1))))

    def test_divide_numbers(self):
        """Numeric division folds exactly."""
        assert canonicalize(Divide(6, 4)).same_structure(Number("1.5"))

    def test_divide_by_zero_stays_symbolic(self):
        """Division by a literal zero is never folded."""
        result = canonicalize(Divide(6, 0))
        assert isinstance(result, Divide)
        assert is_number(result.denominator, 0)

    @pytest.mark.parametrize("expr,expected", [
        (Power(x, 0), Number(1)),
        (Power(x, 1), x),
        (Power(1, x), Number(1)),
        (Power(0, 2), Number(0)),
        (Power(2, 10), Number(1024)),
        (Power(Power(x, 2), 3), Power(x, Number(6))),
    ])
    def test_power(self, expr, expected):
        """Power identities and folding."""
        assert canonicalize(expr).same_structure(expected)

    def test_negative_base_fractional_exponent(self):
        """An undefined power stays symbolic."""
        result = canonicalize(Power(-8, Number("0.5")))
        assert isinstance(result, Power)

    def test_zero_to_negative_power(self):
        """0 ** -1 is not folded."""
        assert isinstance(canonicalize(Power(0, -1)), Power)

    def test_overflowing_product_stays_symbolic(self):
        """Literals whose product overflows are kept as separate factors."""
        big = Number("1E+999999")
        result = canonicalize(Multiply(big, 10, x))
        assert isinstance(result, Multiply)
        assert len(result.operands) == 3
        assert canonicalize(result).same_structure(result)
        assert canonicalize(Multiply(x, 10, big)).same_structure(result)

    def test_overflowing_sum_stays_symbolic(self):
        """Literals whose sum overflows are kept as separate terms."""
        big = Number("9E+999999")
        result = canonicalize(Add(big, big))
        assert isinstance(result, Add)
        assert canonicalize(result).same_structure(result)

    def test_overflowing_difference_stays_symbolic(self):
        """A difference that overflows is not folded."""
        big = Number("9E+999999")
        result = canonicalize(Subtract(big, Multiply(-1, big)))
        assert not isinstance(result, Number)


class TestFunctions:
    """Tests for numeric folding of functions."""

    @pytest.mark.parametrize("name,args,expected", [
        ("sqrt", [16], 4),
        ("exp", [0], 1),
        ("log", [1], 0),
        ("log", [8, 2], 3),
        ("sin", [0], 0),
        ("cos", [0], 1),
        ("abs", [-3], 3),
    ])
    def test_folds(self, name, args, expected):
        """Known functions of numbers evaluate."""
        result = canonicalize(Function(name, *args))
        assert is_number(result, expected)

    def test_inexact_trig_stays(self):
        """sin(1) has no exact value and stays symbolic."""
        assert isinstance(canonicalize(Function("sin", 1)), Function)

    def test_log_of_negative_stays(self):
        """log(-1) is undefined and stays symbolic."""
        assert isinstance(canonicalize(Function("log", -1)), Function)

    def test_unknown_function(self):
        """Unknown functions keep their canonicalized arguments."""
        result = canonicalize(Function("f", Add(x, 0)))
        assert result.same_structure(Function("f", x))


class TestOtherOperations:
    """Tests for operations canonicalized in place."""

    def test_equality_order_preserved(self):
        """Equality keeps its sides in place."""
        result = canonicalize(Equality(5, Add(x, 0)))
        assert result.same_structure(Equality(Number(5), x))

    def test_vector_components(self):
        """Vector components are canonicalized in order."""
        result = canonicalize(Vector(Multiply(y, 1), Add(x, 0)))
        assert result.same_structure(Vector(y, x))


class TestNumbers:
    """Tests for numeric literals."""

    def test_float_via_repr(self):
        """Floats convert through their shortest repr."""
        assert Number(0.1).value == Decimal("0.1")

    def test_text(self):
        """Integral values print without a decimal point."""
        assert str(Number(5.0)) == "5"
        assert str(Number("2.50")) == "2.5"
        assert str(Number(1000)) == "1000"
        assert str(Number(-12)) == "-12"

    def test_bool_rejected(self):
        """Booleans are not numbers."""
        with pytest.raises(TypeError):
            Number(True)

    def test_non_finite_rejected(self):
        """Infinity is not a literal."""
        with pytest.raises(ValueError):
            Number(float("inf"))


class TestConstruction:
    """Tests for structural validation."""

    def test_fixed_arity(self):
        """Binary operations need two children."""
        with pytest.raises(ExpressionError):
            Power(x)

    def test_matrix_rows_must_be_vectors(self):
        """Matrix rows must be vectors."""
        with pytest.raises(ExpressionError):
            Matrix(Vector(1, 2), x)

    def test_empty_vector(self):
        """A vector needs components."""
        with pytest.raises(ExpressionError):
            Vector()

    def test_plain_numbers_coerced(self):
        """Python numbers become Number children."""
        assert isinstance(Add(x, 2).children[1], Number)

    def test_non_expression_rejected(self):
        """Strings are not expressions."""
        with pytest.raises(ExpressionError):
            Add(x, "y")


class TestHelpers:
    """Tests for tree helpers."""

    def test_total_order(self):
        """Number < Symbol < Wild < Operation."""
        ordered = sorted([Add(x, y), Wild("w"), Symbol("a"), Number(5)], key=sort_key)
        assert [type(e).__name__ for e in ordered] == ["Number", "Symbol", "Wild", "Add"]

    def test_contains_symbol(self):
        """contains_symbol searches the whole tree."""
        expr = Function("sin", Multiply(2, x))
        assert contains_symbol(expr, x)
        assert not contains_symbol(expr, y)

    def test_symbols(self):
        """symbols lists distinct symbols in order."""
        assert [s.name for s in symbols(Add(y, Multiply(x, y)))] == ["x", "y"]

    def test_wild_names(self):
        """wild_names collects wildcard names."""
        assert wild_names(Add(Wild("a"), Multiply(Wild("b"), x))) == {"a", "b"}

    def test_depth(self):
        """Depth counts levels."""
        assert x.depth() == 1
        assert Add(x, Multiply(y, z)).depth() == 3
