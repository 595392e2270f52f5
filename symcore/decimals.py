"""
Exact decimal arithmetic for numeric literals.

Every folded value is computed in one shared ``decimal`` context so results
are reproducible bit for bit. Operations whose result is undefined (division
by zero, a negative base under a fractional exponent, overflow) return None
and the caller keeps the expression symbolic.
"""

import decimal
from decimal import Decimal, DecimalException
from typing import Optional, Sequence, Union

from . import config

NumberLike = Union[int, float, str, Decimal]

CONTEXT = decimal.Context(
    prec=config.DECIMAL_PRECISION,
    rounding=decimal.ROUND_HALF_EVEN,
    traps=[decimal.DivisionByZero, decimal.InvalidOperation, decimal.Overflow],
)

ZERO = Decimal(0)
ONE = Decimal(1)
MINUS_ONE = Decimal(-1)

# Snap threshold for log(value, base) results that are whole numbers
_LOG_SNAP = Decimal("1e-20")

# Values of transcendental functions that are exact
_EXACT_VALUES = {
    "sin": {ZERO: ZERO},
    "tan": {ZERO: ZERO},
    "asin": {ZERO: ZERO},
    "atan": {ZERO: ZERO},
    "cos": {ZERO: ONE},
    "acos": {ONE: ZERO},
}


def to_decimal(value: NumberLike) -> Decimal:
    """Convert a Python number or numeric string to a finite Decimal.

    Floats go through their shortest repr, so ``0.1`` becomes
    ``Decimal("0.1")`` rather than its binary expansion.
    """
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric literal")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except DecimalException:
            raise ValueError(f"Not a number: {value!r}") from None
    else:
        raise TypeError(f"Cannot make a number from {type(value).__name__}")
    if not result.is_finite():
        raise ValueError(f"Numeric literals must be finite, got {value!r}")
    return result


def is_integral(value: Decimal) -> bool:
    return value == value.to_integral_value()


def format_decimal(value: Decimal) -> str:
    """Canonical numeric text: ``5``, ``-12``, ``2.5``, never ``5.0`` or ``1E+3``."""
    if value.is_zero():
        return "0"
    return format(value.normalize(CONTEXT), "f")


def _checked(operation, *operands) -> Optional[Decimal]:
    try:
        result = operation(*operands)
    except DecimalException:
        return None
    # 0 ** -1 gives Infinity without raising a trapped signal
    return result if result.is_finite() else None


def add(a: Decimal, b: Decimal) -> Optional[Decimal]:
    return _checked(CONTEXT.add, a, b)


def multiply(a: Decimal, b: Decimal) -> Optional[Decimal]:
    return _checked(CONTEXT.multiply, a, b)


def subtract(a: Decimal, b: Decimal) -> Optional[Decimal]:
    return _checked(CONTEXT.subtract, a, b)


def divide(a: Decimal, b: Decimal) -> Optional[Decimal]:
    return _checked(CONTEXT.divide, a, b)


def power(base: Decimal, exponent: Decimal) -> Optional[Decimal]:
    return _checked(CONTEXT.power, base, exponent)


def log_base(value: Decimal, base: Decimal) -> Optional[Decimal]:
    """Logarithm of ``value`` to ``base``; exact powers give whole numbers."""
    if value <= 0 or base <= 0 or base == ONE:
        return None
    try:
        ratio = CONTEXT.divide(CONTEXT.ln(value), CONTEXT.ln(base))
        whole = ratio.to_integral_value()
        if abs(ratio - whole) < _LOG_SNAP and CONTEXT.power(base, whole) == value:
            return whole
        return ratio
    except DecimalException:
        return None


def evaluate_function(name: str, args: Sequence[Decimal]) -> Optional[Decimal]:
    """Evaluate a known function on numeric arguments, or None if not foldable."""
    name = name.lower()
    try:
        if len(args) == 1:
            x = args[0]
            if name == "exp":
                return CONTEXT.exp(x)
            if name in ("log", "ln"):
                return CONTEXT.ln(x) if x > 0 else None
            if name == "sqrt":
                return CONTEXT.sqrt(x) if x >= 0 else None
            if name == "abs":
                return CONTEXT.abs(x)
            return _EXACT_VALUES.get(name, {}).get(x)
        if len(args) == 2 and name == "log":
            return log_base(args[0], args[1])
    except DecimalException:
        return None
    return None
