"""
Infix rendering of expressions.

    format_expr(parse("y + x"))                      # 'x + y'
    format_expr(parse("x - 2 * y"))                  # 'x - 2 * y'
    format_expr(parse("x / y ** 2"))                 # 'x / y ** 2'
    format_expr(parse("x + 0"), canonical=False)     # 'x + 0'

The output re-parses to an equal expression. Parentheses are inserted only
where precedence requires them.
"""

from decimal import Decimal
from typing import List, Tuple

from . import decimals
from .expr import (
    Add, Divide, Equality, Expression, Function, Multiply, Number, Operation,
    Power, Subtract, Symbol, Wild, WildConstraint, canonicalize,
)

# Precedence levels, loosest first
EQUALITY, SUM, PRODUCT, UNARY, POWER, ATOM = range(6)

Rendered = Tuple[str, int]


def format_expr(expr: Expression, canonical: bool = True) -> str:
    """Render ``expr`` as infix text; canonicalize first unless told not to."""
    if canonical:
        expr = canonicalize(expr)
    return _Formatter(canonical).render(expr)[0]


class _Formatter:

    def __init__(self, canonical: bool):
        self.canonical = canonical

    def text(self, expr: Expression, minimum: int) -> str:
        """Render ``expr``, parenthesized if it binds looser than ``minimum``."""
        text, level = self.render(expr)
        return f"({text})" if level < minimum else text

    def render(self, expr: Expression) -> Rendered:
        if isinstance(expr, Number):
            text = decimals.format_decimal(expr.value)
            return text, UNARY if text.startswith("-") else ATOM
        if isinstance(expr, Symbol):
            return expr.name, ATOM
        if isinstance(expr, Wild):
            if expr.constraint is WildConstraint.NONE:
                return f"?{expr.name}", ATOM
            return f"?{expr.name}:{expr.constraint.value}", ATOM
        if isinstance(expr, Add):
            return self._sum(expr)
        if isinstance(expr, Multiply):
            return self._product(list(expr.operands))
        if isinstance(expr, Subtract):
            return f"{self.text(expr.left, SUM)} - {self.text(expr.right, PRODUCT)}", SUM
        if isinstance(expr, Divide):
            return f"{self.text(expr.left, PRODUCT)} / {self.text(expr.right, UNARY)}", PRODUCT
        if isinstance(expr, Power):
            if self.canonical and _negative_number(expr.exponent):
                return self._product([expr])
            return f"{self.text(expr.base, ATOM)} ** {self.text(expr.exponent, UNARY)}", POWER
        if isinstance(expr, Equality):
            return f"{self.text(expr.left, SUM)} = {self.text(expr.right, SUM)}", EQUALITY
        if isinstance(expr, Function):
            return self._call(expr.name, expr.args), ATOM
        if isinstance(expr, Operation):
            return self._call(expr.op_name, expr.children), ATOM
        raise TypeError(f"Cannot format {type(expr).__name__}")

    def _call(self, name: str, args) -> str:
        inner = ", ".join(self.text(arg, EQUALITY) for arg in args)
        return f"{name}({inner})"

    def _sum(self, expr: Add) -> Rendered:
        terms = list(expr.operands)
        if self.canonical and len(terms) > 1 and isinstance(terms[0], Number):
            terms.append(terms.pop(0))

        parts: List[str] = []
        for index, term in enumerate(terms):
            negated = _negated(term)
            if negated is None:
                text = self.text(term, SUM)
                parts.append(text if index == 0 else f"+ {text}")
            elif index == 0:
                parts.append(self.text(term, SUM))
            else:
                parts.append(f"- {self.text(negated, PRODUCT)}")
        return " ".join(parts), SUM

    def _product(self, factors: List[Expression]) -> Rendered:
        sign = ""
        if factors and isinstance(factors[0], Number) and factors[0].value == decimals.MINUS_ONE \
                and len(factors) > 1:
            sign = "-"
            factors = factors[1:]

        numerator: List[Expression] = []
        denominator: List[Expression] = []
        for factor in factors:
            if self.canonical and isinstance(factor, Power) and _negative_number(factor.exponent):
                exponent = -factor.exponent.value
                denominator.append(factor.base if exponent == decimals.ONE
                                   else Power(factor.base, Number(exponent)))
            else:
                numerator.append(factor)

        if numerator:
            text = " * ".join(self.text(factor, UNARY) for factor in numerator)
        else:
            text = "1"
        for factor in denominator:
            text = f"{text} / {self.text(factor, UNARY)}"

        if sign:
            text = sign + text
            simple = len(numerator) == 1 and not denominator
            return text, UNARY if simple else PRODUCT
        if len(numerator) == 1 and not denominator:
            return self.render(numerator[0])
        return text, PRODUCT


def _negative_number(expr: Expression) -> bool:
    return isinstance(expr, Number) and expr.value < 0


def _negated(term: Expression):
    """The positive counterpart of a term with a negative leading coefficient."""
    if _negative_number(term):
        return Number(-term.value)
    if isinstance(term, Multiply) and _negative_number(term.operands[0]):
        coefficient: Decimal = -term.operands[0].value
        rest = term.operands[1:]
        if coefficient == decimals.ONE:
            return rest[0] if len(rest) == 1 else Multiply(*rest)
        return Multiply(Number(coefficient), *rest)
    return None
