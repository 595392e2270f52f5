"""
Built-in rule sets.

Each set is a tuple of rules tagged with its group name:

    ALGEBRA_RULES           collecting terms and powers, distribution
    DIFFERENTIATION_RULES   Derivative(f, x)
    INTEGRATION_RULES       Integral(f, x)
    VECTOR_CALCULUS_RULES   Grad, Div, Curl over explicit vectors

``ALL_RULES`` concatenates them with calculus first so that operators are
expanded before the algebra rules tidy up the result.

Patterns are written against canonical trees: there are no rules for
``x + 0`` or ``x * 1`` because canonicalization already removes those.
"""

from typing import Dict, Tuple

from .expr import (
    Add, Curl, Derivative, Div, Function, Grad, Integral, Multiply, Number, Power,
    Subtract, Symbol, Vector, Wild, WildConstraint, as_expression, contains_symbol,
    is_number,
)
from .matcher import Bindings, Condition
from .rewriter import Rule

ALGEBRA = "algebra"
DERIVATIVE = "derivative"
INTEGRAL = "integral"
VECTOR = "vector"

A = Wild("a")
B = Wild("b")
F = Wild("f")
G = Wild("g")
N = Wild("n")
M = Wild("m")
P = Wild("p")
Q = Wild("q")
R = Wild("r")
X = Wild("x")
Y = Wild("y")
Z = Wild("z")
REST = Wild("rest")
A_CONST = Wild("a", WildConstraint.CONSTANT)
B_CONST = Wild("b", WildConstraint.CONSTANT)


# ============================================================
# Conditions
# ============================================================

def free_of(expr_name: str, var_name: str) -> Condition:
    """Condition: the variable binding is a symbol absent from the expression."""
    def condition(bindings: Bindings) -> bool:
        var = bindings[var_name]
        return isinstance(var, Symbol) and not contains_symbol(bindings[expr_name], var)
    return condition


def is_symbol(name: str) -> Condition:
    def condition(bindings: Bindings) -> bool:
        return isinstance(bindings[name], Symbol)
    return condition


def is_constant(name: str) -> Condition:
    def condition(bindings: Bindings) -> bool:
        return isinstance(bindings[name], Number)
    return condition


def nonzero(name: str) -> Condition:
    def condition(bindings: Bindings) -> bool:
        return not is_number(bindings[name], 0)
    return condition


def all_of(*conditions: Condition) -> Condition:
    def condition(bindings: Bindings) -> bool:
        return all(check(bindings) for check in conditions)
    return condition


def _tagged(group: str, *rules: Tuple) -> Tuple[Rule, ...]:
    built = []
    for name, description, pattern, template, *condition in rules:
        built.append(Rule(pattern, as_expression(template),
                          condition[0] if condition else None,
                          name=name, description=description, tags=(group,)))
    return tuple(built)


# ============================================================
# Algebra
# ============================================================

ALGEBRA_RULES = _tagged(
    ALGEBRA,
    ("sqrt-as-power", "sqrt(x) = x ** 0.5",
     Function("sqrt", X), Power(X, 0.5)),
    ("log-of-exp", "log(exp(x)) = x",
     Function("log", Function("exp", X)), X),
    ("exp-of-log", "exp(log(x)) = x",
     Function("exp", Function("log", X)), X),

    ("collect-identical", "x + x = 2 * x",
     Add(X, X), Multiply(2, X)),
    ("collect-identical-rest", None,
     Add(X, X, REST), Add(Multiply(2, X), REST)),
    ("collect-coefficient", "a * x + x = (a + 1) * x",
     Add(Multiply(A_CONST, X), X), Multiply(Add(A_CONST, 1), X)),
    ("collect-coefficient-rest", None,
     Add(Multiply(A_CONST, X), X, REST), Add(Multiply(Add(A_CONST, 1), X), REST)),
    ("collect-coefficients", "a * x + b * x = (a + b) * x",
     Add(Multiply(A_CONST, X), Multiply(B_CONST, X)), Multiply(Add(A_CONST, B_CONST), X)),
    ("collect-coefficients-rest", None,
     Add(Multiply(A_CONST, X), Multiply(B_CONST, X), REST),
     Add(Multiply(Add(A_CONST, B_CONST), X), REST)),

    ("square", "x * x = x ** 2",
     Multiply(X, X), Power(X, 2)),
    ("square-rest", None,
     Multiply(X, X, REST), Multiply(Power(X, 2), REST)),
    ("power-times-base", "x * x ** n = x ** (n + 1)",
     Multiply(X, Power(X, N)), Power(X, Add(N, 1))),
    ("power-times-base-rest", None,
     Multiply(X, Power(X, N), REST), Multiply(Power(X, Add(N, 1)), REST)),
    ("power-times-power", "x ** n * x ** m = x ** (n + m)",
     Multiply(Power(X, N), Power(X, M)), Power(X, Add(N, M))),
    ("power-times-power-rest", None,
     Multiply(Power(X, N), Power(X, M), REST), Multiply(Power(X, Add(N, M)), REST)),
    ("power-of-product", "(x * y) ** n = x ** n * y ** n",
     Power(Multiply(X, Y), N), Multiply(Power(X, N), Power(Y, N))),

    ("distribute", "a * (x + y) = a * x + a * y",
     Multiply(A, Add(X, Y)), Add(Multiply(A, X), Multiply(A, Y))),
)


# ============================================================
# Differentiation
# ============================================================

DIFFERENTIATION_RULES = _tagged(
    DERIVATIVE,
    ("d-constant", "d/dx c = 0",
     Derivative(F, X), 0, free_of("f", "x")),
    ("d-identity", "d/dx x = 1",
     Derivative(X, X), 1, is_symbol("x")),
    ("d-sum", "d/dx (f + g) = df + dg",
     Derivative(Add(F, G), X), Add(Derivative(F, X), Derivative(G, X))),
    ("d-constant-multiple", "d/dx (c * f) = c * df",
     Derivative(Multiply(A, F), X), Multiply(A, Derivative(F, X)), free_of("a", "x")),
    ("d-product", "d/dx (f * g) = df * g + f * dg",
     Derivative(Multiply(F, G), X),
     Add(Multiply(Derivative(F, X), G), Multiply(F, Derivative(G, X)))),
    ("d-power", "d/dx f ** n = n * f ** (n - 1) * df",
     Derivative(Power(F, N), X),
     Multiply(N, Power(F, Add(N, -1)), Derivative(F, X)), free_of("n", "x")),
    ("d-exponential", "d/dx a ** f = a ** f * log(a) * df",
     Derivative(Power(A, F), X),
     Multiply(Power(A, F), Function("log", A), Derivative(F, X)), free_of("a", "x")),
    ("d-sin", None,
     Derivative(Function("sin", F), X),
     Multiply(Function("cos", F), Derivative(F, X))),
    ("d-cos", None,
     Derivative(Function("cos", F), X),
     Multiply(-1, Function("sin", F), Derivative(F, X))),
    ("d-exp", None,
     Derivative(Function("exp", F), X),
     Multiply(Function("exp", F), Derivative(F, X))),
    ("d-log", None,
     Derivative(Function("log", F), X),
     Multiply(Derivative(F, X), Power(F, -1))),
)


# ============================================================
# Integration
# ============================================================

def _not_minus_one(name: str) -> Condition:
    def condition(bindings: Bindings) -> bool:
        return not is_number(bindings[name], -1)
    return condition


INTEGRATION_RULES = _tagged(
    INTEGRAL,
    ("i-constant", "integral of c dx = c * x",
     Integral(F, X), Multiply(F, X), free_of("f", "x")),
    ("i-sum", None,
     Integral(Add(F, G), X), Add(Integral(F, X), Integral(G, X))),
    ("i-constant-multiple", None,
     Integral(Multiply(A, F), X), Multiply(A, Integral(F, X)), free_of("a", "x")),
    ("i-identity", "integral of x dx = x ** 2 / 2",
     Integral(X, X), Multiply(0.5, Power(X, 2)), is_symbol("x")),
    ("i-reciprocal", "integral of 1/x dx = log(x)",
     Integral(Power(X, -1), X), Function("log", X), is_symbol("x")),
    ("i-power", "integral of x ** n dx = x ** (n + 1) / (n + 1)",
     Integral(Power(X, N), X),
     Multiply(Power(Add(N, 1), -1), Power(X, Add(N, 1))),
     all_of(free_of("n", "x"), _not_minus_one("n"))),
    ("i-cos", None,
     Integral(Function("cos", X), X), Function("sin", X), is_symbol("x")),
    ("i-sin", None,
     Integral(Function("sin", X), X), Multiply(-1, Function("cos", X)), is_symbol("x")),
    ("i-exp", None,
     Integral(Function("exp", X), X), Function("exp", X), is_symbol("x")),
)


# ============================================================
# Vector calculus
# ============================================================

VECTOR_CALCULUS_RULES = _tagged(
    VECTOR,
    ("grad-3d", None,
     Grad(F, Vector(X, Y, Z)),
     Vector(Derivative(F, X), Derivative(F, Y), Derivative(F, Z))),
    ("grad-2d", None,
     Grad(F, Vector(X, Y)),
     Vector(Derivative(F, X), Derivative(F, Y))),
    ("div-3d", None,
     Div(Vector(P, Q, R), Vector(X, Y, Z)),
     Add(Derivative(P, X), Derivative(Q, Y), Derivative(R, Z))),
    ("div-2d", None,
     Div(Vector(P, Q), Vector(X, Y)),
     Add(Derivative(P, X), Derivative(Q, Y))),
    ("curl-3d", None,
     Curl(Vector(P, Q, R), Vector(X, Y, Z)),
     Vector(Subtract(Derivative(R, Y), Derivative(Q, Z)),
            Subtract(Derivative(P, Z), Derivative(R, X)),
            Subtract(Derivative(Q, X), Derivative(P, Y)))),
)


ALL_RULES: Tuple[Rule, ...] = (
    DIFFERENTIATION_RULES + INTEGRATION_RULES + VECTOR_CALCULUS_RULES + ALGEBRA_RULES
)

RULE_SETS: Dict[str, Tuple[Rule, ...]] = {
    ALGEBRA: ALGEBRA_RULES,
    DERIVATIVE: DIFFERENTIATION_RULES,
    INTEGRAL: INTEGRATION_RULES,
    VECTOR: VECTOR_CALCULUS_RULES,
    "all": ALL_RULES,
}
