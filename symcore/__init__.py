"""
symcore - symbolic rewriting, simplification and equation solving

Expressions are immutable trees kept in a canonical form; rules rewrite
them to a fixed point and strategies build on the rewriter.

Quick Start:
    from symcore import simplify, solve_equation

    simplify("x + x").expression                    # 2 * x
    solve_equation("2 * x + 5 = 15", "x")           # x = 5

    from symcore import SymEngine

    engine = SymEngine()                            # built-in rules
    engine.differentiate("x ** 3", "x")             # 3 * x ** 2
    engine.simplify("Grad(5, Vector(x, y))")        # Vector(0, 0)

Custom rules (DSL):
    engine = SymEngine.from_dsl('''
        [trig]
        @pythagoras "sin^2 + cos^2 = 1": sin(?x) ** 2 + cos(?x) ** 2 => 1
        @d-const: Derivative(?f, ?x) => 0 when free(?f, ?x)
    ''')

Pattern Syntax:
    ?x                - match any expression, bind to x
    ?x:const          - match numeric literals only
    ?x:scalar         - match scalar-shaped expressions only
"""

__version__ = "0.1.0"

from .shape import Shape

from .expr import (
    Expression,
    Atom,
    Operation,
    Number,
    Symbol,
    Wild,
    WildConstraint,
    Add,
    Multiply,
    Subtract,
    Divide,
    Power,
    Equality,
    Derivative,
    Integral,
    Grad,
    Div,
    Curl,
    Function,
    Vector,
    Matrix,
    canonicalize,
    contains_symbol,
    symbols,
)

from .matcher import Bindings, NoMatch, match, iter_matches, substitute

from .rewriter import Rule, RewriteStep, RewriteResult, rewrite_once, rewrite_fully

from .rules import (
    ALGEBRA_RULES,
    DIFFERENTIATION_RULES,
    INTEGRATION_RULES,
    VECTOR_CALCULUS_RULES,
    ALL_RULES,
    RULE_SETS,
)

from .strategies import (
    SolveContext,
    SolveResult,
    SolverStrategy,
    FullSimplificationStrategy,
    EquationSolverStrategy,
)

from .solver import solve, simplify, solve_equation

from .parser import parse
from .formatter import format_expr

from .engine import (
    SymEngine,
    E,
    parse_rule_line,
    load_rules_from_dsl,
    load_rules_from_file,
)

from .errors import SymcoreError, ParseError, ExpressionError, SubstitutionError

__all__ = [
    # Version
    "__version__",
    # Expressions
    "Shape",
    "Expression",
    "Atom",
    "Operation",
    "Number",
    "Symbol",
    "Wild",
    "WildConstraint",
    "Add",
    "Multiply",
    "Subtract",
    "Divide",
    "Power",
    "Equality",
    "Derivative",
    "Integral",
    "Grad",
    "Div",
    "Curl",
    "Function",
    "Vector",
    "Matrix",
    "canonicalize",
    "contains_symbol",
    "symbols",
    # Matching
    "Bindings",
    "NoMatch",
    "match",
    "iter_matches",
    "substitute",
    # Rewriting
    "Rule",
    "RewriteStep",
    "RewriteResult",
    "rewrite_once",
    "rewrite_fully",
    # Rule sets
    "ALGEBRA_RULES",
    "DIFFERENTIATION_RULES",
    "INTEGRATION_RULES",
    "VECTOR_CALCULUS_RULES",
    "ALL_RULES",
    "RULE_SETS",
    # Solving
    "SolveContext",
    "SolveResult",
    "SolverStrategy",
    "FullSimplificationStrategy",
    "EquationSolverStrategy",
    "solve",
    "simplify",
    "solve_equation",
    # Text
    "parse",
    "format_expr",
    # Engine and DSL
    "SymEngine",
    "E",
    "parse_rule_line",
    "load_rules_from_dsl",
    "load_rules_from_file",
    # Errors
    "SymcoreError",
    "ParseError",
    "ExpressionError",
    "SubstitutionError",
]
