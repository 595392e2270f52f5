"""
Public solving operations.

    simplify("x + x")                        # SolveResult: 2 * x
    solve_equation("2 * x + 5 = 15", "x")    # SolveResult: x = 5
    solve(problem, strategy, context)        # any strategy, explicit context

Text arguments are parsed first; a malformed text raises ``ParseError``.
Everything else about whether the solve worked is in the returned
``SolveResult``.
"""

from typing import Optional, Sequence, Union

from . import config
from .expr import Expression, Symbol
from .logging_config import get_logger
from .parser import parse
from .rewriter import Rule
from .rules import ALL_RULES
from .strategies import (
    EquationSolverStrategy, FullSimplificationStrategy, SolveContext, SolveResult,
    SolverStrategy,
)

logger = get_logger("solver")

ExpressionLike = Union[Expression, str]


def _coerce(expr: ExpressionLike) -> Expression:
    return parse(expr) if isinstance(expr, str) else expr


def solve(problem: Optional[Expression], strategy: Optional[SolverStrategy],
          context: SolveContext) -> SolveResult:
    """Run ``strategy`` on ``problem`` under ``context``."""
    if strategy is None:
        return SolveResult.failed(problem, "No solver strategy supplied")
    logger.debug("Running %s strategy with %d rules", strategy.name, len(context.rules))
    return strategy.solve(problem, context)


def simplify(expr: ExpressionLike, rules: Optional[Sequence[Rule]] = None,
             max_iterations: int = config.MAX_ITERATIONS,
             tracing: bool = False) -> SolveResult:
    """Rewrite ``expr`` to a fixed point (built-in rules unless ``rules`` given)."""
    context = SolveContext(rules=ALL_RULES if rules is None else rules,
                           max_iterations=max_iterations, tracing=tracing)
    return solve(_coerce(expr), FullSimplificationStrategy(), context)


def solve_equation(expr: ExpressionLike, target: Union[Symbol, str],
                   rules: Optional[Sequence[Rule]] = None,
                   max_iterations: int = config.MAX_ITERATIONS,
                   tracing: bool = False) -> SolveResult:
    """Solve the equation ``expr`` for ``target``."""
    if isinstance(target, str):
        target = Symbol(target)
    context = SolveContext(target=target, rules=ALL_RULES if rules is None else rules,
                           max_iterations=max_iterations, tracing=tracing)
    return solve(_coerce(expr), EquationSolverStrategy(), context)
