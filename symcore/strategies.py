"""
Solver strategies.

A strategy turns a problem expression plus a ``SolveContext`` into a
``SolveResult``. Failures are reported in the result, never raised:

    context = SolveContext(target=Symbol("x"), rules=ALL_RULES)
    result = EquationSolverStrategy().solve(equation, context)
    if result.success:
        print(result.expression)          # x = 5
    else:
        print(result.message)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from . import config
from .expr import (
    Add, Divide, Equality, Expression, Function, Multiply, Number, Power,
    Subtract, Symbol, canonicalize, contains_symbol, is_number,
)
from .logging_config import get_logger
from .rewriter import Rule, rewrite_fully, rewrite_once

logger = get_logger("strategies")


@dataclass(frozen=True)
class SolveContext:
    """Configuration for one solve: target, rules, iteration cap, tracing."""

    target: Optional[Symbol] = None
    rules: Tuple[Rule, ...] = ()
    max_iterations: int = config.MAX_ITERATIONS
    tracing: bool = False

    def __post_init__(self):
        object.__setattr__(self, "rules", tuple(self.rules))
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be >= 0, got {self.max_iterations}")
        if self.target is not None and not isinstance(self.target, Symbol):
            raise TypeError(f"target must be a Symbol, got {type(self.target).__name__}")


@dataclass(frozen=True)
class SolveResult:
    """Outcome of a solve: flag, (best-effort) expression, message, optional trace."""

    success: bool
    expression: Optional[Expression]
    message: str = ""
    trace: Optional[Tuple[Expression, ...]] = None

    @classmethod
    def succeeded(cls, expression: Expression, message: str = "",
                  trace: Optional[Sequence[Expression]] = None) -> "SolveResult":
        return cls(True, expression, message, None if trace is None else tuple(trace))

    @classmethod
    def failed(cls, expression: Optional[Expression], message: str,
               trace: Optional[Sequence[Expression]] = None) -> "SolveResult":
        return cls(False, expression, message, None if trace is None else tuple(trace))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: Dict[str, Any] = {
            "success": self.success,
            "expression": None if self.expression is None else str(self.expression),
            "message": self.message,
        }
        if self.trace is not None:
            result["trace"] = [str(step) for step in self.trace]
        return result

    def __str__(self) -> str:
        if self.success:
            return str(self.expression)
        return f"Failed: {self.message}"


class SolverStrategy(ABC):
    """Uniform contract: problem + context -> SolveResult."""

    name = "strategy"

    @abstractmethod
    def solve(self, problem: Expression, context: SolveContext) -> SolveResult:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _record(trace: Optional[List[Expression]], expression: Expression) -> None:
    if trace is not None and not (trace and trace[-1].same_structure(expression)):
        trace.append(expression)


def _positive(expr: Expression) -> bool:
    return isinstance(expr, Number) and expr.value > 0


# ============================================================
# Simplification
# ============================================================

class FullSimplificationStrategy(SolverStrategy):
    """Rewrite to a fixed point, one pass per iteration."""

    name = "simplify"

    def solve(self, problem: Expression, context: SolveContext) -> SolveResult:
        if problem is None:
            return SolveResult.failed(None, "Problem expression cannot be None")

        current = canonicalize(problem)
        trace = [current] if context.tracing else None

        for passes in range(context.max_iterations):
            current, changed = rewrite_once(current, context.rules)
            if not changed:
                logger.debug("Fixed point after %d changing pass(es)", passes)
                return SolveResult.succeeded(current, "Simplification complete", trace)
            _record(trace, current)

        logger.info("Simplification hit the iteration cap (%d)", context.max_iterations)
        return SolveResult.failed(
            current, f"Max iterations ({context.max_iterations}) reached", trace)


# ============================================================
# Equation solving
# ============================================================

class EquationSolverStrategy(SolverStrategy):
    """
    Solve ``left = right`` for the context's target symbol.

    Each iteration simplifies the equation with the rule set, then peels the
    outermost operation off the side holding the target using its inverse:

        a + b = c        b = c - a
        a * b = c        b = c / a          (a != 0)
        b ** n = c       b = c ** (1 / n)   (n != 0)
        n ** b = c       b = log(c, n)      (n not 0 or 1)
        f(b) = c         b = f^-1(c)        (sin, cos, tan, exp, log)
        log(b, n) = c    b = n ** c         (n not 0 or 1)

    When both sides hold the target the equation becomes
    ``left - right = 0``.
    """

    name = "solve"

    INVERSE_FUNCTIONS = {
        "sin": "asin", "asin": "sin",
        "cos": "acos", "acos": "cos",
        "tan": "atan", "atan": "tan",
        "exp": "log", "log": "exp", "ln": "exp",
    }

    def solve(self, problem: Expression, context: SolveContext) -> SolveResult:
        if not isinstance(problem, Equality):
            return SolveResult.failed(problem, "Problem must be an equation (Equality)")
        target = context.target
        if target is None:
            return SolveResult.failed(problem, "No target variable supplied")
        if not contains_symbol(problem, target):
            return SolveResult.failed(
                problem, f"Target variable '{target.name}' does not occur in the equation")

        current = canonicalize(problem)
        trace = [current] if context.tracing else None

        for iteration in range(context.max_iterations):
            progressed = False

            rewritten = rewrite_fully(current, context.rules, context.max_iterations)
            if rewritten.changed:
                if not isinstance(rewritten.expression, Equality):
                    return SolveResult.failed(
                        rewritten.expression, "Rewriting did not preserve the equation", trace)
                current = rewritten.expression
                progressed = True
                _record(trace, current)

            solution = self._solution(current, target)
            if solution is not None:
                return self._success(solution, target, trace)

            left_has = contains_symbol(current.left, target)
            right_has = contains_symbol(current.right, target)
            if not left_has and not right_has:
                return SolveResult.failed(current, self._eliminated(current, target), trace)

            if left_has and right_has:
                step = canonicalize(Equality(Subtract(current.left, current.right), 0))
            elif left_has:
                step = self._isolate(current.left, current.right, target)
            else:
                step = self._isolate(current.right, current.left, target)

            if step is not None and not step.same_structure(current):
                logger.debug("Iteration %d: %s", iteration, step)
                current = step
                progressed = True
                _record(trace, current)
                solution = self._solution(current, target)
                if solution is not None:
                    return self._success(self._tidy(solution, target, context), target, trace)

            if not progressed:
                return SolveResult.failed(current, "No further progress achievable", trace)

        return SolveResult.failed(
            current, f"Max iterations ({context.max_iterations}) reached", trace)

    @staticmethod
    def _solution(equation: Equality, target: Symbol) -> Optional[Equality]:
        """``target = value`` if one side is the bare target and the other is free of it."""
        for side, other in ((equation.left, equation.right),
                            (equation.right, equation.left)):
            if side.same_structure(target) and not contains_symbol(other, target):
                return equation if side is equation.left else canonicalize(Equality(side, other))
        return None

    @staticmethod
    def _tidy(solution: Equality, target: Symbol, context: SolveContext) -> Equality:
        """Rewrite the value side of a solution once more with the context rules."""
        rewritten = rewrite_fully(solution.right, context.rules, context.max_iterations)
        if not rewritten.changed or contains_symbol(rewritten.expression, target):
            return solution
        return canonicalize(Equality(solution.left, rewritten.expression))

    @staticmethod
    def _success(solution: Equality, target: Symbol,
                 trace: Optional[List[Expression]]) -> SolveResult:
        _record(trace, solution)
        logger.info("Solved for %s: %s", target.name, solution)
        return SolveResult.succeeded(solution, f"Solved for '{target.name}'", trace)

    @staticmethod
    def _eliminated(equation: Equality, target: Symbol) -> str:
        message = (f"No further progress achievable: target variable '{target.name}' "
                   f"could not be isolated")
        left, right = equation.left, equation.right
        if isinstance(left, Number) and isinstance(right, Number):
            if left.value == right.value:
                return f"{message}; the equation holds for every value of '{target.name}'"
            return f"{message}; the equation reduces to {equation}, which has no valid solution"
        return message

    def _isolate(self, side: Expression, other: Expression,
                 target: Symbol) -> Optional[Equality]:
        """One isolation step on the side holding ``target``, or None."""
        if isinstance(side, (Add, Multiply)):
            dependent = [op for op in side.operands if contains_symbol(op, target)]
            if len(dependent) != 1:
                return None
            rest = [op for op in side.operands if not contains_symbol(op, target)]
            if isinstance(side, Add):
                return self._equation(dependent[0], Subtract(other, Add(*rest)))
            remainder = canonicalize(Multiply(*rest))
            if is_number(remainder, 0):
                logger.debug("Isolation blocked: division by zero")
                return None
            return self._equation(dependent[0], Divide(other, remainder))

        if isinstance(side, Power):
            base_has = contains_symbol(side.base, target)
            exponent_has = contains_symbol(side.exponent, target)
            if base_has and not exponent_has:
                if is_number(side.exponent, 0):
                    return None
                if is_number(other, 0) and not _positive(side.exponent):
                    logger.debug("Isolation blocked: zero to a non-positive power")
                    return None
                return self._equation(side.base, Power(other, Divide(1, side.exponent)))
            if exponent_has and not base_has:
                if is_number(side.base, 0) or is_number(side.base, 1):
                    return None
                return self._equation(side.exponent, Function("log", other, side.base))
            return None

        if isinstance(side, Function):
            name = side.name.lower()
            if len(side.args) == 1 and name in self.INVERSE_FUNCTIONS:
                return self._equation(side.args[0],
                                      Function(self.INVERSE_FUNCTIONS[name], other))
            if len(side.args) == 2 and name == "log":
                value, base = side.args
                if contains_symbol(base, target):
                    return None
                if is_number(base, 0) or is_number(base, 1):
                    return None
                return self._equation(value, Power(base, other))

        return None

    @staticmethod
    def _equation(target_side: Expression, other_side: Expression) -> Equality:
        return canonicalize(Equality(target_side, other_side))
