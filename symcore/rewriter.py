"""
Rules and the rewriting engine.

A rule pairs a pattern with a replacement template and an optional
condition over the bindings:

    x_ = Wild("x")
    rule = Rule(Add(x_, x_), Multiply(2, x_), name="collect-identical")
    rewrite_fully(parse("y + y"), [rule]).expression      # 2 * y

Rewriting works in passes. One pass visits the tree in post-order; at each
node the rules are tried in list order and the first one that produces a
different expression replaces the node. The replacement is not revisited
in the same pass. ``rewrite_fully`` repeats passes until one changes
nothing or the iteration cap is reached.
"""

from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from . import config
from .expr import Expression, Operation, canonicalize, wild_names
from .logging_config import get_logger
from .matcher import Condition, match, substitute

logger = get_logger("rewriter")


class Rule:
    """An immutable (pattern, template, condition) triple with metadata."""

    __slots__ = ("pattern", "template", "condition", "name", "description", "tags")

    def __init__(self, pattern: Expression, template: Expression,
                 condition: Optional[Condition] = None,
                 name: Optional[str] = None, description: Optional[str] = None,
                 tags: Sequence[str] = ()):
        missing = wild_names(template) - wild_names(pattern)
        if missing:
            raise ValueError(
                f"Template uses wildcard(s) absent from the pattern: {', '.join(sorted(missing))}")
        self.pattern = pattern
        self.template = template
        self.condition = condition
        self.name = name
        self.description = description
        self.tags: Tuple[str, ...] = tuple(tags)

    @property
    def label(self) -> str:
        return self.name or "<anonymous>"

    def match(self, expr: Expression):
        """Bindings for ``expr`` satisfying the condition, or NoMatch."""
        return match(self.pattern, expr, condition=self.condition)

    def apply(self, expr: Expression) -> Optional[Expression]:
        """Canonical replacement for ``expr``, or None if the rule does not match."""
        bindings = self.match(expr)
        if not bindings:
            return None
        return canonicalize(substitute(self.template, bindings))

    def to_dsl(self) -> str:
        from .formatter import format_expr
        head = ""
        if self.name:
            head = f"@{self.name}"
            if self.description:
                head += f' "{self.description}"'
            head += ": "
        line = (f"{head}{format_expr(self.pattern, canonical=False)} => "
                f"{format_expr(self.template, canonical=False)}")
        if self.condition is not None:
            line += "  # guarded"
        return line

    def __repr__(self) -> str:
        return f"Rule({self.to_dsl()})"


class RewriteStep:
    """A single rule application recorded during rewriting."""

    __slots__ = ("rule", "before", "after")

    def __init__(self, rule: Rule, before: Expression, after: Expression):
        self.rule = rule
        self.before = before
        self.after = after

    def __repr__(self) -> str:
        return f"{self.rule.label}: {self.before} -> {self.after}"

    def to_dict(self) -> Dict:
        return {
            "rule_name": self.rule.name,
            "description": self.rule.description,
            "before": str(self.before),
            "after": str(self.after),
        }


class RewriteResult:
    """
    Outcome of rewriting.

    Unpacks as ``(expression, changed)``:

        expr, changed = rewrite_once(expr, rules)
    """

    __slots__ = ("expression", "changed", "iterations", "converged", "steps")

    def __init__(self, expression: Expression, changed: bool, iterations: int,
                 converged: bool, steps: Sequence[RewriteStep] = ()):
        self.expression = expression
        self.changed = changed
        self.iterations = iterations
        self.converged = converged
        self.steps: Tuple[RewriteStep, ...] = tuple(steps)

    def __iter__(self) -> Iterator:
        yield self.expression
        yield self.changed

    def rules_applied(self) -> List[str]:
        return [step.rule.label for step in self.steps]

    def __repr__(self) -> str:
        return (f"RewriteResult({self.expression}, changed={self.changed}, "
                f"iterations={self.iterations}, converged={self.converged})")


def rewrite_once(expression: Expression, rules: Sequence[Rule],
                 record: bool = False) -> RewriteResult:
    """Run a single post-order pass over ``expression``."""
    steps: Optional[List[RewriteStep]] = [] if record else None
    result, changed = _rewrite_node(canonicalize(expression), rules, steps)
    return RewriteResult(result, changed, iterations=1, converged=not changed,
                         steps=steps or ())


def rewrite_fully(expression: Expression, rules: Sequence[Rule],
                  max_iterations: int = config.MAX_ITERATIONS,
                  record: bool = False) -> RewriteResult:
    """
    Repeat rewrite passes until one changes nothing or ``max_iterations``
    passes have run. ``converged`` tells the two outcomes apart.
    """
    steps: Optional[List[RewriteStep]] = [] if record else None
    current = canonicalize(expression)
    changed_any = False
    iterations = 0
    while iterations < max_iterations:
        current, changed = _rewrite_node(current, rules, steps)
        iterations += 1
        if not changed:
            return RewriteResult(current, changed_any, iterations, True, steps or ())
        changed_any = True
    logger.info("No fixed point after %d passes", max_iterations)
    return RewriteResult(current, changed_any, iterations, False, steps or ())


def _rewrite_node(node: Expression, rules: Sequence[Rule],
                  steps: Optional[List[RewriteStep]]) -> Tuple[Expression, bool]:
    changed = False
    if isinstance(node, Operation):
        children = []
        for child in node.children:
            new_child, child_changed = _rewrite_node(child, rules, steps)
            children.append(new_child)
            changed = changed or child_changed
        if changed:
            rebuilt = canonicalize(node.with_children(children))
            changed = not rebuilt.same_structure(node)
            node = rebuilt

    for rule in rules:
        replacement = rule.apply(node)
        if replacement is None or replacement.same_structure(node):
            continue
        logger.debug("%s: %s -> %s", rule.label, node, replacement)
        if steps is not None:
            steps.append(RewriteStep(rule, node, replacement))
        return replacement, True

    return node, changed
