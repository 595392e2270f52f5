"""
Expression builder, rule DSL and the SymEngine facade.

DSL format (.rules files):
    # Comment
    [group]
    @rule-name: pattern => template
    @rule-name "Description text": pattern => template
    @rule-name: pattern => template when guard(?a, ?b) and guard(?c)
    :include other.rules

    Examples:
    @double: ?x + ?x => 2 * ?x
    @d-const "Derivative of a constant": Derivative(?f, ?x) => 0 when free(?f, ?x)

Pattern syntax (the ordinary infix grammar plus wildcards):
    ?x          - match any expression, bind to x
    ?x:const    - match a numeric literal only
    ?x:scalar   - match a scalar-shaped expression only

Guards:
    free(?f, ?x)   - ?x is a symbol that does not occur in ?f
    symbol(?x)     - ?x is a symbol
    const(?x)      - ?x is a numeric literal
    nonzero(?x)    - ?x is not the literal 0

Rules can also come from a ``.py`` file defining a ``RULES`` list.
"""

import importlib.util
import re
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Set, Tuple, Union

from . import config
from .errors import ParseError
from .expr import (
    Curl, Derivative, Div, Expression, Function, Grad, Integral, Number, Symbol,
    Vector, Wild, WildConstraint, as_expression, wild_names,
)
from .formatter import format_expr
from .logging_config import get_logger
from .matcher import Bindings, Condition, NoMatch, match as _match
from .parser import parse
from .rewriter import Rule, RewriteResult, rewrite_fully, rewrite_once
from .rules import ALL_RULES, all_of, free_of, is_constant, is_symbol, nonzero
from .solver import simplify as _simplify, solve_equation
from .strategies import SolveResult

logger = get_logger("engine")

ExpressionLike = Union[Expression, str]


# ============================================================
# Expression Builder
# ============================================================

class _ExprBuilder:
    """
    Expression builder for symcore.

    Examples:
        from symcore import E

        # Parse infix text
        expr = E("x + 2 * y")

        # Build programmatically
        x, y = E.syms("x", "y")
        expr = E.func("sin", x)

        # Pattern wildcards
        a = E.wild("a", "const")
    """

    def __call__(self, text: str) -> Expression:
        """Parse infix text: E("x + 1") -> Add(Symbol('x'), Number('1'))"""
        return parse(text)

    def sym(self, name: str) -> Symbol:
        return Symbol(name)

    def syms(self, *names: str) -> Tuple[Symbol, ...]:
        """
        Create several symbols for unpacking.

        Example:
            x, y, z = E.syms("x", "y", "z")
        """
        return tuple(Symbol(name) for name in names)

    def num(self, value) -> Number:
        return Number(value)

    def wild(self, name: str, constraint: Union[str, WildConstraint] = WildConstraint.NONE) -> Wild:
        """Create a wildcard; ``constraint`` is "any", "const" or "scalar"."""
        if isinstance(constraint, str):
            constraint = WildConstraint(constraint)
        return Wild(name, constraint)

    def func(self, name: str, *args) -> Function:
        """E.func("log", x, 2) -> log(x, 2)"""
        return Function(name, *args)

    def __repr__(self) -> str:
        return "E (expression builder)"


# Singleton instance
E = _ExprBuilder()


# ============================================================
# Rule DSL
# ============================================================

_HEADER_RE = re.compile(r'@([\w-]+)(?:\s+"([^"]*)")?\s*:\s*(.+)')
_GUARD_RE = re.compile(r'(\w+)\s*\(([^()]*)\)$')
_WHEN_RE = re.compile(r'\s+when\s+')
_GUARD_WILD_RE = re.compile(r'\?(\w+)')

GUARDS = {
    "free": (free_of, 2),
    "symbol": (is_symbol, 1),
    "const": (is_constant, 1),
    "nonzero": (nonzero, 1),
}


def parse_guard(text: str) -> Condition:
    """
    Build a condition from guard text.

    Example:
        parse_guard("free(?f, ?x) and nonzero(?a)")
    """
    checks = []
    for part in re.split(r'\s+and\s+', text.strip()):
        found = _GUARD_RE.match(part.strip())
        if not found:
            raise ParseError(f"Malformed guard: {part.strip()!r}")
        name, raw_args = found.group(1), found.group(2)
        if name not in GUARDS:
            raise ParseError(f"Unknown guard {name!r}; known guards: {', '.join(sorted(GUARDS))}")
        factory, arity = GUARDS[name]
        args = [arg.strip() for arg in raw_args.split(",") if arg.strip()]
        if len(args) != arity or not all(arg.startswith("?") and len(arg) > 1 for arg in args):
            raise ParseError(f"Guard {name} expects {arity} wildcard argument(s), got {raw_args!r}")
        checks.append(factory(*(arg[1:] for arg in args)))
    return checks[0] if len(checks) == 1 else all_of(*checks)


def parse_rule_line(line: str, tags: Sequence[str] = ()) -> Optional[Rule]:
    """
    Parse a single rule line.

    Formats:
        @name: pattern => template
        @name "description": pattern => template
        @name: pattern => template when guard(?x)
        pattern => template

    Returns: the Rule, or None for blank lines and comments
    """
    line = line.strip()

    if not line or line.startswith('#'):
        return None

    name = description = None
    if line.startswith('@'):
        header = _HEADER_RE.match(line)
        if not header:
            raise ParseError(f"Malformed rule header: {line!r}")
        name, description, line = header.group(1), header.group(2), header.group(3)

    if '=>' not in line:
        raise ParseError(f"Rule is missing '=>': {line!r}")

    pattern_text, rest = line.split('=>', 1)
    template_text, *guard = _WHEN_RE.split(rest, maxsplit=1)
    condition = parse_guard(guard[0]) if guard else None

    pattern = parse(pattern_text.strip())
    template = parse(template_text.strip())
    if guard:
        unbound = sorted(set(_GUARD_WILD_RE.findall(guard[0])) - wild_names(pattern))
        if unbound:
            raise ParseError("Guard names wildcard(s) not in the pattern: "
                             + ", ".join("?" + name for name in unbound))
    try:
        return Rule(pattern, template, condition, name=name,
                    description=description, tags=tags)
    except ValueError as e:
        raise ParseError(str(e)) from None


def load_rules_from_dsl(
    text: str,
    base_path: Optional[Path] = None,
    _included_files: Optional[Set[Path]] = None
) -> List[Rule]:
    """
    Load rules from DSL text.

    Supports:
    - Named groups: [groupname]
    - File includes: :include path/to/file.rules

    Args:
        text: DSL text containing rules
        base_path: Base path for resolving relative :include paths
        _included_files: Internal tracking for circular include detection

    Raises:
        ParseError: for a malformed line, naming its line number
    """
    rules: List[Rule] = []
    current_group = None

    if _included_files is None:
        _included_files = set()

    for lineno, line in enumerate(text.splitlines(), 1):
        stripped = line.strip()

        if stripped.startswith('[') and stripped.endswith(']'):
            current_group = stripped[1:-1].strip() or None
            continue

        if stripped.startswith(':include '):
            include = Path(stripped[9:].strip())
            if base_path is not None:
                include = base_path / include
            resolved = include.resolve()
            if resolved in _included_files:
                raise ValueError(f"Circular include detected: {include}")
            if not include.exists():
                raise FileNotFoundError(f"Include file not found: {include}")
            _included_files.add(resolved)
            for rule in load_rules_from_file(include, _included_files=_included_files):
                if current_group and not rule.tags:
                    rule = Rule(rule.pattern, rule.template, rule.condition, name=rule.name,
                                description=rule.description, tags=(current_group,))
                rules.append(rule)
            continue

        try:
            rule = parse_rule_line(line, tags=(current_group,) if current_group else ())
        except ParseError as e:
            raise ParseError(f"Line {lineno}: {e}") from None
        if rule is not None:
            rules.append(rule)

    logger.debug("Loaded %d rule(s) from DSL text", len(rules))
    return rules


def load_rules_from_file(
    path: Union[str, Path],
    _included_files: Optional[Set[Path]] = None
) -> List[Rule]:
    """
    Load rules from a .rules (DSL) or .py file.

    A Python rules file defines ``RULES``: a list of ``Rule`` objects or of
    ``(pattern, template)`` pairs whose parts may be infix text.
    """
    path = Path(path)

    if path.suffix == '.py':
        return _load_python_rules(path)

    if _included_files is None:
        _included_files = {path.resolve()}
    return load_rules_from_dsl(
        path.read_text(),
        base_path=path.parent,
        _included_files=_included_files
    )


def _load_python_rules(path: Path) -> List[Rule]:
    spec = importlib.util.spec_from_file_location(f"symcore_rules_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load rules module from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    entries = getattr(module, "RULES", None)
    if entries is None:
        raise ValueError(f"{path} does not define RULES")

    rules = []
    for entry in entries:
        if isinstance(entry, Rule):
            rules.append(entry)
            continue
        pattern, template, *condition = entry
        rules.append(Rule(_coerce(pattern), _coerce(template),
                          condition[0] if condition else None))
    logger.debug("Loaded %d rule(s) from %s", len(rules), path)
    return rules


def _coerce(expr) -> Expression:
    return parse(expr) if isinstance(expr, str) else as_expression(expr)


# ============================================================
# Engine
# ============================================================

class SymEngine:
    """
    Rule set plus the operations that use it.

    Example:
        engine = SymEngine()                       # built-in rules
        engine.simplify("x + x").expression        # 2 * x
        engine.solve("2 * x + 5 = 15", "x")        # x = 5
        engine.differentiate("x ** 3", "x")        # 3 * x ** 2

        custom = SymEngine.from_dsl('''
            [trig]
            @pythagoras: sin(?x) ** 2 + cos(?x) ** 2 => 1
        ''')
    """

    def __init__(self, rules: Optional[Sequence[Rule]] = None,
                 max_iterations: int = config.MAX_ITERATIONS):
        """
        Args:
            rules: Initial rules (default: the built-in rule sets)
            max_iterations: Cap on rewrite passes for every operation
        """
        self._rules: List[Rule] = list(ALL_RULES if rules is None else rules)
        self._disabled_groups: Set[str] = set()
        self.max_iterations = max_iterations

    # -- loading ---------------------------------------------------------

    def load_rules(self, rules: Sequence[Rule]) -> 'SymEngine':
        """Append rules; returns self for chaining."""
        self._rules.extend(rules)
        return self

    def load_dsl(self, text: str) -> 'SymEngine':
        """Load rules from DSL text."""
        return self.load_rules(load_rules_from_dsl(text))

    def load_file(self, path: Union[str, Path]) -> 'SymEngine':
        """Load rules from a file (.rules or .py)."""
        rules = load_rules_from_file(path)
        logger.info("Loaded %d rule(s) from %s", len(rules), path)
        return self.load_rules(rules)

    def add_rule(self, pattern: ExpressionLike, template: ExpressionLike,
                 condition: Optional[Condition] = None,
                 name: Optional[str] = None, description: Optional[str] = None,
                 tags: Sequence[str] = ()) -> 'SymEngine':
        """Add a single rule; pattern and template may be infix text."""
        self._rules.append(Rule(_coerce(pattern), _coerce(template), condition,
                                name=name, description=description, tags=tags))
        return self

    def clear(self) -> 'SymEngine':
        """Remove all rules."""
        self._rules = []
        return self

    # -- groups ----------------------------------------------------------

    def disable_group(self, group: str) -> 'SymEngine':
        self._disabled_groups.add(group)
        return self

    def enable_group(self, group: str) -> 'SymEngine':
        self._disabled_groups.discard(group)
        return self

    def groups(self) -> Set[str]:
        """All group names used by rules."""
        return {tag for rule in self._rules for tag in rule.tags}

    @property
    def disabled_groups(self) -> Set[str]:
        return set(self._disabled_groups)

    def active_rules(self) -> List[Rule]:
        """Rules not in a disabled group, in order."""
        return [rule for rule in self._rules
                if not any(tag in self._disabled_groups for tag in rule.tags)]

    @property
    def rules(self) -> List[Rule]:
        return list(self._rules)

    # -- matching and rewriting --------------------------------------------

    def match(self, pattern: ExpressionLike, expr: ExpressionLike) -> Union[Bindings, type(NoMatch)]:
        """
        Match a pattern against an expression.

        Example:
            if bindings := engine.match("?a * ?b", "2 * y"):
                print(bindings["a"], bindings["b"])
        """
        return _match(_coerce(pattern), _coerce(expr))

    def rules_matching(self, expr: ExpressionLike) -> List[Tuple[Rule, Bindings]]:
        """
        Active rules that apply at the top of ``expr``, with their bindings.

        Useful for finding out why an expression does not simplify.
        """
        expr = _coerce(expr)
        found = []
        for rule in self.active_rules():
            bindings = rule.match(expr)
            if bindings:
                found.append((rule, bindings))
        return found

    def rewrite_once(self, expr: ExpressionLike, record: bool = False) -> RewriteResult:
        return rewrite_once(_coerce(expr), self.active_rules(), record=record)

    def rewrite_fully(self, expr: ExpressionLike, record: bool = False) -> RewriteResult:
        return rewrite_fully(_coerce(expr), self.active_rules(),
                             max_iterations=self.max_iterations, record=record)

    # -- solving -------------------------------------------------------------

    def simplify(self, expr: ExpressionLike, tracing: bool = False) -> SolveResult:
        return _simplify(_coerce(expr), self.active_rules(),
                         max_iterations=self.max_iterations, tracing=tracing)

    def solve(self, equation: ExpressionLike, variable: Union[Symbol, str],
              tracing: bool = False) -> SolveResult:
        """Solve ``equation`` for ``variable``."""
        return solve_equation(_coerce(equation), variable, self.active_rules(),
                              max_iterations=self.max_iterations, tracing=tracing)

    def differentiate(self, expr: ExpressionLike, variable: Union[Symbol, str],
                      tracing: bool = False) -> SolveResult:
        return self.simplify(Derivative(_coerce(expr), _symbol(variable)), tracing)

    def integrate(self, expr: ExpressionLike, variable: Union[Symbol, str],
                  tracing: bool = False) -> SolveResult:
        return self.simplify(Integral(_coerce(expr), _symbol(variable)), tracing)

    def grad(self, field: ExpressionLike, variables, tracing: bool = False) -> SolveResult:
        """Gradient of a scalar field, e.g. ``grad("x * y", "x, y")``."""
        return self.simplify(Grad(_coerce(field), _variables(variables)), tracing)

    def div(self, field: ExpressionLike, variables, tracing: bool = False) -> SolveResult:
        return self.simplify(Div(_coerce(field), _variables(variables)), tracing)

    def curl(self, field: ExpressionLike, variables, tracing: bool = False) -> SolveResult:
        return self.simplify(Curl(_coerce(field), _variables(variables)), tracing)

    # -- output ------------------------------------------------------------

    def format(self, expr: ExpressionLike) -> str:
        return format_expr(_coerce(expr))

    def list_rules(self) -> List[str]:
        """All rules in DSL form."""
        return [rule.to_dsl() for rule in self._rules]

    def to_dsl(self, name: Optional[str] = None) -> str:
        """
        Export rules as DSL text, with a ``[group]`` header per group run.

        Guarded rules are marked with a comment; their conditions are code.
        """
        lines = []
        if name:
            lines.append(f"# {name}")
            lines.append("")

        current_group = None
        for rule in self._rules:
            group = rule.tags[0] if rule.tags else None
            if group != current_group:
                if group:
                    if lines and lines[-1] != "":
                        lines.append("")
                    lines.append(f"[{group}]")
                current_group = group
            lines.append(rule.to_dsl())

        return "\n".join(lines)

    # -- protocol ------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"SymEngine({len(self._rules)} rules)"

    def __call__(self, expr: ExpressionLike) -> Expression:
        """engine(expr) is shorthand for engine.simplify(expr).expression"""
        return self.simplify(expr).expression

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __contains__(self, name: str) -> bool:
        """Check if a named rule exists: 'collect-identical' in engine."""
        return any(rule.name == name for rule in self._rules)

    def __getitem__(self, name: str) -> Rule:
        for rule in self._rules:
            if rule.name == name:
                return rule
        raise KeyError(f"No rule named '{name}'")

    @classmethod
    def from_dsl(cls, text: str, **kwargs) -> 'SymEngine':
        """Engine holding only the rules in ``text``."""
        return cls(rules=load_rules_from_dsl(text), **kwargs)

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> 'SymEngine':
        return cls(rules=load_rules_from_file(path), **kwargs)


def _symbol(variable: Union[Symbol, str]) -> Symbol:
    return Symbol(variable) if isinstance(variable, str) else variable


def _variables(variables) -> Expression:
    """A Vector of variables from a Vector, "x, y" text, or a sequence."""
    if isinstance(variables, Expression):
        return variables
    if isinstance(variables, str):
        variables = [name.strip() for name in variables.split(",") if name.strip()]
    return Vector(*(_symbol(v) for v in variables))
