"""
Pattern matching and substitution for symcore.

A pattern is an ordinary expression that may contain ``Wild`` nodes.
Matching a pattern against a concrete expression produces ``Bindings``
(wildcard name -> matched subexpression) or the falsy ``NoMatch``:

    x_ = Wild("x")
    if bindings := match(Add(x_, x_), parse("y + y")):
        print(bindings["x"])          # y

Rules of the matcher:
    - A wildcard accepts anything satisfying its constraint; a repeated
      wildcard must bind canonically equal subexpressions.
    - Other atoms match canonically equal atoms.
    - Operations match the same kind with the same arity, children in order.
    - Add and Multiply match regardless of operand order. When the concrete
      node has more operands than the pattern, the pattern's last wildcard
      operand binds the combination of every operand left over.

``iter_matches`` yields every consistent binding in a fixed order, which is
how a failing rule condition backtracks to the next assignment.
"""

from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from .errors import SubstitutionError
from .expr import (
    CommutativeOperation, Expression, Function, Operation, Wild, canonicalize,
)

BindingsType = Dict[str, Expression]


# ============================================================
# Bindings Class - Dict-like interface for match results
# ============================================================

class Bindings:
    """
    Dict-like wrapper for pattern matching bindings.

        if bindings := match(pattern, expr):
            print(bindings["a"], bindings["b"])
            print(bindings.get("c", default=Number(0)))

    Bindings objects are truthy when a match succeeded, even when empty.
    Use NoMatch (which is falsy) to represent failed matches.
    """

    __slots__ = ('_dict',)

    def __init__(self, pairs: Union[Mapping[str, Expression],
                                    Iterable[Tuple[str, Expression]]] = ()):
        """Initialize from a mapping or from (name, expression) pairs."""
        self._dict: BindingsType = dict(pairs)

    def __bool__(self) -> bool:
        """Bindings are always truthy (use NoMatch for failed matches)."""
        return True

    def __getitem__(self, key: str) -> Expression:
        return self._dict[key]

    def get(self, key: str, default=None):
        """Get a bound value with optional default."""
        return self._dict.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._dict

    def keys(self):
        return self._dict.keys()

    def values(self):
        return self._dict.values()

    def items(self):
        return self._dict.items()

    def __iter__(self):
        return iter(self._dict)

    def __len__(self) -> int:
        return len(self._dict)

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}: {value}" for name, value in self._dict.items())
        return f"Bindings({{{inner}}})"

    def __eq__(self, other):
        if isinstance(other, Bindings):
            return self._dict == other._dict
        return False

    __hash__ = None

    def to_dict(self) -> BindingsType:
        """Convert to a plain dictionary."""
        return self._dict.copy()


class _NoMatch:
    """
    Singleton representing a failed pattern match.

    NoMatch is falsy, allowing natural use in conditionals:

        if bindings := match(pattern, expr):
            # matched
        else:
            # NoMatch
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NoMatch"

    def __getitem__(self, key: str):
        raise KeyError(f"NoMatch has no binding for '{key}'")

    def get(self, key: str, default=None):
        return default

    def __contains__(self, key: str) -> bool:
        return False

    def __len__(self) -> int:
        return 0

    def __iter__(self):
        return iter([])


NoMatch = _NoMatch()

Condition = Callable[[Bindings], bool]


# ============================================================
# Pattern Matching
# ============================================================

def match(pattern: Expression, concrete: Expression,
          bindings: Optional[Mapping[str, Expression]] = None,
          condition: Optional[Condition] = None) -> Union[Bindings, _NoMatch]:
    """
    Match a pattern against a concrete expression.

    Args:
        pattern: Pattern tree (matched as written, never canonicalized)
        concrete: Expression to match; canonicalized first
        bindings: Bindings that must already hold
        condition: Predicate over the final bindings; a false result makes
            the matcher try the next candidate assignment

    Returns:
        Bindings for the first consistent assignment, NoMatch if none
    """
    concrete = canonicalize(concrete)
    for found in iter_matches(pattern, concrete, bindings):
        result = Bindings(found)
        if condition is None or condition(result):
            return result
    return NoMatch


def iter_matches(pattern: Expression, concrete: Expression,
                 bindings: Optional[Mapping[str, Expression]] = None
                 ) -> Iterator[BindingsType]:
    """Yield every consistent binding of ``pattern`` against ``concrete``."""
    start = dict(bindings) if bindings else {}
    return _match(pattern, concrete, start)


def _match(pattern: Expression, concrete: Expression,
           bindings: BindingsType) -> Iterator[BindingsType]:
    if isinstance(pattern, Wild):
        yield from _bind(pattern, concrete, bindings)
    elif isinstance(pattern, Operation):
        if type(pattern) is not type(concrete):
            return
        if isinstance(pattern, Function) and pattern.name != concrete.name:
            return
        if isinstance(pattern, CommutativeOperation):
            yield from _match_commutative(pattern, concrete, bindings)
        elif len(pattern.children) == len(concrete.children):
            yield from _match_sequence(pattern.children, concrete.children, bindings)
    elif pattern == concrete:
        yield bindings


def _bind(wild: Wild, concrete: Expression,
          bindings: BindingsType) -> Iterator[BindingsType]:
    if not wild.accepts(concrete):
        return
    existing = bindings.get(wild.name)
    if existing is None:
        yield {**bindings, wild.name: concrete}
    elif existing == concrete:
        yield bindings


def _match_sequence(patterns: Tuple[Expression, ...], items: Tuple[Expression, ...],
                    bindings: BindingsType) -> Iterator[BindingsType]:
    if not patterns:
        yield bindings
        return
    for extended in _match(patterns[0], items[0], bindings):
        yield from _match_sequence(patterns[1:], items[1:], extended)


def _match_commutative(pattern: CommutativeOperation, concrete: CommutativeOperation,
                       bindings: BindingsType) -> Iterator[BindingsType]:
    patterns = list(pattern.children)
    items = concrete.children
    if len(items) < len(patterns):
        return

    remainder = None
    if len(items) > len(patterns):
        wild_positions = [i for i, p in enumerate(patterns) if isinstance(p, Wild)]
        if not wild_positions:
            return
        remainder = patterns.pop(wild_positions[-1])

    # Concrete sub-patterns first: they reject candidates fastest
    patterns.sort(key=lambda p: isinstance(p, Wild))
    yield from _assign(patterns, items, frozenset(), bindings, type(concrete), remainder)


def _assign(patterns: List[Expression], items: Tuple[Expression, ...], used: frozenset,
            bindings: BindingsType, kind: type,
            remainder: Optional[Expression]) -> Iterator[BindingsType]:
    if not patterns:
        if remainder is None:
            yield bindings
            return
        rest = [item for index, item in enumerate(items) if index not in used]
        combined = rest[0] if len(rest) == 1 else canonicalize(kind(*rest))
        yield from _match(remainder, combined, bindings)
        return

    first, others = patterns[0], patterns[1:]
    for index, item in enumerate(items):
        if index in used:
            continue
        for extended in _match(first, item, bindings):
            yield from _assign(others, items, used | {index}, extended, kind, remainder)


# ============================================================
# Substitution
# ============================================================

def substitute(template: Expression, bindings: Mapping[str, Expression]) -> Expression:
    """
    Replace every wildcard in ``template`` by its bound subexpression.

    The result is not canonicalized.

    Raises:
        SubstitutionError: if the template uses a wildcard with no binding
    """
    if isinstance(template, Wild):
        try:
            return bindings[template.name]
        except KeyError:
            raise SubstitutionError(
                f"Template wildcard '{template.name}' is not bound") from None
    if isinstance(template, Operation):
        return template.with_children(substitute(child, bindings)
                                      for child in template.children)
    return template
