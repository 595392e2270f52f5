"""
Expression model and canonicalization for symcore.

Expressions are immutable trees. Leaves are atoms (Number, Symbol, Wild);
interior nodes are operations owning a tuple of children:

    n-ary, commutative      Add, Multiply
    binary                  Subtract, Divide, Power
    fixed arity             Equality, Derivative, Integral, Grad, Div, Curl
    named, variadic         Function
    containers              Vector, Matrix

Equality and hashing always use the canonical form:

    Add(Symbol("y"), Symbol("x")) == Add(Symbol("x"), Symbol("y"))   # True
    Multiply(Symbol("y"), Number(0)) == Number(0)                    # True

Use ``same_structure`` when the raw trees must be compared.

Canonical form rules:
    Add         flatten, fold literals, drop 0, sort, unwrap single operand
    Multiply    flatten, fold literals, drop 1, collapse on 0, sort, unwrap
    Subtract    a - b  ->  a + (-1 * b)
    Divide      a / b  ->  a * b^-1, except that a literal 0 divisor stays
    Power       x^0 -> 1, x^1 -> x, 1^x -> 1, 0^n -> 0 (n > 0),
                (x^m)^n -> x^(m*n), numeric powers fold
    Function    known functions of numeric arguments fold
    others      children canonicalized in place
"""

from decimal import Decimal
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Set, Tuple, Union

from . import decimals
from .decimals import NumberLike
from .errors import ExpressionError
from .shape import Shape

# Sort/identity key: (kind rank, tag, numeric payload, child keys)
SortKey = Tuple[int, str, Decimal, tuple]

_NUMBER, _SYMBOL, _WILD, _OPERATION = range(4)


class WildConstraint(Enum):
    """What a wildcard is allowed to match."""

    NONE = "any"
    CONSTANT = "const"
    SCALAR = "scalar"


# ============================================================
# Base classes
# ============================================================

class Expression:
    """Base class of every expression node."""

    __slots__ = ("_key", "_canonical")

    def __init__(self):
        self._key: Optional[SortKey] = None
        self._canonical: Optional["Expression"] = None

    @property
    def children(self) -> Tuple["Expression", ...]:
        return ()

    @property
    def shape(self) -> Shape:
        raise NotImplementedError

    @property
    def key(self) -> SortKey:
        """Structural key; orders expressions totally and identifies raw trees."""
        if self._key is None:
            self._key = self._compute_key()
        return self._key

    def _compute_key(self) -> SortKey:
        raise NotImplementedError

    def canonical(self) -> "Expression":
        return canonicalize(self)

    def is_canonical(self) -> bool:
        return self._canonical is self

    def same_structure(self, other: "Expression") -> bool:
        """Raw structural identity, without canonicalizing either side."""
        return self is other or self.key == other.key

    def walk(self) -> Iterator["Expression"]:
        """Yield this node and all descendants in pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def depth(self) -> int:
        return 1 + max((child.depth() for child in self.children), default=0)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Expression):
            return NotImplemented
        return canonicalize(self).key == canonicalize(other).key

    def __hash__(self) -> int:
        return hash(canonicalize(self).key)

    def __str__(self) -> str:
        from .formatter import format_expr
        return format_expr(self)


class Atom(Expression):
    """A leaf node."""

    __slots__ = ()


class Operation(Expression):
    """An interior node combining child expressions."""

    __slots__ = ("_children",)

    def __init__(self, *children: Union[Expression, NumberLike]):
        super().__init__()
        self._children = tuple(as_expression(child) for child in children)

    @property
    def children(self) -> Tuple[Expression, ...]:
        return self._children

    @property
    def op_name(self) -> str:
        return type(self).__name__

    def with_children(self, children: Iterable[Expression]) -> "Operation":
        """A node of the same kind over new children."""
        return type(self)(*children)

    def _compute_key(self) -> SortKey:
        return (_OPERATION, self.op_name, decimals.ZERO,
                tuple(child.key for child in self._children))

    def __repr__(self) -> str:
        args = ", ".join(repr(child) for child in self._children)
        return f"{type(self).__name__}({args})"


# ============================================================
# Atoms
# ============================================================

class Number(Atom):
    """An exact decimal literal."""

    __slots__ = ("value",)

    def __init__(self, value: NumberLike):
        super().__init__()
        self.value: Decimal = decimals.to_decimal(value)

    @property
    def shape(self) -> Shape:
        return Shape.SCALAR

    def _compute_key(self) -> SortKey:
        return (_NUMBER, "", self.value, ())

    def __repr__(self) -> str:
        return f"Number({decimals.format_decimal(self.value)!r})"


class Symbol(Atom):
    """A named variable, optionally vector- or matrix-shaped."""

    __slots__ = ("name", "_shape")

    def __init__(self, name: str, shape: Shape = Shape.SCALAR):
        super().__init__()
        if not isinstance(name, str) or not name:
            raise ExpressionError("Symbol name must be a non-empty string")
        self.name = name
        self._shape = shape

    @property
    def shape(self) -> Shape:
        return self._shape

    def _compute_key(self) -> SortKey:
        tag = self.name if self._shape.is_scalar else f"{self.name}{self._shape}"
        return (_SYMBOL, tag, decimals.ZERO, ())

    def __repr__(self) -> str:
        if self._shape.is_scalar:
            return f"Symbol({self.name!r})"
        return f"Symbol({self.name!r}, {self._shape!r})"


class Wild(Atom):
    """A pattern placeholder that binds whatever it matches under ``name``."""

    __slots__ = ("name", "constraint")

    def __init__(self, name: str, constraint: WildConstraint = WildConstraint.NONE):
        super().__init__()
        if not isinstance(name, str) or not name:
            raise ExpressionError("Wildcard name must be a non-empty string")
        self.name = name
        self.constraint = constraint

    @property
    def shape(self) -> Shape:
        return Shape.WILDCARD

    def accepts(self, expr: Expression) -> bool:
        """Check the constraint against a concrete expression."""
        if self.constraint is WildConstraint.CONSTANT:
            return isinstance(expr, Number)
        if self.constraint is WildConstraint.SCALAR:
            return expr.shape.is_scalar
        return True

    def _compute_key(self) -> SortKey:
        return (_WILD, f"{self.name}:{self.constraint.value}", decimals.ZERO, ())

    def __repr__(self) -> str:
        if self.constraint is WildConstraint.NONE:
            return f"Wild({self.name!r})"
        return f"Wild({self.name!r}, {self.constraint})"


# ============================================================
# Operations
# ============================================================

class CommutativeOperation(Operation):
    """Associative, commutative n-ary operation."""

    __slots__ = ()

    @property
    def operands(self) -> Tuple[Expression, ...]:
        return self._children

    @property
    def shape(self) -> Shape:
        return Shape.combine_all(child.shape for child in self._children)


class Add(CommutativeOperation):
    __slots__ = ()


class Multiply(CommutativeOperation):
    __slots__ = ()


class FixedOperation(Operation):
    """Operation with a fixed number of children."""

    __slots__ = ()
    ARITY = 2

    def __init__(self, *children: Union[Expression, NumberLike]):
        if len(children) != self.ARITY:
            raise ExpressionError(
                f"{type(self).__name__} takes {self.ARITY} arguments, got {len(children)}")
        super().__init__(*children)

    @property
    def left(self) -> Expression:
        return self._children[0]

    @property
    def right(self) -> Expression:
        return self._children[1]

    @property
    def shape(self) -> Shape:
        return Shape.combine_all(child.shape for child in self._children)


class Subtract(FixedOperation):
    __slots__ = ()


class Divide(FixedOperation):
    __slots__ = ()

    @property
    def numerator(self) -> Expression:
        return self._children[0]

    @property
    def denominator(self) -> Expression:
        return self._children[1]


class Power(FixedOperation):
    __slots__ = ()

    @property
    def base(self) -> Expression:
        return self._children[0]

    @property
    def exponent(self) -> Expression:
        return self._children[1]

    @property
    def shape(self) -> Shape:
        exponent = self.exponent.shape
        if exponent.is_scalar or exponent.is_wildcard:
            return self.base.shape
        return Shape.ERROR


class Equality(FixedOperation):
    __slots__ = ()


class CalculusOperation(FixedOperation):
    """An operator applied to ``expression`` with respect to ``variable``."""

    __slots__ = ()

    @property
    def expression(self) -> Expression:
        return self._children[0]

    @property
    def variable(self) -> Expression:
        return self._children[1]

    @property
    def shape(self) -> Shape:
        return self.expression.shape


class Derivative(CalculusOperation):
    __slots__ = ()


class Integral(CalculusOperation):
    """Indefinite integral."""

    __slots__ = ()


class VectorCalculusOperation(FixedOperation):
    """Grad, Div and Curl: a field and the vector of variables."""

    __slots__ = ()

    @property
    def field(self) -> Expression:
        return self._children[0]

    @property
    def variables(self) -> Expression:
        return self._children[1]

    def _operand_shapes(self) -> Tuple[Shape, Shape]:
        return self.field.shape, self.variables.shape


class Grad(VectorCalculusOperation):
    __slots__ = ()

    @property
    def shape(self) -> Shape:
        field, variables = self._operand_shapes()
        if field.is_wildcard or variables.is_wildcard:
            return Shape.WILDCARD
        if field.is_scalar and variables.is_vector:
            return variables
        return Shape.ERROR


class Div(VectorCalculusOperation):
    __slots__ = ()

    @property
    def shape(self) -> Shape:
        field, variables = self._operand_shapes()
        if field.is_wildcard or variables.is_wildcard:
            return Shape.WILDCARD
        if field.is_vector and field == variables:
            return Shape.SCALAR
        return Shape.ERROR


class Curl(VectorCalculusOperation):
    __slots__ = ()

    @property
    def shape(self) -> Shape:
        field, variables = self._operand_shapes()
        if field.is_wildcard or variables.is_wildcard:
            return Shape.WILDCARD
        if field == Shape.vector(3) and variables == Shape.vector(3):
            return field
        return Shape.ERROR


class Function(Operation):
    """A named function applied to arguments, e.g. ``sin(x)`` or ``log(x, 2)``."""

    __slots__ = ("name",)

    def __init__(self, name: str, *args: Union[Expression, NumberLike]):
        if not isinstance(name, str) or not name:
            raise ExpressionError("Function name must be a non-empty string")
        super().__init__(*args)
        self.name = name

    @property
    def args(self) -> Tuple[Expression, ...]:
        return self._children

    @property
    def op_name(self) -> str:
        return f"Function:{self.name}"

    @property
    def shape(self) -> Shape:
        return Shape.combine_all(child.shape for child in self._children)

    def with_children(self, children: Iterable[Expression]) -> "Function":
        return Function(self.name, *children)

    def __repr__(self) -> str:
        args = "".join(f", {child!r}" for child in self._children)
        return f"Function({self.name!r}{args})"


class Vector(Operation):
    __slots__ = ()

    def __init__(self, *components: Union[Expression, NumberLike]):
        if not components:
            raise ExpressionError("Vector needs at least one component")
        super().__init__(*components)

    @property
    def components(self) -> Tuple[Expression, ...]:
        return self._children

    @property
    def shape(self) -> Shape:
        shapes = [child.shape for child in self._children]
        if any(s.is_wildcard for s in shapes):
            return Shape.WILDCARD
        if all(s.is_scalar for s in shapes):
            return Shape.vector(len(shapes))
        return Shape.ERROR


class Matrix(Operation):
    """A matrix given by its row vectors."""

    __slots__ = ()

    def __init__(self, *rows: Expression):
        if not rows:
            raise ExpressionError("Matrix needs at least one row")
        for row in rows:
            if not isinstance(row, Vector):
                raise ExpressionError(f"Matrix rows must be vectors, got {row!r}")
        super().__init__(*rows)

    @property
    def rows(self) -> Tuple[Expression, ...]:
        return self._children

    @property
    def shape(self) -> Shape:
        shapes = [row.shape for row in self._children]
        if any(s.is_wildcard for s in shapes):
            return Shape.WILDCARD
        if all(s.is_vector for s in shapes) and len({s.dims for s in shapes}) == 1:
            return Shape.matrix(len(shapes), shapes[0].dims[0])
        return Shape.ERROR


# ============================================================
# Helpers
# ============================================================

def as_expression(value: Union[Expression, NumberLike]) -> Expression:
    """Pass expressions through; wrap plain numbers in Number."""
    if isinstance(value, Expression):
        return value
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return Number(value)
    raise ExpressionError(f"Not an expression: {value!r}")


def is_number(expr: Expression, value: Optional[NumberLike] = None) -> bool:
    """True if ``expr`` is a literal (equal to ``value`` when given)."""
    if not isinstance(expr, Number):
        return False
    return value is None or expr.value == decimals.to_decimal(value)


def contains_symbol(expr: Expression, symbol: Symbol) -> bool:
    """True if ``symbol`` occurs anywhere in ``expr``."""
    if isinstance(expr, Symbol):
        return expr.key == symbol.key
    return any(contains_symbol(child, symbol) for child in expr.children)


def wild_names(expr: Expression) -> Set[str]:
    """Names of all wildcards occurring in ``expr``."""
    return {node.name for node in expr.walk() if isinstance(node, Wild)}


def symbols(expr: Expression) -> List[Symbol]:
    """Distinct symbols of ``expr`` in total order."""
    seen = {node.key: node for node in expr.walk() if isinstance(node, Symbol)}
    return [seen[key] for key in sorted(seen)]


def sort_key(expr: Expression) -> SortKey:
    return expr.key


# ============================================================
# Canonicalization
# ============================================================

def canonicalize(expr: Expression) -> Expression:
    """Return the canonical form of ``expr``.

    Results are cached on both the input and the result, so canonicalizing
    an already canonical tree costs nothing.
    """
    cached = expr._canonical
    if cached is not None:
        return cached
    handler = _CANONICALIZERS.get(type(expr), _canonical_children)
    result = handler(expr)
    result._canonical = result
    expr._canonical = result
    return result


def _canonical_atom(expr: Expression) -> Expression:
    return expr


def _canonical_children(expr: Expression) -> Expression:
    if not isinstance(expr, Operation):
        return expr
    children = [canonicalize(child) for child in expr.children]
    if all(new is old for new, old in zip(children, expr.children)):
        return expr
    return expr.with_children(children)


def _flatten(kind: type, children: Iterable[Expression]) -> Iterator[Expression]:
    for child in children:
        child = canonicalize(child)
        if type(child) is kind:
            yield from child.children
        else:
            yield child


def _assemble(kind: type, literal: Decimal, identity: Decimal,
              operands: List[Expression]) -> Expression:
    operands.sort(key=sort_key)
    if literal != identity:
        operands.insert(0, Number(literal))
    if not operands:
        return Number(identity)
    if len(operands) == 1:
        return operands[0]
    return kind(*operands)


def _fold_numbers(kind: type, children: Iterable[Expression], fold,
                  identity: Decimal) -> Tuple[Decimal, List[Expression]]:
    numbers, operands = [], []
    for item in _flatten(kind, children):
        (numbers if isinstance(item, Number) else operands).append(item)
    numbers.sort(key=sort_key)
    literal = identity
    for number in numbers:
        literal = fold(literal, number.value)
        if literal is None:
            # Out of range: every literal stays an operand
            return identity, operands + numbers
    return literal, operands


def _canonical_add(expr: Add) -> Expression:
    total, terms = _fold_numbers(Add, expr.children, decimals.add, decimals.ZERO)
    return _assemble(Add, total, decimals.ZERO, terms)


def _canonical_multiply(expr: Multiply) -> Expression:
    children = list(_flatten(Multiply, expr.children))
    if any(is_number(child, 0) for child in children):
        return Number(0)
    product, factors = _fold_numbers(Multiply, children, decimals.multiply, decimals.ONE)
    if product.is_zero():
        return Number(0)
    return _assemble(Multiply, product, decimals.ONE, factors)


def _canonical_subtract(expr: Subtract) -> Expression:
    left = canonicalize(expr.left)
    right = canonicalize(expr.right)
    if isinstance(left, Number) and isinstance(right, Number):
        difference = decimals.subtract(left.value, right.value)
        if difference is not None:
            return Number(difference)
    return canonicalize(Add(left, Multiply(Number(-1), right)))


def _canonical_divide(expr: Divide) -> Expression:
    numerator = canonicalize(expr.numerator)
    denominator = canonicalize(expr.denominator)
    if is_number(denominator, 0):
        return Divide(numerator, denominator)
    if isinstance(numerator, Number) and isinstance(denominator, Number):
        quotient = decimals.divide(numerator.value, denominator.value)
        if quotient is not None:
            return Number(quotient)
    return canonicalize(Multiply(numerator, Power(denominator, Number(-1))))


def _canonical_power(expr: Power) -> Expression:
    base = canonicalize(expr.base)
    exponent = canonicalize(expr.exponent)
    if isinstance(exponent, Number):
        if exponent.value == 0:
            return Number(1)
        if exponent.value == 1:
            return base
    if isinstance(base, Number):
        if base.value == 1:
            return Number(1)
        if isinstance(exponent, Number):
            if base.value == 0 and exponent.value > 0:
                return Number(0)
            value = decimals.power(base.value, exponent.value)
            if value is not None:
                return Number(value)
    if isinstance(base, Power):
        return canonicalize(Power(base.base, Multiply(base.exponent, exponent)))
    if base is expr.base and exponent is expr.exponent:
        return expr
    return Power(base, exponent)


def _canonical_function(expr: Function) -> Expression:
    args = [canonicalize(arg) for arg in expr.args]
    if args and all(isinstance(arg, Number) for arg in args):
        value = decimals.evaluate_function(expr.name, [arg.value for arg in args])
        if value is not None:
            return Number(value)
    if all(new is old for new, old in zip(args, expr.args)):
        return expr
    return Function(expr.name, *args)


_CANONICALIZERS = {
    Number: _canonical_atom,
    Symbol: _canonical_atom,
    Wild: _canonical_atom,
    Add: _canonical_add,
    Multiply: _canonical_multiply,
    Subtract: _canonical_subtract,
    Divide: _canonical_divide,
    Power: _canonical_power,
    Function: _canonical_function,
}
