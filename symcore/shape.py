"""
Shape descriptors for expressions.

A shape tells scalars apart from fixed-dimension values (vectors and
matrices). Shapes are descriptive only: they drive display of symbols and
the ``scalar`` wildcard constraint, they never block construction.

    Shape.SCALAR            - dims ()
    Shape.vector(3)         - dims (3,)
    Shape.matrix(2, 3)      - dims (2, 3)
    Shape.ERROR             - incompatible combination
    Shape.WILDCARD          - shape of a pattern wildcard, combines with anything
"""

from typing import Iterable, Tuple


class Shape:
    """Immutable dimensionality descriptor."""

    __slots__ = ("dims", "is_valid", "is_wildcard")

    def __init__(self, dims: Tuple[int, ...] = (), is_valid: bool = True,
                 is_wildcard: bool = False):
        if any(d <= 0 for d in dims):
            raise ValueError(f"Shape dimensions must be positive, got {dims}")
        object.__setattr__(self, "dims", tuple(dims))
        object.__setattr__(self, "is_valid", is_valid)
        object.__setattr__(self, "is_wildcard", is_wildcard)

    def __setattr__(self, name, value):
        raise AttributeError("Shape is immutable")

    @classmethod
    def vector(cls, length: int) -> "Shape":
        return cls((length,))

    @classmethod
    def matrix(cls, rows: int, cols: int) -> "Shape":
        return cls((rows, cols))

    @property
    def is_scalar(self) -> bool:
        return self.is_valid and not self.is_wildcard and not self.dims

    @property
    def is_vector(self) -> bool:
        return self.is_valid and not self.is_wildcard and len(self.dims) == 1

    @property
    def is_matrix(self) -> bool:
        return self.is_valid and not self.is_wildcard and len(self.dims) == 2

    @property
    def rank(self) -> int:
        return len(self.dims)

    def combine(self, other: "Shape") -> "Shape":
        """Shape of an element-wise combination; scalars broadcast."""
        if not self.is_valid or not other.is_valid:
            return Shape.ERROR
        if self.is_wildcard:
            return other
        if other.is_wildcard:
            return self
        if self.is_scalar:
            return other
        if other.is_scalar or self.dims == other.dims:
            return self
        return Shape.ERROR

    @staticmethod
    def combine_all(shapes: Iterable["Shape"]) -> "Shape":
        result = Shape.SCALAR
        for shape in shapes:
            result = result.combine(shape)
            if not result.is_valid:
                break
        return result

    def __eq__(self, other) -> bool:
        if not isinstance(other, Shape):
            return NotImplemented
        return (self.dims, self.is_valid, self.is_wildcard) == \
            (other.dims, other.is_valid, other.is_wildcard)

    def __hash__(self) -> int:
        return hash((self.dims, self.is_valid, self.is_wildcard))

    def __str__(self) -> str:
        if not self.is_valid:
            return "error"
        if self.is_wildcard:
            return "*"
        if not self.dims:
            return "scalar"
        return "(" + "x".join(str(d) for d in self.dims) + ")"

    def __repr__(self) -> str:
        if not self.is_valid:
            return "Shape.ERROR"
        if self.is_wildcard:
            return "Shape.WILDCARD"
        if not self.dims:
            return "Shape.SCALAR"
        return f"Shape({self.dims})"


Shape.SCALAR = Shape()
Shape.ERROR = Shape(is_valid=False)
Shape.WILDCARD = Shape(is_wildcard=True)
