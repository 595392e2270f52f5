"""Exception hierarchy for symcore.

Only structural problems are raised. A pattern that does not match returns
``NoMatch`` and a solve that does not succeed returns a failed
``SolveResult``; neither is an exception.
"""

from typing import Optional


class SymcoreError(Exception):
    """Base class for all errors raised by symcore."""


class ParseError(SymcoreError, ValueError):
    """Malformed expression text."""

    def __init__(self, message: str, position: Optional[int] = None):
        self.position = position
        if position is not None:
            message = f"{message} (at position {position})"
        super().__init__(message)


class ExpressionError(SymcoreError, ValueError):
    """An expression tree was built with an invalid structure."""


class SubstitutionError(SymcoreError):
    """A rule template referenced a wildcard the pattern never bound."""
