"""
Infix parser for symcore expressions.

    parse("2 * x + 5 = 15")
    parse("Grad(5, Vector(x, y))")
    parse("?a:const * ?x + ?x")          # patterns use the same grammar

Grammar, lowest precedence first:

    equation   := sum ("=" sum)?
    sum        := product (("+" | "-") product)*
    product    := unary (("*" | "/") unary)*
    unary      := ("-" | "+") unary | power
    power      := atom ("**" unary)?
    atom       := NUMBER | NAME | WILD | NAME "(" args? ")" | "(" equation ")"

Chains of ``+`` and of ``*`` build a single n-ary node, so ``a + b + c`` is
``Add(a, b, c)`` and can be used directly as a pattern.
"""

import re
from typing import Callable, Dict, List, NamedTuple, Optional

from . import config
from .errors import ExpressionError, ParseError
from .expr import (
    Add, Curl, Derivative, Div, Divide, Equality, Expression, Function, Grad,
    Integral, Matrix, Multiply, Number, Power, Subtract, Symbol, Vector, Wild,
    WildConstraint,
)

NUMBER = "NUMBER"
NAME = "NAME"
WILD = "WILD"
OP = "OP"
END = "END"

_TOKEN_RE = re.compile(r"""
    (?P<space>\s+)
  | (?P<number>[0-9]+(?:\.[0-9]+)?)
  | (?P<wild>\?[A-Za-z_][A-Za-z_0-9]*(?::[A-Za-z_]+)?)
  | (?P<name>[A-Za-z_][A-Za-z_0-9]*)
  | (?P<op>\*\*|[-+*/=(),])
""", re.VERBOSE)

_CONSTRAINTS = {constraint.value: constraint for constraint in WildConstraint}


class Token(NamedTuple):
    kind: str
    text: str
    position: int


def tokenize(text: str) -> List[Token]:
    """Split ``text`` into tokens, ending with an END token."""
    tokens = []
    position = 0
    while position < len(text):
        found = _TOKEN_RE.match(text, position)
        if found is None:
            raise ParseError(f"Unexpected character {text[position]!r}", position)
        kind = found.lastgroup
        if kind != "space":
            tokens.append(Token(kind.upper(), found.group(), position))
        position = found.end()
    tokens.append(Token(END, "", len(text)))
    return tokens


def _two_arguments(kind: Callable[..., Expression]) -> Callable[..., Expression]:
    def build(*args: Expression) -> Expression:
        if len(args) != 2:
            raise ExpressionError(f"{kind.__name__} expects 2 arguments, got {len(args)}")
        return kind(*args)
    return build


_CONSTRUCTORS: Dict[str, Callable[..., Expression]] = {
    "vector": Vector,
    "matrix": Matrix,
    "derivative": _two_arguments(Derivative),
    "integral": _two_arguments(Integral),
    "grad": _two_arguments(Grad),
    "div": _two_arguments(Div),
    "curl": _two_arguments(Curl),
}


class Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, text: str, max_depth: Optional[int] = None):
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0
        self.depth = 0
        self.max_depth = config.MAX_EXPRESSION_DEPTH if max_depth is None else max_depth

    # -- token helpers ---------------------------------------------------

    def peek(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        if token.kind != END:
            self.index += 1
        return token

    def accept(self, *texts: str) -> Optional[Token]:
        token = self.peek()
        if token.kind == OP and token.text in texts:
            return self.advance()
        return None

    def expect(self, text: str) -> Token:
        token = self.accept(text)
        if token is None:
            raise ParseError(f"Expected {text!r}, found {self._describe(self.peek())}",
                             self.peek().position)
        return token

    @staticmethod
    def _describe(token: Token) -> str:
        return "end of input" if token.kind == END else repr(token.text)

    def _enter(self, token: Token) -> None:
        self.depth += 1
        if self.depth > self.max_depth:
            raise ParseError(f"Expression nested deeper than {self.max_depth} levels",
                             token.position)

    # -- grammar ---------------------------------------------------------

    def parse(self) -> Expression:
        if self.peek().kind == END:
            raise ParseError("Empty expression", 0)
        try:
            expr = self.equation()
        except RecursionError:
            raise ParseError("Expression nested too deeply", self.peek().position) from None
        token = self.peek()
        if token.kind != END:
            raise ParseError(f"Unexpected {self._describe(token)}", token.position)
        return expr

    def equation(self) -> Expression:
        left = self.sum()
        if self.accept("="):
            return Equality(left, self.sum())
        return left

    def sum(self) -> Expression:
        terms = [self.product()]
        while True:
            token = self.accept("+", "-")
            if token is None:
                break
            if token.text == "+":
                terms.append(self.product())
            else:
                terms = [Subtract(_combine(Add, terms), self.product())]
        return _combine(Add, terms)

    def product(self) -> Expression:
        factors = [self.unary()]
        while True:
            token = self.accept("*", "/")
            if token is None:
                break
            if token.text == "*":
                factors.append(self.unary())
            else:
                factors = [Divide(_combine(Multiply, factors), self.unary())]
        return _combine(Multiply, factors)

    def unary(self) -> Expression:
        token = self.accept("-", "+")
        if token is None:
            return self.power()
        self._enter(token)
        try:
            operand = self.unary()
        finally:
            self.depth -= 1
        if token.text == "+":
            return operand
        if isinstance(operand, Number):
            return Number(-operand.value)
        return Multiply(Number(-1), operand)

    def power(self) -> Expression:
        base = self.atom()
        token = self.accept("**")
        if token is None:
            return base
        self._enter(token)
        try:
            return Power(base, self.unary())
        finally:
            self.depth -= 1

    def atom(self) -> Expression:
        token = self.advance()
        if token.kind == NUMBER:
            return Number(token.text)
        if token.kind == WILD:
            return self._wild(token)
        if token.kind == NAME:
            if self.accept("("):
                return self._call(token)
            return Symbol(token.text)
        if token.kind == OP and token.text == "(":
            self._enter(token)
            try:
                expr = self.equation()
            finally:
                self.depth -= 1
            self.expect(")")
            return expr
        raise ParseError(f"Unexpected {self._describe(token)}", token.position)

    def _wild(self, token: Token) -> Wild:
        name, _, constraint = token.text[1:].partition(":")
        if not constraint:
            return Wild(name)
        if constraint not in _CONSTRAINTS or constraint == WildConstraint.NONE.value:
            raise ParseError(f"Unknown wildcard constraint {constraint!r}", token.position)
        return Wild(name, _CONSTRAINTS[constraint])

    def _call(self, name: Token) -> Expression:
        self._enter(name)
        try:
            args = []
            if not self.accept(")"):
                args.append(self.equation())
                while self.accept(","):
                    args.append(self.equation())
                self.expect(")")
        finally:
            self.depth -= 1

        constructor = _CONSTRUCTORS.get(name.text.lower())
        if constructor is None:
            return Function(name.text, *args)
        try:
            return constructor(*args)
        except ExpressionError as e:
            raise ParseError(str(e), name.position) from None


def _combine(kind: type, items: List[Expression]) -> Expression:
    return items[0] if len(items) == 1 else kind(*items)


def parse(text: str) -> Expression:
    """
    Parse infix text into an expression tree (not canonicalized).

    Raises:
        ParseError: on malformed input, with the offending position
    """
    if not isinstance(text, str):
        raise TypeError(f"parse() expects a string, got {type(text).__name__}")
    return Parser(text).parse()
