#!/usr/bin/env python3
"""
symcore Feature Demonstration

This script walks through simplification, equation solving, calculus,
custom rules and tracing.
"""

from pathlib import Path
from symcore import SymEngine, E, simplify, solve_equation, format_expr


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def demo_simplify():
    """Demonstrate simplification with the built-in rules."""
    section("Simplification")

    for text in ["x + x", "y * 0", "(x + y) * 1", "2 * x + 3 * x", "x * x ** 2",
                 "2 * (x + 1)"]:
        print(f"  {text} => {simplify(text)}")


def demo_solve():
    """Demonstrate equation solving."""
    section("Equation Solving")

    for text in ["2 * x + 5 = 15", "10 = 2 * x", "x ** 2 = 16", "2 ** x = 8", "x = x + 1"]:
        result = solve_equation(text, "x")
        print(f"  {text:<18} {result}")


def demo_calculus():
    """Demonstrate calculus operators."""
    section("Calculus")

    engine = SymEngine()
    print(f"  d/dx x ** 3          = {engine.differentiate('x ** 3', 'x')}")
    print(f"  d/dx x * sin(x)      = {engine.differentiate('x * sin(x)', 'x')}")
    print(f"  integral cos(x) dx   = {engine.integrate('cos(x)', 'x')}")
    print(f"  grad(x * y)          = {engine.grad('x * y', 'x, y')}")
    print(f"  div(x, y)            = {engine.div('Vector(x, y)', 'x, y')}")
    print(f"  curl(-y, x, 0)       = {engine.curl('Vector(-y, x, 0)', 'x, y, z')}")
    print(f"  grad(5)              = {engine.simplify('Grad(5, Vector(x, y))')}")


def demo_custom_rules():
    """Demonstrate DSL rules with groups and guards."""
    section("Custom Rules")

    engine = SymEngine().load_dsl('''
        [trig]
        @pythagoras "sin^2 + cos^2 = 1": sin(?x) ** 2 + cos(?x) ** 2 => 1
        @tan-def: tan(?x) => sin(?x) / cos(?x)

        [numeric]
        @half: half(?n) => ?n / 2 when const(?n)
    ''')

    for text in ["sin(y) ** 2 + cos(y) ** 2", "tan(y)", "half(9)", "half(y)"]:
        print(f"  {text} => {format_expr(engine(text))}")

    engine.disable_group("trig")
    print(f"  (trig disabled) tan(y) => {format_expr(engine('tan(y)'))}")


def demo_rules_file():
    """Demonstrate loading rules from files."""
    section("Rules Files")

    here = Path(__file__).parent
    engine = SymEngine().load_file(here / "custom_rules.py")
    engine.load_file(here / "trig.rules")
    for text in ["double(y)", "cube(2)", "sec(x) * cos(x)"]:
        print(f"  {text} => {format_expr(engine(text))}")


def demo_builder_and_match():
    """Demonstrate the expression builder and pattern matching."""
    section("Builder and Matching")

    x, y = E.syms("x", "y")
    print(f"  E.func('log', x, 2) = {E.func('log', x, 2)}")
    print(f"  E.wild('n', 'const') = {format_expr(E.wild('n', 'const'), canonical=False)}")

    expr = E("3 * x + x")
    engine = SymEngine()
    bindings = engine.match("?a:const * ?x + ?x", expr)
    print(f"  match ?a:const * ?x + ?x against {expr}: a={bindings['a']}, x={bindings['x']}")
    for rule, _ in engine.rules_matching(expr):
        print(f"  applicable rule: {rule.name}")


def demo_tracing():
    """Demonstrate tracing."""
    section("Tracing")

    result = solve_equation("2 * x + 5 = 15", "x", tracing=True)
    for index, step in enumerate(result.trace):
        print(f"  [{index}] {step}")

    result = SymEngine().rewrite_fully("Derivative(x ** 2 + 3 * x, x)", record=True)
    for step in result.steps:
        print(f"  {step}")


def main():
    print("\n" + "="*60)
    print(" symcore Feature Demonstration")
    print("="*60)

    demo_simplify()
    demo_solve()
    demo_calculus()
    demo_custom_rules()
    demo_rules_file()
    demo_builder_and_match()
    demo_tracing()

    print("\n" + "="*60)
    print(" Demo complete!")
    print("="*60 + "\n")


if __name__ == "__main__":
    main()
