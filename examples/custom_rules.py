"""
Example Python rules file for symcore.

A rules file defines RULES: Rule objects, or (pattern, template) pairs
with an optional condition. Text is parsed with the infix grammar.

Usage:
    symcore -r examples/custom_rules.py -e "double(y)"

Or in scripts:
    :load examples/custom_rules.py
    cube(2)
"""

from symcore import Number, Rule, parse
from symcore.rules import is_constant


def _positive(bindings):
    value = bindings["n"]
    return isinstance(value, Number) and value.value > 0


RULES = [
    ("double(?x)", "2 * ?x"),
    ("cube(?x)", "?x ** 3", is_constant("x")),
    ("sign(?n)", "1", _positive),
    Rule(parse("square(?x)"), parse("?x * ?x"), name="square-def",
         description="square(x) = x * x"),
]
