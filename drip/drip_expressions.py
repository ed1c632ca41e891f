"""
Expression evaluators.

The parser builds expressions directly as closures over their operands;
there is no separate tree to walk. Each ``make_*`` function takes already
compiled sub-expressions (and parse-time data such as names and literals)
and returns an ``Expression`` whose ``evaluate(scope)`` produces a Value.
"""

from typing import Any, Callable, List

from drip.drip_datatypes import Scope
from drip.drip_filters import registry_for
from drip.drip_values import Value, RangeValue, value_of, TRUE, FALSE


class Expression:
    """An immutable compiled expression."""
    __slots__ = ("fn", "text")

    def __init__(self, fn: Callable[[Scope], Value], text: str = ""):
        self.fn = fn
        # Reconstructed source, for debugging and error messages.
        self.text = text

    def evaluate(self, scope: Scope) -> Value:
        return self.fn(scope)

    def __call__(self, scope: Scope) -> Value:
        return self.fn(scope)

    def __repr__(self) -> str:
        return f"<Expression {self.text}>"


def _bool(flag: bool) -> Value:
    return TRUE if flag else FALSE


# --- Primaries ---

def make_literal(native: Any) -> Expression:
    value = value_of(native)
    return Expression(lambda scope: value, repr(native))


def make_variable(name: str) -> Expression:
    return Expression(lambda scope: value_of(scope.get(name)), name)


def make_property(obj: Expression, name: str) -> Expression:
    fo = obj.fn
    return Expression(lambda scope: fo(scope).property_value(name), f"{obj.text}.{name}")


def make_index(obj: Expression, key: Expression) -> Expression:
    fo, fk = obj.fn, key.fn

    def index(scope):
        return fo(scope).index_value(fk(scope))
    return Expression(index, f"{obj.text}[{key.text}]")


def make_range(low: Expression, high: Expression) -> Expression:
    fl, fh = low.fn, high.fn

    def rng(scope):
        return RangeValue(fl(scope).to_int(), fh(scope).to_int())
    return Expression(rng, f"({low.text}..{high.text})")


# --- Comparisons ---
# Operand order is significant: `less` is only defined from the receiver's side.

def make_comparison(op: str, left: Expression, right: Expression) -> Expression:
    fa, fb = left.fn, right.fn
    match op:
        case "==":
            def compare(scope):
                a, b = fa(scope), fb(scope)
                return _bool(a.equal(b))
        case "!=":
            def compare(scope):
                a, b = fa(scope), fb(scope)
                return _bool(not a.equal(b))
        case "<":
            def compare(scope):
                a, b = fa(scope), fb(scope)
                return _bool(a.less(b))
        case ">":
            def compare(scope):
                a, b = fa(scope), fb(scope)
                return _bool(b.less(a))
        case "<=":
            def compare(scope):
                a, b = fa(scope), fb(scope)
                return _bool(a.less(b) or a.equal(b))
        case ">=":
            def compare(scope):
                a, b = fa(scope), fb(scope)
                return _bool(b.less(a) or a.equal(b))
        case "contains":
            def compare(scope):
                a, b = fa(scope), fb(scope)
                return _bool(a.contains(b))
        case "in":
            def compare(scope):
                a, b = fa(scope), fb(scope)
                return _bool(b.contains(a))
        case _:
            raise ValueError(f"unknown comparison operator {op!r}")
    return Expression(compare, f"{left.text} {op} {right.text}")


# --- Logic ---
# The right operand is only evaluated when the left does not decide.

def make_and(left: Expression, right: Expression) -> Expression:
    fa, fb = left.fn, right.fn
    return Expression(lambda scope: _bool(fa(scope).test() and fb(scope).test()),
                      f"{left.text} and {right.text}")


def make_or(left: Expression, right: Expression) -> Expression:
    fa, fb = left.fn, right.fn
    return Expression(lambda scope: _bool(fa(scope).test() or fb(scope).test()),
                      f"{left.text} or {right.text}")


# --- Filters ---

def make_filter(receiver: Expression, name: str, args: List[Expression]) -> Expression:
    fr = receiver.fn
    arg_fns = [a.fn for a in args]

    def apply(scope):
        value = fr(scope)
        arg_values = [f(scope) for f in arg_fns]
        return registry_for(scope).invoke(name, value, arg_values)

    text = f"{receiver.text} | {name}"
    if args:
        text += ": " + ", ".join(a.text for a in args)
    return Expression(apply, text)
