"""
Reductions for the Drip grammar.

Runs inline in the LALR parser: every reduction immediately builds the
final object (an Expression closure or a statement record), so the parser
never materialises a parse tree.
"""

from lark import Transformer, v_args

from drip.drip_datatypes import (
    DripSyntaxError, Assignment, Cycle, LoopHeader, LoopModifiers, When
)
from drip.drip_expressions import (
    make_literal, make_variable, make_property, make_index, make_range,
    make_comparison, make_and, make_or, make_filter
)

FLAG_MODIFIERS = ("reversed",)
VALUED_MODIFIERS = ("cols", "limit", "offset")


@v_args(inline=True)
class DripTransformer(Transformer):

    # --- Start forms ---
    def expression_statement(self, expr):
        return expr

    def assignment(self, name, expr):
        return Assignment(name.value, expr)

    def cycle_statement(self, cycle):
        return cycle

    def loop_statement(self, loop):
        return loop

    def when_statement(self, when):
        return when

    # --- Cycle ---
    # The tail reduces before the statement knows whether the head string is a
    # group name or the first value, so it yields a function of the head.
    def cycle(self, head, make_cycle):
        return make_cycle(head)

    def named_cycle(self, group, first, rest):
        return Cycle(group.value, (first,) + rest)

    def grouped_tail(self, first, rest):
        return lambda group: Cycle(group, (first,) + rest)

    def plain_tail(self, rest):
        return lambda head: Cycle("", (head,) + rest)

    def cycle_more(self, *values):
        return tuple(values)

    def cycle_string(self, tok):
        if not isinstance(tok.value, str):
            raise DripSyntaxError(f"expected a string for {tok.value!r}")
        return tok.value

    # --- Loop header ---
    def loop(self, name, source, *modifiers):
        mods = LoopModifiers()
        for key, expr in modifiers:
            if key == "reversed":
                mods.reversed = True
            else:
                setattr(mods, key, expr)
        return LoopHeader(name.value, source, mods)

    def flag_modifier(self, name):
        if name.value not in FLAG_MODIFIERS:
            raise DripSyntaxError(f"undefined loop modifier {name.value!r}")
        return name.value, None

    def valued_modifier(self, name, expr):
        if name.value not in VALUED_MODIFIERS:
            raise DripSyntaxError(f"undefined loop modifier {name.value!r}")
        return name.value, expr

    # --- When ---
    def when_list(self, *exprs):
        return When(list(exprs))

    # --- Operators ---
    def or_op(self, a, b): return make_or(a, b)
    def and_op(self, a, b): return make_and(a, b)
    def eq_op(self, a, b): return make_comparison("==", a, b)
    def neq_op(self, a, b): return make_comparison("!=", a, b)
    def lt_op(self, a, b): return make_comparison("<", a, b)
    def gt_op(self, a, b): return make_comparison(">", a, b)
    def le_op(self, a, b): return make_comparison("<=", a, b)
    def ge_op(self, a, b): return make_comparison(">=", a, b)
    def contains_op(self, a, b): return make_comparison("contains", a, b)
    def in_op(self, a, b): return make_comparison("in", a, b)

    # --- Filters ---
    def filter_call(self, receiver, name):
        return make_filter(receiver, name.value, [])

    def filter_call_args(self, receiver, name, args):
        return make_filter(receiver, name.value, args)

    def filter_args(self, *exprs):
        return list(exprs)

    # --- Primaries ---
    def literal(self, tok):
        return make_literal(tok.value)

    def variable(self, tok):
        return make_variable(tok.value)

    def property_access(self, obj, tok):
        return make_property(obj, tok.value)

    def index_access(self, obj, key):
        return make_index(obj, key)

    def range_literal(self, low, high):
        return make_range(low, high)
