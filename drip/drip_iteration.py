"""
The loop engine behind the for and tablerow tags.

A loop entry evaluates its source once, applies the modifiers, and then runs
the body once per remaining position in a transient child scope that binds
the loop variable and ``forloop``. Bodies report a ControlSignal; the loop
consumes CONTINUE and BREAK so they never escape it.

Cycle counters live in the meta of the loop's own scope, so each entry starts
from fresh counters and nested loops do not share them.
"""

from typing import Callable, List, Optional, Sequence

from drip.drip_config import Config, dbg
from drip.drip_datatypes import (
    ControlError, ControlSignal, Cycle, EvaluationError, ForloopMetadata,
    LoopHeader, Scope, TablerowMetadata
)
from drip.drip_values import Value, value_of

# A body renders into `out` and reports how control should continue.
BodyRenderer = Callable[[Scope, List[str]], ControlSignal]

CYCLES_META = "cycles"


def _modifier_int(expr, scope: Scope, name: str) -> Optional[int]:
    if expr is None:
        return None
    value = expr.evaluate(scope)
    try:
        n = value.to_int()
    except EvaluationError as e:
        raise EvaluationError(f"loop modifier {name}: {e.message}") from e
    return max(n, 0)


def loop_sequence(header: LoopHeader, scope: Scope) -> Sequence:
    """Evaluate the loop source and apply offset, then limit, then reversed.

    Ranges stay Python ranges throughout, so the result has a length before
    any element is materialized.
    """
    items = header.source.evaluate(scope).loop_source()
    mods = header.modifiers
    offset = _modifier_int(mods.offset, scope, "offset")
    if offset:
        items = items[offset:]
    limit = _modifier_int(mods.limit, scope, "limit")
    if limit is not None:
        items = items[:limit]
    if mods.reversed:
        items = items[::-1]
    return items


def loop_items(header: LoopHeader, scope: Scope) -> List[Value]:
    return [value_of(x) for x in loop_sequence(header, scope)]


class LoopRunner:
    """Drives for and tablerow loops under a Config."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()

    def _check_limit(self, count: int, tag: str):
        limit = self.config.max_loop_iters
        if limit is not None and limit > 0 and count > limit:
            raise EvaluationError(f"{tag}: iteration limit exceeded")

    def run_for(self, header: LoopHeader, scope: Scope, body: BodyRenderer, out: List[str],
                else_body: Optional[BodyRenderer] = None) -> ControlSignal:
        seq = loop_sequence(header, scope)
        dbg("for", header.variable, "length", len(seq))
        self._check_limit(len(seq), "for")
        items = [value_of(x) for x in seq]
        if not items:
            if else_body is not None:
                return else_body(scope, out)
            return ControlSignal.NONE

        loop_scope = scope.child(**{CYCLES_META: {}})
        length = len(items)
        for index0, item in enumerate(items):
            frame = loop_scope.child({
                header.variable: item.interface(),
                "forloop": ForloopMetadata(index0, length),
            })
            signal = body(frame, out)
            if signal is ControlSignal.BREAK:
                dbg("for", header.variable, "break at", index0)
                break
        return ControlSignal.NONE

    def run_tablerow(self, header: LoopHeader, scope: Scope, body: BodyRenderer,
                     out: List[str]) -> ControlSignal:
        seq = loop_sequence(header, scope)
        self._check_limit(len(seq), "tablerow")
        items = [value_of(x) for x in seq]
        length = len(items)
        cols = _modifier_int(header.modifiers.cols, scope, "cols")
        if not cols:
            # No column count means one row holding every cell.
            cols = max(length, 1)
        dbg("tablerow", header.variable, "length", length, "cols", cols)

        loop_scope = scope.child(**{CYCLES_META: {}})
        row_open = False
        for index0, item in enumerate(items):
            meta = TablerowMetadata(index0, length, cols)
            if meta.col_first:
                if row_open:
                    out.append("</tr>\n")
                out.append(f'<tr class="row{meta.row}">')
                row_open = True
            out.append(f'<td class="col{meta.col}">')
            frame = loop_scope.child({header.variable: item.interface(), "forloop": meta})
            signal = body(frame, out)
            out.append("</td>")
            if signal is ControlSignal.BREAK:
                break
        if row_open:
            out.append("</tr>")
        return ControlSignal.NONE


def evaluate_cycle(cycle: Cycle, scope: Scope) -> str:
    """Return the next value of the cycle group and advance its counter."""
    counters = scope.find_meta(CYCLES_META)
    if counters is None:
        raise ControlError("cycle must be within a forloop")
    n = counters.get(cycle.key, 0)
    counters[cycle.key] = n + 1
    return cycle.values[n % len(cycle.values)]
