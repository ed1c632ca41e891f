"""
Template source to a renderable node tree.

A template is split into chunks (literal text, ``{{ output }}`` and
``{% tag args %}``), then compiled into nodes. Tag arguments are handed to the
expression parser with the start form the tag needs. Every node renders into
an output list and returns a ControlSignal; only loops consume signals.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from drip.drip_config import Config, dbg
from drip.drip_datatypes import (
    ControlError, ControlSignal, DripError, DripSyntaxError, Scope
)
from drip.drip_filters import FilterRegistry
from drip.drip_iteration import LoopRunner, evaluate_cycle
from drip.drip_parser import (
    parse_assignment, parse_cycle, parse_expression, parse_loop, parse_when
)
from drip.drip_printer import Printer

_text = Printer().pformat

# =================================================================
# Chunks
# =================================================================

_CHUNK_RE = re.compile(r"""
    \{\{(?P<otrim>-?)(?P<output>.*?)(?P<otrim2>-?)\}\}
  | \{%(?P<ttrim>-?)\s*(?P<name>\w*)(?P<args>.*?)(?P<ttrim2>-?)%\}
""", re.VERBOSE | re.DOTALL)

# Tags whose body is not parsed as template source.
_VERBATIM_TAGS = {
    "raw": re.compile(r"\{%-?\s*endraw\s*-?%\}"),
    "comment": re.compile(r"\{%-?\s*endcomment\s*-?%\}"),
}

TEXT, OUTPUT, TAG = "text", "output", "tag"


@dataclass
class Chunk:
    kind: str
    source: str
    line: int
    col: int
    name: str = ""
    args: str = ""
    trim_left: bool = False
    trim_right: bool = False

    @property
    def loc(self) -> Dict[str, Any]:
        return {"line": self.line, "col": self.col, "text": self.source}


def _position(source: str, pos: int) -> Tuple[int, int]:
    line = source.count("\n", 0, pos) + 1
    col = pos - (source.rfind("\n", 0, pos) + 1) + 1
    return line, col


def scan_chunks(source: str) -> List[Chunk]:
    """Split template source into chunks, applying whitespace control."""
    chunks: List[Chunk] = []
    pos = 0

    def add_text(start, end):
        if end > start:
            line, col = _position(source, start)
            chunks.append(Chunk(TEXT, source[start:end], line, col))

    while pos < len(source):
        m = _CHUNK_RE.search(source, pos)
        if m is None:
            break
        add_text(pos, m.start())
        line, col = _position(source, m.start())
        if m.group("output") is not None:
            chunks.append(Chunk(OUTPUT, m.group(), line, col,
                                args=m.group("output").strip(),
                                trim_left=bool(m.group("otrim")),
                                trim_right=bool(m.group("otrim2"))))
            pos = m.end()
            continue

        name = m.group("name")
        chunk = Chunk(TAG, m.group(), line, col, name=name,
                      args=m.group("args").strip(),
                      trim_left=bool(m.group("ttrim")),
                      trim_right=bool(m.group("ttrim2")))
        pos = m.end()
        closer = _VERBATIM_TAGS.get(name)
        if closer is None:
            chunks.append(chunk)
            continue
        end = closer.search(source, pos)
        if end is None:
            raise DripSyntaxError(f"{name!r} tag not terminated", chunk.loc)
        if name == "raw":
            add_text(pos, end.start())
        pos = end.end()
    add_text(pos, len(source))

    for i, chunk in enumerate(chunks):
        if chunk.kind != TEXT:
            continue
        if i > 0 and chunks[i - 1].trim_right:
            chunk.source = chunk.source.lstrip()
        if i + 1 < len(chunks) and chunks[i + 1].trim_left:
            chunk.source = chunk.source.rstrip()
    return chunks


# =================================================================
# Nodes
# =================================================================

def runner_for(scope: Scope) -> LoopRunner:
    return scope.find_meta("loop_runner") or LoopRunner()


class Node:
    chunk: Optional[Chunk] = None

    def render(self, scope: Scope, out: List[str]) -> ControlSignal:
        raise NotImplementedError


class TextNode(Node):
    def __init__(self, text: str):
        self.text = text

    def render(self, scope, out):
        out.append(self.text)
        return ControlSignal.NONE


class OutputNode(Node):
    def __init__(self, expr, chunk: Chunk):
        self.expr = expr
        self.chunk = chunk

    def render(self, scope, out):
        out.append(_text(self.expr.evaluate(scope)))
        return ControlSignal.NONE


class SeqNode(Node):
    """A run of sibling nodes. Stops at the first control signal."""

    def __init__(self, nodes: List[Node]):
        self.nodes = nodes

    def render(self, scope, out):
        for node in self.nodes:
            try:
                signal = node.render(scope, out)
            except DripError as e:
                if e.loc is None and node.chunk is not None:
                    e.loc = node.chunk.loc
                raise
            if signal is not ControlSignal.NONE:
                return signal
        return ControlSignal.NONE


class ForNode(Node):
    def __init__(self, header, body: SeqNode, else_body: Optional[SeqNode], chunk: Chunk):
        self.header = header
        self.body = body
        self.else_body = else_body
        self.chunk = chunk

    def render(self, scope, out):
        else_render = self.else_body.render if self.else_body is not None else None
        return runner_for(scope).run_for(self.header, scope, self.body.render, out, else_render)


class TablerowNode(Node):
    def __init__(self, header, body: SeqNode, chunk: Chunk):
        self.header = header
        self.body = body
        self.chunk = chunk

    def render(self, scope, out):
        return runner_for(scope).run_tablerow(self.header, scope, self.body.render, out)


class SignalNode(Node):
    """break and continue."""

    def __init__(self, signal: ControlSignal, chunk: Chunk):
        self.signal = signal
        self.chunk = chunk

    def render(self, scope, out):
        return self.signal


class CycleNode(Node):
    def __init__(self, cycle, chunk: Chunk):
        self.cycle = cycle
        self.chunk = chunk

    def render(self, scope, out):
        out.append(evaluate_cycle(self.cycle, scope))
        return ControlSignal.NONE


class AssignNode(Node):
    def __init__(self, assignment, chunk: Chunk):
        self.assignment = assignment
        self.chunk = chunk

    def render(self, scope, out):
        value = self.assignment.expression.evaluate(scope)
        scope.assign(self.assignment.name, value.interface())
        return ControlSignal.NONE


class IfNode(Node):
    """if/elsif/else, and unless when ``negate`` is set on the first branch."""

    def __init__(self, branches, else_body: Optional[SeqNode], chunk: Chunk, negate: bool = False):
        self.branches = branches
        self.else_body = else_body
        self.chunk = chunk
        self.negate = negate

    def render(self, scope, out):
        for i, (cond, body) in enumerate(self.branches):
            truth = cond.evaluate(scope).test()
            if i == 0 and self.negate:
                truth = not truth
            if truth:
                return body.render(scope, out)
        if self.else_body is not None:
            return self.else_body.render(scope, out)
        return ControlSignal.NONE


class CaseNode(Node):
    def __init__(self, subject, whens, else_body: Optional[SeqNode], chunk: Chunk):
        self.subject = subject
        self.whens = whens
        self.else_body = else_body
        self.chunk = chunk

    def render(self, scope, out):
        value = self.subject.evaluate(scope)
        for when, body in self.whens:
            if any(expr.evaluate(scope).equal(value) for expr in when.expressions):
                return body.render(scope, out)
        if self.else_body is not None:
            return self.else_body.render(scope, out)
        return ControlSignal.NONE


# =================================================================
# Compiler
# =================================================================

CLAUSE_TAGS = {"else", "elsif", "when"}
END_TAGS = {"endfor", "endtablerow", "endif", "endunless", "endcase", "endraw", "endcomment"}


class Compiler:
    """Pairs block tags and builds nodes from a chunk list."""

    def __init__(self, chunks: List[Chunk]):
        self.chunks = chunks
        self.pos = 0

    def compile(self) -> SeqNode:
        body, _ = self._body(frozenset(), None)
        return body

    def _parse(self, parse_fn, chunk: Chunk):
        try:
            return parse_fn(chunk.args)
        except DripSyntaxError as e:
            if e.loc is None:
                e.loc = chunk.loc
            raise

    def _body(self, stops, opener: Optional[Chunk]) -> Tuple[SeqNode, Optional[Chunk]]:
        nodes: List[Node] = []
        while self.pos < len(self.chunks):
            chunk = self.chunks[self.pos]
            self.pos += 1
            match chunk.kind:
                case "text":
                    nodes.append(TextNode(chunk.source))
                case "output":
                    nodes.append(OutputNode(self._parse(parse_expression, chunk), chunk))
                case "tag" if chunk.name in stops:
                    return SeqNode(nodes), chunk
                case "tag":
                    nodes.append(self._tag(chunk))
        if opener is not None:
            raise DripSyntaxError(f"{opener.name!r} tag not terminated", opener.loc)
        return SeqNode(nodes), None

    def _no_args(self, chunk: Chunk):
        if chunk.args:
            raise DripSyntaxError(f"{chunk.name!r} tag takes no arguments", chunk.loc)

    def _tag(self, chunk: Chunk) -> Node:
        match chunk.name:
            case "for":
                header = self._parse(parse_loop, chunk)
                body, stop = self._body({"else", "endfor"}, chunk)
                else_body = None
                if stop.name == "else":
                    else_body, _ = self._body({"endfor"}, chunk)
                return ForNode(header, body, else_body, chunk)
            case "tablerow":
                header = self._parse(parse_loop, chunk)
                body, _ = self._body({"endtablerow"}, chunk)
                return TablerowNode(header, body, chunk)
            case "break":
                self._no_args(chunk)
                return SignalNode(ControlSignal.BREAK, chunk)
            case "continue":
                self._no_args(chunk)
                return SignalNode(ControlSignal.CONTINUE, chunk)
            case "cycle":
                return CycleNode(self._parse(parse_cycle, chunk), chunk)
            case "assign":
                return AssignNode(self._parse(parse_assignment, chunk), chunk)
            case "if" | "unless":
                return self._conditional(chunk)
            case "case":
                return self._case(chunk)
        if chunk.name in CLAUSE_TAGS or chunk.name in END_TAGS:
            raise DripSyntaxError(f"unexpected {chunk.name!r} tag", chunk.loc)
        raise DripSyntaxError(f"undefined tag {chunk.name!r}", chunk.loc)

    def _conditional(self, chunk: Chunk) -> IfNode:
        end = "end" + chunk.name
        branches = []
        cond = self._parse(parse_expression, chunk)
        body, stop = self._body({"elsif", "else", end}, chunk)
        branches.append((cond, body))
        while stop.name == "elsif":
            cond = self._parse(parse_expression, stop)
            body, stop = self._body({"elsif", "else", end}, chunk)
            branches.append((cond, body))
        else_body = None
        if stop.name == "else":
            else_body, _ = self._body({end}, chunk)
        return IfNode(branches, else_body, chunk, negate=(chunk.name == "unless"))

    def _case(self, chunk: Chunk) -> CaseNode:
        subject = self._parse(parse_expression, chunk)
        # Anything between case and the first when is ignored.
        _, stop = self._body({"when", "else", "endcase"}, chunk)
        whens = []
        while stop.name == "when":
            when = self._parse(parse_when, stop)
            body, stop = self._body({"when", "else", "endcase"}, chunk)
            whens.append((when, body))
        else_body = None
        if stop.name == "else":
            else_body, _ = self._body({"endcase"}, chunk)
        return CaseNode(subject, whens, else_body, chunk)


# =================================================================
# Template
# =================================================================

_SIGNAL_ERRORS = {
    ControlSignal.BREAK: "break outside a loop",
    ControlSignal.CONTINUE: "continue outside a loop",
}


class Template:
    """A compiled template. Immutable; render it any number of times."""

    def __init__(self, root: SeqNode, source: str = ""):
        self.root = root
        self.source = source

    def render(self, bindings: Optional[Dict[str, Any]] = None, *,
               config: Optional[Config] = None,
               filters: Optional[FilterRegistry] = None) -> str:
        scope = Scope(bindings)
        scope.meta["loop_runner"] = LoopRunner(config)
        if filters is not None:
            scope.meta["filters"] = filters
        return self.render_scope(scope)

    def render_scope(self, scope: Scope) -> str:
        out: List[str] = []
        signal = self.root.render(scope, out)
        if signal is not ControlSignal.NONE:
            raise ControlError(_SIGNAL_ERRORS[signal])
        return "".join(out)


def compile_template(source: str) -> Template:
    chunks = scan_chunks(source)
    dbg("template", len(chunks), "chunks")
    return Template(Compiler(chunks).compile(), source)


def render(source: str, bindings: Optional[Dict[str, Any]] = None, **kwargs) -> str:
    return compile_template(source).render(bindings, **kwargs)
