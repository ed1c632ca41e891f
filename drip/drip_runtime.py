"""
Compiles and renders templates, turning failures into structured results.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Literal, Optional

from drip.drip_config import Config, dbg
from drip.drip_datatypes import (
    ControlError, DripError, DripSyntaxError, EvaluationError, Scope
)
from drip.drip_filters import FilterRegistry, standard_filters
from drip.drip_iteration import LoopRunner
from drip.drip_template import Template, compile_template

Token = Dict[str, Any]


@dataclass
class RenderResult:
    """The structured result of rendering a template."""
    status: Literal['success', 'error']
    output: Optional[str] = None
    error_message: Optional[str] = None
    error_token: Optional[Token] = None

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_token and 'line' in self.error_token:
            line = self.error_token.get('line')
            col = self.error_token.get('col')
            if not msg.startswith("Error on line "):
                col_info = f", col {col}" if col is not None else ""
                return f"Error on line {line}{col_info}: {msg}"
        return msg


class TemplateRunner:
    """Compiles and renders Drip templates against a shared filter set."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config.from_env()
        self.filters: FilterRegistry = standard_filters(strict=self.config.strict_filters)
        self.loop_runner = LoopRunner(self.config)

    def register_filter(self, name: str, fn: Callable):
        self.filters.register(name, fn)

    def compile(self, source: str) -> Template:
        return compile_template(source)

    def new_scope(self, bindings: Optional[Dict[str, Any]] = None) -> Scope:
        scope = Scope(bindings)
        scope.meta["filters"] = self.filters
        scope.meta["loop_runner"] = self.loop_runner
        return scope

    def render(self, source: str, bindings: Optional[Dict[str, Any]] = None) -> str:
        """Render and let DripError propagate."""
        return self.compile(source).render_scope(self.new_scope(bindings))

    def handle_template(self, source: str, bindings: Optional[Dict[str, Any]] = None) -> RenderResult:
        """The main entry point: render and report, never raising."""
        try:
            output = self.render(source, bindings)
        except DripError as e:
            dbg("render failed:", type(e).__name__, e.message)
            msg, token = self._format_error(e, source)
            return RenderResult(status='error', error_message=msg, error_token=token)
        return RenderResult(status='success', output=output)

    def _format_error(self, e: DripError, source: str):
        match e:
            case DripSyntaxError():
                msg = f"SyntaxError: {e.message}"
            case ControlError():
                msg = f"ControlError: {e.message}"
            case EvaluationError():
                msg = f"EvaluationError: {e.message}"
            case _:
                msg = f"Error: {e.message}"

        token = None
        loc = e.loc
        if loc:
            line = loc.get('line')
            col = loc.get('col')
            token = {'line': line, 'col': col, 'text': loc.get('text')}
            if line is not None:
                msg = f"{msg}\n{self._source_context(source, line, col)}"
        return msg, token

    def _source_context(self, source: str, line: int, col: Optional[int], radius: int = 2) -> str:
        lines = source.splitlines()
        if not line or line < 1 or line > len(lines):
            return ""
        start = max(1, line - radius)
        end = min(len(lines), line + radius)
        width = len(str(end))
        out = []
        for i in range(start, end + 1):
            prefix = ">" if i == line else " "
            ln = str(i).rjust(width)
            out.append(f"{prefix} {ln} | {lines[i - 1]}")
            if i == line and col is not None:
                caret = " " * max(col - 1, 0)
                out.append(f"  {' ' * width} | {caret}^")
        return "\n".join(out)
