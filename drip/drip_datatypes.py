"""
Defines the core data types shared by the Drip parser, evaluator and
iteration engine.

This module provides the error hierarchy, the lexical Scope used as the
evaluation context, the statement records produced by the parser, and the
per-iteration loop metadata.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# =================================================================
# Errors
# =================================================================

class DripError(Exception):
    """Base class for every error raised by the template core."""
    def __init__(self, message: str, loc: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        # {'line': int, 'col': int, 'text': str}, filled in by the template layer.
        self.loc = loc

    def __str__(self) -> str:
        return self.message


class DripSyntaxError(DripError, SyntaxError):
    """A statement or template that cannot be parsed."""
    pass


class ControlError(DripError, RuntimeError):
    """break, continue or cycle used where no loop can consume it."""
    pass


class EvaluationError(DripError, RuntimeError):
    """A failure while evaluating an expression (filters, coercions)."""
    pass


class UndefinedFilter(EvaluationError):
    def __init__(self, name: str):
        super().__init__(f"undefined filter {name!r}")
        self.name = name


# =================================================================
# Control signals
# =================================================================

class ControlSignal(enum.Enum):
    """Outcome of rendering a node. Loops consume CONTINUE and BREAK."""
    NONE = "none"
    CONTINUE = "continue"
    BREAK = "break"


# =================================================================
# Scope
# =================================================================

_MISSING = object()


class Scope:
    """Name lookup for expression evaluation.

    A scope holds its own bindings and a parent link. Lookups walk the
    chain; writes through ``[]`` always bind locally. Loop iterations run in
    transient child scopes (see :meth:`child`) so their bindings disappear
    when the iteration ends, while ``assign`` writes through them to the
    nearest durable scope.
    """
    def __init__(self, bindings: Optional[Dict[str, Any]] = None, parent: Optional['Scope'] = None):
        self.bindings: Dict[str, Any] = dict(bindings or {})
        self.meta: Dict[str, Any] = {
            "parent": parent,
            "transient": False,
        }

    @property
    def parent(self) -> Optional['Scope']:
        return self.meta.get("parent")

    def find_owner(self, key: str) -> Optional['Scope']:
        scope = self
        while scope is not None:
            if key in scope.bindings:
                return scope
            scope = scope.parent
        return None

    def get(self, key: str, default: Any = None) -> Any:
        owner = self.find_owner(key)
        if owner is None:
            return default
        return owner.bindings[key]

    def __getitem__(self, key: str) -> Any:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def __setitem__(self, key: str, value: Any):
        if not isinstance(key, str):
            raise TypeError(f"Scope key must be a str, not {type(key)}")
        self.bindings[key] = value

    def __contains__(self, key: Any) -> bool:
        return isinstance(key, str) and self.find_owner(key) is not None

    def child(self, bindings: Optional[Dict[str, Any]] = None, **meta) -> 'Scope':
        """Derive a transient scope that shadows this one without mutating it."""
        scope = Scope(bindings, parent=self)
        scope.meta["transient"] = True
        scope.meta.update(meta)
        return scope

    def assign(self, key: str, value: Any):
        """Bind key in the nearest non-transient scope."""
        scope = self
        while scope.meta.get("transient") and scope.parent is not None:
            scope = scope.parent
        scope[key] = value

    def find_meta(self, key: str, default: Any = None) -> Any:
        """Return the innermost meta entry named key along the chain."""
        scope = self
        while scope is not None:
            if key in scope.meta:
                return scope.meta[key]
            scope = scope.parent
        return default

    def keys(self):
        return self.bindings.keys()

    def __repr__(self) -> str:
        return f"<Scope bindings={list(self.bindings)!r} transient={self.meta.get('transient')}>"


# =================================================================
# Statement records
# =================================================================

@dataclass
class LoopModifiers:
    reversed: bool = False
    limit: Optional['Expression'] = None
    offset: Optional['Expression'] = None
    cols: Optional['Expression'] = None


@dataclass
class LoopHeader:
    """`name in source modifiers...` as parsed from a for or tablerow tag."""
    variable: str
    source: 'Expression'
    modifiers: LoopModifiers = field(default_factory=LoopModifiers)


@dataclass(frozen=True)
class Cycle:
    group: str
    values: tuple

    @property
    def key(self):
        # Anonymous cycles are grouped by their literal value list.
        return self.group if self.group else self.values


@dataclass
class Assignment:
    name: str
    expression: 'Expression'


@dataclass
class When:
    expressions: List['Expression'] = field(default_factory=list)



# =================================================================
# Loop metadata
# =================================================================

@dataclass(frozen=True)
class ForloopMetadata:
    index0: int
    length: int

    @property
    def index(self) -> int:
        return self.index0 + 1

    @property
    def rindex(self) -> int:
        return self.length - self.index0

    @property
    def rindex0(self) -> int:
        return self.length - self.index0 - 1

    @property
    def first(self) -> bool:
        return self.index0 == 0

    @property
    def last(self) -> bool:
        return self.index0 == self.length - 1

    def as_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "index0": self.index0,
            "rindex": self.rindex,
            "rindex0": self.rindex0,
            "first": self.first,
            "last": self.last,
            "length": self.length,
        }


@dataclass(frozen=True)
class TablerowMetadata(ForloopMetadata):
    cols: int = 0

    @property
    def col0(self) -> int:
        return self.index0 % self.cols

    @property
    def col(self) -> int:
        return self.col0 + 1

    @property
    def row(self) -> int:
        return self.index0 // self.cols + 1

    @property
    def col_first(self) -> bool:
        return self.col0 == 0

    @property
    def col_last(self) -> bool:
        return self.col == self.cols or self.last

    def as_dict(self) -> Dict[str, Any]:
        d = super().as_dict()
        d.update({
            "col": self.col,
            "col0": self.col0,
            "col_first": self.col_first,
            "col_last": self.col_last,
            "row": self.row,
        })
        return d
