"""
Filter registry and the standard filter set.

Filters are plain Python callables on native values: ``f(receiver, *args)``.
The registry unwraps the evaluated Values before the call and wraps the
result again afterwards.
"""

import inspect
from typing import Callable, Dict, List, Optional

from drip.drip_config import dbg
from drip.drip_datatypes import EvaluationError, UndefinedFilter, Scope
from drip.drip_printer import Printer
from drip.drip_values import Value, value_of

_text = Printer().pformat


def _number(x):
    if isinstance(x, bool):
        raise TypeError(f"expected a number, got {x!r}")
    if isinstance(x, (int, float)):
        return x
    if isinstance(x, str):
        s = x.strip()
        return float(s) if "." in s else int(s)
    if x is None:
        return 0
    raise TypeError(f"expected a number, got {type(x).__name__}")


def _items(x) -> list:
    if x is None:
        return []
    if isinstance(x, str):
        return [x]
    if isinstance(x, dict):
        return [[k, v] for k, v in x.items()]
    return list(x)


class StandardFilters:
    """Python implementations of the built-in filters.

    Every method named ``_<name>`` is registered as filter ``<name>``.
    """

    # --- Strings ---
    def _upcase(self, s): return _text(s).upper()
    def _downcase(self, s): return _text(s).lower()
    def _capitalize(self, s): return _text(s).capitalize()
    def _strip(self, s): return _text(s).strip()
    def _append(self, s, suffix): return _text(s) + _text(suffix)
    def _prepend(self, s, prefix): return _text(prefix) + _text(s)
    def _replace(self, s, old, new): return _text(s).replace(_text(old), _text(new))
    def _split(self, s, sep): return _text(s).split(_text(sep)) if _text(s) else []

    # --- Sequences ---
    def _size(self, x):
        if isinstance(x, (str, list, tuple, dict, range)):
            return len(x)
        return 0

    def _first(self, x):
        items = _items(x)
        return items[0] if items else None

    def _last(self, x):
        items = _items(x)
        return items[-1] if items else None

    def _join(self, x, sep=" "):
        return _text(sep).join(_text(i) for i in _items(x))

    def _reverse(self, x): return list(reversed(_items(x)))
    def _sort(self, x): return sorted(_items(x))

    # --- Values ---
    def _default(self, x, fallback):
        if x is None or x is False or (hasattr(x, "__len__") and len(x) == 0):
            return fallback
        return x

    # --- Math ---
    def _plus(self, a, b): return _number(a) + _number(b)
    def _minus(self, a, b): return _number(a) - _number(b)
    def _times(self, a, b): return _number(a) * _number(b)


class FilterRegistry:
    """Maps filter names to callables and invokes them on Values."""

    def __init__(self, strict: bool = True):
        self.filters: Dict[str, Callable] = {}
        self.strict = strict

    def register(self, name: str, fn: Callable):
        self.filters[name] = fn

    def register_library(self, library):
        for name, member in inspect.getmembers(library):
            if name.startswith('_') and not name.startswith('__') and callable(member):
                self.register(name[1:], member)

    def __contains__(self, name: str) -> bool:
        return name in self.filters

    def invoke(self, name: str, receiver: Value, args: List[Value]) -> Value:
        fn = self.filters.get(name)
        if fn is None:
            if self.strict:
                raise UndefinedFilter(name)
            dbg("filter", name, "undefined; passing receiver through")
            return receiver
        native_args = [a.interface() for a in args]
        try:
            result = fn(receiver.interface(), *native_args)
        except (TypeError, ValueError, ArithmeticError, LookupError) as e:
            raise EvaluationError(f"error applying filter {name!r}: {e}") from e
        return value_of(result)


def standard_filters(strict: bool = True) -> FilterRegistry:
    registry = FilterRegistry(strict=strict)
    registry.register_library(StandardFilters())
    return registry


_default_registry: Optional[FilterRegistry] = None


def registry_for(scope: Scope) -> FilterRegistry:
    """The registry installed on the scope chain, else the standard set."""
    global _default_registry
    registry = scope.find_meta("filters")
    if registry is not None:
        return registry
    if _default_registry is None:
        _default_registry = standard_filters()
    return _default_registry
