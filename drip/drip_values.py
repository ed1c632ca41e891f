"""
The Drip value model.

Every value an expression produces is one of a closed set of kinds: nil,
boolean, number, string, sequence, mapping and integer range. Natives are
wrapped on the way in with ``value_of`` and unwrapped with ``interface()``.
Comparison, truthiness, property and index resolution live here so the
evaluator never inspects Python types itself.
"""

import collections.abc
import re
from typing import Any, List, Sequence

from drip.drip_datatypes import EvaluationError, ForloopMetadata

_INT_RE = re.compile(r"^\s*-?\d+\s*$")


class Value:
    """Base class; subclasses override the operations that apply to them."""
    kind = "value"

    def interface(self) -> Any:
        raise NotImplementedError

    def equal(self, other: 'Value') -> bool:
        return False

    def less(self, other: 'Value') -> bool:
        return False

    def test(self) -> bool:
        return True

    def property_value(self, name: str) -> 'Value':
        return NIL

    def index_value(self, key: 'Value') -> 'Value':
        return NIL

    def contains(self, item: 'Value') -> bool:
        return False

    def iterate(self) -> List['Value']:
        return []

    def loop_source(self) -> Sequence:
        """What a for loop walks: a sliceable sequence of Values or natives."""
        return self.iterate()

    def to_int(self) -> int:
        raise EvaluationError(f"expected an integer, got {self.kind} {self.interface()!r}")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.interface()!r}>"


class NilValue(Value):
    kind = "nil"

    def interface(self):
        return None

    def equal(self, other):
        return isinstance(other, NilValue)

    def test(self):
        return False


class BoolValue(Value):
    kind = "boolean"

    def __init__(self, flag: bool):
        self.flag = bool(flag)

    def interface(self):
        return self.flag

    def equal(self, other):
        return isinstance(other, BoolValue) and other.flag == self.flag

    def test(self):
        return self.flag


class NumberValue(Value):
    kind = "number"

    def __init__(self, number):
        self.number = number

    def interface(self):
        return self.number

    def equal(self, other):
        return isinstance(other, NumberValue) and self.number == other.number

    def less(self, other):
        return isinstance(other, NumberValue) and self.number < other.number

    def to_int(self):
        if isinstance(self.number, float) and not self.number.is_integer():
            raise EvaluationError(f"expected an integer, got {self.number!r}")
        return int(self.number)


class StringValue(Value):
    kind = "string"

    def __init__(self, text: str):
        self.text = text

    def interface(self):
        return self.text

    def equal(self, other):
        return isinstance(other, StringValue) and self.text == other.text

    def less(self, other):
        return isinstance(other, StringValue) and self.text < other.text

    def test(self):
        return self.text != ""

    def property_value(self, name):
        if name == "size":
            return NumberValue(len(self.text))
        return NIL

    def contains(self, item):
        match item:
            case StringValue():
                return item.text in self.text
            case NumberValue():
                return str(item.number) in self.text
        return False

    def iterate(self):
        return [self] if self.text else []

    def to_int(self):
        if _INT_RE.match(self.text):
            return int(self.text)
        return super().to_int()


class _Collection(Value):
    """Shared behaviour of sequences and ranges: size/first/last and indexing."""

    def items(self):
        raise NotImplementedError

    def test(self):
        return len(self.items()) > 0

    def equal(self, other):
        if not isinstance(other, _Collection):
            return False
        mine, theirs = self.items(), other.items()
        if len(mine) != len(theirs):
            return False
        return all(value_of(a).equal(value_of(b)) for a, b in zip(mine, theirs))

    def property_value(self, name):
        items = self.items()
        match name:
            case "size":
                return NumberValue(len(items))
            case "first":
                return value_of(items[0]) if len(items) else NIL
            case "last":
                return value_of(items[-1]) if len(items) else NIL
        return NIL

    def index_value(self, key):
        if not isinstance(key, NumberValue):
            return NIL
        n = key.number
        if isinstance(n, float):
            if not n.is_integer():
                return NIL
            n = int(n)
        items = self.items()
        if -len(items) <= n < len(items):
            return value_of(items[n])
        return NIL

    def contains(self, item):
        return any(value_of(x).equal(item) for x in self.items())

    def iterate(self):
        return [value_of(x) for x in self.items()]

    def loop_source(self):
        items = self.items()
        if isinstance(items, (list, tuple, range)):
            return items
        return list(items)


class SequenceValue(_Collection):
    kind = "sequence"

    def __init__(self, seq):
        self.seq = seq

    def interface(self):
        return self.seq

    def items(self):
        return self.seq


class RangeValue(_Collection):
    """An inclusive integer range. Backed by a Python range, so it is lazy
    and can be iterated any number of times."""
    kind = "range"

    def __init__(self, low: int, high: int):
        # Descending bounds give an empty range.
        self.range = range(low, high + 1)

    @classmethod
    def from_range(cls, r: range) -> 'RangeValue':
        rv = cls(0, -1)
        rv.range = r
        return rv

    def interface(self):
        return self.range

    def items(self):
        return self.range

    def contains(self, item):
        if isinstance(item, NumberValue) and not isinstance(item.number, bool):
            return item.number in self.range
        return False

    def __repr__(self):
        r = self.range
        return f"<RangeValue {r.start}..{r.stop - 1}>"


class MappingValue(Value):
    kind = "mapping"

    def __init__(self, mapping):
        self.mapping = mapping

    def interface(self):
        return self.mapping

    def equal(self, other):
        if not isinstance(other, MappingValue):
            return False
        if set(self.mapping.keys()) != set(other.mapping.keys()):
            return False
        return all(value_of(v).equal(value_of(other.mapping[k])) for k, v in self.mapping.items())

    def test(self):
        return len(self.mapping) > 0

    def property_value(self, name):
        if name in self.mapping:
            return value_of(self.mapping[name])
        if name == "size":
            return NumberValue(len(self.mapping))
        return NIL

    def index_value(self, key):
        k = key.interface()
        try:
            if k in self.mapping:
                return value_of(self.mapping[k])
        except TypeError:
            # unhashable key
            pass
        return NIL

    def contains(self, item):
        try:
            return item.interface() in self.mapping
        except TypeError:
            return False

    def iterate(self):
        return [value_of(k) for k in self.mapping.keys()]


NIL = NilValue()
TRUE = BoolValue(True)
FALSE = BoolValue(False)


def value_of(native: Any) -> Value:
    """Wrap a native Python value. Values pass through unchanged."""
    match native:
        case Value():
            return native
        case None:
            return NIL
        case bool():
            return TRUE if native else FALSE
        case int() | float():
            return NumberValue(native)
        case str():
            return StringValue(native)
        case range():
            return RangeValue.from_range(native)
        case ForloopMetadata():
            return MappingValue(native.as_dict())
    if isinstance(native, collections.abc.Mapping):
        return MappingValue(native)
    if isinstance(native, collections.abc.Sequence):
        return SequenceValue(native)
    if isinstance(native, (set, frozenset)):
        return SequenceValue(list(native))
    raise EvaluationError(f"cannot use {type(native).__name__} as a template value")
