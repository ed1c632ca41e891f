"""
Formats template values as output text.
"""
import collections.abc

from drip.drip_values import Value


class Printer:
    """Turns native or wrapped values into the text written by {{ ... }}."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj):
        """Public entry point to format an object."""
        if isinstance(obj, Value):
            obj = obj.interface()
        handler = self._get_handler(obj)
        return handler(obj)

    def _get_handler(self, obj):
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, str): return self._pformat_str
        if isinstance(obj, collections.abc.Mapping): return self._pformat_mapping
        if isinstance(obj, (collections.abc.Sequence, range)): return self._pformat_sequence
        return str

    def _create_handlers(self):
        return {
            str: self._pformat_str,
            int: self._pformat_primitive,
            float: self._pformat_primitive,
            bool: self._pformat_bool,
            type(None): self._pformat_none,
            list: self._pformat_sequence,
            tuple: self._pformat_sequence,
            range: self._pformat_sequence,
            dict: self._pformat_mapping,
        }

    def _pformat_primitive(self, obj):
        return str(obj)

    def _pformat_str(self, obj):
        return str(obj)

    def _pformat_bool(self, obj):
        return 'true' if obj else 'false'

    def _pformat_none(self, obj):
        return ''

    def _pformat_sequence(self, obj):
        # Sequences render as the concatenation of their items.
        return ''.join(self.pformat(item) for item in obj)

    def _pformat_mapping(self, obj):
        pairs = ", ".join(f"{self._inspect(k)}=>{self._inspect(v)}" for k, v in obj.items())
        return "{" + pairs + "}"

    def _inspect(self, obj):
        if isinstance(obj, str):
            return f'"{obj}"'
        if obj is None:
            return 'nil'
        return self.pformat(obj)
