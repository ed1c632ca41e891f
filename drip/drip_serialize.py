"""
Loading template bindings from JSON or YAML.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

_EXTENSIONS = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
}


def detect_format(filename: Optional[str] = None, data_hint: Optional[str] = None) -> Optional[str]:
    """
    Returns 'json' or 'yaml'. Uses the file extension first, then sniffs the
    data: text opening with '{' or '[' is treated as JSON.
    """
    if filename:
        fmt = _EXTENSIONS.get(Path(filename).suffix.lower())
        if fmt:
            return fmt
    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{') or s.startswith('['):
            return 'json'
        return 'yaml'
    return None


def deserialize(text: str, *, fmt: Optional[str] = None) -> Any:
    """Parse JSON or YAML text into native Python structures."""
    f = fmt or detect_format(data_hint=text)
    if f == 'json':
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            # YAML is a superset of JSON; give it a chance before failing.
            return yaml.safe_load(text)
    if f == 'yaml':
        return yaml.safe_load(text)
    raise ValueError(f"unsupported bindings format: {f!r}")


def load_bindings(path: str) -> Dict[str, Any]:
    """Read a bindings file. An empty file gives no bindings."""
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    data = deserialize(text, fmt=detect_format(p.name, text))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"bindings must be a mapping, got {type(data).__name__}")
    return data
