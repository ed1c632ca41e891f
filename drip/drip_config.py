"""
Environment-driven settings and debug output for the Drip runtime.
"""
import os
import sys
from dataclasses import dataclass

DEFAULT_MAX_LOOP_ITERS = 100000


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("", "0", "false", "no", "off")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class Config:
    """Runtime switches. Read once per runner; tests construct it directly."""
    max_loop_iters: int = DEFAULT_MAX_LOOP_ITERS
    strict_filters: bool = True

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            max_loop_iters=_env_int("DRIP_MAX_LOOP_ITERS", DEFAULT_MAX_LOOP_ITERS),
            strict_filters=_env_flag("DRIP_STRICT_FILTERS", True),
        )


def dbg(*parts):
    # Checked on every call so DRIP_DEBUG can be toggled inside a session.
    if _env_flag("DRIP_DEBUG", False):
        try:
            print("[DBG]", *parts, file=sys.stderr)
        except Exception:
            pass
