"""Shared utilities for the solution catalog."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_int(raw: Any) -> Optional[int]:
    """Parse an integer from loosely-typed input. Returns None if not numeric.

    Accepts leading/trailing whitespace and a leading sign. Floats and strings
    like "2.5" are rejected rather than truncated.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def is_blank(value: Any) -> bool:
    """True for None and for strings that are empty after stripping."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def split_tags(raw: Any) -> list[str]:
    """Split a comma-separated string (or list) into trimmed, non-empty tags.

    Order is preserved; duplicates are kept as given.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        parts = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        parts = []
        for item in raw:
            parts.extend(str(item).split(","))
    else:
        parts = [str(raw)]
    return [p.strip() for p in parts if p.strip()]


def parse_bool(raw: Any) -> Optional[bool]:
    """Interpret "true"/"false"/"1"/"0"/... as a bool. None when unrecognized."""
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return None
    text = str(raw).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    return None
