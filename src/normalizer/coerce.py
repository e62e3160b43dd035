"""
Value coercion for upstream fields.

Upstreams report counts as ints, floats, numeric strings or abbreviated text
("1.2K", "3,401 views") and times as epoch numbers or ISO strings. These helpers
turn all of them into plain ints and never return None.
"""

import re
from datetime import datetime, timezone
from typing import Any

_SUFFIXES = {"K": 1_000, "M": 1_000_000, "B": 1_000_000_000}

_COUNT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*([KMB])?", re.IGNORECASE)

# "+0000" offsets (Instagram Graph API) are not accepted by fromisoformat on all versions
_OFFSET_PATTERN = re.compile(r"([+-]\d{2})(\d{2})$")


def parse_count(value: Any) -> int:
    """
    Parse an engagement count.

    Examples:
        >>> parse_count("1.2K")
        1200
        >>> parse_count("3,401 views")
        3401
        >>> parse_count(None)
        0
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)

    text = str(value).replace(",", "").strip()
    match = _COUNT_PATTERN.search(text)
    if not match:
        return 0

    number = float(match.group(1))
    suffix = (match.group(2) or "").upper()
    return int(round(number * _SUFFIXES.get(suffix, 1)))


def to_epoch(value: Any) -> int:
    """
    Convert a timestamp to Unix seconds.

    Accepts epoch numbers (seconds or milliseconds), numeric strings and ISO 8601
    strings. Anything unparseable (e.g. "3 days ago") becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        seconds = int(value)
        # Millisecond epochs
        if seconds > 10_000_000_000:
            seconds //= 1000
        return seconds

    text = str(value).strip()
    if not text:
        return 0
    if text.isdigit():
        return to_epoch(int(text))

    text = text.replace("Z", "+00:00")
    text = _OFFSET_PATTERN.sub(r"\1:\2", text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return 0

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def to_text(value: Any) -> str:
    """Coerce to a string; None becomes ""."""
    if value is None:
        return ""
    return str(value)


def to_bool(value: Any) -> bool:
    """Interpret is_video style flags, including media_type strings like "VIDEO"."""
    if isinstance(value, str):
        return value.strip().upper() in ("VIDEO", "TRUE", "1", "REELS")
    return bool(value)
