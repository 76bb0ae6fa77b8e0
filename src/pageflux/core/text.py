# src/pageflux/core/text.py

import math
import re
from datetime import datetime, timezone
from typing import Any, Optional

_TAG_RE = re.compile(r"<[^>]+>")
_ENTITY_RE = re.compile(r"&[a-zA-Z0-9#]+;")
_WHITESPACE_RE = re.compile(r"\s+")
_NUMERIC_RE = re.compile(r"^\d+(\.\d+)?$")
_DURATION_TOKEN_RE = re.compile(
    r"(\d+)\s*(hours|hour|hrs|hr|h|minutes|minute|mins|min|m|seconds|second|secs|sec|s)(?![a-z])",
    re.IGNORECASE,
)

_UNIT_SECONDS = {
    "h": 3600, "hr": 3600, "hrs": 3600, "hour": 3600, "hours": 3600,
    "m": 60, "min": 60, "mins": 60, "minute": 60, "minutes": 60,
    "s": 1, "sec": 1, "secs": 1, "second": 1, "seconds": 1,
}


def clean_text(text: Optional[str]) -> Optional[str]:
    """
    Strips HTML markup from a wire string.

    Tags are removed, entities become a single space, whitespace runs collapse
    and the result is trimmed. Returns None when nothing readable is left, so
    callers can tell an absent value from a blank one.
    """
    if text is None:
        return None
    cleaned = _TAG_RE.sub("", str(text))
    cleaned = _ENTITY_RE.sub(" ", cleaned)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned or None


def parse_duration_seconds(value: Any) -> Optional[int]:
    """
    Canonicalizes a wire duration to whole seconds.

    Accepts raw seconds (int, float or numeric string) and composite strings
    like "1hr 30m", "2h", "45 min" or "1h 2m 3s". Returns None for anything
    else.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return max(int(value), 0)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if _NUMERIC_RE.match(text):
        return int(text.split(".")[0])

    tokens = list(_DURATION_TOKEN_RE.finditer(text))
    if not tokens:
        return None
    # Every character outside the matched tokens must be whitespace
    leftover = _DURATION_TOKEN_RE.sub("", text)
    if leftover.strip():
        return None
    return sum(int(m.group(1)) * _UNIT_SECONDS[m.group(2).lower()] for m in tokens)


def format_seconds(total_seconds: int) -> str:
    """Formats seconds as "Nh Nm", dropping zero parts."""
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if not parts:
        # Under a minute: show seconds, or "0m" for nothing at all
        parts.append(f"{total_seconds}s" if total_seconds > 0 else "0m")
    return " ".join(parts)


def format_duration(value: Any) -> Optional[str]:
    """Display string for any wire duration; unparseable strings pass through."""
    if value is None:
        return None
    seconds = parse_duration_seconds(value)
    if seconds is None:
        return str(value)
    return format_seconds(seconds)


def parse_lenient_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        # JSON allows NaN and Infinity, which have no integer value
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str):
        text = value.strip()
        if re.fullmatch(r"[-+]?\d+", text):
            return int(text)
    return default


def parse_lenient_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def parse_release_date(value: Any) -> Optional[datetime]:
    """Parses ISO-8601 timestamps or day-first dates such as "05 March 2024"."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = datetime.strptime(text, "%d %B %Y")
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
