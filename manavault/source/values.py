"""
Value coercion for upstream columns.

MTGJSON stores list-valued fields as JSON arrays in some snapshots and as
comma-separated strings in others, numbers as REAL or TEXT. These helpers
accept either shape and never raise.
"""

import json
import re
from typing import Any

from manavault.models.search import COLOR_ORDER

STAT_PATTERN = re.compile(r"^[-+]?\d+(\.\d+)?$")
COLLECTOR_NUMBER_PATTERN = re.compile(r"^(\d+)")


def parse_json(value: Any, fallback: Any = None) -> Any:
    """Decode a JSON string; non-strings pass through, bad JSON yields `fallback`."""
    if value is None:
        return fallback
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return fallback


def normalize_string_list(value: Any) -> tuple[str, ...]:
    """
    Coerce a list-valued column into a tuple of non-empty strings.

    Accepts JSON arrays, comma-separated strings, and Python sequences.
    """
    parsed = parse_json(value, fallback=value)
    if not parsed:
        return ()
    if isinstance(parsed, (list, tuple)):
        return tuple(str(entry).strip() for entry in parsed if entry and str(entry).strip())
    if isinstance(parsed, str):
        return tuple(entry.strip() for entry in parsed.split(",") if entry.strip())
    return ()


def normalize_colors(value: Any) -> tuple[str, ...]:
    """Color letters in WUBRG order, deduplicated; anything else is dropped."""
    letters = {entry.upper() for entry in normalize_string_list(value)}
    return tuple(color for color in COLOR_ORDER if color in letters)


def to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def clean_text(value: Any) -> str | None:
    """Strip a text column; blank becomes None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_stat_value(value: str | None) -> float | None:
    """
    Numeric power/toughness/loyalty, or None for variable stats.

    "3" -> 3.0, "-1" -> -1.0, "*" -> None, "1+*" -> None
    """
    if not value:
        return None
    normalized = value.strip()
    if not STAT_PATTERN.match(normalized):
        return None
    return float(normalized)


def parse_collector_number(value: str | None) -> int | None:
    """Leading integer of a collector number ("123a" -> 123, "★5" -> None)."""
    if not value:
        return None
    match = COLLECTOR_NUMBER_PATTERN.match(value.strip())
    return int(match.group(1)) if match else None
