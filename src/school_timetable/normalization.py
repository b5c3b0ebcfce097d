"""Value normalization utilities for raw school records."""

import json
import re

import pandas as pd

# Restriction level spellings found in stored data
MANDATORY_LEVEL_NAMES = {"mandatory", "required", "hard", "必須"}
RECOMMENDED_LEVEL_NAMES = {"recommended", "preferred", "soft", "推奨"}

TRUE_STRINGS = {"1", "true", "yes", "y", "on"}


def is_missing(value: object) -> bool:
    """Check if a raw value is absent (None, NaN or empty string)."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def safe_int(value: object, default: int, minimum: int | None = None) -> int:
    """Parse an integer, falling back to a default.

    Args:
        value: Raw value (int, float, numeric string, NaN, None, ...)
        default: Value returned when parsing fails
        minimum: Values below this are replaced by the default

    Returns:
        Parsed integer or the default
    """
    if is_missing(value) or isinstance(value, bool):
        return default

    try:
        parsed = int(float(str(value).strip()))
    except (ValueError, TypeError, OverflowError):
        return default

    if minimum is not None and parsed < minimum:
        return default
    return parsed


def safe_bool(value: object, default: bool = False) -> bool:
    """Parse a boolean stored as bool, 0/1 or a string flag."""
    if is_missing(value):
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in TRUE_STRINGS


def coerce_list(value: object) -> list | None:
    """Coerce a stored list to a Python list.

    Accepts real lists/tuples, JSON array strings ('["a", "b"]') and
    comma/semicolon separated strings ('a, b').

    Returns:
        List of items, or None if the value cannot be read as a list
    """
    if is_missing(value):
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                return None
            return parsed if isinstance(parsed, list) else None
        return [part.strip() for part in re.split(r"[;,]", text) if part.strip()]
    if isinstance(value, (int, float)):
        return [value]
    return None


def coerce_int_list(value: object) -> list[int] | None:
    """Coerce a stored list of integers (e.g. grades).

    Returns:
        List of integers, or None if any item is not numeric
    """
    items = coerce_list(value)
    if items is None:
        return None

    result = []
    for item in items:
        parsed = safe_int(item, default=-1)
        if parsed < 0:
            return None
        result.append(parsed)
    return result


def normalize_restriction_level(value: object) -> str | None:
    """Map a stored restriction level to 'mandatory' or 'recommended'.

    Returns:
        Normalized level, or None if the spelling is unknown
    """
    if is_missing(value):
        return None
    level = str(value).strip().lower()
    if level in MANDATORY_LEVEL_NAMES:
        return "mandatory"
    if level in RECOMMENDED_LEVEL_NAMES:
        return "recommended"
    return None


def normalize_name(name: object) -> str:
    """Normalize a display name by collapsing whitespace."""
    if is_missing(name):
        return ""
    return " ".join(str(name).split())
