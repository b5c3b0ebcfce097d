"""Normalization of raw school settings into a SchoolConfiguration."""

import logging
from typing import Any

from ..constants import (
    DAILY_PERIODS_KEYS,
    DAYS_KEYS,
    DEFAULT_DAILY_PERIODS,
    DEFAULT_DAYS,
    DEFAULT_GRADE_CLASSES,
    DEFAULT_GRADES,
    DEFAULT_OTHER_GRADE_CLASSES,
    DEFAULT_SATURDAY_PERIODS,
    GRADES_KEYS,
    SATURDAY_PERIODS_KEYS,
    SECTIONS_KEYS,
)
from ..normalization import coerce_int_list, coerce_list, is_missing, safe_int
from .models import SchoolConfiguration

logger = logging.getLogger(__name__)


def _first_present(raw: dict[str, Any], keys: tuple[str, ...]) -> Any:
    """Return the value of the first key present in the mapping."""
    for key in keys:
        if key in raw and not is_missing(raw[key]):
            return raw[key]
    return None


def _normalize_days(value: Any) -> tuple[str, ...]:
    items = coerce_list(value)
    if not items:
        return tuple(DEFAULT_DAYS)
    days = [str(item).strip() for item in items if not is_missing(item)]
    # Keep first occurrence of duplicated day names, ignoring case
    seen: dict[str, str] = {}
    for day in days:
        seen.setdefault(day.casefold(), day)
    unique = list(seen.values())
    return tuple(unique) if unique else tuple(DEFAULT_DAYS)


def _normalize_grades(value: Any) -> tuple[int, ...]:
    grades = coerce_int_list(value)
    if not grades:
        return tuple(DEFAULT_GRADES)
    unique = [g for g in dict.fromkeys(grades) if g >= 1]
    return tuple(unique) if unique else tuple(DEFAULT_GRADES)


def _class_count(raw: dict[str, Any], grade: int) -> int:
    """Number of class sections for a grade (``gradeNClasses`` or default)."""
    default = DEFAULT_GRADE_CLASSES.get(grade, DEFAULT_OTHER_GRADE_CLASSES)
    for key in (f"grade{grade}Classes", f"grade{grade}_classes"):
        if key in raw:
            return safe_int(raw[key], default, minimum=1)
    return default


def _section_labels(value: Any) -> tuple[str, ...] | None:
    """Read the section labels of one grade; None if malformed."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and not is_missing(value):
        count = safe_int(value, 0, minimum=1)
        return tuple(str(n) for n in range(1, count + 1)) if count else None

    items = coerce_list(value)
    if not items:
        return None
    labels = [str(item).strip() for item in items if not is_missing(item)]
    return tuple(dict.fromkeys(labels)) or None


def _normalize_sections(
    raw: dict[str, Any], grades: tuple[int, ...]
) -> dict[int, tuple[str, ...]]:
    mapping = _first_present(raw, SECTIONS_KEYS)
    parsed: dict[int, tuple[str, ...]] = {}

    if isinstance(mapping, dict):
        for key, value in mapping.items():
            grade = safe_int(key, -1)
            if grade not in grades:
                logger.debug(f"Dropping sections for unknown grade key {key!r}")
                continue
            labels = _section_labels(value)
            if labels is not None:
                parsed[grade] = labels

    sections = {}
    for grade in grades:
        if grade in parsed:
            sections[grade] = parsed[grade]
        else:
            count = _class_count(raw, grade)
            sections[grade] = tuple(str(n) for n in range(1, count + 1))
    return sections


def normalize_settings(raw: dict[str, Any] | SchoolConfiguration | None) -> SchoolConfiguration:
    """Turn partially specified settings into a complete configuration.

    Accepts camelCase (``dailyPeriods``) and snake_case (``daily_periods``)
    keys. Missing, non-numeric or non-positive values fall back to defaults:
    6 weekday periods, 4 Saturday periods, grades 1-3 with 4/4/3 class
    sections and a Monday-Saturday week.

    Args:
        raw: Raw settings mapping, an existing configuration, or None

    Returns:
        A configuration satisfying all SchoolConfiguration invariants
    """
    if isinstance(raw, SchoolConfiguration):
        return raw
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning(f"Ignoring settings of type {type(raw).__name__}; using defaults")
        raw = {}

    grades = _normalize_grades(_first_present(raw, GRADES_KEYS))
    config = SchoolConfiguration(
        grades=grades,
        sections=_normalize_sections(raw, grades),
        days=_normalize_days(_first_present(raw, DAYS_KEYS)),
        daily_periods=safe_int(
            _first_present(raw, DAILY_PERIODS_KEYS), DEFAULT_DAILY_PERIODS, minimum=1
        ),
        saturday_periods=safe_int(
            _first_present(raw, SATURDAY_PERIODS_KEYS), DEFAULT_SATURDAY_PERIODS, minimum=1
        ),
    )
    logger.debug(
        f"Normalized settings: {len(config.days)} days, grades {list(config.grades)}, "
        f"{len(config.class_sections())} class sections"
    )
    return config
