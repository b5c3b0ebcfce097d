"""Loading of school data (settings and rosters) from JSON or Excel.

All storage-format coercion happens here, once: JSON-encoded lists, 0/1
flags, scalar weekly hours, camelCase keys and localized restriction levels.
Records that cannot be read are skipped and reported in
``SchoolData.warnings``.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from .engine.constants import RestrictionLevel
from .engine.models import (
    AssignmentRestriction,
    Classroom,
    SchoolConfiguration,
    Subject,
    Teacher,
)
from .engine.settings import normalize_settings
from .exceptions import DataLoadError
from .normalization import (
    coerce_int_list,
    coerce_list,
    is_missing,
    normalize_name,
    normalize_restriction_level,
    safe_bool,
    safe_int,
)

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
JSON_SUFFIXES = {".json"}

SHEET_SETTINGS = "settings"
SHEET_TEACHERS = "teachers"
SHEET_SUBJECTS = "subjects"
SHEET_CLASSROOMS = "classrooms"


@dataclass
class SchoolData:
    """Typed school data ready for the engine."""

    config: SchoolConfiguration
    teachers: list[Teacher] = field(default_factory=list)
    subjects: list[Subject] = field(default_factory=list)
    classrooms: list[Classroom] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _get(record: dict[str, Any], *keys: str) -> Any:
    """First non-missing value among alternative keys."""
    for key in keys:
        value = record.get(key)
        if not is_missing(value):
            return value
    return None


def _decode_json(value: Any) -> Any:
    """Decode a JSON object/array stored as a string; other values pass through."""
    if isinstance(value, str) and value.strip()[:1] in ("[", "{"):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def _as_id(value: Any) -> str:
    """Stringify an id; spreadsheet integers read as floats lose the '.0'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _record_label(record: dict[str, Any]) -> str:
    return str(_get(record, "name", "id") or "<unnamed>")


def parse_restriction(raw: Any) -> AssignmentRestriction:
    """Parse one stored restriction.

    Raises:
        ValueError: If the day or level is missing or unknown
    """
    if not isinstance(raw, dict):
        raise ValueError(f"restriction must be an object, got {type(raw).__name__}")

    day = _get(raw, "day", "restrictedDay", "restricted_day")
    if day is None:
        raise ValueError("restriction has no day")

    periods = coerce_int_list(_get(raw, "periods", "restrictedPeriods", "restricted_periods"))
    if periods is None:
        raise ValueError(f"restriction on {day} has malformed periods")

    raw_level = _get(raw, "level", "restrictionLevel", "restriction_level")
    level = normalize_restriction_level(raw_level) if raw_level is not None else "mandatory"
    if level is None:
        raise ValueError(f"unknown restriction level '{raw_level}'")

    section = _get(raw, "section")
    subject = _get(raw, "subject")
    return AssignmentRestriction(
        day=str(day).strip(),
        periods=periods,
        level=RestrictionLevel(level),
        reason=normalize_name(_get(raw, "reason")),
        subject=str(subject) if subject is not None else None,
        grade=safe_int(_get(raw, "grade"), 0, minimum=1) or None,
        section=str(section).strip() if section is not None else None,
    )


def parse_teacher(record: dict[str, Any], warnings: list[str]) -> Teacher:
    """Parse a teacher record.

    Restrictions that cannot be read are dropped with a warning; the teacher
    is kept.

    Raises:
        ValueError: If the record has neither id nor name, or malformed lists
    """
    name = normalize_name(_get(record, "name"))
    teacher_id = _get(record, "id")
    if teacher_id is None and not name:
        raise ValueError("teacher has neither id nor name")
    teacher_id = _as_id(teacher_id) if teacher_id is not None else name

    subjects = coerce_list(_decode_json(_get(record, "subjects")))
    if subjects is None:
        raise ValueError("subjects is not a list")
    subject_refs = []
    for item in subjects:
        # Subjects may be stored as embedded objects
        if isinstance(item, dict):
            item = _get(item, "id", "name")
        if item is not None:
            subject_refs.append(_as_id(item))

    grades = coerce_int_list(_get(record, "grades"))
    if grades is None:
        raise ValueError("grades is not a list of numbers")

    raw_restrictions = _decode_json(
        _get(record, "restrictions", "assignmentRestrictions", "assignment_restrictions")
    )
    if raw_restrictions is None:
        raw_restrictions = []
    if not isinstance(raw_restrictions, list):
        warnings.append(f"Teacher '{name or teacher_id}': restrictions are not a list, ignored")
        raw_restrictions = []

    restrictions = []
    for raw in raw_restrictions:
        try:
            restrictions.append(parse_restriction(raw))
        except ValueError as e:
            warnings.append(f"Teacher '{name or teacher_id}': skipped restriction - {e}")

    max_hours = _get(record, "max_weekly_hours", "maxWeeklyHours", "maxHoursPerWeek")
    return Teacher(
        id=teacher_id,
        name=name or teacher_id,
        subjects=subject_refs,
        grades=grades,
        restrictions=restrictions,
        max_weekly_hours=safe_int(max_hours, 0, minimum=1) or None,
    )


def parse_subject(record: dict[str, Any], config: SchoolConfiguration) -> Subject:
    """Parse a subject record.

    Scalar weekly hours apply to every grade of the subject. An empty grade
    list means the subject is taught in every configured grade.

    Raises:
        ValueError: If the record has neither id nor name, or malformed values
    """
    name = normalize_name(_get(record, "name"))
    subject_id = _get(record, "id")
    if subject_id is None and not name:
        raise ValueError("subject has neither id nor name")
    subject_id = _as_id(subject_id) if subject_id is not None else name

    grades = coerce_int_list(_get(record, "grades", "targetGrades", "target_grades"))
    if grades is None:
        raise ValueError("grades is not a list of numbers")

    raw_hours = _decode_json(_get(record, "weekly_hours", "weeklyHours"))
    weekly_hours: dict[int, int] = {}
    if isinstance(raw_hours, dict):
        for key, value in raw_hours.items():
            grade = safe_int(key, -1)
            hours = safe_int(value, -1)
            if grade < 1 or hours < 0:
                raise ValueError(f"malformed weekly hours entry {key!r}: {value!r}")
            weekly_hours[grade] = hours
        if not grades:
            grades = sorted(weekly_hours)
    elif raw_hours is not None:
        hours = safe_int(raw_hours, -1)
        if hours < 0:
            raise ValueError(f"malformed weekly hours {raw_hours!r}")
        weekly_hours = {grade: hours for grade in (grades or config.grades)}

    if not grades:
        grades = list(config.grades)

    classroom_type = _get(record, "classroom_type", "classroomType", "specialClassroom")
    requires_special = safe_bool(
        _get(record, "requires_special_classroom", "requiresSpecialClassroom"),
        default=classroom_type is not None,
    )
    return Subject(
        id=subject_id,
        name=name or subject_id,
        grades=grades,
        weekly_hours=weekly_hours,
        requires_special_classroom=requires_special,
        classroom_type=str(classroom_type).strip() if classroom_type is not None else None,
    )


def parse_classrooms(record: dict[str, Any]) -> list[Classroom]:
    """Parse a classroom record.

    A ``count`` above 1 expands into that many identical rooms.

    Raises:
        ValueError: If the record has neither id nor name
    """
    name = normalize_name(_get(record, "name"))
    classroom_id = _get(record, "id")
    if classroom_id is None and not name:
        raise ValueError("classroom has neither id nor name")
    classroom_id = _as_id(classroom_id) if classroom_id is not None else name

    classroom_type = _get(record, "classroom_type", "classroomType", "type", "specialFor")
    capacity = safe_int(_get(record, "capacity"), 0, minimum=0)
    count = safe_int(_get(record, "count"), 1, minimum=1)

    base = Classroom(
        id=classroom_id,
        name=name or classroom_id,
        capacity=capacity,
        classroom_type=str(classroom_type).strip() if classroom_type is not None else "normal",
    )
    if count == 1:
        return [base]
    return [
        Classroom(
            id=f"{base.id}-{n}",
            name=f"{base.name} {n}",
            capacity=capacity,
            classroom_type=base.classroom_type,
        )
        for n in range(1, count + 1)
    ]


def build_school_data(raw: dict[str, Any]) -> SchoolData:
    """Build typed school data from a raw document.

    Args:
        raw: Mapping with ``settings``, ``teachers``, ``subjects`` and
            ``classrooms`` (any may be missing)

    Returns:
        SchoolData with skipped records reported in ``warnings``
    """
    warnings: list[str] = []
    settings = raw.get("settings") or raw.get("schoolSettings")
    if isinstance(settings, dict):
        settings = {key: _decode_json(value) for key, value in settings.items()}
    config = normalize_settings(settings)

    data = SchoolData(config=config, warnings=warnings)

    for record in raw.get("subjects") or []:
        try:
            data.subjects.append(parse_subject(record, config))
        except (ValueError, TypeError, AttributeError) as e:
            warnings.append(f"Subject '{_record_label(record)}': skipped - {e}")

    for record in raw.get("teachers") or []:
        try:
            data.teachers.append(parse_teacher(record, warnings))
        except (ValueError, TypeError, AttributeError) as e:
            warnings.append(f"Teacher '{_record_label(record)}': skipped - {e}")

    for record in raw.get("classrooms") or []:
        try:
            data.classrooms.extend(parse_classrooms(record))
        except (ValueError, TypeError, AttributeError) as e:
            warnings.append(f"Classroom '{_record_label(record)}': skipped - {e}")

    for warning in warnings:
        logger.warning(warning)
    logger.info(
        f"Loaded {len(data.teachers)} teachers, {len(data.subjects)} subjects, "
        f"{len(data.classrooms)} classrooms ({len(warnings)} warnings)"
    )
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise DataLoadError(str(path), str(e)) from e
    if not isinstance(raw, dict):
        raise DataLoadError(str(path), "top-level JSON value must be an object")
    return raw


def _settings_from_frame(df: pd.DataFrame) -> dict[str, Any]:
    """Read a settings sheet with ``key``/``value`` columns."""
    if {"key", "value"} <= set(df.columns):
        return {
            str(row["key"]).strip(): row["value"]
            for row in df.to_dict("records")
            if not is_missing(row["key"])
        }
    # Single-row layout: one column per setting
    records = df.to_dict("records")
    return dict(records[0]) if records else {}


def _read_excel(path: Path) -> dict[str, Any]:
    try:
        sheets = pd.read_excel(path, sheet_name=None)
    except Exception as e:
        raise DataLoadError(str(path), f"failed to open Excel file: {e}") from e

    names = {name.strip().lower(): name for name in sheets}
    raw: dict[str, Any] = {}
    if SHEET_SETTINGS in names:
        raw["settings"] = _settings_from_frame(sheets[names[SHEET_SETTINGS]])
    for sheet in (SHEET_TEACHERS, SHEET_SUBJECTS, SHEET_CLASSROOMS):
        if sheet in names:
            raw[sheet] = sheets[names[sheet]].to_dict("records")
    return raw


def load_school_data(path: str | Path) -> SchoolData:
    """Load school data from a JSON document or an Excel workbook.

    Args:
        path: ``.json`` file or ``.xlsx`` workbook with ``settings``,
            ``teachers``, ``subjects`` and ``classrooms`` sheets

    Returns:
        SchoolData ready for ``generate`` and ``validate``

    Raises:
        DataLoadError: If the file is missing, unreadable or of an unknown type
    """
    path = Path(path)
    if not path.exists():
        raise DataLoadError(str(path), "file not found")

    suffix = path.suffix.lower()
    if suffix in JSON_SUFFIXES:
        raw = _read_json(path)
    elif suffix in EXCEL_SUFFIXES:
        raw = _read_excel(path)
    else:
        raise DataLoadError(str(path), f"unsupported file type '{path.suffix}'")

    return build_school_data(raw)
