"""Test fixtures for school timetable tests."""

import json

import pytest

from school_timetable.engine.constants import RestrictionLevel
from school_timetable.engine.models import (
    AssignmentRestriction,
    Classroom,
    SchoolConfiguration,
    Subject,
    Teacher,
)


@pytest.fixture
def make_config():
    """Factory for small school configurations."""

    def _make(
        grades=(1,),
        sections=None,
        days=("Monday",),
        daily_periods=2,
        saturday_periods=1,
    ):
        if sections is None:
            sections = {grade: ("A",) for grade in grades}
        return SchoolConfiguration(
            grades=tuple(grades),
            sections={g: tuple(s) for g, s in sections.items()},
            days=tuple(days),
            daily_periods=daily_periods,
            saturday_periods=saturday_periods,
        )

    return _make


@pytest.fixture
def make_subject():
    """Factory for subjects with the same weekly hours in every grade."""

    def _make(
        subject_id="math",
        name=None,
        grades=(1,),
        hours=2,
        classroom_type=None,
    ):
        return Subject(
            id=subject_id,
            name=name or subject_id.capitalize(),
            grades=list(grades),
            weekly_hours={grade: hours for grade in grades},
            requires_special_classroom=classroom_type is not None,
            classroom_type=classroom_type,
        )

    return _make


@pytest.fixture
def make_teacher():
    """Factory for teachers."""

    def _make(
        teacher_id="t1",
        subjects=("math",),
        grades=(1,),
        restrictions=(),
        max_weekly_hours=None,
        name=None,
    ):
        return Teacher(
            id=teacher_id,
            name=name or f"Teacher {teacher_id}",
            subjects=list(subjects),
            grades=list(grades),
            restrictions=list(restrictions),
            max_weekly_hours=max_weekly_hours,
        )

    return _make


@pytest.fixture
def blocked():
    """Factory for restrictions blocking periods of a day."""

    def _make(day="Monday", periods=(1,), level=RestrictionLevel.MANDATORY, **scope):
        return AssignmentRestriction(
            day=day, periods=list(periods), level=level, reason="meeting", **scope
        )

    return _make


@pytest.fixture
def school_document():
    """Raw school document as stored by the admin UI (camelCase, JSON strings)."""
    return {
        "settings": {
            "grade1Classes": 2,
            "grade2Classes": 1,
            "grade3Classes": 1,
            "dailyPeriods": 4,
            "saturdayPeriods": 2,
            "days": ["Monday", "Tuesday", "Saturday"],
        },
        "subjects": [
            {"id": "math", "name": "Math", "targetGrades": "[1, 2, 3]", "weeklyHours": 3},
            {
                "id": "sci",
                "name": "Science",
                "grades": [1, 2],
                "weeklyHours": {"1": 2, "2": 2},
                "requiresSpecialClassroom": 1,
                "classroomType": "lab",
            },
            {"id": "eng", "name": "English", "grades": [1, 2, 3], "weeklyHours": 2},
        ],
        "teachers": [
            {
                "id": "t1",
                "name": "Tanaka",
                "subjects": '["math"]',
                "grades": "[1, 2, 3]",
                "assignmentRestrictions": json.dumps(
                    [
                        {
                            "restrictedDay": "Monday",
                            "restrictedPeriods": [1],
                            "restrictionLevel": "必須",
                            "reason": "staff meeting",
                        }
                    ]
                ),
            },
            {"id": "t2", "name": "Suzuki", "subjects": ["Science"], "grades": [1, 2]},
            {
                "id": "t3",
                "name": "Sato",
                "subjects": ["eng"],
                "grades": [1, 2, 3],
                "maxWeeklyHours": 20,
                "assignmentRestrictions": [
                    {"restrictedDay": "Tuesday", "restrictedPeriods": [4], "restrictionLevel": "推奨"}
                ],
            },
        ],
        "classrooms": [
            {"id": "lab", "name": "Science Lab", "capacity": 35, "classroomType": "lab"},
        ],
    }


@pytest.fixture
def school_json(tmp_path, school_document):
    """School document written to a JSON file."""
    path = tmp_path / "school.json"
    path.write_text(json.dumps(school_document, ensure_ascii=False), encoding="utf-8")
    return path
