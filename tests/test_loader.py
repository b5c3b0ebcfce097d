"""Tests for school data loading."""

import json

import pandas as pd
import pytest

from school_timetable.engine.constants import RestrictionLevel
from school_timetable.exceptions import DataLoadError
from school_timetable.loader import (
    build_school_data,
    load_school_data,
    parse_classrooms,
    parse_restriction,
)


class TestBuildSchoolData:
    """Tests for build_school_data function."""

    def test_settings_are_normalized(self, school_document):
        data = build_school_data(school_document)

        assert data.config.grades == (1, 2, 3)
        assert data.config.sections == {1: ("1", "2"), 2: ("1",), 3: ("1",)}
        assert data.config.days == ("Monday", "Tuesday", "Saturday")
        assert data.config.daily_periods == 4
        assert data.config.saturday_periods == 2
        assert data.warnings == []

    def test_teachers_are_coerced(self, school_document):
        data = build_school_data(school_document)
        tanaka, suzuki, sato = data.teachers

        assert tanaka.subjects == ["math"]
        assert tanaka.grades == [1, 2, 3]
        assert tanaka.restrictions[0].level == RestrictionLevel.MANDATORY
        assert tanaka.restrictions[0].periods == [1]
        assert tanaka.restrictions[0].reason == "staff meeting"
        assert suzuki.subjects == ["Science"]
        assert sato.max_weekly_hours == 20
        assert sato.restrictions[0].level == RestrictionLevel.RECOMMENDED

    def test_subjects_are_coerced(self, school_document):
        math, science, _ = build_school_data(school_document).subjects

        assert math.grades == [1, 2, 3]
        assert math.weekly_hours == {1: 3, 2: 3, 3: 3}
        assert science.weekly_hours == {1: 2, 2: 2}
        assert science.requires_special_classroom
        assert science.classroom_type == "lab"
        assert not math.requires_special_classroom

    def test_subject_without_grades_covers_all_grades(self):
        data = build_school_data({"subjects": [{"id": "pe", "weeklyHours": 2}]})
        assert data.subjects[0].grades == [1, 2, 3]

    def test_classrooms(self, school_document):
        classrooms = build_school_data(school_document).classrooms

        assert len(classrooms) == 1
        assert classrooms[0].classroom_type == "lab"
        assert classrooms[0].capacity == 35

    def test_bad_records_are_skipped_with_warnings(self):
        raw = {
            "subjects": [{"weeklyHours": 2}, {"id": "math", "weeklyHours": "lots"}],
            "teachers": [
                {"id": "t1", "grades": "one, two"},
                {
                    "id": "t2",
                    "subjects": ["math"],
                    "restrictions": [{"day": "Monday", "periods": [1], "level": "sometimes"}],
                },
            ],
            "classrooms": [{}],
        }
        data = build_school_data(raw)

        assert data.subjects == []
        assert [t.id for t in data.teachers] == ["t2"]
        assert data.teachers[0].restrictions == []
        assert data.classrooms == []
        assert len(data.warnings) == 5
        assert any(w.startswith("Teacher 't1': skipped") for w in data.warnings)
        assert any("unknown restriction level 'sometimes'" in w for w in data.warnings)

    def test_missing_sections_use_defaults(self):
        assert build_school_data({}).config.total_slots == 11 * (5 * 6 + 4)

    def test_school_settings_key(self):
        data = build_school_data({"schoolSettings": {"dailyPeriods": "5"}})
        assert data.config.daily_periods == 5


class TestParseHelpers:
    """Tests for record parsers."""

    def test_restriction_defaults_to_mandatory(self):
        restriction = parse_restriction({"restrictedDay": "Friday", "restrictedPeriods": "[3, 4]"})

        assert restriction.level == RestrictionLevel.MANDATORY
        assert restriction.periods == [3, 4]
        assert restriction.grade is None

    def test_restriction_scope(self):
        restriction = parse_restriction(
            {"day": "Friday", "periods": [1], "subject": "math", "grade": 2, "section": "B"}
        )

        assert (restriction.subject, restriction.grade, restriction.section) == ("math", 2, "B")

    def test_restriction_without_day(self):
        with pytest.raises(ValueError, match="no day"):
            parse_restriction({"periods": [1]})

    def test_classroom_count_expands(self):
        rooms = parse_classrooms({"id": "lab", "name": "Lab", "type": "lab", "count": 2})

        assert [r.id for r in rooms] == ["lab-1", "lab-2"]
        assert [r.name for r in rooms] == ["Lab 1", "Lab 2"]
        assert all(r.classroom_type == "lab" for r in rooms)

    def test_classroom_without_type_is_normal(self):
        assert parse_classrooms({"id": 101.0})[0].id == "101"
        assert parse_classrooms({"id": 101.0})[0].classroom_type == "normal"


class TestLoadSchoolData:
    """Tests for load_school_data function."""

    def test_load_json(self, school_json):
        data = load_school_data(school_json)

        assert len(data.teachers) == 3
        assert len(data.subjects) == 3

    def test_load_excel(self, tmp_path):
        path = tmp_path / "school.xlsx"
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame(
                [
                    {"key": "dailyPeriods", "value": 5},
                    {"key": "days", "value": '["Monday", "Tuesday"]'},
                    {"key": "grade1Classes", "value": 2},
                ]
            ).to_excel(writer, sheet_name="Settings", index=False)
            pd.DataFrame(
                [
                    {"id": 1, "name": "Tanaka", "subjects": "math", "grades": "1, 2"},
                    {
                        "id": 2,
                        "name": "Suzuki",
                        "subjects": '["eng"]',
                        "grades": "[1]",
                        "restrictions": '[{"day": "Monday", "periods": [1]}]',
                    },
                ]
            ).to_excel(writer, sheet_name="Teachers", index=False)
            pd.DataFrame(
                [
                    {"id": "math", "name": "Math", "grades": "1,2", "weeklyHours": 4},
                    {"id": "eng", "name": "English", "grades": "1", "weeklyHours": 3},
                ]
            ).to_excel(writer, sheet_name="Subjects", index=False)

        data = load_school_data(path)

        assert data.config.daily_periods == 5
        assert data.config.days == ("Monday", "Tuesday")
        assert data.config.sections[1] == ("1", "2")
        assert [t.id for t in data.teachers] == ["1", "2"]
        assert data.teachers[0].restrictions == []
        assert data.teachers[1].restrictions[0].periods == [1]
        assert data.subjects[0].weekly_hours == {1: 4, 2: 4}
        assert not data.subjects[0].requires_special_classroom
        assert data.classrooms == []
        assert data.warnings == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataLoadError, match="file not found"):
            load_school_data(tmp_path / "missing.json")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "school.txt"
        path.write_text("{}", encoding="utf-8")

        with pytest.raises(DataLoadError, match="unsupported file type"):
            load_school_data(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "school.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(DataLoadError):
            load_school_data(path)

    def test_top_level_must_be_object(self, tmp_path):
        path = tmp_path / "school.json"
        path.write_text(json.dumps([1, 2]), encoding="utf-8")

        with pytest.raises(DataLoadError, match="must be an object"):
            load_school_data(path)
