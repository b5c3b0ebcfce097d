"""Tests for timetable analysis and validation."""

import pytest

from school_timetable.engine.analyzer import (
    analyze,
    calculate_quality_metrics,
    calculate_teacher_difficulties,
    load_balance_score,
    quality_score,
    round_half_up,
    subject_distribution_balance,
    teacher_utilization_rate,
)
from school_timetable.engine.candidates import generate_candidates
from school_timetable.engine.constants import RestrictionLevel, Severity, ViolationType
from school_timetable.engine.grid import build_grid
from school_timetable.engine.models import Classroom, TimetableGrid
from school_timetable.engine.retry import generate
from school_timetable.engine.validator import overall_score, validate


@pytest.fixture
def small_grid(make_config):
    """One class, Monday and Tuesday with two periods each."""
    return build_grid(make_config(days=("Monday", "Tuesday"), daily_periods=2))


class TestAnalyze:
    """Tests for slot statistics."""

    def test_empty_grid(self, small_grid):
        stats = analyze(small_grid)

        assert stats.total_slots == 4
        assert stats.assigned_slots == 0
        assert stats.assignment_rate == 0.0
        assert len(stats.unassigned_slot_keys) == 4

    def test_partial_grid(self, small_grid, make_subject, make_teacher):
        small_grid.find_slot("Monday", 1, 1, "A").assign(make_teacher(), make_subject())
        stats = analyze(small_grid)

        assert stats.assigned_slots == 1
        assert stats.unassigned_slots == 3
        assert stats.assignment_rate == 25.0
        assert ("Monday", 1, 1, "A") not in stats.unassigned_slot_keys

    def test_quality_penalty_is_capped(self):
        assert quality_score(100.0, 2) == 90.0
        assert quality_score(100.0, 50) == 70.0
        assert quality_score(10.0, 6) == 0.0


class TestQualityMetrics:
    """Tests for aggregate quality metrics."""

    def test_teacher_utilization(self, small_grid, make_subject, make_teacher):
        active = make_teacher("t1")
        idle = make_teacher("t2")
        small_grid.find_slot("Monday", 1, 1, "A").assign(active, make_subject())

        assert teacher_utilization_rate(small_grid, [active, idle]) == 50.0
        assert teacher_utilization_rate(small_grid, []) == 0.0

    def test_subject_spread_over_days(self, small_grid, make_subject, make_teacher):
        subject = make_subject()
        small_grid.find_slot("Monday", 1, 1, "A").assign(make_teacher(), subject)
        small_grid.find_slot("Monday", 2, 1, "A").assign(make_teacher(), subject)
        assert subject_distribution_balance(small_grid) == 0.5

        small_grid.find_slot("Monday", 2, 1, "A").clear()
        small_grid.find_slot("Tuesday", 1, 1, "A").assign(make_teacher(), subject)
        assert subject_distribution_balance(small_grid) == 1.0

    def test_load_balance(self, small_grid, make_subject, make_teacher):
        first = make_teacher("t1")
        second = make_teacher("t2")
        small_grid.find_slot("Monday", 1, 1, "A").assign(first, make_subject())
        small_grid.find_slot("Tuesday", 1, 1, "A").assign(second, make_subject())

        assert load_balance_score(small_grid, [first, second]) == 1.0

        for slot in small_grid.iter_slots():
            slot.clear()
        assert load_balance_score(small_grid, [first]) == 0.0

    def test_metrics_for_generated_grid(self, make_config, make_subject, make_teacher):
        teachers = [make_teacher()]
        result = generate(make_config(), teachers, [make_subject()])
        metrics = calculate_quality_metrics(result.grid, teachers)

        assert metrics.assignment_completion_rate == 100.0
        assert metrics.teacher_utilization_rate == 100.0
        assert metrics.constraint_violation_count == 0


class TestTeacherDifficulty:
    """Tests for teacher workload analysis."""

    def test_difficulty_percentage(self, make_config, make_subject, make_teacher):
        config = make_config(sections={1: ("A", "B", "C")})
        teachers = [make_teacher(max_weekly_hours=10), make_teacher("t2", subjects=())]
        candidates = generate_candidates(config, teachers, [make_subject(hours=3)])

        difficulties = calculate_teacher_difficulties(teachers, candidates)

        assert difficulties[0].total_required_hours == 9
        assert difficulties[0].available_hours == 10
        assert difficulties[0].difficulty_percentage == 90
        assert difficulties[0].class_count == 3
        assert difficulties[1].total_required_hours == 0
        assert difficulties[1].available_hours == 30

    def test_difficulty_rounds_half_up(self, make_config, make_subject, make_teacher):
        teachers = [make_teacher(max_weekly_hours=40)]
        candidates = generate_candidates(make_config(), teachers, [make_subject(hours=5)])

        difficulties = calculate_teacher_difficulties(teachers, candidates)

        assert difficulties[0].difficulty_percentage == 13

    @pytest.mark.parametrize(
        "value, digits, expected", [(12.5, 0, 13.0), (0.125, 2, 0.13), (66.665, 2, 66.67), (2.5, 0, 3.0)]
    )
    def test_round_half_up(self, value, digits, expected):
        assert round_half_up(value, digits) == expected


class TestValidate:
    """Tests for validate function."""

    def test_generated_timetable_is_valid(self, make_config, make_subject, make_teacher):
        teachers = [make_teacher()]
        subjects = [make_subject(hours=2)]
        result = generate(make_config(), teachers, subjects)

        report = validate(result.grid, teachers, subjects)

        assert report.is_valid
        assert report.overall_score == 100.0
        assert report.unassigned_requirements == ()

    def test_hand_placed_mandatory_breach(self, small_grid, make_subject, make_teacher, blocked):
        teacher = make_teacher(restrictions=[blocked("Monday", (1,))])
        subject = make_subject()
        small_grid.find_slot("Monday", 1, 1, "A").assign(teacher, subject)

        report = validate(small_grid, [teacher], [subject])

        assert not report.is_valid
        assert len(report.violations) == 1
        violation = report.violations[0]
        assert violation.type == ViolationType.TIME_RESTRICTION
        assert violation.severity == Severity.MAJOR
        assert violation.affected_slots == (
            {"day": "Monday", "period": 1, "grade": 1, "section": "A"},
        )
        assert report.count(Severity.MAJOR) == 1
        # 25% completion minus one major penalty
        assert report.overall_score == 15.0

    def test_recommended_breach_is_minor(self, small_grid, make_subject, make_teacher, blocked):
        teacher = make_teacher(
            restrictions=[blocked("Monday", (1,), level=RestrictionLevel.RECOMMENDED)]
        )
        subject = make_subject()
        small_grid.find_slot("Monday", 1, 1, "A").assign(teacher, subject)

        report = validate(small_grid, [teacher], [subject])

        assert report.violations[0].severity == Severity.MINOR
        assert report.overall_score == 25.0

    def test_teacher_double_booking_is_critical(self, make_config, make_subject, make_teacher):
        grid = build_grid(make_config(sections={1: ("A", "B")}, daily_periods=1))
        teacher = make_teacher()
        subject = make_subject(hours=1)
        grid.find_slot("Monday", 1, 1, "A").assign(teacher, subject)
        grid.find_slot("Monday", 1, 1, "B").assign(teacher, subject)

        report = validate(grid, [teacher], [subject])

        conflicts = [v for v in report.violations if v.type == ViolationType.TEACHER_CONFLICT]
        assert len(conflicts) == 1
        assert conflicts[0].severity == Severity.CRITICAL
        assert len(conflicts[0].affected_slots) == 2
        assert report.overall_score == 80.0

    def test_classroom_conflict_is_critical(self, make_config, make_subject, make_teacher):
        grid = build_grid(make_config(sections={1: ("A", "B")}, daily_periods=1))
        lab = Classroom(id="lab", name="Lab", classroom_type="lab")
        subject = make_subject("sci", hours=1, classroom_type="lab")
        teachers = [make_teacher("t1", subjects=("sci",)), make_teacher("t2", subjects=("sci",))]
        grid.find_slot("Monday", 1, 1, "A").assign(teachers[0], subject, lab)
        grid.find_slot("Monday", 1, 1, "B").assign(teachers[1], subject, lab)

        report = validate(grid, teachers, [subject], [lab])

        assert [(v.type, v.severity) for v in report.violations] == [
            (ViolationType.CLASSROOM_CONFLICT, Severity.CRITICAL)
        ]
        assert report.overall_score == 80.0

    def test_lab_overuse_without_room_ids(self, make_config, make_subject, make_teacher):
        grid = build_grid(make_config(sections={1: ("A", "B")}, daily_periods=1))
        lab = Classroom(id="lab", name="Lab", classroom_type="lab")
        subject = make_subject("sci", hours=1, classroom_type="lab")
        teachers = [make_teacher("t1", subjects=("sci",)), make_teacher("t2", subjects=("sci",))]
        grid.find_slot("Monday", 1, 1, "A").assign(teachers[0], subject)
        grid.find_slot("Monday", 1, 1, "B").assign(teachers[1], subject)

        report = validate(grid, teachers, [subject], [lab])

        assert len(report.violations) == 1
        assert "only 1 exist" in report.violations[0].description

    def test_subject_mismatch(self, small_grid, make_subject, make_teacher):
        teacher = make_teacher(subjects=("eng",))
        subject = make_subject("math", grades=(2,))
        small_grid.find_slot("Monday", 1, 1, "A").assign(teacher, subject)

        report = validate(small_grid, [teacher], [subject])

        mismatches = [v for v in report.violations if v.type == ViolationType.SUBJECT_MISMATCH]
        assert len(mismatches) == 2
        assert all(v.severity == Severity.CRITICAL for v in mismatches)

    def test_workload_exceeded(self, small_grid, make_subject, make_teacher):
        teacher = make_teacher(max_weekly_hours=1)
        subject = make_subject(hours=2)
        for slot in list(small_grid.iter_slots())[:2]:
            slot.assign(teacher, subject)

        report = validate(small_grid, [teacher], [subject])

        assert [v.type for v in report.violations] == [ViolationType.WORKLOAD_EXCEEDED]
        assert report.violations[0].severity == Severity.MAJOR

    def test_unassigned_requirements(self, small_grid, make_subject, make_teacher):
        teacher = make_teacher()
        subject = make_subject(hours=3)
        small_grid.find_slot("Monday", 1, 1, "A").assign(teacher, subject)

        report = validate(small_grid, [teacher], [subject])

        assert len(report.unassigned_requirements) == 1
        requirement = report.unassigned_requirements[0]
        assert requirement.assigned_hours == 1
        assert requirement.missing_hours == 2
        assert any("not scheduled" in s for s in report.suggestions)

    def test_score_stays_in_range(self, make_config, make_subject, make_teacher):
        grid = build_grid(make_config(sections={1: ("A", "B", "C")}, daily_periods=1))
        teacher = make_teacher(subjects=("eng",))
        subject = make_subject("math", grades=(2,))
        for slot in grid.iter_slots():
            slot.assign(teacher, subject)

        report = validate(grid, [teacher], [subject])

        assert 0.0 <= report.overall_score <= 100.0
        assert report.overall_score == 0.0

    def test_overall_score_rounding(self):
        assert overall_score(66.666, []) == 66.67

    def test_round_trip_through_json(self, make_config, make_subject, make_teacher, blocked):
        teacher = make_teacher(restrictions=[blocked("Monday", (2,))])
        subjects = [make_subject(hours=2)]
        result = generate(make_config(), [teacher], subjects)

        rebuilt = TimetableGrid.from_dict(result.to_dict()["timetable"], [teacher], subjects)

        assert rebuilt.to_dict() == result.grid.to_dict()
        assert validate(rebuilt, [teacher], subjects).to_dict() == validate(
            result.grid, [teacher], subjects
        ).to_dict()

    def test_unknown_ids_become_placeholders(self, small_grid, make_subject, make_teacher):
        small_grid.find_slot("Monday", 1, 1, "A").assign(make_teacher("ghost"), make_subject("x"))
        rebuilt = TimetableGrid.from_dict(small_grid.to_dict())

        slot = rebuilt.find_slot("Monday", 1, 1, "A")
        assert slot.teacher.id == "ghost"
        assert slot.subject.id == "x"
