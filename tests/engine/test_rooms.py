"""Tests for ClassroomPool and ConflictTracker."""

from school_timetable.engine.conflicts import ConflictTracker
from school_timetable.engine.grid import build_grid
from school_timetable.engine.models import Classroom
from school_timetable.engine.rooms import SPECIAL_CLASSROOM_TYPE, ClassroomPool, required_classroom_type


class TestClassroomPool:
    """Tests for ClassroomPool class."""

    def test_normal_subject_needs_no_room(self, make_subject):
        pool = ClassroomPool([Classroom(id="r1", name="Room 1")])
        assert pool.find_classroom(make_subject(), "Monday", 1) is None

    def test_finds_room_of_required_type(self, make_subject):
        lab = Classroom(id="lab", name="Lab", classroom_type="lab")
        pool = ClassroomPool([Classroom(id="r1", name="Room 1"), lab])

        assert pool.find_classroom(make_subject("sci", classroom_type="lab"), "Monday", 1) is lab

    def test_reserved_room_is_unavailable(self, make_subject):
        labs = [
            Classroom(id="lab1", name="Lab 1", classroom_type="lab"),
            Classroom(id="lab2", name="Lab 2", classroom_type="lab"),
        ]
        pool = ClassroomPool(labs)
        subject = make_subject("sci", classroom_type="lab")

        pool.reserve(labs[0], "Monday", 1)
        assert pool.find_classroom(subject, "Monday", 1) is labs[1]
        assert pool.find_classroom(subject, "Monday", 2) is labs[0]

        pool.reserve(labs[1], "Monday", 1)
        assert pool.find_classroom(subject, "Monday", 1) is None

        pool.release(labs[0], "Monday", 1)
        assert pool.is_available(labs[0], "Monday", 1)

    def test_special_subject_without_type(self, make_subject):
        subject = make_subject("art")
        subject.requires_special_classroom = True

        assert required_classroom_type(subject) == SPECIAL_CLASSROOM_TYPE


class TestConflictTracker:
    """Tests for ConflictTracker class."""

    def test_detects_teacher_double_booking(self, make_config, make_subject, make_teacher):
        grid = build_grid(make_config(sections={1: ("A", "B")}))
        teacher = make_teacher()
        grid.find_slot("Monday", 1, 1, "A").assign(teacher, make_subject())
        grid.find_slot("Monday", 1, 1, "B").assign(teacher, make_subject())

        tracker = ConflictTracker.from_slots(list(grid.iter_slots()))
        conflicts = tracker.teacher_conflicts()

        assert len(conflicts) == 1
        assert conflicts[0][0] == teacher.id
        assert len(conflicts[0][1]) == 2

    def test_detects_classroom_conflict(self, make_config, make_subject, make_teacher):
        grid = build_grid(make_config(sections={1: ("A", "B")}))
        lab = Classroom(id="lab", name="Lab", classroom_type="lab")
        subject = make_subject("sci", classroom_type="lab")
        grid.find_slot("Monday", 1, 1, "A").assign(make_teacher("t1"), subject, lab)
        grid.find_slot("Monday", 1, 1, "B").assign(make_teacher("t2"), subject, lab)

        tracker = ConflictTracker.from_slots(list(grid.iter_slots()))

        assert len(tracker.classroom_conflicts()) == 1
        overuse = tracker.type_overuse({"lab": 1})
        assert len(overuse) == 1
        assert overuse[0][:2] == ("lab", 1)
        assert tracker.type_overuse({"lab": 2}) == []

    def test_teacher_total_hours(self, make_config, make_subject, make_teacher):
        grid = build_grid(make_config())
        teacher = make_teacher()
        for slot in grid.iter_slots():
            slot.assign(teacher, make_subject())

        tracker = ConflictTracker.from_slots(list(grid.iter_slots()))

        assert tracker.get_teacher_total_hours(teacher.id) == 2
        assert tracker.get_teacher_total_hours("nobody") == 0
        assert tracker.teacher_conflicts() == []

    def test_unassigned_slots_ignored(self, make_config):
        grid = build_grid(make_config())
        tracker = ConflictTracker.from_slots(list(grid.iter_slots()))

        assert tracker.teacher_conflicts() == []
        assert tracker.classroom_conflicts() == []
