"""Occupancy index used to detect conflicts in finished timetables."""

from collections import defaultdict

from .models import TimetableSlot
from .rooms import required_classroom_type


class ConflictTracker:
    """Tracks who and what is in use at each (day, period).

    This class maintains separate indexes to detect conflicts:
    - teacher_schedule: teachers placed at each (day, period)
    - classroom_schedule: classrooms used at each (day, period)
    - type_schedule: special-room lessons per classroom type at each (day, period)
    - teacher_load: weekly slot count per teacher
    """

    def __init__(self) -> None:
        # (day, period) -> teacher id -> slots
        self.teacher_schedule: dict[tuple[str, int], dict[str, list[TimetableSlot]]] = (
            defaultdict(lambda: defaultdict(list))
        )
        # (day, period) -> classroom id -> slots
        self.classroom_schedule: dict[tuple[str, int], dict[str, list[TimetableSlot]]] = (
            defaultdict(lambda: defaultdict(list))
        )
        # (day, period) -> classroom type -> slots
        self.type_schedule: dict[tuple[str, int], dict[str, list[TimetableSlot]]] = (
            defaultdict(lambda: defaultdict(list))
        )
        # teacher id -> slots
        self.teacher_load: dict[str, list[TimetableSlot]] = defaultdict(list)

    @classmethod
    def from_slots(cls, slots: list[TimetableSlot]) -> "ConflictTracker":
        tracker = cls()
        for slot in slots:
            tracker.reserve(slot)
        return tracker

    def reserve(self, slot: TimetableSlot) -> None:
        """Index an assigned slot. Unassigned slots are ignored."""
        if not slot.is_assigned:
            return

        key = (slot.day, slot.period)
        self.teacher_schedule[key][slot.teacher.id].append(slot)
        self.teacher_load[slot.teacher.id].append(slot)

        if slot.classroom is not None:
            self.classroom_schedule[key][slot.classroom.id].append(slot)

        classroom_type = required_classroom_type(slot.subject)
        if classroom_type is not None:
            self.type_schedule[key][classroom_type].append(slot)

    def teacher_conflicts(self) -> list[tuple[str, list[TimetableSlot]]]:
        """Teachers placed in more than one slot at the same (day, period).

        Returns:
            List of (teacher id, conflicting slots)
        """
        return [
            (teacher_id, slots)
            for by_teacher in self.teacher_schedule.values()
            for teacher_id, slots in by_teacher.items()
            if len(slots) > 1
        ]

    def classroom_conflicts(self) -> list[tuple[str, list[TimetableSlot]]]:
        """Classrooms used by more than one slot at the same (day, period)."""
        return [
            (classroom_id, slots)
            for by_classroom in self.classroom_schedule.values()
            for classroom_id, slots in by_classroom.items()
            if len(slots) > 1
        ]

    def type_overuse(
        self, type_counts: dict[str, int]
    ) -> list[tuple[str, int, list[TimetableSlot]]]:
        """Classroom types with more concurrent lessons than rooms.

        Args:
            type_counts: Number of classrooms per type

        Returns:
            List of (classroom type, room count, slots)
        """
        return [
            (classroom_type, type_counts.get(classroom_type, 0), slots)
            for by_type in self.type_schedule.values()
            for classroom_type, slots in by_type.items()
            if len(slots) > type_counts.get(classroom_type, 0)
        ]

    def get_teacher_total_hours(self, teacher_id: str) -> int:
        return len(self.teacher_load.get(teacher_id, []))
