"""Classroom management for timetable generation."""

from collections import defaultdict

from .models import Classroom, Subject

# Type assumed for special-room subjects that do not name one
SPECIAL_CLASSROOM_TYPE = "special"


def required_classroom_type(subject: Subject) -> str | None:
    """Classroom type a subject must be taught in, or None for a normal room."""
    if not subject.requires_special_classroom:
        return None
    return subject.classroom_type or SPECIAL_CLASSROOM_TYPE


class ClassroomPool:
    """Allocates special classrooms to (day, period) cells.

    Only subjects requiring a special classroom are allocated a room; other
    lessons stay in the class's home room and are not tracked.
    """

    def __init__(self, classrooms: list[Classroom] | None = None) -> None:
        self.classrooms = list(classrooms or [])
        self._by_type: dict[str, list[Classroom]] = defaultdict(list)
        for classroom in self.classrooms:
            self._by_type[classroom.classroom_type].append(classroom)
        # (day, period) -> set of classroom ids
        self.room_schedule: dict[tuple[str, int], set[str]] = defaultdict(set)

    def is_available(self, classroom: Classroom, day: str, period: int) -> bool:
        return classroom.id not in self.room_schedule[(day, period)]

    def find_classroom(self, subject: Subject, day: str, period: int) -> Classroom | None:
        """Find a free classroom of the type a subject needs.

        Returns:
            First free classroom in input order, or None if every room of the
            type is taken (or the subject needs no special room)
        """
        classroom_type = required_classroom_type(subject)
        if classroom_type is None:
            return None
        for classroom in self._by_type.get(classroom_type, []):
            if self.is_available(classroom, day, period):
                return classroom
        return None

    def reserve(self, classroom: Classroom, day: str, period: int) -> None:
        self.room_schedule[(day, period)].add(classroom.id)

    def release(self, classroom: Classroom, day: str, period: int) -> None:
        self.room_schedule[(day, period)].discard(classroom.id)
