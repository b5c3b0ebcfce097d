"""Base class for placement constraint implementations."""

from abc import ABC, abstractmethod
from collections import Counter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models import (
        AssignmentCandidate,
        Classroom,
        ConstraintResult,
        TimetableGrid,
        TimetableSlot,
    )


class ConstraintBase(ABC):
    """Abstract base class for placement constraints."""

    def __init__(self, classrooms: list["Classroom"] | None = None):
        """
        Initialize constraint handler.

        Args:
            classrooms: Classrooms available to the school.
        """
        self.classrooms = list(classrooms or [])
        self._type_counts = Counter(c.classroom_type for c in self.classrooms)

    def classroom_count(self, classroom_type: str) -> int:
        """Number of classrooms of a type."""
        return self._type_counts.get(classroom_type, 0)

    @abstractmethod
    def check(
        self,
        slot: "TimetableSlot",
        candidate: "AssignmentCandidate",
        grid: "TimetableGrid",
    ) -> "ConstraintResult":
        """
        Check a tentative placement of a candidate into a slot.

        The grid is not modified.

        Args:
            slot: Target slot.
            candidate: Candidate to place.
            grid: Current timetable state.
        """
        pass
