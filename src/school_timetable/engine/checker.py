"""Placement validity checks combining hard and soft constraints."""

from collections.abc import Sequence

from .constraints import HardConstraints, SoftConstraints
from .models import AssignmentCandidate, Classroom, ConstraintResult, TimetableGrid, TimetableSlot


class ConstraintChecker:
    """Decides whether a candidate may be placed into a slot.

    Hard constraints reject the placement; soft constraints only attach
    violations to an otherwise valid result. Checking never modifies the grid.
    """

    def __init__(self, classrooms: Sequence[Classroom] | None = None) -> None:
        classrooms = list(classrooms or [])
        self.hard = HardConstraints(classrooms)
        self.soft = SoftConstraints(classrooms)

    def is_placement_valid(
        self,
        slot: TimetableSlot,
        candidate: AssignmentCandidate,
        grid: TimetableGrid,
    ) -> ConstraintResult:
        result = self.hard.check(slot, candidate, grid)
        if not result.valid:
            return result
        return self.soft.check(slot, candidate, grid)


def is_placement_valid(
    slot: TimetableSlot,
    candidate: AssignmentCandidate,
    grid: TimetableGrid,
    classrooms: Sequence[Classroom] = (),
) -> ConstraintResult:
    """Check a single placement without keeping a checker around."""
    return ConstraintChecker(classrooms).is_placement_valid(slot, candidate, grid)
