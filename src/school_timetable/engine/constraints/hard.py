"""Hard constraint implementations for the assignment engine.

Hard constraints must never be violated. A placement failing any of them
is rejected.
"""

from ..constants import ConstraintName, RestrictionLevel
from ..models import AssignmentCandidate, ConstraintResult, TimetableGrid, TimetableSlot
from ..rooms import required_classroom_type
from .base import ConstraintBase


class HardConstraints(ConstraintBase):
    """
    Implementation of all hard placement constraints.

    Checked in order, the first failure wins:
    - Teacher occupancy: a teacher teaches one class per (day, period)
    - Classroom occupancy: concurrent special-room lessons fit the rooms of that type
    - Mandatory restriction: the teacher is not blocked at (day, period)
    - Grade applicability: the subject is taught in the slot's grade and the
      candidate targets the slot's class
    - Weekly workload: the teacher stays under ``max_weekly_hours``
    """

    def check(
        self,
        slot: TimetableSlot,
        candidate: AssignmentCandidate,
        grid: TimetableGrid,
    ) -> ConstraintResult:
        """Run all hard checks against a tentative placement."""
        checks = (
            self._check_teacher_occupancy,
            self._check_classroom_occupancy,
            self._check_mandatory_restriction,
            self._check_grade_applicability,
            self._check_weekly_workload,
        )
        for check in checks:
            failure = check(slot, candidate, grid)
            if failure is not None:
                return failure
        return ConstraintResult(valid=True)

    def _check_teacher_occupancy(
        self, slot: TimetableSlot, candidate: AssignmentCandidate, grid: TimetableGrid
    ) -> ConstraintResult | None:
        teacher_id = candidate.teacher.id
        for other in grid.period_slots(slot.day, slot.period):
            if other is slot or other.teacher is None:
                continue
            if other.teacher.id == teacher_id:
                return ConstraintResult(
                    valid=False,
                    constraint=ConstraintName.TEACHER_OCCUPANCY.value,
                    reason=(
                        f"{candidate.teacher.name} already teaches grade "
                        f"{other.grade}-{other.section} on {slot.day} period {slot.period}"
                    ),
                )
        return None

    def _check_classroom_occupancy(
        self, slot: TimetableSlot, candidate: AssignmentCandidate, grid: TimetableGrid
    ) -> ConstraintResult | None:
        classroom_type = required_classroom_type(candidate.subject)
        if classroom_type is None:
            return None

        available = self.classroom_count(classroom_type)
        in_use = sum(
            1
            for other in grid.period_slots(slot.day, slot.period)
            if other is not slot
            and other.subject is not None
            and required_classroom_type(other.subject) == classroom_type
        )
        if in_use >= available:
            return ConstraintResult(
                valid=False,
                constraint=ConstraintName.CLASSROOM_OCCUPANCY.value,
                reason=(
                    f"No free '{classroom_type}' classroom on {slot.day} period "
                    f"{slot.period} ({in_use}/{available} in use)"
                ),
            )
        return None

    def _check_mandatory_restriction(
        self, slot: TimetableSlot, candidate: AssignmentCandidate, grid: TimetableGrid
    ) -> ConstraintResult | None:
        restrictions = candidate.teacher.restrictions_for(
            candidate.subject, slot.grade, slot.section, RestrictionLevel.MANDATORY
        )
        for restriction in restrictions:
            if restriction.blocks(slot.day, slot.period):
                reason = f" ({restriction.reason})" if restriction.reason else ""
                return ConstraintResult(
                    valid=False,
                    constraint=ConstraintName.MANDATORY_RESTRICTION.value,
                    reason=(
                        f"{candidate.teacher.name} is unavailable on {slot.day} "
                        f"period {slot.period}{reason}"
                    ),
                )
        return None

    def _check_grade_applicability(
        self, slot: TimetableSlot, candidate: AssignmentCandidate, grid: TimetableGrid
    ) -> ConstraintResult | None:
        if candidate.subject.applies_to_grade(slot.grade) and candidate.targets(
            slot.grade, slot.section
        ):
            return None
        return ConstraintResult(
            valid=False,
            constraint=ConstraintName.GRADE_APPLICABILITY.value,
            reason=(
                f"{candidate.subject.name} for grade {candidate.grade}-{candidate.section} "
                f"cannot be placed in grade {slot.grade}-{slot.section}"
            ),
        )

    def _check_weekly_workload(
        self, slot: TimetableSlot, candidate: AssignmentCandidate, grid: TimetableGrid
    ) -> ConstraintResult | None:
        limit = candidate.teacher.max_weekly_hours
        if limit is None:
            return None

        teacher_id = candidate.teacher.id
        load = sum(
            1
            for other in grid.iter_slots()
            if other is not slot and other.teacher is not None and other.teacher.id == teacher_id
        )
        if load >= limit:
            return ConstraintResult(
                valid=False,
                constraint=ConstraintName.WEEKLY_WORKLOAD.value,
                reason=f"{candidate.teacher.name} already teaches {load}/{limit} hours this week",
            )
        return None
