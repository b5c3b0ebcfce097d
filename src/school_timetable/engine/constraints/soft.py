"""Soft constraint implementations for the assignment engine.

Soft constraints never reject a placement. Violations are recorded on the
slot and lower the quality score.
"""

from ..constants import ConstraintName, RestrictionLevel, Severity
from ..models import (
    AssignmentCandidate,
    ConstraintResult,
    SlotViolation,
    TimetableGrid,
    TimetableSlot,
)
from .base import ConstraintBase


class SoftConstraints(ConstraintBase):
    """
    Implementation of soft placement constraints.

    Soft Constraints:
    - Recommended restriction: the teacher prefers not to teach at (day, period)
    """

    def check(
        self,
        slot: TimetableSlot,
        candidate: AssignmentCandidate,
        grid: TimetableGrid,
    ) -> ConstraintResult:
        return ConstraintResult(
            valid=True,
            soft_violations=self._recommended_restriction_violations(slot, candidate),
        )

    def _recommended_restriction_violations(
        self, slot: TimetableSlot, candidate: AssignmentCandidate
    ) -> list[SlotViolation]:
        restrictions = candidate.teacher.restrictions_for(
            candidate.subject, slot.grade, slot.section, RestrictionLevel.RECOMMENDED
        )
        return [
            SlotViolation(
                constraint=ConstraintName.RECOMMENDED_RESTRICTION.value,
                severity=Severity.MINOR,
                message=(
                    f"{candidate.teacher.name} prefers not to teach on {slot.day} "
                    f"period {slot.period}"
                    + (f" ({restriction.reason})" if restriction.reason else "")
                ),
            )
            for restriction in restrictions
            if restriction.blocks(slot.day, slot.period)
        ]
