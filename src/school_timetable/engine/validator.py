"""Post-hoc validation and scoring of finished timetables.

The validator works from the grid alone, so it can check timetables that
were edited by hand or produced elsewhere.
"""

import logging
from collections import Counter

from .analyzer import calculate_quality_metrics, round_half_up, teacher_available_hours
from .candidates import generate_candidates
from .conflicts import ConflictTracker
from .constants import (
    CRITICAL_PENALTY,
    MAJOR_PENALTY,
    RestrictionLevel,
    Severity,
    ViolationType,
)
from .models import (
    Classroom,
    ConstraintViolation,
    SchoolConfiguration,
    Subject,
    Teacher,
    TimetableGrid,
    TimetableSlot,
    UnassignedRequirement,
    ValidationReport,
)
from .rooms import required_classroom_type

logger = logging.getLogger(__name__)


def _locations(slots: list[TimetableSlot]) -> tuple[dict, ...]:
    return tuple(slot.location() for slot in slots)


def _teacher_conflicts(tracker: ConflictTracker) -> list[ConstraintViolation]:
    violations = []
    for _teacher_id, slots in tracker.teacher_conflicts():
        first = slots[0]
        classes = ", ".join(f"{s.grade}-{s.section}" for s in slots)
        violations.append(
            ConstraintViolation(
                type=ViolationType.TEACHER_CONFLICT,
                severity=Severity.CRITICAL,
                description=(
                    f"{first.teacher.name} is scheduled for {len(slots)} classes "
                    f"({classes}) on {first.day} period {first.period}"
                ),
                affected_slots=_locations(slots),
                suggested_fix="Move all but one of these lessons to another period",
            )
        )
    return violations


def _classroom_conflicts(
    tracker: ConflictTracker, classrooms: list[Classroom]
) -> list[ConstraintViolation]:
    violations = []
    # (day, period, type) already reported as a double-booked room
    reported: set[tuple[str, int, str | None]] = set()
    for _classroom_id, slots in tracker.classroom_conflicts():
        first = slots[0]
        reported.update(
            (slot.day, slot.period, required_classroom_type(slot.subject)) for slot in slots
        )
        violations.append(
            ConstraintViolation(
                type=ViolationType.CLASSROOM_CONFLICT,
                severity=Severity.CRITICAL,
                description=(
                    f"Classroom {first.classroom.name} is used by {len(slots)} classes "
                    f"on {first.day} period {first.period}"
                ),
                affected_slots=_locations(slots),
                suggested_fix="Assign another classroom or move one lesson",
            )
        )

    type_counts = Counter(c.classroom_type for c in classrooms)
    for classroom_type, available, slots in tracker.type_overuse(type_counts):
        first = slots[0]
        if (first.day, first.period, classroom_type) in reported:
            continue
        violations.append(
            ConstraintViolation(
                type=ViolationType.CLASSROOM_CONFLICT,
                severity=Severity.CRITICAL,
                description=(
                    f"{len(slots)} lessons need a '{classroom_type}' classroom on "
                    f"{first.day} period {first.period} but only {available} exist"
                ),
                affected_slots=_locations(slots),
                suggested_fix=f"Move lessons needing a '{classroom_type}' classroom apart",
            )
        )
    return violations


def _slot_violations(
    slot: TimetableSlot, teacher: Teacher, subject: Subject
) -> list[ConstraintViolation]:
    """Applicability and restriction violations of one assigned slot."""
    violations = []
    location = (slot.location(),)

    if not subject.applies_to_grade(slot.grade):
        violations.append(
            ConstraintViolation(
                type=ViolationType.SUBJECT_MISMATCH,
                severity=Severity.CRITICAL,
                description=f"{subject.name} is not taught in grade {slot.grade}",
                affected_slots=location,
                suggested_fix=f"Replace {subject.name} with a grade {slot.grade} subject",
            )
        )
    if not teacher.teaches(subject):
        violations.append(
            ConstraintViolation(
                type=ViolationType.SUBJECT_MISMATCH,
                severity=Severity.CRITICAL,
                description=f"{teacher.name} does not teach {subject.name}",
                affected_slots=location,
                suggested_fix=f"Assign a teacher of {subject.name} to this lesson",
            )
        )

    for restriction in teacher.restrictions_for(subject, slot.grade, slot.section):
        if not restriction.blocks(slot.day, slot.period):
            continue
        mandatory = restriction.level == RestrictionLevel.MANDATORY
        reason = f" ({restriction.reason})" if restriction.reason else ""
        violations.append(
            ConstraintViolation(
                type=ViolationType.TIME_RESTRICTION,
                severity=Severity.MAJOR if mandatory else Severity.MINOR,
                description=(
                    f"{teacher.name} is {'unavailable' if mandatory else 'preferably free'} "
                    f"on {slot.day} period {slot.period}{reason}"
                ),
                affected_slots=location,
                suggested_fix=f"Move this lesson out of {slot.day} period {slot.period}",
            )
        )
    return violations


def _workload_violations(
    tracker: ConflictTracker, teachers: list[Teacher]
) -> list[ConstraintViolation]:
    violations = []
    for teacher in teachers:
        if teacher.max_weekly_hours is None:
            continue
        load = tracker.get_teacher_total_hours(teacher.id)
        if load > teacher.max_weekly_hours:
            violations.append(
                ConstraintViolation(
                    type=ViolationType.WORKLOAD_EXCEEDED,
                    severity=Severity.MAJOR,
                    description=(
                        f"{teacher.name} teaches {load} hours, above the weekly "
                        f"limit of {teacher.max_weekly_hours}"
                    ),
                    affected_slots=_locations(tracker.teacher_load[teacher.id]),
                    suggested_fix=f"Move {load - teacher.max_weekly_hours} hours to another teacher",
                )
            )
    return violations


def _grid_configuration(grid: TimetableGrid) -> SchoolConfiguration | None:
    """Configuration describing the grid's shape, or None for an empty grid."""
    class_sections = grid.class_sections()
    if not grid.days or not class_sections:
        return None

    sections: dict[int, list[str]] = {}
    for grade, section in class_sections:
        sections.setdefault(grade, []).append(section)
    periods = max(grid.periods_per_day().values(), default=1) or 1
    return SchoolConfiguration(
        grades=tuple(sections),
        sections={grade: tuple(labels) for grade, labels in sections.items()},
        days=tuple(grid.days),
        daily_periods=periods,
        saturday_periods=periods,
    )


def _blocking_reasons(
    teacher: Teacher,
    subject: Subject,
    classrooms: list[Classroom],
    required_by_teacher: Counter,
) -> tuple[str, ...]:
    reasons = []
    mandatory = [r for r in teacher.restrictions if r.is_mandatory]
    if mandatory:
        blocked = sum(len(r.periods) for r in mandatory)
        reasons.append(f"{teacher.name} has {blocked} unavailable periods")

    classroom_type = required_classroom_type(subject)
    if classroom_type is not None:
        count = sum(1 for c in classrooms if c.classroom_type == classroom_type)
        if count == 0:
            reasons.append(f"No '{classroom_type}' classroom exists")
        else:
            reasons.append(f"Only {count} '{classroom_type}' classroom(s) available")

    available = teacher_available_hours(teacher)
    if required_by_teacher[teacher.id] > available:
        reasons.append(
            f"{teacher.name} needs {required_by_teacher[teacher.id]} hours but has {available}"
        )
    return tuple(reasons)


def find_unassigned_requirements(
    grid: TimetableGrid,
    teachers: list[Teacher],
    subjects: list[Subject],
    classrooms: list[Classroom] | None = None,
) -> list[UnassignedRequirement]:
    """Requirements of the roster that the grid does not fully cover.

    Candidates are re-derived from the roster and the grid's class sections;
    placements are counted per (teacher, subject, grade, section).
    """
    config = _grid_configuration(grid)
    if config is None:
        return []

    candidates = generate_candidates(config, teachers, subjects)
    placed = Counter(
        (slot.teacher.id, slot.subject.id, slot.grade, slot.section)
        for slot in grid.iter_slots()
        if slot.is_assigned
    )
    required_by_teacher: Counter = Counter()
    for candidate in candidates:
        required_by_teacher[candidate.teacher.id] += candidate.required_hours

    requirements = []
    for candidate in candidates:
        assigned = min(placed.get(candidate.key, 0), candidate.required_hours)
        missing = candidate.required_hours - assigned
        if missing <= 0:
            continue
        requirements.append(
            UnassignedRequirement(
                teacher=candidate.teacher,
                subject=candidate.subject,
                grade=candidate.grade,
                section=candidate.section,
                required_hours=candidate.required_hours,
                assigned_hours=assigned,
                missing_hours=missing,
                blocking_reasons=_blocking_reasons(
                    candidate.teacher, candidate.subject, classrooms or [], required_by_teacher
                ),
            )
        )
    return requirements


def overall_score(completion_rate: float, violations: list[ConstraintViolation]) -> float:
    """Completion rate minus penalties for critical and major violations, in 0-100."""
    critical = sum(1 for v in violations if v.severity == Severity.CRITICAL)
    major = sum(1 for v in violations if v.severity == Severity.MAJOR)
    score = completion_rate - critical * CRITICAL_PENALTY - major * MAJOR_PENALTY
    return round_half_up(max(0.0, min(100.0, score)), 2)


def _suggestions(
    violations: list[ConstraintViolation],
    requirements: list[UnassignedRequirement],
) -> list[str]:
    suggestions = []
    types = Counter(v.type for v in violations)

    if types[ViolationType.TEACHER_CONFLICT]:
        suggestions.append(
            f"Resolve {types[ViolationType.TEACHER_CONFLICT]} teacher double-bookings "
            f"by moving lessons to free periods"
        )
    if types[ViolationType.CLASSROOM_CONFLICT]:
        suggestions.append(
            "Add special classrooms or spread lessons that need them across the week"
        )
    if types[ViolationType.SUBJECT_MISMATCH]:
        suggestions.append("Check that every lesson's teacher and grade match the subject")
    if types[ViolationType.TIME_RESTRICTION]:
        suggestions.append("Move lessons out of the periods teachers are unavailable")
    if types[ViolationType.WORKLOAD_EXCEEDED]:
        suggestions.append("Redistribute hours from overloaded teachers")

    if requirements:
        missing = sum(r.missing_hours for r in requirements)
        suggestions.append(
            f"{missing} required hours across {len(requirements)} class-subject pairs "
            f"are not scheduled; relax restrictions or add teachers"
        )
        by_teacher = Counter()
        names = {}
        for requirement in requirements:
            by_teacher[requirement.teacher.id] += requirement.missing_hours
            names[requirement.teacher.id] = requirement.teacher.name
        teacher_id, hours = by_teacher.most_common(1)[0]
        suggestions.append(f"Largest shortfall: {names[teacher_id]} ({hours} hours)")

    return suggestions


def validate(
    grid: TimetableGrid,
    teachers: list[Teacher],
    subjects: list[Subject],
    classrooms: list[Classroom] | None = None,
) -> ValidationReport:
    """Check a finished timetable and score it.

    Severities: teacher double-booking, classroom conflicts and subject
    mismatches are critical; mandatory restriction and workload breaches are
    major; recommended restriction breaches are minor.

    Args:
        grid: Timetable to validate (not modified)
        teachers: Teacher roster
        subjects: Subject catalogue
        classrooms: Available classrooms

    Returns:
        Immutable validation report
    """
    classrooms = list(classrooms or [])
    teacher_by_id = {t.id: t for t in teachers}
    subject_by_id = {s.id: s for s in subjects}

    assigned = [slot for slot in grid.iter_slots() if slot.is_assigned]
    tracker = ConflictTracker.from_slots(assigned)

    violations: list[ConstraintViolation] = []
    violations.extend(_teacher_conflicts(tracker))
    violations.extend(_classroom_conflicts(tracker, classrooms))
    for slot in assigned:
        teacher = teacher_by_id.get(slot.teacher.id, slot.teacher)
        subject = subject_by_id.get(slot.subject.id, slot.subject)
        violations.extend(_slot_violations(slot, teacher, subject))
    violations.extend(_workload_violations(tracker, teachers))

    requirements = find_unassigned_requirements(grid, teachers, subjects, classrooms)
    metrics = calculate_quality_metrics(grid, teachers)
    score = overall_score(metrics.assignment_completion_rate, violations)

    logger.info(
        f"Validated timetable: {len(violations)} violations, "
        f"{len(requirements)} unassigned requirements, score {score}"
    )
    return ValidationReport(
        is_valid=not violations,
        overall_score=score,
        violations=tuple(violations),
        quality_metrics=metrics,
        unassigned_requirements=tuple(requirements),
        suggestions=tuple(_suggestions(violations, requirements)),
    )
