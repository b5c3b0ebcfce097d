"""Statistics and quality analysis of timetable grids."""

import logging
import statistics
from collections import Counter, defaultdict
from decimal import ROUND_HALF_UP, Decimal

from .constants import (
    DEFAULT_TEACHER_AVAILABLE_HOURS,
    MAX_VIOLATION_PENALTY,
    VIOLATION_PENALTY,
)
from .models import (
    AssignmentCandidate,
    GenerationStatistics,
    QualityMetrics,
    Teacher,
    TeacherDifficulty,
    TimetableGrid,
)

logger = logging.getLogger(__name__)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves going up, so 12.5 becomes 13."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def assignment_rate(assigned: int, total: int) -> float:
    """Percentage of assigned slots, rounded to 2 decimals."""
    if total == 0:
        return 0.0
    return round_half_up(assigned / total * 100, 2)


def quality_score(rate: float, violation_count: int) -> float:
    """Assignment rate minus a capped penalty for soft violations."""
    penalty = min(violation_count * VIOLATION_PENALTY, MAX_VIOLATION_PENALTY)
    return round_half_up(max(0.0, rate - penalty), 2)


def analyze(grid: TimetableGrid) -> GenerationStatistics:
    """Compute slot accounting and quality figures for a grid.

    Args:
        grid: Timetable to analyze (not modified)

    Returns:
        Statistics with ``assigned_slots + unassigned_slots == total_slots``
    """
    total = 0
    assigned = 0
    violations = 0
    unassigned_keys = []

    for slot in grid.iter_slots():
        total += 1
        violations += len(slot.violations)
        if slot.is_assigned:
            assigned += 1
        else:
            unassigned_keys.append((slot.day, slot.period, slot.grade, slot.section))

    rate = assignment_rate(assigned, total)
    return GenerationStatistics(
        total_slots=total,
        assigned_slots=assigned,
        unassigned_slots=total - assigned,
        constraint_violations=violations,
        assignment_rate=rate,
        quality_score=quality_score(rate, violations),
        best_assignment_rate=rate,
        unassigned_slot_keys=unassigned_keys,
    )


def teacher_available_hours(teacher: Teacher) -> int:
    return teacher.max_weekly_hours or DEFAULT_TEACHER_AVAILABLE_HOURS


def calculate_teacher_difficulties(
    teachers: list[Teacher], candidates: list[AssignmentCandidate]
) -> list[TeacherDifficulty]:
    """Required hours of each teacher relative to their available hours.

    Returns:
        One entry per teacher, in input order
    """
    by_teacher: dict[str, list[AssignmentCandidate]] = defaultdict(list)
    for candidate in candidates:
        by_teacher[candidate.teacher.id].append(candidate)

    difficulties = []
    for teacher in teachers:
        own = by_teacher.get(teacher.id, [])
        required = sum(c.required_hours for c in own)
        available = teacher_available_hours(teacher)
        difficulties.append(
            TeacherDifficulty(
                teacher=teacher,
                total_required_hours=required,
                available_hours=available,
                difficulty_percentage=(
                    int(round_half_up(required / available * 100)) if available > 0 else 0
                ),
                subject_count=len(teacher.subjects),
                grade_count=len({c.grade for c in own}),
                class_count=len(own),
                assigned_hours=sum(c.assigned_hours for c in own),
            )
        )
    return difficulties


def teacher_loads(grid: TimetableGrid) -> Counter:
    """Assigned slot count per teacher id."""
    return Counter(slot.teacher.id for slot in grid.iter_slots() if slot.teacher is not None)


def teacher_utilization_rate(grid: TimetableGrid, teachers: list[Teacher]) -> float:
    """Percentage of teachers with at least one assignment."""
    if not teachers:
        return 0.0
    loads = teacher_loads(grid)
    active = sum(1 for teacher in teachers if loads.get(teacher.id, 0) > 0)
    return round_half_up(active / len(teachers) * 100, 2)


def subject_distribution_balance(grid: TimetableGrid) -> float:
    """How evenly each class's subjects are spread over the week (0-1).

    For every (class, subject) pair the number of distinct days used is
    compared to the ideal ``min(hours, days)``; the result is the mean ratio.
    """
    days_used: dict[tuple[int, str, str], set[str]] = defaultdict(set)
    hours: Counter = Counter()
    for slot in grid.iter_slots():
        if not slot.is_assigned:
            continue
        key = (slot.grade, slot.section, slot.subject.id)
        days_used[key].add(slot.day)
        hours[key] += 1

    if not hours:
        return 0.0

    day_count = len(grid.days)
    ratios = [len(days_used[key]) / min(count, day_count) for key, count in hours.items()]
    return round(sum(ratios) / len(ratios), 4)


def load_balance_score(grid: TimetableGrid, teachers: list[Teacher]) -> float:
    """One minus the coefficient of variation of teacher loads, clamped to 0-1."""
    if not teachers:
        return 0.0
    loads = teacher_loads(grid)
    values = [loads.get(teacher.id, 0) for teacher in teachers]
    mean = statistics.fmean(values)
    if mean == 0:
        return 0.0
    variation = statistics.pstdev(values) / mean
    return round(max(0.0, min(1.0, 1 - variation)), 4)


def calculate_quality_metrics(
    grid: TimetableGrid, teachers: list[Teacher]
) -> QualityMetrics:
    """Aggregate quality indicators for a grid."""
    stats = analyze(grid)
    return QualityMetrics(
        assignment_completion_rate=stats.assignment_rate,
        teacher_utilization_rate=teacher_utilization_rate(grid, teachers),
        subject_distribution_balance=subject_distribution_balance(grid),
        constraint_violation_count=stats.constraint_violations,
        load_balance_score=load_balance_score(grid, teachers),
    )
