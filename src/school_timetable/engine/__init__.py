"""School timetable generation and validation engine.

This package fills a fixed week of (day, period, grade, section) slots with
teacher/subject assignments using priority-driven slot filling, checks
placements against hard and soft constraints, keeps the best of several
attempts, and validates finished timetables.

Main entry points:
- generate: Build the best timetable for a school
- validate: Check and score a finished timetable
- analyze: Compute slot statistics for a grid

Usage:
    from school_timetable.engine import GenerationOptions, generate, validate

    result = generate(settings, teachers, subjects, classrooms)
    report = validate(result.grid, teachers, subjects, classrooms)
"""

from .analyzer import (
    analyze,
    calculate_quality_metrics,
    calculate_teacher_difficulties,
    teacher_utilization_rate,
)
from .assigner import AssignmentEngine
from .candidates import generate_candidates, skipped_subject_references
from .checker import ConstraintChecker, is_placement_valid
from .constants import (
    COMPLETE_RATE_THRESHOLD,
    DEFAULT_BACKTRACK_LIMIT,
    DEFAULT_LOW_HOURS_THRESHOLD,
    DEFAULT_MAX_RETRIES,
    AssignmentPriority,
    RestrictionLevel,
    Severity,
    ViolationType,
)
from .grid import build_grid
from .models import (
    AssignmentCandidate,
    AssignmentRestriction,
    Classroom,
    ConstraintResult,
    ConstraintViolation,
    GenerationAttempt,
    GenerationOptions,
    GenerationResult,
    GenerationStatistics,
    QualityMetrics,
    SchoolConfiguration,
    SlotViolation,
    Subject,
    Teacher,
    TeacherDifficulty,
    TimetableGrid,
    TimetableSlot,
    UnassignedRequirement,
    ValidationReport,
)
from .priority import classify_candidates, order_candidates
from .retry import RetryController, generate
from .rooms import ClassroomPool
from .settings import normalize_settings
from .validator import validate

__all__ = [
    # Entry points
    "generate",
    "validate",
    "analyze",
    # Pipeline
    "normalize_settings",
    "build_grid",
    "generate_candidates",
    "skipped_subject_references",
    "classify_candidates",
    "order_candidates",
    "ConstraintChecker",
    "is_placement_valid",
    "ClassroomPool",
    "AssignmentEngine",
    "RetryController",
    "calculate_quality_metrics",
    "calculate_teacher_difficulties",
    "teacher_utilization_rate",
    # Constants
    "COMPLETE_RATE_THRESHOLD",
    "DEFAULT_BACKTRACK_LIMIT",
    "DEFAULT_LOW_HOURS_THRESHOLD",
    "DEFAULT_MAX_RETRIES",
    "AssignmentPriority",
    "RestrictionLevel",
    "Severity",
    "ViolationType",
    # Models
    "AssignmentCandidate",
    "AssignmentRestriction",
    "Classroom",
    "ConstraintResult",
    "ConstraintViolation",
    "GenerationAttempt",
    "GenerationOptions",
    "GenerationResult",
    "GenerationStatistics",
    "QualityMetrics",
    "SchoolConfiguration",
    "SlotViolation",
    "Subject",
    "Teacher",
    "TeacherDifficulty",
    "TimetableGrid",
    "TimetableSlot",
    "UnassignedRequirement",
    "ValidationReport",
]
