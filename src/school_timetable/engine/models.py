"""Data models for the school timetable engine."""

import threading
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from ..constants import SATURDAY_NAMES
from ..exceptions import ConfigurationError
from .constants import (
    DEFAULT_BACKTRACK_LIMIT,
    DEFAULT_LOW_HOURS_THRESHOLD,
    DEFAULT_MAX_RETRIES,
    COMPLETE_RATE_THRESHOLD,
    AssignmentPriority,
    RestrictionLevel,
    Severity,
    ViolationType,
)


def same_day(first: str, second: str) -> bool:
    """Compare day names ignoring case and surrounding whitespace."""
    return first.strip().casefold() == second.strip().casefold()


@dataclass(frozen=True)
class SchoolConfiguration:
    """Complete, validated school configuration for one generation run."""

    grades: tuple[int, ...]
    sections: dict[int, tuple[str, ...]]
    days: tuple[str, ...]
    daily_periods: int
    saturday_periods: int

    def __post_init__(self) -> None:
        if not self.days:
            raise ConfigurationError("day list is empty")
        if not self.grades:
            raise ConfigurationError("grade list is empty")
        if self.daily_periods < 1 or self.saturday_periods < 1:
            raise ConfigurationError("period counts must be at least 1")
        unknown = sorted(set(self.sections) - set(self.grades))
        if unknown:
            raise ConfigurationError(
                f"sections reference grades not in the grade list: {unknown}"
            )

    @staticmethod
    def is_saturday(day: str) -> bool:
        """Check if a day name denotes Saturday."""
        return day.strip().casefold() in SATURDAY_NAMES

    def periods_for_day(self, day: str) -> int:
        """Number of periods taught on a day."""
        return self.saturday_periods if self.is_saturday(day) else self.daily_periods

    def class_sections(self) -> list[tuple[int, str]]:
        """All (grade, section) pairs in configuration order."""
        return [
            (grade, section)
            for grade in self.grades
            for section in self.sections.get(grade, ())
        ]

    @property
    def total_slots(self) -> int:
        """Total number of (day, period, grade, section) cells."""
        periods = sum(self.periods_for_day(day) for day in self.days)
        return periods * len(self.class_sections())

    def to_dict(self) -> dict[str, Any]:
        return {
            "grades": list(self.grades),
            "sections": {str(g): list(s) for g, s in self.sections.items()},
            "days": list(self.days),
            "daily_periods": self.daily_periods,
            "saturday_periods": self.saturday_periods,
        }


@dataclass
class AssignmentRestriction:
    """A day/period block on a teacher's availability.

    The listed periods of ``day`` are unavailable to the teacher. The optional
    ``subject``, ``grade`` and ``section`` narrow the restriction to matching
    assignments; ``None`` matches everything.
    """

    day: str
    periods: list[int]
    level: RestrictionLevel = RestrictionLevel.MANDATORY
    reason: str = ""
    subject: str | None = None
    grade: int | None = None
    section: str | None = None

    @property
    def is_mandatory(self) -> bool:
        return self.level == RestrictionLevel.MANDATORY

    def applies_to(self, subject: "Subject", grade: int, section: str) -> bool:
        """Check if the restriction scope covers a subject/grade/section."""
        if self.subject is not None and self.subject not in (subject.id, subject.name):
            return False
        if self.grade is not None and self.grade != grade:
            return False
        if self.section is not None and self.section != section:
            return False
        return True

    def blocks(self, day: str, period: int) -> bool:
        """Check if the restriction covers a day/period."""
        return same_day(self.day, day) and period in self.periods

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AssignmentRestriction":
        """Create a restriction from an already-coerced dictionary."""
        grade = data.get("grade")
        section = data.get("section")
        return cls(
            day=data["day"],
            periods=[int(p) for p in data.get("periods", [])],
            level=RestrictionLevel(data.get("level", RestrictionLevel.MANDATORY.value)),
            reason=data.get("reason", ""),
            subject=data.get("subject"),
            grade=int(grade) if grade is not None else None,
            section=str(section) if section is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "day": self.day,
            "periods": self.periods,
            "level": self.level.value,
            "reason": self.reason,
            "subject": self.subject,
            "grade": self.grade,
            "section": self.section,
        }


@dataclass
class Teacher:
    """A teacher available for assignment."""

    id: str
    name: str
    subjects: list[str] = field(default_factory=list)
    grades: list[int] = field(default_factory=list)
    restrictions: list[AssignmentRestriction] = field(default_factory=list)
    max_weekly_hours: int | None = None

    def teaches(self, subject: "Subject") -> bool:
        """Check if the teacher is affiliated with a subject (by id or name)."""
        return subject.id in self.subjects or subject.name in self.subjects

    def restrictions_for(
        self,
        subject: "Subject",
        grade: int,
        section: str,
        level: RestrictionLevel | None = None,
    ) -> list[AssignmentRestriction]:
        """Restrictions whose scope covers a subject/grade/section."""
        return [
            r
            for r in self.restrictions
            if r.applies_to(subject, grade, section) and (level is None or r.level == level)
        ]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Teacher":
        """Create a Teacher from an already-coerced dictionary."""
        max_hours = data.get("max_weekly_hours")
        return cls(
            id=str(data["id"]),
            name=data.get("name", str(data["id"])),
            subjects=[str(s) for s in data.get("subjects", [])],
            grades=[int(g) for g in data.get("grades", [])],
            restrictions=[
                AssignmentRestriction.from_dict(r) for r in data.get("restrictions", [])
            ],
            max_weekly_hours=int(max_hours) if max_hours is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "subjects": self.subjects,
            "grades": self.grades,
            "restrictions": [r.to_dict() for r in self.restrictions],
            "max_weekly_hours": self.max_weekly_hours,
        }


@dataclass
class Subject:
    """A subject with per-grade weekly hour requirements."""

    id: str
    name: str
    grades: list[int] = field(default_factory=list)
    weekly_hours: dict[int, int] = field(default_factory=dict)
    requires_special_classroom: bool = False
    classroom_type: str | None = None

    def applies_to_grade(self, grade: int) -> bool:
        return grade in self.grades

    def hours_for_grade(self, grade: int) -> int:
        """Weekly hours required for a grade (0 when undefined)."""
        return self.weekly_hours.get(grade) or 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Subject":
        """Create a Subject from an already-coerced dictionary."""
        return cls(
            id=str(data["id"]),
            name=data.get("name", str(data["id"])),
            grades=[int(g) for g in data.get("grades", [])],
            weekly_hours={int(g): int(h) for g, h in data.get("weekly_hours", {}).items()},
            requires_special_classroom=bool(data.get("requires_special_classroom", False)),
            classroom_type=data.get("classroom_type"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "grades": self.grades,
            "weekly_hours": {str(g): h for g, h in self.weekly_hours.items()},
            "requires_special_classroom": self.requires_special_classroom,
            "classroom_type": self.classroom_type,
        }


@dataclass
class Classroom:
    """A physical classroom."""

    id: str
    name: str
    capacity: int = 0
    classroom_type: str = "normal"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Classroom":
        return cls(
            id=str(data["id"]),
            name=data.get("name", str(data["id"])),
            capacity=int(data.get("capacity", 0)),
            classroom_type=data.get("classroom_type", "normal"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "capacity": self.capacity,
            "classroom_type": self.classroom_type,
        }


@dataclass
class AssignmentCandidate:
    """A possible (teacher, subject, grade, section) pairing with an hour quota."""

    teacher: Teacher
    subject: Subject
    grade: int
    section: str
    required_hours: int
    assigned_hours: int = 0
    priority: AssignmentPriority = AssignmentPriority.DEFAULT

    def __post_init__(self) -> None:
        if not 0 <= self.assigned_hours <= self.required_hours:
            raise ValueError(
                f"assigned_hours must be within 0..{self.required_hours}, "
                f"got {self.assigned_hours}"
            )

    @property
    def key(self) -> tuple[str, str, int, str]:
        return (self.teacher.id, self.subject.id, self.grade, self.section)

    @property
    def remaining_hours(self) -> int:
        return self.required_hours - self.assigned_hours

    @property
    def is_satisfied(self) -> bool:
        return self.assigned_hours >= self.required_hours

    def targets(self, grade: int, section: str) -> bool:
        """Check if the candidate belongs to a class section."""
        return self.grade == grade and self.section == section

    def record_assignment(self) -> None:
        """Count one placed hour."""
        if self.assigned_hours >= self.required_hours:
            raise ValueError(f"Candidate {self.key} already has all required hours")
        self.assigned_hours += 1

    def release_assignment(self) -> None:
        """Undo one placed hour."""
        if self.assigned_hours <= 0:
            raise ValueError(f"Candidate {self.key} has no assigned hours to release")
        self.assigned_hours -= 1

    def snapshot(self) -> "AssignmentCandidate":
        """Detached copy for read-only inspection."""
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "teacher_id": self.teacher.id,
            "teacher": self.teacher.name,
            "subject_id": self.subject.id,
            "subject": self.subject.name,
            "grade": self.grade,
            "section": self.section,
            "required_hours": self.required_hours,
            "assigned_hours": self.assigned_hours,
            "priority": self.priority.name.lower(),
        }


@dataclass
class SlotViolation:
    """A constraint violation flag recorded on a slot."""

    constraint: str
    severity: Severity
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "constraint": self.constraint,
            "severity": self.severity.value,
            "message": self.message,
        }


@dataclass
class TimetableSlot:
    """One (day, period, grade, section) cell of the timetable."""

    grade: int
    section: str
    day: str
    period: int
    teacher: Teacher | None = None
    subject: Subject | None = None
    classroom: Classroom | None = None
    violations: list[SlotViolation] = field(default_factory=list)

    @property
    def is_assigned(self) -> bool:
        return self.teacher is not None and self.subject is not None

    @property
    def has_violation(self) -> bool:
        return bool(self.violations)

    @property
    def label(self) -> str:
        return f"grade {self.grade}-{self.section} {self.day} period {self.period}"

    def assign(
        self,
        teacher: Teacher,
        subject: Subject,
        classroom: Classroom | None = None,
        violations: list[SlotViolation] | None = None,
    ) -> None:
        self.teacher = teacher
        self.subject = subject
        self.classroom = classroom
        self.violations = list(violations or [])

    def clear(self) -> None:
        self.teacher = None
        self.subject = None
        self.classroom = None
        self.violations = []

    def location(self) -> dict[str, Any]:
        return {
            "day": self.day,
            "period": self.period,
            "grade": self.grade,
            "section": self.section,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.location(),
            "teacher_id": self.teacher.id if self.teacher else None,
            "teacher": self.teacher.name if self.teacher else None,
            "subject_id": self.subject.id if self.subject else None,
            "subject": self.subject.name if self.subject else None,
            "classroom_id": self.classroom.id if self.classroom else None,
            "classroom": self.classroom.name if self.classroom else None,
            "classroom_type": self.classroom.classroom_type if self.classroom else None,
            "violations": [v.to_dict() for v in self.violations],
        }


@dataclass
class TimetableGrid:
    """Timetable cells indexed by day, then period, then class section.

    ``cells[d][p]`` holds one slot per (grade, section) for ``days[d]``,
    period ``p + 1``.
    """

    days: list[str]
    cells: list[list[list[TimetableSlot]]]

    def day_index(self, day: str) -> int | None:
        for index, name in enumerate(self.days):
            if same_day(name, day):
                return index
        return None

    def period_slots(self, day: str, period: int) -> list[TimetableSlot]:
        """All class slots taught at a (day, period)."""
        index = self.day_index(day)
        if index is None or not 1 <= period <= len(self.cells[index]):
            return []
        return self.cells[index][period - 1]

    def iter_slots(self) -> Iterator[TimetableSlot]:
        """Iterate slots in day -> period -> class order."""
        for day_cells in self.cells:
            for period_cells in day_cells:
                yield from period_cells

    def iter_periods(self) -> Iterator[tuple[str, int, list[TimetableSlot]]]:
        """Iterate (day, period, slots) groups."""
        for day, day_cells in zip(self.days, self.cells):
            for period_index, period_cells in enumerate(day_cells):
                yield day, period_index + 1, period_cells

    def slots_for_class(self, grade: int, section: str) -> list[TimetableSlot]:
        return [s for s in self.iter_slots() if s.grade == grade and s.section == section]

    def find_slot(self, day: str, period: int, grade: int, section: str) -> TimetableSlot | None:
        for slot in self.period_slots(day, period):
            if slot.grade == grade and slot.section == section:
                return slot
        return None

    def class_sections(self) -> list[tuple[int, str]]:
        """Distinct (grade, section) pairs in grid order."""
        seen: dict[tuple[int, str], None] = {}
        for slot in self.iter_slots():
            seen.setdefault((slot.grade, slot.section), None)
        return list(seen)

    def periods_per_day(self) -> dict[str, int]:
        return {day: len(day_cells) for day, day_cells in zip(self.days, self.cells)}

    @property
    def total_slots(self) -> int:
        return sum(len(period_cells) for day_cells in self.cells for period_cells in day_cells)

    def to_dict(self) -> dict[str, Any]:
        return {
            "days": list(self.days),
            "periods_per_day": self.periods_per_day(),
            "class_sections": [
                {"grade": grade, "section": section} for grade, section in self.class_sections()
            ],
            "slots": [slot.to_dict() for slot in self.iter_slots()],
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        teachers: list[Teacher] | None = None,
        subjects: list[Subject] | None = None,
        classrooms: list[Classroom] | None = None,
    ) -> "TimetableGrid":
        """Rebuild a grid from ``to_dict`` output.

        Roster entities are resolved by id. Ids missing from the roster are
        kept as placeholder entities so the grid can still be validated.
        """
        teacher_by_id = {t.id: t for t in teachers or []}
        subject_by_id = {s.id: s for s in subjects or []}
        classroom_by_id = {c.id: c for c in classrooms or []}

        days = list(data.get("days", []))
        periods_per_day = data.get("periods_per_day", {})
        records = data.get("slots", [])

        class_sections = [
            (int(item["grade"]), str(item["section"])) for item in data.get("class_sections", [])
        ]
        if not class_sections:
            seen: dict[tuple[int, str], None] = {}
            for record in records:
                seen.setdefault((int(record["grade"]), str(record["section"])), None)
            class_sections = list(seen)

        cells = [
            [
                [
                    TimetableSlot(grade=grade, section=section, day=day, period=period)
                    for grade, section in class_sections
                ]
                for period in range(1, int(periods_per_day.get(day, 0)) + 1)
            ]
            for day in days
        ]
        grid = cls(days=days, cells=cells)

        for record in records:
            if not record.get("teacher_id") or not record.get("subject_id"):
                continue
            slot = grid.find_slot(
                record["day"], int(record["period"]), int(record["grade"]), str(record["section"])
            )
            if slot is None:
                continue

            teacher = teacher_by_id.get(record["teacher_id"]) or Teacher(
                id=record["teacher_id"], name=record.get("teacher") or record["teacher_id"]
            )
            subject = subject_by_id.get(record["subject_id"]) or Subject(
                id=record["subject_id"], name=record.get("subject") or record["subject_id"]
            )
            classroom = None
            if record.get("classroom_id"):
                classroom = classroom_by_id.get(record["classroom_id"]) or Classroom(
                    id=record["classroom_id"],
                    name=record.get("classroom") or record["classroom_id"],
                    classroom_type=record.get("classroom_type") or "normal",
                )
            violations = [
                SlotViolation(
                    constraint=v["constraint"],
                    severity=Severity(v["severity"]),
                    message=v.get("message", ""),
                )
                for v in record.get("violations", [])
            ]
            slot.assign(teacher, subject, classroom, violations)

        return grid


@dataclass
class ConstraintResult:
    """Outcome of a placement check."""

    valid: bool
    reason: str | None = None
    constraint: str | None = None
    soft_violations: list[SlotViolation] = field(default_factory=list)


@dataclass
class GenerationOptions:
    """Tunable options for a generation run."""

    tolerant_mode: bool = True
    max_retries: int = DEFAULT_MAX_RETRIES
    quality_threshold: float = COMPLETE_RATE_THRESHOLD
    low_hours_threshold: int = DEFAULT_LOW_HOURS_THRESHOLD
    backtrack_limit: int = DEFAULT_BACKTRACK_LIMIT
    seed: int | None = None
    workers: int = 1
    # threading.Event, or a manager Event when attempts run in worker processes
    cancel_event: threading.Event | None = None

    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


@dataclass
class GenerationStatistics:
    """Statistics about a generated timetable."""

    total_slots: int = 0
    assigned_slots: int = 0
    unassigned_slots: int = 0
    constraint_violations: int = 0
    assignment_rate: float = 0.0
    quality_score: float = 0.0
    backtrack_count: int = 0
    retry_attempts: int = 0
    best_assignment_rate: float = 0.0
    attempt_rates: list[float] = field(default_factory=list)
    unassigned_slot_keys: list[tuple[str, int, int, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_slots": self.total_slots,
            "assigned_slots": self.assigned_slots,
            "unassigned_slots": self.unassigned_slots,
            "constraint_violations": self.constraint_violations,
            "assignment_rate": self.assignment_rate,
            "quality_score": self.quality_score,
            "backtrack_count": self.backtrack_count,
            "retry_attempts": self.retry_attempts,
            "best_assignment_rate": self.best_assignment_rate,
            "attempt_rates": self.attempt_rates,
            "unassigned_slot_keys": [list(key) for key in self.unassigned_slot_keys],
        }


@dataclass
class GenerationAttempt:
    """One engine run owned by the retry controller."""

    grid: TimetableGrid
    statistics: GenerationStatistics
    attempt_number: int
    success: bool
    candidates: list[AssignmentCandidate] = field(default_factory=list)

    @property
    def assignment_rate(self) -> float:
        return self.statistics.assignment_rate


@dataclass
class GenerationResult:
    """Best timetable produced by a ``generate`` call."""

    grid: TimetableGrid
    statistics: GenerationStatistics
    message: str
    candidates: list[AssignmentCandidate] = field(default_factory=list)
    success: bool = True
    generation_date: str = field(default_factory=lambda: datetime.now().isoformat())

    def __iter__(self) -> Iterator[Any]:
        # Allows ``grid, statistics = generate(...)``
        yield self.grid
        yield self.statistics

    def to_dict(self) -> dict[str, Any]:
        return {
            "generation_date": self.generation_date,
            "success": self.success,
            "message": self.message,
            "statistics": self.statistics.to_dict(),
            "candidates": [c.to_dict() for c in self.candidates],
            "timetable": self.grid.to_dict(),
        }


@dataclass(frozen=True)
class ConstraintViolation:
    """A violation found by the validator."""

    type: ViolationType
    severity: Severity
    description: str
    affected_slots: tuple[dict[str, Any], ...] = ()
    suggested_fix: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
            "affected_slots": list(self.affected_slots),
            "suggested_fix": self.suggested_fix,
        }


@dataclass(frozen=True)
class QualityMetrics:
    """Aggregate quality indicators of a timetable."""

    assignment_completion_rate: float = 0.0
    teacher_utilization_rate: float = 0.0
    subject_distribution_balance: float = 0.0
    constraint_violation_count: int = 0
    load_balance_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "assignment_completion_rate": self.assignment_completion_rate,
            "teacher_utilization_rate": self.teacher_utilization_rate,
            "subject_distribution_balance": self.subject_distribution_balance,
            "constraint_violation_count": self.constraint_violation_count,
            "load_balance_score": self.load_balance_score,
        }


@dataclass(frozen=True)
class UnassignedRequirement:
    """A candidate whose weekly hours were not fully placed."""

    teacher: Teacher
    subject: Subject
    grade: int
    section: str
    required_hours: int
    assigned_hours: int
    missing_hours: int
    blocking_reasons: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "teacher_id": self.teacher.id,
            "teacher": self.teacher.name,
            "subject_id": self.subject.id,
            "subject": self.subject.name,
            "grade": self.grade,
            "section": self.section,
            "required_hours": self.required_hours,
            "assigned_hours": self.assigned_hours,
            "missing_hours": self.missing_hours,
            "blocking_reasons": list(self.blocking_reasons),
        }


@dataclass(frozen=True)
class TeacherDifficulty:
    """Workload pressure on one teacher."""

    teacher: Teacher
    total_required_hours: int
    available_hours: int
    difficulty_percentage: int
    subject_count: int
    grade_count: int
    class_count: int
    assigned_hours: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "teacher_id": self.teacher.id,
            "teacher": self.teacher.name,
            "total_required_hours": self.total_required_hours,
            "available_hours": self.available_hours,
            "difficulty_percentage": self.difficulty_percentage,
            "subject_count": self.subject_count,
            "grade_count": self.grade_count,
            "class_count": self.class_count,
            "assigned_hours": self.assigned_hours,
        }


@dataclass(frozen=True)
class ValidationReport:
    """Result of validating a finished timetable."""

    is_valid: bool
    overall_score: float
    violations: tuple[ConstraintViolation, ...]
    quality_metrics: QualityMetrics
    unassigned_requirements: tuple[UnassignedRequirement, ...]
    suggestions: tuple[str, ...]

    def count(self, severity: Severity) -> int:
        return sum(1 for v in self.violations if v.severity == severity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "overall_score": self.overall_score,
            "violations": [v.to_dict() for v in self.violations],
            "quality_metrics": self.quality_metrics.to_dict(),
            "unassigned_requirements": [u.to_dict() for u in self.unassigned_requirements],
            "suggestions": list(self.suggestions),
        }
