"""Enumeration of teacher/subject/class assignment candidates."""

import logging

from .models import AssignmentCandidate, SchoolConfiguration, Subject, Teacher

logger = logging.getLogger(__name__)


def build_subject_lookup(subjects: list[Subject]) -> dict[str, Subject]:
    """Map subject ids and names to subjects. Ids take precedence over names."""
    lookup: dict[str, Subject] = {}
    for subject in subjects:
        lookup.setdefault(subject.name, subject)
    for subject in subjects:
        lookup[subject.id] = subject
    return lookup


def resolve_subject(reference: str, subjects: list[Subject]) -> Subject | None:
    """Find a subject by id, then by name."""
    for subject in subjects:
        if subject.id == reference:
            return subject
    for subject in subjects:
        if subject.name == reference:
            return subject
    return None


def skipped_subject_references(
    teachers: list[Teacher], subjects: list[Subject]
) -> list[tuple[Teacher, str]]:
    """Teacher subject references that match no known subject."""
    lookup = build_subject_lookup(subjects)
    return [
        (teacher, reference)
        for teacher in teachers
        for reference in teacher.subjects
        if reference not in lookup
    ]


def generate_candidates(
    config: SchoolConfiguration,
    teachers: list[Teacher],
    subjects: list[Subject],
) -> list[AssignmentCandidate]:
    """Enumerate every (teacher, subject, grade, section) with hours to place.

    Subjects referenced by a teacher are resolved by id, then by name.
    Unknown references and grades with no weekly hours are skipped.

    Args:
        config: School configuration
        teachers: Teachers in input order
        subjects: Known subjects

    Returns:
        Candidates with ``assigned_hours = 0``, in input order
    """
    candidates: list[AssignmentCandidate] = []

    for teacher in teachers:
        seen: set[str] = set()
        for reference in teacher.subjects:
            subject = resolve_subject(reference, subjects)
            if subject is None:
                logger.debug(f"Teacher {teacher.name}: unknown subject '{reference}'")
                continue
            if subject.id in seen:
                continue
            seen.add(subject.id)

            for grade in subject.grades:
                if grade not in config.grades:
                    continue
                hours = subject.hours_for_grade(grade)
                if hours <= 0:
                    logger.debug(
                        f"Teacher {teacher.name}: {subject.name} has no hours for grade {grade}"
                    )
                    continue
                for section in config.sections.get(grade, ()):
                    candidates.append(
                        AssignmentCandidate(
                            teacher=teacher,
                            subject=subject,
                            grade=grade,
                            section=section,
                            required_hours=hours,
                        )
                    )

    logger.info(
        f"Generated {len(candidates)} candidates from {len(teachers)} teachers, "
        f"{len(subjects)} subjects"
    )
    return candidates
