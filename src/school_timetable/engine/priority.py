"""Priority classification and ordering of assignment candidates.

Candidates constrained by teacher restrictions have the fewest usable slots,
so they are placed first. Subjects with few remaining hours come next, then
everything else.
"""

import random
from collections import defaultdict

from .constants import DEFAULT_LOW_HOURS_THRESHOLD, AssignmentPriority, RestrictionLevel
from .models import AssignmentCandidate

CandidateKey = tuple[str, str, int, str]


def subject_remaining_hours(candidates: list[AssignmentCandidate]) -> dict[str, int]:
    """Total remaining hours per subject id across candidates."""
    totals: dict[str, int] = defaultdict(int)
    for candidate in candidates:
        totals[candidate.subject.id] += candidate.remaining_hours
    return dict(totals)


def classify_priority(
    candidate: AssignmentCandidate,
    subject_totals: dict[str, int],
    low_hours_threshold: int = DEFAULT_LOW_HOURS_THRESHOLD,
) -> AssignmentPriority:
    """Determine the priority tier of one candidate."""
    teacher = candidate.teacher
    if teacher.restrictions_for(
        candidate.subject, candidate.grade, candidate.section, RestrictionLevel.MANDATORY
    ):
        return AssignmentPriority.MANDATORY_RESTRICTION
    if teacher.restrictions_for(
        candidate.subject, candidate.grade, candidate.section, RestrictionLevel.RECOMMENDED
    ):
        return AssignmentPriority.RECOMMENDED_RESTRICTION
    if subject_totals.get(candidate.subject.id, 0) < low_hours_threshold:
        return AssignmentPriority.LOW_HOURS_SUBJECT
    return AssignmentPriority.DEFAULT


def classify_candidates(
    candidates: list[AssignmentCandidate],
    low_hours_threshold: int = DEFAULT_LOW_HOURS_THRESHOLD,
) -> list[AssignmentCandidate]:
    """Set the priority of every candidate in place.

    Remaining-hour totals are computed over the given candidates, so pass the
    full candidate list rather than a per-slot subset.

    Returns:
        The same candidates, for chaining
    """
    totals = subject_remaining_hours(candidates)
    for candidate in candidates:
        candidate.priority = classify_priority(candidate, totals, low_hours_threshold)
    return candidates


def tiebreak_keys(
    candidates: list[AssignmentCandidate], rng: random.Random | None = None
) -> dict[CandidateKey, float]:
    """Per-run tie-break key for each candidate.

    Without an rng the key is the input position, which keeps ordering stable.
    """
    if rng is None:
        return {c.key: float(index) for index, c in enumerate(candidates)}
    return {c.key: rng.random() for c in candidates}


def order_candidates(
    candidates: list[AssignmentCandidate],
    tiebreak: dict[CandidateKey, float] | None = None,
) -> list[AssignmentCandidate]:
    """Order candidates by tier, then remaining hours descending, then tie-break.

    Args:
        candidates: Already classified candidates
        tiebreak: Keys from ``tiebreak_keys``; input order when omitted

    Returns:
        New sorted list
    """
    if tiebreak is None:
        return sorted(candidates, key=lambda c: (c.priority, -c.remaining_hours))
    return sorted(
        candidates,
        key=lambda c: (c.priority, -c.remaining_hours, tiebreak.get(c.key, 0.0)),
    )
