"""Slot-by-slot assignment of candidates into a timetable grid.

The engine visits slots in day -> period -> class order and places the
highest-priority candidate that passes the constraint checker. In tolerant
mode unfillable slots are skipped. In strict mode a dead end triggers
chronological backtracking over earlier decisions.
"""

import logging
import random
from dataclasses import dataclass, field

from ..exceptions import GenerationCancelledError
from .analyzer import analyze
from .candidates import generate_candidates
from .checker import ConstraintChecker
from .grid import build_grid
from .models import (
    AssignmentCandidate,
    Classroom,
    GenerationAttempt,
    GenerationOptions,
    SchoolConfiguration,
    Subject,
    Teacher,
    TimetableSlot,
)
from .priority import classify_candidates, order_candidates, tiebreak_keys
from .rooms import ClassroomPool

logger = logging.getLogger(__name__)


@dataclass
class _Decision:
    """A placement on the strict-mode undo stack."""

    index: int
    candidate: AssignmentCandidate
    alternatives: list[AssignmentCandidate] = field(default_factory=list)


class AssignmentEngine:
    """Fills one fresh grid from one fresh candidate list.

    An engine is single-use: create a new one for every attempt.
    """

    def __init__(
        self,
        config: SchoolConfiguration,
        teachers: list[Teacher],
        subjects: list[Subject],
        classrooms: list[Classroom] | None = None,
        options: GenerationOptions | None = None,
        rng: random.Random | None = None,
        attempt_number: int = 1,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Normalized school configuration
            teachers: Teacher roster
            subjects: Subject catalogue
            classrooms: Available classrooms
            options: Generation options (defaults when None)
            rng: Random source for tie-breaking; None keeps input order
            attempt_number: Attempt index reported in results and errors
        """
        self.config = config
        self.options = options or GenerationOptions()
        self.attempt_number = attempt_number

        self.grid = build_grid(config)
        self.candidates = generate_candidates(config, teachers, subjects)
        self.checker = ConstraintChecker(classrooms)
        self.pool = ClassroomPool(classrooms)
        self._tiebreak = tiebreak_keys(self.candidates, rng)
        self._by_class: dict[tuple[int, str], list[AssignmentCandidate]] = {}
        for candidate in self.candidates:
            self._by_class.setdefault((candidate.grade, candidate.section), []).append(candidate)

        self.backtrack_count = 0
        self._has_run = False

    def peek_candidates(self) -> list[AssignmentCandidate]:
        """Read-only copies of the current candidate state."""
        return [candidate.snapshot() for candidate in self.candidates]

    def run(self) -> GenerationAttempt:
        """Fill the grid.

        Returns:
            The attempt with its grid, statistics and final candidate state

        Raises:
            GenerationCancelledError: If the cancel event is set mid-run
            RuntimeError: If the engine has already run
        """
        if self._has_run:
            raise RuntimeError("AssignmentEngine instances are single-use")
        self._has_run = True

        slots = list(self.grid.iter_slots())
        if self.options.tolerant_mode:
            self._run_tolerant(slots)
        else:
            self._run_strict(slots)

        statistics = analyze(self.grid)
        statistics.backtrack_count = self.backtrack_count
        statistics.retry_attempts = 1
        statistics.attempt_rates = [statistics.assignment_rate]

        logger.info(
            f"Attempt {self.attempt_number}: {statistics.assigned_slots}/"
            f"{statistics.total_slots} slots assigned ({statistics.assignment_rate}%), "
            f"{statistics.constraint_violations} soft violations, "
            f"{self.backtrack_count} backtracks"
        )
        return GenerationAttempt(
            grid=self.grid,
            statistics=statistics,
            attempt_number=self.attempt_number,
            success=statistics.assignment_rate >= self.options.quality_threshold,
            candidates=self.candidates,
        )

    def _check_cancelled(self, slots_visited: int) -> None:
        if self.options.is_cancelled():
            logger.info(f"Attempt {self.attempt_number} cancelled after {slots_visited} slots")
            raise GenerationCancelledError(self.attempt_number, slots_visited)

    def _ordered_eligible(self, slot: TimetableSlot) -> list[AssignmentCandidate]:
        """Unsatisfied candidates of the slot's class, in placement order."""
        classify_candidates(self.candidates, self.options.low_hours_threshold)
        eligible = [
            c for c in self._by_class.get((slot.grade, slot.section), []) if not c.is_satisfied
        ]
        return order_candidates(eligible, self._tiebreak)

    def _try_candidates(
        self, slot: TimetableSlot, ordered: list[AssignmentCandidate]
    ) -> tuple[AssignmentCandidate, list[AssignmentCandidate]] | None:
        """Place the first valid candidate.

        Returns:
            The placed candidate and the untried alternatives, or None
        """
        for position, candidate in enumerate(ordered):
            result = self.checker.is_placement_valid(slot, candidate, self.grid)
            if not result.valid:
                logger.debug(f"{slot.label}: {result.constraint} rejected - {result.reason}")
                continue

            classroom = self.pool.find_classroom(candidate.subject, slot.day, slot.period)
            if classroom is not None:
                self.pool.reserve(classroom, slot.day, slot.period)
            slot.assign(candidate.teacher, candidate.subject, classroom, result.soft_violations)
            candidate.record_assignment()
            logger.debug(f"{slot.label}: placed {candidate.subject.name} ({candidate.teacher.name})")
            return candidate, ordered[position + 1 :]
        return None

    def _undo(self, slot: TimetableSlot, candidate: AssignmentCandidate) -> None:
        if slot.classroom is not None:
            self.pool.release(slot.classroom, slot.day, slot.period)
        slot.clear()
        candidate.release_assignment()

    def _run_tolerant(self, slots: list[TimetableSlot]) -> None:
        for index, slot in enumerate(slots):
            self._check_cancelled(index)
            ordered = self._ordered_eligible(slot)
            if ordered and self._try_candidates(slot, ordered) is None:
                logger.debug(f"{slot.label}: no valid candidate, left empty")

    def _run_strict(self, slots: list[TimetableSlot]) -> None:
        stack: list[_Decision] = []
        degraded = False
        index = 0
        visited = 0

        while index < len(slots):
            self._check_cancelled(visited)
            visited += 1

            slot = slots[index]
            ordered = self._ordered_eligible(slot)
            if not ordered:
                index += 1
                continue

            placed = self._try_candidates(slot, ordered)
            if placed is not None:
                if not degraded:
                    candidate, alternatives = placed
                    stack.append(_Decision(index, candidate, alternatives))
                index += 1
                continue

            if degraded:
                logger.debug(f"{slot.label}: no valid candidate, left empty")
                index += 1
                continue

            resumed, resume_index = self._backtrack(slots, stack, index)
            if not resumed:
                degraded = True
                logger.warning(
                    f"Attempt {self.attempt_number}: backtracking gave up after "
                    f"{self.backtrack_count} backtracks; continuing without backtracking"
                )
            index = resume_index

    def _backtrack(
        self, slots: list[TimetableSlot], stack: list[_Decision], dead_end: int
    ) -> tuple[bool, int]:
        """Undo decisions until one has a valid untried alternative.

        Returns:
            (True, index after the revised decision) on success, or
            (False, earliest undone index) when the limit is hit or the
            stack runs out
        """
        resume_index = dead_end
        while stack:
            if self.backtrack_count >= self.options.backtrack_limit:
                return False, resume_index

            decision = stack.pop()
            self.backtrack_count += 1
            slot = slots[decision.index]
            self._undo(slot, decision.candidate)
            resume_index = decision.index

            placed = self._try_candidates(slot, decision.alternatives)
            if placed is not None:
                candidate, alternatives = placed
                stack.append(_Decision(decision.index, candidate, alternatives))
                return True, decision.index + 1

        return False, resume_index
