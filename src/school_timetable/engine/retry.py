"""Retry controller keeping the best of several generation attempts."""

import logging
import random
from dataclasses import replace

from multiprocess import Manager
from pathos.multiprocessing import ProcessingPool as Pool

from ..exceptions import ConfigurationError, GenerationCancelledError
from .assigner import AssignmentEngine
from .constants import GOOD_RATE_THRESHOLD, MESSAGE_COMPLETE, MESSAGE_GOOD, MESSAGE_PARTIAL
from .models import (
    Classroom,
    GenerationAttempt,
    GenerationOptions,
    GenerationResult,
    SchoolConfiguration,
    Subject,
    Teacher,
)
from .settings import normalize_settings

logger = logging.getLogger(__name__)


def result_message(rate: float, quality_threshold: float) -> str:
    """Human-readable summary for a best assignment rate."""
    if rate >= quality_threshold:
        return MESSAGE_COMPLETE.format(rate=rate)
    if rate >= GOOD_RATE_THRESHOLD:
        return MESSAGE_GOOD.format(rate=rate)
    return MESSAGE_PARTIAL.format(rate=rate)


class RetryController:
    """Runs up to ``max_retries`` fresh engines and keeps the best grid.

    Attempt 1 uses stable candidate ordering. Later attempts shuffle ties with
    ``random.Random(seed + attempt)``, or an unseeded generator when no seed
    is set. The loop stops early once an attempt reaches the quality threshold.
    """

    def __init__(self, options: GenerationOptions | None = None) -> None:
        self.options = options or GenerationOptions()

    @property
    def attempt_limit(self) -> int:
        return max(1, self.options.max_retries)

    def rng_for(self, attempt: int) -> random.Random | None:
        """Random source for an attempt; None means stable ordering."""
        if attempt == 1:
            return None
        if self.options.seed is None:
            return random.Random()
        return random.Random(self.options.seed + attempt)

    def _run_attempt(
        self,
        config: SchoolConfiguration,
        teachers: list[Teacher],
        subjects: list[Subject],
        classrooms: list[Classroom],
        attempt: int,
    ) -> GenerationAttempt:
        engine = AssignmentEngine(
            config,
            teachers,
            subjects,
            classrooms,
            options=self.options,
            rng=self.rng_for(attempt),
            attempt_number=attempt,
        )
        return engine.run()

    def run(
        self,
        config: SchoolConfiguration,
        teachers: list[Teacher],
        subjects: list[Subject],
        classrooms: list[Classroom] | None = None,
    ) -> GenerationResult:
        """Generate a timetable, retrying until it is good enough.

        Returns:
            Result built from the attempt with the highest assignment rate
        """
        classrooms = list(classrooms or [])
        threshold = self.options.quality_threshold

        if self.options.workers > 1:
            attempts = self._run_parallel(config, teachers, subjects, classrooms)
        else:
            attempts = []
            for number in range(1, self.attempt_limit + 1):
                attempt = self._run_attempt(config, teachers, subjects, classrooms, number)
                attempts.append(attempt)
                if attempt.assignment_rate >= threshold:
                    break

        best = attempts[0]
        for attempt in attempts[1:]:
            if attempt.assignment_rate > best.assignment_rate:
                best = attempt

        rates = [attempt.assignment_rate for attempt in attempts]
        statistics = replace(
            best.statistics,
            retry_attempts=len(attempts),
            best_assignment_rate=best.assignment_rate,
            attempt_rates=rates,
        )
        message = result_message(best.assignment_rate, threshold)
        logger.info(
            f"Best of {len(attempts)} attempts: #{best.attempt_number} "
            f"({best.assignment_rate}%) - {message}"
        )
        return GenerationResult(
            grid=best.grid,
            statistics=statistics,
            message=message,
            candidates=[candidate.snapshot() for candidate in best.candidates],
            success=best.success,
        )

    def _run_parallel(
        self,
        config: SchoolConfiguration,
        teachers: list[Teacher],
        subjects: list[Subject],
        classrooms: list[Classroom],
    ) -> list[GenerationAttempt]:
        """Run attempts in a process pool and fold them in attempt order.

        Worker processes cannot see a ``threading.Event``, so they poll a
        manager-backed event instead. It is set when the caller's event is set
        and when an attempt reaches the threshold. Attempts after the first one
        reaching the threshold are discarded, so the result matches the
        sequential loop for the same seed.
        """
        caller_event = self.options.cancel_event
        manager = Manager()
        stop = manager.Event()
        if caller_event is not None and caller_event.is_set():
            stop.set()
        worker = RetryController(replace(self.options, cancel_event=stop, workers=1))

        def run_numbered(number: int) -> GenerationAttempt:
            return worker._run_attempt(config, teachers, subjects, classrooms, number)

        attempts: list[GenerationAttempt] = []
        pool = Pool(nodes=self.options.workers)
        try:
            for attempt in pool.imap(run_numbered, range(1, self.attempt_limit + 1)):
                attempts.append(attempt)
                if attempt.assignment_rate >= self.options.quality_threshold:
                    break
                if (
                    caller_event is not None
                    and caller_event.is_set()
                    and attempt.attempt_number < self.attempt_limit
                ):
                    raise GenerationCancelledError(attempt.attempt_number + 1)
        finally:
            stop.set()
            pool.close()
            pool.join()
            pool.clear()
            manager.shutdown()
        return attempts


def generate(
    config: SchoolConfiguration | dict | None,
    teachers: list[Teacher],
    subjects: list[Subject],
    classrooms: list[Classroom] | None = None,
    options: GenerationOptions | None = None,
) -> GenerationResult:
    """Generate the best timetable for a school.

    Args:
        config: School configuration, or raw settings to normalize
        teachers: Teacher roster
        subjects: Subject catalogue
        classrooms: Available classrooms
        options: Generation options (defaults when None)

    Returns:
        Best result; partial timetables are results, not errors

    Raises:
        ConfigurationError: If no configuration is given or it yields no slots
        GenerationCancelledError: If ``options.cancel_event`` is set
    """
    if config is None:
        raise ConfigurationError("no configuration provided")
    return RetryController(options).run(
        normalize_settings(config), list(teachers), list(subjects), classrooms
    )
