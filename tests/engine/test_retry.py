"""Tests for the retry controller and the generate entry point."""

import pickle
import threading

import pytest

from school_timetable.engine.models import GenerationOptions, SchoolConfiguration
from school_timetable.engine.retry import RetryController, generate, result_message
from school_timetable.exceptions import ConfigurationError, GenerationCancelledError


@pytest.fixture
def half_blocked_school(make_config, make_subject, make_teacher, blocked):
    """Only half of the slots can ever be filled."""
    config = make_config(days=("Monday",), daily_periods=2)
    teacher = make_teacher(restrictions=[blocked("Monday", (2,))])
    return config, [teacher], [make_subject(hours=2)]


@pytest.fixture
def ninety_percent_school(make_config, make_subject, make_teacher, blocked):
    """Nine of ten slots can be filled."""
    config = make_config(days=("Monday",), daily_periods=10)
    teacher = make_teacher(restrictions=[blocked("Monday", (10,))])
    return config, [teacher], [make_subject(hours=10)]


@pytest.fixture
def contested_school(make_config, make_subject, make_teacher, blocked):
    """Several teachers and classes so that tie-breaking matters."""
    config = make_config(
        grades=(1, 2),
        sections={1: ("A", "B"), 2: ("A", "B")},
        days=("Monday", "Tuesday"),
        daily_periods=3,
    )
    subjects = [
        make_subject("math", grades=(1, 2), hours=4),
        make_subject("eng", grades=(1, 2), hours=3),
    ]
    teachers = [
        make_teacher("t1", subjects=("math",), grades=(1, 2)),
        make_teacher("t2", subjects=("eng",), grades=(1, 2), restrictions=[blocked("Tuesday", (1, 2))]),
        make_teacher("t3", subjects=("math", "eng"), grades=(1, 2)),
    ]
    return config, teachers, subjects


class TestResultMessage:
    """Tests for result message selection."""

    def test_complete(self):
        assert result_message(100.0, 99.0).startswith("Timetable generated (100.0%")

    def test_good(self):
        assert result_message(92.5, 99.0).startswith("Good timetable generated (92.5%")

    def test_partial(self):
        message = result_message(50.0, 99.0)
        assert message.startswith("Partial timetable generated (50.0%")
        assert "manual adjustment" in message


class TestRetryController:
    """Tests for RetryController."""

    def test_stops_after_complete_attempt(self, make_config, make_subject, make_teacher):
        config = make_config(days=("Mon",), daily_periods=2)
        result = RetryController().run(config, [make_teacher()], [make_subject(hours=2)])

        assert result.statistics.retry_attempts == 1
        assert result.statistics.attempt_rates == [100.0]
        assert result.success
        assert result.message.startswith("Timetable generated")

    def test_runs_every_attempt_when_below_threshold(self, half_blocked_school):
        config, teachers, subjects = half_blocked_school
        options = GenerationOptions(max_retries=3, seed=7)
        result = RetryController(options).run(config, teachers, subjects)

        assert result.statistics.retry_attempts == 3
        assert result.statistics.attempt_rates == [50.0, 50.0, 50.0]
        assert result.statistics.best_assignment_rate == 50.0
        assert not result.success
        assert result.message.startswith("Partial timetable generated")

    def test_best_rate_is_maximum_of_attempts(self, contested_school):
        config, teachers, subjects = contested_school
        options = GenerationOptions(max_retries=4, seed=3, quality_threshold=100.0)
        result = RetryController(options).run(config, teachers, subjects)

        stats = result.statistics
        assert stats.best_assignment_rate == max(stats.attempt_rates)
        assert stats.assignment_rate == stats.best_assignment_rate
        assert stats.best_assignment_rate >= stats.attempt_rates[0]

    def test_good_message_between_thresholds(self, ninety_percent_school):
        config, teachers, subjects = ninety_percent_school
        result = RetryController(GenerationOptions(max_retries=1)).run(config, teachers, subjects)

        assert result.statistics.assignment_rate == 90.0
        assert result.message.startswith("Good timetable generated")

    def test_zero_retries_still_runs_once(self, half_blocked_school):
        config, teachers, subjects = half_blocked_school
        result = RetryController(GenerationOptions(max_retries=0)).run(config, teachers, subjects)

        assert result.statistics.retry_attempts == 1

    def test_first_attempt_uses_stable_order(self):
        controller = RetryController(GenerationOptions(seed=1))
        assert controller.rng_for(1) is None
        assert controller.rng_for(2).random() == controller.rng_for(2).random()

    def test_result_candidates_are_detached(self, half_blocked_school):
        config, teachers, subjects = half_blocked_school
        result = RetryController(GenerationOptions(max_retries=1)).run(config, teachers, subjects)

        assert result.candidates[0].assigned_hours == 1
        assert result.candidates[0].remaining_hours == 1


class TestParallelAttempts:
    """Tests for attempts run in a process pool."""

    def test_parallel_matches_sequential(self, contested_school):
        config, teachers, subjects = contested_school
        sequential = RetryController(
            GenerationOptions(max_retries=4, seed=11, quality_threshold=100.0)
        ).run(config, teachers, subjects)
        parallel = RetryController(
            GenerationOptions(max_retries=4, seed=11, quality_threshold=100.0, workers=3)
        ).run(config, teachers, subjects)

        assert parallel.statistics.attempt_rates == sequential.statistics.attempt_rates
        assert parallel.grid.to_dict() == sequential.grid.to_dict()

    def test_parallel_stops_at_threshold(self, make_config, make_subject, make_teacher):
        config = make_config(days=("Mon",), daily_periods=2)
        options = GenerationOptions(max_retries=5, seed=1, workers=2)
        result = RetryController(options).run(config, [make_teacher()], [make_subject(hours=2)])

        assert result.statistics.retry_attempts == 1

    def test_parallel_cancellation(self, make_config, make_subject, make_teacher):
        event = threading.Event()
        event.set()
        options = GenerationOptions(max_retries=3, workers=2, cancel_event=event)

        with pytest.raises(GenerationCancelledError) as excinfo:
            RetryController(options).run(make_config(), [make_teacher()], [make_subject()])

        assert excinfo.value.attempt == 1

    def test_cancelled_error_survives_pickling(self):
        error = pickle.loads(pickle.dumps(GenerationCancelledError(3, 7)))

        assert (error.attempt, error.slots_visited) == (3, 7)
        assert "attempt 3" in str(error)


class TestGenerate:
    """Tests for the generate entry point."""

    def test_missing_configuration_raises(self, make_subject, make_teacher):
        with pytest.raises(ConfigurationError):
            generate(None, [make_teacher()], [make_subject()])

    def test_raw_settings_are_normalized(self, make_subject, make_teacher):
        settings = {
            "grades": [1],
            "sections": {"1": ["A"]},
            "days": ["Monday"],
            "dailyPeriods": "2",
        }
        result = generate(settings, [make_teacher()], [make_subject(hours=2)])

        assert result.statistics.total_slots == 2
        assert result.statistics.assignment_rate == 100.0

    def test_days_differing_in_case_share_one_column(self, make_subject, make_teacher):
        settings = {"grades": [1], "sections": {"1": ["A"]}, "days": ["Mon", "mon"], "dailyPeriods": 1}
        result = generate(settings, [make_teacher()], [make_subject(hours=2)])

        assert result.grid.days == ["Mon"]
        assert result.statistics.total_slots == 1
        assert result.statistics.assignment_rate == 100.0

    def test_result_unpacks_to_grid_and_statistics(self, make_config, make_subject, make_teacher):
        grid, statistics = generate(make_config(), [make_teacher()], [make_subject()])

        assert grid.total_slots == statistics.total_slots

    def test_result_serializes(self, make_config, make_subject, make_teacher):
        result = generate(make_config(), [make_teacher()], [make_subject()])
        data = result.to_dict()

        assert data["statistics"]["assignment_rate"] == 100.0
        assert len(data["timetable"]["slots"]) == 2
        assert data["candidates"][0]["priority"] == "low_hours_subject"

    def test_cancellation_propagates(self, make_config, make_subject, make_teacher):
        event = threading.Event()
        event.set()
        options = GenerationOptions(cancel_event=event)

        with pytest.raises(GenerationCancelledError):
            generate(make_config(), [make_teacher()], [make_subject()], options=options)

    def test_configuration_passes_through(self, make_config, make_subject, make_teacher):
        config = make_config(days=("Monday", "Saturday"), daily_periods=3, saturday_periods=1)
        assert isinstance(config, SchoolConfiguration)

        result = generate(config, [make_teacher()], [make_subject(hours=4)])

        assert result.statistics.total_slots == 4
        assert result.grid.periods_per_day() == {"Monday": 3, "Saturday": 1}
