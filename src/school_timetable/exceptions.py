"""Custom exceptions for the school timetable engine."""


class TimetableError(Exception):
    """Base exception for timetable errors."""

    pass


class ConfigurationError(TimetableError):
    """School configuration is absent or unusable."""

    def __init__(self, message: str):
        super().__init__(f"Invalid school configuration: {message}")


class DataLoadError(TimetableError):
    """Input data file could not be loaded."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Could not load '{path}': {message}")


class GenerationCancelledError(TimetableError):
    """Generation was aborted by a cancellation signal."""

    def __init__(self, attempt: int | None = None, slots_visited: int = 0):
        self.attempt = attempt
        self.slots_visited = slots_visited
        location = f" during attempt {attempt}" if attempt is not None else ""
        super().__init__(
            f"Timetable generation cancelled{location} after {slots_visited} slots"
        )

    def __reduce__(self):
        return type(self), (self.attempt, self.slots_visited)
