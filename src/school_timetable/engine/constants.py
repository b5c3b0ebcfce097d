"""Constants for timetable generation."""

from enum import Enum, IntEnum


class RestrictionLevel(str, Enum):
    """Strength of a teacher assignment restriction."""

    MANDATORY = "mandatory"
    RECOMMENDED = "recommended"


class AssignmentPriority(IntEnum):
    """Placement priority tier (lower value = placed first)."""

    MANDATORY_RESTRICTION = 1
    RECOMMENDED_RESTRICTION = 2
    LOW_HOURS_SUBJECT = 3
    DEFAULT = 4


class Severity(str, Enum):
    """Severity of a validation violation."""

    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class ViolationType(str, Enum):
    """Kind of constraint violation found in a timetable."""

    TEACHER_CONFLICT = "teacher_conflict"
    CLASSROOM_CONFLICT = "classroom_conflict"
    SUBJECT_MISMATCH = "subject_mismatch"
    TIME_RESTRICTION = "time_restriction"
    WORKLOAD_EXCEEDED = "workload_exceeded"


class ConstraintName(str, Enum):
    """Names of the placement checks, in evaluation order."""

    TEACHER_OCCUPANCY = "teacher_occupancy"
    CLASSROOM_OCCUPANCY = "classroom_occupancy"
    MANDATORY_RESTRICTION = "mandatory_restriction"
    RECOMMENDED_RESTRICTION = "recommended_restriction"
    GRADE_APPLICABILITY = "grade_applicability"
    WEEKLY_WORKLOAD = "weekly_workload"


# Retry controller
DEFAULT_MAX_RETRIES = 5
COMPLETE_RATE_THRESHOLD = 99.0  # attempts at or above this stop the retry loop
GOOD_RATE_THRESHOLD = 90.0

# Priority classifier: subjects with fewer remaining hours than this are scarce
DEFAULT_LOW_HOURS_THRESHOLD = 6

# Strict mode: backtracks allowed before falling back to tolerant behavior
DEFAULT_BACKTRACK_LIMIT = 1000

# Quality score penalties
VIOLATION_PENALTY = 5
MAX_VIOLATION_PENALTY = 30

# Validator overall score penalties
CRITICAL_PENALTY = 20
MAJOR_PENALTY = 10

# Teachers without an explicit weekly cap
DEFAULT_TEACHER_AVAILABLE_HOURS = 30

# Messages attached to the best attempt
MESSAGE_COMPLETE = "Timetable generated ({rate:.1f}% of slots assigned)"
MESSAGE_GOOD = (
    "Good timetable generated ({rate:.1f}% of slots assigned); minor review suggested"
)
MESSAGE_PARTIAL = (
    "Partial timetable generated ({rate:.1f}% of slots assigned); "
    "manual adjustment recommended"
)
