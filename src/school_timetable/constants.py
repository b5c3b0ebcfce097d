"""School-level defaults used when configuration is missing or malformed."""

# Fixed six-day week
DEFAULT_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

DEFAULT_GRADES = [1, 2, 3]

# Periods
DEFAULT_DAILY_PERIODS = 6
DEFAULT_SATURDAY_PERIODS = 4

# Class sections per grade
DEFAULT_GRADE_CLASSES = {1: 4, 2: 4, 3: 3}
DEFAULT_OTHER_GRADE_CLASSES = 3

# Names recognised as Saturday (compared lowercased)
SATURDAY_NAMES = {"saturday", "sat", "土曜", "土曜日", "土"}

# Raw settings keys (camelCase and snake_case variants)
DAYS_KEYS = ("days",)
GRADES_KEYS = ("grades",)
SECTIONS_KEYS = ("sections", "classesPerGrade", "classes_per_grade")
DAILY_PERIODS_KEYS = ("dailyPeriods", "daily_periods")
SATURDAY_PERIODS_KEYS = ("saturdayPeriods", "saturday_periods")
