"""School Timetable - timetable generation and validation for schools.

This package assigns teachers and subjects to a fixed week of
(day, period, grade, section) slots, respecting teacher availability,
special classrooms and workload limits, and scores the result.

Example usage:
    from school_timetable import generate, load_school_data, validate

    data = load_school_data("school.json")
    result = generate(data.config, data.teachers, data.subjects, data.classrooms)

    print(result.message)
    print(f"Assigned: {result.statistics.assigned_slots}/{result.statistics.total_slots}")

    report = validate(result.grid, data.teachers, data.subjects, data.classrooms)
    print(f"Score: {report.overall_score}")

    # Export to JSON
    from school_timetable.exporters import JSONExporter
    exporter = JSONExporter()
    exporter.export(result, "timetable.json")
"""

from .engine import (
    GenerationOptions,
    GenerationResult,
    GenerationStatistics,
    SchoolConfiguration,
    TimetableGrid,
    ValidationReport,
    analyze,
    generate,
    normalize_settings,
    validate,
)
from .exceptions import (
    ConfigurationError,
    DataLoadError,
    GenerationCancelledError,
    TimetableError,
)
from .exporters import CSVExporter, ExcelExporter, JSONExporter, export_slots_csv, get_exporter
from .loader import SchoolData, load_school_data

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "generate",
    "validate",
    "analyze",
    "normalize_settings",
    "load_school_data",
    # Models
    "GenerationOptions",
    "GenerationResult",
    "GenerationStatistics",
    "SchoolConfiguration",
    "SchoolData",
    "TimetableGrid",
    "ValidationReport",
    # Exporters
    "JSONExporter",
    "CSVExporter",
    "ExcelExporter",
    "get_exporter",
    "export_slots_csv",
    # Exceptions
    "TimetableError",
    "ConfigurationError",
    "DataLoadError",
    "GenerationCancelledError",
]
