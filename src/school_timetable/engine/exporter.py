"""JSON export of validation reports and loading of exported timetables."""

import json
from pathlib import Path

from .models import ValidationReport


def export_report_json(report: ValidationReport, output_path: Path | str) -> None:
    """Export validation report to JSON file."""
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with open(output, "w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, ensure_ascii=False, indent=2)


def load_timetable_json(input_path: Path | str) -> dict:
    """Load an exported timetable.

    Accepts both a full generation result (timetable under ``"timetable"``)
    and a bare grid dictionary.

    Args:
        input_path: Path to JSON file

    Returns:
        Grid dictionary suitable for ``TimetableGrid.from_dict``
    """
    with open(input_path, encoding="utf-8") as f:
        data = json.load(f)
    return data.get("timetable", data)
