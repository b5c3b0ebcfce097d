"""Export functionality for timetable generation results."""

import json
from abc import ABC, abstractmethod
from pathlib import Path

import pandas as pd

from .engine.models import GenerationResult, TimetableGrid

SLOT_COLUMNS = [
    "day",
    "period",
    "grade",
    "section",
    "subject_id",
    "subject",
    "teacher_id",
    "teacher",
    "classroom_id",
    "classroom",
    "violations",
]


def slots_frame(grid: TimetableGrid) -> pd.DataFrame:
    """One row per slot, in day -> period -> class order."""
    rows = []
    for slot in grid.iter_slots():
        record = slot.to_dict()
        record["violations"] = "; ".join(v.message for v in slot.violations)
        rows.append({column: record.get(column) for column in SLOT_COLUMNS})
    return pd.DataFrame(rows, columns=SLOT_COLUMNS)


def candidates_frame(result: GenerationResult) -> pd.DataFrame:
    rows = [candidate.to_dict() for candidate in result.candidates]
    df = pd.DataFrame(rows)
    if not df.empty:
        df["missing_hours"] = df["required_hours"] - df["assigned_hours"]
    return df


def summary_rows(result: GenerationResult) -> list[dict]:
    stats = result.statistics
    return [
        {"metric": "generation_date", "value": result.generation_date},
        {"metric": "message", "value": result.message},
        {"metric": "total_slots", "value": stats.total_slots},
        {"metric": "assigned_slots", "value": stats.assigned_slots},
        {"metric": "unassigned_slots", "value": stats.unassigned_slots},
        {"metric": "assignment_rate", "value": stats.assignment_rate},
        {"metric": "quality_score", "value": stats.quality_score},
        {"metric": "constraint_violations", "value": stats.constraint_violations},
        {"metric": "retry_attempts", "value": stats.retry_attempts},
        {"metric": "backtrack_count", "value": stats.backtrack_count},
    ]


def export_slots_csv(grid: TimetableGrid, output_path: str | Path) -> None:
    """Write every slot of a grid to a CSV file.

    Args:
        grid: Timetable to export
        output_path: Path to output CSV file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    slots_frame(grid).to_csv(output_path, index=False, encoding="utf-8")


class BaseExporter(ABC):
    """Base class for exporters."""

    @abstractmethod
    def export(self, result: GenerationResult, output_path: str | Path) -> None:
        """Export generation result to file.

        Args:
            result: GenerationResult to export
            output_path: Path to output file or directory
        """
        pass


class JSONExporter(BaseExporter):
    """Full result (statistics, candidates, timetable) as one JSON document."""

    def __init__(self, indent: int = 2, ensure_ascii: bool = False):
        self.indent = indent
        # Teacher and subject names are usually not ASCII
        self.ensure_ascii = ensure_ascii

    def export(self, result: GenerationResult, output_path: str | Path) -> None:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        text = json.dumps(result.to_dict(), indent=self.indent, ensure_ascii=self.ensure_ascii)
        path.write_text(text, encoding="utf-8")


class CSVExporter(BaseExporter):
    """Export to CSV format (multiple files)."""

    def export(self, result: GenerationResult, output_path: str | Path) -> None:
        """Export generation result to CSV files.

        Creates three files:
        - slots.csv: Every timetable slot
        - candidates.csv: Hour quotas and placed hours
        - summary.csv: Overall statistics

        Args:
            result: GenerationResult to export
            output_path: Path to output directory
        """
        output_dir = Path(output_path)
        output_dir.mkdir(parents=True, exist_ok=True)

        export_slots_csv(result.grid, output_dir / "slots.csv")
        candidates_frame(result).to_csv(output_dir / "candidates.csv", index=False)
        pd.DataFrame(summary_rows(result)).to_csv(output_dir / "summary.csv", index=False)


class ExcelExporter(BaseExporter):
    """Export to a single data workbook (Slots, Candidates, Summary sheets)."""

    def export(self, result: GenerationResult, output_path: str | Path) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            slots_frame(result.grid).to_excel(writer, sheet_name="Slots", index=False)
            candidates = candidates_frame(result)
            if candidates.empty:
                candidates = pd.DataFrame(columns=["teacher", "subject", "grade", "section"])
            candidates.to_excel(writer, sheet_name="Candidates", index=False)
            pd.DataFrame(summary_rows(result)).to_excel(
                writer, sheet_name="Summary", index=False
            )


EXPORTERS: dict[str, type[BaseExporter]] = {
    "json": JSONExporter,
    "csv": CSVExporter,
    "excel": ExcelExporter,
}


def get_exporter(format_type: str) -> BaseExporter:
    """Exporter instance for a format name.

    Raises:
        ValueError: If no exporter handles the format
    """
    try:
        exporter_class = EXPORTERS[format_type]
    except KeyError:
        raise ValueError(
            f"Unsupported format: {format_type}. Supported: {', '.join(EXPORTERS)}"
        ) from None
    return exporter_class()
