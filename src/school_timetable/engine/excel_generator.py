"""Excel timetable generator.

Creates workbooks with one sheet per class section: days as columns,
periods as rows.
"""

from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .models import TimetableGrid, TimetableSlot

STRINGS = {
    "title": "Timetable: grade {grade}, class {section}",
    "period_header": "Period",
    "empty_sheet": "Empty",
}

# Column widths
PERIOD_COLUMN_WIDTH = 10.0
DAY_COLUMN_WIDTH = 24.0

TITLE_ROW = 1
HEADER_ROW = 3
FIRST_PERIOD_ROW = 4

# Fonts
FONT_TITLE = Font(name="Calibri", size=14, bold=True)
FONT_HEADER = Font(name="Calibri", size=11, bold=True)
FONT_CELL = Font(name="Calibri", size=10, bold=False)

# Alignments
ALIGN_CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)

# Borders
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

# Fills
FILL_HEADER = PatternFill(start_color="DDEBF7", end_color="DDEBF7", fill_type="solid")
FILL_VIOLATION = PatternFill(start_color="FCE4D6", end_color="FCE4D6", fill_type="solid")
FILL_CLOSED = PatternFill(start_color="D9D9D9", end_color="D9D9D9", fill_type="solid")


class TimetableExcelGenerator:
    """Generates Excel timetable workbooks from a grid."""

    def __init__(self, grid: TimetableGrid):
        """Initialize generator.

        Args:
            grid: Timetable to render.
        """
        self.grid = grid
        self.periods_per_day = grid.periods_per_day()
        self.max_periods = max(self.periods_per_day.values(), default=0)

    @staticmethod
    def sanitize_sheet_name(name: str) -> str:
        """Sanitize sheet name by removing invalid characters.

        Excel sheet names cannot contain: / \\ * ? : [ ]

        Args:
            name: Original sheet name.

        Returns:
            Sanitized sheet name (max 31 chars).
        """
        invalid_chars = r"/\*?:[]"
        for char in invalid_chars:
            name = name.replace(char, "")
        return name[:31]

    @staticmethod
    def format_cell_content(slot: TimetableSlot) -> str:
        """Format slot content for a cell.

        Returns:
            "Subject\\nTeacher" plus the classroom line when one is allocated.
        """
        if not slot.is_assigned:
            return ""
        lines = [slot.subject.name, slot.teacher.name]
        if slot.classroom is not None:
            lines.append(slot.classroom.name)
        return "\n".join(lines)

    def create_workbook(self, class_sections: list[tuple[int, str]]) -> Workbook:
        """Create a workbook with one sheet per class section.

        Args:
            class_sections: (grade, section) pairs to include.

        Returns:
            Populated Workbook object.
        """
        wb = Workbook()
        wb.remove(wb.active)

        for grade, section in class_sections:
            ws = wb.create_sheet(title=self.sanitize_sheet_name(f"{grade}-{section}"))
            self.setup_sheet(ws, grade, section)
            self.fill_schedule(ws, grade, section)

        # openpyxl requires at least one sheet
        if not wb.worksheets:
            wb.create_sheet(title=STRINGS["empty_sheet"])

        return wb

    def setup_sheet(self, ws, grade: int, section: str) -> None:
        """Set up title, headers, period labels and borders."""
        last_column = get_column_letter(len(self.grid.days) + 1)
        ws.merge_cells(f"A{TITLE_ROW}:{last_column}{TITLE_ROW}")
        ws[f"A{TITLE_ROW}"] = STRINGS["title"].format(grade=grade, section=section)
        ws[f"A{TITLE_ROW}"].font = FONT_TITLE
        ws[f"A{TITLE_ROW}"].alignment = ALIGN_CENTER

        ws.column_dimensions["A"].width = PERIOD_COLUMN_WIDTH
        header = ws.cell(row=HEADER_ROW, column=1, value=STRINGS["period_header"])
        header.font = FONT_HEADER
        header.alignment = ALIGN_CENTER
        header.border = THIN_BORDER
        header.fill = FILL_HEADER

        for offset, day in enumerate(self.grid.days):
            column = offset + 2
            ws.column_dimensions[get_column_letter(column)].width = DAY_COLUMN_WIDTH
            cell = ws.cell(row=HEADER_ROW, column=column, value=day)
            cell.font = FONT_HEADER
            cell.alignment = ALIGN_CENTER
            cell.border = THIN_BORDER
            cell.fill = FILL_HEADER

        for period in range(1, self.max_periods + 1):
            row = FIRST_PERIOD_ROW + period - 1
            ws.row_dimensions[row].height = 45.0
            label = ws.cell(row=row, column=1, value=period)
            label.font = FONT_HEADER
            label.alignment = ALIGN_CENTER
            label.border = THIN_BORDER

            for offset, day in enumerate(self.grid.days):
                cell = ws.cell(row=row, column=offset + 2)
                cell.font = FONT_CELL
                cell.alignment = ALIGN_CENTER
                cell.border = THIN_BORDER
                # Periods beyond the day's count (e.g. Saturday afternoon)
                if period > self.periods_per_day.get(day, 0):
                    cell.fill = FILL_CLOSED

    def fill_schedule(self, ws, grade: int, section: str) -> None:
        """Fill cells with the class's lessons."""
        for slot in self.grid.slots_for_class(grade, section):
            day_index = self.grid.day_index(slot.day)
            if day_index is None or not slot.is_assigned:
                continue
            cell = ws.cell(
                row=FIRST_PERIOD_ROW + slot.period - 1,
                column=day_index + 2,
                value=self.format_cell_content(slot),
            )
            if slot.has_violation:
                cell.fill = FILL_VIOLATION

    def save(self, wb: Workbook, output_path: Path) -> None:
        """Save workbook to file.

        Args:
            wb: Workbook to save.
            output_path: Output file path.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)


def generate_timetable_excel(
    grid: TimetableGrid,
    output_dir: Path,
    per_grade: bool = False,
) -> list[Path]:
    """Generate Excel timetable files from a grid.

    Args:
        grid: Timetable to render.
        output_dir: Output directory for Excel files.
        per_grade: Write one workbook per grade instead of a single workbook.

    Returns:
        List of generated file paths.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    generator = TimetableExcelGenerator(grid)
    class_sections = grid.class_sections()

    if not per_grade:
        output_file = output_dir / "timetable.xlsx"
        generator.save(generator.create_workbook(class_sections), output_file)
        return [output_file]

    generated_files: list[Path] = []
    grades = list(dict.fromkeys(grade for grade, _ in class_sections))
    for grade in grades:
        sections = [pair for pair in class_sections if pair[0] == grade]
        output_file = output_dir / f"timetable_grade{grade}.xlsx"
        generator.save(generator.create_workbook(sections), output_file)
        generated_files.append(output_file)
    return generated_files
