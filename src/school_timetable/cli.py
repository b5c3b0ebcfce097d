"""CLI entry point for the school timetable engine."""

import logging
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .engine import (
    GenerationOptions,
    GenerationResult,
    TimetableGrid,
    ValidationReport,
    analyze as analyze_grid,
    calculate_quality_metrics,
    calculate_teacher_difficulties,
    generate as generate_timetable,
    skipped_subject_references,
    validate as validate_grid,
)
from .engine.constants import COMPLETE_RATE_THRESHOLD, DEFAULT_MAX_RETRIES, Severity
from .engine.excel_generator import generate_timetable_excel
from .engine.exporter import export_report_json, load_timetable_json
from .exceptions import TimetableError
from .exporters import export_slots_csv, get_exporter
from .loader import SchoolData, load_school_data

app = typer.Typer(
    name="school-timetable",
    help="Generate and validate school timetables",
    add_completion=False,
)
console = Console()

SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.MAJOR: "yellow",
    Severity.MINOR: "cyan",
}


class OutputFormat(str, Enum):
    """Output format options."""

    json = "json"
    csv = "csv"
    excel = "excel"


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


def _load_data(input_file: Path, verbose: bool) -> SchoolData:
    try:
        with console.status("[bold green]Loading school data..."):
            data = load_school_data(input_file)
    except TimetableError as e:
        _fail(str(e))

    if data.warnings:
        console.print(f"\n[bold yellow]Warnings ({len(data.warnings)}):[/bold yellow]")
        shown = data.warnings if verbose else data.warnings[:5]
        for warning in shown:
            console.print(f"  [yellow]• {escape(warning)}[/yellow]")
        if len(shown) < len(data.warnings):
            console.print(f"  [yellow]... and {len(data.warnings) - len(shown)} more[/yellow]")
    return data


def _load_grid(timetable_file: Path, data: SchoolData | None = None) -> TimetableGrid:
    if not timetable_file.exists():
        _fail(f"File not found: {timetable_file}")
    try:
        grid_data = load_timetable_json(timetable_file)
    except (OSError, ValueError) as e:
        _fail(f"Could not read timetable '{timetable_file}': {e}")
    if data is None:
        return TimetableGrid.from_dict(grid_data)
    return TimetableGrid.from_dict(grid_data, data.teachers, data.subjects, data.classrooms)


def _show_statistics(result: GenerationResult) -> None:
    stats = result.statistics
    table = Table(title="Generation Statistics", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Total Slots", str(stats.total_slots))
    table.add_row("Assigned Slots", str(stats.assigned_slots))
    table.add_row("Unassigned Slots", str(stats.unassigned_slots))
    table.add_row("Assignment Rate", f"{stats.assignment_rate:.2f}%")
    table.add_row("Quality Score", f"{stats.quality_score:.2f}")
    table.add_row("Soft Violations", str(stats.constraint_violations))
    table.add_row("Attempts", str(stats.retry_attempts))
    table.add_row("Attempt Rates", ", ".join(f"{rate:.2f}" for rate in stats.attempt_rates))
    table.add_row("Backtracks", str(stats.backtrack_count))

    console.print(table)


def _show_difficulties(data: SchoolData, result: GenerationResult) -> None:
    difficulties = calculate_teacher_difficulties(data.teachers, result.candidates)
    if not difficulties:
        return

    table = Table(title="Teacher Workload")
    table.add_column("Teacher", style="cyan")
    table.add_column("Required", style="green")
    table.add_column("Assigned", style="green")
    table.add_column("Available", style="blue")
    table.add_column("Difficulty", style="magenta")
    table.add_column("Classes", style="blue")

    for item in sorted(difficulties, key=lambda d: d.difficulty_percentage, reverse=True):
        table.add_row(
            item.teacher.name,
            str(item.total_required_hours),
            str(item.assigned_hours),
            str(item.available_hours),
            f"{item.difficulty_percentage}%",
            str(item.class_count),
        )

    console.print(table)


def _show_report(report: ValidationReport, verbose: bool) -> None:
    metrics = report.quality_metrics
    table = Table(title="Quality Metrics", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Completion Rate", f"{metrics.assignment_completion_rate:.2f}%")
    table.add_row("Teacher Utilization", f"{metrics.teacher_utilization_rate:.2f}%")
    table.add_row("Subject Distribution", f"{metrics.subject_distribution_balance:.2f}")
    table.add_row("Load Balance", f"{metrics.load_balance_score:.2f}")
    table.add_row("Overall Score", f"{report.overall_score:.2f}")
    console.print(table)

    if report.violations:
        console.print(f"\n[bold red]Violations ({len(report.violations)}):[/bold red]")
        shown = report.violations if verbose else report.violations[:20]
        for violation in shown:
            style = SEVERITY_STYLES[violation.severity]
            console.print(
                f"  [{style}]• ({violation.severity.value}) {escape(violation.description)}[/{style}]"
            )
        if len(shown) < len(report.violations):
            console.print(f"  ... and {len(report.violations) - len(shown)} more")

    if report.unassigned_requirements:
        console.print(
            f"\n[bold yellow]Unassigned requirements "
            f"({len(report.unassigned_requirements)}):[/bold yellow]"
        )
        for requirement in report.unassigned_requirements[:10]:
            console.print(
                f"  [yellow]- {requirement.subject.name} grade {requirement.grade}-"
                f"{requirement.section} ({requirement.teacher.name}): "
                f"{requirement.missing_hours} of {requirement.required_hours} hours missing[/yellow]"
            )

    if report.suggestions:
        console.print("\n[bold]Suggestions:[/bold]")
        for suggestion in report.suggestions:
            console.print(f"  • {suggestion}")


@app.command()
def generate(
    input_file: Annotated[
        Path,
        typer.Argument(help="School data file (.json or .xlsx)"),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Output file or directory path"),
    ] = None,
    format: Annotated[
        OutputFormat,
        typer.Option("-f", "--format", help="Output format"),
    ] = OutputFormat.json,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Backtrack instead of leaving slots empty"),
    ] = False,
    retries: Annotated[
        int,
        typer.Option("--retries", min=1, help="Maximum number of attempts"),
    ] = DEFAULT_MAX_RETRIES,
    threshold: Annotated[
        float,
        typer.Option("--threshold", help="Assignment rate (%) that stops retrying"),
    ] = COMPLETE_RATE_THRESHOLD,
    seed: Annotated[
        Optional[int],
        typer.Option("--seed", help="Random seed for retry attempts"),
    ] = None,
    workers: Annotated[
        int,
        typer.Option("--workers", min=1, help="Attempts to run in parallel"),
    ] = 1,
    csv_path: Annotated[
        Optional[Path],
        typer.Option("--csv", help="Also write all slots to this CSV file"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Generate a timetable from school data."""
    _setup_logging(verbose)
    if not input_file.exists():
        _fail(f"File not found: {input_file}")

    data = _load_data(input_file, verbose)
    if verbose:
        for teacher, reference in skipped_subject_references(data.teachers, data.subjects):
            console.print(
                f"  [yellow]• Teacher '{teacher.name}' references unknown subject "
                f"'{reference}'[/yellow]"
            )

    console.print(f"\n[bold]Timetable Generation for:[/bold] {input_file.name}")
    console.print(f"  Teachers: {len(data.teachers)}")
    console.print(f"  Subjects: {len(data.subjects)}")
    console.print(f"  Classrooms: {len(data.classrooms)}")
    console.print(f"  Class sections: {len(data.config.class_sections())}")

    options = GenerationOptions(
        tolerant_mode=not strict,
        max_retries=retries,
        quality_threshold=threshold,
        seed=seed,
        workers=workers,
    )
    try:
        with console.status("[bold green]Generating timetable..."):
            result = generate_timetable(
                data.config, data.teachers, data.subjects, data.classrooms, options
            )
    except TimetableError as e:
        _fail(str(e))

    style = "bold green" if result.success else "bold yellow"
    console.print(f"\n[{style}]{result.message}[/{style}]")
    _show_statistics(result)
    if verbose:
        _show_difficulties(data, result)

    exporter = get_exporter(format.value)
    if format == OutputFormat.csv:
        output_path = output or Path("output/timetable")
    else:
        output_path = output or Path(f"output/timetable.{format.value}")
        if not output_path.suffix:
            output_path = output_path.with_suffix(
                ".xlsx" if format == OutputFormat.excel else f".{format.value}"
            )

    with console.status(f"[bold green]Exporting to {format.value}..."):
        exporter.export(result, output_path)
    console.print(f"\n[bold green]✓[/bold green] Timetable exported to: {output_path}")

    if csv_path:
        export_slots_csv(result.grid, csv_path)
        console.print(f"[bold green]✓[/bold green] Slots exported to: {csv_path}")


@app.command()
def validate(
    timetable_file: Annotated[
        Path,
        typer.Argument(help="Timetable JSON file from the generate command"),
    ],
    input_file: Annotated[
        Path,
        typer.Argument(help="School data file (.json or .xlsx)"),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Write the validation report to this JSON file"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Validate a timetable against the school's teachers and subjects."""
    _setup_logging(verbose)
    if not input_file.exists():
        _fail(f"File not found: {input_file}")

    data = _load_data(input_file, verbose)
    grid = _load_grid(timetable_file, data)

    with console.status("[bold green]Validating timetable..."):
        report = validate_grid(grid, data.teachers, data.subjects, data.classrooms)

    console.print(f"\n[bold]Validation Results for:[/bold] {timetable_file.name}")
    if report.is_valid:
        console.print("[bold green]✓ Timetable is valid[/bold green]")
    else:
        console.print("[bold red]✗ Timetable has violations[/bold red]")

    _show_report(report, verbose)

    if output:
        export_report_json(report, output)
        console.print(f"\n[bold green]✓[/bold green] Report exported to: {output}")

    if not report.is_valid:
        raise typer.Exit(1)


@app.command()
def analyze(
    timetable_file: Annotated[
        Path,
        typer.Argument(help="Timetable JSON file from the generate command"),
    ],
    data_file: Annotated[
        Optional[Path],
        typer.Option("--data", help="School data file, for teacher metrics"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Show slot statistics for a timetable."""
    _setup_logging(verbose)
    data = _load_data(data_file, verbose) if data_file else None
    grid = _load_grid(timetable_file, data)
    stats = analyze_grid(grid)

    console.print(f"\n[bold]Statistics for:[/bold] {timetable_file.name}")

    table = Table(title="Overview", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Days", str(len(grid.days)))
    table.add_row("Class Sections", str(len(grid.class_sections())))
    table.add_row("Total Slots", str(stats.total_slots))
    table.add_row("Assigned Slots", str(stats.assigned_slots))
    table.add_row("Unassigned Slots", str(stats.unassigned_slots))
    table.add_row("Assignment Rate", f"{stats.assignment_rate:.2f}%")
    table.add_row("Quality Score", f"{stats.quality_score:.2f}")
    table.add_row("Soft Violations", str(stats.constraint_violations))
    console.print(table)

    day_table = Table(title="Lessons by Day")
    day_table.add_column("Day", style="cyan")
    day_table.add_column("Assigned", style="green")
    day_table.add_column("Empty", style="yellow")
    for day in grid.days:
        slots = [s for s in grid.iter_slots() if s.day == day]
        assigned = sum(1 for s in slots if s.is_assigned)
        day_table.add_row(day, str(assigned), str(len(slots) - assigned))
    console.print(day_table)

    if data is not None:
        metrics = calculate_quality_metrics(grid, data.teachers)
        console.print(f"\n  Teacher utilization: {metrics.teacher_utilization_rate:.2f}%")
        console.print(f"  Subject distribution: {metrics.subject_distribution_balance:.2f}")
        console.print(f"  Load balance: {metrics.load_balance_score:.2f}")


@app.command("generate-excel")
def generate_excel(
    timetable_file: Annotated[
        Path,
        typer.Argument(help="Timetable JSON file from the generate command"),
    ],
    output_dir: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Output directory for Excel files"),
    ] = None,
    per_grade: Annotated[
        bool,
        typer.Option("--per-grade", help="Write one workbook per grade"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Generate per-class Excel timetables from timetable JSON."""
    _setup_logging(verbose)
    grid = _load_grid(timetable_file)
    output_path = output_dir or Path("output/excel")

    console.print(f"\n[bold]Generating Excel timetables from:[/bold] {timetable_file.name}")
    with console.status("[bold green]Generating Excel files..."):
        generated_files = generate_timetable_excel(grid, output_path, per_grade=per_grade)

    console.print(f"\n[bold green]✓[/bold green] Generated {len(generated_files)} file(s):")
    for file_path in generated_files:
        console.print(f"  - {file_path}")


if __name__ == "__main__":
    app()
