"""
Command-line interface for the workout guardrails.

Provides commands for:
- Workout, progression and weekly volume safety checks
- Set log and profile validation
- Viewing the active limit tables
"""

import json
from pathlib import Path
from typing import Any, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from trainguard.composite import validate_set_log, validate_user_profile
from trainguard.config import configure_logging, get_settings
from trainguard.guardrails import SafetyGuardrailEngine, normalize_context
from trainguard.limits import LimitTables
from trainguard.schemas import SafetyCheck, ValidationResult, ViolationSeverity
from trainguard.trace import save_trace_from_check

app = typer.Typer(
    help="Workout safety guardrails - validate and gate AI-generated training data"
)
console = Console()

EXIT_CHECK_FAILED = 2


# ===== LOADING HELPERS =====


def _load_json(path: Path, label: str) -> Any:
    try:
        with open(path) as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]✗ Failed to load {label}: {e}[/red]")
        raise typer.Exit(1)


def _load_engine(limits_file: Optional[Path]) -> SafetyGuardrailEngine:
    path = limits_file or get_settings().limits_file
    if path is None:
        return SafetyGuardrailEngine()
    try:
        return SafetyGuardrailEngine.from_file(path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]✗ Failed to load limit policy: {e}[/red]")
        raise typer.Exit(1)


# ===== DISPLAY HELPERS =====


def _display_safety_check(title: str, check: SafetyCheck) -> None:
    """Show a verdict panel followed by the violations table."""
    if check.passed and not check.violations:
        console.print(Panel(f"✅ {title}: PASSED", style="green", expand=False))
        return

    if check.passed:
        console.print(Panel(f"⚠️  {title}: PASSED WITH WARNINGS", style="yellow", expand=False))
    else:
        console.print(Panel(f"⛔ {title}: FAILED", style="red", expand=False))

    table = Table(box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("Severity")
    table.add_column("Code", style="bold")
    table.add_column("Field")
    table.add_column("Message")
    table.add_column("Safe Value", justify="right")

    for i, violation in enumerate(check.violations, 1):
        is_error = violation.severity == ViolationSeverity.ERROR
        table.add_row(
            str(i),
            "[red]error[/red]" if is_error else "[yellow]warning[/yellow]",
            violation.code,
            violation.field or "",
            violation.message,
            "" if violation.safe_value is None else str(violation.safe_value),
        )

    console.print(table)


def _display_validation_result(title: str, result: ValidationResult) -> None:
    if result.valid:
        console.print(f"[green]✓ {title}: VALID[/green]")
    else:
        console.print(f"[red]✗ {title}: INVALID[/red]")
        for error in result.errors:
            console.print(f"  • [bold]{error.code}[/bold] ({error.field}): {error.message}")

    console.print(f"Sanitized: {json.dumps(result.sanitized, default=str)}")


def _finish(check: SafetyCheck) -> None:
    if not check.passed:
        raise typer.Exit(EXIT_CHECK_FAILED)


# ===== COMMANDS =====


@app.command()
def check_workout(
    workout: Path = typer.Option(
        ...,
        "--workout",
        "-w",
        help="Path to workout candidate JSON file",
        exists=True,
    ),
    context: Path = typer.Option(
        ...,
        "--context",
        "-c",
        help="Path to user context JSON file",
        exists=True,
    ),
    limits_file: Optional[Path] = typer.Option(
        None,
        "--limits",
        "-l",
        help="Path to limit policy JSON file (defaults to built-in tables)",
    ),
    save_trace: bool = typer.Option(
        False,
        "--save-trace",
        help="Save a guardrail trace",
    ),
    trace_format: str = typer.Option(
        "markdown",
        "--trace-format",
        help="Trace format: json or markdown",
    ),
):
    """
    Check a workout candidate against a user's context.

    Exits with code 2 when the workout fails the guardrails.
    """
    engine = _load_engine(limits_file)
    workout_data = _load_json(workout, "workout")
    context_data = _load_json(context, "context")

    check = engine.check_workout(workout_data, context_data)
    _display_safety_check("Workout", check)

    if save_trace:
        try:
            trace_path = save_trace_from_check(
                check,
                check_name="workout",
                subject_id=workout.stem,
                output_dir=get_settings().trace_dir,
                context=normalize_context(context_data),
                format=trace_format,
            )
        except (OSError, ValueError) as e:
            console.print(f"[red]✗ Failed to save trace: {e}[/red]")
            raise typer.Exit(1)
        console.print(f"✓ Trace saved: [cyan]{trace_path}[/cyan]")

    _finish(check)


@app.command()
def check_progression(
    previous: float = typer.Option(..., "--previous", help="Previous load in kg"),
    new: float = typer.Option(..., "--new", help="Proposed load in kg"),
    age: Optional[int] = typer.Option(None, "--age", help="User age"),
    level: str = typer.Option("beginner", "--level", help="Fitness level"),
    limits_file: Optional[Path] = typer.Option(None, "--limits", "-l"),
):
    """Check whether a load increase is safe."""
    engine = _load_engine(limits_file)
    check = engine.check_progression(previous, new, {"age": age, "fitness_level": level})
    _display_safety_check("Progression", check)
    _finish(check)


@app.command()
def check_volume(
    previous: float = typer.Option(..., "--previous", help="Last week's total volume"),
    new: float = typer.Option(..., "--new", help="This week's total volume"),
    age: Optional[int] = typer.Option(None, "--age", help="User age"),
    level: str = typer.Option("beginner", "--level", help="Fitness level"),
    limits_file: Optional[Path] = typer.Option(None, "--limits", "-l"),
):
    """Check a week-over-week training volume change."""
    engine = _load_engine(limits_file)
    check = engine.check_weekly_volume(previous, new, {"age": age, "fitness_level": level})
    _display_safety_check("Weekly volume", check)
    _finish(check)


@app.command()
def validate_set(
    set_log: Path = typer.Option(
        ...,
        "--set-log",
        "-s",
        help="Path to set log JSON file",
        exists=True,
    ),
):
    """Validate and sanitize a logged set."""
    result = validate_set_log(_load_json(set_log, "set log"))
    _display_validation_result("Set log", result)
    if not result.valid:
        raise typer.Exit(1)


@app.command()
def validate_profile(
    profile: Path = typer.Option(
        ...,
        "--profile",
        "-p",
        help="Path to user profile JSON file",
        exists=True,
    ),
):
    """Validate the fields present in a profile."""
    result = validate_user_profile(_load_json(profile, "profile"))
    _display_validation_result("Profile", result)
    if not result.valid:
        raise typer.Exit(1)


@app.command()
def limits(
    limits_file: Optional[Path] = typer.Option(None, "--limits", "-l"),
    as_json: bool = typer.Option(False, "--json", help="Print tables as JSON"),
):
    """Show the active limit tables."""
    tables: LimitTables = _load_engine(limits_file).limits

    if as_json:
        console.print_json(data=tables.model_dump(mode="json"))
        return

    level_table = Table(title="Level Limits", box=box.ROUNDED)
    level_table.add_column("Level", style="bold")
    level_table.add_column("Sets/workout", justify="right")
    level_table.add_column("Exercises", justify="right")
    level_table.add_column("Max RPE", justify="right")
    level_table.add_column("Min rest (s)", justify="right")
    level_table.add_column("Max increase %", justify="right")
    for name, row in tables.level.items():
        level_table.add_row(
            name.value,
            str(row.max_sets_per_workout),
            str(row.max_exercises_per_workout),
            f"{row.max_rpe:g}",
            str(row.min_rest_between_sets_seconds),
            f"{row.max_weight_increase_percent:g}",
        )
    console.print(level_table)

    age_table = Table(title="Age Limits", box=box.ROUNDED)
    age_table.add_column("Group", style="bold")
    age_table.add_column("Sets/workout", justify="right")
    age_table.add_column("Max RPE", justify="right")
    age_table.add_column("Max increase %", justify="right")
    age_table.add_column("Supervision")
    for group, row in tables.age.items():
        age_table.add_row(
            group.value,
            str(row.max_sets_per_workout),
            f"{row.max_rpe:g}",
            f"{row.max_weight_increase_percent:g}",
            "yes" if row.require_supervision_note else "no",
        )
    console.print(age_table)

    injury_table = Table(title="Injury Restrictions", box=box.ROUNDED)
    injury_table.add_column("Injury", style="bold")
    injury_table.add_column("Avoid exercises")
    injury_table.add_column("Avoid muscles")
    injury_table.add_column("Max weight %", justify="right")
    for injury, row in tables.injury.items():
        injury_table.add_row(
            injury,
            ", ".join(row.avoid_exercises),
            ", ".join(row.avoid_muscles) or "-",
            f"{row.max_weight_percent:g}",
        )
    console.print(injury_table)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override log level"),
):
    configure_logging(log_level.upper() if log_level else None)


if __name__ == "__main__":
    app()
