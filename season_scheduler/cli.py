"""
Command-line interface for the season scheduler.

Usage:
    python -m season_scheduler solve problem.json -o schedule.json --max-steps 20000
    python -m season_scheduler validate problem.json
    python -m season_scheduler audit problem.json schedule.json
    python -m season_scheduler view schedule.json --team L1-T1
    python -m season_scheduler generate problem.json --teams 6 --seed 7
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from .data.generator import (
    GeneratorConfig,
    generate_sample_problem,
    get_generation_stats,
    save_generated_problem,
)
from .data.models import ProblemSpec, load_problem_from_dict
from .engine import audit_schedule, solve_model
from .errors import MalformedProblemError, ScheduleIntegrityError
from .logging_config import setup_logging
from .output.formatters import EntityViewFormatter, print_console, save_csv, save_json
from .output.report import build_report, format_report
from .output.schema import ScheduleOutput, create_schedule_output, load_schedule_output
from .problem import ProblemModel
from .solver import AssignmentSolver, SearchBudget, SolverStatus

# Create Typer app
app = typer.Typer(
    name="season-scheduler",
    help="Season scheduler: places league games on fields and assigns umpires.",
    add_completion=False,
)

# Rich console for pretty output
console = Console()


# =============================================================================
# Helper Functions
# =============================================================================

def load_input(input_path: Path) -> ProblemSpec:
    """Load and validate a problem file."""
    if not input_path.exists():
        console.print(f"[red]Error:[/red] Input file not found: {input_path}")
        raise typer.Exit(code=1)

    try:
        with open(input_path) as f:
            data = json.load(f)
        return load_problem_from_dict(data)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)
    except MalformedProblemError as e:
        _print_problem_errors(e)
        raise typer.Exit(code=1)


def build_model(spec: ProblemSpec) -> ProblemModel:
    try:
        return ProblemModel(spec)
    except MalformedProblemError as e:
        _print_problem_errors(e)
        raise typer.Exit(code=1)


def load_output(output_path: Path) -> ScheduleOutput:
    """Load a saved schedule file."""
    if not output_path.exists():
        console.print(f"[red]Error:[/red] Schedule file not found: {output_path}")
        raise typer.Exit(code=1)

    try:
        return load_schedule_output(output_path)
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Error loading schedule:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)


def _print_problem_errors(error: MalformedProblemError) -> None:
    console.print(f"[red]Malformed problem ({len(error.errors)} issue(s)):[/red]")
    for message in error.errors:
        console.print(f"  - {escape(message)}")


def print_summary(output: ScheduleOutput) -> None:
    """Print result summary to console."""
    status_color = {
        SolverStatus.COMPLETE: "green",
        SolverStatus.PARTIAL: "yellow",
        SolverStatus.BUDGET_EXCEEDED: "red",
    }[output.status]
    console.print(Panel(
        Text(output.status.value, style=f"bold {status_color}"),
        title="Schedule Status",
        subtitle=f"Solved in {output.solve_time_seconds:.2f}s",
    ))

    table = Table(title="Summary", show_header=False, box=None)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    if output.run_id:
        table.add_row("Run Id", output.run_id)
    table.add_row("Games Scheduled", str(len(output.games)))
    table.add_row("Unresolved", str(len(output.unresolved)))
    table.add_row("Umpire Shortfalls", str(len(output.shortfalls)))
    table.add_row("Fields Used", str(len(output.views.by_field)))
    table.add_row("Game Days", str(len(output.views.by_date)))
    table.add_row("Search Steps", str(output.stats.steps))

    console.print(table)


def _print_unresolved(output: ScheduleOutput) -> None:
    table = Table(title="Unresolved Matchups", show_header=True, header_style="bold red")
    table.add_column("Matchup")
    table.add_column("Teams")
    table.add_column("Reason")
    table.add_column("Detail")
    for item in output.unresolved:
        teams = f"{item.away_team_id or 'TBD'} @ {item.home_team_id or 'TBD'}"
        table.add_row(item.matchup_id, teams, item.reason.value, item.detail)
    console.print(table)


# =============================================================================
# Commands
# =============================================================================

@app.command()
def solve(
    input_file: Path = typer.Argument(
        ...,
        help="Path to problem JSON file",
        exists=True,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Path to write the schedule",
    ),
    format: str = typer.Option(
        "json",
        "--format", "-f",
        help="Output format: json or csv",
    ),
    max_steps: int = typer.Option(
        20000,
        "--max-steps",
        help="Maximum number of backtracking steps",
        min=0,
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout", "-t",
        help="Wall-clock limit in seconds",
        min=0.001,
    ),
    report: bool = typer.Option(
        False,
        "--report", "-r",
        help="Print the full scheduling report",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable debug logging",
    ),
) -> None:
    """
    Schedule a season.

    Places every matchup on a field slot, assigns umpires, and checks the
    result before writing it.

    Example:
        python -m season_scheduler solve problem.json -o schedule.json
    """
    setup_logging(logging.DEBUG if verbose else logging.WARNING)

    if format not in ("json", "csv"):
        console.print(f"[red]Error:[/red] Unknown format '{format}' (use json or csv)")
        raise typer.Exit(code=1)

    console.print(f"\n[bold]Loading problem from:[/bold] {input_file}")
    spec = load_input(input_file)
    model = build_model(spec)

    console.print(f"[green]Loaded:[/green] {len(spec.matchups)} matchups, "
                  f"{len(spec.teams)} teams, {len(spec.fields)} fields, "
                  f"{len(spec.umpires)} umpires")

    budget = SearchBudget(max_steps=max_steps, time_limit_seconds=timeout)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Scheduling games...", total=None)
        try:
            result = solve_model(model, budget)
        except ScheduleIntegrityError as e:
            console.print(f"[red]Internal error:[/red] {escape(str(e))}")
            raise typer.Exit(code=1)

    schedule = create_schedule_output(result, model)

    console.print()
    print_summary(schedule)
    if schedule.unresolved:
        _print_unresolved(schedule)
    if report:
        console.print(format_report(build_report(result, model)))

    if output:
        if format == "csv":
            save_csv(schedule, output)
        else:
            save_json(schedule, output)
        console.print(f"\n[green]Schedule saved to:[/green] {output}")

    console.print()


@app.command()
def validate(
    input_file: Path = typer.Argument(
        ...,
        help="Path to problem JSON file to validate",
    ),
) -> None:
    """
    Validate a problem file.

    Checks for:
    - Valid JSON structure
    - Schema compliance
    - Reference integrity and well-formed ranges
    - Capacity (matchups versus available slots)

    Example:
        python -m season_scheduler validate problem.json
    """
    console.print(f"\n[bold]Validating:[/bold] {input_file}\n")

    console.print("[cyan]1. Checking schema...[/cyan]")
    spec = load_input(input_file)
    console.print("   [green]Schema validation passed[/green]")

    console.print("[cyan]2. Checking references and ranges...[/cyan]")
    model = build_model(spec)
    console.print("   [green]Problem is well formed[/green]")

    console.print("[cyan]3. Checking capacity...[/cyan]")
    solver = AssignmentSolver(model)
    total_slots = len(solver.slots)
    warnings = []

    if len(spec.matchups) > total_slots:
        warnings.append(
            f"Matchups ({len(spec.matchups)}) exceed available slots ({total_slots})"
        )
    for matchup in spec.matchups:
        if not solver.domain(matchup):
            warnings.append(f"Matchup {matchup} has no compatible slot")
    if spec.config.umpires_per_game > len(spec.umpires):
        warnings.append(
            f"{spec.config.umpires_per_game} umpires required per game "
            f"but only {len(spec.umpires)} exist"
        )

    if warnings:
        console.print("   [yellow]Warnings found:[/yellow]")
        for w in warnings:
            console.print(f"   - {w}")
    else:
        console.print("   [green]No capacity issues[/green]")

    console.print("\n[bold]Summary:[/bold]")
    table = Table(show_header=False, box=None)
    table.add_column("Entity", style="cyan")
    table.add_column("Count", style="white")

    for key, value in model.summary().items():
        if key != "increments":
            table.add_row(key.replace("_", " ").title(), str(value))
    table.add_row("Available Slots", str(total_slots))

    console.print(table)
    console.print("\n[green]Validation complete.[/green]\n")


@app.command()
def audit(
    input_file: Path = typer.Argument(
        ...,
        help="Path to problem JSON file",
        exists=True,
    ),
    schedule_file: Path = typer.Argument(
        ...,
        help="Path to schedule JSON file to check",
        exists=True,
    ),
) -> None:
    """
    Check a saved or hand-edited schedule against its problem.

    Exits with code 1 when any hard rule is broken.

    Example:
        python -m season_scheduler audit problem.json schedule.json
    """
    spec = load_input(input_file)
    schedule = load_output(schedule_file)

    try:
        violations = audit_schedule(
            spec,
            schedule.to_games(),
            schedule.to_unresolved(),
            schedule.to_shortfalls(),
        )
    except MalformedProblemError as e:
        _print_problem_errors(e)
        raise typer.Exit(code=1)

    if not violations:
        console.print(f"[green]No violations in {len(schedule.games)} games.[/green]")
        return

    table = Table(title="Violations", show_header=True, header_style="bold red")
    table.add_column("Code")
    table.add_column("When", style="dim")
    table.add_column("Details")
    for v in violations:
        when = f"{v.start:%Y-%m-%d %H:%M}" if v.start else "-"
        table.add_row(v.code.value, when, escape(v.message))
    console.print(table)
    console.print(f"\n[red]{len(violations)} violation(s) found.[/red]")
    raise typer.Exit(code=1)


@app.command()
def view(
    schedule_file: Path = typer.Argument(
        ...,
        help="Path to schedule JSON file",
        exists=True,
    ),
    team: Optional[str] = typer.Option(
        None,
        "--team", "-T",
        help="Show schedule for specific team ID",
    ),
    field: Optional[str] = typer.Option(
        None,
        "--field", "-F",
        help="Show schedule for specific field ID",
    ),
    umpire: Optional[str] = typer.Option(
        None,
        "--umpire", "-U",
        help="Show schedule for specific umpire ID",
    ),
    day: Optional[str] = typer.Option(
        None,
        "--date", "-D",
        help="Show games on a date (YYYY-MM-DD)",
    ),
) -> None:
    """
    Display specific views of a schedule.

    Examples:
        python -m season_scheduler view schedule.json --team L1-T1
        python -m season_scheduler view schedule.json --date 2025-04-12
    """
    schedule = load_output(schedule_file)

    for kind, entity_id in (("team", team), ("field", field), ("umpire", umpire)):
        if entity_id:
            _show_entity_view(schedule, kind, entity_id)
            return
    if day:
        _show_day_view(schedule, day)
        return

    print_summary(schedule)
    print_console(schedule)


def _show_entity_view(schedule: ScheduleOutput, kind: str, entity_id: str) -> None:
    formatter = EntityViewFormatter(kind)
    schedules = formatter.schedules(schedule)
    if entity_id not in schedules:
        console.print(f"[red]Error:[/red] {kind.title()} '{entity_id}' not found")
        console.print(f"Available: {', '.join(sorted(schedules))}")
        raise typer.Exit(code=1)
    console.print(formatter.format(schedule, entity_id))


def _show_day_view(schedule: ScheduleOutput, day: str) -> None:
    try:
        date.fromisoformat(day)
    except ValueError:
        console.print(f"[red]Error:[/red] Invalid date '{day}' (expected YYYY-MM-DD)")
        raise typer.Exit(code=1)

    day_schedule = schedule.views.by_date.get(day)
    if not day_schedule:
        console.print(f"[yellow]No games scheduled on {day}[/yellow]")
        return

    console.print(Panel(
        f"[bold]{day_schedule.day_name} {day_schedule.date}[/bold]",
        title="Daily Schedule",
    ))

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Time")
    table.add_column("Field")
    table.add_column("Game")
    table.add_column("Umpires")

    for game in day_schedule.games:
        table.add_row(
            f"{game.start:%H:%M}-{game.end:%H:%M}",
            game.field_name or game.field_id,
            game.label,
            ", ".join(game.umpire_ids) or "-",
        )

    console.print(table)


@app.command()
def generate(
    output_file: Path = typer.Argument(
        ...,
        help="Path to write the generated problem JSON",
    ),
    leagues: int = typer.Option(1, "--leagues", help="Number of leagues", min=1),
    teams: int = typer.Option(6, "--teams", help="Teams per league", min=2),
    fields: int = typer.Option(2, "--fields", help="Number of fields", min=1),
    umpires: int = typer.Option(4, "--umpires", help="Number of umpires", min=0),
    weeks: int = typer.Option(8, "--weeks", help="Season length in weeks", min=1),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
) -> None:
    """
    Generate a sample problem file.

    Example:
        python -m season_scheduler generate problem.json --teams 8 --seed 42
    """
    config = GeneratorConfig(
        num_leagues=leagues,
        teams_per_league=teams,
        num_fields=fields,
        num_umpires=umpires,
        season_weeks=weeks,
        umpires_per_game=min(1, umpires),
        seed=seed,
    )
    spec = generate_sample_problem(config)
    save_generated_problem(spec, output_file)

    total_slots = len(AssignmentSolver(ProblemModel(spec)).slots)
    stats = get_generation_stats(spec, total_slots)

    table = Table(title="Generated Problem", show_header=False, box=None)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    for key, value in stats.items():
        table.add_row(key.replace("_", " ").title(), str(value))
    console.print(table)
    console.print(f"\n[green]Problem saved to:[/green] {output_file}")


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
