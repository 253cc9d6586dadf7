"""
Output formatters for season schedules.

This module provides formatters for different output formats:
- JSON: Complete result with all views
- CSV: Flat game list for spreadsheets
- Console: Pretty-printed for CLI
- Entity views: Schedule for one field, team or umpire
"""

from __future__ import annotations

import csv
import json
import sys
from io import StringIO
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from season_scheduler.data.models import DAY_NAMES

if TYPE_CHECKING:
    from .schema import EntitySchedule, GameOutput, ScheduleOutput


DAY_ABBREV = [name[:3] for name in DAY_NAMES]


def _time_range(game: GameOutput) -> str:
    return f"{game.start:%H:%M}-{game.end:%H:%M}"


# =============================================================================
# JSON Formatter
# =============================================================================

class JSONFormatter:
    """Formats schedule output as JSON."""

    def __init__(self, indent: int = 2, ensure_ascii: bool = False):
        self.indent = indent
        self.ensure_ascii = ensure_ascii

    def format(self, output: ScheduleOutput) -> str:
        return output.to_json(indent=self.indent)

    def format_compact(self, output: ScheduleOutput) -> str:
        """Format as compact single-line JSON."""
        return json.dumps(output.to_dict(), ensure_ascii=self.ensure_ascii, separators=(',', ':'))

    def format_games_only(self, output: ScheduleOutput) -> str:
        """Format only the games array as JSON."""
        games_data = [game.model_dump(by_alias=True, mode="json") for game in output.games]
        return json.dumps(games_data, indent=self.indent, ensure_ascii=self.ensure_ascii)


def format_json(output: ScheduleOutput, indent: int = 2) -> str:
    """Convenience function for JSON formatting."""
    return JSONFormatter(indent=indent).format(output)


# =============================================================================
# CSV Formatter
# =============================================================================

class CSVFormatter:
    """Formats schedule output as CSV, one row per game."""

    DEFAULT_COLUMNS = [
        'matchup_id', 'league_id', 'game_type', 'date', 'day_name', 'start_time', 'end_time',
        'field_id', 'field_name', 'home_team_id', 'home_team_name',
        'away_team_id', 'away_team_name', 'umpire_ids',
    ]

    MINIMAL_COLUMNS = [
        'date', 'start_time', 'end_time', 'field_id', 'home_team_id', 'away_team_id',
    ]

    def __init__(
        self,
        columns: list[str] | None = None,
        include_header: bool = True,
        delimiter: str = ',',
    ):
        """
        Initialize CSV formatter.

        Args:
            columns: List of columns to include (None = all)
            include_header: Whether to include header row
            delimiter: Field delimiter
        """
        self.columns = columns or self.DEFAULT_COLUMNS
        self.include_header = include_header
        self.delimiter = delimiter

    def format(self, output: ScheduleOutput) -> str:
        buffer = StringIO()
        self.write(output, buffer)
        return buffer.getvalue()

    def write(self, output: ScheduleOutput, file: TextIO) -> None:
        """Write CSV to a file-like object."""
        writer = csv.writer(file, delimiter=self.delimiter)

        if self.include_header:
            writer.writerow(self.columns)

        for game in output.games:
            writer.writerow(self._game_to_row(game))

    def _game_to_row(self, game: GameOutput) -> list[str]:
        field_map = {
            'matchup_id': game.matchup_id,
            'league_id': game.league_id,
            'game_type': game.game_type.value,
            'date': game.date,
            'day_name': DAY_NAMES[game.start.weekday()],
            'start_time': f"{game.start:%H:%M}",
            'end_time': f"{game.end:%H:%M}",
            'field_id': game.field_id,
            'field_name': game.field_name or '',
            'home_team_id': game.home_team_id or 'TBD',
            'home_team_name': game.home_team_name or '',
            'away_team_id': game.away_team_id or 'TBD',
            'away_team_name': game.away_team_name or '',
            'umpire_ids': ';'.join(game.umpire_ids),
        }
        return [field_map.get(col, '') for col in self.columns]


def format_csv(output: ScheduleOutput, minimal: bool = False) -> str:
    """Convenience function for CSV formatting."""
    columns = CSVFormatter.MINIMAL_COLUMNS if minimal else None
    return CSVFormatter(columns=columns).format(output)


# =============================================================================
# Console Formatter
# =============================================================================

class ConsoleFormatter:
    """Formats schedule output for console display."""

    def __init__(self, use_colors: bool = True, width: int | None = None):
        self.use_colors = use_colors
        self.width = width

    def format(self, output: ScheduleOutput) -> str:
        if self.use_colors:
            console = Console(record=True, width=self.width or 100)
            self._print_rich(output, console)
            return console.export_text()
        return self._format_plain(output)

    def print(self, output: ScheduleOutput, file: TextIO = None) -> None:
        if file is None:
            file = sys.stdout

        if self.use_colors:
            self._print_rich(output, Console(file=file, width=self.width))
        else:
            file.write(self._format_plain(output))
            file.write('\n')

    def _format_plain(self, output: ScheduleOutput) -> str:
        lines = []
        lines.append("=" * 60)
        lines.append(f"SEASON SCHEDULE - Status: {output.status.value}")
        lines.append("=" * 60)
        lines.append("")
        lines.append(f"Solve time: {output.solve_time_seconds:.2f}s")
        lines.append(f"Games scheduled: {len(output.games)}")
        lines.append(f"Unresolved: {len(output.unresolved)}")
        lines.append(f"Umpire shortfalls: {len(output.shortfalls)}")
        lines.append("")

        for day in sorted(output.views.by_date):
            day_schedule = output.views.by_date[day]
            lines.append(f"--- {day_schedule.day_name} {day} ---")
            for game in day_schedule.games:
                umpires = ", ".join(game.umpire_ids) or "-"
                lines.append(
                    f"  {_time_range(game)}: {game.label} | "
                    f"Field: {game.field_name or game.field_id} | Umpires: {umpires}"
                )
            lines.append("")

        return '\n'.join(lines)

    def _print_rich(self, output: ScheduleOutput, console: Console) -> None:
        status_color = "green" if output.status.value == "COMPLETE" else "yellow"
        console.print(Panel(
            Text(output.status.value, style=f"bold {status_color}"),
            title="Season Schedule",
            subtitle=f"Solved in {output.solve_time_seconds:.2f}s",
        ))

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Date", style="dim")
        table.add_column("Time")
        table.add_column("Field")
        table.add_column("Game")
        table.add_column("Umpires")

        for game in output.games:
            table.add_row(
                f"{DAY_ABBREV[game.start.weekday()]} {game.date}",
                _time_range(game),
                game.field_name or game.field_id,
                game.label,
                ", ".join(game.umpire_ids) or "-",
            )
        console.print(table)

        if output.unresolved:
            console.print(f"\n[bold red]Unresolved matchups ({len(output.unresolved)}):[/bold red]")
            for item in output.unresolved:
                console.print(f"  {item.matchup_id}: {item.reason.value} {item.detail}")


def format_console(output: ScheduleOutput, use_colors: bool = True) -> str:
    """Convenience function for console formatting."""
    return ConsoleFormatter(use_colors=use_colors).format(output)


def print_console(output: ScheduleOutput, use_colors: bool = True) -> None:
    """Print a schedule to the console."""
    ConsoleFormatter(use_colors=use_colors).print(output)


# =============================================================================
# Entity View Formatter
# =============================================================================

class EntityViewFormatter:
    """Formats the schedule of a single field, team or umpire."""

    KINDS = ("field", "team", "umpire")

    def __init__(self, kind: str, use_colors: bool = True):
        if kind not in self.KINDS:
            raise ValueError(f"kind must be one of {self.KINDS}, got {kind!r}")
        self.kind = kind
        self.use_colors = use_colors

    def schedules(self, output: ScheduleOutput) -> dict[str, EntitySchedule]:
        views = output.views
        return {"field": views.by_field, "team": views.by_team, "umpire": views.by_umpire}[self.kind]

    def format(self, output: ScheduleOutput, entity_id: str) -> str:
        schedule = self.schedules(output).get(entity_id)
        if schedule is None:
            return f"No schedule found for {self.kind}: {entity_id}"
        if self.use_colors:
            return self._format_rich(schedule)
        return self._format_plain(schedule)

    def format_all(self, output: ScheduleOutput) -> str:
        return '\n\n'.join(
            self.format(output, entity_id) for entity_id in sorted(self.schedules(output))
        )

    def _format_plain(self, schedule: EntitySchedule) -> str:
        lines = []
        lines.append('=' * 50)
        lines.append(f"{self.kind.upper()}: {schedule.name} ({schedule.id})")
        lines.append('=' * 50)

        for day, games in schedule.by_date.items():
            lines.append(f"\n{day}:")
            for game in games:
                lines.append(
                    f"  {_time_range(game)}: {game.label} "
                    f"@ {game.field_name or game.field_id}"
                )

        return '\n'.join(lines)

    def _format_rich(self, schedule: EntitySchedule) -> str:
        console = Console(record=True, width=100)
        console.print(Panel(
            f"[bold]{schedule.name}[/bold] ({schedule.id})",
            title=f"{self.kind.title()} Schedule",
        ))

        table = Table(show_header=True, header_style="bold")
        table.add_column("Date", style="cyan")
        table.add_column("Time")
        table.add_column("Game")
        table.add_column("Field")
        table.add_column("Umpires")

        for day, games in schedule.by_date.items():
            for game in games:
                table.add_row(
                    day,
                    _time_range(game),
                    game.label,
                    game.field_name or game.field_id,
                    ", ".join(game.umpire_ids) or "-",
                )

        console.print(table)
        return console.export_text()


def format_entity_view(
    output: ScheduleOutput, kind: str, entity_id: str, use_colors: bool = True
) -> str:
    """Format the schedule of one field, team or umpire."""
    return EntityViewFormatter(kind, use_colors=use_colors).format(output, entity_id)


# =============================================================================
# File Writing Utilities
# =============================================================================

def save_json(output: ScheduleOutput, filepath: str | Path, indent: int = 2) -> None:
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_text(JSONFormatter(indent=indent).format(output), encoding='utf-8')


def save_csv(output: ScheduleOutput, filepath: str | Path, minimal: bool = False) -> None:
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    columns = CSVFormatter.MINIMAL_COLUMNS if minimal else None
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        CSVFormatter(columns=columns).write(output, f)
