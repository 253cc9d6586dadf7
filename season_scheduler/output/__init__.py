"""Schedule output formatting and reporting."""

from .schema import (
    GameOutput,
    UnresolvedOutput,
    ShortfallOutput,
    SolverStatsOutput,
    DateSchedule,
    EntitySchedule,
    ScheduleViews,
    ScheduleOutput,
    create_schedule_output,
    result_to_json,
    load_schedule_output,
)
from .formatters import (
    JSONFormatter,
    CSVFormatter,
    ConsoleFormatter,
    EntityViewFormatter,
    format_json,
    format_csv,
    format_console,
    print_console,
    format_entity_view,
    save_json,
    save_csv,
)
from .report import (
    SchedulingReport,
    UnresolvedEntry,
    build_report,
    format_report,
)

__all__ = [
    # Schema
    "GameOutput",
    "UnresolvedOutput",
    "ShortfallOutput",
    "SolverStatsOutput",
    "DateSchedule",
    "EntitySchedule",
    "ScheduleViews",
    "ScheduleOutput",
    "create_schedule_output",
    "result_to_json",
    "load_schedule_output",
    # Formatters
    "JSONFormatter",
    "CSVFormatter",
    "ConsoleFormatter",
    "EntityViewFormatter",
    "format_json",
    "format_csv",
    "format_console",
    "print_console",
    "format_entity_view",
    "save_json",
    "save_csv",
    # Report
    "SchedulingReport",
    "UnresolvedEntry",
    "build_report",
    "format_report",
]
