"""
Scheduling report: what was placed, what was not, and why.

Aggregates a SchedulingResult into per-team, per-field and per-umpire counts
plus the diagnostics for unresolved matchups and umpire shortfalls.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from season_scheduler.umpires import umpire_load

if TYPE_CHECKING:
    from season_scheduler.problem import ProblemModel
    from season_scheduler.solver import SchedulingResult, SolverStats


@dataclass
class UnresolvedEntry:
    """One unplaced matchup in the report."""
    matchup_id: str
    label: str
    reason: str
    detail: str


@dataclass
class SchedulingReport:
    """Aggregated outcome of a scheduling run."""
    status: str
    total_matchups: int
    games_scheduled: int
    unresolved: list[UnresolvedEntry] = field(default_factory=list)
    unresolved_by_reason: dict[str, int] = field(default_factory=dict)
    shortfall_count: int = 0
    missing_umpire_assignments: int = 0
    games_per_team: dict[str, int] = field(default_factory=dict)
    games_per_field: dict[str, int] = field(default_factory=dict)
    umpire_load: dict[str, int] = field(default_factory=dict)
    stats: dict[str, int] = field(default_factory=dict)
    run_id: str = ""

    @property
    def placement_rate(self) -> float:
        """Percentage of matchups that were placed."""
        if self.total_matchups == 0:
            return 100.0
        return round(100.0 * self.games_scheduled / self.total_matchups, 1)

    @property
    def team_game_spread(self) -> int:
        """Difference between the busiest and the least busy team."""
        if not self.games_per_team:
            return 0
        counts = self.games_per_team.values()
        return max(counts) - min(counts)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["placement_rate"] = self.placement_rate
        data["team_game_spread"] = self.team_game_spread
        return data


def build_report(result: SchedulingResult, model: ProblemModel) -> SchedulingReport:
    """
    Build a report for a scheduling result.

    Every team and field in the model is listed, including those with no
    games.
    """
    per_team: Counter[str] = Counter({team_id: 0 for team_id in model.teams})
    per_field: Counter[str] = Counter({field_id: 0 for field_id in model.fields})
    for game in result.games:
        per_field[game.field_id] += 1
        for team_id in game.team_ids:
            per_team[team_id] += 1

    load = {umpire_id: 0 for umpire_id in sorted(model.umpires)}
    load.update(umpire_load(result.games))

    by_reason = Counter(u.reason.value for u in result.unresolved)

    return SchedulingReport(
        status=result.status.value,
        total_matchups=len(result.games) + len(result.unresolved),
        games_scheduled=len(result.games),
        unresolved=[
            UnresolvedEntry(u.matchup.id, str(u.matchup), u.reason.value, u.detail)
            for u in result.unresolved
        ],
        unresolved_by_reason=dict(sorted(by_reason.items())),
        shortfall_count=len(result.shortfalls),
        missing_umpire_assignments=sum(s.missing for s in result.shortfalls),
        games_per_team=dict(sorted(per_team.items())),
        games_per_field=dict(sorted(per_field.items())),
        umpire_load=load,
        stats=_stats_dict(result.stats),
        run_id=result.run_id,
    )


def _stats_dict(stats: SolverStats) -> dict[str, int]:
    return {
        "slots_considered": stats.slots_considered,
        "steps": stats.steps,
        "max_depth": stats.max_depth,
        "greedy_fill_placed": stats.greedy_fill_placed,
        "elapsed_ms": stats.elapsed_ms,
    }


def format_report(report: SchedulingReport) -> str:
    """Render a report as plain text."""
    lines = []
    lines.append("=" * 70)
    lines.append("SEASON SCHEDULING REPORT")
    lines.append("=" * 70)
    lines.append("")
    lines.append(f"Status: {report.status}")
    if report.run_id:
        lines.append(f"Run Id: {report.run_id}")
    lines.append(
        f"Games Scheduled: {report.games_scheduled}/{report.total_matchups} "
        f"({report.placement_rate:.1f}%)"
    )
    lines.append(f"Search Steps: {report.stats.get('steps', 0)}")
    lines.append(f"Solve Time: {report.stats.get('elapsed_ms', 0)}ms")
    lines.append("")

    if report.unresolved:
        lines.append("-" * 40)
        lines.append("UNRESOLVED MATCHUPS")
        lines.append("-" * 40)
        for reason, count in report.unresolved_by_reason.items():
            lines.append(f"{reason}: {count}")
        for entry in report.unresolved:
            lines.append(f"  - {entry.label}: {entry.reason}")
            if entry.detail:
                lines.append(f"      {entry.detail}")
        lines.append("")

    lines.append("-" * 40)
    lines.append("UMPIRES")
    lines.append("-" * 40)
    lines.append(f"Shortfalls: {report.shortfall_count}")
    lines.append(f"Missing Assignments: {report.missing_umpire_assignments}")
    for umpire_id, count in report.umpire_load.items():
        lines.append(f"  {umpire_id}: {count} games")
    lines.append("")

    lines.append("-" * 40)
    lines.append("DISTRIBUTION")
    lines.append("-" * 40)
    lines.append(f"Team Game Spread: {report.team_game_spread}")
    for team_id, count in report.games_per_team.items():
        lines.append(f"  {team_id}: {count} games")
    lines.append("Fields:")
    for field_id, count in report.games_per_field.items():
        lines.append(f"  {field_id}: {count} games")
    lines.append("")

    lines.append("=" * 70)
    return "\n".join(lines)
