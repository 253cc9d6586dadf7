"""
Output schema for scheduling results.

This module defines the JSON-serializable output format for a season
schedule, including pre-computed views by field, team, umpire and date. The
same schema is read back to audit saved or hand-edited schedules.
"""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from season_scheduler.data.models import DAY_NAMES, GameType, Matchup
from season_scheduler.problem import ProblemModel
from season_scheduler.slots import Slot
from season_scheduler.solver import (
    ScheduledGame,
    SchedulingResult,
    SolverStatus,
    UmpireShortfall,
    UnresolvedMatchup,
    UnresolvedReason,
)


# =============================================================================
# Games
# =============================================================================

def _require_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        raise ValueError(f"timestamp {value.isoformat()} must be a naive local time")
    return value


class GameOutput(BaseModel):
    """A single scheduled game in the output."""
    matchup_id: str = Field(alias="matchupId")
    league_id: str = Field(alias="leagueId")
    home_team_id: Optional[str] = Field(default=None, alias="homeTeamId")
    away_team_id: Optional[str] = Field(default=None, alias="awayTeamId")
    game_type: GameType = Field(default=GameType.REGULAR, alias="gameType")
    field_id: str = Field(alias="fieldId")
    date: str  # 'YYYY-MM-DD'
    start: datetime
    end: datetime
    duration_minutes: int = Field(gt=0, alias="durationMinutes")
    umpire_ids: list[str] = Field(default_factory=list, alias="umpireIds")

    # Optional enriched data
    field_name: Optional[str] = Field(default=None, alias="fieldName")
    home_team_name: Optional[str] = Field(default=None, alias="homeTeamName")
    away_team_name: Optional[str] = Field(default=None, alias="awayTeamName")

    model_config = {"populate_by_name": True}

    @field_validator("start", "end")
    @classmethod
    def validate_naive(cls, value: datetime) -> datetime:
        """Schedules use naive league-local times, like the problem."""
        return _require_naive(value)

    @model_validator(mode="after")
    def validate_consistent_times(self) -> "GameOutput":
        """Ensure date and end agree with start and duration."""
        expected_end = self.start + timedelta(minutes=self.duration_minutes)
        if self.end != expected_end:
            raise ValueError(
                f"game {self.matchup_id}: end {self.end.isoformat()} does not match start "
                f"plus {self.duration_minutes} minutes ({expected_end.isoformat()})"
            )
        if self.date != self.start.date().isoformat():
            raise ValueError(
                f"game {self.matchup_id}: date {self.date} does not match start "
                f"{self.start.isoformat()}"
            )
        return self

    @classmethod
    def from_game(cls, game: ScheduledGame, names: Optional[dict[str, str]] = None) -> GameOutput:
        """Create from a ScheduledGame."""
        names = names or {}
        m = game.matchup
        return cls(
            matchupId=m.id,
            leagueId=m.league_id,
            homeTeamId=m.home_team_id,
            awayTeamId=m.away_team_id,
            gameType=m.game_type,
            fieldId=game.field_id,
            date=game.date.isoformat(),
            start=game.start,
            end=game.end,
            durationMinutes=game.slot.duration_minutes,
            umpireIds=list(game.umpire_ids),
            fieldName=names.get(game.field_id),
            homeTeamName=names.get(m.home_team_id) if m.home_team_id else None,
            awayTeamName=names.get(m.away_team_id) if m.away_team_id else None,
        )

    def to_game(self) -> ScheduledGame:
        """Rebuild the engine's ScheduledGame."""
        matchup = Matchup(
            id=self.matchup_id,
            league_id=self.league_id,
            home_team_id=self.home_team_id,
            away_team_id=self.away_team_id,
            game_type=self.game_type,
        )
        slot = Slot(self.field_id, self.start, self.duration_minutes)
        return ScheduledGame(matchup, slot, tuple(self.umpire_ids))

    @property
    def team_ids(self) -> list[str]:
        return [t for t in (self.home_team_id, self.away_team_id) if t is not None]

    @property
    def label(self) -> str:
        away = self.away_team_name or self.away_team_id or "TBD"
        home = self.home_team_name or self.home_team_id or "TBD"
        return f"{away} @ {home}"


class UnresolvedOutput(BaseModel):
    """A matchup that could not be placed."""
    matchup_id: str = Field(alias="matchupId")
    league_id: str = Field(alias="leagueId")
    home_team_id: Optional[str] = Field(default=None, alias="homeTeamId")
    away_team_id: Optional[str] = Field(default=None, alias="awayTeamId")
    game_type: GameType = Field(default=GameType.REGULAR, alias="gameType")
    reason: UnresolvedReason
    detail: str = ""

    model_config = {"populate_by_name": True}

    @classmethod
    def from_unresolved(cls, item: UnresolvedMatchup) -> UnresolvedOutput:
        m = item.matchup
        return cls(
            matchupId=m.id,
            leagueId=m.league_id,
            homeTeamId=m.home_team_id,
            awayTeamId=m.away_team_id,
            gameType=m.game_type,
            reason=item.reason,
            detail=item.detail,
        )

    def to_unresolved(self) -> UnresolvedMatchup:
        matchup = Matchup(
            id=self.matchup_id,
            league_id=self.league_id,
            home_team_id=self.home_team_id,
            away_team_id=self.away_team_id,
            game_type=self.game_type,
        )
        return UnresolvedMatchup(matchup, self.reason, self.detail)


class ShortfallOutput(BaseModel):
    """A game with fewer umpires than required."""
    matchup_id: str = Field(alias="matchupId")
    start: datetime
    required: int
    assigned: int

    model_config = {"populate_by_name": True}

    @field_validator("start")
    @classmethod
    def validate_naive(cls, value: datetime) -> datetime:
        return _require_naive(value)


class SolverStatsOutput(BaseModel):
    """Search statistics."""
    slots_considered: int = Field(alias="slotsConsidered")
    steps: int
    max_depth: int = Field(alias="maxDepth")
    greedy_fill_placed: int = Field(default=0, alias="greedyFillPlaced")
    elapsed_ms: int = Field(alias="elapsedMs")

    model_config = {"populate_by_name": True}


# =============================================================================
# Views
# =============================================================================

class DateSchedule(BaseModel):
    """All games on a single date."""
    date: str
    day_name: str = Field(alias="dayName")
    games: list[GameOutput]

    model_config = {"populate_by_name": True}


class EntitySchedule(BaseModel):
    """Schedule for an entity (field, team or umpire)."""
    id: str
    name: str
    games: list[GameOutput]
    by_date: dict[str, list[GameOutput]] = Field(
        default_factory=dict,
        alias="byDate"
    )

    model_config = {"populate_by_name": True}


class ScheduleViews(BaseModel):
    """Pre-computed views of the schedule for convenience."""
    by_field: dict[str, EntitySchedule] = Field(default_factory=dict, alias="byField")
    by_team: dict[str, EntitySchedule] = Field(default_factory=dict, alias="byTeam")
    by_umpire: dict[str, EntitySchedule] = Field(default_factory=dict, alias="byUmpire")
    by_date: dict[str, DateSchedule] = Field(default_factory=dict, alias="byDate")

    model_config = {"populate_by_name": True}


# =============================================================================
# Complete Output
# =============================================================================

class ScheduleOutput(BaseModel):
    """Complete output for a scheduling run."""
    status: SolverStatus
    run_id: str = Field(default="", alias="runId")
    solve_time_seconds: float = Field(alias="solveTimeSeconds")
    stats: SolverStatsOutput
    games: list[GameOutput]
    unresolved: list[UnresolvedOutput] = Field(default_factory=list)
    shortfalls: list[ShortfallOutput] = Field(default_factory=list)
    views: ScheduleViews = Field(default_factory=ScheduleViews)

    model_config = {"populate_by_name": True}

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return self.model_dump_json(by_alias=True, indent=indent)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return self.model_dump(by_alias=True, mode="json")

    def to_games(self) -> list[ScheduledGame]:
        return [g.to_game() for g in self.games]

    def to_unresolved(self) -> list[UnresolvedMatchup]:
        return [u.to_unresolved() for u in self.unresolved]

    def to_shortfalls(self) -> list[UmpireShortfall]:
        return [
            UmpireShortfall(s.matchup_id, s.start, s.required, s.assigned)
            for s in self.shortfalls
        ]


# =============================================================================
# Conversion Functions
# =============================================================================

def create_schedule_output(
    result: SchedulingResult,
    model: Optional[ProblemModel] = None,
) -> ScheduleOutput:
    """
    Create a ScheduleOutput from a SchedulingResult.

    Args:
        result: The scheduling result
        model: Problem model used for display names (optional)

    Returns:
        ScheduleOutput with all views populated
    """
    names = _display_names(model) if model is not None else {}
    umpire_names = (
        {u.id: str(u) for u in model.umpires.values()} if model is not None else {}
    )

    games = [GameOutput.from_game(g, names) for g in result.games]
    stats = result.stats

    return ScheduleOutput(
        status=result.status,
        runId=result.run_id,
        solveTimeSeconds=stats.elapsed_ms / 1000.0,
        stats=SolverStatsOutput(
            slotsConsidered=stats.slots_considered,
            steps=stats.steps,
            maxDepth=stats.max_depth,
            greedyFillPlaced=stats.greedy_fill_placed,
            elapsedMs=stats.elapsed_ms,
        ),
        games=games,
        unresolved=[UnresolvedOutput.from_unresolved(u) for u in result.unresolved],
        shortfalls=[
            ShortfallOutput(
                matchupId=s.matchup_id, start=s.start, required=s.required, assigned=s.assigned
            )
            for s in result.shortfalls
        ],
        views=_create_views(games, names, umpire_names),
    )


def _display_names(model: ProblemModel) -> dict[str, str]:
    names = {f.id: str(f) for f in model.fields.values()}
    names.update({t.id: str(t) for t in model.teams.values()})
    return names


def _create_views(
    games: list[GameOutput],
    names: dict[str, str],
    umpire_names: dict[str, str],
) -> ScheduleViews:
    """Create pre-computed views from games."""
    by_field: dict[str, list[GameOutput]] = {}
    by_team: dict[str, list[GameOutput]] = {}
    by_umpire: dict[str, list[GameOutput]] = {}
    by_date: dict[str, list[GameOutput]] = {}

    for game in games:
        by_field.setdefault(game.field_id, []).append(game)
        for team_id in game.team_ids:
            by_team.setdefault(team_id, []).append(game)
        for umpire_id in game.umpire_ids:
            by_umpire.setdefault(umpire_id, []).append(game)
        by_date.setdefault(game.date, []).append(game)

    def entity_schedules(
        groups: dict[str, list[GameOutput]], lookup: dict[str, str]
    ) -> dict[str, EntitySchedule]:
        schedules = {}
        for entity_id in sorted(groups):
            entity_games = sorted(groups[entity_id], key=_game_sort_key)
            schedules[entity_id] = EntitySchedule(
                id=entity_id,
                name=lookup.get(entity_id) or entity_id,
                games=entity_games,
                byDate=_group_by_date(entity_games),
            )
        return schedules

    date_schedules = {}
    for day in sorted(by_date):
        date_schedules[day] = DateSchedule(
            date=day,
            dayName=DAY_NAMES[date.fromisoformat(day).weekday()],
            games=sorted(by_date[day], key=_game_sort_key),
        )

    return ScheduleViews(
        byField=entity_schedules(by_field, names),
        byTeam=entity_schedules(by_team, names),
        byUmpire=entity_schedules(by_umpire, umpire_names),
        byDate=date_schedules,
    )


def _game_sort_key(game: GameOutput) -> tuple[datetime, str, str]:
    return (game.start, game.field_id, game.matchup_id)


def _group_by_date(games: list[GameOutput]) -> dict[str, list[GameOutput]]:
    by_date: dict[str, list[GameOutput]] = {}
    for game in games:
        by_date.setdefault(game.date, []).append(game)
    return by_date


# =============================================================================
# Convenience Functions
# =============================================================================

def result_to_json(
    result: SchedulingResult,
    model: Optional[ProblemModel] = None,
    indent: int = 2,
) -> str:
    """Convert a SchedulingResult directly to a JSON string."""
    return create_schedule_output(result, model).to_json(indent=indent)


def load_schedule_output(path: Union[str, Path]) -> ScheduleOutput:
    """
    Load a saved schedule.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If invalid JSON
        pydantic.ValidationError: If the data does not match the schema
    """
    with open(Path(path)) as f:
        data = json.load(f)
    return ScheduleOutput.model_validate(data)
