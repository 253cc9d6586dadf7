"""
Pydantic models for the season scheduling problem specification.

The problem specification is the fully materialized snapshot that the
surrounding service assembles from persisted league data: the season window,
the selected league-seasons, teams, fields, umpires, exclusion rules and the
matchups to place.

Time conventions:
- Calendar dates are ``datetime.date`` values
- Timestamps are naive ``datetime.datetime`` values in league local time
- Availability rules use minutes from midnight (0-1440)
- Days of week are 0-6 (Monday-Sunday)

Example times:
- 6:00 PM = 1080
- 9:00 PM = 1260
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field as PydanticField,
    ValidationError,
)

from season_scheduler.errors import MalformedProblemError


# =============================================================================
# Constants and Enums
# =============================================================================

DEFAULT_START_INCREMENT_MINUTES = 165
MAX_UMPIRES_PER_GAME = 4

# Alias for annotating fields that are themselves named "date"
CalendarDate = date

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class GameType(str, Enum):
    """Kind of game being scheduled."""
    REGULAR = "regular"
    PLAYOFF = "playoff"


# Type aliases for documentation
MinutesFromMidnight = Annotated[int, PydanticField(ge=0, le=1440, description="Minutes from midnight")]
DayOfWeek = Annotated[int, PydanticField(ge=0, le=6, description="Day of week (0=Monday, 6=Sunday)")]


# =============================================================================
# Helper Functions
# =============================================================================

def minutes_to_time(minutes: int) -> str:
    """Convert minutes from midnight to HH:MM format."""
    h, m = divmod(minutes, 60)
    return f"{h:02d}:{m:02d}"


def time_to_minutes(time_str: str) -> int:
    """Convert HH:MM format to minutes from midnight."""
    h, m = map(int, time_str.split(":"))
    return h * 60 + m


def day_name(day: int) -> str:
    """Get day name from index."""
    return DAY_NAMES[day] if 0 <= day <= 6 else f"Day {day}"


# =============================================================================
# Exclusions and Availability
# =============================================================================

class ExclusionWindow(BaseModel):
    """
    A period during which a team, an umpire, or the whole account is
    unavailable. The window covers the half-open interval [start, end).
    """
    model_config = ConfigDict(extra="forbid")

    start: datetime = PydanticField(description="Window start")
    end: datetime = PydanticField(description="Window end (exclusive)")
    note: Optional[str] = PydanticField(default=None, description="Reason, e.g. a holiday")
    enabled: bool = PydanticField(default=True, description="Disabled windows are ignored")

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Whether [start, end) intersects this window."""
        return start < self.end and end > self.start

    def __str__(self) -> str:
        label = f"{self.start:%Y-%m-%d %H:%M} - {self.end:%Y-%m-%d %H:%M}"
        return f"{label} ({self.note})" if self.note else label


class FieldExclusionDate(BaseModel):
    """A calendar date on which a field is wholly unavailable."""
    model_config = ConfigDict(extra="forbid")

    date: CalendarDate
    note: Optional[str] = None
    enabled: bool = True


class AvailabilityRule(BaseModel):
    """
    A recurring slice of time during which a field may host games.

    A rule applies on the listed days of week (every day when the list is
    empty), optionally restricted to a dated window.
    """
    model_config = ConfigDict(extra="forbid")

    days_of_week: list[DayOfWeek] = PydanticField(default_factory=list, description="Days the rule applies")
    start_minutes: MinutesFromMidnight = PydanticField(description="Opening time")
    end_minutes: MinutesFromMidnight = PydanticField(description="Closing time")
    start_date: Optional[date] = PydanticField(default=None, description="First date the rule applies")
    end_date: Optional[date] = PydanticField(default=None, description="Last date the rule applies")
    enabled: bool = True

    def applies_on(self, day: date) -> bool:
        """Whether this rule opens the field on the given date."""
        if not self.enabled:
            return False
        if self.days_of_week and day.weekday() not in self.days_of_week:
            return False
        if self.start_date is not None and day < self.start_date:
            return False
        if self.end_date is not None and day > self.end_date:
            return False
        return True

    def __str__(self) -> str:
        days = ",".join(day_name(d)[:3] for d in self.days_of_week) or "Daily"
        return f"{days} {minutes_to_time(self.start_minutes)}-{minutes_to_time(self.end_minutes)}"


# =============================================================================
# Core Entity Models
# =============================================================================

class Field(BaseModel):
    """A playing field."""
    model_config = ConfigDict(extra="forbid")

    id: str = PydanticField(min_length=1, description="Unique identifier")
    name: Optional[str] = PydanticField(default=None, description="Display name")
    start_increment_minutes: Optional[int] = PydanticField(
        default=None, description="Minutes between slot starts (season default when unset)"
    )
    availability: list[AvailabilityRule] = PydanticField(default_factory=list)
    exclusion_dates: list[FieldExclusionDate] = PydanticField(default_factory=list)

    def __str__(self) -> str:
        return self.name or self.id


class Team(BaseModel):
    """A team within one league-season."""
    model_config = ConfigDict(extra="forbid")

    id: str = PydanticField(min_length=1, description="Unique identifier")
    name: Optional[str] = None
    league_id: str = PydanticField(description="League-season the team plays in")
    exclusions: list[ExclusionWindow] = PydanticField(default_factory=list)

    def __str__(self) -> str:
        return self.name or self.id


class Umpire(BaseModel):
    """An umpire available to the account."""
    model_config = ConfigDict(extra="forbid")

    id: str = PydanticField(min_length=1, description="Unique identifier")
    name: Optional[str] = None
    exclusions: list[ExclusionWindow] = PydanticField(default_factory=list)
    max_games_per_day: Optional[int] = PydanticField(
        default=None, description="Personal daily cap, combined with the season cap by min"
    )

    def __str__(self) -> str:
        return self.name or self.id


class Matchup(BaseModel):
    """
    A required game that is not yet bound to a slot.

    A missing team id marks a TBD placeholder (e.g. a playoff game whose
    participants are not known yet).
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = PydanticField(min_length=1, description="Unique identifier")
    league_id: str = PydanticField(description="League-season the game belongs to")
    home_team_id: Optional[str] = None
    away_team_id: Optional[str] = None
    game_type: GameType = GameType.REGULAR
    earliest_start: Optional[datetime] = PydanticField(
        default=None, description="The game may not start before this time"
    )
    latest_end: Optional[datetime] = PydanticField(
        default=None, description="The game must be over by this time"
    )
    preferred_field_ids: tuple[str, ...] = PydanticField(
        default=(), description="Fields tried before any other"
    )

    def fits_window(self, start: datetime, end: datetime) -> bool:
        """Whether [start, end) lies inside the game's own time window."""
        if self.earliest_start is not None and start < self.earliest_start:
            return False
        if self.latest_end is not None and end > self.latest_end:
            return False
        return True

    @property
    def team_ids(self) -> tuple[str, ...]:
        """Known participating team ids."""
        return tuple(t for t in (self.home_team_id, self.away_team_id) if t is not None)

    @property
    def is_placeholder(self) -> bool:
        return self.home_team_id is None or self.away_team_id is None

    def __str__(self) -> str:
        home = self.home_team_id or "TBD"
        away = self.away_team_id or "TBD"
        return f"{away} @ {home} ({self.id})"


# =============================================================================
# Configuration Models
# =============================================================================

class SeasonWindow(BaseModel):
    """Season start and end dates, both inclusive."""
    model_config = ConfigDict(extra="forbid")

    start_date: date
    end_date: date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    @property
    def num_days(self) -> int:
        return (self.end_date - self.start_date).days + 1


class SeasonConfig(BaseModel):
    """Per-season scheduling settings."""
    model_config = ConfigDict(extra="forbid")

    umpires_per_game: int = PydanticField(default=0, description="Umpires required per game")
    max_games_per_umpire_per_day: Optional[int] = PydanticField(
        default=None, description="Daily cap per umpire (null = unbounded)"
    )
    max_games_per_team_per_day: Optional[int] = PydanticField(
        default=None, description="Daily cap per team (null = unbounded)"
    )
    default_start_increment_minutes: int = PydanticField(
        default=DEFAULT_START_INCREMENT_MINUTES,
        description="Slot length for fields without their own increment",
    )


# =============================================================================
# Main Input Model
# =============================================================================

class ProblemSpec(BaseModel):
    """
    Complete problem specification for one scheduling run.

    Shape and types are checked here; semantic checks (inverted ranges,
    unknown references, duplicates) happen when a ProblemModel is built.
    """
    model_config = ConfigDict(extra="forbid")

    season: SeasonWindow
    run_id: Optional[str] = PydanticField(
        default=None, description="Caller-supplied run id (derived from the content when unset)"
    )
    league_ids: list[str] = PydanticField(description="League-seasons included in this run")
    teams: list[Team] = PydanticField(default_factory=list)
    fields: list[Field] = PydanticField(default_factory=list)
    umpires: list[Umpire] = PydanticField(default_factory=list)
    season_exclusions: list[ExclusionWindow] = PydanticField(default_factory=list)
    config: SeasonConfig = PydanticField(default_factory=SeasonConfig)
    matchups: list[Matchup] = PydanticField(default_factory=list)

    def summary(self) -> dict[str, Any]:
        """Get a summary of the problem size."""
        return {
            "season_start": self.season.start_date.isoformat(),
            "season_end": self.season.end_date.isoformat(),
            "leagues": len(self.league_ids),
            "teams": len(self.teams),
            "fields": len(self.fields),
            "umpires": len(self.umpires),
            "season_exclusions": len(self.season_exclusions),
            "matchups": len(self.matchups),
            "umpires_per_game": self.config.umpires_per_game,
        }


# =============================================================================
# JSON Loading Helpers
# =============================================================================

def load_problem_from_dict(data: dict[str, Any]) -> ProblemSpec:
    """
    Validate a raw dictionary into a ProblemSpec.

    Keys may be camelCase or snake_case.

    Raises:
        MalformedProblemError: If the data does not match the schema
    """
    converted = _convert_keys_to_snake_case(data)
    try:
        return ProblemSpec.model_validate(converted)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise MalformedProblemError(errors) from e


def load_problem_from_json(path: Union[str, Path]) -> ProblemSpec:
    """
    Load and validate a problem specification from a JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If invalid JSON
        MalformedProblemError: If the data does not match the schema
    """
    with open(Path(path)) as f:
        data = json.load(f)
    return load_problem_from_dict(data)


def _convert_keys_to_snake_case(obj: Any) -> Any:
    """Recursively convert dictionary keys from camelCase to snake_case."""

    def to_snake_case(name: str) -> str:
        name = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
        name = re.sub(r'([a-z\d])([A-Z])', r'\1_\2', name)
        return name.lower()

    if isinstance(obj, dict):
        return {to_snake_case(k): _convert_keys_to_snake_case(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_convert_keys_to_snake_case(item) for item in obj]
    else:
        return obj
