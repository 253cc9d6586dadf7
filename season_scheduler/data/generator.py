"""
Sample data generator for testing the season scheduler.

This module generates realistic league data (teams, fields, umpires,
exclusions and round-robin matchups) with configurable size.

Usage:
    from season_scheduler.data.generator import generate_sample_problem, generate_small_league

    # Generate with custom config
    spec = generate_sample_problem(GeneratorConfig(teams_per_league=8))

    # Quick test data
    spec = generate_small_league(seed=7)
"""

from __future__ import annotations

import json
import random
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any, Optional

from .models import (
    AvailabilityRule,
    ExclusionWindow,
    Field,
    FieldExclusionDate,
    GameType,
    Matchup,
    ProblemSpec,
    SeasonConfig,
    SeasonWindow,
    Team,
    Umpire,
)


# =============================================================================
# Name Data
# =============================================================================

TEAM_NAMES = [
    "Comets", "Otters", "Hornets", "Foxes", "Ravens", "Pirates", "Bandits", "Rockets",
    "Wolves", "Badgers", "Herons", "Mustangs", "Falcons", "Lynx", "Mariners", "Bison",
    "Cardinals", "Jaguars", "Owls", "Stingrays",
]

FIELD_NAMES = [
    "Riverside Park", "Memorial Field", "Oak Hill", "Lakeview Diamond",
    "Northgate", "Cedar Grove", "Harbor Field", "Westend Commons",
]

UMPIRE_NAMES = [
    "Alex Moreno", "Jordan Price", "Sam Whitaker", "Casey Nguyen", "Riley Brooks",
    "Morgan Hale", "Taylor Quinn", "Jamie Ortiz", "Drew Patel", "Avery Collins",
]

# Exclusion notes
EXCLUSION_NOTES = [
    "Tournament travel",
    "School event",
    "Field maintenance",
    "Family commitment",
    "Work conflict",
]


# =============================================================================
# Generator Configuration
# =============================================================================

@dataclass
class GeneratorConfig:
    """Configuration for data generation.

    The defaults create comfortably solvable problems: a double round robin
    for six teams needs 30 games, while two fields over eight weeks offer
    well over 200 slots.
    """
    # Entity counts
    num_leagues: int = 1
    teams_per_league: int = 6
    num_fields: int = 2
    num_umpires: int = 4

    # Season
    season_start: date = date(2025, 4, 7)  # a Monday
    season_weeks: int = 8
    rounds: int = 2  # round robin repetitions; home and away alternate
    playoff_placeholders: int = 1  # TBD games per league

    # Field settings
    start_increment_minutes: int = 90
    weeknight_start: int = 1080  # 6:00 PM
    weeknight_end: int = 1260    # 9:00 PM
    saturday_start: int = 540    # 9:00 AM
    saturday_end: int = 1260
    field_closures: int = 1      # closed dates per field

    # Exclusions
    team_exclusions: int = 1     # evenings per team
    umpire_exclusions: int = 1   # evenings per umpire
    holiday: bool = True         # one season-wide blackout day

    # Season config
    umpires_per_game: int = 1
    max_games_per_umpire_per_day: Optional[int] = 2
    max_games_per_team_per_day: Optional[int] = None

    # Randomization
    seed: Optional[int] = None


# =============================================================================
# Generator Functions
# =============================================================================

def generate_sample_problem(config: GeneratorConfig | None = None) -> ProblemSpec:
    """
    Generate a sample season problem.

    Args:
        config: Generator configuration (uses defaults if None)

    Returns:
        ProblemSpec with generated data
    """
    if config is None:
        config = GeneratorConfig()

    rng = random.Random(config.seed)
    season = SeasonWindow(
        start_date=config.season_start,
        end_date=config.season_start + timedelta(days=7 * config.season_weeks - 1),
    )

    league_ids = [f"L{i + 1}" for i in range(config.num_leagues)]
    teams = _generate_teams(config, league_ids, season, rng)
    fields = _generate_fields(config, season, rng)
    umpires = _generate_umpires(config, season, rng)
    matchups = _generate_matchups(config, league_ids, teams)

    season_exclusions = []
    if config.holiday:
        holiday = season.start_date + timedelta(days=7 * (config.season_weeks // 2))
        season_exclusions.append(ExclusionWindow(
            start=datetime.combine(holiday, time()),
            end=datetime.combine(holiday + timedelta(days=1), time()),
            note="Holiday",
        ))

    return ProblemSpec(
        season=season,
        league_ids=league_ids,
        teams=teams,
        fields=fields,
        umpires=umpires,
        season_exclusions=season_exclusions,
        config=SeasonConfig(
            umpires_per_game=config.umpires_per_game,
            max_games_per_umpire_per_day=config.max_games_per_umpire_per_day,
            max_games_per_team_per_day=config.max_games_per_team_per_day,
            default_start_increment_minutes=config.start_increment_minutes,
        ),
        matchups=matchups,
    )


def generate_small_league(seed: int | None = None) -> ProblemSpec:
    """
    Generate a small league for quick testing.

    - 4 teams, 1 field, 2 umpires
    - 4 weeks, double round robin (12 games)
    """
    config = GeneratorConfig(
        teams_per_league=4,
        num_fields=1,
        num_umpires=2,
        season_weeks=4,
        playoff_placeholders=0,
        seed=seed,
    )
    return generate_sample_problem(config)


def generate_large_league(seed: int | None = None) -> ProblemSpec:
    """
    Generate a multi-league season for stress testing.

    - 3 leagues of 8 teams, 4 fields, 10 umpires
    - 10 weeks, double round robin (168 games plus playoffs)
    """
    config = GeneratorConfig(
        num_leagues=3,
        teams_per_league=8,
        num_fields=4,
        num_umpires=10,
        season_weeks=10,
        team_exclusions=2,
        seed=seed,
    )
    return generate_sample_problem(config)


# =============================================================================
# Private Generator Helpers
# =============================================================================

def _random_evening(season: SeasonWindow, rng: random.Random) -> tuple[datetime, datetime]:
    day = season.start_date + timedelta(days=rng.randrange(season.num_days))
    start = datetime.combine(day, time(18, 0))
    return start, start + timedelta(hours=3)


def _generate_teams(
    config: GeneratorConfig,
    league_ids: list[str],
    season: SeasonWindow,
    rng: random.Random,
) -> list[Team]:
    teams = []
    for league_id in league_ids:
        for i in range(config.teams_per_league):
            n = len(teams)
            exclusions = []
            for _ in range(config.team_exclusions):
                start, end = _random_evening(season, rng)
                exclusions.append(ExclusionWindow(
                    start=start, end=end, note=rng.choice(EXCLUSION_NOTES)
                ))
            teams.append(Team(
                id=f"{league_id}-T{i + 1}",
                name=TEAM_NAMES[n % len(TEAM_NAMES)],
                league_id=league_id,
                exclusions=exclusions,
            ))
    return teams


def _generate_fields(
    config: GeneratorConfig,
    season: SeasonWindow,
    rng: random.Random,
) -> list[Field]:
    fields = []
    for i in range(config.num_fields):
        closures = sorted({
            season.start_date + timedelta(days=rng.randrange(season.num_days))
            for _ in range(config.field_closures)
        })
        fields.append(Field(
            id=f"F{i + 1}",
            name=FIELD_NAMES[i % len(FIELD_NAMES)],
            availability=[
                AvailabilityRule(
                    days_of_week=[0, 1, 2, 3, 4],
                    start_minutes=config.weeknight_start,
                    end_minutes=config.weeknight_end,
                ),
                AvailabilityRule(
                    days_of_week=[5],
                    start_minutes=config.saturday_start,
                    end_minutes=config.saturday_end,
                ),
            ],
            exclusion_dates=[
                FieldExclusionDate(date=d, note="Field maintenance") for d in closures
            ],
        ))
    return fields


def _generate_umpires(
    config: GeneratorConfig,
    season: SeasonWindow,
    rng: random.Random,
) -> list[Umpire]:
    umpires = []
    for i in range(config.num_umpires):
        exclusions = []
        for _ in range(config.umpire_exclusions):
            start, end = _random_evening(season, rng)
            exclusions.append(ExclusionWindow(
                start=start, end=end, note=rng.choice(EXCLUSION_NOTES)
            ))
        umpires.append(Umpire(
            id=f"U{i + 1}",
            name=UMPIRE_NAMES[i % len(UMPIRE_NAMES)],
            exclusions=exclusions,
        ))
    return umpires


def round_robin(team_ids: list[str]) -> list[list[tuple[str, str]]]:
    """
    Pair teams with the circle method.

    Returns one list of (home, away) pairs per round. With an odd number of
    teams one team sits out each round.
    """
    slots: list[Optional[str]] = list(team_ids)
    if len(slots) % 2:
        slots.append(None)

    n = len(slots)
    rounds = []
    for r in range(n - 1):
        pairs = []
        for i in range(n // 2):
            a, b = slots[i], slots[n - 1 - i]
            if a is None or b is None:
                continue
            # Alternate home advantage across rounds
            pairs.append((a, b) if (r + i) % 2 == 0 else (b, a))
        rounds.append(pairs)
        slots = [slots[0]] + [slots[-1]] + slots[1:-1]
    return rounds


def _generate_matchups(
    config: GeneratorConfig,
    league_ids: list[str],
    teams: list[Team],
) -> list[Matchup]:
    matchups = []
    for league_id in league_ids:
        team_ids = [t.id for t in teams if t.league_id == league_id]
        number = 0
        for repetition in range(config.rounds):
            for pairs in round_robin(team_ids):
                for home, away in pairs:
                    if repetition % 2:
                        home, away = away, home
                    number += 1
                    matchups.append(Matchup(
                        id=f"{league_id}-G{number:03d}",
                        league_id=league_id,
                        home_team_id=home,
                        away_team_id=away,
                    ))
        for _ in range(config.playoff_placeholders):
            number += 1
            matchups.append(Matchup(
                id=f"{league_id}-G{number:03d}",
                league_id=league_id,
                game_type=GameType.PLAYOFF,
            ))
    return matchups


# =============================================================================
# Utility Functions
# =============================================================================

def save_generated_problem(spec: ProblemSpec, filepath: str | Path) -> None:
    """
    Save a generated problem to a JSON file with camelCase keys.

    Args:
        spec: Generated ProblemSpec
        filepath: Path to save JSON file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        json.dump(problem_to_dict(spec), f, indent=2)


def problem_to_dict(spec: ProblemSpec) -> dict[str, Any]:
    """Convert a ProblemSpec to a camelCase dictionary for JSON serialization."""
    return _convert_keys_to_camel_case(spec.model_dump(mode="json"))


def _convert_keys_to_camel_case(obj: Any) -> Any:
    """Recursively convert dictionary keys from snake_case to camelCase."""

    def to_camel_case(name: str) -> str:
        return re.sub(r'_([a-z\d])', lambda m: m.group(1).upper(), name)

    if isinstance(obj, dict):
        return {to_camel_case(k): _convert_keys_to_camel_case(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_convert_keys_to_camel_case(item) for item in obj]
    else:
        return obj


def get_generation_stats(spec: ProblemSpec, total_slots: int) -> dict[str, Any]:
    """
    Get statistics about a generated problem.

    Args:
        spec: Generated ProblemSpec
        total_slots: Number of legal field slots in the season

    Returns:
        Dictionary with statistics
    """
    games_per_team: dict[str, int] = {t.id: 0 for t in spec.teams}
    for m in spec.matchups:
        for team_id in m.team_ids:
            games_per_team[team_id] += 1

    utilization = len(spec.matchups) / total_slots * 100 if total_slots > 0 else 0

    return {
        **spec.summary(),
        "placeholders": sum(1 for m in spec.matchups if m.is_placeholder),
        "total_slots": total_slots,
        "utilization_percent": round(utilization, 1),
        "max_games_per_team": max(games_per_team.values(), default=0),
        "is_feasible": utilization <= 100,
    }
