"""Shared fixtures for building small scheduling problems."""

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

import pytest

from season_scheduler.data.models import (
    AvailabilityRule,
    ExclusionWindow,
    Field,
    FieldExclusionDate,
    Matchup,
    ProblemSpec,
    SeasonConfig,
    SeasonWindow,
    Team,
    Umpire,
)


@pytest.fixture
def make_field():
    """Factory for a field open every day over one range."""

    def _make(
        field_id: str = "F1",
        start_minutes: int = 1080,
        end_minutes: int = 1260,
        increment: Optional[int] = 90,
        days_of_week: Sequence[int] = (),
        closed_on: Sequence[date] = (),
    ) -> Field:
        return Field(
            id=field_id,
            start_increment_minutes=increment,
            availability=[
                AvailabilityRule(
                    days_of_week=list(days_of_week),
                    start_minutes=start_minutes,
                    end_minutes=end_minutes,
                )
            ],
            exclusion_dates=[FieldExclusionDate(date=d) for d in closed_on],
        )

    return _make


@pytest.fixture
def make_spec(make_field):
    """
    Factory for a one-league problem in the first week of 2025.

    Teams are created from ``team_ids``; matchups are given as
    (home, away) pairs and numbered M1, M2, ...
    """

    def _make(
        pairs: Sequence[tuple[Optional[str], Optional[str]]] = (("A", "B"),),
        team_ids: Sequence[str] = ("A", "B"),
        fields: Optional[Sequence[Field]] = None,
        umpire_ids: Sequence[str] = (),
        start: date = date(2025, 1, 1),
        end: date = date(2025, 1, 7),
        umpires_per_game: int = 0,
        max_games_per_umpire_per_day: Optional[int] = None,
        max_games_per_team_per_day: Optional[int] = None,
        team_exclusions: Optional[dict[str, list[ExclusionWindow]]] = None,
        umpire_exclusions: Optional[dict[str, list[ExclusionWindow]]] = None,
        season_exclusions: Sequence[ExclusionWindow] = (),
    ) -> ProblemSpec:
        team_exclusions = team_exclusions or {}
        umpire_exclusions = umpire_exclusions or {}
        return ProblemSpec(
            season=SeasonWindow(start_date=start, end_date=end),
            league_ids=["L1"],
            teams=[
                Team(id=t, league_id="L1", exclusions=team_exclusions.get(t, []))
                for t in team_ids
            ],
            fields=list(fields) if fields is not None else [make_field()],
            umpires=[
                Umpire(id=u, exclusions=umpire_exclusions.get(u, []))
                for u in umpire_ids
            ],
            season_exclusions=list(season_exclusions),
            config=SeasonConfig(
                umpires_per_game=umpires_per_game,
                max_games_per_umpire_per_day=max_games_per_umpire_per_day,
                max_games_per_team_per_day=max_games_per_team_per_day,
            ),
            matchups=[
                Matchup(id=f"M{i + 1}", league_id="L1", home_team_id=home, away_team_id=away)
                for i, (home, away) in enumerate(pairs)
            ],
        )

    return _make
