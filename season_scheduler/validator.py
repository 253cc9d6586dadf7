"""
Post-hoc schedule validation.

ScheduleValidator re-checks every hard rule over a finished schedule without
trusting how it was produced. It runs after each solve, where any violation
means the solver is broken, and on its own to audit schedules that were
edited by hand or came from elsewhere.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional, Sequence

from .data.models import Matchup
from .problem import ProblemModel
from .solver import ScheduledGame, UmpireShortfall, UnresolvedMatchup


class ViolationCode(str, Enum):
    """Kinds of hard-rule violation."""
    UNKNOWN_REFERENCE = "UNKNOWN_REFERENCE"
    MATCHUP_MISMATCH = "MATCHUP_MISMATCH"
    OUTSIDE_SEASON = "OUTSIDE_SEASON"
    OUTSIDE_GAME_WINDOW = "OUTSIDE_GAME_WINDOW"
    OFF_SLOT_BOUNDARY = "OFF_SLOT_BOUNDARY"
    FIELD_EXCLUDED = "FIELD_EXCLUDED"
    SEASON_EXCLUDED = "SEASON_EXCLUDED"
    TEAM_EXCLUDED = "TEAM_EXCLUDED"
    FIELD_DOUBLE_BOOKED = "FIELD_DOUBLE_BOOKED"
    TEAM_DOUBLE_BOOKED = "TEAM_DOUBLE_BOOKED"
    TEAM_DAILY_LIMIT = "TEAM_DAILY_LIMIT"
    UMPIRE_DOUBLE_BOOKED = "UMPIRE_DOUBLE_BOOKED"
    UMPIRE_EXCLUDED = "UMPIRE_EXCLUDED"
    UMPIRE_DAILY_LIMIT = "UMPIRE_DAILY_LIMIT"
    UMPIRE_COUNT = "UMPIRE_COUNT"
    MATCHUP_MISSING = "MATCHUP_MISSING"
    MATCHUP_DUPLICATED = "MATCHUP_DUPLICATED"


@dataclass(frozen=True)
class ViolationReport:
    """One broken rule, with the games and resource involved."""
    code: ViolationCode
    message: str
    matchup_ids: tuple[str, ...] = ()
    resource_id: Optional[str] = None
    start: Optional[datetime] = None

    @property
    def sort_key(self) -> tuple:
        return (
            self.start or datetime.min,
            self.code.value,
            self.matchup_ids,
            self.resource_id or "",
        )

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


class ScheduleValidator:
    """
    Checks a schedule against a problem model.

    Usage:
        validator = ScheduleValidator(model)
        violations = validator.validate(result.games, result.unresolved, result.shortfalls)
        assert not violations
    """

    def __init__(self, model: ProblemModel):
        self.model = model
        self._legal_starts: dict[str, frozenset[datetime]] = {}

    def validate(
        self,
        games: Sequence[ScheduledGame],
        unresolved: Iterable[UnresolvedMatchup] = (),
        shortfalls: Iterable[UmpireShortfall] = (),
        expected_matchup_ids: Optional[Iterable[str]] = None,
    ) -> list[ViolationReport]:
        """
        Validate a schedule.

        Args:
            games: Scheduled games to check
            unresolved: Matchups reported as unplaced
            shortfalls: Games reported as short of umpires
            expected_matchup_ids: Matchups that must each appear exactly once
                (defaults to every matchup in the model)

        Returns:
            Violations sorted by time, then code; empty when the schedule
            is valid
        """
        unresolved = list(unresolved)
        shortfall_by_matchup = {s.matchup_id: s for s in shortfalls}

        violations: list[ViolationReport] = []
        violations.extend(self._check_coverage(games, unresolved, expected_matchup_ids))
        for game in games:
            violations.extend(self._check_game(game, shortfall_by_matchup))
        violations.extend(self._check_double_booking(games))
        violations.extend(self._check_daily_limits(games))

        return sorted(violations, key=lambda v: v.sort_key)

    # -------------------------------------------------------------------------
    # Coverage
    # -------------------------------------------------------------------------

    def _check_coverage(
        self,
        games: Sequence[ScheduledGame],
        unresolved: Sequence[UnresolvedMatchup],
        expected_matchup_ids: Optional[Iterable[str]],
    ) -> list[ViolationReport]:
        expected = (
            list(expected_matchup_ids) if expected_matchup_ids is not None
            else list(self.model.matchups)
        )
        seen = Counter(g.matchup_id for g in games)
        seen.update(u.matchup.id for u in unresolved)

        violations = []
        for matchup_id in expected:
            count = seen.get(matchup_id, 0)
            if count == 0:
                violations.append(ViolationReport(
                    ViolationCode.MATCHUP_MISSING,
                    f"Matchup {matchup_id} is neither scheduled nor reported unresolved",
                    matchup_ids=(matchup_id,),
                ))
            elif count > 1:
                violations.append(ViolationReport(
                    ViolationCode.MATCHUP_DUPLICATED,
                    f"Matchup {matchup_id} appears {count} times",
                    matchup_ids=(matchup_id,),
                ))
        return violations

    # -------------------------------------------------------------------------
    # Per-game Checks
    # -------------------------------------------------------------------------

    def _check_game(
        self,
        game: ScheduledGame,
        shortfall_by_matchup: dict[str, UmpireShortfall],
    ) -> list[ViolationReport]:
        model = self.model
        mid = (game.matchup_id,)
        violations = []

        def report(code: ViolationCode, message: str, resource_id: Optional[str] = None) -> None:
            violations.append(ViolationReport(code, message, mid, resource_id, game.start))

        expected = model.matchups.get(game.matchup_id)
        if expected is None:
            report(ViolationCode.UNKNOWN_REFERENCE, f"Unknown matchup {game.matchup_id}")
        else:
            listed, wanted = _identity(game.matchup), _identity(expected)
            changed = [
                f"{label} {listed[label]} (expected {wanted[label]})"
                for label in listed
                if listed[label] != wanted[label]
            ]
            if changed:
                report(
                    ViolationCode.MATCHUP_MISMATCH,
                    f"Game {game.matchup_id} lists {', '.join(changed)}",
                )
            if not expected.fits_window(game.start, game.end):
                report(
                    ViolationCode.OUTSIDE_GAME_WINDOW,
                    f"{game.slot} is outside the window of matchup {game.matchup_id}",
                )
        for team_id in game.team_ids:
            if team_id not in model.teams:
                report(ViolationCode.UNKNOWN_REFERENCE, f"Unknown team {team_id}", team_id)
        for umpire_id in game.umpire_ids:
            if umpire_id not in model.umpires:
                report(ViolationCode.UNKNOWN_REFERENCE, f"Unknown umpire {umpire_id}", umpire_id)

        field_id = game.field_id
        if field_id not in model.fields:
            report(ViolationCode.UNKNOWN_REFERENCE, f"Unknown field {field_id}", field_id)
        else:
            increment = model.increment_for(field_id)
            if (
                game.slot.duration_minutes != increment
                or game.start not in self._starts_for(field_id)
            ):
                report(
                    ViolationCode.OFF_SLOT_BOUNDARY,
                    f"{game.slot} is not a legal {increment}-minute slot of field {field_id}",
                    field_id,
                )
            if model.field_excluded_on(field_id, game.date):
                report(
                    ViolationCode.FIELD_EXCLUDED,
                    f"Field {field_id} is closed on {game.date}",
                    field_id,
                )

        if not model.season.contains(game.date):
            report(
                ViolationCode.OUTSIDE_SEASON,
                f"{game.slot} is outside the season "
                f"{model.season.start_date} - {model.season.end_date}",
            )

        if model.season_excluded(game.start, game.end):
            report(ViolationCode.SEASON_EXCLUDED, f"{game.slot} falls in a season exclusion window")

        for team_id in game.team_ids:
            if team_id in model.teams and not model.team_available(team_id, game.start, game.end):
                report(
                    ViolationCode.TEAM_EXCLUDED,
                    f"Team {team_id} is excluded during {game.slot}",
                    team_id,
                )

        for umpire_id in game.umpire_ids:
            if umpire_id in model.umpires and not model.umpire_available(
                umpire_id, game.start, game.end
            ):
                report(
                    ViolationCode.UMPIRE_EXCLUDED,
                    f"Umpire {umpire_id} is excluded during {game.slot}",
                    umpire_id,
                )

        violations.extend(self._check_umpire_count(game, shortfall_by_matchup))
        return violations

    def _check_umpire_count(
        self,
        game: ScheduledGame,
        shortfall_by_matchup: dict[str, UmpireShortfall],
    ) -> list[ViolationReport]:
        required = self.model.umpires_per_game
        crew = game.umpire_ids
        mid = (game.matchup_id,)
        problems = []

        if len(set(crew)) != len(crew):
            problems.append(f"crew {list(crew)} repeats an umpire")
        if len(crew) > required:
            problems.append(f"{len(crew)} umpires assigned, {required} required")
        elif len(crew) < required:
            shortfall = shortfall_by_matchup.get(game.matchup_id)
            if shortfall is None or shortfall.assigned != len(crew):
                problems.append(
                    f"{len(crew)} umpires assigned, {required} required, "
                    "and no matching shortfall was reported"
                )

        return [
            ViolationReport(
                ViolationCode.UMPIRE_COUNT,
                f"Game {game.matchup_id}: {problem}",
                mid,
                start=game.start,
            )
            for problem in problems
        ]

    def _starts_for(self, field_id: str) -> frozenset[datetime]:
        """Legal starts for a field from availability and increment alone."""
        if field_id not in self._legal_starts:
            calendar = self.model.calendar_for(field_id, include_exclusions=False)
            self._legal_starts[field_id] = frozenset(s.start for s in calendar)
        return self._legal_starts[field_id]

    # -------------------------------------------------------------------------
    # Cross-game Checks
    # -------------------------------------------------------------------------

    def _check_double_booking(self, games: Sequence[ScheduledGame]) -> list[ViolationReport]:
        by_field: dict[str, list[ScheduledGame]] = defaultdict(list)
        by_team: dict[str, list[ScheduledGame]] = defaultdict(list)
        by_umpire: dict[str, list[ScheduledGame]] = defaultdict(list)
        for game in games:
            by_field[game.field_id].append(game)
            for team_id in game.team_ids:
                by_team[team_id].append(game)
            for umpire_id in set(game.umpire_ids):
                by_umpire[umpire_id].append(game)

        violations = []
        for code, label, groups in (
            (ViolationCode.FIELD_DOUBLE_BOOKED, "Field", by_field),
            (ViolationCode.TEAM_DOUBLE_BOOKED, "Team", by_team),
            (ViolationCode.UMPIRE_DOUBLE_BOOKED, "Umpire", by_umpire),
        ):
            for resource_id in sorted(groups):
                for first, second in _overlapping_pairs(groups[resource_id]):
                    violations.append(ViolationReport(
                        code,
                        f"{label} {resource_id} is booked for {first.matchup_id} "
                        f"({first.slot}) and {second.matchup_id} ({second.slot})",
                        (first.matchup_id, second.matchup_id),
                        resource_id,
                        second.start,
                    ))
        return violations

    def _check_daily_limits(self, games: Sequence[ScheduledGame]) -> list[ViolationReport]:
        model = self.model
        umpire_days: dict[tuple[str, date], list[ScheduledGame]] = defaultdict(list)
        team_days: dict[tuple[str, date], list[ScheduledGame]] = defaultdict(list)
        for game in games:
            for umpire_id in set(game.umpire_ids):
                umpire_days[(umpire_id, game.date)].append(game)
            for team_id in set(game.team_ids):
                team_days[(team_id, game.date)].append(game)

        violations = []
        for code, label, verb, groups, limit_for in (
            (ViolationCode.TEAM_DAILY_LIMIT, "Team", "plays", team_days,
             lambda _: model.max_games_per_team_per_day),
            (ViolationCode.UMPIRE_DAILY_LIMIT, "Umpire", "works", umpire_days,
             model.umpire_daily_limit),
        ):
            for (resource_id, day), day_games in sorted(groups.items()):
                cap = limit_for(resource_id)
                if cap is None or len(day_games) <= cap:
                    continue
                day_games = sorted(day_games, key=lambda g: g.sort_key)
                violations.append(ViolationReport(
                    code,
                    f"{label} {resource_id} {verb} {len(day_games)} games on {day}, limit is {cap}",
                    tuple(g.matchup_id for g in day_games),
                    resource_id,
                    day_games[0].start,
                ))
        return violations


def _overlapping_pairs(
    games: Iterable[ScheduledGame],
) -> list[tuple[ScheduledGame, ScheduledGame]]:
    """Every pair of games whose time ranges intersect, earlier game first."""
    ordered = sorted(games, key=lambda g: g.sort_key)
    pairs = []
    for i, first in enumerate(ordered):
        for second in ordered[i + 1:]:
            if second.start >= first.end:
                break
            pairs.append((first, second))
    return pairs


def _identity(matchup: Matchup) -> dict[str, str]:
    """The attributes a scheduled game must carry over from its matchup."""
    return {
        "league": matchup.league_id,
        "home team": matchup.home_team_id or "TBD",
        "away team": matchup.away_team_id or "TBD",
        "game type": matchup.game_type.value,
    }
