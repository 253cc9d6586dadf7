"""Tests for post-hoc schedule validation."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from season_scheduler.data.models import ExclusionWindow, Matchup
from season_scheduler.problem import ProblemModel
from season_scheduler.slots import Slot
from season_scheduler.solver import (
    ScheduledGame,
    UmpireShortfall,
    UnresolvedMatchup,
    UnresolvedReason,
)
from season_scheduler.validator import ScheduleValidator, ViolationCode, ViolationReport


def game(
    matchup_id: str,
    start: datetime,
    field_id: str = "F1",
    home: str | None = "A",
    away: str | None = "B",
    umpires: tuple[str, ...] = (),
    minutes: int = 90,
) -> ScheduledGame:
    matchup = Matchup(id=matchup_id, league_id="L1", home_team_id=home, away_team_id=away)
    return ScheduledGame(matchup, Slot(field_id, start, minutes), umpires)


def codes(violations: list[ViolationReport]) -> list[ViolationCode]:
    return [v.code for v in violations]


@pytest.fixture
def make_validator(make_spec, make_field):
    def _make(**kwargs):
        kwargs.setdefault("pairs", [("A", "B"), ("C", "D")])
        kwargs.setdefault("team_ids", ["A", "B", "C", "D"])
        kwargs.setdefault("fields", [make_field("F1"), make_field("F2")])
        kwargs.setdefault("umpire_ids", ["U1", "U2"])
        return ScheduleValidator(ProblemModel(make_spec(**kwargs)))

    return _make


JAN_1_6PM = datetime(2025, 1, 1, 18, 0)
JAN_1_730PM = datetime(2025, 1, 1, 19, 30)


class TestCleanSchedule:
    """A schedule that honours every rule."""

    def test_no_violations(self, make_validator):
        games = [
            game("M1", JAN_1_6PM, "F1", "A", "B"),
            game("M2", JAN_1_6PM, "F2", "C", "D"),
        ]
        assert make_validator().validate(games) == []

    def test_unresolved_counts_as_covered(self, make_validator):
        unresolved = [UnresolvedMatchup(
            Matchup(id="M2", league_id="L1", home_team_id="C", away_team_id="D"),
            UnresolvedReason.NO_COMPATIBLE_SLOT,
        )]
        games = [game("M1", JAN_1_6PM)]
        assert make_validator().validate(games, unresolved) == []

    def test_back_to_back_is_not_overlap(self, make_validator):
        games = [
            game("M1", JAN_1_6PM, "F1", "A", "B"),
            game("M2", JAN_1_730PM, "F1", "B", "A"),
        ]
        validator = make_validator(pairs=[("A", "B"), ("B", "A")])
        assert validator.validate(games) == []


class TestCoverage:
    """Every expected matchup appears exactly once."""

    def test_missing(self, make_validator):
        violations = make_validator().validate([game("M1", JAN_1_6PM)])
        assert codes(violations) == [ViolationCode.MATCHUP_MISSING]
        assert violations[0].matchup_ids == ("M2",)
        assert violations[0].start is None

    def test_duplicated(self, make_validator):
        games = [
            game("M1", JAN_1_6PM, "F1"),
            game("M1", datetime(2025, 1, 2, 18), "F1"),
            game("M2", JAN_1_6PM, "F2", "C", "D"),
        ]
        violations = make_validator().validate(games)
        assert codes(violations) == [ViolationCode.MATCHUP_DUPLICATED]

    def test_placed_and_unresolved_is_duplicate(self, make_validator):
        m1 = game("M1", JAN_1_6PM)
        unresolved = [UnresolvedMatchup(m1.matchup, UnresolvedReason.BUDGET_EXCEEDED)]
        violations = make_validator().validate([m1], unresolved, expected_matchup_ids=["M1"])
        assert codes(violations) == [ViolationCode.MATCHUP_DUPLICATED]

    def test_expected_ids_override(self, make_validator):
        violations = make_validator().validate([], expected_matchup_ids=[])
        assert violations == []


class TestPerGameRules:
    """Rules that can be checked one game at a time."""

    def test_unknown_references(self, make_validator):
        games = [game("M9", JAN_1_6PM, "F9", "A", "Z", umpires=("U9",))]
        violations = make_validator(umpires_per_game=1).validate(games, expected_matchup_ids=[])
        assert codes(violations) == [ViolationCode.UNKNOWN_REFERENCE] * 4
        resources = {v.resource_id for v in violations}
        assert resources == {None, "F9", "Z", "U9"}

    def test_off_slot_start(self, make_validator):
        games = [game("M1", datetime(2025, 1, 1, 18, 30))]
        violations = make_validator().validate(games, expected_matchup_ids=["M1"])
        assert codes(violations) == [ViolationCode.OFF_SLOT_BOUNDARY]
        assert violations[0].resource_id == "F1"

    def test_off_slot_duration(self, make_validator):
        games = [game("M1", JAN_1_6PM, minutes=60)]
        violations = make_validator().validate(games, expected_matchup_ids=["M1"])
        assert codes(violations) == [ViolationCode.OFF_SLOT_BOUNDARY]

    def test_field_excluded(self, make_validator, make_field):
        validator = make_validator(fields=[make_field(closed_on=[date(2025, 1, 1)])])
        violations = validator.validate([game("M1", JAN_1_6PM)], expected_matchup_ids=["M1"])
        assert codes(violations) == [ViolationCode.FIELD_EXCLUDED]

    def test_outside_season(self, make_validator):
        games = [game("M1", datetime(2025, 1, 8, 18))]
        violations = make_validator().validate(games, expected_matchup_ids=["M1"])
        assert ViolationCode.OUTSIDE_SEASON in codes(violations)

    def test_season_excluded(self, make_validator):
        holiday = ExclusionWindow(start=datetime(2025, 1, 1), end=datetime(2025, 1, 2))
        validator = make_validator(season_exclusions=[holiday])
        violations = validator.validate([game("M1", JAN_1_6PM)], expected_matchup_ids=["M1"])
        assert codes(violations) == [ViolationCode.SEASON_EXCLUDED]

    def test_team_excluded(self, make_validator):
        away = ExclusionWindow(start=datetime(2025, 1, 1, 19), end=datetime(2025, 1, 1, 20))
        validator = make_validator(team_exclusions={"B": [away]})
        violations = validator.validate([game("M1", JAN_1_6PM)], expected_matchup_ids=["M1"])
        assert codes(violations) == [ViolationCode.TEAM_EXCLUDED]
        assert violations[0].resource_id == "B"

    def test_umpire_excluded(self, make_validator):
        away = ExclusionWindow(start=datetime(2025, 1, 1), end=datetime(2025, 1, 2))
        validator = make_validator(umpires_per_game=1, umpire_exclusions={"U1": [away]})
        games = [game("M1", JAN_1_6PM, umpires=("U1",))]
        violations = validator.validate(games, expected_matchup_ids=["M1"])
        assert codes(violations) == [ViolationCode.UMPIRE_EXCLUDED]

    def test_placeholder_skips_missing_team(self, make_validator):
        games = [game("M1", JAN_1_6PM, home="A", away=None)]
        assert make_validator(pairs=[("A", None), ("C", "D")]).validate(games, expected_matchup_ids=["M1"]) == []


class TestUmpireCount:
    """Crew size matches the requirement or a reported shortfall."""

    def test_too_few_without_shortfall(self, make_validator):
        validator = make_validator(umpires_per_game=2)
        games = [game("M1", JAN_1_6PM, umpires=("U1",))]
        violations = validator.validate(games, expected_matchup_ids=["M1"])
        assert codes(violations) == [ViolationCode.UMPIRE_COUNT]

    def test_too_few_with_matching_shortfall(self, make_validator):
        validator = make_validator(umpires_per_game=2)
        games = [game("M1", JAN_1_6PM, umpires=("U1",))]
        shortfalls = [UmpireShortfall("M1", JAN_1_6PM, required=2, assigned=1)]
        assert validator.validate(games, shortfalls=shortfalls, expected_matchup_ids=["M1"]) == []

    def test_shortfall_with_wrong_count(self, make_validator):
        validator = make_validator(umpires_per_game=2)
        games = [game("M1", JAN_1_6PM, umpires=("U1",))]
        shortfalls = [UmpireShortfall("M1", JAN_1_6PM, required=2, assigned=0)]
        violations = validator.validate(games, shortfalls=shortfalls, expected_matchup_ids=["M1"])
        assert codes(violations) == [ViolationCode.UMPIRE_COUNT]

    def test_too_many(self, make_validator):
        validator = make_validator(umpires_per_game=1)
        games = [game("M1", JAN_1_6PM, umpires=("U1", "U2"))]
        violations = validator.validate(games, expected_matchup_ids=["M1"])
        assert codes(violations) == [ViolationCode.UMPIRE_COUNT]

    def test_repeated_umpire(self, make_validator):
        validator = make_validator(umpires_per_game=2)
        games = [game("M1", JAN_1_6PM, umpires=("U1", "U1"))]
        violations = validator.validate(games, expected_matchup_ids=["M1"])
        assert codes(violations) == [ViolationCode.UMPIRE_COUNT]
        assert "repeats" in violations[0].message


class TestDoubleBooking:
    """Resources used by overlapping games."""

    def test_field_double_booked(self, make_validator):
        games = [
            game("M1", JAN_1_6PM, "F1", "A", "B"),
            game("M2", JAN_1_6PM, "F1", "C", "D"),
        ]
        violations = make_validator().validate(games)
        assert codes(violations) == [ViolationCode.FIELD_DOUBLE_BOOKED]
        assert violations[0].matchup_ids == ("M1", "M2")
        assert violations[0].resource_id == "F1"

    def test_team_double_booked(self, make_validator):
        games = [
            game("M1", JAN_1_6PM, "F1", "A", "B"),
            game("M2", JAN_1_6PM, "F2", "A", "D"),
        ]
        violations = make_validator(pairs=[("A", "B"), ("A", "D")]).validate(games)
        assert codes(violations) == [ViolationCode.TEAM_DOUBLE_BOOKED]
        assert violations[0].resource_id == "A"

    def test_umpire_double_booked(self, make_validator):
        games = [
            game("M1", JAN_1_6PM, "F1", "A", "B", umpires=("U1",)),
            game("M2", JAN_1_6PM, "F2", "C", "D", umpires=("U1",)),
        ]
        violations = make_validator(umpires_per_game=1).validate(games)
        assert codes(violations) == [ViolationCode.UMPIRE_DOUBLE_BOOKED]

    def test_partial_overlap(self, make_validator, make_field):
        validator = make_validator(
            pairs=[("A", "B"), ("A", "D")],
            fields=[make_field("F1"), make_field("F2", start_minutes=1125)],
        )
        games = [
            game("M1", JAN_1_6PM, "F1", "A", "B"),
            game("M2", datetime(2025, 1, 1, 18, 45), "F2", "A", "D"),
        ]
        violations = validator.validate(games)
        assert codes(violations) == [ViolationCode.TEAM_DOUBLE_BOOKED]
        assert violations[0].start == datetime(2025, 1, 1, 18, 45)


class TestDailyLimit:
    """Umpires and teams over their per-day caps."""

    def test_over_cap(self, make_validator):
        validator = make_validator(umpires_per_game=1, max_games_per_umpire_per_day=1)
        games = [
            game("M1", JAN_1_6PM, "F1", "A", "B", umpires=("U1",)),
            game("M2", JAN_1_730PM, "F1", "C", "D", umpires=("U1",)),
        ]
        violations = validator.validate(games)
        assert codes(violations) == [ViolationCode.UMPIRE_DAILY_LIMIT]
        assert violations[0].matchup_ids == ("M1", "M2")
        assert violations[0].resource_id == "U1"

    def test_no_cap(self, make_validator):
        validator = make_validator(umpires_per_game=1)
        games = [
            game("M1", JAN_1_6PM, "F1", "A", "B", umpires=("U1",)),
            game("M2", JAN_1_730PM, "F1", "C", "D", umpires=("U1",)),
        ]
        assert validator.validate(games) == []

    def test_umpire_own_cap(self, make_validator):
        validator = make_validator(umpires_per_game=1)
        validator.model.umpires["U1"] = validator.model.umpires["U1"].model_copy(
            update={"max_games_per_day": 1}
        )
        games = [
            game("M1", JAN_1_6PM, "F1", "A", "B", umpires=("U1",)),
            game("M2", JAN_1_730PM, "F1", "C", "D", umpires=("U1",)),
        ]
        violations = validator.validate(games)
        assert codes(violations) == [ViolationCode.UMPIRE_DAILY_LIMIT]
        assert "limit is 1" in violations[0].message

    def test_team_over_cap(self, make_validator):
        validator = make_validator(pairs=[("A", "B"), ("A", "C")], max_games_per_team_per_day=1)
        games = [
            game("M1", JAN_1_6PM, "F1", "A", "B"),
            game("M2", JAN_1_730PM, "F1", "A", "C"),
        ]
        violations = validator.validate(games)
        assert codes(violations) == [ViolationCode.TEAM_DAILY_LIMIT]
        assert violations[0].resource_id == "A"
        assert violations[0].matchup_ids == ("M1", "M2")


class TestMatchupIdentity:
    """Scheduled games must match the matchup they claim to be."""

    def test_edited_opponent(self, make_validator):
        games = [
            game("M1", JAN_1_6PM, "F1", "A", "C"),
            game("M2", JAN_1_6PM, "F2", "C", "D"),
        ]
        violations = make_validator().validate(games)
        assert ViolationCode.MATCHUP_MISMATCH in codes(violations)
        mismatch = next(v for v in violations if v.code == ViolationCode.MATCHUP_MISMATCH)
        assert mismatch.matchup_ids == ("M1",)
        assert "away team C (expected B)" in mismatch.message

    def test_edited_league(self, make_validator):
        edited = ScheduledGame(
            Matchup(id="M1", league_id="L2", home_team_id="A", away_team_id="B"),
            Slot("F1", JAN_1_6PM, 90),
        )
        violations = make_validator().validate([edited], expected_matchup_ids=["M1"])
        assert codes(violations) == [ViolationCode.MATCHUP_MISMATCH]
        assert "league L2 (expected L1)" in violations[0].message

    def test_outside_game_window(self, make_validator):
        validator = make_validator()
        validator.model.matchups["M1"] = validator.model.matchups["M1"].model_copy(
            update={"earliest_start": datetime(2025, 1, 2)}
        )
        violations = validator.validate([game("M1", JAN_1_6PM)], expected_matchup_ids=["M1"])
        assert codes(violations) == [ViolationCode.OUTSIDE_GAME_WINDOW]


class TestReportOrdering:
    """Violations are sorted by time, then code."""

    def test_sorted(self, make_validator):
        games = [
            game("M1", datetime(2025, 1, 2, 18), "F1", "A", "B"),
            game("M2", datetime(2025, 1, 2, 18), "F1", "A", "D"),
            game("M3", datetime(2025, 1, 1, 18, 30), "F2", "C", "D"),
        ]
        violations = make_validator(pairs=[("A", "B"), ("A", "D"), ("C", "D"), ("B", "C")]).validate(games)
        assert codes(violations) == [
            ViolationCode.MATCHUP_MISSING,
            ViolationCode.OFF_SLOT_BOUNDARY,
            ViolationCode.FIELD_DOUBLE_BOOKED,
            ViolationCode.TEAM_DOUBLE_BOOKED,
        ]
        starts = [v.start or datetime.min for v in violations]
        assert starts == sorted(starts)

    def test_str(self):
        report = ViolationReport(ViolationCode.UMPIRE_COUNT, "Game M1: too many")
        assert str(report) == "[UMPIRE_COUNT] Game M1: too many"
