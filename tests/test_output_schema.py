"""Tests for the output schema."""

from __future__ import annotations

import json
from datetime import date, datetime

import pytest
from pydantic import ValidationError

from season_scheduler.data.models import ExclusionWindow
from season_scheduler.engine import schedule_season
from season_scheduler.output.schema import (
    GameOutput,
    ScheduleOutput,
    create_schedule_output,
    load_schedule_output,
    result_to_json,
)
from season_scheduler.problem import ProblemModel
from season_scheduler.solver import SolverStatus, UnresolvedReason
from season_scheduler.validator import ScheduleValidator


@pytest.fixture
def spec(make_spec, make_field):
    whole_week = ExclusionWindow(start=datetime(2025, 1, 1), end=datetime(2025, 1, 8))
    spec = make_spec(
        pairs=[("A", "B"), ("C", "D"), ("A", "C"), ("B", "E")],
        team_ids=["A", "B", "C", "D", "E"],
        fields=[make_field("F1"), make_field("F2")],
        umpire_ids=["U1", "U2"],
        umpires_per_game=1,
        team_exclusions={"E": [whole_week]},
    )
    spec.fields[0].name = "Main Diamond"
    spec.teams[0].name = "Aces"
    return spec


@pytest.fixture
def model(spec):
    return ProblemModel(spec)


@pytest.fixture
def output(spec, model):
    return create_schedule_output(schedule_season(spec), model)


class TestCreateScheduleOutput:
    """Tests for converting results to the output schema."""

    def test_status_and_counts(self, output):
        assert output.status == SolverStatus.PARTIAL
        assert len(output.games) == 3
        assert len(output.unresolved) == 1
        assert output.unresolved[0].matchup_id == "M4"
        assert output.unresolved[0].reason == UnresolvedReason.NO_COMPATIBLE_SLOT

    def test_game_fields(self, output):
        first = output.games[0]
        assert first.matchup_id == "M1"
        assert first.field_id == "F1"
        assert first.date == "2025-01-01"
        assert first.start == datetime(2025, 1, 1, 18, 0)
        assert first.duration_minutes == 90
        assert first.umpire_ids == ["U1"]

    def test_display_names(self, output):
        first = output.games[0]
        assert first.field_name == "Main Diamond"
        assert first.home_team_name == "Aces"
        assert first.label == "B @ Aces"

    def test_views_by_field(self, output):
        assert set(output.views.by_field) == {"F1", "F2"}
        assert output.views.by_field["F1"].name == "Main Diamond"
        assert output.views.by_field["F2"].name == "F2"

    def test_views_by_team(self, output):
        assert [g.matchup_id for g in output.views.by_team["A"].games] == ["M1", "M3"]
        assert "E" not in output.views.by_team

    def test_views_by_umpire(self, output):
        crews = sum(len(s.games) for s in output.views.by_umpire.values())
        assert crews == len(output.games)

    def test_views_by_date(self, output):
        jan_1 = output.views.by_date["2025-01-01"]
        assert jan_1.day_name == "Wednesday"
        keys = [(g.start, g.field_id) for g in jan_1.games]
        assert keys == sorted(keys)

    def test_entity_by_date(self, output):
        schedule = output.views.by_team["A"]
        assert sum(len(games) for games in schedule.by_date.values()) == len(schedule.games)

    def test_without_model(self, spec):
        output = create_schedule_output(schedule_season(spec))
        assert output.games[0].field_name is None
        assert output.views.by_field["F1"].name == "F1"

    def test_stats(self, output):
        assert output.stats.slots_considered == 28
        assert output.solve_time_seconds == output.stats.elapsed_ms / 1000.0


class TestSerialization:
    """Tests for JSON output and reading it back."""

    def test_camel_case_keys(self, output):
        data = output.to_dict()
        assert "solveTimeSeconds" in data
        assert "byField" in data["views"]
        game = data["games"][0]
        assert game["matchupId"] == "M1"
        assert game["umpireIds"] == ["U1"]
        assert game["start"] == "2025-01-01T18:00:00"
        assert data["status"] == "PARTIAL"

    def test_to_json_is_valid(self, output):
        data = json.loads(output.to_json())
        assert data["unresolved"][0]["reason"] == "NO_COMPATIBLE_SLOT"

    def test_result_to_json(self, spec, model):
        data = json.loads(result_to_json(schedule_season(spec), model))
        assert len(data["games"]) == 3

    def test_saved_schedule_audits_clean(self, output, model, tmp_path):
        path = tmp_path / "schedule.json"
        path.write_text(output.to_json())
        loaded = load_schedule_output(path)

        assert isinstance(loaded, ScheduleOutput)
        games = loaded.to_games()
        assert [g.matchup_id for g in games] == [g.matchup_id for g in output.games]
        assert games[0].slot.duration_minutes == 90

        violations = ScheduleValidator(model).validate(
            games, loaded.to_unresolved(), loaded.to_shortfalls()
        )
        assert violations == []

    def test_game_output_snake_case_input(self):
        game = GameOutput(
            matchup_id="M1",
            league_id="L1",
            home_team_id="A",
            field_id="F1",
            date="2025-01-01",
            start=datetime(2025, 1, 1, 18),
            end=datetime(2025, 1, 1, 19, 30),
            duration_minutes=90,
        )
        assert game.label == "TBD @ A"
        assert game.team_ids == ["A"]
        assert game.to_game().date == date(2025, 1, 1)


class TestGameOutputValidation:
    """Saved games must agree with themselves before they are audited."""

    @pytest.fixture
    def game_data(self):
        return {
            "matchupId": "M1",
            "leagueId": "L1",
            "homeTeamId": "A",
            "awayTeamId": "B",
            "fieldId": "F1",
            "date": "2025-01-01",
            "start": "2025-01-01T18:00:00",
            "end": "2025-01-01T19:30:00",
            "durationMinutes": 90,
        }

    def test_consistent_game(self, game_data):
        game = GameOutput.model_validate(game_data)
        assert game.to_game().end == datetime(2025, 1, 1, 19, 30)

    def test_timezone_aware_start_rejected(self, game_data):
        game_data["start"] = "2025-01-01T18:00:00Z"
        with pytest.raises(ValidationError, match="naive local time"):
            GameOutput.model_validate(game_data)

    def test_timezone_aware_end_rejected(self, game_data):
        game_data["end"] = "2025-01-01T19:30:00+02:00"
        with pytest.raises(ValidationError, match="naive local time"):
            GameOutput.model_validate(game_data)

    def test_edited_end_rejected(self, game_data):
        game_data["end"] = "2025-01-01T20:00:00"
        with pytest.raises(ValidationError, match="does not match start plus 90 minutes"):
            GameOutput.model_validate(game_data)

    def test_edited_date_rejected(self, game_data):
        game_data["date"] = "2025-01-02"
        with pytest.raises(ValidationError, match="date 2025-01-02 does not match"):
            GameOutput.model_validate(game_data)

    def test_non_positive_duration_rejected(self, game_data):
        game_data["durationMinutes"] = 0
        game_data["end"] = game_data["start"]
        with pytest.raises(ValidationError):
            GameOutput.model_validate(game_data)


class TestRunId:
    """The run id travels from the result into the saved schedule."""

    def test_output_carries_run_id(self, output, model):
        assert output.run_id == model.run_id
        assert output.run_id.startswith("sched_")

    def test_run_id_serialized(self, output):
        assert output.to_dict()["runId"] == output.run_id
