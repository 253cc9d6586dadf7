"""
In-memory problem model for one scheduling run.

ProblemModel validates a ProblemSpec and indexes it for constant-time lookups
during search: field -> rules, field -> exclusion dates, field -> resolved
increment, team -> exclusion windows, umpire -> exclusion windows. It never
mutates the ProblemSpec it was built from.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import date, datetime
from typing import Any, Iterable, Optional

from .data.models import (
    AvailabilityRule,
    ExclusionWindow,
    Field,
    Matchup,
    ProblemSpec,
    SeasonConfig,
    SeasonWindow,
    Team,
    Umpire,
    MAX_UMPIRES_PER_GAME,
)
from .errors import MalformedProblemError
from .slots import SlotCalendar

logger = logging.getLogger(__name__)


class ProblemModel:
    """
    Validated, indexed view of a ProblemSpec.

    Usage:
        model = ProblemModel(spec)
        calendars = model.build_calendars()
        model.team_available("T1", start, end)

    Raises:
        MalformedProblemError: If the problem is structurally invalid
    """

    def __init__(self, spec: ProblemSpec, idempotency_key: Optional[str] = None):
        self.spec = spec

        errors = _collect_errors(spec)
        if errors:
            raise MalformedProblemError(errors)

        self.season: SeasonWindow = spec.season
        self.config: SeasonConfig = spec.config
        self.league_ids: frozenset[str] = frozenset(spec.league_ids)

        self.teams: dict[str, Team] = {t.id: t for t in spec.teams}
        self.fields: dict[str, Field] = {f.id: f for f in spec.fields}
        self.umpires: dict[str, Umpire] = {u.id: u for u in spec.umpires}
        self.matchups: dict[str, Matchup] = {m.id: m for m in spec.matchups}

        # Per-field data, defaults resolved once
        self.field_rules: dict[str, tuple[AvailabilityRule, ...]] = {
            f.id: tuple(r for r in f.availability if r.enabled) for f in spec.fields
        }
        self.field_exclusion_dates: dict[str, frozenset[date]] = {
            f.id: frozenset(d.date for d in f.exclusion_dates if d.enabled)
            for f in spec.fields
        }
        self.field_increments: dict[str, int] = {
            f.id: (
                f.start_increment_minutes
                if f.start_increment_minutes is not None
                else spec.config.default_start_increment_minutes
            )
            for f in spec.fields
        }

        # Enabled exclusion windows only
        self.team_exclusions: dict[str, tuple[ExclusionWindow, ...]] = {
            t.id: tuple(w for w in t.exclusions if w.enabled) for t in spec.teams
        }
        self.umpire_exclusions: dict[str, tuple[ExclusionWindow, ...]] = {
            u.id: tuple(w for w in u.exclusions if w.enabled) for u in spec.umpires
        }
        self.season_exclusions: tuple[ExclusionWindow, ...] = tuple(
            w for w in spec.season_exclusions if w.enabled
        )

        self.run_id: str = spec.run_id or deterministic_run_id(spec, idempotency_key)

        logger.debug(
            "Built problem model: %d fields, %d teams, %d umpires, %d matchups",
            len(self.fields), len(self.teams), len(self.umpires), len(self.matchups),
        )

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def umpires_per_game(self) -> int:
        return self.config.umpires_per_game

    @property
    def max_games_per_umpire_per_day(self) -> Optional[int]:
        """Daily cap per umpire; None means unbounded."""
        return self.config.max_games_per_umpire_per_day

    @property
    def max_games_per_team_per_day(self) -> Optional[int]:
        """Daily cap per team; None means unbounded."""
        return self.config.max_games_per_team_per_day

    def umpire_daily_limit(self, umpire_id: str) -> Optional[int]:
        """
        Effective daily cap for one umpire: the smaller of the season cap and
        the umpire's own cap, whichever are set.
        """
        season_cap = self.config.max_games_per_umpire_per_day
        umpire = self.umpires.get(umpire_id)
        own_cap = umpire.max_games_per_day if umpire is not None else None
        caps = [c for c in (season_cap, own_cap) if c is not None]
        return min(caps) if caps else None

    def increment_for(self, field_id: str) -> int:
        return self.field_increments[field_id]

    # -------------------------------------------------------------------------
    # Availability Queries
    # -------------------------------------------------------------------------

    def season_excluded(self, start: datetime, end: datetime) -> bool:
        """Whether [start, end) touches an enabled season-wide window."""
        return any(w.overlaps(start, end) for w in self.season_exclusions)

    def field_excluded_on(self, field_id: str, day: date) -> bool:
        return day in self.field_exclusion_dates.get(field_id, frozenset())

    def team_available(self, team_id: str, start: datetime, end: datetime) -> bool:
        """Whether the team has no enabled exclusion window over [start, end)."""
        return not any(
            w.overlaps(start, end) for w in self.team_exclusions.get(team_id, ())
        )

    def umpire_available(self, umpire_id: str, start: datetime, end: datetime) -> bool:
        """Whether the umpire has no enabled exclusion window over [start, end)."""
        return not any(
            w.overlaps(start, end) for w in self.umpire_exclusions.get(umpire_id, ())
        )

    def matchup_available(self, matchup: Matchup, start: datetime, end: datetime) -> bool:
        """
        Whether [start, end) is inside the matchup's own window and every known
        participant is free over it.
        """
        if not matchup.fits_window(start, end):
            return False
        return all(self.team_available(t, start, end) for t in matchup.team_ids)

    # -------------------------------------------------------------------------
    # Calendars
    # -------------------------------------------------------------------------

    def calendar_for(self, field_id: str, include_exclusions: bool = True) -> SlotCalendar:
        """
        Build the slot calendar for one field.

        With include_exclusions=False the calendar reflects availability and
        increment only, which is what slot-boundary auditing needs.
        """
        return SlotCalendar(
            field_id=field_id,
            season=self.season,
            rules=self.field_rules[field_id],
            exclusion_dates=self.field_exclusion_dates[field_id] if include_exclusions else (),
            increment_minutes=self.field_increments[field_id],
            season_exclusions=self.season_exclusions if include_exclusions else (),
        )

    def build_calendars(self) -> dict[str, SlotCalendar]:
        """Build calendars for all fields, keyed by field id in id order."""
        return {fid: self.calendar_for(fid) for fid in sorted(self.fields)}

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def summary(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            **self.spec.summary(),
            "increments": dict(sorted(self.field_increments.items())),
        }


# =============================================================================
# Validation
# =============================================================================

def _collect_errors(spec: ProblemSpec) -> list[str]:
    """Collect every structural problem with a spec."""
    errors: list[str] = []

    if spec.season.end_date < spec.season.start_date:
        errors.append(
            f"Season end date {spec.season.end_date} precedes start date "
            f"{spec.season.start_date}"
        )

    # Season config
    config = spec.config
    if config.umpires_per_game < 0:
        errors.append(f"umpires_per_game must not be negative, got {config.umpires_per_game}")
    elif config.umpires_per_game > MAX_UMPIRES_PER_GAME:
        errors.append(
            f"umpires_per_game must be at most {MAX_UMPIRES_PER_GAME}, "
            f"got {config.umpires_per_game}"
        )
    if config.max_games_per_umpire_per_day is not None and config.max_games_per_umpire_per_day < 1:
        errors.append(
            "max_games_per_umpire_per_day must be a positive integer or null, "
            f"got {config.max_games_per_umpire_per_day}"
        )
    if config.max_games_per_team_per_day is not None and config.max_games_per_team_per_day < 1:
        errors.append(
            "max_games_per_team_per_day must be a positive integer or null, "
            f"got {config.max_games_per_team_per_day}"
        )
    if config.default_start_increment_minutes < 1:
        errors.append(
            "default_start_increment_minutes must be positive, "
            f"got {config.default_start_increment_minutes}"
        )

    # Duplicate ids
    def check_duplicates(ids: Iterable[str], entity_name: str) -> None:
        seen: set[str] = set()
        for item_id in ids:
            if item_id in seen:
                errors.append(f"Duplicate {entity_name} ID: '{item_id}'")
            seen.add(item_id)

    check_duplicates((t.id for t in spec.teams), "team")
    check_duplicates((f.id for f in spec.fields), "field")
    check_duplicates((u.id for u in spec.umpires), "umpire")
    check_duplicates((m.id for m in spec.matchups), "matchup")

    # Exclusion windows
    for w in spec.season_exclusions:
        _check_window(w, "Season exclusion", errors)
    for team in spec.teams:
        for w in team.exclusions:
            _check_window(w, f"Team {team.id} exclusion", errors)
    for umpire in spec.umpires:
        for w in umpire.exclusions:
            _check_window(w, f"Umpire {umpire.id} exclusion", errors)
        if umpire.max_games_per_day is not None and umpire.max_games_per_day < 1:
            errors.append(
                f"Umpire {umpire.id}: max_games_per_day must be a positive integer or null, "
                f"got {umpire.max_games_per_day}"
            )

    # Fields
    for field in spec.fields:
        if field.start_increment_minutes is not None and field.start_increment_minutes < 1:
            errors.append(
                f"Field {field.id}: start_increment_minutes must be positive, "
                f"got {field.start_increment_minutes}"
            )
        for rule in field.availability:
            if rule.end_minutes < rule.start_minutes:
                errors.append(f"Field {field.id}: availability rule {rule} ends before it starts")
            if rule.start_date and rule.end_date and rule.end_date < rule.start_date:
                errors.append(
                    f"Field {field.id}: availability rule window {rule.start_date} - "
                    f"{rule.end_date} ends before it starts"
                )

    # Matchup references
    selected = set(spec.league_ids)
    teams = {t.id: t for t in spec.teams}
    field_ids = {f.id for f in spec.fields}
    for matchup in spec.matchups:
        if matchup.league_id not in selected:
            errors.append(
                f"Matchup {matchup.id}: league '{matchup.league_id}' is not in the league selection"
            )
        for team_id in matchup.team_ids:
            team = teams.get(team_id)
            if team is None:
                errors.append(f"Matchup {matchup.id}: unknown team '{team_id}'")
            elif team.league_id not in selected:
                errors.append(
                    f"Matchup {matchup.id}: team '{team_id}' belongs to league "
                    f"'{team.league_id}' which is not in the league selection"
                )
        if (
            matchup.home_team_id is not None
            and matchup.home_team_id == matchup.away_team_id
        ):
            errors.append(f"Matchup {matchup.id}: team '{matchup.home_team_id}' cannot play itself")
        for field_id in matchup.preferred_field_ids:
            if field_id not in field_ids:
                errors.append(f"Matchup {matchup.id}: unknown preferred field '{field_id}'")
        _check_game_window(matchup, errors)

    return errors


def _check_window(window: ExclusionWindow, label: str, errors: list[str]) -> None:
    if window.start.tzinfo is not None or window.end.tzinfo is not None:
        errors.append(f"{label} {window}: timestamps must be naive local times")
        return
    if window.end < window.start:
        errors.append(f"{label} {window}: end precedes start")


def _check_game_window(matchup: Matchup, errors: list[str]) -> None:
    bounds = [t for t in (matchup.earliest_start, matchup.latest_end) if t is not None]
    if any(t.tzinfo is not None for t in bounds):
        errors.append(f"Matchup {matchup.id}: game window timestamps must be naive local times")
        return
    if (
        matchup.earliest_start is not None
        and matchup.latest_end is not None
        and matchup.latest_end <= matchup.earliest_start
    ):
        errors.append(
            f"Matchup {matchup.id}: earliest start {matchup.earliest_start} must be "
            f"before latest end {matchup.latest_end}"
        )


# =============================================================================
# Run Identity
# =============================================================================

def deterministic_run_id(spec: ProblemSpec, idempotency_key: Optional[str] = None) -> str:
    """
    Derive a stable run id.

    With an idempotency key the id depends on the key alone. Otherwise it is
    a SHA-256 digest of the canonical JSON form of the spec (sorted keys,
    unset values dropped, any caller-supplied run id ignored), so identical
    problems always get the same id.
    """
    digest = hashlib.sha256()
    if idempotency_key:
        digest.update(f"sched:key:{idempotency_key}".encode("utf-8"))
    else:
        canonical = json.dumps(
            spec.model_dump(mode="json", exclude={"run_id"}, exclude_none=True),
            sort_keys=True,
            separators=(",", ":"),
        )
        digest.update(f"sched:spec:{canonical}".encode("utf-8"))
    return f"sched_{digest.hexdigest()[:16]}"
