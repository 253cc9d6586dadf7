"""
Scheduling pipeline.

    ProblemSpec -> ProblemModel -> SlotCalendar per field -> AssignmentSolver
    -> UmpireAssigner -> ScheduleValidator -> SchedulingResult

The pipeline is a pure function of its inputs: it reads no files and keeps no
state between runs.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional, Sequence

from .data.models import ProblemSpec
from .errors import ScheduleIntegrityError
from .problem import ProblemModel
from .solver import (
    AssignmentSolver,
    ScheduledGame,
    SchedulingResult,
    SearchBudget,
    UmpireShortfall,
    UnresolvedMatchup,
)
from .umpires import UmpireAssigner
from .validator import ScheduleValidator, ViolationReport

logger = logging.getLogger(__name__)


def solve_model(model: ProblemModel, budget: Optional[SearchBudget] = None) -> SchedulingResult:
    """
    Run the pipeline on an already-built problem model.

    Raises:
        ScheduleIntegrityError: If the produced schedule breaks a hard rule
    """
    calendars = model.build_calendars()
    result = AssignmentSolver(model, calendars, budget).solve()

    games, shortfalls = UmpireAssigner(model).assign(result.games)
    result = replace(result, games=games, shortfalls=shortfalls)

    violations = ScheduleValidator(model).validate(
        result.games, result.unresolved, result.shortfalls
    )
    if violations:
        for violation in violations:
            logger.error("%s", violation)
        raise ScheduleIntegrityError(violations)

    return result


def schedule_season(spec: ProblemSpec, budget: Optional[SearchBudget] = None) -> SchedulingResult:
    """
    Schedule a season.

    Args:
        spec: Complete problem specification
        budget: Search budget (defaults to SearchBudget())

    Returns:
        SchedulingResult with placed games, umpire crews, unresolved
        matchups and shortfalls

    Raises:
        MalformedProblemError: If the problem is structurally invalid
        ScheduleIntegrityError: If the produced schedule breaks a hard rule
    """
    logger.info("Scheduling season: %s", spec.summary())
    return solve_model(ProblemModel(spec), budget)


def audit_schedule(
    spec: ProblemSpec,
    games: Sequence[ScheduledGame],
    unresolved: Iterable[UnresolvedMatchup] = (),
    shortfalls: Iterable[UmpireShortfall] = (),
    expected_matchup_ids: Optional[Iterable[str]] = None,
) -> list[ViolationReport]:
    """
    Check an externally supplied schedule against a problem.

    Raises:
        MalformedProblemError: If the problem is structurally invalid
    """
    model = ProblemModel(spec)
    violations = ScheduleValidator(model).validate(
        games, unresolved, shortfalls, expected_matchup_ids
    )
    logger.info("Audited %d games: %d violations", len(games), len(violations))
    return violations
