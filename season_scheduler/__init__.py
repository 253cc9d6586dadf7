"""Season scheduler - places league games on fields and assigns umpires."""

from .data.models import ProblemSpec, load_problem_from_dict, load_problem_from_json
from .engine import audit_schedule, schedule_season, solve_model
from .errors import MalformedProblemError, ScheduleIntegrityError, SchedulerError
from .problem import ProblemModel
from .slots import Slot, SlotCalendar
from .solver import (
    AssignmentSolver,
    ScheduledGame,
    SchedulingResult,
    SearchBudget,
    SolverStatus,
    UmpireShortfall,
    UnresolvedMatchup,
    UnresolvedReason,
)
from .umpires import UmpireAssigner
from .validator import ScheduleValidator, ViolationCode, ViolationReport

__all__ = [
    # Problem input
    "ProblemSpec",
    "load_problem_from_dict",
    "load_problem_from_json",
    "ProblemModel",
    # Engine
    "schedule_season",
    "solve_model",
    "audit_schedule",
    "Slot",
    "SlotCalendar",
    "AssignmentSolver",
    "SearchBudget",
    "UmpireAssigner",
    "ScheduleValidator",
    # Results
    "ScheduledGame",
    "SchedulingResult",
    "SolverStatus",
    "UnresolvedMatchup",
    "UnresolvedReason",
    "UmpireShortfall",
    "ViolationCode",
    "ViolationReport",
    # Errors
    "SchedulerError",
    "MalformedProblemError",
    "ScheduleIntegrityError",
]
