"""Problem input models and sample data."""

from .models import (
    ProblemSpec,
    SeasonWindow,
    SeasonConfig,
    Team,
    Field,
    Umpire,
    Matchup,
    GameType,
    AvailabilityRule,
    ExclusionWindow,
    FieldExclusionDate,
    load_problem_from_dict,
    load_problem_from_json,
)
from .generator import (
    GeneratorConfig,
    generate_sample_problem,
    generate_small_league,
    generate_large_league,
    save_generated_problem,
    get_generation_stats,
)

__all__ = [
    # Models
    "ProblemSpec",
    "SeasonWindow",
    "SeasonConfig",
    "Team",
    "Field",
    "Umpire",
    "Matchup",
    "GameType",
    "AvailabilityRule",
    "ExclusionWindow",
    "FieldExclusionDate",
    "load_problem_from_dict",
    "load_problem_from_json",
    # Generator
    "GeneratorConfig",
    "generate_sample_problem",
    "generate_small_league",
    "generate_large_league",
    "save_generated_problem",
    "get_generation_stats",
]
