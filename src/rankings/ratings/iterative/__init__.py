"""Iterative strength-of-opponent rating modules."""

from rankings.ratings.iterative.blowout import (
    FinalGameRating,
    FinalTeamRating,
    apply_blowout_rule,
    is_blowout,
)
from rankings.ratings.iterative.calculator import (
    ConvergenceResult,
    IterationSnapshot,
    IterativeRatingCalculator,
    RatingInvariantError,
    RatingParameters,
    TeamGameRating,
    compute_weighted_average,
    rate_team,
)
from rankings.ratings.iterative.config import (
    IterativeSystemConfig,
    load_iterative_system_config,
    load_iterative_system_configs,
)
from rankings.ratings.iterative.differential import UndefinedDifferentialError, compute_differential
from rankings.ratings.iterative.weights import (
    compute_date_weight,
    compute_game_weight,
    compute_score_weight,
    current_rankings_year,
    season_start,
)

__all__ = [
    "ConvergenceResult",
    "FinalGameRating",
    "FinalTeamRating",
    "IterationSnapshot",
    "IterativeRatingCalculator",
    "IterativeSystemConfig",
    "RatingInvariantError",
    "RatingParameters",
    "TeamGameRating",
    "UndefinedDifferentialError",
    "apply_blowout_rule",
    "compute_date_weight",
    "compute_differential",
    "compute_game_weight",
    "compute_score_weight",
    "compute_weighted_average",
    "current_rankings_year",
    "is_blowout",
    "load_iterative_system_config",
    "load_iterative_system_configs",
    "rate_team",
    "season_start",
]
