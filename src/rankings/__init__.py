"""Iterative strength-of-opponent team rankings."""

from rankings.common import Diagnostic, Game, GameOutcome, Team
from rankings.pipeline import (
    CustomRankingResult,
    InvalidEntry,
    RankedGame,
    RankingResult,
    TeamRanking,
    compute_custom_rankings,
    run_rankings,
)
from rankings.ratings.iterative.calculator import RatingInvariantError, RatingParameters
from rankings.ratings.protocol import Division, Level

__all__ = [
    "CustomRankingResult",
    "Diagnostic",
    "Division",
    "Game",
    "GameOutcome",
    "InvalidEntry",
    "Level",
    "RankedGame",
    "RankingResult",
    "RatingInvariantError",
    "RatingParameters",
    "Team",
    "TeamRanking",
    "compute_custom_rankings",
    "run_rankings",
]
