"""Iterative strength-of-opponent team ratings."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from math import isnan, nan
from typing import Any

from rankings.common import DEFAULT_INITIAL_RATING, GameOutcome, Team, TeamId
from rankings.ratings.iterative.weights import DEFAULT_SCORE_WEIGHT_MAX, compute_game_weight
from rankings.ratings.protocol import DiagnosticSink, Division, level_for_division

MAX_ITERATIONS = 500
CONVERGENCE_THRESHOLD = 0.001
BLOWOUT_RATING_GAP = 600.0


class RatingInvariantError(RuntimeError):
    """Raised when the iteration produces a rating that cannot be trusted."""


@dataclass(frozen=True)
class RatingParameters:
    initial_rating: float = DEFAULT_INITIAL_RATING
    enable_date_weight: bool = True
    enable_score_weight: bool = True
    score_weight_max: float = DEFAULT_SCORE_WEIGHT_MAX
    division: Division | None = None
    max_iterations: int = MAX_ITERATIONS
    convergence_threshold: float = CONVERGENCE_THRESHOLD
    blowout_rating_gap: float = BLOWOUT_RATING_GAP
    blowout_min_other_results: int = 0


@dataclass(frozen=True)
class TeamGameRating:
    """One game seen from one team's side in one round."""

    outcome: GameOutcome
    team_id: TeamId
    opponent_id: TeamId
    rating: float
    weight: float

    @property
    def game_id(self) -> Any:
        return self.outcome.game_id

    @property
    def won(self) -> bool:
        return self.outcome.winning_team_id == self.team_id


@dataclass(frozen=True)
class IterationSnapshot:
    """Every team's rating after one round; never mutated once built."""

    round_number: int
    ratings: Mapping[TeamId, float]
    games: Mapping[TeamId, tuple[TeamGameRating, ...]]
    average_rating_diff: float = 0.0

    def rating_of(self, team_id: TeamId) -> float:
        return self.ratings[team_id]


@dataclass(frozen=True)
class ConvergenceResult:
    snapshot: IterationSnapshot
    iterations: int
    converged: bool


def compute_weighted_average(games: Sequence[TeamGameRating]) -> float:
    """Weight-weighted mean of projected ratings; NaN when there are no games."""
    summed_weights = sum(game.weight for game in games)
    if not games or summed_weights == 0.0:
        return nan
    return sum(game.rating * game.weight for game in games) / summed_weights


def rate_team(
    team_id: TeamId,
    outcomes: Sequence[GameOutcome],
    ratings: Mapping[TeamId, float],
    parameters: RatingParameters,
    diagnostics: DiagnosticSink | None = None,
) -> tuple[float, tuple[TeamGameRating, ...]]:
    """Recompute one team's rating against a frozen snapshot of everyone's ratings."""
    level = level_for_division(parameters.division)
    game_ratings: list[TeamGameRating] = []

    for outcome in outcomes:
        opponent_id = outcome.opponent_of(team_id)
        opponent_rating = ratings.get(opponent_id)
        if opponent_rating is None:
            if diagnostics is not None:
                diagnostics.record(
                    "opponent not found",
                    f"No opposing team found for game {outcome.game_id}. Missing team: {opponent_id}",
                    game_id=outcome.game_id,
                    team_id=opponent_id,
                )
            continue

        won = outcome.winning_team_id == team_id
        game_ratings.append(
            TeamGameRating(
                outcome=outcome,
                team_id=team_id,
                opponent_id=opponent_id,
                rating=opponent_rating + (outcome.differential if won else -outcome.differential),
                weight=compute_game_weight(
                    outcome,
                    enable_score_weight=parameters.enable_score_weight,
                    enable_date_weight=parameters.enable_date_weight,
                    score_weight_max=parameters.score_weight_max,
                    level=level,
                    diagnostics=diagnostics,
                ),
            )
        )

    games = tuple(game_ratings)
    return compute_weighted_average(games), games


class IterativeRatingCalculator:
    """Re-solves every team's rating from the previous round until the ratings settle."""

    def __init__(
        self,
        params: RatingParameters,
        *,
        diagnostics: DiagnosticSink | None = None,
    ) -> None:
        if params.max_iterations < 0:
            raise ValueError("max_iterations must be >= 0")
        self.params = params
        self.diagnostics = diagnostics

    def _group_outcomes(
        self,
        team_ids: Sequence[TeamId],
        outcomes: Sequence[GameOutcome],
    ) -> dict[TeamId, tuple[GameOutcome, ...]]:
        grouped: dict[TeamId, list[GameOutcome]] = {team_id: [] for team_id in team_ids}
        for outcome in outcomes:
            for team_id in (outcome.winning_team_id, outcome.losing_team_id):
                if team_id in grouped:
                    grouped[team_id].append(outcome)
        return {team_id: tuple(team_outcomes) for team_id, team_outcomes in grouped.items()}

    def compute_round(
        self,
        round_number: int,
        previous: IterationSnapshot,
        outcomes_by_team: Mapping[TeamId, Sequence[GameOutcome]],
    ) -> IterationSnapshot:
        ratings: dict[TeamId, float] = {}
        games: dict[TeamId, tuple[TeamGameRating, ...]] = {}
        for team_id, team_outcomes in outcomes_by_team.items():
            rating, team_games = rate_team(
                team_id,
                team_outcomes,
                previous.ratings,
                self.params,
                self.diagnostics,
            )
            if isnan(rating):
                raise RatingInvariantError(
                    f"Rating for team {team_id!r} was calculated as NaN in round {round_number}"
                )
            ratings[team_id] = rating
            games[team_id] = team_games

        return IterationSnapshot(round_number=round_number, ratings=ratings, games=games)

    def converge(
        self,
        teams: Sequence[Team],
        outcomes: Sequence[GameOutcome],
    ) -> ConvergenceResult:
        """Iterate until the average rating change stops moving or the round cap is hit."""
        team_ids = [team.team_id for team in teams]
        if len(set(team_ids)) != len(team_ids):
            raise ValueError(f"Duplicate team ids supplied: {team_ids}")

        outcomes_by_team = self._group_outcomes(team_ids, outcomes)
        snapshot = IterationSnapshot(
            round_number=0,
            ratings={team.team_id: team.rating for team in teams},
            games={team_id: () for team_id in team_ids},
        )
        if not team_ids:
            return ConvergenceResult(snapshot=snapshot, iterations=0, converged=True)

        has_previous_ratings = False
        previous_average_diff = 0.0

        for round_number in range(self.params.max_iterations):
            current = self.compute_round(round_number, snapshot, outcomes_by_team)

            average_diff = 0.0
            if has_previous_ratings:
                average_diff = _average_rating_diff(current, snapshot)
                # A zero previous diff counts as "no previous diff yet".
                if (
                    previous_average_diff != 0.0
                    and abs(average_diff - previous_average_diff) < self.params.convergence_threshold
                ):
                    return ConvergenceResult(
                        snapshot=_with_average_diff(current, average_diff),
                        iterations=round_number,
                        converged=True,
                    )

            snapshot = _with_average_diff(current, average_diff)
            has_previous_ratings = True
            previous_average_diff = average_diff

        return ConvergenceResult(
            snapshot=snapshot,
            iterations=self.params.max_iterations,
            converged=False,
        )


def _average_rating_diff(current: IterationSnapshot, previous: IterationSnapshot) -> float:
    if not current.ratings:
        return 0.0
    total = sum(abs(rating - previous.ratings[team_id]) for team_id, rating in current.ratings.items())
    return total / len(current.ratings)


def _with_average_diff(snapshot: IterationSnapshot, average_diff: float) -> IterationSnapshot:
    return IterationSnapshot(
        round_number=snapshot.round_number,
        ratings=snapshot.ratings,
        games=snapshot.games,
        average_rating_diff=average_diff,
    )


__all__ = [
    "BLOWOUT_RATING_GAP",
    "CONVERGENCE_THRESHOLD",
    "ConvergenceResult",
    "IterationSnapshot",
    "IterativeRatingCalculator",
    "MAX_ITERATIONS",
    "RatingInvariantError",
    "RatingParameters",
    "TeamGameRating",
    "compute_weighted_average",
    "rate_team",
]
