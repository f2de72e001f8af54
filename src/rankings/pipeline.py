"""Filter raw results, converge ratings and apply the blowout rule."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

from rankings.common import (
    Diagnostic,
    DiagnosticLog,
    Game,
    GameOutcome,
    Team,
    TeamId,
    lookup_field,
    parse_score,
)
from rankings.ratings.iterative.blowout import FinalTeamRating, apply_blowout_rule
from rankings.ratings.iterative.calculator import (
    IterativeRatingCalculator,
    RatingInvariantError,
    RatingParameters,
)
from rankings.ratings.iterative.differential import compute_differential, has_defined_differential

logger = logging.getLogger(__name__)

INVALID_NO_SCORES = "no scores"
INVALID_TIE = "tie"
INVALID_SAME_TEAM = "same team"
INVALID_UNKNOWN_TEAM = "unknown team"
INVALID_UNDEFINED_DIFFERENTIAL = "undefined differential"
INVALID_NO_VALID_GAMES = "no valid games"

# Order in which invalid games are reported.
_INVALID_GAME_REASONS = (
    INVALID_NO_SCORES,
    INVALID_TIE,
    INVALID_SAME_TEAM,
    INVALID_UNKNOWN_TEAM,
    INVALID_UNDEFINED_DIFFERENTIAL,
)

_CUSTOM_REQUIRED_FIELDS = ("away_team_id", "home_team_id", "away_score", "home_score")


@dataclass(frozen=True)
class InvalidEntry:
    """A team or game left out of the rankings, and why."""

    id: Any
    reason: str

    def as_json(self) -> dict[str, Any]:
        return {"id": self.id, "reason": self.reason}


@dataclass(frozen=True)
class RankedGame:
    game_id: Any
    opponent_id: TeamId
    rating: float
    weight: float
    won: bool
    is_blowout: bool
    weight_share: float

    def as_json(self) -> dict[str, Any]:
        return {
            "game_id": self.game_id,
            "opponent_id": self.opponent_id,
            "rating": self.rating,
            "weight": self.weight,
            "won": self.won,
            "is_blowout": self.is_blowout,
            "weight_share": self.weight_share,
        }


@dataclass(frozen=True)
class TeamRanking:
    team_id: TeamId
    rating: float
    converged_rating: float
    games: tuple[RankedGame, ...]

    @property
    def wins(self) -> int:
        return sum(1 for game in self.games if game.won)

    @property
    def losses(self) -> int:
        return sum(1 for game in self.games if not game.won)

    def as_json(self) -> dict[str, Any]:
        return {
            "id": self.team_id,
            "rating": self.rating,
            "games": [game.as_json() for game in self.games],
        }


@dataclass(frozen=True)
class RankingResult:
    """Final ratings plus everything that was left out along the way."""

    teams: tuple[TeamRanking, ...]
    iterations: int
    converged: bool
    invalid_teams: tuple[InvalidEntry, ...] = ()
    invalid_games: tuple[InvalidEntry, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    def ranked(self) -> list[TeamRanking]:
        """Teams ordered from highest to lowest final rating."""
        return sorted(self.teams, key=lambda team: team.rating, reverse=True)

    def team(self, team_id: TeamId) -> TeamRanking:
        for team in self.teams:
            if team.team_id == team_id:
                return team
        raise KeyError(f"Team {team_id!r} is not part of the rankings")

    def as_json(self) -> dict[str, Any]:
        return {
            "per_team": [team.as_json() for team in self.teams],
            "iterations": self.iterations,
            "converged": self.converged,
            "invalid_teams": [entry.as_json() for entry in self.invalid_teams],
            "invalid_games": [entry.as_json() for entry in self.invalid_games],
            "diagnostics": [diagnostic.as_json() for diagnostic in self.diagnostics],
        }


@dataclass(frozen=True)
class CustomRankingResult:
    """Tagged outcome of ranking raw score rows."""

    success: bool
    message: str | None = None
    team_ids: tuple[TeamId, ...] = ()
    iterations: int | None = None
    per_team: tuple[TeamRanking, ...] = ()

    def as_json(self) -> dict[str, Any]:
        if not self.success:
            return {"success": False, "message": self.message}
        return {
            "success": True,
            "team_ids": list(self.team_ids),
            "iterations": self.iterations,
            "per_team": [team.as_json() for team in self.per_team],
        }


def derive_outcome(game: Game, home_score: int, away_score: int) -> GameOutcome:
    """Winner/loser view of a game with distinct scores."""
    if away_score > home_score:
        winning_team_id, losing_team_id = game.away_team_id, game.home_team_id
        winning_score, losing_score = away_score, home_score
    else:
        winning_team_id, losing_team_id = game.home_team_id, game.away_team_id
        winning_score, losing_score = home_score, away_score

    return GameOutcome(
        game=game,
        winning_team_id=winning_team_id,
        losing_team_id=losing_team_id,
        winning_score=winning_score,
        losing_score=losing_score,
        differential=compute_differential(losing_score, winning_score),
    )


def partition_games(
    games: Sequence[Game],
    team_ids: Sequence[TeamId] | set[TeamId],
) -> tuple[list[GameOutcome], list[InvalidEntry]]:
    """Split games into rateable outcomes and invalid entries."""
    known_team_ids = set(team_ids)
    outcomes: list[GameOutcome] = []
    invalid_by_reason: dict[str, list[InvalidEntry]] = {reason: [] for reason in _INVALID_GAME_REASONS}

    for game in games:
        home_score = parse_score(game.home_score)
        away_score = parse_score(game.away_score)
        if home_score is None or away_score is None:
            reason = INVALID_NO_SCORES
        elif home_score == away_score:
            reason = INVALID_TIE
        elif game.home_team_id == game.away_team_id:
            reason = INVALID_SAME_TEAM
        elif game.home_team_id not in known_team_ids or game.away_team_id not in known_team_ids:
            reason = INVALID_UNKNOWN_TEAM
        elif not has_defined_differential(max(home_score, away_score)):
            reason = INVALID_UNDEFINED_DIFFERENTIAL
        else:
            outcomes.append(derive_outcome(game, home_score, away_score))
            continue
        invalid_by_reason[reason].append(InvalidEntry(id=game.game_id, reason=reason))

    invalid_games = [entry for reason in _INVALID_GAME_REASONS for entry in invalid_by_reason[reason]]
    return outcomes, invalid_games


def run_rankings(
    teams: Sequence[Team | TeamId],
    games: Sequence[Game],
    parameters: RatingParameters | None = None,
    *,
    echo: Callable[[str], None] | None = None,
) -> RankingResult:
    """Rank ``teams`` from ``games``.

    Games without an id are numbered by their position in ``games``. Games
    without two non-negative integer scores, ties, games against teams
    outside ``teams`` and games with an undefined differential are reported in
    ``invalid_games``; teams left without a game are reported in
    ``invalid_teams``. Raises ``RatingInvariantError`` if a rating ever
    resolves to NaN.
    """
    parameters = parameters or RatingParameters()
    seeded_teams = [
        team if isinstance(team, Team) else Team(team_id=team, rating=parameters.initial_rating)
        for team in teams
    ]
    team_ids = [team.team_id for team in seeded_teams]
    if len(set(team_ids)) != len(team_ids):
        raise ValueError(f"Duplicate team ids supplied: {team_ids}")
    games = [
        game if game.game_id is not None else replace(game, game_id=index)
        for index, game in enumerate(games)
    ]

    outcomes, invalid_games = partition_games(games, team_ids)

    teams_with_games = {
        team_id
        for outcome in outcomes
        for team_id in (outcome.winning_team_id, outcome.losing_team_id)
    }
    valid_teams = [team for team in seeded_teams if team.team_id in teams_with_games]
    invalid_teams = [
        InvalidEntry(id=team.team_id, reason=INVALID_NO_VALID_GAMES)
        for team in seeded_teams
        if team.team_id not in teams_with_games
    ]

    diagnostics = DiagnosticLog()
    calculator = IterativeRatingCalculator(parameters, diagnostics=diagnostics)
    convergence = calculator.converge(valid_teams, outcomes)
    logger.debug(
        "iteration stopped after %d rounds (converged=%s)",
        convergence.iterations,
        convergence.converged,
    )

    final_ratings = apply_blowout_rule(
        convergence.snapshot,
        rating_gap=parameters.blowout_rating_gap,
        min_other_results=parameters.blowout_min_other_results,
    )

    result = RankingResult(
        teams=tuple(_to_team_ranking(final_rating) for final_rating in final_ratings),
        iterations=convergence.iterations,
        converged=convergence.converged,
        invalid_teams=tuple(invalid_teams),
        invalid_games=tuple(invalid_games),
        diagnostics=tuple(diagnostics.entries),
    )

    if echo is not None:
        echo(
            "completed "
            f"teams={len(result.teams)} "
            f"games={len(outcomes)} "
            f"iterations={result.iterations} "
            f"converged={result.converged} "
            f"invalid_teams={len(result.invalid_teams)} "
            f"invalid_games={len(result.invalid_games)} "
            f"diagnostics={len(result.diagnostics)}"
        )

    return result


def compute_custom_rankings(rows: Sequence[Mapping[str, Any]]) -> CustomRankingResult:
    """Rank teams straight from score rows, deriving the teams from the rows.

    Never raises for bad input: malformed rows produce ``success=False``.
    Date and score weighting are switched off.
    """
    team_ids: list[TeamId] = []
    for row in rows:
        for name in ("away_team_id", "home_team_id"):
            team_id = lookup_field(row, name)
            if _is_blank(team_id):
                continue
            if not _is_team_id(team_id):
                return CustomRankingResult(
                    success=False,
                    message=(
                        "Games not formatted correctly. "
                        "Make sure every team id is a string or an integer."
                    ),
                )
            if team_id not in team_ids:
                team_ids.append(team_id)

    if not team_ids:
        return CustomRankingResult(
            success=False,
            message=(
                "Games not formatted correctly. "
                "Make sure each entry has an away_team_id and home_team_id."
            ),
        )

    if not all(not _is_blank(lookup_field(row, name)) for row in rows for name in _CUSTOM_REQUIRED_FIELDS):
        return CustomRankingResult(
            success=False,
            message="Games not formatted correctly. Make sure there are no missing or blank values.",
        )

    games = [
        Game(
            game_id=index,
            home_team_id=lookup_field(row, "home_team_id"),
            away_team_id=lookup_field(row, "away_team_id"),
            home_score=_score_value(lookup_field(row, "home_score")),
            away_score=_score_value(lookup_field(row, "away_score")),
            start_date=lookup_field(row, "start_date"),
        )
        for index, row in enumerate(rows)
    ]

    try:
        result = run_rankings(
            team_ids,
            games,
            RatingParameters(enable_date_weight=False, enable_score_weight=False),
        )
    except RatingInvariantError as exc:
        logger.warning("custom rankings failed: %s", exc)
        return CustomRankingResult(success=False, message=f"Rankings could not be computed: {exc}")

    return CustomRankingResult(
        success=True,
        team_ids=tuple(team_ids),
        iterations=result.iterations,
        per_team=result.teams,
    )


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def _is_team_id(value: Any) -> bool:
    return isinstance(value, (int, str)) and not isinstance(value, bool)


def _score_value(value: Any) -> str | int | None:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _to_team_ranking(final_rating: FinalTeamRating) -> TeamRanking:
    return TeamRanking(
        team_id=final_rating.team_id,
        rating=final_rating.rating,
        converged_rating=final_rating.converged_rating,
        games=tuple(
            RankedGame(
                game_id=final_game.game_id,
                opponent_id=final_game.game.opponent_id,
                rating=final_game.game.rating,
                weight=final_game.game.weight,
                won=final_game.game.won,
                is_blowout=final_game.is_blowout,
                weight_share=final_game.weight_share,
            )
            for final_game in final_rating.games
        ),
    )


__all__ = [
    "CustomRankingResult",
    "INVALID_NO_SCORES",
    "INVALID_NO_VALID_GAMES",
    "INVALID_SAME_TEAM",
    "INVALID_TIE",
    "INVALID_UNDEFINED_DIFFERENTIAL",
    "INVALID_UNKNOWN_TEAM",
    "InvalidEntry",
    "RankedGame",
    "RankingResult",
    "TeamRanking",
    "compute_custom_rankings",
    "derive_outcome",
    "partition_games",
    "run_rankings",
]
