"""Post-convergence blowout exclusion."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from math import isnan
from typing import Any

from rankings.common import GameOutcome, TeamId
from rankings.ratings.iterative.calculator import (
    BLOWOUT_RATING_GAP,
    IterationSnapshot,
    TeamGameRating,
    compute_weighted_average,
)


@dataclass(frozen=True)
class FinalGameRating:
    """One team's game after the blowout pass.

    ``weight_share`` is the game's weight over the total weight of the team's
    counted games, so it is 0 for blowouts and the shares of the remaining
    games sum to 1. It is not a share of all games played.
    """

    game: TeamGameRating
    is_blowout: bool
    weight_share: float

    @property
    def game_id(self) -> Any:
        return self.game.game_id


@dataclass(frozen=True)
class FinalTeamRating:
    team_id: TeamId
    rating: float
    converged_rating: float
    games: tuple[FinalGameRating, ...]

    @property
    def blowout_games(self) -> tuple[FinalGameRating, ...]:
        return tuple(game for game in self.games if game.is_blowout)

    @property
    def counted_games(self) -> tuple[FinalGameRating, ...]:
        return tuple(game for game in self.games if not game.is_blowout)


def is_blowout(
    outcome: GameOutcome,
    winning_team_rating: float,
    losing_team_rating: float,
    rating_gap: float = BLOWOUT_RATING_GAP,
) -> bool:
    """A large rating gap together with the winner more than doubling the loser's score."""
    if winning_team_rating - losing_team_rating < rating_gap:
        return False
    return outcome.winning_score > outcome.losing_score * 2 + 1


def apply_blowout_rule(
    snapshot: IterationSnapshot,
    *,
    rating_gap: float = BLOWOUT_RATING_GAP,
    min_other_results: int = 0,
) -> list[FinalTeamRating]:
    """Flag blowouts against the converged ratings and re-average each team without them.

    With ``min_other_results`` above zero a blowout is only ignored when the
    winning team keeps at least that many other results that are not
    themselves candidate blowouts. Teams left without any counted game keep
    their converged rating.
    """
    # Keyed on the outcome object, which both sides of a game share for the
    # whole run; game ids may be missing or repeated.
    candidates: set[int] = set()
    for team_games in snapshot.games.values():
        for game in team_games:
            outcome = game.outcome
            winner_rating = snapshot.ratings.get(outcome.winning_team_id)
            loser_rating = snapshot.ratings.get(outcome.losing_team_id)
            if winner_rating is None or loser_rating is None:
                raise ValueError(
                    f"Could not find winning or losing team for game {outcome.game_id}: "
                    f"{outcome.winning_team_id}/{outcome.losing_team_id}"
                )
            if is_blowout(outcome, winner_rating, loser_rating, rating_gap):
                candidates.add(id(outcome))

    blowouts = candidates
    if min_other_results > 0 and candidates:
        kept_results: Counter[TeamId] = Counter(
            team_id
            for team_id, team_games in snapshot.games.items()
            for game in team_games
            if id(game.outcome) not in candidates
        )
        blowouts = {
            id(game.outcome)
            for team_id, team_games in snapshot.games.items()
            for game in team_games
            if id(game.outcome) in candidates
            and game.won
            and kept_results[team_id] >= min_other_results
        }

    final_ratings: list[FinalTeamRating] = []
    for team_id, team_games in snapshot.games.items():
        counted = [game for game in team_games if id(game.outcome) not in blowouts]
        converged_rating = snapshot.ratings[team_id]
        final_rating = compute_weighted_average(counted)
        if isnan(final_rating):
            final_rating = converged_rating

        counted_weight = sum(game.weight for game in counted)
        final_ratings.append(
            FinalTeamRating(
                team_id=team_id,
                rating=final_rating,
                converged_rating=converged_rating,
                games=tuple(
                    FinalGameRating(
                        game=game,
                        is_blowout=id(game.outcome) in blowouts,
                        weight_share=(
                            0.0
                            if id(game.outcome) in blowouts or counted_weight == 0.0
                            else game.weight / counted_weight
                        ),
                    )
                    for game in team_games
                ),
            )
        )

    return final_ratings


__all__ = [
    "FinalGameRating",
    "FinalTeamRating",
    "apply_blowout_rule",
    "is_blowout",
]
