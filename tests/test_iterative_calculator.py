"""Unit tests for per-team aggregation and the convergence loop."""

from __future__ import annotations

from math import isnan

import pytest

from rankings.common import DiagnosticLog, Game, GameOutcome, Team
from rankings.ratings.iterative.calculator import (
    IterativeRatingCalculator,
    RatingInvariantError,
    RatingParameters,
    TeamGameRating,
    compute_weighted_average,
    rate_team,
)
from rankings.ratings.iterative.differential import compute_differential

UNWEIGHTED = RatingParameters(enable_date_weight=False, enable_score_weight=False)


def _outcome(game_id: int, winner: str, loser: str, winning_score: int, losing_score: int) -> GameOutcome:
    return GameOutcome(
        game=Game(
            game_id=game_id,
            home_team_id=winner,
            away_team_id=loser,
            home_score=str(winning_score),
            away_score=str(losing_score),
        ),
        winning_team_id=winner,
        losing_team_id=loser,
        winning_score=winning_score,
        losing_score=losing_score,
        differential=compute_differential(losing_score, winning_score),
    )


def _round_robin() -> list[GameOutcome]:
    return [
        _outcome(1, "A", "B", 13, 7),
        _outcome(2, "B", "C", 13, 9),
        _outcome(3, "A", "C", 13, 9),
    ]


def _teams(*team_ids: str) -> list[Team]:
    return [Team(team_id=team_id) for team_id in team_ids]


def test_rating_parameter_defaults_are_expected_constants() -> None:
    params = RatingParameters()
    assert params.initial_rating == pytest.approx(1000.0)
    assert params.enable_date_weight is True
    assert params.enable_score_weight is True
    assert params.score_weight_max == pytest.approx(13.0)
    assert params.division is None
    assert params.max_iterations == 500
    assert params.convergence_threshold == pytest.approx(0.001)
    assert params.blowout_rating_gap == pytest.approx(600.0)
    assert params.blowout_min_other_results == 0


def test_weighted_average_uses_game_weights() -> None:
    outcome = _outcome(1, "A", "B", 13, 7)
    games = [
        TeamGameRating(outcome=outcome, team_id="A", opponent_id="B", rating=1200.0, weight=1.0),
        TeamGameRating(outcome=outcome, team_id="A", opponent_id="B", rating=900.0, weight=0.5),
    ]
    assert compute_weighted_average(games) == pytest.approx(1100.0)


def test_weighted_average_without_games_is_nan() -> None:
    assert isnan(compute_weighted_average([]))


def test_rate_team_adds_differential_for_wins_and_subtracts_for_losses() -> None:
    win = _outcome(1, "A", "B", 13, 7)
    loss = _outcome(2, "C", "A", 13, 11)

    rating, games = rate_team("A", [win, loss], {"A": 1000.0, "B": 1000.0, "C": 1100.0}, UNWEIGHTED)

    assert [game.won for game in games] == [True, False]
    assert games[0].rating == pytest.approx(1000.0 + win.differential)
    assert games[1].rating == pytest.approx(1100.0 - loss.differential)
    assert rating == pytest.approx((games[0].rating + games[1].rating) / 2)


def test_rate_team_drops_games_against_missing_opponents() -> None:
    diagnostics = DiagnosticLog()
    outcomes = [_outcome(1, "A", "B", 13, 7), _outcome(2, "A", "ghost", 13, 3)]

    rating, games = rate_team("A", outcomes, {"A": 1000.0, "B": 1000.0}, UNWEIGHTED, diagnostics)

    assert [game.game_id for game in games] == [1]
    assert rating == pytest.approx(1000.0 + outcomes[0].differential)
    assert [(entry.code, entry.game_id, entry.team_id) for entry in diagnostics.entries] == [
        ("opponent not found", 2, "ghost")
    ]


def test_round_robin_converges_before_the_cap() -> None:
    calculator = IterativeRatingCalculator(UNWEIGHTED)
    result = calculator.converge(_teams("A", "B", "C"), _round_robin())

    assert result.converged is True
    assert 2 <= result.iterations < 500
    assert result.snapshot.round_number == result.iterations

    ratings = result.snapshot.ratings
    assert ratings["A"] > ratings["B"] > ratings["C"]
    assert sum(ratings.values()) / 3 == pytest.approx(1000.0, abs=1e-6)


def test_round_robin_converges_to_the_fixed_point() -> None:
    outcomes = _round_robin()
    d_ab, d_bc, d_ac = (outcome.differential for outcome in outcomes)

    result = IterativeRatingCalculator(UNWEIGHTED).converge(_teams("A", "B", "C"), outcomes)
    ratings = result.snapshot.ratings

    assert ratings["A"] == pytest.approx(1000.0 + (d_ab + d_ac) / 3, abs=0.01)
    assert ratings["B"] == pytest.approx(1000.0 + (d_bc - d_ab) / 3, abs=0.01)
    assert ratings["C"] == pytest.approx(1000.0 - (d_bc + d_ac) / 3, abs=0.01)


def test_reported_round_is_where_average_change_stabilised() -> None:
    result = IterativeRatingCalculator(UNWEIGHTED).converge(_teams("A", "B", "C"), _round_robin())

    shorter = IterativeRatingCalculator(
        RatingParameters(
            enable_date_weight=False,
            enable_score_weight=False,
            max_iterations=result.iterations,
        )
    ).converge(_teams("A", "B", "C"), _round_robin())

    assert shorter.converged is False
    assert shorter.iterations == result.iterations


def test_round_cap_stops_iteration() -> None:
    params = RatingParameters(enable_date_weight=False, enable_score_weight=False, max_iterations=2)
    result = IterativeRatingCalculator(params).converge(_teams("A", "B", "C"), _round_robin())

    assert result.converged is False
    assert result.iterations == 2
    assert result.snapshot.round_number == 1


def test_zero_round_cap_returns_starting_ratings() -> None:
    params = RatingParameters(enable_date_weight=False, enable_score_weight=False, max_iterations=0)
    teams = [Team(team_id="A", rating=1200.0), Team(team_id="B", rating=800.0)]

    result = IterativeRatingCalculator(params).converge(teams, [_outcome(1, "A", "B", 13, 7)])

    assert result.iterations == 0
    assert result.converged is False
    assert dict(result.snapshot.ratings) == {"A": 1200.0, "B": 800.0}


def test_two_team_oscillation_stops_once_average_change_repeats() -> None:
    result = IterativeRatingCalculator(UNWEIGHTED).converge(
        _teams("A", "B"),
        [_outcome(1, "A", "B", 13, 0)],
    )

    assert result.converged is True
    assert result.iterations == 2
    assert result.snapshot.ratings["A"] == pytest.approx(1600.0)
    assert result.snapshot.ratings["B"] == pytest.approx(400.0)
    assert result.snapshot.average_rating_diff == pytest.approx(600.0)


def test_zero_average_change_is_treated_as_no_previous_change() -> None:
    # Split results keep both teams at exactly 1000 every round, so the
    # average change is always zero and never counts as a previous value.
    outcomes = [_outcome(1, "A", "B", 13, 0), _outcome(2, "B", "A", 13, 0)]
    params = RatingParameters(enable_date_weight=False, enable_score_weight=False, max_iterations=10)

    result = IterativeRatingCalculator(params).converge(_teams("A", "B"), outcomes)

    assert result.converged is False
    assert result.iterations == 10
    assert dict(result.snapshot.ratings) == {"A": 1000.0, "B": 1000.0}


def test_team_without_games_is_an_invariant_violation() -> None:
    calculator = IterativeRatingCalculator(UNWEIGHTED)
    with pytest.raises(RatingInvariantError, match="'lonely' was calculated as NaN in round 0"):
        calculator.converge(_teams("A", "B", "lonely"), [_outcome(1, "A", "B", 13, 7)])


def test_duplicate_team_ids_raise_error() -> None:
    calculator = IterativeRatingCalculator(UNWEIGHTED)
    with pytest.raises(ValueError, match="Duplicate team ids"):
        calculator.converge(_teams("A", "A"), [])


def test_no_teams_returns_immediately() -> None:
    result = IterativeRatingCalculator(UNWEIGHTED).converge([], [])
    assert result.iterations == 0
    assert result.converged is True
    assert dict(result.snapshot.ratings) == {}


def test_snapshots_carry_each_teams_game_ratings() -> None:
    result = IterativeRatingCalculator(UNWEIGHTED).converge(_teams("A", "B", "C"), _round_robin())
    games = result.snapshot.games

    assert sorted(game.game_id for game in games["A"]) == [1, 3]
    assert sorted(game.game_id for game in games["B"]) == [1, 2]
    assert sorted(game.game_id for game in games["C"]) == [2, 3]
    assert all(game.weight == 1.0 for team_games in games.values() for game in team_games)


def test_convergence_is_deterministic() -> None:
    first = IterativeRatingCalculator(RatingParameters()).converge(_teams("A", "B", "C"), _round_robin())
    second = IterativeRatingCalculator(RatingParameters()).converge(_teams("A", "B", "C"), _round_robin())

    assert first.iterations == second.iterations
    assert dict(first.snapshot.ratings) == dict(second.snapshot.ratings)


def test_negative_round_cap_is_rejected() -> None:
    with pytest.raises(ValueError, match="max_iterations must be >= 0"):
        IterativeRatingCalculator(RatingParameters(max_iterations=-1))
