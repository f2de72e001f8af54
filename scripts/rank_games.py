#!/usr/bin/env python3
"""Compute iterative team rankings from a JSON or CSV file of game results."""

from __future__ import annotations

import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from rankings.common import TeamId
from rankings.loaders import games_from_rows, load_rows, team_ids_from_games, team_names_from_rows
from rankings.pipeline import RankingResult, compute_custom_rankings, run_rankings
from rankings.ratings.iterative.calculator import RatingInvariantError, RatingParameters
from rankings.ratings.iterative.config import IterativeSystemConfig, load_iterative_system_configs
from rankings.ratings.iterative.weights import current_rankings_year
from rankings.ratings.protocol import parse_division

DEFAULT_CONFIG_DIR = ROOT_DIR / "configs" / "ratings" / "iterative"

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Iterative team rankings jobs.",
)


def _select_system(config_dir: Path, system_name: str) -> IterativeSystemConfig:
    systems = load_iterative_system_configs(config_dir)
    for system in systems:
        if system.name == system_name:
            return system
    available = ", ".join(system.name for system in systems)
    raise typer.BadParameter(f"Unknown system '{system_name}'. Available: {available}")


def _echo_rankings(
    result: RankingResult,
    *,
    names: dict[TeamId, str],
    top_n: int,
    show_invalid: bool,
) -> None:
    for index, team in enumerate(result.ranked()[:top_n], start=1):
        label = names.get(team.team_id, str(team.team_id))
        blowouts = sum(1 for game in team.games if game.is_blowout)
        typer.echo(
            f"{index:3d}. {label:<30} "
            f"rating={team.rating:8.2f} "
            f"record={team.wins}-{team.losses} "
            f"blowouts_ignored={blowouts}"
        )

    if not show_invalid:
        return
    for entry in result.invalid_teams:
        typer.echo(f"invalid_team id={entry.id} reason={entry.reason}")
    for entry in result.invalid_games:
        typer.echo(f"invalid_game id={entry.id} reason={entry.reason}")
    for diagnostic in result.diagnostics:
        typer.echo(f"diagnostic code={diagnostic.code} message={diagnostic.message}")


@app.command("rank")
def rank_games(
    games_file: Annotated[
        Path,
        typer.Argument(help="JSON or CSV file of game results."),
    ],
    config_dir: Annotated[
        Path,
        typer.Option("--config-dir", help="Directory of iterative rating system TOML files."),
    ] = DEFAULT_CONFIG_DIR,
    system_name: Annotated[
        str,
        typer.Option("--system", help="Rating system name from [system].name."),
    ] = "club",
    division: Annotated[
        str | None,
        typer.Option("--division", help="Override the config division (e.g. mixed, college-womens)."),
    ] = None,
    date_weight: Annotated[
        bool | None,
        typer.Option("--date-weight/--no-date-weight", help="Override date weighting."),
    ] = None,
    score_weight: Annotated[
        bool | None,
        typer.Option("--score-weight/--no-score-weight", help="Override score weighting."),
    ] = None,
    score_weight_max: Annotated[
        float | None,
        typer.Option("--score-weight-max", help="Override the winning score that earns full weight."),
    ] = None,
    top_n: Annotated[
        int,
        typer.Option("--top-n", help="Number of teams to print."),
    ] = 25,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the full result as JSON instead of a table."),
    ] = False,
    show_invalid: Annotated[
        bool,
        typer.Option("--show-invalid", help="Also print excluded teams, games and diagnostics."),
    ] = False,
) -> None:
    """Rank every team that appears in the games file."""
    if top_n <= 0:
        raise typer.BadParameter("--top-n must be greater than 0")
    if score_weight_max is not None and score_weight_max <= 0.0:
        raise typer.BadParameter("--score-weight-max must be greater than 0")

    system = _select_system(config_dir, system_name)
    params: RatingParameters = system.parameters
    if division is not None:
        try:
            params = replace(params, division=parse_division(division))
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    if date_weight is not None:
        params = replace(params, enable_date_weight=date_weight)
    if score_weight is not None:
        params = replace(params, enable_score_weight=score_weight)
    if score_weight_max is not None:
        params = replace(params, score_weight_max=score_weight_max)

    rows = load_rows(games_file)
    games = games_from_rows(rows)
    names = team_names_from_rows(rows)

    if not as_json:
        typer.echo(
            f"system={system.name} division={params.division.value if params.division else 'club'} "
            f"rankings_year={current_rankings_year(params.division)} "
            f"date_weight={params.enable_date_weight} score_weight={params.enable_score_weight}"
        )

    try:
        result = run_rankings(
            team_ids_from_games(games),
            games,
            params,
            echo=None if as_json else typer.echo,
        )
    except RatingInvariantError as exc:
        typer.echo(f"rankings failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if as_json:
        typer.echo(json.dumps(result.as_json(), indent=2, default=str))
        return

    _echo_rankings(result, names=names, top_n=top_n, show_invalid=show_invalid)


@app.command("custom")
def rank_custom(
    games_file: Annotated[
        Path,
        typer.Argument(help="JSON or CSV score sheet with team ids and scores for every row."),
    ],
) -> None:
    """Rank an ad hoc score sheet without date or score weighting."""
    result = compute_custom_rankings(load_rows(games_file))
    if not result.success:
        typer.echo(result.message, err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(result.as_json(), indent=2, default=str))


if __name__ == "__main__":
    app()
