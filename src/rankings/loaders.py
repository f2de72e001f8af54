"""Read game rows from JSON or CSV files."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

from rankings.common import Game, TeamId, lookup_field


def load_rows(path: Path) -> list[dict[str, Any]]:
    """Load raw rows from a ``.json`` (list, or object with a ``games`` list) or ``.csv`` file."""
    if not path.exists():
        raise FileNotFoundError(f"Games file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        with path.open(newline="", encoding="utf-8") as file:
            return [
                {key: (None if value == "" else value) for key, value in row.items()}
                for row in csv.DictReader(file)
            ]

    if suffix == ".json":
        with path.open(encoding="utf-8") as file:
            payload = json.load(file)
        if isinstance(payload, dict):
            payload = payload.get("games")
        if not isinstance(payload, list) or not all(isinstance(row, dict) for row in payload):
            raise ValueError(f"{path}: expected a list of game objects or an object with a 'games' list")
        return payload

    raise ValueError(f"{path}: unsupported games file type {path.suffix!r}; use .json or .csv")


def games_from_rows(rows: list[dict[str, Any]]) -> list[Game]:
    """Build games, numbering rows without an id by their position."""
    return [Game.from_mapping(row, default_id=index) for index, row in enumerate(rows)]


def load_games(path: Path) -> list[Game]:
    return games_from_rows(load_rows(path))


def team_ids_from_games(games: list[Game]) -> list[TeamId]:
    """Every team id that appears in ``games``, in order of first appearance."""
    team_ids: dict[TeamId, None] = {}
    for game in games:
        for team_id in (game.home_team_id, game.away_team_id):
            if team_id is not None and team_id != "":
                team_ids.setdefault(team_id, None)
    return list(team_ids)


def team_names_from_rows(rows: list[dict[str, Any]]) -> dict[TeamId, str]:
    names: dict[TeamId, str] = {}
    for row in rows:
        for id_field, name_field in (("home_team_id", "home_team_name"), ("away_team_id", "away_team_name")):
            team_id = lookup_field(row, id_field)
            name = lookup_field(row, name_field)
            if team_id is not None and name:
                names.setdefault(team_id, str(name))
    return names


__all__ = ["games_from_rows", "load_games", "load_rows", "team_ids_from_games", "team_names_from_rows"]
