"""Shared types for team rankings."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)

TeamId = int | str

DEFAULT_INITIAL_RATING = 1000.0

_SCORE_PATTERN = re.compile(r"^\s*[0-9]+\s*$")

# Column aliases accepted when building games from raw rows.
_GAME_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "game_id": ("game_id", "EventGameId", "id"),
    "home_team_id": ("home_team_id", "HomeTeamId"),
    "away_team_id": ("away_team_id", "AwayTeamId"),
    "home_score": ("home_score", "HomeTeamScore"),
    "away_score": ("away_score", "AwayTeamScore"),
    "start_date": ("start_date", "StartDate"),
    "home_team_name": ("home_team_name", "HomeTeamName"),
    "away_team_name": ("away_team_name", "AwayTeamName"),
}


@dataclass(frozen=True)
class Team:
    """A participant and the rating it enters the first round with."""

    team_id: TeamId
    rating: float = DEFAULT_INITIAL_RATING


@dataclass(frozen=True)
class Game:
    """Raw game result as supplied by the caller."""

    game_id: Any
    home_team_id: TeamId
    away_team_id: TeamId
    home_score: str | int | None
    away_score: str | int | None
    start_date: str | datetime | None = None
    home_team_name: str | None = None
    away_team_name: str | None = None

    def involves(self, team_id: TeamId) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], *, default_id: Any = None) -> Game:
        """Build a game from a row using either snake_case or PascalCase keys."""
        values = {name: lookup_field(raw, name) for name in _GAME_FIELD_ALIASES}
        game_id = values.pop("game_id")
        return cls(game_id=default_id if game_id is None else game_id, **values)


@dataclass(frozen=True)
class GameOutcome:
    """Winner/loser view of a valid game, derived once per run."""

    game: Game
    winning_team_id: TeamId
    losing_team_id: TeamId
    winning_score: int
    losing_score: int
    differential: float

    @property
    def game_id(self) -> Any:
        return self.game.game_id

    def involves(self, team_id: TeamId) -> bool:
        return team_id in (self.winning_team_id, self.losing_team_id)

    def opponent_of(self, team_id: TeamId) -> TeamId:
        return self.losing_team_id if self.winning_team_id == team_id else self.winning_team_id


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal anomaly noticed while rating."""

    code: str
    message: str
    game_id: Any = None
    team_id: TeamId | None = None

    def as_json(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "game_id": self.game_id,
            "team_id": self.team_id,
        }


@dataclass
class DiagnosticLog:
    """Collects diagnostics, keeping one entry per code/game/team."""

    entries: list[Diagnostic] = field(default_factory=list)
    _seen: set[tuple[str, str, str]] = field(default_factory=set, init=False, repr=False)

    def record(
        self,
        code: str,
        message: str,
        *,
        game_id: Any = None,
        team_id: TeamId | None = None,
    ) -> None:
        key = (code, repr(game_id), repr(team_id))
        if key in self._seen:
            return
        self._seen.add(key)
        self.entries.append(Diagnostic(code=code, message=message, game_id=game_id, team_id=team_id))
        logger.debug("%s: %s (game_id=%r team_id=%r)", code, message, game_id, team_id)


def lookup_field(raw: Mapping[str, Any], name: str) -> Any:
    """Return the first present alias of a game field, or None."""
    for key in _GAME_FIELD_ALIASES[name]:
        if key in raw:
            return raw[key]
    return None


def parse_score(value: str | int | None) -> int | None:
    """Parse a score as a non-negative integer, returning None when it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and _SCORE_PATTERN.match(value):
        return int(value)
    return None


__all__ = [
    "DEFAULT_INITIAL_RATING",
    "Diagnostic",
    "DiagnosticLog",
    "Game",
    "GameOutcome",
    "Team",
    "TeamId",
    "lookup_field",
    "parse_score",
]
