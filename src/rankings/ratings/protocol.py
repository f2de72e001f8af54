"""Shared protocols and enums for rating systems."""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol, runtime_checkable

from rankings.common import TeamId


class Division(str, Enum):
    """Competition division a set of games belongs to."""

    MIXED = "mixed"
    MENS = "mens"
    WOMENS = "womens"
    COLLEGE_MENS = "college-mens"
    COLLEGE_WOMENS = "college-womens"


class Level(str, Enum):
    """Season calendar a division follows."""

    CLUB = "club"
    COLLEGE = "college"


def level_for_division(division: Division | None) -> Level:
    if division in (Division.COLLEGE_MENS, Division.COLLEGE_WOMENS):
        return Level.COLLEGE
    return Level.CLUB


def parse_division(value: str | Division | None) -> Division | None:
    """Resolve a division from its value (``"college-mens"``) or name (``"COLLEGE_MENS"``)."""
    if value is None or isinstance(value, Division):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return Division(text.lower())
    except ValueError:
        pass
    try:
        return Division[text.upper().replace("-", "_")]
    except KeyError as exc:
        choices = ", ".join(division.value for division in Division)
        raise ValueError(f"Unknown division {value!r}. Expected one of: {choices}") from exc


@runtime_checkable
class DiagnosticSink(Protocol):
    """Receives non-fatal anomalies noticed while rating."""

    def record(
        self,
        code: str,
        message: str,
        *,
        game_id: Any = None,
        team_id: TeamId | None = None,
    ) -> None: ...


__all__ = [
    "DiagnosticSink",
    "Division",
    "Level",
    "level_for_division",
    "parse_division",
]
