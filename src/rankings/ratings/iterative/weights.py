"""Per-game importance weights: score decisiveness times season progress."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from math import floor, sqrt

from rankings.common import GameOutcome
from rankings.ratings.protocol import DiagnosticSink, Division, Level, level_for_division

DEFAULT_SCORE_WEIGHT_MAX = 13.0
SCORE_WEIGHT_TOTAL_BASE = 19.0

CLUB_REGULAR_SEASON_WEEKS = 13
COLLEGE_REGULAR_SEASON_WEEKS = 13

DATE_WEIGHT_GROWTH = 1.5
DATE_WEIGHT_OFFSET = -0.5

# (regular season weeks, month the season starts in)
_SEASONS: dict[Level, tuple[int, int]] = {
    Level.CLUB: (CLUB_REGULAR_SEASON_WEEKS, 6),
    Level.COLLEGE: (COLLEGE_REGULAR_SEASON_WEEKS, 1),
}

# Month from which a date belongs to the current year's rankings.
_RANKINGS_ROLLOVER_MONTH: dict[Level, int] = {
    Level.CLUB: 6,
    Level.COLLEGE: 2,
}

_TUESDAY = 1


def compute_score_weight(
    winning_score: int,
    losing_score: int,
    score_weight_max: float = DEFAULT_SCORE_WEIGHT_MAX,
) -> float:
    """Weight a game by how decisive its final score was.

    A game counts fully once the winner reaches ``score_weight_max`` or the
    combined score reaches the proportional total (19 for a max of 13).
    """
    if winning_score >= score_weight_max:
        return 1.0
    if winning_score + losing_score >= (SCORE_WEIGHT_TOTAL_BASE / 13.0) * score_weight_max:
        return 1.0
    return sqrt((winning_score + max(losing_score, (winning_score - 1) / 2)) / SCORE_WEIGHT_TOTAL_BASE)


def first_tuesday_in_month(year: int, month: int) -> date:
    first = date(year, month, 1)
    return first + timedelta(days=(_TUESDAY - first.weekday()) % 7)


def season_start(level: Level, year: int) -> date:
    """First Tuesday of June for club, first Tuesday of January for college."""
    _, month = _SEASONS[level]
    return first_tuesday_in_month(year, month)


def regular_season_weeks(level: Level) -> int:
    weeks, _ = _SEASONS[level]
    return weeks


def parse_start_date(value: str | datetime) -> datetime:
    """Parse an ISO-8601 start date, keeping the wall-clock time of aware values.

    Raises ``ValueError`` for anything that is neither a string nor a datetime.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if not isinstance(value, str):
        raise ValueError(f"start date must be an ISO-8601 string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    parsed = datetime.fromisoformat(text)
    return parsed.replace(tzinfo=None)


def compute_date_weight(start_date: datetime, level: Level) -> float:
    """Weight a game by how far into the regular season it was played."""
    weeks = regular_season_weeks(level)
    anchor = season_start(level, start_date.year)
    elapsed = start_date - datetime(anchor.year, anchor.month, anchor.day)

    game_week = floor(elapsed.total_seconds() / timedelta(weeks=1).total_seconds())
    game_week = max(0, min(game_week, weeks))

    date_multiplier = DATE_WEIGHT_GROWTH ** (1.0 / weeks)
    return date_multiplier**game_week + DATE_WEIGHT_OFFSET


def compute_game_date_weight(
    outcome: GameOutcome,
    level: Level,
    diagnostics: DiagnosticSink | None = None,
) -> float:
    """Date weight for a game, falling back to 1.0 when it has no usable start date."""
    raw_start_date = outcome.game.start_date
    if not raw_start_date:
        if diagnostics is not None:
            diagnostics.record(
                "missing start date",
                f"No start date for game {outcome.game_id}; date weight defaults to 1",
                game_id=outcome.game_id,
            )
        return 1.0

    try:
        start_date = parse_start_date(raw_start_date)
    except ValueError:
        if diagnostics is not None:
            diagnostics.record(
                "invalid start date",
                f"Start date {raw_start_date!r} of game {outcome.game_id} is not ISO-8601; "
                "date weight defaults to 1",
                game_id=outcome.game_id,
            )
        return 1.0

    return compute_date_weight(start_date, level)


def compute_game_weight(
    outcome: GameOutcome,
    *,
    enable_score_weight: bool = True,
    enable_date_weight: bool = True,
    score_weight_max: float = DEFAULT_SCORE_WEIGHT_MAX,
    level: Level = Level.CLUB,
    diagnostics: DiagnosticSink | None = None,
) -> float:
    score_weight = (
        compute_score_weight(outcome.winning_score, outcome.losing_score, score_weight_max)
        if enable_score_weight
        else 1.0
    )
    date_weight = compute_game_date_weight(outcome, level, diagnostics) if enable_date_weight else 1.0
    return score_weight * date_weight


def current_rankings_year(division: Division | None, today: date | None = None) -> int:
    """Season year that rankings computed on ``today`` belong to."""
    today = today or date.today()
    rollover_month = _RANKINGS_ROLLOVER_MONTH[level_for_division(division)]
    return today.year if today.month >= rollover_month else today.year - 1


__all__ = [
    "CLUB_REGULAR_SEASON_WEEKS",
    "COLLEGE_REGULAR_SEASON_WEEKS",
    "DEFAULT_SCORE_WEIGHT_MAX",
    "compute_date_weight",
    "compute_game_date_weight",
    "compute_game_weight",
    "compute_score_weight",
    "current_rankings_year",
    "first_tuesday_in_month",
    "parse_start_date",
    "regular_season_weeks",
    "season_start",
]
