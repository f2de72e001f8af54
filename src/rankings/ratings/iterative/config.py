"""Load iterative rating system definitions from TOML files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rankings.common import DEFAULT_INITIAL_RATING
from rankings.config_base import BaseSystemConfig, load_system_config, load_system_configs
from rankings.ratings.iterative.calculator import (
    BLOWOUT_RATING_GAP,
    CONVERGENCE_THRESHOLD,
    MAX_ITERATIONS,
    RatingParameters,
)
from rankings.ratings.iterative.weights import DEFAULT_SCORE_WEIGHT_MAX
from rankings.ratings.protocol import parse_division


@dataclass(frozen=True)
class IterativeSystemConfig(BaseSystemConfig):
    """Configuration for one iterative rankings run."""

    parameters: RatingParameters

    def as_config_json(self) -> dict[str, Any]:
        division = self.parameters.division
        return {
            "initial_rating": self.parameters.initial_rating,
            "enable_date_weight": self.parameters.enable_date_weight,
            "enable_score_weight": self.parameters.enable_score_weight,
            "score_weight_max": self.parameters.score_weight_max,
            "division": None if division is None else division.value,
            "max_iterations": self.parameters.max_iterations,
            "convergence_threshold": self.parameters.convergence_threshold,
            "blowout_rating_gap": self.parameters.blowout_rating_gap,
            "blowout_min_other_results": self.parameters.blowout_min_other_results,
        }


def load_iterative_system_configs(config_dir: Path) -> list[IterativeSystemConfig]:
    """Load and validate all iterative system TOML config files in a directory."""
    return load_system_configs(
        config_dir,
        _parse_iterative_system_config,
        duplicate_name_label="iterative",
    )


def load_iterative_system_config(file_path: Path) -> IterativeSystemConfig:
    return load_system_config(file_path, _parse_iterative_system_config)


def _parse_iterative_system_config(raw: dict[str, Any], file_path: Path) -> IterativeSystemConfig:
    system_raw = raw.get("system", {})
    rating_raw = raw.get("rating", {})

    name = str(system_raw.get("name", "")).strip()
    if not name:
        raise ValueError(f"{file_path}: [system].name is required")

    description_value = system_raw.get("description")
    description = None if description_value is None else str(description_value)

    try:
        division = parse_division(rating_raw.get("division"))
    except ValueError as exc:
        raise ValueError(f"{file_path}: [rating].division: {exc}") from exc

    parameters = RatingParameters(
        initial_rating=float(rating_raw.get("initial_rating", DEFAULT_INITIAL_RATING)),
        enable_date_weight=_parse_flag(rating_raw, "enable_date_weight", file_path=file_path),
        enable_score_weight=_parse_flag(rating_raw, "enable_score_weight", file_path=file_path),
        score_weight_max=float(rating_raw.get("score_weight_max", DEFAULT_SCORE_WEIGHT_MAX)),
        division=division,
        max_iterations=int(rating_raw.get("max_iterations", MAX_ITERATIONS)),
        convergence_threshold=float(rating_raw.get("convergence_threshold", CONVERGENCE_THRESHOLD)),
        blowout_rating_gap=float(rating_raw.get("blowout_rating_gap", BLOWOUT_RATING_GAP)),
        blowout_min_other_results=int(rating_raw.get("blowout_min_other_results", 0)),
    )
    _validate_parameters(file_path=file_path, parameters=parameters)

    return IterativeSystemConfig(
        name=name,
        description=description,
        file_path=file_path,
        parameters=parameters,
    )


def _parse_flag(rating_raw: dict[str, Any], key: str, *, file_path: Path, default: bool = True) -> bool:
    value = rating_raw.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{file_path}: [rating].{key} must be a boolean")
    return value


def _validate_parameters(*, file_path: Path, parameters: RatingParameters) -> None:
    if parameters.score_weight_max <= 0.0:
        raise ValueError(f"{file_path}: [rating].score_weight_max must be > 0")
    if parameters.max_iterations < 0:
        raise ValueError(f"{file_path}: [rating].max_iterations must be >= 0")
    if parameters.convergence_threshold <= 0.0:
        raise ValueError(f"{file_path}: [rating].convergence_threshold must be > 0")
    if parameters.blowout_rating_gap < 0.0:
        raise ValueError(f"{file_path}: [rating].blowout_rating_gap must be >= 0")
    if parameters.blowout_min_other_results < 0:
        raise ValueError(f"{file_path}: [rating].blowout_min_other_results must be >= 0")
