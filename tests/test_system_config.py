"""Tests for TOML-based iterative system config loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from rankings.ratings.iterative.config import (
    load_iterative_system_config,
    load_iterative_system_configs,
)
from rankings.ratings.protocol import Division

CONFIG_DIR = Path(__file__).resolve().parents[1] / "configs" / "ratings" / "iterative"


def test_load_iterative_system_configs_from_directory(tmp_path: Path) -> None:
    config_path = tmp_path / "default.toml"
    config_path.write_text(
        """
[system]
name = "system_a"
description = "A test system"

[rating]
initial_rating = 1200.0
division = "college-womens"
enable_date_weight = false
enable_score_weight = true
score_weight_max = 15
max_iterations = 250
convergence_threshold = 0.01
blowout_rating_gap = 550.0
blowout_min_other_results = 5
""".strip()
    )

    configs = load_iterative_system_configs(tmp_path)
    assert len(configs) == 1

    system = configs[0]
    assert system.name == "system_a"
    assert system.description == "A test system"
    assert system.file_path == config_path
    assert system.parameters.initial_rating == pytest.approx(1200.0)
    assert system.parameters.division is Division.COLLEGE_WOMENS
    assert system.parameters.enable_date_weight is False
    assert system.parameters.enable_score_weight is True
    assert system.parameters.score_weight_max == pytest.approx(15.0)
    assert system.parameters.max_iterations == 250
    assert system.parameters.convergence_threshold == pytest.approx(0.01)
    assert system.parameters.blowout_rating_gap == pytest.approx(550.0)
    assert system.parameters.blowout_min_other_results == 5


def test_missing_rating_table_uses_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "bare.toml"
    config_path.write_text('[system]\nname = "bare"\n')

    system = load_iterative_system_config(config_path)

    assert system.description is None
    assert system.parameters.initial_rating == pytest.approx(1000.0)
    assert system.parameters.division is None
    assert system.parameters.enable_date_weight is True
    assert system.parameters.max_iterations == 500
    assert system.as_config_json()["division"] is None


def test_duplicate_names_raise_error(tmp_path: Path) -> None:
    template = '[system]\nname = "dup"\n\n[rating]\ninitial_rating = 1000.0\n'
    (tmp_path / "a.toml").write_text(template)
    (tmp_path / "b.toml").write_text(template)

    with pytest.raises(ValueError, match="Duplicate iterative system names"):
        load_iterative_system_configs(tmp_path)


def test_missing_name_raises_error(tmp_path: Path) -> None:
    config_path = tmp_path / "nameless.toml"
    config_path.write_text("[rating]\ninitial_rating = 1000.0\n")

    with pytest.raises(ValueError, match=r"\[system\]\.name is required"):
        load_iterative_system_config(config_path)


@pytest.mark.parametrize(
    ("line", "message"),
    [
        ("score_weight_max = 0", "score_weight_max must be > 0"),
        ("max_iterations = -1", "max_iterations must be >= 0"),
        ("convergence_threshold = 0", "convergence_threshold must be > 0"),
        ("blowout_rating_gap = -1.0", "blowout_rating_gap must be >= 0"),
        ("blowout_min_other_results = -2", "blowout_min_other_results must be >= 0"),
        ('enable_date_weight = "false"', r"\[rating\]\.enable_date_weight must be a boolean"),
        ("enable_score_weight = 0", r"\[rating\]\.enable_score_weight must be a boolean"),
    ],
)
def test_invalid_parameters_raise_error(tmp_path: Path, line: str, message: str) -> None:
    config_path = tmp_path / "invalid.toml"
    config_path.write_text(f'[system]\nname = "invalid"\n\n[rating]\n{line}\n')

    with pytest.raises(ValueError, match=message):
        load_iterative_system_config(config_path)


def test_unknown_division_raises_error(tmp_path: Path) -> None:
    config_path = tmp_path / "division.toml"
    config_path.write_text('[system]\nname = "division"\n\n[rating]\ndivision = "masters"\n')

    with pytest.raises(ValueError, match=r"\[rating\]\.division: Unknown division 'masters'"):
        load_iterative_system_config(config_path)


def test_invalid_toml_names_the_file(tmp_path: Path) -> None:
    config_path = tmp_path / "broken.toml"
    config_path.write_text('[system\nname = "broken"\n')

    with pytest.raises(ValueError, match="broken.toml: invalid TOML"):
        load_iterative_system_config(config_path)


def test_missing_config_file_raises_error(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_iterative_system_config(tmp_path / "absent.toml")


def test_empty_config_directory_raises_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="No .toml config files"):
        load_iterative_system_configs(tmp_path)


def test_shipped_configs_load() -> None:
    systems = {system.name: system for system in load_iterative_system_configs(CONFIG_DIR)}

    assert set(systems) == {"club", "college", "custom"}
    assert systems["club"].parameters.division is Division.MIXED
    assert systems["college"].parameters.division is Division.COLLEGE_MENS
    assert systems["custom"].parameters.enable_date_weight is False
    assert systems["custom"].parameters.enable_score_weight is False
