"""Tests for analysis settings validation and loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from config_validation import validate_analysis_settings
from settings import AnalysisSettings, SettingsError, load_settings


def valid_settings(**overrides):
    data = {
        "bootstrap_samples": 1000,
        "random_seed": None,
        "distance_units": "yards",
        "scale_units": "in",
        "log_retention": 30,
    }
    data.update(overrides)
    return data


def test_defaults_are_valid():
    assert validate_analysis_settings(AnalysisSettings().to_dict()) == []


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"bootstrap_samples": "lots"}, "bootstrap_samples"),
        ({"bootstrap_samples": 50}, "bootstrap_samples"),
        ({"bootstrap_samples": True}, "bootstrap_samples"),
        ({"random_seed": -1}, "random_seed"),
        ({"random_seed": "abc"}, "random_seed"),
        ({"distance_units": "furlongs"}, "distance_units"),
        ({"scale_units": "cm"}, "scale_units"),
        ({"log_retention": 3}, "log_retention"),
        ({"log_retention": None}, "log_retention"),
    ],
)
def test_invalid_values_are_reported(overrides, field):
    issues = validate_analysis_settings(valid_settings(**overrides))
    assert [issue.field for issue in issues] == [field]


def test_text_values_are_accepted():
    issues = validate_analysis_settings(
        valid_settings(bootstrap_samples=" 2500 ", random_seed="", distance_units=" Meters ")
    )
    assert issues == []


def test_from_dict_normalises_values():
    settings = AnalysisSettings.from_dict(
        {"bootstrap_samples": "500", "random_seed": "7", "distance_units": "METERS",
         "data_dir": "/tmp/shotlog", "unknown": 1}
    )
    assert settings.bootstrap_samples == 500
    assert settings.random_seed == 7
    assert settings.distance_units == "meters"
    assert settings.scale_units == "in"
    assert settings.data_dir == Path("/tmp/shotlog")


def test_from_dict_raises_with_issues():
    with pytest.raises(SettingsError) as excinfo:
        AnalysisSettings.from_dict({"bootstrap_samples": 5, "log_retention": 1000})
    assert {issue.field for issue in excinfo.value.issues} == {"bootstrap_samples", "log_retention"}


def test_load_settings_missing_file_gives_defaults(tmp_path):
    settings = load_settings(tmp_path / "absent.json")
    assert settings == AnalysisSettings()


def test_load_settings_reads_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"bootstrap_samples": 200, "scale_units": "mm"}), encoding="utf-8")

    settings = load_settings(path)

    assert settings.bootstrap_samples == 200
    assert settings.scale_units == "mm"


@pytest.mark.parametrize("content", ["{broken", "[1, 2]"])
def test_load_settings_rejects_unreadable_files(tmp_path, content):
    path = tmp_path / "settings.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(SettingsError) as excinfo:
        load_settings(path)
    assert excinfo.value.issues[0].field == "settings"
