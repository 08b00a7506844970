from __future__ import annotations

import json

import pytest

from lead_discovery.config import (
    DEFAULT_CATEGORIES,
    DEFAULT_LOCATIONS,
    ConfigurationError,
    PipelineSettings,
    load_configuration,
    load_settings,
)


def test_defaults_match_documented_values() -> None:
    settings = PipelineSettings()

    assert settings.workers == 1
    assert settings.max_results_per_search == 20
    assert settings.min_rating == 3.0
    assert settings.target_leads == 50
    assert settings.quality_threshold == 60
    assert settings.quality_strategy == "pagespeed"
    assert settings.max_attempts == 5
    assert settings.initial_backoff == 60.0
    assert settings.quality_weights == (0.25, 0.25, 0.25, 0.25)
    assert settings.cache_ttl == 86400
    assert settings.locations == DEFAULT_LOCATIONS
    assert settings.categories == DEFAULT_CATEGORIES


def test_load_configuration_reads_json(tmp_path) -> None:
    path = tmp_path / "pipeline.json"
    path.write_text(json.dumps({"workers": 3}), encoding="utf-8")

    assert load_configuration(path) == {"workers": 3}


def test_load_configuration_reads_yaml(tmp_path) -> None:
    pytest.importorskip("yaml")
    path = tmp_path / "pipeline.yaml"
    path.write_text("workers: 2\nclassifier:\n  quality_threshold: 55\n", encoding="utf-8")

    assert load_configuration(path) == {"workers": 2, "classifier": {"quality_threshold": 55}}


def test_empty_yaml_is_an_empty_mapping(tmp_path) -> None:
    pytest.importorskip("yaml")
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")

    assert load_configuration(path) == {}


@pytest.mark.parametrize(
    ("name", "content"),
    [
        ("missing.json", None),
        ("settings.toml", "workers = 1"),
        ("broken.json", "{not json"),
        ("list.json", "[1, 2]"),
    ],
)
def test_load_configuration_rejects_bad_files(tmp_path, name: str, content: str | None) -> None:
    path = tmp_path / name
    if content is not None:
        path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_configuration(path)


def test_from_mapping_flattens_classifier_section() -> None:
    settings = PipelineSettings.from_mapping(
        {
            "workers": 4,
            "classifier": {"quality_threshold": 50, "social_patterns": ["tripadvisor"]},
        }
    )

    assert settings.workers == 4
    assert settings.quality_threshold == 50
    assert settings.social_patterns == ["tripadvisor"]


def test_from_mapping_rejects_unknown_keys() -> None:
    with pytest.raises(ConfigurationError, match="scrapers"):
        PipelineSettings.from_mapping({"scrapers": []})


@pytest.mark.parametrize(
    "values",
    [
        {"workers": 0},
        {"quality_threshold": 101},
        {"quality_strategy": "lighthouse"},
        {"quality_weights": [1, 1]},
        {"max_attempts": 0},
    ],
)
def test_invalid_values_are_configuration_errors(values: dict) -> None:
    with pytest.raises(ConfigurationError):
        PipelineSettings.from_mapping(values)


def test_environment_overrides_file_values(tmp_path) -> None:
    path = tmp_path / "pipeline.json"
    path.write_text(json.dumps({"workers": 2, "target_leads": 10}), encoding="utf-8")

    settings = load_settings(
        path,
        environ={
            "LEAD_DISCOVERY_WORKERS": "3",
            "LEAD_DISCOVERY_HEADLESS": "false",
            "LEAD_DISCOVERY_LOCATIONS": "Durban, Soweto",
            "LEAD_DISCOVERY_PAGESPEED_API_KEY": "secret",
            "LEAD_DISCOVERY_QUALITY_WEIGHTS": "0.4,0.2,0.2,0.2",
        },
    )

    assert settings.workers == 3
    assert settings.target_leads == 10
    assert settings.headless is False
    assert settings.locations == ["Durban", "Soweto"]
    assert settings.pagespeed_api_key == "secret"
    assert settings.quality_weights == (0.4, 0.2, 0.2, 0.2)


def test_invalid_environment_value_is_reported() -> None:
    with pytest.raises(ConfigurationError, match="workers"):
        load_settings(environ={"LEAD_DISCOVERY_WORKERS": "many"})


def test_with_overrides_ignores_none() -> None:
    settings = PipelineSettings()

    assert settings.with_overrides(workers=None) is settings
    assert settings.with_overrides(workers=5).workers == 5
