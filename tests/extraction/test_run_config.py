"""Tests for run configuration loading and validation."""
from __future__ import annotations

from pathlib import Path

import pytest

from src.extraction.config import ConfigError, RunConfig, load_run_config, normalize_fields


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SILICONFLOW_API_KEY", raising=False)


def test_defaults() -> None:
    config = RunConfig()

    assert config.model == "Qwen/Qwen2.5-32B-Instruct"
    assert config.temperature == 0.1
    assert (config.batch_size, config.overlap_size, config.max_characters) == (15, 2, 2500)
    assert config.extraction_fields == ("birthplace", "office")
    assert not config.has_credential


@pytest.mark.parametrize(
    "kwargs",
    [
        {"batch_size": 0},
        {"overlap_size": -1},
        {"max_characters": 0},
        {"temperature": 2.5},
        {"timeout": 0},
        {"cooldown_floor": -0.1},
    ],
)
def test_invalid_values_are_rejected(kwargs) -> None:
    with pytest.raises(ConfigError):
        RunConfig(**kwargs)


def test_load_without_file_uses_defaults_and_env_key(monkeypatch) -> None:
    monkeypatch.setenv("SILICONFLOW_API_KEY", " env-key ")

    config = load_run_config()

    assert config.api_key == "env-key"
    assert config.batch_size == 15


def test_load_default_location(tmp_path: Path) -> None:
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "roster.yaml").write_text("batchSize: 4\n", encoding="utf-8")

    assert load_run_config().batch_size == 4


def test_load_accepts_camel_and_snake_case(tmp_path: Path) -> None:
    config_path = tmp_path / "run.yaml"
    config_path.write_text(
        "\n".join(
            [
                "apiKey: file-key",
                "model: deepseek-ai/DeepSeek-V3",
                "temperature: 0",
                "batchSize: 10",
                "overlap_size: 1",
                "maxCharacters: 1800",
                "extractionFields: [birthplace, ' rank ', name, birthplace, '']",
                "examples:",
                "  - input: Some biography",
                "    output: '{\"name\": \"Someone\"}'",
            ]
        ),
        encoding="utf-8",
    )

    config = load_run_config(config_path)

    assert config.api_key == "file-key"
    assert config.model == "deepseek-ai/DeepSeek-V3"
    assert config.temperature == 0.0
    assert (config.batch_size, config.overlap_size, config.max_characters) == (10, 1, 1800)
    assert config.extraction_fields == ("birthplace", "rank")
    assert config.examples[0].input == "Some biography"


def test_file_key_wins_over_environment(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SILICONFLOW_API_KEY", "env-key")
    config_path = tmp_path / "run.yaml"
    config_path.write_text("apiKey: file-key\n", encoding="utf-8")

    assert load_run_config(config_path).api_key == "file-key"


def test_missing_explicit_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_run_config(tmp_path / "absent.yaml")


def test_non_mapping_yaml_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "list.yaml"
    config_path.write_text("- one\n- two\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="must be a mapping"):
        load_run_config(config_path)


def test_invalid_yaml_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "broken.yaml"
    config_path.write_text("batchSize: [1, 2\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="not valid YAML"):
        load_run_config(config_path)


def test_bad_option_type_rejected() -> None:
    with pytest.raises(ConfigError, match="batch_size"):
        RunConfig.from_mapping({"batchSize": "many"})


def test_malformed_example_rejected() -> None:
    with pytest.raises(ConfigError, match="Example #1"):
        RunConfig.from_mapping({"examples": [{"input": "only input"}]})


def test_unknown_options_are_logged(caplog) -> None:
    with caplog.at_level("WARNING", logger="src.extraction.config"):
        RunConfig.from_mapping({"batchSize": 3, "colour": "blue"})

    assert "colour" in caplog.text


def test_with_overrides_skips_none_and_normalizes_fields() -> None:
    base = RunConfig(api_key="k")

    updated = base.with_overrides(batch_size=5, model=None, extraction_fields=["office", "office", "name"])

    assert updated.batch_size == 5
    assert updated.model == base.model
    assert updated.extraction_fields == ("office",)
    assert base.batch_size == 15


def test_with_overrides_validates() -> None:
    with pytest.raises(ConfigError):
        RunConfig().with_overrides(overlap_size=-2)


def test_normalize_fields_accepts_single_string() -> None:
    assert normalize_fields(" office ") == ("office",)
    assert normalize_fields(None) == ()
