"""Run configuration for extraction workflows."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from src.integrations.siliconflow import API_KEY_ENV_VAR, SiliconFlowClient

from . import FewShotExample

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path("config/roster.yaml")
_CAMEL_PATTERN = re.compile(r"(?<!^)(?=[A-Z])")
_KNOWN_OPTIONS = frozenset(
    {
        "api_key",
        "api_url",
        "model",
        "temperature",
        "batch_size",
        "overlap_size",
        "max_characters",
        "extraction_fields",
        "examples",
        "timeout",
        "cooldown_budget",
        "cooldown_floor",
    }
)


class ConfigError(ValueError):
    """Raised when run configuration is malformed."""


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Settings for one extraction run.

    ``cooldown_budget`` and ``cooldown_floor`` are in seconds and pace the
    request rate between batches.
    """

    api_key: str = ""
    model: str = SiliconFlowClient.DEFAULT_MODEL
    temperature: float = SiliconFlowClient.DEFAULT_TEMPERATURE
    batch_size: int = 15
    overlap_size: int = 2
    max_characters: int = 2500
    extraction_fields: tuple[str, ...] = ("birthplace", "office")
    examples: tuple[FewShotExample, ...] = ()
    api_url: str = SiliconFlowClient.DEFAULT_API_URL
    timeout: int = 120
    cooldown_budget: float = 3.0
    cooldown_floor: float = 0.5

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ConfigError("batch_size must be at least 1")
        if self.overlap_size < 0:
            raise ConfigError("overlap_size cannot be negative")
        if self.max_characters < 1:
            raise ConfigError("max_characters must be at least 1")
        if not 0.0 <= self.temperature <= 2.0:
            raise ConfigError("temperature must be between 0 and 2")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")
        if self.cooldown_budget < 0 or self.cooldown_floor < 0:
            raise ConfigError("cooldown values cannot be negative")

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key.strip())

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "RunConfig":
        normalized = _normalize_keys(mapping)
        unknown = sorted(key for key in normalized if key not in _KNOWN_OPTIONS)
        if unknown:
            logger.warning("Ignoring unknown run config options: %s", ", ".join(unknown))
        kwargs: dict[str, Any] = {}

        for key in ("api_key", "api_url", "model"):
            if normalized.get(key) is not None:
                kwargs[key] = str(normalized[key]).strip()
        for key in ("batch_size", "overlap_size", "max_characters", "timeout"):
            if normalized.get(key) is not None:
                kwargs[key] = _coerce(int, key, normalized[key])
        for key in ("temperature", "cooldown_budget", "cooldown_floor"):
            if normalized.get(key) is not None:
                kwargs[key] = _coerce(float, key, normalized[key])
        if "extraction_fields" in normalized:
            kwargs["extraction_fields"] = normalize_fields(normalized["extraction_fields"])
        if "examples" in normalized:
            kwargs["examples"] = _parse_examples(normalized["examples"])

        return cls(**kwargs)

    def with_overrides(self, **overrides: Any) -> "RunConfig":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        if "extraction_fields" in changes:
            changes["extraction_fields"] = normalize_fields(changes["extraction_fields"])
        if "examples" in changes:
            changes["examples"] = tuple(changes["examples"])
        return replace(self, **changes)

    def with_env_credential(self) -> "RunConfig":
        if self.has_credential:
            return self
        env_key = os.environ.get(API_KEY_ENV_VAR, "").strip()
        return replace(self, api_key=env_key) if env_key else self


def load_run_config(path: Path | None = None) -> RunConfig:
    """Load run configuration from YAML or fall back to defaults.

    The credential falls back to the ``SILICONFLOW_API_KEY`` environment
    variable when the file does not provide one.
    """

    if path is not None:
        resolved = Path(path).expanduser()
        if not resolved.exists():
            raise FileNotFoundError(f"Run config '{resolved}' does not exist")
        return RunConfig.from_mapping(_load_yaml(resolved)).with_env_credential()

    if _DEFAULT_CONFIG_PATH.exists():
        return RunConfig.from_mapping(_load_yaml(_DEFAULT_CONFIG_PATH)).with_env_credential()

    return RunConfig().with_env_credential()


def normalize_fields(values: Iterable[Any] | str | None) -> tuple[str, ...]:
    """Trim field names, drop blanks, reserved names and duplicates."""

    if not values:
        return ()
    if isinstance(values, str):
        values = [values]
    cleaned: list[str] = []
    for raw in values:
        token = str(raw).strip()
        if token and token not in ("name", "description"):
            cleaned.append(token)
    return tuple(dict.fromkeys(cleaned))


def _load_yaml(path: Path) -> Mapping[str, Any]:
    raw = path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Run config '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError("Run config must be a mapping at the top level.")
    return data


def _normalize_keys(mapping: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in mapping.items():
        key_str = str(key).strip()
        if not key_str:
            continue
        snake = _CAMEL_PATTERN.sub("_", key_str).lower().replace("-", "_")
        normalized[snake] = value
    return normalized


def _parse_examples(raw: Any) -> tuple[FewShotExample, ...]:
    if not raw:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise ConfigError("examples must be a list of {input, output} mappings")
    examples: list[FewShotExample] = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping) or "input" not in item or "output" not in item:
            raise ConfigError(f"Example #{index + 1} must define 'input' and 'output'")
        examples.append(FewShotExample(input=str(item["input"]), output=str(item["output"])))
    return tuple(examples)


def _coerce(kind: type, key: str, value: Any) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Option '{key}' must be a {kind.__name__}, got {value!r}") from exc


__all__ = [
    "ConfigError",
    "RunConfig",
    "load_run_config",
    "normalize_fields",
]
