from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from stepwise.config.models import ScriptConfig


# ConfigError is raised for invalid script files (fail fast).
class ConfigError(ValueError):
    pass


def load_config(path: Path) -> ScriptConfig:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    return parse_config(raw)


def parse_config(raw: object) -> ScriptConfig:
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")
    try:
        return ScriptConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
