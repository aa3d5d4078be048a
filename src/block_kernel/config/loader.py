from __future__ import annotations

from pathlib import Path

import yaml

from block_kernel.config.models import EngineConfig
from block_kernel.config.validator import ConfigError, validate_engine_config


def load_yaml_config(path: Path) -> dict[str, object]:
    # YAML loader; returns a raw mapping for validation. An empty file is an empty mapping.
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")
    return raw


def load_engine_config(path: Path) -> EngineConfig:
    return validate_engine_config(load_yaml_config(path))
