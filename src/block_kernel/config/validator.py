from __future__ import annotations

from pydantic import ValidationError

from block_kernel.config.models import EngineConfig


class ConfigError(ValueError):
    # Raised for invalid engine config (fail fast).
    pass


def validate_engine_config(raw: object) -> EngineConfig:
    # Accept a mapping (typically loaded from YAML) and return the typed config.
    if raw is None:
        return EngineConfig()
    if isinstance(raw, EngineConfig):
        return raw
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")
    try:
        return EngineConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
