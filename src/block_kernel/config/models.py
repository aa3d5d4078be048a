from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Config models map YAML sections to typed engine settings.


class LoggingConfig(BaseModel):
    # Default logger wiring used when no TestLogger is registered for a run.
    model_config = ConfigDict(extra="forbid")
    sink: Literal["stdout", "jsonl", "memory", "null"] = "stdout"
    level: Literal["debug", "info", "error"] = "info"
    path: str | None = None

    @model_validator(mode="after")
    def _require_path(self) -> LoggingConfig:
        # For jsonl sink, a path is required to avoid silent defaults.
        if self.sink == "jsonl" and not self.path:
            raise ValueError("logging.path is required when sink is 'jsonl'")
        return self


class SerializationConfig(BaseModel):
    # Bounds the size of serialized inputs/outputs in debug events.
    model_config = ConfigDict(extra="forbid")
    max_length: int = Field(default=4096, gt=0)


class EngineConfig(BaseModel):
    # Top-level typed view of engine configuration.
    model_config = ConfigDict(extra="forbid")
    run_name: str = Field(default="test-case", min_length=1)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    serialization: SerializationConfig = Field(default_factory=SerializationConfig)
