from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

LOG_LEVELS: dict[str, int] = {"debug": 10, "info": 20, "error": 40}


@dataclass(frozen=True, slots=True)
class LogMessage:
    # Structured lifecycle event; fields carry run/block/channel for sinks to render.
    level: str
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    fields: dict[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.level or self.level not in LOG_LEVELS:
            raise ValueError(f"LogMessage level must be one of: {sorted(LOG_LEVELS)}")
        if not isinstance(self.message, str):
            raise ValueError("LogMessage requires a string message")
