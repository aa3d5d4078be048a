from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from block_kernel.observability.domain.logging import LogMessage

if TYPE_CHECKING:
    from block_kernel.config.models import LoggingConfig


class StdoutLogSink:
    # Structured log sink printing one JSON object per line.
    def emit(self, message: LogMessage) -> None:
        sys.stdout.write(json.dumps(_log_to_dict(message), separators=(",", ":"), ensure_ascii=False) + "\n")

    def flush(self) -> None:
        sys.stdout.flush()

    def close(self) -> None:
        self.flush()


class JsonlLogSink:
    # File-backed structured log sink; the file is opened in append mode.
    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self._path.open("a", encoding="utf-8")

    @property
    def path(self) -> Path:
        return self._path

    def emit(self, message: LogMessage) -> None:
        payload = json.dumps(_log_to_dict(message), separators=(",", ":"), ensure_ascii=False)
        self._file.write(payload + "\n")
        self._file.flush()

    def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()


class MemoryLogSink:
    # Keeps every message in order; used by tests and by callers inspecting a finished run.
    def __init__(self) -> None:
        self.messages: list[LogMessage] = []

    def emit(self, message: LogMessage) -> None:
        self.messages.append(message)

    def flush(self) -> None:
        return None

    def close(self) -> None:
        return None

    def for_block(self, block_name: str) -> list[LogMessage]:
        return [m for m in self.messages if m.fields.get("block") == block_name]

    def for_channel(self, channel: str) -> list[LogMessage]:
        return [m for m in self.messages if m.fields.get("channel") == channel]


class NullLogSink:
    def emit(self, message: LogMessage) -> None:
        _ = message

    def flush(self) -> None:
        return None

    def close(self) -> None:
        return None


def build_log_sink(config: LoggingConfig) -> StdoutLogSink | JsonlLogSink | MemoryLogSink | NullLogSink:
    # Sink selection mirrors LoggingConfig.sink; jsonl requires a path (enforced by the model).
    if config.sink == "stdout":
        return StdoutLogSink()
    if config.sink == "jsonl":
        if not config.path:
            raise ValueError("logging.path is required when sink is 'jsonl'")
        return JsonlLogSink(Path(config.path))
    if config.sink == "memory":
        return MemoryLogSink()
    return NullLogSink()


def _log_to_dict(message: LogMessage) -> dict[str, object]:
    return {
        "level": message.level,
        "message": message.message,
        "timestamp": message.timestamp.isoformat().replace("+00:00", "Z"),
        "fields": message.fields,
    }
