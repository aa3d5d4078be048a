from __future__ import annotations

from typing import Protocol, runtime_checkable

from block_kernel.observability.domain.logging import LOG_LEVELS, LogMessage


@runtime_checkable
class TestLogger(Protocol):
    """Consumer of engine lifecycle events.

    Every call names the run and the block it concerns. Implementations may be
    registered in the service registry under ``TestLogger`` to replace the
    engine's default structured logger for a run.
    """

    def debug(self, run_name: str, block_name: str, message: str) -> None:
        """Resolved property/argument values, serialized best-effort."""
        raise NotImplementedError("TestLogger is a port; use a concrete logger.")

    def info(self, run_name: str, block_name: str, message: str) -> None:
        """Lifecycle milestones such as a block starting or completing."""
        raise NotImplementedError("TestLogger is a port; use a concrete logger.")

    def error(self, run_name: str, block_name: str, message: str) -> None:
        """Resolution, invocation and teardown failures."""
        raise NotImplementedError("TestLogger is a port; use a concrete logger.")

    def test_block_input(self, run_name: str, block_name: str, serialized_args: str) -> None:
        """The arguments handed to a block's entry point."""
        raise NotImplementedError("TestLogger is a port; use a concrete logger.")

    def test_block_output(self, run_name: str, block_name: str, serialized_result: str) -> None:
        """The value a block's entry point returned."""
        raise NotImplementedError("TestLogger is a port; use a concrete logger.")


@runtime_checkable
class LogSink(Protocol):
    # Port for structured log outputs (stdout, jsonl file, in-memory).
    def emit(self, message: LogMessage) -> None:
        """Consume one LogMessage."""
        raise NotImplementedError("LogSink is a port; use a concrete adapter.")

    def flush(self) -> None:
        """Flush buffered output if supported."""
        raise NotImplementedError("LogSink is a port; use a concrete adapter.")

    def close(self) -> None:
        """Close the sink and release resources."""
        raise NotImplementedError("LogSink is a port; use a concrete adapter.")


class StructuredLogger:
    # Default TestLogger: turns lifecycle calls into LogMessage records filtered by minimum level.
    def __init__(self, sink: LogSink, *, level: str = "info") -> None:
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of: {sorted(LOG_LEVELS)}")
        self._sink = sink
        self._threshold = LOG_LEVELS[level]

    @property
    def sink(self) -> LogSink:
        return self._sink

    def debug(self, run_name: str, block_name: str, message: str) -> None:
        self._emit("debug", "lifecycle", run_name, block_name, message)

    def info(self, run_name: str, block_name: str, message: str) -> None:
        self._emit("info", "lifecycle", run_name, block_name, message)

    def error(self, run_name: str, block_name: str, message: str) -> None:
        self._emit("error", "lifecycle", run_name, block_name, message)

    def test_block_input(self, run_name: str, block_name: str, serialized_args: str) -> None:
        self._emit("debug", "input", run_name, block_name, serialized_args)

    def test_block_output(self, run_name: str, block_name: str, serialized_result: str) -> None:
        self._emit("debug", "output", run_name, block_name, serialized_result)

    def flush(self) -> None:
        self._sink.flush()

    def close(self) -> None:
        self._sink.close()

    def _emit(self, level: str, channel: str, run_name: str, block_name: str, message: str) -> None:
        if LOG_LEVELS[level] < self._threshold:
            return
        self._sink.emit(
            LogMessage(
                level=level,
                message=message,
                fields={"run": run_name, "block": block_name, "channel": channel},
            )
        )
