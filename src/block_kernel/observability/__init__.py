from .adapters import JsonlLogSink, MemoryLogSink, NullLogSink, StdoutLogSink, build_log_sink
from .domain import LogMessage
from .logger import LogSink, StructuredLogger, TestLogger
from .serialization import SERIALIZATION_FALLBACK, serialize_value

__all__ = [
    "LogMessage",
    "LogSink",
    "TestLogger",
    "StructuredLogger",
    "StdoutLogSink",
    "JsonlLogSink",
    "MemoryLogSink",
    "NullLogSink",
    "build_log_sink",
    "SERIALIZATION_FALLBACK",
    "serialize_value",
]
