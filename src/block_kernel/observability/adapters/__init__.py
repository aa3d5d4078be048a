from .logging import JsonlLogSink, MemoryLogSink, NullLogSink, StdoutLogSink, build_log_sink

__all__ = ["JsonlLogSink", "MemoryLogSink", "NullLogSink", "StdoutLogSink", "build_log_sink"]
