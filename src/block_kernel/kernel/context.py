from __future__ import annotations

from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

from block_kernel.application_context.service_registry import ServiceRegistry, ServiceScope
from block_kernel.kernel.result_store import ResultStore
from block_kernel.observability.logger import TestLogger
from block_kernel.observability.serialization import DEFAULT_MAX_LENGTH, serialize_value

TEARDOWN_BLOCK = "<teardown>"


@dataclass(slots=True)
class ExecutionContext:
    # One run: owns the result store and scoped services; exiting releases scoped instances once.
    run_name: str
    scope: ServiceScope
    logger: TestLogger
    results: ResultStore = field(default_factory=ResultStore)
    max_value_length: int = DEFAULT_MAX_LENGTH
    current_block: str | None = None
    fallback_logger: TestLogger | None = None
    _closed: bool = field(default=False, repr=False)

    @property
    def closed(self) -> bool:
        return self._closed

    def resolve_service(self, key: type[Any]) -> object:
        # Factories receive the context and may pull other services through it.
        return self.scope.resolve(key, self)

    def serialize(self, value: object) -> str:
        return serialize_value(value, max_length=self.max_value_length, on_fallback=self._report_fallback)

    def _report_fallback(self, reason: str) -> None:
        self.logger.debug(self.run_name, self.current_block or self.run_name, reason)

    def close(self) -> list[Exception]:
        # Release scoped instances exactly once; failures are logged and returned.
        if self._closed:
            return []
        self._closed = True
        # A scoped logger is released with the other services; report through the fallback instead.
        logger = self.logger
        if self.fallback_logger is not None and self.scope.owns(logger):
            logger = self.fallback_logger
        errors = self.scope.release()
        for exc in errors:
            logger.error(
                self.run_name,
                TEARDOWN_BLOCK,
                f"Releasing scoped service failed: {type(exc).__name__}: {exc}",
            )
        return errors

    def __enter__(self) -> ExecutionContext:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        errors = self.close()
        # A run failure takes precedence over teardown failures.
        if exc_type is None and errors:
            raise errors[0]


@dataclass(frozen=True, slots=True)
class ContextFactory:
    # Owns ExecutionContext creation; a registered TestLogger replaces the default for the run.
    registry: ServiceRegistry
    default_logger: TestLogger
    max_value_length: int = DEFAULT_MAX_LENGTH

    def new(self, run_name: str) -> ExecutionContext:
        ctx = ExecutionContext(
            run_name=run_name,
            scope=self.registry.create_scope(),
            logger=self.default_logger,
            max_value_length=self.max_value_length,
            fallback_logger=self.default_logger,
        )
        if ctx.scope.has(TestLogger):
            try:
                registered = ctx.resolve_service(TestLogger)
            except Exception:
                ctx.close()
                raise
            if registered is not None:
                ctx.logger = registered  # type: ignore[assignment]
        return ctx
