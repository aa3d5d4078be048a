from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from block_kernel.application_context.service_registry import Lifetime, ServiceRegistry
from block_kernel.config.loader import load_engine_config
from block_kernel.config.models import EngineConfig
from block_kernel.config.validator import validate_engine_config
from block_kernel.kernel.block import BlockDescriptor, describe_block
from block_kernel.kernel.context import ContextFactory
from block_kernel.kernel.executor import BlockRecord, BlockState, Executor
from block_kernel.observability.adapters.logging import build_log_sink
from block_kernel.observability.logger import StructuredLogger, TestLogger


@dataclass(frozen=True, slots=True)
class RunReport:
    # Outcome of one run: per-block records and the final result store contents.
    run_name: str
    records: tuple[BlockRecord, ...]
    results: dict[type[Any], object]
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and all(r.state is BlockState.COMPLETED for r in self.records)

    def record(self, name: str) -> BlockRecord:
        for record in self.records:
            if record.name == name:
                return record
        raise KeyError(name)


@dataclass(frozen=True, slots=True)
class _BlockSpec:
    target: object
    explicit_args: tuple[object, ...] | None
    name: str | None


class TestBuilder:
    """Assemble a pipeline of test blocks and the services they draw on.

    Nothing happens until ``run()``: ``add_*`` calls only accumulate intent.
    Each ``run()`` validates every block, opens a fresh ``ExecutionContext``,
    executes the blocks in order and releases scoped services before
    returning a ``RunReport`` or re-raising the first failure.

    Usage::

        report = (
            TestBuilder("login")
            .add_service(Browser, lambda ctx: FakeBrowser(), Lifetime.SCOPED)
            .add_block(OpenLoginPage)
            .add_block(SubmitCredentials, "alice", "s3cret")
            .add_block(AssertLoggedIn)
            .run()
        )
    """

    __test__ = False

    def __init__(
        self,
        name: str | None = None,
        *,
        config: EngineConfig | dict[str, object] | None = None,
        logger: TestLogger | None = None,
        registry: ServiceRegistry | None = None,
    ) -> None:
        self._config = validate_engine_config(config)
        self._name = name or self._config.run_name
        self._logger = logger
        self._owns_logger = False
        self._registry = registry if registry is not None else ServiceRegistry()
        self._blocks: list[_BlockSpec] = []
        self.last_report: RunReport | None = None

    @classmethod
    def from_config(cls, config: EngineConfig | dict[str, object], *, name: str | None = None) -> TestBuilder:
        return cls(name, config=config)

    @classmethod
    def from_yaml(cls, path: Path | str, *, name: str | None = None) -> TestBuilder:
        return cls(name, config=load_engine_config(Path(path)))

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def registry(self) -> ServiceRegistry:
        return self._registry

    @property
    def logger(self) -> TestLogger:
        # Default logger is built from config on first use and owned by the builder.
        if self._logger is None:
            self._logger = StructuredLogger(
                build_log_sink(self._config.logging),
                level=self._config.logging.level,
            )
            self._owns_logger = True
        return self._logger

    def add_block(self, block: object, *args: object, name: str | None = None) -> TestBuilder:
        # Positional args, when given, are the block's explicit entry-point arguments.
        self._blocks.append(_BlockSpec(target=block, explicit_args=args if args else None, name=name))
        return self

    def add_service(
        self,
        key: type[Any],
        provider: object,
        lifetime: Lifetime = Lifetime.SCOPED,
    ) -> TestBuilder:
        self._registry.register_service(key, provider, lifetime)
        return self

    def add_instance(self, value: object, *, as_type: type[Any] | None = None) -> TestBuilder:
        self._registry.register_instance(value, as_type=as_type)
        return self

    def add_logger(self, logger: TestLogger) -> TestBuilder:
        # Registered loggers take precedence over the builder's default for every run.
        self._registry.register_instance(logger, as_type=TestLogger)
        return self

    def build(self) -> tuple[BlockDescriptor, ...]:
        # Validate every block before anything runs; raises ConfigurationError.
        descriptors: list[BlockDescriptor] = []
        for spec in self._blocks:
            descriptor = BlockDescriptor(
                block=describe_block(spec.target, name=spec.name),
                explicit_args=spec.explicit_args,
            )
            descriptor.validate()
            descriptors.append(descriptor)
        return tuple(descriptors)

    def run(self) -> RunReport:
        descriptors = self.build()
        factory = ContextFactory(
            registry=self._registry,
            default_logger=self.logger,
            max_value_length=self._config.serialization.max_length,
        )
        ctx = factory.new(self._name)
        executor = Executor(ctx)
        error: BaseException | None = None
        try:
            with ctx:
                executor.run(descriptors)
        except BaseException as exc:
            error = exc
            raise
        finally:
            self.last_report = RunReport(
                run_name=self._name,
                records=tuple(executor.records),
                results=ctx.results.snapshot(),
                error=error,
            )
        return self.last_report

    def close(self) -> None:
        # Release registry-constructed singletons and the default logger's sink.
        try:
            self._registry.close()
        finally:
            if self._owns_logger and isinstance(self._logger, StructuredLogger):
                self._logger.close()
