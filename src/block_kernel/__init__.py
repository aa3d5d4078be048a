"""Compose test blocks into ordered pipelines with type-driven dependency resolution.

Public surface::

    from block_kernel import (
        TestBuilder,
        entry_point,
        inject,
        injected,
        Lifetime,
        TestLogger,
        StructuredLogger,
        ConfigurationError,
        UnresolvedDependencyError,
    )
"""

from block_kernel.application_context.inject import inject, injected
from block_kernel.application_context.service_registry import Lifetime, ServiceRegistry
from block_kernel.config.models import EngineConfig
from block_kernel.config.validator import ConfigError
from block_kernel.kernel.block import entry_point
from block_kernel.kernel.builder import RunReport, TestBuilder
from block_kernel.kernel.context import ExecutionContext
from block_kernel.kernel.errors import (
    BlockKernelError,
    ConfigurationError,
    InvocationError,
    SerializationWarning,
    UnresolvedDependencyError,
)
from block_kernel.kernel.executor import BlockRecord, BlockState
from block_kernel.observability.logger import LogSink, StructuredLogger, TestLogger
from block_kernel.observability.serialization import SERIALIZATION_FALLBACK, serialize_value

__all__ = [
    "TestBuilder",
    "RunReport",
    "BlockRecord",
    "BlockState",
    "ExecutionContext",
    "entry_point",
    "inject",
    "injected",
    "Lifetime",
    "ServiceRegistry",
    "EngineConfig",
    "ConfigError",
    "TestLogger",
    "LogSink",
    "StructuredLogger",
    "SERIALIZATION_FALLBACK",
    "serialize_value",
    "BlockKernelError",
    "ConfigurationError",
    "InvocationError",
    "SerializationWarning",
    "UnresolvedDependencyError",
]
