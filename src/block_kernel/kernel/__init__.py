from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "BlockDef",
    "BlockDescriptor",
    "BlockRecord",
    "BlockState",
    "ConfigurationError",
    "ContextFactory",
    "ExecutionContext",
    "Executor",
    "InvocationError",
    "Resolver",
    "ResultStore",
    "RunReport",
    "SerializationWarning",
    "TestBuilder",
    "UnresolvedDependencyError",
    "describe_block",
    "entry_point",
]

_EXPORTS = {
    "block_kernel.kernel.block": {"BlockDef", "BlockDescriptor", "describe_block", "entry_point"},
    "block_kernel.kernel.builder": {"RunReport", "TestBuilder"},
    "block_kernel.kernel.context": {"ContextFactory", "ExecutionContext"},
    "block_kernel.kernel.errors": {
        "ConfigurationError",
        "InvocationError",
        "SerializationWarning",
        "UnresolvedDependencyError",
    },
    "block_kernel.kernel.executor": {"BlockRecord", "BlockState", "Executor"},
    "block_kernel.kernel.resolver": {"Resolver"},
    "block_kernel.kernel.result_store": {"ResultStore"},
}


def __getattr__(name: str) -> Any:
    # Lazy exports avoid import cycles between kernel, observability and application_context.
    for module_name, names in _EXPORTS.items():
        if name in names:
            return getattr(import_module(module_name), name)
    raise AttributeError(name)
