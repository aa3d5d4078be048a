from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from block_kernel.application_context.inject import InjectionPoint
from block_kernel.kernel.block import BlockDef, BlockDescriptor, Parameter
from block_kernel.kernel.context import ExecutionContext
from block_kernel.kernel.errors import ConfigurationError, UnresolvedDependencyError


@dataclass(frozen=True, slots=True)
class Resolver:
    """Produce values for a block's declared dependencies.

    Resolution order, first match wins:

    1. explicit arguments registered with the block (entry point only, all-or-nothing);
    2. the run's result store, by exact type key;
    3. the service registry through the run's scope, by exact key;
    4. the parameter's own default value, when it declares one.

    Anything else raises ``UnresolvedDependencyError`` naming the type and block.
    """

    ctx: ExecutionContext

    def resolve(self, data_type: type[Any], *, block_name: str, target: str | None = None) -> object:
        results = self.ctx.results
        if data_type in results:
            return results.get(data_type)
        if self.ctx.scope.has(data_type):
            try:
                service = self.ctx.resolve_service(data_type)
            except Exception as exc:
                exc.add_note(f"while resolving {data_type.__qualname__} for test block '{block_name}'")
                raise
            if service is not None:
                return service
        raise UnresolvedDependencyError(data_type, block_name, target=target)

    def entry_arguments(self, descriptor: BlockDescriptor) -> tuple[object, ...]:
        descriptor.validate()
        if descriptor.explicit_args is not None:
            return descriptor.explicit_args
        block = descriptor.block
        return tuple(self._resolve_parameter(block, param, "entry point") for param in block.parameters)

    def constructor_arguments(self, block: BlockDef) -> tuple[object, ...]:
        return tuple(self._resolve_parameter(block, param, "constructor") for param in block.init_parameters)

    def property_values(self, block: BlockDef) -> list[tuple[InjectionPoint, object]]:
        # Read-only injectable properties are skipped with a diagnostic; missing dependencies are fatal.
        resolved: list[tuple[InjectionPoint, object]] = []
        for point in block.injection_points:
            if not point.settable:
                self.ctx.logger.debug(
                    self.ctx.run_name,
                    block.name,
                    f"Skipping injectable property '{point.name}': it has no setter",
                )
                continue
            value = self.resolve(point.data_type, block_name=block.name, target=f"property '{point.name}'")
            resolved.append((point, value))
        return resolved

    def _resolve_parameter(self, block: BlockDef, param: Parameter, where: str) -> object:
        if param.data_type is None:
            if param.has_default:
                return param.default
            raise ConfigurationError(
                f"Test block '{block.name}' {where} parameter '{param.name}' is not annotated with a class"
            )
        try:
            return self.resolve(param.data_type, block_name=block.name, target=f"{where} parameter '{param.name}'")
        except UnresolvedDependencyError:
            if param.has_default:
                return param.default
            raise
