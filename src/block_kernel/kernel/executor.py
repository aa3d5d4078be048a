from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from block_kernel.application_context.inject import apply_value
from block_kernel.kernel.block import BlockDescriptor
from block_kernel.kernel.context import ExecutionContext
from block_kernel.kernel.errors import InvocationError
from block_kernel.kernel.resolver import Resolver


class BlockState(Enum):
    PENDING = "pending"
    RESOLVING = "resolving"
    INSTANTIATED = "instantiated"
    INVOKING = "invoking"
    COMPLETED = "completed"
    FAILED = "failed"


_TERMINAL = {BlockState.COMPLETED, BlockState.FAILED}


@dataclass(slots=True)
class BlockRecord:
    # Lifecycle record for one pipeline step; transitions are kept in order for diagnostics.
    name: str
    index: int
    state: BlockState = BlockState.PENDING
    error: BaseException | None = None
    result_key: type[Any] | None = None
    transitions: list[BlockState] = field(default_factory=lambda: [BlockState.PENDING])

    def advance(self, state: BlockState) -> None:
        if self.state in _TERMINAL:
            raise RuntimeError(f"Test block '{self.name}' is already {self.state.value}")
        self.state = state
        self.transitions.append(state)


class Executor:
    """Drive blocks through resolve, instantiate, populate, invoke, record.

    Blocks run one at a time in order. The first failure marks its record
    ``FAILED`` and stops the run; later blocks stay ``PENDING``. An exception
    raised by a block body is surfaced as-is (with a note naming the block),
    never wrapped.
    """

    def __init__(self, ctx: ExecutionContext) -> None:
        self._ctx = ctx
        self._resolver = Resolver(ctx)
        self.records: list[BlockRecord] = []

    def run(self, descriptors: Sequence[BlockDescriptor]) -> list[BlockRecord]:
        self.records = [BlockRecord(name=d.name, index=i) for i, d in enumerate(descriptors)]
        for descriptor, record in zip(descriptors, self.records):
            failure: BaseException | None = None
            try:
                self._execute(descriptor, record)
            except InvocationError as exc:
                failure = exc.cause
                failure.add_note(f"raised by test block '{record.name}' in run '{self._ctx.run_name}'")
                self._fail(record, failure, phase=record.state.value)
            except Exception as exc:
                self._fail(record, exc, phase=record.state.value)
                raise
            finally:
                self._ctx.current_block = None
            if failure is not None:
                # Raised outside the handler so the block's own exception is not chained to the wrapper.
                raise failure
        return self.records

    def _execute(self, descriptor: BlockDescriptor, record: BlockRecord) -> None:
        ctx = self._ctx
        block = descriptor.block
        ctx.current_block = block.name
        ctx.logger.info(ctx.run_name, block.name, f"Starting test block {block.name}")

        self._advance(record, BlockState.RESOLVING)
        init_args = self._resolver.constructor_arguments(block)
        entry_args = self._resolver.entry_arguments(descriptor)

        try:
            instance = block.instantiate(init_args)
        except Exception as exc:
            raise InvocationError(block.name, exc) from exc
        if instance is not None:
            for point, value in self._resolver.property_values(block):
                apply_value(instance, point, value)
                ctx.logger.debug(
                    ctx.run_name,
                    block.name,
                    f"Using property {point.name} with data: {ctx.serialize(value)}",
                )
        self._advance(record, BlockState.INSTANTIATED)

        named_args = {param.name: arg for param, arg in zip(block.parameters, entry_args)}
        for param_name, arg in named_args.items():
            ctx.logger.debug(
                ctx.run_name,
                block.name,
                f"Handing argument '{param_name}' into entry point: {ctx.serialize(arg)}",
            )
        ctx.logger.test_block_input(ctx.run_name, block.name, ctx.serialize(named_args))

        self._advance(record, BlockState.INVOKING)
        try:
            result = block.entry(instance)(*entry_args)
        except Exception as exc:
            raise InvocationError(block.name, exc) from exc

        if result is not None:
            record.result_key = ctx.results.put(result, key=block.provides)
            ctx.logger.test_block_output(ctx.run_name, block.name, ctx.serialize(result))
        self._advance(record, BlockState.COMPLETED)
        ctx.logger.info(ctx.run_name, block.name, f"Completed test block {block.name}")

    def _advance(self, record: BlockRecord, state: BlockState) -> None:
        record.advance(state)
        self._ctx.logger.debug(
            self._ctx.run_name,
            record.name,
            f"Test block {record.name} entered phase {state.value}",
        )

    def _fail(self, record: BlockRecord, exc: BaseException, *, phase: str) -> None:
        record.error = exc
        if record.state not in _TERMINAL:
            self._advance(record, BlockState.FAILED)
        self._ctx.logger.error(
            self._ctx.run_name,
            record.name,
            f"Test block {record.name} failed during {phase}: {type(exc).__name__}: {exc}",
        )
