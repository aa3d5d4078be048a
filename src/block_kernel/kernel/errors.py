from __future__ import annotations


class BlockKernelError(Exception):
    # Base error for engine-level failures.
    pass


class ConfigurationError(BlockKernelError):
    # Raised when a block cannot be wired: entry point count, explicit-arg count, bad signature.
    pass


class UnresolvedDependencyError(BlockKernelError):
    # Raised when no resolution tier produced a required type for a block.
    def __init__(self, required: object, block_name: str, *, target: str | None = None) -> None:
        self.required = required
        self.block_name = block_name
        self.target = target
        where = f" ({target})" if target else ""
        super().__init__(
            f"Unable to resolve {_type_name(required)} for test block '{block_name}'{where}"
        )


class InvocationError(BlockKernelError):
    # Internal wrapper around an exception raised by a block body; the executor unwraps it.
    def __init__(self, block_name: str, cause: BaseException) -> None:
        super().__init__(f"Test block '{block_name}' raised {type(cause).__name__}: {cause}")
        self.block_name = block_name
        self.cause = cause


class SerializationWarning(UserWarning):
    # Emitted when a value cannot be rendered for logging; never fatal.
    pass


def _type_name(tp: object) -> str:
    return getattr(tp, "__qualname__", None) or getattr(tp, "__name__", None) or repr(tp)
