from __future__ import annotations

import inspect
import typing
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar, overload

from block_kernel.application_context.inject import InjectionPoint, injection_points
from block_kernel.kernel.errors import ConfigurationError

F = TypeVar("F", bound=Callable[..., Any])

_ENTRY_POINT_ATTR = "__entry_point__"
_CONVENTIONAL_ENTRY = "execute"


@dataclass(frozen=True, slots=True)
class EntryPointMeta:
    # Declared contract attached by @entry_point; overrides annotation-derived types when given.
    requires: tuple[type[Any], ...] | None = None
    provides: type[Any] | None = None


@overload
def entry_point(fn: F) -> F: ...


@overload
def entry_point(
    *,
    requires: Sequence[type[Any]] | None = None,
    provides: type[Any] | None = None,
) -> Callable[[F], F]: ...


def entry_point(
    fn: Any = None,
    *,
    requires: Sequence[type[Any]] | None = None,
    provides: type[Any] | None = None,
) -> Any:
    """Mark the single method a block runs.

    Usable bare (``@entry_point``) or with a declared contract
    (``@entry_point(requires=[Browser], provides=LoginResult)``).
    """
    meta = EntryPointMeta(
        requires=tuple(requires) if requires is not None else None,
        provides=provides,
    )

    def _decorate(target: F) -> F:
        setattr(_unwrap(target) or target, _ENTRY_POINT_ATTR, meta)
        return target

    if fn is not None:
        return _decorate(fn)
    return _decorate


@dataclass(frozen=True, slots=True)
class Parameter:
    name: str
    data_type: type[Any] | None
    has_default: bool = False
    default: object = None
    annotation: object = None


@dataclass(frozen=True, slots=True)
class BlockDef:
    # Tagged descriptor built once per block target; the executor never re-inspects the target.
    name: str
    target: object
    entry_attr: str | None
    parameters: tuple[Parameter, ...]
    init_parameters: tuple[Parameter, ...] = ()
    injection_points: tuple[InjectionPoint, ...] = ()
    provides: type[Any] | None = None

    @property
    def is_function(self) -> bool:
        return self.entry_attr is None

    def instantiate(self, args: Sequence[object]) -> object | None:
        if self.is_function:
            return None
        return self.target(*args)  # type: ignore[operator]

    def entry(self, instance: object | None) -> Callable[..., Any]:
        if self.entry_attr is None:
            return self.target  # type: ignore[return-value]
        return getattr(instance, self.entry_attr)


@dataclass(frozen=True, slots=True)
class BlockDescriptor:
    # One pipeline step: a block definition plus optional positional explicit arguments.
    block: BlockDef
    explicit_args: tuple[object, ...] | None = None

    @property
    def name(self) -> str:
        return self.block.name

    def validate(self) -> None:
        params = self.block.parameters
        if self.explicit_args is not None:
            if len(self.explicit_args) != len(params):
                raise ConfigurationError(
                    f"Unable to resolve entry point arguments for test block '{self.name}': "
                    f"{len(self.explicit_args)} explicit argument(s) given but the entry point "
                    f"takes {len(params)} parameter(s). Explicit arguments must cover every parameter."
                )
            return
        for param in params:
            if param.data_type is None and not param.has_default:
                raise ConfigurationError(
                    f"Test block '{self.name}' parameter '{param.name}' is not annotated with a class "
                    f"(got {param.annotation!r}); "
                    "annotate it, declare entry_point(requires=...), or pass explicit arguments"
                )


def describe_block(target: object, *, name: str | None = None) -> BlockDef:
    # Build the BlockDef for a class (one entry point method) or a plain function.
    block_name = name or getattr(target, "__qualname__", None) or repr(target)
    if isinstance(target, type):
        return _describe_class(target, block_name)
    if inspect.isfunction(target) or inspect.ismethod(target):
        meta = getattr(_unwrap(target) or target, _ENTRY_POINT_ATTR, None) or EntryPointMeta()
        params = _entry_parameters(target, meta, block_name, skip_first=False)
        return BlockDef(
            name=block_name,
            target=target,
            entry_attr=None,
            parameters=params,
            provides=meta.provides,
        )
    raise ConfigurationError(f"Test block '{block_name}' must be a class or a function")


def _describe_class(cls: type[Any], block_name: str) -> BlockDef:
    candidates = _entry_point_names(cls)
    if not candidates:
        raise ConfigurationError(
            f"Test block '{block_name}' has no entry point; decorate one method with @entry_point "
            f"or define '{_CONVENTIONAL_ENTRY}'"
        )
    if len(candidates) > 1:
        raise ConfigurationError(
            f"Test block '{block_name}' has multiple entry points: {sorted(candidates)}"
        )
    attr = candidates[0]
    raw = inspect.getattr_static(cls, attr)
    func = _unwrap(raw)
    if func is None:
        raise ConfigurationError(f"Test block '{block_name}' entry point '{attr}' is not callable")
    meta = getattr(func, _ENTRY_POINT_ATTR, None) or EntryPointMeta()
    params = _entry_parameters(func, meta, block_name, skip_first=not isinstance(raw, staticmethod))
    return BlockDef(
        name=block_name,
        target=cls,
        entry_attr=attr,
        parameters=params,
        init_parameters=_init_parameters(cls, block_name),
        injection_points=tuple(injection_points(cls)),
        provides=meta.provides,
    )


def _entry_point_names(cls: type[Any]) -> list[str]:
    # Most-derived definition of a name decides; an undecorated override hides a decorated base.
    seen: set[str] = set()
    marked: list[str] = []
    for klass in cls.__mro__:
        if klass is object:
            continue
        for attr, value in vars(klass).items():
            if attr in seen:
                continue
            seen.add(attr)
            func = _unwrap(value)
            if func is not None and hasattr(func, _ENTRY_POINT_ATTR):
                marked.append(attr)
    if marked:
        return marked
    conventional = inspect.getattr_static(cls, _CONVENTIONAL_ENTRY, None)
    if _unwrap(conventional) is not None:
        return [_CONVENTIONAL_ENTRY]
    return []


def _entry_parameters(
    func: Callable[..., Any],
    meta: EntryPointMeta,
    block_name: str,
    *,
    skip_first: bool,
) -> tuple[Parameter, ...]:
    signature = _signature(func, block_name)
    raw_params = list(signature.parameters.values())
    if skip_first:
        raw_params = raw_params[1:]
    for param in raw_params:
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            raise ConfigurationError(
                f"Test block '{block_name}' entry point cannot take variadic parameter '{param.name}'"
            )

    if meta.requires is not None:
        if len(meta.requires) != len(raw_params):
            raise ConfigurationError(
                f"Test block '{block_name}' declares {len(meta.requires)} required type(s) "
                f"but its entry point takes {len(raw_params)} parameter(s)"
            )
        declared = list(meta.requires)
    else:
        hints = _type_hints(func, block_name)
        declared = [hints.get(param.name) for param in raw_params]

    return tuple(_parameter(param, data_type, block_name) for param, data_type in zip(raw_params, declared))


def _init_parameters(cls: type[Any], block_name: str) -> tuple[Parameter, ...]:
    init = cls.__init__
    if init is object.__init__:
        return ()
    signature = _signature(init, block_name)
    hints = _type_hints(init, block_name)
    params: list[Parameter] = []
    for param in list(signature.parameters.values())[1:]:
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        if param.kind is inspect.Parameter.KEYWORD_ONLY and param.default is inspect.Parameter.empty:
            raise ConfigurationError(
                f"Test block '{block_name}' constructor has required keyword-only parameter '{param.name}'"
            )
        if param.kind is inspect.Parameter.KEYWORD_ONLY:
            continue
        data_type = hints.get(param.name)
        if data_type is None and param.default is inspect.Parameter.empty:
            raise ConfigurationError(
                f"Test block '{block_name}' constructor parameter '{param.name}' has no type annotation"
            )
        params.append(_parameter(param, data_type, block_name))
    return tuple(params)


def _parameter(param: inspect.Parameter, data_type: object, block_name: str) -> Parameter:
    annotation = data_type
    if data_type is not None and (not isinstance(data_type, type) or typing.get_origin(data_type) is not None):
        # Only classes resolve by key; other annotations need explicit args or a default.
        data_type = None
    has_default = param.default is not inspect.Parameter.empty
    return Parameter(
        name=param.name,
        data_type=data_type,
        has_default=has_default,
        default=param.default if has_default else None,
        annotation=annotation,
    )


def _signature(func: Callable[..., Any], block_name: str) -> inspect.Signature:
    try:
        return inspect.signature(func)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Cannot inspect signature of test block '{block_name}'") from exc


def _type_hints(func: Callable[..., Any], block_name: str) -> dict[str, Any]:
    try:
        hints = typing.get_type_hints(func)
    except Exception as exc:  # noqa: BLE001 - unresolvable forward references are a wiring error
        raise ConfigurationError(f"Cannot evaluate type annotations of test block '{block_name}': {exc}") from exc
    hints.pop("return", None)
    return hints


def _unwrap(value: object) -> Callable[..., Any] | None:
    if isinstance(value, (staticmethod, classmethod)):
        return value.__func__
    if inspect.isfunction(value):
        return value
    if inspect.ismethod(value):
        return value.__func__
    return None
