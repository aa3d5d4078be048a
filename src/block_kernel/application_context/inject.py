from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

_INJECTED_TYPE_ATTR = "__injected_type__"


@dataclass(frozen=True, slots=True)
class Injected:
    # Class-level marker: the attribute is populated on each block instance before invocation.
    data_type: type[Any]

    def __post_init__(self) -> None:
        if not isinstance(self.data_type, type):
            raise TypeError("inject() expects a class to resolve by")


@dataclass(frozen=True, slots=True)
class InjectionPoint:
    # One writable (or read-only) injectable member discovered on a block class.
    name: str
    data_type: type[Any]
    kind: Literal["attribute", "property"]
    settable: bool


def inject(data_type: type[Any]) -> Any:
    # Declare an injectable attribute: `driver: Driver = inject(Driver)`.
    return Injected(data_type=data_type)


def injected(data_type: type[Any]) -> Callable[[F], F]:
    # Mark a property getter as injectable; the property must also define a setter.
    if not isinstance(data_type, type):
        raise TypeError("injected() expects a class to resolve by")

    def _decorate(getter: F) -> F:
        setattr(getter, _INJECTED_TYPE_ATTR, data_type)
        return getter

    return _decorate


def injection_points(cls: type[object]) -> list[InjectionPoint]:
    # Walk the MRO base-first so subclasses override inherited declarations by name.
    points: dict[str, InjectionPoint] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name, value in vars(klass).items():
            point = _as_injection_point(name, value)
            if point is not None:
                points[name] = point
            elif name in points:
                # Redefined without a marker in a subclass: no longer injectable.
                del points[name]
    return list(points.values())


def apply_value(instance: object, point: InjectionPoint, value: object) -> None:
    if point.kind == "property":
        setattr(instance, point.name, value)
        return
    # Bypass frozen dataclasses the same way for every marker attribute.
    object.__setattr__(instance, point.name, value)


def _as_injection_point(name: str, value: object) -> InjectionPoint | None:
    if isinstance(value, Injected):
        return InjectionPoint(name=name, data_type=value.data_type, kind="attribute", settable=True)
    if isinstance(value, property) and value.fget is not None:
        data_type = getattr(value.fget, _INJECTED_TYPE_ATTR, None)
        if data_type is None:
            return None
        return InjectionPoint(name=name, data_type=data_type, kind="property", settable=value.fset is not None)
    return None
