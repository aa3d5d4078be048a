from __future__ import annotations

import json
import warnings
from collections.abc import Callable
from dataclasses import fields, is_dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from pathlib import PurePath
from uuid import UUID

from pydantic import BaseModel

from block_kernel.kernel.errors import SerializationWarning

SERIALIZATION_FALLBACK = "<unable to serialize value>"
DEFAULT_MAX_LENGTH = 4096

_TYPE_TAG = "__type__"
_SCALARS = (str, int, float, bool)


def serialize_value(
    value: object,
    *,
    max_length: int = DEFAULT_MAX_LENGTH,
    on_fallback: Callable[[str], None] | None = None,
) -> str:
    """Render ``value`` as compact JSON for log events.

    Failures degrade to ``SERIALIZATION_FALLBACK``: the reason goes to
    ``on_fallback`` (when given) and is issued as a ``SerializationWarning``.
    The function never raises, whatever the active warnings filter.
    """
    try:
        text = json.dumps(
            _to_jsonable(value, set()),
            separators=(",", ":"),
            ensure_ascii=False,
            default=_json_default,
        )
    except Exception as exc:  # noqa: BLE001 - logging must never fail a run
        reason = f"Unable to serialize {type(value).__qualname__} for logging: {exc}"
        if on_fallback is not None:
            on_fallback(reason)
        _warn_fallback(reason)
        return SERIALIZATION_FALLBACK
    if max_length > 0 and len(text) > max_length:
        return text[:max_length] + "...(truncated)"
    return text


def _warn_fallback(reason: str) -> None:
    # An "error" warnings filter turns the warning into an exception; the fallback still stands.
    try:
        warnings.warn(reason, SerializationWarning, stacklevel=3)
    except SerializationWarning:
        return


def type_label(value: object) -> str:
    tp = type(value)
    return f"{tp.__module__}.{tp.__qualname__}"


def _to_jsonable(value: object, seen: set[int]) -> object:
    if value is None or isinstance(value, _SCALARS):
        return value
    if isinstance(value, (datetime, date, time, Decimal, UUID, PurePath, Enum)):
        return value
    marker = id(value)
    if marker in seen:
        raise ValueError(f"circular reference through {type(value).__qualname__}")
    seen.add(marker)
    try:
        if isinstance(value, BaseModel):
            return {_TYPE_TAG: type_label(value), **value.model_dump(mode="json")}
        if is_dataclass(value) and not isinstance(value, type):
            payload = {f.name: _to_jsonable(getattr(value, f.name), seen) for f in fields(value)}
            return {_TYPE_TAG: type_label(value), **payload}
        if isinstance(value, dict):
            return {str(k): _to_jsonable(v, seen) for k, v in value.items()}
        if isinstance(value, (list, tuple, set, frozenset)):
            return [_to_jsonable(item, seen) for item in value]
        attrs = getattr(value, "__dict__", None)
        if isinstance(attrs, dict):
            # Public attributes only, like a property-based serializer would see them.
            public = {k: _to_jsonable(v, seen) for k, v in attrs.items() if not k.startswith("_")}
            return {_TYPE_TAG: type_label(value), **public}
        return value
    finally:
        seen.discard(marker)


def _json_default(obj: object) -> object:
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (Decimal, UUID, PurePath)):
        return str(obj)
    raise TypeError(f"{type(obj).__qualname__} is not serializable")
