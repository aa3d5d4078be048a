from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class ResultStore:
    # Per-run map from exact type key to the most recent value; inserting a present key replaces it.
    _values: dict[type[Any], object] = field(default_factory=dict)

    def put(self, value: object, *, key: type[Any] | None = None) -> type[Any]:
        if value is None:
            raise ValueError("ResultStore does not hold None values")
        resolved_key = key if key is not None else type(value)
        # Re-insert so iteration order reflects write order.
        self._values.pop(resolved_key, None)
        self._values[resolved_key] = value
        return resolved_key

    def get(self, key: type[Any]) -> object:
        # Exact key match only; subclasses and registered bases never satisfy each other.
        if key not in self._values:
            raise KeyError(key)
        return self._values[key]

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[type[Any]]:
        return iter(self._values)

    def snapshot(self) -> dict[type[Any], object]:
        return dict(self._values)
