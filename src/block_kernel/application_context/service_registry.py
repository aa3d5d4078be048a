from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from block_kernel.kernel.context import ExecutionContext


class ServiceRegistryError(LookupError):
    # Raised when a key has no binding or a registration is malformed.
    pass


class Lifetime(Enum):
    SINGLETON = "singleton"
    SCOPED = "scoped"


class ProviderKind(Enum):
    INSTANCE = "instance"
    FACTORY = "factory"
    TYPE = "type"


ServiceFactory = Callable[["ExecutionContext"], object]


@dataclass(frozen=True, slots=True)
class ServiceEntry:
    # One binding: requested key, lifetime and a tagged provider.
    key: type[Any]
    lifetime: Lifetime
    kind: ProviderKind
    provider: object

    def create(self, ctx: ExecutionContext) -> object:
        if self.kind is ProviderKind.INSTANCE:
            return self.provider
        if self.kind is ProviderKind.TYPE:
            return self.provider()  # type: ignore[operator]
        return self.provider(ctx)  # type: ignore[operator]


def service_entry(key: type[Any], provider: object, lifetime: Lifetime = Lifetime.SCOPED) -> ServiceEntry:
    # Classify the provider once at registration time; classes win over plain callables.
    if not isinstance(key, type):
        raise ServiceRegistryError(f"Service key must be a class, got {key!r}")
    if not isinstance(lifetime, Lifetime):
        raise ServiceRegistryError(f"Unknown lifetime: {lifetime!r}")
    if provider is None:
        raise ServiceRegistryError(f"Service provider for {key.__qualname__} cannot be None")
    if isinstance(provider, type):
        kind = ProviderKind.TYPE
    elif callable(provider):
        kind = ProviderKind.FACTORY
    else:
        kind = ProviderKind.INSTANCE
    return ServiceEntry(key=key, lifetime=lifetime, kind=kind, provider=provider)


def release_instance(instance: object) -> None:
    # Disposal contract: close() first, then the context-manager exit hook.
    close = getattr(instance, "close", None)
    if callable(close):
        close()
        return
    exit_hook = getattr(instance, "__exit__", None)
    if callable(exit_hook):
        exit_hook(None, None, None)


def release_all(instances: Iterable[object]) -> list[Exception]:
    # Release every instance even when some fail; the caller decides what to raise.
    errors: list[Exception] = []
    for instance in instances:
        try:
            release_instance(instance)
        except Exception as exc:  # noqa: BLE001 - collected and surfaced by the caller
            errors.append(exc)
    return errors


@dataclass(slots=True)
class ServiceScope:
    # Per-run view of the registry; scoped instances are memoized here and released once.
    registry: ServiceRegistry
    _instances: dict[type[Any], object] = field(default_factory=dict)
    _created: list[object] = field(default_factory=list)
    _released: bool = False

    def has(self, key: type[Any]) -> bool:
        return key in self._instances or self.registry.get_entry(key) is not None

    def resolve(self, key: type[Any], ctx: ExecutionContext) -> object:
        if self._released:
            raise ServiceRegistryError("Service scope has already been released")
        if key in self._instances:
            return self._instances[key]
        entry = self.registry.get_entry(key)
        if entry is None:
            raise ServiceRegistryError(_missing_binding_message(key))
        if entry.lifetime is Lifetime.SINGLETON:
            return self.registry.singleton(entry, ctx)
        instance = entry.create(ctx)
        if instance is None:
            # A factory that produced nothing is not memoized; the caller decides how to fail.
            return None
        self._instances[key] = instance
        if entry.kind is not ProviderKind.INSTANCE:
            self._created.append(instance)
        return instance

    def scoped_instances(self) -> dict[type[Any], object]:
        return dict(self._instances)

    def owns(self, instance: object) -> bool:
        # True when release() will dispose of this exact instance.
        return any(created is instance for created in self._created)

    def release(self) -> list[Exception]:
        # Reverse creation order; a second call is a no-op.
        if self._released:
            return []
        self._released = True
        created = list(reversed(self._created))
        self._created.clear()
        self._instances.clear()
        return release_all(created)


class ServiceRegistry:
    # Type-keyed catalog of providers shared across runs; singletons live as long as the registry.
    def __init__(self) -> None:
        self._entries: dict[type[Any], ServiceEntry] = {}
        self._singletons: dict[type[Any], object] = {}
        self._created: list[object] = []
        self._lock = threading.RLock()

    def register(self, entry: ServiceEntry) -> None:
        # Last registration for a key wins; a cached singleton for that key is dropped.
        with self._lock:
            self._entries[entry.key] = entry
            self._singletons.pop(entry.key, None)

    def register_service(
        self,
        key: type[Any],
        provider: object,
        lifetime: Lifetime = Lifetime.SCOPED,
    ) -> ServiceEntry:
        entry = service_entry(key, provider, lifetime)
        self.register(entry)
        return entry

    def register_instance(self, value: object, *, as_type: type[Any] | None = None) -> ServiceEntry:
        if value is None:
            raise ServiceRegistryError("Cannot register None as a service instance")
        key = as_type if as_type is not None else type(value)
        entry = ServiceEntry(key=key, lifetime=Lifetime.SINGLETON, kind=ProviderKind.INSTANCE, provider=value)
        self.register(entry)
        return entry

    def get_entry(self, key: type[Any]) -> ServiceEntry | None:
        return self._entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> list[type[Any]]:
        return list(self._entries)

    def singleton(self, entry: ServiceEntry, ctx: ExecutionContext) -> object:
        # Lazily create once; RLock allows a singleton factory to resolve other singletons.
        if entry.key in self._singletons:
            return self._singletons[entry.key]
        with self._lock:
            if entry.key not in self._singletons:
                instance = entry.create(ctx)
                if instance is None:
                    return None
                self._singletons[entry.key] = instance
                if entry.kind is not ProviderKind.INSTANCE:
                    self._created.append(instance)
            return self._singletons[entry.key]

    def create_scope(self) -> ServiceScope:
        return ServiceScope(registry=self)

    def close(self) -> None:
        # Release singletons the registry constructed; fixed instances belong to the caller.
        with self._lock:
            created = list(reversed(self._created))
            self._created.clear()
            self._singletons.clear()
        errors = release_all(created)
        if errors:
            raise errors[0]


def _missing_binding_message(key: type[Any]) -> str:
    return f"Missing service binding for {getattr(key, '__qualname__', key)!s}"
