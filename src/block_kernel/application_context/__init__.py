from .inject import Injected, InjectionPoint, inject, injected, injection_points
from .service_registry import (
    Lifetime,
    ProviderKind,
    ServiceEntry,
    ServiceRegistry,
    ServiceRegistryError,
    ServiceScope,
    service_entry,
)

__all__ = [
    "Injected",
    "InjectionPoint",
    "Lifetime",
    "ProviderKind",
    "ServiceEntry",
    "ServiceRegistry",
    "ServiceRegistryError",
    "ServiceScope",
    "inject",
    "injected",
    "injection_points",
    "service_entry",
]
