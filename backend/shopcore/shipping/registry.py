import threading
from typing import Dict, List

from shopcore.errors import ProviderNotRegistered
from shopcore.shipping.provider import ProviderFactory


class ProviderRegistrationError(Exception):
    """Raised at startup for an invalid or duplicate registration."""
    pass


class ProviderRegistry:
    """
    Maps a provider key to the factory that builds its live client.

    Built once at startup and handed to whatever needs it; registration is
    expected to happen before requests are served and reads dominate after.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._factories: Dict[str, ProviderFactory] = {}

    def register(self, key: str, factory: ProviderFactory) -> None:
        if not key:
            raise ProviderRegistrationError("ProviderRegistry.register: empty key")
        if factory is None or not callable(factory):
            raise ProviderRegistrationError("ProviderRegistry.register: nil factory")
        with self._lock:
            if key in self._factories:
                raise ProviderRegistrationError(
                    f"ProviderRegistry.register: provider '{key}' already registered"
                )
            self._factories[key] = factory

    def get(self, key: str) -> ProviderFactory:
        with self._lock:
            factory = self._factories.get(key)
        if factory is None:
            raise ProviderNotRegistered(f"provider '{key}' not registered")
        return factory

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._factories)


def build_default_registry() -> ProviderRegistry:
    from shopcore.shipping.providers import omniva

    registry = ProviderRegistry()
    registry.register(omniva.PROVIDER_KEY, omniva.new_provider)
    return registry
