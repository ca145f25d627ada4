import threading
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from shopcore.errors import ProviderNotRegistered, ProviderUnavailable
from shopcore.repositories.shipping_repo import ShippingRepository, provider_config
from shopcore.shipping.provider import Provider
from shopcore.shipping.registry import ProviderRegistry
from shopcore.utils.logging import get_logger

log = get_logger(__name__)


class LiveProviders:
    """
    The providers that are enabled in the database and could be built,
    keyed by provider key. A provider that fails to build is logged and
    left out; the rest keep working.
    """

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry
        self._lock = threading.Lock()
        self._providers: Dict[str, Provider] = {}

    def load(self, db: Session) -> List[str]:
        built = self._build(db)
        with self._lock:
            self._providers = built
        return sorted(built)

    # admin changes to provider rows take effect on reload
    reload = load

    def _build(self, db: Session) -> Dict[str, Provider]:
        built: Dict[str, Provider] = {}
        for row in ShippingRepository(db).list_providers(enabled_only=True):
            try:
                factory = self.registry.get(row.key)
            except ProviderNotRegistered as e:
                log.warning("shipping: provider '%s' not registered: %s", row.key, e)
                continue
            try:
                config = provider_config(row)
            except ValueError as e:
                log.warning("shipping: error parsing config for provider '%s': %s", row.key, e)
                continue
            config["mode"] = row.mode
            try:
                built[row.key] = factory(config)
            except Exception as e:
                log.error("shipping: error initializing provider '%s': %s", row.key, e)
                continue
            log.info("shipping: initialized provider '%s' (%s)", row.key, row.mode)
        return built

    def get(self, key: str) -> Optional[Provider]:
        with self._lock:
            return self._providers.get(key)

    def require(self, key: str) -> Provider:
        p = self.get(key)
        if p is None:
            raise ProviderUnavailable("provider not found or not enabled")
        return p

    def set(self, key: str, provider: Provider) -> None:
        with self._lock:
            self._providers[key] = provider

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._providers)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
