import json
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from shopcore.config import settings
from shopcore.errors import InvalidInput, NotFound, ProviderUnavailable
from shopcore.models.shipping import ShippingMethod, ShippingProvider, ShippingZone
from shopcore.repositories.shipping_repo import ShippingRepository, zone_countries
from shopcore.schemas.shipping_schema import (
    MethodIn,
    MethodOption,
    MethodOut,
    PingOut,
    ProviderIn,
    ProviderOut,
    ProviderUpdateIn,
    ShippingOptionsOut,
    ZoneIn,
    ZoneOut,
)
from shopcore.shipping.live import LiveProviders
from shopcore.shipping.pricing import calculate_price
from shopcore.shipping.provider import ProviderError, QuoteRequest, ShippingOption
from shopcore.utils.logging import get_logger
from shopcore.utils.transactions import atomic

log = get_logger(__name__)


def _zone_out(z: ShippingZone) -> ZoneOut:
    return ZoneOut(
        id=z.id,
        name=z.name,
        countries=zone_countries(z),
        enabled=z.enabled,
        created_at=z.created_at,
        updated_at=z.updated_at,
    )


def _decode_dict(raw: Optional[str]) -> Dict[str, Any]:
    try:
        data = json.loads(raw or "{}")
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _method_out(m: ShippingMethod) -> MethodOut:
    return MethodOut(
        id=m.id,
        zone_id=m.zone_id,
        provider_key=m.provider_key,
        service_code=m.service_code,
        title=m.title,
        enabled=m.enabled,
        sort_order=m.sort_order,
        pricing_mode=m.pricing_mode,
        pricing_rules=_decode_dict(m.pricing_rules_json),
        created_at=m.created_at,
        updated_at=m.updated_at,
    )


class ShippingService:
    def __init__(self, db: Session, live: Optional[LiveProviders] = None):
        self.db = db
        self.repo = ShippingRepository(db)
        self.live = live

    # storefront

    def shipping_options(self, country: str, cart_value_cents: int = 0) -> ShippingOptionsOut:
        """
        Enabled methods of the zone serving ``country``, priced for the cart
        value. A country no zone serves gets an empty answer, not an error.
        """
        if not (country or "").strip():
            raise InvalidInput("country is required")
        try:
            zone = self.repo.get_zone_by_country(country)
        except NotFound:
            return ShippingOptionsOut(zone=None, methods=[])

        methods = [
            MethodOption(
                id=m.id,
                zone_id=m.zone_id,
                provider_key=m.provider_key,
                service_code=m.service_code,
                title=m.title,
                enabled=m.enabled,
                sort_order=m.sort_order,
                pricing_mode=m.pricing_mode,
                price=calculate_price(m, cart_value_cents),
                currency=settings.SHIPPING_CURRENCY,
            )
            for m in self.repo.list_methods_by_zone(zone.id, enabled_only=True)
        ]
        return ShippingOptionsOut(zone=_zone_out(zone), methods=methods)

    def quote(self, provider_key: str, req: QuoteRequest) -> List[ShippingOption]:
        if not (req.country or "").strip():
            raise InvalidInput("country is required")
        provider = self._require_live(provider_key)
        try:
            return provider.quote(req)
        except ProviderError as e:
            log.warning("shipping: quote from '%s' failed: %s", provider_key, e)
            raise ProviderUnavailable(f"provider '{provider_key}' quote failed: {e}") from e

    def ping(self, provider_key: str) -> PingOut:
        if self.live is not None and provider_key in self.live:
            return PingOut(status="ok", message=f"{provider_key} provider is configured and ready")
        return PingOut(status="unavailable", message=f"{provider_key} provider not initialized")

    def _require_live(self, provider_key: str):
        if self.live is None:
            raise ProviderUnavailable("provider not found or not enabled")
        return self.live.require(provider_key)

    # zones

    def list_zones(self) -> List[ZoneOut]:
        return [_zone_out(z) for z in self.repo.list_zones()]

    def get_zone(self, zone_id: str) -> ZoneOut:
        return _zone_out(self.repo.get_zone(zone_id))

    def get_zone_by_country(self, country: str) -> ZoneOut:
        return _zone_out(self.repo.get_zone_by_country(country))

    def create_zone(self, data: ZoneIn) -> ZoneOut:
        with atomic(self.db):
            zone_id = self.repo.create_zone(data.name, data.countries, data.enabled).id
        return self.get_zone(zone_id)

    def update_zone(self, zone_id: str, data: ZoneIn) -> ZoneOut:
        with atomic(self.db):
            self.repo.update_zone(zone_id, data.name, data.countries, data.enabled)
        return self.get_zone(zone_id)

    def delete_zone(self, zone_id: str) -> None:
        with atomic(self.db):
            self.repo.delete_zone(zone_id)

    # methods

    def list_methods(self, zone_id: Optional[str] = None) -> List[MethodOut]:
        if zone_id:
            return [_method_out(m) for m in self.repo.list_methods_by_zone(zone_id)]
        return [_method_out(m) for m in self.repo.list_methods()]

    def get_method(self, method_id: str) -> MethodOut:
        return _method_out(self.repo.get_method(method_id))

    def create_method(self, data: MethodIn) -> MethodOut:
        with atomic(self.db):
            method_id = self.repo.create_method(data.model_dump()).id
        return self.get_method(method_id)

    def update_method(self, method_id: str, data: MethodIn) -> MethodOut:
        with atomic(self.db):
            self.repo.update_method(method_id, data.model_dump())
        return self.get_method(method_id)

    def delete_method(self, method_id: str) -> None:
        with atomic(self.db):
            self.repo.delete_method(method_id)

    # providers

    def _provider_out(self, p: ShippingProvider) -> ProviderOut:
        return ProviderOut(
            id=p.id,
            key=p.key,
            name=p.name,
            enabled=p.enabled,
            mode=p.mode,
            config=_decode_dict(p.config_json),
            live=self.live is not None and p.key in self.live,
            created_at=p.created_at,
            updated_at=p.updated_at,
        )

    def list_providers(self) -> List[ProviderOut]:
        return [self._provider_out(p) for p in self.repo.list_providers()]

    def get_provider(self, key: str) -> ProviderOut:
        return self._provider_out(self.repo.get_provider(key))

    def create_provider(self, data: ProviderIn) -> ProviderOut:
        with atomic(self.db):
            self.repo.create_provider(data.key, data.name, data.mode, data.config)
        self._reload()
        return self.get_provider(data.key.strip())

    def update_provider(self, key: str, data: ProviderUpdateIn) -> ProviderOut:
        with atomic(self.db):
            self.repo.update_provider(key, data.enabled, data.mode, data.config)
        self._reload()
        return self.get_provider(key)

    def delete_provider(self, key: str) -> None:
        with atomic(self.db):
            self.repo.delete_provider(key)
        self._reload()

    def _reload(self) -> None:
        if self.live is not None:
            self.live.reload(self.db)
