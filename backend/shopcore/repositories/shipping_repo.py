import json
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from shopcore.errors import InvalidInput, NotFound
from shopcore.models.shipping import ShippingMethod, ShippingProvider, ShippingZone
from shopcore.shipping import pricing
from shopcore.utils.logging import get_logger

log = get_logger(__name__)

PROVIDER_MODES = ("sandbox", "live")


def normalize_countries(countries: Optional[Iterable[str]]) -> List[str]:
    out: List[str] = []
    for c in countries or []:
        code = (c or "").strip().upper()
        if code and code not in out:
            out.append(code)
    return out


def zone_countries(zone: ShippingZone) -> List[str]:
    """Country codes stored on a zone; an unreadable row yields no countries."""
    try:
        data = json.loads(zone.countries_json or "[]")
    except ValueError:
        log.warning("zone %s has malformed countries_json", zone.id)
        return []
    if not isinstance(data, list):
        return []
    return normalize_countries(str(c) for c in data)


def provider_config(provider: ShippingProvider) -> Dict[str, Any]:
    data = json.loads(provider.config_json or "{}")
    if not isinstance(data, dict):
        raise ValueError("provider config must be a JSON object")
    return data


def _normalize_provider_mode(mode: Optional[str]) -> str:
    mode = (mode or "sandbox").strip().lower() or "sandbox"
    if mode not in PROVIDER_MODES:
        raise InvalidInput("mode must be sandbox or live")
    return mode


class ShippingRepository:
    """Zones, methods and provider rows used by shipping pricing and admin."""

    def __init__(self, db: Session):
        self.db = db

    # zones

    def create_zone(self, name: str, countries: Iterable[str], enabled: bool = True) -> ShippingZone:
        name = (name or "").strip()
        if not name:
            raise InvalidInput("name is required")
        z = ShippingZone(
            name=name,
            countries_json=json.dumps(normalize_countries(countries)),
            enabled=enabled,
        )
        self.db.add(z)
        self.db.flush()
        return z

    def update_zone(self, zone_id: str, name: str, countries: Iterable[str], enabled: bool) -> ShippingZone:
        name = (name or "").strip()
        if not name:
            raise InvalidInput("name is required")
        z = self.get_zone(zone_id)
        z.name = name
        z.countries_json = json.dumps(normalize_countries(countries))
        z.enabled = enabled
        self.db.flush()
        return z

    def get_zone(self, zone_id: str) -> ShippingZone:
        z = self.db.get(ShippingZone, zone_id) if zone_id else None
        if z is None:
            raise NotFound("zone not found")
        return z

    def list_zones(self, enabled_only: bool = False) -> List[ShippingZone]:
        q = select(ShippingZone)
        if enabled_only:
            q = q.where(ShippingZone.enabled.is_(True))
        return list(self.db.execute(q.order_by(ShippingZone.created_at, ShippingZone.id)).scalars())

    def delete_zone(self, zone_id: str) -> None:
        self.db.delete(self.get_zone(zone_id))
        self.db.flush()

    def get_zone_by_country(self, country: str) -> ShippingZone:
        """First enabled zone (oldest first) whose country list contains ``country``."""
        code = (country or "").strip().upper()
        if not code:
            raise InvalidInput("country is required")
        for z in self.list_zones(enabled_only=True):
            if code in zone_countries(z):
                return z
        raise NotFound(f"no shipping zone for country {code}")

    # methods

    def create_method(self, data: Dict[str, Any]) -> ShippingMethod:
        fields = self._method_fields(data)
        self.get_zone(fields["zone_id"])
        m = ShippingMethod(**fields)
        self.db.add(m)
        self.db.flush()
        return m

    def update_method(self, method_id: str, data: Dict[str, Any]) -> ShippingMethod:
        m = self.get_method(method_id)
        fields = self._method_fields(data)
        self.get_zone(fields["zone_id"])
        for k, v in fields.items():
            setattr(m, k, v)
        self.db.flush()
        return m

    def _method_fields(self, data: Dict[str, Any]) -> Dict[str, Any]:
        for required in ("zone_id", "provider_key", "service_code", "title"):
            if not (data.get(required) or "").strip():
                raise InvalidInput(f"{required} is required")
        mode = pricing.normalize_mode(data.get("pricing_mode"))
        rules = data.get("pricing_rules") or {}
        # raises InvalidInput for an unknown mode or a rule set of the wrong shape
        pricing.decode_pricing_rules(mode, rules, strict=True)
        return {
            "zone_id": data["zone_id"].strip(),
            "provider_key": data["provider_key"].strip(),
            "service_code": data["service_code"].strip(),
            "title": data["title"].strip(),
            "enabled": bool(data.get("enabled", True)),
            "sort_order": int(data.get("sort_order") or 0),
            "pricing_mode": mode,
            "pricing_rules_json": pricing.encode_pricing_rules(rules),
        }

    def get_method(self, method_id: str) -> ShippingMethod:
        m = self.db.get(ShippingMethod, method_id) if method_id else None
        if m is None:
            raise NotFound("method not found")
        return m

    def list_methods(self) -> List[ShippingMethod]:
        return list(
            self.db.execute(
                select(ShippingMethod).order_by(
                    ShippingMethod.zone_id, ShippingMethod.sort_order, ShippingMethod.created_at, ShippingMethod.id
                )
            ).scalars()
        )

    def list_methods_by_zone(self, zone_id: str, enabled_only: bool = False) -> List[ShippingMethod]:
        q = select(ShippingMethod).where(ShippingMethod.zone_id == zone_id)
        if enabled_only:
            q = q.where(ShippingMethod.enabled.is_(True))
        q = q.order_by(ShippingMethod.sort_order, ShippingMethod.created_at, ShippingMethod.id)
        return list(self.db.execute(q).scalars())

    def delete_method(self, method_id: str) -> None:
        self.db.delete(self.get_method(method_id))
        self.db.flush()

    # providers

    def create_provider(
        self, key: str, name: str, mode: str = "sandbox", config: Optional[Dict[str, Any]] = None
    ) -> ShippingProvider:
        key = (key or "").strip()
        name = (name or "").strip()
        if not key or not name:
            raise InvalidInput("key and name are required")
        p = ShippingProvider(
            key=key,
            name=name,
            enabled=False,
            mode=_normalize_provider_mode(mode),
            config_json=json.dumps(config or {}, sort_keys=True),
        )
        self.db.add(p)
        # duplicate keys fail here and surface as Conflict through atomic()
        self.db.flush()
        return p

    def update_provider(
        self, key: str, enabled: bool, mode: str = "sandbox", config: Optional[Dict[str, Any]] = None
    ) -> ShippingProvider:
        p = self.get_provider(key)
        p.enabled = enabled
        p.mode = _normalize_provider_mode(mode)
        p.config_json = json.dumps(config or {}, sort_keys=True)
        self.db.flush()
        return p

    def get_provider(self, key: str) -> ShippingProvider:
        if not key:
            raise InvalidInput("key is required")
        p = self.db.execute(
            select(ShippingProvider).where(ShippingProvider.key == key)
        ).scalar_one_or_none()
        if p is None:
            raise NotFound("provider not found")
        return p

    def list_providers(self, enabled_only: bool = False) -> List[ShippingProvider]:
        q = select(ShippingProvider)
        if enabled_only:
            q = q.where(ShippingProvider.enabled.is_(True))
        return list(self.db.execute(q.order_by(ShippingProvider.key)).scalars())

    def delete_provider(self, key: str) -> None:
        if not key:
            raise InvalidInput("key is required")
        res = self.db.execute(delete(ShippingProvider).where(ShippingProvider.key == key))
        if res.rowcount == 0:
            raise NotFound("provider not found")
