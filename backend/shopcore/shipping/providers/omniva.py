"""
Omniva parcel-locker network.

``sandbox`` mode answers from built-in Baltic fixtures. ``live`` mode reads
Omniva's public locations feed and keeps parcel machines for the requested
country.
"""
from typing import Any, Dict, List, Optional

import httpx

from shopcore.shipping.provider import (
    Provider,
    ProviderError,
    QuoteRequest,
    ShippingOption,
    Terminal,
)
from shopcore.utils.logging import get_logger

log = get_logger(__name__)

PROVIDER_KEY = "omniva"
DEFAULT_BASE_URL = "https://sandbox.omniva.lt/api"
DEFAULT_LOCATIONS_URL = "https://www.omniva.ee/locations.json"
DEFAULT_TIMEOUT_SECONDS = 10.0
PARCEL_MACHINE_TYPE = "0"

BASE_PRICE_CENTS = {"LT": 500, "LV": 600, "EE": 600}
FALLBACK_BASE_PRICE_CENTS = 1000
WEIGHT_FEE_CENTS_PER_KG = 50


class OmnivaProvider(Provider):
    def __init__(
        self,
        username: str = "",
        password: str = "",
        base_url: str = DEFAULT_BASE_URL,
        mode: str = "sandbox",
        locations_url: str = DEFAULT_LOCATIONS_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ):
        self.username = username
        self.password = password
        self.base_url = base_url
        self.mode = mode
        self.locations_url = locations_url
        self.timeout = timeout
        self._client = client

    def list_terminals(self, country: str) -> List[Terminal]:
        country = (country or "").strip().upper()
        if self.mode == "live":
            return self._fetch_live_terminals(country)
        terminals = SANDBOX_TERMINALS.get(country)
        if terminals is None:
            raise ProviderError(f"unsupported country: {country}")
        return [t.model_copy() for t in terminals]

    def quote(self, req: QuoteRequest) -> List[ShippingOption]:
        if not req.country:
            raise ProviderError("country is required for quote")
        return self._price_for_country(req.country.upper(), req.weight)

    def _price_for_country(self, country: str, weight: float) -> List[ShippingOption]:
        base = BASE_PRICE_CENTS.get(country, FALLBACK_BASE_PRICE_CENTS)
        weight_fee = int(weight * WEIGHT_FEE_CENTS_PER_KG)
        return [
            ShippingOption(
                service_code="parcel-locker",
                service_name="Parcel Locker",
                price=base + weight_fee,
                currency="EUR",
                estimate="1-2 business days",
                meta={"service_type": "parcel_locker"},
            ),
            ShippingOption(
                service_code="home-delivery",
                service_name="Home Delivery",
                price=base + weight_fee + 300,
                currency="EUR",
                estimate="2-3 business days",
                meta={"service_type": "home_delivery"},
            ),
            ShippingOption(
                service_code="express",
                service_name="Express Delivery",
                price=base + weight_fee + 800,
                currency="EUR",
                estimate="Next business day",
                meta={"service_type": "express"},
            ),
        ]

    def _fetch_live_terminals(self, country: str) -> List[Terminal]:
        if not country:
            raise ProviderError("country is required")
        client = self._client or httpx.Client(timeout=self.timeout, follow_redirects=False)
        try:
            resp = client.get(self.locations_url)
            resp.raise_for_status()
            rows = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(f"omniva locations request failed: {e}") from e
        finally:
            if self._client is None:
                client.close()

        if not isinstance(rows, list):
            raise ProviderError("omniva locations feed is not a list")
        terminals = [
            _terminal_from_location(row)
            for row in rows
            if isinstance(row, dict)
            and str(row.get("A0_NAME", "")).upper() == country
            and str(row.get("TYPE", "")) == PARCEL_MACHINE_TYPE
        ]
        log.debug("omniva: %d live terminals for %s", len(terminals), country)
        return terminals


def _terminal_from_location(row: Dict[str, Any]) -> Terminal:
    street = " ".join(
        part for part in (str(row.get("A5_NAME") or ""), str(row.get("A7_NAME") or "")) if part
    )
    city = str(row.get("A2_NAME") or row.get("A1_NAME") or "")
    address = ", ".join(part for part in (street, f"{row.get('ZIP', '')} {city}".strip()) if part)
    return Terminal(
        id=str(row.get("ZIP", "")),
        name=str(row.get("NAME", "")),
        country=str(row.get("A0_NAME", "")).upper(),
        city=city,
        address=address,
        lat=_to_float(row.get("Y_COORDINATE")),
        lon=_to_float(row.get("X_COORDINATE")),
        hours=str(row.get("SERVICE_HOURS") or ""),
    )


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def new_provider(config: Dict[str, Any]) -> Provider:
    def _str(name: str, default: str) -> str:
        value = config.get(name)
        return value if isinstance(value, str) and value else default

    timeout = config.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ValueError("omniva: timeout_seconds must be a positive number")

    mode = _str("mode", "sandbox")
    if mode not in ("sandbox", "live"):
        raise ValueError(f"omniva: unknown mode '{mode}'")

    return OmnivaProvider(
        username=_str("username", ""),
        password=_str("password", ""),
        base_url=_str("base_url", DEFAULT_BASE_URL),
        mode=mode,
        locations_url=_str("locations_url", DEFAULT_LOCATIONS_URL),
        timeout=float(timeout),
    )


SANDBOX_TERMINALS: Dict[str, List[Terminal]] = {
    "LT": [
        Terminal(id="omniva_lt_001", name="Vilnius Central", country="LT", city="Vilnius",
                 address="Gedimino ave. 9, 01103 Vilnius", lat=54.6872, lon=25.2797, hours="08:00-20:00"),
        Terminal(id="omniva_lt_002", name="Vilnius Airport", country="LT", city="Vilnius",
                 address="Rodūnios kelias 2, 02100 Vilnius", lat=54.6325, lon=25.2865, hours="07:00-21:00"),
        Terminal(id="omniva_lt_003", name="Kaunas City", country="LT", city="Kaunas",
                 address="Savanorių ave. 246, 50131 Kaunas", lat=54.8973, lon=24.0905, hours="08:00-19:00"),
        Terminal(id="omniva_lt_004", name="Klaipėda Port", country="LT", city="Klaipėda",
                 address="Jūrų str. 15, 92100 Klaipėda", lat=55.7203, lon=21.1449, hours="08:00-18:00"),
    ],
    "LV": [
        Terminal(id="omniva_lv_001", name="Riga Central", country="LV", city="Riga",
                 address="Brīvības str. 32, 1010 Riga", lat=56.9496, lon=24.1052, hours="08:00-20:00"),
        Terminal(id="omniva_lv_002", name="Riga Airport", country="LV", city="Riga",
                 address="Mārupes iela 3, 1058 Riga", lat=56.9236, lon=24.0534, hours="07:00-21:00"),
        Terminal(id="omniva_lv_003", name="Daugavpils", country="LV", city="Daugavpils",
                 address="Rīgas iela 32, 5400 Daugavpils", lat=55.8794, lon=26.5306, hours="08:00-19:00"),
    ],
    "EE": [
        Terminal(id="omniva_ee_001", name="Tallinn Central", country="EE", city="Tallinn",
                 address="Viru väljak 4, 10111 Tallinn", lat=59.4370, lon=24.7431, hours="08:00-20:00"),
        Terminal(id="omniva_ee_002", name="Tallinn Airport", country="EE", city="Tallinn",
                 address="Lennusadam, 15039 Tallinn", lat=59.4134, lon=24.8314, hours="07:00-21:00"),
        Terminal(id="omniva_ee_003", name="Tartu", country="EE", city="Tartu",
                 address="Rüütli tänav 25, 51007 Tartu", lat=58.3829, lon=26.7214, hours="08:00-19:00"),
    ],
}
