import httpx
import pytest

from shopcore.shipping.provider import ProviderError, QuoteRequest
from shopcore.shipping.providers.omniva import OmnivaProvider, new_provider

LOCATIONS = [
    {"ZIP": "9001", "NAME": "Vilnius Akropolis", "TYPE": "0", "A0_NAME": "LT", "A1_NAME": "Vilniaus apskr.",
     "A2_NAME": "Vilnius", "A5_NAME": "Ozo g.", "A7_NAME": "25", "X_COORDINATE": "25.2766",
     "Y_COORDINATE": "54.7104", "SERVICE_HOURS": "24/7"},
    {"ZIP": "9002", "NAME": "Vilnius Post Office", "TYPE": "1", "A0_NAME": "LT"},
    {"ZIP": "9003", "NAME": "Riga Origo", "TYPE": "0", "A0_NAME": "LV", "A2_NAME": "Riga"},
]


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_sandbox_terminals():
    p = OmnivaProvider()
    lt = p.list_terminals("lt")
    assert len(lt) == 4
    assert {t.country for t in lt} == {"LT"}
    assert len(p.list_terminals("LV")) == 3
    assert len(p.list_terminals("EE")) == 3
    with pytest.raises(ProviderError):
        p.list_terminals("DE")


def test_quote_prices_by_country_and_weight():
    p = OmnivaProvider()
    options = p.quote(QuoteRequest(weight=2, country="LT"))
    assert [(o.service_code, o.price, o.currency) for o in options] == [
        ("parcel-locker", 600, "EUR"),
        ("home-delivery", 900, "EUR"),
        ("express", 1400, "EUR"),
    ]
    assert p.quote(QuoteRequest(weight=0, country="lv"))[0].price == 600
    assert p.quote(QuoteRequest(weight=0, country="US"))[0].price == 1000
    with pytest.raises(ProviderError):
        p.quote(QuoteRequest(weight=1, country=""))


def test_live_terminals_keep_parcel_machines_for_country():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, json=LOCATIONS)

    p = OmnivaProvider(mode="live", locations_url="https://example.test/locations.json", client=_client(handler))
    terminals = p.list_terminals("LT")

    assert seen == ["https://example.test/locations.json"]
    assert [t.id for t in terminals] == ["9001"]
    t = terminals[0]
    assert t.name == "Vilnius Akropolis"
    assert t.city == "Vilnius"
    assert t.address == "Ozo g. 25, 9001 Vilnius"
    assert (t.lat, t.lon) == (54.7104, 25.2766)
    assert t.hours == "24/7"


def test_live_feed_errors_become_provider_errors():
    p = OmnivaProvider(mode="live", client=_client(lambda request: httpx.Response(502)))
    with pytest.raises(ProviderError):
        p.list_terminals("LT")

    p = OmnivaProvider(mode="live", client=_client(lambda request: httpx.Response(200, text="<html>")))
    with pytest.raises(ProviderError):
        p.list_terminals("LT")

    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ProviderError):
        OmnivaProvider(mode="live", client=_client(refuse)).list_terminals("LT")


def test_factory_validates_config():
    p = new_provider({})
    assert p.mode == "sandbox"
    assert new_provider({"mode": "live", "timeout_seconds": 3}).timeout == 3.0
    with pytest.raises(ValueError):
        new_provider({"timeout_seconds": 0})
    with pytest.raises(ValueError):
        new_provider({"mode": "production"})
