from types import SimpleNamespace

import pytest

from shopcore.errors import InvalidInput
from shopcore.models.shipping import ShippingMethod
from shopcore.repositories.shipping_repo import ShippingRepository
from shopcore.services.shipping_service import ShippingService
from shopcore.shipping.pricing import TableRules, calculate_price, decode_pricing_rules


def method(mode, rules_json):
    return SimpleNamespace(pricing_mode=mode, pricing_rules_json=rules_json)


FIXED = '{"base_price_cents": 250, "free_shipping_order_min_cents": 10000}'


@pytest.mark.parametrize(
    "cart_value, expected",
    [(5000, 250), (15000, 0), (10000, 0), (9999, 250), (0, 250)],
)
def test_fixed_price_with_free_shipping_threshold(cart_value, expected):
    assert calculate_price(method("fixed", FIXED), cart_value) == expected


def test_empty_mode_means_fixed():
    assert calculate_price(method("", '{"base_price_cents": 400}'), 100) == 400
    assert calculate_price(method(None, "{}"), 100) == 0


def test_garbled_rules_price_at_zero():
    assert calculate_price(method("fixed", "{not json"), 5000) == 0
    assert calculate_price(method("fixed", "[1, 2]"), 5000) == 0
    assert calculate_price(method("table", '{"rules": "nope"}'), 5000) == 0


def test_bad_threshold_keeps_base_price():
    rules = '{"base_price_cents": 250, "free_shipping_order_min_cents": "abc"}'
    assert calculate_price(method("fixed", rules), 5000) == 250


def test_bad_band_is_skipped():
    assert calculate_price(method("table", '{"rules": [{"price_cents": "x"}, {"price_cents": 500}]}'), 100) == 500
    assert calculate_price(method("table", '{"rules": ["junk", {"price_cents": 500}]}'), 100) == 500


def test_bad_band_field_keeps_rest_of_rules():
    rules = decode_pricing_rules(
        "table",
        '{"rules": [{"min_weight_kg": "heavy", "price_cents": 700}], "free_shipping_order_min_cents": -1}',
    )
    assert len(rules.rules) == 1
    assert rules.rules[0].price_cents == 700
    assert rules.rules[0].min_weight_kg is None
    assert rules.free_shipping_order_min_cents is None


def test_table_uses_first_band_with_a_price():
    rules = '{"rules": [{"min_weight_kg": 0}, {"price_cents": 500}, {"price_cents": 900}]}'
    assert calculate_price(method("table", rules), 100) == 500
    assert calculate_price(method("table", '{"rules": []}'), 100) == 0


def test_table_free_shipping_checked_first():
    rules = '{"rules": [{"price_cents": 500}], "free_shipping_order_min_cents": 2000}'
    assert calculate_price(method("table", rules), 2000) == 0
    assert calculate_price(method("table", rules), 1999) == 500


def test_provider_and_unknown_modes_price_at_zero():
    assert calculate_price(method("provider", '{"base_price_cents": 999}'), 100) == 0
    assert calculate_price(method("carrier-pigeon", FIXED), 100) == 0


def test_strict_decoding_rejects_bad_rules():
    with pytest.raises(InvalidInput):
        decode_pricing_rules("weight", {}, strict=True)
    with pytest.raises(InvalidInput):
        decode_pricing_rules("fixed", "[]", strict=True)
    with pytest.raises(InvalidInput):
        decode_pricing_rules("fixed", {"base_price_cents": -1}, strict=True)
    rules = decode_pricing_rules("table", {"rules": [{"price_cents": 10}]}, strict=True)
    assert isinstance(rules, TableRules)
    assert rules.rules[0].price_cents == 10


def _zone_with_methods(session, countries, enabled=True):
    repo = ShippingRepository(session)
    zone = repo.create_zone("Zone " + "-".join(countries), countries, enabled)
    session.commit()
    return zone.id


def _method(session, zone_id, **kw):
    fields = {
        "zone_id": zone_id,
        "provider_key": "omniva",
        "service_code": kw.pop("service_code", "locker"),
        "title": kw.pop("title", "Locker"),
        "pricing_mode": "fixed",
        "pricing_rules": {"base_price_cents": 250, "free_shipping_order_min_cents": 10000},
    }
    fields.update(kw)
    m = ShippingRepository(session).create_method(fields)
    session.commit()
    return m.id


def test_shipping_options_for_country(session):
    zone_id = _zone_with_methods(session, ["lt", "LV"])
    _method(session, zone_id, service_code="courier", title="Courier", sort_order=2,
            pricing_mode="table", pricing_rules={"rules": [{"price_cents": 590}]})
    _method(session, zone_id, sort_order=1)
    _method(session, zone_id, service_code="off", title="Off", enabled=False)

    out = ShippingService(session).shipping_options("lt", 5000)

    assert out.zone.id == zone_id
    assert out.zone.countries == ["LT", "LV"]
    assert [(m.service_code, m.price, m.currency) for m in out.methods] == [
        ("locker", 250, "EUR"),
        ("courier", 590, "EUR"),
    ]

    assert [m.price for m in ShippingService(session).shipping_options("LT", 10000).methods] == [0, 590]


def test_shipping_options_without_zone(session):
    _zone_with_methods(session, ["LT"])
    out = ShippingService(session).shipping_options("DE", 100)
    assert out.zone is None
    assert out.methods == []
    with pytest.raises(InvalidInput):
        ShippingService(session).shipping_options("", 100)


def test_first_enabled_zone_wins(session):
    _zone_with_methods(session, ["EE"], enabled=False)
    first = _zone_with_methods(session, ["EE", "FI"])
    _zone_with_methods(session, ["EE"])

    assert ShippingRepository(session).get_zone_by_country("ee").id == first


def test_garbled_stored_rules_do_not_break_options(session):
    zone_id = _zone_with_methods(session, ["LT"])
    method_id = _method(session, zone_id)
    session.get(ShippingMethod, method_id).pricing_rules_json = "{broken"
    session.commit()

    out = ShippingService(session).shipping_options("LT", 100)
    assert out.methods[0].price == 0


def test_options_endpoint(client, session):
    zone_id = _zone_with_methods(session, ["LT"])
    _method(session, zone_id)

    res = client.get("/api/shipping/options", params={"country": "LT", "cart_value": 12000})
    assert res.status_code == 200
    body = res.json()
    assert body["zone"]["id"] == zone_id
    assert body["methods"][0]["price"] == 0

    res = client.get("/api/shipping/options", params={"country": "US"})
    assert res.json() == {"zone": None, "methods": []}
