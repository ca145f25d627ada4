import pytest

from shopcore.errors import InvalidInput, NotFound
from shopcore.models.cart import CartItem
from shopcore.models.product_variant import ProductVariant
from shopcore.services.cart_service import CartService


def test_add_same_variant_twice_increments_single_row(session, make_variant):
    v = make_variant(price_cents=250)
    svc = CartService(session)
    cart = svc.create_cart()

    svc.add_item(cart.id, v, 1)
    out = svc.add_item(cart.id, v, 2)

    assert len(out.items) == 1
    assert out.items[0].quantity == 3
    assert session.query(CartItem).filter(CartItem.cart_id == cart.id).count() == 1


def test_totals_are_derived_from_items(session, make_variant):
    a = make_variant(price_cents=200, currency="USD")
    b = make_variant(price_cents=300, currency="USD")
    svc = CartService(session)
    cart = svc.create_cart()

    svc.add_item(cart.id, a, 2)
    out = svc.add_item(cart.id, b, 1)

    assert out.totals.subtotal_cents == 700
    assert out.totals.item_count == 3
    assert out.totals.currency == "USD"


def test_new_cart_has_empty_totals(session):
    out = CartService(session).create_cart()
    assert out.items == []
    assert out.totals.subtotal_cents == 0
    assert out.totals.item_count == 0
    assert out.totals.currency == ""


def test_existing_row_keeps_captured_price(session, make_variant):
    v = make_variant(price_cents=500)
    svc = CartService(session)
    cart = svc.create_cart()
    svc.add_item(cart.id, v, 1)

    session.get(ProductVariant, v).price_cents = 900
    session.commit()

    out = svc.add_item(cart.id, v, 1)
    assert out.items[0].unit_price_cents == 500
    assert out.items[0].quantity == 2


def test_add_item_rejects_bad_input(session, make_variant):
    v = make_variant()
    svc = CartService(session)
    cart = svc.create_cart()

    with pytest.raises(InvalidInput):
        svc.add_item(cart.id, v, 0)
    with pytest.raises(NotFound):
        svc.add_item(cart.id, "no-such-variant", 1)
    with pytest.raises(NotFound):
        svc.add_item("no-such-cart", v, 1)


def test_item_mutations_are_scoped_to_their_cart(session, make_variant):
    v = make_variant()
    svc = CartService(session)
    mine = svc.create_cart()
    other = svc.create_cart()
    item_id = svc.add_item(mine.id, v, 2).items[0].id

    with pytest.raises(NotFound):
        svc.update_item_quantity(other.id, item_id, 5)
    with pytest.raises(NotFound):
        svc.remove_item(other.id, item_id)

    assert svc.update_item_quantity(mine.id, item_id, 5).items[0].quantity == 5
    with pytest.raises(InvalidInput):
        svc.update_item_quantity(mine.id, item_id, 0)
    assert svc.remove_item(mine.id, item_id).items == []


def test_guest_merge_is_additive_and_idempotent(session, make_variant):
    v = make_variant(price_cents=100)
    svc = CartService(session)

    customer_cart = svc.resolve_customer_cart("cust-1")
    svc.add_item(customer_cart.id, v, 1)
    guest = svc.create_cart()
    svc.add_item(guest.id, v, 2)

    merged = svc.resolve_customer_cart("cust-1", guest.id)
    assert merged.id == customer_cart.id
    assert merged.items[0].quantity == 3
    assert svc.get_cart(guest.id).items == []

    again = svc.resolve_customer_cart("cust-1", guest.id)
    assert again.items[0].quantity == 3


def test_merge_never_reads_another_customers_cart(session, make_variant):
    v = make_variant()
    svc = CartService(session)
    alice = svc.resolve_customer_cart("alice")
    svc.add_item(alice.id, v, 4)

    bob = svc.resolve_customer_cart("bob", alice.id)

    assert bob.items == []
    assert svc.get_cart(alice.id).items[0].quantity == 4


def test_resolve_customer_cart_reuses_cart_and_requires_id(session):
    svc = CartService(session)
    first = svc.resolve_customer_cart("cust-2")
    assert svc.resolve_customer_cart("cust-2").id == first.id
    with pytest.raises(InvalidInput):
        svc.resolve_customer_cart("")


def test_cart_endpoints_use_cookie(client, make_variant):
    v = make_variant(price_cents=350)

    res = client.post("/api/cart/items", json={"variant_id": v, "quantity": 2})
    assert res.status_code == 200
    cart_id = res.cookies.get("cart_id")
    assert cart_id == res.json()["id"]

    res = client.get("/api/cart")
    assert res.status_code == 200
    body = res.json()
    assert body["id"] == cart_id
    assert body["totals"]["subtotal_cents"] == 700
    item_id = body["items"][0]["id"]

    res = client.patch(f"/api/cart/items/{item_id}", json={"quantity": 1})
    assert res.status_code == 200
    assert res.json()["totals"]["item_count"] == 1

    res = client.delete(f"/api/cart/items/{item_id}")
    assert res.status_code == 200
    assert res.json()["items"] == []

    res = client.delete(f"/api/cart/items/{item_id}")
    assert res.status_code == 404


def test_cart_endpoint_rejects_zero_quantity(client, make_variant):
    v = make_variant()
    res = client.post("/api/cart/items", json={"variant_id": v, "quantity": 0})
    assert res.status_code == 400
