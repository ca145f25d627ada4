import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.orm import sessionmaker

from shopcore.db import init_db, make_engine
from shopcore.errors import InsufficientStock
from shopcore.models.order import Order
from shopcore.repositories.variant_repo import VariantRepository
from shopcore.services.cart_service import CartService
from shopcore.services.order_service import OrderService

STOCK = 3
BUYERS = 8


@pytest.fixture
def file_engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'shop.db'}")
    init_db(bind=eng)
    yield eng
    eng.dispose()


def test_parallel_checkouts_never_oversell(file_engine):
    Session = sessionmaker(bind=file_engine, autocommit=False, autoflush=False)

    with Session() as db:
        variant_id = VariantRepository(db).create_or_update(
            sku="LAST-UNITS", title="Last units", price_cents=500, stock=STOCK
        ).id
        db.commit()
        carts = []
        for _ in range(BUYERS):
            svc = CartService(db)
            cart = svc.create_cart()
            carts.append(svc.add_item(cart.id, variant_id, 1))

    start = threading.Barrier(BUYERS)

    def checkout(cart):
        start.wait()
        with Session() as db:
            try:
                OrderService(db).create_from_cart(cart)
                return "ok"
            except InsufficientStock:
                return "short"

    with ThreadPoolExecutor(max_workers=BUYERS) as pool:
        results = list(pool.map(checkout, carts))

    assert results.count("ok") == STOCK
    assert results.count("short") == BUYERS - STOCK

    with Session() as db:
        assert VariantRepository(db).get_stock(variant_id) == 0
        assert db.query(Order).count() == STOCK
