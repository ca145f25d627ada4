from typing import List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shopcore.db import get_db, init_db, make_engine
from shopcore.main import create_app
from shopcore.models.product_variant import ProductVariant
from shopcore.shipping.live import LiveProviders
from shopcore.shipping.provider import (
    Provider,
    ProviderError,
    QuoteRequest,
    ShippingOption,
    Terminal,
)
from shopcore.shipping.providers.omniva import OmnivaProvider
from shopcore.shipping.registry import build_default_registry


class FakeProvider(Provider):
    """Counts calls; fails with ProviderError when ``fail`` is set."""

    def __init__(self, terminals=None, fail=False):
        self.terminals = terminals or [
            Terminal(id="t1", name="Alpha", country="LT", city="Vilnius"),
            Terminal(id="t2", name="Beta", country="LT", city="Kaunas"),
        ]
        self.fail = fail
        self.calls = 0

    def list_terminals(self, country: str) -> List[Terminal]:
        self.calls += 1
        if self.fail:
            raise ProviderError("carrier down")
        return [t.model_copy(update={"country": country}) for t in self.terminals]

    def quote(self, req: QuoteRequest) -> List[ShippingOption]:
        self.calls += 1
        if self.fail:
            raise ProviderError("carrier down")
        return [ShippingOption(service_code="std", service_name="Standard", price=100, currency="EUR")]


@pytest.fixture
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_variant(session):
    counter = {"n": 0}

    def _make(price_cents=300, currency="EUR", stock=10, title=None, sku=None):
        counter["n"] += 1
        v = ProductVariant(
            sku=sku or f"SKU-{counter['n']}",
            title=title or f"Variant {counter['n']}",
            price_cents=price_cents,
            currency=currency,
            stock=stock,
        )
        session.add(v)
        session.commit()
        return v.id

    return _make


@pytest.fixture
def live():
    providers = LiveProviders(build_default_registry())
    providers.set("omniva", OmnivaProvider())
    return providers


@pytest.fixture
def app(engine, session_factory, live):
    application = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = override_get_db
    application.state.engine = engine
    application.state.provider_registry = live.registry
    application.state.live_providers = live
    return application


@pytest.fixture
def client(app):
    return TestClient(app)
