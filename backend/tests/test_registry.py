import pytest

from shopcore.errors import ProviderNotRegistered, ProviderUnavailable
from shopcore.models.shipping import ShippingProvider
from shopcore.shipping.live import LiveProviders
from shopcore.shipping.providers.omniva import OmnivaProvider, new_provider
from shopcore.shipping.registry import (
    ProviderRegistrationError,
    ProviderRegistry,
    build_default_registry,
)

from conftest import FakeProvider


def test_register_and_get():
    registry = ProviderRegistry()
    registry.register("fake", lambda cfg: FakeProvider())
    assert registry.keys() == ["fake"]
    assert isinstance(registry.get("fake")({}), FakeProvider)


def test_duplicate_or_invalid_registration_fails_fast():
    registry = ProviderRegistry()
    registry.register("fake", lambda cfg: FakeProvider())
    with pytest.raises(ProviderRegistrationError):
        registry.register("fake", lambda cfg: FakeProvider())
    with pytest.raises(ProviderRegistrationError):
        registry.register("", lambda cfg: FakeProvider())
    with pytest.raises(ProviderRegistrationError):
        registry.register("other", None)


def test_unknown_key_is_not_registered():
    with pytest.raises(ProviderNotRegistered):
        ProviderRegistry().get("dhl")
    # callers that only care about availability can catch the parent
    assert issubclass(ProviderNotRegistered, ProviderUnavailable)


def test_default_registry_has_omniva():
    registry = build_default_registry()
    assert registry.keys() == ["omniva"]
    assert registry.get("omniva") is new_provider


def _provider_row(session, key, enabled=True, mode="sandbox", config_json="{}"):
    session.add(ShippingProvider(key=key, name=key.title(), enabled=enabled, mode=mode, config_json=config_json))
    session.commit()


def _boom(cfg):
    raise RuntimeError("cannot build")


def test_load_builds_enabled_providers_and_skips_bad_ones(session):
    registry = build_default_registry()
    registry.register("fake", lambda cfg: FakeProvider())
    registry.register("broken", _boom)
    registry.register("garbled", lambda cfg: FakeProvider())

    _provider_row(session, "omniva", config_json='{"timeout_seconds": 5}')
    _provider_row(session, "fake", enabled=False)
    _provider_row(session, "broken")
    _provider_row(session, "garbled", config_json="{oops")
    _provider_row(session, "dhl")

    live = LiveProviders(registry)
    assert live.load(session) == ["omniva"]
    assert isinstance(live.require("omniva"), OmnivaProvider)
    assert live.require("omniva").timeout == 5.0

    with pytest.raises(ProviderUnavailable, match="provider not found or not enabled"):
        live.require("fake")
    assert "broken" not in live


def test_row_mode_overrides_config_mode(session):
    _provider_row(session, "omniva", mode="live", config_json='{"mode": "sandbox"}')
    live = LiveProviders(build_default_registry())
    live.load(session)
    assert live.require("omniva").mode == "live"


def test_reload_picks_up_changes(session):
    live = LiveProviders(build_default_registry())
    assert live.load(session) == []

    _provider_row(session, "omniva")
    assert live.reload(session) == ["omniva"]

    session.query(ShippingProvider).filter(ShippingProvider.key == "omniva").update({"enabled": False})
    session.commit()
    assert live.reload(session) == []
    assert live.keys() == []
