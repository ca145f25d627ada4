from fastapi.testclient import TestClient

from shopcore.adapters.payments import StripeCheckoutStub


def test_health_ok(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "ok"
    assert body["db"] is True
    assert body["shipping_providers"] == ["omniva"]
    assert set(body["payment_adapter"]) == {"configured"}


def test_health_reports_payment_keys(app, client):
    app.state.payment_adapter = StripeCheckoutStub()
    assert client.get("/api/health").json()["payment_adapter"] == {"configured": False}

    app.state.payment_adapter = StripeCheckoutStub(public_key="pk_test_1", secret_key="sk_test_1")
    assert client.get("/api/health").json()["payment_adapter"] == {"configured": True}


def test_unknown_errors_map_to_500(app):
    @app.get("/api/_boom")
    def boom():
        raise RuntimeError("kaboom")

    res = TestClient(app, raise_server_exceptions=False).get("/api/_boom")
    assert res.status_code == 500
    assert res.json() == {"detail": "Internal server error"}
