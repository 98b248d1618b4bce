"""Tests for the pricepulse web API."""

import pytest
from fastapi.testclient import TestClient

from pricepulse.core.client import PricePulseClient
from pricepulse.core.exceptions import UnsupportedOperationError
from pricepulse.web import create_app
from pricepulse.web.utils import REQUEST_ID_HEADER


@pytest.fixture
def client(fast_config, provider, metrics):
    return PricePulseClient(fast_config, provider=provider, metrics=metrics)


@pytest.fixture
def api(client):
    with TestClient(create_app(client)) as test_client:
        yield test_client


class TestHealthRoutes:
    """健康检查端点"""

    def test_health_after_startup(self, api):
        response = api.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "healthy"
        assert body["data"]["checks"]["static"]["connection_state"] == "live"
        assert body["data"]["checks"]["static"]["subscribers"] == 1

    def test_liveness(self, api):
        response = api.get("/api/v1/health/live")

        assert response.status_code == 200
        assert response.json()["data"] == {"alive": True}

    def test_request_id_is_echoed(self, api):
        response = api.get("/api/v1/health/live", headers={REQUEST_ID_HEADER: "req-123"})

        assert response.headers[REQUEST_ID_HEADER] == "req-123"
        assert response.json()["request_id"] == "req-123"

    def test_request_id_is_generated(self, api):
        response = api.get("/api/v1/health/live")

        assert len(response.headers[REQUEST_ID_HEADER]) == 32


class TestPriceRoutes:
    """价格端点"""

    def test_lifespan_tracks_default_symbols(self, api, client):
        response = api.get("/api/v1/prices")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["connection_state"] == "live"
        assert sorted(data["prices"]) == ["BTC", "ETH"]
        assert data["prices"]["BTC"]["price_local"] == 95000.0 * 84.0
        assert "missing" not in data

    def test_new_symbols_are_fetched_on_demand(self, api, client):
        response = api.get("/api/v1/prices", params={"symbols": "sol,btc"})

        data = response.json()["data"]
        assert sorted(data["prices"]) == ["BTC", "SOL"]
        assert data["missing"] == []
        assert "SOL" in client.store.tracked_symbols

    def test_unknown_symbols_are_reported_missing(self, api):
        response = api.get("/api/v1/prices", params={"symbols": "DOGE"})

        data = response.json()["data"]
        assert data["prices"] == {}
        assert data["missing"] == ["DOGE"]

    def test_single_price(self, api):
        response = api.get("/api/v1/prices/eth")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["symbol"] == "ETH"
        assert data["price_usd"] == 3500.0
        assert data["connection_state"] == "live"

    def test_single_price_not_found(self, api):
        response = api.get("/api/v1/prices/XRP")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "HTTPException"
        assert "XRP" in body["message"]

    def test_reconnect(self, api, client):
        generation = client.store.generation

        response = api.post("/api/v1/prices/reconnect")

        assert response.status_code == 200
        assert response.json()["data"] == {"static": "connecting"}
        assert client.store.generation == generation + 1


class TestCandleRoutes:
    """K线端点"""

    def test_candles(self, api):
        response = api.get("/api/v1/candles/btc", params={"interval": "1h", "limit": 5})

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data) == 5
        assert data[-1]["close"] == pytest.approx(95000.0)
        assert {"body_size", "upper_shadow", "lower_shadow", "momentum", "is_bullish"} <= set(data[0])

    def test_nan_values_are_null(self, api, provider):
        provider.set_klines("BTC", [[1_704_067_200_000, "100", "n/a", "95", "105", "10", 1_704_070_799_999]])

        response = api.get("/api/v1/candles/BTC", params={"limit": 1})

        assert response.status_code == 200
        [row] = response.json()["data"]
        assert row["high"] is None
        assert row["upper_shadow"] is None
        assert row["momentum"] == 0.0
        assert row["lower_shadow"] == 5.0

    def test_invalid_request_is_422(self, api):
        response = api.get("/api/v1/candles/BTC", params={"interval": "7m", "limit": 0})

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "DataValidationError"
        assert set(body["details"]["details"]["validation_errors"]) == {"interval", "limit"}

    def test_provider_error_is_502(self, api, provider):
        provider.fail_with = UnsupportedOperationError("klines not supported", "static", operation="klines")

        response = api.get("/api/v1/candles/BTC")

        assert response.status_code == 502
        assert response.json()["error"] == "UnsupportedOperationError"


def test_lifespan_leaves_injected_client_open(client, provider):
    with TestClient(create_app(client)) as api:
        assert api.get("/api/v1/health/live").status_code == 200

    assert client.store.subscriber_count == 0
    assert not client.store.is_running
    assert not provider.closed
