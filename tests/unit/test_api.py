"""Tests for the FastAPI REST API module."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ratebridge.api.app import create_app
from ratebridge.api.deps import AppState
from ratebridge.cache import CacheSweeper
from ratebridge.core.config import RateBridgeConfig
from ratebridge.core.exceptions import ProviderNetworkError
from ratebridge.core.models import CryptoAsset, Currency, MarketSnapshot
from ratebridge.rates import ConversionComposer, MarketPulseService, SyntheticEstimator


# -- Fixtures --


@pytest.fixture
def binance(fake_provider, make_price, sample_history):
    p = fake_provider(
        "binance",
        values={
            "BTC": make_price(50000.0, "binance"),
            "ETH": make_price(2500.0, "binance"),
            ("BTC", "USDT", 7): sample_history,
        },
    )
    return p


@pytest.fixture
def frankfurter(fake_provider, make_rate):
    return fake_provider("frankfurter", value=make_rate(0.92, "frankfurter"))


@pytest.fixture
def fiat_list(fake_provider):
    return fake_provider(
        "frankfurter",
        value=[Currency(code="EUR", name="Euro"), Currency(code="USD", name="US Dollar")],
    )


@pytest.fixture
def crypto_list(fake_provider):
    return fake_provider(
        "binance",
        value=[CryptoAsset(symbol="BTC", name="BTC", trading_symbol="BTCUSDT")],
    )


@pytest.fixture
def markets(fake_provider):
    return fake_provider(
        "coingecko",
        value=[
            MarketSnapshot(
                id="bitcoin",
                symbol="BTC",
                name="Bitcoin",
                current_price=50000.0,
                price_change_percentage_24h=1.2,
            )
        ],
    )


@pytest.fixture
def state(binance, frankfurter, fiat_list, crypto_list, markets, make_chains, make_service):
    rates = make_service(
        make_chains(
            crypto_price=[binance],
            fiat_rate=[frankfurter],
            crypto_history=[binance],
            fiat_currencies=[fiat_list],
            crypto_currencies=[crypto_list],
        )
    )
    return AppState(
        config=RateBridgeConfig(),
        rates=rates,
        composer=ConversionComposer(rates),
        pulse=MarketPulseService(rates, markets, estimator=SyntheticEstimator(seed=1)),
        sweeper=CacheSweeper([rates.cache, rates.sources, rates.last_known_good]),
    )


@pytest.fixture
def client(state):
    with TestClient(create_app(state=state)) as c:
        yield c


# -- Root / health --


class TestHealth:
    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "service": "ratebridge Currency Converter API"}

    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert body["cache_entries"] == 0
        assert body["sweeper_running"] is True

    def test_cors_allows_frontend_origin(self, client):
        resp = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"


# -- Conversion --


class TestConvert:
    def test_fiat(self, client):
        resp = client.get("/api/convert", params={"from": "usd", "to": "eur", "amount": "100"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        data = body["data"]
        assert data["from"] == "USD"
        assert data["to"] == "EUR"
        assert data["result"] == pytest.approx(92.0)
        assert data["kind"] == "fiat"
        assert data["source"] == "frankfurter"
        assert data["stale"] is False

    def test_crypto_to_fiat(self, client):
        resp = client.get(
            "/api/convert/crypto-to-fiat", params={"from": "BTC", "to": "EUR", "amount": "2"}
        )
        data = resp.json()["data"]
        assert data["rate"] == pytest.approx(46000.0)
        assert data["result"] == pytest.approx(92000.0)
        assert set(data["source"].split("+")) == {"binance", "frankfurter"}

    def test_crypto(self, client):
        data = client.get(
            "/api/convert/crypto", params={"from": "BTC", "to": "ETH", "amount": "1"}
        ).json()["data"]
        assert data["rate"] == pytest.approx(20.0)

    def test_fiat_to_crypto(self, client):
        data = client.get(
            "/api/convert/fiat-to-crypto", params={"from": "USD", "to": "BTC", "amount": "1000"}
        ).json()["data"]
        assert data["result"] == pytest.approx(0.02)
        assert data["kind"] == "fiat_to_crypto"

    def test_second_call_served_from_cache(self, client, frankfurter):
        params = {"from": "USD", "to": "EUR", "amount": "1"}
        client.get("/api/convert/fiat", params=params)
        client.get("/api/convert/fiat", params=params)
        assert frankfurter.call_count == 1

    def test_bad_amount_is_400(self, client):
        resp = client.get("/api/convert", params={"from": "USD", "to": "EUR", "amount": "-5"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert "amount" in body["message"]

    def test_missing_code_is_400(self, client):
        resp = client.get("/api/convert", params={"to": "EUR", "amount": "1"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "from is required"

    def test_all_providers_failed_is_503(self, client, frankfurter):
        frankfurter.error = ProviderNetworkError("frankfurter", "HTTP 500")
        resp = client.get("/api/convert/fiat", params={"from": "USD", "to": "JPY", "amount": "1"})
        assert resp.status_code == 503
        body = resp.json()
        assert body["success"] is False
        assert "all providers failed" in body["message"]

    def test_failed_leg_is_503(self, client, binance):
        binance.error = ProviderNetworkError("binance", "HTTP 451")
        resp = client.get(
            "/api/convert/crypto-to-fiat", params={"from": "SOL", "to": "EUR", "amount": "1"}
        )
        assert resp.status_code == 503
        assert resp.json()["success"] is False


class TestErrorEnvelope:
    def test_error_model_documented(self, client):
        responses = client.get("/openapi.json").json()["paths"]["/api/convert"]["get"]["responses"]
        for status in ("400", "503"):
            ref = responses[status]["content"]["application/json"]["schema"]["$ref"]
            assert ref.endswith("/ErrorResponse")


class TestUnexpectedErrors:
    def test_unhandled_exception_is_generic_500(self, state, frankfurter):
        frankfurter.error = RuntimeError("boom")
        with TestClient(create_app(state=state), raise_server_exceptions=False) as c:
            resp = c.get("/api/convert/fiat", params={"from": "USD", "to": "EUR", "amount": "1"})
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "message": "Internal Server Error"}


# -- Rates --


class TestRates:
    def test_price(self, client):
        data = client.get("/api/rates/price", params={"symbol": "btc"}).json()["data"]
        assert data["symbol"] == "BTC"
        assert data["quote"] == "USDT"
        assert data["price"] == 50000.0
        assert data["provider"] == "binance"

    def test_price_requires_symbol(self, client):
        resp = client.get("/api/rates/price")
        assert resp.status_code == 400
        assert "symbol" in resp.json()["message"]

    def test_history(self, client, sample_history):
        body = client.get("/api/rates/history", params={"from": "BTC", "days": 7}).json()
        data = body["data"]
        assert data["from"] == "BTC"
        assert data["to"] == "USDT"
        assert [p["price"] for p in data["prices"]] == [p.price for p in sample_history]
        assert data["source"] == "binance"

    @pytest.mark.parametrize("days", ["0", "366", "abc"])
    def test_history_bad_days_is_400(self, client, days):
        resp = client.get("/api/rates/history", params={"from": "BTC", "days": days})
        assert resp.status_code == 400
        assert resp.json()["success"] is False


# -- Currencies --


class TestCurrencies:
    def test_fiat(self, client):
        body = client.get("/api/currencies/fiat").json()
        assert [c["code"] for c in body["data"]] == ["EUR", "USD"]
        assert body["source"] == "frankfurter"

    def test_crypto(self, client):
        body = client.get("/api/currencies/crypto").json()
        assert body["data"][0]["symbol"] == "BTC"
        assert body["source"] == "binance"


# -- Market pulse --


class TestMarketPulse:
    def test_overview_then_cached(self, client, markets):
        first = client.get("/api/market-pulse/overview").json()
        second = client.get("/api/market-pulse/overview").json()

        assert first["success"] is True
        assert first["cached"] is False
        assert second["cached"] is True
        assert markets.call_count == 1

        pairs = [m["pair"] for m in first["data"]["rate_movements"]]
        assert pairs == ["USD → INR", "BTC → USD", "EUR → GBP"]
        assert first["data"]["snapshot"]["top_fiat_pair"]["rate"] == 0.92

    def test_markets_down_still_answers(self, client, markets):
        markets.error = ProviderNetworkError("coingecko", "HTTP 429")
        body = client.get("/api/market-pulse/overview").json()
        assert body["data"]["unavailable"] == ["crypto_markets"]
        assert body["data"]["snapshot"]["top_crypto"] is None
