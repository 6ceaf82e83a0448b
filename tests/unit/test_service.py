"""Tests for ratebridge.rates.fallback and RateService."""

from __future__ import annotations

import asyncio
import logging

import pytest

from ratebridge.core.exceptions import (
    AllProvidersFailedError,
    ProviderNetworkError,
    ProviderResponseError,
    UnsupportedSymbolError,
    ValidationError,
)
from ratebridge.core.models import Currency, CryptoAsset
from ratebridge.rates.fallback import first_success


def _down(name: str, status: int = 500) -> ProviderNetworkError:
    return ProviderNetworkError(name, f"HTTP {status}", context={"status_code": status})


# --- first_success ---


class TestFirstSuccess:
    async def test_returns_first_success_and_skips_rest(self, fake_provider, make_price):
        a = fake_provider("a", error=_down("a"))
        b = fake_provider("b", value=make_price(2.0, "b"))
        c = fake_provider("c", value=make_price(3.0, "c"))

        value, provider = await first_success([a, b, c], lambda p: p.fetch("BTC", "USDT"), "price")

        assert value.price == 2.0
        assert provider is b
        assert (a.call_count, b.call_count, c.call_count) == (1, 1, 0)

    async def test_all_fail_carries_every_error(self, fake_provider):
        a = fake_provider("a", error=_down("a", 451))
        b = fake_provider("b", error=ProviderResponseError("b", "missing price"))

        with pytest.raises(AllProvidersFailedError) as exc:
            await first_success([a, b], lambda p: p.fetch("BTC", "USDT"), "price for BTC/USDT")

        assert [e.provider for e in exc.value.errors] == ["a", "b"]
        assert exc.value.last_error.reason == "missing price"
        assert "Last error: b: missing price" in str(exc.value)
        assert str(exc.value).startswith("Unable to fetch price for BTC/USDT")

    async def test_failures_logged_at_warning(self, fake_provider, make_price, caplog):
        a = fake_provider("a", error=_down("a", 451))
        b = fake_provider("b", value=make_price(1.0))
        with caplog.at_level(logging.WARNING, logger="ratebridge.rates.fallback"):
            await first_success([a, b], lambda p: p.fetch("BTC", "USDT"), "price")
        assert "a failed for price" in caplog.text
        assert "HTTP 451" in caplog.text

    async def test_non_provider_errors_propagate(self, fake_provider, make_price):
        a = fake_provider("a", error=RuntimeError("bug"))
        b = fake_provider("b", value=make_price(1.0))
        with pytest.raises(RuntimeError):
            await first_success([a, b], lambda p: p.fetch("BTC", "USDT"), "price")
        assert b.call_count == 0

    async def test_empty_chain(self):
        with pytest.raises(AllProvidersFailedError, match="no providers configured"):
            await first_success([], lambda p: p.fetch(), "price")


# --- RateService.get_price ---


class TestGetPrice:
    async def test_caches_identical_object(self, fake_provider, make_price, make_chains, make_service):
        binance = fake_provider("binance", value=make_price(61234.5, "binance"))
        service = make_service(make_chains(crypto_price=[binance]))

        first = await service.get_price("BTC", "USDT")
        second = await service.get_price("BTC", "USDT")

        assert first.price == 61234.5
        assert second is first
        assert binance.call_count == 1
        assert "crypto:price:BTC:USDT" in service.cache

    async def test_refetches_after_ttl(self, fake_provider, make_price, make_chains, make_service, clock):
        binance = fake_provider("binance", value=make_price(1.0))
        service = make_service(make_chains(crypto_price=[binance]))
        await service.get_price("BTC")
        clock.advance(31)
        await service.get_price("BTC")
        assert binance.call_count == 2

    async def test_codes_are_normalized(self, fake_provider, make_price, make_chains, make_service):
        binance = fake_provider("binance", value=make_price(1.0))
        service = make_service(make_chains(crypto_price=[binance]))
        await service.get_price(" btc ", "usdt")
        assert binance.calls == [("BTC", "USDT")]

    async def test_fallback_order(self, fake_provider, make_price, make_chains, make_service, caplog):
        a = fake_provider("binance", error=_down("binance", 451))
        b = fake_provider("coinbase", value=make_price(61000.0, "coinbase"))
        c = fake_provider("coingecko", value=make_price(62000.0, "coingecko"))
        service = make_service(make_chains(crypto_price=[a, b, c]))

        with caplog.at_level(logging.INFO):
            point = await service.get_price("BTC")

        assert point.provider == "coinbase"
        assert c.call_count == 0
        assert "fallback provider coinbase" in caplog.text
        assert service.source_of("crypto:price:BTC:USDT") == "coinbase"

    async def test_symbol_mapping_miss_falls_through(
        self, fake_provider, make_price, make_chains, make_service
    ):
        gecko = fake_provider("coingecko", error=UnsupportedSymbolError("coingecko", "no mapping for FOO"))
        binance = fake_provider("binance", value=make_price(0.5, "binance"))
        service = make_service(make_chains(crypto_price=[gecko, binance]))
        assert (await service.get_price("FOO")).provider == "binance"

    async def test_all_fail_caches_nothing(self, fake_provider, make_chains, make_service):
        a = fake_provider("a", error=_down("a"))
        b = fake_provider("b", error=_down("b", 503))
        service = make_service(make_chains(crypto_price=[a, b]))

        with pytest.raises(AllProvidersFailedError, match="HTTP 503"):
            await service.get_price("BTC")

        assert len(service.cache) == 0
        assert len(service.last_known_good) == 0

    async def test_validation_precedes_providers(self, fake_provider, make_chains, make_service):
        binance = fake_provider("binance")
        service = make_service(make_chains(crypto_price=[binance]))
        with pytest.raises(ValidationError):
            await service.get_price("", "USDT")
        assert binance.call_count == 0

    async def test_cancellation_propagates_and_caches_nothing(
        self, fake_provider, make_price, make_chains, make_service
    ):
        started = asyncio.Event()

        class Hanging:
            name = "hanging"

            async def fetch(self, symbol, quote):
                started.set()
                await asyncio.sleep(3600)

        fallback = fake_provider("b", value=make_price(1.0))
        service = make_service(make_chains(crypto_price=[Hanging(), fallback]))

        task = asyncio.create_task(service.get_price("BTC"))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert fallback.call_count == 0
        assert len(service.cache) == 0


class TestStaleServing:
    async def test_serves_last_known_good_flagged_stale(
        self, fake_provider, make_price, make_chains, make_service, clock, caplog
    ):
        binance = fake_provider("binance", value=make_price(61000.0, "binance"))
        service = make_service(make_chains(crypto_price=[binance]))
        await service.get_price("BTC")

        clock.advance(31)
        binance.error = _down("binance")
        with caplog.at_level(logging.WARNING):
            point = await service.get_price("BTC")

        assert point.stale is True
        assert point.price == 61000.0
        assert "Serving stale" in caplog.text
        assert service.cache.get("crypto:price:BTC:USDT") is None

    async def test_disabled_stale_serving_raises(
        self, fake_provider, make_price, make_chains, make_service, clock
    ):
        binance = fake_provider("binance", value=make_price(61000.0))
        service = make_service(make_chains(crypto_price=[binance]), serve_stale=False)
        await service.get_price("BTC")
        clock.advance(31)
        binance.error = _down("binance")
        with pytest.raises(AllProvidersFailedError):
            await service.get_price("BTC")

    async def test_too_old_is_not_served(self, fake_provider, make_price, make_chains, make_service, clock):
        binance = fake_provider("binance", value=make_price(61000.0))
        service = make_service(make_chains(crypto_price=[binance]), stale_max_age=60)
        await service.get_price("BTC")
        clock.advance(61)
        binance.error = _down("binance")
        with pytest.raises(AllProvidersFailedError):
            await service.get_price("BTC")


# --- Fiat, history, lists ---


class TestFiatRate:
    async def test_fetch_and_cache(self, fake_provider, make_rate, make_chains, make_service, clock):
        frank = fake_provider("frankfurter", value=make_rate(0.92, "frankfurter"))
        service = make_service(make_chains(fiat_rate=[frank]))

        assert (await service.get_fiat_rate("usd", "eur")).rate == 0.92
        clock.advance(59)
        await service.get_fiat_rate("USD", "EUR")
        assert frank.calls == [("USD", "EUR")]
        clock.advance(2)
        await service.get_fiat_rate("USD", "EUR")
        assert frank.call_count == 2

    async def test_same_code_is_identity(self, fake_provider, make_chains, make_service):
        frank = fake_provider("frankfurter")
        service = make_service(make_chains(fiat_rate=[frank]))
        point = await service.get_fiat_rate("USD", "usd")
        assert point.rate == 1.0
        assert frank.call_count == 0


class TestHistory:
    async def test_fetch_and_cache(self, fake_provider, make_chains, make_service, sample_history):
        binance = fake_provider("binance", value=sample_history)
        service = make_service(make_chains(crypto_history=[binance]))

        points = await service.get_historical_data("BTC", "USDT", 7)
        await service.get_historical_data("BTC", "USDT", 7)

        assert points == sample_history
        assert binance.calls == [("BTC", "USDT", 7)]
        assert "crypto:history:BTC:USDT:7" in service.cache

    @pytest.mark.parametrize("days", [0, 366, -1])
    async def test_days_out_of_range(self, fake_provider, make_chains, make_service, days):
        binance = fake_provider("binance")
        service = make_service(make_chains(crypto_history=[binance]))
        with pytest.raises(ValidationError, match="between 1 and 365"):
            await service.get_historical_data("BTC", "USDT", days)
        assert binance.call_count == 0

    async def test_history_is_never_served_stale(
        self, fake_provider, make_chains, make_service, sample_history, clock
    ):
        binance = fake_provider("binance", value=sample_history)
        service = make_service(make_chains(crypto_history=[binance]))
        await service.get_historical_data("BTC")
        clock.advance(301)
        binance.error = _down("binance")
        with pytest.raises(AllProvidersFailedError):
            await service.get_historical_data("BTC")


class TestCurrencyLists:
    async def test_fiat_currencies_fall_back(self, fake_provider, make_chains, make_service):
        frank = fake_provider("frankfurter", error=_down("frankfurter"))
        era = fake_provider("exchangerate_api", value=[Currency(code="USD", name="US Dollar")])
        service = make_service(make_chains(fiat_currencies=[frank, era]))

        currencies = await service.get_supported_currencies()

        assert currencies[0].code == "USD"
        assert service.source_of("fiat:currencies") == "exchangerate_api"

    async def test_source_name_expires_with_value(
        self, fake_provider, make_chains, make_service, clock
    ):
        frank = fake_provider("frankfurter", value=[Currency(code="USD", name="US Dollar")])
        service = make_service(make_chains(fiat_currencies=[frank]))
        await service.get_supported_currencies()
        assert len(service.sources) == 1

        clock.advance(3601)

        assert service.sources.sweep() == 1
        assert service.source_of("fiat:currencies") is None

    async def test_crypto_list_cached_for_an_hour(self, fake_provider, make_chains, make_service, clock):
        binance = fake_provider("binance", value=[CryptoAsset(symbol="BTC", name="BTC")])
        service = make_service(make_chains(crypto_currencies=[binance]))
        await service.get_supported_cryptos()
        clock.advance(3599)
        await service.get_supported_cryptos()
        assert binance.call_count == 1
