"""Shared pytest fixtures for ratebridge."""

from __future__ import annotations

from typing import Any

import pytest

from ratebridge.cache import LastKnownGoodCache, TTLCache
from ratebridge.core.config import CacheConfig
from ratebridge.core.models import HistoryPoint, PricePoint, RatePoint
from ratebridge.providers.registry import ProviderChains
from ratebridge.rates import RateService

T0 = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = T0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class FakeProvider:
    """Scripted provider that records every call.

    ``values`` maps the full argument tuple, or just the first argument
    (symbol or base code), to the value returned; ``value`` is returned
    for anything else. ``error`` is raised on every call when set.
    """

    def __init__(
        self,
        name: str,
        value: Any = None,
        error: Exception | None = None,
        values: dict[Any, Any] | None = None,
    ) -> None:
        self.name = name
        self.value = value
        self.error = error
        self.values = values or {}
        self.calls: list[tuple] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def _answer(self, *args: Any) -> Any:
        self.calls.append(args)
        if self.error is not None:
            raise self.error
        if args in self.values:
            return self.values[args]
        if args and args[0] in self.values:
            return self.values[args[0]]
        return self.value

    async def fetch(self, *args: Any) -> Any:
        return await self._answer(*args)

    async def fetch_history(self, *args: Any) -> Any:
        return await self._answer(*args)

    async def fetch_currencies(self) -> Any:
        return await self._answer()

    async def fetch_cryptos(self) -> Any:
        return await self._answer()

    async def fetch_markets(self, ids=None, vs_currency="usd", per_page=100) -> Any:
        return await self._answer(*(ids or ()))


def price(value: float, provider: str = "fake", timestamp: int = T0) -> PricePoint:
    return PricePoint(price=value, timestamp=timestamp, provider=provider)


def rate(value: float, provider: str = "fake", timestamp: int = T0) -> RatePoint:
    return RatePoint(rate=value, timestamp=timestamp, provider=provider)


def chains(
    crypto_price=(),
    fiat_rate=(),
    crypto_history=(),
    fiat_currencies=(),
    crypto_currencies=(),
) -> ProviderChains:
    return ProviderChains(
        crypto_price=tuple(crypto_price),
        fiat_rate=tuple(fiat_rate),
        crypto_history=tuple(crypto_history),
        fiat_currencies=tuple(fiat_currencies),
        crypto_currencies=tuple(crypto_currencies),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_provider():
    return FakeProvider


@pytest.fixture
def make_price():
    return price


@pytest.fixture
def make_rate():
    return rate


@pytest.fixture
def make_chains():
    return chains


@pytest.fixture
def sample_history() -> list[HistoryPoint]:
    return [
        HistoryPoint(timestamp=T0 - 7_200_000, price=60000.0),
        HistoryPoint(timestamp=T0 - 3_600_000, price=60500.0),
        HistoryPoint(timestamp=T0, price=61234.5),
    ]


@pytest.fixture
def make_service(clock):
    """Build a RateService on the fake clock with its caches exposed."""

    def _make(provider_chains: ProviderChains, **cache_overrides: Any) -> RateService:
        config = CacheConfig(**cache_overrides)
        return RateService(
            provider_chains,
            cache=TTLCache(clock=clock),
            last_known_good=LastKnownGoodCache(config.stale_max_age, clock=clock),
            cache_config=config,
            clock=clock,
        )

    return _make
