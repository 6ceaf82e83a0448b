"""Cache-first lookups over ordered provider chains.

Every public lookup follows the same path:

    validate → cache hit? return it
             → chain[0] → chain[1] → ... → first success: cache, return
             → all failed: last-known-good (flagged stale) or raise

Nothing is cached when a lookup fails or is cancelled.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from ratebridge.cache.ttl import LastKnownGoodCache, TTLCache
from ratebridge.core.config import CacheConfig
from ratebridge.core.exceptions import AllProvidersFailedError
from ratebridge.core.models import (
    CacheKey,
    Clock,
    CryptoAsset,
    Currency,
    HistoryPoint,
    PricePoint,
    RatePoint,
    now_ms,
)
from ratebridge.providers.registry import ProviderChains
from ratebridge.rates.fallback import first_success
from ratebridge.rates.validation import validate_code, validate_days

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = TypeVar("P")

IDENTITY_SOURCE = "identity"


def price_key(symbol: str, quote: str) -> CacheKey:
    return f"crypto:price:{symbol}:{quote}"


def fiat_rate_key(base: str, target: str) -> CacheKey:
    return f"fiat:rate:{base}:{target}"


def history_key(symbol: str, quote: str, days: int) -> CacheKey:
    return f"crypto:history:{symbol}:{quote}:{days}"


FIAT_CURRENCIES_KEY: CacheKey = "fiat:currencies"
CRYPTO_CURRENCIES_KEY: CacheKey = "crypto:currencies"


class RateService:
    """Fallback orchestrator for prices, rates, history, and currency lists.

    Parameters
    ----------
    chains : ProviderChains
        Ordered providers per lookup kind. Iteration always starts at index 0.
    cache : TTLCache | None
        Shared TTL cache. A private one is created when None.
    last_known_good : LastKnownGoodCache | None
        Store used for stale serving of single price/rate lookups.
    cache_config : CacheConfig | None
        TTLs and the stale-serving switch. Defaults apply when None.
    """

    def __init__(
        self,
        chains: ProviderChains,
        cache: TTLCache | None = None,
        last_known_good: LastKnownGoodCache | None = None,
        cache_config: CacheConfig | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._chains = chains
        self._config = cache_config or CacheConfig()
        self._clock = clock
        self._cache = cache if cache is not None else TTLCache(clock=clock)
        self._last_known_good = (
            last_known_good
            if last_known_good is not None
            else LastKnownGoodCache(self._config.stale_max_age, clock=clock)
        )
        # Provider names expire with the values they describe.
        self._sources = TTLCache(clock=clock)

    @property
    def cache(self) -> TTLCache:
        return self._cache

    @property
    def last_known_good(self) -> LastKnownGoodCache:
        return self._last_known_good

    @property
    def sources(self) -> TTLCache:
        return self._sources

    def now(self) -> int:
        return self._clock()

    def source_of(self, key: CacheKey) -> str | None:
        """Name of the provider that produced the value last cached under ``key``."""
        return self._sources.get(key)

    # --- Point lookups ---

    async def get_price(self, symbol: str, quote: str = "USDT") -> PricePoint:
        """Spot price of ``symbol`` in ``quote`` (cached ``price_ttl`` seconds)."""
        symbol = validate_code(symbol, "symbol")
        quote = validate_code(quote, "quote")
        return await self._lookup(
            key=price_key(symbol, quote),
            chain=self._chains.crypto_price,
            call=lambda p: p.fetch(symbol, quote),
            label=f"price for {symbol}/{quote}",
            ttl=self._config.price_ttl,
            allow_stale=True,
        )

    async def get_fiat_rate(self, base: str, target: str) -> RatePoint:
        """Units of ``target`` per one ``base`` (cached ``fiat_rate_ttl`` seconds)."""
        base = validate_code(base, "from")
        target = validate_code(target, "to")
        if base == target:
            return RatePoint(rate=1.0, timestamp=self._clock(), provider=IDENTITY_SOURCE)
        return await self._lookup(
            key=fiat_rate_key(base, target),
            chain=self._chains.fiat_rate,
            call=lambda p: p.fetch(base, target),
            label=f"exchange rate for {base}/{target}",
            ttl=self._config.fiat_rate_ttl,
            allow_stale=True,
        )

    # --- Series and lists ---

    async def get_historical_data(
        self, symbol: str, quote: str = "USDT", days: int = 7
    ) -> list[HistoryPoint]:
        symbol = validate_code(symbol, "from")
        quote = validate_code(quote, "to")
        days = validate_days(days)
        return await self._lookup(
            key=history_key(symbol, quote, days),
            chain=self._chains.crypto_history,
            call=lambda p: p.fetch_history(symbol, quote, days),
            label=f"history for {symbol}/{quote} ({days}d)",
            ttl=self._config.history_ttl,
        )

    async def get_supported_currencies(self) -> list[Currency]:
        return await self._lookup(
            key=FIAT_CURRENCIES_KEY,
            chain=self._chains.fiat_currencies,
            call=lambda p: p.fetch_currencies(),
            label="fiat currencies",
            ttl=self._config.currencies_ttl,
        )

    async def get_supported_cryptos(self) -> list[CryptoAsset]:
        return await self._lookup(
            key=CRYPTO_CURRENCIES_KEY,
            chain=self._chains.crypto_currencies,
            call=lambda p: p.fetch_cryptos(),
            label="crypto currencies",
            ttl=self._config.currencies_ttl,
        )

    # --- Internals ---

    async def _lookup(
        self,
        key: CacheKey,
        chain: Sequence[P],
        call: Callable[[P], Awaitable[T]],
        label: str,
        ttl: int,
        allow_stale: bool = False,
    ) -> T:
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit: %s", key)
            return cached

        try:
            value, provider = await first_success(chain, call, label, context={"key": key})
        except AllProvidersFailedError as e:
            stale = self._stale(key) if allow_stale else None
            if stale is None:
                raise
            logger.warning("Serving stale %s after all providers failed: %s", label, e)
            return stale

        name = getattr(provider, "name", type(provider).__name__)
        if chain and provider is not chain[0]:
            logger.info("Served %s from fallback provider %s", label, name)
        self._cache.set(key, value, ttl)
        self._sources.set(key, name, ttl)
        if allow_stale:
            self._last_known_good.put(key, value)
        return value

    def _stale(self, key: CacheKey) -> Any | None:
        if not self._config.serve_stale:
            return None
        value = self._last_known_good.get(key)
        if value is None:
            return None
        return value.model_copy(update={"stale": True})
