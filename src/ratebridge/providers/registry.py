"""Provider registry: maps config names to adapter classes and builds chains.

One adapter instance is created per provider name and shared by every
chain that lists it, so Binance serves prices, history, and the crypto
list through the same object (and the same request budget).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ratebridge.core.config import HttpConfig, ProvidersConfig
from ratebridge.core.models import ProviderName
from ratebridge.providers.base import (
    CryptoListProvider,
    CurrencyListProvider,
    HistoryProvider,
    HttpProvider,
    PriceProvider,
    RateProvider,
)
from ratebridge.providers.binance import BinanceProvider
from ratebridge.providers.coinbase import CoinbaseProvider
from ratebridge.providers.coindesk import CoinDeskProvider
from ratebridge.providers.coingecko import CoinGeckoProvider
from ratebridge.providers.exchangerate_api import ExchangeRateApiProvider
from ratebridge.providers.fawaz import FawazAhmedProvider
from ratebridge.providers.frankfurter import FrankfurterProvider
from ratebridge.providers.kraken import KrakenProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[ProviderName, type[HttpProvider]] = {
    ProviderName.BINANCE: BinanceProvider,
    ProviderName.COINBASE: CoinbaseProvider,
    ProviderName.COINGECKO: CoinGeckoProvider,
    ProviderName.KRAKEN: KrakenProvider,
    ProviderName.COINDESK: CoinDeskProvider,
    ProviderName.FRANKFURTER: FrankfurterProvider,
    ProviderName.FAWAZ_AHMED: FawazAhmedProvider,
    ProviderName.EXCHANGERATE_API: ExchangeRateApiProvider,
}


@dataclass(frozen=True)
class ProviderChains:
    """Ordered provider tuples, one per lookup kind."""

    crypto_price: tuple[PriceProvider, ...]
    fiat_rate: tuple[RateProvider, ...]
    crypto_history: tuple[HistoryProvider, ...]
    fiat_currencies: tuple[CurrencyListProvider, ...]
    crypto_currencies: tuple[CryptoListProvider, ...]


def create_client(http: HttpConfig) -> httpx.AsyncClient:
    """The process-wide HTTP client every adapter shares."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(http.timeout),
        headers={"User-Agent": http.user_agent, "Accept": "application/json"},
    )


def create_provider(
    name: ProviderName,
    client: httpx.AsyncClient,
    providers: ProvidersConfig,
    http: HttpConfig,
) -> HttpProvider:
    """Instantiate one adapter with its configured overrides."""
    cls = PROVIDER_CLASSES.get(name)
    if cls is None:
        raise KeyError(f"Unknown provider '{name}'. Available: {[p.value for p in PROVIDER_CLASSES]}")

    kwargs: dict[str, Any] = {
        "base_url": providers.base_urls.get(name),
        "timeout": http.timeout,
        "requests_per_minute": providers.requests_per_minute.get(name),
    }
    if name is ProviderName.EXCHANGERATE_API:
        kwargs["api_key"] = providers.exchangerate_api_key
        if not providers.exchangerate_api_key:
            logger.info("ExchangeRate-API key not configured; that provider will be skipped")
    return cls(client, **kwargs)


def build_chains(
    client: httpx.AsyncClient,
    providers: ProvidersConfig,
    http: HttpConfig | None = None,
) -> ProviderChains:
    """Build every chain in the order given by ``providers``."""
    http = http or HttpConfig()
    instances: dict[ProviderName, HttpProvider] = {}

    def chain(names: list[ProviderName]) -> tuple[Any, ...]:
        for name in names:
            if name not in instances:
                instances[name] = create_provider(name, client, providers, http)
        return tuple(instances[n] for n in names)

    chains = ProviderChains(
        crypto_price=chain(providers.crypto_price),
        fiat_rate=chain(providers.fiat_rate),
        crypto_history=chain(providers.crypto_history),
        fiat_currencies=chain(providers.fiat_currencies),
        crypto_currencies=chain(providers.crypto_currencies),
    )
    logger.debug(
        "Provider chains: price=%s fiat=%s",
        [p.name for p in chains.crypto_price],
        [p.name for p in chains.fiat_rate],
    )
    return chains
