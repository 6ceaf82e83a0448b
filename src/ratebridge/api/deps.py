"""Service wiring and request dependencies for the API."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request

from ratebridge.cache import CacheSweeper, LastKnownGoodCache, TTLCache
from ratebridge.core.config import RateBridgeConfig
from ratebridge.core.models import ProviderName
from ratebridge.providers.registry import build_chains, create_client, create_provider
from ratebridge.rates import ConversionComposer, MarketPulseService, RateService


@dataclass
class AppState:
    """Services shared by every request; lives on ``app.state``."""

    config: RateBridgeConfig
    rates: RateService
    composer: ConversionComposer
    pulse: MarketPulseService
    sweeper: CacheSweeper
    client: httpx.AsyncClient | None = None


def build_app_state(
    config: RateBridgeConfig,
    client: httpx.AsyncClient | None = None,
) -> AppState:
    """Wire cache, provider chains, and services from ``config``.

    When ``client`` is None a new shared client is created; the caller
    owns it either way and must close it on shutdown.
    """
    client = client or create_client(config.http)
    cache = TTLCache()
    last_known_good = LastKnownGoodCache(config.cache.stale_max_age)
    chains = build_chains(client, config.providers, config.http)
    rates = RateService(chains, cache, last_known_good, config.cache)

    # Reuse the chained CoinGecko instance so its request budget is shared.
    crypto_chains = (*chains.crypto_price, *chains.crypto_history, *chains.crypto_currencies)
    markets = next(
        (p for p in crypto_chains if p.name == ProviderName.COINGECKO.value),
        None,
    ) or create_provider(ProviderName.COINGECKO, client, config.providers, config.http)

    return AppState(
        config=config,
        rates=rates,
        composer=ConversionComposer(rates),
        pulse=MarketPulseService(rates, markets, cache=cache, ttl=config.cache.pulse_ttl),
        sweeper=CacheSweeper(
            [cache, rates.sources, last_known_good], interval=config.cache.sweep_interval
        ),
        client=client,
    )


def get_app_state(request: Request) -> AppState:
    """The AppState built during lifespan startup."""
    return request.app.state.app_state


def get_config(request: Request) -> RateBridgeConfig:
    return request.app.state.app_state.config


def get_rates(request: Request) -> RateService:
    return request.app.state.app_state.rates


def get_composer(request: Request) -> ConversionComposer:
    return request.app.state.app_state.composer


def get_pulse(request: Request) -> MarketPulseService:
    return request.app.state.app_state.pulse
