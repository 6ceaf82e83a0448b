"""Integration test fixtures: the real app wiring, upstream HTTP mocked."""

from __future__ import annotations

import pytest
import respx
from fastapi.testclient import TestClient

from ratebridge.api.app import create_app
from ratebridge.core.config import ProvidersConfig, RateBridgeConfig


@pytest.fixture
def upstream():
    """Router for every outbound request; unmatched requests fail the test."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def api_config() -> RateBridgeConfig:
    return RateBridgeConfig()


@pytest.fixture
def client(api_config, upstream):
    with TestClient(create_app(config=api_config)) as c:
        yield c


@pytest.fixture
def gecko_only_config() -> RateBridgeConfig:
    """Prices from CoinGecko alone, with a one-request budget."""
    return RateBridgeConfig(
        providers=ProvidersConfig(
            crypto_price=["coingecko"],
            requests_per_minute={"coingecko": 1},
        )
    )

