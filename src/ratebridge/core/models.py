"""Pydantic data models: the system's type contracts."""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

# --- Type Aliases ---

EpochMillis = int
Symbol = str
CurrencyCode = str
CacheKey = str
Clock = Callable[[], EpochMillis]


def now_ms() -> EpochMillis:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


# --- Enumerations ---


class ConversionKind(StrEnum):
    """Conversion routes, named after the HTTP API paths."""

    FIAT = "fiat"
    CRYPTO = "crypto"
    CRYPTO_TO_FIAT = "crypto_to_fiat"
    FIAT_TO_CRYPTO = "fiat_to_crypto"


class ProviderName(StrEnum):
    """Built-in provider adapters."""

    BINANCE = "binance"
    COINBASE = "coinbase"
    COINGECKO = "coingecko"
    KRAKEN = "kraken"
    COINDESK = "coindesk"
    FRANKFURTER = "frankfurter"
    FAWAZ_AHMED = "fawaz_ahmed"
    EXCHANGERATE_API = "exchangerate_api"


class Trend(StrEnum):
    UP = "up"
    DOWN = "down"


def _require_positive(v: float, field: str) -> float:
    if math.isnan(v) or math.isinf(v) or v <= 0:
        raise ValueError(f"{field} must be a finite positive number, got {v!r}")
    return v


# --- Quote Models ---


class PricePoint(BaseModel):
    """A crypto spot price as reported by one provider."""

    model_config = ConfigDict(frozen=True)

    price: float
    timestamp: EpochMillis
    provider: str
    stale: bool = False

    @field_validator("price")
    @classmethod
    def price_positive(cls, v: float) -> float:
        return _require_positive(v, "price")


class RatePoint(BaseModel):
    """A fiat exchange rate (units of target per one unit of base)."""

    model_config = ConfigDict(frozen=True)

    rate: float
    timestamp: EpochMillis
    provider: str | None = None
    stale: bool = False

    @field_validator("rate")
    @classmethod
    def rate_positive(cls, v: float) -> float:
        return _require_positive(v, "rate")


class HistoryPoint(BaseModel):
    """One sample of a historical price series."""

    model_config = ConfigDict(frozen=True)

    timestamp: EpochMillis
    price: float


class Currency(BaseModel):
    """A fiat currency code and its display name."""

    model_config = ConfigDict(frozen=True)

    code: CurrencyCode
    name: str


class CryptoAsset(BaseModel):
    """A tradable crypto asset."""

    model_config = ConfigDict(frozen=True)

    symbol: Symbol
    name: str
    trading_symbol: str | None = None


class ConversionResult(BaseModel):
    """Outcome of converting ``amount`` units of ``from_code`` to ``to_code``."""

    model_config = ConfigDict(frozen=True)

    from_code: str
    to_code: str
    amount: float
    rate: float
    result: float
    kind: ConversionKind
    source: str
    timestamp: EpochMillis
    stale: bool = False


# --- Market Pulse Models ---


class MarketSnapshot(BaseModel):
    """One row of CoinGecko's ``/coins/markets`` listing."""

    model_config = ConfigDict(frozen=True)

    id: str
    symbol: Symbol
    name: str
    current_price: float
    market_cap: float | None = None
    total_volume: float | None = None
    price_change_percentage_24h: float | None = None


class RateMovement(BaseModel):
    model_config = ConfigDict(frozen=True)

    pair: str
    last_price: float | None
    change: float | None
    trend: Trend | None
    synthetic: bool = False


class Volatility(BaseModel):
    model_config = ConfigDict(frozen=True)

    high: list[Symbol]
    stable: list[CurrencyCode]


class TopFiatPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    pair: str
    rate: float | None


class PulseSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    top_fiat_pair: TopFiatPair
    top_crypto: MarketSnapshot | None


class MarketPulse(BaseModel):
    """Aggregated overview shown on the market pulse cards."""

    model_config = ConfigDict(frozen=True)

    rate_movements: list[RateMovement]
    volatility: Volatility
    snapshot: PulseSnapshot
    unavailable: list[str] = []
    last_update: EpochMillis
    stale: bool = False
