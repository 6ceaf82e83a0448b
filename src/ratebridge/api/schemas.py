"""API-specific response envelopes (Pydantic v2).

Every successful body carries ``success: true``; errors are rendered by
the exception handlers in ``app.py`` as ``{success: false, message}``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ratebridge.core.models import CryptoAsset, Currency, HistoryPoint, MarketPulse

# -- Error --


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    success: bool = False
    message: str


# -- Health --


class RootResponse(BaseModel):
    status: str
    service: str


class HealthResponse(BaseModel):
    status: str
    version: str
    service: str
    cache_entries: int
    sweeper_running: bool


# -- Currencies --


class FiatCurrenciesResponse(BaseModel):
    success: bool = True
    data: list[Currency]
    source: str | None = None


class CryptoCurrenciesResponse(BaseModel):
    success: bool = True
    data: list[CryptoAsset]
    source: str | None = None


# -- Conversion --


class ConversionData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    amount: float
    rate: float
    result: float
    kind: str
    timestamp: int
    source: str
    stale: bool = False


class ConversionResponse(BaseModel):
    success: bool = True
    data: ConversionData


# -- Rates --


class PriceData(BaseModel):
    symbol: str
    quote: str
    price: float
    timestamp: int
    provider: str
    stale: bool = False


class PriceResponse(BaseModel):
    success: bool = True
    data: PriceData


class HistoryData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    days: int
    prices: list[HistoryPoint]
    source: str | None = None


class HistoryResponse(BaseModel):
    success: bool = True
    data: HistoryData


# -- Market pulse --


class MarketPulseResponse(BaseModel):
    success: bool = True
    data: MarketPulse
    cached: bool
    stale: bool = False
    timestamp: int
