"""FastAPI route definitions for the ratebridge API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

import ratebridge
from ratebridge.api.deps import AppState, get_app_state, get_composer, get_pulse, get_rates
from ratebridge.api.schemas import (
    ConversionData,
    ConversionResponse,
    CryptoCurrenciesResponse,
    ErrorResponse,
    FiatCurrenciesResponse,
    HealthResponse,
    HistoryData,
    HistoryResponse,
    MarketPulseResponse,
    PriceData,
    PriceResponse,
)
from ratebridge.core.models import ConversionKind, ConversionResult
from ratebridge.rates import ConversionComposer, MarketPulseService, RateService
from ratebridge.rates.service import (
    CRYPTO_CURRENCIES_KEY,
    FIAT_CURRENCIES_KEY,
    history_key,
)

router = APIRouter(
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
        503: {"model": ErrorResponse, "description": "Every upstream provider failed"},
    }
)


# -- Health --


@router.get("/health", response_model=HealthResponse)
async def health_check(state: AppState = Depends(get_app_state)):
    """Service status and cache size."""
    return HealthResponse(
        status="ok",
        version=ratebridge.__version__,
        service=state.config.api.service_name,
        cache_entries=len(state.rates.cache),
        sweeper_running=state.sweeper.running,
    )


# -- Currencies --


@router.get("/currencies/fiat", response_model=FiatCurrenciesResponse)
async def list_fiat_currencies(rates: RateService = Depends(get_rates)):
    currencies = await rates.get_supported_currencies()
    return FiatCurrenciesResponse(data=currencies, source=rates.source_of(FIAT_CURRENCIES_KEY))


@router.get("/currencies/crypto", response_model=CryptoCurrenciesResponse)
async def list_crypto_currencies(rates: RateService = Depends(get_rates)):
    cryptos = await rates.get_supported_cryptos()
    return CryptoCurrenciesResponse(data=cryptos, source=rates.source_of(CRYPTO_CURRENCIES_KEY))


# -- Conversion --


def _conversion_response(result: ConversionResult) -> ConversionResponse:
    return ConversionResponse(
        data=ConversionData(
            from_=result.from_code,
            to=result.to_code,
            amount=result.amount,
            rate=result.rate,
            result=result.result,
            kind=result.kind.value,
            timestamp=result.timestamp,
            source=result.source,
            stale=result.stale,
        )
    )


@router.get("/convert", response_model=ConversionResponse)
async def convert(
    from_code: str | None = Query(None, alias="from"),
    to_code: str | None = Query(None, alias="to"),
    amount: str | None = Query(None),
    composer: ConversionComposer = Depends(get_composer),
):
    """Convert between any two codes; the route is picked from the codes."""
    return _conversion_response(await composer.convert(from_code, to_code, amount))


@router.get("/convert/fiat", response_model=ConversionResponse)
async def convert_fiat(
    from_code: str | None = Query(None, alias="from"),
    to_code: str | None = Query(None, alias="to"),
    amount: str | None = Query(None),
    composer: ConversionComposer = Depends(get_composer),
):
    result = await composer.convert(from_code, to_code, amount, kind=ConversionKind.FIAT)
    return _conversion_response(result)


@router.get("/convert/crypto", response_model=ConversionResponse)
async def convert_crypto(
    from_code: str | None = Query(None, alias="from"),
    to_code: str | None = Query(None, alias="to"),
    amount: str | None = Query(None),
    composer: ConversionComposer = Depends(get_composer),
):
    result = await composer.convert(from_code, to_code, amount, kind=ConversionKind.CRYPTO)
    return _conversion_response(result)


@router.get("/convert/crypto-to-fiat", response_model=ConversionResponse)
async def convert_crypto_to_fiat(
    from_code: str | None = Query(None, alias="from"),
    to_code: str | None = Query(None, alias="to"),
    amount: str | None = Query(None),
    composer: ConversionComposer = Depends(get_composer),
):
    result = await composer.convert(from_code, to_code, amount, kind=ConversionKind.CRYPTO_TO_FIAT)
    return _conversion_response(result)


@router.get("/convert/fiat-to-crypto", response_model=ConversionResponse)
async def convert_fiat_to_crypto(
    from_code: str | None = Query(None, alias="from"),
    to_code: str | None = Query(None, alias="to"),
    amount: str | None = Query(None),
    composer: ConversionComposer = Depends(get_composer),
):
    result = await composer.convert(from_code, to_code, amount, kind=ConversionKind.FIAT_TO_CRYPTO)
    return _conversion_response(result)


# -- Rates --


@router.get("/rates/price", response_model=PriceResponse)
async def get_price(
    symbol: str | None = Query(None),
    quote: str = Query("USDT"),
    rates: RateService = Depends(get_rates),
):
    """Spot price of one crypto asset."""
    point = await rates.get_price(symbol, quote)
    return PriceResponse(
        data=PriceData(
            symbol=symbol.strip().upper(),
            quote=quote.strip().upper(),
            price=point.price,
            timestamp=point.timestamp,
            provider=point.provider,
            stale=point.stale,
        )
    )


@router.get("/rates/history", response_model=HistoryResponse)
async def get_history(
    from_code: str | None = Query(None, alias="from"),
    to_code: str = Query("USDT", alias="to"),
    days: int = Query(7),
    rates: RateService = Depends(get_rates),
):
    """Historical closes, hourly up to 30 days and daily beyond."""
    prices = await rates.get_historical_data(from_code, to_code, days)
    symbol, quote = from_code.strip().upper(), to_code.strip().upper()
    return HistoryResponse(
        data=HistoryData(
            from_=symbol,
            to=quote,
            days=days,
            prices=prices,
            source=rates.source_of(history_key(symbol, quote, days)),
        )
    )


# -- Market pulse --


@router.get("/market-pulse/overview", response_model=MarketPulseResponse)
async def market_pulse_overview(
    pulse: MarketPulseService = Depends(get_pulse),
    rates: RateService = Depends(get_rates),
):
    """Headline pairs, volatility, and snapshot for the pulse cards."""
    overview, cached = await pulse.overview()
    return MarketPulseResponse(
        data=overview,
        cached=cached,
        stale=overview.stale,
        timestamp=rates.now(),
    )
