"""Market pulse overview: a few headline pairs, volatility, and a snapshot.

Sources are fetched concurrently and fail independently. A card whose
source failed is rendered empty and named in ``unavailable``; the
overview as a whole only fails when every source did.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from ratebridge.cache.ttl import TTLCache
from ratebridge.core.exceptions import AllProvidersFailedError, RateBridgeError
from ratebridge.core.models import (
    CacheKey,
    MarketPulse,
    MarketSnapshot,
    PulseSnapshot,
    RateMovement,
    RatePoint,
    TopFiatPair,
    Trend,
    Volatility,
)
from ratebridge.rates.service import RateService
from ratebridge.rates.synthetic import SyntheticEstimator

logger = logging.getLogger(__name__)

PULSE_KEY: CacheKey = "market:pulse:overview"
PULSE_COINS = ("bitcoin", "ethereum", "solana")
STABLE_FIAT = ["USD", "EUR", "GBP"]
HIGH_VOLATILITY_PCT = 3.0
MAX_HIGH_VOLATILITY = 2


class MarketsProvider(Protocol):
    name: str

    async def fetch_markets(
        self, ids: list[str] | None = None, vs_currency: str = "usd", per_page: int = 100
    ) -> list[MarketSnapshot]: ...


class MarketPulseService:
    """Builds and caches the market pulse overview.

    Parameters
    ----------
    rates : RateService
        Fiat rates come through the normal fallback chain and its cache.
    markets : MarketsProvider
        Source of crypto market rows (CoinGecko ``/coins/markets``).
    estimator : SyntheticEstimator | None
        Source of the simulated fiat change figures.
    ttl : int
        Seconds an overview stays fresh. Default: 30.
    """

    def __init__(
        self,
        rates: RateService,
        markets: MarketsProvider,
        estimator: SyntheticEstimator | None = None,
        cache: TTLCache | None = None,
        ttl: int = 30,
    ) -> None:
        self._rates = rates
        self._markets = markets
        self._estimator = estimator or SyntheticEstimator()
        self._cache = cache if cache is not None else rates.cache
        self._ttl = ttl
        self._last: MarketPulse | None = None

    async def overview(self) -> tuple[MarketPulse, bool]:
        """Return ``(overview, cached)``.

        Raises:
            AllProvidersFailedError: every source failed and no earlier
                overview exists to serve stale.
        """
        cached = self._cache.get(PULSE_KEY)
        if cached is not None:
            return cached, True

        markets, usd_inr, eur_gbp, usd_eur = await asyncio.gather(
            self._markets.fetch_markets(list(PULSE_COINS)),
            self._rates.get_fiat_rate("USD", "INR"),
            self._rates.get_fiat_rate("EUR", "GBP"),
            self._rates.get_fiat_rate("USD", "EUR"),
            return_exceptions=True,
        )
        results = {
            "crypto_markets": markets,
            "usd_inr": usd_inr,
            "eur_gbp": eur_gbp,
            "usd_eur": usd_eur,
        }
        unavailable: list[str] = []
        for card, result in results.items():
            if isinstance(result, RateBridgeError):
                logger.warning("Market pulse source %s unavailable: %s", card, result)
                unavailable.append(card)
            elif isinstance(result, BaseException):
                raise result

        if len(unavailable) == len(results):
            if self._last is not None:
                logger.warning("All market pulse sources failed; serving previous overview")
                return self._last.model_copy(update={"stale": True}), True
            raise AllProvidersFailedError(
                "Unable to fetch market pulse - all sources failed",
                errors=[],
                context={"key": PULSE_KEY, "unavailable": unavailable},
            )

        pulse = self._build(
            markets=_ok(markets) or [],
            usd_inr=_ok(usd_inr),
            eur_gbp=_ok(eur_gbp),
            usd_eur=_ok(usd_eur),
            unavailable=unavailable,
        )
        self._cache.set(PULSE_KEY, pulse, self._ttl)
        self._last = pulse
        return pulse, False

    def _build(
        self,
        markets: list[MarketSnapshot],
        usd_inr: RatePoint | None,
        eur_gbp: RatePoint | None,
        usd_eur: RatePoint | None,
        unavailable: list[str],
    ) -> MarketPulse:
        btc = next((m for m in markets if m.id == "bitcoin"), None)
        return MarketPulse(
            rate_movements=[
                self._fiat_movement("USD → INR", usd_inr, amplitude=0.5),
                self._crypto_movement("BTC → USD", btc),
                self._fiat_movement("EUR → GBP", eur_gbp, amplitude=0.1),
            ],
            volatility=Volatility(
                high=[
                    m.symbol
                    for m in markets
                    if m.price_change_percentage_24h is not None
                    and abs(m.price_change_percentage_24h) > HIGH_VOLATILITY_PCT
                ][:MAX_HIGH_VOLATILITY],
                stable=list(STABLE_FIAT),
            ),
            snapshot=PulseSnapshot(
                top_fiat_pair=TopFiatPair(
                    pair="USD → EUR", rate=usd_eur.rate if usd_eur else None
                ),
                top_crypto=btc,
            ),
            unavailable=unavailable,
            last_update=self._rates.now(),
        )

    def _fiat_movement(self, pair: str, point: RatePoint | None, amplitude: float) -> RateMovement:
        if point is None:
            return RateMovement(pair=pair, last_price=None, change=None, trend=None)
        change = self._estimator.change(amplitude)
        return RateMovement(
            pair=pair,
            last_price=point.rate,
            change=change,
            trend=self._estimator.trend(change),
            synthetic=True,
        )

    @staticmethod
    def _crypto_movement(pair: str, coin: MarketSnapshot | None) -> RateMovement:
        if coin is None:
            return RateMovement(pair=pair, last_price=None, change=None, trend=None)
        change = coin.price_change_percentage_24h
        trend = None if change is None else (Trend.UP if change > 0 else Trend.DOWN)
        return RateMovement(
            pair=pair,
            last_price=coin.current_price,
            change=round(change, 2) if change is not None else None,
            trend=trend,
        )


def _ok(result: Any) -> Any:
    return None if isinstance(result, BaseException) else result
