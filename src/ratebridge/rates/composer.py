"""Conversions built from one or two single-domain lookups.

Crypto prices are always taken against USDT and fiat rates are taken
against USD, with USDT treated as one US dollar:

    crypto_to_fiat:  rate = price(from, USDT) * fiat_rate(USD, to)
    fiat_to_crypto:  rate = fiat_rate(from, USD) / price(to, USDT)
    crypto:          rate = price(from, USDT) / price(to, USDT)
    fiat:            rate = fiat_rate(from, to)
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Sequence
from typing import TypeVar

from ratebridge.core.exceptions import AllProvidersFailedError, ComposerError
from ratebridge.core.models import ConversionKind, ConversionResult, PricePoint, RatePoint
from ratebridge.providers.symbols import is_fiat, is_usd_like
from ratebridge.rates.service import RateService
from ratebridge.rates.validation import validate_amount, validate_code

logger = logging.getLogger(__name__)

T = TypeVar("T", PricePoint, RatePoint)

_USDT = "USDT"
_USD = "USD"


def infer_kind(from_code: str, to_code: str) -> ConversionKind:
    """Pick the conversion route from the asset class of each code."""
    from_fiat, to_fiat = is_fiat(from_code), is_fiat(to_code)
    if from_fiat and to_fiat:
        return ConversionKind.FIAT
    if from_fiat:
        return ConversionKind.FIAT_TO_CRYPTO
    if to_fiat:
        return ConversionKind.CRYPTO_TO_FIAT
    return ConversionKind.CRYPTO


class ConversionComposer:
    """Converts amounts between any two supported codes via ``RateService``."""

    def __init__(self, rates: RateService) -> None:
        self._rates = rates

    async def convert(
        self,
        from_code: str,
        to_code: str,
        amount: float,
        kind: ConversionKind | None = None,
    ) -> ConversionResult:
        from_code = validate_code(from_code, "from")
        to_code = validate_code(to_code, "to")
        amount = validate_amount(amount)
        kind = kind or infer_kind(from_code, to_code)

        handler = {
            ConversionKind.FIAT: self.convert_fiat,
            ConversionKind.CRYPTO: self.convert_crypto,
            ConversionKind.CRYPTO_TO_FIAT: self.crypto_to_fiat,
            ConversionKind.FIAT_TO_CRYPTO: self.fiat_to_crypto,
        }[kind]
        return await handler(from_code, to_code, amount)

    async def convert_fiat(self, from_code: str, to_code: str, amount: float) -> ConversionResult:
        from_code, to_code, amount = self._checked(from_code, to_code, amount)
        point = await self._rates.get_fiat_rate(from_code, to_code)
        return self._result(ConversionKind.FIAT, from_code, to_code, amount, point.rate, [point])

    async def convert_crypto(self, from_code: str, to_code: str, amount: float) -> ConversionResult:
        from_code, to_code, amount = self._checked(from_code, to_code, amount)
        legs: list[PricePoint] = []
        p_from = p_to = 1.0
        if from_code != _USDT:
            source = await self._leg("source", self._rates.get_price(from_code, _USDT), from_code, to_code)
            p_from = source.price
            legs.append(source)
        if to_code != _USDT:
            target = await self._leg("target", self._rates.get_price(to_code, _USDT), from_code, to_code)
            p_to = target.price
            legs.append(target)
        return self._result(ConversionKind.CRYPTO, from_code, to_code, amount, p_from / p_to, legs)

    async def crypto_to_fiat(self, from_code: str, to_code: str, amount: float) -> ConversionResult:
        from_code, to_code, amount = self._checked(from_code, to_code, amount)
        price = await self._leg("source", self._rates.get_price(from_code, _USDT), from_code, to_code)
        legs: list[PricePoint | RatePoint] = [price]
        rate = price.price
        if not is_usd_like(to_code):
            fx = await self._leg("target", self._rates.get_fiat_rate(_USD, to_code), from_code, to_code)
            rate *= fx.rate
            legs.append(fx)
        return self._result(ConversionKind.CRYPTO_TO_FIAT, from_code, to_code, amount, rate, legs)

    async def fiat_to_crypto(self, from_code: str, to_code: str, amount: float) -> ConversionResult:
        from_code, to_code, amount = self._checked(from_code, to_code, amount)
        legs: list[PricePoint | RatePoint] = []
        usd = 1.0
        if not is_usd_like(from_code):
            fx = await self._leg("source", self._rates.get_fiat_rate(from_code, _USD), from_code, to_code)
            usd = fx.rate
            legs.append(fx)
        price = await self._leg("target", self._rates.get_price(to_code, _USDT), from_code, to_code)
        legs.append(price)
        return self._result(ConversionKind.FIAT_TO_CRYPTO, from_code, to_code, amount, usd / price.price, legs)

    # --- Internals ---

    @staticmethod
    def _checked(from_code: str, to_code: str, amount: float) -> tuple[str, str, float]:
        return validate_code(from_code, "from"), validate_code(to_code, "to"), validate_amount(amount)

    @staticmethod
    async def _leg(leg: str, lookup: Awaitable[T], from_code: str, to_code: str) -> T:
        try:
            return await lookup
        except AllProvidersFailedError as e:
            logger.warning("Conversion %s -> %s failed on %s leg", from_code, to_code, leg)
            raise ComposerError(
                f"Unable to convert {from_code} to {to_code}: {e}",
                leg=leg,
                context={"from_code": from_code, "to_code": to_code},
            ) from e

    def _result(
        self,
        kind: ConversionKind,
        from_code: str,
        to_code: str,
        amount: float,
        rate: float,
        legs: Sequence[PricePoint | RatePoint],
    ) -> ConversionResult:
        sources: list[str] = []
        for point in legs:
            name = point.provider or "unknown"
            if name not in sources:
                sources.append(name)
        return ConversionResult(
            from_code=from_code,
            to_code=to_code,
            amount=amount,
            rate=rate,
            result=amount * rate,
            kind=kind,
            source="+".join(sources) or "identity",
            timestamp=min((p.timestamp for p in legs), default=self._rates.now()),
            stale=any(p.stale for p in legs),
        )
