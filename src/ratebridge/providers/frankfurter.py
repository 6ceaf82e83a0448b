"""Frankfurter (ECB reference rates) adapter.

  GET https://api.frankfurter.app/latest?from=USD&to=EUR
      -> {"amount": 1.0, "base": "USD", "date": "2024-01-15", "rates": {"EUR": 0.92}}
  GET https://api.frankfurter.app/currencies
      -> {"USD": "United States Dollar", ...}

Rates are published once per working day, so the timestamp is the
publication date at midnight UTC.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from ratebridge.core.models import Currency, EpochMillis, ProviderName, RatePoint
from ratebridge.providers.base import HttpProvider, parser


class FrankfurterProvider(HttpProvider):
    """ECB fiat exchange rates via Frankfurter."""

    name = ProviderName.FRANKFURTER.value
    default_base_url = "https://api.frankfurter.app"

    async def fetch(self, base: str, target: str) -> RatePoint:
        raw = await self._get_json(
            "/latest", params={"from": base.upper(), "to": target.upper()}
        )
        return self.parse_rate(raw, target, received_at=self._now())

    @parser
    def parse_rate(self, raw: Any, target: str, received_at: EpochMillis) -> RatePoint:
        rates = raw.get("rates") if isinstance(raw, dict) else None
        if not isinstance(rates, dict):
            raise self._fail("response missing rates")
        rate = self._positive(rates.get(target.upper()), f"rates.{target.upper()}")
        return RatePoint(
            rate=rate,
            timestamp=self._published_at(raw) or received_at,
            provider=self.name,
        )

    @staticmethod
    def _published_at(raw: dict) -> EpochMillis | None:
        day = raw.get("date")
        if not isinstance(day, str):
            return None
        try:
            published = datetime.strptime(day, "%Y-%m-%d").replace(tzinfo=UTC)
        except ValueError:
            return None
        return int(published.timestamp() * 1000)

    async def fetch_currencies(self) -> list[Currency]:
        raw = await self._get_json("/currencies")
        return self.parse_currencies(raw)

    @parser
    def parse_currencies(self, raw: Any) -> list[Currency]:
        if not isinstance(raw, dict) or not raw:
            raise self._fail("currencies response is empty")
        return [Currency(code=code, name=name) for code, name in raw.items()]
