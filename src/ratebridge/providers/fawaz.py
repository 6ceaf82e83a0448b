"""Fawaz Ahmed currency-api adapter (jsDelivr CDN).

  GET https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api@latest/v1/currencies/usd.json
      -> {"date": "2024-01-15", "usd": {"eur": 0.92, ...}}

No API key and no rate limit; updated daily. Codes are lowercase.
"""

from __future__ import annotations

from typing import Any

from ratebridge.core.models import EpochMillis, ProviderName, RatePoint
from ratebridge.providers.base import HttpProvider, parser


class FawazAhmedProvider(HttpProvider):
    name = ProviderName.FAWAZ_AHMED.value
    default_base_url = "https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api@latest/v1"

    async def fetch(self, base: str, target: str) -> RatePoint:
        raw = await self._get_json(f"/currencies/{base.lower()}.json")
        return self.parse_rate(raw, base, target, received_at=self._now())

    @parser
    def parse_rate(
        self, raw: Any, base: str, target: str, received_at: EpochMillis
    ) -> RatePoint:
        rates = raw.get(base.lower()) if isinstance(raw, dict) else None
        if not isinstance(rates, dict):
            raise self._fail(f"response missing {base.lower()} table")
        rate = self._positive(rates.get(target.lower()), f"{base.lower()}.{target.lower()}")
        return RatePoint(rate=rate, timestamp=received_at, provider=self.name)
