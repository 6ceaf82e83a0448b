"""Coinbase spot price adapter.

Uses the public Coinbase API (no authentication required):
  GET https://api.coinbase.com/v2/prices/{BASE}-{QUOTE}/spot
"""

from __future__ import annotations

from typing import Any

from ratebridge.core.models import EpochMillis, PricePoint, ProviderName
from ratebridge.providers.base import HttpProvider, parser
from ratebridge.providers.symbols import to_usd_quote


class CoinbaseProvider(HttpProvider):
    """Fetch spot prices from the Coinbase public API."""

    name = ProviderName.COINBASE.value
    default_base_url = "https://api.coinbase.com"

    async def fetch(self, symbol: str, quote: str = "USD") -> PricePoint:
        product = f"{symbol.upper()}-{to_usd_quote(quote)}"
        raw = await self._get_json(f"/v2/prices/{product}/spot")
        return self.parse_price(raw, received_at=self._now())

    @parser
    def parse_price(self, raw: Any, received_at: EpochMillis) -> PricePoint:
        data = raw.get("data") if isinstance(raw, dict) else None
        if not isinstance(data, dict):
            raise self._fail("response missing data")
        price = self._positive(data.get("amount"), "data.amount")
        return PricePoint(price=price, timestamp=received_at, provider=self.name)
