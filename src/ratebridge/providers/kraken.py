"""Kraken spot price adapter.

Uses the public Kraken API (no authentication required):
  GET https://api.kraken.com/0/public/Ticker?pair=XBTUSD

Kraken echoes the pair back under its own canonical key (``XXBTZUSD``
for ``XBTUSD``), so the first result entry is taken.
"""

from __future__ import annotations

from typing import Any

from ratebridge.core.models import EpochMillis, PricePoint, ProviderName
from ratebridge.providers.base import HttpProvider, parser
from ratebridge.providers.symbols import KRAKEN_ASSETS, to_usd_quote


class KrakenProvider(HttpProvider):
    """Fetch last-trade prices from the Kraken public API."""

    name = ProviderName.KRAKEN.value
    default_base_url = "https://api.kraken.com"

    @staticmethod
    def pair(symbol: str, quote: str) -> str:
        asset = KRAKEN_ASSETS.get(symbol.upper(), symbol.upper())
        return f"{asset}{to_usd_quote(quote)}"

    async def fetch(self, symbol: str, quote: str = "USD") -> PricePoint:
        raw = await self._get_json("/0/public/Ticker", params={"pair": self.pair(symbol, quote)})
        return self.parse_price(raw, received_at=self._now())

    @parser
    def parse_price(self, raw: Any, received_at: EpochMillis) -> PricePoint:
        if not isinstance(raw, dict):
            raise self._fail("ticker response is not an object")
        errors = raw.get("error") or []
        if errors:
            raise self._fail(", ".join(str(e) for e in errors))

        result = raw.get("result")
        if not isinstance(result, dict) or not result:
            raise self._fail("response missing result")

        ticker = next(iter(result.values()))
        last_trade = ticker.get("c") if isinstance(ticker, dict) else None
        if not last_trade:
            raise self._fail("response missing last trade price")

        price = self._positive(last_trade[0], "c[0]")
        return PricePoint(price=price, timestamp=received_at, provider=self.name)
