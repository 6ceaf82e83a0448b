"""CoinDesk Bitcoin Price Index adapter (BTC only, last resort).

  GET https://api.coindesk.com/v1/bpi/currentprice.json
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ratebridge.core.exceptions import UnsupportedSymbolError
from ratebridge.core.models import EpochMillis, PricePoint, ProviderName
from ratebridge.providers.base import HttpProvider, parser
from ratebridge.providers.symbols import to_usd_quote


class CoinDeskProvider(HttpProvider):
    name = ProviderName.COINDESK.value
    default_base_url = "https://api.coindesk.com"

    async def fetch(self, symbol: str, quote: str = "USD") -> PricePoint:
        if symbol.upper() != "BTC":
            raise UnsupportedSymbolError(
                self.name, "only BTC is supported",
                context={"symbol": symbol, "quote": quote},
            )
        raw = await self._get_json("/v1/bpi/currentprice.json")
        return self.parse_price(raw, quote, received_at=self._now())

    @parser
    def parse_price(self, raw: Any, quote: str, received_at: EpochMillis) -> PricePoint:
        currency = to_usd_quote(quote)
        bpi = raw.get("bpi") if isinstance(raw, dict) else None
        if not isinstance(bpi, dict):
            raise self._fail("response missing bpi")
        entry = bpi.get(currency)
        if not isinstance(entry, dict):
            raise self._fail(f"{currency} not available")
        price = self._positive(entry.get("rate_float"), f"bpi.{currency}.rate_float")
        return PricePoint(
            price=price,
            timestamp=self._updated_at(raw) or received_at,
            provider=self.name,
        )

    @staticmethod
    def _updated_at(raw: dict) -> EpochMillis | None:
        iso = (raw.get("time") or {}).get("updatedISO")
        if not iso:
            return None
        try:
            return int(datetime.fromisoformat(iso).timestamp() * 1000)
        except ValueError:
            return None
