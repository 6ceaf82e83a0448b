"""CoinGecko public API adapter.

Endpoints (free tier, roughly 10-30 calls per minute):
  GET /api/v3/simple/price?ids=bitcoin&vs_currencies=usd&include_last_updated_at=true
  GET /api/v3/coins/{id}/market_chart?vs_currency=usd&days=7
  GET /api/v3/coins/markets?vs_currency=usd&order=market_cap_desc&per_page=100

CoinGecko addresses coins by id, not ticker. Symbols missing from
``COINGECKO_IDS`` fail before any request is made.
"""

from __future__ import annotations

from typing import Any

from ratebridge.core.exceptions import UnsupportedSymbolError
from ratebridge.core.models import (
    CryptoAsset,
    EpochMillis,
    HistoryPoint,
    MarketSnapshot,
    PricePoint,
    ProviderName,
)
from ratebridge.providers.base import HttpProvider, parser
from ratebridge.providers.symbols import COINGECKO_IDS, to_usd_quote


class CoinGeckoProvider(HttpProvider):
    """Prices, history, and market listings from CoinGecko."""

    name = ProviderName.COINGECKO.value
    default_base_url = "https://api.coingecko.com/api/v3"

    def coin_id(self, symbol: str) -> str:
        coin_id = COINGECKO_IDS.get(symbol.upper())
        if coin_id is None:
            raise UnsupportedSymbolError(
                self.name, f"no mapping for {symbol.upper()}",
                context={"symbol": symbol},
            )
        return coin_id

    async def fetch(self, symbol: str, quote: str = "USD") -> PricePoint:
        coin_id = self.coin_id(symbol)
        vs = to_usd_quote(quote).lower()
        raw = await self._get_json(
            "/simple/price",
            params={"ids": coin_id, "vs_currencies": vs, "include_last_updated_at": "true"},
        )
        return self.parse_price(raw, coin_id, vs, received_at=self._now())

    @parser
    def parse_price(
        self, raw: Any, coin_id: str, vs_currency: str, received_at: EpochMillis
    ) -> PricePoint:
        entry = raw.get(coin_id) if isinstance(raw, dict) else None
        if not isinstance(entry, dict):
            raise self._fail("coin not found", coin_id=coin_id)
        price = self._positive(entry.get(vs_currency), f"{coin_id}.{vs_currency}")
        updated = entry.get("last_updated_at")
        timestamp = int(updated) * 1000 if isinstance(updated, (int, float)) else received_at
        return PricePoint(price=price, timestamp=timestamp, provider=self.name)

    async def fetch_history(
        self, symbol: str, quote: str = "USD", days: int = 7
    ) -> list[HistoryPoint]:
        coin_id = self.coin_id(symbol)
        raw = await self._get_json(
            f"/coins/{coin_id}/market_chart",
            params={"vs_currency": to_usd_quote(quote).lower(), "days": days},
        )
        return self.parse_market_chart(raw)

    @parser
    def parse_market_chart(self, raw: Any) -> list[HistoryPoint]:
        prices = raw.get("prices") if isinstance(raw, dict) else None
        if not isinstance(prices, list) or not prices:
            raise self._fail("market_chart response has no prices")
        points: list[HistoryPoint] = []
        for row in prices:
            if not isinstance(row, list) or len(row) < 2:
                raise self._fail("malformed market_chart row", row=row)
            points.append(HistoryPoint(timestamp=int(row[0]), price=self._positive(row[1], "price")))
        return points

    async def fetch_markets(
        self,
        ids: list[str] | None = None,
        vs_currency: str = "usd",
        per_page: int = 100,
    ) -> list[MarketSnapshot]:
        params: dict[str, Any] = {
            "vs_currency": vs_currency,
            "order": "market_cap_desc",
            "per_page": per_page,
            "page": 1,
            "sparkline": "false",
        }
        if ids:
            params["ids"] = ",".join(ids)
        raw = await self._get_json("/coins/markets", params=params)
        return self.parse_markets(raw)

    @parser
    def parse_markets(self, raw: Any) -> list[MarketSnapshot]:
        if not isinstance(raw, list):
            raise self._fail("markets response is not a list")
        rows: list[MarketSnapshot] = []
        for coin in raw:
            rows.append(
                MarketSnapshot(
                    id=coin["id"],
                    symbol=str(coin["symbol"]).upper(),
                    name=coin["name"],
                    current_price=self._positive(coin.get("current_price"), "current_price"),
                    market_cap=coin.get("market_cap"),
                    total_volume=coin.get("total_volume"),
                    price_change_percentage_24h=coin.get("price_change_percentage_24h"),
                )
            )
        return rows

    async def fetch_cryptos(self) -> list[CryptoAsset]:
        """Top 100 coins by market cap; the full list is too large for a picker."""
        markets = await self.fetch_markets()
        if not markets:
            raise self._fail("markets response is empty")
        return [CryptoAsset(symbol=m.symbol, name=m.name, trading_symbol=m.id) for m in markets]
