"""Binance public REST adapter.

Endpoints (no authentication):
  GET /api/v3/ticker/price?symbol=BTCUSDT
  GET /api/v3/klines?symbol=BTCUSDT&interval=1h&limit=168
  GET /api/v3/exchangeInfo

Binance answers HTTP 451 from restricted regions, which is one of the
main reasons the price chain exists at all.
"""

from __future__ import annotations

from typing import Any

from ratebridge.core.exceptions import UnsupportedSymbolError
from ratebridge.core.models import (
    CryptoAsset,
    EpochMillis,
    HistoryPoint,
    PricePoint,
    ProviderName,
)
from ratebridge.providers.base import HttpProvider, parser
from ratebridge.providers.symbols import to_usdt_quote

_MAX_KLINES = 1000


def kline_window(days: int) -> tuple[str, int]:
    """Pick (interval, limit): hourly up to 30 days, daily beyond."""
    if days > 30:
        return "1d", min(days, _MAX_KLINES)
    return "1h", min(days * 24, _MAX_KLINES)


class BinanceProvider(HttpProvider):
    """Spot prices, klines, and the USDT trading universe from Binance."""

    name = ProviderName.BINANCE.value
    default_base_url = "https://api.binance.com"

    @staticmethod
    def pair(symbol: str, quote: str) -> str:
        return f"{symbol.upper()}{to_usdt_quote(quote)}"

    async def fetch(self, symbol: str, quote: str = "USDT") -> PricePoint:
        pair = self.pair(symbol, quote)
        if pair == "USDTUSDT":
            raise UnsupportedSymbolError(
                self.name, "USDT is not quoted against itself",
                context={"symbol": symbol, "quote": quote},
            )
        raw = await self._get_json("/api/v3/ticker/price", params={"symbol": pair})
        return self.parse_price(raw, received_at=self._now())

    @parser
    def parse_price(self, raw: Any, received_at: EpochMillis) -> PricePoint:
        if not isinstance(raw, dict):
            raise self._fail("ticker response is not an object")
        price = self._positive(raw.get("price"), "price")
        return PricePoint(price=price, timestamp=received_at, provider=self.name)

    async def fetch_history(
        self, symbol: str, quote: str = "USDT", days: int = 7
    ) -> list[HistoryPoint]:
        interval, limit = kline_window(days)
        raw = await self._get_json(
            "/api/v3/klines",
            params={"symbol": self.pair(symbol, quote), "interval": interval, "limit": limit},
        )
        return self.parse_klines(raw)

    @parser
    def parse_klines(self, raw: Any) -> list[HistoryPoint]:
        """Klines are ``[open_time, open, high, low, close, volume, ...]``."""
        if not isinstance(raw, list) or not raw:
            raise self._fail("klines response is empty")
        points: list[HistoryPoint] = []
        for kline in raw:
            if not isinstance(kline, list) or len(kline) < 5:
                raise self._fail("malformed kline row", row=kline)
            points.append(
                HistoryPoint(timestamp=int(kline[0]), price=self._positive(kline[4], "close"))
            )
        return sorted(points, key=lambda p: p.timestamp)

    async def fetch_cryptos(self) -> list[CryptoAsset]:
        raw = await self._get_json("/api/v3/exchangeInfo")
        return self.parse_exchange_info(raw)

    @parser
    def parse_exchange_info(self, raw: Any) -> list[CryptoAsset]:
        """Unique base assets of every trading USDT pair, in listing order."""
        symbols = raw.get("symbols") if isinstance(raw, dict) else None
        if not isinstance(symbols, list):
            raise self._fail("exchangeInfo response missing symbols")

        seen: dict[str, CryptoAsset] = {}
        for entry in symbols:
            if entry.get("quoteAsset") != "USDT" or entry.get("status") != "TRADING":
                continue
            base = entry.get("baseAsset")
            if not base or base in seen:
                continue
            # Binance has no display names
            seen[base] = CryptoAsset(symbol=base, name=base, trading_symbol=entry.get("symbol"))

        if not seen:
            raise self._fail("exchangeInfo lists no trading USDT pairs")
        return list(seen.values())
