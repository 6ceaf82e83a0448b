"""ExchangeRate-API v6 adapter (requires an API key).

  GET https://v6.exchangerate-api.com/v6/{key}/pair/USD/EUR
      -> {"result": "success", "conversion_rate": 0.92, "time_last_update_unix": 1705276801}
  GET https://v6.exchangerate-api.com/v6/{key}/codes
      -> {"result": "success", "supported_codes": [["AED", "UAE Dirham"], ...]}

Without a key the adapter fails on every call, so the chain skips it.
"""

from __future__ import annotations

from typing import Any

import httpx

from ratebridge.core.exceptions import ProviderError
from ratebridge.core.models import Clock, Currency, EpochMillis, ProviderName, RatePoint, now_ms
from ratebridge.providers.base import DEFAULT_TIMEOUT, HttpProvider, parser

_PLACEHOLDER_KEYS = {"", "your_key_here"}


class ExchangeRateApiProvider(HttpProvider):
    name = ProviderName.EXCHANGERATE_API.value
    default_base_url = "https://v6.exchangerate-api.com/v6"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        requests_per_minute: int | None = None,
        clock: Clock = now_ms,
    ) -> None:
        super().__init__(
            client,
            base_url=base_url,
            timeout=timeout,
            requests_per_minute=requests_per_minute,
            clock=clock,
        )
        self._api_key = api_key

    def _key(self) -> str:
        if self._api_key is None or self._api_key.strip() in _PLACEHOLDER_KEYS:
            raise ProviderError(self.name, "API key is missing")
        return self._api_key

    async def fetch(self, base: str, target: str) -> RatePoint:
        raw = await self._get_json(f"/{self._key()}/pair/{base.upper()}/{target.upper()}")
        return self.parse_rate(raw, received_at=self._now())

    @parser
    def parse_rate(self, raw: Any, received_at: EpochMillis) -> RatePoint:
        self._check_result(raw)
        rate = self._positive(raw.get("conversion_rate"), "conversion_rate")
        updated = raw.get("time_last_update_unix")
        timestamp = int(updated) * 1000 if isinstance(updated, (int, float)) else received_at
        return RatePoint(rate=rate, timestamp=timestamp, provider=self.name)

    async def fetch_currencies(self) -> list[Currency]:
        raw = await self._get_json(f"/{self._key()}/codes")
        return self.parse_codes(raw)

    @parser
    def parse_codes(self, raw: Any) -> list[Currency]:
        self._check_result(raw)
        codes = raw.get("supported_codes")
        if not isinstance(codes, list) or not codes:
            raise self._fail("response missing supported_codes")
        return [Currency(code=code, name=name) for code, name in codes]

    def _check_result(self, raw: Any) -> None:
        if not isinstance(raw, dict):
            raise self._fail("response is not an object")
        if raw.get("result") != "success":
            raise self._fail(str(raw.get("error-type") or "request was not successful"))
