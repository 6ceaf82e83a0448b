"""Provider protocols and the shared HTTP adapter base.

Architecture
------------
Each external rate source is one adapter class:

    HTTP JSON → parse_*() → PricePoint / RatePoint / ... → fallback chain

- The ``*Provider`` protocols are the consumer-facing interfaces. The
  fallback chain depends only on these, never on a concrete source.

- ``HttpProvider`` owns the request mechanics every adapter shares:
  timeout, status checks, JSON decoding, an optional request budget, and
  the mapping of transport problems onto typed ``ProviderError``\\s.

- ``parse_*`` methods are pure: raw JSON plus a ``received_at`` timestamp
  in, a model out. Feeding the same input twice gives identical output.
  They are wrapped in ``@parser``, so a body of the wrong shape fails as
  ``ProviderResponseError`` like any other bad response.
"""

from __future__ import annotations

import functools
import logging
import math
from collections.abc import Callable
from typing import Any, Protocol, TypeVar, runtime_checkable

import httpx
import pydantic
from aiolimiter import AsyncLimiter

from ratebridge.core.exceptions import (
    ProviderError,
    ProviderNetworkError,
    ProviderRateLimitedError,
    ProviderResponseError,
)
from ratebridge.core.models import (
    Clock,
    CryptoAsset,
    Currency,
    EpochMillis,
    HistoryPoint,
    PricePoint,
    RatePoint,
    now_ms,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0

T = TypeVar("T")

# What a JSON body of the wrong shape raises while being picked apart.
_SHAPE_ERRORS = (
    KeyError,
    IndexError,
    TypeError,
    ValueError,
    AttributeError,
    OverflowError,
    pydantic.ValidationError,
)


def parser(fn: Callable[..., T]) -> Callable[..., T]:
    """Decorate a ``parse_*`` method so malformed input fails as a provider error.

    Usage::

        @parser
        def parse_price(self, raw, received_at): ...

    Shape errors (a string where an object was expected, a missing index,
    a field the model rejects) become ``ProviderResponseError`` so the
    fallback chain moves on to the next provider.
    """

    @functools.wraps(fn)
    def wrapper(self: HttpProvider, *args: Any, **kwargs: Any) -> T:
        try:
            return fn(self, *args, **kwargs)
        except ProviderError:
            raise
        except _SHAPE_ERRORS as e:
            raise self._fail(
                f"malformed response ({type(e).__name__}): {e}",
                parser=fn.__name__,
            ) from e

    return wrapper


@runtime_checkable
class PriceProvider(Protocol):
    """Crypto spot price source: ``fetch("BTC", "USDT")``."""

    name: str

    async def fetch(self, symbol: str, quote: str) -> PricePoint: ...


@runtime_checkable
class RateProvider(Protocol):
    """Fiat exchange rate source: ``fetch("USD", "EUR")``."""

    name: str

    async def fetch(self, base: str, target: str) -> RatePoint: ...


@runtime_checkable
class HistoryProvider(Protocol):
    """Historical crypto price series, oldest first."""

    name: str

    async def fetch_history(self, symbol: str, quote: str, days: int) -> list[HistoryPoint]: ...


@runtime_checkable
class CurrencyListProvider(Protocol):
    """Supported fiat currency codes."""

    name: str

    async def fetch_currencies(self) -> list[Currency]: ...


@runtime_checkable
class CryptoListProvider(Protocol):
    """Supported crypto assets."""

    name: str

    async def fetch_cryptos(self) -> list[CryptoAsset]: ...


class HttpProvider:
    """Shared request plumbing for JSON-over-HTTPS rate sources.

    Parameters
    ----------
    client : httpx.AsyncClient | None
        Shared client. When None, the adapter creates and owns one.
    base_url : str | None
        Override the adapter's default base URL (useful for testing).
    timeout : float
        Per-request timeout in seconds. Default: 5.0.
    requests_per_minute : int | None
        Optional local request budget. When spent, calls fail fast with
        ``ProviderRateLimitedError`` instead of waiting.
    clock : Callable[[], int]
        Epoch-millisecond clock used for ``received_at`` timestamps.
    """

    name: str = "http"
    default_base_url: str = ""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        requests_per_minute: int | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()
        self._base_url = (base_url or self.default_base_url).rstrip("/")
        self._timeout = httpx.Timeout(timeout)
        self._timeout_seconds = timeout
        self._requests_per_minute = requests_per_minute
        self._limiter = (
            AsyncLimiter(max_rate=requests_per_minute, time_period=60.0)
            if requests_per_minute
            else None
        )
        self._clock = clock

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpProvider:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_url={self._base_url!r})"

    # --- Request plumbing ---

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET ``base_url + path`` and return the decoded JSON body.

        Raises:
            ProviderRateLimitedError: local request budget exhausted.
            ProviderNetworkError: timeout, transport error, or non-2xx status.
            ProviderResponseError: body is not valid JSON.
        """
        await self._take_budget()
        url = f"{self._base_url}{path}"

        try:
            response = await self._client.get(url, params=params, timeout=self._timeout)
        except httpx.TimeoutException as e:
            raise ProviderNetworkError(
                self.name,
                f"timed out after {self._timeout_seconds:g}s",
                context={"url": url},
            ) from e
        except httpx.RequestError as e:
            raise ProviderNetworkError(
                self.name,
                f"request failed ({type(e).__name__}): {e}",
                context={"url": url},
            ) from e

        if not response.is_success:
            raise ProviderNetworkError(
                self.name,
                f"HTTP {response.status_code}",
                context={
                    "url": url,
                    "status_code": response.status_code,
                    "response_body": response.text[:200],
                },
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError(
                self.name,
                "response body is not valid JSON",
                context={"url": url},
            ) from e

    async def _take_budget(self) -> None:
        if self._limiter is None:
            return
        if not self._limiter.has_capacity():
            raise ProviderRateLimitedError(
                self.name,
                "local request budget exhausted",
                context={"requests_per_minute": self._requests_per_minute},
            )
        await self._limiter.acquire()

    # --- Parsing helpers ---

    def _fail(self, message: str, **context: Any) -> ProviderResponseError:
        return ProviderResponseError(self.name, message, context=context)

    def _positive(self, raw: Any, field: str) -> float:
        """Coerce ``raw`` to a finite positive float or raise.

        A zero, negative, NaN, or non-numeric price is never a valid quote.
        """
        if raw is None or isinstance(raw, bool):
            raise self._fail(f"missing {field}")
        try:
            value = float(raw)
        except (TypeError, ValueError) as e:
            raise self._fail(f"{field} is not numeric: {raw!r}") from e
        if math.isnan(value) or math.isinf(value) or value <= 0:
            raise self._fail(f"invalid {field}: {raw!r}")
        return value

    def _now(self) -> EpochMillis:
        return self._clock()


def describe(error: ProviderError) -> str:
    """One-line description used in chain logs."""
    return f"{type(error).__name__}: {error.reason}"
