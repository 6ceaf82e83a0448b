"""Custom exception hierarchy for ratebridge."""

from typing import Any


class RateBridgeError(Exception):
    """Base exception for all ratebridge errors.

    Every subclass takes an optional `context` dict. Handlers and log
    lines read structured details from it instead of parsing messages.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(RateBridgeError):
    """Invalid or missing configuration.

    Raised by load_config(); the CLI and the API factory stop on it.

    Context keys:
        field: str, the config field that failed validation
        value: Any, the rejected value
    """


class ValidationError(RateBridgeError):
    """Malformed caller input (missing code, non-positive amount, bad range).

    Raised before any provider is contacted. Maps to HTTP 400.

    Context keys:
        field: str, the offending parameter
        value: Any, the rejected value
    """


class ProviderError(RateBridgeError):
    """A single provider adapter failed to produce a value.

    Policy: caught by the fallback chain, logged, and the next provider is
    tried. Never surfaced directly to API callers.

    Context keys:
        provider: str, adapter name
        url: str, the URL being fetched, when a request was made
    """

    def __init__(
        self,
        provider: str,
        message: str,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(f"{provider}: {message}", {"provider": provider, **(context or {})})
        self.provider = provider
        self.reason = message


class ProviderNetworkError(ProviderError):
    """Transport failure, timeout, or non-2xx HTTP status.

    Context keys:
        status_code: int | None, HTTP status when a response was received
    """

    @property
    def status_code(self) -> int | None:
        return self.context.get("status_code")


class ProviderResponseError(ProviderError):
    """Response body was unparseable, missing a field, or held a bad price."""


class UnsupportedSymbolError(ProviderError):
    """The provider has no mapping for the requested symbol or quote.

    Raised before any network call so the chain can move on immediately.

    Context keys:
        symbol: str
        quote: str | None
    """


class ProviderRateLimitedError(ProviderError):
    """The local request budget for this provider is spent.

    Context keys:
        requests_per_minute: int
    """


class AllProvidersFailedError(RateBridgeError):
    """Every provider in a chain failed for one request.

    Policy: surfaced to callers; the API maps it to HTTP 503.

    Context keys:
        key: str, cache key of the request
        providers: list[str], providers tried, in order
    """

    def __init__(
        self,
        message: str,
        errors: list[ProviderError] | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context)
        self.errors = list(errors or [])

    @property
    def last_error(self) -> ProviderError | None:
        return self.errors[-1] if self.errors else None


class ComposerError(RateBridgeError):
    """One leg of a composed (two-lookup) conversion failed.

    The underlying error is chained as ``__cause__``.

    Context keys:
        leg: str, "source" or "target"
        from_code: str
        to_code: str
    """

    def __init__(self, message: str, leg: str, context: dict[str, Any] | None = None):
        super().__init__(message, {"leg": leg, **(context or {})})
        self.leg = leg
