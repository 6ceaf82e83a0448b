"""ratebridge.core: foundation types, config, and exceptions."""

from ratebridge.core.config import (
    APIConfig,
    CacheConfig,
    HttpConfig,
    ProvidersConfig,
    RateBridgeConfig,
    load_config,
)
from ratebridge.core.exceptions import (
    AllProvidersFailedError,
    ComposerError,
    ConfigError,
    ProviderError,
    ProviderNetworkError,
    ProviderRateLimitedError,
    ProviderResponseError,
    RateBridgeError,
    UnsupportedSymbolError,
    ValidationError,
)
from ratebridge.core.models import (
    CacheKey,
    ConversionKind,
    ConversionResult,
    CryptoAsset,
    Currency,
    CurrencyCode,
    EpochMillis,
    HistoryPoint,
    MarketPulse,
    MarketSnapshot,
    PricePoint,
    ProviderName,
    RatePoint,
    Symbol,
    now_ms,
)

__all__ = [
    # Type aliases
    "CacheKey",
    "CurrencyCode",
    "EpochMillis",
    "Symbol",
    "now_ms",
    # Enums
    "ConversionKind",
    "ProviderName",
    # Models
    "PricePoint",
    "RatePoint",
    "HistoryPoint",
    "Currency",
    "CryptoAsset",
    "ConversionResult",
    "MarketSnapshot",
    "MarketPulse",
    # Config
    "RateBridgeConfig",
    "HttpConfig",
    "CacheConfig",
    "ProvidersConfig",
    "APIConfig",
    "load_config",
    # Exceptions
    "RateBridgeError",
    "ConfigError",
    "ValidationError",
    "ProviderError",
    "ProviderNetworkError",
    "ProviderResponseError",
    "UnsupportedSymbolError",
    "ProviderRateLimitedError",
    "AllProvidersFailedError",
    "ComposerError",
]
