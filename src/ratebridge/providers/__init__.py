"""External rate sources behind uniform async interfaces.

Architecture
------------
    Upstream API → HttpProvider subclass → PricePoint / RatePoint → chain

Built-in adapters:

- Crypto prices: ``BinanceProvider``, ``CoinbaseProvider``,
  ``CoinGeckoProvider``, ``KrakenProvider``, ``CoinDeskProvider`` (BTC only).
- Fiat rates: ``FrankfurterProvider``, ``FawazAhmedProvider``,
  ``ExchangeRateApiProvider`` (needs an API key).

Adding a new source:
1. Subclass ``HttpProvider`` and implement the protocol method(s) it serves.
2. Register the class in ``registry.PROVIDER_CLASSES`` and ``ProviderName``.
3. List it in the relevant chain under ``providers:`` in the config.
"""

from ratebridge.providers.base import (
    CryptoListProvider,
    CurrencyListProvider,
    HistoryProvider,
    HttpProvider,
    PriceProvider,
    RateProvider,
)
from ratebridge.providers.binance import BinanceProvider
from ratebridge.providers.coinbase import CoinbaseProvider
from ratebridge.providers.coindesk import CoinDeskProvider
from ratebridge.providers.coingecko import CoinGeckoProvider
from ratebridge.providers.exchangerate_api import ExchangeRateApiProvider
from ratebridge.providers.fawaz import FawazAhmedProvider
from ratebridge.providers.frankfurter import FrankfurterProvider
from ratebridge.providers.kraken import KrakenProvider
from ratebridge.providers.registry import (
    PROVIDER_CLASSES,
    ProviderChains,
    build_chains,
    create_client,
    create_provider,
)

__all__ = [
    # Protocols
    "CryptoListProvider",
    "CurrencyListProvider",
    "HistoryProvider",
    "PriceProvider",
    "RateProvider",
    "HttpProvider",
    # Crypto
    "BinanceProvider",
    "CoinbaseProvider",
    "CoinDeskProvider",
    "CoinGeckoProvider",
    "KrakenProvider",
    # Fiat
    "ExchangeRateApiProvider",
    "FawazAhmedProvider",
    "FrankfurterProvider",
    # Registry
    "PROVIDER_CLASSES",
    "ProviderChains",
    "build_chains",
    "create_client",
    "create_provider",
]
