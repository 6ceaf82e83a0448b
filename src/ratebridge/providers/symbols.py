"""Static symbol and currency-code translation tables.

Read-only after import. Each provider names the same asset differently:
CoinGecko wants ``bitcoin``, Kraken wants ``XBT``, Binance quotes in
``USDT`` where everyone else quotes in ``USD``.
"""

from __future__ import annotations

from types import MappingProxyType

COINGECKO_IDS = MappingProxyType(
    {
        "BTC": "bitcoin",
        "ETH": "ethereum",
        "SOL": "solana",
        "BNB": "binancecoin",
        "XRP": "ripple",
        "ADA": "cardano",
        "DOGE": "dogecoin",
        "MATIC": "matic-network",
        "DOT": "polkadot",
        "AVAX": "avalanche-2",
        "SHIB": "shiba-inu",
        "LTC": "litecoin",
        "LINK": "chainlink",
        "UNI": "uniswap",
        "ATOM": "cosmos",
        "USDT": "tether",
    }
)

# Kraken's legacy asset codes; anything absent is passed through unchanged.
KRAKEN_ASSETS = MappingProxyType(
    {
        "BTC": "XBT",
        "DOGE": "XDG",
    }
)

# Stablecoins treated as one US dollar for quote aliasing.
USD_STABLECOINS = frozenset({"USDT"})

# ISO 4217 codes treated as fiat when classifying a conversion leg.
FIAT_CODES = frozenset(
    {
        "AED", "ARS", "AUD", "BDT", "BGN", "BRL", "CAD", "CHF", "CLP", "CNY",
        "COP", "CZK", "DKK", "EGP", "EUR", "GBP", "HKD", "HUF", "IDR", "ILS",
        "INR", "ISK", "JPY", "KES", "KRW", "KWD", "MAD", "MXN", "MYR", "NGN",
        "NOK", "NZD", "PEN", "PHP", "PKR", "PLN", "QAR", "RON", "RUB", "SAR",
        "SEK", "SGD", "THB", "TRY", "TWD", "UAH", "USD", "VND", "ZAR",
    }
)


def to_usdt_quote(quote: str) -> str:
    """Binance lists USD pairs against USDT."""
    q = quote.upper()
    return "USDT" if q == "USD" else q


def to_usd_quote(quote: str) -> str:
    """Coinbase, CoinGecko, Kraken and CoinDesk quote in USD, not USDT."""
    q = quote.upper()
    return "USD" if q in USD_STABLECOINS else q


def is_usd_like(code: str) -> bool:
    return code.upper() == "USD" or code.upper() in USD_STABLECOINS


def is_fiat(code: str) -> bool:
    return code.upper() in FIAT_CODES
