"""Service configuration: pydantic models loaded from YAML and the environment."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from ratebridge.core.exceptions import ConfigError
from ratebridge.core.models import ProviderName

_CRYPTO_PRICE_PROVIDERS = {
    ProviderName.BINANCE,
    ProviderName.COINBASE,
    ProviderName.COINGECKO,
    ProviderName.KRAKEN,
    ProviderName.COINDESK,
}
_FIAT_RATE_PROVIDERS = {
    ProviderName.FRANKFURTER,
    ProviderName.FAWAZ_AHMED,
    ProviderName.EXCHANGERATE_API,
}
_HISTORY_PROVIDERS = {ProviderName.BINANCE, ProviderName.COINGECKO}
_FIAT_LIST_PROVIDERS = {ProviderName.FRANKFURTER, ProviderName.EXCHANGERATE_API}
_CRYPTO_LIST_PROVIDERS = {ProviderName.BINANCE, ProviderName.COINGECKO}


class HttpConfig(BaseModel):
    """Outbound HTTP settings shared by every provider."""

    model_config = ConfigDict(frozen=True)

    timeout: float = 5.0
    user_agent: str = "ratebridge/0.1"

    @field_validator("timeout")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be > 0")
        return v


class CacheConfig(BaseModel):
    """TTL policy. Short for volatile data, long for reference lists."""

    model_config = ConfigDict(frozen=True)

    price_ttl: int = 30
    fiat_rate_ttl: int = 60
    history_ttl: int = 300
    currencies_ttl: int = 3600
    pulse_ttl: int = 30
    sweep_interval: int = 300
    serve_stale: bool = True
    stale_max_age: int = 3600

    @field_validator(
        "price_ttl",
        "fiat_rate_ttl",
        "history_ttl",
        "currencies_ttl",
        "pulse_ttl",
        "sweep_interval",
        "stale_max_age",
    )
    @classmethod
    def seconds_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("cache durations must be >= 1 second")
        return v


class ProvidersConfig(BaseModel):
    """Provider chain order and per-provider settings."""

    model_config = ConfigDict(frozen=True)

    crypto_price: list[ProviderName] = [
        ProviderName.BINANCE,
        ProviderName.COINBASE,
        ProviderName.COINGECKO,
        ProviderName.KRAKEN,
        ProviderName.COINDESK,
    ]
    fiat_rate: list[ProviderName] = [
        ProviderName.FRANKFURTER,
        ProviderName.FAWAZ_AHMED,
        ProviderName.EXCHANGERATE_API,
    ]
    crypto_history: list[ProviderName] = [ProviderName.BINANCE, ProviderName.COINGECKO]
    fiat_currencies: list[ProviderName] = [
        ProviderName.FRANKFURTER,
        ProviderName.EXCHANGERATE_API,
    ]
    crypto_currencies: list[ProviderName] = [ProviderName.BINANCE, ProviderName.COINGECKO]
    exchangerate_api_key: str | None = None
    requests_per_minute: dict[ProviderName, int] = {ProviderName.COINGECKO: 30}
    base_urls: dict[ProviderName, str] = {}

    @field_validator(
        "crypto_price",
        "fiat_rate",
        "crypto_history",
        "fiat_currencies",
        "crypto_currencies",
        mode="before",
    )
    @classmethod
    def split_comma_list(cls, v: object) -> object:
        """Accept "binance,coinbase" from environment variables."""
        if isinstance(v, str):
            return [p.strip().lower() for p in v.split(",") if p.strip()]
        return v

    @model_validator(mode="after")
    def chains_use_capable_providers(self) -> ProvidersConfig:
        checks = (
            ("crypto_price", self.crypto_price, _CRYPTO_PRICE_PROVIDERS),
            ("fiat_rate", self.fiat_rate, _FIAT_RATE_PROVIDERS),
            ("crypto_history", self.crypto_history, _HISTORY_PROVIDERS),
            ("fiat_currencies", self.fiat_currencies, _FIAT_LIST_PROVIDERS),
            ("crypto_currencies", self.crypto_currencies, _CRYPTO_LIST_PROVIDERS),
        )
        for field, chain, allowed in checks:
            if not chain:
                raise ValueError(f"{field} chain must not be empty")
            bad = [p.value for p in chain if p not in allowed]
            if bad:
                raise ValueError(f"{field} chain cannot use provider(s): {', '.join(bad)}")
            if len(set(chain)) != len(chain):
                raise ValueError(f"{field} chain lists a provider twice")
        return self

    @field_validator("requests_per_minute")
    @classmethod
    def budgets_positive(cls, v: dict[ProviderName, int]) -> dict[ProviderName, int]:
        for name, budget in v.items():
            if budget < 1:
                raise ValueError(f"requests_per_minute for {name} must be >= 1")
        return v


class APIConfig(BaseModel):
    """Bind address, CORS origins and service name for the HTTP API."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 3001
    service_name: str = "ratebridge Currency Converter API"
    allowed_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://localhost:4173",
    ]

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def split_origins(cls, v: object) -> object:
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v


class RateBridgeConfig(BaseModel):
    """Root configuration for the entire ratebridge service."""

    model_config = ConfigDict(frozen=True)

    http: HttpConfig = HttpConfig()
    cache: CacheConfig = CacheConfig()
    providers: ProvidersConfig = ProvidersConfig()
    api: APIConfig = APIConfig()


def load_config(
    config_path: str | None = None,
    env_prefix: str = "RATEBRIDGE_",
) -> RateBridgeConfig:
    """Build the service configuration.

    Later sources win over earlier ones:

    1. Built-in defaults
    2. ``config_path``, else ``$RATEBRIDGE_CONFIG``, else ``./ratebridge.yml``
    3. ``RATEBRIDGE_*`` variables, nested with ``__``
       (``RATEBRIDGE_CACHE__PRICE_TTL=10`` sets ``cache.price_ttl``)
    4. ``EXCHANGE_RATE_API_KEY`` for the ExchangeRate-API key, and
       ``FRONTEND_URL``, which is added to the CORS origins

    Raises:
        ConfigError: missing or unreadable file, or a value that fails
            validation.
    """
    try:
        path = _resolve_config_path(config_path)
        raw = _load_yaml(path) if path is not None else {}
        merged = _merge_env_vars(raw, env_prefix)
        _apply_api_key_shorthand(merged)
        _apply_frontend_url(merged)
        return RateBridgeConfig.model_validate(merged)
    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def _resolve_config_path(explicit: str | None) -> Path | None:
    candidates = [
        ("config_path", explicit),
        ("RATEBRIDGE_CONFIG", os.environ.get("RATEBRIDGE_CONFIG") or None),
    ]
    for field, value in candidates:
        if value is None:
            continue
        path = Path(value)
        if not path.exists():
            raise ConfigError(
                f"Config file not found: {value}",
                context={"field": field, "value": value},
            )
        return path

    default = Path("ratebridge.yml")
    return default if default.exists() else None


def _load_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in {path}: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e
    if not isinstance(data, dict):
        raise ConfigError(
            f"{path} must be a mapping, got {type(data).__name__}",
            context={"field": "config_file", "value": str(path)},
        )
    return data


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Return a copy of ``base`` with ``<prefix>SECTION__KEY`` variables applied.

    ``base`` and its nested dicts are never mutated. ``<prefix>CONFIG``
    names the config file and is not a setting.
    """
    result = dict(base)
    for name, value in os.environ.items():
        if not name.startswith(prefix):
            continue
        path = name[len(prefix):].lower().split("__")
        if path == ["config"]:
            continue

        node = result
        for section in path[:-1]:
            child = node.get(section)
            node[section] = dict(child) if isinstance(child, dict) else {}
            node = node[section]
        node[path[-1]] = _auto_cast(value)
    return result


def _section(merged: dict, name: str) -> dict:
    section = merged.get(name)
    section = dict(section) if isinstance(section, dict) else {}
    merged[name] = section
    return section


def _apply_api_key_shorthand(merged: dict) -> None:
    key = os.environ.get("EXCHANGE_RATE_API_KEY")
    if key and key != "your_key_here":
        _section(merged, "providers").setdefault("exchangerate_api_key", key)


def _apply_frontend_url(merged: dict) -> None:
    url = os.environ.get("FRONTEND_URL")
    if not url:
        return
    api = _section(merged, "api")
    origins = api.get("allowed_origins", APIConfig().allowed_origins)
    if isinstance(origins, str):
        origins = [o.strip() for o in origins.split(",") if o.strip()]
    if url not in origins:
        origins = [*origins, url]
    api["allowed_origins"] = origins


def _auto_cast(value: str) -> str | int | float | bool:
    """Cast "true"/"false" to bool and numeric strings to numbers."""
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value
