"""Ordered fallback over a provider chain."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from ratebridge.core.exceptions import AllProvidersFailedError, ProviderError
from ratebridge.providers.base import describe

logger = logging.getLogger(__name__)

P = TypeVar("P")
T = TypeVar("T")


async def first_success(
    providers: Sequence[P],
    call: Callable[[P], Awaitable[T]],
    label: str,
    context: dict[str, Any] | None = None,
) -> tuple[T, P]:
    """Try ``call(provider)`` for each provider in order; return the first result.

    Only ``ProviderError`` advances the chain. Anything else, including
    ``asyncio.CancelledError``, propagates immediately.

    Returns:
        ``(value, provider)`` for the provider that answered.

    Raises:
        AllProvidersFailedError: every provider failed; carries each error
            in chain order.
    """
    errors: list[ProviderError] = []
    for provider in providers:
        try:
            value = await call(provider)
        except ProviderError as e:
            logger.warning("%s failed for %s: %s", e.provider, label, describe(e))
            errors.append(e)
            continue
        return value, provider

    last = errors[-1] if errors else None
    detail = str(last) if last is not None else "no providers configured"
    raise AllProvidersFailedError(
        f"Unable to fetch {label} - all providers failed. Last error: {detail}",
        errors=errors,
        context={**(context or {}), "providers": [e.provider for e in errors]},
    )
