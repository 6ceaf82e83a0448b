"""In-memory TTL cache and last-known-good store."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from ratebridge.core.models import Clock, EpochMillis, now_ms


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expiry: EpochMillis


class TTLCache:
    """Key-value store with per-entry expiry.

    Expiry is always checked on read, so ``sweep()`` only reclaims memory
    for keys nobody asks for again; correctness never depends on it.

    Parameters
    ----------
    clock : Callable[[], int]
        Returns the current time in epoch milliseconds. Injectable for tests.
    """

    def __init__(self, clock: Clock = now_ms) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired.

        An expired entry is removed as a side effect.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expiry:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Insert or overwrite ``key``, expiring ``ttl_seconds`` from now."""
        expiry = self._clock() + int(ttl_seconds * 1000)
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expiry=expiry)

    def sweep(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now > e.expiry]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class LastKnownGoodCache:
    """Last successful value per key, kept for ``max_age_seconds``.

    Used only when every provider failed and the caller accepts a value
    explicitly flagged as stale. Kept apart from TTLCache so a normal
    cache read can never return expired data.
    """

    def __init__(self, max_age_seconds: float = 3600.0, clock: Clock = now_ms) -> None:
        self._max_age_ms = int(max_age_seconds * 1000)
        self._clock = clock
        self._store: dict[str, tuple[Any, EpochMillis]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at > self._max_age_ms:
                del self._store[key]
                return None
            return value

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._store[key] = (value, self._clock())

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [
                k for k, (_, stored_at) in self._store.items()
                if now - stored_at > self._max_age_ms
            ]
            for key in expired:
                del self._store[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
