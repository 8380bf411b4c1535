"""In-process TTL cache for upstream API responses.

Entries expire lazily: an expired entry is only removed when its key is
read again. There is no background sweep; the key set is bounded by the
handful of (operation × address × period) combinations one wallet produces.

Keys are built with make_key() from an operation name followed by its
arguments in a fixed order, so the wallet address is a substring of every
per-address key and invalidate(address) drops all of them at once.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60.0
KEY_DELIMITER = ":"


@dataclass
class CacheEntry:
    data: Any
    timestamp: float    # clock() reading at set time


def make_key(*parts: Any) -> str:
    """Join an operation name and its arguments: make_key("eth-balance", addr)."""
    return KEY_DELIMITER.join(str(p) for p in parts)


class TTLCache:
    """
    Flat key → value map with per-entry expiry.

    Usage:
        cache = TTLCache(ttl_seconds=60)
        cache.set(make_key("eth-balance", address), balance)
        cache.get(make_key("eth-balance", address))
        cache.invalidate(address)
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            del self._entries[key]
            logger.debug("cache expired: %s", key)
            return None
        return entry.data

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(data=value, timestamp=self._clock())

    def invalidate(self, pattern: str | None = None) -> int:
        """
        Drop every entry whose key contains `pattern`, or everything if None.

        Returns the number of entries removed.
        """
        if not pattern:
            removed = len(self._entries)
            self._entries.clear()
        else:
            doomed = [k for k in self._entries if pattern in k]
            for k in doomed:
                del self._entries[k]
            removed = len(doomed)
        logger.debug("cache invalidated %d entries (pattern=%r)", removed, pattern)
        return removed

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not self._is_expired(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp > self.ttl_seconds
