"""In-memory TTL cache for tool responses.

Keys are built from a category, a domain and ordered discriminators so that
a whole domain (or one category of it) can be invalidated by prefix after a
fresh crawl. Expiry is lazy: expired entries are evicted when read.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

KEY_DELIMITER = ":"

_ESCAPES = (("%", "%25"), (KEY_DELIMITER, "%3A"))


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float


class ResponseCache:
    """Process-lifetime response cache with per-entry TTL.

    One instance is created at startup and passed to whichever service needs
    it. Operations are synchronous and never suspend, so no locking is needed
    under asyncio; concurrent misses for the same key simply last-writer-win.
    """

    def __init__(
        self,
        default_ttl: float = 3600,
        namespace: str = "",
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """Initialize the cache.

        Args:
            default_ttl: TTL in seconds applied when set() gets no explicit ttl
            namespace: Optional component prepended to every generated key
            clock: Monotonic time source in seconds (defaults to time.monotonic)
        """
        if default_ttl < 0:
            raise ValueError(f"default_ttl must be >= 0, got {default_ttl}")
        self.default_ttl = default_ttl
        self.namespace = namespace
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def _now(self) -> float:
        return self._clock() if self._clock is not None else time.monotonic()

    def generate_key(self, category: str, domain: str, *discriminators: str) -> str:
        """Build a deterministic, collision-free key.

        Components are joined in the order given (discriminators are not
        sorted). Any delimiter inside a component is percent-escaped, so two
        distinct tuples can never produce the same key.

        Examples:
            >>> cache.generate_key("site-scan", "example.com", '{"limit":10}')
            'site-scan:example.com:{"limit"%3A10}'
        """
        components = [category, domain, *discriminators]
        for component in components:
            if not isinstance(component, str):
                raise TypeError(
                    f"cache key components must be strings, got {type(component).__name__}"
                )

        if self.namespace:
            components.insert(0, self.namespace)
        return KEY_DELIMITER.join(_escape(component) for component in components)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or default on a miss or expired entry."""
        entry = self._entries.get(key)
        if entry is None:
            return default

        if self._now() >= entry.expires_at:
            # Lazy eviction
            del self._entries[key]
            return default

        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value, replacing any previous entry for key.

        Args:
            key: Cache key (see generate_key)
            value: Value to store
            ttl: Seconds until expiry (defaults to default_ttl)
        """
        ttl = self.default_ttl if ttl is None else ttl
        if ttl < 0:
            raise ValueError(f"ttl must be >= 0, got {ttl}")
        self._entries[key] = CacheEntry(value=value, expires_at=self._now() + ttl)

    def delete_pattern(self, prefix: str) -> int:
        """Remove every entry whose key starts with prefix.

        Matching is aligned on key components: "site-scan:example.com" covers
        "site-scan:example.com" and "site-scan:example.com:...", never
        "site-scan:example.com.au". A prefix ending with the delimiter matches
        plainly.

        Returns:
            Number of entries removed, expired ones included
        """
        matching = [key for key in self._entries if _matches_prefix(key, prefix)]
        for key in matching:
            del self._entries[key]

        removed = len(matching)
        if removed:
            logger.debug("Invalidated %d cache entries for prefix %s", removed, prefix)
        return removed

    def purge_expired(self) -> int:
        """Evict all expired entries. Returns how many were evicted."""
        now = self._now()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key, _MISSING) is not _MISSING


_MISSING = object()


def _escape(component: str) -> str:
    for raw, escaped in _ESCAPES:
        component = component.replace(raw, escaped)
    return component


def _matches_prefix(key: str, prefix: str) -> bool:
    if not key.startswith(prefix):
        return False
    if not prefix or prefix.endswith(KEY_DELIMITER) or len(key) == len(prefix):
        return True
    return key[len(prefix)] == KEY_DELIMITER
