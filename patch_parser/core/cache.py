"""
TTL cache for extraction outcomes.

Entries are keyed by operation, document fingerprint and selector chain.
Expired entries are evicted lazily when they are looked up; there is no
background sweeper. Writes replace entries, they never mutate them.
"""

import hashlib
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ..constants import DEFAULT_CACHE_TTL_SECONDS
from .logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    """Immutable cached value with its creation time (clock seconds)."""

    value: Any
    created_at: float
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.created_at > ttl_seconds


class CacheKeyGenerator:
    """Utility for generating consistent cache keys."""

    @staticmethod
    def generate_text_hash(text: str, length: int | None = None) -> str:
        """
        Generate a consistent hash for text content.

        Args:
            text: Text content to hash
            length: Optional number of leading hex characters to keep

        Returns:
            SHA256 hash string
        """
        digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
        return digest[:length] if length else digest

    @staticmethod
    def extraction_key(
        operation: str, fingerprint: str, selectors: Sequence[str]
    ) -> str:
        """
        Build the key for a cached extraction.

        Args:
            operation: Operation name, optionally with qualifiers
            fingerprint: Fingerprint of the scope the chain ran against
            selectors: The ordered selector chain

        Returns:
            Key of the form "operation:fingerprint:sel1,sel2"
        """
        return f"{operation}:{fingerprint}:{','.join(selectors)}"


class ExtractionCache:
    """Thread-safe TTL cache owned by a single engine instance."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Clock | None = None,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the live entry for key, evicting it first if it has expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            if entry.is_expired(self._clock(), self.ttl_seconds):
                del self._entries[key]
                self.evictions += 1
                self.misses += 1
                logger.debug(f"Cache entry expired: {key[:80]}")
                return None

            self.hits += 1
            return entry

    def set(
        self, key: str, value: Any, metadata: Mapping[str, Any] | None = None
    ) -> CacheEntry:
        entry = CacheEntry(
            value=value,
            created_at=self._clock(),
            metadata=MappingProxyType(dict(metadata or {})),
        )
        with self._lock:
            self._entries[key] = entry
        return entry

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            total = self.hits + self.misses
            return {
                "size": len(self._entries),
                "ttl_seconds": self.ttl_seconds,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
                "hit_ratio": self.hits / total if total else 0.0,
            }
