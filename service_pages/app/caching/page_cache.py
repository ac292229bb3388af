"""
In-process cache of rendered page HTML.

One ``PageCache`` is built at startup and passed by reference to every
handler that reads or invalidates pages. Entries expire lazily: ``get``
is the only place that checks expiry on the hot path; ``sweep`` (driven by
``CacheSweeper`` when enabled) reclaims memory held by entries nobody reads
again.

All operations hold one exclusive lock for their whole duration and never
block on anything else.
"""

import threading
import time
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Optional, Tuple

from shared.logging import get_logger


@dataclass
class CacheEntry:
    """A cached value and the clock reading after which it is stale."""

    value: Any
    expires_at: Optional[float] = None  # None: never expires

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


@dataclass
class CacheStats:
    """Point-in-time counters for a ``PageCache``."""

    entries: int
    hits: int
    misses: int
    expirations: int
    invalidations: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class PageCache:
    """Thread-safe key/value store with per-entry TTL and prefix deletion."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._expirations = 0
        self._invalidations = 0
        self.logger = get_logger("pages.page_cache")

    def get(self, key: str) -> Tuple[Any, bool]:
        """Return ``(value, True)`` for a live entry, ``(None, False)`` otherwise.

        An expired entry is evicted as a side effect.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None, False
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                return None, False
            self._hits += 1
            return entry.value, True

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store ``value`` under ``key``, replacing any previous entry.

        ``ttl_seconds <= 0`` stores the entry without expiry; only an
        explicit delete removes it.
        """
        with self._lock:
            expires_at = None
            if ttl_seconds > 0:
                expires_at = self._clock() + ttl_seconds
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def delete(self, key: str) -> bool:
        """Remove ``key`` if present; report whether an entry was removed."""
        with self._lock:
            if self._entries.pop(key, None) is None:
                return False
            self._invalidations += 1
            return True

    def delete_by_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with ``prefix``.

        Plain string-prefix semantics: ``"page:blog"`` also matches
        ``"page:blogging"``. Linear in the number of entries.
        """
        with self._lock:
            stale = [key for key in self._entries if key.startswith(prefix)]
            for key in stale:
                del self._entries[key]
            self._invalidations += len(stale)

        if stale:
            self.logger.debug("Deleted cache entries by prefix", prefix=prefix, removed=len(stale))
        return len(stale)

    def sweep(self) -> int:
        """Evict every expired entry and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._expirations += len(expired)
        return len(expired)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._invalidations += len(self._entries)
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                entries=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                expirations=self._expirations,
                invalidations=self._invalidations,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not entry.is_expired(self._clock())


class CacheSweeper:
    """Daemon thread that periodically evicts expired entries.

    The cache is correct without it; the sweeper only bounds how long
    unread expired entries keep their memory.
    """

    def __init__(self, cache: PageCache, interval_seconds: float = 300.0):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.cache = cache
        self.interval_seconds = interval_seconds
        self.logger = get_logger("pages.cache_sweeper")
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sweep loop; calling it twice is a no-op."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="page-cache-sweeper", daemon=True)
        self._thread.start()
        self.logger.info("Cache sweeper started", interval_seconds=self.interval_seconds)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal the loop to exit and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            self.logger.info("Cache sweeper stopped")

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            removed = self.cache.sweep()
            if removed:
                self.logger.info("Swept expired cache entries", removed=removed)
