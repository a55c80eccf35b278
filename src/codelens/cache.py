"""Content-addressed analysis cache.

Results are keyed by a hash of filename and source text and expire after a
fixed TTL. Expiry is lazy on read and also swept periodically by
CacheSweeper. When the store grows past max_entries the oldest entries (by
insertion time) are evicted first; reads never change eviction order.

Results are copied on the way in and out, so callers never share a cached
object. All mutations happen under a single lock. Two concurrent misses for the same
key may both call the provider; the second store simply replaces the first.
"""

import copy
import hashlib
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from codelens.models.result import AnalysisResult

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600
DEFAULT_MAX_ENTRIES = 500
DEFAULT_SWEEP_INTERVAL = 900

CACHE_KEY_LENGTH = 16


def make_cache_key(filename: str, source_text: str) -> str:
    """Build the cache key for a file.

    Args:
        filename: File name as submitted
        source_text: Full source text

    Returns:
        First 16 hex characters of SHA-256 over "filename:source"
    """
    digest = hashlib.sha256(f"{filename}:{source_text}".encode()).hexdigest()
    return digest[:CACHE_KEY_LENGTH]


@dataclass
class CacheEntry:
    """Stored result with the metadata used for status reporting."""

    result: AnalysisResult
    filename: str
    language: str
    created_at: float


class AnalysisCache:
    """In-memory TTL cache for analysis results.

    Args:
        ttl_seconds: Entry lifetime measured from insertion
        max_entries: Capacity enforced by evict_over_capacity()
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive. Got: {ttl_seconds}")
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive. Got: {max_entries}")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        # dict keeps insertion order, which is the eviction order
        self._entries: dict[str, CacheEntry] = {}

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at > self.ttl_seconds

    def get(self, key: str) -> AnalysisResult | None:
        """Return a copy of the cached result, or None if absent or expired.

        Expired entries found here are removed.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, self._clock()):
                del self._entries[key]
                logger.debug("Cache entry expired: %s (%s)", key, entry.filename)
                return None
            return copy.deepcopy(entry.result)

    def put(self, key: str, result: AnalysisResult, filename: str, language: str) -> None:
        """Store a result. An existing entry is replaced and its age reset."""
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(
                result=copy.deepcopy(result),
                filename=filename,
                language=language,
                created_at=self._clock(),
            )

    def sweep_expired(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.info("Cache sweep removed %d expired entries", len(expired))
        return len(expired)

    def evict_over_capacity(self) -> int:
        """Evict the oldest entries until size <= max_entries.

        Returns:
            Number of entries evicted
        """
        with self._lock:
            overflow = len(self._entries) - self.max_entries
            if overflow <= 0:
                return 0
            oldest = list(self._entries)[:overflow]
            for key in oldest:
                del self._entries[key]

        logger.info("Cache evicted %d oldest entries (capacity %d)", overflow, self.max_entries)
        return overflow

    def clear(self) -> int:
        """Remove all entries and return how many there were."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Cache cleared (%d entries)", count)
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not self._is_expired(entry, self._clock())

    def status(self) -> dict[str, Any]:
        """Describe the cache contents.

        Returns:
            Dictionary with size, limits, and one record per entry
        """
        with self._lock:
            now = self._clock()
            entries = [
                {
                    "key": key[:8] + "...",
                    "filename": entry.filename,
                    "language": entry.language,
                    "ageSeconds": round(now - entry.created_at, 1),
                    "expired": self._is_expired(entry, now),
                    "errorCount": len(entry.result.errors),
                }
                for key, entry in self._entries.items()
            ]

        return {
            "size": len(entries),
            "maxEntries": self.max_entries,
            "ttlSeconds": self.ttl_seconds,
            "entries": entries,
        }

    def analytics(self) -> dict[str, Any]:
        """Summarize cached results by language.

        Returns:
            Dictionary with entry counts per language and average errors per entry
        """
        with self._lock:
            entries = list(self._entries.values())

        by_language: dict[str, int] = {}
        total_errors = 0
        for entry in entries:
            by_language[entry.language] = by_language.get(entry.language, 0) + 1
            total_errors += len(entry.result.errors)

        average = round(total_errors / len(entries), 2) if entries else 0.0
        return {
            "totalEntries": len(entries),
            "languages": by_language,
            "averageErrorsPerEntry": average,
        }


class CacheSweeper:
    """Daemon thread that runs AnalysisCache.sweep_expired on an interval.

    The wait happens outside the cache lock, so the sweeper never blocks
    readers between sweeps.
    """

    def __init__(self, cache: AnalysisCache, interval_seconds: float = DEFAULT_SWEEP_INTERVAL) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive. Got: {interval_seconds}")
        self.cache = cache
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start sweeping in the background (no-op if already running)."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="codelens-cache-sweeper",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Cache sweeper started (interval %ss)", self.interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the sweeper to stop and wait for the thread to exit."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.debug("Cache sweeper stopped")

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.cache.sweep_expired()
            except Exception as e:
                logger.error("Cache sweep failed: %s", e)
