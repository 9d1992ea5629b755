"""Process-wide memoization of built databases, one entry per backend configuration.

``LoadCache.get_or_build`` guarantees at most one build per cache key:

1. fast path: read a finished entry without locking
2. slow path: under the cache mutex, either join the key's in-flight build or
   register a new one, then build outside the mutex

Callers that join an in-flight build receive its result or its exception. A
failed build stores nothing, so the next call retries from scratch. Clearing a
key while its build is running detaches that build: its callers still get the
instance, but it is not stored. Distinct keys never wait on each other.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Callable, Generic, Hashable, TypeVar

from .backends import GeoBackend

T = TypeVar("T")

_LOGGER = logging.getLogger("geodb.cache")


@dataclass
class CacheStats:
    """Thread-safe counters for cache activity."""

    hits: int = 0
    misses: int = 0
    builds: int = 0
    failures: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add_hit(self) -> None:
        with self._lock:
            self.hits += 1

    def add_miss(self) -> None:
        with self._lock:
            self.misses += 1

    def add_build(self) -> None:
        with self._lock:
            self.builds += 1

    def add_failure(self) -> None:
        with self._lock:
            self.failures += 1

    def to_dict(self) -> dict[str, int]:
        with self._lock:
            return {
                "hits": self.hits,
                "misses": self.misses,
                "builds": self.builds,
                "failures": self.failures,
            }

    def reset(self) -> None:
        with self._lock:
            self.hits = 0
            self.misses = 0
            self.builds = 0
            self.failures = 0


class LoadCache(Generic[T]):
    """Holds one strong reference per backend key to the database built from it."""

    def __init__(self) -> None:
        self._entries: dict[Hashable, T] = {}
        self._in_flight: dict[Hashable, Future[T]] = {}
        self._mutex = threading.Lock()
        self.stats = CacheStats()

    def get_or_build(self, backend: GeoBackend, build: Callable[[GeoBackend], T]) -> T:
        key = backend.cache_key

        cached = self._entries.get(key)
        if cached is not None:
            self.stats.add_hit()
            _LOGGER.debug("Cache hit for %r", key)
            return cached

        with self._mutex:
            cached = self._entries.get(key)
            if cached is not None:
                self.stats.add_hit()
                return cached
            pending = self._in_flight.get(key)
            if pending is None:
                pending = Future()
                self._in_flight[key] = pending
                owner = True
            else:
                owner = False

        if not owner:
            _LOGGER.debug("Waiting for in-flight build of %r", key)
            result = pending.result()
            self.stats.add_hit()
            return result

        self.stats.add_miss()
        try:
            built = build(backend)
        except BaseException as exc:
            self.stats.add_failure()
            with self._mutex:
                if self._in_flight.get(key) is pending:
                    del self._in_flight[key]
            _LOGGER.debug("Build failed for %r; nothing cached", key)
            pending.set_exception(exc)
            raise

        self.stats.add_build()
        with self._mutex:
            if self._in_flight.get(key) is pending:
                del self._in_flight[key]
                self._entries[key] = built
            else:
                _LOGGER.debug("Build of %r finished after clear; not stored", key)
        pending.set_result(built)
        return built

    def get(self, backend: GeoBackend) -> T | None:
        return self._entries.get(backend.cache_key)

    def clear(self, backend: GeoBackend | None = None) -> None:
        """Drop one entry, or every entry when ``backend`` is None.

        Builds still running for a cleared key finish for their own callers but
        are not stored. Instances already handed out stay valid; they are freed
        once their holders release them.
        """
        with self._mutex:
            if backend is None:
                self._entries.clear()
                self._in_flight.clear()
                _LOGGER.debug("Load cache cleared")
            else:
                self._entries.pop(backend.cache_key, None)
                self._in_flight.pop(backend.cache_key, None)
                _LOGGER.debug("Load cache entry %r cleared", backend.cache_key)

    def pending(self) -> int:
        """Number of builds currently in flight."""
        with self._mutex:
            return len(self._in_flight)

    def __contains__(self, backend: object) -> bool:
        return isinstance(backend, GeoBackend) and backend.cache_key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


_default_cache: LoadCache | None = None
_default_cache_lock = threading.Lock()


def default_cache() -> LoadCache:
    """Return the process-wide cache, creating it on first use."""
    global _default_cache
    if _default_cache is None:
        with _default_cache_lock:
            if _default_cache is None:
                _default_cache = LoadCache()
    return _default_cache
