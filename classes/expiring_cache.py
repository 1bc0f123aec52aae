# classes/expiring_cache.py
import time
import threading
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from classes.app_config import logger

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    value: V
    expires_at: float


class ExpiringCache(Generic[V]):
    """
    In-memory, fixed-capacity key/value store with:
    - per-entry TTL (checked lazily on get, never swept)
    - approximate LRU eviction: a hit re-inserts the entry at the end of the
      dict, so the first key in iteration order is the least recently touched
    - thread-safe operations (sync FastAPI dependencies run in a threadpool)
    """

    def __init__(
        self,
        max_size: int = 10000,
        default_ttl_seconds: float = 300,
        *,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.name = name
        self.max_size = max_size
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._items: dict[str, CacheEntry[V]] = {}
        logger.debug(f"[Cache] {name} initialized (max_size={max_size}, ttl={default_ttl_seconds}s)")

    def get(self, key: str) -> V | None:
        with self._lock:
            entry = self._items.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._items[key]
                return None
            # move to end (most recently used)
            del self._items[key]
            self._items[key] = entry
            return entry.value

    def set(self, key: str, value: V, ttl_seconds: float | None = None) -> None:
        """
        Insert or replace. Replacing an existing key moves it to the end and
        evicts nothing; only a new key at capacity evicts the oldest entry.
        """
        ttl = ttl_seconds if ttl_seconds else self.default_ttl_seconds
        with self._lock:
            # re-setting a key refreshes its position instead of evicting a neighbour
            self._items.pop(key, None)
            if len(self._items) >= self.max_size:
                oldest_key = next(iter(self._items))
                del self._items[oldest_key]
            self._items[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._items.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    @property
    def size(self) -> int:
        # may include entries that expired but were not read since
        return len(self._items)
