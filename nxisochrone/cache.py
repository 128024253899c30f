"""Bounded memo of isochrone results keyed by a coarsened query."""
import threading
from collections import OrderedDict
from typing import NamedTuple, Optional

from .config import (
    CACHE_COORDINATE_PRECISION,
    CACHE_MAX_ENTRIES,
    CACHE_TIME_GRANULARITY_SEC,
)
from .converters import round_half_up
from .models import Coordinate, Isochrone


class _Missing:
    def __repr__(self):
        return "MISSING"


# Returned by IsochroneCache.get for keys never stored. A stored None is a
# computed "no result" and is returned as is.
MISSING = _Missing()


class CacheKey(NamedTuple):
    lat: float
    lon: float
    max_travel_time_sec: int
    walk_distance: float


class IsochroneCache:
    """
    Memo of isochrone results for near-duplicate queries.

    Origins are rounded to ``coordinate_precision`` decimals and budgets to
    the nearest ``time_granularity_sec``, so slightly jittered coordinates or
    slider values share an entry. Once ``max_entries`` is exceeded the
    oldest-inserted entry is evicted (``policy="fifo"``) or the least recently
    used one (``policy="lru"``).

    All operations hold an internal lock, so one instance can be shared by
    threads.

    Parameters
    ----------
    max_entries : int, optional
        Capacity of the cache.
    coordinate_precision : int, optional
        Decimals kept from latitude and longitude.
    time_granularity_sec : int, optional
        Width of the budget buckets in seconds.
    policy : str, optional
        ``"fifo"`` (default) or ``"lru"``.
    """

    def __init__(
        self,
        max_entries: int = CACHE_MAX_ENTRIES,
        coordinate_precision: int = CACHE_COORDINATE_PRECISION,
        time_granularity_sec: int = CACHE_TIME_GRANULARITY_SEC,
        policy: str = "fifo",
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1.")
        if time_granularity_sec < 1:
            raise ValueError("time_granularity_sec must be at least 1.")
        if policy not in ("fifo", "lru"):
            raise ValueError(f"Unknown eviction policy: {policy!r}. Use 'fifo' or 'lru'.")

        self.max_entries = max_entries
        self.coordinate_precision = coordinate_precision
        self.time_granularity_sec = time_granularity_sec
        self.policy = policy
        self.hits = 0
        self.misses = 0
        self._entries = OrderedDict()
        self._lock = threading.Lock()

    def make_key(
        self,
        origin: Coordinate,
        max_travel_time_sec: float,
        walk_distance: float,
    ) -> CacheKey:
        buckets = round_half_up(max_travel_time_sec / self.time_granularity_sec)
        return CacheKey(
            lat=round(origin.lat, self.coordinate_precision),
            lon=round(origin.lon, self.coordinate_precision),
            max_travel_time_sec=buckets * self.time_granularity_sec,
            walk_distance=round(walk_distance, 1),
        )

    def get(self, key: CacheKey, default=MISSING):
        """Cached result for ``key``, or ``default`` if it was never stored."""
        with self._lock:
            if key not in self._entries:
                self.misses += 1
                return default
            self.hits += 1
            if self.policy == "lru":
                self._entries.move_to_end(key)
            return self._entries[key]

    def put(self, key: CacheKey, value: Optional[Isochrone]):
        """Stores a result; ``None`` records that the query has no result."""
        with self._lock:
            if key in self._entries:
                self._entries[key] = value
                if self.policy == "lru":
                    self._entries.move_to_end(key)
                return
            self._entries[key] = value
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self):
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __contains__(self, key) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
