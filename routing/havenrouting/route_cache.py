import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .models.coordinate import Coordinate
from .models.route import Route, RoutingProfile
from .utils.locks import ReadWriteLock

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, Tuple[float, float], Tuple[float, float]]


@dataclass(frozen=True)
class CacheEntry:
    key: CacheKey
    route: Route
    created_at: float


class RouteCache:
    """
    Session cache of accepted routes, keyed by profile and rounded endpoints.

    Entries expire ``ttl_seconds`` after insertion; when more than
    ``max_entries`` are held the oldest insertion is evicted.
    """

    def __init__(self, ttl_seconds: float = 24 * 60 * 60, key_decimals: int = 4,
                 max_entries: int = 256, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.key_decimals = key_decimals
        self.max_entries = max_entries
        self.clock = clock
        self._entries: "OrderedDict[CacheKey, CacheEntry]" = OrderedDict()
        self._lock = ReadWriteLock()

    def make_key(self, start: Coordinate, destination: Coordinate,
                 profile: RoutingProfile = RoutingProfile.FOOT) -> CacheKey:
        d = self.key_decimals
        return (
            profile.value,
            (round(start.latitude, d), round(start.longitude, d)),
            (round(destination.latitude, d), round(destination.longitude, d)),
        )

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at >= self.ttl_seconds

    def get(self, start: Coordinate, destination: Coordinate,
            profile: RoutingProfile = RoutingProfile.FOOT) -> Optional[Route]:
        key = self.make_key(start, destination, profile)
        now = self.clock()
        with self._lock.read_locked():
            entry = self._entries.get(key)
            if entry is not None and not self._expired(entry, now):
                return entry.route
        if entry is not None:
            with self._lock.write_locked():
                current = self._entries.get(key)
                if current is not None and self._expired(current, now):
                    del self._entries[key]
                    logger.debug(f"Cache entry expired: {key}")
        return None

    def put(self, start: Coordinate, destination: Coordinate, route: Route,
            profile: RoutingProfile = RoutingProfile.FOOT) -> CacheEntry:
        key = self.make_key(start, destination, profile)
        entry = CacheEntry(key, route, self.clock())
        with self._lock.write_locked():
            self._entries.pop(key, None)
            self._entries[key] = entry
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Cache full, evicted {evicted}")
        return entry

    def clear(self):
        with self._lock.write_locked():
            self._entries.clear()

    def __len__(self):
        with self._lock.read_locked():
            return len(self._entries)
