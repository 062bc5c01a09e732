"""
Route resolution engine: remote routing service first, offline graph second,
synthetic detour last. One engine instance per session owns the route cache
and the offline path graph.
"""

import asyncio
import logging
import threading
import time
from typing import Any, Callable, Iterable, Optional, Sequence

from .config import Config, config as default_config
from .graph.graph_builder import ensure_paths
from .logger import logger as haven_logger
from .models.coordinate import Coordinate, LatLonLike, to_coordinate
from .models.route import Route, RoutingProfile
from .route_cache import RouteCache
from .routing.offline_router import OfflineOutcome, OfflinePathRouter
from .routing.osrm_client import OSRMClient
from .routing.route_validator import RouteValidator
from .utils.instruction_utils import next_instruction as build_next_instruction


class RouteResolutionEngine:
    """
    Resolves a route between two coordinates and always returns one.

    Tiers, in order:
    1. cache hit for (profile, rounded start, rounded destination)
    2. remote routing service, validated
    3. offline A* over the session path graph, validated
    4. synthetic detour (never validated, never cached)

    Only invalid coordinates raise (``InvalidCoordinatesError``). Cancelling a
    resolution aborts the in-flight HTTP request and caches nothing.
    """

    def __init__(self, config: Optional[Config] = None,
                 remote_client: Optional[OSRMClient] = None,
                 offline_router: Optional[OfflinePathRouter] = None,
                 validator: Optional[RouteValidator] = None,
                 cache: Optional[RouteCache] = None,
                 path_inventory: Any = None,
                 clock: Callable[[], float] = time.time):
        self.config = config or default_config
        self.config.validate()
        self.logger = logging.getLogger(__name__)

        self.remote_client = remote_client or OSRMClient(**self.config.get_remote_config())
        self.offline_router = offline_router or OfflinePathRouter(**self.config.get_router_config())
        self.validator = validator or RouteValidator(**self.config.get_validator_config())
        self.cache = cache or RouteCache(clock=clock, **self.config.get_cache_config())
        self.path_inventory = path_inventory
        self._inventory_loaded = False
        self._inventory_lock = threading.Lock()

    # ----------------
    # Resolution
    # ----------------
    async def resolve(self, start: LatLonLike, destination: LatLonLike,
                      profile: Any = RoutingProfile.FOOT) -> Route:
        start = to_coordinate(start)
        destination = to_coordinate(destination)
        profile = RoutingProfile.parse(profile)
        started = time.perf_counter()

        cached = self.cache.get(start, destination, profile)
        if cached is not None:
            self.logger.debug(f"Cache hit for {start.as_tuple()} -> {destination.as_tuple()}")
            self._log_request(start, destination, profile, started, cached, 'cache')
            return cached

        route = None
        if self.config.offline_only:
            haven_logger.log_fallback_used('offline', 'offline-only mode')
        else:
            route = await self._remote_attempt(start, destination, profile)

        if route is None:
            route = await asyncio.to_thread(self._offline_attempt, start, destination)

        if route is None:
            route = self.offline_router.safe_fallback_route(start, destination)
            self._log_request(start, destination, profile, started, route, 'synthetic')
            return route

        self.cache.put(start, destination, route, profile)
        self._log_request(start, destination, profile, started, route, route.source_kind.value)
        return route

    async def _remote_attempt(self, start: Coordinate, destination: Coordinate,
                              profile: RoutingProfile) -> Optional[Route]:
        candidate = await self.remote_client.fetch_route(start, destination, profile)
        if candidate is None:
            haven_logger.log_fallback_used('offline', 'remote routing unavailable')
            return None

        verdict = self.validator.validate(candidate, start, destination)
        if not verdict.valid:
            haven_logger.log_validation_failed(verdict.reason, len(candidate.points))
            haven_logger.log_fallback_used('offline', 'remote route rejected')
            return None
        return candidate

    def _offline_attempt(self, start: Coordinate, destination: Coordinate) -> Optional[Route]:
        self._load_inventory()
        result = self.offline_router.route(start, destination)

        if result.outcome is not OfflineOutcome.GRAPH_PATH:
            haven_logger.log_fallback_used('synthetic', f"{result.outcome.value}: {result.reason}")
            return None

        verdict = self.validator.validate(result.route, start, destination)
        if not verdict.valid:
            haven_logger.log_validation_failed(verdict.reason, len(result.route.points))
            haven_logger.log_fallback_used('synthetic', 'offline route rejected')
            return None
        return result.route

    def _load_inventory(self):
        if self.path_inventory is None:
            return
        # offline attempts run in worker threads; only one may pull the inventory
        with self._inventory_lock:
            if self._inventory_loaded or not self.offline_router.path_graph.is_empty():
                return
            self._inventory_loaded = True
            paths = ensure_paths(self.path_inventory.iter_paths())
            added = self.offline_router.add_paths(paths)
        self.logger.info(f"Loaded {len(paths)} paths ({added} edges) from path inventory")

    def _log_request(self, start: Coordinate, destination: Coordinate, profile: RoutingProfile,
                     started: float, route: Route, source: str):
        haven_logger.log_route_request(
            start.as_tuple(), destination.as_tuple(), profile.value,
            (time.perf_counter() - started) * 1000, source,
        )

    def start_resolution(self, start: LatLonLike, destination: LatLonLike,
                         profile: Any = RoutingProfile.FOOT) -> "asyncio.Task[Route]":
        """Schedule ``resolve`` on the running loop; cancel the task to abandon it"""
        return asyncio.get_running_loop().create_task(self.resolve(start, destination, profile))

    def resolve_sync(self, start: LatLonLike, destination: LatLonLike,
                     profile: Any = RoutingProfile.FOOT) -> Route:
        """Blocking wrapper for callers without an event loop"""
        return asyncio.run(self.resolve(start, destination, profile))

    # ----------------
    # Session state
    # ----------------
    def add_paths(self, paths: Iterable[Sequence[Any]]) -> int:
        """Seed the offline graph with drawn path geometry; returns the node count"""
        self.offline_router.add_paths(ensure_paths(paths))
        return self.offline_router.path_graph.node_count()

    def clear_cache(self):
        self.cache.clear()

    def next_instruction(self, points: Sequence[LatLonLike], current: LatLonLike,
                         destination: LatLonLike) -> str:
        return build_next_instruction(
            [to_coordinate(p) for p in points],
            to_coordinate(current),
            to_coordinate(destination),
            **self.config.get_guidance_config(),
        )
