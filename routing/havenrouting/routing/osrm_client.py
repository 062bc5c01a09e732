"""
OSRM routing client.

Talks to an ordered list of OSRM-compatible endpoints per profile and turns
their JSON into an owned ``Route``. Coordinates go out as ``lon,lat``.
Failures stay inside this module: ``fetch_route`` returns ``None`` and the
engine decides what to do next.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from ..config import DEFAULT_BICYCLE_ENDPOINTS, DEFAULT_FOOT_ENDPOINTS
from ..exceptions import InvalidCoordinatesError, MalformedResponseError, RoutingServiceError
from ..logger import logger as haven_logger
from ..models.coordinate import Coordinate
from ..models.route import Maneuver, Route, RoutingProfile, SourceKind
from ..utils.geo_utils import decode_polyline
from ..utils.http_session import AbortableSession
from ..utils.instruction_utils import maneuver_instruction

logger = logging.getLogger(__name__)

DEFAULT_SCORE_WEIGHTS = {
    'foot': (0.7, 0.3),
    'bicycle': (0.6, 0.4),
}


class OSRMClient:
    """
    Remote route lookup with per-endpoint retry and endpoint fallback.

    Every attempt gets its own HTTP session from ``session_factory``. When the
    awaiting task is cancelled the session is aborted, which shuts down the
    socket of the in-flight request, and then closed.
    """

    def __init__(self, endpoints: Optional[Dict[str, List[str]]] = None, max_retries: int = 3,
                 retry_delay_s: float = 1.0, connect_timeout_s: float = 10.0,
                 read_timeout_s: float = 15.0, geometries: str = 'polyline',
                 user_agent: str = 'HavenRouting/1.0',
                 profile_score_weights: Optional[Dict[str, tuple]] = None,
                 language: str = 'de',
                 session_factory: Callable[[], Any] = AbortableSession):
        self.endpoints = endpoints or {
            'foot': list(DEFAULT_FOOT_ENDPOINTS),
            'bicycle': list(DEFAULT_BICYCLE_ENDPOINTS),
        }
        self.max_retries = max(1, int(max_retries))
        self.retry_delay_s = retry_delay_s
        self.timeout = (connect_timeout_s, read_timeout_s)
        self.geometries = geometries
        self.user_agent = user_agent
        self.profile_score_weights = profile_score_weights or dict(DEFAULT_SCORE_WEIGHTS)
        self.language = language
        self.session_factory = session_factory

    # ----------------
    # Request construction
    # ----------------
    def endpoints_for(self, profile: RoutingProfile) -> List[str]:
        return list(self.endpoints.get(profile.value, []))

    @staticmethod
    def build_url(base: str, start: Coordinate, destination: Coordinate) -> str:
        """``{base}{lon1},{lat1};{lon2},{lat2}``"""
        return (f"{base}{start.longitude},{start.latitude};"
                f"{destination.longitude},{destination.latitude}")

    def build_params(self) -> Dict[str, str]:
        return {
            'overview': 'full',
            'steps': 'true',
            'geometries': self.geometries,
            'alternatives': 'true',
            'continue_straight': 'true',
        }

    # ----------------
    # Public API
    # ----------------
    async def fetch_route(self, start: Coordinate, destination: Coordinate,
                          profile: RoutingProfile = RoutingProfile.FOOT) -> Optional[Route]:
        """
        Try the primary endpoint, then each fallback, ``max_retries`` times each
        with ``retry_delay_s`` between failed attempts. Returns the first
        structurally valid route, or ``None`` once everything has failed.
        """
        endpoints = self.endpoints_for(profile)
        if not endpoints:
            logger.warning(f"No routing endpoints configured for profile '{profile.value}'")
            return None

        for index, base in enumerate(endpoints):
            url = self.build_url(base, start, destination)
            label = 'primary' if index == 0 else f'fallback {index}'
            for attempt in range(1, self.max_retries + 1):
                started = time.perf_counter()
                try:
                    route = await self._attempt(url, profile)
                except RoutingServiceError as e:
                    elapsed_ms = (time.perf_counter() - started) * 1000
                    haven_logger.log_api_call(base, elapsed_ms, False)
                    logger.warning(f"Routing request to {label} endpoint failed "
                                   f"(attempt {attempt}/{self.max_retries}): {e}")
                    if attempt < self.max_retries:
                        await asyncio.sleep(self.retry_delay_s)
                    continue
                elapsed_ms = (time.perf_counter() - started) * 1000
                haven_logger.log_api_call(base, elapsed_ms, True)
                logger.info(f"Remote route from {label} endpoint: {len(route.points)} points, "
                            f"{route.distance_meters:.0f} m")
                return route

        logger.warning(f"All {len(endpoints)} routing endpoints failed for profile '{profile.value}'")
        return None

    # ----------------
    # Single attempt
    # ----------------
    async def _attempt(self, url: str, profile: RoutingProfile) -> Route:
        session = self.session_factory()
        try:
            response = await asyncio.to_thread(self._get, session, url)
        except asyncio.CancelledError:
            abort = getattr(session, 'abort', None)
            if abort is not None:
                abort()
            raise
        finally:
            session.close()
        return self.parse_response(response, profile, endpoint=url)

    def _get(self, session, url: str):
        try:
            return session.get(
                url,
                params=self.build_params(),
                headers={'User-Agent': self.user_agent},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise RoutingServiceError(f"Request timed out: {e}", endpoint=url)
        except requests.exceptions.RequestException as e:
            raise RoutingServiceError(f"Request failed: {e}", endpoint=url)

    def parse_response(self, response, profile: RoutingProfile, endpoint: Optional[str] = None) -> Route:
        status = getattr(response, 'status_code', None)
        if status is None or not 200 <= status < 300:
            raise RoutingServiceError(f"HTTP status {status}", endpoint=endpoint, status_code=status)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Response is not JSON: {e}", endpoint=endpoint,
                                         status_code=status)
        if not isinstance(data, dict):
            raise MalformedResponseError("Response body is not a JSON object", endpoint=endpoint,
                                         status_code=status)

        code = data.get('code')
        if code != 'Ok':
            raise RoutingServiceError(f"Service returned code {code!r}: {data.get('message', '')}",
                                      endpoint=endpoint, status_code=status)

        routes = data.get('routes')
        if not isinstance(routes, list) or not routes:
            raise MalformedResponseError("Response contains no routes", endpoint=endpoint,
                                         status_code=status)

        best = self.select_best_route(routes, profile)
        if best is None:
            raise MalformedResponseError("Response contains no usable route objects",
                                         endpoint=endpoint, status_code=status)

        points = self.parse_geometry(best.get('geometry'))
        if len(points) < 2:
            raise MalformedResponseError(f"Route geometry has {len(points)} usable points",
                                         endpoint=endpoint, status_code=status)

        instructions = [maneuver_instruction(m.type, m.modifier, self.language)
                        for m in self.extract_maneuvers(best)]
        return Route(points, SourceKind.REMOTE, instructions)

    # ----------------
    # Response helpers
    # ----------------
    def score_route(self, route: Dict[str, Any], profile: RoutingProfile) -> float:
        duration_weight, distance_weight = self.profile_score_weights.get(
            profile.value, DEFAULT_SCORE_WEIGHTS['foot'])
        try:
            duration = float(route.get('duration'))
            distance = float(route.get('distance'))
        except (TypeError, ValueError):
            return float('inf')
        return duration_weight * duration + distance_weight * distance

    def select_best_route(self, routes: Sequence[Any], profile: RoutingProfile) -> Optional[Dict[str, Any]]:
        """Lowest weighted (duration, distance) score; first one wins ties"""
        candidates = [r for r in routes if isinstance(r, dict)]
        if not candidates:
            return None
        return min(candidates, key=lambda r: self.score_route(r, profile))

    @staticmethod
    def parse_geometry(geometry: Any) -> List[Coordinate]:
        """Polyline string, GeoJSON LineString or bare [[lon, lat], ...] list"""
        if isinstance(geometry, str):
            return decode_polyline(geometry)

        if isinstance(geometry, dict):
            geometry = geometry.get('coordinates')

        if not isinstance(geometry, (list, tuple)):
            raise MalformedResponseError(f"Unsupported geometry type: {type(geometry).__name__}")

        points = []
        for pair in geometry:
            try:
                points.append(Coordinate.from_lon_lat(pair))
            except (InvalidCoordinatesError, TypeError):
                logger.debug(f"Dropping invalid geometry coordinate: {pair!r}")
        return points

    @staticmethod
    def extract_maneuvers(route: Dict[str, Any]) -> List[Maneuver]:
        """OSRM legs[].steps[].maneuver; entries of the wrong shape are skipped"""
        maneuvers = []
        legs = route.get('legs')
        if not isinstance(legs, list):
            return maneuvers
        for leg in legs:
            steps = leg.get('steps') if isinstance(leg, dict) else None
            if not isinstance(steps, list):
                continue
            for step in steps:
                maneuver = step.get('maneuver') if isinstance(step, dict) else None
                if isinstance(maneuver, dict) and isinstance(maneuver.get('type'), str):
                    modifier = maneuver.get('modifier')
                    maneuvers.append(Maneuver(maneuver['type'], modifier if isinstance(modifier, str) else None))
        return maneuvers
