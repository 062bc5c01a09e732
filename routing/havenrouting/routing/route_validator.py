import logging
from typing import Sequence, Union

import numpy as np

from ..models.coordinate import Coordinate
from ..models.route import Route, ValidationVerdict
from ..utils.geo_utils import distance_meters, segment_lengths, turn_angle

logger = logging.getLogger(__name__)


class RouteValidator:
    """
    Heuristic plausibility checks for a candidate route.

    Checks run in a fixed order (size, endpoints, segment lengths, turn angles,
    point density) and the first failing check's message is the verdict reason.
    Nothing here knows real road topology; the checks only catch geometry that
    is obviously wrong, like a route cutting straight across water.
    """

    def __init__(self, min_route_points: int = 3, max_endpoint_distance_m: float = 500.0,
                 max_suspicious_segment_m: float = 300.0, max_suspicious_segments: int = 2,
                 max_angle_deg: float = 60.0, max_suspicious_angles: int = 3,
                 min_density_samples: int = 10, min_density_cv: float = 0.1):
        self.min_route_points = min_route_points
        self.max_endpoint_distance_m = max_endpoint_distance_m
        self.max_suspicious_segment_m = max_suspicious_segment_m
        self.max_suspicious_segments = max_suspicious_segments
        self.max_angle_deg = max_angle_deg
        self.max_suspicious_angles = max_suspicious_angles
        self.min_density_samples = min_density_samples
        self.min_density_cv = min_density_cv

    def validate(self, candidate: Union[Route, Sequence[Coordinate]], start: Coordinate,
                 destination: Coordinate) -> ValidationVerdict:
        points = list(candidate.points if isinstance(candidate, Route) else candidate)

        checks = (
            lambda: self._check_size(points),
            lambda: self._check_endpoints(points, start, destination),
            lambda: self._check_segments(points),
            lambda: self._check_angles(points),
            lambda: self._check_density(points),
        )
        for check in checks:
            reason = check()
            if reason:
                return ValidationVerdict(False, reason)
        return ValidationVerdict(True, "Route passed all plausibility checks")

    def _check_size(self, points):
        if len(points) < self.min_route_points:
            return (f"Route has too few points: {len(points)} "
                    f"(need at least {self.min_route_points})")
        return None

    def _check_endpoints(self, points, start, destination):
        start_gap = distance_meters(points[0], start)
        if start_gap > self.max_endpoint_distance_m:
            return (f"Route start point is too far from requested start: endpoint distance "
                    f"{start_gap:.0f} m exceeds {self.max_endpoint_distance_m:.0f} m")
        end_gap = distance_meters(points[-1], destination)
        if end_gap > self.max_endpoint_distance_m:
            return (f"Route end point is too far from requested destination: endpoint distance "
                    f"{end_gap:.0f} m exceeds {self.max_endpoint_distance_m:.0f} m")
        return None

    def _check_segments(self, points):
        suspicious = 0
        for i, length in enumerate(segment_lengths(points)):
            if length > self.max_suspicious_segment_m:
                suspicious += 1
                logger.debug(f"Suspicious segment {i}: {length:.0f} m")
        if suspicious > self.max_suspicious_segments:
            return (f"Route has {suspicious} segments longer than "
                    f"{self.max_suspicious_segment_m:.0f} m (max {self.max_suspicious_segments})")
        return None

    def _check_angles(self, points):
        if len(points) < 3:
            return None
        suspicious = 0
        for i in range(1, len(points) - 1):
            angle = turn_angle(points[i - 1], points[i], points[i + 1])
            if abs(angle) > self.max_angle_deg:
                suspicious += 1
                logger.debug(f"Suspicious turn at point {i}: {angle:.1f} deg")
        if suspicious > self.max_suspicious_angles:
            return (f"Route has {suspicious} turns sharper than {self.max_angle_deg:.0f} deg "
                    f"(max {self.max_suspicious_angles})")
        return None

    def _check_density(self, points):
        if len(points) < self.min_density_samples:
            return None
        lengths = np.asarray(segment_lengths(points), dtype=float)
        mean = float(lengths.mean())
        if mean <= 0:
            return "Route point density is degenerate: all points coincide"
        cv = float(lengths.std()) / mean
        if cv < self.min_density_cv:
            return (f"Route point spacing is suspiciously uniform: coefficient of variation "
                    f"{cv:.3f} below {self.min_density_cv}")
        return None
