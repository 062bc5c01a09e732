from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .coordinate import Coordinate
from ..utils.geo_utils import path_length


class SourceKind(Enum):
    """Which tier of the resolution chain produced a route"""
    REMOTE = 'remote'
    OFFLINE_GRAPH = 'offline_graph'
    SYNTHETIC_FALLBACK = 'synthetic_fallback'


class RoutingProfile(Enum):
    """Travel mode; selects endpoint list and alternative scoring"""
    FOOT = 'foot'
    BICYCLE = 'bicycle'

    @classmethod
    def parse(cls, value: Any) -> "RoutingProfile":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        aliases = {'walking': 'foot', 'walk': 'foot', 'bike': 'bicycle', 'cycling': 'bicycle'}
        return cls(aliases.get(text, text))


@dataclass(frozen=True)
class Maneuver:
    """A single OSRM step maneuver"""
    type: str
    modifier: Optional[str] = None


@dataclass(frozen=True)
class Route:
    """Resolved route.

    ``distance_meters`` is derived from ``points`` on construction and is never
    taken from upstream data.
    """
    points: Tuple[Coordinate, ...]
    source_kind: SourceKind
    instructions: Tuple[str, ...] = ()
    distance_meters: float = field(init=False)

    def __post_init__(self):
        points = tuple(self.points)
        if len(points) < 2:
            raise ValueError(f"A route needs at least two points, got {len(points)}")
        object.__setattr__(self, 'points', points)
        object.__setattr__(self, 'instructions', tuple(self.instructions))
        object.__setattr__(self, 'distance_meters', path_length(points))

    @property
    def start(self) -> Coordinate:
        return self.points[0]

    @property
    def end(self) -> Coordinate:
        return self.points[-1]

    @property
    def is_approximate(self) -> bool:
        return self.source_kind is SourceKind.SYNTHETIC_FALLBACK

    def to_dict(self) -> Dict[str, Any]:
        return {
            'points': [list(p.as_tuple()) for p in self.points],
            'distance_m': round(self.distance_meters, 3),
            'source': self.source_kind.value,
            'approximate': self.is_approximate,
            'instructions': list(self.instructions),
        }


@dataclass(frozen=True)
class ValidationVerdict:
    """Result of the heuristic route checks"""
    valid: bool
    reason: str
