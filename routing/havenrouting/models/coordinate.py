import math
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

from ..exceptions import InvalidCoordinatesError


@dataclass(frozen=True)
class Coordinate:
    """Immutable WGS84 point (degrees)"""
    latitude: float
    longitude: float

    def __post_init__(self):
        try:
            lat = float(self.latitude)
            lon = float(self.longitude)
        except (TypeError, ValueError):
            raise InvalidCoordinatesError(
                f"Coordinates must be numeric: ({self.latitude!r}, {self.longitude!r})"
            )
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise InvalidCoordinatesError(f"Coordinates must be finite: ({lat}, {lon})")
        if not is_valid_lat_lon(lat, lon):
            raise InvalidCoordinatesError(f"Coordinates out of bounds: ({lat}, {lon})")
        object.__setattr__(self, 'latitude', lat)
        object.__setattr__(self, 'longitude', lon)

    @classmethod
    def from_lon_lat(cls, pair: Sequence[float]) -> "Coordinate":
        """Build from a GeoJSON / OSRM style [lon, lat] pair"""
        if not isinstance(pair, (list, tuple)) or len(pair) < 2:
            raise InvalidCoordinatesError(f"Expected [lon, lat], got {pair!r}")
        return cls(pair[1], pair[0])

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    def as_lon_lat(self) -> Tuple[float, float]:
        return (self.longitude, self.latitude)


LatLonLike = Union[Coordinate, Sequence[float]]


def is_valid_lat_lon(lat: float, lon: float) -> bool:
    """Validate coordinate bounds"""
    return -90 <= lat <= 90 and -180 <= lon <= 180


def to_coordinate(value: LatLonLike) -> Coordinate:
    """Coerce a Coordinate, (lat, lon) pair or {'lat', 'lon'} dict into a Coordinate"""
    if isinstance(value, Coordinate):
        return value
    if isinstance(value, dict):
        if 'lat' not in value or 'lon' not in value:
            raise InvalidCoordinatesError(f"Coordinate dict needs 'lat' and 'lon': {value!r}")
        return Coordinate(value['lat'], value['lon'])
    try:
        lat, lon = value
    except (TypeError, ValueError):
        raise InvalidCoordinatesError(f"Cannot interpret {value!r} as (lat, lon)")
    return Coordinate(lat, lon)
