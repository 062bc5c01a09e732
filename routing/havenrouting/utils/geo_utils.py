import logging
import math
from typing import Iterable, List, Sequence

import numpy as np
import polyline as _polyline

from ..models.coordinate import Coordinate, is_valid_lat_lon

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate haversine distance between two points in meters"""
    lat1_rad = math.radians(lat1)
    lon1_rad = math.radians(lon1)
    lat2_rad = math.radians(lat2)
    lon2_rad = math.radians(lon2)
    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad
    a = (math.sin(dlat/2)**2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon/2)**2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def vectorized_haversine(lat1, lon1, lat2, lon2):
    """Vectorized haversine distance calculation using numpy (meters)"""
    lat1, lon1, lat2, lon2 = map(np.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = np.sin(dlat/2)**2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon/2)**2
    c = 2 * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))

    return EARTH_RADIUS_M * c


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in meters"""
    return haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def path_length(points: Sequence[Coordinate]) -> float:
    """Sum of great-circle distances over consecutive points"""
    return sum(distance_meters(points[i], points[i + 1]) for i in range(len(points) - 1))


def segment_lengths(points: Sequence[Coordinate]) -> List[float]:
    return [distance_meters(points[i], points[i + 1]) for i in range(len(points) - 1)]


def bearing_degrees(a: Coordinate, b: Coordinate) -> float:
    """Initial bearing from a to b in [0, 360), 0 = north, clockwise"""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    y = math.sin(dlon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)

    bearing = math.degrees(math.atan2(y, x)) % 360.0
    # -0.0 % 360 and tiny negatives can round up to 360.0
    return 0.0 if bearing >= 360.0 else bearing


def angle_difference(bearing_in: float, bearing_out: float) -> float:
    """Signed turn from bearing_in to bearing_out, normalised to (-180, 180]; positive = right"""
    diff = (bearing_out - bearing_in) % 360.0
    if diff > 180.0:
        diff -= 360.0
    return diff


def turn_angle(prev: Coordinate, current: Coordinate, nxt: Coordinate) -> float:
    """Signed bearing change at ``current`` between the incoming and outgoing segments"""
    return angle_difference(bearing_degrees(prev, current), bearing_degrees(current, nxt))


def interpolate(a: Coordinate, b: Coordinate, fraction: float) -> Coordinate:
    """Linear interpolation per axis; fine below ~50 km"""
    return Coordinate(
        a.latitude + (b.latitude - a.latitude) * fraction,
        a.longitude + (b.longitude - a.longitude) * fraction,
    )


def _read_varint(encoded: str, index: int):
    """Read one zig-zag encoded value starting at ``index``.

    Returns (value, next_index), or None when the string ends mid-group or
    holds a character outside the polyline alphabet.
    """
    result = 0
    shift = 0
    length = len(encoded)
    while True:
        if index >= length:
            return None
        b = ord(encoded[index]) - 63
        index += 1
        if b < 0 or b > 63:
            return None
        result |= (b & 0x1f) << shift
        shift += 5
        if b < 0x20:
            break
    value = ~(result >> 1) if result & 1 else result >> 1
    return value, index


def decode_polyline(encoded: str, precision: float = 1e-5) -> List[Coordinate]:
    """Decode a Google encoded polyline.

    Out-of-range points are dropped. A string truncated mid-group ends the
    stream: everything decoded before the broken point is returned.
    """
    points: List[Coordinate] = []
    if not encoded:
        return points

    digits = max(0, int(round(-math.log10(precision))))
    index = 0
    lat = 0
    lng = 0
    length = len(encoded)
    while index < length:
        lat_part = _read_varint(encoded, index)
        if lat_part is None:
            logger.warning(f"Polyline truncated at index {index}, keeping {len(points)} points")
            break
        dlat, index = lat_part
        lng_part = _read_varint(encoded, index)
        if lng_part is None:
            logger.warning(f"Polyline truncated at index {index}, keeping {len(points)} points")
            break
        dlng, index = lng_part
        lat += dlat
        lng += dlng

        lat_value = round(lat * precision, digits)
        lng_value = round(lng * precision, digits)
        if is_valid_lat_lon(lat_value, lng_value):
            points.append(Coordinate(lat_value, lng_value))
        else:
            logger.debug(f"Dropping out-of-range polyline point: lat={lat_value}, lng={lng_value}")

    return points


def encode_polyline(points: Iterable[Coordinate], precision: float = 1e-5) -> str:
    """Encode coordinates as a Google polyline string"""
    digits = int(round(-math.log10(precision)))
    return _polyline.encode([p.as_tuple() for p in points], precision=digits)
