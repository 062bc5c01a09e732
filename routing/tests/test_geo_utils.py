import random

import polyline
import pytest

from havenrouting.exceptions import InvalidCoordinatesError
from havenrouting.models.coordinate import Coordinate, to_coordinate
from havenrouting.utils.geo_utils import (
    angle_difference,
    bearing_degrees,
    decode_polyline,
    distance_meters,
    encode_polyline,
    interpolate,
    path_length,
)

# Reference string from the polyline algorithm documentation
GOOGLE_EXAMPLE = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"
GOOGLE_POINTS = [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]


def test_distance_one_degree_latitude():
    d = distance_meters(Coordinate(0.0, 0.0), Coordinate(1.0, 0.0))
    assert d == pytest.approx(111194.9, abs=1.0)


def test_distance_is_symmetric_and_zero_on_same_point():
    a = Coordinate(53.5142, 8.1428)
    b = Coordinate(53.5049, 8.1554)
    assert distance_meters(a, b) == pytest.approx(distance_meters(b, a))
    assert distance_meters(a, a) == 0.0


def test_bearing_cardinal_directions():
    origin = Coordinate(0.0, 0.0)
    assert bearing_degrees(origin, Coordinate(1.0, 0.0)) == pytest.approx(0.0, abs=1e-9)
    assert bearing_degrees(origin, Coordinate(0.0, 1.0)) == pytest.approx(90.0, abs=1e-9)
    assert bearing_degrees(origin, Coordinate(-1.0, 0.0)) == pytest.approx(180.0, abs=1e-9)
    assert bearing_degrees(origin, Coordinate(0.0, -1.0)) == pytest.approx(270.0, abs=1e-9)


def test_bearing_stays_in_range():
    rng = random.Random(7)
    for _ in range(200):
        a = Coordinate(rng.uniform(-80, 80), rng.uniform(-179, 179))
        b = Coordinate(rng.uniform(-80, 80), rng.uniform(-179, 179))
        assert 0.0 <= bearing_degrees(a, b) < 360.0


def test_angle_difference_normalisation():
    assert angle_difference(350.0, 10.0) == pytest.approx(20.0)
    assert angle_difference(10.0, 350.0) == pytest.approx(-20.0)
    assert angle_difference(0.0, 180.0) == pytest.approx(180.0)
    assert angle_difference(90.0, 0.0) == pytest.approx(-90.0)


def test_interpolate_midpoint():
    mid = interpolate(Coordinate(10.0, 20.0), Coordinate(12.0, 24.0), 0.5)
    assert mid == Coordinate(11.0, 22.0)


def test_path_length_sums_segments():
    points = [Coordinate(0, 0), Coordinate(0, 1), Coordinate(1, 1)]
    expected = distance_meters(points[0], points[1]) + distance_meters(points[1], points[2])
    assert path_length(points) == pytest.approx(expected)
    assert path_length(points[:1]) == 0.0


def test_decode_reference_polyline():
    decoded = decode_polyline(GOOGLE_EXAMPLE)
    assert [p.as_tuple() for p in decoded] == GOOGLE_POINTS


def test_polyline_round_trip_random_sequences():
    rng = random.Random(42)
    for _ in range(25):
        points = [Coordinate(round(rng.uniform(-90, 90), 5), round(rng.uniform(-180, 180), 5))
                  for _ in range(rng.randint(2, 30))]
        decoded = decode_polyline(encode_polyline(points))
        assert len(decoded) == len(points)
        for original, result in zip(points, decoded):
            assert result.latitude == pytest.approx(original.latitude, abs=1e-5)
            assert result.longitude == pytest.approx(original.longitude, abs=1e-5)


def test_encode_matches_polyline_package():
    points = [Coordinate(*p) for p in GOOGLE_POINTS]
    assert encode_polyline(points) == polyline.encode(GOOGLE_POINTS)


def test_decode_with_precision_six():
    encoded = polyline.encode([(53.514201, 8.142801), (53.504902, 8.155403)], precision=6)
    decoded = decode_polyline(encoded, precision=1e-6)
    assert decoded[0].as_tuple() == (53.514201, 8.142801)
    assert decoded[1].as_tuple() == (53.504902, 8.155403)


def test_truncated_polyline_keeps_prefix():
    decoded = decode_polyline(GOOGLE_EXAMPLE[:-1])
    assert [p.as_tuple() for p in decoded] == GOOGLE_POINTS[:2]


def test_invalid_character_ends_stream():
    decoded = decode_polyline(GOOGLE_EXAMPLE[:10] + " " + GOOGLE_EXAMPLE[10:])
    assert [p.as_tuple() for p in decoded] == GOOGLE_POINTS[:1]


def test_out_of_range_points_are_dropped():
    encoded = polyline.encode([(10.0, 10.0), (95.0, 10.0), (11.0, 10.0)])
    decoded = decode_polyline(encoded)
    assert [p.as_tuple() for p in decoded] == [(10.0, 10.0), (11.0, 10.0)]


def test_empty_polyline():
    assert decode_polyline("") == []


@pytest.mark.parametrize("lat, lon", [(91, 0), (-90.5, 0), (0, 180.1), (float('nan'), 0), ("x", 1)])
def test_invalid_coordinates_rejected(lat, lon):
    with pytest.raises(InvalidCoordinatesError):
        Coordinate(lat, lon)


def test_to_coordinate_accepts_dict_and_pair():
    assert to_coordinate({'lat': 1, 'lon': 2}) == Coordinate(1.0, 2.0)
    assert to_coordinate([1, 2]) == Coordinate(1.0, 2.0)
    with pytest.raises(InvalidCoordinatesError):
        to_coordinate({'lat': 1})
    with pytest.raises(InvalidCoordinatesError):
        to_coordinate(5)
