import pytest

from havenrouting.models.coordinate import Coordinate
from havenrouting.utils.instruction_utils import (
    cardinal_direction,
    classify_turn,
    format_distance,
    maneuver_instruction,
    next_instruction,
    route_instructions,
    turn_instruction,
)

# east along 53.5N for two ~66 m legs, then south for two ~111 m legs
L_ROUTE = [
    Coordinate(53.500, 8.000),
    Coordinate(53.500, 8.001),
    Coordinate(53.500, 8.002),
    Coordinate(53.499, 8.002),
    Coordinate(53.498, 8.002),
]

STRAIGHT_EAST = [Coordinate(53.5, 8.0 + i * 0.001) for i in range(8)]


@pytest.mark.parametrize("angle, expected", [
    (0.0, 'straight'),
    (-10.0, 'straight'),
    (25.0, 'slight_right'),
    (-30.0, 'slight_left'),
    (45.0, 'turn_right'),
    (-80.0, 'turn_left'),
    (120.0, 'sharp_right'),
    (-150.0, 'sharp_left'),
    (170.0, 'uturn'),
    (-180.0, 'uturn'),
])
def test_classify_turn_thresholds(angle, expected):
    assert classify_turn(angle) == expected


def test_turn_instruction_languages():
    assert turn_instruction(90.0) == "Biegen Sie scharf rechts ab"
    assert turn_instruction(-60.0) == "Biegen Sie links ab"
    assert turn_instruction(-60.0, 'en') == "Turn left"
    assert turn_instruction(175.0, 'en') == "Make a U-turn"


def test_unknown_language_falls_back_to_german():
    assert turn_instruction(0.0, 'fr') == "Fahren Sie geradeaus"


def test_maneuver_instruction_mapping():
    assert maneuver_instruction('depart') == "Starten Sie Ihre Route"
    assert maneuver_instruction('turn', 'sharp left') == "Biegen Sie scharf links ab"
    assert maneuver_instruction('new name', 'straight') == "Fahren Sie geradeaus"
    assert maneuver_instruction('continue', 'slight left') == "Halten Sie sich links"
    assert maneuver_instruction('roundabout', 'right') == "Fahren Sie in den Kreisverkehr"
    assert maneuver_instruction('arrive', None, 'en') == "You have arrived at your destination"
    assert maneuver_instruction('notification') == "Folgen Sie der Route"


def test_format_distance():
    assert format_distance(850.4) == "Entfernung: 850 m"
    assert format_distance(1500.0) == "Entfernung: 1,5 km"
    assert format_distance(1500.0, 'en') == "Distance: 1.5 km"


def test_cardinal_direction():
    assert cardinal_direction(0.0) == "Norden"
    assert cardinal_direction(93.0) == "Osten"
    assert cardinal_direction(350.0, 'en') == "north"
    assert cardinal_direction(225.0, 'en') == "southwest"


def test_route_instructions_for_l_route():
    assert route_instructions(L_ROUTE) == [
        "Starten Sie Ihre Route",
        "Biegen Sie scharf rechts ab",
        "Sie haben Ihr Ziel erreicht",
    ]


def test_route_instructions_two_points():
    assert route_instructions(L_ROUTE[:2], 'en') == ["Follow the route", "You have arrived at your destination"]


def test_next_instruction_upcoming_turn():
    text = next_instruction(L_ROUTE, L_ROUTE[0], L_ROUTE[-1])
    assert text == "In 130 Metern: Biegen Sie scharf rechts ab"


def test_next_instruction_turn_is_close():
    # corner ~26 m after the second point
    route = [
        Coordinate(53.500, 8.0000),
        Coordinate(53.500, 8.0010),
        Coordinate(53.500, 8.0014),
        Coordinate(53.499, 8.0014),
        Coordinate(53.498, 8.0014),
    ]
    text = next_instruction(route, route[1], route[-1], language='en')
    assert text == "Now: Turn sharp right"


def test_next_instruction_off_route():
    assert next_instruction(L_ROUTE, Coordinate(53.51, 8.0), L_ROUTE[-1]) == "Kehren Sie zur Route zurück"


def test_next_instruction_arrival_and_approach():
    assert next_instruction(L_ROUTE, L_ROUTE[-1], L_ROUTE[-1]) == "Sie haben Ihr Ziel erreicht"
    assert next_instruction(L_ROUTE, L_ROUTE[-2], L_ROUTE[-1]) == "Sie nähern sich Ihrem Ziel"


def test_next_instruction_heading_without_turns():
    text = next_instruction(STRAIGHT_EAST, STRAIGHT_EAST[0], STRAIGHT_EAST[-1])
    assert text == "Fahren Sie weiter Richtung Osten"
