"""
Human-readable guidance text derived from route geometry and OSRM maneuvers.

One threshold table is used everywhere (signed angle, positive = right):

    |angle| <= 10   straight
    |angle| <= 30   slight
    |angle| <= 80   turn
    |angle| <= 150  sharp
    otherwise       u-turn
"""

from typing import List, Optional, Sequence

from ..models.coordinate import Coordinate
from .geo_utils import bearing_degrees, distance_meters, path_length, turn_angle

STRAIGHT_MAX_DEG = 10.0
SLIGHT_MAX_DEG = 30.0
TURN_MAX_DEG = 80.0
SHARP_MAX_DEG = 150.0

# Interior points turning more than this get their own entry in route_instructions
INSTRUCTION_ANGLE_DEG = SLIGHT_MAX_DEG

TEXTS = {
    'de': {
        'straight': "Fahren Sie geradeaus",
        'slight_right': "Halten Sie sich rechts",
        'slight_left': "Halten Sie sich links",
        'turn_right': "Biegen Sie rechts ab",
        'turn_left': "Biegen Sie links ab",
        'sharp_right': "Biegen Sie scharf rechts ab",
        'sharp_left': "Biegen Sie scharf links ab",
        'uturn': "Bitte wenden Sie",
        'depart': "Starten Sie Ihre Route",
        'arrive': "Sie haben Ihr Ziel erreicht",
        'approaching': "Sie nähern sich Ihrem Ziel",
        'off_route': "Kehren Sie zur Route zurück",
        'follow': "Folgen Sie der Route",
        'roundabout': "Fahren Sie in den Kreisverkehr",
        'exit_roundabout': "Verlassen Sie den Kreisverkehr",
        'now': "Jetzt",
        'soon': "In Kürze",
        'in_meters': "In {meters} Metern",
        'in_km': "In {km} km",
        'heading': "Fahren Sie weiter Richtung {direction}",
        'distance_m': "Entfernung: {meters} m",
        'distance_km': "Entfernung: {km} km",
        'cardinals': ["Norden", "Nordosten", "Osten", "Südosten",
                      "Süden", "Südwesten", "Westen", "Nordwesten"],
        'decimal': ',',
    },
    'en': {
        'straight': "Continue straight",
        'slight_right': "Keep right",
        'slight_left': "Keep left",
        'turn_right': "Turn right",
        'turn_left': "Turn left",
        'sharp_right': "Turn sharp right",
        'sharp_left': "Turn sharp left",
        'uturn': "Make a U-turn",
        'depart': "Start your route",
        'arrive': "You have arrived at your destination",
        'approaching': "You are approaching your destination",
        'off_route': "Return to the route",
        'follow': "Follow the route",
        'roundabout': "Enter the roundabout",
        'exit_roundabout': "Exit the roundabout",
        'now': "Now",
        'soon': "Shortly",
        'in_meters': "In {meters} meters",
        'in_km': "In {km} km",
        'heading': "Continue heading {direction}",
        'distance_m': "Distance: {meters} m",
        'distance_km': "Distance: {km} km",
        'cardinals': ["north", "northeast", "east", "southeast",
                      "south", "southwest", "west", "northwest"],
        'decimal': '.',
    },
}

MODIFIER_KEYS = {
    'right': 'turn_right',
    'left': 'turn_left',
    'slight right': 'slight_right',
    'slight left': 'slight_left',
    'sharp right': 'sharp_right',
    'sharp left': 'sharp_left',
    'straight': 'straight',
    'uturn': 'uturn',
}


def _texts(language: str) -> dict:
    return TEXTS.get(language, TEXTS['de'])


def _format_km(value_m: float, language: str) -> str:
    return f"{value_m / 1000:.1f}".replace('.', _texts(language)['decimal'])


def classify_turn(angle: float) -> str:
    """Map a signed bearing change to a text key"""
    magnitude = abs(angle)
    side = 'right' if angle > 0 else 'left'
    if magnitude <= STRAIGHT_MAX_DEG:
        return 'straight'
    if magnitude <= SLIGHT_MAX_DEG:
        return f'slight_{side}'
    if magnitude <= TURN_MAX_DEG:
        return f'turn_{side}'
    if magnitude <= SHARP_MAX_DEG:
        return f'sharp_{side}'
    return 'uturn'


def turn_instruction(angle: float, language: str = 'de') -> str:
    return _texts(language)[classify_turn(angle)]


def maneuver_instruction(maneuver_type: str, modifier: Optional[str] = None, language: str = 'de') -> str:
    """Text for an OSRM step maneuver"""
    texts = _texts(language)
    maneuver_type = (maneuver_type or '').lower()
    modifier = (modifier or '').lower()
    if maneuver_type == 'depart':
        return texts['depart']
    if maneuver_type == 'arrive':
        return texts['arrive']
    if maneuver_type in ('roundabout', 'rotary'):
        return texts['roundabout']
    if maneuver_type in ('exit roundabout', 'exit rotary'):
        return texts['exit_roundabout']
    if maneuver_type in ('uturn',):
        return texts['uturn']
    if maneuver_type in ('turn', 'end of road', 'fork', 'on ramp', 'off ramp', 'merge'):
        return texts[MODIFIER_KEYS.get(modifier, 'follow')]
    if maneuver_type in ('continue', 'new name', 'straight'):
        if modifier in MODIFIER_KEYS and modifier != 'straight':
            return texts[MODIFIER_KEYS[modifier]]
        return texts['straight']
    return texts['follow']


def cardinal_direction(bearing: float, language: str = 'de') -> str:
    index = int(((bearing % 360.0) + 22.5) // 45.0) % 8
    return _texts(language)['cardinals'][index]


def format_distance(distance_m: float, language: str = 'de') -> str:
    texts = _texts(language)
    if distance_m < 1000:
        return texts['distance_m'].format(meters=int(distance_m))
    return texts['distance_km'].format(km=_format_km(distance_m, language))


def _distance_phrase(distance_m: float, language: str) -> str:
    texts = _texts(language)
    if distance_m < 30:
        return texts['now']
    if distance_m < 100:
        return texts['soon']
    if distance_m < 1000:
        return texts['in_meters'].format(meters=int(distance_m // 10) * 10)
    return texts['in_km'].format(km=_format_km(distance_m, language))


def route_instructions(points: Sequence[Coordinate], language: str = 'de') -> List[str]:
    """Start text, one entry per significant turn, arrival text"""
    texts = _texts(language)
    if len(points) < 3:
        return [texts['follow'], texts['arrive']]

    instructions = [texts['depart']]
    for i in range(1, len(points) - 1):
        angle = turn_angle(points[i - 1], points[i], points[i + 1])
        if abs(angle) > INSTRUCTION_ANGLE_DEG:
            instructions.append(turn_instruction(angle, language))
    instructions.append(texts['arrive'])
    return instructions


def next_instruction(points: Sequence[Coordinate], current: Coordinate, destination: Coordinate,
                     language: str = 'de', off_route_m: float = 50.0, arrival_m: float = 50.0,
                     turn_detection_deg: float = 25.0, lookahead_points: int = 5) -> str:
    """Guidance for someone standing at ``current`` while following ``points``"""
    texts = _texts(language)
    if len(points) < 2:
        return texts['follow']

    distances = [distance_meters(current, p) for p in points]
    closest = min(range(len(points)), key=distances.__getitem__)

    if distances[closest] > off_route_m:
        return texts['off_route']

    if closest >= len(points) - 2:
        if distance_meters(current, destination) < arrival_m:
            return texts['arrive']
        return texts['approaching']

    limit = min(closest + lookahead_points, len(points) - 1)
    for i in range(closest + 1, limit):
        angle = turn_angle(points[i - 1], points[i], points[i + 1])
        if abs(angle) > turn_detection_deg:
            distance_to_turn = path_length(points[closest:i + 1])
            return f"{_distance_phrase(distance_to_turn, language)}: {turn_instruction(angle, language)}"

    heading = cardinal_direction(bearing_degrees(current, destination), language)
    return texts['heading'].format(direction=heading)
