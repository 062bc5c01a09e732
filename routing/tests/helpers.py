import json
import threading

import polyline

from havenrouting.models.coordinate import Coordinate
from havenrouting.utils.geo_utils import interpolate

# Wilhelmshaven, the reference scenario endpoints
START = Coordinate(53.5142, 8.1428)
DESTINATION = Coordinate(53.5049, 8.1554)

PRIMARY = "http://primary.test/route/v1/foot/"
FALLBACK = "http://fallback.test/route/v1/foot/"


class FakeResponse:
    def __init__(self, payload=None, status_code=200, body=None):
        self.status_code = status_code
        self._payload = payload
        self._body = body

    def json(self):
        if self._body is not None:
            return json.loads(self._body)
        return self._payload


class FakeSession:
    """Stands in for requests.Session; answers from a shared script"""

    def __init__(self, script):
        self.script = script
        self.closed = False

    def get(self, url, params=None, headers=None, timeout=None):
        self.script.calls.append({'url': url, 'params': params, 'headers': headers, 'timeout': timeout})
        outcome = self.script.next_outcome()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


class SessionScript:
    """Ordered outcomes handed out across sessions; the last one repeats"""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []
        self.sessions = []
        self._lock = threading.Lock()

    def next_outcome(self):
        with self._lock:
            if len(self.outcomes) > 1:
                return self.outcomes.pop(0)
            return self.outcomes[0]

    def __call__(self):
        session = FakeSession(self)
        self.sessions.append(session)
        return session


def line_points(start, end, segments):
    return [interpolate(start, end, i / segments) for i in range(segments + 1)]


def osrm_payload(points, duration=600.0, distance=None, geometry_format='polyline', steps=None):
    if geometry_format == 'polyline':
        geometry = polyline.encode([p.as_tuple() for p in points])
    elif geometry_format == 'geojson':
        geometry = {'type': 'LineString', 'coordinates': [list(p.as_lon_lat()) for p in points]}
    else:
        geometry = [list(p.as_lon_lat()) for p in points]
    route = {
        'distance': distance if distance is not None else 1000.0,
        'duration': duration,
        'geometry': geometry,
        'legs': [{'steps': steps or []}],
    }
    return {'code': 'Ok', 'routes': [route]}


def good_route_points():
    """9 points about 165 m apart with a slight zigzag; passes every plausibility check"""
    points = line_points(START, DESTINATION, 8)
    return [Coordinate(p.latitude + 0.0002, p.longitude) if i % 2 else p
            for i, p in enumerate(points)]
