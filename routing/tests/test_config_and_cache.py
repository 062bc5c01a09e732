import pytest

from havenrouting.config import Config
from havenrouting.models.coordinate import Coordinate
from havenrouting.models.route import Route, RoutingProfile, SourceKind
from havenrouting.route_cache import RouteCache
from havenrouting.utils.geo_utils import distance_meters

from helpers import DESTINATION, START


def test_defaults():
    cfg = Config()
    cfg.validate()
    assert cfg.max_endpoint_distance_m == 500
    assert cfg.max_retries == 3
    assert cfg.retry_delay_s == 1.0
    assert (cfg.connect_timeout_s, cfg.read_timeout_s) == (10, 15)
    assert cfg.max_astar_iterations == 1000
    assert cfg.cache_ttl_s == 86400
    assert cfg.endpoints['foot'][0].startswith("https://routing.openstreetmap.de/")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv('MAX_RETRIES', '5')
    monkeypatch.setenv('FOOT_ENDPOINTS', 'http://a.test/foot/, http://b.test/foot/')
    monkeypatch.setenv('OFFLINE_ONLY', 'true')
    cfg = Config()
    assert cfg.max_retries == 5
    assert cfg.endpoints['foot'] == ['http://a.test/foot/', 'http://b.test/foot/']
    assert cfg.offline_only is True
    assert cfg.get_remote_config()['max_retries'] == 5


@pytest.mark.parametrize("attribute, value", [
    ('max_retries', 0),
    ('retry_delay_s', -1),
    ('geometries', 'polyline6'),
    ('cache_ttl_s', -5),
    ('instruction_language', 'fr'),
    ('endpoints', {'foot': [], 'bicycle': ['http://x/']}),
])
def test_validate_rejects_nonsense(attribute, value):
    cfg = Config()
    setattr(cfg, attribute, value)
    with pytest.raises(ValueError):
        cfg.validate()


def sample_route():
    return Route([START, Coordinate(53.5142, 8.1554), DESTINATION], SourceKind.REMOTE)


def test_cache_round_trip_and_rounding():
    cache = RouteCache()
    route = sample_route()
    cache.put(START, DESTINATION, route)
    assert cache.get(Coordinate(53.51424, 8.14276), DESTINATION) is route
    assert cache.get(Coordinate(53.5143, 8.1428), DESTINATION) is None
    assert cache.get(START, DESTINATION, RoutingProfile.BICYCLE) is None


def test_cache_ttl_expiry_removes_entry():
    now = [0.0]
    cache = RouteCache(ttl_seconds=60, clock=lambda: now[0])
    cache.put(START, DESTINATION, sample_route())
    now[0] = 59.0
    assert cache.get(START, DESTINATION) is not None
    now[0] = 60.0
    assert cache.get(START, DESTINATION) is None
    assert len(cache) == 0


def test_cache_evicts_oldest():
    cache = RouteCache(max_entries=2)
    routes = []
    for i in range(3):
        dest = Coordinate(53.50 + i * 0.01, 8.15)
        routes.append(sample_route())
        cache.put(START, dest, routes[-1])
    assert len(cache) == 2
    assert cache.get(START, Coordinate(53.50, 8.15)) is None
    assert cache.get(START, Coordinate(53.52, 8.15)) is routes[2]


def test_route_distance_and_serialisation():
    route = sample_route()
    bend = route.points[1]
    expected = distance_meters(START, bend) + distance_meters(bend, DESTINATION)
    assert abs(route.distance_meters - expected) < 1e-3

    data = route.to_dict()
    assert data['source'] == 'remote'
    assert data['approximate'] is False
    assert data['points'][0] == [53.5142, 8.1428]


def test_route_needs_two_points():
    with pytest.raises(ValueError):
        Route([START], SourceKind.REMOTE)
