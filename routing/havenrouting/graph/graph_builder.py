import logging
import math
import threading
from typing import Iterable, List, Optional, Sequence, Tuple

import networkx as nx
import numpy as np

from ..exceptions import GraphBuildError, InvalidCoordinatesError
from ..models.coordinate import Coordinate, to_coordinate
from ..utils.geo_utils import distance_meters, haversine_distance
from ..utils.locks import ReadWriteLock

logger = logging.getLogger(__name__)

NodeKey = Tuple[float, float]


class PathGraph:
    """
    Undirected walking graph assembled from drawn path geometry.

    Nodes are coordinates rounded to ``node_tolerance_deg`` so that points a few
    metres apart merge into one node. Node attributes: ``lat``, ``lon``.
    Edge attribute: ``length`` (metres, great-circle between node coordinates).

    All mutation happens under the write side of a reader/writer lock; searches
    hold the read side via ``read_locked()``.
    """

    def __init__(self, node_tolerance_deg: float = 0.0001, synthetic: bool = False):
        self.graph = nx.Graph()
        self.node_tolerance_deg = node_tolerance_deg
        self.synthetic = synthetic
        self.version = 0
        self._lock = ReadWriteLock()
        self._decimals = max(0, int(round(-math.log10(node_tolerance_deg))))
        self._node_arrays = None
        self._node_arrays_version = -1
        self._nearest_cache = {}
        self._nearest_cache_version = -1
        self._nearest_lock = threading.Lock()

    def node_key(self, point: Coordinate) -> NodeKey:
        tol = self.node_tolerance_deg
        return (
            round(round(point.latitude / tol) * tol, self._decimals),
            round(round(point.longitude / tol) * tol, self._decimals),
        )

    def read_locked(self):
        return self._lock.read_locked()

    def is_empty(self) -> bool:
        with self._lock.read_locked():
            return self.graph.number_of_nodes() == 0

    def node_count(self) -> int:
        with self._lock.read_locked():
            return self.graph.number_of_nodes()

    def edge_count(self) -> int:
        with self._lock.read_locked():
            return self.graph.number_of_edges()

    def coordinate(self, node: NodeKey) -> Coordinate:
        data = self.graph.nodes[node]
        return Coordinate(data['lat'], data['lon'])

    def _add_path_unlocked(self, points: Sequence[Coordinate]) -> int:
        added = 0
        prev_key = None
        for point in points:
            if not isinstance(point, Coordinate):
                raise GraphBuildError(f"Path contains a non-coordinate value: {point!r}")
            key = self.node_key(point)
            if key not in self.graph:
                self.graph.add_node(key, lat=key[0], lon=key[1])
            if prev_key is not None and prev_key != key:
                length = haversine_distance(prev_key[0], prev_key[1], key[0], key[1])
                if not self.graph.has_edge(prev_key, key):
                    self.graph.add_edge(prev_key, key, length=length)
                    added += 1
            prev_key = key
        return added

    def add_path(self, points: Sequence[Coordinate]) -> int:
        """Add one ordered path; returns the number of new edges"""
        return self.add_paths([points])

    def add_paths(self, paths: Iterable[Sequence[Coordinate]]) -> int:
        """Add several paths in one write; returns the number of new edges"""
        paths = list(paths)
        added = 0
        with self._lock.write_locked():
            for path in paths:
                if path is None or len(path) < 2:
                    logger.warning("Skipping path with fewer than two points")
                    continue
                added += self._add_path_unlocked(path)
            self.version += 1
        logger.debug(f"Path graph now has {self.graph.number_of_nodes()} nodes, "
                     f"{self.graph.number_of_edges()} edges (+{added})")
        return added

    def clear(self):
        with self._lock.write_locked():
            self.graph.clear()
            self.version += 1

    def node_arrays(self):
        """(keys, lats, lons) for all nodes; rebuilt only when the graph changed.

        Caller must hold the read lock.
        """
        cached = self._node_arrays
        if cached is not None and self._node_arrays_version == self.version:
            return cached
        keys = list(self.graph.nodes)
        lats = np.fromiter((self.graph.nodes[k]['lat'] for k in keys), dtype=float, count=len(keys))
        lons = np.fromiter((self.graph.nodes[k]['lon'] for k in keys), dtype=float, count=len(keys))
        cached = (keys, lats, lons)
        self._node_arrays = cached
        self._node_arrays_version = self.version
        return cached

    def cached_nearest(self, key):
        """Memoised nearest-node answer for a query key; (False, None) on a miss"""
        with self._nearest_lock:
            if self._nearest_cache_version != self.version:
                self._nearest_cache.clear()
                self._nearest_cache_version = self.version
                return False, None
            if key in self._nearest_cache:
                return True, self._nearest_cache[key]
            return False, None

    def remember_nearest(self, key, node):
        with self._nearest_lock:
            if self._nearest_cache_version == self.version:
                self._nearest_cache[key] = node


def _clamp(lat: float, lon: float) -> Coordinate:
    return Coordinate(min(90.0, max(-90.0, lat)), min(180.0, max(-180.0, lon)))


def build_grid_paths(start: Coordinate, destination: Coordinate, cells: int = 2,
                     padding_deg: float = 0.01, direct_m: float = 300.0,
                     min_span_m: float = 1000.0) -> List[List[Coordinate]]:
    """
    Synthetic substrate used when no real path data exists.

    Short spans get the direct segment, longer ones the bend via
    (start.lat, destination.lon); spans above ``min_span_m`` additionally get
    a ``cells`` x ``cells`` grid over the padded bounding box.
    """
    span = distance_meters(start, destination)
    if span < direct_m:
        paths = [[start, destination]]
    else:
        corner = Coordinate(start.latitude, destination.longitude)
        paths = [[start, corner, destination]]

    if span > min_span_m:
        south = min(start.latitude, destination.latitude) - padding_deg
        north = max(start.latitude, destination.latitude) + padding_deg
        west = min(start.longitude, destination.longitude) - padding_deg
        east = max(start.longitude, destination.longitude) + padding_deg
        lats = [south + (north - south) * i / cells for i in range(cells + 1)]
        lons = [west + (east - west) * j / cells for j in range(cells + 1)]
        for lat in lats:
            paths.append([_clamp(lat, lon) for lon in lons])
        for lon in lons:
            paths.append([_clamp(lat, lon) for lat in lats])

    return paths


def build_synthetic_graph(start: Coordinate, destination: Coordinate,
                          node_tolerance_deg: float = 0.0001, **grid_options) -> PathGraph:
    graph = PathGraph(node_tolerance_deg=node_tolerance_deg, synthetic=True)
    graph.add_paths(build_grid_paths(start, destination, **grid_options))
    return graph


def ensure_paths(raw_paths: Optional[Iterable]) -> List[List[Coordinate]]:
    """Coerce [[lat, lon], ...] / {'lat', 'lon'} path input into Coordinate lists"""
    paths = []
    for raw in raw_paths or []:
        try:
            paths.append([to_coordinate(p) for p in raw])
        except (InvalidCoordinatesError, TypeError) as e:
            raise GraphBuildError(f"Invalid path geometry: {e}")
    return paths
