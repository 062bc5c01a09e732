import logging
from dataclasses import dataclass, field
from enum import Enum
from heapq import heappop, heappush
from itertools import count
from typing import Callable, Dict, Hashable, List, Optional, Sequence

import networkx as nx
import numpy as np

from ..graph.graph_builder import PathGraph
from ..models.coordinate import Coordinate
from ..utils.geo_utils import distance_meters, haversine_distance, vectorized_haversine

logger = logging.getLogger(__name__)

# === Offline search parameters ===
MAX_ASTAR_ITERATIONS = 1000
MAX_NODE_SEARCH_M = 1000.0
DIRECT_FALLBACK_M = 100.0


class SearchStatus(Enum):
    FOUND = 'found'
    EXHAUSTED = 'exhausted'
    UNREACHABLE = 'unreachable'


@dataclass
class SearchResult:
    status: SearchStatus
    path: List[Hashable] = field(default_factory=list)
    cost: float = float('inf')
    iterations: int = 0


def node_distance_heuristic(graph: nx.Graph) -> Callable[[Hashable, Hashable], float]:
    """Great-circle distance between node coordinates; admissible for ``length`` edges"""
    nodes = graph.nodes

    def _heuristic(u, v):
        a = nodes[u]
        b = nodes[v]
        return haversine_distance(a['lat'], a['lon'], b['lat'], b['lon'])

    return _heuristic


def astar_path(graph: nx.Graph, source: Hashable, target: Hashable,
               max_iterations: int = MAX_ASTAR_ITERATIONS, weight: str = 'length',
               heuristic: Optional[Callable[[Hashable, Hashable], float]] = None) -> SearchResult:
    """
    A* from ``source`` to ``target`` bounded by ``max_iterations`` node expansions.

    Open set ordered by f = g + h with an insertion counter as tie breaker;
    the path is rebuilt from the predecessor map. Returns EXHAUSTED when the
    cap is hit before the target is expanded and UNREACHABLE when the open set
    runs dry.
    """
    if source not in graph or target not in graph:
        return SearchResult(SearchStatus.UNREACHABLE)
    if source == target:
        return SearchResult(SearchStatus.FOUND, [source], 0.0, 0)

    h = heuristic or node_distance_heuristic(graph)
    tie = count()
    open_heap = [(h(source, target), next(tie), source)]
    g_score: Dict[Hashable, float] = {source: 0.0}
    came_from: Dict[Hashable, Hashable] = {}
    closed = set()
    iterations = 0

    while open_heap:
        _, _, current = heappop(open_heap)
        if current in closed:
            continue
        if iterations >= max_iterations:
            logger.debug(f"A* gave up after {iterations} expansions")
            return SearchResult(SearchStatus.EXHAUSTED, iterations=iterations)
        iterations += 1

        if current == target:
            path = [current]
            while path[-1] in came_from:
                path.append(came_from[path[-1]])
            path.reverse()
            return SearchResult(SearchStatus.FOUND, path, g_score[current], iterations)

        closed.add(current)
        current_g = g_score[current]
        for neighbor, data in graph[current].items():
            if neighbor in closed:
                continue
            tentative = current_g + data.get(weight, 1.0)
            if tentative < g_score.get(neighbor, float('inf')):
                g_score[neighbor] = tentative
                came_from[neighbor] = current
                heappush(open_heap, (tentative + h(neighbor, target), next(tie), neighbor))

    return SearchResult(SearchStatus.UNREACHABLE, iterations=iterations)


def nearest_node(path_graph: PathGraph, point: Coordinate,
                 max_distance_m: float = MAX_NODE_SEARCH_M) -> Optional[Hashable]:
    """
    Closest graph node within ``max_distance_m``; caller holds the read lock.

    Answers are memoised per graph version under the rounded query point, so
    repeated lookups for the same spot skip the scan.
    """
    cache_key = (path_graph.node_key(point), max_distance_m)
    hit, node = path_graph.cached_nearest(cache_key)
    if hit:
        return node

    keys, lats, lons = path_graph.node_arrays()
    node = None
    if keys:
        distances = vectorized_haversine(point.latitude, point.longitude, lats, lons)
        best = int(np.argmin(distances))
        if distances[best] <= max_distance_m:
            node = keys[best]
    path_graph.remember_nearest(cache_key, node)
    return node


def dedupe_consecutive(points: Sequence[Coordinate]) -> List[Coordinate]:
    result: List[Coordinate] = []
    for p in points:
        if not result or result[-1] != p:
            result.append(p)
    return result


def safe_fallback_path(start: Coordinate, destination: Coordinate,
                       direct_m: float = DIRECT_FALLBACK_M) -> List[Coordinate]:
    """
    Last-resort geometry that needs no graph.

    Below ``direct_m`` the direct segment; otherwise a single axis-aligned bend
    via (start.lat, destination.lon) instead of the diagonal.
    """
    if distance_meters(start, destination) < direct_m:
        return [start, destination]
    corner = Coordinate(start.latitude, destination.longitude)
    path = dedupe_consecutive([start, corner, destination])
    if len(path) < 2:
        return [start, destination]
    return path
