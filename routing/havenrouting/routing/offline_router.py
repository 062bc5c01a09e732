import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from ..graph.graph_builder import PathGraph, build_synthetic_graph
from ..models.coordinate import Coordinate
from ..models.route import Route, SourceKind
from ..utils.geo_utils import distance_meters
from ..utils.instruction_utils import route_instructions
from .algorithms import (
    DIRECT_FALLBACK_M,
    MAX_ASTAR_ITERATIONS,
    MAX_NODE_SEARCH_M,
    SearchStatus,
    astar_path,
    dedupe_consecutive,
    nearest_node,
    safe_fallback_path,
)

logger = logging.getLogger(__name__)


class OfflineOutcome(Enum):
    """How the offline attempt ended"""
    GRAPH_PATH = 'graph_path'                    # A* over real path data
    SYNTHETIC_SUBSTRATE = 'synthetic_substrate'  # A* over the generated grid only
    UNREACHABLE = 'unreachable'                  # no nearby node, or no connection
    EXHAUSTED = 'exhausted'                      # iteration cap hit


@dataclass(frozen=True)
class OfflineResult:
    outcome: OfflineOutcome
    route: Optional[Route] = None
    reason: str = ''


class OfflinePathRouter:
    """
    On-device routing over whatever path geometry the session has seen.

    The shared ``PathGraph`` grows through ``add_paths``. When it is empty a
    synthetic grid is built for the single request and thrown away afterwards.
    """

    def __init__(self, path_graph: Optional[PathGraph] = None, node_tolerance_deg: float = 0.0001,
                 max_node_search_m: float = MAX_NODE_SEARCH_M,
                 max_astar_iterations: int = MAX_ASTAR_ITERATIONS,
                 direct_fallback_m: float = DIRECT_FALLBACK_M, snap_direct_m: float = 50.0,
                 grid_cells: int = 2, grid_padding_deg: float = 0.01,
                 grid_direct_m: float = 300.0, grid_min_span_m: float = 1000.0,
                 language: str = 'de'):
        self.path_graph = path_graph or PathGraph(node_tolerance_deg=node_tolerance_deg)
        self.node_tolerance_deg = node_tolerance_deg
        self.max_node_search_m = max_node_search_m
        self.max_astar_iterations = max_astar_iterations
        self.direct_fallback_m = direct_fallback_m
        self.snap_direct_m = snap_direct_m
        self.grid_options = {
            'cells': grid_cells,
            'padding_deg': grid_padding_deg,
            'direct_m': grid_direct_m,
            'min_span_m': grid_min_span_m,
        }
        self.language = language

    def add_paths(self, paths: Iterable[Sequence[Coordinate]]) -> int:
        return self.path_graph.add_paths(paths)

    def route(self, start: Coordinate, destination: Coordinate) -> OfflineResult:
        """Search the session graph, or a throwaway synthetic grid when it is empty"""
        if self.path_graph.is_empty():
            logger.info("No path data available, searching a synthetic grid")
            graph = build_synthetic_graph(start, destination,
                                          node_tolerance_deg=self.node_tolerance_deg,
                                          **self.grid_options)
        else:
            graph = self.path_graph

        with graph.read_locked():
            return self._search(graph, start, destination)

    def _search(self, graph: PathGraph, start: Coordinate, destination: Coordinate) -> OfflineResult:
        start_node = nearest_node(graph, start, self.max_node_search_m)
        end_node = nearest_node(graph, destination, self.max_node_search_m)
        if start_node is None or end_node is None:
            missing = 'start' if start_node is None else 'destination'
            return OfflineResult(OfflineOutcome.UNREACHABLE,
                                 reason=f"No graph node within {self.max_node_search_m:.0f} m of {missing}")

        start_coord = graph.coordinate(start_node)
        end_coord = graph.coordinate(end_node)

        if distance_meters(start_coord, end_coord) < self.snap_direct_m:
            node_points = [start_coord, end_coord]
        else:
            result = astar_path(graph.graph, start_node, end_node, self.max_astar_iterations)
            if result.status is SearchStatus.EXHAUSTED:
                return OfflineResult(OfflineOutcome.EXHAUSTED,
                                     reason=f"A* stopped after {result.iterations} expansions")
            if result.status is SearchStatus.UNREACHABLE:
                return OfflineResult(OfflineOutcome.UNREACHABLE,
                                     reason="Start and destination are not connected")
            node_points = [graph.coordinate(n) for n in result.path]
            logger.debug(f"A* found {len(result.path)} nodes in {result.iterations} expansions")

        points = dedupe_consecutive([start] + node_points + [destination])
        if len(points) < 2:
            points = [start, destination]
        route = Route(points, SourceKind.OFFLINE_GRAPH, route_instructions(points, self.language))

        if graph.synthetic:
            return OfflineResult(OfflineOutcome.SYNTHETIC_SUBSTRATE, route,
                                 reason="Path found over synthetic grid only")
        return OfflineResult(OfflineOutcome.GRAPH_PATH, route)

    def safe_fallback_route(self, start: Coordinate, destination: Coordinate) -> Route:
        points: List[Coordinate] = safe_fallback_path(start, destination, self.direct_fallback_m)
        return Route(points, SourceKind.SYNTHETIC_FALLBACK, route_instructions(points, self.language))
