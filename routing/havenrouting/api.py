"""
Haven Routing Engine - Flask Web API Blueprint
"""

import time
from typing import Optional

from flask import Blueprint, jsonify, request

from .core_route_service import RouteResolutionEngine
from .exceptions import GraphBuildError, InvalidCoordinatesError
from .logger import logger
from .models.coordinate import to_coordinate
from .utils.instruction_utils import format_distance

routing_bp = Blueprint('routing_bp', __name__)

# Session-wide engine; created on first use
route_engine: Optional[RouteResolutionEngine] = None


def get_engine() -> RouteResolutionEngine:
    global route_engine
    if route_engine is None:
        route_engine = RouteResolutionEngine()
        logger.info("Route resolution engine initialized")
    return route_engine


def set_engine(engine: Optional[RouteResolutionEngine]):
    """Swap the engine used by the blueprint (tests, embedding apps)"""
    global route_engine
    route_engine = engine


@routing_bp.route('/routing', methods=['GET'])
def index():
    """Root endpoint"""
    return jsonify({
        'name': 'Haven Routing Engine',
        'version': '1.0.0',
        'description': 'Resilient route resolution with offline fallback',
        'endpoints': {
            'health': '/routing/health',
            'route': '/routing/route',
            'next_instruction': '/routing/next-instruction',
            'paths': '/routing/paths',
        }
    })


@routing_bp.route('/routing/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    engine = get_engine()
    return jsonify({
        'status': 'healthy',
        'message': 'Haven Routing Engine is running',
        'graph_nodes': engine.offline_router.path_graph.node_count(),
        'cached_routes': len(engine.cache),
        'offline_only': engine.config.offline_only,
        'timestamp': time.time()
    })


@routing_bp.route('/routing/route', methods=['POST'])
def route():
    """Resolve a route between two coordinates"""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No data provided'}), 400
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    start = data.get('start')
    end = data.get('end')
    if not start or not end:
        return jsonify({'error': 'Start and end coordinates required'}), 400

    engine = get_engine()
    try:
        result = engine.resolve_sync(start, end, data.get('profile', 'foot'))
    except InvalidCoordinatesError as e:
        return jsonify({'error': f'Invalid coordinates: {e}'}), 400
    except ValueError as e:
        return jsonify({'error': f'Invalid request: {e}'}), 400

    body = result.to_dict()
    body['distance_text'] = format_distance(result.distance_meters, engine.config.instruction_language)
    return jsonify(body)


@routing_bp.route('/routing/next-instruction', methods=['POST'])
def next_instruction():
    """Guidance text for a position along a route"""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No data provided'}), 400
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    points = data.get('points')
    current = data.get('current')
    destination = data.get('destination')
    if not points or not current:
        return jsonify({'error': 'Route points and current position required'}), 400
    if not isinstance(points, list):
        return jsonify({'error': 'Route points must be a list of [lat, lon] pairs'}), 400

    try:
        if destination is None:
            destination = to_coordinate(points[-1])
        instruction = get_engine().next_instruction(points, current, destination)
    except InvalidCoordinatesError as e:
        return jsonify({'error': f'Invalid coordinates: {e}'}), 400

    return jsonify({'instruction': instruction})


@routing_bp.route('/routing/paths', methods=['POST'])
def add_paths():
    """Seed the offline graph with drawn path geometry"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get('paths'), list):
        return jsonify({'error': 'A list of paths is required'}), 400

    try:
        nodes = get_engine().add_paths(data['paths'])
    except GraphBuildError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'nodes': nodes})
