"""
Configuration management for the Haven routing engine
"""

import os
from typing import Dict, List, Optional


DEFAULT_FOOT_ENDPOINTS = [
    "https://routing.openstreetmap.de/routed-foot/route/v1/foot/",
    "https://router.project-osrm.org/route/v1/foot/",
    "http://router.project-osrm.org/route/v1/foot/",
]

DEFAULT_BICYCLE_ENDPOINTS = [
    "https://routing.openstreetmap.de/routed-bike/route/v1/bike/",
    "https://router.project-osrm.org/route/v1/bike/",
    "http://router.project-osrm.org/route/v1/bicycle/",
    "https://routing.openstreetmap.de/routed-bike/route/v1/cycling/",
]


def _endpoint_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [part.strip() for part in raw.split(',') if part.strip()]


class Config:
    """Configuration class for the Haven routing engine"""

    def __init__(self):
        # Route validation policy
        self.min_route_points: int = int(os.getenv('MIN_ROUTE_POINTS', '3'))
        self.max_endpoint_distance_m: float = float(os.getenv('MAX_ENDPOINT_DISTANCE_M', '500'))
        self.max_suspicious_segment_m: float = float(os.getenv('MAX_SUSPICIOUS_SEGMENT_M', '300'))
        self.max_suspicious_segments: int = int(os.getenv('MAX_SUSPICIOUS_SEGMENTS', '2'))
        self.max_angle_deg: float = float(os.getenv('MAX_ANGLE_DEG', '60'))
        self.max_suspicious_angles: int = int(os.getenv('MAX_SUSPICIOUS_ANGLES', '3'))
        self.min_density_samples: int = int(os.getenv('MIN_DENSITY_SAMPLES', '10'))
        self.min_density_cv: float = float(os.getenv('MIN_DENSITY_CV', '0.1'))

        # Remote routing service
        self.endpoints: Dict[str, List[str]] = {
            'foot': _endpoint_list('FOOT_ENDPOINTS', DEFAULT_FOOT_ENDPOINTS),
            'bicycle': _endpoint_list('BICYCLE_ENDPOINTS', DEFAULT_BICYCLE_ENDPOINTS),
        }
        self.max_retries: int = int(os.getenv('MAX_RETRIES', '3'))
        self.retry_delay_s: float = float(os.getenv('RETRY_DELAY_S', '1.0'))
        self.connect_timeout_s: float = float(os.getenv('CONNECT_TIMEOUT_S', '10'))
        self.read_timeout_s: float = float(os.getenv('READ_TIMEOUT_S', '15'))
        self.geometries: str = os.getenv('ROUTING_GEOMETRIES', 'polyline')
        self.user_agent: str = os.getenv('USER_AGENT', 'HavenRouting/1.0')
        # (duration weight, distance weight) used to pick among alternatives
        self.profile_score_weights: Dict[str, tuple] = {
            'foot': (0.7, 0.3),
            'bicycle': (0.6, 0.4),
        }
        self.offline_only: bool = os.getenv('OFFLINE_ONLY', 'False').lower() == 'true'

        # Offline graph routing
        self.node_tolerance_deg: float = float(os.getenv('NODE_TOLERANCE_DEG', '0.0001'))
        self.max_node_search_m: float = float(os.getenv('MAX_NODE_SEARCH_M', '1000'))
        self.max_astar_iterations: int = int(os.getenv('MAX_ASTAR_ITERATIONS', '1000'))
        self.direct_fallback_m: float = float(os.getenv('DIRECT_FALLBACK_M', '100'))
        self.snap_direct_m: float = float(os.getenv('SNAP_DIRECT_M', '50'))
        self.grid_cells: int = int(os.getenv('GRID_CELLS', '2'))
        self.grid_padding_deg: float = float(os.getenv('GRID_PADDING_DEG', '0.01'))
        self.grid_direct_m: float = float(os.getenv('GRID_DIRECT_M', '300'))
        self.grid_min_span_m: float = float(os.getenv('GRID_MIN_SPAN_M', '1000'))

        # Result cache
        self.cache_ttl_s: float = float(os.getenv('CACHE_TTL_S', str(24 * 60 * 60)))
        self.cache_key_decimals: int = int(os.getenv('CACHE_KEY_DECIMALS', '4'))
        self.cache_max_entries: int = int(os.getenv('CACHE_MAX_ENTRIES', '256'))

        # Guidance text
        self.instruction_language: str = os.getenv('INSTRUCTION_LANGUAGE', 'de')
        self.off_route_m: float = float(os.getenv('OFF_ROUTE_M', '50'))
        self.arrival_m: float = float(os.getenv('ARRIVAL_M', '50'))
        self.turn_detection_deg: float = float(os.getenv('TURN_DETECTION_DEG', '25'))
        self.lookahead_points: int = int(os.getenv('LOOKAHEAD_POINTS', '5'))

        # API configuration
        self.host: str = os.getenv('HOST', '0.0.0.0')
        self.port: int = int(os.getenv('PORT', '5000'))
        self.debug: bool = os.getenv('DEBUG', 'False').lower() == 'true'

        # Logging
        self.log_level: str = os.getenv('LOG_LEVEL', 'INFO')
        self.log_file: Optional[str] = os.getenv('LOG_FILE')

    def validate(self):
        """Validate configuration"""
        for profile, endpoints in self.endpoints.items():
            if not endpoints:
                raise ValueError(f"At least one endpoint is required for profile '{profile}'")

        if self.max_retries < 1:
            raise ValueError("Max retries must be at least 1")

        if self.retry_delay_s < 0:
            raise ValueError("Retry delay must not be negative")

        if self.connect_timeout_s <= 0 or self.read_timeout_s <= 0:
            raise ValueError("Timeouts must be positive")

        if self.geometries not in ('polyline', 'geojson'):
            raise ValueError(f"Unsupported geometry format: {self.geometries}")

        if self.max_endpoint_distance_m <= 0 or self.max_suspicious_segment_m <= 0:
            raise ValueError("Validation distances must be positive")

        if self.node_tolerance_deg <= 0 or self.max_node_search_m <= 0:
            raise ValueError("Node tolerance and search radius must be positive")

        if self.max_astar_iterations < 1:
            raise ValueError("A* iteration cap must be at least 1")

        if self.grid_cells < 1:
            raise ValueError("Grid needs at least one cell")

        if self.cache_ttl_s < 0:
            raise ValueError("Cache TTL must not be negative")

        if self.instruction_language not in ('de', 'en'):
            raise ValueError(f"Unsupported instruction language: {self.instruction_language}")

    def get_validator_config(self) -> dict:
        """Get configuration for RouteValidator"""
        return {
            'min_route_points': self.min_route_points,
            'max_endpoint_distance_m': self.max_endpoint_distance_m,
            'max_suspicious_segment_m': self.max_suspicious_segment_m,
            'max_suspicious_segments': self.max_suspicious_segments,
            'max_angle_deg': self.max_angle_deg,
            'max_suspicious_angles': self.max_suspicious_angles,
            'min_density_samples': self.min_density_samples,
            'min_density_cv': self.min_density_cv,
        }

    def get_remote_config(self) -> dict:
        """Get configuration for OSRMClient"""
        return {
            'endpoints': {profile: list(urls) for profile, urls in self.endpoints.items()},
            'max_retries': self.max_retries,
            'retry_delay_s': self.retry_delay_s,
            'connect_timeout_s': self.connect_timeout_s,
            'read_timeout_s': self.read_timeout_s,
            'geometries': self.geometries,
            'user_agent': self.user_agent,
            'profile_score_weights': dict(self.profile_score_weights),
            'language': self.instruction_language,
        }

    def get_router_config(self) -> dict:
        """Get configuration for OfflinePathRouter"""
        return {
            'node_tolerance_deg': self.node_tolerance_deg,
            'max_node_search_m': self.max_node_search_m,
            'max_astar_iterations': self.max_astar_iterations,
            'direct_fallback_m': self.direct_fallback_m,
            'snap_direct_m': self.snap_direct_m,
            'grid_cells': self.grid_cells,
            'grid_padding_deg': self.grid_padding_deg,
            'grid_direct_m': self.grid_direct_m,
            'grid_min_span_m': self.grid_min_span_m,
            'language': self.instruction_language,
        }

    def get_cache_config(self) -> dict:
        """Get configuration for RouteCache"""
        return {
            'ttl_seconds': self.cache_ttl_s,
            'key_decimals': self.cache_key_decimals,
            'max_entries': self.cache_max_entries,
        }

    def get_guidance_config(self) -> dict:
        """Get configuration for next-instruction guidance"""
        return {
            'language': self.instruction_language,
            'off_route_m': self.off_route_m,
            'arrival_m': self.arrival_m,
            'turn_detection_deg': self.turn_detection_deg,
            'lookahead_points': self.lookahead_points,
        }

    def get_api_config(self) -> dict:
        """Get configuration for Flask API"""
        return {
            'host': self.host,
            'port': self.port,
            'debug': self.debug
        }


# Global configuration instance
config = Config()
