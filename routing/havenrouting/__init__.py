__title__ = 'havenrouting'
__version__ = '1.0.0'
__author__ = 'Haven Routing Team'
__license__ = 'MIT'
__copyright__ = 'Copyright 2024 Haven Routing Team'

__all__ = ['core_route_service', 'RouteResolutionEngine', 'Coordinate', 'Route', 'RoutingProfile',
           'SourceKind', 'config', 'logger', 'exceptions']

# Set default logging handler to avoid "No handler found" warnings.
import logging
from logging import NullHandler

logging.getLogger(__name__).addHandler(NullHandler())

from .models.coordinate import Coordinate  # noqa: E402
from .models.route import Route, RoutingProfile, SourceKind  # noqa: E402
from .core_route_service import RouteResolutionEngine  # noqa: E402
