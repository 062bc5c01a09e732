"""
Custom exceptions for the Haven routing engine
"""

class HavenRoutingError(Exception):
    """Base exception for the Haven routing engine"""
    pass


class InvalidCoordinatesError(HavenRoutingError, ValueError):
    """Raised when coordinates are invalid or out of bounds"""
    pass


class RoutingServiceError(HavenRoutingError):
    """Raised when a remote routing service call fails (timeout, connection, HTTP status, service code)"""

    def __init__(self, message: str, endpoint: str = None, status_code: int = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class MalformedResponseError(RoutingServiceError):
    """Raised when a routing service answers with a body we cannot turn into a route"""
    pass


class GraphBuildError(HavenRoutingError):
    """Raised when path data cannot be added to the offline graph"""
    pass
