"""HTTP routes."""

from .health import health_routes
from .sse import sse_routes

__all__ = ["health_routes", "sse_routes"]
