"""OpenKM Gateway - OpenKM document management exposed over MCP/SSE."""

from .app import create_app
from .config import GatewayConfig

__version__ = "1.0.0"

__all__ = ["create_app", "GatewayConfig", "__version__"]
