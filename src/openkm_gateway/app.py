"""OpenKM Gateway Application.

Creates the Starlette ASGI application with all routes.

Route organization:
- /health - Health check
- /sse - Open an MCP session (Server-Sent Events)
- /messages - Post MCP messages to a session

Shared state lives on ``app.state`` (config, registry, engine, client)
and is injected into the endpoints through the request.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route

from .backend import DocumentConverter, OpenKMClient
from .config import GatewayConfig
from .handlers import register_catalog
from .protocol import ProtocolEngine
from .routes import health_routes, sse_routes
from .transport import TransportRegistry

logger = logging.getLogger(__name__)

# Seconds shutdown waits for in-flight tool calls before closing the backend client
SHUTDOWN_DRAIN_TIMEOUT = 5.0


def create_app(
    config: GatewayConfig | None = None,
    *,
    engine: ProtocolEngine | None = None,
    client: OpenKMClient | None = None,
    converter: DocumentConverter | None = None,
) -> Starlette:
    """Create the gateway application.

    Args:
        config: Gateway configuration (defaults to ``GatewayConfig.from_env()``)
        engine: Pre-built protocol engine; when given, its catalog is used as is
        client: OpenKM client (built from config when omitted)
        converter: Document converter (built from config when omitted)

    Returns:
        Configured Starlette application
    """
    config = config or GatewayConfig.from_env()
    client = client or OpenKMClient(config)

    if engine is None:
        engine = ProtocolEngine(server_name=config.server_name, server_version=config.server_version)
        register_catalog(engine, client, converter or DocumentConverter(config))

    registry = TransportRegistry()

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info(
            f"Gateway ready: {len(engine.catalog.list_tools())} tools, "
            f"{len(engine.catalog.list_resources())} resources, backend {config.openkm_url}"
        )
        try:
            yield
        finally:
            closed = registry.close_all()
            if closed:
                logger.info(f"Closed {closed} sessions on shutdown")
            # In-flight calls still use the HTTP client
            pending = await engine.drain(timeout=SHUTDOWN_DRAIN_TIMEOUT)
            if pending:
                logger.warning(f"{pending} calls still running at shutdown")
            await client.aclose()

    routes: list[Route] = []
    routes.extend(health_routes)
    routes.extend(sse_routes)

    # CORS middleware for browser-based clients
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        ),
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.config = config
    app.state.registry = registry
    app.state.engine = engine
    app.state.client = client
    return app
