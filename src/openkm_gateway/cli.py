"""OpenKM Gateway CLI.

Usage:
    openkm-gateway                        # Serve on 127.0.0.1:3001
    openkm-gateway --host 0.0.0.0 --port 8080
    openkm-gateway --health               # Check a running gateway

Backend settings come from the environment (see GatewayConfig.from_env):
    OPENKM_URL, OPENKM_USER, OPENKM_PASSWORD, OPENKM_TIMEOUT,
    OPENKM_CONVERTER, OPENKM_CONVERT_TIMEOUT, OPENKM_GATEWAY_HEARTBEAT
"""

from __future__ import annotations

import asyncio
import logging
import sys

import click
import httpx

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@click.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=3001, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default="info",
    help="Logging level",
)
@click.option("--health", "health_check", is_flag=True, help="Check gateway health and exit")
@click.option("--health-url", default="http://localhost:3001", help="Gateway URL for health check")
def main(
    host: str,
    port: int,
    reload: bool,
    log_level: str,
    health_check: bool,
    health_url: str,
) -> None:
    """OpenKM Gateway - OpenKM tools and resources over MCP/SSE."""
    _configure_logging(log_level)

    if health_check:
        _do_health_check(health_url)
        return

    _run_http_server(host, port, reload, log_level)


def _configure_logging(level: str) -> None:
    """Send logs to stderr with a uniform format."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level.upper())


def _do_health_check(url: str) -> None:
    """Check gateway health."""

    async def check() -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(f"{url}/health")
                if response.status_code == 200:
                    data = response.json()
                    click.echo(f"Gateway is healthy: {data}")
                else:
                    click.echo(f"Gateway returned {response.status_code}", err=True)
                    sys.exit(1)
        except httpx.ConnectError:
            click.echo(f"Cannot connect to gateway at {url}", err=True)
            sys.exit(1)

    asyncio.run(check())


def _run_http_server(host: str, port: int, reload: bool, log_level: str) -> None:
    """Run the gateway under uvicorn."""
    import uvicorn

    click.echo(f"Starting OpenKM gateway on http://{host}:{port}", err=True)
    click.echo("  MCP endpoints: GET /sse, POST /messages", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(
        "openkm_gateway.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
