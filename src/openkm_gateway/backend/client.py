"""HTTP client for the OpenKM REST API.

Every call is authenticated with HTTP Basic credentials from the gateway
configuration and bounded by the configured timeout. Responses are
returned verbatim; the gateway never interprets backend schemas.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import GatewayConfig
from ..errors import BackendUnavailable

logger = logging.getLogger(__name__)


class OpenKMClient:
    """Async proxy to the remote document service.

    Usage:
        async with OpenKMClient(config) as client:
            text = await client.fetch_json("/dashboard/getUserLastModifiedDocuments")
    """

    def __init__(
        self,
        config: GatewayConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = config.openkm_url
        self._client = httpx.AsyncClient(
            auth=httpx.BasicAuth(config.username, config.password),
            headers={"Accept": "application/json"},
            timeout=httpx.Timeout(config.timeout),
            transport=transport,
        )

    async def __aenter__(self) -> OpenKMClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def url_for(self, endpoint: str) -> str:
        """Absolute URL of a REST endpoint (e.g. ``/search/getKeywordMap``)."""
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def fetch_json(self, endpoint: str, params: dict[str, Any] | None = None) -> str:
        """GET an endpoint and return the raw response body."""
        response = await self._get(self.url_for(endpoint), params=params)
        return response.text

    async def fetch_url(self, url: str) -> str:
        """GET a fully built URL (query string included) and return the body."""
        response = await self._get(url)
        return response.text

    async def fetch_binary(self, url: str, params: dict[str, Any] | None = None) -> bytes:
        """Download document content."""
        response = await self._get(self.url_for(url), params=params, headers={"Accept": "*/*"})
        return response.content

    async def _get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        logger.debug(f"GET {url} params={params}")
        try:
            response = await self._client.get(url, params=params, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise BackendUnavailable(
                f"OpenKM returned HTTP {status} for {e.request.url.path}",
                data={"status": status},
            ) from e
        except httpx.RequestError as e:
            raise BackendUnavailable(f"Cannot reach OpenKM at {self.base_url}: {e!r}") from e
        return response
