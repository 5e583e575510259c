"""Unit tests for the tool/resource catalog."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest
from pydantic import BaseModel

from openkm_gateway.errors import RegistrationError, UnknownResource, UnknownTool
from openkm_gateway.protocol import Catalog, ResourceDescriptor, ToolDescriptor
from openkm_gateway.protocol.catalog import resource_key


class QueryInput(BaseModel):
    query: str


@pytest.fixture
def catalog() -> Catalog:
    return Catalog()


def make_tool(name: str = "search", handler: Any = None) -> ToolDescriptor:
    return ToolDescriptor(
        name=name,
        description="Search things",
        input_model=QueryInput,
        handler=handler or AsyncMock(return_value="ok"),
    )


# =============================================================================
# Descriptors
# =============================================================================


class TestDescriptors:
    def test_tool_requires_name(self) -> None:
        with pytest.raises(RegistrationError):
            make_tool(name="")

    def test_tool_requires_callable_handler(self) -> None:
        with pytest.raises(RegistrationError):
            ToolDescriptor(name="x", description="", input_model=QueryInput, handler="nope")

    def test_tool_info_exposes_json_schema(self) -> None:
        info = make_tool().info()
        assert info.name == "search"
        assert info.inputSchema["properties"]["query"]["type"] == "string"
        assert info.inputSchema["required"] == ["query"]

    def test_resource_requires_scheme(self) -> None:
        with pytest.raises(RegistrationError):
            ResourceDescriptor(name="x", uri="no-scheme", handler=AsyncMock())

    def test_resource_info(self) -> None:
        descriptor = ResourceDescriptor(
            name="getKeywordMap", uri="search://getKeywordMap", handler=AsyncMock()
        )
        info = descriptor.info()
        assert info.uri == "search://getKeywordMap"
        assert info.mimeType == "application/json"


class TestResourceKey:
    def test_drops_query_and_fragment(self) -> None:
        assert resource_key("search://getKeywordMap?x=1#top") == "search://getKeywordMap"

    def test_keeps_path(self) -> None:
        assert resource_key("dashboard://docs/recent/") == "dashboard://docs/recent"


# =============================================================================
# Registration
# =============================================================================


class TestRegistration:
    def test_register_and_get_tool(self, catalog: Catalog) -> None:
        tool = make_tool()
        catalog.register_tool(tool)
        assert catalog.get_tool("search") is tool
        assert catalog.tool_names() == ["search"]

    def test_duplicate_tool_is_configuration_error(self, catalog: Catalog) -> None:
        catalog.register_tool(make_tool())
        with pytest.raises(RegistrationError, match="already registered"):
            catalog.register_tool(make_tool())

    def test_duplicate_resource_uri_is_configuration_error(self, catalog: Catalog) -> None:
        catalog.register_resource(
            ResourceDescriptor(name="a", uri="search://getKeywordMap", handler=AsyncMock())
        )
        with pytest.raises(RegistrationError):
            catalog.register_resource(
                ResourceDescriptor(name="b", uri="search://getKeywordMap", handler=AsyncMock())
            )

    def test_duplicate_resource_name_is_configuration_error(self, catalog: Catalog) -> None:
        catalog.register_resource(ResourceDescriptor(name="a", uri="x://one", handler=AsyncMock()))
        with pytest.raises(RegistrationError):
            catalog.register_resource(
                ResourceDescriptor(name="a", uri="x://two", handler=AsyncMock())
            )

    def test_tool_decorator(self, catalog: Catalog) -> None:
        @catalog.tool("decorated", "A decorated tool", QueryInput, timeout=3.0)
        async def decorated(args: QueryInput) -> str:
            return args.query

        descriptor = catalog.get_tool("decorated")
        assert descriptor.handler is decorated
        assert descriptor.timeout == 3.0

    def test_resource_decorator(self, catalog: Catalog) -> None:
        @catalog.resource("Recent", "dashboard://recent", mime_type="text/plain")
        async def recent(uri: str) -> str:
            return uri

        descriptor = catalog.match_resource("dashboard://recent")
        assert descriptor.handler is recent
        assert descriptor.mime_type == "text/plain"


# =============================================================================
# Lookup
# =============================================================================


class TestLookup:
    def test_unknown_tool(self, catalog: Catalog) -> None:
        with pytest.raises(UnknownTool):
            catalog.get_tool("nope")

    def test_match_resource_ignores_query(self, catalog: Catalog) -> None:
        descriptor = ResourceDescriptor(
            name="getKeywordMap", uri="search://getKeywordMap", handler=AsyncMock()
        )
        catalog.register_resource(descriptor)
        assert catalog.match_resource("search://getKeywordMap?refresh=1") is descriptor

    def test_same_scheme_different_names(self, catalog: Catalog) -> None:
        modified = ResourceDescriptor(
            name="modified", uri="dashboard://getUserLastModifiedDocuments", handler=AsyncMock()
        )
        uploaded = ResourceDescriptor(
            name="uploaded", uri="dashboard://getUserLastUploadedDocuments", handler=AsyncMock()
        )
        catalog.register_resource(modified)
        catalog.register_resource(uploaded)

        assert catalog.match_resource("dashboard://getUserLastUploadedDocuments") is uploaded
        assert catalog.match_resource("dashboard://getUserLastModifiedDocuments") is modified

    def test_unknown_resource(self, catalog: Catalog) -> None:
        with pytest.raises(UnknownResource):
            catalog.match_resource("search://nothing")

    def test_malformed_uri_is_unknown_resource(self, catalog: Catalog) -> None:
        with pytest.raises(UnknownResource):
            catalog.match_resource("not a uri")
