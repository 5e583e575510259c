"""Tool and resource catalog.

Architecture:
- ToolDescriptor: name, description, input model (pydantic), async handler
- ResourceDescriptor: display name, URI, async handler
- Catalog: registry of both, filled at startup and read-only afterwards

Usage:
    catalog = Catalog()

    class EchoInput(BaseModel):
        message: str

    @catalog.tool("echo", "Echo a message", EchoInput)
    async def echo(args: EchoInput) -> str:
        return args.message

    @catalog.resource("Keyword map", "search://getKeywordMap")
    async def keyword_map(uri: str) -> str:
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel

from ..errors import RegistrationError, UnknownResource, UnknownTool
from .types import CallToolResult, ReadResourceResult, ResourceInfo, ToolInfo

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Any], Awaitable["str | CallToolResult"]]
ResourceHandler = Callable[[str], Awaitable["str | ReadResourceResult"]]


def resource_key(uri: str) -> str:
    """Normalize a resource URI to ``scheme://name/path`` (query and fragment dropped)."""
    parts = urlsplit(uri)
    if not parts.scheme:
        raise ValueError(f"Resource URI has no scheme: {uri!r}")
    return f"{parts.scheme}://{parts.netloc}{parts.path}".rstrip("/")


@dataclass
class ToolDescriptor:
    """Definition of a callable tool.

    Attributes:
        name: Unique identifier for the tool
        description: Human-readable description for clients
        input_model: Pydantic model the arguments are validated against
        handler: Async function called with the validated model instance
        timeout: Optional timeout in seconds for one invocation
    """

    name: str
    description: str
    input_model: type[BaseModel]
    handler: ToolHandler
    timeout: float | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise RegistrationError("Tool name cannot be empty")
        if not callable(self.handler):
            raise RegistrationError(f"Tool '{self.name}' handler must be callable")

    def info(self) -> ToolInfo:
        return ToolInfo(
            name=self.name,
            description=self.description,
            inputSchema=self.input_model.model_json_schema(),
        )


@dataclass
class ResourceDescriptor:
    """Definition of a read-only resource.

    Attributes:
        name: Display name
        uri: Resource URI, e.g. ``dashboard://getUserLastModifiedDocuments``
        handler: Async function called with the requested URI
        description: Optional human-readable description
        mime_type: MIME type of the produced text
    """

    name: str
    uri: str
    handler: ResourceHandler
    description: str | None = None
    mime_type: str | None = "application/json"
    key: str = field(init=False, repr=False, default="")

    def __post_init__(self) -> None:
        if not self.name:
            raise RegistrationError("Resource name cannot be empty")
        try:
            self.key = resource_key(self.uri)
        except ValueError as e:
            raise RegistrationError(str(e)) from e
        if not callable(self.handler):
            raise RegistrationError(f"Resource '{self.name}' handler must be callable")

    def info(self) -> ResourceInfo:
        return ResourceInfo(
            uri=self.uri,
            name=self.name,
            description=self.description,
            mimeType=self.mime_type,
        )


class Catalog:
    """Registry of tools and resources exposed to protocol clients."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}
        self._resources: dict[str, ResourceDescriptor] = {}

    # =========================================================================
    # Registration (startup-time)
    # =========================================================================

    def register_tool(self, descriptor: ToolDescriptor) -> None:
        """Register a tool.

        Raises:
            RegistrationError: If a tool with the same name is already registered
        """
        if descriptor.name in self._tools:
            raise RegistrationError(f"Tool '{descriptor.name}' already registered")
        self._tools[descriptor.name] = descriptor
        logger.info(f"Registered tool: {descriptor.name}")

    def register_resource(self, descriptor: ResourceDescriptor) -> None:
        """Register a resource.

        Raises:
            RegistrationError: If the URI or the name is already registered
        """
        if descriptor.key in self._resources:
            raise RegistrationError(f"Resource URI '{descriptor.uri}' already registered")
        if any(r.name == descriptor.name for r in self._resources.values()):
            raise RegistrationError(f"Resource '{descriptor.name}' already registered")
        self._resources[descriptor.key] = descriptor
        logger.info(f"Registered resource: {descriptor.name} ({descriptor.uri})")

    def tool(
        self,
        name: str,
        description: str,
        input_model: type[BaseModel],
        *,
        timeout: float | None = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator registering an async function as a tool."""

        def decorator(func: ToolHandler) -> ToolHandler:
            self.register_tool(
                ToolDescriptor(
                    name=name,
                    description=description,
                    input_model=input_model,
                    handler=func,
                    timeout=timeout,
                )
            )
            return func

        return decorator

    def resource(
        self,
        name: str,
        uri: str,
        *,
        description: str | None = None,
        mime_type: str | None = "application/json",
    ) -> Callable[[ResourceHandler], ResourceHandler]:
        """Decorator registering an async function as a resource."""

        def decorator(func: ResourceHandler) -> ResourceHandler:
            self.register_resource(
                ResourceDescriptor(
                    name=name,
                    uri=uri,
                    handler=func,
                    description=description,
                    mime_type=mime_type,
                )
            )
            return func

        return decorator

    # =========================================================================
    # Lookup
    # =========================================================================

    def get_tool(self, name: str) -> ToolDescriptor:
        """Look up a tool by name.

        Raises:
            UnknownTool: If no tool has that name
        """
        descriptor = self._tools.get(name)
        if descriptor is None:
            raise UnknownTool(name)
        return descriptor

    def match_resource(self, uri: str) -> ResourceDescriptor:
        """Find the resource registered for a URI.

        Raises:
            UnknownResource: If no registered resource matches
        """
        try:
            key = resource_key(uri)
        except ValueError as e:
            raise UnknownResource(uri) from e
        descriptor = self._resources.get(key)
        if descriptor is None:
            raise UnknownResource(uri)
        return descriptor

    def list_tools(self) -> list[ToolDescriptor]:
        return list(self._tools.values())

    def list_resources(self) -> list[ResourceDescriptor]:
        return list(self._resources.values())

    def tool_names(self) -> list[str]:
        return list(self._tools)
