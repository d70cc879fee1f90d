"""Registry binding MCP tools and resources to their handlers.

Tools and resources are kept in registration order. Registering a name (or
URI) a second time replaces the earlier entry.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from mcp.shared.exceptions import McpError
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    CallToolResult,
    ErrorData,
    ReadResourceResult,
    Resource,
    TextResourceContents,
    Tool,
)
from pydantic import BaseModel, ValidationError

from .schema import input_schema_from_model

logger = logging.getLogger(__name__)

# MCP reserves -32002 for reads of unknown resources.
RESOURCE_NOT_FOUND = -32002

ToolHandler = Callable[[Any], Awaitable[CallToolResult]]
ResourceLoader = Callable[[], Awaitable[list[TextResourceContents]]]


@dataclass(frozen=True)
class ToolRegistration:
    tool: Tool
    args_model: type[BaseModel]
    handler: ToolHandler


@dataclass(frozen=True)
class ResourceRegistration:
    resource: Resource
    loader: ResourceLoader


class CapabilityRegistry:
    """Declared tools and resources, and the dispatch into their handlers."""

    def __init__(self):
        self._tools: dict[str, ToolRegistration] = {}
        self._resources: dict[str, ResourceRegistration] = {}

    def register_tool(
        self,
        name: str,
        args_model: type[BaseModel],
        handler: ToolHandler,
        *,
        description: str,
        meta: dict[str, Any] | None = None,
    ) -> Tool:
        """Register ``handler`` as tool ``name``; arguments are validated by ``args_model``."""
        tool = Tool(
            name=name,
            description=description,
            inputSchema=input_schema_from_model(args_model),
            _meta=meta,
        )
        if name in self._tools:
            logger.warning("Tool %s registered twice, replacing previous handler", name)
        self._tools[name] = ToolRegistration(tool=tool, args_model=args_model, handler=handler)
        return tool

    def register_resource(
        self,
        name: str,
        uri: str,
        loader: ResourceLoader,
        *,
        mime_type: str,
        description: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> Resource:
        """Register ``loader`` as the content source for ``uri``."""
        resource = Resource(
            uri=uri,
            name=name,
            description=description,
            mimeType=mime_type,
            _meta=meta,
        )
        if uri in self._resources:
            logger.warning("Resource %s registered twice, replacing previous loader", uri)
        self._resources[uri] = ResourceRegistration(resource=resource, loader=loader)
        return resource

    def list_tools(self) -> list[Tool]:
        return [registration.tool for registration in self._tools.values()]

    def list_resources(self) -> list[Resource]:
        return [registration.resource for registration in self._resources.values()]

    def tool_names(self) -> list[str]:
        return list(self._tools)

    def resource_uris(self) -> list[str]:
        return list(self._resources)

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> CallToolResult:
        """Validate ``arguments`` and run the tool.

        Raises:
            McpError: METHOD_NOT_FOUND for unknown tools, INVALID_PARAMS when
                validation fails, INTERNAL_ERROR when the handler raises.
        """
        registration = self._tools.get(name)
        if registration is None:
            raise McpError(ErrorData(code=METHOD_NOT_FOUND, message=f"Unknown tool: {name}"))

        try:
            args = registration.args_model.model_validate(arguments or {})
        except ValidationError as e:
            raise McpError(
                ErrorData(
                    code=INVALID_PARAMS,
                    message=f"Invalid arguments for tool {name}",
                    data=json.loads(e.json(include_url=False)),
                )
            ) from e

        try:
            return await registration.handler(args)
        except McpError:
            raise
        except Exception as e:
            logger.exception("Tool %s failed", name)
            raise McpError(ErrorData(code=INTERNAL_ERROR, message=f"Tool {name} failed: {e}")) from e

    async def read_resource(self, uri: str) -> ReadResourceResult:
        """Load the current contents of ``uri``.

        Raises:
            McpError: RESOURCE_NOT_FOUND for unknown URIs, INTERNAL_ERROR when
                the loader raises.
        """
        registration = self._resources.get(uri)
        if registration is None:
            raise McpError(
                ErrorData(code=RESOURCE_NOT_FOUND, message="Resource not found", data={"uri": uri})
            )

        try:
            contents = await registration.loader()
        except Exception as e:
            logger.exception("Loading resource %s failed", uri)
            raise McpError(
                ErrorData(code=INTERNAL_ERROR, message=f"Could not read resource {uri}: {e}")
            ) from e

        return ReadResourceResult(contents=contents)
