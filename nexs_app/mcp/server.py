"""MCP Server implementation for the NExS app.

``build_registry`` declares the app's tool and UI resource; ``create_mcp_server``
wraps a registry in an MCP low-level server. Nothing here is a module-level
singleton, so several servers can live in one process (tests do this).
"""

import logging
from functools import partial
from pathlib import Path

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from ..config import Settings, get_settings
from .arg_models import RenderSpreadsheetArgs
from .handlers import handle_render_spreadsheet
from .registry import CapabilityRegistry
from .resources import (
    DEFAULT_WIDGET_HTML,
    RESOURCE_MIME_TYPE,
    SPREADSHEET_RESOURCE_DESCRIPTION,
    SPREADSHEET_RESOURCE_NAME,
    SPREADSHEET_RESOURCE_URI,
    embedding_policy,
    load_spreadsheet_contents,
)
from .tools import (
    RENDER_SPREADSHEET_DESCRIPTION,
    RENDER_SPREADSHEET_TOOL,
    render_spreadsheet_tool_meta,
)

logger = logging.getLogger(__name__)


def build_registry(settings: Settings | None = None) -> CapabilityRegistry:
    """Register the spreadsheet tool and its UI resource."""
    settings = settings or get_settings()
    registry = CapabilityRegistry()

    registry.register_tool(
        RENDER_SPREADSHEET_TOOL,
        RenderSpreadsheetArgs,
        handle_render_spreadsheet,
        description=RENDER_SPREADSHEET_DESCRIPTION,
        meta=render_spreadsheet_tool_meta(),
    )

    html_path = Path(settings.WIDGET_HTML_PATH) if settings.WIDGET_HTML_PATH else DEFAULT_WIDGET_HTML
    registry.register_resource(
        SPREADSHEET_RESOURCE_NAME,
        SPREADSHEET_RESOURCE_URI,
        partial(load_spreadsheet_contents, html_path, settings.NEXS_PLATFORM_ORIGIN),
        mime_type=RESOURCE_MIME_TYPE,
        description=SPREADSHEET_RESOURCE_DESCRIPTION,
        meta=embedding_policy(settings.NEXS_PLATFORM_ORIGIN),
    )

    return registry


def create_mcp_server(
    registry: CapabilityRegistry | None = None, settings: Settings | None = None
) -> Server:
    """Create an MCP server answering discovery, tool and resource requests from ``registry``."""
    settings = settings or get_settings()
    registry = registry or build_registry(settings)
    server = Server(settings.SERVER_NAME, version=settings.SERVER_VERSION)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return registry.list_tools()

    @server.list_resources()
    async def list_resources() -> list[types.Resource]:
        return registry.list_resources()

    # tools/call and resources/read are registered as raw request handlers so
    # that McpError reaches the client as a JSON-RPC error instead of being
    # folded into an isError tool result.
    async def call_tool(req: types.CallToolRequest) -> types.ServerResult:
        result = await registry.call_tool(req.params.name, req.params.arguments)
        return types.ServerResult(result)

    async def read_resource(req: types.ReadResourceRequest) -> types.ServerResult:
        result = await registry.read_resource(str(req.params.uri))
        return types.ServerResult(result)

    server.request_handlers[types.CallToolRequest] = call_tool
    server.request_handlers[types.ReadResourceRequest] = read_resource

    return server


async def run_stdio_server(settings: Settings | None = None) -> None:
    """Run the MCP server using stdio transport."""
    server = create_mcp_server(settings=settings)
    logger.info("Starting NExS MCP server on stdio")

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )
