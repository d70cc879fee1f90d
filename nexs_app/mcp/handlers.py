"""MCP Tool handlers for the NExS app."""

import logging

from mcp.types import CallToolResult, TextContent

from .arg_models import RenderSpreadsheetArgs

logger = logging.getLogger(__name__)


async def handle_render_spreadsheet(args: RenderSpreadsheetArgs) -> CallToolResult:
    """Handle render_nexs_spreadsheet tool call.

    The widget does the rendering; the tool only hands the URL over, both as
    text for the model and as structured content for the widget.
    """
    logger.info("Rendering NExS spreadsheet %s", args.app_url)
    return CallToolResult(
        content=[
            TextContent(
                type="text",
                text=f"Render tool executed successfully. Instructed UI to load: {args.app_url}.",
            )
        ],
        structuredContent={"app_url": args.app_url},
    )
