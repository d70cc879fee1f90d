"""MCP Tool definitions for the NExS app.

Each tool is declared by a name, a description, an argument model and the
UI resource its results are rendered with.
"""

from .resources import SPREADSHEET_RESOURCE_URI

RENDER_SPREADSHEET_TOOL = "render_nexs_spreadsheet"

RENDER_SPREADSHEET_DESCRIPTION = (
    "Renders a live, interactive NExS spreadsheet in the conversation. "
    "Use when the user provides a NExS platform URL."
)


def ui_tool_meta(resource_uri: str) -> dict:
    """Tool ``_meta`` linking a tool to the UI resource that renders its results.

    Hosts read either the nested ``ui.resourceUri`` key or the older flat
    ``ui/resourceUri`` key, so both are sent.
    """
    return {
        "ui": {"resourceUri": resource_uri},
        "ui/resourceUri": resource_uri,
    }


def render_spreadsheet_tool_meta() -> dict:
    """Tool metadata for render_nexs_spreadsheet."""
    return ui_tool_meta(SPREADSHEET_RESOURCE_URI)
