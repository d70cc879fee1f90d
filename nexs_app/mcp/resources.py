"""MCP Resource definitions for the NExS app.

The only resource is the spreadsheet widget: an HTML document the host renders
in a sandboxed frame, plus the embedding policy the host applies to it.
"""

from pathlib import Path

import aiofiles
from mcp.types import TextResourceContents

SPREADSHEET_RESOURCE_NAME = "nexs-spreadsheet"
SPREADSHEET_RESOURCE_URI = "ui://nexs/spreadsheet-v2.html"
SPREADSHEET_RESOURCE_DESCRIPTION = "Interactive viewer for published NExS spreadsheets"

# MIME type hosts expect for MCP App UI resources
RESOURCE_MIME_TYPE = "text/html;profile=mcp-app"

DEFAULT_WIDGET_HTML = Path(__file__).resolve().parent.parent / "static" / "spreadsheet.html"


def embedding_policy(platform_origin: str) -> dict:
    """Resource ``_meta`` telling the host how to sandbox the widget.

    The widget frames, fetches from and loads assets from the NExS platform
    only.
    """
    return {
        "ui": {
            "prefersBorder": True,
            "csp": {
                "connectDomains": [platform_origin],
                "resourceDomains": [platform_origin],
                "frameDomains": [platform_origin],
            },
        }
    }


async def load_spreadsheet_contents(
    html_path: Path, platform_origin: str
) -> list[TextResourceContents]:
    """Read the widget HTML from disk. Called on every resources/read."""
    async with aiofiles.open(html_path, encoding="utf-8") as f:
        html = await f.read()

    return [
        TextResourceContents(
            uri=SPREADSHEET_RESOURCE_URI,
            mimeType=RESOURCE_MIME_TYPE,
            text=html,
            _meta=embedding_policy(platform_origin),
        )
    ]
