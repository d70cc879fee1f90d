"""Pydantic models for MCP tool arguments.

These double as the validator for each tool and as the source of its
``inputSchema`` (see `nexs_app/mcp/schema.py`).
"""

from __future__ import annotations

from pydantic import BaseModel, Field

NEXS_URL_PATTERN = r"^https://platform\.nexs\.com/"


class RenderSpreadsheetArgs(BaseModel):
    app_url: str = Field(
        description="A published NExS spreadsheet URL (https://platform.nexs.com/...).",
        pattern=NEXS_URL_PATTERN,
    )
