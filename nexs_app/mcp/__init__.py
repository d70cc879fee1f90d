"""MCP (Model Context Protocol) server for the NExS app.

Exposes the ``render_nexs_spreadsheet`` tool and the spreadsheet UI resource
over SSE (see ``routes``) or stdio (see ``cli``).
"""

from .registry import CapabilityRegistry
from .routes import MCPApp
from .server import build_registry, create_mcp_server

__all__ = ["CapabilityRegistry", "MCPApp", "build_registry", "create_mcp_server"]
