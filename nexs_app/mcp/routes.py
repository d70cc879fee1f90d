"""ASGI application for the MCP server over HTTP/SSE.

The SSE transport methods (connect_sse, handle_post_message) manage the full
ASGI response lifecycle internally, so they cannot be wrapped in
FastAPI/Starlette function endpoints (which would send a second response).
``MCPApp`` is registered as a raw ASGI route for both MCP paths instead.
"""

from mcp.server import Server
from starlette.responses import Response

from ..config import Settings, get_settings
from ..sessions import SessionRegistry
from .server import create_mcp_server
from .transport import SseSessionTransport


class MCPApp:
    """Combined ASGI app for all MCP endpoints.

    Routes:
        GET  <MCP_PATH>          – SSE stream carrying server messages
        POST <MCP_PATH>/messages – client messages for an open stream

    Each instance owns its session registry, transport and MCP server.
    """

    def __init__(self, server: Server | None = None, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.server = server or create_mcp_server(settings=self.settings)
        self.sessions = SessionRegistry()
        self.mcp_path = self.settings.MCP_PATH.rstrip("/") or "/"
        self.messages_path = self.settings.messages_path
        self.transport = SseSessionTransport(
            self.messages_path,
            self.sessions,
            connect_path=self.mcp_path,
            ping_interval=self.settings.SSE_PING_INTERVAL,
            idle_timeout=self.settings.SSE_IDLE_TIMEOUT,
        )
        self.allowed_methods = {self.mcp_path: "GET", self.messages_path: "POST"}

    @staticmethod
    def _local_path(scope):
        """Return the path relative to this app's mount point.

        Starlette's Mount does not modify ``scope["path"]``; it only
        updates ``root_path``.
        """
        path = scope.get("path", "")
        root = scope.get("root_path", "")
        if root and path.startswith(root):
            path = path[len(root) :]
        return path or "/"

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return

        path = self._local_path(scope).rstrip("/") or "/"
        method = scope["method"]

        if path == self.mcp_path and method == "GET":
            async with self.transport.connect_sse(scope, receive, send) as streams:
                await self.server.run(
                    streams[0],
                    streams[1],
                    self.server.create_initialization_options(),
                )
        elif path == self.messages_path and method == "POST":
            await self.transport.handle_post_message(scope, receive, send)
        elif path in self.allowed_methods:
            response = Response(
                "Method Not Allowed",
                status_code=405,
                headers={"Allow": self.allowed_methods[path]},
            )
            await response(scope, receive, send)
        else:
            response = Response("Not Found", status_code=404)
            await response(scope, receive, send)
