"""NExS MCP App - HTTP server exposing the MCP endpoints."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .logging_middleware import (
    UsageLoggingMiddleware,
    configure_logging,
    configure_usage_logging,
)
from .mcp.routes import MCPApp

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the HTTP application. Every call gets its own MCP sessions and server."""
    settings = settings or get_settings()

    app = FastAPI(
        title="NExS MCP App",
        version=settings.SERVER_VERSION,
        description="MCP App rendering published NExS spreadsheets",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.USAGE_LOGGING_ENABLED:
        configure_usage_logging(
            destination=settings.USAGE_LOG_DESTINATION,
            file_path=settings.USAGE_LOG_FILE_PATH,
        )
        app.add_middleware(UsageLoggingMiddleware, path_prefix=settings.MCP_PATH)

    mcp_app = MCPApp(settings=settings)
    app.state.mcp = mcp_app
    app.add_route(mcp_app.mcp_path, mcp_app, methods=["GET"], include_in_schema=False)
    app.add_route(mcp_app.messages_path, mcp_app, methods=["POST"], include_in_schema=False)

    @app.get("/health")
    async def health():
        """Liveness check with the number of open MCP sessions."""
        return {"status": "ok", "sessions": len(mcp_app.sessions)}

    return app


def main():
    """Run the HTTP server with uvicorn."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    app = create_app(settings)
    logger.info(
        "NExS MCP App server listening on http://localhost:%d%s", settings.PORT, settings.MCP_PATH
    )
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
