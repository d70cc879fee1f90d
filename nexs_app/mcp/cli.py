"""CLI entry point for running the NExS MCP server.

Usage:
    nexs-mcp-app            # HTTP/SSE on HOST:PORT (default port 3001)
    nexs-mcp-app --stdio    # stdio, for desktop hosts that spawn the server
"""

import argparse
import asyncio

from ..config import get_settings
from ..logging_middleware import configure_logging


def main(argv=None):
    """Main entry point for the MCP server CLI."""
    parser = argparse.ArgumentParser(prog="nexs-mcp-app", description=__doc__.splitlines()[0])
    parser.add_argument("--stdio", action="store_true", help="serve MCP over stdio instead of HTTP")
    args = parser.parse_args(argv)

    if args.stdio:
        from .server import run_stdio_server

        configure_logging(get_settings().LOG_LEVEL)
        asyncio.run(run_stdio_server())
    else:
        from ..main import main as run_http_server

        run_http_server()


if __name__ == "__main__":
    main()
