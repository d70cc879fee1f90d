"""Structured usage logging for MCP traffic.

Logs requests in Elasticsearch-compatible JSON format (ECS - Elastic Common Schema).
Implemented as plain ASGI middleware so the long-lived SSE stream is never
buffered: the entry is written as soon as the response starts.
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from urllib.parse import parse_qs

from starlette.types import ASGIApp, Message, Receive, Scope, Send

usage_logger = logging.getLogger("nexs.usage")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger for the application."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def configure_usage_logging(destination: str = "stdout", file_path: str | None = None) -> None:
    """Configure the usage logger based on settings.

    Args:
        destination: Where to log - "stdout", "file", or "external"
        file_path: Path to log file (required if destination is "file")
    """
    logger = logging.getLogger("nexs.usage")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    if destination == "stdout":
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    elif destination == "file" and file_path:
        log_path = Path(file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        handler = logging.FileHandler(file_path)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    # "external" means no local handler - logs go to external service via separate config


def build_log_entry(scope: Scope, status_code: int, start_time: datetime) -> dict:
    """Build an ECS-compatible entry for one request."""
    duration_ms = (datetime.now(UTC) - start_time).total_seconds() * 1000
    headers = dict(scope.get("headers") or [])
    query = scope.get("query_string", b"").decode("latin-1")
    client = scope.get("client")
    user_agent = headers.get(b"user-agent")

    entry = {
        "@timestamp": start_time.isoformat(),
        "event": {
            "category": "mcp",
            "action": scope["method"].lower(),
            "duration": int(duration_ms * 1_000_000),  # nanoseconds for ECS
            "outcome": "success" if status_code < 400 else "failure",
        },
        "http": {
            "request": {"method": scope["method"]},
            "response": {"status_code": status_code},
        },
        "url": {
            "path": scope["path"],
            "query": query or None,
        },
        "client": {
            "ip": client[0] if client else None,
        },
        "user_agent": {
            "original": user_agent.decode("latin-1") if user_agent else None,
        },
    }

    session_id = parse_qs(query).get("sessionId", [None])[0]
    if session_id:
        entry["mcp"] = {"session": {"id": session_id}}

    return entry


class UsageLoggingMiddleware:
    """Logs MCP requests without holding on to their response bodies."""

    def __init__(self, app: ASGIApp, path_prefix: str = "/mcp"):
        self.app = app
        self.path_prefix = path_prefix

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(self.path_prefix):
            await self.app(scope, receive, send)
            return

        start_time = datetime.now(UTC)

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                entry = build_log_entry(scope, message["status"], start_time)
                usage_logger.info(json.dumps(entry, default=str))
            await send(message)

        await self.app(scope, receive, send_wrapper)
