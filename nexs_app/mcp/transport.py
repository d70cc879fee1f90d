"""SSE transport for MCP backed by an explicit session registry.

A client opens ``GET <mcp path>`` and keeps it open. The first event on the
stream is ``endpoint``, carrying the URL (with ``sessionId``) the client must
POST its JSON-RPC messages to. Responses and notifications from the server
arrive on the stream as ``message`` events.

Every outbound message of a session goes through that session's single
writer task, so the stream never sees concurrent writes.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import quote

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from mcp import types
from mcp.shared.message import SessionMessage
from pydantic import ValidationError
from sse_starlette import EventSourceResponse
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from ..sessions import SessionNotFoundError, SessionRegistry

logger = logging.getLogger(__name__)


class SseSessionTransport:
    """Bridges SSE streams and POSTed messages through a ``SessionRegistry``.

    ``connect_sse`` and ``handle_post_message`` are ASGI applications: they
    send their own responses and must not be wrapped in framework endpoints.
    """

    def __init__(
        self,
        messages_path: str,
        sessions: SessionRegistry,
        *,
        connect_path: str = "/mcp",
        ping_interval: int = 15,
        idle_timeout: float | None = None,
    ):
        self.messages_path = messages_path
        self.sessions = sessions
        self.connect_path = connect_path
        self.ping_interval = ping_interval
        self.idle_timeout = idle_timeout

    def _endpoint_uri(self, scope: Scope, session_id: str) -> str:
        root_path = scope.get("root_path", "")
        return f"{quote(root_path + self.messages_path)}?sessionId={session_id}"

    @asynccontextmanager
    async def connect_sse(self, scope: Scope, receive: Receive, send: Send):
        """Open a stream, register its session and yield ``(read_stream, write_stream)``.

        The session is removed as soon as the stream closes, whether the
        client disconnected, the network failed or the idle timeout fired.
        """
        if scope["type"] != "http":
            raise ValueError("connect_sse can only handle HTTP requests")

        read_stream_writer: MemoryObjectSendStream[SessionMessage | Exception]
        read_stream: MemoryObjectReceiveStream[SessionMessage | Exception]
        write_stream: MemoryObjectSendStream[SessionMessage]
        write_stream_reader: MemoryObjectReceiveStream[SessionMessage]

        read_stream_writer, read_stream = anyio.create_memory_object_stream(0)
        write_stream, write_stream_reader = anyio.create_memory_object_stream(0)
        sse_stream_writer, sse_stream_reader = anyio.create_memory_object_stream[dict[str, Any]](0)

        session_id = self.sessions.create(read_stream_writer)
        endpoint_uri = self._endpoint_uri(scope, session_id)

        async def sse_writer():
            async with sse_stream_writer, write_stream_reader:
                await sse_stream_writer.send({"event": "endpoint", "data": endpoint_uri})
                logger.debug("Sent endpoint event: %s", endpoint_uri)

                try:
                    while True:
                        session_message = None
                        with anyio.move_on_after(self.idle_timeout):
                            session_message = await write_stream_reader.receive()
                        if session_message is None:
                            logger.info("Closing idle session %s", session_id)
                            return

                        await sse_stream_writer.send(
                            {
                                "event": "message",
                                "data": session_message.message.model_dump_json(
                                    by_alias=True, exclude_none=True
                                ),
                            }
                        )
                except anyio.EndOfStream:
                    return

        async def run_response():
            try:
                response = EventSourceResponse(
                    content=sse_stream_reader,
                    data_sender_callable=sse_writer,
                    ping=self.ping_interval,
                )
                await response(scope, receive, send)
            finally:
                self.sessions.remove(session_id)
                await read_stream_writer.aclose()
                await write_stream_reader.aclose()
                logger.debug("Stream closed for session %s", session_id)

        async with anyio.create_task_group() as tg:
            tg.start_soon(run_response)
            yield (read_stream, write_stream)

    async def handle_post_message(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Deliver one POSTed JSON-RPC message to its session's stream."""
        request = Request(scope, receive)

        session_id = request.query_params.get("sessionId")
        if not session_id:
            logger.warning("Received message without sessionId")
            response = Response("sessionId is required", status_code=400)
            await response(scope, receive, send)
            return

        try:
            session = self.sessions.resolve(session_id)
        except SessionNotFoundError:
            logger.warning("Message for unknown session %s", session_id)
            response = Response(
                f"Session not found. Please connect to {self.connect_path} first.",
                status_code=404,
            )
            await response(scope, receive, send)
            return

        body = await request.body()
        try:
            message = types.JSONRPCMessage.model_validate_json(body)
        except ValidationError:
            logger.warning("Could not parse message for session %s", session_id)
            response = Response("Could not parse message", status_code=400)
            await response(scope, receive, send)
            return

        response = Response("Accepted", status_code=202)
        await response(scope, receive, send)

        try:
            await session.writer.send(SessionMessage(message))
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            # The stream closed between lookup and delivery.
            logger.warning("Session %s closed before message delivery", session_id)
            self.sessions.remove(session_id)
