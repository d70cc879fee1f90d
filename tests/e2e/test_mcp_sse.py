"""E2E tests for the MCP SSE bridge against a running server."""

import asyncio
import json
from contextlib import asynccontextmanager

import httpx
import pytest
from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.shared.exceptions import McpError
from mcp.types import LATEST_PROTOCOL_VERSION, METHOD_NOT_FOUND

TOOL = "render_nexs_spreadsheet"
URL_A = "https://platform.nexs.com/app/A"
URL_B = "https://platform.nexs.com/app/B"


@asynccontextmanager
async def mcp_session(base_url: str):
    """An initialized client session over GET /mcp."""
    async with sse_client(f"{base_url}/mcp") as (read_stream, write_stream):
        async with ClientSession(read_stream, write_stream) as session:
            await session.initialize()
            yield session


async def open_sessions(base_url: str) -> int:
    async with httpx.AsyncClient(base_url=base_url) as http:
        response = await http.get("/health")
        return response.json()["sessions"]


async def wait_for_sessions(base_url: str, expected: int, timeout: float = 10.0):
    """Poll /health until the server reports ``expected`` open sessions."""
    deadline = asyncio.get_running_loop().time() + timeout
    while True:
        count = await open_sessions(base_url)
        if count == expected:
            return
        if asyncio.get_running_loop().time() > deadline:
            pytest.fail(f"expected {expected} open sessions, server reports {count}")
        await asyncio.sleep(0.1)


async def read_event(lines):
    """Read one SSE event from an ``aiter_lines()`` iterator, skipping pings."""
    event, data = None, []
    async for line in lines:
        if line.startswith("event:"):
            event = line[len("event:") :].strip()
        elif line.startswith("data:"):
            data.append(line[len("data:") :].strip())
        elif not line and event:
            return event, "\n".join(data)
    raise AssertionError("stream ended before the next event")


class TestSseClient:
    """The SDK's SSE client talking to the server end to end."""

    @pytest.mark.asyncio
    async def test_call_tool(self, app_server):
        """tools/call is answered on the session's stream."""
        await wait_for_sessions(app_server, 0)

        async with mcp_session(app_server) as session:
            tools = await session.list_tools()
            result = await session.call_tool(TOOL, {"app_url": URL_A})

        assert [t.name for t in tools.tools] == [TOOL]
        assert result.isError is False
        assert result.structuredContent == {"app_url": URL_A}
        assert URL_A in result.content[0].text

    @pytest.mark.asyncio
    async def test_protocol_errors_reach_the_client(self, app_server):
        async with mcp_session(app_server) as session:
            with pytest.raises(McpError) as exc_info:
                await session.call_tool("no_such_tool", {})

        assert exc_info.value.error.code == METHOD_NOT_FOUND

    @pytest.mark.asyncio
    async def test_session_removed_after_disconnect(self, app_server):
        """Closing the client stream drops its session on the server."""
        await wait_for_sessions(app_server, 0)

        async with mcp_session(app_server) as session:
            await session.send_ping()
            assert await open_sessions(app_server) == 1

        await wait_for_sessions(app_server, 0)

    @pytest.mark.asyncio
    async def test_concurrent_sessions_are_independent(self, app_server):
        """Two open sessions each get their own responses."""
        await wait_for_sessions(app_server, 0)

        async with mcp_session(app_server) as first, mcp_session(app_server) as second:
            assert await open_sessions(app_server) == 2

            result_a, result_b = await asyncio.gather(
                first.call_tool(TOOL, {"app_url": URL_A}),
                second.call_tool(TOOL, {"app_url": URL_B}),
            )
            assert result_a.structuredContent == {"app_url": URL_A}
            assert result_b.structuredContent == {"app_url": URL_B}

        await wait_for_sessions(app_server, 0)


class TestRawHttp:
    """The wire protocol driven by hand: GET stream, POST messages."""

    @pytest.mark.asyncio
    async def test_round_trip_and_stale_session(self, app_server):
        """Messages POSTed to the endpoint are answered on the stream; a closed
        session's endpoint then returns 404."""
        async with httpx.AsyncClient(base_url=app_server, timeout=10) as http:
            async with http.stream("GET", "/mcp") as stream:
                assert stream.status_code == 200
                assert stream.headers["content-type"].startswith("text/event-stream")
                lines = stream.aiter_lines()

                event, endpoint = await read_event(lines)
                assert event == "endpoint"
                assert endpoint.startswith("/mcp/messages?sessionId=")

                initialize = {
                    "jsonrpc": "2.0",
                    "id": 1,
                    "method": "initialize",
                    "params": {
                        "protocolVersion": LATEST_PROTOCOL_VERSION,
                        "capabilities": {},
                        "clientInfo": {"name": "e2e", "version": "1.0.0"},
                    },
                }
                response = await http.post(endpoint, json=initialize)
                assert response.status_code == 202

                event, data = await read_event(lines)
                assert event == "message"
                assert json.loads(data)["id"] == 1

                initialized = {"jsonrpc": "2.0", "method": "notifications/initialized"}
                assert (await http.post(endpoint, json=initialized)).status_code == 202

                call = {
                    "jsonrpc": "2.0",
                    "id": 2,
                    "method": "tools/call",
                    "params": {"name": TOOL, "arguments": {"app_url": URL_A}},
                }
                assert (await http.post(endpoint, json=call)).status_code == 202

                event, data = await read_event(lines)
                message = json.loads(data)
                assert event == "message"
                assert message["id"] == 2
                assert message["result"]["structuredContent"] == {"app_url": URL_A}

            await wait_for_sessions(app_server, 0)
            response = await http.post(endpoint, json=call)

        assert response.status_code == 404
        assert response.text == "Session not found. Please connect to /mcp first."
