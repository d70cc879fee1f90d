"""E2E test configuration: a real uvicorn server plus a test MCP host page."""

import socket
import threading
import time
from contextlib import closing

import httpx
import pytest
import uvicorn
from fastapi.responses import HTMLResponse

from nexs_app.config import Settings
from nexs_app.main import create_app
from nexs_app.mcp.resources import SPREADSHEET_RESOURCE_URI
from nexs_app.mcp.server import build_registry

# Stands in for an MCP host: answers the widget's ui/initialize request and
# lets tests push notifications into the widget frame.
HOST_PAGE = """<!doctype html>
<html>
<body>
  <script>
    window.widgetReady = false;
    function widgetWindow() {
      return document.getElementById("widget").contentWindow;
    }
    window.addEventListener("message", function (event) {
      if (event.source !== widgetWindow()) return;
      var message = event.data || {};
      if (message.method === "ui/initialize") {
        widgetWindow().postMessage({
          jsonrpc: "2.0",
          id: message.id,
          result: {
            protocolVersion: message.params.protocolVersion,
            hostInfo: {name: "e2e-host", version: "1.0.0"},
            hostCapabilities: {}
          }
        }, "*");
      } else if (message.method === "ui/notifications/initialized") {
        window.widgetReady = true;
      }
    });
    window.sendToWidget = function (method, params) {
      widgetWindow().postMessage({jsonrpc: "2.0", method: method, params: params}, "*");
    };
  </script>
  <iframe id="widget" src="/e2e/widget.html" style="width:800px;height:700px;border:0"></iframe>
</body>
</html>
"""


def find_free_port():
    """Find an available port on localhost."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


class ServerThread(threading.Thread):
    """Run uvicorn server in a separate thread."""

    def __init__(self, app, host: str, port: int):
        super().__init__(daemon=True)
        self.app = app
        self.host = host
        self.port = port
        self.server = None

    def run(self):
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="warning",
        )
        self.server = uvicorn.Server(config)
        self.server.run()

    def stop(self):
        if self.server:
            self.server.should_exit = True


def build_e2e_app(settings: Settings):
    """The production app plus the pages a browser test needs."""
    app = create_app(settings)
    registry = build_registry(settings)

    @app.get("/e2e/host.html", include_in_schema=False)
    async def host_page():
        return HTMLResponse(HOST_PAGE)

    @app.get("/e2e/widget.html", include_in_schema=False)
    async def widget_page():
        # Served exactly as resources/read hands it to MCP hosts.
        result = await registry.read_resource(SPREADSHEET_RESOURCE_URI)
        return HTMLResponse(result.contents[0].text)

    return app


@pytest.fixture(scope="session")
def app_server():
    """Start the HTTP server for E2E tests and yield its base URL."""
    app = build_e2e_app(Settings(USAGE_LOGGING_ENABLED=False))

    port = find_free_port()
    server_thread = ServerThread(app, "127.0.0.1", port)
    server_thread.start()

    base_url = f"http://127.0.0.1:{port}"
    for _ in range(50):  # Wait up to 5 seconds
        try:
            with httpx.Client() as client:
                if client.get(f"{base_url}/health").status_code == 200:
                    break
        except httpx.TransportError:
            pass
        time.sleep(0.1)
    else:
        pytest.fail("E2E server did not start")

    yield base_url

    server_thread.stop()
    server_thread.join(timeout=5)
