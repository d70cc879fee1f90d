"""Spreadsheet widget runtime.

The host pushes two notifications to the widget over its message channel:
``ui/notifications/tool-input`` (the arguments the tool is about to be called
with) and ``ui/notifications/tool-result`` (the tool's response). The
widget turns them into either an embedded frame for the spreadsheet or, when
no URL can be found, a diagnostic panel listing what it received. Only
https://platform.nexs.com/app/<token> URLs are ever framed; any other value
counts as no URL.

``static/spreadsheet.html`` is the browser build of the same state machine.
"""

from __future__ import annotations

import html
import json
import logging
import re
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

TOOL_INPUT_METHOD = "ui/notifications/tool-input"
TOOL_RESULT_METHOD = "ui/notifications/tool-result"

NEXS_APP_URL_PATTERN = re.compile(r"https://platform\.nexs\.com/app/[\w-]+")

FRAME_TEMPLATE = (
    '<div style="padding-top:92.9%;position:relative;width:100%">'
    '<iframe src="{src}" '
    'style="position:absolute;left:0;top:0;width:100%;height:100%;border:0" '
    'allow="fullscreen" allowfullscreen></iframe>'
    "</div>"
)

DIAGNOSTIC_TEMPLATE = (
    '<div class="diagnostic">'
    "<p>No spreadsheet URL could be found in the tool call.</p>"
    "<pre>{history}</pre>"
    "</div>"
)

UrlExtractor = Callable[[dict[str, Any]], str | None]


def _nexs_app_url(value: Any) -> str | None:
    """Return ``value`` if it is a NExS app URL, otherwise None."""
    if isinstance(value, str) and NEXS_APP_URL_PATTERN.fullmatch(value.strip()):
        return value.strip()
    return None


def structured_app_url(result: dict[str, Any]) -> str | None:
    """``structuredContent.app_url`` set by the tool."""
    structured = result.get("structuredContent")
    if isinstance(structured, dict):
        return _nexs_app_url(structured.get("app_url"))
    return None


def echoed_argument_app_url(result: dict[str, Any]) -> str | None:
    """``arguments.app_url`` echoed back by hosts that merge the call into the result."""
    arguments = result.get("arguments")
    if isinstance(arguments, dict):
        return _nexs_app_url(arguments.get("app_url"))
    return None


def text_block_app_url(result: dict[str, Any]) -> str | None:
    """First NExS app URL mentioned in any ``text`` content block."""
    for block in result.get("content") or []:
        if not isinstance(block, dict) or block.get("type") != "text":
            continue
        match = NEXS_APP_URL_PATTERN.search(block.get("text") or "")
        if match:
            return match.group(0)
    return None


# Tried in order; the first extractor returning a URL wins.
URL_EXTRACTORS: tuple[UrlExtractor, ...] = (
    structured_app_url,
    echoed_argument_app_url,
    text_block_app_url,
)


def extract_app_url(result: dict[str, Any]) -> str | None:
    """Return the spreadsheet URL carried by a tool result, if any."""
    for extractor in URL_EXTRACTORS:
        url = extractor(result)
        if url:
            return url
    return None


def render_frame(url: str) -> str:
    return FRAME_TEMPLATE.format(src=html.escape(url, quote=True))


def render_diagnostic(history: list[dict[str, Any]]) -> str:
    dump = json.dumps(history, indent=2, default=str)
    return DIAGNOSTIC_TEMPLATE.format(history=html.escape(dump))


class WidgetRuntime:
    """Host-message driven state of one widget instance.

    A URL from tool-input is rendered right away; a URL found in the
    tool-result replaces it, since the result is the authoritative payload.
    Tool-input may never arrive at all.
    """

    def __init__(self):
        self.history: list[dict[str, Any]] = []
        self.app_url: str | None = None
        self.rendered: str | None = None
        self._rendered_url: str | None = None

    def handle_message(self, message: dict[str, Any]) -> str | None:
        """Dispatch one JSON-RPC notification from the host.

        Returns the new markup when the view changed, otherwise None.
        """
        method = message.get("method")
        params = message.get("params")
        if not isinstance(params, dict):
            params = {}
        if method == TOOL_INPUT_METHOD:
            return self.on_tool_input(params)
        if method == TOOL_RESULT_METHOD:
            return self.on_tool_result(params)
        logger.debug("Ignoring host message %s", method)
        return None

    def on_tool_input(self, params: dict[str, Any]) -> str | None:
        self.history.append({"event": "tool-input", "params": params})
        arguments = params.get("arguments")
        url = _nexs_app_url(arguments.get("app_url")) if isinstance(arguments, dict) else None
        if url:
            self.app_url = url
            return self._show_frame(url)
        return None

    def on_tool_result(self, result: dict[str, Any]) -> str | None:
        self.history.append({"event": "tool-result", "params": result})
        url = extract_app_url(result) or self.app_url
        if url:
            self.app_url = url
            return self._show_frame(url)

        logger.warning("No spreadsheet URL in tool call, showing diagnostics")
        return self._show(render_diagnostic(self.history), url=None)

    def _show_frame(self, url: str) -> str | None:
        if self._rendered_url == url:
            return None
        return self._show(render_frame(url), url=url)

    def _show(self, markup: str, url: str | None) -> str:
        self.rendered = markup
        self._rendered_url = url
        return markup
