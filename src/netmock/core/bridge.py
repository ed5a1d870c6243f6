import base64
from typing import Any, Dict, List, Optional

import structlog
from mitmproxy import http

from ..errors import UnsupportedCommand
from ..models import InterceptionConfig
from .interceptor import create_interception_handler
from .logs import configure_logging
from .mock import Mock
from .stubs import StubBuilder
from .utils import get_safe_text

logger = structlog.get_logger()


class FlowTransport:
    """Speaks the Fetch command set against a single mitmproxy flow."""

    def __init__(self, flow: http.HTTPFlow):
        self.flow = flow
        self.sent: List[str] = []

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        self.sent.append(method)
        params = params or {}
        response = self.flow.response

        if method == "Fetch.getResponseBody":
            content = response.content if response and response.content else b""
            return {
                "body": base64.b64encode(content).decode("ascii"),
                "base64Encoded": True,
            }

        if method == "Fetch.fulfillRequest":
            headers = http.Headers(
                [
                    (h["name"].encode(), h["value"].encode())
                    for h in params.get("responseHeaders", [])
                ]
            )
            body = base64.b64decode(params.get("body") or "")
            if response is None:
                self.flow.response = http.Response.make(
                    params["responseCode"], body, headers
                )
            else:
                response.status_code = params["responseCode"]
                response.headers = headers
                response.content = body
            return {}

        if method == "Fetch.failRequest":
            self.flow.kill()
            return {}

        if method == "Fetch.continueRequest":
            return {}

        raise UnsupportedCommand(f"FlowTransport can't handle '{method}'")


def flow_to_event(flow: http.HTTPFlow) -> Dict[str, Any]:
    event: Dict[str, Any] = {
        "requestId": flow.id,
        "request": {
            "url": flow.request.url,
            "method": flow.request.method,
            "headers": dict(flow.request.headers),
            "postData": get_safe_text(flow.request),
        },
    }
    if flow.response is not None:
        event["responseStatusCode"] = flow.response.status_code
        event["responseHeaders"] = [
            {"name": name, "value": value}
            for name, value in flow.response.headers.items(multi=True)
        ]
    return event


class FetchBridge:
    """
    mitmproxy addon that runs registered mocks against proxied responses.

    Logging is set up as JSON lines on stderr once mitmproxy loads the addon.
    """

    def __init__(self, mocks: Optional[List[Mock]] = None, config: Optional[InterceptionConfig] = None):
        self.mocks: List[Mock] = mocks if mocks is not None else []
        self.config = config or InterceptionConfig()
        self.builder = StubBuilder(self.config)

    def load(self, loader):
        configure_logging()

    def add_mock(self, mock: Mock):
        self.mocks.append(mock)
        logger.info("mock_added", url_pattern=mock.url_pattern)

    def remove_mock(self, mock: Mock):
        if mock in self.mocks:
            self.mocks.remove(mock)

    def clear_mocks(self):
        self.mocks.clear()

    async def response(self, flow: http.HTTPFlow):
        transport = FlowTransport(flow)
        handler = create_interception_handler(
            transport, self.mocks, config=self.config, builder=self.builder
        )
        await handler(flow_to_event(flow))
        logger.debug(
            "flow_intercepted",
            flow_id=flow.id,
            url=flow.request.url,
            commands=transport.sent,
        )
