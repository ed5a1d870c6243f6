import base64
import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Union

from ..errors import ResponseDecodeError
from ..models import Call, InterceptionConfig, RequestPausedEvent
from .matcher import RequestSnapshot, matches
from .mock import Mock
from .stubs import StubBuilder
from .utils import find_header

logger = logging.getLogger("netmock")


class Transport(Protocol):
    async def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        ...


def decode_response_body(reply: Optional[Mapping[str, Any]], headers: Mapping[str, str]):
    """
    Decode a Fetch.getResponseBody reply into text, or into parsed JSON
    when the response content-type says so.
    """
    reply = reply or {}
    raw = reply.get("body") or ""
    if reply.get("base64Encoded", True):
        text = base64.b64decode(raw).decode("utf-8", errors="replace")
    else:
        text = raw

    content_type = find_header(headers, "content-type") or ""
    if "json" not in content_type.lower():
        return text
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ResponseDecodeError(
            f"Response declared as '{content_type}' is not valid JSON: {e}"
        ) from e


def _snapshot(event: RequestPausedEvent, status_code: int) -> RequestSnapshot:
    return RequestSnapshot(
        url=event.request.url,
        method=event.request.method,
        response_headers=event.header_map(),
        status_code=status_code,
        post_data=event.request.post_data,
    )


class InterceptionHandler:
    """
    Handles Fetch.requestPaused events for a caller-owned set of mocks.

    Every matching mock gets the call recorded. The wire action comes from
    the first matching mock (registration order) with a pending abort, else
    the first one with a pending response, else the request continues.
    """

    def __init__(
        self,
        transport: Transport,
        mocks: Iterable[Mock],
        config: Optional[InterceptionConfig] = None,
        builder: Optional[StubBuilder] = None,
    ):
        self.transport = transport
        self.mocks = mocks
        self.config = config or InterceptionConfig()
        self.builder = builder or StubBuilder(self.config)

    async def __call__(self, event: Union[RequestPausedEvent, Mapping[str, Any]]):
        if not isinstance(event, RequestPausedEvent):
            event = RequestPausedEvent.model_validate(event)

        status_code = (
            event.response_status_code
            if event.response_status_code is not None
            else self.config.default_status_code
        )
        snapshot = _snapshot(event, status_code)
        # membership is read per event so mocks added later are honored
        matched: List[Mock] = [m for m in list(self.mocks) if matches(m, snapshot)]

        if not matched:
            await self.transport.send("Fetch.continueRequest", {"requestId": event.request_id})
            return

        reply = await self.transport.send(
            "Fetch.getResponseBody", {"requestId": event.request_id}
        )
        response_headers = event.header_map()
        call = Call(
            url=event.request.url,
            method=event.request.method,
            headers=event.request.headers,
            post_data=event.request.post_data,
            response_headers=response_headers,
            status_code=status_code,
            body=decode_response_body(reply, response_headers),
        )
        for mock in matched:
            mock.record(call)
        logger.debug(
            "Recorded %s %s for %d mock(s)", call.method, call.url, len(matched)
        )

        for mock in matched:
            overwrite = mock.abort_overwrites.peek_front()
            if overwrite is None:
                continue
            params = self.builder.build_abort(overwrite, event)
            await self.transport.send("Fetch.failRequest", params)
            mock.abort_overwrites.consume_front_if_one_shot(overwrite)
            logger.info(
                "Failed request '%s' with %s per mock '%s'",
                call.url,
                params["errorReason"],
                mock.url_pattern,
            )
            return

        for mock in matched:
            overwrite = mock.respond_overwrites.peek_front()
            if overwrite is None:
                continue
            params = await self.builder.build_response(overwrite, event, call)
            if params is None:
                await self.transport.send(
                    "Fetch.continueRequest", {"requestId": event.request_id}
                )
            else:
                await self.transport.send("Fetch.fulfillRequest", params)
                logger.info(
                    "Fulfilled request '%s' with %s per mock '%s'",
                    call.url,
                    params["responseCode"],
                    mock.url_pattern,
                )
            mock.respond_overwrites.consume_front_if_one_shot(overwrite)
            return

        await self.transport.send("Fetch.continueRequest", {"requestId": event.request_id})


def create_interception_handler(
    transport: Transport,
    mocks: Iterable[Mock],
    config: Optional[InterceptionConfig] = None,
    builder: Optional[StubBuilder] = None,
) -> InterceptionHandler:
    """Bind a transport and a mock collection into a per-event async handler."""
    return InterceptionHandler(transport, mocks, config=config, builder=builder)
