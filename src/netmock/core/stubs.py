"""
Stub building.

Turns a queued respond/abort overwrite into Fetch.fulfillRequest /
Fetch.failRequest parameters. A responder value is resolved once into one
of a few stub sources:

- callable: invoked with the recorded Call, its result is resolved again
- None: pass-through, the request continues untouched
- str naming an existing file: file contents, content-type from extension
- str with an http(s) URL: fetched, its headers/status/body reused
- other str or bytes: literal body
- anything else: JSON
"""

import asyncio
import base64
import inspect
import json
import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

from curl_cffi import CurlError
from curl_cffi.requests import AsyncSession
from pydantic import BaseModel

from ..models import (
    AbortOverwrite,
    Call,
    HeaderEntry,
    InterceptionConfig,
    RemoteResource,
    RequestPausedEvent,
    RespondOverwrite,
)
from .mock import parse_error_reason
from .utils import merge_headers

logger = logging.getLogger("netmock")

JSON_CONTENT_TYPE = "application/json"

# curl_cffi hands back the decoded body, so these no longer describe it
_DROPPED_REMOTE_HEADERS = {"content-encoding", "content-length", "transfer-encoding"}


class PassThrough(BaseModel):
    pass


class LiteralBody(BaseModel):
    body: bytes
    content_type: Optional[str] = None


class FileBody(BaseModel):
    path: Path
    literal: str


class RemoteBody(BaseModel):
    url: str


StubSource = Union[PassThrough, LiteralBody, FileBody, RemoteBody]


def to_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _existing_file(value: str, root: Optional[Path]) -> Optional[Path]:
    if not value:
        return None
    try:
        path = Path(value)
        if not path.is_absolute():
            path = (root or Path.cwd()) / path
        return path if path.is_file() else None
    except (OSError, ValueError):
        return None


def _is_remote_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def resolve_stub(value: Any, root: Optional[Path] = None) -> StubSource:
    """Classify an already-evaluated responder value."""
    if value is None:
        return PassThrough()
    if isinstance(value, (bytes, bytearray)):
        return LiteralBody(body=bytes(value))
    if isinstance(value, str):
        path = _existing_file(value, root)
        if path is not None:
            return FileBody(path=path, literal=value)
        if _is_remote_url(value):
            return RemoteBody(url=value)
        return LiteralBody(body=value.encode("utf-8"))
    return LiteralBody(body=to_json(value).encode("utf-8"), content_type=JSON_CONTENT_TYPE)


async def evaluate_responder(responder: Any, call: Call) -> Any:
    value = responder
    while callable(value):
        value = value(call)
        if inspect.isawaitable(value):
            value = await value
    return value


async def read_file_stub(path: Path) -> bytes:
    return await asyncio.to_thread(path.read_bytes)


async def fetch_remote(url: str, config: InterceptionConfig) -> RemoteResource:
    """GET `url` without following redirects."""
    async with AsyncSession(
        impersonate=config.impersonate,
        verify=config.verify,
        timeout=config.remote_timeout,
    ) as client:
        response = await client.get(url, allow_redirects=False)

    headers = [
        HeaderEntry(name=name, value=value)
        for name, value in response.headers.items()
        if name.lower() not in _DROPPED_REMOTE_HEADERS
    ]
    return RemoteResource(
        status_code=response.status_code,
        headers=headers,
        body=response.content,
    )


def _serialize_headers(headers: List[HeaderEntry]) -> List[Dict[str, str]]:
    return [{"name": h.name, "value": h.value} for h in headers]


class StubBuilder:
    """Materializes overwrites into protocol command parameters."""

    def __init__(
        self,
        config: Optional[InterceptionConfig] = None,
        fetch=None,
        read_file=None,
    ):
        self.config = config or InterceptionConfig()
        self._fetch = fetch or fetch_remote
        self._read_file = read_file or read_file_stub

    async def build_response(
        self,
        overwrite: RespondOverwrite,
        event: RequestPausedEvent,
        call: Call,
    ) -> Optional[Dict[str, Any]]:
        """
        Build Fetch.fulfillRequest params, or None when the responder
        resolves to nothing and the request should continue as is.
        """
        value = await evaluate_responder(overwrite.responder, call)
        source = resolve_stub(value, self.config.stub_root)
        if isinstance(source, PassThrough):
            return None

        status_code = call.status_code
        headers = list(event.response_headers)
        content_type = None

        if isinstance(source, FileBody):
            try:
                body = await self._read_file(source.path)
                content_type = (
                    mimetypes.guess_type(source.path.name)[0]
                    or self.config.default_mime_type
                )
            except OSError as e:
                logger.warning("Couldn't read stub file '%s': %s", source.path, e)
                body = source.literal.encode("utf-8")
        elif isinstance(source, RemoteBody):
            try:
                remote = await self._fetch(source.url, self.config)
                headers = list(remote.headers)
                status_code = remote.status_code
                body = remote.body
            except CurlError as e:
                logger.warning("Couldn't fetch stub resource '%s': %s", source.url, e)
                body = source.url.encode("utf-8")
        else:
            body = source.body
            content_type = source.content_type

        if content_type:
            headers = merge_headers(headers, {"Content-Type": content_type})

        options = overwrite.options
        overrides = options.headers
        if callable(overrides):
            overrides = overrides(call)
        if overrides:
            headers = merge_headers(headers, overrides)

        if options.status_code is not None:
            status_code = (
                options.status_code(call)
                if callable(options.status_code)
                else options.status_code
            )

        return {
            "requestId": event.request_id,
            "responseCode": status_code,
            "responseHeaders": _serialize_headers(headers),
            "body": base64.b64encode(body).decode("ascii"),
        }

    def build_abort(self, overwrite: AbortOverwrite, event: RequestPausedEvent) -> Dict[str, Any]:
        reason = parse_error_reason(overwrite.error_reason)
        return {"requestId": event.request_id, "errorReason": reason.value}
