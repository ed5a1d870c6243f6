import base64
from pathlib import Path

import pytest

from netmock.core.stubs import (
    FileBody,
    LiteralBody,
    PassThrough,
    RemoteBody,
    StubBuilder,
    evaluate_responder,
    resolve_stub,
)
from netmock.core.utils import merge_headers
from netmock.models import (
    AbortOverwrite,
    Call,
    ErrorReason,
    HeaderEntry,
    InterceptionConfig,
    OverwriteOptions,
    RequestPausedEvent,
    RespondOverwrite,
)


def make_event(headers=None, status=None):
    return RequestPausedEvent.model_validate(
        {
            "requestId": "r-1",
            "request": {"url": "http://test.com/a"},
            "responseStatusCode": status,
            "responseHeaders": headers or [],
        }
    )


def make_call(status=200):
    return Call(url="http://test.com/a", method="GET", status_code=status, body={"k": 1})


def test_resolve_dispatch(tmp_path):
    (tmp_path / "page.html").write_text("<p/>")

    assert isinstance(resolve_stub(None), PassThrough)
    assert resolve_stub(b"\x00\x01") == LiteralBody(body=b"\x00\x01")
    assert resolve_stub("hello", tmp_path) == LiteralBody(body=b"hello")
    assert resolve_stub("https://example.com/x.png") == RemoteBody(url="https://example.com/x.png")
    assert resolve_stub("ftp://example.com/x.png") == LiteralBody(body=b"ftp://example.com/x.png")
    assert resolve_stub([1, 2]) == LiteralBody(body=b"[1,2]", content_type="application/json")
    assert resolve_stub(True) == LiteralBody(body=b"true", content_type="application/json")

    source = resolve_stub("page.html", tmp_path)
    assert source == FileBody(path=tmp_path / "page.html", literal="page.html")


def test_resolve_empty_string_is_literal(tmp_path):
    assert resolve_stub("", tmp_path) == LiteralBody(body=b"")


@pytest.mark.asyncio
async def test_evaluate_responder_unwraps_nested_callables():
    call = make_call()
    assert await evaluate_responder(lambda c: lambda c2: c2.url, call) == "http://test.com/a"
    assert await evaluate_responder({"a": 1}, call) == {"a": 1}


def test_merge_headers():
    base = [
        HeaderEntry(name="Content-Type", value="text/html"),
        HeaderEntry(name="Set-Cookie", value="a=1"),
        HeaderEntry(name="set-cookie", value="b=2"),
        HeaderEntry(name="X-Keep", value="yes"),
    ]
    merged = merge_headers(base, {"content-type": "text/plain", "SET-COOKIE": "c=3", "X-New": "1"})
    assert [(h.name, h.value) for h in merged] == [
        ("content-type", "text/plain"),
        ("SET-COOKIE", "c=3"),
        ("X-Keep", "yes"),
        ("X-New", "1"),
    ]
    assert [h.name for h in merge_headers(base, {"x-keep": None})] == [
        "Content-Type",
        "Set-Cookie",
        "set-cookie",
    ]


@pytest.mark.asyncio
async def test_file_stub_content_type_can_be_overridden(tmp_path):
    stub = tmp_path / "data.json"
    stub.write_bytes(b'{"a":1}')
    builder = StubBuilder(InterceptionConfig(stub_root=tmp_path))
    overwrite = RespondOverwrite(
        responder="data.json",
        options=OverwriteOptions(headers={"content-type": "text/plain"}),
    )
    params = await builder.build_response(
        overwrite, make_event([{"name": "Content-Type", "value": "text/html"}]), make_call()
    )
    assert base64.b64decode(params["body"]) == b'{"a":1}'
    assert params["responseHeaders"] == [{"name": "content-type", "value": "text/plain"}]


@pytest.mark.asyncio
async def test_unknown_extension_uses_default_mime_type(tmp_path):
    (tmp_path / "blob.zzzunknown").write_bytes(b"\x00")
    builder = StubBuilder(InterceptionConfig(stub_root=tmp_path, default_mime_type="x/y"))
    params = await builder.build_response(
        RespondOverwrite(responder="blob.zzzunknown"), make_event(), make_call()
    )
    assert params["responseHeaders"] == [{"name": "Content-Type", "value": "x/y"}]


@pytest.mark.asyncio
async def test_unreadable_file_falls_back_to_literal(tmp_path):
    stub = tmp_path / "locked.bin"
    stub.write_bytes(b"secret")

    async def read_file(path: Path) -> bytes:
        raise PermissionError(13, "Permission denied", str(path))

    builder = StubBuilder(read_file=read_file)
    params = await builder.build_response(
        RespondOverwrite(responder=str(stub)), make_event(), make_call()
    )
    assert base64.b64decode(params["body"]) == str(stub).encode()
    assert params["responseHeaders"] == []


@pytest.mark.asyncio
async def test_status_code_defaults_to_call_status():
    builder = StubBuilder()
    params = await builder.build_response(
        RespondOverwrite(responder="x"), make_event(status=404), make_call(status=404)
    )
    assert params["responseCode"] == 404
    assert params["requestId"] == "r-1"


@pytest.mark.asyncio
async def test_status_code_override_is_not_range_checked():
    builder = StubBuilder()
    overwrite = RespondOverwrite(responder="x", options=OverwriteOptions(status_code=99))
    params = await builder.build_response(overwrite, make_event(), make_call())
    assert params["responseCode"] == 99


@pytest.mark.asyncio
async def test_pass_through_returns_none():
    builder = StubBuilder()
    assert await builder.build_response(RespondOverwrite(responder=None), make_event(), make_call()) is None


def test_build_abort():
    builder = StubBuilder()
    overwrite = AbortOverwrite(error_reason=ErrorReason.BLOCKED_BY_RESPONSE)
    assert builder.build_abort(overwrite, make_event()) == {
        "requestId": "r-1",
        "errorReason": "BlockedByResponse",
    }
