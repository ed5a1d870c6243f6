import json

import pytest
from mitmproxy.test.tflow import tflow

from netmock.core.bridge import FetchBridge, FlowTransport, flow_to_event
from netmock.core.mock import Mock
from netmock.errors import UnsupportedCommand


def test_flow_to_event():
    f = tflow(resp=True)
    event = flow_to_event(f)
    assert event["requestId"] == f.id
    assert event["request"]["url"] == f.request.url
    assert event["request"]["method"] == "GET"
    assert event["responseStatusCode"] == 200
    assert len(event["responseHeaders"]) == len(f.response.headers.fields)


@pytest.mark.asyncio
async def test_records_without_modifying():
    """Mocks without overwrites only observe the flow."""
    mock = Mock("**/path")
    bridge = FetchBridge([mock])

    f = tflow(resp=True)
    await bridge.response(f)

    assert f.response.content == b"message"
    assert len(mock.calls) == 1
    assert mock.calls[0].body == "message"


@pytest.mark.asyncio
async def test_fulfills_with_stub():
    bridge = FetchBridge()
    mock = Mock("**/path")
    mock.respond_once({"ok": True}, status_code=201)
    bridge.add_mock(mock)

    f = tflow(resp=True)
    await bridge.response(f)

    assert f.response.status_code == 201
    assert json.loads(f.response.content) == {"ok": True}
    assert f.response.headers["content-type"] == "application/json"
    assert len(mock.respond_overwrites) == 0


@pytest.mark.asyncio
async def test_fails_flow():
    mock = Mock("**/path")
    mock.abort("BlockedByClient")
    bridge = FetchBridge([mock])

    f = tflow(resp=True)
    f.kill = lambda: setattr(f, "killed", True)  # Mock kill
    f.killed = False

    await bridge.response(f)
    assert f.killed


@pytest.mark.asyncio
async def test_unmatched_flow_untouched():
    bridge = FetchBridge([Mock("**/other")])
    f = tflow(resp=True)
    await bridge.response(f)
    assert f.response.content == b"message"


def test_add_remove_mock():
    bridge = FetchBridge()
    mock = Mock("**")
    bridge.add_mock(mock)
    assert mock in bridge.mocks
    bridge.remove_mock(mock)
    assert mock not in bridge.mocks
    bridge.add_mock(mock)
    bridge.clear_mocks()
    assert bridge.mocks == []


@pytest.mark.asyncio
async def test_unsupported_command():
    transport = FlowTransport(tflow(resp=True))
    with pytest.raises(UnsupportedCommand):
        await transport.send("Network.enable")
