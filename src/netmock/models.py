from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ErrorReason(str, Enum):
    """Network-level failure reasons accepted by Fetch.failRequest."""

    FAILED = "Failed"
    ABORTED = "Aborted"
    TIMED_OUT = "TimedOut"
    ACCESS_DENIED = "AccessDenied"
    CONNECTION_CLOSED = "ConnectionClosed"
    CONNECTION_RESET = "ConnectionReset"
    CONNECTION_REFUSED = "ConnectionRefused"
    CONNECTION_ABORTED = "ConnectionAborted"
    CONNECTION_FAILED = "ConnectionFailed"
    NAME_NOT_RESOLVED = "NameNotResolved"
    INTERNET_DISCONNECTED = "InternetDisconnected"
    ADDRESS_UNREACHABLE = "AddressUnreachable"
    BLOCKED_BY_CLIENT = "BlockedByClient"
    BLOCKED_BY_RESPONSE = "BlockedByResponse"


class MockFilter(BaseModel):
    """Optional predicates a request has to satisfy on top of the URL pattern."""

    method: Optional[Union[str, Callable[[str], bool]]] = None
    headers: Optional[
        Union[Dict[str, str], Callable[[Dict[str, str]], bool]]
    ] = None
    status_code: Optional[Union[int, Callable[[int], bool]]] = None
    post_data: Optional[Union[str, Callable[[Optional[str]], bool]]] = None

    model_config = {"extra": "forbid"}


class OverwriteOptions(BaseModel):
    # None as a header value removes the header
    headers: Optional[
        Union[
            Dict[str, Optional[Union[str, int, float]]],
            Callable[[Any], Mapping[str, Optional[Union[str, int, float]]]],
        ]
    ] = None
    status_code: Optional[Union[int, Callable[[Any], int]]] = None


class RespondOverwrite(BaseModel):
    """Queued instruction to answer the next matching request with a stub."""

    sticky: bool = False
    responder: Any = None
    options: OverwriteOptions = Field(default_factory=OverwriteOptions)


class AbortOverwrite(BaseModel):
    """Queued instruction to fail the next matching request."""

    sticky: bool = False
    error_reason: ErrorReason


class HeaderEntry(BaseModel):
    name: str
    value: str


class InterceptedRequest(BaseModel):
    url: str
    method: str = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)
    post_data: Optional[str] = Field(default=None, alias="postData")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RequestPausedEvent(BaseModel):
    """Fetch.requestPaused payload, as delivered by the transport."""

    request_id: Optional[Union[int, str]] = Field(default=None, alias="requestId")
    request: InterceptedRequest
    response_status_code: Optional[int] = Field(
        default=None, alias="responseStatusCode"
    )
    response_headers: List[HeaderEntry] = Field(
        default_factory=list, alias="responseHeaders"
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def header_map(self) -> Dict[str, str]:
        """Response headers by name; repeated names are joined with ", "."""
        headers: Dict[str, str] = {}
        for h in self.response_headers:
            if h.name in headers:
                headers[h.name] = f"{headers[h.name]}, {h.value}"
            else:
                headers[h.name] = h.value
        return headers


class Call(BaseModel):
    """One request observed by a mock, with its decoded response body."""

    url: str
    method: str
    headers: Dict[str, str] = Field(default_factory=dict)
    post_data: Optional[str] = None
    response_headers: Dict[str, str] = Field(default_factory=dict)
    status_code: int
    body: Any = None

    model_config = {"frozen": True}


class RemoteResource(BaseModel):
    status_code: int
    headers: List[HeaderEntry] = Field(default_factory=list)
    body: bytes = b""


class InterceptionConfig(BaseModel):
    """Tunables for stub building and remote resource fetching."""

    default_status_code: int = 200
    stub_root: Optional[Path] = None
    remote_timeout: float = 30.0
    impersonate: str = "chrome120"
    verify: bool = True
    default_mime_type: str = "application/octet-stream"
