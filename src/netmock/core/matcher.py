import re
from functools import lru_cache
from typing import Dict, Optional

from pydantic import BaseModel, Field

from ..models import MockFilter


class RequestSnapshot(BaseModel):
    """What the matcher gets to see of an intercepted request."""

    url: str
    method: str = "GET"
    response_headers: Dict[str, str] = Field(default_factory=dict)
    status_code: Optional[int] = None
    post_data: Optional[str] = None


@lru_cache(maxsize=256)
def _glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """Double star spans path segments, single star and ? stay within one."""
    parts = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif c == "*":
            parts.append("[^/]*")
            i += 1
        elif c == "?":
            parts.append("[^/]")
            i += 1
        elif c == "[" and "]" in pattern[i + 2:]:
            end = pattern.index("]", i + 2)
            body = pattern[i + 1:end]
            if body.startswith("!"):
                body = "^" + body[1:]
            parts.append("[" + body.replace("\\", "\\\\") + "]")
            i = end + 1
        else:
            parts.append(re.escape(c))
            i += 1
    return re.compile("".join(parts), re.DOTALL)


def url_matches(pattern: str, url: str) -> bool:
    return _glob_to_regex(pattern).fullmatch(url) is not None


def _method_passes(expected, method: str) -> bool:
    if callable(expected):
        return bool(expected(method))
    return expected.lower() == method.lower()


def _headers_pass(expected, headers: Dict[str, str]) -> bool:
    if callable(expected):
        return bool(expected(dict(headers)))
    lowered = {name.lower(): value for name, value in headers.items()}
    for name, value in expected.items():
        if lowered.get(name.lower()) != value:
            return False
    return True


def _status_code_passes(expected, status_code: Optional[int]) -> bool:
    if callable(expected):
        return bool(expected(status_code))
    return expected == status_code


def _post_data_passes(expected, post_data: Optional[str]) -> bool:
    if callable(expected):
        return bool(expected(post_data))
    return expected == post_data


def filter_passes(flt: Optional[MockFilter], snapshot: RequestSnapshot) -> bool:
    if flt is None:
        return True
    if flt.method is not None and not _method_passes(flt.method, snapshot.method):
        return False
    if flt.headers is not None and not _headers_pass(
        flt.headers, snapshot.response_headers
    ):
        return False
    if flt.status_code is not None and not _status_code_passes(
        flt.status_code, snapshot.status_code
    ):
        return False
    if flt.post_data is not None and not _post_data_passes(
        flt.post_data, snapshot.post_data
    ):
        return False
    return True


def matches(mock, snapshot: RequestSnapshot) -> bool:
    """URL pattern plus every configured filter field must pass."""
    if not url_matches(mock.url_pattern, snapshot.url):
        return False
    return filter_passes(mock.filter, snapshot)
