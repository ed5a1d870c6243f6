from typing import Iterable, List, Mapping, Optional, Union

from mitmproxy import http

from ..models import HeaderEntry


def get_safe_text(message: http.Message) -> Optional[str]:
    """
    Uses Mitmproxy's internal engine to decode traffic.
    Handles Gzip, Brotli, Deflate, and Charsets automatically.
    Returns None if the content is binary/undecodable.
    """
    if not message.content:
        return None
    # strict=False tries headers then UTF-8 then returns None on failure
    return message.get_text(strict=False)


def find_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    name = name.lower()
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def merge_headers(
    base: Iterable[HeaderEntry],
    overrides: Mapping[str, Optional[Union[str, int, float]]],
) -> List[HeaderEntry]:
    """
    Apply `overrides` on top of `base`, matching names case-insensitively.

    A None value drops the header. Anything else replaces the first header
    with that name in place (later duplicates are dropped) or is appended.
    """
    merged = [HeaderEntry(name=h.name, value=h.value) for h in base]
    for name, value in overrides.items():
        lowered = name.lower()
        position = next(
            (i for i, h in enumerate(merged) if h.name.lower() == lowered), None
        )
        merged = [h for h in merged if h.name.lower() != lowered]
        if value is None:
            continue
        entry = HeaderEntry(name=name, value=str(value))
        if position is None:
            merged.append(entry)
        else:
            merged.insert(position, entry)
    return merged
