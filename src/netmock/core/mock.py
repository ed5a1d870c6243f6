import logging
from typing import List, Mapping, Optional, Tuple, Union

from ..errors import InvalidAbortReason
from ..models import (
    AbortOverwrite,
    Call,
    ErrorReason,
    MockFilter,
    OverwriteOptions,
    RespondOverwrite,
)
from .overwrites import OverwriteQueue

logger = logging.getLogger("netmock")


def parse_error_reason(reason) -> ErrorReason:
    if isinstance(reason, ErrorReason):
        return reason
    try:
        return ErrorReason(reason)
    except ValueError:
        raise InvalidAbortReason(reason) from None


class Mock:
    """
    A URL pattern plus filter that records matching requests and can
    stub or fail them.

    Example:
        mock = Mock("**/api/users/**", {"method": "get"})
        mock.respond_once({"id": 1})
        mock.abort("ConnectionFailed")
    """

    def __init__(
        self,
        url_pattern: str,
        filter: Optional[Union[MockFilter, Mapping]] = None,
    ):
        self.url_pattern = url_pattern
        if filter is not None and not isinstance(filter, MockFilter):
            filter = MockFilter(**filter)
        self.filter = filter
        self._calls: List[Call] = []
        self._respond_overwrites: OverwriteQueue[RespondOverwrite] = OverwriteQueue()
        self._abort_overwrites: OverwriteQueue[AbortOverwrite] = OverwriteQueue()

    def __repr__(self):
        return f"<Mock {self.url_pattern!r} calls={len(self._calls)}>"

    @property
    def calls(self) -> Tuple[Call, ...]:
        return tuple(self._calls)

    @property
    def respond_overwrites(self) -> OverwriteQueue[RespondOverwrite]:
        return self._respond_overwrites

    @property
    def abort_overwrites(self) -> OverwriteQueue[AbortOverwrite]:
        return self._abort_overwrites

    def record(self, call: Call):
        self._calls.append(call)

    def _push_respond(self, value, headers, status_code, sticky: bool):
        overwrite = RespondOverwrite(
            sticky=sticky,
            responder=value,
            options=OverwriteOptions(headers=headers, status_code=status_code),
        )
        self._respond_overwrites.push(overwrite)
        logger.debug(
            "Queued %s response overwrite on '%s'",
            "sticky" if sticky else "one-shot",
            self.url_pattern,
        )

    def _push_abort(self, reason, sticky: bool):
        overwrite = AbortOverwrite(sticky=sticky, error_reason=parse_error_reason(reason))
        self._abort_overwrites.push(overwrite)
        logger.debug(
            "Queued %s abort (%s) on '%s'",
            "sticky" if sticky else "one-shot",
            overwrite.error_reason.value,
            self.url_pattern,
        )

    def respond(self, value, headers=None, status_code=None):
        """Answer every matching request with `value` until restore()."""
        self._push_respond(value, headers, status_code, sticky=True)

    def respond_once(self, value, headers=None, status_code=None):
        """Answer the next matching request with `value`."""
        self._push_respond(value, headers, status_code, sticky=False)

    def abort(self, reason=None):
        """Fail every matching request with `reason` until restore()."""
        self._push_abort(reason, sticky=True)

    def abort_once(self, reason=None):
        """Fail the next matching request with `reason`."""
        self._push_abort(reason, sticky=False)

    def clear(self):
        self._calls.clear()

    def restore(self):
        self._respond_overwrites.clear()
        self._abort_overwrites.clear()
