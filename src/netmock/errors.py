from .models import ErrorReason


class NetmockError(Exception):
    """Base class for interception engine errors."""


class InvalidAbortReason(NetmockError, ValueError):
    """abort()/abort_once() got no reason, or one Fetch.failRequest does not know."""

    def __init__(self, reason):
        self.reason = reason
        super().__init__(
            f"Invalid abort reason {reason!r}, expected one of: "
            + ", ".join(r.value for r in ErrorReason)
        )


class ResponseDecodeError(NetmockError, ValueError):
    """A response body declared as JSON could not be parsed."""


class UnsupportedCommand(NetmockError):
    """The transport does not implement the requested protocol command."""
