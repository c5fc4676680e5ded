"""Application error types.

`AppError` carries an error code, message and HTTP status and is converted to an
`ApiFailure` envelope by the registered exception handler. The remaining classes
describe the failure taxonomy of the relay and the player:

- UpstreamUnavailable: the upstream origin could not be reached or answered
  with a non-success status. Terminal for the relay request, never retried.
- StreamInterrupted: an established stream failed mid-transfer.
- PlaybackRejected: a play attempt was refused before audio arrived.
- CapabilityUnavailable: an optional platform capability (keep-awake) is
  missing or failed. Never fatal.
"""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4

from radio_relay.shared.api.errors import E_INTERNAL, E_INVALID_PARAMS, E_UPSTREAM_UNAVAILABLE


class AppErrorCode(str, Enum):
    E_INTERNAL_ERROR = E_INTERNAL
    E_INVALID_PARAMS = E_INVALID_PARAMS
    E_UPSTREAM_UNAVAILABLE = E_UPSTREAM_UNAVAILABLE


class HttpStatusCode(IntEnum):
    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502


def _caller_info() -> str:
    """Locate the first frame outside the error constructors."""
    stack = inspect.stack()[1:]
    for frame in stack:
        if frame.function != "__init__":
            module = inspect.getmodule(frame.frame)
            module_name = (
                module.__name__ if module and getattr(module, "__name__", None) else frame.filename
            )
            return f"{module_name}:{frame.function}:{frame.lineno}"
    return "unknown"


class AppError(Exception):
    """Error raised by API and domain code, rendered by `app_error_handler`."""

    def __init__(
        self,
        errcode: AppErrorCode | str = AppErrorCode.E_INTERNAL_ERROR,
        errmesg: str | None = None,
        *,
        status_code: int = HttpStatusCode.BAD_REQUEST,
    ):
        self.errcode = errcode.value if isinstance(errcode, Enum) else errcode
        self.errmesg = errmesg or "We are sorry, an error occurred."
        self.erresid = uuid4().hex[:10]
        self.status_code = int(status_code)
        self.caller_info = _caller_info()
        super().__init__(f"{self.errcode}: {self.errmesg}")


class UpstreamUnavailable(AppError):
    def __init__(self, errmesg: str, *, upstream_status: int | None = None):
        super().__init__(
            AppErrorCode.E_UPSTREAM_UNAVAILABLE,
            errmesg,
            status_code=HttpStatusCode.INTERNAL_SERVER_ERROR,
        )
        self.upstream_status = upstream_status


class StreamInterrupted(Exception):
    pass


class PlaybackRejected(Exception):
    pass


class CapabilityUnavailable(Exception):
    pass
