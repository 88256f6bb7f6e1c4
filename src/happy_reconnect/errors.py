"""Classification of server connection failures.

Maps exceptions raised while talking to the Happy server onto short error
codes (``ECONNREFUSED``, ``404``, ...) and human-readable descriptions used
in offline warnings.
"""

import errno
import socket

import httpx

# Error codes that mean the server could not be reached at all
NETWORK_ERROR_CODES = (
    "ECONNREFUSED",
    "ENOTFOUND",
    "ETIMEDOUT",
    "ECONNRESET",
    "EHOSTUNREACH",
    "ENETUNREACH",
)

ERROR_DESCRIPTIONS: dict[str, str] = {
    # Network errors
    "ECONNREFUSED": "server not accepting connections",
    "ENOTFOUND": "server hostname not found",
    "ETIMEDOUT": "connection timed out",
    "ECONNRESET": "connection reset by server",
    "EHOSTUNREACH": "server host unreachable",
    "ENETUNREACH": "network unreachable",
    # HTTP errors
    "401": "authentication failed - run `happy auth`",
    "403": "access forbidden",
    "404": "endpoint not found, check server deployment",
    "500": "server internal error",
    "502": "bad gateway",
    "503": "service unavailable",
}

UNKNOWN_ERROR = "unknown error"

_ERRNO_CODES = {
    errno.ECONNREFUSED: "ECONNREFUSED",
    errno.ETIMEDOUT: "ETIMEDOUT",
    errno.ECONNRESET: "ECONNRESET",
    errno.EHOSTUNREACH: "EHOSTUNREACH",
    errno.ENETUNREACH: "ENETUNREACH",
}


def is_network_error(code: str | None) -> bool:
    """Check if an error code indicates the server is unreachable."""
    return code is not None and code in NETWORK_ERROR_CODES


def describe_error_code(code: str | None) -> str:
    """Get the description for an error code, or "unknown error"."""
    if not code:
        return UNKNOWN_ERROR
    return ERROR_DESCRIPTIONS.get(code, UNKNOWN_ERROR)


def get_http_status(error: BaseException) -> int | None:
    """Extract the HTTP status carried by an error, if any.

    Understands ``httpx.HTTPStatusError`` as well as any error exposing a
    ``response`` with ``status_code`` or ``status``.
    """
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code

    response = getattr(error, "response", None)
    if response is not None:
        for attr in ("status_code", "status"):
            status = getattr(response, attr, None)
            if isinstance(status, int):
                return status

    status = getattr(error, "status_code", None)
    return status if isinstance(status, int) else None


def _exception_chain(error: BaseException):
    """Yield an error and everything it was raised from."""
    seen = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _code_for_os_error(exc: BaseException) -> str | None:
    # gaierror must come first: it is an OSError whose errno is an EAI_* value
    if isinstance(exc, socket.gaierror):
        return "ENOTFOUND"
    if isinstance(exc, ConnectionRefusedError):
        return "ECONNREFUSED"
    if isinstance(exc, ConnectionResetError):
        return "ECONNRESET"
    if isinstance(exc, TimeoutError):
        return "ETIMEDOUT"
    if isinstance(exc, OSError):
        return _ERRNO_CODES.get(exc.errno)
    return None


def error_code_for(error: BaseException) -> str | None:
    """Map an exception to an error code.

    Args:
        error: The exception raised by an HTTP call.

    Returns:
        A network code like ``ECONNREFUSED``, an HTTP status as a string,
        or None if the error can't be classified.
    """
    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code

    status = get_http_status(error)
    if status is not None:
        return str(status)

    if isinstance(error, httpx.TimeoutException):
        return "ETIMEDOUT"

    for exc in _exception_chain(error):
        code = _code_for_os_error(exc)
        if code:
            return code
    return None
