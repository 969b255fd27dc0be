"""Exception types for wikiclient.

All errors raised by the library derive from WikiClientError. Server-side
failures are reported as a single OperationFailedError carrying an ErrorKind,
so callers can match on ``error.kind`` instead of catching many subclasses.
"""

from enum import Enum


class WikiClientError(Exception):
    """Base exception for wikiclient errors."""


class ConfigurationError(WikiClientError, ValueError):
    """Raised when the caller asks for something that can never succeed.

    Examples are a partition size below 1, an unsupported parameter value
    type, or resolving redirects while using a generator.
    """


class UnexpectedDataError(WikiClientError):
    """Raised when the server response violates the expected protocol."""


class ContinuationLoopError(UnexpectedDataError):
    """Raised when the server keeps returning the continuation we just sent."""

    def __init__(self, continuation: dict):
        self.continuation = dict(continuation)
        rendered = ", ".join(f"{k}={v!r}" for k, v in self.continuation.items())
        super().__init__(
            f"Continuation returned by the server would loop forever: {rendered}"
        )


class InvalidTitleError(UnexpectedDataError):
    """Raised when the server marks a requested title as invalid."""

    def __init__(self, title: str, reason: str | None = None):
        self.title = title
        self.reason = reason
        message = f"Invalid page title: {title!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class CircularRedirectError(WikiClientError):
    """Raised when following redirects visits the same title twice."""

    def __init__(self, trace: list[str]):
        self.trace = list(trace)
        super().__init__(f"Cannot resolve circular redirect: {'->'.join(self.trace)}")


class QueryCancelledError(WikiClientError):
    """Raised when a query observes its cancellation event."""


class TransportError(WikiClientError):
    """Raised when the HTTP request itself failed (network, timeout, 5xx)."""


class ErrorKind(Enum):
    """Classification of MediaWiki API error codes."""

    BAD_TOKEN = "badtoken"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    SERVER_LAG = "serverlag"
    READ_ONLY = "readonly"
    RATE_LIMITED = "ratelimited"
    GENERIC = "generic"


_ERROR_KINDS = {
    "badtoken": ErrorKind.BAD_TOKEN,
    "notoken": ErrorKind.BAD_TOKEN,
    "permissiondenied": ErrorKind.UNAUTHORIZED,
    "permissions": ErrorKind.UNAUTHORIZED,
    "readapidenied": ErrorKind.UNAUTHORIZED,
    "mustbeloggedin": ErrorKind.UNAUTHORIZED,
    "assertuserfailed": ErrorKind.UNAUTHORIZED,
    "assertbotfailed": ErrorKind.UNAUTHORIZED,
    "protectedpage": ErrorKind.UNAUTHORIZED,
    "protectedtitle": ErrorKind.UNAUTHORIZED,
    "cascadeprotected": ErrorKind.UNAUTHORIZED,
    "blocked": ErrorKind.UNAUTHORIZED,
    "prev_revision": ErrorKind.CONFLICT,
    "maxlag": ErrorKind.SERVER_LAG,
    "readonly": ErrorKind.READ_ONLY,
    "ratelimited": ErrorKind.RATE_LIMITED,
    "throttled": ErrorKind.RATE_LIMITED,
}


def classify_error_code(code: str) -> ErrorKind:
    """Map a MediaWiki error code to an ErrorKind.

    Example:
        >>> classify_error_code("editconflict")
        <ErrorKind.CONFLICT: 'conflict'>
    """
    code = (code or "").lower()
    if code in _ERROR_KINDS:
        return _ERROR_KINDS[code]
    if code.endswith("conflict"):
        return ErrorKind.CONFLICT
    if code.startswith("cantmove"):
        return ErrorKind.UNAUTHORIZED
    return ErrorKind.GENERIC


class OperationFailedError(WikiClientError):
    """Raised when the server reports an ``error`` node.

    Attributes:
        kind: Classification of ``code``
        code: Server error code, verbatim
        info: Server error message, verbatim
    """

    def __init__(self, code: str, info: str | None = None, kind: ErrorKind | None = None):
        self.code = code
        self.info = info
        self.kind = kind or classify_error_code(code)
        super().__init__(f"{code}: {info}" if info else code)


def error_from_response(error_node: dict) -> OperationFailedError:
    """Build an OperationFailedError from the ``error`` node of a response."""
    code = error_node.get("code") or "unknown"
    info = (error_node.get("info") or error_node.get("*") or "").strip() or None
    if code == "permissions" and error_node.get("permissions"):
        info = f"{info} Desired permissions: {error_node['permissions']}"
    return OperationFailedError(code, info)
