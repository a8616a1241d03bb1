import json
from enum import StrEnum

# exception names Data Center uses when the submitted version is not the current one
STALE_VERSION_MARKERS = ("OutOfDate", "StaleVersion", "InvalidVersion")


class ErrorKind(StrEnum):
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TRANSIENT_SERVER = "transient_server"
    NETWORK = "network"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"
    API = "api"
    INVALID_REQUEST = "invalid_request"


class BitbucketError(Exception):
    """Base for every classified failure raised by the client."""

    kind: ErrorKind = ErrorKind.API

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class BitbucketApiError(BitbucketError):
    kind = ErrorKind.API


class AuthenticationError(BitbucketError):
    kind = ErrorKind.AUTHENTICATION


class NotFoundError(BitbucketError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str, resource: str, body: str | None = None) -> None:
        super().__init__(message, status_code=404, body=body)
        self.resource = resource


class ConflictError(BitbucketError):
    """The server rejected a write because the submitted version is stale."""

    kind = ErrorKind.CONFLICT

    def __init__(
        self,
        message: str,
        status_code: int | None = 409,
        body: str | None = None,
        version: int | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, body=body)
        self.version = version

    @property
    def stale_version(self) -> bool:
        """True when the server rejected the write because of its version.

        Data Center answers 409 for merge vetoes and merge conflicts too.
        """
        return any(marker in (self.body or "") for marker in STALE_VERSION_MARKERS)


class TransientServerError(BitbucketError):
    kind = ErrorKind.TRANSIENT_SERVER


class NetworkError(BitbucketError):
    kind = ErrorKind.NETWORK


class RequestTimeoutError(BitbucketError, TimeoutError):
    kind = ErrorKind.TIMEOUT


class UnsupportedOperationError(BitbucketError):
    kind = ErrorKind.UNSUPPORTED

    def __init__(self, operation: str, platform: str, hint: str | None = None) -> None:
        message = f"{operation} is not available on Bitbucket {platform.title()}."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)
        self.operation = operation
        self.platform = platform
        self.hint = hint


def classify_status(
    status_code: int, url: str, body: str, reason: str = ""
) -> BitbucketError:
    """Map a non-2xx HTTP status onto the error taxonomy."""
    if status_code in (401, 403):
        return AuthenticationError(
            f"Authentication failed ({status_code}). Check your Bitbucket API token.",
            status_code=status_code,
            body=body,
        )
    if status_code == 404:
        return NotFoundError(f"Resource not found: {url}", resource=url, body=body)
    if status_code == 409:
        return ConflictError(
            f"Conflict ({status_code}): {error_detail(body) or body or reason}",
            status_code=status_code,
            body=body,
        )
    if status_code == 429 or status_code >= 500:
        return TransientServerError(
            f"Bitbucket API unavailable ({status_code}): {body or reason}",
            status_code=status_code,
            body=body,
        )
    return BitbucketApiError(
        f"Bitbucket API error ({status_code}): {body or reason}",
        status_code=status_code,
        body=body,
    )


def error_detail(body: str | None) -> str | None:
    """Messages from a Bitbucket error body.

    Data Center sends ``{"errors": [{"message": ...}]}``, Cloud sends
    ``{"error": {"message": ...}}``.
    """
    if not body:
        return None
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    errors = data.get("errors")
    if isinstance(errors, list):
        messages = [e["message"] for e in errors if isinstance(e, dict) and e.get("message")]
        return "; ".join(messages) or None
    error = data.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return None
