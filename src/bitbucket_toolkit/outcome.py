"""Discriminated results handed to the assistant-facing tool layer.

Tools never raise: every call ends in ``Success`` or ``Failure`` so the caller
can ``match`` on ``kind`` instead of catching exception types.
"""

import logging
from typing import Annotated, Any, Callable, Literal

from pydantic import BaseModel, Field

from bitbucket_toolkit.errors import BitbucketError, ErrorKind, NotFoundError

logger = logging.getLogger(__name__)


class Success(BaseModel):
    kind: Literal["success"] = "success"
    data: Any = None
    message: str | None = None


class Failure(BaseModel):
    kind: Literal["failure"] = "failure"
    error: ErrorKind
    message: str
    status_code: int | None = None
    body: str | None = None


ToolResult = Annotated[Success | Failure, Field(discriminator="kind")]


def success(data: Any = None, message: str | None = None) -> Success:
    return Success(data=data, message=message)


def failure(error: BitbucketError, not_found: tuple[str, str] | None = None) -> Failure:
    message = error.message
    if isinstance(error, NotFoundError) and not_found is not None:
        resource_type, identity = not_found
        message = f"{resource_type} {identity} not found."
    return Failure(
        error=error.kind,
        message=message,
        status_code=error.status_code,
        body=error.body,
    )


def invalid(message: str) -> Failure:
    return Failure(error=ErrorKind.INVALID_REQUEST, message=message)


def capture(
    call: Callable[[], Any],
    *,
    message: str | None = None,
    not_found: tuple[str, str] | None = None,
) -> Success | Failure:
    """Run ``call`` and fold classified errors into a ``Failure``.

    ``ValueError`` is raised for bad caller input (page numbers, identifiers)
    and becomes an ``invalid_request`` failure.
    """
    try:
        return success(call(), message)
    except BitbucketError as exc:
        logger.debug("Tool call failed: %s", exc.message)
        return failure(exc, not_found)
    except ValueError as exc:
        return invalid(str(exc))
