"""Optimistic-concurrency writes for Data Center resources.

Data Center wants the current ``version`` of comments, blocker comments and
pull requests echoed back on every update or delete. The version is read
right before the write and used once. A 409 that names an out-of-date
version means someone else changed the resource in between; any other 409
(merge vetoes, merge conflicts) keeps the server's message. Neither is
retried.
"""

import logging
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from bitbucket_toolkit.errors import BitbucketApiError, ConflictError
from bitbucket_toolkit.models.bitbucket import VersionedEntity

if TYPE_CHECKING:
    from bitbucket_toolkit.services.bitbucket_client import BitbucketClient

logger = logging.getLogger(__name__)

R = TypeVar("R")


def guarded_write(
    read: Callable[[], VersionedEntity],
    write: Callable[[int], R],
) -> R:
    entity = read()
    logger.debug("Writing %s", entity)
    try:
        return write(entity.version)
    except ConflictError as exc:
        exc.version = entity.version
        if not exc.stale_version:
            # merge vetoes and merge conflicts keep the server's explanation
            raise
        raise ConflictError(
            f"Resource {entity.id} changed since version {entity.version} was read. "
            "Fetch it again before retrying.",
            status_code=exc.status_code,
            body=exc.body,
            version=entity.version,
        ) from exc


class ConcurrencyGuard:
    def __init__(self, client: "BitbucketClient") -> None:
        self.client = client

    def read_versioned(self, path: str) -> VersionedEntity:
        payload = self.client.get(path)
        if not isinstance(payload, dict):
            raise BitbucketApiError(
                f"Expected a versioned resource from {path}, got {type(payload).__name__}"
            )
        return VersionedEntity.from_payload(payload)

    def update(self, path: str, changes: dict[str, Any]) -> Any:
        """PUT ``changes`` with the freshly read version merged in."""
        return guarded_write(
            lambda: self.read_versioned(path),
            lambda version: self.client.put(path, {**changes, "version": version}),
        )

    def delete(self, path: str) -> None:
        guarded_write(
            lambda: self.read_versioned(path),
            lambda version: self.client.delete(path, {"version": version}),
        )

    def post_with_version(
        self,
        read_path: str,
        write_path: str,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """POST to an action endpoint (merge, decline) that takes ``?version=``."""
        return guarded_write(
            lambda: self.read_versioned(read_path),
            lambda version: self.client.post(write_path, body, {"version": version}),
        )
