from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class PullRequestState(StrEnum):
    DECLINED = "DECLINED"
    MERGED = "MERGED"
    OPEN = "OPEN"
    # cloud only
    SUPERSEDED = "SUPERSEDED"


class ParticipantStatus(StrEnum):
    UNAPPROVED = "UNAPPROVED"
    NEEDS_WORK = "NEEDS_WORK"
    APPROVED = "APPROVED"


class TaskState(StrEnum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class CloudPage(BaseModel, Generic[T]):
    """Cloud list envelope; ``next`` is an opaque URL, absent on the last page."""

    model_config = ConfigDict(extra="ignore")

    values: list[T] = Field(default_factory=list)
    size: int | None = None
    page: int | None = None
    pagelen: int | None = None
    next: str | None = None


class OffsetPage(BaseModel, Generic[T]):
    """Data Center list envelope. ``size`` counts the items on this page only."""

    model_config = ConfigDict(extra="ignore")

    values: list[T] = Field(default_factory=list)
    size: int | None = None
    limit: int | None = None
    start: int | None = None
    isLastPage: bool = True
    nextPageStart: int | None = None


class VersionedEntity(BaseModel):
    """A resource read right before a guarded write.

    Data Center bumps ``version`` on every change and rejects writes that echo
    an older one.
    """

    id: int
    version: int
    payload: dict[str, Any]

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "VersionedEntity":
        return cls(id=payload.get("id"), version=payload.get("version"), payload=payload)

    def __str__(self):
        return f"<Versioned id={self.id} version={self.version}>"
