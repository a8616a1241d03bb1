"""Pagination over the two Bitbucket continuation schemes.

Cloud hands out an opaque ``next`` URL per page; Data Center reports
``isLastPage`` and ``nextPageStart``. Both are driven through the same
``PaginationEngine`` so callers only deal with ``PageRequest``/``PageResult``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from bitbucket_toolkit.models.bitbucket import CloudPage, OffsetPage
from bitbucket_toolkit.platform import Platform

logger = logging.getLogger(__name__)

ALL_ITEMS_CAP = 1000
MAX_PAGE_SIZE = 100

# fetch(path_or_absolute_url, query) -> decoded JSON
PageFetcher = Callable[[str, Mapping[str, Any] | None], Any]


@dataclass(frozen=True)
class PageRequest:
    page_size: int | None = None
    page: int | None = None
    fetch_all: bool = False
    extra_query: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.page is not None and self.page < 1:
            raise ValueError(f"page must be a positive integer, got {self.page}")

    @property
    def wants_all(self) -> bool:
        # an explicit page always wins over accumulation
        return self.fetch_all and self.page is None

    def size_or(self, default: int) -> int:
        size = default if self.page_size is None else self.page_size
        return max(1, min(size, MAX_PAGE_SIZE))


@dataclass(frozen=True)
class CursorContinuation:
    next_url: str


@dataclass(frozen=True)
class OffsetContinuation:
    start: int


Continuation = CursorContinuation | OffsetContinuation


@dataclass(frozen=True)
class PageResult:
    items: list[Any]
    continuation: Continuation | None = None
    total_size: int | None = None

    @property
    def has_more(self) -> bool:
        return self.continuation is not None


@dataclass(frozen=True)
class PaginatedValues:
    values: list[Any]
    total: int | None = None


class PaginationStyle(ABC):
    default_page_size: int

    @abstractmethod
    def first(self, fetch: PageFetcher, path: str, request: PageRequest) -> PageResult: ...

    @abstractmethod
    def follow(
        self,
        fetch: PageFetcher,
        path: str,
        request: PageRequest,
        continuation: Continuation,
    ) -> PageResult: ...

    def accumulated_total(self, first: PageResult, items: list[Any]) -> int | None:
        return first.total_size

    def advances(self, previous: Continuation, following: Continuation) -> bool:
        return following != previous


class CursorStyle(PaginationStyle):
    """``pagelen``/``page`` in, ``next`` out."""

    default_page_size = 10

    def first(self, fetch: PageFetcher, path: str, request: PageRequest) -> PageResult:
        query = {**request.extra_query, "pagelen": request.size_or(self.default_page_size)}
        if request.page is not None:
            query["page"] = request.page
        return self.parse(fetch(path, query))

    def follow(
        self,
        fetch: PageFetcher,
        path: str,
        request: PageRequest,
        continuation: Continuation,
    ) -> PageResult:
        if not isinstance(continuation, CursorContinuation):
            raise TypeError(f"cursor pagination cannot follow {continuation!r}")
        # the next URL already carries every query parameter
        return self.parse(fetch(continuation.next_url, None))

    def parse(self, data: Any) -> PageResult:
        page = CloudPage[Any].model_validate(data or {})
        continuation = CursorContinuation(page.next) if page.next else None
        return PageResult(items=page.values, continuation=continuation, total_size=page.size)


class OffsetStyle(PaginationStyle):
    """``limit``/``start`` in, ``isLastPage``/``nextPageStart`` out."""

    default_page_size = 25

    def first(self, fetch: PageFetcher, path: str, request: PageRequest) -> PageResult:
        limit = request.size_or(self.default_page_size)
        query = {**request.extra_query, "limit": limit}
        if request.page is not None:
            query["start"] = (request.page - 1) * limit
        return self.parse(fetch(path, query))

    def follow(
        self,
        fetch: PageFetcher,
        path: str,
        request: PageRequest,
        continuation: Continuation,
    ) -> PageResult:
        if not isinstance(continuation, OffsetContinuation):
            raise TypeError(f"offset pagination cannot follow {continuation!r}")
        query = {
            **request.extra_query,
            "limit": request.size_or(self.default_page_size),
            "start": continuation.start,
        }
        return self.parse(fetch(path, query))

    def parse(self, data: Any) -> PageResult:
        page = OffsetPage[Any].model_validate(data or {})
        continuation = None
        if not page.isLastPage and page.nextPageStart is not None:
            continuation = OffsetContinuation(page.nextPageStart)
        return PageResult(items=page.values, continuation=continuation, total_size=page.size)

    def accumulated_total(self, first: PageResult, items: list[Any]) -> int | None:
        # DC reports per-page sizes, so the only honest total is what we gathered
        return len(items)

    def advances(self, previous: Continuation, following: Continuation) -> bool:
        if isinstance(previous, OffsetContinuation) and isinstance(following, OffsetContinuation):
            return following.start > previous.start
        return following != previous


def style_for(platform: Platform | str) -> PaginationStyle:
    return CursorStyle() if Platform(platform) is Platform.CLOUD else OffsetStyle()


class PaginationEngine:
    def __init__(
        self,
        style: PaginationStyle,
        fetch: PageFetcher,
        cap: int = ALL_ITEMS_CAP,
    ) -> None:
        self.style = style
        self.fetch = fetch
        self.cap = cap

    def fetch_page(
        self,
        path: str,
        request: PageRequest,
        continuation: Continuation | None = None,
    ) -> PageResult:
        if continuation is None:
            return self.style.first(self.fetch, path, request)
        return self.style.follow(self.fetch, path, request, continuation)

    def fetch_all(self, path: str, request: PageRequest) -> list[Any]:
        return self.paginate(path, request).values

    def paginate(self, path: str, request: PageRequest) -> PaginatedValues:
        first = self.fetch_page(path, request)
        if not request.wants_all:
            return PaginatedValues(values=list(first.items), total=first.total_size)

        items = list(first.items)
        current = first
        pages = 1
        while current.continuation is not None and len(items) < self.cap:
            previous = current.continuation
            current = self.fetch_page(path, request, previous)
            items.extend(current.items)
            pages += 1
            if current.continuation is not None and (
                not current.items or not self.style.advances(previous, current.continuation)
            ):
                logger.warning(
                    "Stopped paginating %s after %d pages: the server stopped making progress",
                    path,
                    pages,
                )
                break

        if len(items) >= self.cap and current.continuation is not None:
            logger.info(
                "Stopped paginating %s at the %d item cap after %d pages",
                path,
                self.cap,
                pages,
            )
        items = items[: self.cap]
        return PaginatedValues(values=items, total=self.style.accumulated_total(first, items))
