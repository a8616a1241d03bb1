import json
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping

import httpx

from bitbucket_toolkit.errors import BitbucketApiError
from bitbucket_toolkit.platform import Platform, clean_query, detect_platform
from bitbucket_toolkit.services.concurrency import ConcurrencyGuard
from bitbucket_toolkit.services.executor import RequestExecutor, RetryPolicy
from bitbucket_toolkit.services.pagination import (
    PageRequest,
    PaginatedValues,
    PaginationEngine,
    style_for,
)
from bitbucket_toolkit.services.paths import PathResolver, paths_for

logger = logging.getLogger(__name__)

Query = Mapping[str, str | int | float | bool | None]


@dataclass
class BitbucketClient:
    """Bitbucket REST client for both Cloud and Data Center.

    ``base_url`` is the REST root (``https://api.bitbucket.org/2.0`` or
    ``https://host/rest/api/latest``). The platform is detected from it unless
    given explicitly. Paths passed to the request methods are relative to the
    REST root; absolute URLs (Cloud ``next`` links) are requested verbatim.
    """

    base_url: str
    token: str | None = None
    platform: Platform | None = None
    timeout: float = 30.0
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    verify: bool = True
    default_workspace: str | None = None
    transport: httpx.BaseTransport | None = None
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        self.platform = Platform(self.platform) if self.platform else detect_platform(self.base_url)
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        self._http = httpx.Client(
            headers=headers,
            verify=self.verify,
            transport=self.transport,
            follow_redirects=True,
        )
        self._executor = RequestExecutor(self._http, self.retry_policy, sleep=self.sleep)
        self._paginator = PaginationEngine(style_for(self.platform), self._fetch_page)

    @property
    def is_cloud(self) -> bool:
        return self.platform is Platform.CLOUD

    @property
    def is_datacenter(self) -> bool:
        return self.platform is Platform.DATACENTER

    @property
    def paths(self) -> PathResolver:
        return paths_for(self.platform)

    @property
    def guard(self) -> ConcurrencyGuard:
        return ConcurrencyGuard(self)

    def url_for(self, path: str) -> str:
        if not path.startswith(("http://", "https://")):
            return f"{self.base_url}{path}"
        # the bearer token must never leave the configured server
        target, base = httpx.URL(path), httpx.URL(self.base_url)
        if (target.scheme, target.host, target.port) != (base.scheme, base.host, base.port):
            raise BitbucketApiError(f"Refusing to request {path}: it is not on {self.base_url}")
        return path

    def get(self, path: str, query: Query | None = None, timeout: float | None = None) -> Any:
        return self._decode(self._request("GET", path, query=query, timeout=timeout))

    def get_text(self, path: str, query: Query | None = None, timeout: float | None = None) -> str:
        response = self._request(
            "GET", path, query=query, timeout=timeout, headers={"Accept": "text/plain"}
        )
        return response.text

    def post(
        self,
        path: str,
        body: Any = None,
        query: Query | None = None,
        timeout: float | None = None,
    ) -> Any:
        return self._decode(self._request("POST", path, query=query, body=body, timeout=timeout))

    def put(
        self,
        path: str,
        body: Any = None,
        query: Query | None = None,
        timeout: float | None = None,
    ) -> Any:
        return self._decode(self._request("PUT", path, query=query, body=body, timeout=timeout))

    def delete(self, path: str, query: Query | None = None, timeout: float | None = None) -> None:
        self._request("DELETE", path, query=query, timeout=timeout)

    def get_paginated(
        self,
        path: str,
        request: PageRequest | None = None,
        extra_query: Query | None = None,
    ) -> PaginatedValues:
        request = request or PageRequest()
        if extra_query:
            request = replace(request, extra_query={**request.extra_query, **extra_query})
        return self._paginator.paginate(path, request)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "BitbucketClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _fetch_page(self, target: str, query: Mapping[str, Any] | None) -> Any:
        return self.get(target, query)

    def _request(
        self,
        method: str,
        path: str,
        *,
        query: Query | None = None,
        body: Any = None,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        return self._executor.execute(
            method,
            self.url_for(path),
            params=clean_query(query) or None,
            json=body,
            headers=headers,
            timeout=self.timeout if timeout is None else timeout,
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise BitbucketApiError(
                f"Invalid JSON from {response.request.url}",
                status_code=response.status_code,
                body=response.text,
            ) from exc
