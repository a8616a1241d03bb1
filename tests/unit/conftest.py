import json
from typing import Any, Callable

import httpx
import pytest

from bitbucket_toolkit.platform import Platform
from bitbucket_toolkit.services.bitbucket_client import BitbucketClient
from bitbucket_toolkit.services.executor import RetryPolicy

CLOUD_URL = "https://api.bitbucket.org/2.0"
DC_URL = "https://bitbucket.example.com/rest/api/latest"

Reply = httpx.Response | Exception | Callable[[httpx.Request], httpx.Response]


class FakeServer:
    """Replays queued replies in order; the last one repeats forever."""

    def __init__(self, *replies: Reply) -> None:
        self.replies = list(replies)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        # hand out a fresh copy so a repeated reply is never a consumed stream
        return httpx.Response(reply.status_code, headers=reply.headers, content=reply.content)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def body(self, index: int) -> Any:
        return json.loads(self.requests[index].content)

    def query(self, index: int) -> dict[str, str]:
        return dict(self.requests[index].url.params)


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    platform: Platform = Platform.CLOUD,
    **kwargs: Any,
) -> BitbucketClient:
    kwargs.setdefault("retry_policy", RetryPolicy(max_retries=3, base_delay_ms=1))
    kwargs.setdefault("sleep", lambda seconds: None)
    return BitbucketClient(
        base_url=CLOUD_URL if platform is Platform.CLOUD else DC_URL,
        token="secret-token",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.fixture
def cloud_client():
    def factory(*replies: Reply, **kwargs: Any) -> tuple[BitbucketClient, FakeServer]:
        server = FakeServer(*replies)
        return make_client(server, Platform.CLOUD, **kwargs), server

    return factory


@pytest.fixture
def dc_client():
    def factory(*replies: Reply, **kwargs: Any) -> tuple[BitbucketClient, FakeServer]:
        server = FakeServer(*replies)
        return make_client(server, Platform.DATACENTER, **kwargs), server

    return factory
