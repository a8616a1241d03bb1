"""HTTP execution with deadlines, classification and retry/backoff."""

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

import httpx

from bitbucket_toolkit.errors import (
    NetworkError,
    RequestTimeoutError,
    classify_status,
)

logger = logging.getLogger(__name__)

DEFAULT_RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
BACKOFF_CAP_MS = 30_000


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay_ms: int = 1000
    retryable_statuses: frozenset[int] = DEFAULT_RETRYABLE_STATUSES
    backoff_cap_ms: int = BACKOFF_CAP_MS

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay_ms <= 0:
            raise ValueError("base_delay_ms must be > 0")
        if self.backoff_cap_ms <= 0:
            raise ValueError("backoff_cap_ms must be > 0")
        object.__setattr__(self, "retryable_statuses", frozenset(self.retryable_statuses))

    def backoff_ms(self, attempt: int, rng: random.Random | None = None) -> float:
        """Delay before retrying after 0-indexed ``attempt``.

        ``base * 2**attempt`` plus up to ``base`` of jitter, never above the cap.
        """
        uniform = (rng or random).uniform
        exponential = self.base_delay_ms * 2**attempt
        return min(exponential + uniform(0, self.base_delay_ms), self.backoff_cap_ms)


class RequestExecutor:
    """Performs a single logical request, retrying transient failures.

    Retries are strictly sequential. The ``timeout`` given to ``execute`` is a
    deadline for the whole call, backoff sleeps included; running out of it is
    never retried.
    """

    def __init__(
        self,
        http: httpx.Client,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ) -> None:
        self.http = http
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._clock = clock
        self._rng = rng

    def execute(
        self,
        method: str,
        url: str,
        *,
        timeout: float,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        deadline = self._clock() + timeout
        max_retries = self.policy.max_retries

        for attempt in range(max_retries + 1):
            remaining = deadline - self._clock()
            if remaining <= 0:
                raise RequestTimeoutError(f"{method} {url} exceeded its {timeout}s deadline")

            logger.debug("%s %s", method, url)
            try:
                response = self.http.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=headers,
                    timeout=httpx.Timeout(remaining),
                )
            except httpx.TimeoutException as exc:
                raise RequestTimeoutError(
                    f"{method} {url} exceeded its {timeout}s deadline"
                ) from exc
            except httpx.TransportError as exc:
                if attempt >= max_retries:
                    raise NetworkError(f"Network error for {url}: {exc}") from exc
                delay = self._backoff(attempt, deadline, method, url)
                logger.warning(
                    "Network error for %s, retrying in %.0fms (attempt %d/%d): %s",
                    url,
                    delay,
                    attempt + 1,
                    max_retries,
                    exc,
                )
                self._sleep(delay / 1000)
                continue

            if response.status_code in self.policy.retryable_statuses and attempt < max_retries:
                delay = self._backoff(attempt, deadline, method, url)
                logger.warning(
                    "Retryable HTTP %d for %s, retrying in %.0fms (attempt %d/%d)",
                    response.status_code,
                    url,
                    delay,
                    attempt + 1,
                    max_retries,
                )
                response.close()
                self._sleep(delay / 1000)
                continue

            if response.is_success:
                return response
            raise classify_status(
                response.status_code, url, response.text, response.reason_phrase
            )

        # unreachable: the final attempt either returns or raises
        raise AssertionError("retry loop exited without an outcome")

    def _backoff(self, attempt: int, deadline: float, method: str, url: str) -> float:
        delay = self.policy.backoff_ms(attempt, self._rng)
        if self._clock() + delay / 1000 >= deadline:
            raise RequestTimeoutError(
                f"{method} {url} would exceed its deadline while backing off"
            )
        return delay
