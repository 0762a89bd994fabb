"""HTTP transport with connection-level retries.

Absorbs short blips (dropped connections, 5xx from a restarting upstream)
before a failure is reported to the caller. Sustained outages are the circuit
breaker's job, not this module's.

Backoff sleeps through the injected ``sleep`` callable (time.sleep by default),
which does not watch the scheduler's stop event. A stop requested mid-request
therefore also waits out the remaining backoff, at most
sum(backoff(n) for n < retry_count) seconds (1 + 2 + 4 with the defaults).
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import httpx

from app.core.logging_config import get_logger

RetryCondition = Callable[[Optional[httpx.Response], Optional[Exception]], bool]


def default_retry_condition(response: Optional[httpx.Response], error: Optional[Exception]) -> bool:
    """Retry on transport errors and server-side (5xx) responses."""
    return error is not None or (response is not None and response.status_code >= 500)


@dataclass
class ClientConfig:
    timeout: float = 30.0
    retry_count: int = 3  # retries after the first attempt
    retry_wait_time: float = 1.0
    retry_max_wait_time: float = 5.0
    default_headers: Dict[str, str] = field(default_factory=lambda: {"Content-Type": "application/json"})
    retry_condition: RetryCondition = default_retry_condition

    def backoff(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based)."""
        return min(self.retry_wait_time * (2**attempt), self.retry_max_wait_time)


class RetryingHTTPClient:
    """
    Thin wrapper around httpx.Client that retries requests.

    Only the final outcome is surfaced: the last response (whatever its
    status) or the last transport exception.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        auth_header: Optional[str] = None,
        auth_value: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: Any = None,
    ):
        self.config = config or ClientConfig()
        headers = dict(self.config.default_headers)
        if auth_header and auth_value:
            headers[auth_header] = auth_value
        self._client = httpx.Client(timeout=self.config.timeout, headers=headers, transport=transport)
        self._sleep = sleep
        self.logger = logger or get_logger(__name__)

    @property
    def headers(self) -> httpx.Headers:
        return self._client.headers

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        attempts = max(0, self.config.retry_count) + 1

        for attempt in range(attempts):
            response: Optional[httpx.Response] = None
            error: Optional[httpx.HTTPError] = None
            try:
                response = self._client.request(method, url, **kwargs)
            except httpx.HTTPError as e:
                error = e

            last_attempt = attempt >= attempts - 1
            if last_attempt or not self.config.retry_condition(response, error):
                if error is not None:
                    raise error
                assert response is not None
                return response

            delay = self.config.backoff(attempt)
            self.logger.warning(
                "HTTP request failed, retrying",
                method=method,
                url=url,
                attempt=attempt + 1,
                max_attempts=attempts,
                status_code=response.status_code if response is not None else None,
                error=str(error) if error else None,
                retry_in=delay,
            )
            self._sleep(delay)

        raise RuntimeError("Unexpected state in RetryingHTTPClient.request")

    def post(self, url: str, json: Any = None, **kwargs: Any) -> httpx.Response:
        return self.request("POST", url, json=json, **kwargs)

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def close(self) -> None:
        self._client.close()
