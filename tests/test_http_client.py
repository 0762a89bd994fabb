"""
Tests for the retrying HTTP transport.
"""

import httpx
import pytest
from unittest.mock import MagicMock

from app.core.http_client import ClientConfig, RetryingHTTPClient, default_retry_condition


def build_client(handler, retry_count=3, **kwargs):
    sleeps = []
    client = RetryingHTTPClient(
        config=ClientConfig(retry_count=retry_count, retry_wait_time=1.0, retry_max_wait_time=5.0),
        transport=httpx.MockTransport(handler),
        sleep=sleeps.append,
        logger=MagicMock(),
        **kwargs,
    )
    return client, sleeps


class TestRetryCondition:
    def test_transport_error_is_retried(self):
        assert default_retry_condition(None, httpx.ConnectError("refused")) is True

    def test_server_error_is_retried(self):
        assert default_retry_condition(httpx.Response(503), None) is True

    def test_client_error_is_not_retried(self):
        assert default_retry_condition(httpx.Response(400), None) is False

    def test_success_is_not_retried(self):
        assert default_retry_condition(httpx.Response(202), None) is False


class TestBackoff:
    def test_exponential_and_capped(self):
        config = ClientConfig(retry_wait_time=1.0, retry_max_wait_time=5.0)
        assert [config.backoff(n) for n in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]


class TestRetryingHTTPClient:
    def test_retries_5xx_then_succeeds(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(502 if len(calls) < 3 else 202)

        client, sleeps = build_client(handler)
        response = client.post("https://hook.test", json={"a": 1})

        assert response.status_code == 202
        assert len(calls) == 3
        assert sleeps == [1.0, 2.0]

    def test_returns_last_5xx_when_retries_exhausted(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, text="still down")

        client, sleeps = build_client(handler, retry_count=2)
        response = client.post("https://hook.test", json={})

        assert response.status_code == 500
        assert len(calls) == 3  # first attempt + 2 retries
        assert len(sleeps) == 2

    def test_does_not_retry_4xx(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401)

        client, sleeps = build_client(handler)
        response = client.post("https://hook.test", json={})

        assert response.status_code == 401
        assert len(calls) == 1
        assert sleeps == []

    def test_reraises_last_transport_error(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = build_client(handler, retry_count=1)
        with pytest.raises(httpx.ConnectError):
            client.post("https://hook.test", json={})

        assert len(calls) == 2

    def test_zero_retries_means_single_attempt(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        client, sleeps = build_client(handler, retry_count=0)
        client.get("https://hook.test")

        assert len(calls) == 1
        assert sleeps == []

    def test_sends_auth_and_default_headers(self):
        seen = {}

        def handler(request):
            seen.update(request.headers)
            return httpx.Response(200)

        client, _ = build_client(handler, auth_header="x-ins-auth-key", auth_value="secret")
        client.post("https://hook.test", json={"to": "+90"})

        assert seen["x-ins-auth-key"] == "secret"
        assert seen["content-type"] == "application/json"
        assert client.headers["x-ins-auth-key"] == "secret"

    def test_no_auth_header_without_value(self):
        client, _ = build_client(lambda r: httpx.Response(200), auth_header="x-ins-auth-key", auth_value="")
        assert "x-ins-auth-key" not in client.headers

    def test_total_backoff_is_bounded(self):
        """With the defaults, a fully failing request sleeps 1 + 2 + 4 seconds."""
        client, sleeps = build_client(lambda r: httpx.Response(503), retry_count=3)

        client.post("https://hook.test", json={})

        assert sleeps == [1.0, 2.0, 4.0]
        assert sum(sleeps) == sum(client.config.backoff(n) for n in range(3))
