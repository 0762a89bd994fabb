"""
API tests for message, scheduler and circuit breaker endpoints.

The TestClient is used without a context manager so the production lifespan
(database file, auto-start) never runs; each test wires its own container
onto app.state.
"""

import uuid

import httpx
import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.container import build_container
from app.main import app
from app.models.message import MessageStatus


@pytest.fixture
def container(test_engine, webhook_stub):
    settings = Settings(
        WEBHOOK_URL="https://webhook.test/send",
        WEBHOOK_AUTH_KEY="test-key",
        WEBHOOK_RETRY_COUNT=0,
        SCHEDULER_INTERVAL_SECONDS=3600,
        CIRCUIT_BREAKER_FAILURE_THRESHOLD=2,
    )
    instance = build_container(settings, test_engine, transport=webhook_stub.transport)
    app.state.container = instance
    yield instance
    instance.shutdown()
    app.state.container = None


@pytest.fixture
def client(container):
    return TestClient(app)


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "Welcome" in response.json()["message"]

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy", "service": "message-dispatcher"}

    def test_missing_container_returns_503(self):
        app.state.container = None
        response = TestClient(app).get("/api/v1/scheduler/status")
        assert response.status_code == 503


class TestCreateMessage:
    def test_accepts_message(self, client, container):
        response = client.post("/api/v1/messages", json={"to": "+905551111111", "content": "Insider - Project"})

        assert response.status_code == 202
        body = response.json()
        assert body["message"] == "Accepted"
        message = container.store.get(uuid.UUID(body["messageId"]))
        assert message.status == MessageStatus.PENDING
        assert message.recipient == "+905551111111"

    def test_rejects_long_content(self, client, container):
        response = client.post("/api/v1/messages", json={"to": "+905551111111", "content": "x" * 161})

        assert response.status_code == 400
        body = response.json()
        assert body["status"] is False
        assert body["code"] == "INVALID_MESSAGE_CONTENT"
        assert container.store.count_by_status()["pending"] == 0

    def test_rejects_missing_fields(self, client):
        response = client.post("/api/v1/messages", json={"to": "+905551111111"})
        assert response.status_code == 422

    def test_rejects_empty_recipient(self, client):
        response = client.post("/api/v1/messages", json={"to": "", "content": "hi"})
        assert response.status_code == 422


class TestSentMessages:
    def test_lists_delivered_messages(self, client, container):
        client.post("/api/v1/messages", json={"to": "+905551111111", "content": "one"})
        client.post("/api/v1/messages", json={"to": "+905552222222", "content": "two"})
        container.processor.process_batch(limit=2)

        response = client.get("/api/v1/messages/sent", params={"page": 1, "limit": 10})

        assert response.status_code == 200
        body = response.json()
        assert body["pagination"] == {"page": 1, "page_size": 10, "total": 2, "total_pages": 1}
        assert {m["content"] for m in body["data"]} == {"one", "two"}
        assert all(m["status"] == "sent" and m["message_id"] for m in body["data"])

    def test_empty_listing(self, client):
        body = client.get("/api/v1/messages/sent").json()

        assert body["data"] == []
        assert body["pagination"]["total"] == 0

    @pytest.mark.parametrize("params", [{"page": 0}, {"limit": 0}, {"limit": 101}])
    def test_rejects_invalid_paging(self, client, params):
        assert client.get("/api/v1/messages/sent", params=params).status_code == 422


class TestSchedulerEndpoints:
    def test_start_stop_cycle(self, client):
        assert client.get("/api/v1/scheduler/status").json()["status"] == "stopped"

        response = client.post("/api/v1/scheduler/start")
        assert response.status_code == 200
        assert response.json() == {"status": "running", "running": True, "message": "Scheduler started successfully"}

        response = client.post("/api/v1/scheduler/stop")
        assert response.status_code == 200
        assert response.json()["status"] == "stopped"

    def test_double_start_is_reported(self, client):
        client.post("/api/v1/scheduler/start")

        response = client.post("/api/v1/scheduler/start")

        assert response.status_code == 400
        assert response.json()["code"] == "SCHEDULER_ALREADY_RUNNING"

    def test_stop_when_stopped_is_reported(self, client):
        response = client.post("/api/v1/scheduler/stop")

        assert response.status_code == 400
        assert response.json()["code"] == "SCHEDULER_NOT_RUNNING"


class TestCircuitBreakerEndpoint:
    def test_reports_closed_state(self, client):
        body = client.get("/api/v1/circuit-breaker/status").json()

        assert body["enabled"] is True
        assert body["state"] == "closed"
        assert body["metrics"]["config"]["failure_threshold"] == 2

    def test_reports_open_after_failures(self, client, container, webhook_stub):
        webhook_stub.default = lambda request: httpx.Response(500)
        for i in range(2):
            client.post("/api/v1/messages", json={"to": "+90", "content": f"m{i}"})
        container.processor.process_batch(limit=2)

        body = client.get("/api/v1/circuit-breaker/status").json()

        assert body["state"] == "open"
        assert body["metrics"]["total_failures"] == 2

    def test_disabled_breaker(self, test_engine, webhook_stub):
        settings = Settings(WEBHOOK_URL="https://webhook.test/send", CIRCUIT_BREAKER_ENABLED=False)
        app.state.container = build_container(settings, test_engine, transport=webhook_stub.transport)
        try:
            body = TestClient(app).get("/api/v1/circuit-breaker/status").json()
        finally:
            app.state.container.shutdown()
            app.state.container = None

        assert body["enabled"] is False
        assert body["state"] is None


class TestMiddleware:
    def test_response_time_header(self, client):
        response = client.get("/api/v1/scheduler/status")
        assert response.headers["X-Response-Time"].endswith("ms")

    def test_health_is_not_timed(self, client):
        assert "X-Response-Time" not in client.get("/health").headers

    def test_cors_allows_any_origin(self, client):
        response = client.get("/api/v1/scheduler/status", headers={"Origin": "http://localhost:3000"})
        assert response.headers["access-control-allow-origin"] == "*"
