"""
Test fixtures for message-dispatcher tests.

Provides an in-memory database, a message store, and a stub webhook endpoint
built on httpx.MockTransport so no test touches the network.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator, List, Optional

import httpx
import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import app.models  # noqa: F401  (registers tables)
from app.core.circuit_breaker import CircuitBreakerConfig
from app.core.http_client import ClientConfig, RetryingHTTPClient
from app.models.message import Message, MessageStatus
from app.services.message_store import MessageStore
from app.services.webhook_client import WebhookClient

# Use in-memory SQLite for unit tests (fast, isolated)
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def test_session(test_engine) -> Generator[Session, None, None]:
    """Provide a test database session."""
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def store(test_engine) -> MessageStore:
    return MessageStore(test_engine)


@pytest.fixture
def make_message(store: MessageStore) -> Callable[..., Message]:
    """
    Persist a message with a controlled created_at.

    Each call is one second older than `base` by default so FIFO order is
    deterministic.
    """
    base = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(
        recipient: str = "+905551111111",
        content: str = "Insider - Project",
        status: MessageStatus = MessageStatus.PENDING,
        created_at: Optional[datetime] = None,
    ) -> Message:
        counter["n"] += 1
        message = Message(
            recipient=recipient,
            content=content,
            status=status,
            created_at=created_at or base + timedelta(seconds=counter["n"]),
        )
        return store.create(message)

    return _make


@pytest.fixture
def pending_messages(make_message) -> List[Message]:
    return [
        make_message(recipient="+905551111111", content="first"),
        make_message(recipient="+905552222222", content="second"),
    ]


class WebhookStub:
    """
    Callable handler for httpx.MockTransport.

    Records every request. `responses` is consumed in order; once it is empty
    every request gets `default`.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.responses: List[httpx.Response | Exception] = []
        self.default: Callable[[httpx.Request], httpx.Response] = self.accept

    @staticmethod
    def accept(request: httpx.Request) -> httpx.Response:
        return httpx.Response(202, json={"message": "Accepted", "messageId": str(uuid.uuid4())})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            outcome = self.responses.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return self.default(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def webhook_stub() -> WebhookStub:
    return WebhookStub()


@pytest.fixture
def make_webhook_client(webhook_stub: WebhookStub):
    """Build a WebhookClient wired to the stub; retries never sleep."""
    clients: List[WebhookClient] = []

    def _make(
        retry_count: int = 0,
        breaker_enabled: bool = True,
        breaker_config: Optional[CircuitBreakerConfig] = None,
        auth_key: str = "test-key",
    ) -> WebhookClient:
        http_client = RetryingHTTPClient(
            config=ClientConfig(timeout=5.0, retry_count=retry_count, retry_wait_time=0.01, retry_max_wait_time=0.05),
            auth_header="x-ins-auth-key",
            auth_value=auth_key,
            transport=webhook_stub.transport,
            sleep=lambda seconds: None,
        )
        client = WebhookClient(
            url="https://webhook.test/send",
            breaker_enabled=breaker_enabled,
            breaker_config=breaker_config,
            http_client=http_client,
        )
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()
