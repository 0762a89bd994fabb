"""
Message Model

Unit of work for the dispatcher: one text to be POSTed to the webhook.

Lifecycle is strictly forward:

    PENDING --(delivered)--> SENT
    PENDING --(delivery error)--> FAILED

SENT and FAILED are terminal. Only the batch processor moves a message out of
PENDING, through MessageStore.update_status().

Usage:
    from app.models.message import Message, MessageStatus

    message = Message.new(recipient="+905551111111", content="Insider - Project")
    assert message.status == MessageStatus.PENDING
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField
from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from app.core.errors import InvalidMessageContentError
from app.core.typing import utc_now

# Maximum content length accepted at creation and re-checked before sending
MAX_CONTENT_LENGTH = 160


class MessageStatus(str, Enum):
    """Delivery status of a message."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not MessageStatus.PENDING


class Message(SQLModel, table=True):
    """
    Persistent queued message.

    Attributes:
        id: Opaque unique id, assigned at creation
        recipient: Destination (phone number, handle...) sent as "to"
        content: Text body, at most MAX_CONTENT_LENGTH characters
        status: Current delivery status
        created_at: When the message was queued (drives FIFO order)
        sent_at: When the webhook confirmed delivery
        external_id: Delivery id returned by the webhook
        failure_reason: Stringified error from the failed delivery
    """

    __tablename__ = "messages"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    recipient: str
    content: str = Field(max_length=MAX_CONTENT_LENGTH)
    status: MessageStatus = Field(default=MessageStatus.PENDING, index=True)
    created_at: datetime = Field(default_factory=utc_now)
    sent_at: Optional[datetime] = None
    external_id: Optional[str] = None
    failure_reason: Optional[str] = None

    __table_args__ = (
        # Pending queue query: status + created_at
        Index("ix_messages_queue", "status", "created_at"),
        # Sent listing: status + sent_at
        Index("ix_messages_sent", "status", "sent_at"),
    )

    @classmethod
    def new(cls, recipient: str, content: str) -> "Message":
        """Build a PENDING message, rejecting over-long content."""
        if len(content) > MAX_CONTENT_LENGTH:
            raise InvalidMessageContentError(
                details=f"content is {len(content)} characters, limit is {MAX_CONTENT_LENGTH}"
            )
        return cls(recipient=recipient, content=content)

    def is_valid_for_sending(self) -> bool:
        return self.status == MessageStatus.PENDING and len(self.content) <= MAX_CONTENT_LENGTH


class WebhookRequest(BaseModel):
    """Payload POSTed to the webhook."""

    to: str
    content: str


class WebhookResponse(BaseModel):
    """Body returned by the webhook on success."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    message_id: str = PydanticField(alias="messageId", min_length=1)


class CacheEntry(BaseModel):
    """Cached delivery record, keyed by message id."""

    external_id: str
    sent_at: datetime


__all__ = [
    "MAX_CONTENT_LENGTH",
    "MessageStatus",
    "Message",
    "WebhookRequest",
    "WebhookResponse",
    "CacheEntry",
]
