from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
import uuid

from app.models.message import Message


class MessageCreate(BaseModel):
    to: str = Field(min_length=1, examples=["+905551111111"])
    content: str = Field(min_length=1, examples=["Insider - Project"])

class MessageAccepted(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Accepted"
    message_id: uuid.UUID = Field(serialization_alias="messageId")

class MessageOut(BaseModel):
    id: uuid.UUID
    to: str
    content: str
    status: str
    created_at: datetime
    sent_at: Optional[datetime] = None
    message_id: Optional[str] = None  # External delivery id from the webhook
    failure_reason: Optional[str] = None

    @classmethod
    def from_message(cls, message: Message) -> "MessageOut":
        return cls(
            id=message.id,
            to=message.recipient,
            content=message.content,
            status=message.status.value,
            created_at=message.created_at,
            sent_at=message.sent_at,
            message_id=message.external_id,
            failure_reason=message.failure_reason,
        )

class PaginationOut(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int

class SentMessagesOut(BaseModel):
    data: List[MessageOut]
    pagination: PaginationOut

class SchedulerStatusOut(BaseModel):
    status: str  # "running" or "stopped"
    running: bool
    message: str

class CircuitBreakerStatusOut(BaseModel):
    enabled: bool = True
    state: Optional[str] = None
    metrics: Dict[str, Any] = {}


__all__ = [
    "MessageCreate",
    "MessageAccepted",
    "MessageOut",
    "PaginationOut",
    "SentMessagesOut",
    "SchedulerStatusOut",
    "CircuitBreakerStatusOut",
]
