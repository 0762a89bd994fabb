"""Message creation and sent-message listing."""

import math
from dataclasses import dataclass
from typing import Any, List, Tuple

from app.core.logging_config import get_logger
from app.models.message import Message
from app.services.message_store import MessageStore


@dataclass(frozen=True)
class PaginationInfo:
    page: int
    page_size: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, page_size: int, total: int) -> "PaginationInfo":
        total_pages = math.ceil(total / page_size) if page_size > 0 else 0
        return cls(page=page, page_size=page_size, total=total, total_pages=total_pages)


class MessageService:
    def __init__(self, store: MessageStore, logger: Any = None):
        self.store = store
        self.logger = logger or get_logger(__name__)

    def create_message(self, recipient: str, content: str) -> Message:
        """
        Validate and queue a new message.

        Raises InvalidMessageContentError before anything is persisted when
        the content is too long.
        """
        message = Message.new(recipient=recipient, content=content)
        self.store.create(message)
        self.logger.info("Message queued", message_id=str(message.id), content_length=len(content))
        return message

    def get_sent_messages(self, page: int = 1, page_size: int = 10) -> Tuple[List[Message], PaginationInfo]:
        page = max(1, page)
        page_size = max(1, page_size)
        offset = (page - 1) * page_size

        messages = self.store.list_sent(offset=offset, limit=page_size)
        total = self.store.count_sent()
        return messages, PaginationInfo.build(page, page_size, total)


__all__ = ["MessageService", "PaginationInfo"]
