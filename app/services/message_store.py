"""
Message Store

Persistent message queue backed by SQLModel. Pending messages survive
restarts; the batch processor drains them oldest-first.

Usage:
    from app.db import engine
    from app.services.message_store import MessageStore

    store = MessageStore(engine)

    store.create(Message.new(recipient="+905551111111", content="hello"))

    for message in store.list_pending(limit=2):
        store.update_status(message.id, MessageStatus.SENT, external_id="67f2f8a8")

Every method opens its own short-lived session, so one store instance can be
shared by the API and the scheduler thread.
"""

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.core.errors import DatabaseError, InvalidStatusTransitionError, MessageNotFoundError
from app.core.logging_config import get_logger
from app.core.typing import col, safe_getattr, utc_now
from app.models.message import Message, MessageStatus


class MessageStore:
    def __init__(self, engine: Engine, logger: Any = None):
        self.engine = engine
        self.logger = logger or get_logger(__name__)

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    def create(self, message: Message) -> Message:
        """
        Persist a new message.

        Args:
            message: A PENDING message (see Message.new)

        Returns:
            The stored Message
        """
        try:
            with self._session() as session:
                session.add(message)
                session.commit()
                session.refresh(message)
        except SQLAlchemyError as e:
            self.logger.error("Failed to create message", message_id=str(message.id), error=str(e))
            raise DatabaseError("Failed to create message", details=str(e)) from e

        self.logger.info("Message created", message_id=str(message.id))
        return message

    def get(self, message_id: uuid.UUID) -> Message:
        try:
            with self._session() as session:
                message = session.get(Message, message_id)
        except SQLAlchemyError as e:
            self.logger.error("Failed to get message", message_id=str(message_id), error=str(e))
            raise DatabaseError("Failed to get message", details=str(e)) from e

        if message is None:
            raise MessageNotFoundError(details=str(message_id))
        return message

    def list_pending(self, limit: int) -> List[Message]:
        """
        Fetch up to ``limit`` PENDING messages, oldest first.

        Args:
            limit: Maximum number of messages to return

        Returns:
            Messages ordered by created_at ascending
        """
        stmt = (
            select(Message)
            .where(col(Message.status) == MessageStatus.PENDING)
            .order_by(col(Message.created_at).asc())
            .limit(limit)
        )
        try:
            with self._session() as session:
                return list(session.exec(stmt).all())
        except SQLAlchemyError as e:
            self.logger.error("Failed to get pending messages", error=str(e))
            raise DatabaseError("Failed to get pending messages", details=str(e)) from e

    def update_status(
        self,
        message_id: uuid.UUID,
        status: MessageStatus,
        external_id: Optional[str] = None,
        failure_reason: Optional[str] = None,
    ) -> None:
        """
        Move a PENDING message to a terminal status in one conditional UPDATE.

        sent_at is stamped here when status is SENT.

        Args:
            message_id: ID of the message to update
            status: SENT or FAILED
            external_id: Delivery id returned by the webhook (SENT only)
            failure_reason: Stringified delivery error (FAILED only)

        Raises:
            MessageNotFoundError: No message with that id
            InvalidStatusTransitionError: Target is PENDING, or the message is already terminal
            DatabaseError: The update itself failed
        """
        if not status.is_terminal:
            raise InvalidStatusTransitionError(details=f"cannot move message back to {status.value}")

        values: Dict[str, Any] = {
            "status": status,
            "external_id": external_id,
            "failure_reason": failure_reason,
        }
        if status == MessageStatus.SENT:
            values["sent_at"] = utc_now()

        stmt = (
            update(Message)
            .where(col(Message.id) == message_id, col(Message.status) == MessageStatus.PENDING)
            .values(**values)
        )

        try:
            with self._session() as session:
                result = session.execute(stmt)
                session.commit()
                updated = safe_getattr(result, "rowcount", 0)
                current = None if updated else session.get(Message, message_id)
        except SQLAlchemyError as e:
            self.logger.error("Failed to update message status", message_id=str(message_id), error=str(e))
            raise DatabaseError("Failed to update message status", details=str(e)) from e

        if not updated:
            if current is None:
                raise MessageNotFoundError(details=str(message_id))
            raise InvalidStatusTransitionError(details=f"message is already {current.status.value}")

        self.logger.info("Message status updated", message_id=str(message_id), status=status.value)

    def count_sent(self) -> int:
        stmt = select(func.count()).select_from(Message).where(col(Message.status) == MessageStatus.SENT)
        try:
            with self._session() as session:
                return session.exec(stmt).one()
        except SQLAlchemyError as e:
            self.logger.error("Failed to get total sent count", error=str(e))
            raise DatabaseError("Failed to get total sent count", details=str(e)) from e

    def list_sent(self, offset: int, limit: int) -> List[Message]:
        """Sent messages, most recently sent first."""
        stmt = (
            select(Message)
            .where(col(Message.status) == MessageStatus.SENT)
            .order_by(col(Message.sent_at).desc())
            .offset(offset)
            .limit(limit)
        )
        try:
            with self._session() as session:
                return list(session.exec(stmt).all())
        except SQLAlchemyError as e:
            self.logger.error("Failed to get sent messages", error=str(e))
            raise DatabaseError("Failed to get sent messages", details=str(e)) from e

    def count_by_status(self) -> Dict[str, int]:
        """
        Get queue statistics.

        Returns:
            Dict with counts per status: {"pending": N, "sent": N, "failed": N}
        """
        stats: Dict[str, int] = {status.value: 0 for status in MessageStatus}
        stmt = select(Message.status, func.count()).group_by(Message.status)
        try:
            with self._session() as session:
                for status, count in session.exec(stmt).all():
                    stats[MessageStatus(status).value] = count
        except SQLAlchemyError as e:
            self.logger.error("Failed to get message stats", error=str(e))
            raise DatabaseError("Failed to get message stats", details=str(e)) from e
        return stats


__all__ = ["MessageStore"]
