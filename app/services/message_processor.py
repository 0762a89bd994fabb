"""
Batch message processor.

Drains one bounded slice of the pending queue per call:

    fetch up to `limit` PENDING messages (oldest first)
    for each message:
        deliver via WebhookClient
        persist SENT (+ external id) or FAILED (+ reason)
        on SENT, best-effort cache write

Failures are isolated per message. Only a failure to fetch the batch raises;
delivery errors, status-update errors and cache errors are logged and the
loop moves on to the next message.

If delivery succeeds but the SENT update fails, the row stays PENDING and is
delivered again on a later tick (at-least-once). The external id is logged at
error level so the duplicate can be reconciled.

Messages that fail the eligibility re-check are skipped but left PENDING, so
they stay at the head of the FIFO and are fetched again on every tick. A run
of at least `limit` such rows stalls the queue until they are fixed or removed
in the database; each skip is logged at warning level with the message id.
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from app.core.logging_config import get_logger
from app.core.typing import utc_now
from app.models.message import CacheEntry, Message, MessageStatus
from app.services.message_cache import MessageCache, NullMessageCache
from app.services.message_store import MessageStore


class DeliveryClient(Protocol):
    def send(self, recipient: str, content: str) -> str: ...


@dataclass
class BatchResult:
    fetched: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    unrecorded: int = 0  # outcome known but the status update failed

    def as_dict(self) -> dict[str, int]:
        return {
            "fetched": self.fetched,
            "sent": self.sent,
            "failed": self.failed,
            "skipped": self.skipped,
            "unrecorded": self.unrecorded,
        }


class MessageProcessor:
    def __init__(
        self,
        store: MessageStore,
        delivery_client: DeliveryClient,
        cache: Optional[MessageCache] = None,
        logger: Any = None,
    ):
        self.store = store
        self.delivery_client = delivery_client
        self.cache: MessageCache = cache if cache is not None else NullMessageCache()
        self.logger = logger or get_logger(__name__)

    def process_batch(self, limit: int) -> BatchResult:
        """
        Deliver up to ``limit`` pending messages.

        Raises:
            DatabaseError: The pending messages could not be fetched
        """
        messages = self.store.list_pending(limit)
        result = BatchResult(fetched=len(messages))

        if not messages:
            self.logger.debug("No pending messages to send")
            return result

        self.logger.info("Processing pending messages", count=len(messages))

        for message in messages:
            self._process_one(message, result)

        self.logger.info("Batch complete", **result.as_dict())
        return result

    def _process_one(self, message: Message, result: BatchResult) -> None:
        message_id = str(message.id)

        if not message.is_valid_for_sending():
            self.logger.warning(
                "Message is not valid for sending",
                message_id=message_id,
                status=message.status.value,
                content_length=len(message.content),
            )
            result.skipped += 1
            return

        try:
            external_id = self.delivery_client.send(message.recipient, message.content)
        except Exception as e:
            result.failed += 1
            self.logger.error("Failed to send message", message_id=message_id, error=str(e))
            try:
                self.store.update_status(message.id, MessageStatus.FAILED, failure_reason=str(e))
            except Exception as update_error:
                result.unrecorded += 1
                self.logger.error(
                    "Failed to update message status to failed",
                    message_id=message_id,
                    error=str(update_error),
                )
            return

        result.sent += 1
        try:
            self.store.update_status(message.id, MessageStatus.SENT, external_id=external_id)
        except Exception as update_error:
            result.unrecorded += 1
            self.logger.error(
                "Failed to update message status to sent; message stays pending and may be redelivered",
                message_id=message_id,
                external_id=external_id,
                error=str(update_error),
            )
            return

        try:
            self.cache.set(message.id, CacheEntry(external_id=external_id, sent_at=utc_now()))
        except Exception as cache_error:
            self.logger.warning("Failed to cache message", message_id=message_id, error=str(cache_error))

        self.logger.info("Message sent successfully", message_id=message_id, external_id=external_id)


__all__ = ["MessageProcessor", "BatchResult", "DeliveryClient"]
