"""
Unified error hierarchy for the dispatcher.

Every domain failure is an AppError carrying a stable machine-readable code,
a human message, an HTTP status for the API layer and optional details.

Usage:
    try:
        store.update_status(message_id, MessageStatus.SENT, external_id="abc")
    except MessageNotFoundError:
        ...

    # Delivery errors are recorded verbatim as a message's failure reason
    reason = str(DeliveryRejectedError(502, "bad gateway"))
    # -> "[WEBHOOK_ERROR] Webhook request failed with status 502: bad gateway"
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppError",
    "InvalidMessageContentError",
    "MessageNotFoundError",
    "InvalidStatusTransitionError",
    "DatabaseError",
    "DeliveryError",
    "DeliveryRejectedError",
    "CircuitProtectionError",
    "SchedulerError",
    "ProcessorNotSetError",
    "SchedulerAlreadyRunningError",
    "SchedulerNotRunningError",
]

# Longest response body excerpt kept on a rejected delivery
RESPONSE_EXCERPT_LIMIT = 500


class AppError(Exception):
    code: str = "INTERNAL_SERVER_ERROR"
    message: str = "Internal server error"
    status_code: int = 500

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[str] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message or self.message
        self.details = details
        self.code = code or self.code
        self.status_code = status_code or self.status_code
        super().__init__(str(self))

    def __str__(self) -> str:
        text = f"[{self.code}] {self.message}"
        if self.details:
            text = f"{text}: {self.details}"
        return text

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"status": False, "code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


# --- Messages -------------------------------------------------------------


class InvalidMessageContentError(AppError):
    code = "INVALID_MESSAGE_CONTENT"
    message = "Message content exceeds character limit"
    status_code = 400


class MessageNotFoundError(AppError):
    code = "MESSAGE_NOT_FOUND"
    message = "Message not found"
    status_code = 404


class InvalidStatusTransitionError(AppError):
    """Raised when a terminal (sent/failed) message would be updated again."""

    code = "INVALID_STATUS_TRANSITION"
    message = "Message is no longer pending"
    status_code = 409


class DatabaseError(AppError):
    code = "DATABASE_ERROR"
    message = "Database operation failed"


# --- Delivery -------------------------------------------------------------


class DeliveryError(AppError):
    code = "WEBHOOK_ERROR"
    message = "Failed to send request"


class DeliveryRejectedError(DeliveryError):
    """The webhook answered with a non-2xx status."""

    def __init__(self, response_status: int, body: str = ""):
        self.response_status = response_status
        excerpt = body[:RESPONSE_EXCERPT_LIMIT] if body else None
        super().__init__(
            message=f"Webhook request failed with status {response_status}",
            details=excerpt,
        )


class CircuitProtectionError(DeliveryError):
    """Delivery refused locally because the circuit breaker is not closed."""

    status_code = 503

    @classmethod
    def open(cls) -> "CircuitProtectionError":
        return cls(
            message="Webhook service is temporarily unavailable",
            details="Circuit breaker is open due to repeated failures",
            code="WEBHOOK_CIRCUIT_OPEN",
        )

    @classmethod
    def half_open(cls) -> "CircuitProtectionError":
        return cls(
            message="Webhook service is testing recovery",
            details="Circuit breaker is in half-open state",
            code="WEBHOOK_CIRCUIT_HALF_OPEN",
        )


# --- Scheduler ------------------------------------------------------------


class SchedulerError(AppError):
    status_code = 400


class ProcessorNotSetError(SchedulerError):
    code = "PROCESSOR_NOT_SET"
    message = "Message processor not set"
    status_code = 500


class SchedulerAlreadyRunningError(SchedulerError):
    code = "SCHEDULER_ALREADY_RUNNING"
    message = "Scheduler is already running"


class SchedulerNotRunningError(SchedulerError):
    code = "SCHEDULER_NOT_RUNNING"
    message = "Scheduler is not running"
