from .message import Message, MessageStatus, WebhookRequest, WebhookResponse, CacheEntry

__all__ = [
    "Message",
    "MessageStatus",
    "WebhookRequest",
    "WebhookResponse",
    "CacheEntry",
]
