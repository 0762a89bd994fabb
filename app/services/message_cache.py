"""
Delivery cache for sent messages.

Keeps {external_id, sent_at} per message id for quick lookups without a
database round-trip. The cache is optional: NullMessageCache stands in when
caching is disabled so callers never check for None.
"""

import threading
import uuid
from typing import Optional, Protocol

from cachetools import TTLCache

from app.models.message import CacheEntry

# Sent-message entries expire after a day
DEFAULT_TTL_SECONDS = 24 * 60 * 60


def _key(message_id: uuid.UUID) -> str:
    return f"message:{message_id}"


class MessageCache(Protocol):
    def set(self, message_id: uuid.UUID, entry: CacheEntry) -> None: ...

    def get(self, message_id: uuid.UUID) -> Optional[CacheEntry]: ...

    def delete(self, message_id: uuid.UUID) -> None: ...


class TTLMessageCache:
    """In-process cache with per-entry expiry."""

    def __init__(self, ttl: int = DEFAULT_TTL_SECONDS, maxsize: int = 10000):
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = threading.Lock()

    def set(self, message_id: uuid.UUID, entry: CacheEntry) -> None:
        with self._lock:
            self._cache[_key(message_id)] = entry

    def get(self, message_id: uuid.UUID) -> Optional[CacheEntry]:
        with self._lock:
            return self._cache.get(_key(message_id))

    def delete(self, message_id: uuid.UUID) -> None:
        with self._lock:
            self._cache.pop(_key(message_id), None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


class NullMessageCache:
    """No-op cache used when caching is disabled."""

    def set(self, message_id: uuid.UUID, entry: CacheEntry) -> None:
        return None

    def get(self, message_id: uuid.UUID) -> Optional[CacheEntry]:
        return None

    def delete(self, message_id: uuid.UUID) -> None:
        return None


__all__ = ["MessageCache", "TTLMessageCache", "NullMessageCache", "DEFAULT_TTL_SECONDS"]
