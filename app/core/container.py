"""
Wires the dispatch pipeline together from Settings.

Usage:
    container = build_container(settings, engine)
    container.scheduler.start()
    ...
    container.shutdown()
"""

from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.engine import Engine

from app.core.config import Settings
from app.core.http_client import ClientConfig, RetryingHTTPClient
from app.core.logging_config import get_logger
from app.core.scheduler import MessageScheduler
from app.services.message_cache import MessageCache, NullMessageCache, TTLMessageCache
from app.services.message_processor import MessageProcessor
from app.services.message_service import MessageService
from app.services.message_store import MessageStore
from app.services.scheduler_control import SchedulerControl
from app.services.webhook_client import WebhookClient

logger = get_logger(__name__)


@dataclass
class Container:
    store: MessageStore
    cache: MessageCache
    webhook_client: WebhookClient
    message_service: MessageService
    processor: MessageProcessor
    scheduler: MessageScheduler
    scheduler_control: SchedulerControl

    def shutdown(self) -> None:
        self.scheduler.stop()
        self.webhook_client.close()


def build_container(
    settings: Settings,
    engine: Engine,
    transport: Optional[httpx.BaseTransport] = None,
) -> Container:
    """
    Build every component once. ``transport`` lets tests swap the network
    for an httpx.MockTransport.
    """
    store = MessageStore(engine)

    cache: MessageCache
    if settings.CACHE_ENABLED:
        cache = TTLMessageCache(ttl=settings.CACHE_TTL_SECONDS, maxsize=settings.CACHE_MAX_SIZE)
    else:
        cache = NullMessageCache()

    http_client = RetryingHTTPClient(
        config=ClientConfig(
            timeout=settings.WEBHOOK_TIMEOUT_SECONDS,
            retry_count=settings.WEBHOOK_RETRY_COUNT,
            retry_wait_time=settings.WEBHOOK_RETRY_WAIT_SECONDS,
            retry_max_wait_time=settings.WEBHOOK_RETRY_MAX_WAIT_SECONDS,
        ),
        auth_header=settings.WEBHOOK_AUTH_HEADER,
        auth_value=settings.WEBHOOK_AUTH_KEY,
        transport=transport,
    )
    webhook_client = WebhookClient(
        url=settings.WEBHOOK_URL,
        breaker_config=settings.circuit_breaker_config(),
        breaker_enabled=settings.CIRCUIT_BREAKER_ENABLED,
        http_client=http_client,
    )
    if not settings.WEBHOOK_URL:
        logger.warning("WEBHOOK_URL is not set; deliveries will fail until it is configured")

    processor = MessageProcessor(store=store, delivery_client=webhook_client, cache=cache)
    scheduler = MessageScheduler(config=settings.scheduler_config(), processor=processor)

    return Container(
        store=store,
        cache=cache,
        webhook_client=webhook_client,
        message_service=MessageService(store),
        processor=processor,
        scheduler=scheduler,
        scheduler_control=SchedulerControl(scheduler),
    )


__all__ = ["Container", "build_container"]
