"""
Webhook delivery client.

Two resilience layers are stacked around every delivery:

1. RetryingHTTPClient retries a single request a few times with short
   exponential backoff (network errors and 5xx only).
2. CircuitBreaker wraps the whole retried call and stops hitting the
   endpoint during a sustained outage.

Usage:
    client = WebhookClient(
        url="https://webhook.site/...",
        auth_key="secret",
        breaker_config=CircuitBreakerConfig(timeout=10),
    )
    external_id = client.send("+905551111111", "hello")
"""

from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from app.core.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitHalfOpenError,
    CircuitOpenError,
    CircuitState,
)
from app.core.errors import CircuitProtectionError, DeliveryError, DeliveryRejectedError
from app.core.http_client import ClientConfig, RetryingHTTPClient
from app.core.logging_config import get_logger
from app.models.message import WebhookRequest, WebhookResponse

DEFAULT_AUTH_HEADER = "x-ins-auth-key"


class WebhookClient:
    def __init__(
        self,
        url: str,
        auth_key: str = "",
        auth_header: str = DEFAULT_AUTH_HEADER,
        client_config: Optional[ClientConfig] = None,
        breaker_config: Optional[CircuitBreakerConfig] = None,
        breaker_enabled: bool = True,
        http_client: Optional[RetryingHTTPClient] = None,
        logger: Any = None,
    ):
        self.url = url
        self.logger = logger or get_logger(__name__)
        self._http = http_client or RetryingHTTPClient(
            config=client_config,
            auth_header=auth_header,
            auth_value=auth_key,
            logger=self.logger,
        )

        self.circuit_breaker: Optional[CircuitBreaker] = None
        if breaker_enabled:
            self.circuit_breaker = CircuitBreaker(
                name="webhook",
                config=breaker_config or CircuitBreakerConfig(),
                logger=self.logger,
            )
            self.logger.info(
                "Circuit breaker enabled for webhook client",
                timeout=self.circuit_breaker.config.timeout,
            )

    def send(self, recipient: str, content: str) -> str:
        """
        Deliver one message and return the webhook's delivery id.

        Raises:
            CircuitProtectionError: The breaker refused the call
            DeliveryRejectedError: The webhook answered with a non-2xx status
            DeliveryError: Transport failure or unreadable response
        """
        request = WebhookRequest(to=recipient, content=content)
        self.logger.debug("Sending webhook request", url=self.url, to=recipient)

        if self.circuit_breaker is None:
            return self._send_direct(request)

        try:
            return self.circuit_breaker.execute(lambda: self._send_direct(request))
        except CircuitOpenError:
            self.logger.warning("Circuit breaker is open, webhook request rejected", url=self.url, to=recipient)
            raise CircuitProtectionError.open() from None
        except CircuitHalfOpenError:
            self.logger.warning("Circuit breaker is half-open, webhook request rejected", url=self.url, to=recipient)
            raise CircuitProtectionError.half_open() from None

    def _send_direct(self, request: WebhookRequest) -> str:
        try:
            response = self._http.post(self.url, json=request.model_dump())
        except httpx.HTTPError as e:
            self.logger.error("Failed to send webhook request", url=self.url, error=str(e))
            raise DeliveryError(details=str(e)) from e

        if not response.is_success:
            self.logger.error(
                "Webhook request failed",
                status_code=response.status_code,
                response=response.text[:500],
            )
            raise DeliveryRejectedError(response.status_code, response.text)

        try:
            body = WebhookResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            self.logger.error("Webhook returned an unreadable body", status_code=response.status_code)
            raise DeliveryError("Invalid webhook response", details=str(e)[:500]) from e

        self.logger.info(
            "Webhook request successful",
            to=request.to,
            external_id=body.message_id,
            status_code=response.status_code,
        )
        return body.message_id

    def get_circuit_metrics(self) -> Dict[str, Any]:
        if self.circuit_breaker is None:
            return {"enabled": False, "message": "Circuit breaker is not enabled"}
        return self.circuit_breaker.get_metrics()

    def get_circuit_state(self) -> CircuitState:
        if self.circuit_breaker is None:
            return CircuitState.CLOSED
        return self.circuit_breaker.get_state()

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "WebhookClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


__all__ = ["WebhookClient", "DEFAULT_AUTH_HEADER"]
