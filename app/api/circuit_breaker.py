from fastapi import APIRouter, Depends

from app.api import deps
from app.schemas import CircuitBreakerStatusOut
from app.services.webhook_client import WebhookClient

router = APIRouter()


@router.get("/status", response_model=CircuitBreakerStatusOut)
def get_circuit_breaker_status(client: WebhookClient = Depends(deps.get_webhook_client)):
    """Snapshot of the webhook circuit breaker: state, counters and config."""
    metrics = client.get_circuit_metrics()
    if not metrics.get("enabled", True):
        return CircuitBreakerStatusOut(enabled=False, metrics=metrics)
    return CircuitBreakerStatusOut(state=client.get_circuit_state().value, metrics=metrics)
