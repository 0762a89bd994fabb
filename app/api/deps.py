from fastapi import HTTPException, Request, status

from app.core.container import Container
from app.services.message_service import MessageService
from app.services.scheduler_control import SchedulerControl
from app.services.webhook_client import WebhookClient


def get_container(request: Request) -> Container:
    """Components built by the application lifespan."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up",
        )
    return container


def get_message_service(request: Request) -> MessageService:
    return get_container(request).message_service


def get_scheduler_control(request: Request) -> SchedulerControl:
    return get_container(request).scheduler_control


def get_webhook_client(request: Request) -> WebhookClient:
    return get_container(request).webhook_client
