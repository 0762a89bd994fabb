"""
Message endpoints: queue a message, list delivered messages.
"""
from fastapi import APIRouter, Depends, Query, status

from app.api import deps
from app.schemas import MessageAccepted, MessageCreate, MessageOut, PaginationOut, SentMessagesOut
from app.services.message_service import MessageService

router = APIRouter()


@router.post("", response_model=MessageAccepted, status_code=status.HTTP_202_ACCEPTED)
def create_message(
    payload: MessageCreate,
    service: MessageService = Depends(deps.get_message_service),
):
    """
    Queue a message for delivery.

    Content longer than 160 characters is rejected with 400
    INVALID_MESSAGE_CONTENT and nothing is stored.
    """
    message = service.create_message(recipient=payload.to, content=payload.content)
    return MessageAccepted(message_id=message.id)


@router.get("/sent", response_model=SentMessagesOut)
def get_sent_messages(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    service: MessageService = Depends(deps.get_message_service),
):
    """List delivered messages, most recently sent first."""
    messages, pagination = service.get_sent_messages(page=page, page_size=limit)
    return SentMessagesOut(
        data=[MessageOut.from_message(m) for m in messages],
        pagination=PaginationOut(
            page=pagination.page,
            page_size=pagination.page_size,
            total=pagination.total,
            total_pages=pagination.total_pages,
        ),
    )
