"""
Messaging APIs between participants and administrators.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from auth.dependencies import Principal, get_current_principal, get_db_session
from core.responses import success_response
from database.models import Message
from services.message_service import MessageService


router = APIRouter(prefix="/api/focus-group/messages", tags=["messages"])


class MessageSend(BaseModel):
    """Send request. recipientUserId is only honoured for administrators."""
    message: str
    recipientUserId: Optional[str] = Field(None)


class MessageResponse(BaseModel):
    id: int
    sender_id: str
    recipient_id: str
    sender_role: str
    body: str
    is_read: bool
    created_at: datetime


def message_to_response(message: Message) -> MessageResponse:
    role = message.sender_role
    return MessageResponse(
        id=message.id,
        sender_id=message.sender_id,
        recipient_id=message.recipient_id,
        sender_role=role.value if hasattr(role, "value") else str(role),
        body=message.body,
        is_read=message.is_read,
        created_at=message.created_at,
    )


@router.post("/send", status_code=status.HTTP_201_CREATED)
async def send_message(
    payload: MessageSend,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db_session)
):
    """
    Send a message.
    Participants always write to the administrator channel.
    Administrators must give recipientUserId.
    """
    message = MessageService.send(db, principal, payload.message, recipient_id=payload.recipientUserId)
    return success_response(
        message_to_response(message),
        status_code=status.HTTP_201_CREATED,
        message="Message sent"
    )


@router.get("/fetch")
async def fetch_messages(
    user_id: Optional[str] = Query(None, alias="userId"),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db_session)
):
    """Conversation thread, oldest first. Only administrators may pass another user's id."""
    messages = MessageService.fetch_thread(db, principal, target_user_id=user_id)
    return success_response([message_to_response(m) for m in messages])


@router.post("/mark-read")
async def mark_messages_read(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db_session)
):
    """Mark all administrator messages to the caller as read."""
    updated = MessageService.mark_read(db, principal)
    return success_response({"updated": updated})


@router.get("/unread-count")
async def unread_count(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db_session)
):
    return success_response({"count": MessageService.unread_count(db, principal)})
