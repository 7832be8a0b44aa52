"""
Messaging register between participants and study administrators.

Messages live in one flat table. A participant's thread is every message
they sent or received; participant-authored messages always go to the
shared administrator channel.
"""
from typing import Optional, List

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth.dependencies import Principal
from core.errors import BadRequest, Forbidden, NotFound, InternalError
from core.logger import logger
from database.models import Message, Profile, SenderRole
import config


class MessageService:
    """Send, fetch and acknowledge study messages."""

    @staticmethod
    def _clean_body(body: Optional[str]) -> str:
        text = (body or "").strip()
        if not text:
            raise BadRequest("Message cannot be empty")
        if len(text) > config.MAX_TEXT_LENGTH:
            raise BadRequest(f"Message must be at most {config.MAX_TEXT_LENGTH} characters")
        return text

    @staticmethod
    def send(db: Session, principal: Principal, body: str, recipient_id: Optional[str] = None) -> Message:
        """
        Send a message as the calling principal.

        Participants always write to the administrator channel, whatever
        recipient they supplied. Administrators must name a participant.

        Raises:
            BadRequest: Empty or oversized body, or administrator without recipient
            NotFound: Administrator recipient has no profile
        """
        text = MessageService._clean_body(body)

        if principal.is_administrator:
            if not recipient_id:
                raise BadRequest("Recipient is required for administrator messages")
            recipient = db.query(Profile).filter(Profile.user_id == recipient_id).first()
            if recipient is None:
                raise NotFound("Recipient not found")
            role = SenderRole.ADMINISTRATOR
            target = recipient_id
        else:
            role = SenderRole.PARTICIPANT
            target = config.ADMIN_CHANNEL_ID

        message = Message(
            sender_id=principal.principal_id,
            recipient_id=target,
            sender_role=role,
            body=text,
            is_read=False,
        )
        db.add(message)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to send message from {principal.principal_id}: {e}", exc_info=True)
            raise InternalError("Failed to send message", details=str(e))
        db.refresh(message)
        logger.info(f"Message {message.id} sent by {role.value} {principal.principal_id} to {target}")
        return message

    @staticmethod
    def fetch_thread(db: Session, principal: Principal, target_user_id: Optional[str] = None) -> List[Message]:
        """
        Messages where the target is sender or recipient, oldest first.

        Raises:
            Forbidden: A participant asked for someone else's thread
        """
        target = target_user_id or principal.principal_id
        if target != principal.principal_id and not principal.is_administrator:
            raise Forbidden("You can only view your own messages")

        try:
            return db.query(Message).filter(
                or_(Message.sender_id == target, Message.recipient_id == target)
            ).order_by(Message.created_at.asc(), Message.id.asc()).all()
        except SQLAlchemyError as e:
            raise InternalError("Failed to fetch messages", details=str(e))

    @staticmethod
    def mark_read(db: Session, principal: Principal) -> int:
        """Mark every unread administrator message to the caller as read; returns the count."""
        try:
            updated = db.query(Message).filter(
                Message.recipient_id == principal.principal_id,
                Message.sender_role == SenderRole.ADMINISTRATOR,
                Message.is_read.is_(False)
            ).update({Message.is_read: True}, synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise InternalError("Failed to mark messages as read", details=str(e))
        return updated

    @staticmethod
    def unread_count(db: Session, principal: Principal) -> int:
        return db.query(Message).filter(
            Message.recipient_id == principal.principal_id,
            Message.sender_role == SenderRole.ADMINISTRATOR,
            Message.is_read.is_(False)
        ).count()
