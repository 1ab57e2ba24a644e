"""Message repository - Database operations for consultation messages"""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import Message


class MessageRepository:
    """Repository for message database operations"""

    @staticmethod
    def list_for_consultation(db: Session, consultation_id: str, user_id: Optional[str] = None) -> list[Message]:
        """Oldest first. With a user_id, only messages that user sent or received."""
        query = (
            db.query(Message)
            .options(joinedload(Message.sender))
            .filter(Message.consultation_id == consultation_id)
        )
        if user_id:
            query = query.filter(or_(Message.sender_id == user_id, Message.recipient_id == user_id))
        return query.order_by(Message.created_at.asc()).all()

    @staticmethod
    def mark_read(db: Session, consultation_id: str, recipient_id: str) -> int:
        return (
            db.query(Message)
            .filter(
                Message.consultation_id == consultation_id,
                Message.recipient_id == recipient_id,
                Message.is_read.is_(False),
            )
            .update({"is_read": True, "read_at": datetime.utcnow()}, synchronize_session=False)
        )

    @staticmethod
    def create(db: Session, **data) -> Message:
        message = Message(**data)
        db.add(message)
        db.commit()
        db.refresh(message)
        return message

    @staticmethod
    def count_unread(db: Session, user_id: str) -> int:
        return (
            db.query(func.count(Message.id))
            .filter(Message.recipient_id == user_id, Message.is_read.is_(False))
            .scalar()
        )

    @staticmethod
    def list_recent_by_user(db: Session, user_id: str, limit: int = 10) -> list[Message]:
        """Latest message of each consultation the user talks in, newest first"""
        involves_user = or_(Message.sender_id == user_id, Message.recipient_id == user_id)
        latest = (
            db.query(Message.consultation_id, func.max(Message.created_at).label("latest_at"))
            .filter(involves_user)
            .group_by(Message.consultation_id)
            .subquery()
        )
        return (
            db.query(Message)
            .join(
                latest,
                and_(Message.consultation_id == latest.c.consultation_id, Message.created_at == latest.c.latest_at),
            )
            .options(
                joinedload(Message.sender),
                joinedload(Message.recipient),
                joinedload(Message.consultation),
            )
            .filter(involves_user)
            .order_by(Message.created_at.desc())
            .limit(limit)
            .all()
        )
