"""Message schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...models import Message, MessageType


class MessageCreate(BaseModel):
    content: Optional[str] = Field(default=None, max_length=10000)
    message_type: MessageType = MessageType.TEXT
    file_path: Optional[str] = None


class MessageResponse(BaseModel):
    id: str
    consultation_id: str
    sender_id: str
    recipient_id: str
    content: str
    message_type: MessageType
    file_path: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
    sender_name: Optional[str] = None
    sender_role: Optional[str] = None

    @classmethod
    def from_model(cls, message: Message) -> "MessageResponse":
        sender = message.sender
        return cls(
            id=message.id,
            consultation_id=message.consultation_id,
            sender_id=message.sender_id,
            recipient_id=message.recipient_id,
            content=message.content,
            message_type=message.message_type,
            file_path=message.file_path,
            is_read=message.is_read,
            read_at=message.read_at,
            created_at=message.created_at,
            sender_name=sender.full_name if sender else None,
            sender_role=sender.role if sender else None,
        )


class RecentMessageResponse(MessageResponse):
    consultation_title: Optional[str] = None
    other_party_name: Optional[str] = None

    @classmethod
    def for_user(cls, message: Message, user_id: str) -> "RecentMessageResponse":
        other = message.recipient if message.sender_id == user_id else message.sender
        return cls(
            **MessageResponse.from_model(message).model_dump(),
            consultation_title=message.consultation.title if message.consultation else None,
            other_party_name=other.full_name if other else None,
        )
