"""Message service - Conversation between the parties of a consultation"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import Principal
from ...database import transaction
from ...errors import ValidationError
from ...models import Message, MessageType
from ..consultations.policy import ActorRelation
from ..consultations.service import ConsultationService
from .repository import MessageRepository

logger = logging.getLogger(__name__)


class MessageService:
    """Service layer for consultation messages"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MessageRepository()
        self.consultations = ConsultationService(db)

    def list_messages(self, consultation_id: str, principal: Principal) -> list[Message]:
        """Messages the principal can see; their unread ones are marked read"""
        consultation = self.consultations.get_consultation(consultation_id, principal)

        if principal.is_admin:
            messages = self.repo.list_for_consultation(self.db, consultation.id)
        else:
            messages = self.repo.list_for_consultation(self.db, consultation.id, principal.user_id)

        with transaction(self.db):
            marked = self.repo.mark_read(self.db, consultation.id, principal.user_id)
        if marked:
            logger.debug(f"📬 {marked} messages marked read for {principal.user_id} on {consultation_id}")
        return messages

    def send_message(
        self,
        consultation_id: str,
        principal: Principal,
        content: Optional[str],
        message_type: MessageType = MessageType.TEXT,
        file_path: Optional[str] = None,
    ) -> Message:
        if not content or not content.strip():
            raise ValidationError("El contenido del mensaje es requerido")

        consultation, relation = self.consultations.get_with_relation(consultation_id, principal)
        lawyer_user_id = consultation.lawyer.user_id if consultation.lawyer else None

        if relation == ActorRelation.CLIENT:
            recipient_id = lawyer_user_id
        elif relation == ActorRelation.LAWYER:
            recipient_id = consultation.client_id
        else:
            # Admin notices go to the client
            recipient_id = consultation.client_id
            message_type = MessageType.SYSTEM

        if message_type == MessageType.SYSTEM and relation != ActorRelation.ADMIN:
            raise ValidationError("Solo los administradores pueden enviar mensajes del sistema")
        if message_type == MessageType.FILE and not file_path:
            raise ValidationError("file_path es requerido para mensajes de archivo")

        message = self.repo.create(
            self.db,
            consultation_id=consultation.id,
            sender_id=principal.user_id,
            recipient_id=recipient_id,
            content=content.strip(),
            message_type=message_type.value,
            file_path=file_path,
        )
        logger.info(f"✉️ Message {message.id} sent on consultation {consultation_id}")
        return message

    def unread_count(self, principal: Principal) -> int:
        """Messages addressed to the principal that they have not opened yet"""
        return self.repo.count_unread(self.db, principal.user_id)

    def recent_messages(self, principal: Principal, limit: int = 10) -> list[Message]:
        return self.repo.list_recent_by_user(self.db, principal.user_id, limit)
