"""Message router - Consultation conversations and the caller's message inbox"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Principal, get_current_user
from ...database import get_db
from .schemas import MessageCreate, MessageResponse, RecentMessageResponse
from .service import MessageService

router = APIRouter(prefix="/api/consultations", tags=["Messages"])
inbox_router = APIRouter(prefix="/api/messages", tags=["Messages"])


def get_message_service(db: Session = Depends(get_db)) -> MessageService:
    """Dependency injection for MessageService"""
    return MessageService(db)


@router.get("/{consultation_id}/messages")
async def list_messages(
    consultation_id: str,
    principal: Principal = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    messages = service.list_messages(consultation_id, principal)
    return {
        "success": True,
        "data": [MessageResponse.from_model(m) for m in messages],
        "total": len(messages),
    }


@router.post("/{consultation_id}/messages", status_code=201)
async def send_message(
    consultation_id: str,
    data: MessageCreate,
    principal: Principal = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    message = service.send_message(
        consultation_id, principal, data.content, data.message_type, data.file_path
    )
    return {
        "success": True,
        "data": MessageResponse.from_model(message),
        "message": "Mensaje enviado exitosamente",
    }


@inbox_router.get("/unread-count")
async def get_unread_count(
    principal: Principal = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    """Unread messages addressed to the caller across all consultations"""
    return {"success": True, "data": {"count": service.unread_count(principal)}}


@inbox_router.get("/recent")
async def get_recent_messages(
    limit: int = Query(10, ge=1, le=50),
    principal: Principal = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    """Latest message of each of the caller's conversations"""
    messages = service.recent_messages(principal, limit)
    return {
        "success": True,
        "data": [RecentMessageResponse.for_user(m, principal.user_id) for m in messages],
        "total": len(messages),
    }
