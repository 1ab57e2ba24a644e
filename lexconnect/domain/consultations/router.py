"""Consultation router - FastAPI endpoints for the consultation lifecycle"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Principal, get_current_user
from ...database import get_db
from ...models import ConsultationPriority, ConsultationStatus
from ..activity import ActivityService, record_activity
from ..activity.service import CONSULTATION, describe_changes
from .schemas import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    AcceptRequest,
    CompleteRequest,
    ConsultationCreate,
    ConsultationFilters,
    ConsultationResponse,
    ConsultationStatusStats,
    ConsultationUpdate,
)
from .service import ConsultationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/consultations", tags=["Consultations"])


def get_consultation_service(db: Session = Depends(get_db)) -> ConsultationService:
    """Dependency injection for ConsultationService"""
    return ConsultationService(db)


# ============================================================================
# COLLECTION
# ============================================================================


@router.get("")
async def list_consultations(
    status: Optional[ConsultationStatus] = Query(None),
    priority: Optional[ConsultationPriority] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    lawyer_id: Optional[str] = Query(None, description="Admin only"),
    client_id: Optional[str] = Query(None, description="Admin only"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """List consultations visible to the caller, newest first"""
    filters = ConsultationFilters(
        status=status,
        priority=priority,
        date_from=date_from,
        date_to=date_to,
        lawyer_id=lawyer_id,
        client_id=client_id,
        limit=limit,
        offset=offset,
    )
    consultations = service.list_consultations(principal, filters)
    return {
        "success": True,
        "data": [ConsultationResponse.from_model(c) for c in consultations],
        "total": len(consultations),
    }


@router.post("", status_code=201)
async def create_consultation(
    data: ConsultationCreate,
    principal: Principal = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """Client requests a consultation with a lawyer"""
    consultation = service.create_consultation(data, principal)
    return {
        "success": True,
        "data": ConsultationResponse.from_model(consultation),
        "message": "Consulta creada exitosamente",
    }


@router.get("/stats")
async def get_consultation_stats(
    principal: Principal = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """Per-status counts and revenue for the caller's consultations"""
    stats = [ConsultationStatusStats(**row) for row in service.get_stats(principal)]
    return {"success": True, "data": stats}


# ============================================================================
# SINGLE CONSULTATION
# ============================================================================


@router.get("/{consultation_id}")
async def get_consultation(
    consultation_id: str,
    principal: Principal = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """Get a consultation the caller is party to (or any, for admins)"""
    consultation = service.get_consultation(consultation_id, principal)
    return {"success": True, "data": ConsultationResponse.from_model(consultation)}


@router.put("/{consultation_id}")
async def update_consultation(
    consultation_id: str,
    data: ConsultationUpdate,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """Partial update; status and lawyer note changes are audited"""
    before, consultation = service.update_consultation(consultation_id, data, principal)

    diff = describe_changes(
        before,
        {"status": consultation.status, "lawyer_notes": consultation.lawyer_notes},
    )
    if diff:
        action, old_values, new_values = diff
        background_tasks.add_task(
            record_activity, principal.user_id, action, CONSULTATION, consultation_id, old_values, new_values
        )

    return {
        "success": True,
        "data": ConsultationResponse.from_model(consultation),
        "message": "Consulta actualizada exitosamente",
    }


# ============================================================================
# LIFECYCLE ACTIONS
# ============================================================================


@router.post("/{consultation_id}/accept")
async def accept_consultation(
    consultation_id: str,
    background_tasks: BackgroundTasks,
    body: Optional[AcceptRequest] = None,
    principal: Principal = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """Assigned lawyer accepts a pending consultation"""
    body = body or AcceptRequest()
    consultation = service.accept_consultation(
        consultation_id, principal, body.estimated_price, body.lawyer_notes
    )

    background_tasks.add_task(
        record_activity,
        principal.user_id,
        "Consulta aceptada",
        CONSULTATION,
        consultation_id,
        {"status": ConsultationStatus.PENDING.value},
        {"status": consultation.status, "estimated_price": consultation.estimated_price},
    )
    return {
        "success": True,
        "data": ConsultationResponse.from_model(consultation),
        "message": "Consulta aceptada exitosamente",
    }


@router.post("/{consultation_id}/complete")
async def complete_consultation(
    consultation_id: str,
    background_tasks: BackgroundTasks,
    body: Optional[CompleteRequest] = None,
    principal: Principal = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """Client or lawyer marks an in-progress consultation as completed"""
    body = body or CompleteRequest()
    previous, consultation = service.complete_consultation(consultation_id, principal, body.final_price)

    background_tasks.add_task(
        record_activity,
        principal.user_id,
        "Consulta completada",
        CONSULTATION,
        consultation_id,
        {"status": previous},
        {"status": consultation.status, "final_price": consultation.final_price},
    )
    return {
        "success": True,
        "data": ConsultationResponse.from_model(consultation),
        "message": "Consulta completada exitosamente",
    }


@router.post("/{consultation_id}/cancel")
async def cancel_consultation(
    consultation_id: str,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """Cancel a consultation that is not yet closed"""
    previous, consultation = service.cancel_consultation(consultation_id, principal)

    background_tasks.add_task(
        record_activity,
        principal.user_id,
        "Consulta cancelada",
        CONSULTATION,
        consultation_id,
        {"status": previous},
        {"status": consultation.status},
    )
    return {
        "success": True,
        "data": ConsultationResponse.from_model(consultation),
        "message": "Consulta cancelada exitosamente",
    }


@router.get("/{consultation_id}/activity")
async def get_consultation_activity(
    consultation_id: str,
    principal: Principal = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
    db: Session = Depends(get_db),
):
    """Audit trail of a consultation, newest first"""
    service.get_consultation(consultation_id, principal)
    entries = ActivityService(db).list_for_resource(CONSULTATION, consultation_id)
    return {"success": True, "data": entries}


__all__ = [
    "router",
    "list_consultations",
    "create_consultation",
    "get_consultation_stats",
    "get_consultation",
    "update_consultation",
    "accept_consultation",
    "complete_consultation",
    "cancel_consultation",
    "get_consultation_activity",
]
