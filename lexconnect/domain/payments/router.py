"""Payment router - Ledger endpoints and the per-consultation payment routes"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from ...auth import Principal, get_current_user, require_roles
from ...database import get_db
from ...models import UserRole
from ..activity import record_activity
from ..activity.service import PAYMENT
from .fees import enabled_methods
from .gateway import PaymentGateway, get_payment_gateway
from .schemas import (
    ManualPaymentCreate,
    PaymentComplete,
    PaymentIntentCreate,
    PaymentIntentResponse,
    PaymentResponse,
    PaymentStatusUpdate,
)
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Payments"])


def get_payment_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db, gateway)


@router.get("/payments")
async def list_payments(
    principal: Principal = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Payments visible to the caller, newest first"""
    payments = service.list_for_principal(principal)
    return {
        "success": True,
        "data": [PaymentResponse.from_model(p) for p in payments],
        "total": len(payments),
    }


@router.get("/payments/stats")
async def get_payment_stats(
    principal: Principal = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return {"success": True, "data": service.stats(principal)}


@router.get("/payments/methods")
async def list_payment_methods():
    """Enabled payment methods and their processing fees"""
    return {
        "success": True,
        "data": [
            {"id": m.id, "name": m.name, "percentage": m.percentage, "fixed": m.fixed}
            for m in enabled_methods()
        ],
    }


@router.post("/payments/create-intent", status_code=201)
async def create_payment_intent(
    data: PaymentIntentCreate,
    principal: Principal = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Open a gateway intent for a consultation payment"""
    payment, intent = service.create_payment_intent(
        principal, data.consultation_id, data.amount, data.payment_method, data.currency
    )
    return {
        "success": True,
        "data": PaymentIntentResponse(
            payment=PaymentResponse.from_model(payment),
            payment_intent_id=intent["id"],
            client_secret=intent["client_secret"],
        ),
        "message": "Intención de pago creada exitosamente",
    }


@router.post("/payments/complete")
async def complete_payment(
    data: PaymentComplete,
    principal: Principal = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Confirm a processing payment by its intent id"""
    payment = service.complete(data.payment_intent_id, principal)
    return {
        "success": True,
        "data": PaymentResponse.from_model(payment),
        "message": "Pago completado exitosamente",
    }


@router.patch("/payments/{payment_id}/status")
async def update_payment_status(
    payment_id: str,
    data: PaymentStatusUpdate,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
    service: PaymentService = Depends(get_payment_service),
):
    """Admin override of a payment status"""
    previous, payment = service.update_status(principal, payment_id, data.status)

    new_values = {"status": payment.status}
    if data.notes:
        new_values["notes"] = data.notes
    background_tasks.add_task(
        record_activity,
        principal.user_id,
        f"Estado de pago actualizado de '{previous}' a '{payment.status}'",
        PAYMENT,
        payment_id,
        {"status": previous},
        new_values,
    )
    return {
        "success": True,
        "data": PaymentResponse.from_model(payment),
        "message": "Estado de pago actualizado exitosamente",
    }


# ============================================================================
# PER-CONSULTATION ROUTES
# ============================================================================


@router.get("/consultations/{consultation_id}/payment")
async def get_consultation_payment(
    consultation_id: str,
    principal: Principal = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Latest payment of a consultation"""
    payment = service.get_by_consultation_id(consultation_id, principal)
    return {"success": True, "data": PaymentResponse.from_model(payment)}


@router.post("/consultations/{consultation_id}/register-payment", status_code=201)
async def register_payment(
    consultation_id: str,
    data: ManualPaymentCreate,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Admin registers a payment collected outside the gateway"""
    payment = service.register_manual(
        principal, consultation_id, data.amount, data.payment_method, data.status
    )

    background_tasks.add_task(
        record_activity,
        principal.user_id,
        f"Pago registrado manualmente - ${payment.amount} {payment.currency} via {payment.payment_method}",
        PAYMENT,
        payment.id,
        None,
        {
            "amount": payment.amount,
            "payment_method": payment.payment_method,
            "status": payment.status,
            "notes": data.notes or "Registro manual por administrador",
        },
    )
    return {
        "success": True,
        "data": PaymentResponse.from_model(payment),
        "message": "Pago registrado exitosamente",
    }
