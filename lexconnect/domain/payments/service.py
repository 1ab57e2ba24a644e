"""Payment service - Fee split, gateway intents and manual ledger operations"""

import logging
import time
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import Principal
from ...config import DEFAULT_CURRENCY
from ...database import transaction
from ...errors import (
    ConsultationNotFound,
    ForbiddenError,
    InvalidPaymentState,
    PaymentNotFound,
    ValidationError,
)
from ...models import Consultation, Payment, PaymentStatus
from ..consultations.repository import ConsultationRepository
from ..consultations.service import ConsultationService
from . import fees
from .gateway import MockPaymentGateway, PaymentGateway
from .repository import PaymentRepository
from .schemas import PaymentStats

logger = logging.getLogger(__name__)


class PaymentService:
    """Service layer for the payment ledger"""

    def __init__(self, db: Session, gateway: Optional[PaymentGateway] = None):
        self.db = db
        self.repo = PaymentRepository()
        self.gateway = gateway or MockPaymentGateway()

    def _get_consultation(self, consultation_id: str) -> Consultation:
        consultation = ConsultationRepository.get_by_id(self.db, consultation_id)
        if not consultation:
            raise ConsultationNotFound()
        return consultation

    @staticmethod
    def _validate_amount(amount: Decimal) -> None:
        if amount is None or amount <= 0:
            raise ValidationError("El monto debe ser mayor a cero")

    def _insert(
        self,
        consultation: Consultation,
        amount: Decimal,
        payment_method: str,
        currency: Optional[str],
        **extra,
    ) -> Payment:
        split = fees.split_amount(amount, payment_method)
        return self.repo.create(
            self.db,
            consultation_id=consultation.id,
            client_id=consultation.client_id,
            lawyer_id=consultation.lawyer_id,
            currency=currency or DEFAULT_CURRENCY,
            payment_method=payment_method,
            **split,
            **extra,
        )

    # ------------------------------------------------------------------
    # Gateway flow
    # ------------------------------------------------------------------

    def create(
        self,
        consultation_id: str,
        amount: Decimal,
        payment_method: str,
        currency: Optional[str] = None,
    ) -> Payment:
        """Record a pending payment with its fee split"""
        self._validate_amount(amount)
        if not fees.is_method_enabled(payment_method):
            raise ValidationError(f"Método de pago no disponible: {payment_method}")

        consultation = self._get_consultation(consultation_id)
        with transaction(self.db):
            payment = self._insert(
                consultation, amount, payment_method, currency, status=PaymentStatus.PENDING.value
            )
            payment_id = payment.id

        logger.info(f"💰 Payment {payment_id} recorded for consultation {consultation_id}: {amount}")
        return self.repo.get_by_id(self.db, payment_id)

    def create_payment_intent(
        self,
        principal: Principal,
        consultation_id: str,
        amount: Decimal,
        payment_method: str = "card",
        currency: Optional[str] = None,
    ) -> tuple[Payment, dict]:
        """
        Open a gateway intent for the consultation's client.

        Returns:
            The payment, now procesando, and the gateway's intent payload
        """
        self._validate_amount(amount)
        if not fees.is_method_enabled(payment_method):
            raise ValidationError(f"Método de pago no disponible: {payment_method}")
        if not self.gateway.is_available():
            raise ValidationError("Pasarela de pago no disponible")

        consultation = self._get_consultation(consultation_id)
        if not principal.is_admin and consultation.client_id != principal.user_id:
            raise ForbiddenError("Solo el cliente de la consulta puede pagarla")

        with transaction(self.db):
            payment = self._insert(
                consultation, amount, payment_method, currency, status=PaymentStatus.PENDING.value
            )
            intent = self.gateway.create_intent(
                payment.amount,
                payment.currency,
                payment_method,
                metadata={"consultation_id": consultation_id, "payment_id": payment.id},
            )
            payment.payment_intent_id = intent["id"]
            payment.status = PaymentStatus.PROCESSING.value
            payment_id = payment.id

        logger.info(f"💳 Intent {intent['id']} opened for payment {payment_id}")
        return self.repo.get_by_id(self.db, payment_id), intent

    def complete(self, intent_id: str, principal: Optional[Principal] = None) -> Payment:
        """
        Mark the payment holding this intent as completado.

        Raises:
            PaymentNotFound: no payment carries the intent
            InvalidPaymentState: the payment is not procesando
        """
        existing = self.repo.get_by_intent_id(self.db, intent_id)
        if not existing:
            raise PaymentNotFound()
        if principal and not principal.is_admin and existing.client_id != principal.user_id:
            raise ForbiddenError("No tienes permisos sobre este pago")

        with transaction(self.db):
            written = self.repo.complete_intent(self.db, intent_id, datetime.utcnow())
            if not written:
                current = self.repo.get_by_intent_id(self.db, intent_id)
                raise InvalidPaymentState(
                    f"El pago está en estado '{current.status}' y no puede completarse"
                )

        logger.info(f"✅ Payment for intent {intent_id} completed")
        return self.repo.get_by_intent_id(self.db, intent_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_consultation_id(self, consultation_id: str, principal: Principal) -> Payment:
        """Latest payment of a consultation the principal can see"""
        ConsultationService(self.db).get_consultation(consultation_id, principal)
        payment = self.repo.get_latest_for_consultation(self.db, consultation_id)
        if not payment:
            raise PaymentNotFound("No hay pagos registrados para esta consulta")
        return payment

    def _lawyer_scope(self, principal: Principal) -> Optional[str]:
        profile = ConsultationRepository.get_lawyer_profile_by_user_id(self.db, principal.user_id)
        return profile.id if profile else None

    def list_for_principal(self, principal: Principal) -> list[Payment]:
        if principal.is_admin:
            return self.repo.list_payments(self.db)
        if principal.is_lawyer:
            profile_id = self._lawyer_scope(principal)
            return self.repo.list_payments(self.db, lawyer_id=profile_id) if profile_id else []
        return self.repo.list_payments(self.db, client_id=principal.user_id)

    def stats(self, principal: Principal) -> dict:
        if principal.is_admin:
            return self.repo.get_stats(self.db)
        if principal.is_lawyer:
            profile_id = self._lawyer_scope(principal)
            if not profile_id:
                return PaymentStats().model_dump()
            return self.repo.get_stats(self.db, lawyer_id=profile_id)
        return self.repo.get_stats(self.db, client_id=principal.user_id)

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def register_manual(
        self,
        principal: Principal,
        consultation_id: str,
        amount: Decimal,
        payment_method: str,
        status: PaymentStatus = PaymentStatus.PENDING,
    ) -> Payment:
        """Admin records a payment collected outside the gateway"""
        if not principal.is_admin:
            raise ForbiddenError("Solo los administradores pueden registrar pagos manualmente")
        self._validate_amount(amount)
        if not payment_method or not payment_method.strip():
            raise ValidationError("Monto y método de pago son requeridos")

        consultation = self._get_consultation(consultation_id)
        if self.repo.exists_for_consultation(self.db, consultation_id):
            raise ValidationError("Ya existe un pago registrado para esta consulta")

        extra = {
            "status": status.value,
            "payment_intent_id": f"manual_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}",
        }
        if status == PaymentStatus.COMPLETED:
            extra["paid_at"] = datetime.utcnow()

        with transaction(self.db):
            payment = self._insert(consultation, amount, payment_method, None, **extra)
            payment_id = payment.id

        logger.info(f"🧾 Manual payment {payment_id} registered by admin {principal.user_id}")
        return self.repo.get_by_id(self.db, payment_id)

    def update_status(self, principal: Principal, payment_id: str, status: PaymentStatus) -> tuple[str, Payment]:
        """
        Admin override of a payment's status.

        Returns the previous status and the updated payment.
        """
        if not principal.is_admin:
            raise ForbiddenError("Solo los administradores pueden actualizar estados de pago manualmente")

        payment = self.repo.get_by_id(self.db, payment_id)
        if not payment:
            raise PaymentNotFound()

        previous = payment.status
        values = {"status": status.value}
        if status == PaymentStatus.COMPLETED and payment.paid_at is None:
            values["paid_at"] = datetime.utcnow()

        with transaction(self.db):
            self.repo.update(self.db, payment_id, values)

        logger.info(f"🔄 Payment {payment_id} status: {previous} → {status.value}")
        return previous, self.repo.get_by_id(self.db, payment_id)
