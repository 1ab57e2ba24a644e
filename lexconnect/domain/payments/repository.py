"""Payment repository - Database operations for the payment ledger"""

from datetime import datetime
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Query, Session, joinedload

from ...models import Consultation, LawyerProfile, Payment, PaymentStatus


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def _with_consultation(db: Session) -> Query:
        return db.query(Payment).options(
            joinedload(Payment.consultation).joinedload(Consultation.client),
            joinedload(Payment.consultation).joinedload(Consultation.lawyer).joinedload(LawyerProfile.user),
        )

    @staticmethod
    def get_by_id(db: Session, payment_id: str) -> Optional[Payment]:
        return (
            PaymentRepository._with_consultation(db)
            .filter(Payment.id == payment_id)
            .populate_existing()
            .first()
        )

    @staticmethod
    def get_by_intent_id(db: Session, intent_id: str) -> Optional[Payment]:
        return (
            PaymentRepository._with_consultation(db)
            .filter(Payment.payment_intent_id == intent_id)
            .populate_existing()
            .first()
        )

    @staticmethod
    def get_latest_for_consultation(db: Session, consultation_id: str) -> Optional[Payment]:
        """Most recent payment; a consultation is expected to carry at most one active payment"""
        return (
            PaymentRepository._with_consultation(db)
            .filter(Payment.consultation_id == consultation_id)
            .order_by(Payment.created_at.desc())
            .first()
        )

    @staticmethod
    def exists_for_consultation(db: Session, consultation_id: str) -> bool:
        return db.query(Payment.id).filter(Payment.consultation_id == consultation_id).first() is not None

    @staticmethod
    def create(db: Session, **data) -> Payment:
        """Insert a payment inside the caller's transaction"""
        payment = Payment(**data)
        db.add(payment)
        db.flush()
        return payment

    @staticmethod
    def update(db: Session, payment_id: str, values: dict) -> int:
        values = {**values, "updated_at": datetime.utcnow()}
        return db.query(Payment).filter(Payment.id == payment_id).update(values, synchronize_session=False)

    @staticmethod
    def complete_intent(db: Session, intent_id: str, paid_at: datetime) -> int:
        """
        UPDATE ... WHERE payment_intent_id = :intent AND status = 'procesando'

        Returns the number of rows written; 0 means unknown intent or not processing.
        """
        return (
            db.query(Payment)
            .filter(
                Payment.payment_intent_id == intent_id,
                Payment.status == PaymentStatus.PROCESSING.value,
            )
            .update(
                {
                    "status": PaymentStatus.COMPLETED.value,
                    "paid_at": paid_at,
                    "updated_at": datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )

    @staticmethod
    def _scoped(query: Query, client_id: Optional[str], lawyer_id: Optional[str]) -> Query:
        if client_id:
            query = query.filter(Payment.client_id == client_id)
        if lawyer_id:
            query = query.filter(Payment.lawyer_id == lawyer_id)
        return query

    @staticmethod
    def list_payments(
        db: Session,
        client_id: Optional[str] = None,
        lawyer_id: Optional[str] = None,
    ) -> list[Payment]:
        """Payments newest first. No scope means every payment."""
        query = PaymentRepository._scoped(PaymentRepository._with_consultation(db), client_id, lawyer_id)
        return query.order_by(Payment.created_at.desc()).all()

    @staticmethod
    def get_stats(db: Session, client_id: Optional[str] = None, lawyer_id: Optional[str] = None) -> dict:
        query = db.query(
            func.count(Payment.id),
            func.sum(case((Payment.status == PaymentStatus.COMPLETED.value, 1), else_=0)),
            func.sum(case((Payment.status == PaymentStatus.PENDING.value, 1), else_=0)),
            func.coalesce(func.sum(Payment.amount), 0),
            func.coalesce(func.sum(Payment.platform_fee), 0),
            func.coalesce(func.sum(Payment.lawyer_earnings), 0),
        )
        total, completed, pending, revenue, platform, earnings = PaymentRepository._scoped(
            query, client_id, lawyer_id
        ).one()
        return {
            "total_payments": int(total or 0),
            "completed_payments": int(completed or 0),
            "pending_payments": int(pending or 0),
            "total_revenue": float(revenue or 0),
            "platform_revenue": float(platform or 0),
            "lawyer_earnings": float(earnings or 0),
        }
