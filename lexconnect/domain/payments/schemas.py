"""Payment domain schemas - Pydantic models for validation"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import Payment, PaymentStatus


class PaymentIntentCreate(BaseModel):
    consultation_id: str
    amount: Decimal
    payment_method: str = "card"
    currency: Optional[str] = None


class PaymentComplete(BaseModel):
    payment_intent_id: str

    @field_validator("payment_intent_id")
    @classmethod
    def validate_intent_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("payment_intent_id requerido")
        return v.strip()


class ManualPaymentCreate(BaseModel):
    """Admin registering a payment collected outside the gateway"""

    amount: Decimal
    payment_method: str
    status: PaymentStatus = PaymentStatus.PENDING
    notes: Optional[str] = Field(default=None, max_length=1000)


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus
    notes: Optional[str] = Field(default=None, max_length=1000)


class PaymentResponse(BaseModel):
    id: str
    consultation_id: str
    client_id: str
    lawyer_id: str
    amount: Decimal
    platform_fee: Decimal
    processing_fee: Decimal
    lawyer_earnings: Decimal
    currency: str
    payment_method: str
    status: PaymentStatus
    payment_intent_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    consultation_title: Optional[str] = None
    client_name: Optional[str] = None
    lawyer_name: Optional[str] = None

    @classmethod
    def from_model(cls, payment: Payment) -> "PaymentResponse":
        consultation = payment.consultation
        client = consultation.client if consultation else None
        lawyer_user = consultation.lawyer.user if consultation and consultation.lawyer else None
        return cls(
            id=payment.id,
            consultation_id=payment.consultation_id,
            client_id=payment.client_id,
            lawyer_id=payment.lawyer_id,
            amount=payment.amount,
            platform_fee=payment.platform_fee,
            processing_fee=payment.processing_fee,
            lawyer_earnings=payment.lawyer_earnings,
            currency=payment.currency,
            payment_method=payment.payment_method,
            status=payment.status,
            payment_intent_id=payment.payment_intent_id,
            paid_at=payment.paid_at,
            created_at=payment.created_at,
            updated_at=payment.updated_at,
            consultation_title=consultation.title if consultation else None,
            client_name=client.full_name if client else None,
            lawyer_name=lawyer_user.full_name if lawyer_user else None,
        )


class PaymentIntentResponse(BaseModel):
    payment: PaymentResponse
    payment_intent_id: str
    client_secret: str


class PaymentStats(BaseModel):
    total_payments: int = 0
    completed_payments: int = 0
    pending_payments: int = 0
    total_revenue: float = 0
    platform_revenue: float = 0
    lawyer_earnings: float = 0
