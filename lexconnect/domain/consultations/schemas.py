"""Consultation domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...models import Consultation, ConsultationPriority, ConsultationStatus

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

# Fields a caller may touch through the generic update path
UPDATABLE_FIELDS = (
    "title",
    "description",
    "priority",
    "status",
    "estimated_price",
    "final_price",
    "deadline",
    "client_notes",
    "lawyer_notes",
)

# Columns that cannot be cleared with an explicit null
NON_NULLABLE_FIELDS = {"title", "description", "priority", "status"}


class ConsultationCreate(BaseModel):
    """Schema for a client requesting a consultation"""

    lawyer_id: Optional[str] = None
    service_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[ConsultationPriority] = None
    deadline: Optional[date] = None
    client_notes: Optional[str] = None


class ConsultationUpdate(BaseModel):
    """Partial update; only fields present in the payload are written"""

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[ConsultationPriority] = None
    status: Optional[ConsultationStatus] = None
    estimated_price: Optional[Decimal] = Field(default=None, ge=0)
    final_price: Optional[Decimal] = Field(default=None, ge=0)
    deadline: Optional[date] = None
    client_notes: Optional[str] = None
    lawyer_notes: Optional[str] = None

    def changes(self) -> dict:
        """Fields explicitly sent by the caller, minus nulls on required columns"""
        sent = self.model_dump(exclude_unset=True)
        return {
            key: value
            for key, value in sent.items()
            if key in UPDATABLE_FIELDS and not (value is None and key in NON_NULLABLE_FIELDS)
        }


class AcceptRequest(BaseModel):
    estimated_price: Optional[Decimal] = Field(default=None, ge=0)
    lawyer_notes: Optional[str] = None


class CompleteRequest(BaseModel):
    final_price: Optional[Decimal] = Field(default=None, ge=0)


class ConsultationFilters(BaseModel):
    """AND-chained list filters. lawyer_id and client_id only apply to the admin listing."""

    status: Optional[ConsultationStatus] = None
    priority: Optional[ConsultationPriority] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    lawyer_id: Optional[str] = None
    client_id: Optional[str] = None
    limit: int = DEFAULT_PAGE_SIZE
    offset: int = 0

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, v: int) -> int:
        if v < 1 or v > MAX_PAGE_SIZE:
            raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        return v

    @field_validator("offset")
    @classmethod
    def validate_offset(cls, v: int) -> int:
        if v < 0:
            raise ValueError("offset must be 0 or greater")
        return v


class ConsultationResponse(BaseModel):
    """Consultation with the joined display fields dashboards show"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    client_id: str
    lawyer_id: str
    service_id: Optional[str] = None
    title: str
    description: str
    priority: ConsultationPriority
    status: ConsultationStatus
    estimated_price: Optional[Decimal] = None
    final_price: Optional[Decimal] = None
    deadline: Optional[date] = None
    client_notes: Optional[str] = None
    lawyer_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    client_name: Optional[str] = None
    client_email: Optional[str] = None
    lawyer_name: Optional[str] = None
    lawyer_email: Optional[str] = None
    lawyer_user_id: Optional[str] = None
    service_title: Optional[str] = None
    service_type: Optional[str] = None

    @classmethod
    def from_model(cls, consultation: Consultation) -> "ConsultationResponse":
        client = consultation.client
        lawyer_user = consultation.lawyer.user if consultation.lawyer else None
        service = consultation.service
        return cls(
            id=consultation.id,
            client_id=consultation.client_id,
            lawyer_id=consultation.lawyer_id,
            service_id=consultation.service_id,
            title=consultation.title,
            description=consultation.description,
            priority=consultation.priority,
            status=consultation.status,
            estimated_price=consultation.estimated_price,
            final_price=consultation.final_price,
            deadline=consultation.deadline,
            client_notes=consultation.client_notes,
            lawyer_notes=consultation.lawyer_notes,
            created_at=consultation.created_at,
            updated_at=consultation.updated_at,
            client_name=client.full_name if client else None,
            client_email=client.email if client else None,
            lawyer_name=lawyer_user.full_name if lawyer_user else None,
            lawyer_email=lawyer_user.email if lawyer_user else None,
            lawyer_user_id=lawyer_user.id if lawyer_user else None,
            service_title=service.title if service else None,
            service_type=service.service_type if service else None,
        )


class ConsultationStatusStats(BaseModel):
    status: ConsultationStatus
    count: int
    avg_price: Optional[float] = None
    total_revenue: Optional[float] = None
