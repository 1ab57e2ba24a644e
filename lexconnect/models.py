import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base


def generate_uuid():
    """Generate an opaque primary key"""
    return str(uuid.uuid4())


class UserRole(str, enum.Enum):
    CLIENT = "cliente"
    LAWYER = "abogado"
    ADMIN = "administrador"


class ConsultationStatus(str, enum.Enum):
    """Lifecycle of a consultation. completada and cancelada are terminal."""

    PENDING = "pendiente"
    ACCEPTED = "aceptada"
    IN_PROGRESS = "en_proceso"
    COMPLETED = "completada"
    CANCELLED = "cancelada"


class ConsultationPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class PaymentStatus(str, enum.Enum):
    """Payment lifecycle, tracked independently of the consultation status"""

    PENDING = "pendiente"
    PROCESSING = "procesando"
    COMPLETED = "completado"
    FAILED = "fallido"
    REFUNDED = "reembolsado"


class MessageType(str, enum.Enum):
    TEXT = "text"
    FILE = "file"
    SYSTEM = "system"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.CLIENT.value)
    phone = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    lawyer_profile = relationship("LawyerProfile", back_populates="user", uselist=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class LawyerProfile(Base):
    __tablename__ = "lawyer_profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False, index=True)
    license_number = Column(String(100), nullable=True)
    bar_association = Column(String(255), nullable=True)
    years_experience = Column(Integer, nullable=True)
    bio = Column(Text, nullable=True)
    consultation_rate = Column(Numeric(10, 2), nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    # Denormalized counter, bumped when the lawyer accepts a consultation
    total_consultations = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="lawyer_profile")
    services = relationship("LawyerService", back_populates="lawyer")


class LawyerService(Base):
    __tablename__ = "lawyer_services"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    lawyer_id = Column(String(36), ForeignKey("lawyer_profiles.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    service_type = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    lawyer = relationship("LawyerProfile", back_populates="services")


class Consultation(Base):
    __tablename__ = "consultations"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    # Parties: lawyer_id is a lawyer-profile id, never a user id
    client_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    lawyer_id = Column(String(36), ForeignKey("lawyer_profiles.id"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("lawyer_services.id"), nullable=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    client_notes = Column(Text, nullable=True)
    lawyer_notes = Column(Text, nullable=True)

    priority = Column(String(10), default=ConsultationPriority.MEDIUM.value, nullable=False)
    # Status workflow: pendiente → aceptada → en_proceso → completada, cancelada from any non-terminal
    status = Column(String(20), default=ConsultationStatus.PENDING.value, nullable=False, index=True)

    estimated_price = Column(Numeric(10, 2), nullable=True)  # Set on acceptance
    final_price = Column(Numeric(10, 2), nullable=True)  # Set on completion

    deadline = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    client = relationship("User", foreign_keys=[client_id])
    lawyer = relationship("LawyerProfile", foreign_keys=[lawyer_id])
    service = relationship("LawyerService", foreign_keys=[service_id])
    payments = relationship("Payment", back_populates="consultation")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    consultation_id = Column(String(36), ForeignKey("consultations.id"), nullable=False, index=True)

    # Copied from the consultation for query convenience
    client_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    lawyer_id = Column(String(36), ForeignKey("lawyer_profiles.id"), nullable=False, index=True)

    amount = Column(Numeric(10, 2), nullable=False)
    platform_fee = Column(Numeric(10, 2), nullable=False)
    processing_fee = Column(Numeric(10, 2), nullable=False, default=0)
    lawyer_earnings = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), default="MXN", nullable=False)
    payment_method = Column(String(30), nullable=False)

    status = Column(String(20), default=PaymentStatus.PENDING.value, nullable=False, index=True)
    payment_intent_id = Column(String(255), unique=True, nullable=True, index=True)

    paid_at = Column(DateTime, nullable=True)  # Set only on transition to completado
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    consultation = relationship("Consultation", back_populates="payments")


class ActivityLog(Base):
    """Audit trail entry. Written after the fact; never blocks the audited change."""

    __tablename__ = "activity_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    action = Column(String(500), nullable=False)
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(36), nullable=False, index=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    user = relationship("User")


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    consultation_id = Column(String(36), ForeignKey("consultations.id"), nullable=False, index=True)
    sender_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    recipient_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(String(10), default=MessageType.TEXT.value, nullable=False)
    file_path = Column(String(500), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])
    consultation = relationship("Consultation")
