"""Consultation service - Business logic for the consultation lifecycle"""

import logging
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import Principal
from ...database import transaction
from ...errors import (
    ConsultationForbidden,
    ConsultationNotFound,
    ForbiddenError,
    InvalidConsultationTransition,
    LawyerProfileNotFound,
    ValidationError,
)
from ...models import Consultation, ConsultationPriority, ConsultationStatus, LawyerProfile
from . import policy
from .policy import ActorRelation
from .repository import ConsultationRepository
from .schemas import ConsultationCreate, ConsultationFilters, ConsultationUpdate

logger = logging.getLogger(__name__)

REQUIRED_CREATE_FIELDS = ("lawyer_id", "title", "description")

NON_TERMINAL_STATUSES = [
    status.value for status in ConsultationStatus if not policy.is_terminal(status)
]


def _plain(value):
    return value.value if isinstance(value, Enum) else value


class ConsultationService:
    """Service layer for consultation business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ConsultationRepository()

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    @staticmethod
    def relation_of(consultation: Consultation, principal: Principal) -> Optional[ActorRelation]:
        """
        How the principal relates to the consultation.

        lawyer_id is a lawyer-profile id, so the lawyer is matched through the
        profile's user_id, never by comparing lawyer_id with a user id.
        """
        if principal.is_admin:
            return ActorRelation.ADMIN
        if consultation.client_id == principal.user_id:
            return ActorRelation.CLIENT
        if consultation.lawyer is not None and consultation.lawyer.user_id == principal.user_id:
            return ActorRelation.LAWYER
        return None

    def _load_for(self, consultation_id: str, principal: Principal) -> tuple[Consultation, ActorRelation]:
        consultation = self.repo.get_by_id(self.db, consultation_id)
        if not consultation:
            raise ConsultationNotFound()

        relation = self.relation_of(consultation, principal)
        if relation is None:
            logger.warning(f"⚠️ User {principal.user_id} denied access to consultation {consultation_id}")
            raise ConsultationForbidden()
        return consultation, relation

    def _lawyer_profile_for(self, principal: Principal) -> LawyerProfile:
        profile = self.repo.get_lawyer_profile_by_user_id(self.db, principal.user_id)
        if not profile:
            raise LawyerProfileNotFound()
        return profile

    def _raise_no_effect(self, consultation_id: str, principal: Principal, target: ConsultationStatus):
        """A conditional update matched nothing: report why"""
        consultation, relation = self._load_for(consultation_id, principal)
        policy.check_transition(consultation.status, target, relation)
        # The edge is legal from what we see now, so another writer moved the row first
        raise InvalidConsultationTransition(
            consultation.status,
            target.value,
            detail="La consulta fue modificada por otra operación, vuelve a intentarlo",
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_consultation(self, consultation_id: str, principal: Principal) -> Consultation:
        """Get a consultation visible to the principal"""
        consultation, _ = self._load_for(consultation_id, principal)
        return consultation

    def get_with_relation(self, consultation_id: str, principal: Principal) -> tuple[Consultation, ActorRelation]:
        """Get a visible consultation together with how the principal relates to it"""
        return self._load_for(consultation_id, principal)

    def list_consultations(self, principal: Principal, filters: ConsultationFilters) -> list[Consultation]:
        """Role-scoped listing: admins see all, clients their own, lawyers their assigned ones"""
        if principal.is_admin:
            return self.repo.list_for_admin(self.db, filters)
        if principal.is_client:
            return self.repo.list_for_client(self.db, principal.user_id, filters)
        if principal.is_lawyer:
            profile = self._lawyer_profile_for(principal)
            return self.repo.list_for_lawyer(self.db, profile.id, filters)
        raise ForbiddenError("Rol de usuario no válido")

    def get_stats(self, principal: Principal) -> list[dict]:
        if principal.is_admin:
            return self.repo.get_status_stats(self.db)
        if principal.is_lawyer:
            profile = self.repo.get_lawyer_profile_by_user_id(self.db, principal.user_id)
            if not profile:
                return []
            return self.repo.get_status_stats(self.db, lawyer_id=profile.id)
        return self.repo.get_status_stats(self.db, client_id=principal.user_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_consultation(self, data: ConsultationCreate, principal: Principal) -> Consultation:
        """Create a consultation request; status always starts as pendiente"""
        if not principal.is_client:
            raise ForbiddenError("Solo los clientes pueden crear consultas")

        for field in REQUIRED_CREATE_FIELDS:
            value = getattr(data, field)
            if not value or not str(value).strip():
                raise ValidationError(f"Campo requerido: {field}")

        logger.info(f"📥 Creating consultation for client {principal.user_id} with lawyer {data.lawyer_id}")

        try:
            with transaction(self.db):
                consultation = self.repo.create(
                    self.db,
                    principal.user_id,
                    lawyer_id=data.lawyer_id,
                    service_id=data.service_id or None,
                    title=data.title.strip(),
                    description=data.description.strip(),
                    priority=(data.priority or ConsultationPriority.MEDIUM).value,
                    status=ConsultationStatus.PENDING.value,
                    deadline=data.deadline,
                    client_notes=data.client_notes or None,
                )
                consultation_id = consultation.id
        except IntegrityError as e:
            logger.warning(f"⚠️ Consultation rejected by database constraints: {e.orig}")
            raise ValidationError("El abogado o servicio indicado no existe") from e

        logger.info(f"✅ Consultation {consultation_id} created")
        return self.repo.get_by_id(self.db, consultation_id)

    def update_consultation(
        self, consultation_id: str, data: ConsultationUpdate, principal: Principal
    ) -> tuple[dict, Consultation]:
        """
        Partial update. Status changes go through the lifecycle policy.

        Returns the audited fields before the change and the updated consultation.
        """
        changes = data.changes()
        if not changes:
            raise ValidationError("No hay campos para actualizar")

        consultation, relation = self._load_for(consultation_id, principal)
        current = ConsultationStatus(consultation.status)
        requested = changes.get("status")

        if policy.is_terminal(current):
            raise InvalidConsultationTransition(
                current.value,
                _plain(requested) or current.value,
                detail="La consulta está cerrada y no admite cambios",
            )

        status_changes = requested is not None and requested != current
        if status_changes:
            policy.check_transition(current, requested, relation)
        else:
            changes.pop("status", None)
            if not changes:
                raise ValidationError("No hay campos para actualizar")

        before = {"status": consultation.status, "lawyer_notes": consultation.lawyer_notes}
        values = {key: _plain(value) for key, value in changes.items()}

        with transaction(self.db):
            written = self.repo.conditional_update(self.db, consultation_id, [current.value], values)
            if not written and status_changes:
                self._raise_no_effect(consultation_id, principal, requested)
            if not written:
                raise InvalidConsultationTransition(
                    current.value,
                    current.value,
                    detail="La consulta fue modificada por otra operación, vuelve a intentarlo",
                )
            if status_changes and requested == ConsultationStatus.ACCEPTED:
                self.repo.increment_total_consultations(self.db, consultation.lawyer_id)

        if status_changes:
            logger.info(
                f"🔄 Consultation {consultation_id} transitioned: {current.value} → {_plain(requested)} "
                f"by {relation.value} {principal.user_id}"
            )
        return before, self.repo.get_by_id(self.db, consultation_id)

    def accept_consultation(
        self,
        consultation_id: str,
        principal: Principal,
        estimated_price: Optional[Decimal] = None,
        lawyer_notes: Optional[str] = None,
    ) -> Consultation:
        """Lawyer accepts a pending consultation and the profile counter goes up once"""
        if not principal.is_lawyer:
            raise ForbiddenError("Solo los abogados pueden aceptar consultas")

        profile = self._lawyer_profile_for(principal)
        values = {"status": ConsultationStatus.ACCEPTED.value}
        if estimated_price is not None:
            values["estimated_price"] = estimated_price
        if lawyer_notes is not None:
            values["lawyer_notes"] = lawyer_notes

        with transaction(self.db):
            written = self.repo.conditional_update(
                self.db,
                consultation_id,
                [ConsultationStatus.PENDING.value],
                values,
                lawyer_id=profile.id,
            )
            if not written:
                self._raise_no_effect(consultation_id, principal, ConsultationStatus.ACCEPTED)
            self.repo.increment_total_consultations(self.db, profile.id)

        logger.info(f"✅ Consultation {consultation_id} accepted by lawyer profile {profile.id}")
        return self.repo.get_by_id(self.db, consultation_id)

    def complete_consultation(
        self,
        consultation_id: str,
        principal: Principal,
        final_price: Optional[Decimal] = None,
    ) -> tuple[str, Consultation]:
        """Client or lawyer closes an in-progress consultation"""
        consultation, relation = self._load_for(consultation_id, principal)
        if relation == ActorRelation.ADMIN:
            raise ForbiddenError("Los administradores deben completar consultas mediante la actualización")

        previous = consultation.status
        policy.check_transition(previous, ConsultationStatus.COMPLETED, relation)

        values = {"status": ConsultationStatus.COMPLETED.value}
        if final_price is not None:
            values["final_price"] = final_price

        with transaction(self.db):
            written = self.repo.conditional_update(
                self.db, consultation_id, [ConsultationStatus.IN_PROGRESS.value], values
            )
            if not written:
                self._raise_no_effect(consultation_id, principal, ConsultationStatus.COMPLETED)

        logger.info(f"✅ Consultation {consultation_id} completed by {relation.value} {principal.user_id}")
        return previous, self.repo.get_by_id(self.db, consultation_id)

    def cancel_consultation(self, consultation_id: str, principal: Principal) -> tuple[str, Consultation]:
        """Any party, or an admin, cancels a consultation that is not yet closed"""
        consultation, relation = self._load_for(consultation_id, principal)
        previous = consultation.status
        policy.check_transition(previous, ConsultationStatus.CANCELLED, relation)

        with transaction(self.db):
            written = self.repo.conditional_update(
                self.db,
                consultation_id,
                NON_TERMINAL_STATUSES,
                {"status": ConsultationStatus.CANCELLED.value},
            )
            if not written:
                self._raise_no_effect(consultation_id, principal, ConsultationStatus.CANCELLED)

        logger.info(f"🚫 Consultation {consultation_id} cancelled by {relation.value} {principal.user_id}")
        return previous, self.repo.get_by_id(self.db, consultation_id)
