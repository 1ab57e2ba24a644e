"""Consultation repository - Database operations for consultations"""

from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, joinedload

from ...models import Consultation, LawyerProfile
from .schemas import ConsultationFilters


class ConsultationRepository:
    """Repository for consultation database operations"""

    @staticmethod
    def _with_parties(db: Session) -> Query:
        """Consultation query with client, lawyer user and service eagerly joined"""
        return db.query(Consultation).options(
            joinedload(Consultation.client),
            joinedload(Consultation.lawyer).joinedload(LawyerProfile.user),
            joinedload(Consultation.service),
        )

    @staticmethod
    def get_by_id(db: Session, consultation_id: str) -> Optional[Consultation]:
        """Get a consultation with its display fields. No ownership filtering."""
        return (
            ConsultationRepository._with_parties(db)
            .filter(Consultation.id == consultation_id)
            .populate_existing()
            .first()
        )

    @staticmethod
    def get_lawyer_profile_by_user_id(db: Session, user_id: str) -> Optional[LawyerProfile]:
        return db.query(LawyerProfile).filter(LawyerProfile.user_id == user_id).first()

    @staticmethod
    def create(db: Session, client_id: str, **data) -> Consultation:
        """Insert a consultation inside the caller's transaction"""
        consultation = Consultation(client_id=client_id, **data)
        db.add(consultation)
        db.flush()
        return consultation

    @staticmethod
    def conditional_update(
        db: Session,
        consultation_id: str,
        expected_statuses: Iterable[str],
        values: dict,
        lawyer_id: Optional[str] = None,
    ) -> int:
        """
        UPDATE ... WHERE id = :id AND status IN (:expected) [AND lawyer_id = :lawyer_id]

        The status predicate is the race guard: a concurrent writer that moved the
        row first makes this match nothing. Returns the number of rows written.
        """
        query = db.query(Consultation).filter(
            Consultation.id == consultation_id,
            Consultation.status.in_(list(expected_statuses)),
        )
        if lawyer_id is not None:
            query = query.filter(Consultation.lawyer_id == lawyer_id)

        values = {**values, "updated_at": datetime.utcnow()}
        return query.update(values, synchronize_session=False)

    @staticmethod
    def increment_total_consultations(db: Session, profile_id: str) -> None:
        db.query(LawyerProfile).filter(LawyerProfile.id == profile_id).update(
            {LawyerProfile.total_consultations: LawyerProfile.total_consultations + 1},
            synchronize_session=False,
        )

    @staticmethod
    def _apply_filters(query: Query, filters: ConsultationFilters, admin: bool = False) -> Query:
        if filters.status:
            query = query.filter(Consultation.status == filters.status.value)
        if filters.priority:
            query = query.filter(Consultation.priority == filters.priority.value)
        if admin and filters.lawyer_id:
            query = query.filter(Consultation.lawyer_id == filters.lawyer_id)
        if admin and filters.client_id:
            query = query.filter(Consultation.client_id == filters.client_id)
        if filters.date_from:
            query = query.filter(Consultation.created_at >= datetime.combine(filters.date_from, time.min))
        if filters.date_to:
            # Inclusive of the whole date_to day
            end = datetime.combine(filters.date_to + timedelta(days=1), time.min)
            query = query.filter(Consultation.created_at < end)
        return query

    @staticmethod
    def _page(query: Query, filters: ConsultationFilters) -> list[Consultation]:
        return (
            query.order_by(Consultation.created_at.desc())
            .offset(filters.offset)
            .limit(filters.limit)
            .all()
        )

    @staticmethod
    def list_for_client(db: Session, client_id: str, filters: ConsultationFilters) -> list[Consultation]:
        query = ConsultationRepository._with_parties(db).filter(Consultation.client_id == client_id)
        query = ConsultationRepository._apply_filters(query, filters)
        return ConsultationRepository._page(query, filters)

    @staticmethod
    def list_for_lawyer(db: Session, lawyer_id: str, filters: ConsultationFilters) -> list[Consultation]:
        query = ConsultationRepository._with_parties(db).filter(Consultation.lawyer_id == lawyer_id)
        query = ConsultationRepository._apply_filters(query, filters)
        return ConsultationRepository._page(query, filters)

    @staticmethod
    def list_for_admin(db: Session, filters: ConsultationFilters) -> list[Consultation]:
        query = ConsultationRepository._with_parties(db)
        query = ConsultationRepository._apply_filters(query, filters, admin=True)
        return ConsultationRepository._page(query, filters)

    @staticmethod
    def get_status_stats(
        db: Session,
        client_id: Optional[str] = None,
        lawyer_id: Optional[str] = None,
    ) -> list[dict]:
        """Count, average and total final price per status. No scope means every consultation."""
        query = db.query(
            Consultation.status,
            func.count(Consultation.id),
            func.avg(Consultation.final_price),
            func.sum(Consultation.final_price),
        )

        scope = []
        if client_id:
            scope.append(Consultation.client_id == client_id)
        if lawyer_id:
            scope.append(Consultation.lawyer_id == lawyer_id)
        if scope:
            query = query.filter(or_(*scope))

        rows = query.group_by(Consultation.status).order_by(func.count(Consultation.id).desc()).all()
        return [
            {
                "status": status,
                "count": count,
                "avg_price": float(avg) if avg is not None else None,
                "total_revenue": float(total) if total is not None else None,
            }
            for status, count, avg, total in rows
        ]
