from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from lexconnect.domain.consultations.schemas import ConsultationCreate, ConsultationFilters, ConsultationUpdate
from lexconnect.domain.consultations.service import ConsultationService
from lexconnect.errors import (
    ConsultationForbidden,
    ConsultationNotFound,
    ForbiddenError,
    InvalidConsultationTransition,
    LawyerProfileNotFound,
    ValidationError,
)
from lexconnect.models import ConsultationPriority, ConsultationStatus, LawyerProfile, UserRole
from tests.conftest import principal_for


@pytest.fixture
def service(db):
    return ConsultationService(db)


def _lawyer_principal(db, profile: LawyerProfile):
    db.refresh(profile)
    return principal_for(profile.user)


def _backdate(db, consultation):
    consultation.updated_at = datetime.utcnow() - timedelta(minutes=5)
    db.commit()
    return consultation.updated_at


def test_create_defaults_status_and_priority(service, client_user, lawyer):
    consultation = service.create_consultation(
        ConsultationCreate(lawyer_id=lawyer.id, title="Revisión de contrato", description="Arrendamiento"),
        principal_for(client_user),
    )

    assert consultation.status == ConsultationStatus.PENDING.value
    assert consultation.priority == ConsultationPriority.MEDIUM.value
    assert consultation.client_id == client_user.id
    assert consultation.created_at <= consultation.updated_at


def test_create_requires_fields(service, client_user, lawyer):
    with pytest.raises(ValidationError) as exc_info:
        service.create_consultation(
            ConsultationCreate(lawyer_id=lawyer.id, title="  ", description="x"),
            principal_for(client_user),
        )
    assert "title" in exc_info.value.detail


def test_create_rejects_unknown_lawyer(service, client_user):
    with pytest.raises(ValidationError):
        service.create_consultation(
            ConsultationCreate(lawyer_id="no-such-profile", title="T", description="D"),
            principal_for(client_user),
        )


def test_create_is_client_only(db, service, lawyer):
    with pytest.raises(ForbiddenError):
        service.create_consultation(
            ConsultationCreate(lawyer_id=lawyer.id, title="T", description="D"),
            _lawyer_principal(db, lawyer),
        )


def test_get_unknown_id_is_not_found(service, admin_user):
    with pytest.raises(ConsultationNotFound):
        service.get_consultation("missing", principal_for(admin_user))


def test_get_hides_record_from_unrelated_user(service, client_user, outsider, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)

    with pytest.raises(ConsultationForbidden):
        service.get_consultation(consultation.id, principal_for(outsider))


def test_lawyer_is_matched_through_profile_user(db, service, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)

    found = service.get_consultation(consultation.id, _lawyer_principal(db, lawyer))

    assert found.id == consultation.id


def test_other_lawyer_cannot_read(db, service, client_user, lawyer, make_lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)
    other = make_lawyer("Carla", "Ruiz")

    with pytest.raises(ConsultationForbidden):
        service.get_consultation(consultation.id, _lawyer_principal(db, other))


def test_accept_increments_counter_once(db, service, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)
    principal = _lawyer_principal(db, lawyer)

    accepted = service.accept_consultation(consultation.id, principal, Decimal("200"))
    assert accepted.status == ConsultationStatus.ACCEPTED.value
    assert accepted.estimated_price == Decimal("200")

    with pytest.raises(InvalidConsultationTransition):
        service.accept_consultation(consultation.id, principal, Decimal("250"))

    db.refresh(lawyer)
    assert lawyer.total_consultations == 1
    assert service.get_consultation(consultation.id, principal).estimated_price == Decimal("200")


def test_accept_by_other_lawyer_is_forbidden(db, service, client_user, lawyer, make_lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)
    other = make_lawyer("Carla", "Ruiz")

    with pytest.raises(ConsultationForbidden):
        service.accept_consultation(consultation.id, _lawyer_principal(db, other))

    db.refresh(other)
    assert other.total_consultations == 0


def test_accept_without_profile(service, make_user, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)
    profileless = make_user(UserRole.LAWYER, "Sin", "Perfil")

    with pytest.raises(LawyerProfileNotFound):
        service.accept_consultation(consultation.id, principal_for(profileless))


def test_update_rejects_empty_payload(service, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)

    with pytest.raises(ValidationError):
        service.update_consultation(consultation.id, ConsultationUpdate(), principal_for(client_user))


def test_update_enforces_transition_graph(service, admin_user, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)

    with pytest.raises(InvalidConsultationTransition):
        service.update_consultation(
            consultation.id,
            ConsultationUpdate(status=ConsultationStatus.COMPLETED),
            principal_for(admin_user),
        )


def test_update_enforces_actor_table(service, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer, ConsultationStatus.ACCEPTED)

    with pytest.raises(ConsultationForbidden):
        service.update_consultation(
            consultation.id,
            ConsultationUpdate(status=ConsultationStatus.IN_PROGRESS),
            principal_for(client_user),
        )


def test_update_returns_previous_audited_fields(db, service, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer, ConsultationStatus.ACCEPTED, lawyer_notes="inicial")
    before_update = _backdate(db, consultation)

    before, updated = service.update_consultation(
        consultation.id,
        ConsultationUpdate(status=ConsultationStatus.IN_PROGRESS, lawyer_notes="revisando"),
        _lawyer_principal(db, lawyer),
    )

    assert before == {"status": "aceptada", "lawyer_notes": "inicial"}
    assert updated.status == ConsultationStatus.IN_PROGRESS.value
    assert updated.lawyer_notes == "revisando"
    assert updated.updated_at > before_update


def test_update_of_closed_consultation_is_rejected(service, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer, ConsultationStatus.COMPLETED)

    with pytest.raises(InvalidConsultationTransition):
        service.update_consultation(
            consultation.id, ConsultationUpdate(client_notes="una nota más"), principal_for(client_user)
        )


def test_update_ignores_null_for_required_columns(service, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)

    _, updated = service.update_consultation(
        consultation.id,
        ConsultationUpdate(title=None, client_notes="urgente"),
        principal_for(client_user),
    )

    assert updated.title == "Asesoría laboral"
    assert updated.client_notes == "urgente"


def test_complete_requires_in_progress(db, service, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer, ConsultationStatus.ACCEPTED)

    with pytest.raises(InvalidConsultationTransition):
        service.complete_consultation(consultation.id, principal_for(client_user), Decimal("100"))


def test_admin_cannot_use_complete_shortcut(service, admin_user, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer, ConsultationStatus.IN_PROGRESS)

    with pytest.raises(ForbiddenError):
        service.complete_consultation(consultation.id, principal_for(admin_user))


def test_cancel_closed_consultation_has_no_effect(service, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer, ConsultationStatus.COMPLETED)

    with pytest.raises(InvalidConsultationTransition):
        service.cancel_consultation(consultation.id, principal_for(client_user))

    assert service.get_consultation(consultation.id, principal_for(client_user)).status == "completada"


def test_cancel_returns_previous_status(service, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer, ConsultationStatus.ACCEPTED)

    previous, cancelled = service.cancel_consultation(consultation.id, principal_for(client_user))

    assert previous == "aceptada"
    assert cancelled.status == "cancelada"


def test_lifecycle_writes_bump_updated_at(db, service, client_user, lawyer, make_consultation):
    principal = _lawyer_principal(db, lawyer)

    pending = make_consultation(client_user, lawyer)
    stamp = _backdate(db, pending)
    accepted = service.accept_consultation(pending.id, principal, Decimal("150"))
    assert accepted.updated_at > stamp

    in_progress = make_consultation(client_user, lawyer, ConsultationStatus.IN_PROGRESS)
    stamp = _backdate(db, in_progress)
    _, completed = service.complete_consultation(in_progress.id, principal_for(client_user), Decimal("150"))
    assert completed.updated_at > stamp

    open_one = make_consultation(client_user, lawyer, ConsultationStatus.ACCEPTED)
    stamp = _backdate(db, open_one)
    _, cancelled = service.cancel_consultation(open_one.id, principal_for(client_user))
    assert cancelled.updated_at > stamp


def test_listing_is_scoped_by_role(db, service, make_user, make_lawyer, make_consultation, admin_user):
    ana = make_user(UserRole.CLIENT, "Ana", "Pérez")
    beto = make_user(UserRole.CLIENT, "Beto", "Díaz")
    first = make_lawyer("Luis", "Hernández")
    second = make_lawyer("Carla", "Ruiz")
    make_consultation(ana, first)
    make_consultation(ana, second)
    make_consultation(beto, second)

    filters = ConsultationFilters()
    assert len(service.list_consultations(principal_for(ana), filters)) == 2
    assert len(service.list_consultations(principal_for(beto), filters)) == 1
    assert len(service.list_consultations(_lawyer_principal(db, second), filters)) == 2
    assert len(service.list_consultations(principal_for(admin_user), filters)) == 3
    assert len(service.list_consultations(principal_for(admin_user), ConsultationFilters(client_id=beto.id))) == 1


def test_listing_filters_and_pages(service, client_user, lawyer, make_consultation):
    make_consultation(client_user, lawyer, priority="high")
    make_consultation(client_user, lawyer, ConsultationStatus.ACCEPTED, priority="low")
    old = make_consultation(client_user, lawyer, ConsultationStatus.ACCEPTED)
    old.created_at = datetime.utcnow() - timedelta(days=10)
    service.db.commit()

    principal = principal_for(client_user)
    today = datetime.utcnow().date()
    accepted = service.list_consultations(principal, ConsultationFilters(status=ConsultationStatus.ACCEPTED))
    assert len(accepted) == 2

    high = service.list_consultations(principal, ConsultationFilters(priority=ConsultationPriority.HIGH))
    assert [c.priority for c in high] == ["high"]

    recent = service.list_consultations(principal, ConsultationFilters(date_from=today - timedelta(days=1)))
    assert old.id not in {c.id for c in recent}

    through_today = service.list_consultations(principal, ConsultationFilters(date_to=today))
    assert len(through_today) == 3

    page = service.list_consultations(principal, ConsultationFilters(limit=2, offset=2))
    assert [c.id for c in page] == [old.id]


def test_stats_count_per_status(service, client_user, lawyer, make_consultation):
    make_consultation(client_user, lawyer)
    make_consultation(client_user, lawyer, ConsultationStatus.COMPLETED, final_price=Decimal("100"))
    make_consultation(client_user, lawyer, ConsultationStatus.COMPLETED, final_price=Decimal("300"))

    stats = {row["status"]: row for row in service.get_stats(principal_for(client_user))}

    assert stats["pendiente"]["count"] == 1
    assert stats["completada"]["count"] == 2
    assert stats["completada"]["total_revenue"] == 400.0
    assert stats["completada"]["avg_price"] == 200.0
