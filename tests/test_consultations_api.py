from decimal import Decimal

from lexconnect.auth import create_access_token
from lexconnect.models import ConsultationStatus, UserRole
from tests.conftest import auth_headers


def _lawyer_headers(db, profile):
    db.refresh(profile)
    return auth_headers(profile.user)


def test_requires_bearer_token(client):
    response = client.get("/api/consultations")

    assert response.status_code == 401
    assert response.json()["detail"] == "Token de autorización requerido"


def test_rejects_invalid_token(client):
    response = client.get("/api/consultations", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_end_to_end_lifecycle(client, db, client_user, lawyer):
    client_headers = auth_headers(client_user)
    lawyer_headers = _lawyer_headers(db, lawyer)

    created = client.post(
        "/api/consultations",
        json={"lawyer_id": lawyer.id, "title": "Revisión de contrato", "description": "Contrato de arrendamiento"},
        headers=client_headers,
    )
    assert created.status_code == 201
    consultation = created.json()["data"]
    assert consultation["status"] == "pendiente"
    assert consultation["priority"] == "medium"
    consultation_id = consultation["id"]

    fetched = client.get(f"/api/consultations/{consultation_id}", headers=client_headers)
    assert fetched.json()["data"]["status"] == "pendiente"
    assert fetched.json()["data"]["lawyer_name"] == "Luis Hernández"

    accepted = client.post(
        f"/api/consultations/{consultation_id}/accept",
        json={"estimated_price": 200},
        headers=lawyer_headers,
    )
    assert accepted.status_code == 200
    assert accepted.json()["data"]["status"] == "aceptada"
    assert Decimal(accepted.json()["data"]["estimated_price"]) == Decimal("200")
    db.refresh(lawyer)
    assert lawyer.total_consultations == 1

    in_progress = client.put(
        f"/api/consultations/{consultation_id}",
        json={"status": "en_proceso"},
        headers=lawyer_headers,
    )
    assert in_progress.status_code == 200
    assert in_progress.json()["data"]["status"] == "en_proceso"

    completed = client.post(
        f"/api/consultations/{consultation_id}/complete",
        json={"final_price": 180},
        headers=client_headers,
    )
    assert completed.status_code == 200
    assert completed.json()["data"]["status"] == "completada"
    assert Decimal(completed.json()["data"]["final_price"]) == Decimal("180")

    cancelled = client.post(f"/api/consultations/{consultation_id}/cancel", headers=client_headers)
    assert cancelled.status_code == 409

    final = client.get(f"/api/consultations/{consultation_id}", headers=client_headers)
    assert final.json()["data"]["status"] == "completada"


def test_second_accept_is_a_conflict(client, db, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)
    headers = _lawyer_headers(db, lawyer)

    first = client.post(f"/api/consultations/{consultation.id}/accept", headers=headers)
    second = client.post(f"/api/consultations/{consultation.id}/accept", headers=headers)

    assert first.status_code == 200
    assert second.status_code == 409
    db.refresh(lawyer)
    assert lawyer.total_consultations == 1


def test_unrelated_user_never_sees_the_record(client, client_user, outsider, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)
    headers = auth_headers(outsider)

    read = client.get(f"/api/consultations/{consultation.id}", headers=headers)
    write = client.put(f"/api/consultations/{consultation.id}", json={"title": "hackeado"}, headers=headers)
    cancel = client.post(f"/api/consultations/{consultation.id}/cancel", headers=headers)

    for response in (read, write, cancel):
        assert response.status_code == 403
        assert "data" not in response.json()


def test_unknown_consultation_is_404(client, admin_user):
    response = client.get("/api/consultations/does-not-exist", headers=auth_headers(admin_user))

    assert response.status_code == 404
    assert response.json()["detail"] == "Consulta no encontrada"


def test_update_with_no_fields_is_400(client, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)

    response = client.put(f"/api/consultations/{consultation.id}", json={}, headers=auth_headers(client_user))

    assert response.status_code == 400


def test_illegal_status_jump_is_409(client, admin_user, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)

    response = client.put(
        f"/api/consultations/{consultation.id}",
        json={"status": "completada"},
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 409


def test_create_missing_field_is_400(client, client_user, lawyer):
    response = client.post(
        "/api/consultations",
        json={"lawyer_id": lawyer.id, "title": "Sin descripción"},
        headers=auth_headers(client_user),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Campo requerido: description"


def test_list_is_paginated_and_counted(client, client_user, lawyer, make_consultation):
    for _ in range(3):
        make_consultation(client_user, lawyer)

    response = client.get("/api/consultations?limit=2", headers=auth_headers(client_user))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert len(body["data"]) == 2


def test_list_rejects_oversized_page(client, client_user):
    response = client.get("/api/consultations?limit=1000", headers=auth_headers(client_user))

    assert response.status_code == 422


def test_stats_route_is_not_shadowed_by_id_route(client, client_user, lawyer, make_consultation):
    make_consultation(client_user, lawyer)

    response = client.get("/api/consultations/stats", headers=auth_headers(client_user))

    assert response.status_code == 200
    assert response.json()["data"][0]["status"] == "pendiente"


def test_update_is_audited(client, db, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer, ConsultationStatus.ACCEPTED)
    headers = _lawyer_headers(db, lawyer)

    client.put(
        f"/api/consultations/{consultation.id}",
        json={"status": "en_proceso", "lawyer_notes": "Documentos recibidos"},
        headers=headers,
    )
    activity = client.get(f"/api/consultations/{consultation.id}/activity", headers=headers).json()["data"]

    assert len(activity) == 1
    entry = activity[0]
    assert entry["old_values"] == {"status": "aceptada", "lawyer_notes": None}
    assert entry["new_values"] == {"status": "en_proceso", "lawyer_notes": "Documentos recibidos"}
    assert "aceptada" in entry["action"] and "en_proceso" in entry["action"]
    assert entry["user_name"] == "Luis Hernández"


def test_update_without_audited_changes_writes_no_entry(client, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)
    headers = auth_headers(client_user)

    client.put(f"/api/consultations/{consultation.id}", json={"client_notes": "Llamar por la tarde"}, headers=headers)
    activity = client.get(f"/api/consultations/{consultation.id}/activity", headers=headers).json()["data"]

    assert activity == []


def test_lifecycle_actions_are_audited_newest_first(client, db, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)
    headers = _lawyer_headers(db, lawyer)

    client.post(f"/api/consultations/{consultation.id}/accept", json={"estimated_price": 150}, headers=headers)
    client.post(f"/api/consultations/{consultation.id}/cancel", headers=headers)
    activity = client.get(f"/api/consultations/{consultation.id}/activity", headers=headers).json()["data"]

    assert [entry["action"] for entry in activity] == ["Consulta cancelada", "Consulta aceptada"]
    assert activity[0]["old_values"] == {"status": "aceptada"}
    assert activity[1]["new_values"]["estimated_price"] == 150


def test_activity_follows_record_visibility(client, client_user, outsider, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer)

    response = client.get(f"/api/consultations/{consultation.id}/activity", headers=auth_headers(outsider))

    assert response.status_code == 403


def test_admin_can_move_work_forward(client, admin_user, client_user, lawyer, make_consultation):
    consultation = make_consultation(client_user, lawyer, ConsultationStatus.ACCEPTED)

    response = client.put(
        f"/api/consultations/{consultation.id}",
        json={"status": "en_proceso"},
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "en_proceso"


def test_lawyer_cannot_create(client, db, lawyer):
    response = client.post(
        "/api/consultations",
        json={"lawyer_id": lawyer.id, "title": "T", "description": "D"},
        headers=_lawyer_headers(db, lawyer),
    )

    assert response.status_code == 403


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_token_with_unknown_role_is_rejected(client, make_user):
    user = make_user(UserRole.CLIENT)

    token = create_access_token(user.id, user.email, "superusuario")
    response = client.get("/api/consultations", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
