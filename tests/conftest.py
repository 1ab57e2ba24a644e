import os

# Point the app at a throwaway in-memory database before anything imports it
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import uuid
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from lexconnect.auth import Principal, create_access_token
from lexconnect.database import Base, SessionLocal, engine
from lexconnect.main import app
from lexconnect.models import (
    Consultation,
    ConsultationStatus,
    LawyerProfile,
    LawyerService,
    User,
    UserRole,
)


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    # Not used as a context manager: the lifespan would dispose the shared in-memory engine
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make(role: UserRole = UserRole.CLIENT, first_name: str = "Ana", last_name: str = "García") -> User:
        user = User(
            email=f"{role.value}-{uuid.uuid4().hex[:8]}@example.com",
            first_name=first_name,
            last_name=last_name,
            role=role.value,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_lawyer(db, make_user):
    def _make(first_name: str = "Luis", last_name: str = "Hernández") -> LawyerProfile:
        user = make_user(UserRole.LAWYER, first_name, last_name)
        profile = LawyerProfile(
            user_id=user.id,
            license_number=f"CED-{uuid.uuid4().hex[:6]}",
            consultation_rate=Decimal("500.00"),
            is_verified=True,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return _make


@pytest.fixture
def client_user(make_user):
    return make_user(UserRole.CLIENT)


@pytest.fixture
def admin_user(make_user):
    return make_user(UserRole.ADMIN, "Admin", "LexConnect")


@pytest.fixture
def outsider(make_user):
    return make_user(UserRole.CLIENT, "Otro", "Cliente")


@pytest.fixture
def lawyer(make_lawyer):
    return make_lawyer()


@pytest.fixture
def legal_service(db, lawyer):
    service = LawyerService(
        lawyer_id=lawyer.id,
        title="Revisión de contratos",
        service_type="consulta",
        price=Decimal("300.00"),
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture
def make_consultation(db):
    def _make(client: User, lawyer: LawyerProfile, status: ConsultationStatus = ConsultationStatus.PENDING, **data):
        consultation = Consultation(
            client_id=client.id,
            lawyer_id=lawyer.id,
            title=data.pop("title", "Asesoría laboral"),
            description=data.pop("description", "Despido injustificado"),
            status=status.value,
            **data,
        )
        db.add(consultation)
        db.commit()
        db.refresh(consultation)
        return consultation

    return _make


def principal_for(user: User) -> Principal:
    return Principal(user_id=user.id, role=UserRole(user.role), email=user.email)


def auth_headers(user: User) -> dict:
    token = create_access_token(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {token}"}
