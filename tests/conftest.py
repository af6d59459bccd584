"""Pytest fixtures for testing."""

import uuid
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from app.database import get_session
from app.domain.models import Batch, Hospital, Patient, Warehouse
from app.domain.services.batch_registry import BatchRegistry
from app.domain.services.reference_directory import ReferenceDirectory
from app.events import ChangeEvent, ChangeEventBus
from app.main import app


WAREHOUSE_ACTOR = uuid.UUID("00000000-0000-0000-0000-00000000000a")
HOSPITAL_ACTOR = uuid.UUID("00000000-0000-0000-0000-00000000000b")
CLINICIAN_ACTOR = uuid.UUID("00000000-0000-0000-0000-00000000000c")
ADMIN_ACTOR = uuid.UUID("00000000-0000-0000-0000-00000000000d")


def actor_headers(actor_id: uuid.UUID, role: str) -> dict[str, str]:
    return {"X-Actor-ID": str(actor_id), "X-Actor-Role": role}


@pytest.fixture(name="session")
def session_fixture():
    """Create a fresh in-memory SQLite database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        yield session

    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create test client with overridden database session."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)

    yield client

    app.dependency_overrides.clear()


@pytest.fixture(name="events")
def events_fixture() -> tuple[ChangeEventBus, list[ChangeEvent]]:
    """A private event bus plus the list of everything published on it."""
    bus = ChangeEventBus()
    received: list[ChangeEvent] = []
    bus.subscribe(received.append)
    return bus, received


@pytest.fixture(name="warehouse")
def warehouse_fixture(session: Session) -> Warehouse:
    return ReferenceDirectory(session).register_warehouse("Central Store", "Nairobi")


@pytest.fixture(name="hospital")
def hospital_fixture(session: Session) -> Hospital:
    return ReferenceDirectory(session).register_hospital("Kenyatta General", "Nairobi", 400)


@pytest.fixture(name="other_hospital")
def other_hospital_fixture(session: Session) -> Hospital:
    return ReferenceDirectory(session).register_hospital("Coast General", "Mombasa", 250)


@pytest.fixture(name="patient")
def patient_fixture(session: Session, hospital: Hospital) -> Patient:
    return ReferenceDirectory(session).register_patient("Amina Otieno", 34, hospital.id, "MRN-001")


@pytest.fixture(name="second_patient")
def second_patient_fixture(session: Session, hospital: Hospital) -> Patient:
    return ReferenceDirectory(session).register_patient("Brian Mwangi", 58, hospital.id, "MRN-002")


@pytest.fixture(name="make_batch")
def make_batch_fixture(session: Session, warehouse: Warehouse):
    """Factory registering batches at the default warehouse."""

    def _make(
        scan_code: str = "QR1733300000000",
        quantity: int = 1000,
        medication_name: str = "Paracetamol 500mg",
        expiry_date: date = date(2028, 1, 1),
    ) -> Batch:
        return BatchRegistry(session).create_batch(
            medication_name=medication_name,
            quantity=quantity,
            manufacturing_date=date(2026, 1, 1),
            expiry_date=expiry_date,
            warehouse_id=warehouse.id,
            scan_code=scan_code,
            created_by=WAREHOUSE_ACTOR,
        )

    return _make


@pytest.fixture(name="auth")
def auth_fixture() -> dict[str, dict[str, str]]:
    """Identity headers per role, as forwarded by the identity provider."""
    return {
        "admin": actor_headers(ADMIN_ACTOR, "admin"),
        "warehouse": actor_headers(WAREHOUSE_ACTOR, "warehouse"),
        "hospital": actor_headers(HOSPITAL_ACTOR, "hospital"),
        "clinician": actor_headers(CLINICIAN_ACTOR, "clinician"),
        "unassigned": actor_headers(uuid.uuid4(), "unassigned"),
    }
