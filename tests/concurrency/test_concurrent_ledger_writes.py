"""Concurrency tests for ledger writes.

Each worker thread gets its own Session and connection, so these run against
a file-backed SQLite database by default. Set TEST_DATABASE_URL to a
PostgreSQL database to also exercise the row-lock path.
"""

import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest
from sqlmodel import Session, SQLModel

from app.config import settings
from app.database import build_engine
from app.domain.exceptions import (
    AlreadyReceivedError,
    BatchNotAvailableError,
    CustodyLedgerError,
    InsufficientQuantityError,
)
from app.domain.models import Dispatch
from app.domain.projections import conservation_holds
from app.domain.services.administration_recorder import AdministrationRecorder
from app.domain.services.batch_registry import BatchRegistry
from app.domain.services.dispatch_tracker import DispatchTracker
from app.domain.services.reference_directory import ReferenceDirectory
from app.domain.value_objects import BatchStatus
from app.repositories.reference_repository import ReferenceRepository

POSTGRES_TEST_URL = settings.test_database_url


@pytest.fixture(name="engine", params=["sqlite", "postgresql"])
def engine_fixture(request, tmp_path):
    """A shared engine that hands each thread its own connection."""
    if request.param == "postgresql":
        if not POSTGRES_TEST_URL:
            pytest.skip("PostgreSQL concurrency run requires TEST_DATABASE_URL")
        engine = build_engine(POSTGRES_TEST_URL)
    else:
        engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")

    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="sites")
def sites_fixture(engine) -> dict:
    """Seed a warehouse, a hospital and ten patients registered there."""
    with Session(engine) as session:
        directory = ReferenceDirectory(session)
        warehouse = directory.register_warehouse("Central Store")
        hospital = directory.register_hospital("Kenyatta General")
        patients = [
            directory.register_patient(f"Patient {i}", 30 + i, hospital.id).id for i in range(10)
        ]
        return {"warehouse_id": warehouse.id, "hospital_id": hospital.id, "patients": patients}


def register_batch(session: Session, sites: dict, quantity: int):
    return BatchRegistry(session).create_batch(
        medication_name="Paracetamol 500mg",
        quantity=quantity,
        manufacturing_date=date(2026, 1, 1),
        expiry_date=date(2028, 1, 1),
        warehouse_id=sites["warehouse_id"],
        scan_code=f"QR-{uuid.uuid4().hex[:12]}",
        created_by=uuid.uuid4(),
    )


def dispatch_batch(session: Session, sites: dict, batch_id: uuid.UUID, quantity: int) -> Dispatch:
    return DispatchTracker(session).create_dispatch(
        batch_id=batch_id,
        warehouse_id=sites["warehouse_id"],
        hospital_id=sites["hospital_id"],
        quantity=quantity,
        dispatched_by=uuid.uuid4(),
    )


@pytest.fixture(name="ledger")
def ledger_fixture(engine, sites) -> dict:
    """A 600-unit batch with a pending dispatch of all of it."""
    with Session(engine) as session:
        batch = register_batch(session, sites, 600)
        dispatch = dispatch_batch(session, sites, batch.id, 600)
        return {"batch_id": batch.id, "dispatch_id": dispatch.id, "patients": sites["patients"]}

def run_concurrently(engine, workers: int, task) -> list[object]:
    """Start ``workers`` calls of ``task(session, index)`` as close together as possible."""
    barrier = threading.Barrier(workers)

    def worker(index: int) -> object:
        with Session(engine) as session:
            barrier.wait()
            try:
                return task(session, index)
            except CustodyLedgerError as e:
                return e

    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(worker, range(workers)))


def receive(engine, ledger) -> None:
    with Session(engine) as session:
        DispatchTracker(session).confirm_receipt(ledger["dispatch_id"], received_by=uuid.uuid4())


def test_concurrent_receipts_confirm_once(engine, ledger):
    """Two hospitals scanning the same delivery: exactly one receipt lands."""
    outcomes = run_concurrently(
        engine,
        2,
        lambda session, _: DispatchTracker(session).confirm_receipt(
            ledger["dispatch_id"], received_by=uuid.uuid4()
        ),
    )

    failures = [o for o in outcomes if isinstance(o, AlreadyReceivedError)]
    assert len(failures) == 1

    with Session(engine) as session:
        batch = BatchRegistry(session).get_batch(ledger["batch_id"])
        assert batch.status == BatchStatus.RECEIVED
        assert batch.version == 3


def test_competing_usage_never_partially_decrements(engine, ledger):
    """
    Two clinicians draw 500 units from a batch with 600 remaining.

    Exactly one succeeds; the other fails outright and remaining ends at 100.
    """
    receive(engine, ledger)

    outcomes = run_concurrently(
        engine,
        2,
        lambda session, i: AdministrationRecorder(session).record_usage(
            ledger["batch_id"], ledger["patients"][i], uuid.uuid4(), 500
        ),
    )

    failures = [o for o in outcomes if isinstance(o, InsufficientQuantityError)]
    assert len(failures) == 1

    with Session(engine) as session:
        batch = BatchRegistry(session).get_batch(ledger["batch_id"])
        records = AdministrationRecorder(session).list_usage(batch_id=batch.id)
        assert batch.remaining_quantity == 100
        assert len(records) == 1
        assert conservation_holds(batch, records)


def test_no_lost_updates(engine, ledger):
    """Every concurrent administration that fits is recorded and counted."""
    receive(engine, ledger)

    outcomes = run_concurrently(
        engine,
        8,
        lambda session, i: AdministrationRecorder(session).record_usage(
            ledger["batch_id"], ledger["patients"][i], uuid.uuid4(), 25
        ),
    )

    assert not [o for o in outcomes if isinstance(o, Exception)]

    with Session(engine) as session:
        batch = BatchRegistry(session).get_batch(ledger["batch_id"])
        records = AdministrationRecorder(session).list_usage(batch_id=batch.id)
        assert batch.remaining_quantity == 600 - 8 * 25
        assert len(records) == 8
        assert conservation_holds(batch, records)


def test_concurrent_dispatches_of_one_batch(engine, sites):
    """Five clerks dispatch the same batch: one wins, the rest see it gone."""
    with Session(engine) as session:
        batch_id = register_batch(session, sites, 1000).id

    outcomes = run_concurrently(
        engine, 5, lambda session, _: dispatch_batch(session, sites, batch_id, 100)
    )

    dispatched = [o for o in outcomes if isinstance(o, Dispatch)]
    assert len(dispatched) == 1
    assert [type(o) for o in outcomes if not isinstance(o, Dispatch)] == [BatchNotAvailableError] * 4

    with Session(engine) as session:
        batch = BatchRegistry(session).get_batch(batch_id)
        assert batch.status == BatchStatus.DISPATCHED
        assert batch.version == 2
        assert len(DispatchTracker(session).list_dispatches(batch_id=batch_id)) == 1


def test_received_cap_holds_when_a_writer_stalls(engine, sites, monkeypatch):
    """
    Half of a 1000-unit batch is received; two clinicians each draw 300.

    The first stalls after passing its quantity check. The second must not
    slip in under it: administered never exceeds the 500 received.
    """
    with Session(engine) as session:
        batch_id = register_batch(session, sites, 1000).id
        dispatch_id = dispatch_batch(session, sites, batch_id, 500).id
        DispatchTracker(session).confirm_receipt(dispatch_id, received_by=uuid.uuid4())

    slow_patient, fast_patient = sites["patients"][:2]
    original_get = ReferenceRepository.get

    def stalling_get(self, model, entity_id):
        if entity_id == slow_patient:
            time.sleep(0.5)
        return original_get(self, model, entity_id)

    monkeypatch.setattr(ReferenceRepository, "get", stalling_get)

    def administer(session, index):
        if index == 1:
            time.sleep(0.1)
        patient = slow_patient if index == 0 else fast_patient
        return AdministrationRecorder(session).record_usage(batch_id, patient, uuid.uuid4(), 300)

    outcomes = run_concurrently(engine, 2, administer)

    assert isinstance(outcomes[1], InsufficientQuantityError)
    assert outcomes[1].available == 200

    with Session(engine) as session:
        batch = BatchRegistry(session).get_batch(batch_id)
        records = AdministrationRecorder(session).list_usage(batch_id=batch_id)
        assert sum(r.quantity for r in records) == 300
        assert batch.remaining_quantity == 700
        assert conservation_holds(batch, records)
