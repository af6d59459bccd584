"""Integration tests for the Administration Recorder against SQLite."""

import uuid

import pytest
from sqlmodel import Session

from app.domain.exceptions import (
    BatchNotReceivedError,
    InsufficientQuantityError,
    NotFoundError,
    ValidationError,
)
from app.domain.projections import conservation_holds
from app.domain.services.administration_recorder import AdministrationRecorder
from app.domain.services.batch_registry import BatchRegistry
from app.domain.services.dispatch_tracker import DispatchTracker
from app.domain.services.reference_directory import ReferenceDirectory
from app.domain.value_objects import BatchStatus


CLINICIAN = uuid.uuid4()


@pytest.fixture(name="received_batch")
def received_batch_fixture(session: Session, make_batch, warehouse, hospital):
    """A 1000-unit batch that has been dispatched to and received by ``hospital``."""
    batch = make_batch(quantity=1000)
    tracker = DispatchTracker(session)
    dispatch = tracker.create_dispatch(
        batch_id=batch.id,
        warehouse_id=warehouse.id,
        hospital_id=hospital.id,
        quantity=1000,
        dispatched_by=uuid.uuid4(),
    )
    tracker.confirm_receipt(dispatch.id, received_by=uuid.uuid4())
    return BatchRegistry(session).get_batch(batch.id)


@pytest.fixture(name="recorder")
def recorder_fixture(session: Session, events) -> AdministrationRecorder:
    bus, _ = events
    return AdministrationRecorder(session, events=bus)


class TestRecordUsage:
    """Tests for AdministrationRecorder.record_usage."""

    def test_first_use_marks_batch_administered(
        self, session: Session, recorder, received_batch, patient, hospital, events
    ):
        _, published = events

        record = recorder.record_usage(
            batch_id=received_batch.id,
            patient_id=patient.id,
            clinician_id=CLINICIAN,
            quantity=200,
            notes="  post-op  ",
        )

        batch = BatchRegistry(session).get_batch(received_batch.id)
        assert batch.remaining_quantity == 800
        assert batch.status == BatchStatus.ADMINISTERED
        assert record.hospital_id == hospital.id
        assert record.clinician_id == CLINICIAN
        assert record.notes == "post-op"
        assert [(e.entity, e.operation) for e in published] == [
            ("usage_record", "insert"),
            ("batch", "update"),
        ]

    def test_later_use_only_decrements(
        self, session: Session, recorder, received_batch, patient, second_patient
    ):
        recorder.record_usage(received_batch.id, patient.id, CLINICIAN, 200)
        recorder.record_usage(received_batch.id, second_patient.id, CLINICIAN, 300)

        batch = BatchRegistry(session).get_batch(received_batch.id)
        assert batch.remaining_quantity == 500
        assert batch.status == BatchStatus.ADMINISTERED
        assert conservation_holds(batch, recorder.list_usage(batch_id=batch.id))

    def test_usage_ceiling(self, session: Session, recorder, received_batch, patient, second_patient):
        recorder.record_usage(received_batch.id, patient.id, CLINICIAN, 200)

        with pytest.raises(InsufficientQuantityError) as exc_info:
            recorder.record_usage(received_batch.id, second_patient.id, CLINICIAN, 900)

        assert exc_info.value.available == 800
        assert BatchRegistry(session).get_batch(received_batch.id).remaining_quantity == 800
        assert len(recorder.list_usage(batch_id=received_batch.id)) == 1

    def test_can_use_up_entire_batch(self, session: Session, recorder, received_batch, patient):
        recorder.record_usage(received_batch.id, patient.id, CLINICIAN, 1000)
        assert BatchRegistry(session).get_batch(received_batch.id).remaining_quantity == 0

    def test_notes_blank_stored_as_none(self, recorder, received_batch, patient):
        record = recorder.record_usage(received_batch.id, patient.id, CLINICIAN, 1, notes="   ")
        assert record.notes is None

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity(self, recorder, received_batch, patient, quantity):
        with pytest.raises(ValidationError):
            recorder.record_usage(received_batch.id, patient.id, CLINICIAN, quantity)

    def test_unknown_patient(self, recorder, received_batch):
        with pytest.raises(NotFoundError, match="Patient"):
            recorder.record_usage(received_batch.id, uuid.uuid4(), CLINICIAN, 10)

    def test_patient_of_another_hospital(self, session: Session, recorder, received_batch, other_hospital):
        outsider = ReferenceDirectory(session).register_patient("Chao Wanjiru", 40, other_hospital.id)

        with pytest.raises(ValidationError, match="not registered at hospital"):
            recorder.record_usage(received_batch.id, outsider.id, CLINICIAN, 10)

    def test_unknown_batch(self, recorder, patient):
        with pytest.raises(NotFoundError):
            recorder.record_usage(uuid.uuid4(), patient.id, CLINICIAN, 10)


class TestUsageBeforeReceipt:
    """Stock may only be administered after a hospital received it."""

    def test_created_batch_rejected(self, recorder, make_batch, patient):
        batch = make_batch()
        with pytest.raises(BatchNotReceivedError, match="status=created"):
            recorder.record_usage(batch.id, patient.id, CLINICIAN, 10)

    def test_dispatched_batch_rejected(
        self, session: Session, recorder, make_batch, warehouse, hospital, patient
    ):
        batch = make_batch()
        DispatchTracker(session).create_dispatch(
            batch_id=batch.id,
            warehouse_id=warehouse.id,
            hospital_id=hospital.id,
            quantity=1000,
            dispatched_by=uuid.uuid4(),
        )

        with pytest.raises(BatchNotReceivedError, match="status=dispatched"):
            recorder.record_usage(batch.id, patient.id, CLINICIAN, 10)

        assert recorder.list_usage(batch_id=batch.id) == []


class TestPartialDispatch:
    def test_usage_capped_by_received_quantity(
        self, session: Session, recorder, make_batch, warehouse, hospital, patient
    ):
        """Units that never left the warehouse cannot be administered."""
        batch = make_batch(quantity=1000)
        tracker = DispatchTracker(session)
        dispatch = tracker.create_dispatch(
            batch_id=batch.id,
            warehouse_id=warehouse.id,
            hospital_id=hospital.id,
            quantity=300,
            dispatched_by=uuid.uuid4(),
        )
        tracker.confirm_receipt(dispatch.id, received_by=uuid.uuid4())

        recorder.record_usage(batch.id, patient.id, CLINICIAN, 250)
        with pytest.raises(InsufficientQuantityError) as exc_info:
            recorder.record_usage(batch.id, patient.id, CLINICIAN, 60)

        assert exc_info.value.available == 50
        assert BatchRegistry(session).get_batch(batch.id).remaining_quantity == 750


def test_list_usage_filters(recorder, received_batch, patient, second_patient):
    recorder.record_usage(received_batch.id, patient.id, CLINICIAN, 5)
    recorder.record_usage(received_batch.id, second_patient.id, CLINICIAN, 7)

    mine = recorder.list_usage(patient_id=patient.id)
    assert [r.quantity for r in mine] == [5]
    assert len(recorder.list_usage(batch_id=received_batch.id)) == 2
    assert len(recorder.list_usage(hospital_id=patient.hospital_id)) == 2
    assert recorder.list_usage(hospital_id=uuid.uuid4()) == []
