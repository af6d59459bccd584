"""Administration Recorder: consumption of received stock against patients."""

import logging
from typing import List
from uuid import UUID

from sqlmodel import Session

from app.domain.exceptions import (
    BatchNotReceivedError,
    InsufficientQuantityError,
    ValidationError,
)
from app.domain.models import Patient, UsageRecord
from app.domain.services.batch_registry import BatchRegistry
from app.domain.services.transaction import atomic, run_with_retry
from app.domain.value_objects import BatchStatus, DispatchStatus, Quantity
from app.events import ChangeEventBus, event_bus
from app.repositories.dispatch_repository import DispatchRepository
from app.repositories.reference_repository import ReferenceRepository
from app.repositories.usage_repository import UsageRepository

logger = logging.getLogger(__name__)

_ADMINISTRABLE_STATUSES = (BatchStatus.RECEIVED, BatchStatus.ADMINISTERED)


class AdministrationRecorder:
    """Monotonic consumption ledger; usage records are never changed once written."""

    def __init__(self, session: Session, events: ChangeEventBus | None = None):
        self.session = session
        self.events = events or event_bus
        self.repository = UsageRepository(session)
        self.dispatches = DispatchRepository(session)
        self.references = ReferenceRepository(session)
        self.registry = BatchRegistry(session, events=self.events)

    def record_usage(
        self,
        batch_id: UUID,
        patient_id: UUID,
        clinician_id: UUID,
        quantity: int,
        notes: str | None = None,
    ) -> UsageRecord:
        """
        Administer units from a received batch to a patient.

        The first administration moves the batch to ``administered``; later
        ones only decrement remaining quantity.

        Raises:
            ValidationError: Non-positive quantity, or patient registered elsewhere
            NotFoundError: Batch or patient doesn't exist
            BatchNotReceivedError: No hospital has received the batch
            InsufficientQuantityError: Quantity exceeds what was received and remains
            ConcurrencyConflictError: Retries exhausted under contention
        """
        units = Quantity(quantity).units
        cleaned_notes = notes.strip() if notes and notes.strip() else None

        def _record() -> UsageRecord:
            with atomic(self.session, "batch", batch_id):
                batch = self.registry.lock_batch(batch_id)
                status = BatchStatus(batch.status)
                if status not in _ADMINISTRABLE_STATUSES:
                    raise BatchNotReceivedError(batch_id, status.value)

                receipts = self.dispatches.list_dispatches(
                    batch_id=batch_id, status=DispatchStatus.RECEIVED
                )
                if not receipts:
                    raise BatchNotReceivedError(batch_id, status.value)

                received = sum(receipt.quantity for receipt in receipts)
                administrable = min(
                    batch.remaining_quantity,
                    received - batch.administered_quantity,
                )
                if units > administrable:
                    raise InsufficientQuantityError(batch_id, max(administrable, 0), units)

                hospital_id = receipts[-1].to_hospital_id
                patient = self.references.get(Patient, patient_id)
                if patient.hospital_id != hospital_id:
                    raise ValidationError(
                        f"Patient {patient_id} is not registered at hospital {hospital_id}",
                        field="patient_id",
                    )

                record = self.repository.add(
                    UsageRecord(
                        batch_id=batch_id,
                        patient_id=patient_id,
                        clinician_id=clinician_id,
                        hospital_id=hospital_id,
                        quantity=units,
                        notes=cleaned_notes,
                    )
                )
                self.registry.decrement_remaining(batch, units)
                if batch.status == BatchStatus.RECEIVED:
                    self.registry.advance_status(batch, BatchStatus.ADMINISTERED)
            return record

        record = run_with_retry(_record)
        logger.info(
            "Usage recorded",
            extra={
                "ledger_event": {
                    "usage_id": str(record.id),
                    "batch_id": str(batch_id),
                    "patient_id": str(patient_id),
                    "quantity": units,
                }
            },
        )
        self.events.publish("usage_record", "insert", record.id)
        self.events.publish("batch", "update", batch_id)
        return record

    def list_usage(
        self,
        batch_id: UUID | None = None,
        patient_id: UUID | None = None,
        hospital_id: UUID | None = None,
    ) -> List[UsageRecord]:
        return self.repository.list_usage(
            batch_id=batch_id, patient_id=patient_id, hospital_id=hospital_id
        )
