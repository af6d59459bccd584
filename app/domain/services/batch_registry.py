"""Batch Registry: batch identity, quantities and the status state machine."""

import logging
from datetime import date
from typing import List
from uuid import UUID

from sqlmodel import Session

from app.domain.exceptions import (
    InsufficientQuantityError,
    InvalidTransitionError,
    ValidationError,
)
from app.domain.models import Batch, Warehouse
from app.domain.services.transaction import atomic
from app.domain.value_objects import BatchStatus, Quantity, ScanCode
from app.events import ChangeEventBus, event_bus
from app.repositories.batch_repository import BatchRepository
from app.repositories.reference_repository import ReferenceRepository

logger = logging.getLogger(__name__)


class BatchRegistry:
    """
    Owner of every write to a batch row.

    ``create_batch`` is a complete transaction. ``advance_status`` and
    ``decrement_remaining`` are building blocks for the Dispatch Tracker and
    Administration Recorder: they take a batch from ``lock_batch``, run
    inside the caller's transaction and never commit.
    """

    def __init__(self, session: Session, events: ChangeEventBus | None = None):
        self.session = session
        self.repository = BatchRepository(session)
        self.references = ReferenceRepository(session)
        self.events = events or event_bus

    def create_batch(
        self,
        medication_name: str,
        quantity: int,
        manufacturing_date: date,
        expiry_date: date,
        warehouse_id: UUID,
        scan_code: str,
        created_by: UUID,
    ) -> Batch:
        """
        Register a new batch at a warehouse.

        Returns:
            Batch with status ``created`` and remaining equal to quantity

        Raises:
            ValidationError: Bad quantity, dates, blank fields or duplicate scan code
            NotFoundError: Warehouse is not registered
        """
        batch = Batch.create(
            medication_name=medication_name,
            quantity=quantity,
            manufacturing_date=manufacturing_date,
            expiry_date=expiry_date,
            warehouse_id=warehouse_id,
            scan_code=scan_code,
            created_by=created_by,
        )

        with atomic(self.session, "batch", batch.id):
            self.references.get(Warehouse, warehouse_id)
            if self.repository.find_by_scan_code(batch.scan_code) is not None:
                raise ValidationError(
                    f"Scan code '{batch.scan_code}' is already registered",
                    field="scan_code",
                )
            self.repository.add(batch)

        logger.info(
            "Batch created",
            extra={
                "ledger_event": {
                    "batch_id": str(batch.id),
                    "medication": batch.medication_name,
                    "quantity": batch.quantity,
                    "warehouse_id": str(warehouse_id),
                }
            },
        )
        self.events.publish("batch", "insert", batch.id)
        return batch

    def get_batch(self, batch_id: UUID) -> Batch:
        return self.repository.get_by_id(batch_id)

    def find_by_scan_code(self, scan_code: str) -> Batch | None:
        return self.repository.find_by_scan_code(ScanCode(scan_code).value.strip())

    def list_batches(
        self,
        warehouse_id: UUID | None = None,
        status: BatchStatus | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Batch]:
        return self.repository.list_batches(
            warehouse_id=warehouse_id, status=status, skip=skip, limit=limit
        )

    # ------------------------------------------------------------------ #
    # Transaction building blocks                                          #
    # ------------------------------------------------------------------ #

    def lock_batch(self, batch_id: UUID) -> Batch:
        """Load a batch for change; pass the result to the writers below."""
        return self.repository.lock_by_id(batch_id)

    def advance_status(self, batch: Batch, new_status: BatchStatus) -> Batch:
        """
        Move a locked batch to the immediate successor status.

        The write is guarded by the version ``batch`` was loaded with.

        Raises:
            InvalidTransitionError: ``new_status`` is not the next status
            ConcurrencyConflictError: Batch changed since it was loaded
        """
        current = BatchStatus(batch.status)
        if not current.can_advance_to(new_status):
            raise InvalidTransitionError("batch", batch.id, current.value, new_status.value)
        return self.repository.compare_and_set(batch, status=new_status)

    def decrement_remaining(self, batch: Batch, amount: int) -> Batch:
        """
        Consume ``amount`` units from a locked batch's remaining quantity.

        Raises:
            ValidationError: Non-positive amount
            InsufficientQuantityError: ``amount`` exceeds remaining
            ConcurrencyConflictError: Batch changed since it was loaded
        """
        units = Quantity(amount).units
        if units > batch.remaining_quantity:
            raise InsufficientQuantityError(batch.id, batch.remaining_quantity, units)
        return self.repository.compare_and_set(
            batch, remaining_quantity=batch.remaining_quantity - units
        )

