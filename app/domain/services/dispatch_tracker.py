"""Dispatch Tracker: movement of batches from warehouses to hospitals."""

import logging
from typing import List
from uuid import UUID

from sqlmodel import Session

from app.domain.exceptions import (
    AlreadyReceivedError,
    BatchNotAvailableError,
    InsufficientQuantityError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.domain.models import Dispatch, Hospital, utcnow
from app.domain.services.batch_registry import BatchRegistry
from app.domain.services.transaction import atomic, run_with_retry
from app.domain.value_objects import (
    OPEN_DISPATCH_STATUSES,
    BatchStatus,
    DispatchStatus,
    Quantity,
    ScanCode,
)
from app.events import ChangeEventBus, event_bus
from app.repositories.dispatch_repository import DispatchRepository
from app.repositories.reference_repository import ReferenceRepository

logger = logging.getLogger(__name__)


class DispatchTracker:
    """Creates dispatches, moves them through transit and confirms receipt."""

    def __init__(self, session: Session, events: ChangeEventBus | None = None):
        self.session = session
        self.events = events or event_bus
        self.repository = DispatchRepository(session)
        self.references = ReferenceRepository(session)
        self.registry = BatchRegistry(session, events=self.events)

    def create_dispatch(
        self,
        batch_id: UUID,
        warehouse_id: UUID,
        hospital_id: UUID,
        quantity: int,
        dispatched_by: UUID,
    ) -> Dispatch:
        """
        Send a batch from its warehouse to a hospital.

        Raises:
            ValidationError: Non-positive quantity or wrong source warehouse
            NotFoundError: Batch or hospital doesn't exist
            BatchNotAvailableError: Batch already left ``created``
            InsufficientQuantityError: Quantity exceeds the batch's remaining
        """
        units = Quantity(quantity).units

        def _create() -> Dispatch:
            with atomic(self.session, "batch", batch_id):
                batch = self.registry.lock_batch(batch_id)
                if batch.status != BatchStatus.CREATED:
                    raise BatchNotAvailableError(batch_id, BatchStatus(batch.status).value)
                if batch.warehouse_id != warehouse_id:
                    raise ValidationError(
                        f"Batch {batch_id} is not held by warehouse {warehouse_id}",
                        field="warehouse_id",
                    )
                self.references.get(Hospital, hospital_id)
                if units > batch.remaining_quantity:
                    raise InsufficientQuantityError(batch_id, batch.remaining_quantity, units)

                dispatch = self.repository.add(
                    Dispatch(
                        batch_id=batch_id,
                        quantity=units,
                        from_warehouse_id=warehouse_id,
                        to_hospital_id=hospital_id,
                        status=DispatchStatus.PENDING,
                        dispatched_by=dispatched_by,
                    )
                )
                self.registry.advance_status(batch, BatchStatus.DISPATCHED)
            return dispatch

        dispatch = run_with_retry(_create)
        logger.info(
            "Batch dispatched",
            extra={
                "ledger_event": {
                    "dispatch_id": str(dispatch.id),
                    "batch_id": str(batch_id),
                    "hospital_id": str(hospital_id),
                    "quantity": units,
                }
            },
        )
        self.events.publish("dispatch", "insert", dispatch.id)
        self.events.publish("batch", "update", batch_id)
        return dispatch

    def mark_in_transit(self, dispatch_id: UUID) -> Dispatch:
        """
        Record that a pending dispatch has left the warehouse.

        Raises:
            NotFoundError: Dispatch doesn't exist
            InvalidTransitionError: Dispatch is not pending
        """

        def _mark() -> Dispatch:
            with atomic(self.session, "dispatch", dispatch_id):
                dispatch = self.repository.lock_by_id(dispatch_id)
                current = DispatchStatus(dispatch.status)
                moved = current is DispatchStatus.PENDING and self.repository.transition(
                    dispatch,
                    from_statuses=(DispatchStatus.PENDING,),
                    to_status=DispatchStatus.IN_TRANSIT,
                )
                if not moved:
                    raise InvalidTransitionError(
                        "dispatch",
                        dispatch_id,
                        DispatchStatus(dispatch.status).value,
                        DispatchStatus.IN_TRANSIT.value,
                    )
            return dispatch

        dispatch = run_with_retry(_mark)
        logger.info("Dispatch in transit", extra={"ledger_event": {"dispatch_id": str(dispatch_id)}})
        self.events.publish("dispatch", "update", dispatch_id)
        return dispatch

    def confirm_receipt(self, dispatch_id: UUID, received_by: UUID) -> Dispatch:
        """
        Confirm a hospital has received a dispatch. Succeeds at most once.

        Raises:
            NotFoundError: Dispatch doesn't exist
            AlreadyReceivedError: Receipt was already confirmed
        """
        batch_ids: list[UUID] = []

        def _confirm() -> Dispatch:
            with atomic(self.session, "dispatch", dispatch_id):
                dispatch = self.repository.lock_by_id(dispatch_id)
                if dispatch.status == DispatchStatus.RECEIVED:
                    raise AlreadyReceivedError(dispatch_id)
                moved = self.repository.transition(
                    dispatch,
                    from_statuses=OPEN_DISPATCH_STATUSES,
                    to_status=DispatchStatus.RECEIVED,
                    received_by=received_by,
                    received_at=utcnow(),
                )
                if not moved:
                    raise AlreadyReceivedError(dispatch_id)
                batch = self.registry.lock_batch(dispatch.batch_id)
                self.registry.advance_status(batch, BatchStatus.RECEIVED)
                batch_ids.append(dispatch.batch_id)
            return dispatch

        dispatch = run_with_retry(_confirm)
        logger.info(
            "Dispatch received",
            extra={
                "ledger_event": {
                    "dispatch_id": str(dispatch_id),
                    "received_by": str(received_by),
                }
            },
        )
        self.events.publish("dispatch", "update", dispatch_id)
        self.events.publish("batch", "update", batch_ids[-1])
        return dispatch

    def resolve_scan(self, code: str) -> Dispatch:
        """
        Resolve a decoded scanner string to the dispatch it should credit.

        An exact scan-code match wins and returns that batch's latest
        dispatch whatever its state, so re-scanning a received batch
        surfaces as AlreadyReceivedError on confirmation. Otherwise the
        normalized form is compared against batches with an open dispatch
        only.

        Raises:
            ValidationError: Blank code, or the fallback matched several batches
            NotFoundError: Nothing matched
        """
        scan = ScanCode(code)

        batch = self.registry.find_by_scan_code(scan.value)
        if batch is not None:
            dispatch = self.repository.latest_for_batch(batch.id)
            if dispatch is None:
                raise NotFoundError("dispatch", f"for batch {batch.scan_code}")
            return dispatch

        candidates = [
            dispatch
            for dispatch, open_batch in self.repository.list_open_with_batches()
            if scan.loosely_matches(open_batch.scan_code)
        ]
        if not candidates:
            raise NotFoundError("batch", f"with scan code '{scan.value}'")
        if len(candidates) > 1:
            raise ValidationError(
                f"Scan code '{scan.value}' matches {len(candidates)} pending deliveries",
                field="code",
            )
        logger.info(
            "Scan resolved by normalized match",
            extra={"ledger_event": {"code": scan.value, "dispatch_id": str(candidates[0].id)}},
        )
        return candidates[0]

    def confirm_receipt_by_scan(self, code: str, received_by: UUID) -> Dispatch:
        dispatch = self.resolve_scan(code)
        return self.confirm_receipt(dispatch.id, received_by)

    def get_dispatch(self, dispatch_id: UUID) -> Dispatch:
        return self.repository.get_by_id(dispatch_id)

    def list_dispatches(
        self,
        batch_id: UUID | None = None,
        hospital_id: UUID | None = None,
    ) -> List[Dispatch]:
        return self.repository.list_dispatches(batch_id=batch_id, hospital_id=hospital_id)
