"""Query service: loads ledger rows and hands them to the pure projections."""

from datetime import date
from typing import List
from uuid import UUID

from sqlmodel import Session

from app.domain import projections
from app.domain.models import Batch, Dispatch, utcnow
from app.domain.projections import AuditEvent, LedgerSummary
from app.domain.value_objects import DispatchStatus
from app.repositories.batch_repository import BatchRepository
from app.repositories.dispatch_repository import DispatchRepository
from app.repositories.reference_repository import ReferenceRepository
from app.repositories.usage_repository import UsageRepository


class LedgerQueryService:
    """Read-side entry point; holds no state of its own."""

    def __init__(self, session: Session):
        self.batches = BatchRepository(session)
        self.dispatches = DispatchRepository(session)
        self.usage = UsageRepository(session)
        self.references = ReferenceRepository(session)

    def _hospital_stock(self, hospital_id: UUID) -> tuple[List[Batch], List[Dispatch]]:
        receipts = self.dispatches.list_dispatches(
            hospital_id=hospital_id, status=DispatchStatus.RECEIVED
        )
        return self.batches.list_by_ids({d.batch_id for d in receipts}), receipts

    def available_batches(
        self,
        warehouse_id: UUID | None = None,
        hospital_id: UUID | None = None,
    ) -> List[Batch]:
        if hospital_id is not None and warehouse_id is None:
            batches, dispatches = self._hospital_stock(hospital_id)
        else:
            batches = self.batches.list_all()
            dispatches = self.dispatches.list_dispatches(status=DispatchStatus.RECEIVED)
        return projections.available_batches(
            batches, dispatches, warehouse_id=warehouse_id, hospital_id=hospital_id
        )

    def administrable_batches(self, hospital_id: UUID | None = None) -> List[Batch]:
        if hospital_id is not None:
            batches, dispatches = self._hospital_stock(hospital_id)
        else:
            batches = self.batches.list_all()
            dispatches = self.dispatches.list_dispatches(status=DispatchStatus.RECEIVED)
        return projections.administrable_batches(batches, dispatches, hospital_id=hospital_id)

    def pending_deliveries(self, hospital_id: UUID | None = None) -> List[Dispatch]:
        return projections.pending_deliveries(
            self.dispatches.list_dispatches(hospital_id=hospital_id)
        )

    def audit_trail(self, batch_id: UUID) -> List[AuditEvent]:
        batch = self.batches.get_by_id(batch_id)
        return projections.audit_trail(
            batch,
            self.dispatches.list_dispatches(batch_id=batch_id),
            self.usage.list_usage(batch_id=batch_id),
        )

    def near_expiry(self, n_days: int, today: date | None = None) -> List[Batch]:
        return projections.near_expiry(
            self.batches.list_all(), n_days=n_days, today=today or utcnow().date()
        )

    def summary(self) -> LedgerSummary:
        return projections.ledger_summary(
            self.batches.list_all(),
            self.dispatches.list_dispatches(),
            self.usage.list_usage(),
            patient_count=self.references.count_patients(),
        )
