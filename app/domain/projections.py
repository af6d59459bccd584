"""Read-only views folded over batches, dispatches and usage records.

Every function here is pure: it takes already-loaded collections and
returns new values without touching the database or mutating its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Sequence
from uuid import UUID

from app.domain.exceptions import ValidationError
from app.domain.models import Batch, Dispatch, UsageRecord, as_utc
from app.domain.value_objects import BatchStatus, DispatchStatus

AVAILABLE_STATUSES = frozenset({BatchStatus.CREATED, BatchStatus.RECEIVED})
ADMINISTRABLE_STATUSES = frozenset({BatchStatus.RECEIVED, BatchStatus.ADMINISTERED})


@dataclass(frozen=True)
class Location:
    """Where a batch physically is: a warehouse, a hospital, or in transit."""

    kind: str
    id: UUID | None = None


IN_TRANSIT = Location(kind="in_transit")


@dataclass(frozen=True)
class AuditEvent:
    """One entry of a batch's custody timeline."""

    kind: BatchStatus
    occurred_at: datetime
    actor_id: UUID | None
    quantity: int
    reference_id: UUID
    details: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class LedgerSummary:
    total_batches: int
    total_dispatches: int
    pending_deliveries: int
    total_patients: int
    total_usage_records: int
    units_remaining: int


def _index_receipts(dispatches: Iterable[Dispatch]) -> dict[UUID, Dispatch]:
    """Latest received dispatch per batch."""
    receipts: dict[UUID, Dispatch] = {}
    for dispatch in dispatches:
        if dispatch.status != DispatchStatus.RECEIVED:
            continue
        current = receipts.get(dispatch.batch_id)
        if current is None or as_utc(dispatch.dispatched_at) >= as_utc(current.dispatched_at):
            receipts[dispatch.batch_id] = dispatch
    return receipts


def current_location(batch: Batch, receipt: Dispatch | None) -> Location:
    status = BatchStatus(batch.status)
    if status is BatchStatus.CREATED:
        return Location(kind="warehouse", id=batch.warehouse_id)
    if status is BatchStatus.DISPATCHED or receipt is None:
        return IN_TRANSIT
    return Location(kind="hospital", id=receipt.to_hospital_id)


def _scope(warehouse_id: UUID | None, hospital_id: UUID | None) -> Location | None:
    if warehouse_id is not None and hospital_id is not None:
        raise ValidationError("Filter by a warehouse or a hospital, not both")
    if warehouse_id is not None:
        return Location(kind="warehouse", id=warehouse_id)
    if hospital_id is not None:
        return Location(kind="hospital", id=hospital_id)
    return None


def _stock(
    batches: Sequence[Batch],
    dispatches: Sequence[Dispatch],
    statuses: frozenset[BatchStatus],
    scope: Location | None,
) -> list[Batch]:
    receipts = _index_receipts(dispatches)
    selected = []
    for batch in batches:
        if batch.remaining_quantity <= 0 or BatchStatus(batch.status) not in statuses:
            continue
        if scope is not None and current_location(batch, receipts.get(batch.id)) != scope:
            continue
        selected.append(batch)
    return selected


def available_batches(
    batches: Sequence[Batch],
    dispatches: Sequence[Dispatch],
    warehouse_id: UUID | None = None,
    hospital_id: UUID | None = None,
) -> list[Batch]:
    """Batches with stock left in ``created`` or ``received``, optionally at one location."""
    return _stock(batches, dispatches, AVAILABLE_STATUSES, _scope(warehouse_id, hospital_id))


def administrable_batches(
    batches: Sequence[Batch],
    dispatches: Sequence[Dispatch],
    hospital_id: UUID | None = None,
) -> list[Batch]:
    """Hospital stock clinicians can still draw on, including partly used batches."""
    return _stock(batches, dispatches, ADMINISTRABLE_STATUSES, _scope(None, hospital_id))


def pending_deliveries(
    dispatches: Sequence[Dispatch],
    hospital_id: UUID | None = None,
) -> list[Dispatch]:
    return [
        dispatch
        for dispatch in dispatches
        if DispatchStatus(dispatch.status).is_open
        and (hospital_id is None or dispatch.to_hospital_id == hospital_id)
    ]


def audit_trail(
    batch: Batch,
    dispatches: Sequence[Dispatch],
    usage_records: Sequence[UsageRecord],
) -> list[AuditEvent]:
    """
    Chronological custody timeline for one batch.

    Ordered by timestamp; equal timestamps fall back to lifecycle order
    (created, dispatched, received, administered) and then to the order the
    events were gathered, since ``sorted`` is stable.
    """
    events = [
        AuditEvent(
            kind=BatchStatus.CREATED,
            occurred_at=as_utc(batch.created_at),
            actor_id=batch.created_by,
            quantity=batch.quantity,
            reference_id=batch.id,
            details={"warehouse_id": str(batch.warehouse_id)},
        )
    ]

    for dispatch in dispatches:
        if dispatch.batch_id != batch.id:
            continue
        events.append(
            AuditEvent(
                kind=BatchStatus.DISPATCHED,
                occurred_at=as_utc(dispatch.dispatched_at),
                actor_id=dispatch.dispatched_by,
                quantity=dispatch.quantity,
                reference_id=dispatch.id,
                details={"hospital_id": str(dispatch.to_hospital_id)},
            )
        )
        if dispatch.status == DispatchStatus.RECEIVED and dispatch.received_at is not None:
            events.append(
                AuditEvent(
                    kind=BatchStatus.RECEIVED,
                    occurred_at=as_utc(dispatch.received_at),
                    actor_id=dispatch.received_by,
                    quantity=dispatch.quantity,
                    reference_id=dispatch.id,
                    details={"hospital_id": str(dispatch.to_hospital_id)},
                )
            )

    for record in usage_records:
        if record.batch_id != batch.id:
            continue
        details = {"patient_id": str(record.patient_id), "hospital_id": str(record.hospital_id)}
        if record.notes:
            details["notes"] = record.notes
        events.append(
            AuditEvent(
                kind=BatchStatus.ADMINISTERED,
                occurred_at=as_utc(record.administered_at),
                actor_id=record.clinician_id,
                quantity=record.quantity,
                reference_id=record.id,
                details=details,
            )
        )

    return sorted(events, key=lambda event: (event.occurred_at, event.kind.rank))


def near_expiry(
    batches: Sequence[Batch],
    n_days: int,
    today: date,
) -> list[Batch]:
    """Batches with stock left that expire within ``n_days`` of ``today``, soonest first."""
    threshold = today + timedelta(days=n_days)
    expiring = [
        batch
        for batch in batches
        if batch.remaining_quantity > 0 and batch.expiry_date <= threshold
    ]
    return sorted(expiring, key=lambda batch: batch.expiry_date)


def conservation_holds(batch: Batch, usage_records: Iterable[UsageRecord]) -> bool:
    """remaining + everything administered from the batch == total quantity."""
    administered = sum(r.quantity for r in usage_records if r.batch_id == batch.id)
    return batch.remaining_quantity + administered == batch.quantity


def ledger_summary(
    batches: Sequence[Batch],
    dispatches: Sequence[Dispatch],
    usage_records: Sequence[UsageRecord],
    patient_count: int,
) -> LedgerSummary:
    return LedgerSummary(
        total_batches=len(batches),
        total_dispatches=len(dispatches),
        pending_deliveries=len(pending_deliveries(dispatches)),
        total_patients=patient_count,
        total_usage_records=len(usage_records),
        units_remaining=sum(batch.remaining_quantity for batch in batches),
    )
