"""Pydantic schemas for derived ledger views."""

from uuid import UUID

from pydantic import BaseModel

from app.domain.value_objects import BatchStatus
from app.schemas.common import UtcDatetime


class AuditEventResponse(BaseModel):
    """One entry of a batch's custody timeline."""

    kind: BatchStatus
    occurred_at: UtcDatetime
    actor_id: UUID | None
    quantity: int
    reference_id: UUID
    details: dict[str, str]

    model_config = {"from_attributes": True}


class AuditTrailResponse(BaseModel):
    batch_id: UUID
    events: list[AuditEventResponse]


class LedgerSummaryResponse(BaseModel):
    total_batches: int
    total_dispatches: int
    pending_deliveries: int
    total_patients: int
    total_usage_records: int
    units_remaining: int

    model_config = {"from_attributes": True}
