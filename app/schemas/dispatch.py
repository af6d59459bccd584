"""Pydantic schemas for dispatch API requests and responses."""

from uuid import UUID

from pydantic import BaseModel, Field

from app.domain.value_objects import DispatchStatus
from app.schemas.common import UtcDatetime


class DispatchCreateRequest(BaseModel):
    """Request schema for sending a batch to a hospital."""

    batch_id: UUID
    warehouse_id: UUID = Field(description="Warehouse currently holding the batch")
    hospital_id: UUID = Field(description="Destination hospital")
    quantity: int = Field(gt=0)


class ScanReceiptRequest(BaseModel):
    """Request schema for confirming receipt from a scanned code."""

    code: str = Field(
        min_length=1,
        max_length=500,
        description="Decoded barcode/QR/OCR string",
    )


class DispatchResponse(BaseModel):
    """Response schema for a dispatch."""

    id: UUID
    batch_id: UUID
    quantity: int
    from_warehouse_id: UUID
    to_hospital_id: UUID
    status: DispatchStatus
    dispatched_by: UUID
    received_by: UUID | None
    dispatched_at: UtcDatetime
    received_at: UtcDatetime | None

    model_config = {"from_attributes": True}


class DispatchListResponse(BaseModel):
    dispatches: list[DispatchResponse]
    total: int
