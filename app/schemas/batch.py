"""Pydantic schemas for batch API requests and responses."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field

from app.domain.value_objects import BatchStatus
from app.schemas.common import UtcDatetime


class BatchCreateRequest(BaseModel):
    """Request schema for registering a batch at a warehouse."""

    medication_name: str = Field(
        min_length=1,
        max_length=200,
        examples=["Paracetamol 500mg"],
    )
    quantity: int = Field(gt=0, description="Total units in the batch")
    manufacturing_date: date
    expiry_date: date = Field(description="Must not precede manufacturing_date")
    warehouse_id: UUID
    scan_code: str = Field(
        min_length=1,
        max_length=200,
        description="Barcode/QR payload printed on the batch",
        examples=["QR1733300000000"],
    )


class BatchResponse(BaseModel):
    """Response schema for batch details."""

    id: UUID
    medication_name: str
    quantity: int
    remaining_quantity: int
    manufacturing_date: date
    expiry_date: date
    scan_code: str
    status: BatchStatus
    warehouse_id: UUID
    created_by: UUID
    version: int
    created_at: UtcDatetime
    updated_at: UtcDatetime

    model_config = {"from_attributes": True}


class BatchListResponse(BaseModel):
    """Response schema for batch list."""

    batches: list[BatchResponse]
    total: int
