"""Pydantic schemas for administration (usage) requests and responses."""

from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import UtcDatetime


class UsageCreateRequest(BaseModel):
    """Request schema for administering units of a batch to a patient."""

    batch_id: UUID
    patient_id: UUID
    quantity: int = Field(gt=0, description="Units administered")
    notes: str | None = Field(default=None, max_length=1000)


class UsageRecordResponse(BaseModel):
    """Response schema for a usage record."""

    id: UUID
    batch_id: UUID
    patient_id: UUID
    clinician_id: UUID
    hospital_id: UUID
    quantity: int
    notes: str | None
    administered_at: UtcDatetime

    model_config = {"from_attributes": True}


class UsageListResponse(BaseModel):
    usage_records: list[UsageRecordResponse]
    total: int
