"""Pydantic schemas for warehouses, hospitals and patients."""

from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import UtcDatetime


class WarehouseCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    location: str = Field(default="", max_length=300)


class WarehouseResponse(BaseModel):
    id: UUID
    name: str
    location: str
    created_at: UtcDatetime

    model_config = {"from_attributes": True}


class HospitalCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    location: str = Field(default="", max_length=300)
    capacity: int = Field(default=0, ge=0, description="Bed capacity")


class HospitalResponse(BaseModel):
    id: UUID
    name: str
    location: str
    capacity: int
    created_at: UtcDatetime

    model_config = {"from_attributes": True}


class PatientCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    age: int = Field(ge=0, le=150)
    hospital_id: UUID
    medical_record: str = Field(default="", max_length=100)


class PatientResponse(BaseModel):
    id: UUID
    name: str
    age: int
    hospital_id: UUID
    medical_record: str
    created_at: UtcDatetime

    model_config = {"from_attributes": True}
