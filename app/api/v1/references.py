"""API endpoints for warehouses, hospitals and patients."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.api.v1.deps import Actor, Role, require_role
from app.api.v1.errors import to_http_exception
from app.database import get_session
from app.domain.exceptions import CustodyLedgerError
from app.domain.services.reference_directory import ReferenceDirectory
from app.schemas.reference import (
    HospitalCreateRequest,
    HospitalResponse,
    PatientCreateRequest,
    PatientResponse,
    WarehouseCreateRequest,
    WarehouseResponse,
)

router = APIRouter(tags=["references"])

AdminActor = Annotated[Actor, Depends(require_role(Role.ADMIN))]
SessionDep = Annotated[Session, Depends(get_session)]


@router.post("/warehouses/", response_model=WarehouseResponse, status_code=status.HTTP_201_CREATED)
def register_warehouse(
    data: WarehouseCreateRequest,
    session: SessionDep,
    actor: AdminActor,
) -> WarehouseResponse:
    try:
        warehouse = ReferenceDirectory(session).register_warehouse(data.name, data.location)
        return WarehouseResponse.model_validate(warehouse)
    except CustodyLedgerError as e:
        raise to_http_exception(e)


@router.get("/warehouses/", response_model=list[WarehouseResponse])
def list_warehouses(session: SessionDep) -> list[WarehouseResponse]:
    return [WarehouseResponse.model_validate(w) for w in ReferenceDirectory(session).list_warehouses()]


@router.get("/warehouses/{warehouse_id}", response_model=WarehouseResponse)
def get_warehouse(warehouse_id: UUID, session: SessionDep) -> WarehouseResponse:
    try:
        return WarehouseResponse.model_validate(ReferenceDirectory(session).get_warehouse(warehouse_id))
    except CustodyLedgerError as e:
        raise to_http_exception(e)


@router.post("/hospitals/", response_model=HospitalResponse, status_code=status.HTTP_201_CREATED)
def register_hospital(
    data: HospitalCreateRequest,
    session: SessionDep,
    actor: AdminActor,
) -> HospitalResponse:
    try:
        hospital = ReferenceDirectory(session).register_hospital(
            data.name, data.location, data.capacity
        )
        return HospitalResponse.model_validate(hospital)
    except CustodyLedgerError as e:
        raise to_http_exception(e)


@router.get("/hospitals/", response_model=list[HospitalResponse])
def list_hospitals(session: SessionDep) -> list[HospitalResponse]:
    return [HospitalResponse.model_validate(h) for h in ReferenceDirectory(session).list_hospitals()]


@router.get("/hospitals/{hospital_id}", response_model=HospitalResponse)
def get_hospital(hospital_id: UUID, session: SessionDep) -> HospitalResponse:
    try:
        return HospitalResponse.model_validate(ReferenceDirectory(session).get_hospital(hospital_id))
    except CustodyLedgerError as e:
        raise to_http_exception(e)


@router.post("/patients/", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
def register_patient(
    data: PatientCreateRequest,
    session: SessionDep,
    actor: AdminActor,
) -> PatientResponse:
    """Register a patient at a hospital."""
    try:
        patient = ReferenceDirectory(session).register_patient(
            name=data.name,
            age=data.age,
            hospital_id=data.hospital_id,
            medical_record=data.medical_record,
        )
        return PatientResponse.model_validate(patient)
    except CustodyLedgerError as e:
        raise to_http_exception(e)


@router.get("/patients/", response_model=list[PatientResponse])
def list_patients(
    session: SessionDep,
    hospital_id: UUID | None = Query(None),
) -> list[PatientResponse]:
    patients = ReferenceDirectory(session).list_patients(hospital_id=hospital_id)
    return [PatientResponse.model_validate(p) for p in patients]


@router.get("/patients/{patient_id}", response_model=PatientResponse)
def get_patient(patient_id: UUID, session: SessionDep) -> PatientResponse:
    try:
        return PatientResponse.model_validate(ReferenceDirectory(session).get_patient(patient_id))
    except CustodyLedgerError as e:
        raise to_http_exception(e)
