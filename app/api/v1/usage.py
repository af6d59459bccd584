"""API endpoints for the Administration Recorder."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.api.v1.deps import Actor, Role, require_role
from app.api.v1.errors import to_http_exception
from app.database import get_session
from app.domain.exceptions import CustodyLedgerError
from app.domain.services.administration_recorder import AdministrationRecorder
from app.schemas.usage import UsageCreateRequest, UsageListResponse, UsageRecordResponse

router = APIRouter(prefix="/usage", tags=["usage"])


@router.post("/", response_model=UsageRecordResponse, status_code=status.HTTP_201_CREATED)
def record_usage(
    usage_data: UsageCreateRequest,
    session: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.CLINICIAN))],
) -> UsageRecordResponse:
    """Record administration of units from a received batch to a patient."""
    recorder = AdministrationRecorder(session)

    try:
        record = recorder.record_usage(
            batch_id=usage_data.batch_id,
            patient_id=usage_data.patient_id,
            clinician_id=actor.id,
            quantity=usage_data.quantity,
            notes=usage_data.notes,
        )
        return UsageRecordResponse.model_validate(record)

    except CustodyLedgerError as e:
        raise to_http_exception(e)


@router.get("/", response_model=UsageListResponse)
def list_usage(
    session: Annotated[Session, Depends(get_session)],
    batch_id: UUID | None = Query(None),
    patient_id: UUID | None = Query(None),
    hospital_id: UUID | None = Query(None, description="Hospital where units were administered"),
) -> UsageListResponse:
    """List usage records, oldest first."""
    records = AdministrationRecorder(session).list_usage(
        batch_id=batch_id, patient_id=patient_id, hospital_id=hospital_id
    )
    return UsageListResponse(
        usage_records=[UsageRecordResponse.model_validate(r) for r in records],
        total=len(records),
    )
