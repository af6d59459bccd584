"""API endpoints for the Batch Registry and batch-level views."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.api.v1.deps import Actor, Role, require_role
from app.api.v1.errors import to_http_exception
from app.config import settings
from app.database import get_session
from app.domain.exceptions import CustodyLedgerError, NotFoundError
from app.domain.services.batch_registry import BatchRegistry
from app.domain.services.ledger_queries import LedgerQueryService
from app.domain.value_objects import BatchStatus
from app.schemas.batch import BatchCreateRequest, BatchListResponse, BatchResponse
from app.schemas.ledger import AuditEventResponse, AuditTrailResponse

router = APIRouter(prefix="/batches", tags=["batches"])


def _batch_list(batches: list) -> BatchListResponse:
    return BatchListResponse(
        batches=[BatchResponse.model_validate(b) for b in batches],
        total=len(batches),
    )


@router.post("/", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
def create_batch(
    batch_data: BatchCreateRequest,
    session: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.WAREHOUSE))],
) -> BatchResponse:
    """Register a new batch at a warehouse."""
    registry = BatchRegistry(session)

    try:
        batch = registry.create_batch(
            medication_name=batch_data.medication_name,
            quantity=batch_data.quantity,
            manufacturing_date=batch_data.manufacturing_date,
            expiry_date=batch_data.expiry_date,
            warehouse_id=batch_data.warehouse_id,
            scan_code=batch_data.scan_code,
            created_by=actor.id,
        )
        return BatchResponse.model_validate(batch)

    except CustodyLedgerError as e:
        raise to_http_exception(e)


@router.get("/available", response_model=BatchListResponse)
def list_available_batches(
    session: Annotated[Session, Depends(get_session)],
    warehouse_id: UUID | None = Query(None, description="Stock held at this warehouse"),
    hospital_id: UUID | None = Query(None, description="Stock held at this hospital"),
) -> BatchListResponse:
    """Batches with remaining stock in ``created`` or ``received`` state."""
    try:
        batches = LedgerQueryService(session).available_batches(
            warehouse_id=warehouse_id, hospital_id=hospital_id
        )
    except CustodyLedgerError as e:
        raise to_http_exception(e)
    return _batch_list(batches)


@router.get("/administrable", response_model=BatchListResponse)
def list_administrable_batches(
    session: Annotated[Session, Depends(get_session)],
    hospital_id: UUID | None = Query(None, description="Receiving hospital"),
) -> BatchListResponse:
    """Received batches (including partly administered ones) with stock left."""
    batches = LedgerQueryService(session).administrable_batches(hospital_id=hospital_id)
    return _batch_list(batches)


@router.get("/near-expiry", response_model=BatchListResponse)
def list_near_expiry_batches(
    session: Annotated[Session, Depends(get_session)],
    n_days: int = Query(
        settings.near_expiry_default_days,
        ge=0,
        le=3650,
        description="Look-ahead window in days",
    ),
) -> BatchListResponse:
    """Batches with stock left expiring within the window, soonest first."""
    batches = LedgerQueryService(session).near_expiry(n_days=n_days)
    return _batch_list(batches)


@router.get("/scan/{code}", response_model=BatchResponse)
def get_batch_by_scan_code(
    code: str,
    session: Annotated[Session, Depends(get_session)],
) -> BatchResponse:
    """Exact scan-code lookup."""
    try:
        batch = BatchRegistry(session).find_by_scan_code(code)
        if batch is None:
            raise NotFoundError("batch", f"with scan code '{code}'")
        return BatchResponse.model_validate(batch)

    except CustodyLedgerError as e:
        raise to_http_exception(e)


@router.get("/", response_model=BatchListResponse)
def list_batches(
    session: Annotated[Session, Depends(get_session)],
    warehouse_id: UUID | None = Query(None, description="Owning warehouse"),
    status_filter: BatchStatus | None = Query(None, alias="status"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(100, ge=1, le=1000, description="Page size"),
) -> BatchListResponse:
    """List batches, newest first."""
    batches = BatchRegistry(session).list_batches(
        warehouse_id=warehouse_id, status=status_filter, skip=skip, limit=limit
    )
    return _batch_list(batches)


@router.get("/{batch_id}", response_model=BatchResponse)
def get_batch(
    batch_id: UUID,
    session: Annotated[Session, Depends(get_session)],
) -> BatchResponse:
    """Retrieve a batch by ID."""
    try:
        return BatchResponse.model_validate(BatchRegistry(session).get_batch(batch_id))

    except CustodyLedgerError as e:
        raise to_http_exception(e)


@router.get("/{batch_id}/audit", response_model=AuditTrailResponse)
def get_audit_trail(
    batch_id: UUID,
    session: Annotated[Session, Depends(get_session)],
) -> AuditTrailResponse:
    """Chronological custody timeline of a batch."""
    try:
        events = LedgerQueryService(session).audit_trail(batch_id)
    except CustodyLedgerError as e:
        raise to_http_exception(e)

    return AuditTrailResponse(
        batch_id=batch_id,
        events=[AuditEventResponse.model_validate(event) for event in events],
    )
