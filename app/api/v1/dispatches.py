"""API endpoints for the Dispatch Tracker."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.api.v1.deps import Actor, Role, require_role
from app.api.v1.errors import to_http_exception
from app.database import get_session
from app.domain.exceptions import CustodyLedgerError
from app.domain.services.dispatch_tracker import DispatchTracker
from app.domain.services.ledger_queries import LedgerQueryService
from app.schemas.dispatch import (
    DispatchCreateRequest,
    DispatchListResponse,
    DispatchResponse,
    ScanReceiptRequest,
)

router = APIRouter(prefix="/dispatches", tags=["dispatches"])


@router.post("/", response_model=DispatchResponse, status_code=status.HTTP_201_CREATED)
def create_dispatch(
    dispatch_data: DispatchCreateRequest,
    session: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.WAREHOUSE))],
) -> DispatchResponse:
    """Dispatch a batch from its warehouse to a hospital."""
    tracker = DispatchTracker(session)

    try:
        dispatch = tracker.create_dispatch(
            batch_id=dispatch_data.batch_id,
            warehouse_id=dispatch_data.warehouse_id,
            hospital_id=dispatch_data.hospital_id,
            quantity=dispatch_data.quantity,
            dispatched_by=actor.id,
        )
        return DispatchResponse.model_validate(dispatch)

    except CustodyLedgerError as e:
        raise to_http_exception(e)


@router.get("/pending", response_model=DispatchListResponse)
def list_pending_deliveries(
    session: Annotated[Session, Depends(get_session)],
    hospital_id: UUID | None = Query(None, description="Destination hospital"),
) -> DispatchListResponse:
    """Dispatches not yet received."""
    dispatches = LedgerQueryService(session).pending_deliveries(hospital_id=hospital_id)
    return DispatchListResponse(
        dispatches=[DispatchResponse.model_validate(d) for d in dispatches],
        total=len(dispatches),
    )


@router.post("/receive-scan", response_model=DispatchResponse)
def confirm_receipt_by_scan(
    scan_data: ScanReceiptRequest,
    session: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.HOSPITAL))],
) -> DispatchResponse:
    """Resolve a scanned code to its pending delivery and confirm receipt."""
    tracker = DispatchTracker(session)

    try:
        dispatch = tracker.confirm_receipt_by_scan(scan_data.code, received_by=actor.id)
        return DispatchResponse.model_validate(dispatch)

    except CustodyLedgerError as e:
        raise to_http_exception(e)


@router.get("/", response_model=DispatchListResponse)
def list_dispatches(
    session: Annotated[Session, Depends(get_session)],
    batch_id: UUID | None = Query(None),
    hospital_id: UUID | None = Query(None),
) -> DispatchListResponse:
    """List dispatches, oldest first."""
    dispatches = DispatchTracker(session).list_dispatches(
        batch_id=batch_id, hospital_id=hospital_id
    )
    return DispatchListResponse(
        dispatches=[DispatchResponse.model_validate(d) for d in dispatches],
        total=len(dispatches),
    )


@router.get("/{dispatch_id}", response_model=DispatchResponse)
def get_dispatch(
    dispatch_id: UUID,
    session: Annotated[Session, Depends(get_session)],
) -> DispatchResponse:
    """Retrieve a dispatch by ID."""
    try:
        return DispatchResponse.model_validate(DispatchTracker(session).get_dispatch(dispatch_id))

    except CustodyLedgerError as e:
        raise to_http_exception(e)


@router.post("/{dispatch_id}/in-transit", response_model=DispatchResponse)
def mark_in_transit(
    dispatch_id: UUID,
    session: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.WAREHOUSE))],
) -> DispatchResponse:
    """Mark a pending dispatch as having left the warehouse."""
    try:
        dispatch = DispatchTracker(session).mark_in_transit(dispatch_id)
        return DispatchResponse.model_validate(dispatch)

    except CustodyLedgerError as e:
        raise to_http_exception(e)


@router.post("/{dispatch_id}/receive", response_model=DispatchResponse)
def confirm_receipt(
    dispatch_id: UUID,
    session: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.HOSPITAL))],
) -> DispatchResponse:
    """Confirm receipt of a dispatch. A second confirmation is rejected."""
    try:
        dispatch = DispatchTracker(session).confirm_receipt(dispatch_id, received_by=actor.id)
        return DispatchResponse.model_validate(dispatch)

    except CustodyLedgerError as e:
        raise to_http_exception(e)
