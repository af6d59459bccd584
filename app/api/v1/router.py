"""Main router aggregator for API v1."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.api.v1.batches import router as batches_router
from app.api.v1.dispatches import router as dispatches_router
from app.api.v1.references import router as references_router
from app.api.v1.usage import router as usage_router
from app.database import get_session
from app.domain.services.ledger_queries import LedgerQueryService
from app.schemas.ledger import LedgerSummaryResponse

router = APIRouter(prefix="/api")

router.include_router(references_router)
router.include_router(batches_router)
router.include_router(dispatches_router)
router.include_router(usage_router)


@router.get("/summary", response_model=LedgerSummaryResponse, tags=["ledger"])
def ledger_summary(session: Annotated[Session, Depends(get_session)]) -> LedgerSummaryResponse:
    """Headline counts across the whole ledger."""
    return LedgerSummaryResponse.model_validate(LedgerQueryService(session).summary())
