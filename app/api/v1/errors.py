"""Translation of ledger errors into HTTP responses."""

from fastapi import HTTPException, status

from app.domain.exceptions import (
    ConcurrencyConflictError,
    CustodyLedgerError,
    NotFoundError,
    ValidationError,
)


def to_http_exception(error: CustodyLedgerError) -> HTTPException:
    """
    Map a ledger error to an HTTPException carrying its kind.

    ValidationError -> 422, NotFoundError -> 404, everything else is a
    state conflict -> 409. Concurrency conflicts add ``Retry-After``.
    """
    detail = {"code": error.code, "message": str(error)}

    if isinstance(error, ValidationError):
        return HTTPException(status_code=422, detail=detail)
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    if isinstance(error, ConcurrencyConflictError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            headers={"Retry-After": "1"},
        )
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
