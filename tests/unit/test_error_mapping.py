"""Unit tests for ledger error to HTTP translation."""

import uuid
import warnings

import pytest

from app.api.v1.errors import to_http_exception
from app.domain.exceptions import (
    AlreadyReceivedError,
    BatchNotAvailableError,
    BatchNotReceivedError,
    ConcurrencyConflictError,
    InsufficientQuantityError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)


BATCH_ID = uuid.uuid4()


@pytest.mark.parametrize(
    "error, status_code",
    [
        (ValidationError("bad"), 422),
        (NotFoundError("batch", BATCH_ID), 404),
        (InvalidTransitionError("batch", BATCH_ID, "created", "received"), 409),
        (BatchNotAvailableError(BATCH_ID, "dispatched"), 409),
        (AlreadyReceivedError(BATCH_ID), 409),
        (BatchNotReceivedError(BATCH_ID, "created"), 409),
        (InsufficientQuantityError(BATCH_ID, 10, 20), 409),
        (ConcurrencyConflictError("batch", BATCH_ID), 409),
    ],
)
def test_status_codes(error, status_code):
    assert to_http_exception(error).status_code == status_code


def test_validation_mapping_uses_no_deprecated_constant():
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        assert to_http_exception(ValidationError("bad")).status_code == 422


def test_detail_carries_error_kind_and_message():
    error = InsufficientQuantityError(BATCH_ID, 800, 900)

    exc = to_http_exception(error)

    assert exc.detail == {"code": "InsufficientQuantityError", "message": str(error)}
    assert "available=800" in exc.detail["message"]


def test_concurrency_conflict_is_retryable():
    exc = to_http_exception(ConcurrencyConflictError("batch", BATCH_ID, "version mismatch"))
    assert exc.headers == {"Retry-After": "1"}


def test_state_conflicts_carry_no_retry_hint():
    assert to_http_exception(AlreadyReceivedError(BATCH_ID)).headers is None
