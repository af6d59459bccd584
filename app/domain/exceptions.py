"""Domain-specific exception classes for the custody ledger."""

from uuid import UUID


class CustodyLedgerError(Exception):
    """Base exception for custody ledger errors."""

    code = "CustodyLedgerError"


class ValidationError(CustodyLedgerError):
    """Raised for malformed input: bad quantities, dates or duplicate scan codes."""

    code = "ValidationError"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NotFoundError(CustodyLedgerError):
    """Raised when a referenced record does not exist."""

    code = "NotFoundError"

    def __init__(self, entity: str, key: object):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity.capitalize()} {key} not found")


class InvalidTransitionError(CustodyLedgerError):
    """Raised when a status change violates the lifecycle order."""

    code = "InvalidTransitionError"

    def __init__(self, entity: str, entity_id: UUID, current: str, requested: str):
        self.entity = entity
        self.entity_id = entity_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"{entity.capitalize()} {entity_id} cannot move from "
            f"'{current}' to '{requested}'"
        )


class BatchNotAvailableError(CustodyLedgerError):
    """Raised when a dispatch targets a batch that already left the warehouse."""

    code = "BatchNotAvailableError"

    def __init__(self, batch_id: UUID, status: str):
        self.batch_id = batch_id
        self.status = status
        super().__init__(
            f"Batch {batch_id} is not available for dispatch (status={status})"
        )


class AlreadyReceivedError(CustodyLedgerError):
    """Raised on a duplicate receipt confirmation."""

    code = "AlreadyReceivedError"

    def __init__(self, dispatch_id: UUID):
        self.dispatch_id = dispatch_id
        super().__init__(f"Dispatch {dispatch_id} has already been received")


class BatchNotReceivedError(CustodyLedgerError):
    """Raised when usage is recorded against a batch no hospital has received."""

    code = "BatchNotReceivedError"

    def __init__(self, batch_id: UUID, status: str):
        self.batch_id = batch_id
        self.status = status
        super().__init__(
            f"Batch {batch_id} has not been received (status={status})"
        )


class InsufficientQuantityError(CustodyLedgerError):
    """Raised when a requested quantity exceeds what the operation allows."""

    code = "InsufficientQuantityError"

    def __init__(self, batch_id: UUID, available: int, requested: int):
        self.batch_id = batch_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient quantity in batch {batch_id}: "
            f"available={available}, requested={requested}"
        )


class ConcurrencyConflictError(CustodyLedgerError):
    """Raised on lock timeout or a lost compare-and-swap. Safe to retry."""

    code = "ConcurrencyConflictError"

    def __init__(self, entity: str, entity_id: UUID | None, reason: str = "contended"):
        self.entity = entity
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Concurrent modification of {entity} {entity_id}: {reason}; retry the request"
        )
