"""Data access layer for Batch records."""

from datetime import datetime
from typing import List
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import Session, select

from app.domain.exceptions import ConcurrencyConflictError, NotFoundError, ValidationError
from app.domain.models import Batch, utcnow
from app.domain.value_objects import BatchStatus
from app.repositories.locking import bound_lock_wait, reserve_sqlite_writer


class BatchRepository:
    """
    Repository for batch persistence.

    Methods never commit; the calling service owns the transaction so that
    a batch write and the record that caused it land together.
    """

    def __init__(self, session: Session):
        self.session = session

    def add(self, batch: Batch) -> Batch:
        """
        Stage a new batch and flush it.

        Raises:
            ValidationError: If the scan code is already registered
        """
        try:
            self.session.add(batch)
            self.session.flush()
            return batch
        except IntegrityError as e:
            if "unique" in str(e).lower() or "duplicate key" in str(e).lower():
                raise ValidationError(
                    f"Scan code '{batch.scan_code}' is already registered",
                    field="scan_code",
                ) from e
            raise

    def get_by_id(self, batch_id: UUID) -> Batch:
        """
        Retrieve batch by ID.

        Raises:
            NotFoundError: If the batch doesn't exist
        """
        batch = self.session.get(Batch, batch_id)
        if not batch:
            raise NotFoundError("batch", batch_id)
        return batch

    def lock_by_id(self, batch_id: UUID) -> Batch:
        """
        Load a batch under an exclusive row lock (SELECT ... FOR UPDATE).

        On SQLite the database write lock is taken instead.

        The lock wait is bounded; a timeout surfaces from the driver as an
        OperationalError that the transaction helper turns into a conflict.

        Raises:
            NotFoundError: If the batch doesn't exist
        """
        bound_lock_wait(self.session)
        reserve_sqlite_writer(self.session, Batch.__table__, batch_id)  # type: ignore[attr-defined]
        statement = (
            select(Batch)
            .where(Batch.id == batch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        batch = self.session.exec(statement).first()
        if not batch:
            raise NotFoundError("batch", batch_id)
        return batch

    def find_by_scan_code(self, scan_code: str) -> Batch | None:
        """Exact scan-code lookup."""
        statement = select(Batch).where(Batch.scan_code == scan_code)
        return self.session.exec(statement).first()

    def list_batches(
        self,
        warehouse_id: UUID | None = None,
        status: BatchStatus | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Batch]:
        """List batches, newest first, with optional filters and pagination."""
        statement = select(Batch)
        if warehouse_id is not None:
            statement = statement.where(Batch.warehouse_id == warehouse_id)
        if status is not None:
            statement = statement.where(Batch.status == status)
        statement = (
            statement.order_by(Batch.created_at.desc())  # type: ignore[attr-defined]
            .offset(skip)
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    def list_by_ids(self, batch_ids: set[UUID]) -> List[Batch]:
        if not batch_ids:
            return []
        statement = select(Batch).where(Batch.id.in_(batch_ids))  # type: ignore[attr-defined]
        return list(self.session.exec(statement).all())

    def list_all(self) -> List[Batch]:
        return list(self.session.exec(select(Batch)).all())

    def compare_and_set(
        self,
        batch: Batch,
        *,
        remaining_quantity: int | None = None,
        status: BatchStatus | None = None,
    ) -> Batch:
        """
        Write remaining quantity and/or status if nobody else has since.

        The UPDATE is guarded by the version the caller read, so a
        concurrent writer that got there first makes this a no-op row
        count, which is reported as a conflict.

        Raises:
            ConcurrencyConflictError: If the row version moved
        """
        new_remaining = (
            batch.remaining_quantity if remaining_quantity is None else remaining_quantity
        )
        new_status = batch.status if status is None else status
        new_version = batch.version + 1
        now: datetime = utcnow()

        self.session.flush()
        table = Batch.__table__  # type: ignore[attr-defined]
        result = self.session.connection().execute(
            update(table)
            .where(table.c.id == batch.id, table.c.version == batch.version)
            .values(
                remaining_quantity=new_remaining,
                status=new_status,
                version=new_version,
                updated_at=now,
            )
        )
        if result.rowcount != 1:
            raise ConcurrencyConflictError("batch", batch.id, "version mismatch")

        set_committed_value(batch, "remaining_quantity", new_remaining)
        set_committed_value(batch, "status", new_status)
        set_committed_value(batch, "version", new_version)
        set_committed_value(batch, "updated_at", now)
        return batch
