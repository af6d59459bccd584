"""Data access layer for Dispatch records."""

from datetime import datetime
from typing import List
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import Session, select

from app.domain.exceptions import NotFoundError
from app.domain.models import Batch, Dispatch
from app.domain.value_objects import OPEN_DISPATCH_STATUSES, DispatchStatus
from app.repositories.locking import bound_lock_wait, reserve_sqlite_writer


class DispatchRepository:
    """Repository for dispatch persistence. Never commits."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, dispatch: Dispatch) -> Dispatch:
        self.session.add(dispatch)
        self.session.flush()
        return dispatch

    def get_by_id(self, dispatch_id: UUID) -> Dispatch:
        """
        Retrieve dispatch by ID.

        Raises:
            NotFoundError: If the dispatch doesn't exist
        """
        dispatch = self.session.get(Dispatch, dispatch_id)
        if not dispatch:
            raise NotFoundError("dispatch", dispatch_id)
        return dispatch

    def lock_by_id(self, dispatch_id: UUID) -> Dispatch:
        """
        Load a dispatch under an exclusive row lock.

        Raises:
            NotFoundError: If the dispatch doesn't exist
        """
        bound_lock_wait(self.session)
        reserve_sqlite_writer(self.session, Dispatch.__table__, dispatch_id)  # type: ignore[attr-defined]
        statement = (
            select(Dispatch)
            .where(Dispatch.id == dispatch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        dispatch = self.session.exec(statement).first()
        if not dispatch:
            raise NotFoundError("dispatch", dispatch_id)
        return dispatch

    def list_dispatches(
        self,
        batch_id: UUID | None = None,
        hospital_id: UUID | None = None,
        status: DispatchStatus | None = None,
    ) -> List[Dispatch]:
        """List dispatches ordered by dispatch time, oldest first."""
        statement = select(Dispatch)
        if batch_id is not None:
            statement = statement.where(Dispatch.batch_id == batch_id)
        if hospital_id is not None:
            statement = statement.where(Dispatch.to_hospital_id == hospital_id)
        if status is not None:
            statement = statement.where(Dispatch.status == status)
        statement = statement.order_by(Dispatch.dispatched_at.asc())  # type: ignore[attr-defined]
        return list(self.session.exec(statement).all())

    def latest_for_batch(self, batch_id: UUID) -> Dispatch | None:
        statement = (
            select(Dispatch)
            .where(Dispatch.batch_id == batch_id)
            .order_by(Dispatch.dispatched_at.desc())  # type: ignore[attr-defined]
        )
        return self.session.exec(statement).first()

    def list_open_with_batches(self) -> List[tuple[Dispatch, Batch]]:
        """Open (pending or in transit) dispatches paired with their batch."""
        statement = (
            select(Dispatch, Batch)
            .join(Batch, Batch.id == Dispatch.batch_id)  # type: ignore[arg-type]
            .where(Dispatch.status.in_(OPEN_DISPATCH_STATUSES))  # type: ignore[attr-defined]
            .order_by(Dispatch.dispatched_at.asc())  # type: ignore[attr-defined]
        )
        return [(dispatch, batch) for dispatch, batch in self.session.exec(statement).all()]

    def transition(
        self,
        dispatch: Dispatch,
        *,
        from_statuses: tuple[DispatchStatus, ...],
        to_status: DispatchStatus,
        received_by: UUID | None = None,
        received_at: datetime | None = None,
    ) -> bool:
        """
        Move a dispatch to ``to_status`` if it is still in one of ``from_statuses``.

        Returns False when another transaction already moved it, leaving the
        row untouched.
        """
        values: dict[str, object] = {"status": to_status}
        if received_by is not None:
            values["received_by"] = received_by
        if received_at is not None:
            values["received_at"] = received_at

        self.session.flush()
        table = Dispatch.__table__  # type: ignore[attr-defined]
        result = self.session.connection().execute(
            update(table)
            .where(table.c.id == dispatch.id, table.c.status.in_(from_statuses))
            .values(**values)
        )
        if result.rowcount != 1:
            return False

        for key, value in values.items():
            set_committed_value(dispatch, key, value)
        return True
