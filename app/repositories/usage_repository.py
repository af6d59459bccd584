"""Data access layer for UsageRecord rows."""

from typing import List
from uuid import UUID

from sqlmodel import Session, select

from app.domain.models import UsageRecord


class UsageRepository:
    """Repository for administration records. Records are insert-only."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, record: UsageRecord) -> UsageRecord:
        self.session.add(record)
        self.session.flush()
        return record

    def list_usage(
        self,
        batch_id: UUID | None = None,
        patient_id: UUID | None = None,
        hospital_id: UUID | None = None,
    ) -> List[UsageRecord]:
        """List usage records, oldest first, with optional filters."""
        statement = select(UsageRecord)
        if batch_id is not None:
            statement = statement.where(UsageRecord.batch_id == batch_id)
        if patient_id is not None:
            statement = statement.where(UsageRecord.patient_id == patient_id)
        if hospital_id is not None:
            statement = statement.where(UsageRecord.hospital_id == hospital_id)
        statement = statement.order_by(UsageRecord.administered_at.asc())  # type: ignore[attr-defined]
        return list(self.session.exec(statement).all())
