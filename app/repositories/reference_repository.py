"""Data access layer for warehouses, hospitals and patients."""

from typing import List, Type, TypeVar
from uuid import UUID

from sqlalchemy import func
from sqlmodel import Session, SQLModel, select

from app.domain.exceptions import NotFoundError
from app.domain.models import Hospital, Patient, Warehouse

ReferenceModel = TypeVar("ReferenceModel", Warehouse, Hospital, Patient)

_ENTITY_NAMES: dict[type[SQLModel], str] = {
    Warehouse: "warehouse",
    Hospital: "hospital",
    Patient: "patient",
}


class ReferenceRepository:
    """Lookup and registration of reference data the ledger points at."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, entity: ReferenceModel) -> ReferenceModel:
        self.session.add(entity)
        self.session.flush()
        return entity

    def get(self, model: Type[ReferenceModel], entity_id: UUID) -> ReferenceModel:
        """
        Retrieve a reference row by ID.

        Raises:
            NotFoundError: If no such row exists
        """
        entity = self.session.get(model, entity_id)
        if not entity:
            raise NotFoundError(_ENTITY_NAMES[model], entity_id)
        return entity

    def list_warehouses(self) -> List[Warehouse]:
        return list(self.session.exec(select(Warehouse).order_by(Warehouse.name)).all())

    def list_hospitals(self) -> List[Hospital]:
        return list(self.session.exec(select(Hospital).order_by(Hospital.name)).all())

    def list_patients(self, hospital_id: UUID | None = None) -> List[Patient]:
        statement = select(Patient)
        if hospital_id is not None:
            statement = statement.where(Patient.hospital_id == hospital_id)
        return list(self.session.exec(statement.order_by(Patient.name)).all())

    def count_patients(self) -> int:
        return self.session.exec(select(func.count()).select_from(Patient)).one()
