"""Registration and lookup of warehouses, hospitals and patients."""

import logging
from typing import List
from uuid import UUID

from sqlmodel import Session

from app.domain.models import Hospital, Patient, Warehouse
from app.domain.services.transaction import atomic
from app.events import ChangeEventBus, event_bus
from app.repositories.reference_repository import ReferenceRepository

logger = logging.getLogger(__name__)


class ReferenceDirectory:
    """Service layer for reference data; no lifecycle beyond registration."""

    def __init__(self, session: Session, events: ChangeEventBus | None = None):
        self.session = session
        self.events = events or event_bus
        self.repository = ReferenceRepository(session)

    def register_warehouse(self, name: str, location: str = "") -> Warehouse:
        warehouse = Warehouse.create(name=name, location=location)
        with atomic(self.session, "warehouse", warehouse.id):
            self.repository.add(warehouse)
        logger.info("Warehouse registered", extra={"ledger_event": {"warehouse_id": str(warehouse.id)}})
        self.events.publish("warehouse", "insert", warehouse.id)
        return warehouse

    def register_hospital(self, name: str, location: str = "", capacity: int = 0) -> Hospital:
        hospital = Hospital.create(name=name, location=location, capacity=capacity)
        with atomic(self.session, "hospital", hospital.id):
            self.repository.add(hospital)
        logger.info("Hospital registered", extra={"ledger_event": {"hospital_id": str(hospital.id)}})
        self.events.publish("hospital", "insert", hospital.id)
        return hospital

    def register_patient(
        self,
        name: str,
        age: int,
        hospital_id: UUID,
        medical_record: str = "",
    ) -> Patient:
        """
        Register a patient at a hospital.

        Raises:
            ValidationError: Blank name or negative age
            NotFoundError: Hospital doesn't exist
        """
        patient = Patient.create(
            name=name, age=age, hospital_id=hospital_id, medical_record=medical_record
        )
        with atomic(self.session, "patient", patient.id):
            self.repository.get(Hospital, hospital_id)
            self.repository.add(patient)
        logger.info("Patient registered", extra={"ledger_event": {"patient_id": str(patient.id)}})
        self.events.publish("patient", "insert", patient.id)
        return patient

    def get_warehouse(self, warehouse_id: UUID) -> Warehouse:
        return self.repository.get(Warehouse, warehouse_id)

    def get_hospital(self, hospital_id: UUID) -> Hospital:
        return self.repository.get(Hospital, hospital_id)

    def get_patient(self, patient_id: UUID) -> Patient:
        return self.repository.get(Patient, patient_id)

    def list_warehouses(self) -> List[Warehouse]:
        return self.repository.list_warehouses()

    def list_hospitals(self) -> List[Hospital]:
        return self.repository.list_hospitals()

    def list_patients(self, hospital_id: UUID | None = None) -> List[Patient]:
        return self.repository.list_patients(hospital_id=hospital_id)
