"""SQLModel database models for the custody ledger."""

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint
from sqlmodel import Field, Relationship, SQLModel

from app.domain.exceptions import ValidationError
from app.domain.value_objects import BatchStatus, DispatchStatus, Quantity, ScanCode


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps read back from the store."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _require_text(value: str, field: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field} must not be blank", field=field)
    return value.strip()


# --------------------------------------------------------------------- #
# Reference entities                                                     #
# --------------------------------------------------------------------- #


class Warehouse(SQLModel, table=True):
    """A storage site where batches are registered."""

    __tablename__ = "warehouses"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(max_length=200)
    location: str = Field(default="", max_length=300)
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def create(cls, name: str, location: str = "") -> "Warehouse":
        return cls(name=_require_text(name, "name"), location=location.strip())


class Hospital(SQLModel, table=True):
    """A receiving site; destination of dispatches."""

    __tablename__ = "hospitals"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(max_length=200)
    location: str = Field(default="", max_length=300)
    capacity: int = Field(default=0, ge=0, description="Bed capacity")
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def create(cls, name: str, location: str = "", capacity: int = 0) -> "Hospital":
        if capacity < 0:
            raise ValidationError("capacity must not be negative", field="capacity")
        return cls(
            name=_require_text(name, "name"),
            location=location.strip(),
            capacity=capacity,
        )


class Patient(SQLModel, table=True):
    """A patient registered at one hospital."""

    __tablename__ = "patients"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(max_length=200)
    age: int = Field(ge=0)
    hospital_id: uuid.UUID = Field(foreign_key="hospitals.id", index=True)
    medical_record: str = Field(default="", max_length=100)
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def create(
        cls,
        name: str,
        age: int,
        hospital_id: uuid.UUID,
        medical_record: str = "",
    ) -> "Patient":
        if age < 0:
            raise ValidationError("age must not be negative", field="age")
        return cls(
            name=_require_text(name, "name"),
            age=age,
            hospital_id=hospital_id,
            medical_record=medical_record.strip(),
        )


# --------------------------------------------------------------------- #
# Ledger entities                                                        #
# --------------------------------------------------------------------- #


class Batch(SQLModel, table=True):
    """
    A registered lot of one medication; the audit root of the ledger.

    Business Rules:
    - quantity is fixed at creation; remaining_quantity only decreases
    - scan_code is unique
    - status advances created -> dispatched -> received -> administered
    - version is incremented on every ledger write (compare-and-swap token)
    - batches are never deleted
    """

    __tablename__ = "batches"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_batches_quantity_positive"),
        CheckConstraint(
            "remaining_quantity >= 0 AND remaining_quantity <= quantity",
            name="ck_batches_remaining_bounds",
        ),
        CheckConstraint(
            "expiry_date >= manufacturing_date", name="ck_batches_expiry_after_mfg"
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    medication_name: str = Field(max_length=200, index=True)
    quantity: int = Field(gt=0, description="Total units, immutable")
    remaining_quantity: int = Field(ge=0, description="Units not yet administered")
    manufacturing_date: date
    expiry_date: date = Field(index=True)
    scan_code: str = Field(
        unique=True,
        index=True,
        max_length=200,
        description="Barcode/QR payload bound to the batch",
    )
    status: BatchStatus = Field(default=BatchStatus.CREATED, index=True)

    warehouse_id: uuid.UUID = Field(foreign_key="warehouses.id", index=True)
    created_by: uuid.UUID

    # Concurrency Control
    version: int = Field(default=1, description="Optimistic locking token")

    # Audit Trail
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    # Relationships
    dispatches: list["Dispatch"] = Relationship(back_populates="batch")
    usage_records: list["UsageRecord"] = Relationship(back_populates="batch")

    @property
    def administered_quantity(self) -> int:
        """Units consumed so far, derived from the remaining counter."""
        return self.quantity - self.remaining_quantity

    @classmethod
    def create(
        cls,
        medication_name: str,
        quantity: int,
        manufacturing_date: date,
        expiry_date: date,
        warehouse_id: uuid.UUID,
        scan_code: str,
        created_by: uuid.UUID,
    ) -> "Batch":
        """
        Factory method enforcing registration rules.

        Raises:
            ValidationError: blank medication or scan code, non-positive
                quantity, or expiry before manufacture
        """
        units = Quantity(quantity).units
        code = ScanCode(scan_code)
        if expiry_date < manufacturing_date:
            raise ValidationError(
                f"Expiry date {expiry_date} precedes manufacturing date "
                f"{manufacturing_date}",
                field="expiry_date",
            )
        return cls(
            medication_name=_require_text(medication_name, "medication_name"),
            quantity=units,
            remaining_quantity=units,
            manufacturing_date=manufacturing_date,
            expiry_date=expiry_date,
            scan_code=code.value.strip(),
            status=BatchStatus.CREATED,
            warehouse_id=warehouse_id,
            created_by=created_by,
        )


class Dispatch(SQLModel, table=True):
    """A movement of a quantity of one batch from a warehouse to a hospital."""

    __tablename__ = "dispatches"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    batch_id: uuid.UUID = Field(foreign_key="batches.id", index=True)
    quantity: int = Field(gt=0)
    from_warehouse_id: uuid.UUID = Field(foreign_key="warehouses.id", index=True)
    to_hospital_id: uuid.UUID = Field(foreign_key="hospitals.id", index=True)
    status: DispatchStatus = Field(default=DispatchStatus.PENDING, index=True)

    dispatched_by: uuid.UUID
    received_by: Optional[uuid.UUID] = Field(default=None)
    dispatched_at: datetime = Field(default_factory=utcnow, index=True)
    received_at: Optional[datetime] = Field(default=None)

    batch: Optional[Batch] = Relationship(back_populates="dispatches")


class UsageRecord(SQLModel, table=True):
    """Administration of a quantity of a received batch to a patient. Immutable."""

    __tablename__ = "usage_records"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    batch_id: uuid.UUID = Field(foreign_key="batches.id", index=True)
    patient_id: uuid.UUID = Field(foreign_key="patients.id", index=True)
    clinician_id: uuid.UUID
    hospital_id: uuid.UUID = Field(foreign_key="hospitals.id", index=True)
    quantity: int = Field(gt=0)
    notes: Optional[str] = Field(default=None, max_length=1000)
    administered_at: datetime = Field(default_factory=utcnow, index=True)

    batch: Optional[Batch] = Relationship(back_populates="usage_records")
