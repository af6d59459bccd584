"""Create reference and custody ledger tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

batch_status = sa.Enum(
    "CREATED", "DISPATCHED", "RECEIVED", "ADMINISTERED", name="batchstatus"
)
dispatch_status = sa.Enum("PENDING", "IN_TRANSIT", "RECEIVED", name="dispatchstatus")


def upgrade() -> None:
    """Create ledger tables."""
    op.create_table(
        "warehouses",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("location", sa.String(length=300), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "hospitals",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("location", sa.String(length=300), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "patients",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("hospital_id", sa.Uuid(), nullable=False),
        sa.Column("medical_record", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["hospital_id"], ["hospitals.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_patients_hospital_id", "patients", ["hospital_id"])

    op.create_table(
        "batches",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("medication_name", sa.String(length=200), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("remaining_quantity", sa.Integer(), nullable=False),
        sa.Column("manufacturing_date", sa.Date(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=False),
        sa.Column("scan_code", sa.String(length=200), nullable=False),
        sa.Column("status", batch_status, nullable=False),
        sa.Column("warehouse_id", sa.Uuid(), nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("scan_code"),
        sa.CheckConstraint("quantity > 0", name="ck_batches_quantity_positive"),
        sa.CheckConstraint(
            "remaining_quantity >= 0 AND remaining_quantity <= quantity",
            name="ck_batches_remaining_bounds",
        ),
        sa.CheckConstraint(
            "expiry_date >= manufacturing_date", name="ck_batches_expiry_after_mfg"
        ),
    )
    op.create_index("ix_batches_scan_code", "batches", ["scan_code"])
    op.create_index("ix_batches_medication_name", "batches", ["medication_name"])
    op.create_index("ix_batches_expiry_date", "batches", ["expiry_date"])
    op.create_index("ix_batches_status", "batches", ["status"])
    op.create_index("ix_batches_warehouse_id", "batches", ["warehouse_id"])

    op.create_table(
        "dispatches",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("batch_id", sa.Uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("from_warehouse_id", sa.Uuid(), nullable=False),
        sa.Column("to_hospital_id", sa.Uuid(), nullable=False),
        sa.Column("status", dispatch_status, nullable=False),
        sa.Column("dispatched_by", sa.Uuid(), nullable=False),
        sa.Column("received_by", sa.Uuid(), nullable=True),
        sa.Column("dispatched_at", sa.DateTime(), nullable=False),
        sa.Column("received_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["batch_id"], ["batches.id"]),
        sa.ForeignKeyConstraint(["from_warehouse_id"], ["warehouses.id"]),
        sa.ForeignKeyConstraint(["to_hospital_id"], ["hospitals.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity > 0", name="ck_dispatches_quantity_positive"),
    )
    op.create_index("ix_dispatches_batch_id", "dispatches", ["batch_id"])
    op.create_index("ix_dispatches_from_warehouse_id", "dispatches", ["from_warehouse_id"])
    op.create_index("ix_dispatches_to_hospital_id", "dispatches", ["to_hospital_id"])
    op.create_index("ix_dispatches_status", "dispatches", ["status"])
    op.create_index("ix_dispatches_dispatched_at", "dispatches", ["dispatched_at"])

    op.create_table(
        "usage_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("batch_id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("clinician_id", sa.Uuid(), nullable=False),
        sa.Column("hospital_id", sa.Uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column("administered_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["batch_id"], ["batches.id"]),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"]),
        sa.ForeignKeyConstraint(["hospital_id"], ["hospitals.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity > 0", name="ck_usage_records_quantity_positive"),
    )
    op.create_index("ix_usage_records_batch_id", "usage_records", ["batch_id"])
    op.create_index("ix_usage_records_patient_id", "usage_records", ["patient_id"])
    op.create_index("ix_usage_records_hospital_id", "usage_records", ["hospital_id"])
    op.create_index("ix_usage_records_administered_at", "usage_records", ["administered_at"])


def downgrade() -> None:
    """Drop ledger tables."""
    op.drop_table("usage_records")
    op.drop_table("dispatches")
    op.drop_table("batches")
    op.drop_table("patients")
    op.drop_table("hospitals")
    op.drop_table("warehouses")
    dispatch_status.drop(op.get_bind(), checkfirst=True)
    batch_status.drop(op.get_bind(), checkfirst=True)
