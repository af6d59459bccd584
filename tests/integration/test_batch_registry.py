"""Integration tests for the Batch Registry against SQLite."""

import uuid
from datetime import date

import pytest
from sqlalchemy import update
from sqlmodel import Session

from app.domain.exceptions import (
    ConcurrencyConflictError,
    InsufficientQuantityError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.domain.models import Batch
from app.domain.services.batch_registry import BatchRegistry
from app.domain.value_objects import BatchStatus


def bump_version(session: Session, batch_id: uuid.UUID) -> None:
    """Stand in for another writer committing between our read and our write."""
    table = Batch.__table__
    session.connection().execute(
        update(table).where(table.c.id == batch_id).values(version=table.c.version + 1)
    )


class TestCreateBatch:
    """Tests for BatchRegistry.create_batch."""

    def test_create_batch_success(self, session: Session, warehouse, events):
        bus, received = events
        creator = uuid.uuid4()

        batch = BatchRegistry(session, events=bus).create_batch(
            medication_name="Paracetamol 500mg",
            quantity=1000,
            manufacturing_date=date(2026, 1, 1),
            expiry_date=date(2028, 1, 1),
            warehouse_id=warehouse.id,
            scan_code="QR1733300000000",
            created_by=creator,
        )

        stored = BatchRegistry(session).get_batch(batch.id)
        assert stored.status == BatchStatus.CREATED
        assert stored.remaining_quantity == 1000
        assert stored.created_by == creator
        assert [(e.entity, e.operation, e.id) for e in received] == [("batch", "insert", batch.id)]

    def test_duplicate_scan_code_rejected(self, make_batch):
        make_batch(scan_code="QR-DUP-1")
        with pytest.raises(ValidationError, match="already registered"):
            make_batch(scan_code="QR-DUP-1")

    def test_unknown_warehouse_rejected(self, session: Session):
        with pytest.raises(NotFoundError, match="Warehouse"):
            BatchRegistry(session).create_batch(
                medication_name="Paracetamol 500mg",
                quantity=10,
                manufacturing_date=date(2026, 1, 1),
                expiry_date=date(2028, 1, 1),
                warehouse_id=uuid.uuid4(),
                scan_code="QR-ORPHAN",
                created_by=uuid.uuid4(),
            )

    def test_failed_create_leaves_no_row(self, session: Session, make_batch):
        with pytest.raises(ValidationError):
            make_batch(quantity=0)
        assert BatchRegistry(session).list_batches() == []


class TestLookups:
    def test_find_by_scan_code_is_exact(self, session: Session, make_batch):
        batch = make_batch(scan_code="QR1733300000000")
        registry = BatchRegistry(session)

        assert registry.find_by_scan_code("QR1733300000000").id == batch.id
        assert registry.find_by_scan_code(" QR1733300000000 ").id == batch.id
        assert registry.find_by_scan_code("qr1733300000000") is None

    def test_get_missing_batch(self, session: Session):
        with pytest.raises(NotFoundError):
            BatchRegistry(session).get_batch(uuid.uuid4())

    def test_list_batches_filters(self, session: Session, make_batch):
        first = make_batch(scan_code="QR-A")
        second = make_batch(scan_code="QR-B")
        registry = BatchRegistry(session)
        registry.advance_status(registry.lock_batch(second.id), BatchStatus.DISPATCHED)
        session.commit()

        created = registry.list_batches(status=BatchStatus.CREATED)
        assert [b.id for b in created] == [first.id]
        assert len(registry.list_batches(limit=1)) == 1
        assert len(registry.list_batches(skip=1)) == 1


class TestAdvanceStatus:
    """Tests for the status state machine."""

    def test_walks_full_lifecycle(self, session: Session, make_batch):
        batch = make_batch()
        registry = BatchRegistry(session)

        for status in (BatchStatus.DISPATCHED, BatchStatus.RECEIVED, BatchStatus.ADMINISTERED):
            batch = registry.advance_status(batch, status)
            assert batch.status == status

        session.commit()
        assert registry.get_batch(batch.id).version == 4

    def test_skip_rejected(self, session: Session, make_batch):
        batch = make_batch()
        with pytest.raises(InvalidTransitionError, match="'created' to 'received'"):
            BatchRegistry(session).advance_status(batch, BatchStatus.RECEIVED)

    def test_regression_rejected(self, session: Session, make_batch):
        batch = make_batch()
        registry = BatchRegistry(session)
        registry.advance_status(batch, BatchStatus.DISPATCHED)

        with pytest.raises(InvalidTransitionError):
            registry.advance_status(batch, BatchStatus.CREATED)

    def test_unknown_batch(self, session: Session):
        with pytest.raises(NotFoundError):
            BatchRegistry(session).lock_batch(uuid.uuid4())

    def test_stale_batch_conflicts(self, session: Session, make_batch):
        """A status write checked against an old version must not land."""
        registry = BatchRegistry(session)
        stale = registry.lock_batch(make_batch().id)
        bump_version(session, stale.id)

        with pytest.raises(ConcurrencyConflictError):
            registry.advance_status(stale, BatchStatus.DISPATCHED)

        session.rollback()
        assert registry.get_batch(stale.id).status == BatchStatus.CREATED


class TestDecrementRemaining:
    def test_decrements_and_bumps_version(self, session: Session, make_batch):
        batch = make_batch(quantity=100)

        updated = BatchRegistry(session).decrement_remaining(batch, 30)
        session.commit()

        assert updated.remaining_quantity == 70
        assert updated.version == 2

    def test_exact_remaining_allowed(self, session: Session, make_batch):
        batch = make_batch(quantity=100)
        assert BatchRegistry(session).decrement_remaining(batch, 100).remaining_quantity == 0

    def test_over_remaining_rejected_without_change(self, session: Session, make_batch):
        batch = make_batch(quantity=100)
        registry = BatchRegistry(session)

        with pytest.raises(InsufficientQuantityError) as exc_info:
            registry.decrement_remaining(batch, 101)

        assert exc_info.value.available == 100
        assert exc_info.value.requested == 101
        session.rollback()
        assert registry.get_batch(batch.id).remaining_quantity == 100

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_rejected(self, session: Session, make_batch, amount):
        batch = make_batch(quantity=100)
        with pytest.raises(ValidationError):
            BatchRegistry(session).decrement_remaining(batch, amount)

    def test_stale_remaining_conflicts(self, session: Session, make_batch):
        """A decrement sized against an old remaining count must not land."""
        registry = BatchRegistry(session)
        stale = registry.lock_batch(make_batch(quantity=100).id)
        bump_version(session, stale.id)

        with pytest.raises(ConcurrencyConflictError):
            registry.decrement_remaining(stale, 60)

        session.rollback()
        assert registry.get_batch(stale.id).remaining_quantity == 100
