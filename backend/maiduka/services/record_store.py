# Overview: Record-storage boundary shared by the ledger engines and the sync collaborator.

from __future__ import annotations

from typing import Callable

from sqlalchemy import func

from ..extensions import db
from ..models import SYNC_ENTITIES, SYNC_PENDING, SYNC_SYNCED
from ..time_utils import now_millis
from .errors import LedgerValidationError, NotFoundError
from .unit_of_work import lock_for_update


"""
MAIDUKA Record Store Invariants (authoritative)

- Writes flush into the caller's transaction; they never commit. atomic() owns the commit.
- insert / update / soft_delete always leave the record in sync_status='pending'.
- Soft-deleted rows are invisible to get_by_id unless include_deleted=True.
- Child ledgers are read in (date, sequence) order; sequence is max+1 per parent.
"""


def resolve_entity(entity_type: str):
    model = SYNC_ENTITIES.get(entity_type)
    if model is None:
        raise LedgerValidationError(
            f"Unknown entity type: {entity_type}",
            details={"valid": sorted(SYNC_ENTITIES)},
        )
    return model


class RecordStore:
    def __init__(self, session=None, clock: Callable[[], int] = now_millis):
        self.session = session if session is not None else db.session
        self.clock = clock

    def now(self) -> int:
        return self.clock()

    def insert(self, record) -> str:
        at = self.now()
        if record.created_at is None:
            record.created_at = at
        record.mark_pending(at)
        self.session.add(record)
        self.session.flush()
        return record.id

    def update(self, record) -> int:
        record.mark_pending(self.now())
        self.session.flush()
        return 1

    def soft_delete(self, record) -> int:
        if record.is_deleted:
            return 0
        record.soft_delete(self.now())
        self.session.flush()
        return 1

    def get_by_id(self, model, record_id: str, *, lock: bool = False, include_deleted: bool = False):
        query = self.session.query(model).filter_by(id=record_id)
        if lock:
            query = lock_for_update(query)
        record = query.first()
        if record is None:
            return None
        if record.is_deleted and not include_deleted:
            return None
        return record

    def require(self, model, record_id: str, *, lock: bool = False, label: str | None = None):
        record = self.get_by_id(model, record_id, lock=lock)
        if record is None:
            label = label or model.__name__
            raise NotFoundError(f"{label} {record_id} not found", details={"id": record_id})
        return record

    def list_children(self, model, parent_field: str, parent_id: str, *, order_by=None) -> list:
        query = self.session.query(model).filter(
            getattr(model, parent_field) == parent_id,
            model.deleted_at.is_(None),
        )
        if order_by is not None:
            query = query.order_by(*order_by)
        return query.all()

    def next_sequence(self, model, parent_field: str, parent_id: str) -> int:
        # Soft-deleted rows keep their sequence number
        current = self.session.query(
            func.coalesce(func.max(model.sequence), 0)
        ).filter(getattr(model, parent_field) == parent_id).scalar()
        return int(current or 0) + 1

    def list_pending_sync(self, entity_type: str) -> list:
        model = resolve_entity(entity_type)
        return (
            self.session.query(model)
            .filter(model.sync_status == SYNC_PENDING)
            .order_by(model.updated_at, model.id)
            .all()
        )

    def mark_sync_status(self, entity_type: str, record_id: str, status: str, timestamp: int | None = None) -> int:
        model = resolve_entity(entity_type)
        if status not in (SYNC_PENDING, SYNC_SYNCED):
            raise LedgerValidationError(f"Invalid sync status: {status}")

        record = self.get_by_id(model, record_id, lock=True, include_deleted=True)
        if record is None:
            return 0

        at = timestamp if timestamp is not None else self.now()
        if status == SYNC_SYNCED:
            record.mark_synced(at)
        else:
            record.mark_pending(at)
        self.session.flush()
        return 1
