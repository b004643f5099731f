# Overview: Service-layer hooks for the external sync collaborator; pending sets, acknowledgements and soft deletes.

from __future__ import annotations

from flask import current_app

from ..models import SYNC_SYNCED
from .errors import EngineResult, LedgerValidationError, NotFoundError
from .record_store import RecordStore, resolve_entity
from .unit_of_work import atomic, read_only


# Aggregates removed by soft delete; ledgers below them are never deleted
SOFT_DELETABLE = ("product", "customer", "sale", "purchase_order")


def pending_records(entity_type: str) -> EngineResult:
    """Records of one entity type waiting for upload, oldest change first."""
    store = RecordStore()
    return read_only(lambda: store.list_pending_sync(entity_type), name="pending_records")


def mark_synced(entity_type: str, record_ids: list[str], timestamp: int | None = None) -> EngineResult:
    """
    Acknowledge an upload.

    Returns:
        EngineResult wrapping the number of records marked synced
        (unknown ids are skipped, not failed)
    """
    store = RecordStore()

    def _op():
        resolve_entity(entity_type)
        at = timestamp if timestamp is not None else store.now()
        return sum(store.mark_sync_status(entity_type, record_id, SYNC_SYNCED, at) for record_id in record_ids)

    result = atomic(_op, name="mark_synced")
    if result.is_success:
        current_app.logger.info("Marked %s %s record(s) synced", result.value, entity_type)
    return result


def soft_delete(entity_type: str, record_id: str) -> EngineResult:
    """
    Soft-delete an aggregate row, keeping it for ledger history.

    Returns:
        EngineResult wrapping 1, or 0 when the row was already deleted
    """
    store = RecordStore()

    def _op():
        if entity_type not in SOFT_DELETABLE:
            raise LedgerValidationError(
                f"{entity_type} records cannot be deleted",
                details={"soft_deletable": list(SOFT_DELETABLE)},
            )
        model = resolve_entity(entity_type)
        record = store.get_by_id(model, record_id, lock=True, include_deleted=True)
        if record is None:
            raise NotFoundError(f"{entity_type} {record_id} not found", details={"id": record_id})
        return store.soft_delete(record)

    result = atomic(_op, name="soft_delete")
    if result.is_success:
        current_app.logger.info("Soft-deleted %s: %s", entity_type, record_id)
    return result
