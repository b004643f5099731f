from __future__ import annotations

import uuid

from ..extensions import db
from ..money import to_plain_string
from ..time_utils import now_millis


# Sync status stored on every ledger row
SYNC_PENDING = "pending"
SYNC_SYNCED = "synced"
SYNC_STATUSES = (SYNC_PENDING, SYNC_SYNCED)

# Derived record lifecycle
STATE_CREATED = "created"
STATE_PENDING_SYNC = "pending_sync"
STATE_SYNCED = "synced"
STATE_SOFT_DELETED = "soft_deleted"


def new_id() -> str:
    """Opaque unique identifier shared with the remote service."""
    return str(uuid.uuid4())


def serialize_decimal(value) -> str | None:
    return to_plain_string(value) if value is not None else None


class SyncTrackedMixin:
    """
    Sync and soft-delete bookkeeping attached uniformly to every ledger entity.

    STATE MACHINE (record_state is derived, never stored):
    - created: written locally, never uploaded
    - pending_sync: uploaded before, mutated locally since
    - synced: local row matches what the remote service acknowledged
    - soft_deleted: deleted_at set; the row is kept for ledger history

    Every local mutation goes through mark_pending(); only the sync
    collaborator calls mark_synced().
    """

    sync_status = db.Column(db.String(16), nullable=False, default=SYNC_PENDING, index=True)
    last_synced_at = db.Column(db.BigInteger, nullable=True)
    deleted_at = db.Column(db.BigInteger, nullable=True)
    created_at = db.Column(db.BigInteger, nullable=False, default=now_millis)
    updated_at = db.Column(db.BigInteger, nullable=False, default=now_millis)

    @property
    def record_state(self) -> str:
        if self.deleted_at is not None:
            return STATE_SOFT_DELETED
        if self.sync_status == SYNC_SYNCED:
            return STATE_SYNCED
        if self.last_synced_at is None:
            return STATE_CREATED
        return STATE_PENDING_SYNC

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def mark_pending(self, at: int) -> None:
        self.sync_status = SYNC_PENDING
        self.updated_at = at

    def mark_synced(self, at: int) -> None:
        self.sync_status = SYNC_SYNCED
        self.last_synced_at = at

    def soft_delete(self, at: int) -> None:
        self.deleted_at = at
        self.mark_pending(at)

    def sync_dict(self) -> dict:
        return {
            "sync_status": self.sync_status,
            "record_state": self.record_state,
            "last_synced_at": self.last_synced_at,
            "deleted_at": self.deleted_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
