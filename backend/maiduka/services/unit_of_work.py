# Overview: Service-layer transaction boundary; every ledger engine operation runs through atomic().

from __future__ import annotations

import time
from typing import Callable

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from .errors import EngineResult, LedgerError, StorageFailureError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the whole write
    transaction is serialized by BEGIN IMMEDIATE instead.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def _begin_write() -> None:
    # Take the SQLite write lock up front so read-modify-write steps cannot interleave
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def atomic(op: Callable[[], object], *, name: str) -> EngineResult:
    """
    Run a multi-step ledger operation as one unit of work.

    GUARANTEES:
    - All writes of op() commit together or not at all.
    - LedgerError raised by op() becomes a typed failure result.
    - Any SQLAlchemy error becomes a storage_failure result after rollback.
    - Nothing raises past this function.
    """
    config = current_app.config
    logger = current_app.logger

    def _op():
        _begin_write()
        value = op()
        db.session.commit()
        return value

    try:
        value = run_with_retry(
            _op,
            attempts=config.get("LEDGER_RETRY_ATTEMPTS", 3),
            backoff_base=config.get("LEDGER_RETRY_BACKOFF", 0.1),
        )
    except LedgerError as exc:
        db.session.rollback()
        logger.warning("%s rejected (%s): %s", name, exc.kind.value, exc.message)
        return EngineResult.failure(exc)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("%s failed in the record store", name)
        return EngineResult.failure(
            StorageFailureError(
                f"{name} failed: {exc.__class__.__name__}",
                details={"operation": name},
            )
        )

    return EngineResult.success(value)


def read_only(op: Callable[[], object], *, name: str) -> EngineResult:
    """Same failure contract as atomic() for queries: no write lock, no commit."""
    try:
        return EngineResult.success(op())
    except LedgerError as exc:
        return EngineResult.failure(exc)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("%s failed in the record store", name)
        return EngineResult.failure(
            StorageFailureError(
                f"{name} failed: {exc.__class__.__name__}",
                details={"operation": name},
            )
        )
