# Overview: Typed failures raised inside the ledger services and the result returned at their boundary.

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INVALID_STATE = "invalid_state"
    VALIDATION = "validation"
    STORAGE_FAILURE = "storage_failure"


class LedgerError(Exception):
    """Base for every business failure raised by a ledger service."""
    kind = ErrorKind.STORAGE_FAILURE

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "error": self.message, "details": self.details}


class NotFoundError(LedgerError):
    """Referenced product, customer, sale, purchase order or goal does not exist."""
    kind = ErrorKind.NOT_FOUND


class InsufficientBalanceError(LedgerError):
    """Withdrawal exceeds the current savings balance."""
    kind = ErrorKind.INSUFFICIENT_BALANCE


class InvalidStateError(LedgerError):
    """Operation attempted from an illegal lifecycle state."""
    kind = ErrorKind.INVALID_STATE


class InsufficientStockError(InvalidStateError):
    """Deduction would take stock below zero while the shop forbids it."""


class LedgerValidationError(LedgerError):
    """Input that can never be recorded (non-positive amounts, unbalanced totals)."""
    kind = ErrorKind.VALIDATION


class StorageFailureError(LedgerError):
    """Underlying record store read/write failed."""
    kind = ErrorKind.STORAGE_FAILURE


@dataclass(frozen=True)
class EngineResult:
    """
    Outcome of a ledger engine operation.

    Exactly one of value / error is meaningful. Engines never raise across
    their boundary; callers branch on is_success.
    """

    value: Any = None
    error: LedgerError | None = None
    details: dict = field(default_factory=dict)

    @classmethod
    def success(cls, value: Any = None) -> "EngineResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: LedgerError) -> "EngineResult":
        return cls(error=error, details=error.details)

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> Any:
        """Return the value or re-raise the failure (for callers that prefer exceptions)."""
        if self.error is not None:
            raise self.error
        return self.value
