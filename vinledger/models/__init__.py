"""Data models for ledger records and operation lifecycle."""
from vinledger.models.operation import (
    FailureKind,
    FailureReason,
    OperationKind,
    OperationState,
    OperationStatus,
    TransactionReceipt,
)
from vinledger.models.record import (
    LedgerSummary,
    LookupResult,
    LookupStatus,
    NotFound,
    Record,
)

__all__ = [
    "FailureKind",
    "FailureReason",
    "LedgerSummary",
    "LookupResult",
    "LookupStatus",
    "NotFound",
    "OperationKind",
    "OperationState",
    "OperationStatus",
    "Record",
    "TransactionReceipt",
]
