"""Mutating operation lifecycle state."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OperationState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class OperationKind(str, Enum):
    ADD_RECORD = "add_record"
    MARK_SERVICED = "mark_serviced"
    REMOVE_RECORD = "remove_record"
    CHANGE_OWNER = "change_owner"


class FailureKind(str, Enum):
    """Stage at which a submitted operation failed."""
    DISPATCH = "dispatch"  # never reached the ledger
    CONFIRMATION = "confirmation"  # sent, but did not finalize


@dataclass(frozen=True)
class FailureReason:
    kind: FailureKind
    message: str


@dataclass(frozen=True)
class TransactionReceipt:
    """Finality result for one transaction."""
    tx_hash: str
    block_number: int
    succeeded: bool


@dataclass(frozen=True)
class OperationStatus:
    """Snapshot of the tracker, safe to hand to the UI."""
    state: OperationState
    kind: Optional[OperationKind] = None
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    failure: Optional[FailureReason] = None

    @property
    def in_flight(self) -> bool:
        return self.state in (OperationState.SUBMITTING, OperationState.AWAITING_CONFIRMATION)

    @property
    def settled(self) -> bool:
        return self.state in (OperationState.CONFIRMED, OperationState.FAILED)


IDLE_STATUS = OperationStatus(state=OperationState.IDLE)
