"""Vehicle record mirrored from the ledger, and read-side cache views."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Record:
    """One vehicle record as the ledger reports it."""
    index: int
    vin: str
    make: str
    model: str
    year: int
    current_owner_name: str
    created_at: int  # seconds, set by the ledger
    serviced: bool


class NotFoundType:
    """Marker for a read that completed but matched no record. Compare with `is`."""

    def __repr__(self) -> str:
        return "NotFound"

    def __bool__(self) -> bool:
        return False


NotFound = NotFoundType()


@dataclass(frozen=True)
class LedgerSummary:
    """Aggregate ledger state the UI renders."""
    records_count: int
    owner: Optional[str]
    loaded: bool  # at least one successful read of both values
    is_loading: bool


class LookupStatus(str, Enum):
    NOT_SEARCHED = "not_searched"
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class LookupResult:
    """Outcome of the last lookup by VIN."""
    status: LookupStatus
    vin: str = ""
    record: Optional[Record] = None
    error: Optional[str] = None


NOT_SEARCHED = LookupResult(status=LookupStatus.NOT_SEARCHED)
